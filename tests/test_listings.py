import pytest

from subleshnn.modules.listings import cache
from subleshnn.modules.listings.schemas import ListingFilters
from subleshnn.modules.listings.service import ListingService
from tests.conftest import auth

IMG = "data:image/webp;base64,UklGRg=="
THUMB = "data:image/webp;base64,VEhVTUI="


def listing_payload(**overrides):
    payload = {
        "listing_type": "subletting",
        "property_type": "studio",
        "description": "Bright studio near the canal",
        "price": "1200.50",
        "location": "Berlin, Germany",
        "contact_email": "alice@example.com",
        "available_from": "2025-01-05",
        "available_to": "2025-01-20",
        "dog_friendly": True,
        "cat_friendly": False,
        "images": [],
    }
    payload.update(overrides)
    return payload


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(cache.time, "monotonic", fake)
    return fake


class TestCreateAndGet:
    def test_create_listing(self, client, fake_db):
        payload = listing_payload(images=[
            {"image_url": IMG, "thumbnail_url": THUMB},
            {"image_url": IMG, "caption": "Kitchen"},
        ])
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == "user-alice"
        assert body["price"] == 120050
        assert body["display_price"] == "1201"
        assert body["date_range"] == "5 – 20 Jan 2025"
        assert body["title"].startswith("Berlin, Germany - ")
        assert [img["is_primary"] for img in body["images"]] == [True, False]
        assert body["images"][1]["thumbnail_url"] == IMG
        assert body["images"][1]["caption"] == "Kitchen"
        assert len(fake_db.tables["listing_images"]) == 2

    def test_create_requires_auth(self, client):
        response = client.post("/api/v1/listings", json=listing_payload())
        assert response.status_code in (401, 403)

    def test_create_rejects_reversed_dates(self, client):
        payload = listing_payload(available_from="2025-02-01", available_to="2025-01-01")
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 422

    def test_create_rejects_long_description(self, client):
        payload = listing_payload(description="x" * 281)
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 422

    def test_create_accepts_description_at_limit(self, client):
        payload = listing_payload(description="x" * 280)
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 201

    def test_create_rejects_negative_price(self, client):
        payload = listing_payload(price="-1")
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 400

    def test_create_rejects_too_many_images(self, client, fake_db):
        payload = listing_payload(images=[{"image_url": IMG}] * 11)
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 400
        assert "listings" not in fake_db.tables

    def test_image_failure_rolls_back_listing(self, client, fake_db):
        fake_db.fail("listing_images", "insert")
        payload = listing_payload(images=[{"image_url": IMG}])
        response = client.post("/api/v1/listings", json=payload, headers=auth("token-alice"))
        assert response.status_code == 500
        assert fake_db.tables["listings"] == []

    def test_get_listing_orders_cover_first(self, client, fake_db, seed_listing):
        listing = seed_listing()
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=False, position=1)
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=THUMB, is_primary=True, position=0)
        response = client.get(f"/api/v1/listings/{listing['id']}")
        assert response.status_code == 200
        assert [img["image_url"] for img in response.json()["images"]] == [THUMB, IMG]

    def test_get_missing_listing(self, client):
        response = client.get("/api/v1/listings/does-not-exist")
        assert response.status_code == 404


class TestBrowse:
    def test_filters(self, client, seed_listing):
        seed_listing(location="Berlin, Germany", price=90000, property_type="studio")
        seed_listing(location="Lisbon, Portugal", price=60000, property_type="room")
        seed_listing(location="Berlin, Germany", price=150000, property_type="apartment")
        seed_listing(location="Berlin, Germany", price=50000, listing_type="looking_for")

        response = client.get("/api/v1/listings", params={"city": "berlin"})
        assert len(response.json()) == 2

        response = client.get("/api/v1/listings", params={"city": "Berlin", "max_budget": 1000})
        assert [row["price"] for row in response.json()] == [90000]

        response = client.get("/api/v1/listings", params={"property_type": "room"})
        assert [row["location"] for row in response.json()] == ["Lisbon, Portugal"]

        response = client.get("/api/v1/listings", params={"listing_type": "looking_for"})
        assert [row["price"] for row in response.json()] == [50000]

    def test_zero_budget_disables_filter(self, client, seed_listing):
        seed_listing(price=999999)
        response = client.get("/api/v1/listings", params={"max_budget": 0})
        assert len(response.json()) == 1

    def test_budget_boundary_is_inclusive(self, client, seed_listing):
        seed_listing(price=100000)
        seed_listing(price=100001)
        response = client.get("/api/v1/listings", params={"max_budget": 1000})
        assert [row["price"] for row in response.json()] == [100000]

    def test_null_type_treated_as_sublet(self, client, seed_listing):
        seed_listing(listing_type=None, property_type=None)
        assert len(client.get("/api/v1/listings").json()) == 1
        assert len(client.get("/api/v1/listings", params={"property_type": "room"}).json()) == 1

    def test_newest_first_with_cover_thumbnail(self, client, fake_db, seed_listing):
        older = seed_listing(location="Old Town")
        newer = seed_listing(location="New Town")
        fake_db.seed("listing_images", listing_id=newer["id"], image_url=IMG, thumbnail_url=THUMB,
                     is_primary=True, position=0)
        rows = client.get("/api/v1/listings").json()
        assert [row["id"] for row in rows] == [newer["id"], older["id"]]
        assert rows[0]["thumbnail_url"] == THUMB
        assert rows[1]["thumbnail_url"] is None

    def test_cities(self, client, seed_listing):
        seed_listing(location="Lisbon, Portugal")
        seed_listing(location="Berlin, Germany")
        seed_listing(location="Berlin, Kreuzberg")
        assert client.get("/api/v1/listings/cities").json() == ["Berlin", "Lisbon"]

    def test_mine(self, client, seed_listing):
        seed_listing(user_id="user-alice")
        seed_listing(user_id="user-bob")
        rows = client.get("/api/v1/listings/mine", headers=auth("token-alice")).json()
        assert [row["user_id"] for row in rows] == ["user-alice"]


class TestBrowseCache:
    def test_get_or_fetch_expires(self, clock):
        calls = []

        def fetch():
            calls.append(1)
            return [{"id": len(calls)}]

        assert cache.get_or_fetch("k", fetch, ttl=300) == [{"id": 1}]
        clock.now += 299
        assert cache.get_or_fetch("k", fetch, ttl=300) == [{"id": 1}]
        clock.now += 2
        assert cache.get_or_fetch("k", fetch, ttl=300) == [{"id": 2}]

    def test_browse_served_from_cache_within_window(self, fake_db, seed_listing, clock):
        service = ListingService(fake_db)
        seed_listing()
        assert len(service.list_listings(ListingFilters())) == 1
        seed_listing()
        assert len(service.list_listings(ListingFilters())) == 1
        assert fake_db.count_calls("listings") == 1

        clock.now += 301
        assert len(service.list_listings(ListingFilters())) == 2
        assert fake_db.count_calls("listings") == 2

    def test_writes_invalidate_cache(self, client, fake_db):
        assert client.get("/api/v1/listings").json() == []
        client.post("/api/v1/listings", json=listing_payload(), headers=auth("token-alice"))
        assert len(client.get("/api/v1/listings").json()) == 1


class TestOwnership:
    def test_update_by_owner(self, client, fake_db, seed_listing):
        listing = seed_listing()
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=True, position=0)
        payload = listing_payload(price="800", images=None)
        response = client.put(f"/api/v1/listings/{listing['id']}", json=payload, headers=auth("token-alice"))
        assert response.status_code == 200
        body = response.json()
        assert body["price"] == 80000
        assert body["updated_at"] is not None
        assert len(body["images"]) == 1
        assert fake_db.tables["listings"][0]["updated_at"].endswith("+00:00")

    def test_update_replaces_images(self, client, fake_db, seed_listing):
        listing = seed_listing()
        old = fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=True, position=0)
        payload = listing_payload(images=[{"image_url": THUMB}, {"image_url": IMG}])
        response = client.put(f"/api/v1/listings/{listing['id']}", json=payload, headers=auth("token-alice"))
        assert response.status_code == 200
        stored = fake_db.tables["listing_images"]
        assert len(stored) == 2
        assert old["id"] not in [row["id"] for row in stored]
        assert response.json()["images"][0]["image_url"] == THUMB

    def test_failed_image_insert_keeps_old_images(self, client, fake_db, seed_listing):
        listing = seed_listing()
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=True, position=0)
        fake_db.fail("listing_images", "insert")
        payload = listing_payload(images=[{"image_url": THUMB}])
        response = client.put(f"/api/v1/listings/{listing['id']}", json=payload, headers=auth("token-alice"))
        assert response.status_code == 500
        assert [row["image_url"] for row in fake_db.tables["listing_images"]] == [IMG]

    def test_update_by_other_user_forbidden(self, client, seed_listing):
        listing = seed_listing(user_id="user-alice")
        response = client.put(f"/api/v1/listings/{listing['id']}", json=listing_payload(), headers=auth("token-bob"))
        assert response.status_code == 403
        assert response.json()["detail"] == "You can only edit your own listings"

    def test_update_missing_listing(self, client):
        response = client.put("/api/v1/listings/nope", json=listing_payload(), headers=auth("token-alice"))
        assert response.status_code == 404

    def test_delete_by_other_user_forbidden(self, client, fake_db, seed_listing):
        listing = seed_listing(user_id="user-alice")
        response = client.delete(f"/api/v1/listings/{listing['id']}", headers=auth("token-bob"))
        assert response.status_code == 403
        assert len(fake_db.tables["listings"]) == 1


class TestMoveImage:
    def test_move_to_front_changes_cover(self, client, fake_db, seed_listing):
        listing = seed_listing()
        for position, url in enumerate(["a", "b", "c"]):
            fake_db.seed("listing_images", listing_id=listing["id"], image_url=f"data:image/webp;base64,{url}",
                         is_primary=position == 0, position=position)
        response = client.post(
            f"/api/v1/listings/{listing['id']}/images/move",
            json={"from_index": 2, "to_index": 0},
            headers=auth("token-alice"),
        )
        assert response.status_code == 200
        images = response.json()["images"]
        assert [img["image_url"][-1] for img in images] == ["c", "a", "b"]
        assert [img["is_primary"] for img in images] == [True, False, False]
        assert [img["position"] for img in images] == [0, 1, 2]

    def test_move_out_of_range(self, client, fake_db, seed_listing):
        listing = seed_listing()
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=True, position=0)
        response = client.post(
            f"/api/v1/listings/{listing['id']}/images/move",
            json={"from_index": 0, "to_index": 3},
            headers=auth("token-alice"),
        )
        assert response.status_code == 400

    def test_failed_reorder_restores_original_order(self, client, fake_db, seed_listing):
        listing = seed_listing()
        for position, url in enumerate(["a", "b", "c"]):
            fake_db.seed("listing_images", listing_id=listing["id"], image_url=f"data:image/webp;base64,{url}",
                         is_primary=position == 0, position=position)
        fake_db.fail("listing_images", "update", skip=1, times=1)
        response = client.post(
            f"/api/v1/listings/{listing['id']}/images/move",
            json={"from_index": 2, "to_index": 0},
            headers=auth("token-alice"),
        )
        assert response.status_code == 500
        rows = sorted(fake_db.tables["listing_images"], key=lambda row: row["position"])
        assert [row["image_url"][-1] for row in rows] == ["a", "b", "c"]
        assert [row["position"] for row in rows] == [0, 1, 2]
        assert [row["is_primary"] for row in rows] == [True, False, False]

    def test_old_cover_demoted_before_new_cover_promoted(self, client, fake_db, seed_listing):
        listing = seed_listing()
        for position, url in enumerate(["a", "b"]):
            fake_db.seed("listing_images", listing_id=listing["id"], image_url=f"data:image/webp;base64,{url}",
                         is_primary=position == 0, position=position)
        # Every write after the first fails, restore included
        fake_db.fail("listing_images", "update", skip=1)
        client.post(
            f"/api/v1/listings/{listing['id']}/images/move",
            json={"from_index": 1, "to_index": 0},
            headers=auth("token-alice"),
        )
        primaries = [row for row in fake_db.tables["listing_images"] if row["is_primary"]]
        assert len(primaries) <= 1


class TestCascadeDelete:
    def test_delete_removes_children(self, client, fake_db, seed_listing):
        listing = seed_listing(user_id="user-alice")
        other = seed_listing(user_id="user-alice")
        fake_db.seed("listing_images", listing_id=listing["id"], image_url=IMG, is_primary=True, position=0)
        fake_db.seed("favorites", user_id="user-bob", listing_id=listing["id"])
        fake_db.seed("favorites", user_id="user-bob", listing_id=other["id"])
        conversation = fake_db.seed("conversations", listing_id=listing["id"], listing_owner_id="user-alice",
                                    inquirer_id="user-bob", last_message_at=None)
        fake_db.seed("messages", conversation_id=conversation["id"], sender_id="user-bob", content="Hi")

        response = client.delete(f"/api/v1/listings/{listing['id']}", headers=auth("token-alice"))
        assert response.status_code == 204
        assert [row["id"] for row in fake_db.tables["listings"]] == [other["id"]]
        assert fake_db.tables["listing_images"] == []
        assert fake_db.tables["conversations"] == []
        assert fake_db.tables["messages"] == []
        assert [row["listing_id"] for row in fake_db.tables["favorites"]] == [other["id"]]

    def test_children_deleted_before_listing(self, fake_db, seed_listing):
        listing = seed_listing()
        conversation = fake_db.seed("conversations", listing_id=listing["id"], listing_owner_id="user-alice",
                                    inquirer_id="user-bob")
        fake_db.seed("messages", conversation_id=conversation["id"], sender_id="user-bob", content="Hi")
        ListingService(fake_db).delete_listing(listing["id"])
        deletes = [table for table, action in fake_db.calls if action == "delete"]
        assert deletes == ["messages", "conversations", "favorites", "listing_images", "listings"]
