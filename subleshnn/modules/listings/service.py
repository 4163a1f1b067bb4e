from supabase import Client
from subleshnn.config import settings
from subleshnn.modules.images.processor import move_image
from subleshnn.modules.listings import cache
from subleshnn.modules.listings.formatting import (
    derive_title, extract_city, format_date_range, format_price, price_to_cents
)
from subleshnn.modules.listings.schemas import (
    ListingBase, ListingCreate, ListingUpdate, ListingFilters, ListingImageInput,
    ListingResponse, ListingSummaryResponse, ListingImageResponse
)
from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

BROWSE_CACHE_KEY = "listings:browse"
IMAGE_SUMMARY_COLUMNS = "listing_id, image_url, thumbnail_url, is_primary, position"


def sort_images(images: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Primary image first, then upload order"""
    return sorted(images, key=lambda img: (not img.get("is_primary"), img.get("position") or 0))


def primary_thumbnail(images: List[Dict[str, Any]]) -> Optional[str]:
    if not images:
        return None
    cover = sort_images(images)[0]
    return cover.get("thumbnail_url") or cover.get("image_url")


def matches_filters(listing: Dict[str, Any], filters: ListingFilters) -> bool:
    """Browse predicate: listing type, city substring, property type and budget ceiling"""
    listing_type = listing.get("listing_type") or "subletting"
    if listing_type != filters.listing_type:
        return False
    if filters.city:
        if filters.city.lower() not in (listing.get("location") or "").lower():
            return False
    if filters.property_type:
        property_type = listing.get("property_type")
        # Rows written before property_type existed still show up
        if property_type and property_type.lower() != filters.property_type.lower():
            return False
    if filters.max_budget:
        if listing["price"] > filters.max_budget * 100:
            return False
    return True


def filter_listings(listings: List[Dict[str, Any]], filters: ListingFilters) -> List[Dict[str, Any]]:
    return [listing for listing in listings if matches_filters(listing, filters)]


def build_image_rows(listing_id: str, images: List[ListingImageInput]) -> List[Dict[str, Any]]:
    """First image is the cover; positions follow the submitted order"""
    return [
        {
            "listing_id": listing_id,
            "image_url": image.image_url,
            "thumbnail_url": image.thumbnail_url or image.image_url,
            "caption": image.caption or None,
            "is_primary": index == 0,
            "position": index,
        }
        for index, image in enumerate(images)
    ]


class ListingService:
    def __init__(self, supabase: Client, admin_supabase: Optional[Client] = None):
        self.supabase = supabase
        # Cascade deletes touch other users' conversations and favorites
        self.admin_supabase = admin_supabase or supabase

    def _to_response(self, row: Dict[str, Any], images: List[Dict[str, Any]]) -> ListingResponse:
        data = {k: v for k, v in row.items() if k != "listing_images"}
        return ListingResponse(
            **data,
            display_price=format_price(row["price"]),
            date_range=format_date_range(row.get("available_from"), row.get("available_to")),
            images=[ListingImageResponse(**img) for img in sort_images(images)],
        )

    def _to_summary(self, row: Dict[str, Any]) -> ListingSummaryResponse:
        return ListingSummaryResponse(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            listing_type=row.get("listing_type") or "subletting",
            property_type=row.get("property_type"),
            price=row["price"],
            display_price=format_price(row["price"]),
            location=row["location"],
            available_from=row.get("available_from"),
            available_to=row.get("available_to"),
            date_range=format_date_range(row.get("available_from"), row.get("available_to")),
            dog_friendly=row.get("dog_friendly") or False,
            cat_friendly=row.get("cat_friendly") or False,
            created_at=row["created_at"],
            thumbnail_url=primary_thumbnail(row.get("listing_images") or []),
        )

    def _listing_fields(self, listing_data: ListingBase) -> Dict[str, Any]:
        try:
            price = price_to_cents(listing_data.price)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {
            "title": derive_title(listing_data.location),
            "listing_type": listing_data.listing_type,
            "property_type": listing_data.property_type,
            "description": listing_data.description,
            "price": price,
            "location": listing_data.location,
            "contact_email": listing_data.contact_email,
            "available_from": listing_data.available_from.isoformat() if listing_data.available_from else None,
            "available_to": listing_data.available_to.isoformat() if listing_data.available_to else None,
            "dog_friendly": listing_data.dog_friendly,
            "cat_friendly": listing_data.cat_friendly,
        }

    def _check_image_count(self, images: List[ListingImageInput]):
        if len(images) > settings.max_images_per_listing:
            raise HTTPException(
                status_code=400,
                detail=f"You can only upload a maximum of {settings.max_images_per_listing} images."
            )

    def _attach_images(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Fetch image summaries for many listings in one query and hang them on each row"""
        if not rows:
            return rows
        ids = [row["id"] for row in rows]
        images_result = self.supabase.table("listing_images")\
            .select(IMAGE_SUMMARY_COLUMNS)\
            .in_("listing_id", ids)\
            .execute()
        by_listing: Dict[str, List[Dict[str, Any]]] = {}
        for img in images_result.data or []:
            by_listing.setdefault(img["listing_id"], []).append(img)
        for row in rows:
            row["listing_images"] = by_listing.get(row["id"], [])
        return rows

    def _get_images(self, listing_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("listing_images")\
            .select("*")\
            .eq("listing_id", listing_id)\
            .execute()
        return result.data or []

    def create_listing(self, listing_data: ListingCreate, user_id: str) -> ListingResponse:
        """Insert the listing, then its images. If the images fail the listing row is removed again."""
        self._check_image_count(listing_data.images)
        insert_data = self._listing_fields(listing_data)
        insert_data["user_id"] = user_id
        try:
            result = self.supabase.table("listings").insert(insert_data).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create listing")
            listing = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating listing: {e}")
            raise HTTPException(status_code=500, detail=f"Database error: {e}")

        images: List[Dict[str, Any]] = []
        if listing_data.images:
            try:
                image_result = self.supabase.table("listing_images")\
                    .insert(build_image_rows(listing["id"], listing_data.images))\
                    .execute()
                images = image_result.data or []
            except Exception as e:
                logger.error(f"Error saving images for listing {listing['id']}, rolling back: {e}")
                self._delete_rows("listings", "id", [listing["id"]])
                raise HTTPException(status_code=500, detail=f"Failed to save images: {e}")

        cache.invalidate(BROWSE_CACHE_KEY)
        logger.info(f"Created listing {listing['id']} with {len(images)} image(s)")
        return self._to_response(listing, images)

    def get_listing_by_id(self, listing_id: str) -> ListingResponse:
        """Get listing with its images, cover first"""
        try:
            result = self.supabase.table("listings")\
                .select("*")\
                .eq("id", listing_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Listing not found")
            return self._to_response(result.data, self._get_images(listing_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _fetch_browse_rows(self) -> List[Dict[str, Any]]:
        result = self.supabase.table("listings")\
            .select("*")\
            .order("created_at", desc=True)\
            .execute()
        return self._attach_images(result.data or [])

    def list_listings(self, filters: ListingFilters) -> List[ListingSummaryResponse]:
        """Browse listings. Rows come from the short-lived cache and are filtered in memory."""
        try:
            rows = cache.get_or_fetch(BROWSE_CACHE_KEY, self._fetch_browse_rows)
            return [self._to_summary(row) for row in filter_listings(rows, filters)]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching listings: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_cities(self) -> List[str]:
        """Unique city names taken from listing locations, sorted"""
        try:
            result = self.supabase.table("listings")\
                .select("location")\
                .execute()
            cities = {extract_city(row.get("location")) for row in result.data or []}
            return sorted(city for city in cities if city)
        except Exception as e:
            logger.error(f"Error fetching cities: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_listings(self, user_id: str) -> List[ListingSummaryResponse]:
        """Dashboard: the user's own listings, newest first"""
        try:
            result = self.supabase.table("listings")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(settings.dashboard_listing_limit)\
                .execute()
            rows = self._attach_images(result.data or [])
            return [self._to_summary(row) for row in rows]
        except Exception as e:
            logger.error(f"Error fetching user listings: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_listings_by_ids(self, listing_ids: List[str]) -> List[ListingSummaryResponse]:
        if not listing_ids:
            return []
        try:
            result = self.supabase.table("listings")\
                .select("*")\
                .in_("id", listing_ids)\
                .order("created_at", desc=True)\
                .execute()
            rows = self._attach_images(result.data or [])
            return [self._to_summary(row) for row in rows]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_listing(self, listing_id: str, listing_data: ListingUpdate) -> ListingResponse:
        """Update listing fields; when images are given, replace the image set"""
        if listing_data.images is not None:
            self._check_image_count(listing_data.images)
        update_data = self._listing_fields(listing_data)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("listings")\
                .update(update_data)\
                .eq("id", listing_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Listing not found")
            listing = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating listing {listing_id}: {e}")
            raise HTTPException(status_code=500, detail=f"Error updating listing: {e}")

        if listing_data.images is not None:
            images = self.replace_images(listing_id, listing_data.images)
        else:
            images = self._get_images(listing_id)

        cache.invalidate(BROWSE_CACHE_KEY)
        return self._to_response(listing, images)

    def replace_images(self, listing_id: str, images: List[ListingImageInput]) -> List[Dict[str, Any]]:
        """
        Swap a listing's image set. New rows are inserted before the old ones
        are deleted, so a failed insert leaves the previous images in place and
        a failed delete removes the new rows again.
        """
        old_ids = [img["id"] for img in self._get_images(listing_id)]
        new_rows: List[Dict[str, Any]] = []
        if images:
            try:
                result = self.supabase.table("listing_images")\
                    .insert(build_image_rows(listing_id, images))\
                    .execute()
                new_rows = result.data or []
            except Exception as e:
                logger.error(f"Error inserting new images for listing {listing_id}: {e}")
                raise HTTPException(status_code=500, detail=f"Failed to save images: {e}")
        try:
            self._delete_rows("listing_images", "id", old_ids)
        except Exception as e:
            logger.error(f"Error deleting old images for listing {listing_id}, reverting: {e}")
            self._delete_rows("listing_images", "id", [row["id"] for row in new_rows])
            raise HTTPException(status_code=500, detail=f"Failed to replace images: {e}")
        return new_rows

    def move_listing_image(self, listing_id: str, from_index: int, to_index: int) -> ListingResponse:
        """Reorder one image; whatever lands at index 0 becomes the cover"""
        images = sort_images(self._get_images(listing_id))
        try:
            reordered = move_image(images, from_index, to_index)
        except IndexError as e:
            raise HTTPException(status_code=400, detail=str(e))
        original = [(img["id"], img.get("position"), bool(img.get("is_primary"))) for img in images]
        changes = [
            (img["id"], position, position == 0)
            for position, img in enumerate(reordered)
            if img.get("position") != position or bool(img.get("is_primary")) != (position == 0)
        ]
        # Demote before promoting so a partial write never leaves two covers
        changes.sort(key=lambda change: change[2])
        try:
            self._write_image_order(changes)
        except Exception as e:
            logger.error(f"Error reordering images for listing {listing_id}, restoring order: {e}")
            self._restore_image_order(listing_id, original)
            raise HTTPException(status_code=500, detail=f"Failed to reorder images: {e}")
        cache.invalidate(BROWSE_CACHE_KEY)
        return self.get_listing_by_id(listing_id)

    def _write_image_order(self, changes: List[Tuple[str, Optional[int], bool]]):
        for image_id, position, is_primary in changes:
            self.supabase.table("listing_images")\
                .update({"position": position, "is_primary": is_primary})\
                .eq("id", image_id)\
                .execute()

    def _restore_image_order(self, listing_id: str, original: List[Tuple[str, Optional[int], bool]]):
        try:
            self._write_image_order(sorted(original, key=lambda row: row[2]))
        except Exception as e:
            logger.error(f"Could not restore image order for listing {listing_id}: {e}")

    def _delete_rows(self, table: str, column: str, values: List[str]):
        if not values:
            return
        self.admin_supabase.table(table)\
            .delete()\
            .in_(column, values)\
            .execute()

    def delete_listing(self, listing_id: str) -> bool:
        """Delete a listing and everything hanging off it, children first"""
        try:
            conversations = self.admin_supabase.table("conversations")\
                .select("id")\
                .eq("listing_id", listing_id)\
                .execute()
            conversation_ids = [c["id"] for c in conversations.data or []]
            self._delete_rows("messages", "conversation_id", conversation_ids)
            self._delete_rows("conversations", "id", conversation_ids)
            self._delete_rows("favorites", "listing_id", [listing_id])
            self._delete_rows("listing_images", "listing_id", [listing_id])
            result = self.admin_supabase.table("listings")\
                .delete()\
                .eq("id", listing_id)\
                .execute()
            cache.invalidate(BROWSE_CACHE_KEY)
            logger.info(f"Deleted listing {listing_id} with {len(conversation_ids)} conversation(s)")
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting listing {listing_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
