import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from subleshnn.config import settings
from subleshnn.database.supabase_client import get_supabase, get_service_supabase
from subleshnn.main import app
from subleshnn.modules.auth.service import clear_auth_cache
from subleshnn.modules.listings import cache as listings_cache

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

USERS = {
    "token-alice": {"id": "user-alice", "email": "alice@example.com"},
    "token-bob": {"id": "user-bob", "email": "bob@example.com"},
    "token-carol": {"id": "user-carol", "email": "carol@example.com"},
    "token-admin": {"id": "user-admin", "email": "admin@example.com"},
}


class FakeResponse:
    def __init__(self, data):
        self.data = data


def _coerce(value):
    if isinstance(value, bool) or value is None:
        return value
    return str(value)


def _parse_or(filters: str):
    clauses = []
    for clause in filters.split(","):
        column, op, value = clause.split(".", 2)
        clauses.append((column, op, value))

    def predicate(row):
        for column, op, value in clauses:
            if op == "eq" and _coerce(row.get(column)) == value:
                return True
            if op == "is" and value == "null" and row.get(column) is None:
                return True
        return False
    return predicate


class FakeQuery:
    """Subset of the postgrest query builder used by the services"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.filters: List = []
        self.orders: List = []
        self.limit_count: Optional[int] = None
        self.single_mode: Optional[str] = None

    def select(self, *columns, **kwargs):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: _coerce(row.get(column)) == _coerce(value))
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: _coerce(row.get(column)) != _coerce(value))
        return self

    def in_(self, column, values):
        wanted = {_coerce(v) for v in values}
        self.filters.append(lambda row: _coerce(row.get(column)) in wanted)
        return self

    def is_(self, column, value):
        self.filters.append(lambda row: row.get(column) is None if value == "null" else row.get(column) == value)
        return self

    def or_(self, filters):
        self.filters.append(_parse_or(filters))
        return self

    def order(self, column, desc=False, nullsfirst=False, **kwargs):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def single(self):
        self.single_mode = "single"
        return self

    def maybe_single(self):
        self.single_mode = "maybe_single"
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table_name, self.action))
        failure = self.db.failures.get((self.table_name, self.action))
        if failure is not None and failure.trigger():
            raise failure.error or Exception(f"simulated {self.action} failure on {self.table_name}")
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", self.db.next_timestamp())
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])

        if self.action == "delete":
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return FakeResponse([dict(row) for row in matched])

        result = [dict(row) for row in matched]
        for column, desc in reversed(self.orders):
            present = [r for r in result if r.get(column) is not None]
            missing = [r for r in result if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            result = present + missing
        if self.limit_count is not None:
            result = result[:self.limit_count]
        if self.single_mode:
            if not result:
                if self.single_mode == "single":
                    raise Exception("JSON object requested, multiple (or no) rows returned")
                return None
            return FakeResponse(result[0])
        return FakeResponse(result)


class FakeAuth:
    def __init__(self, db: "FakeSupabase"):
        self.db = db
        self.registered: List[Dict[str, Any]] = []
        self.sign_out_calls = 0

    def get_user(self, jwt=None):
        user = USERS.get(jwt)
        if not user:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(**user))

    def sign_up(self, credentials):
        if any(u["email"] == credentials["email"] for u in self.registered):
            raise Exception("User already registered")
        user = {"id": f"user-{len(self.registered) + 100}", "email": credentials["email"]}
        self.registered.append({**user, "password": credentials["password"]})
        return SimpleNamespace(user=SimpleNamespace(**user))

    def sign_in_with_password(self, credentials):
        for u in self.registered:
            if u["email"] == credentials["email"] and u["password"] == credentials["password"]:
                user = SimpleNamespace(id=u["id"], email=u["email"])
                return SimpleNamespace(user=user, session=SimpleNamespace(access_token=f"token-{u['id']}"))
        raise Exception("Invalid login credentials")

    def sign_out(self):
        self.sign_out_calls += 1


class Failure:
    def __init__(self, skip: int, times: Optional[int], error: Optional[Exception]):
        self.skip = skip
        self.times = times
        self.error = error

    def trigger(self) -> bool:
        if self.skip > 0:
            self.skip -= 1
            return False
        if self.times is None:
            return True
        if self.times > 0:
            self.times -= 1
            return True
        return False


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List = []
        self.failures: Dict[tuple, Failure] = {}
        self.auth = FakeAuth(self)
        self._clock = 0

    def next_timestamp(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, action: str, skip: int = 0, times: Optional[int] = None,
             error: Optional[Exception] = None):
        """Make calls on table/action raise after `skip` successful calls, `times` times (None = always)"""
        self.failures[(table, action)] = Failure(skip, times, error)

    def count_calls(self, table: str, action: str = "select") -> int:
        return sum(1 for call in self.calls if call == (table, action))

    def seed(self, table: str, **row) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.next_timestamp())
        self.tables.setdefault(table, []).append(row)
        return row


@pytest.fixture(autouse=True)
def _reset_caches(monkeypatch):
    listings_cache.invalidate()
    clear_auth_cache()
    monkeypatch.setattr(settings, "admin_emails", "admin@example.com")
    yield
    listings_cache.invalidate()
    clear_auth_cache()


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed_listing(fake_db):
    def _seed(user_id="user-alice", **overrides):
        row = {
            "user_id": user_id,
            "title": "Berlin, Germany - 01/01/2025",
            "listing_type": "subletting",
            "property_type": "studio",
            "description": "Sunny studio",
            "price": 90000,
            "location": "Berlin, Germany",
            "contact_email": "alice@example.com",
            "available_from": None,
            "available_to": None,
            "dog_friendly": False,
            "cat_friendly": False,
        }
        row.update(overrides)
        return fake_db.seed("listings", **row)
    return _seed
