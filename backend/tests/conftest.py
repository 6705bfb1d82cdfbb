"""Pytest configuration and fixtures."""

import copy
import os
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# motor never connects until a query runs, the engines under test use the in-memory gateway
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/leafora_test")
os.environ.setdefault("JWT_SECRET", f"test-only-{secrets.token_urlsafe(32)}")

from config.constants import PROFILES, SERVICES  # noqa: E402
from models.user import Profile, Role  # noqa: E402
from utils.catalog_service import ServiceCatalog  # noqa: E402
from utils.errors import PersistenceFailure  # noqa: E402
from utils.gateway import PersistenceGateway, Table, matches_filter, sort_rows  # noqa: E402
from utils.order_service import OrderService  # noqa: E402
from utils.session_provider import SessionProvider  # noqa: E402
from utils.session_service import SessionContext  # noqa: E402
from utils.settings_service import SettingsService  # noqa: E402


class InMemoryTable(Table):
    """Dict-backed table, rows kept in insertion order."""

    def __init__(self, gateway, name):
        self.gateway = gateway
        self.name = name
        self.rows: dict[str, dict] = {}

    def _check(self, op):
        if (self.name, op) in self.gateway.failures or ("*", op) in self.gateway.failures:
            raise PersistenceFailure(f"{op} on {self.name} failed")

    async def select(self, filter=None, order_by=None):
        self._check("select")
        rows = [copy.deepcopy(r) for r in self.rows.values() if matches_filter(r, filter)]
        return sort_rows(rows, order_by)

    async def insert(self, row):
        self._check("insert")
        row_id = uuid.uuid4().hex
        self.rows[row_id] = {**copy.deepcopy(row), "id": row_id}
        return row_id

    async def update(self, id, partial):
        self._check("update")
        if id in self.rows:
            self.rows[id].update(copy.deepcopy({k: v for k, v in partial.items() if k != "id"}))

    async def delete(self, id):
        self._check("delete")
        self.rows.pop(id, None)


class InMemoryGateway(PersistenceGateway):
    """In-memory persistence gateway for testing."""

    def __init__(self):
        self.tables: dict[str, InMemoryTable] = {}
        self.failures: set[tuple[str, str]] = set()

    def table(self, name):
        if name not in self.tables:
            self.tables[name] = InMemoryTable(self, name)
        return self.tables[name]

    def rows(self, name) -> list[dict]:
        return list(self.table(name).rows.values())

    def fail(self, table: str, op: str):
        self.failures.add((table, op))


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings_service(gateway, clock):
    return SettingsService(gateway, clock=clock)


@pytest.fixture
def orders(gateway, settings_service, clock):
    return OrderService(gateway, settings=settings_service, clock=clock)


@pytest.fixture
def catalog(gateway, clock):
    return ServiceCatalog(gateway, clock=clock)


@pytest.fixture
def seed_profile(gateway, clock):
    async def _seed(role: Role = Role.BUYER, name: str = "Test User", **overrides) -> Profile:
        email = overrides.pop("email", f"{uuid.uuid4().hex[:8]}@example.com")
        row = {
            "name": name,
            "email": email,
            "role": Role(role).value,
            "rating": 0.0,
            "total_reviews": 0,
            "seller_level": "new_seller",
            "is_verified": False,
            "is_active": True,
            "current_mode": "seller" if Role(role) == Role.SELLER else "buyer",
            "created_at": clock(),
            **overrides,
        }
        row["id"] = await gateway.table(PROFILES).insert(row)
        return Profile.from_row(row)

    return _seed


@pytest.fixture
def seed_service(gateway, clock):
    async def _seed(seller_id: str, **overrides) -> str:
        row = {
            "seller_id": seller_id,
            "title": "I will build a responsive website",
            "description": "Modern website built with React",
            "category": "Web Development",
            "sub_category": None,
            "tags": ["React", "Website"],
            "images": [],
            "price_basic": 50.0,
            "delivery_basic": 3,
            "revisions_basic": 1,
            "features_basic": ["3 pages"],
            "price_standard": None,
            "delivery_standard": None,
            "revisions_standard": None,
            "features_standard": None,
            "price_premium": None,
            "delivery_premium": None,
            "revisions_premium": None,
            "features_premium": None,
            "status": "active",
            "rating": 0.0,
            "total_orders": 0,
            "is_featured": False,
            "created_at": clock(),
            "updated_at": clock(),
            **overrides,
        }
        return await gateway.table(SERVICES).insert(row)

    return _seed


@pytest.fixture
async def buyer(seed_profile):
    return await seed_profile(Role.BUYER, name="Emma Watson")


@pytest.fixture
async def seller(seed_profile):
    return await seed_profile(Role.SELLER, name="Sarah Chen", bio="Full-stack developer")


@pytest.fixture
async def admin(seed_profile):
    return await seed_profile(Role.ADMIN, name="Admin User")


@pytest.fixture
def session_for(gateway, clock):
    def _session(actor=None) -> SessionContext:
        provider = SessionProvider(actor)
        return SessionContext(provider, gateway, clock=clock)

    return _session
