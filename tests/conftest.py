"""Shared fixtures: an in-memory SQLite database per test, seeded reference data,
service instances wired like the API wires them, and an HTTP client over the app."""

import os

# Settings are read at import time by the app module; keep startup inert in tests.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rental_api.core.deps import get_event_bus, get_flag_router  # noqa: E402
from rental_api.core.flags import SALES_CHANNELS_FLAG, FlagRouter  # noqa: E402
from rental_api.db.base import Base  # noqa: E402
from rental_api.db.models import Region, SalesChannel, ShippingProfile  # noqa: E402
from rental_api.db.seed import seed_all  # noqa: E402
from rental_api.db.session import create_session_maker, get_async_session  # noqa: E402
from rental_api.schemas.common import FindConfig  # noqa: E402
from rental_api.services.collaborators import (  # noqa: E402
    DatabasePriceSelectionStrategy,
    PricingService,
    RegionService,
    ShippingProfileService,
)
from rental_api.services.event_bus import EventBusService  # noqa: E402
from rental_api.services.rental import RentalService  # noqa: E402
from rental_api.services.rental_variant import RentalVariantService  # noqa: E402


class EventCollector:
    """Wildcard subscriber recording every delivered event."""

    def __init__(self):
        self.events = []

    async def __call__(self, event_name, payload):
        self.events.append((event_name, payload))

    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
async def engine():
    """Fresh in-memory database with the full schema."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory configured like the application's."""
    return create_session_maker(engine)


@pytest.fixture
async def db_session(session_maker):
    """Provide a database session for one test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
async def seeded(db_session):
    """Seed shipping profiles, a region and a sales channel; return them by key."""
    await seed_all(db_session)
    profiles = {p["type"]: p for p in (await db_session.execute(ShippingProfile.__table__.select())).mappings()}
    region = (await db_session.execute(Region.__table__.select())).mappings().first()
    channel = (await db_session.execute(SalesChannel.__table__.select())).mappings().first()
    await db_session.commit()
    return {
        "default_profile_id": profiles["default"]["id"],
        "gift_card_profile_id": profiles["gift_card"]["id"],
        "region_id": region["id"],
        "currency_code": region["currency_code"],
        "sales_channel_id": channel["id"],
    }


@pytest.fixture
def event_bus():
    """Event bus with a wildcard collector attached (available as bus.collector)."""
    bus = EventBusService()
    bus.collector = EventCollector()
    bus.subscribe("*", bus.collector)
    return bus


@pytest.fixture
def flag_router():
    """Flag router with sales channels disabled."""
    return FlagRouter({SALES_CHANNELS_FLAG: False})


@pytest.fixture
def variant_service(db_session, event_bus):
    """Variant service wired with the database-backed collaborators."""
    return RentalVariantService(
        db_session,
        event_bus=event_bus,
        region_service=RegionService(db_session),
        price_selection=DatabasePriceSelectionStrategy(db_session),
    )


@pytest.fixture
def rental_service(db_session, event_bus, variant_service, flag_router):
    """Rental service sharing the session and bus with the variant service."""
    return RentalService(
        db_session,
        event_bus=event_bus,
        variant_service=variant_service,
        shipping_profile_service=ShippingProfileService(db_session),
        flag_router=flag_router,
    )


@pytest.fixture
def pricing_service(db_session):
    """Pricing over the money_amount table."""
    return PricingService(db_session, DatabasePriceSelectionStrategy(db_session))


@pytest.fixture
def full_config():
    """Relations needed to inspect a rental after a write."""
    return FindConfig(
        relations=["variants", "variants.options", "variants.prices", "options", "options.values", "images", "tags"]
    )


@pytest.fixture
async def client(session_maker, event_bus, flag_router):
    """HTTP client over the app, with sessions bound to the test database."""
    from rental_api.api.main import app

    async def _session_override():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[get_event_bus] = lambda: event_bus
    app.dependency_overrides[get_flag_router] = lambda: flag_router
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
