"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fleetops.app.main import app
from fleetops.app.db.session import get_db, Base

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Point the app at the in-memory database for the whole session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}

@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# Pricing fixtures shared by the API tests

@pytest.fixture
async def airport_service(client):
    """Zone-priced metered service type."""
    response = await client.post("/v1/pricing/service-types", json={
        "name": "airport",
        "display_name": "Airport Transfer",
        "zone_based_pricing": True
    })
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def rental_service(client):
    """Service type priced from rental packages."""
    response = await client.post("/v1/pricing/service-types", json={
        "name": "rental",
        "display_name": "Car Rental",
        "uses_rental_packages": True
    })
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def sedan_rule(client, airport_service):
    """Wildcard sedan rule: base 99, 14/km, minimum 299, 1.50/min, waiting 2/min after 5."""
    response = await client.post(
        f"/v1/pricing/service-types/{airport_service['id']}/pricing-rules",
        json={
            "vehicle_type": "sedan",
            "base_fare": 99,
            "per_km_rate": 14,
            "per_minute_rate": 1.5,
            "minimum_fare": 299,
            "surge_multiplier": 1.0,
            "cancellation_fee": 100,
            "no_show_fee": 150,
            "waiting_charge_per_minute": 2,
            "free_waiting_minutes": 5
        }
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def sedan_package(client, rental_service):
    """8 hrs / 40 km sedan package at 800, 12/km and 150/hr overage."""
    response = await client.post(
        f"/v1/pricing/service-types/{rental_service['id']}/rental-packages",
        json={
            "vehicle_type": "sedan",
            "name": "8 hrs / 40 km",
            "duration_hours": 8,
            "included_km": 40,
            "base_price": 800,
            "extra_km_rate": 12,
            "extra_hour_rate": 150
        }
    )
    assert response.status_code == 201
    return response.json()
