"""
Test fixtures for Farewatch backend tests.
"""
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from app.database import Base, get_db
from app.main import app
from app.models import FlightAlert, AlertStatus, CheckFrequency, DayShift, TripType
from app.services.flight_search import NormalizedFlightOffer


# Create test database engine (SQLite in-memory)
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign key constraints for SQLite
@event.listens_for(test_engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

USER_ID = "user-1"


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the app uses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def expire(self, key, seconds):
        if key not in self.data:
            return False
        self.ttls[key] = seconds
        return True


class FakeAsyncRedis(FakeRedis):
    async def get(self, key):
        return FakeRedis.get(self, key)

    async def set(self, key, value, nx=False, ex=None):
        return FakeRedis.set(self, key, value, nx=nx, ex=ex)

    async def delete(self, *keys):
        return FakeRedis.delete(self, *keys)

    async def incr(self, key):
        return FakeRedis.incr(self, key)

    async def expire(self, key, seconds):
        return FakeRedis.expire(self, key, seconds)

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_async_redis():
    return FakeAsyncRedis()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def override_get_db(db_session):
    """
    Override the get_db dependency to use the test database session.
    """
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    return _override_get_db


@pytest.fixture(scope="function")
async def client(override_get_db):
    """
    Create an async test client with the database dependency overridden.
    Requests are sent as USER_ID unless a test overrides the header.
    """
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": USER_ID},
    ) as ac:
        yield ac

    # Clear overrides after test
    app.dependency_overrides.clear()


@pytest.fixture
def make_alert(db_session):
    """Factory for persisted alerts; keyword arguments override the defaults."""
    def _make_alert(**overrides):
        values = dict(
            user_id=USER_ID,
            departure_city="Sao Paulo",
            departure_airport_code="GRU",
            destination_city="Lisbon",
            destination_airport_code="LIS",
            trip_type=TripType.ONE_WAY,
            departure_date=date(2026, 12, 1),
            departure_day_shift=[DayShift.MORNING],
            return_day_shift=[],
            price_threshold=Decimal("3500.00"),
            airlines=[],
            check_frequency=CheckFrequency.HOURS_6,
            status=AlertStatus.ACTIVE,
            next_check_at=datetime(2026, 11, 1, 11, 0),
        )
        values.update(overrides)
        alert = FlightAlert(**values)
        db_session.add(alert)
        db_session.commit()
        db_session.refresh(alert)
        return alert

    return _make_alert


def make_offer(departure_time="2026-12-01T08:00:00", **overrides) -> NormalizedFlightOffer:
    values = dict(
        price=Decimal("2500.00"),
        currency="BRL",
        airline="LA",
        flight_number="LA8084",
        departure_time=departure_time,
        arrival_time="2026-12-01T20:30:00",
        duration=630,
        stops=0,
    )
    values.update(overrides)
    return NormalizedFlightOffer(**values)
