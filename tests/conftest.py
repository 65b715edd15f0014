"""Shared test fixtures and helpers."""

import os

# Configure the app before any aura_studio module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_PASSWORD"] = "let-me-in"
os.environ["SITE_URL"] = "https://aura.test"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aura_studio.database import Base, get_db
from aura_studio.main import app
from aura_studio.models import Service
from aura_studio.rate_limiter import reset_rate_limits
from aura_studio.routes.admin_hapio import get_hapio_service
from aura_studio.services.stripe_service import StripeService, get_stripe_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def stripe_mock():
    """StripeService stand-in; tests set return values on the async methods"""
    service = MagicMock(spec=StripeService)
    service.retrieve_coupon = AsyncMock()
    service.retrieve_payment_intent = AsyncMock()
    service.create_payment_intent = AsyncMock()
    return service


@pytest.fixture
def client(db_session, stripe_mock):
    def override_get_db():
        yield db_session

    reset_rate_limits()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_service] = lambda: stripe_mock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_rate_limits()


def make_service(db, **overrides: Any) -> Service:
    """Insert a bookable service with sensible defaults."""
    values = {
        "slug": "signature-facial",
        "name": "Signature Facial",
        "category": "Facials",
        "price": "$150",
        "duration_minutes": 60,
        "enabled": True,
        "display_order": 1,
        "cal_event_type_id": 4242,
    }
    values.update(overrides)
    service = Service(**values)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_intent(
    intent_id: str = "pi_123",
    status: str = "succeeded",
    amount: int = 15000,
    metadata: Optional[dict[str, Any]] = None,
) -> SimpleNamespace:
    """Minimal PaymentIntent-shaped object."""
    return SimpleNamespace(
        id=intent_id,
        status=status,
        amount=amount,
        amount_received=amount if status == "succeeded" else 0,
        client_secret=f"{intent_id}_secret_abc",
        metadata=metadata
        if metadata is not None
        else {
            "serviceId": "signature-facial",
            "serviceName": "Signature Facial",
            "paymentType": "full",
            "finalAmount": "150.00",
            "depositAmount": "150.00",
            "balanceDue": "0.00",
            "customerEmail": "jane@example.com",
            "customerName": "Jane Doe",
            "customerPhone": "5551234567",
        },
    )


class FakeBookingApi:
    """In-memory stand-in for BookingApiClient that records call order."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.reserve_results: list[Any] = []
        self.verify_result: dict[str, Any] = {"valid": True}
        self._counter = 0
        self.validate_discount = AsyncMock()
        self.create_payment_intent = AsyncMock(
            return_value={
                "paymentIntentId": "pi_123",
                "clientSecret": "pi_123_secret_abc",
                "amount": 150.0,
                "status": "requires_payment_method",
            }
        )
        self.create_booking_token = AsyncMock(
            return_value={
                "token": "booking-token",
                "expiresAt": "2026-01-01T15:30:00Z",
                "paymentIntentId": "pi_123",
                "paymentStatus": "succeeded",
            }
        )
        self.get_availability = AsyncMock(return_value={"availability": []})

    async def reserve_slot(self, event_type_id, slot_start, slot_duration=None, timezone=None):
        self.calls.append(("reserve", f"{event_type_id}:{slot_start}"))
        if self.reserve_results:
            result = self.reserve_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        self._counter += 1
        return {"id": f"res_{self._counter}", "expiresAt": "2026-01-01T15:02:00Z"}

    async def verify_reservation(self, reservation_id):
        self.calls.append(("verify", reservation_id))
        return self.verify_result

    async def release_reservation(self, reservation_id):
        self.calls.append(("release", reservation_id))


class FakeSleep:
    """Records requested delays; delays listed in `block` never finish on their own."""

    def __init__(self, block=()):
        self.calls: list[float] = []
        self.block = set(block)

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if seconds in self.block:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


async def drain(rounds: int = 50) -> None:
    """Let pending hold/countdown tasks run to their next blocking point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


FIXED_NOW = datetime(2026, 1, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_api():
    return FakeBookingApi()


@pytest.fixture
def admin_client(client):
    response = client.post("/api/admin/login", json={"password": "let-me-in"})
    assert response.status_code == 200
    return client


@pytest.fixture
def hapio():
    """HapioService stand-in for the admin routes"""
    fake = AsyncMock()
    app.dependency_overrides[get_hapio_service] = lambda: fake
    return fake
