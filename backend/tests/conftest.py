"""Pytest configuration and fixtures for the party booking backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (tables from booking_core.services.tables)
- A controllable clock
- Catalog data and booking request builders
- Stripe webhook event builders
- A TestClient wired to the mocked backends
"""

import os
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-central-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-booking")
os.environ.setdefault("ENVIRONMENT", "test")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from fastapi.testclient import TestClient  # noqa: E402

from booking_api.dependencies import (  # noqa: E402
    get_booking_service,
    get_gateway,
    get_payment_session_service,
    get_reminder_scheduler,
    get_secrets,
    get_webhook_handler,
    reset_services,
)
from booking_api.main import app  # noqa: E402
from booking_core.config import Settings  # noqa: E402
from booking_core.models.booking import BookingRequest  # noqa: E402
from booking_core.models.catalog import Activity, Package  # noqa: E402
from booking_core.services.booking_service import BookingService  # noqa: E402
from booking_core.services.dynamodb import (  # noqa: E402
    DynamoDBService,
    to_item,
)
from booking_core.services.notification_service import NotificationService  # noqa: E402
from booking_core.services.payment_session import PaymentSessionService  # noqa: E402
from booking_core.services.reminder_scheduler import ReminderScheduler  # noqa: E402
from booking_core.services.stripe_service import StripeService  # noqa: E402
from booking_core.services.tables import ACTIVITIES, PACKAGES, table_definitions  # noqa: E402
from booking_core.services.webhook_handler import WebhookHandler  # noqa: E402

TABLE_PREFIX = "test-booking"

# 2026-06-01 12:00 Europe/Prague
DEFAULT_NOW = datetime(2026, 6, 1, 10, 0, tzinfo=timezone.utc)
PARTY_DATE = date(2026, 6, 20)

PRINCESS_PACKAGE = Package(
    package_id="princess-party", title="Princeznovská párty", price=450000
)
FACE_PAINTING = Activity(activity_id="face-painting", title="Malování na obličej", price=150000)
MAGIC_SHOW = Activity(activity_id="magic-show", title="Kouzelnické představení", price=250000)
RETIRED_ACTIVITY = Activity(
    activity_id="pony-rides", title="Jízda na poníkovi", price=300000, active=False
)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = DEFAULT_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services and settings before and after each test.

    Tests using mock_aws need a DynamoDBService created inside the mock
    context rather than one left over from a previous test.
    """
    reset_services()
    yield
    reset_services()


# === AWS Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-central-1"


@pytest.fixture
def mock_dynamodb(aws_credentials: None) -> Generator[Any, None, None]:
    """Mocked DynamoDB with every booking table created."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-central-1")
        for definition in table_definitions(TABLE_PREFIX):
            client.create_table(**definition)
        yield client


@pytest.fixture
def db(mock_dynamodb: Any) -> DynamoDBService:
    """DynamoDBService bound to the mocked tables."""
    return DynamoDBService()


@pytest.fixture
def catalog(db: DynamoDBService) -> None:
    """Seed the package and activity catalog."""
    resource = boto3.resource("dynamodb", region_name="eu-central-1")
    resource.Table(db.table_name(PACKAGES)).put_item(Item=to_item(PRINCESS_PACKAGE))
    for activity in (FACE_PAINTING, MAGIC_SHOW, RETIRED_ACTIVITY):
        resource.Table(db.table_name(ACTIVITIES)).put_item(Item=to_item(activity))


# === Service Fixtures ===


@pytest.fixture
def settings() -> Settings:
    """Default settings (30% deposit, Europe/Prague, CZK)."""
    return Settings()


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 2026-06-01T10:00:00Z."""
    return FixedClock()


@pytest.fixture
def notifier() -> MagicMock:
    """NotificationService double; every send succeeds."""
    mock = MagicMock(spec=NotificationService)
    for name in (
        "send_booking_confirmation",
        "send_admin_booking_notification",
        "send_payment_receipt",
        "send_party_reminder",
        "send_feedback_request",
        "send_payment_due_reminder",
    ):
        getattr(mock, name).return_value = "ses-message-id"
    return mock


# === Request Builders ===


@pytest.fixture
def booking_payload() -> Callable[..., dict[str, Any]]:
    """Build a booking form body in its camelCase wire format."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "packageId": PRINCESS_PACKAGE.package_id,
            "activityIds": [],
            "partyDetails": {
                "date": PARTY_DATE.isoformat(),
                "startTime": "14:00",
                "venue": "Praha 6, Dejvická 12",
                "guestCount": 12,
            },
            "childInfo": {
                "name": "Anička",
                "age": 6,
                "allergies": ["ořechy"],
                "dietaryRestrictions": [],
            },
            "contact": {
                "parentName": "Jana Nováková",
                "parentEmail": "Jana.Novakova@Example.cz",
                "parentPhone": "+420777123456",
                "emergencyContact": {"name": "Petr Novák", "phone": "+420777654321"},
            },
            "safetyAcknowledged": True,
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def booking_request(booking_payload: Callable[..., dict[str, Any]]) -> Callable[..., BookingRequest]:
    """Build a parsed BookingRequest."""

    def _build(**overrides: Any) -> BookingRequest:
        return BookingRequest.model_validate(booking_payload(**overrides))

    return _build


# === Stripe Event Builders ===


@pytest.fixture
def checkout_event() -> Callable[..., dict[str, Any]]:
    """Build a checkout.session.* event."""

    def _build(
        event_id: str,
        order_id: str | None,
        payment_type: str | None = "deposit",
        amount_total: int | None = 135000,
        event_type: str = "checkout.session.completed",
        payment_status: str = "paid",
        payment_intent: str | None = "pi_deposit_001",
        session_id: str = "cs_test_001",
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        if order_id is not None:
            metadata["orderId"] = order_id
        if payment_type is not None:
            metadata["type"] = payment_type
        return {
            "id": event_id,
            "type": event_type,
            "created": int(DEFAULT_NOW.timestamp()),
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_intent": payment_intent,
                    "payment_status": payment_status,
                    "amount_total": amount_total,
                    "currency": "czk",
                    "metadata": metadata,
                }
            },
        }

    return _build


@pytest.fixture
def refund_event() -> Callable[..., dict[str, Any]]:
    """Build a charge.refunded event."""

    def _build(
        event_id: str,
        order_id: str | None,
        amount: int,
        amount_refunded: int,
        charge_id: str = "ch_001",
        payment_intent: str | None = "pi_deposit_001",
        payment_type: str = "deposit",
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {"type": payment_type}
        if order_id is not None:
            metadata["orderId"] = order_id
        return {
            "id": event_id,
            "type": "charge.refunded",
            "created": int(DEFAULT_NOW.timestamp()),
            "data": {
                "object": {
                    "id": charge_id,
                    "object": "charge",
                    "payment_intent": payment_intent,
                    "amount": amount,
                    "amount_refunded": amount_refunded,
                    "metadata": metadata,
                }
            },
        }

    return _build


# === API Fixtures ===

TEST_WEBHOOK_SECRET = "whsec_test_secret123"
TEST_CRON_SECRET = "cron-secret-value"


@pytest.fixture
def ssm() -> MagicMock:
    """SSM double holding the webhook and cron secrets."""
    mock = MagicMock()
    secrets = {
        "stripe/webhook_secret": TEST_WEBHOOK_SECRET,
        "cron/secret": TEST_CRON_SECRET,
    }
    mock.get_secret.side_effect = lambda name: secrets[name]
    mock.find_secret.side_effect = lambda name: secrets.get(name)
    return mock


@pytest.fixture
def stripe_client(clock: FixedClock) -> MagicMock:
    """StripeClient double returning one checkout session."""
    client = MagicMock()
    session = MagicMock()
    session.id = "cs_test_001"
    session.url = "https://checkout.stripe.com/c/pay/cs_test_001"
    session.expires_at = int(clock().timestamp()) + 3600
    client.checkout.sessions.create.return_value = session
    return client


@pytest.fixture
def gateway(settings: Settings, ssm: MagicMock, stripe_client: MagicMock) -> StripeService:
    """StripeService with mocked credentials and client."""
    return StripeService(settings=settings, ssm=ssm, client=stripe_client)


@pytest.fixture
def client(
    db: DynamoDBService,
    catalog: None,
    settings: Settings,
    clock: FixedClock,
    notifier: MagicMock,
    ssm: MagicMock,
    gateway: StripeService,
) -> Generator[TestClient, None, None]:
    """TestClient with every service bound to the mocked backends."""
    app.dependency_overrides.update(
        {
            get_booking_service: lambda: BookingService(db, notifier=notifier, settings=settings, clock=clock),
            get_payment_session_service: lambda: PaymentSessionService(
                db, gateway, settings=settings, clock=clock
            ),
            get_webhook_handler: lambda: WebhookHandler(db, notifier=notifier, settings=settings, clock=clock),
            get_reminder_scheduler: lambda: ReminderScheduler(db, notifier, settings=settings, clock=clock),
            get_gateway: lambda: gateway,
            get_secrets: lambda: ssm,
        }
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def booked_order(client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """Response body of one successful booking."""
    response = client.post("/api/bookings", json=booking_payload())
    assert response.status_code == 201
    return response.json()
