"""Contract tests for POST /api/webhooks/stripe.

Signatures are computed locally with the test webhook secret and verified
by the real ``stripe.WebhookSignature`` check.

Test categories:
- Signature verification (400)
- Event processing (200)
- Idempotency
"""

import hashlib
import hmac
import json
import time
from typing import Any, Callable
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from starlette.status import HTTP_200_OK, HTTP_400_BAD_REQUEST, HTTP_503_SERVICE_UNAVAILABLE

from booking_core.services.dynamodb import DynamoDBService
from booking_core.services.ssm_service import SSMServiceError

TEST_WEBHOOK_SECRET = "whsec_test_secret123"

WEBHOOK_URL = "/api/webhooks/stripe"


def _create_stripe_signature(payload: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    timestamp = str(int(time.time()))
    signed_payload = f"{timestamp}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def _post(client: TestClient, event: dict[str, Any], secret: str = TEST_WEBHOOK_SECRET):
    payload = json.dumps(event).encode()
    return client.post(
        WEBHOOK_URL,
        content=payload,
        headers={"Stripe-Signature": _create_stripe_signature(payload, secret), "Content-Type": "application/json"},
    )


class TestSignature:
    def test_missing_header(self, client: TestClient) -> None:
        response = client.post(WEBHOOK_URL, content=b"{}")

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_STRIPE_001"

    def test_invalid_signature(self, client: TestClient, checkout_event: Callable[..., dict[str, Any]]) -> None:
        response = _post(client, checkout_event("evt_1", "order"), secret="whsec_wrong")

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_STRIPE_001"

    def test_rejected_event_not_recorded(
        self, client: TestClient, db: DynamoDBService, checkout_event: Callable[..., dict[str, Any]]
    ) -> None:
        _post(client, checkout_event("evt_1", "order"), secret="whsec_wrong")
        assert db.get_item("stripe-webhook-events", {"event_id": "evt_1"}) is None

    def test_secret_unavailable_is_503(
        self, client: TestClient, ssm: MagicMock, checkout_event: Callable[..., dict[str, Any]]
    ) -> None:
        ssm.get_secret.side_effect = SSMServiceError("SSM parameter not found")

        response = _post(client, checkout_event("evt_1", "order"))

        assert response.status_code == HTTP_503_SERVICE_UNAVAILABLE


class TestProcessing:
    def test_deposit_applied(
        self,
        client: TestClient,
        db: DynamoDBService,
        booked_order: dict[str, Any],
        checkout_event: Callable[..., dict[str, Any]],
    ) -> None:
        response = _post(client, checkout_event("evt_deposit", booked_order["orderId"]))

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body == {
            "received": True,
            "event_id": "evt_deposit",
            "event_type": "checkout.session.completed",
            "processing_result": "applied",
            "message": "applied",
        }
        order = db.get_item("orders", {"order_id": booked_order["orderId"]})
        assert order["status"] == "confirmed"

    def test_duplicate_acknowledged(
        self, client: TestClient, booked_order: dict[str, Any], checkout_event: Callable[..., dict[str, Any]]
    ) -> None:
        event = checkout_event("evt_deposit", booked_order["orderId"])
        _post(client, event)

        response = _post(client, event)

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "duplicate"

    def test_unhandled_event_acknowledged(self, client: TestClient) -> None:
        event = {"id": "evt_other", "type": "payment_intent.created", "data": {"object": {"id": "pi_1"}}}

        response = _post(client, event)

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "skipped"

    def test_out_of_order_balance_deferred(
        self, client: TestClient, booked_order: dict[str, Any], checkout_event: Callable[..., dict[str, Any]]
    ) -> None:
        event = checkout_event(
            "evt_balance", booked_order["orderId"], payment_type="full_payment", amount_total=315000
        )

        response = _post(client, event)

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "deferred"
