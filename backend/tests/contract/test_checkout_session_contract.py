"""Contract tests for POST /api/payments/checkout.

Test categories:
- Success response (201)
- Request validation (400)
- Not found (404)
- Order state conflicts (409)
- Gateway failures (503)
"""

from typing import Any
from unittest.mock import MagicMock

import stripe
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking_core.services.dynamodb import DynamoDBService

CHECKOUT_URL = "/api/payments/checkout"


class TestCheckoutSuccess:
    def test_deposit_session(
        self, client: TestClient, booked_order: dict[str, Any], stripe_client: MagicMock
    ) -> None:
        response = client.post(CHECKOUT_URL, json={"orderId": booked_order["orderId"], "type": "deposit"})

        assert response.status_code == HTTP_201_CREATED
        body = response.json()
        assert body["sessionId"] == "cs_test_001"
        assert body["url"] == "https://checkout.stripe.com/c/pay/cs_test_001"
        assert body["amount"] == 135000
        assert body["type"] == "deposit"
        assert body["expiresAt"]

        params = stripe_client.checkout.sessions.create.call_args.kwargs["params"]
        assert params["metadata"] == {"orderId": booked_order["orderId"], "type": "deposit"}

    def test_type_defaults_to_deposit(self, client: TestClient, booked_order: dict[str, Any]) -> None:
        response = client.post(CHECKOUT_URL, json={"orderId": booked_order["orderId"]})

        assert response.status_code == HTTP_201_CREATED
        assert response.json()["type"] == "deposit"

    def test_order_unchanged(
        self, client: TestClient, db: DynamoDBService, booked_order: dict[str, Any]
    ) -> None:
        client.post(CHECKOUT_URL, json={"orderId": booked_order["orderId"]})

        order = db.get_item("orders", {"order_id": booked_order["orderId"]})
        assert order["status"] == "new"
        assert order["version"] == 0


class TestCheckoutErrors:
    def test_missing_order_id(self, client: TestClient) -> None:
        response = client.post(CHECKOUT_URL, json={"type": "deposit"})
        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_unknown_type(self, client: TestClient, booked_order: dict[str, Any]) -> None:
        response = client.post(CHECKOUT_URL, json={"orderId": booked_order["orderId"], "type": "tip"})
        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_unknown_order(self, client: TestClient) -> None:
        response = client.post(CHECKOUT_URL, json={"orderId": "no-such-order"})

        assert response.status_code == HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "ERR_NOT_FOUND"

    def test_balance_before_deposit_conflicts(self, client: TestClient, booked_order: dict[str, Any]) -> None:
        response = client.post(
            CHECKOUT_URL, json={"orderId": booked_order["orderId"], "type": "full_payment"}
        )

        assert response.status_code == HTTP_409_CONFLICT
        assert response.json()["error_code"] == "ERR_INVALID_STATE"

    def test_stripe_unavailable(
        self, client: TestClient, booked_order: dict[str, Any], stripe_client: MagicMock
    ) -> None:
        stripe_client.checkout.sessions.create.side_effect = stripe.APIConnectionError("timed out")

        response = client.post(CHECKOUT_URL, json={"orderId": booked_order["orderId"]})

        assert response.status_code == HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error_code"] == "ERR_GATEWAY"
