"""Contract tests for POST /api/bookings.

Test categories:
- Success response (201)
- Request validation (400)
- Error body shape
"""

from typing import Any, Callable
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking_core.models.errors import GenerationExhausted
from booking_core.services.booking_service import BookingService
from booking_core.services.dynamodb import DynamoDBService
from booking_core.services.numbering import ORDER_NUMBER_PATTERN

ERROR_FIELDS = {"success", "error", "error_code", "recovery", "details"}


class TestCreateBookingSuccess:
    def test_returns_identifiers(self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> None:
        response = client.post("/api/bookings", json=booking_payload())

        assert response.status_code == HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert ORDER_NUMBER_PATTERN.match(body["orderNumber"])
        assert body["orderId"]
        assert body["partyId"]

    def test_persists_order(
        self, client: TestClient, db: DynamoDBService, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        body = client.post("/api/bookings", json=booking_payload()).json()

        order = db.get_item("orders", {"order_id": body["orderId"]})
        assert order["status"] == "new"
        assert order["order_number"] == body["orderNumber"]

    def test_confirmation_failure_still_201(
        self, client: TestClient, notifier: MagicMock, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        notifier.send_booking_confirmation.side_effect = RuntimeError("SES down")

        response = client.post("/api/bookings", json=booking_payload())

        assert response.status_code == HTTP_201_CREATED

    def test_correlation_id_echoed(self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> None:
        response = client.post(
            "/api/bookings", json=booking_payload(), headers={"X-Correlation-ID": "corr-123"}
        )
        assert response.headers["X-Correlation-ID"] == "corr-123"


class TestCreateBookingValidation:
    def test_missing_contact(self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> None:
        payload = booking_payload()
        del payload["contact"]

        response = client.post("/api/bookings", json=payload)

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert set(body) == ERROR_FIELDS
        assert body["success"] is False
        assert body["error"] == "Missing required fields"
        assert body["error_code"] == "ERR_VALIDATION"

    def test_no_pricing_source(self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> None:
        response = client.post("/api/bookings", json=booking_payload(packageId=None, activityIds=[]))

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_VALIDATION"

    def test_malformed_field(self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]) -> None:
        payload = booking_payload()
        payload["partyDetails"]["guestCount"] = "lots"

        response = client.post("/api/bookings", json=payload)

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "Request validation failed"
        assert "partyDetails.guestCount" in body["details"]

    def test_nothing_written_on_rejection(
        self, client: TestClient, db: DynamoDBService, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        client.post("/api/bookings", json=booking_payload(packageId=None, activityIds=[]))
        assert db._get_table("orders").scan()["Items"] == []


class TestCreateBookingFailures:
    def test_generation_exhausted_is_500(
        self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        with patch.object(BookingService, "create_booking", side_effect=GenerationExhausted()):
            response = client.post("/api/bookings", json=booking_payload())

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "ERR_GENERATION_EXHAUSTED"

    def test_datastore_failure_is_503(
        self, client: TestClient, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        error = ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "TransactWriteItems")
        with patch.object(BookingService, "create_booking", side_effect=error):
            response = client.post("/api/bookings", json=booking_payload())

        assert response.status_code == HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error_code"] == "ERR_DATASTORE"
