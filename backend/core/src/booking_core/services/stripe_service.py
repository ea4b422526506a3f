"""Payment gateway adapter over the Stripe API.

Two things cross this boundary: outgoing Checkout Session creation, and
incoming webhook payloads whose ``Stripe-Signature`` header must be checked
before anything is parsed. The API key and the webhook signing secret are
both loaded from SSM the first time they are needed.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from booking_core.config import Settings, get_settings

from .ssm_service import SSMService, SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)

SECRET_KEY_PARAMETER = "stripe/secret_key"
WEBHOOK_SECRET_PARAMETER = "stripe/webhook_secret"


class StripeServiceError(Exception):
    """A gateway call could not be completed.

    ``stripe_error_code`` carries Stripe's own code (``card_declined``,
    ``api_connection_error``...) when the failure came from the API.
    """

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class WebhookSignatureError(StripeServiceError):
    """The webhook body does not match its signature, or is not JSON."""


class StripeService:
    """Creates hosted checkout pages and authenticates webhook deliveries."""

    def __init__(
        self,
        settings: Settings | None = None,
        ssm: SSMService | None = None,
        client: StripeClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._ssm = ssm or get_ssm_service()
        self._client = client
        self._signing_secret: str | None = None

    @property
    def client(self) -> StripeClient:
        if self._client is not None:
            return self._client
        try:
            api_key = self._ssm.get_secret(SECRET_KEY_PARAMETER)
        except SSMServiceError as e:
            raise StripeServiceError(f"Failed to initialize Stripe client: {e}") from e
        timeout = self._settings.stripe_timeout_seconds
        self._client = StripeClient(api_key, http_client=stripe.RequestsClient(timeout=timeout))
        logger.info("Stripe client ready (%s, timeout %ss)", self._settings.environment, timeout)
        return self._client

    @property
    def signing_secret(self) -> str:
        if self._signing_secret is None:
            try:
                self._signing_secret = self._ssm.get_secret(WEBHOOK_SECRET_PARAMETER)
            except SSMServiceError as e:
                raise StripeServiceError(f"Webhook signing secret unavailable: {e}") from e
        return self._signing_secret

    def _checkout_params(
        self,
        *,
        metadata: dict[str, str],
        amount: int,
        product_name: str,
        description: str | None,
        customer_email: str | None,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
    ) -> dict[str, Any]:
        product: dict[str, Any] = {"name": product_name}
        if description:
            product["description"] = description
        line_item = {
            "quantity": 1,
            "price_data": {
                "currency": self._settings.currency,
                "unit_amount": amount,
                "product_data": product,
            },
        }
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [line_item],
            "metadata": metadata,
            # Refund and failure events only carry the PaymentIntent
            "payment_intent_data": {"metadata": metadata},
            "success_url": success_url,
            "cancel_url": cancel_url,
            "expires_at": int(expires_at.timestamp()),
        }
        if customer_email:
            params["customer_email"] = customer_email
        return params

    def create_checkout_session(
        self,
        *,
        order_id: str,
        payment_type: str,
        amount: int,
        product_name: str,
        description: str | None,
        customer_email: str | None,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Open a single-item Checkout Session for one payment of an order.

        Args:
            order_id: Order the payment settles; stored as ``orderId`` metadata.
            payment_type: ``deposit`` or ``full_payment``; stored as ``type``.
            amount: Charge in minor units of the configured currency.
            product_name: Line item title on the checkout page.
            description: Line item subtitle, omitted when empty.
            customer_email: Prefills the email field and receipt address.
            success_url: Redirect after payment; may contain ``{CHECKOUT_SESSION_ID}``.
            cancel_url: Redirect when the customer backs out.
            expires_at: When Stripe closes the session.
            idempotency_key: Replays within Stripe's window return the same session.

        Returns:
            ``session_id``, ``checkout_url`` and the ``expires_at`` Stripe accepted.

        Raises:
            StripeServiceError: Credentials are missing or the API call failed.
        """
        params = self._checkout_params(
            metadata={"orderId": order_id, "type": payment_type},
            amount=amount,
            product_name=product_name,
            description=description,
            customer_email=customer_email,
            success_url=success_url,
            cancel_url=cancel_url,
            expires_at=expires_at,
        )
        client = self.client
        logger.info("Opening %s checkout for order %s: %d", payment_type, order_id, amount)
        try:
            session = client.checkout.sessions.create(
                params=params,  # type: ignore[arg-type]
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            code = getattr(e, "code", None)
            logger.error("Checkout for order %s rejected by Stripe [%s]: %s", order_id, code, e)
            raise StripeServiceError(f"Failed to create checkout session: {e}", stripe_error_code=code) from e

        logger.info("Checkout session %s opened for order %s", session.id, order_id)
        return {
            "session_id": session.id,
            "checkout_url": session.url,
            "expires_at": datetime.fromtimestamp(session.expires_at, tz=timezone.utc),
        }

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Authenticate a webhook body and return the event it contains.

        The signature is checked against the raw bytes, so call this before
        any JSON parsing or re-encoding of the body.

        Raises:
            WebhookSignatureError: Bad signature, stale timestamp or non-JSON body.
            StripeServiceError: The signing secret could not be loaded.
        """
        secret = self.signing_secret
        try:
            stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature, secret)
            event: dict[str, Any] = json.loads(payload)
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning("Rejected webhook delivery: %s", e)
            raise WebhookSignatureError("Invalid webhook signature") from e
        except json.JSONDecodeError as e:
            raise WebhookSignatureError("Invalid webhook payload") from e

        logger.info("Accepted webhook delivery %s", event.get("id"))
        return event

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Hex SHA-256 of the raw body, stored alongside processed events."""
        return hashlib.sha256(payload).hexdigest()


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    return StripeService()
