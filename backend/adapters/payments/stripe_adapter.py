"""
Stripe payment adapter for booking payments.

Talks to the Stripe REST API directly over httpx: payment intents for
checkout, refunds for cancellations, and signed webhook verification.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Seconds a webhook timestamp may lag behind the server clock
DEFAULT_WEBHOOK_TOLERANCE = 300

# Currencies Stripe expects in whole units rather than cents
ZERO_DECIMAL_CURRENCIES = {"jpy", "krw", "vnd", "clp", "pyg", "xaf", "xof", "ugx"}


# Custom Exceptions
class StripeError(Exception):
    """Base exception for Stripe adapter errors."""


class StripeAPIError(StripeError):
    """Raised when the Stripe API returns an error or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None, error_type: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class StripeWebhookError(StripeError):
    """Raised when webhook verification or parsing fails."""


class StripeAuthError(StripeError):
    """Raised when the secret key is missing."""


def to_minor_units(amount: float, currency: str) -> int:
    """Convert a decimal amount to Stripe's smallest currency unit (satang for THB)."""
    value = Decimal(str(amount))
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        value *= 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> float:
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return float(amount)
    return amount / 100


@dataclass
class PaymentIntent:
    """The subset of a Stripe PaymentIntent the booking flow needs."""

    id: str
    client_secret: str | None
    amount: int
    currency: str
    status: str
    metadata: dict[str, str]

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PaymentIntent":
        return cls(
            id=data["id"],
            client_secret=data.get("client_secret"),
            amount=data.get("amount", 0),
            currency=data.get("currency", ""),
            status=data.get("status", ""),
            metadata=data.get("metadata") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "metadata": self.metadata,
        }


@dataclass
class WebhookEvent:
    """Stripe webhook event data."""

    id: str
    type: str  # payment_intent.succeeded, payment_intent.payment_failed, ...
    object_id: str | None
    metadata: dict[str, str]
    data: dict[str, Any]

    @classmethod
    def from_webhook_payload(cls, payload: dict[str, Any]) -> "WebhookEvent":
        """
        Raises:
            StripeWebhookError: If ``data``, ``data.object`` or its metadata is not an object
        """
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise StripeWebhookError("Webhook data must be an object")
        obj = data.get("object") or {}
        if not isinstance(obj, dict):
            raise StripeWebhookError("Webhook data.object must be an object")
        metadata = obj.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise StripeWebhookError("Webhook metadata must be an object")
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            object_id=obj.get("id"),
            metadata=metadata,
            data=obj,
        )


def _flatten_form(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested dicts into Stripe's bracketed form keys (metadata[booking_id]=...)."""
    flat: dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}[{key}]" if prefix else key
        if value is None:
            continue
        if isinstance(value, dict):
            flat.update(_flatten_form(value, full_key))
        elif isinstance(value, bool):
            flat[full_key] = "true" if value else "false"
        else:
            flat[full_key] = str(value)
    return flat


class StripeAdapter:
    """
    Stripe API adapter for one-off booking payments.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        api_base_url: str | None = None,
    ):
        """
        Initialize Stripe adapter.

        Args:
            secret_key: Stripe secret key (defaults to settings)
            webhook_secret: Webhook signing secret (defaults to settings)
            api_base_url: Override of the API root, mostly for tests
        """
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.api_base_url = (api_base_url or settings.stripe_api_base_url).rstrip("/")

        if not self.secret_key:
            logger.warning("Stripe secret key not configured. Set STRIPE_SECRET_KEY in settings.")

    def _get_headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        if not self.secret_key:
            raise StripeAuthError("Stripe secret key not configured. Set STRIPE_SECRET_KEY in settings.")

        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """
        Make HTTP request to the Stripe API.

        Raises:
            StripeAPIError: If the request fails or Stripe returns an error
        """
        url = f"{self.api_base_url}/{endpoint}"
        headers = self._get_headers(idempotency_key)

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                logger.info("Making %s request to %s", method, endpoint)

                if method == "GET":
                    response = await client.get(url, headers=headers)
                elif method == "POST":
                    response = await client.post(url, headers=headers, data=_flatten_form(data or {}))
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")

                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            error_detail = str(e)
            error_type = None
            try:
                error = e.response.json().get("error", {})
                error_detail = error.get("message") or error_detail
                error_type = error.get("type")
            except ValueError:
                pass

            logger.error("Stripe API error: %s", error_detail)
            raise StripeAPIError(
                f"API request failed: {error_detail}",
                status_code=e.response.status_code,
                error_type=error_type,
            )
        except httpx.RequestError as e:
            logger.error("HTTP request error: %s", e)
            raise StripeAPIError(f"Request failed: {e}")

    async def create_payment_intent(
        self,
        amount: float,
        currency: str | None = None,
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntent:
        """
        Create a PaymentIntent for ``amount`` in major units.

        Args:
            amount: Amount to charge, e.g. 1500.50 THB
            currency: ISO currency code (defaults to settings.payment_currency)
            metadata: Copied onto the intent and echoed back in webhooks
            idempotency_key: Replays return the original intent
        """
        currency = (currency or settings.payment_currency).lower()
        response = await self._make_request(
            "POST",
            "payment_intents",
            {
                "amount": to_minor_units(amount, currency),
                "currency": currency,
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata or {},
            },
            idempotency_key=idempotency_key,
        )
        return PaymentIntent.from_api_response(response)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        response = await self._make_request("GET", f"payment_intents/{payment_intent_id}")
        return PaymentIntent.from_api_response(response)

    async def create_refund(self, payment_intent_id: str, amount: float | None = None) -> dict[str, Any]:
        """Refund a payment intent in full, or partially when ``amount`` is given."""
        data: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount is not None:
            data["amount"] = to_minor_units(amount, settings.payment_currency)
        return await self._make_request("POST", "refunds", data)

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature_header: str | None,
        tolerance: int = DEFAULT_WEBHOOK_TOLERANCE,
        now: float | None = None,
    ) -> bool:
        """
        Verify a ``Stripe-Signature`` header (``t=<ts>,v1=<hex>[,v1=...]``).

        The signed message is ``"{t}.{payload}"`` under HMAC-SHA256. Any
        matching ``v1`` entry passes, provided the timestamp is within
        ``tolerance`` seconds of ``now``.

        Raises:
            StripeWebhookError: If the webhook secret is not configured
        """
        if not self.webhook_secret:
            raise StripeWebhookError("Webhook secret not configured. Set STRIPE_WEBHOOK_SECRET in settings.")
        if not signature_header:
            return False

        timestamp = None
        signatures = []
        for part in signature_header.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                signatures.append(value)

        if not timestamp or not signatures:
            return False
        try:
            ts = int(timestamp)
        except ValueError:
            return False

        current = time.time() if now is None else now
        if tolerance and abs(current - ts) > tolerance:
            logger.warning("Webhook timestamp outside tolerance")
            return False

        expected = hmac.new(
            key=self.webhook_secret.encode("utf-8"),
            msg=f"{timestamp}.".encode("utf-8") + payload,
            digestmod=hashlib.sha256,
        ).hexdigest()

        is_valid = any(hmac.compare_digest(expected, sig) for sig in signatures)
        if not is_valid:
            logger.warning("Webhook signature verification failed")
        return is_valid

    def parse_webhook_event(self, payload: dict[str, Any]) -> WebhookEvent:
        if not isinstance(payload, dict) or "type" not in payload:
            raise StripeWebhookError("Webhook payload has no event type")
        event = WebhookEvent.from_webhook_payload(payload)
        logger.info("Parsed webhook event: %s", event.type)
        return event


def create_stripe_adapter(
    secret_key: str | None = None,
    webhook_secret: str | None = None,
) -> StripeAdapter:
    """Create a Stripe adapter instance (arguments default to settings)."""
    return StripeAdapter(secret_key=secret_key, webhook_secret=webhook_secret)


def sign_webhook_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a ``Stripe-Signature`` header value; used by tests and local tooling."""
    ts = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=f"{ts}.".encode("utf-8") + payload,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"
