"""Payment adapters for booking checkout."""

from .stripe_adapter import (
    PaymentIntent,
    StripeAdapter,
    StripeAPIError,
    StripeAuthError,
    StripeError,
    StripeWebhookError,
    WebhookEvent,
    create_stripe_adapter,
    sign_webhook_payload,
    to_minor_units,
)

__all__ = [
    "StripeAdapter",
    "PaymentIntent",
    "WebhookEvent",
    "StripeError",
    "StripeAPIError",
    "StripeWebhookError",
    "StripeAuthError",
    "create_stripe_adapter",
    "sign_webhook_payload",
    "to_minor_units",
]
