"""
Unit tests for the Stripe payment adapter.

Tests:
- Minor-unit conversion
- Form flattening for nested parameters
- Webhook signature verification (tolerance, multiple v1 entries)
- Webhook payload parsing
- API error mapping
"""

import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from adapters.payments.stripe_adapter import (
    StripeAdapter,
    StripeAPIError,
    StripeAuthError,
    StripeWebhookError,
    _flatten_form,
    from_minor_units,
    sign_webhook_payload,
    to_minor_units,
)

SECRET = "whsec_unit_test"
NOW = 1_760_000_000


@pytest.fixture
def adapter():
    return StripeAdapter(secret_key="sk_test_abc", webhook_secret=SECRET)


class TestMinorUnits:
    def test_thb_uses_satang(self):
        assert to_minor_units(1500.50, "thb") == 150050
        assert to_minor_units(0.015, "THB") == 2

    def test_zero_decimal_currency(self):
        assert to_minor_units(1200, "jpy") == 1200
        assert from_minor_units(1200, "jpy") == 1200.0

    def test_from_minor_units(self):
        assert from_minor_units(150050, "thb") == 1500.5


class TestFlattenForm:
    def test_nested_keys_use_brackets(self):
        flat = _flatten_form(
            {
                "amount": 100,
                "automatic_payment_methods": {"enabled": True},
                "metadata": {"booking_id": "b1"},
                "description": None,
            }
        )
        assert flat == {
            "amount": "100",
            "automatic_payment_methods[enabled]": "true",
            "metadata[booking_id]": "b1",
        }


class TestWebhookSignature:
    def test_valid_signature(self, adapter):
        payload = b'{"type": "payment_intent.succeeded"}'
        header = sign_webhook_payload(payload, SECRET, timestamp=NOW)
        assert adapter.verify_webhook_signature(payload, header, now=NOW + 10) is True

    def test_tampered_payload(self, adapter):
        header = sign_webhook_payload(b'{"a": 1}', SECRET, timestamp=NOW)
        assert adapter.verify_webhook_signature(b'{"a": 2}', header, now=NOW) is False

    def test_wrong_secret(self, adapter):
        payload = b"{}"
        header = sign_webhook_payload(payload, "whsec_other", timestamp=NOW)
        assert adapter.verify_webhook_signature(payload, header, now=NOW) is False

    def test_stale_timestamp(self, adapter):
        payload = b"{}"
        header = sign_webhook_payload(payload, SECRET, timestamp=NOW)
        assert adapter.verify_webhook_signature(payload, header, now=NOW + 301) is False

    def test_any_v1_entry_may_match(self, adapter):
        payload = b"{}"
        good = sign_webhook_payload(payload, SECRET, timestamp=NOW).split("v1=")[1]
        header = f"t={NOW},v1=deadbeef,v1={good}"
        assert adapter.verify_webhook_signature(payload, header, now=NOW) is True

    @pytest.mark.parametrize("header", [None, "", "v1=abc", "t=notanumber,v1=abc", f"t={NOW}"])
    def test_malformed_header(self, adapter, header):
        assert adapter.verify_webhook_signature(b"{}", header, now=NOW) is False

    def test_missing_secret_raises(self):
        adapter = StripeAdapter(secret_key="sk_test_abc")
        adapter.webhook_secret = None
        with pytest.raises(StripeWebhookError):
            adapter.verify_webhook_signature(b"{}", "t=1,v1=abc")


class TestParseWebhookEvent:
    def test_parses_payment_intent(self, adapter):
        event = adapter.parse_webhook_event(
            {
                "id": "evt_1",
                "type": "payment_intent.succeeded",
                "data": {"object": {"id": "pi_1", "metadata": {"booking_id": "b1"}}},
            }
        )
        assert event.type == "payment_intent.succeeded"
        assert event.object_id == "pi_1"
        assert event.metadata == {"booking_id": "b1"}

    @pytest.mark.parametrize("payload", [{}, [], "text", {"data": {}}])
    def test_rejects_payload_without_type(self, adapter, payload):
        with pytest.raises(StripeWebhookError):
            adapter.parse_webhook_event(payload)

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"object": ["pi_1"]},
            {"object": {"id": "pi_1", "metadata": "booking_id=b1"}},
        ],
    )
    def test_rejects_non_object_data(self, adapter, data):
        with pytest.raises(StripeWebhookError):
            adapter.parse_webhook_event({"id": "evt_1", "type": "payment_intent.succeeded", "data": data})


def _mock_client(response: Mock) -> AsyncMock:
    client = AsyncMock()
    client.post.return_value = response
    client.get.return_value = response
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    return client


class TestApiCalls:
    async def test_create_payment_intent(self, adapter):
        response = Mock()
        response.raise_for_status = Mock()
        response.json.return_value = {
            "id": "pi_123",
            "client_secret": "pi_123_secret",
            "amount": 350000,
            "currency": "thb",
            "status": "requires_payment_method",
            "metadata": {"booking_id": "b1"},
        }
        client = _mock_client(response)

        with patch("adapters.payments.stripe_adapter.httpx.AsyncClient", return_value=client):
            intent = await adapter.create_payment_intent(
                3500, metadata={"booking_id": "b1"}, idempotency_key="booking-b1"
            )

        assert intent.id == "pi_123"
        assert intent.client_secret == "pi_123_secret"
        _, kwargs = client.post.call_args
        assert kwargs["data"]["amount"] == "350000"
        assert kwargs["data"]["metadata[booking_id]"] == "b1"
        assert kwargs["headers"]["Idempotency-Key"] == "booking-b1"

    async def test_api_error_is_mapped(self, adapter):
        request = httpx.Request("POST", "https://api.stripe.com/v1/payment_intents")
        error_response = httpx.Response(
            402,
            request=request,
            content=json.dumps({"error": {"message": "Card declined", "type": "card_error"}}),
        )
        response = Mock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "402", request=request, response=error_response
        )
        client = _mock_client(response)

        with patch("adapters.payments.stripe_adapter.httpx.AsyncClient", return_value=client):
            with pytest.raises(StripeAPIError) as exc_info:
                await adapter.create_payment_intent(100)

        assert exc_info.value.status_code == 402
        assert exc_info.value.error_type == "card_error"
        assert "Card declined" in str(exc_info.value)

    async def test_missing_key_raises_auth_error(self):
        adapter = StripeAdapter(secret_key="sk_test_abc")
        adapter.secret_key = None
        with pytest.raises(StripeAuthError):
            await adapter.create_payment_intent(100)
