"""StripePaymentGateway — retry, backoff and error mapping around PaymentIntent create/cancel.

Tests cover:
    - Success maps id/client_secret to PaymentIntent; amount/currency/metadata forwarded
    - Missing API key -> PaymentGatewayError(not_configured), Stripe never called
    - Connection errors retried up to max_retries, then 503 with retry_after_ms
    - Invalid requests and card declines raised immediately as 402 PAYMENT_REJECTED
    - Other Stripe API errors raised immediately as 503 api_error
    - cancel_intent forwards the ref and key; a refused cancel is PAYMENT_REJECTED
    - Backoff stays within ±25% jitter and the max delay cap
"""

import pytest
import stripe

from datanest.core.errors import PaymentGatewayError, PaymentRejectedError
from datanest.infrastructure.payment_gateway import StripePaymentGateway


class _CreateRecorder:
    """Stand-in for stripe.PaymentIntent.create: raises queued errors, then succeeds."""

    def __init__(self, errors=()):
        self.errors = list(errors)
        self.calls: list[dict] = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.errors:
            raise self.errors.pop(0)
        return {"id": "pi_123", "client_secret": "pi_123_secret_abc"}


@pytest.fixture
def recorder(monkeypatch):
    def install(errors=()):
        rec = _CreateRecorder(errors)
        monkeypatch.setattr(stripe.PaymentIntent, "create", rec)
        return rec
    return install


def _gateway(**overrides) -> StripePaymentGateway:
    kwargs = {"api_key": "sk_test_x", "max_retries": 2, "base_delay_ms": 0}
    kwargs.update(overrides)
    return StripePaymentGateway(**kwargs)


async def test_create_intent_success(recorder):
    rec = recorder()

    intent = await _gateway().create_intent(1000, "usd", {"dataset_id": "d1"})

    assert intent.ref == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    call = rec.calls[0]
    assert call["amount"] == 1000
    assert call["currency"] == "usd"
    assert call["metadata"] == {"dataset_id": "d1"}
    assert call["api_key"] == "sk_test_x"


async def test_missing_key_never_calls_stripe(recorder):
    rec = recorder()

    with pytest.raises(PaymentGatewayError) as exc_info:
        await _gateway(api_key="").create_intent(1000, "usd", {})

    assert exc_info.value.gateway_error_type == "not_configured"
    assert exc_info.value.http_status == 503
    assert rec.calls == []


async def test_connection_error_retried_then_succeeds(recorder):
    rec = recorder([stripe.APIConnectionError("reset"), stripe.APIConnectionError("reset")])

    intent = await _gateway().create_intent(500, "usd", {})

    assert intent.ref == "pi_123"
    assert len(rec.calls) == 3


async def test_connection_error_exhausts_retries(recorder):
    rec = recorder([stripe.APIConnectionError("down")] * 3)

    with pytest.raises(PaymentGatewayError) as exc_info:
        await _gateway().create_intent(500, "usd", {})

    assert exc_info.value.gateway_error_type == "connection_error"
    assert exc_info.value.context.retry_after_ms is not None
    assert len(rec.calls) == 3


async def test_rate_limit_is_transient(recorder):
    rec = recorder([stripe.RateLimitError("slow down")])

    await _gateway().create_intent(500, "usd", {})

    assert len(rec.calls) == 2


async def test_invalid_request_not_retried(recorder):
    rec = recorder([stripe.InvalidRequestError("Amount must be positive", "amount")])

    with pytest.raises(PaymentRejectedError) as exc_info:
        await _gateway().create_intent(0, "usd", {})

    assert exc_info.value.code == "PAYMENT_REJECTED"
    assert exc_info.value.http_status == 402
    assert len(rec.calls) == 1


async def test_card_declined_is_rejected(recorder):
    rec = recorder([stripe.CardError("Your card was declined.", "source", "card_declined")])

    with pytest.raises(PaymentRejectedError):
        await _gateway().create_intent(500, "usd", {})

    assert len(rec.calls) == 1


async def test_stripe_api_error_is_unavailable(recorder):
    rec = recorder([stripe.APIError("Something went wrong on our end")])

    with pytest.raises(PaymentGatewayError) as exc_info:
        await _gateway().create_intent(500, "usd", {})

    assert exc_info.value.gateway_error_type == "api_error"
    assert exc_info.value.http_status == 503
    assert len(rec.calls) == 1


# ─── cancel ──────────────────────────────────────────────────────

class _CancelRecorder:
    """Stand-in for stripe.PaymentIntent.cancel."""

    def __init__(self, error=None):
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, ref, **kwargs):
        self.calls.append((ref, kwargs))
        if self.error:
            raise self.error
        return {"id": ref, "status": "canceled"}


async def test_cancel_intent_forwards_ref_and_key(monkeypatch):
    rec = _CancelRecorder()
    monkeypatch.setattr(stripe.PaymentIntent, "cancel", rec)

    await _gateway().cancel_intent("pi_old")

    assert rec.calls == [("pi_old", {"api_key": "sk_test_x"})]


async def test_cancel_of_succeeded_intent_is_rejected(monkeypatch):
    rec = _CancelRecorder(stripe.InvalidRequestError(
        "You cannot cancel this PaymentIntent because it has a status of succeeded.",
        None,
    ))
    monkeypatch.setattr(stripe.PaymentIntent, "cancel", rec)

    with pytest.raises(PaymentRejectedError):
        await _gateway().cancel_intent("pi_paid")

    assert len(rec.calls) == 1


def test_backoff_bounds():
    gateway = StripePaymentGateway("sk", base_delay_ms=1000, max_delay_ms=4000)
    for _ in range(20):
        assert 750 <= gateway._backoff(0) <= 1250
        assert 3000 <= gateway._backoff(5) <= 5000
