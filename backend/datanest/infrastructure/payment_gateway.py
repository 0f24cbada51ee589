"""Resilient Stripe Gateway — PaymentIntent create/cancel with retry, backoff, and error mapping.

Invariants:
    - Rate limits and connection errors: retried with exponential backoff + jitter
    - Invalid requests and declined cards: PaymentRejectedError (402), no retry
    - Every other failure: PaymentGatewayError (503); callers never see stripe types
    - Missing API key fails the call, never startup

Design Decisions:
    - The stripe SDK is synchronous: calls run in a worker thread so the event loop
      keeps serving other requests
    - Amount arrives in integer cents; rounding happens in core (to_cents)
"""

import asyncio
import logging
import random
from typing import Any, Callable

import stripe

from datanest.core.errors import ErrorContext, PaymentGatewayError, PaymentRejectedError
from datanest.core.repository_protocols import PaymentIntent

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    """PaymentGateway backed by Stripe PaymentIntents."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: int = 30,
    ):
        self.api_key = api_key
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.timeout_seconds = timeout_seconds

    async def create_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str],
        context: ErrorContext | None = None,
    ) -> PaymentIntent:
        intent = await self._call(
            stripe.PaymentIntent.create,
            context,
            amount=amount_cents,
            currency=currency,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )
        logger.info("Stripe PaymentIntent created")
        return PaymentIntent(ref=intent["id"], client_secret=intent["client_secret"])

    async def cancel_intent(self, ref: str, context: ErrorContext | None = None) -> None:
        """Void an unpaid intent so it can no longer be charged."""
        await self._call(stripe.PaymentIntent.cancel, context, ref)
        logger.info(f"Stripe PaymentIntent {ref} cancelled")

    async def _call(
        self, method: Callable[..., Any], context: ErrorContext | None, *args, **kwargs,
    ) -> Any:
        """Run one SDK call with retry on transient failures."""
        if not self.api_key:
            raise PaymentGatewayError(
                "Payment gateway is not configured", "not_configured",
                context=context,
            )
        for attempt in range(self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(method, *args, api_key=self.api_key, **kwargs),
                    timeout=self.timeout_seconds,
                )

            except stripe.RateLimitError as e:
                await self._handle_transient_error(e, attempt, "rate_limit", context)

            except stripe.APIConnectionError as e:
                await self._handle_transient_error(
                    e, attempt, "connection_error", context,
                )

            except asyncio.TimeoutError:
                raise PaymentGatewayError(
                    "Gateway timeout", "timeout", context=context,
                )

            except (stripe.InvalidRequestError, stripe.CardError) as e:
                raise PaymentRejectedError(
                    e.user_message or str(e), context=context,
                )

            except stripe.StripeError as e:
                raise PaymentGatewayError(
                    e.user_message or str(e), "api_error", context=context,
                )

        # max_retries < 0 leaves the loop without a call
        raise PaymentGatewayError("No attempt made", "unknown", context=context)

    async def _handle_transient_error(
        self,
        e: Exception,
        attempt: int,
        error_type: str,
        context: ErrorContext | None,
    ) -> None:
        """Retry after backoff, or raise once retries are exhausted."""
        if attempt >= self.max_retries:
            raise PaymentGatewayError(
                f"Transient failure after {self.max_retries} retries: {e}",
                error_type,
                retry_after_ms=self._backoff(attempt),
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Stripe {error_type}, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter, in ms."""
        delay = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))
