"""Purchase Handlers — payment intent creation, confirmation, failure, purchase history.

Invariants:
    - Intent creation for one (buyer, dataset) pair is serialised by a keyed lock
    - Stale pending purchases are expired to failed before the duplicate check, and only
      after their gateway intent was cancelled; an intent the gateway will not cancel
      keeps its purchase pending (PURCHASE_PENDING)
    - Delisted datasets are not sold (DATASET_UNAVAILABLE)
    - A free dataset never reaches the gateway: its purchase completes on creation
    - Purchase.amount is the dataset price at intent time, never re-read later
    - Confirmation side effects (buyer total_purchases, seller total_earnings) apply
      only when this call wins the pending -> completed CAS; all in one commit
    - Re-confirming a completed purchase and re-failing a failed one are no-ops

Design Decisions:
    - Gateway is called inside the lock but before any row is written: a gateway
      failure leaves nothing behind
    - A lost CAS re-reads the row: losing to an identical confirmation is still success
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from datanest.core.domain_types import PurchaseStatus, to_cents, to_money
from datanest.core.enforce_purchase_lifecycle import (
    check_can_start_purchase, check_dataset_purchasable, find_stale_pending,
    is_already_completed, is_already_failed, validate_confirmation, validate_failure,
)
from datanest.core.errors import (
    ConflictError, ErrorContext, InvalidTransitionError, PaymentRejectedError,
    ResourceNotFoundError,
)
from datanest.core.repository_protocols import (
    MarketplaceStore, PaymentGateway, PurchaseLike, UserLike,
)
from datanest.schemas.datasets import DatasetResponse
from datanest.schemas.payments import PaymentIntentResponse, PurchaseWithDataset
from datanest.services.keyed_locks import KeyedLocks, purchase_intent_locks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleNotice:
    """What the seller is told after a confirmed sale."""
    seller_email: str
    seller_name: str
    dataset_title: str
    amount: Decimal


class PurchaseHandlers:
    """Purchase/payment lifecycle."""

    def __init__(
        self,
        store: MarketplaceStore,
        gateway: PaymentGateway,
        currency: str = "usd",
        pending_ttl: timedelta = timedelta(minutes=60),
        locks: KeyedLocks = purchase_intent_locks,
    ):
        self.store = store
        self.gateway = gateway
        self.currency = currency
        self.pending_ttl = pending_ttl
        self.locks = locks

    async def _get_own_purchase(self, buyer: UserLike, payment_ref: str) -> PurchaseLike:
        purchase = await self.store.purchases.get_by_ref(buyer.id, payment_ref)
        if not purchase:
            raise ResourceNotFoundError("Purchase", payment_ref)
        return purchase

    async def _expire_stale(self, purchases: list[PurchaseLike], now: datetime) -> None:
        """Cancel each stale intent at the gateway, then fail its purchase (one commit each)."""
        for stale in find_stale_pending(purchases, now, self.pending_ttl):
            stale_id, ref = stale.id, stale.external_payment_ref
            if ref:
                try:
                    await self.gateway.cancel_intent(ref)
                except PaymentRejectedError as e:
                    logger.warning(
                        f"Stale intent {ref} not cancellable, kept pending: {e.message}",
                        extra={"purchase_id": stale_id},
                    )
                    raise ConflictError(
                        "A payment for this dataset is already in progress",
                        "PURCHASE_PENDING",
                        ErrorContext(resource_type="Purchase", resource_id=str(stale_id)),
                    ) from e
            if await self.store.purchases.transition_status(
                stale_id, PurchaseStatus.PENDING.value, PurchaseStatus.FAILED.value,
            ):
                await self.store.commit()
                logger.info(
                    "Stale pending purchase expired",
                    extra={"purchase_id": stale_id},
                )

    async def create_payment_intent(
        self, buyer: UserLike, dataset_id: UUID,
    ) -> PaymentIntentResponse:
        dataset = await self.store.datasets.get(dataset_id)
        if not dataset:
            raise ResourceNotFoundError("Dataset", str(dataset_id))
        error = check_dataset_purchasable(dataset)
        if error:
            raise error
        buyer_id, seller_id = buyer.id, dataset.seller_id

        async with self.locks.hold((buyer_id, dataset_id)):
            now = datetime.now(timezone.utc)
            existing = await self.store.purchases.list_for_buyer_and_dataset(
                buyer_id, dataset_id,
            )
            await self._expire_stale(existing, now)
            error = check_can_start_purchase(existing, now, self.pending_ttl)
            if error:
                error.context.user_id = str(buyer_id)
                raise error

            amount = to_money(dataset.price)
            if amount == 0:
                return await self._grant_free(buyer_id, dataset_id, amount)

            intent = await self.gateway.create_intent(
                to_cents(amount),
                self.currency,
                {
                    "dataset_id": str(dataset_id),
                    "buyer_id": str(buyer_id),
                    "seller_id": str(seller_id),
                },
            )
            purchase = await self.store.purchases.create({
                "buyer_id": buyer_id,
                "dataset_id": dataset_id,
                "amount": amount,
                "external_payment_ref": intent.ref,
            })
            await self.store.commit()

        logger.info(
            "Payment intent created",
            extra={
                "purchase_id": purchase.id, "dataset_id": dataset_id,
                "user_id": buyer_id,
            },
        )
        return PaymentIntentResponse(
            client_secret=intent.client_secret, amount=amount, purchase_id=purchase.id,
        )

    async def _grant_free(
        self, buyer_id: UUID, dataset_id: UUID, amount: Decimal,
    ) -> PaymentIntentResponse:
        """Zero-price dataset: record a completed purchase without a gateway intent."""
        purchase = await self.store.purchases.create({
            "buyer_id": buyer_id,
            "dataset_id": dataset_id,
            "amount": amount,
            "external_payment_ref": None,
        })
        purchase_id = purchase.id
        await self.store.purchases.transition_status(
            purchase_id, PurchaseStatus.PENDING.value, PurchaseStatus.COMPLETED.value,
        )
        await self.store.users.increment_total_purchases(buyer_id)
        await self.store.commit()
        logger.info(
            "Free dataset claimed",
            extra={"purchase_id": purchase_id, "dataset_id": dataset_id, "user_id": buyer_id},
        )
        return PaymentIntentResponse(
            client_secret=None, amount=amount, purchase_id=purchase_id,
            status=PurchaseStatus.COMPLETED.value,
        )

    async def confirm_payment(
        self, buyer: UserLike, payment_ref: str,
    ) -> tuple[PurchaseLike, SaleNotice | None]:
        """Returns the purchase and, when this call completed it, the seller notice."""
        buyer_id = buyer.id
        purchase = await self._get_own_purchase(buyer, payment_ref)
        if is_already_completed(purchase):
            return purchase, None
        error = validate_confirmation(purchase)
        if error:
            raise error

        purchase_id, dataset_id, amount = purchase.id, purchase.dataset_id, purchase.amount
        won = await self.store.purchases.transition_status(
            purchase_id, PurchaseStatus.PENDING.value, PurchaseStatus.COMPLETED.value,
        )
        if not won:
            await self.store.rollback()
            return await self._resolve_lost_transition(
                purchase_id, PurchaseStatus.COMPLETED,
            ), None

        dataset = await self.store.datasets.get(dataset_id)
        await self.store.users.increment_total_purchases(buyer_id)
        seller = None
        if dataset:
            await self.store.users.add_earnings(dataset.seller_id, amount)
            seller = await self.store.users.get(dataset.seller_id)
        await self.store.commit()

        logger.info(
            "Purchase completed",
            extra={"purchase_id": purchase_id, "dataset_id": dataset_id, "user_id": buyer_id},
        )
        notice = None
        if dataset and seller:
            notice = SaleNotice(
                seller_email=seller.email, seller_name=seller.name,
                dataset_title=dataset.title, amount=amount,
            )
        return purchase, notice

    async def fail_payment(self, buyer: UserLike, payment_ref: str) -> PurchaseLike:
        purchase = await self._get_own_purchase(buyer, payment_ref)
        if is_already_failed(purchase):
            return purchase
        error = validate_failure(purchase)
        if error:
            raise error

        purchase_id = purchase.id
        if not await self.store.purchases.transition_status(
            purchase_id, PurchaseStatus.PENDING.value, PurchaseStatus.FAILED.value,
        ):
            await self.store.rollback()
            return await self._resolve_lost_transition(purchase_id, PurchaseStatus.FAILED)
        await self.store.commit()
        logger.info("Purchase failed", extra={"purchase_id": purchase_id})
        return purchase

    async def _resolve_lost_transition(
        self, purchase_id: UUID, target: PurchaseStatus,
    ) -> PurchaseLike:
        """Someone else moved the row first: same target is success, anything else Conflict."""
        current = await self.store.purchases.get(purchase_id)
        if current is not None and current.status == target:
            return current
        raise InvalidTransitionError(
            "Purchase",
            current.status if current is not None else "unknown",
            target.value,
            ErrorContext(resource_type="Purchase", resource_id=str(purchase_id)),
        )

    async def list_purchases(self, buyer: UserLike) -> list[PurchaseWithDataset]:
        purchases = await self.store.purchases.list_by_buyer(buyer.id)
        result = []
        for p in purchases:
            dataset = await self.store.datasets.get(p.dataset_id)
            result.append(
                PurchaseWithDataset.model_validate(p, from_attributes=True).model_copy(
                    update={
                        "dataset": DatasetResponse.model_validate(
                            dataset, from_attributes=True,
                        ) if dataset else None,
                    },
                ),
            )
        return result
