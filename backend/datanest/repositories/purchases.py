"""Purchase repository — payment correlation lookups and the status CAS."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.core.domain_types import PurchaseStatus
from datanest.models.purchase import Purchase


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlPurchaseRepository:
    """PurchaseRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Purchase:
        purchase = Purchase(**data, status=PurchaseStatus.PENDING.value)
        self.db.add(purchase)
        await self.db.flush()
        return purchase

    async def get(self, purchase_id: uuid.UUID) -> Purchase | None:
        return await self.db.get(Purchase, purchase_id)

    async def get_by_ref(
        self, buyer_id: uuid.UUID, payment_ref: str,
    ) -> Purchase | None:
        """Scoped to the buyer: another user's ref behaves as not found."""
        result = await self.db.execute(
            select(Purchase).where(
                Purchase.buyer_id == buyer_id,
                Purchase.external_payment_ref == payment_ref,
            ),
        )
        return result.scalar_one_or_none()

    async def list_by_buyer(self, buyer_id: uuid.UUID) -> list[Purchase]:
        result = await self.db.execute(
            select(Purchase)
            .where(Purchase.buyer_id == buyer_id)
            .order_by(Purchase.purchased_at.desc()),
        )
        return list(result.scalars().all())

    async def list_by_dataset(self, dataset_id: uuid.UUID) -> list[Purchase]:
        result = await self.db.execute(
            select(Purchase)
            .where(Purchase.dataset_id == dataset_id)
            .order_by(Purchase.purchased_at.desc()),
        )
        return list(result.scalars().all())

    async def list_for_buyer_and_dataset(
        self, buyer_id: uuid.UUID, dataset_id: uuid.UUID,
    ) -> list[Purchase]:
        result = await self.db.execute(
            select(Purchase)
            .where(
                Purchase.buyer_id == buyer_id,
                Purchase.dataset_id == dataset_id,
            )
            .order_by(Purchase.purchased_at.desc()),
        )
        return list(result.scalars().all())

    async def has_purchased(self, buyer_id: uuid.UUID, dataset_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(Purchase.id)
            .where(
                Purchase.buyer_id == buyer_id,
                Purchase.dataset_id == dataset_id,
                Purchase.status == PurchaseStatus.COMPLETED.value,
            )
            .limit(1),
        )
        return result.first() is not None

    async def transition_status(
        self, purchase_id: uuid.UUID, expected: str, target: str,
    ) -> bool:
        result = await self.db.execute(
            update(Purchase)
            .where(Purchase.id == purchase_id, Purchase.status == expected)
            .values(status=target, updated_at=_now()),
        )
        return result.rowcount == 1
