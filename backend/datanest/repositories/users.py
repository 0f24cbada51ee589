"""User repository — registration, lookups and ledger counters."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.models.user import User


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlUserRepository:
    """UserRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> User:
        user = User(**{**data, "email": data["email"].strip().lower()})
        self.db.add(user)
        await self.db.flush()
        return user

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower()),
        )
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: set[uuid.UUID]) -> dict[uuid.UUID, User]:
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(User).where(User.id.in_(user_ids)),
        )
        return {u.id: u for u in result.scalars().all()}

    async def increment_total_datasets(self, user_id: uuid.UUID) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_datasets=User.total_datasets + 1, updated_at=_now()),
        )

    async def increment_total_purchases(self, user_id: uuid.UUID) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_purchases=User.total_purchases + 1, updated_at=_now()),
        )

    async def add_earnings(self, user_id: uuid.UUID, amount: Decimal) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_earnings=User.total_earnings + amount, updated_at=_now()),
        )
