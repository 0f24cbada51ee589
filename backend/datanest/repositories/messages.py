"""Message repository — threads oldest-first, inbox newest-first."""

import uuid

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.core.conversations import latest_per_counterpart
from datanest.models.message import Message


class SqlMessageRepository:
    """MessageRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Message:
        message = Message(**data, is_read=False)
        self.db.add(message)
        await self.db.flush()
        return message

    async def get(self, message_id: uuid.UUID) -> Message | None:
        return await self.db.get(Message, message_id)

    async def list_between(
        self, user_a: uuid.UUID, user_b: uuid.UUID,
    ) -> list[Message]:
        """Chat thread, oldest first."""
        result = await self.db.execute(
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                    and_(Message.sender_id == user_b, Message.receiver_id == user_a),
                ),
            )
            .order_by(Message.created_at.asc()),
        )
        return list(result.scalars().all())

    async def list_conversations(self, user_id: uuid.UUID) -> list[Message]:
        """Latest message per counterpart, newest first."""
        result = await self.db.execute(
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc()),
        )
        return latest_per_counterpart(result.scalars().all(), user_id)

    async def mark_read(self, message_id: uuid.UUID) -> None:
        await self.db.execute(
            update(Message).where(Message.id == message_id).values(is_read=True),
        )
