"""Message Handlers — direct messages between buyers and sellers.

Invariants:
    - The receiver must exist; a user cannot message themselves
    - Only the receiver marks a message read
"""

import logging
from uuid import UUID

from datanest.core.access_gate import check_message_receiver
from datanest.core.conversations import counterpart_of
from datanest.core.errors import InputValidationError, ResourceNotFoundError
from datanest.core.repository_protocols import MarketplaceStore, MessageLike, UserLike
from datanest.schemas.messages import ConversationResponse, MessageCreate, MessageResponse
from datanest.schemas.users import UserSummary

logger = logging.getLogger(__name__)


class MessageHandlers:

    def __init__(self, store: MarketplaceStore):
        self.store = store

    async def send_message(self, sender: UserLike, body: MessageCreate) -> MessageLike:
        if body.receiver_id == sender.id:
            raise InputValidationError("Cannot send a message to yourself", "receiver_id")
        if not await self.store.users.get(body.receiver_id):
            raise ResourceNotFoundError("User", str(body.receiver_id))
        if body.dataset_id and not await self.store.datasets.get(body.dataset_id):
            raise ResourceNotFoundError("Dataset", str(body.dataset_id))
        if body.request_id and not await self.store.requests.get(body.request_id):
            raise ResourceNotFoundError("DatasetRequest", str(body.request_id))

        message = await self.store.messages.create({
            **body.model_dump(), "sender_id": sender.id,
        })
        await self.store.commit()
        logger.info(
            "Message sent",
            extra={"message_id": message.id, "user_id": sender.id},
        )
        return message

    async def list_conversations(self, user: UserLike) -> list[ConversationResponse]:
        latest = await self.store.messages.list_conversations(user.id)
        others = await self.store.users.get_many(
            {counterpart_of(m, user.id) for m in latest},
        )
        conversations = []
        for m in latest:
            other = others.get(counterpart_of(m, user.id))
            conversations.append(ConversationResponse(
                other_user=(
                    UserSummary.model_validate(other, from_attributes=True)
                    if other else None
                ),
                last_message=MessageResponse.model_validate(m, from_attributes=True),
            ))
        return conversations

    async def get_thread(self, user: UserLike, other_user_id: UUID) -> list[MessageLike]:
        return await self.store.messages.list_between(user.id, other_user_id)

    async def mark_read(self, user: UserLike, message_id: UUID) -> MessageLike:
        message = await self.store.messages.get(message_id)
        if not message:
            raise ResourceNotFoundError("Message", str(message_id))
        error = check_message_receiver(user, message)
        if error:
            raise error
        if not message.is_read:
            await self.store.messages.mark_read(message.id)
            await self.store.commit()
        return message
