"""Message Routes — send, inbox, thread, mark read."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from datanest.api.deps import get_current_user, get_message_handlers
from datanest.models.user import User
from datanest.schemas.messages import ConversationResponse, MessageCreate, MessageResponse
from datanest.services.handle_messages import MessageHandlers

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageCreate,
    user: User = Depends(get_current_user),
    handlers: MessageHandlers = Depends(get_message_handlers),
):
    return await handlers.send_message(user, body)


# Registered before /{other_user_id} so the literal path wins
@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    user: User = Depends(get_current_user),
    handlers: MessageHandlers = Depends(get_message_handlers),
):
    return await handlers.list_conversations(user)


@router.get("/{other_user_id}", response_model=list[MessageResponse])
async def get_thread(
    other_user_id: UUID,
    user: User = Depends(get_current_user),
    handlers: MessageHandlers = Depends(get_message_handlers),
):
    """Both directions, oldest first."""
    return await handlers.get_thread(user, other_user_id)


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: UUID,
    user: User = Depends(get_current_user),
    handlers: MessageHandlers = Depends(get_message_handlers),
):
    return await handlers.mark_read(user, message_id)
