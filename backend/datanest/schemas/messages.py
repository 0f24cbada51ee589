"""Message Schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datanest.schemas.users import UserSummary


class MessageCreate(BaseModel):
    receiver_id: UUID
    content: str = Field(min_length=1, max_length=10_000)
    dataset_id: UUID | None = None
    request_id: UUID | None = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("content cannot be empty or whitespace")
        return v


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    dataset_id: UUID | None = None
    request_id: UUID | None = None
    is_read: bool
    created_at: datetime


class ConversationResponse(BaseModel):
    """Inbox row: latest message exchanged with one counterpart."""
    other_user: UserSummary | None = None
    last_message: MessageResponse
