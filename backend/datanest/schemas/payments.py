"""Payment Schemas — intent creation, confirmation, purchase history."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datanest.schemas.datasets import DatasetResponse


class PaymentIntentCreate(BaseModel):
    dataset_id: UUID


class PaymentIntentResponse(BaseModel):
    """client_secret is None when nothing is left to pay (free dataset)."""
    client_secret: str | None
    amount: Decimal
    purchase_id: UUID
    status: str = "pending"


class PaymentRefBody(BaseModel):
    """Gateway correlation id reported back by the client."""
    payment_intent_id: str = Field(min_length=1, max_length=255)

    @field_validator("payment_intent_id")
    @classmethod
    def strip_ref(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment_intent_id cannot be empty")
        return v


class PurchaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buyer_id: UUID
    dataset_id: UUID
    amount: Decimal
    status: str
    external_payment_ref: str | None = None
    purchased_at: datetime


class PurchaseWithDataset(PurchaseResponse):
    dataset: DatasetResponse | None = None
