"""Request & Proposal Schemas — buyer requests, seller proposals, lifecycle responses.

Invariants:
    - budget_min <= budget_max, both >= 0
    - Proposal price >= 0, delivery_time >= 1 day
    - RequestStatusUpdate only carries statuses; the lifecycle decides which are legal
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from datanest.core.domain_types import RequestStatus
from datanest.schemas.users import UserSummary


class DatasetRequestCreate(BaseModel):
    """Buyer request for a custom dataset."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=100)
    tags: list[str] = Field(default_factory=list)
    budget_min: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    budget_max: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    deadline: datetime

    @field_validator("title", "description", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.budget_min > self.budget_max:
            raise ValueError("budget_min must not exceed budget_max")
        return self


class RequestStatusUpdate(BaseModel):
    status: RequestStatus


class ProposalCreate(BaseModel):
    """Seller offer on an open request."""
    request_id: UUID
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    delivery_time: int = Field(ge=1, le=3650)
    cover_letter: str = Field(min_length=1, max_length=10_000)

    @field_validator("cover_letter")
    @classmethod
    def strip_cover_letter(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cover_letter cannot be empty or whitespace")
        return v


class ProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    seller_id: UUID
    price: Decimal
    delivery_time: int
    cover_letter: str
    status: str
    created_at: datetime


class ProposalWithSeller(ProposalResponse):
    seller: UserSummary | None = None


class DatasetRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buyer_id: UUID
    title: str
    description: str
    category: str
    tags: list[str]
    budget_min: Decimal
    budget_max: Decimal
    deadline: datetime
    status: str
    accepted_proposal_id: UUID | None = None
    created_at: datetime


class RequestListItem(DatasetRequestResponse):
    buyer: UserSummary | None = None
    proposal_count: int = 0


class RequestDetail(DatasetRequestResponse):
    buyer: UserSummary | None = None
    proposals: list[ProposalWithSeller] = Field(default_factory=list)


class ProposalWithRequest(ProposalResponse):
    """Seller dashboard row."""
    request: DatasetRequestResponse | None = None


class AcceptanceResponse(BaseModel):
    proposal: ProposalResponse
    request: DatasetRequestResponse
