"""User Schemas — registration input, private profile, public summary.

Invariants:
    - Email is stripped and lower-cased before it reaches the store
    - UserSummary is what other users see (no counters of money)
"""

import re
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datanest.core.domain_types import UserRole

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegisterRequest(BaseModel):
    """Registration — creates a user on one side of the marketplace."""
    email: str = Field(max_length=320)
    name: str = Field(min_length=1, max_length=200)
    role: UserRole
    avatar_url: str | None = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("invalid email address")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class UserSummary(BaseModel):
    """Public user card embedded in listings."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: str
    avatar_url: str | None = None
    rating: Decimal
    total_datasets: int


class UserResponse(BaseModel):
    """Own profile, including ledger counters."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    avatar_url: str | None = None
    rating: Decimal
    total_datasets: int
    total_purchases: int
    total_earnings: Decimal
    is_verified: bool
    created_at: datetime


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
