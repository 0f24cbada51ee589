"""Dataset Schemas — upload metadata and catalogue responses.

Invariants:
    - price >= 0 with at most 2 decimal places
    - tags are non-empty stripped strings
    - file fields never come from the client: they are set from the stored upload
"""

import json
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datanest.schemas.users import UserSummary


class DatasetCreate(BaseModel):
    """Metadata fields of the multipart upload."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category: str = Field(min_length=1, max_length=100)
    tags: list[str] = Field(default_factory=list)
    format: str = Field(min_length=1, max_length=50)
    data_type: str = Field(min_length=1, max_length=50)
    license: str = Field(min_length=1, max_length=100)

    @field_validator("title", "description", "category", "format", "data_type", "license")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty or whitespace")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        """Multipart forms send tags as a JSON array string."""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("tags must be a JSON array of strings")
        if not isinstance(v, list):
            raise ValueError("tags must be a JSON array of strings")
        return [str(tag).strip() for tag in v if str(tag).strip()]


class DatasetResponse(BaseModel):
    """Catalogue entry."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    seller_id: UUID
    title: str
    description: str
    price: Decimal
    category: str
    tags: list[str]
    format: str
    data_type: str
    license: str
    file_name: str
    file_size: int
    mime_type: str
    downloads: int
    is_available: bool
    created_at: datetime
    updated_at: datetime


class DatasetWithSeller(DatasetResponse):
    seller: UserSummary | None = None


class DatasetDeleteResponse(BaseModel):
    id: UUID
    deleted: bool
    delisted: bool
