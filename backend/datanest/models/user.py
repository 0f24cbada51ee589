"""User ORM — a marketplace participant on the buyer or seller side.

Invariants:
    - email is unique and stored lower-cased (case-insensitive lookup)
    - role is 'buyer' or 'seller' (UserRole)
    - total_datasets / total_purchases / total_earnings are ledger counters:
      mutated only by dataset creation and purchase confirmation

Design Decisions:
    - Numeric(10,2) for earnings: money never goes through float arithmetic in Python
    - Counters denormalized onto the user: dashboards read them without aggregation
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from datanest.db.base import Base


class User(Base):
    """Marketplace user — buyer or seller."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), nullable=False, default=Decimal("0"),
    )
    total_datasets: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    total_purchases: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0"),
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
