"""Domain Types — closed status enums and money helpers shared by every layer.

Invariants:
    - Every status field is a closed str Enum — no raw string matching in lifecycle code
    - Money is Decimal with 2 places; gateway amounts are integer cents

Design Decisions:
    - str Enums: serialize to JSON and compare equal to the stored column value
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class UserRole(str, Enum):
    """Marketplace side a user registered on."""
    BUYER = "buyer"
    SELLER = "seller"


class RequestStatus(str, Enum):
    """DatasetRequest lifecycle — maps to dataset_requests.status."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class ProposalStatus(str, Enum):
    """Proposal lifecycle — maps to proposals.status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class PurchaseStatus(str, Enum):
    """Purchase lifecycle — maps to purchases.status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ─── Constants ───────────────────────────────────────────────────

# Listing filter value that means "no category filter"
ALL_CATEGORIES = "All Categories"

ALLOWED_DATASET_MIME_TYPES = frozenset({
    "text/csv",
    "application/json",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "application/xml",
    "application/zip",
    "image/jpeg",
    "image/png",
    "audio/wav",
    "audio/mpeg",
    "video/mp4",
})

CENTS = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Normalize to a 2-place Decimal (half-up)."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_cents(price: Decimal) -> int:
    """Gateway amount: round(price * 100) with half-up rounding."""
    return int((Decimal(price) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
