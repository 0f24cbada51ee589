"""Purchase Lifecycle Enforcement — transition rules for pending -> completed | failed.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - completed and failed are terminal
    - A Purchase grants download access iff status == completed
    - At most one live purchase (pending or completed) per (buyer, dataset)
    - A pending purchase older than the TTL is stale: it is expired to failed and
      no longer blocks a new intent
    - Re-confirming a completed purchase is a no-op success (detected before validation)
    - Delisted datasets (is_available False) cannot be bought; existing owners keep access

Design Decisions:
    - "now" and the TTL are parameters: expiry is deterministic under test
    - Naive timestamps are read as UTC (SQLite drops the offset on round-trip)
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable

from datanest.core.domain_types import PurchaseStatus
from datanest.core.errors import ConflictError, ErrorContext, InvalidTransitionError
from datanest.core.repository_protocols import DatasetLike, PurchaseLike


PURCHASE_TRANSITIONS: dict[PurchaseStatus, frozenset[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset({PurchaseStatus.COMPLETED, PurchaseStatus.FAILED}),
    PurchaseStatus.COMPLETED: frozenset(),
    PurchaseStatus.FAILED: frozenset(),
}


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _purchase_context(purchase: PurchaseLike) -> ErrorContext:
    return ErrorContext(resource_type="Purchase", resource_id=str(purchase.id))


def is_effective(purchase: PurchaseLike) -> bool:
    """Only a completed purchase grants access."""
    return purchase.status == PurchaseStatus.COMPLETED


def is_stale(purchase: PurchaseLike, now: datetime, ttl: timedelta) -> bool:
    return (
        purchase.status == PurchaseStatus.PENDING
        and _as_utc(purchase.purchased_at) <= _as_utc(now) - ttl
    )


def find_stale_pending(
    purchases: Iterable[PurchaseLike], now: datetime, ttl: timedelta,
) -> list[PurchaseLike]:
    return [p for p in purchases if is_stale(p, now, ttl)]


def check_dataset_purchasable(dataset: DatasetLike) -> ConflictError | None:
    if not dataset.is_available:
        return ConflictError(
            "Dataset is no longer for sale", "DATASET_UNAVAILABLE",
            ErrorContext(resource_type="Dataset", resource_id=str(dataset.id)),
        )
    return None


def check_can_start_purchase(
    purchases: Iterable[PurchaseLike], now: datetime, ttl: timedelta,
) -> ConflictError | None:
    """No second intent while the buyer owns the dataset or has a live pending intent."""
    live = [p for p in purchases if not is_stale(p, now, ttl)]
    if any(p.status == PurchaseStatus.COMPLETED for p in live):
        return ConflictError(
            "Dataset already purchased", "ALREADY_PURCHASED",
        )
    pending = [p for p in live if p.status == PurchaseStatus.PENDING]
    if pending:
        return ConflictError(
            "A payment for this dataset is already in progress",
            "PURCHASE_PENDING", _purchase_context(pending[0]),
        )
    return None


def check_purchase_transition(
    purchase: PurchaseLike, target: PurchaseStatus,
) -> InvalidTransitionError | None:
    current = PurchaseStatus(purchase.status)
    if target not in PURCHASE_TRANSITIONS[current]:
        return InvalidTransitionError(
            "Purchase", current.value, target.value, _purchase_context(purchase),
        )
    return None


def is_already_completed(purchase: PurchaseLike) -> bool:
    return purchase.status == PurchaseStatus.COMPLETED


def is_already_failed(purchase: PurchaseLike) -> bool:
    return purchase.status == PurchaseStatus.FAILED


def validate_confirmation(purchase: PurchaseLike) -> InvalidTransitionError | None:
    return check_purchase_transition(purchase, PurchaseStatus.COMPLETED)


def validate_failure(purchase: PurchaseLike) -> InvalidTransitionError | None:
    return check_purchase_transition(purchase, PurchaseStatus.FAILED)
