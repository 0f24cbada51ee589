"""Access Control Gate — authorization predicates guarding money- and IP-sensitive operations.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Predicates return bool; check_* helpers return an error on violation, None on success
    - The gate never raises — callers raise the returned error (403)
    - Download access ignores Dataset.is_available: a delisted dataset stays downloadable
      for its owner and completed purchasers

Design Decisions:
    - has_purchased passed in as a bool: the shell resolves it from the purchase store,
      keeping the gate testable without mocks
    - Proposal submission has no ownership check (open marketplace) — only the role check
"""

from datanest.core.domain_types import UserRole
from datanest.core.errors import ErrorContext, ForbiddenError
from datanest.core.repository_protocols import (
    DatasetLike, MessageLike, RequestLike, UserLike,
)


def is_dataset_owner(user: UserLike, dataset: DatasetLike) -> bool:
    return user.id == dataset.seller_id


def can_download(user: UserLike, dataset: DatasetLike, has_purchased: bool) -> bool:
    """Owner or completed purchaser."""
    return is_dataset_owner(user, dataset) or has_purchased


def can_act_on_request(user: UserLike, request: RequestLike) -> bool:
    """Only the buyer who posted a request may accept/reject its proposals."""
    return user.id == request.buyer_id


def check_role(user: UserLike, role: UserRole) -> ForbiddenError | None:
    """Seller-only / buyer-only operations."""
    if user.role != role.value:
        return ForbiddenError(
            f"Only {role.value}s can perform this action",
            ErrorContext(user_id=str(user.id)),
        )
    return None


def check_download_access(
    user: UserLike, dataset: DatasetLike, has_purchased: bool,
) -> ForbiddenError | None:
    if not can_download(user, dataset, has_purchased):
        return ForbiddenError(
            "Access denied. Purchase required.",
            ErrorContext(
                user_id=str(user.id),
                resource_type="Dataset", resource_id=str(dataset.id),
            ),
        )
    return None


def check_request_owner(user: UserLike, request: RequestLike) -> ForbiddenError | None:
    if not can_act_on_request(user, request):
        return ForbiddenError(
            "Access denied",
            ErrorContext(
                user_id=str(user.id),
                resource_type="DatasetRequest", resource_id=str(request.id),
            ),
        )
    return None


def check_dataset_owner(user: UserLike, dataset: DatasetLike) -> ForbiddenError | None:
    if not is_dataset_owner(user, dataset):
        return ForbiddenError(
            "Only the seller of this dataset can modify it",
            ErrorContext(
                user_id=str(user.id),
                resource_type="Dataset", resource_id=str(dataset.id),
            ),
        )
    return None


def check_message_receiver(user: UserLike, message: MessageLike) -> ForbiddenError | None:
    """Only the receiver can mark a message as read."""
    if user.id != message.receiver_id:
        return ForbiddenError(
            "Only the receiver can mark a message as read",
            ErrorContext(
                user_id=str(user.id),
                resource_type="Message", resource_id=str(message.id),
            ),
        )
    return None
