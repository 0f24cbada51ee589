"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection
    - get()/lookups return None for unknown ids; the caller decides whether absence is an error
    - Repositories expose narrow, operation-specific mutations — no generic partial merge,
      no mutator for ids or ownership fields

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - *Like protocols describe entity snapshots: ORM rows satisfy them structurally,
      tests can pass plain dataclasses
    - Status transitions are compare-and-swap (return bool): the store, not the caller,
      guarantees a transition is applied at most once
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, BinaryIO, Protocol
from uuid import UUID


# ─── Entity snapshots ────────────────────────────────────────────

class UserLike(Protocol):
    id: UUID
    email: str
    name: str
    role: str
    total_datasets: int
    total_purchases: int
    total_earnings: Decimal


class DatasetLike(Protocol):
    id: UUID
    seller_id: UUID
    title: str
    price: Decimal
    downloads: int
    is_available: bool
    file_name: str
    file_path: str
    mime_type: str


class RequestLike(Protocol):
    id: UUID
    buyer_id: UUID
    status: str
    accepted_proposal_id: UUID | None


class ProposalLike(Protocol):
    id: UUID
    request_id: UUID
    seller_id: UUID
    status: str


class PurchaseLike(Protocol):
    id: UUID
    buyer_id: UUID
    dataset_id: UUID
    amount: Decimal
    status: str
    external_payment_ref: str | None
    purchased_at: datetime


class MessageLike(Protocol):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool


# ─── Entity Store ────────────────────────────────────────────────

class UserRepository(Protocol):
    """Users — created on registration, counters mutated only by lifecycle code."""
    async def create(self, data: dict) -> UserLike: ...
    async def get(self, user_id: UUID) -> UserLike | None: ...
    async def get_by_email(self, email: str) -> UserLike | None: ...
    async def get_many(self, user_ids: set[UUID]) -> dict[UUID, UserLike]: ...
    async def increment_total_datasets(self, user_id: UUID) -> None: ...
    async def increment_total_purchases(self, user_id: UUID) -> None: ...
    async def add_earnings(self, user_id: UUID, amount: Decimal) -> None: ...


class DatasetRepository(Protocol):
    """Datasets — ownership immutable, downloads monotonic."""
    async def create(self, data: dict) -> DatasetLike: ...
    async def get(self, dataset_id: UUID) -> DatasetLike | None: ...
    async def list_available(
        self,
        category: str | None = None,
        file_format: str | None = None,
        search: str | None = None,
    ) -> list[DatasetLike]: ...
    async def list_by_seller(self, seller_id: UUID) -> list[DatasetLike]: ...
    async def increment_downloads(self, dataset_id: UUID) -> None: ...
    async def set_availability(self, dataset_id: UUID, is_available: bool) -> None: ...
    async def delete(self, dataset_id: UUID) -> bool: ...


class RequestRepository(Protocol):
    """Dataset requests — status moves only through the lifecycle CAS methods."""
    async def create(self, data: dict) -> RequestLike: ...
    async def get(self, request_id: UUID) -> RequestLike | None: ...
    async def list_filtered(
        self, category: str | None = None, status: str | None = None,
    ) -> list[RequestLike]: ...
    async def list_by_buyer(self, buyer_id: UUID) -> list[RequestLike]: ...
    async def accept_proposal(self, request_id: UUID, proposal_id: UUID) -> bool: ...
    async def transition_status(
        self, request_id: UUID, expected: str, target: str,
    ) -> bool: ...


class ProposalRepository(Protocol):
    """Proposals — request_id and seller_id immutable."""
    async def create(self, data: dict) -> ProposalLike: ...
    async def get(self, proposal_id: UUID) -> ProposalLike | None: ...
    async def list_by_request(self, request_id: UUID) -> list[ProposalLike]: ...
    async def list_by_seller(self, seller_id: UUID) -> list[ProposalLike]: ...
    async def count_by_request(self, request_ids: list[UUID]) -> dict[UUID, int]: ...
    async def transition_status(
        self, proposal_id: UUID, expected: str, target: str,
    ) -> bool: ...


class PurchaseRepository(Protocol):
    """Purchases — pending -> completed | failed, terminal afterwards."""
    async def create(self, data: dict) -> PurchaseLike: ...
    async def get(self, purchase_id: UUID) -> PurchaseLike | None: ...
    async def get_by_ref(self, buyer_id: UUID, payment_ref: str) -> PurchaseLike | None: ...
    async def list_by_buyer(self, buyer_id: UUID) -> list[PurchaseLike]: ...
    async def list_by_dataset(self, dataset_id: UUID) -> list[PurchaseLike]: ...
    async def list_for_buyer_and_dataset(
        self, buyer_id: UUID, dataset_id: UUID,
    ) -> list[PurchaseLike]: ...
    async def has_purchased(self, buyer_id: UUID, dataset_id: UUID) -> bool: ...
    async def transition_status(
        self, purchase_id: UUID, expected: str, target: str,
    ) -> bool: ...


class MessageRepository(Protocol):
    """Messages — append-only apart from the read flag."""
    async def create(self, data: dict) -> MessageLike: ...
    async def get(self, message_id: UUID) -> MessageLike | None: ...
    async def list_between(self, user_a: UUID, user_b: UUID) -> list[MessageLike]: ...
    async def list_conversations(self, user_id: UUID) -> list[MessageLike]: ...
    async def mark_read(self, message_id: UUID) -> None: ...


class MarketplaceStore(Protocol):
    """Unit of work over all repositories — one commit per lifecycle operation."""
    users: UserRepository
    datasets: DatasetRepository
    requests: RequestRepository
    proposals: ProposalRepository
    purchases: PurchaseRepository
    messages: MessageRepository

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


# ─── External collaborators ──────────────────────────────────────

@dataclass(frozen=True)
class PaymentIntent:
    """Gateway answer to create_intent."""
    ref: str
    client_secret: str


class PaymentGateway(Protocol):
    """Contract for the external payment provider — implemented by shell."""
    async def create_intent(
        self, amount_cents: int, currency: str, metadata: dict[str, str],
    ) -> PaymentIntent: ...
    async def cancel_intent(self, ref: str) -> None: ...


class BlobStore(Protocol):
    """Contract for dataset file storage — implemented by shell."""
    async def put(self, source: BinaryIO, filename: str) -> str: ...
    async def exists(self, path: str) -> bool: ...
    def open_read_stream(self, path: str) -> AsyncIterator[bytes]: ...
    async def delete(self, path: str) -> None: ...
    async def health_check(self) -> bool: ...


class EmailSender(Protocol):
    """Fire-and-forget notification channel — never part of lifecycle correctness."""
    async def send(self, to: str, subject: str, html: str) -> bool: ...
