"""Request/Proposal Handlers — posting requests, submitting, accepting and rejecting proposals.

Invariants:
    - Only the request's buyer accepts/rejects its proposals or moves its status
    - Acceptance writes proposal.status and request.{status, accepted_proposal_id} in one commit
    - The request CAS (open AND accepted_proposal_id IS NULL) decides a concurrent race:
      the loser rolls back and gets PROPOSAL_ALREADY_ACCEPTED
    - Re-accepting the accepted proposal and re-rejecting a rejected one are no-ops
    - accept_proposal hands back an AcceptanceNotice only when this call did the accepting
    - No counters change in this lifecycle

Design Decisions:
    - Core validators answer "is this legal now"; the CAS answers "is it still legal at write time"
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from datanest.core.access_gate import check_request_owner, check_role
from datanest.core.domain_types import ProposalStatus, RequestStatus, UserRole
from datanest.core.enforce_request_lifecycle import (
    check_accepting_proposals, is_already_accepted, is_already_rejected,
    validate_acceptance, validate_external_status_update, validate_rejection,
)
from datanest.core.errors import ConflictError, ErrorContext, ResourceNotFoundError
from datanest.core.repository_protocols import (
    MarketplaceStore, ProposalLike, RequestLike, UserLike,
)
from datanest.schemas.requests import (
    DatasetRequestCreate, DatasetRequestResponse, ProposalCreate,
    ProposalWithRequest, ProposalWithSeller, RequestDetail, RequestListItem,
)
from datanest.schemas.users import UserSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptanceNotice:
    """What the proposal's seller is told after their proposal was accepted."""
    seller_email: str
    seller_name: str
    request_title: str


class RequestHandlers:
    """Dataset request and proposal lifecycle."""

    def __init__(self, store: MarketplaceStore):
        self.store = store

    # ─── Lookups ─────────────────────────────────────────────────

    async def get_request_or_404(self, request_id: UUID) -> RequestLike:
        request = await self.store.requests.get(request_id)
        if not request:
            raise ResourceNotFoundError("DatasetRequest", str(request_id))
        return request

    async def get_proposal_or_404(self, proposal_id: UUID) -> ProposalLike:
        proposal = await self.store.proposals.get(proposal_id)
        if not proposal:
            raise ResourceNotFoundError("Proposal", str(proposal_id))
        return proposal

    async def _proposal_and_owned_request(
        self, user: UserLike, proposal_id: UUID,
    ) -> tuple[ProposalLike, RequestLike]:
        proposal = await self.get_proposal_or_404(proposal_id)
        request = await self.get_request_or_404(proposal.request_id)
        error = check_request_owner(user, request)
        if error:
            raise error
        return proposal, request

    # ─── Requests ────────────────────────────────────────────────

    async def create_request(
        self, buyer: UserLike, body: DatasetRequestCreate,
    ) -> RequestLike:
        error = check_role(buyer, UserRole.BUYER)
        if error:
            raise error
        request = await self.store.requests.create({
            **body.model_dump(), "buyer_id": buyer.id,
        })
        await self.store.commit()
        logger.info(
            "Dataset request created",
            extra={"request_id": request.id, "user_id": buyer.id},
        )
        return request

    async def list_requests(
        self, category: str | None = None, status: str | None = None,
    ) -> list[RequestListItem]:
        requests = await self.store.requests.list_filtered(category=category, status=status)
        return await self._as_list_items(requests)

    async def _as_list_items(self, requests: list[RequestLike]) -> list[RequestListItem]:
        buyers = await self.store.users.get_many({r.buyer_id for r in requests})
        counts = await self.store.proposals.count_by_request([r.id for r in requests])
        return [
            RequestListItem.model_validate(r, from_attributes=True).model_copy(
                update={
                    "buyer": _summary(buyers.get(r.buyer_id)),
                    "proposal_count": counts.get(r.id, 0),
                },
            )
            for r in requests
        ]

    async def get_request_detail(self, request_id: UUID) -> RequestDetail:
        request = await self.get_request_or_404(request_id)
        proposals = await self.store.proposals.list_by_request(request.id)
        users = await self.store.users.get_many(
            {request.buyer_id} | {p.seller_id for p in proposals},
        )
        return RequestDetail.model_validate(request, from_attributes=True).model_copy(
            update={
                "buyer": _summary(users.get(request.buyer_id)),
                "proposals": [
                    ProposalWithSeller.model_validate(p, from_attributes=True).model_copy(
                        update={"seller": _summary(users.get(p.seller_id))},
                    )
                    for p in proposals
                ],
            },
        )

    async def list_buyer_requests(self, buyer: UserLike) -> list[RequestListItem]:
        """Buyer dashboard: own requests with their proposal counts."""
        return await self._as_list_items(await self.store.requests.list_by_buyer(buyer.id))

    async def update_request_status(
        self, user: UserLike, request_id: UUID, target: RequestStatus,
    ) -> RequestLike:
        """Fulfilment / cancellation hooks."""
        request = await self.get_request_or_404(request_id)
        error = (
            check_request_owner(user, request)
            or validate_external_status_update(request, target)
        )
        if error:
            raise error

        expected = request.status
        if not await self.store.requests.transition_status(
            request_id, expected, target.value,
        ):
            await self.store.rollback()
            raise ConflictError(
                "Request changed concurrently, retry", "INVALID_TRANSITION",
                ErrorContext(resource_type="DatasetRequest", resource_id=str(request_id)),
            )
        await self.store.commit()
        logger.info(
            f"Request {expected} -> {target.value}",
            extra={"request_id": request.id, "user_id": user.id},
        )
        return request

    # ─── Proposals ───────────────────────────────────────────────

    async def submit_proposal(
        self, seller: UserLike, body: ProposalCreate,
    ) -> ProposalLike:
        error = check_role(seller, UserRole.SELLER)
        if error:
            raise error
        request = await self.get_request_or_404(body.request_id)
        error = check_accepting_proposals(request)
        if error:
            raise error
        proposal = await self.store.proposals.create({
            **body.model_dump(), "seller_id": seller.id,
        })
        await self.store.commit()
        logger.info(
            "Proposal submitted",
            extra={"proposal_id": proposal.id, "request_id": request.id},
        )
        return proposal

    async def accept_proposal(
        self, user: UserLike, proposal_id: UUID,
    ) -> tuple[ProposalLike, RequestLike, AcceptanceNotice | None]:
        """Returns (proposal, request, notice). notice is None on the idempotent path."""
        proposal, request = await self._proposal_and_owned_request(user, proposal_id)
        if is_already_accepted(request, proposal):
            return proposal, request, None
        error = validate_acceptance(request, proposal)
        if error:
            raise error

        request_id = request.id
        won = await self.store.requests.accept_proposal(request_id, proposal_id)
        won = won and await self.store.proposals.transition_status(
            proposal_id, ProposalStatus.PENDING.value, ProposalStatus.ACCEPTED.value,
        )
        if not won:
            await self.store.rollback()
            raise ConflictError(
                "Another proposal has already been accepted for this request",
                "PROPOSAL_ALREADY_ACCEPTED",
                ErrorContext(resource_type="DatasetRequest", resource_id=str(request_id)),
            )
        await self.store.commit()
        logger.info(
            "Proposal accepted",
            extra={"proposal_id": proposal.id, "request_id": request.id},
        )
        seller = await self.store.users.get(proposal.seller_id)
        notice = None
        if seller:
            notice = AcceptanceNotice(
                seller_email=seller.email, seller_name=seller.name,
                request_title=request.title,
            )
        return proposal, request, notice

    async def reject_proposal(self, user: UserLike, proposal_id: UUID) -> ProposalLike:
        proposal, _ = await self._proposal_and_owned_request(user, proposal_id)
        if is_already_rejected(proposal):
            return proposal
        error = validate_rejection(proposal)
        if error:
            raise error

        if not await self.store.proposals.transition_status(
            proposal_id, ProposalStatus.PENDING.value, ProposalStatus.REJECTED.value,
        ):
            await self.store.rollback()
            raise ConflictError(
                "Proposal changed concurrently, retry", "INVALID_TRANSITION",
                ErrorContext(resource_type="Proposal", resource_id=str(proposal_id)),
            )
        await self.store.commit()
        logger.info("Proposal rejected", extra={"proposal_id": proposal.id})
        return proposal

    async def list_seller_proposals(self, seller: UserLike) -> list[ProposalWithRequest]:
        proposals = await self.store.proposals.list_by_seller(seller.id)
        result = []
        for p in proposals:
            request = await self.store.requests.get(p.request_id)
            result.append(
                ProposalWithRequest.model_validate(p, from_attributes=True).model_copy(
                    update={
                        "request": DatasetRequestResponse.model_validate(
                            request, from_attributes=True,
                        ) if request else None,
                    },
                ),
            )
        return result


def _summary(user: UserLike | None) -> UserSummary | None:
    return UserSummary.model_validate(user, from_attributes=True) if user else None
