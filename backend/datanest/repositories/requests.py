"""Request & proposal repositories — status moves only through compare-and-swap updates."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.core.domain_types import ALL_CATEGORIES, ProposalStatus, RequestStatus
from datanest.models.dataset_request import DatasetRequest
from datanest.models.proposal import Proposal


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlRequestRepository:
    """RequestRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> DatasetRequest:
        request = DatasetRequest(
            **data, status=RequestStatus.OPEN.value, accepted_proposal_id=None,
        )
        self.db.add(request)
        await self.db.flush()
        return request

    async def get(self, request_id: uuid.UUID) -> DatasetRequest | None:
        return await self.db.get(DatasetRequest, request_id)

    async def list_filtered(
        self, category: str | None = None, status: str | None = None,
    ) -> list[DatasetRequest]:
        query = select(DatasetRequest).order_by(DatasetRequest.created_at.desc())
        if category and category != ALL_CATEGORIES:
            query = query.where(DatasetRequest.category == category)
        if status:
            query = query.where(DatasetRequest.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_by_buyer(self, buyer_id: uuid.UUID) -> list[DatasetRequest]:
        result = await self.db.execute(
            select(DatasetRequest)
            .where(DatasetRequest.buyer_id == buyer_id)
            .order_by(DatasetRequest.created_at.desc()),
        )
        return list(result.scalars().all())

    async def accept_proposal(
        self, request_id: uuid.UUID, proposal_id: uuid.UUID,
    ) -> bool:
        """open -> in_progress, only while no proposal has been accepted yet."""
        result = await self.db.execute(
            update(DatasetRequest)
            .where(
                DatasetRequest.id == request_id,
                DatasetRequest.status == RequestStatus.OPEN.value,
                DatasetRequest.accepted_proposal_id.is_(None),
            )
            .values(
                status=RequestStatus.IN_PROGRESS.value,
                accepted_proposal_id=proposal_id,
                updated_at=_now(),
            ),
        )
        return result.rowcount == 1

    async def transition_status(
        self, request_id: uuid.UUID, expected: str, target: str,
    ) -> bool:
        result = await self.db.execute(
            update(DatasetRequest)
            .where(
                DatasetRequest.id == request_id,
                DatasetRequest.status == expected,
            )
            .values(status=target, updated_at=_now()),
        )
        return result.rowcount == 1


class SqlProposalRepository:
    """ProposalRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Proposal:
        proposal = Proposal(**data, status=ProposalStatus.PENDING.value)
        self.db.add(proposal)
        await self.db.flush()
        return proposal

    async def get(self, proposal_id: uuid.UUID) -> Proposal | None:
        return await self.db.get(Proposal, proposal_id)

    async def list_by_request(self, request_id: uuid.UUID) -> list[Proposal]:
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.request_id == request_id)
            .order_by(Proposal.created_at.desc()),
        )
        return list(result.scalars().all())

    async def list_by_seller(self, seller_id: uuid.UUID) -> list[Proposal]:
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.seller_id == seller_id)
            .order_by(Proposal.created_at.desc()),
        )
        return list(result.scalars().all())

    async def count_by_request(
        self, request_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, int]:
        if not request_ids:
            return {}
        result = await self.db.execute(
            select(Proposal.request_id, func.count(Proposal.id))
            .where(Proposal.request_id.in_(request_ids))
            .group_by(Proposal.request_id),
        )
        counts = {request_id: count for request_id, count in result.all()}
        return {rid: counts.get(rid, 0) for rid in request_ids}

    async def transition_status(
        self, proposal_id: uuid.UUID, expected: str, target: str,
    ) -> bool:
        result = await self.db.execute(
            update(Proposal)
            .where(Proposal.id == proposal_id, Proposal.status == expected)
            .values(status=target, updated_at=_now()),
        )
        return result.rowcount == 1
