"""Proposal Routes — submit, accept, reject.

Invariants:
    - Acceptance notification is scheduled only when this call performed the acceptance
"""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status

from datanest.api.deps import get_current_user, get_email_sender, get_request_handlers
from datanest.core.repository_protocols import EmailSender
from datanest.models.user import User
from datanest.schemas.requests import (
    AcceptanceResponse, DatasetRequestResponse, ProposalCreate, ProposalResponse,
)
from datanest.services.handle_requests import RequestHandlers
from datanest.services.notifications import notify_proposal_accepted

router = APIRouter(prefix="/api/v1/proposals", tags=["proposals"])


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def submit_proposal(
    body: ProposalCreate,
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.submit_proposal(user, body)


@router.put("/{proposal_id}/accept", response_model=AcceptanceResponse)
async def accept_proposal(
    proposal_id: UUID,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
    email: EmailSender = Depends(get_email_sender),
):
    proposal, request, notice = await handlers.accept_proposal(user, proposal_id)
    if notice:
        background_tasks.add_task(
            notify_proposal_accepted, email,
            notice.seller_email, notice.seller_name, notice.request_title,
        )
    return AcceptanceResponse(
        proposal=ProposalResponse.model_validate(proposal, from_attributes=True),
        request=DatasetRequestResponse.model_validate(request, from_attributes=True),
    )


@router.put("/{proposal_id}/reject", response_model=ProposalResponse)
async def reject_proposal(
    proposal_id: UUID,
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.reject_proposal(user, proposal_id)
