"""Dataset Request Routes — post, browse, detail, fulfilment/cancellation hooks."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from datanest.api.deps import get_current_user, get_request_handlers
from datanest.models.user import User
from datanest.schemas.requests import (
    DatasetRequestCreate, DatasetRequestResponse, RequestDetail,
    RequestListItem, RequestStatusUpdate,
)
from datanest.services.handle_requests import RequestHandlers

router = APIRouter(prefix="/api/v1/requests", tags=["requests"])


@router.get("", response_model=list[RequestListItem])
async def list_requests(
    category: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.list_requests(category, status_filter)


@router.get("/{request_id}", response_model=RequestDetail)
async def get_request(
    request_id: UUID, handlers: RequestHandlers = Depends(get_request_handlers),
):
    """Request with buyer and every proposal (with its seller)."""
    return await handlers.get_request_detail(request_id)


@router.post(
    "", response_model=DatasetRequestResponse, status_code=status.HTTP_201_CREATED,
)
async def create_request(
    body: DatasetRequestCreate,
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.create_request(user, body)


@router.post("/{request_id}/status", response_model=DatasetRequestResponse)
async def update_request_status(
    request_id: UUID,
    body: RequestStatusUpdate,
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    """Buyer marks the request fulfilled or cancelled."""
    return await handlers.update_request_status(user, request_id, body.status)
