"""User Routes — own profile and dashboard lists (purchases, datasets, requests, proposals)."""

from fastapi import APIRouter, Depends

from datanest.api.deps import (
    get_current_user, get_dataset_handlers, get_purchase_handlers, get_request_handlers,
)
from datanest.models.user import User
from datanest.schemas.datasets import DatasetResponse
from datanest.schemas.payments import PurchaseWithDataset
from datanest.schemas.requests import ProposalWithRequest, RequestListItem
from datanest.schemas.users import UserResponse
from datanest.services.handle_datasets import DatasetHandlers
from datanest.services.handle_purchases import PurchaseHandlers
from datanest.services.handle_requests import RequestHandlers

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.get("/me/purchases", response_model=list[PurchaseWithDataset])
async def my_purchases(
    user: User = Depends(get_current_user),
    handlers: PurchaseHandlers = Depends(get_purchase_handlers),
):
    """Buyer dashboard — newest first, each with its dataset."""
    return await handlers.list_purchases(user)


@router.get("/me/datasets", response_model=list[DatasetResponse])
async def my_datasets(
    user: User = Depends(get_current_user),
    handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    """Seller dashboard — includes delisted datasets."""
    return await handlers.list_seller_datasets(user)


@router.get("/me/requests", response_model=list[RequestListItem])
async def my_requests(
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.list_buyer_requests(user)


@router.get("/me/proposals", response_model=list[ProposalWithRequest])
async def my_proposals(
    user: User = Depends(get_current_user),
    handlers: RequestHandlers = Depends(get_request_handlers),
):
    return await handlers.list_seller_proposals(user)
