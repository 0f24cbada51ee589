"""API Dependencies — store, current user, external collaborators, handler factories.

Invariants:
    - One AsyncSession per request; every handler of the request shares it via get_store
    - get_current_user raises AuthenticationError (401) for missing/invalid tokens or unknown users
    - External collaborators are process-wide singletons built from settings

Design Decisions:
    - Collaborators exposed as dependencies so tests swap them via app.dependency_overrides
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.config import get_settings
from datanest.core.errors import AuthenticationError
from datanest.core.repository_protocols import BlobStore, EmailSender, PaymentGateway
from datanest.infrastructure.auth_tokens import decode_access_token
from datanest.infrastructure.blob_store import LocalBlobStore
from datanest.infrastructure.database import get_db
from datanest.infrastructure.email_sender import HttpEmailSender
from datanest.infrastructure.payment_gateway import StripePaymentGateway
from datanest.models.user import User
from datanest.repositories.sql_store import SqlMarketplaceStore
from datanest.services.handle_datasets import DatasetHandlers
from datanest.services.handle_messages import MessageHandlers
from datanest.services.handle_purchases import PurchaseHandlers
from datanest.services.handle_requests import RequestHandlers
from datanest.services.handle_users import UserHandlers

bearer_scheme = HTTPBearer(auto_error=False)


async def get_store(db: AsyncSession = Depends(get_db)) -> SqlMarketplaceStore:
    return SqlMarketplaceStore(db)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: SqlMarketplaceStore = Depends(get_store),
) -> User:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    settings = get_settings()
    user_id = decode_access_token(
        credentials.credentials, settings.jwt_secret, settings.jwt_algorithm,
    )
    user = await store.users.get(user_id)
    if not user:
        raise AuthenticationError()
    return user


# ─── External collaborators ──────────────────────────────────────

@lru_cache
def get_payment_gateway() -> PaymentGateway:
    settings = get_settings()
    return StripePaymentGateway(
        settings.stripe_api_key,
        max_retries=settings.stripe_max_retries,
        timeout_seconds=settings.stripe_timeout_seconds,
    )


@lru_cache
def get_blob_store() -> BlobStore:
    return LocalBlobStore(get_settings().upload_dir)


@lru_cache
def get_email_sender() -> EmailSender:
    settings = get_settings()
    return HttpEmailSender(
        settings.email_api_url,
        settings.email_api_key,
        settings.email_from,
        sender_name=settings.email_sender_name,
        timeout_seconds=settings.email_timeout_seconds,
    )


# ─── Handlers ────────────────────────────────────────────────────

def get_user_handlers(store: SqlMarketplaceStore = Depends(get_store)) -> UserHandlers:
    return UserHandlers(store)


def get_dataset_handlers(
    store: SqlMarketplaceStore = Depends(get_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> DatasetHandlers:
    return DatasetHandlers(store, blobs, get_settings().max_upload_bytes)


def get_request_handlers(
    store: SqlMarketplaceStore = Depends(get_store),
) -> RequestHandlers:
    return RequestHandlers(store)


def get_purchase_handlers(
    store: SqlMarketplaceStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PurchaseHandlers:
    settings = get_settings()
    return PurchaseHandlers(
        store,
        gateway,
        currency=settings.payment_currency,
        pending_ttl=timedelta(minutes=settings.pending_purchase_ttl_minutes),
    )


def get_message_handlers(
    store: SqlMarketplaceStore = Depends(get_store),
) -> MessageHandlers:
    return MessageHandlers(store)
