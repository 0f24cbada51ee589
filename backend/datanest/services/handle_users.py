"""User Handlers — registration and dashboard lookups.

Invariants:
    - Email uniqueness checked before insert; the unique index backs it under races
    - Registration commits exactly once
"""

import logging
from uuid import UUID

from datanest.core.errors import ConflictError, ErrorContext, ResourceNotFoundError
from datanest.core.repository_protocols import MarketplaceStore, UserLike
from datanest.schemas.users import RegisterRequest

logger = logging.getLogger(__name__)


class UserHandlers:
    """Registration and profile lookups."""

    def __init__(self, store: MarketplaceStore):
        self.store = store

    async def register(self, body: RegisterRequest) -> UserLike:
        if await self.store.users.get_by_email(body.email):
            raise ConflictError(
                "An account with this email already exists", "EMAIL_TAKEN",
                ErrorContext(resource_type="User"),
            )
        user = await self.store.users.create({
            "email": body.email,
            "name": body.name,
            "role": body.role.value,
            "avatar_url": body.avatar_url,
        })
        await self.store.commit()
        logger.info("User registered", extra={"user_id": user.id})
        return user

    async def get_user(self, user_id: UUID) -> UserLike:
        user = await self.store.users.get(user_id)
        if not user:
            raise ResourceNotFoundError("User", str(user_id))
        return user
