"""Auth Routes — registration issuing a bearer token.

Credential verification (OTP / password) is out of scope: registering returns a token
for the new user, and every protected route verifies that token.
"""

from fastapi import APIRouter, Depends, status

from datanest.api.deps import get_user_handlers
from datanest.config import get_settings
from datanest.infrastructure.auth_tokens import create_access_token
from datanest.schemas.users import AuthResponse, RegisterRequest, UserResponse
from datanest.services.handle_users import UserHandlers

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED,
)
async def register(
    body: RegisterRequest, handlers: UserHandlers = Depends(get_user_handlers),
):
    user = await handlers.register(body)
    settings = get_settings()
    token = create_access_token(
        user.id,
        settings.jwt_secret,
        settings.jwt_algorithm,
        settings.access_token_expire_minutes,
    )
    return AuthResponse(
        access_token=token,
        user=UserResponse.model_validate(user, from_attributes=True),
    )
