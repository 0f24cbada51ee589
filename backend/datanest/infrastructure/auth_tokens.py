"""Access Tokens — JWT issue/verify for the bearer authentication boundary.

Invariants:
    - sub claim carries the user id as a string
    - Expired, tampered or sub-less tokens all surface as AuthenticationError (401)
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt

from datanest.core.errors import AuthenticationError


def create_access_token(
    user_id: UUID, secret: str, algorithm: str = "HS256", expire_minutes: int = 60,
) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    return jwt.encode(
        {"sub": str(user_id), "exp": expire}, secret, algorithm=algorithm,
    )


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> UUID:
    """Return the user id encoded in the token."""
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
        subject = payload.get("sub")
        if subject is None:
            raise AuthenticationError()
        return UUID(subject)
    except (JWTError, ValueError):
        raise AuthenticationError()
