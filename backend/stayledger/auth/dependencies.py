"""FastAPI authentication dependencies for route protection.

Sessions are issued by the external identity provider; this service only
verifies the bearer token and loads the matching user row.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.auth.jwt import decode_token
from stayledger.database import get_db
from stayledger.models.user import User

# Missing header is rejected by HTTPBearer itself
_bearer_scheme = HTTPBearer()


def _unauthenticated(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_id_from_access_token(token: str) -> uuid.UUID:
    """Return the caller id carried by an access token.

    Booking QR tokens are signed with the same key but are not sessions and
    are refused here.

    Raises:
        HTTPException 401: Bad signature, expired, wrong type or malformed ``sub``.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise _unauthenticated() from None

    if payload.get("type") != "access":
        raise _unauthenticated("Invalid token type")

    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthenticated() from None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the user behind the Bearer token."""
    user = await db.get(User, user_id_from_access_token(credentials.credentials))
    if user is None:
        raise _unauthenticated()
    return user


async def get_current_active_user(
    user: User = Depends(get_current_user),
) -> User:
    """Return the current user only if their account is active.

    Raises:
        HTTPException 403: If the user account is inactive.
    """
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return user
