"""JWT bearer authentication with role-specific tokens."""

from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Literal

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

Role = Literal["store_owner", "customer", "platform_admin"]

ROLE_STORE_OWNER: Role = "store_owner"
ROLE_CUSTOMER: Role = "customer"
ROLE_PLATFORM_ADMIN: Role = "platform_admin"

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str,
    role: Role = ROLE_STORE_OWNER,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed access token.

    Args:
        subject: User identifier stored in the ``sub`` claim
        role: ``store_owner``, ``customer`` or ``platform_admin``
        email: Optional email claim
        expires_delta: Token lifetime, defaults to the configured expiry

    Returns:
        The encoded JWT
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "iat": now,
        "exp": expire,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """Verify a JWT signed with the platform secret.

    Args:
        token: The JWT token to verify

    Returns:
        The decoded token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Get current authenticated user from JWT token.

    Returns:
        The decoded JWT payload containing user information

    Raises:
        HTTPException: If no token provided or token is invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return verify_token(credentials.credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any] | None:
    """Get current user if authenticated, otherwise return None.

    Storefront endpoints work for both customers and anonymous visitors.
    """
    if credentials is None:
        return None

    try:
        return verify_token(credentials.credentials)
    except HTTPException:
        return None


async def require_store_owner(
    user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """Reject authenticated users whose token is not a store owner token."""
    if user.get("role") != ROLE_STORE_OWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Store owner access required",
        )
    return user


async def require_platform_admin(
    user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """Reject everyone but platform operators.

    Guards work that spans every tenant, such as translation normalization.
    """
    if user.get("role") != ROLE_PLATFORM_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform admin access required",
        )
    return user


async def require_job_user(
    user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """Store owners and platform operators may read the jobs they started."""
    if user.get("role") not in (ROLE_STORE_OWNER, ROLE_PLATFORM_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Store owner access required",
        )
    return user


# Type aliases for dependency injection
CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
OptionalUser = Annotated[dict[str, Any] | None, Depends(get_optional_user)]
StoreOwner = Annotated[dict[str, Any], Depends(require_store_owner)]
PlatformAdmin = Annotated[dict[str, Any], Depends(require_platform_admin)]
JobUser = Annotated[dict[str, Any], Depends(require_job_user)]
