"""Authentication dependencies for admin and member endpoints.

Members authenticate with the access token the main site issues at login:
an HS256 JWT signed with ``MEMBER_TOKEN_SECRET`` whose ``sub`` claim is the
member id. Expired tokens are rejected. This service only verifies tokens.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

MEMBER_TOKEN_ALGORITHM = "HS256"

# auto_error=False: a missing header reaches our dependencies, which answer 401 rather than 403
_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _not_configured(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{what} authentication not configured",
    )


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """
    Enforce the admin API key.

    The client must send:
        Authorization: Bearer <ADMIN_API_KEY>
    """
    if not settings.admin_api_key:
        raise _not_configured("Admin")
    if not credentials:
        raise _unauthorized("Admin API key required")

    # Constant-time comparison
    if not hmac.compare_digest(
        credentials.credentials.encode("utf-8"),
        settings.admin_api_key.encode("utf-8"),
    ):
        logger.warning("Failed admin auth attempt from %s", _client_ip(request))
        raise _unauthorized("Invalid admin API key")

    return credentials.credentials


def create_member_token(
    member_id: int,
    secret: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Issue a member access token the way the main site does. Used by tests and internal tooling."""
    secret = secret or settings.member_token_secret
    if not secret:
        raise RuntimeError("MEMBER_TOKEN_SECRET is not configured")
    payload = {
        "sub": str(member_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=MEMBER_TOKEN_ALGORITHM)


def verify_member_token(token: str, secret: str) -> int | None:
    """Return the member id carried by a valid, unexpired token, else None."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[MEMBER_TOKEN_ALGORITHM],
            # The main site signs "sub" as a number
            options={"require": ["sub", "exp"], "verify_sub": False},
        )
    except jwt.InvalidTokenError as e:
        logger.debug(f"Member token rejected: {e}")
        return None

    try:
        member_id = int(str(payload["sub"]))
    except (TypeError, ValueError):
        return None
    if member_id <= 0:
        return None
    return member_id


async def optional_member(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> int | None:
    """
    Resolve the calling member if a token was sent.

    Returns None for anonymous callers; a token that is present but invalid
    is rejected rather than silently treated as anonymous.
    """
    if not credentials:
        return None
    if not settings.member_token_secret:
        raise _not_configured("Member")

    member_id = verify_member_token(credentials.credentials, settings.member_token_secret)
    if member_id is None:
        logger.info("Rejected member token from %s", _client_ip(request))
        raise _unauthorized("Invalid member token")
    return member_id


async def require_member(member_id: int | None = Depends(optional_member)) -> int:
    """Dependency for endpoints that need an authenticated member."""
    if member_id is None:
        raise _unauthorized("Authentication required")
    return member_id
