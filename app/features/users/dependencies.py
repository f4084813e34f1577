"""
FastAPI dependencies resolving the caller's session.
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.features.users.auth import client_address, update_access
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Optional[str]:
    """Bearer token from the Authorization header, else the access token cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(config.ACCESS_TOKEN_COOKIE) or None


async def get_session(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Optional[User]:
    """
    Resolve the user behind the request's access token.

    Returns ``None`` (no session) when:
    1. no token is supplied or no user holds it
    2. the user or the user's group is disabled
    3. the user does not allow multi-address login and the request comes
       from another address than the one the user last used

    On success the user's last access time and address are updated; the
    change is committed with the rest of the request.

    Usage:
        @router.get("/{name}")
        async def get_info(session: User | None = Depends(get_session)):
            ...
    """
    token = get_access_token(request, credentials)
    if not token:
        return None

    user = await db.scalar(select(User).where(User.access_token == token))
    if user is None:
        log.debug("Unknown access token")
        return None
    if user.disabled or user.group.disabled:
        log.debug("Access token of disabled user %s", user.id)
        return None

    address = client_address(request)
    if (
        not user.allow_multi_address_login
        and user.last_access_address
        and address
        and address != user.last_access_address
    ):
        log.info("User %s token used from %s, bound to %s", user.id, address, user.last_access_address)
        return None

    update_access(user, request)
    return user


def get_rate_limit_key(request: Request) -> str:
    """
    Key for the slowapi limiter: the Authorization header, the token cookie,
    or the client address for anonymous callers.
    """
    auth = request.headers.get("Authorization", "") or request.cookies.get(config.ACCESS_TOKEN_COOKIE, "")
    return auth or client_address(request) or "anonymous"
