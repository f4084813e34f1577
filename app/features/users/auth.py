"""
Credential and access-token utilities.
"""
import hmac
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from app.features.users.models import User, fold_name


def issue_token() -> str:
    """New opaque access token (uppercase UUID4)."""
    return str(uuid.uuid4()).upper()


def password_matches(stored: str, given: Optional[str]) -> bool:
    """Constant-time comparison of two password hashes."""
    if given is None:
        return False
    return hmac.compare_digest(stored.encode(), given.encode())


def client_address(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def update_access(user: User, request: Request) -> None:
    """Record when and from where ``user`` last touched the service."""
    user.last_access_time = datetime.now(timezone.utc)
    user.last_access_address = client_address(request)


async def find_user(db: AsyncSession, name: str) -> Optional[User]:
    """Look a user up by name, ignoring case."""
    return await db.scalar(
        select(User).where(User.name_key == fold_name(name))
    )
