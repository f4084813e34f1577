"""
Group lookups shared by the user and group routes.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.groups.models import UserGroup


async def find_group(db: AsyncSession, name: Optional[str]) -> Optional[UserGroup]:
    """Group with exactly this name, or None."""
    if not name:
        return None
    return await db.scalar(select(UserGroup).where(UserGroup.name == name))


async def find_active_group(db: AsyncSession, name: Optional[str]) -> Optional[UserGroup]:
    """Like ``find_group`` but disabled groups count as missing."""
    group = await find_group(db, name)
    if group is None or group.disabled:
        return None
    return group
