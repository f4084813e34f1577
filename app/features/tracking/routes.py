"""
Audit trail routes (read only).

    GET /.count  filtered count
    GET /.list   filtered list
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import ModuleSettings, get_settings
from app.core.database.engine import get_db
from app.core.query import Equals, filtered_count, filtered_select
from app.core.responses import basic_response
from app.features.permissions.dependencies import VerifyResult, denied, evaluate
from app.features.tracking.models import TrackRecord
from app.features.tracking.schemas import TrackInfo, TrackSearchFilter
from app.features.users.auth import find_user
from app.features.users.dependencies import get_session
from app.features.users.models import User


router = APIRouter(tags=["track"])


async def _predicates(db: AsyncSession, search: TrackSearchFilter) -> list:
    user = await find_user(db, search.user) if search.user else None
    return [
        Equals(TrackRecord.table_name, search.table),
        Equals(TrackRecord.column_name, search.column),
        Equals(TrackRecord.user_id, user.id if user else None),
        Equals(TrackRecord.level, search.level),
    ]


@router.get("/.count")
async def get_track_count(
    search: Annotated[TrackSearchFilter, Query()],
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Number of track records matching the filter. Requires ``track_manage``."""
    result = evaluate(session, settings.track_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    predicates = await _predicates(db, search)
    count = await db.scalar(filtered_count(TrackRecord, predicates, search.skip, search.take))
    return basic_response(data=count)


@router.get("/.list")
async def get_track_list(
    search: Annotated[TrackSearchFilter, Query()],
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Track records matching the filter, oldest first. Requires ``track_manage``."""
    result = evaluate(session, settings.track_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    predicates = await _predicates(db, search)
    records = (await db.scalars(
        filtered_select(TrackRecord, predicates, search.skip, search.take)
    )).all()

    user_ids = {r.user_id for r in records if r.user_id is not None}
    names = {}
    if user_ids:
        rows = await db.execute(select(User.id, User.name).where(User.id.in_(user_ids)))
        names = dict(rows.all())

    return basic_response(data=[
        TrackInfo(
            id=r.id,
            level=r.level,
            user=names.get(r.user_id),
            table=r.table_name,
            row=r.row_id,
            column=r.column_name,
            note=r.note,
            previous=r.previous,
            new=r.new,
            time=r.time,
        ).model_dump()
        for r in records
    ])
