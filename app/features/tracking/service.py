"""
Audit trail writer.
"""
from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.tracking.models import TrackLevel, TrackRecord
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def write_track_record(
    db: AsyncSession,
    level: TrackLevel,
    actor: Optional[User],
    table: str,
    row_id: int,
    column: str = "",
    note: Optional[str] = None,
    previous: Any = None,
    new: Any = None,
    credential: bool = False,
) -> TrackRecord:
    """
    Append a track record to the current unit of work.

    The record is committed together with the change it describes when the
    request's session commits.

    Args:
        db: Database session of the request
        level: Severity
        actor: User performing the change
        table: Target table name
        row_id: Target row id (must already be flushed)
        column: Changed column, empty for whole-row operations
        note: Human readable description
        previous: Value before the change
        new: Value after the change
        credential: Never store the values, only mark the column as changed

    Returns:
        The pending TrackRecord
    """
    if credential:
        previous, new = None, True
    else:
        previous, new = jsonable_encoder(previous), jsonable_encoder(new)

    record = TrackRecord(
        level=level,
        user_id=actor.id if actor is not None else None,
        table_name=table,
        row_id=row_id,
        column_name=column,
        note=note,
        previous=previous,
        new=new,
    )
    db.add(record)
    await db.flush()

    log.info(
        "Track: level=%s user=%s %s:%s column=%s note=%s",
        level.value, record.user_id, table, row_id, column or "-", note
    )

    return record
