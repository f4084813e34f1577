"""
User group management routes.

    GET    /{name}  info
    POST   /{name}  add
    DELETE /{name}  disable
    PATCH  /{name}  change information
    GET    /.count  filtered count
    GET    /.list   filtered list
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import ModuleSettings, get_settings
from app.core.database.engine import get_db
from app.core.query import Contains, Equals, filtered_count, filtered_select
from app.core.responses import basic_response
from app.core.validators import is_valid_name
from app.features.groups.dependencies import find_group
from app.features.groups.models import UserGroup
from app.features.groups.schemas import GroupCreate, GroupInfo, GroupSearchFilter, GroupUpdate
from app.features.permissions.dependencies import VerifyResult, denied, evaluate
from app.features.tracking.models import TrackLevel
from app.features.tracking.service import write_track_record
from app.features.users.dependencies import get_session
from app.features.users.models import User


router = APIRouter(tags=["usergroup"])

TABLE = UserGroup.__tablename__


def _predicates(search: GroupSearchFilter) -> list:
    return [
        Contains(UserGroup.name, search.name),
        Equals(UserGroup.disabled, search.disabled),
    ]


async def _user_counts(db: AsyncSession, group_ids: list[int]) -> dict[int, int]:
    if not group_ids:
        return {}
    result = await db.execute(
        select(User.user_group_id, func.count())
        .where(User.user_group_id.in_(group_ids))
        .group_by(User.user_group_id)
    )
    return {group_id: count for group_id, count in result.all()}


def _info(group: UserGroup, users: int) -> dict:
    return GroupInfo(
        name=group.name,
        note=group.note,
        permission=group.permission,
        disabled=group.disabled,
        users=users,
    ).model_dump()


@router.get("/.count")
async def get_group_count(
    search: Annotated[GroupSearchFilter, Query()],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Number of groups matching the filter (public)."""
    count = await db.scalar(filtered_count(UserGroup, _predicates(search), search.skip, search.take))
    return basic_response(data=count)


@router.get("/.list")
async def get_group_list(
    search: Annotated[GroupSearchFilter, Query()],
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Groups matching the filter with their user counts. Requires ``group_manage``."""
    result = evaluate(session, settings.group_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    groups = (await db.scalars(
        filtered_select(UserGroup, _predicates(search), search.skip, search.take)
    )).all()
    counts = await _user_counts(db, [g.id for g in groups])
    return basic_response(data=[_info(g, counts.get(g.id, 0)) for g in groups])


@router.get("/{name}")
async def get_info(
    name: str,
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Get group information (public).

    Returns:
        {name, note, permission, disabled, users}
    """
    group = await find_group(db, name)
    if group is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_group)
    counts = await _user_counts(db, [group.id])
    return basic_response(data=_info(group, counts.get(group.id, 0)))


@router.post("/{name}")
async def add(
    name: str,
    body: GroupCreate,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Add a group. Requires ``group_adding``.

    Errors:
        400 InvalidGroupNameFormat, 401/403 permission, 409 GroupAlreadyExist
    """
    if not is_valid_name(name):
        return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_group_name_format)
    result = evaluate(session, settings.group_adding)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    if await find_group(db, name) is not None:
        return basic_response(status.HTTP_409_CONFLICT, settings.group_already_exist)

    group = UserGroup(name=name, note=body.note, permission=body.permission)
    db.add(group)
    await db.flush()
    await write_track_record(
        db, TrackLevel.INFO_L3, session, TABLE, group.id,
        note=settings.add_group
    )
    return basic_response(data=group.id)


@router.delete("/{name}")
async def disable(
    name: str,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Disable a group. Requires ``group_modify_disabled``.

    Errors:
        401/403 permission, 404 NoTargetGroup, 403 CannotDisableSelfGroup
    """
    result = evaluate(session, settings.group_modify_disabled)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    group = await find_group(db, name)
    if group is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_group)
    if session is not None and session.user_group_id == group.id:
        return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_disable_self_group)

    previous = group.disabled
    group.disabled = True
    await write_track_record(
        db, TrackLevel.INFO_L1, session, TABLE, group.id, "disabled",
        note=settings.disable_group, previous=previous, new=True
    )
    return basic_response()


@router.patch("/{name}")
async def change_group_information(
    name: str,
    body: GroupUpdate,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Change name, note, permission and disabled flag, in that order.

    - name, note: ``group_manage``; a new name must be well formed and free
    - permission: ``group_modify_permission``
    - disabled: never for one's own group; ``group_modify_disabled``

    Processing stops at the first failing field; the response carries
    ``{field: true}`` for the fields changed before it.
    """
    if session is None:
        return denied(VerifyResult.NO_SESSION, settings=settings)
    target = await find_group(db, name)
    if target is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_group)
    fields = body.model_fields_set
    final_data: dict[str, bool] = {}

    if "name" in fields:
        result = evaluate(session, settings.group_manage)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        if not is_valid_name(body.name):
            return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_group_name_format, final_data)
        if await find_group(db, body.name) is not None:
            return basic_response(status.HTTP_409_CONFLICT, settings.group_already_exist, final_data)
        previous = target.name
        target.name = body.name
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "name",
            note=settings.change_group_name, previous=previous, new=target.name
        )
        final_data["name"] = True

    if "note" in fields:
        result = evaluate(session, settings.group_manage)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        previous = target.note
        target.note = body.note
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "note",
            note=settings.change_group_note, previous=previous, new=target.note
        )
        final_data["note"] = True

    if "permission" in fields:
        result = evaluate(session, settings.group_modify_permission)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        previous = target.permission
        target.permission = body.permission
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "permission",
            note=settings.change_group_permission, previous=previous, new=target.permission
        )
        final_data["permission"] = True

    if "disabled" in fields:
        if session.user_group_id == target.id:
            return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_disable_self_group, final_data)
        result = evaluate(session, settings.group_modify_disabled)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        previous = target.disabled
        target.disabled = body.disabled
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "disabled",
            note=settings.change_group_disabled, previous=previous, new=target.disabled
        )
        final_data["disabled"] = True

    return basic_response(data=final_data)
