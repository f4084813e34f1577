"""
Item detail management routes.

    GET    /{name}  info
    POST   /{name}  add
    DELETE /{name}  disable
    PATCH  /{name}  change information
    GET    /.count  filtered count
    GET    /.list   filtered list
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import ModuleSettings, get_settings
from app.core.database.engine import get_db
from app.core.query import Contains, Equals, filtered_count, filtered_select
from app.core.responses import basic_response
from app.core.validators import is_valid_name
from app.features.item_details.models import ContainerType, ItemDetail, ItemDetailType, PhysicalState, Unit
from app.features.item_details.schemas import (
    ItemDetailCreate,
    ItemDetailInfo,
    ItemDetailSearchFilter,
    ItemDetailUpdate,
)
from app.features.permissions.dependencies import VerifyResult, denied, evaluate
from app.features.tracking.models import TrackLevel
from app.features.tracking.service import write_track_record
from app.features.users.dependencies import get_session
from app.features.users.models import User


router = APIRouter(tags=["item-detail"])

TABLE = ItemDetail.__tablename__

# payload field -> (relationship on ItemDetail, lookup model, error tag setting)
LOOKUPS = {
    "unit": ("unit", Unit, "no_target_unit"),
    "container": ("container_type", ContainerType, "no_target_container_type"),
    "state": ("physical_state", PhysicalState, "no_target_physical_state"),
    "type": ("detail_type", ItemDetailType, "no_target_detail_type"),
}

# payload field -> column on ItemDetail
COLUMNS = {
    "name": "name",
    "prefix": "prefix",
    "cas": "cas",
    "size": "size",
    "msds": "msds_date",
    "required": "required",
    "note": "note",
}


async def find_item_detail(db: AsyncSession, name: str) -> Optional[ItemDetail]:
    return await db.scalar(select(ItemDetail).where(ItemDetail.name == name))


async def find_lookup(db: AsyncSession, model, name: Optional[str]):
    """Enabled lookup row with this name, or None."""
    if not name:
        return None
    return await db.scalar(
        select(model).where(model.name == name, model.disabled == False)  # noqa: E712
    )


async def _predicates(db: AsyncSession, search: ItemDetailSearchFilter) -> list:
    detail_type = await find_lookup(db, ItemDetailType, search.type)
    return [
        Contains(ItemDetail.name, search.name),
        Equals(ItemDetail.cas, search.cas),
        Equals(ItemDetail.detail_type_id, detail_type.id if detail_type else None),
        Equals(ItemDetail.disabled, search.disabled),
    ]


@router.get("/.count")
async def get_item_detail_count(
    search: Annotated[ItemDetailSearchFilter, Query()],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Number of item details matching the filter (public)."""
    predicates = await _predicates(db, search)
    count = await db.scalar(filtered_count(ItemDetail, predicates, search.skip, search.take))
    return basic_response(data=count)


@router.get("/.list")
async def get_item_detail_list(
    search: Annotated[ItemDetailSearchFilter, Query()],
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Item details matching the filter. Requires ``item_detail_manage``."""
    result = evaluate(session, settings.item_detail_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    predicates = await _predicates(db, search)
    details = (await db.scalars(
        filtered_select(ItemDetail, predicates, search.skip, search.take)
    )).all()
    return basic_response(data=[ItemDetailInfo.from_detail(d).model_dump() for d in details])


@router.get("/{name}")
async def get_info(
    name: str,
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get item detail information (public)."""
    detail = await find_item_detail(db, name)
    if detail is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_item_detail)
    return basic_response(data=ItemDetailInfo.from_detail(detail).model_dump())


@router.post("/{name}")
async def add(
    name: str,
    body: ItemDetailCreate,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Add an item detail. Requires ``item_detail_adding``.

    Errors:
        401/403 permission, 400 InvalidItemDetailNameFormat,
        409 ItemDetailAlreadyExist, 404 NoTargetUnit / NoTargetContainerType /
        NoTargetPhysicalState / NoTargetDetailType
    """
    result = evaluate(session, settings.item_detail_adding)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    if not is_valid_name(name):
        return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_item_detail_name_format)
    if await find_item_detail(db, name) is not None:
        return basic_response(status.HTTP_409_CONFLICT, settings.item_detail_already_exist)

    lookups = {}
    for field, (relation, model, error) in LOOKUPS.items():
        value = await find_lookup(db, model, getattr(body, field))
        if value is None:
            return basic_response(status.HTTP_404_NOT_FOUND, getattr(settings, error))
        lookups[relation] = value

    detail = ItemDetail(
        name=name,
        prefix=body.prefix,
        cas=body.cas,
        size=body.size,
        msds_date=body.msds,
        required=body.required,
        note=body.note,
        **lookups,
    )
    db.add(detail)
    await db.flush()
    await write_track_record(
        db, TrackLevel.INFO_L3, session, TABLE, detail.id,
        note=settings.add_item_detail
    )
    return basic_response(data=detail.id)


@router.delete("/{name}")
async def disable(
    name: str,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Disable an item detail. Requires ``item_detail_disable``."""
    result = evaluate(session, settings.item_detail_disable)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    detail = await find_item_detail(db, name)
    if detail is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_item_detail)

    previous = detail.disabled
    detail.disabled = True
    await write_track_record(
        db, TrackLevel.INFO_L1, session, TABLE, detail.id, "disabled",
        note=settings.disable_item_detail, previous=previous, new=True
    )
    return basic_response()


@router.patch("/{name}")
async def change_item_detail_information(
    name: str,
    body: ItemDetailUpdate,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Change any field of an item detail.

    Content fields need ``item_detail_modify``, ``disabled`` needs
    ``item_detail_disable``. Fields are processed in the order of
    ``ItemDetailUpdate``; processing stops at the first failure and the
    response carries ``{field: true}`` for the fields changed before it.
    """
    if session is None:
        return denied(VerifyResult.NO_SESSION, settings=settings)
    target = await find_item_detail(db, name)
    if target is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_item_detail)
    fields = body.model_fields_set
    final_data: dict[str, bool] = {}

    for field in ItemDetailUpdate.model_fields:
        if field not in fields:
            continue
        value = getattr(body, field)

        if field == "disabled":
            result = evaluate(session, settings.item_detail_disable)
            if result is not VerifyResult.GRANTED:
                return denied(result, final_data, settings)
            previous = target.disabled
            target.disabled = value
            await write_track_record(
                db, TrackLevel.INFO_L1, session, TABLE, target.id, "disabled",
                note=settings.change_item_detail_disabled, previous=previous, new=value
            )
            final_data[field] = True
            continue

        result = evaluate(session, settings.item_detail_modify)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)

        if field in LOOKUPS:
            relation, model, error = LOOKUPS[field]
            lookup = await find_lookup(db, model, value)
            if lookup is None:
                return basic_response(status.HTTP_404_NOT_FOUND, getattr(settings, error), final_data)
            column = f"{relation}_id"
            previous = getattr(target, relation).name
            setattr(target, relation, lookup)
            new = lookup.name
        else:
            if field == "name":
                if not is_valid_name(value):
                    return basic_response(
                        status.HTTP_400_BAD_REQUEST, settings.invalid_item_detail_name_format, final_data
                    )
                if await find_item_detail(db, value) is not None:
                    return basic_response(status.HTTP_409_CONFLICT, settings.item_detail_already_exist, final_data)
            column = COLUMNS[field]
            previous = getattr(target, column)
            setattr(target, column, value)
            new = value

        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, column,
            note=settings.change_item_detail, previous=previous, new=new
        )
        final_data[field] = True

    return basic_response(data=final_data)
