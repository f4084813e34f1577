"""
User management routes.

    GET    /{name}        info
    POST   /{name}        register
    PUT    /{name}/token  sign in
    DELETE /{name}/token  sign out
    DELETE /{name}        disable
    PATCH  /{name}        change information
    GET    /.count        filtered count
    GET    /.list         filtered list

User names are not case sensitive.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.config import ModuleSettings, get_settings
from app.core.database.engine import get_db
from app.core.query import Contains, Equals, filtered_count, filtered_select
from app.core.rate_limit import limiter
from app.core.responses import basic_response
from app.core.validators import is_password_hash, is_valid_name
from app.features.groups.dependencies import find_active_group, find_group
from app.features.permissions.dependencies import VerifyResult, denied, evaluate
from app.features.tracking.models import TrackLevel
from app.features.tracking.service import write_track_record
from app.features.users.auth import find_user, issue_token, password_matches, update_access
from app.features.users.dependencies import get_session
from app.features.users.models import User, fold_name
from app.features.users.schemas import UserInfo, UserRegister, UserSearchFilter, UserSignIn, UserUpdate
from app.utils import get_logger


log = get_logger(__name__)

router = APIRouter(tags=["user"])

TABLE = User.__tablename__


async def _predicates(db: AsyncSession, search: UserSearchFilter) -> list:
    # An unknown group name drops the group condition instead of failing
    group = await find_group(db, search.group)
    return [
        Contains(User.name, search.name),
        Equals(User.user_group_id, group.id if group else None),
        Equals(User.disabled, search.disabled),
    ]


@router.get("/.count")
async def get_user_count(
    search: Annotated[UserSearchFilter, Query()],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Number of users matching the filter (public)."""
    predicates = await _predicates(db, search)
    count = await db.scalar(filtered_count(User, predicates, search.skip, search.take))
    return basic_response(data=count)


@router.get("/.list")
async def get_user_list(
    search: Annotated[UserSearchFilter, Query()],
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Users matching the filter, ordered by id. Requires ``user_manage``."""
    result = evaluate(session, settings.user_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    predicates = await _predicates(db, search)
    users = (await db.scalars(filtered_select(User, predicates, search.skip, search.take))).all()
    return basic_response(data=[UserInfo.from_user(u).model_dump(by_alias=True) for u in users])


@router.get("/{name}")
async def get_info(
    name: str,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Get user information. Requires ``user_manage``.

    Returns:
        {name, group, accessTime, accessAddress, allowMulti, disabled, update}

    Errors:
        401 NonexistentToken / 403 PermissionDenied, 404 NoTargetUser
    """
    result = evaluate(session, settings.user_manage)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    user = await find_user(db, name)
    if user is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_user)
    return basic_response(data=UserInfo.from_user(user).model_dump(by_alias=True))


@router.post("/{name}")
async def register(
    name: str,
    body: UserRegister,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Register a user in the default group. Requires ``user_adding``.

    Returns:
        id of the new user

    Errors:
        401/403 permission, 400 InvalidUsernameFormat, 400 InvalidPasswordFormat,
        409 UserAlreadyExist, 404 NoTargetGroup (default group missing or disabled)
    """
    result = evaluate(session, settings.user_adding)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    if not is_valid_name(name):
        return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_username_format)
    if not is_password_hash(body.password):
        return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_password_format)
    if await find_user(db, name) is not None:
        return basic_response(status.HTTP_409_CONFLICT, settings.user_already_exist)
    group = await find_active_group(db, settings.default_user_group)
    if group is None:
        log.error("Default group %r is missing or disabled", settings.default_user_group)
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_group)

    user = User(name=name, password=body.password, group=group)
    db.add(user)
    await db.flush()
    await write_track_record(
        db, TrackLevel.INFO_L3, session, TABLE, user.id,
        note=settings.add_user
    )
    return basic_response(data=user.id)


@router.put("/{name}/token")
@limiter.limit(config.SIGN_IN_RATE_LIMIT)
async def sign_in(
    request: Request,
    name: str,
    body: UserSignIn,
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Sign in and get an access token (public).

    A user allowing multi-address login keeps sharing its active token;
    otherwise a new token replaces (and invalidates) the previous one.

    Errors:
        400 InvalidPasswordFormat, 404 NoTargetUser, 403 WrongPassword,
        403 DisabledUser, 403 DisabledGroup
    """
    if not is_password_hash(body.password):
        return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_password_format)
    user = await find_user(db, name)
    if user is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_user)
    if not password_matches(user.password, body.password):
        log.info("Wrong password for user %s", user.id)
        return basic_response(status.HTTP_403_FORBIDDEN, settings.wrong_password)
    if user.disabled:
        return basic_response(status.HTTP_403_FORBIDDEN, settings.disabled_user)
    if user.group.disabled:
        return basic_response(status.HTTP_403_FORBIDDEN, settings.disabled_group)

    if not (user.allow_multi_address_login and user.access_token):
        user.access_token = issue_token()
    update_access(user, request)
    log.info("User %s signed in from %s", user.id, user.last_access_address)
    return basic_response(data=user.access_token)


@router.delete("/{name}/token")
async def sign_out(
    request: Request,
    name: str,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)]
):
    """
    Sign out, dropping the access token. Only the owner can sign out.

    Errors:
        401 NonexistentToken, 403 CannotSignOutOthers
    """
    if session is None:
        return denied(VerifyResult.NO_SESSION, settings=settings)
    if session.name_key != fold_name(name):
        return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_sign_out_others)
    session.access_token = None
    update_access(session, request)
    log.info("User %s signed out", session.id)
    return basic_response()


@router.delete("/{name}")
async def delete(
    name: str,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Disable a user. Requires ``user_delete``.

    Errors:
        401/403 permission, 403 CannotRemoveSelf, 404 NoTargetUser
    """
    result = evaluate(session, settings.user_delete)
    if result is not VerifyResult.GRANTED:
        return denied(result, settings=settings)
    if session is not None and session.name_key == fold_name(name):
        return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_remove_self)
    user = await find_user(db, name)
    if user is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_user)

    previous = user.disabled
    user.disabled = True
    await write_track_record(
        db, TrackLevel.INFO_L1, session, TABLE, user.id, "disabled",
        note=settings.remove_user, previous=previous, new=True
    )
    return basic_response()


@router.patch("/{name}")
async def change_user_information(
    name: str,
    body: UserUpdate,
    session: Annotated[Optional[User], Depends(get_session)],
    settings: Annotated[ModuleSettings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Change password, group, multi-address login and disabled flag.

    Fields are handled in that order, each with its own check:

    - password: own password is replaced by the given hash; someone else's
      is reset to the default hash and needs ``user_reset_password``
    - group: never one's own; needs ``user_change_group``
    - allowMulti: free for oneself, otherwise needs ``user_modify``
    - disabled: never one's own; needs ``user_disable``

    Processing stops at the first failing field. The error response still
    carries ``{field: true}`` for the fields already changed, and those
    changes are kept.
    """
    if session is None:
        return denied(VerifyResult.NO_SESSION, settings=settings)
    target = await find_user(db, name)
    if target is None:
        return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_user)
    is_self = target.id == session.id
    fields = body.model_fields_set
    final_data: dict[str, bool] = {}

    if "password" in fields:
        if is_self:
            if not is_password_hash(body.password):
                return basic_response(status.HTTP_400_BAD_REQUEST, settings.invalid_password_format, final_data)
            target.password = body.password
            note = settings.change_password
        else:
            result = evaluate(session, settings.user_reset_password)
            if result is not VerifyResult.GRANTED:
                return denied(result, final_data, settings)
            target.password = settings.default_password_hash
            note = settings.reset_password
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "password",
            note=note, credential=True
        )
        final_data["password"] = True

    if "group" in fields:
        if is_self:
            return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_change_self_group, final_data)
        result = evaluate(session, settings.user_change_group)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        group = await find_active_group(db, body.group)
        if group is None:
            return basic_response(status.HTTP_404_NOT_FOUND, settings.no_target_group, final_data)
        previous = target.group.name
        target.group = group
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "user_group_id",
            note=settings.change_user_group, previous=previous, new=group.name
        )
        final_data["group"] = True

    if "allow_multi" in fields:
        if not is_self:
            result = evaluate(session, settings.user_modify)
            if result is not VerifyResult.GRANTED:
                return denied(result, final_data, settings)
        previous = target.allow_multi_address_login
        target.allow_multi_address_login = body.allow_multi
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "allow_multi_address_login",
            note=settings.change_allow_multi, previous=previous, new=body.allow_multi
        )
        final_data["allowMulti"] = True

    if "disabled" in fields:
        if is_self:
            return basic_response(status.HTTP_403_FORBIDDEN, settings.cannot_disable_self, final_data)
        result = evaluate(session, settings.user_disable)
        if result is not VerifyResult.GRANTED:
            return denied(result, final_data, settings)
        previous = target.disabled
        target.disabled = body.disabled
        await write_track_record(
            db, TrackLevel.INFO_L1, session, TABLE, target.id, "disabled",
            note=settings.change_user_disabled, previous=previous, new=body.disabled
        )
        final_data["disabled"] = True

    return basic_response(data=final_data)
