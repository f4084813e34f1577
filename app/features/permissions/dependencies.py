"""
Permission evaluation and the denied-response mapping.
"""
import enum
import re
from typing import Any, Optional
from fastapi import status
from starlette.responses import JSONResponse

from app.core.config import MODULE, ModuleSettings
from app.core.responses import basic_response
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

_SEPARATORS = re.compile(r"[\s,;|]+")


class VerifyResult(enum.Enum):
    GRANTED = "Granted"
    NO_SESSION = "NoSession"
    FORBIDDEN = "Forbidden"


def parse_permission(permission: Optional[str]) -> frozenset[str]:
    """
    Split a permission string into capability tokens.

    Tokens are separated by commas, semicolons, pipes or whitespace, so
    ``"USER_MANAGE, USER_ADD"`` and ``"USER_MANAGE USER_ADD"`` are the same.
    """
    if not permission:
        return frozenset()
    return frozenset(token for token in _SEPARATORS.split(permission) if token)


def evaluate(session: Optional[User], capability: Optional[str]) -> VerifyResult:
    """
    Check whether ``session`` may use ``capability``.

    An empty capability marks a public operation and is always granted.
    Otherwise the session must exist and its group's permission string must
    contain the capability token.
    """
    if not capability:
        return VerifyResult.GRANTED
    if session is None:
        return VerifyResult.NO_SESSION
    if capability in parse_permission(session.group.permission):
        log.debug("User %s granted %s", session.id, capability)
        return VerifyResult.GRANTED
    log.debug("User %s denied %s", session.id, capability)
    return VerifyResult.FORBIDDEN


def denied(
    result: VerifyResult,
    data: Any = None,
    settings: Optional[ModuleSettings] = None,
) -> JSONResponse:
    """Envelope for a failed ``evaluate``: 401 without session, 403 otherwise."""
    settings = settings or MODULE
    if result is VerifyResult.NO_SESSION:
        return basic_response(status.HTTP_401_UNAUTHORIZED, settings.nonexistent_token, data)
    return basic_response(status.HTTP_403_FORBIDDEN, settings.permission_denied, data)
