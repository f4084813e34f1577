"""
Format checks shared by every resource.
"""
import re

_PASSWORD_HASH = re.compile(r"[0-9A-F]{64}")
_FORBIDDEN_NAME_CHARACTERS = ("/", "\\", "?")


def is_valid_name(name: str | None) -> bool:
    """
    Names of users, groups and item details end up in URL paths.

    They must be non-empty, cannot contain ``/``, ``\\`` or ``?`` and cannot
    start with ``.`` (reserved for ``/.count`` and ``/.list``).
    """
    if not name:
        return False
    if any(c in name for c in _FORBIDDEN_NAME_CHARACTERS):
        return False
    return not name.startswith(".")


def is_password_hash(value: str | None) -> bool:
    """Passwords travel as the uppercase hex SHA256 digest, nothing else."""
    return value is not None and _PASSWORD_HASH.fullmatch(value) is not None
