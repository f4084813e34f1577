"""
User (principal) model.
"""
import unicodedata
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.database.base import Base, LastUpdateMixin


def fold_name(name: str) -> str:
    """Form under which user names are compared: NFC normalized, case folded."""
    return unicodedata.normalize("NFC", name).casefold()


class User(Base, LastUpdateMixin):
    """
    A principal able to sign in.

    Names are compared case-insensitively through ``name_key``, kept in sync
    with ``name`` and unique at the database level. Users are never deleted,
    only disabled.
    """
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # Uppercase hex SHA256 of the password
    password: Mapped[str] = mapped_column(String(64), nullable=False)

    user_group_id: Mapped[int] = mapped_column(
        ForeignKey("user_group.id"),
        nullable=False,
        index=True
    )

    # Session
    access_token: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True, index=True)
    last_access_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_access_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    allow_multi_address_login: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    group: Mapped["UserGroup"] = relationship(  # type: ignore
        "UserGroup",
        lazy="selectin"
    )

    @validates("name")
    def _sync_name_key(self, _key: str, value: str) -> str:
        self.name_key = fold_name(value)
        return value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r})>"

