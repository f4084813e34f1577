"""
User group model.
"""
from sqlalchemy import String, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, LastUpdateMixin


class UserGroup(Base, LastUpdateMixin):
    """
    Group of users sharing one permission string.

    ``permission`` is an opaque list of capability tokens, see
    ``app.features.permissions.dependencies.parse_permission``.
    """
    __tablename__ = "user_group"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    permission: Mapped[str] = mapped_column(Text, default="", nullable=False)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<UserGroup(id={self.id}, name={self.name!r})>"
