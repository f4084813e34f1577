"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models should inherit from Base.
"""
from datetime import datetime, timezone
from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from app.core.database.base import Base

        class Unit(Base):
            __tablename__ = "unit"

            id: Mapped[int] = mapped_column(primary_key=True)
            name: Mapped[str] = mapped_column(String(100))
    """
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LastUpdateMixin:
    """
    Mixin adding the ``last_update`` timestamp.

    Computed in Python on insert and on every update so the value is
    available on the instance right after a flush.
    """
    last_update: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class DisableSimpleTableMixin(LastUpdateMixin):
    """
    Integer id, unique name and a soft-delete flag.

    Shared by item details and their lookup tables.
    """
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
