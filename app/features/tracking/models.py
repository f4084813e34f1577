"""
Audit trail ("track") model.
"""
import enum
from datetime import datetime
from typing import Any, Optional
from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, utcnow


class TrackLevel(str, enum.Enum):
    """Severity of a track record."""
    INFO_L1 = "InfoL1"
    INFO_L2 = "InfoL2"
    INFO_L3 = "InfoL3"
    WARNING = "Warning"
    ERROR = "Error"


class TrackRecord(Base):
    """
    One field-level change (or row creation) made by a user.

    Append-only: rows are inserted by ``write_track_record`` and never
    updated or deleted.
    """
    __tablename__ = "track"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    level: Mapped[TrackLevel] = mapped_column(
        Enum(TrackLevel, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        index=True
    )

    # Actor
    user_id: Mapped[int | None] = mapped_column(ForeignKey("user.id"), nullable=True, index=True)

    # Target
    table_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    row_id: Mapped[int] = mapped_column(nullable=False, index=True)
    column_name: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    new: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<TrackRecord(id={self.id}, level={self.level.value}, table={self.table_name}, row={self.row_id}, column={self.column_name})>"
