"""
Pydantic schemas for reading the audit trail.
"""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from app.core.query import PageFilter
from app.features.tracking.models import TrackLevel


class TrackSearchFilter(PageFilter):
    """Filter of ``GET /.count`` and ``GET /.list``."""
    table: Optional[str] = Field(None, description="Exact table name")
    column: Optional[str] = Field(None, description="Exact column name")
    user: Optional[str] = Field(None, description="Name of the acting user")
    level: Optional[TrackLevel] = None


class TrackInfo(BaseModel):
    id: int
    level: TrackLevel
    user: Optional[str]
    table: str
    row: int
    column: str
    note: Optional[str]
    previous: Any = None
    new: Any = None
    time: datetime
