"""
Pydantic schemas for item detail requests and responses.

Lookup values (unit, container, state, type) travel by name.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.core.query import SearchFilter


class ItemDetailCreate(BaseModel):
    """Body of ``POST /{name}``."""
    prefix: str = Field("", max_length=32)
    cas: str = Field("", max_length=32, description="CAS registry number")
    unit: str
    size: float = Field(0.0, ge=0)
    container: str
    state: str
    type: str
    msds: Optional[datetime] = Field(None, description="Date of the MSDS on file")
    required: int = Field(0, ge=0, description="Minimum stock")
    note: str = ""


class ItemDetailUpdate(BaseModel):
    """
    Body of ``PATCH /{name}``.

    Present fields are processed in declaration order. Only ``msds`` may be
    set to null.
    """
    name: str = None
    prefix: str = Field(None, max_length=32)
    cas: str = Field(None, max_length=32)
    unit: str = None
    size: float = Field(None, ge=0)
    container: str = None
    state: str = None
    type: str = None
    msds: Optional[datetime] = None
    required: int = Field(None, ge=0)
    note: str = None
    disabled: bool = None


class ItemDetailSearchFilter(SearchFilter):
    """Filter of ``GET /.count`` and ``GET /.list``."""
    cas: Optional[str] = Field(None, description="Exact CAS number")
    type: Optional[str] = Field(None, description="Exact detail type name")


class ItemDetailInfo(BaseModel):
    """What ``GET /{name}`` and ``GET /.list`` report about an item detail."""
    name: str
    prefix: str
    cas: str
    unit: str
    size: float
    container: str
    state: str
    type: str
    msds: Optional[datetime]
    required: int
    note: str
    disabled: bool
    update: datetime

    @classmethod
    def from_detail(cls, detail) -> "ItemDetailInfo":
        return cls(
            name=detail.name,
            prefix=detail.prefix,
            cas=detail.cas,
            unit=detail.unit.name,
            size=detail.size,
            container=detail.container_type.name,
            state=detail.physical_state.name,
            type=detail.detail_type.name,
            msds=detail.msds_date,
            required=detail.required,
            note=detail.note,
            disabled=detail.disabled,
            update=detail.last_update,
        )
