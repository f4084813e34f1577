"""
Pydantic schemas for user group requests and responses.
"""
from pydantic import BaseModel, Field

from app.core.query import SearchFilter


class GroupCreate(BaseModel):
    """Body of ``POST /{name}``."""
    note: str = Field("", max_length=1000, description="Description of this group")
    permission: str = Field("", description="Capability tokens granted to members")


class GroupUpdate(BaseModel):
    """
    Body of ``PATCH /{name}``.

    Present fields are processed in declaration order; explicit nulls are
    rejected.
    """
    name: str = Field(None, description="New name")
    note: str = Field(None, max_length=1000)
    permission: str = None
    disabled: bool = None


class GroupSearchFilter(SearchFilter):
    """Filter of ``GET /.count`` and ``GET /.list``."""
    pass


class GroupInfo(BaseModel):
    """What ``GET /{name}`` and ``GET /.list`` report about a group."""
    name: str
    note: str
    permission: str
    disabled: bool
    users: int = Field(..., description="Number of users in this group")
