"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.core.query import SearchFilter


class UserRegister(BaseModel):
    """Body of ``POST /{name}``."""
    password: str = Field(..., description="Uppercase hex SHA256 of the password")


class UserSignIn(BaseModel):
    """Body of ``PUT /{name}/token``."""
    password: str = Field(..., description="Uppercase hex SHA256 of the password")


class UserUpdate(BaseModel):
    """
    Body of ``PATCH /{name}``.

    Only the fields present in the request are processed, in declaration
    order. ``password`` may be null or empty when an administrator resets
    another user's password; the other fields reject an explicit null.
    """
    model_config = ConfigDict(populate_by_name=True)

    password: Optional[str] = None
    group: str = None
    allow_multi: bool = Field(None, alias="allowMulti")
    disabled: bool = None


class UserSearchFilter(SearchFilter):
    """Filter of ``GET /.count`` and ``GET /.list``."""
    group: Optional[str] = Field(None, description="Exact group name")


class UserInfo(BaseModel):
    """What ``GET /{name}`` and ``GET /.list`` report about a user."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    group: str
    access_time: Optional[datetime] = Field(None, serialization_alias="accessTime")
    access_address: Optional[str] = Field(None, serialization_alias="accessAddress")
    allow_multi: bool = Field(..., serialization_alias="allowMulti")
    disabled: bool
    update: datetime

    @classmethod
    def from_user(cls, user) -> "UserInfo":
        return cls(
            name=user.name,
            group=user.group.name,
            access_time=user.last_access_time,
            access_address=user.last_access_address,
            allow_multi=user.allow_multi_address_login,
            disabled=user.disabled,
            update=user.last_update,
        )
