"""
Request/response bodies for the roster routes.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

JoinStatus = Literal["ok", "exists", "moved"]


class _CamelModel(BaseModel):
    # Clients may send numeric names or device ids; they are treated as text.
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class JoinRequest(_CamelModel):
    name: Optional[str] = None
    group_id: Optional[int] = Field(default=None, alias="groupId")
    device_id: Optional[str] = Field(default=None, alias="deviceId")

    @field_validator("group_id", mode="before")
    @classmethod
    def _blank_group_is_auto(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LeaveRequest(_CamelModel):
    name: Optional[str] = None
    device_id: Optional[str] = Field(default=None, alias="deviceId")


class ResetRequest(_CamelModel):
    token: Optional[str] = None


class JoinResponse(_CamelModel):
    ok: bool = True
    group_id: int = Field(alias="groupId")
    status: JoinStatus


class LeaveResponse(_CamelModel):
    ok: bool = True
    group_id: int = Field(alias="groupId")


class ResetResponse(BaseModel):
    ok: bool = True


class ErrorResponse(_CamelModel):
    """Body for every rejected request. `scope`/`groupId` only set for `full`."""

    ok: bool = False
    error: str
    detail: str
    scope: Optional[Literal["group", "roster"]] = None
    group_id: Optional[int] = Field(default=None, alias="groupId")


class HealthResponse(BaseModel):
    message: str
