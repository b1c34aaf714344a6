"""
Roster record schemas.

RosterState is the persisted shape (camelCase keys, same layout as a file-based
data/state.json plus a version). PublicView is what observers get; it never
carries device bindings.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ROSTER_VERSION = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Student(_CamelModel):
    name: str
    group_id: int = Field(alias="groupId")
    at: int


class Group(_CamelModel):
    id: int
    capacity: int
    members: list[str] = Field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.capacity - len(self.members)


class LastJoin(_CamelModel):
    name: str
    group_id: int = Field(alias="groupId")
    at: int


class RosterState(_CamelModel):
    version: int = ROSTER_VERSION
    students: list[Student] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    devices: dict[str, str] = Field(default_factory=dict)
    last_join: Optional[LastJoin] = Field(default=None, alias="lastJoin")

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PublicGroup(_CamelModel):
    model_config = ConfigDict(frozen=True)

    id: int
    capacity: int
    members: tuple[str, ...]


class Counts(_CamelModel):
    model_config = ConfigDict(frozen=True)

    joined: int
    remaining: int


class PublicView(_CamelModel):
    """Immutable snapshot pushed to observers and returned from GET /state."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    groups: tuple[PublicGroup, ...]
    total: int
    counts: Counts
    last_join: Optional[LastJoin] = Field(default=None, alias="lastJoin")

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
