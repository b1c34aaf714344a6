"""
Roster store: the single owner of students, groups, device bindings and the
last-join marker.

Mutations never touch the committed state in place. The writer takes a
working copy (`begin()`), applies primitives on it, then `commit()` swaps the
reference. Readers (`snapshot()`) therefore always see a whole committed
roster, never a half-applied one.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from classgroups.schemas.roster_schemas import (
    Counts,
    Group,
    LastJoin,
    PublicGroup,
    PublicView,
    RosterState,
    Student,
)
from classgroups.utils.common import name_key, normalize_name
from classgroups.utils.logger import configure_logging

logger = configure_logging()


class InvalidRosterRecord(ValueError):
    """Stored record is structurally unusable; caller falls back to an empty roster."""


def empty_roster(capacities: list[int]) -> RosterState:
    return RosterState(
        groups=[Group(id=idx + 1, capacity=cap) for idx, cap in enumerate(capacities)],
    )


def parse_roster(raw: Any) -> RosterState:
    """
    Validate a stored record loosely, the way it may have been written by older
    versions or edited by hand. `groups` and `students` must be lists; anything
    else unusable is dropped rather than rejected.
    """
    if not isinstance(raw, dict):
        raise InvalidRosterRecord("roster record is not an object")
    if not isinstance(raw.get("groups"), list) or not isinstance(raw.get("students"), list):
        raise InvalidRosterRecord("roster record has no groups/students lists")

    students: list[Student] = []
    for item in raw["students"]:
        try:
            students.append(Student.model_validate(item))
        except PydanticValidationError:
            logger.warning("dropping malformed student record=%r", item)

    groups: list[Group] = []
    for item in raw["groups"]:
        try:
            groups.append(Group.model_validate(item))
        except PydanticValidationError:
            logger.warning("dropping malformed group record=%r", item)

    devices = raw.get("devices")
    if not isinstance(devices, dict):
        devices = {}
    devices = {str(k): str(v) for k, v in devices.items() if isinstance(v, str) and v}

    last_join = None
    if isinstance(raw.get("lastJoin"), dict):
        try:
            last_join = LastJoin.model_validate(raw["lastJoin"])
        except PydanticValidationError:
            last_join = None

    return RosterState(
        version=raw.get("version") if isinstance(raw.get("version"), int) else 1,
        students=students,
        groups=groups,
        devices=devices,
        last_join=last_join,
    )


def reconcile(state: RosterState, capacities: list[int]) -> RosterState:
    """
    Rebuild every group's member list from the student list.

    Students are the source of truth; stored member lists are discarded. Groups
    come from the configured partition, so a student pointing at an unknown
    group, a duplicate name or a student beyond the group's capacity is dropped.
    """
    fresh = empty_roster(capacities)
    by_id = {g.id: g for g in fresh.groups}
    seen: set[str] = set()
    kept: list[Student] = []
    for s in state.students:
        name = normalize_name(s.name)
        group = by_id.get(s.group_id)
        if not name or group is None:
            logger.warning("reconcile: dropping student name=%r group=%s (unknown group)", s.name, s.group_id)
            continue
        if name_key(name) in seen:
            logger.warning("reconcile: dropping duplicate student name=%r", s.name)
            continue
        if group.remaining <= 0:
            logger.warning("reconcile: dropping student name=%r group=%s (over capacity)", s.name, s.group_id)
            continue
        seen.add(name_key(name))
        group.members.append(name)
        kept.append(Student(name=name, group_id=group.id, at=s.at))

    last_join = state.last_join
    if last_join is not None and last_join.group_id not in by_id:
        last_join = None

    return RosterState(
        students=kept,
        groups=fresh.groups,
        devices=dict(state.devices),
        last_join=last_join,
    )


class Roster:
    """
    Mutation primitives over one working copy of the roster state.
    Only the assignment engine calls these; they assume preconditions were checked.
    """

    def __init__(self, state: RosterState):
        self.state = state

    @property
    def joined(self) -> int:
        return len(self.state.students)

    @property
    def total(self) -> int:
        return sum(g.capacity for g in self.state.groups)

    def find_student(self, name: str) -> Optional[Student]:
        key = name_key(name)
        return next((s for s in self.state.students if name_key(s.name) == key), None)

    def group(self, group_id: int) -> Optional[Group]:
        return next((g for g in self.state.groups if g.id == group_id), None)

    def device_owner(self, device_id: str) -> Optional[str]:
        return self.state.devices.get(device_id)

    def add_student(self, name: str, group: Group, at: int) -> Student:
        student = Student(name=name, group_id=group.id, at=at)
        group.members.append(name)
        self.state.students.append(student)
        return student

    def move_student(self, student: Student, target: Group, at: int) -> None:
        old = self.group(student.group_id)
        if old is not None:
            key = name_key(student.name)
            old.members = [n for n in old.members if name_key(n) != key]
        target.members.append(student.name)
        student.group_id = target.id
        student.at = at

    def remove_student(self, student: Student) -> None:
        key = name_key(student.name)
        self.state.students = [s for s in self.state.students if name_key(s.name) != key]
        group = self.group(student.group_id)
        if group is not None:
            group.members = [n for n in group.members if name_key(n) != key]

    def bind_device(self, device_id: str, name: str) -> bool:
        """First write wins. Returns True if a new binding was recorded."""
        if device_id in self.state.devices:
            return False
        self.state.devices[device_id] = name
        return True

    def mark_last_join(self, name: str, group_id: int, at: int) -> None:
        self.state.last_join = LastJoin(name=name, group_id=group_id, at=at)


class RosterStore:
    """Owns the committed roster. Not thread-safe for writers; the service serializes them."""

    def __init__(self, capacities: list[int]):
        self.capacities = list(capacities)
        self._state = empty_roster(self.capacities)

    @property
    def total(self) -> int:
        return sum(self.capacities)

    @property
    def state(self) -> RosterState:
        return self._state

    def load(self, raw: Any) -> RosterState:
        """
        Replace the committed state with a stored record, reconciled.
        Raises InvalidRosterRecord if the record is unusable.
        """
        self._state = reconcile(parse_roster(raw), self.capacities)
        return self._state

    def reset(self) -> RosterState:
        self._state = empty_roster(self.capacities)
        return self._state

    def reconcile(self) -> RosterState:
        self._state = reconcile(self._state, self.capacities)
        return self._state

    def begin(self) -> Roster:
        return Roster(self._state.model_copy(deep=True))

    def commit(self, roster: Roster) -> RosterState:
        self._state = roster.state
        return self._state

    def export(self) -> dict:
        return self._state.dump()

    def snapshot(self) -> PublicView:
        state = self._state
        joined = len(state.students)
        return PublicView(
            groups=tuple(
                PublicGroup(id=g.id, capacity=g.capacity, members=tuple(g.members))
                for g in sorted(state.groups, key=lambda g: g.id)
            ),
            total=self.total,
            counts=Counts(joined=joined, remaining=self.total - joined),
            last_join=state.last_join.model_copy() if state.last_join else None,
        )
