"""
Assignment engine: join / leave / reset decisions over a roster working copy.

Pure and synchronous. Every operation either applies its whole mutation to
the given Roster and returns an outcome, or raises a RosterError before
touching it. Callers commit the Roster only on success.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional

from classgroups.services.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    InvalidGroupError,
    NotFoundError,
    ValidationError,
)
from classgroups.services.roster_store import Roster, empty_roster
from classgroups.schemas.roster_schemas import Group
from classgroups.utils.common import names_match, normalize_name, normalize_token, now_ms


@dataclass(frozen=True)
class JoinOutcome:
    status: Literal["ok", "exists", "moved"]
    group_id: int
    name: str
    # True when the roster differs from before (new student, move or new device binding).
    changed: bool


@dataclass(frozen=True)
class LeaveOutcome:
    group_id: int
    name: str


class AssignmentEngine:
    def __init__(self, reset_token: str, clock: Callable[[], int] = now_ms):
        self.reset_token = reset_token
        self.clock = clock

    def join(
        self,
        roster: Roster,
        name: object,
        group_id: Optional[int] = None,
        device_id: object = None,
    ) -> JoinOutcome:
        name = normalize_name(name)
        if not name:
            raise ValidationError("A non-empty name is required")
        device_id = normalize_token(device_id)
        if device_id:
            bound = roster.device_owner(device_id)
            if bound and not names_match(bound, name):
                raise ConflictError("This device is already bound to another name; ask the teacher to change it")

        if group_id is None:
            status, group, stored_name = self._auto_assign(roster, name)
        else:
            status, group, stored_name = self._choose(roster, name, group_id)

        changed = status != "exists"
        if device_id and roster.bind_device(device_id, stored_name):
            changed = True
        return JoinOutcome(status=status, group_id=group.id, name=stored_name, changed=changed)

    def _auto_assign(self, roster: Roster, name: str) -> tuple[str, Group, str]:
        existing = roster.find_student(name)
        if existing is not None:
            return "exists", roster.group(existing.group_id), existing.name
        if roster.joined >= roster.total:
            raise CapacityError("All groups are full", scope="roster")
        available = [g for g in roster.state.groups if g.remaining > 0]
        if not available:
            raise CapacityError("All groups are full", scope="roster")
        # Most room first spreads racing clients evenly; lowest id breaks ties.
        chosen = min(available, key=lambda g: (-g.remaining, g.id))
        at = self.clock()
        roster.add_student(name, chosen, at)
        roster.mark_last_join(name, chosen.id, at)
        return "ok", chosen, name

    def _choose(self, roster: Roster, name: str, group_id: int) -> tuple[str, Group, str]:
        target = roster.group(group_id)
        if target is None:
            raise InvalidGroupError(f"Group {group_id} does not exist")
        existing = roster.find_student(name)
        if existing is not None and existing.group_id == target.id:
            return "exists", target, existing.name
        if target.remaining <= 0:
            raise CapacityError(f"Group {target.id} is full, pick another group", scope="group", group_id=target.id)

        at = self.clock()
        if existing is not None:
            roster.move_student(existing, target, at)
            roster.mark_last_join(existing.name, target.id, at)
            return "moved", target, existing.name
        roster.add_student(name, target, at)
        roster.mark_last_join(name, target.id, at)
        return "ok", target, name

    def leave(self, roster: Roster, name: object, device_id: object = None) -> LeaveOutcome:
        # device_id is accepted but bindings are neither checked nor cleared on leave.
        name = normalize_name(name)
        if not name:
            raise ValidationError("A non-empty name is required")
        student = roster.find_student(name)
        if student is None:
            raise NotFoundError(f"No student named {name!r}")
        roster.remove_student(student)
        return LeaveOutcome(group_id=student.group_id, name=student.name)

    def check_reset_token(self, token: object) -> None:
        token = normalize_token(token) or ""
        if token not in ("", self.reset_token):
            raise AuthorizationError("Wrong reset token")

    def reset(self, roster: Roster, token: object, capacities: list[int]) -> None:
        self.check_reset_token(token)
        roster.state = empty_roster(capacities)
