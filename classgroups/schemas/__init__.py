"""
Pydantic schemas. Single import surface for roster records and API bodies.
"""

from classgroups.schemas.roster_schemas import (
    ROSTER_VERSION,
    Counts,
    Group,
    LastJoin,
    PublicGroup,
    PublicView,
    RosterState,
    Student,
)
from classgroups.schemas.api_schemas import (
    ErrorResponse,
    HealthResponse,
    JoinRequest,
    JoinResponse,
    JoinStatus,
    LeaveRequest,
    LeaveResponse,
    ResetRequest,
    ResetResponse,
)

__all__ = [
    "ROSTER_VERSION",
    "Counts",
    "Group",
    "LastJoin",
    "PublicGroup",
    "PublicView",
    "RosterState",
    "Student",
    "ErrorResponse",
    "HealthResponse",
    "JoinRequest",
    "JoinResponse",
    "JoinStatus",
    "LeaveRequest",
    "LeaveResponse",
    "ResetRequest",
    "ResetResponse",
]
