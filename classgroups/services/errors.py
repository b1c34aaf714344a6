"""
Rejection taxonomy for roster operations.

Every RosterError carries a machine `code` (the `error` field of the failure
body) and the HTTP status the gateway answers with. None of them leave the
roster changed.
"""

from typing import Literal, Optional


class RosterError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_body(self) -> dict:
        return {"ok": False, "error": self.code, "detail": self.detail}


class ValidationError(RosterError):
    code = "validation"
    status_code = 400


class ConflictError(RosterError):
    """Device already bound to a different name."""

    code = "binding_conflict"
    status_code = 409


class InvalidGroupError(RosterError):
    code = "invalid_group"
    status_code = 400


class CapacityError(RosterError):
    code = "full"
    status_code = 409

    def __init__(self, detail: str, scope: Literal["group", "roster"], group_id: Optional[int] = None):
        super().__init__(detail)
        self.scope = scope
        self.group_id = group_id

    def to_body(self) -> dict:
        body = super().to_body()
        body["scope"] = self.scope
        if self.group_id is not None:
            body["groupId"] = self.group_id
        return body


class NotFoundError(RosterError):
    code = "not_found"
    status_code = 404


class AuthorizationError(RosterError):
    code = "unauthorized"
    status_code = 403


class PersistenceError(Exception):
    """Durable write/read failed. Logged by the service, never sent to clients."""
