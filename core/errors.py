"""
core/errors.py -- Error taxonomy shared by every layer.

Each exception carries the HTTP status and machine-readable code it maps to.
api/main.py registers a single handler for AppError that turns any of them
into the standard ErrorResponse envelope, so route handlers and the mutation
flow raise domain errors instead of building responses.

  AuthenticationError  401  bad login credentials
  AuthorizationError   403  missing / invalid / expired session credential
  NotFoundError        404  read, update or delete target does not exist
  ConflictError        409  unique constraint violated on insert/update
  ValidationError      422  schema violations, every one of them collected

Anything that is not an AppError is an infrastructure failure and ends up in
the generic 500 handler, which logs it and hides the detail from the client.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldViolation:
    """One schema violation: where it happened and what is wrong."""

    path: tuple[str | int, ...]
    message: str

    def as_dict(self) -> dict:
        return {"path": list(self.path), "message": self.message}


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(AppError):
    status_code = 401
    code = "bad_credentials"
    default_message = "Invalid username, e-mail or password."


class AuthorizationError(AppError):
    """Raised by the gate. The reason is logged, never sent to the client."""

    status_code = 403
    code = "forbidden"
    default_message = "A valid session credential is required."

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"

    def __init__(self, kind: str, record_id: int) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} {record_id} not found.")


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "A record with the same unique values already exists."


class ValidationError(AppError):
    status_code = 422
    code = "validation_error"
    default_message = "Request validation failed."

    def __init__(self, violations: list[FieldViolation], message: str | None = None) -> None:
        self.violations = violations
        super().__init__(message)

    def by_field(self) -> dict[str, str]:
        """Return {top-level field: first message}, the shape HTML forms display."""
        result: dict[str, str] = {}
        for v in self.violations:
            key = str(v.path[0]) if v.path else "__root__"
            result.setdefault(key, v.message)
        return result
