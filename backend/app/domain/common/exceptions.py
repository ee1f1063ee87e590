"""Domain-level exceptions shared by matches, chat, and blocks."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures.

    `reason` is a stable machine code, `message` a user-facing sentence.
    """

    status_code: int = 400
    reason: str = "error"
    message: str = "The request could not be completed."

    def __init__(self, reason: str | None = None, message: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason
        if message:
            self.message = message


class NotFound(DomainError):
    status_code = 404
    reason = "not_found"
    message = "The requested item does not exist."


class Forbidden(DomainError):
    status_code = 403
    reason = "forbidden"
    message = "You are not allowed to do that."


class Conflict(DomainError):
    status_code = 409
    reason = "conflict"
    message = "That has already been done."


class InvalidState(DomainError):
    status_code = 409
    reason = "invalid_state"
    message = "This item can no longer be changed."


class InvalidOperation(DomainError):
    status_code = 400
    reason = "invalid_operation"
    message = "That action is not allowed."


class InvalidInput(DomainError):
    status_code = 400
    reason = "invalid_input"
    message = "The request is missing required content."


class StoreUnavailable(Exception):
    """Raised when the backing store cannot be reached; callers may retry."""

    reason = "service_unavailable"
    message = "The service is temporarily unavailable. Please try again."
