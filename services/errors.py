"""Request-terminating errors raised by services and rendered as ``{"error": ...}``."""

from __future__ import annotations


class DashboardError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(DashboardError):
    status_code = 400
    default_message = "Invalid input"


class DuplicateEmail(DashboardError):
    status_code = 400
    default_message = "Email already registered"


class InvalidCredentials(DashboardError):
    status_code = 401
    default_message = "Invalid email or password"


class Unauthenticated(DashboardError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(DashboardError):
    status_code = 403
    default_message = "Admin privileges required"


class NotFound(DashboardError):
    status_code = 404
    default_message = "User not found"


class StorageFailure(DashboardError):
    """A file could not be read or written; the message stays generic."""

    status_code = 500
    default_message = "Storage operation failed"
