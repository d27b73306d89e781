"""
Error taxonomy for admin mutations.

Every MutationError carries the HTTP status it maps to and a message that is
safe to show to the admin. exception_handlers.py turns them into
{"success": false, "error": message} responses.
"""
from typing import Optional


class MutationError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(MutationError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(MutationError):
    status_code = 403
    default_message = "Access denied. Admin privileges required."


class InvalidRequest(MutationError):
    status_code = 400
    default_message = "Invalid request"


class UnlockComplete(InvalidRequest):
    default_message = "Unlock complete - no further increments allowed"


class NotFound(MutationError):
    status_code = 404
    default_message = "Not found"


class PersistenceError(MutationError):
    status_code = 500
    default_message = "Failed to persist update"

    WRITE_FAILED = "write_failed"
    NO_ROWS_AFFECTED = "no_rows_affected"

    def __init__(self, message: Optional[str] = None, reason: str = WRITE_FAILED):
        super().__init__(message)
        self.reason = reason


class AuditWriteFailed(Exception):
    """Logged when the audit insert fails. Never raised to API callers."""
