"""
Domain errors for the moderation core.

Every error carries a stable ``code`` (returned to clients in
``ActionResult.error``), a human readable ``message`` and the HTTP status
the routers answer with.
"""

from fastapi import status


class ModerationError(Exception):
    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ModerationError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class Unauthorized(ModerationError):
    code = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unauthorized."


class ProtectedTarget(ModerationError):
    code = "protected_target"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Action Denied: The Original President cannot be modified."


class AlreadyReported(ModerationError):
    code = "already_reported"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already reported this post."


class NotFound(ModerationError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class InvalidRequest(ModerationError):
    code = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class Conflict(ModerationError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists."


class AccountBlocked(ModerationError):
    code = "account_blocked"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account suspended. Contact administration."


class DependencyFailure(ModerationError):
    code = "dependency_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Something went wrong. Please try again later."
