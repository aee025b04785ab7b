"""Error taxonomy shared by the account lifecycle and the HTTP layer."""

from typing import Optional


class AccountError(Exception):
    """Base class for failures that are safe to show to the caller."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountError):
    """Input has the wrong shape or content; the caller can fix it."""

    status_code = 400
    default_message = "Invalid input"


class Conflict(AccountError):
    status_code = 409
    default_message = "User already exists with this email"


class InvalidCredentials(AccountError):
    """Unknown email or wrong password; the two are never distinguished."""

    status_code = 401
    default_message = "Invalid credentials"


class InvalidOrExpiredToken(AccountError):
    """Verification or reset token is absent, malformed or expired."""

    status_code = 400
    default_message = "Invalid or expired token"


class Unauthorized(AccountError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(AccountError):
    status_code = 404
    default_message = "User not found"


class Unavailable(AccountError):
    """An upstream dependency could not be reached."""

    status_code = 503
    default_message = "Service unavailable"


class Internal(AccountError):
    status_code = 500
    default_message = "Internal Server Error"
