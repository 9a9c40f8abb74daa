from typing import List, Optional


class AuthError(Exception):
    """Base class for every failure an auth operation can report.

    Operational errors are expected outcomes (bad code, wrong password, ...)
    whose message is safe to show the caller. Anything else is treated as an
    infrastructure failure: logged server-side, rendered generically.
    """

    status_code: int = 500
    error_code: str = "internal"
    default_message: str = "Something went very wrong!"
    is_operational: bool = True

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationFailed(AuthError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request data"

    def __init__(self, message: Optional[str] = None, validation_errors: Optional[List[dict]] = None) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors or []


class UserExists(AuthError):
    status_code = 400
    error_code = "user_exists"
    default_message = "User already exists"


class UserNotFound(AuthError):
    status_code = 404
    error_code = "user_not_found"
    default_message = "User does not exist"


class InvalidCredentials(AuthError):
    status_code = 401
    error_code = "invalid_credentials"
    default_message = "Invalid credentials"


class NotVerified(AuthError):
    status_code = 403
    error_code = "not_verified"
    default_message = "Email not verified. Please verify your email to continue"


class AlreadyVerified(AuthError):
    status_code = 400
    error_code = "already_verified"
    default_message = "User already verified"


class InvalidCode(AuthError):
    status_code = 400
    error_code = "invalid_code"
    default_message = "Invalid code"


class CodeExpired(AuthError):
    status_code = 400
    error_code = "code_expired"
    default_message = "Code expired"


class InvalidToken(AuthError):
    status_code = 401
    error_code = "invalid_token"
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    error_code = "token_expired"
    default_message = "Token has expired"


class Unauthorized(AuthError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Not authorized"


class Blocked(AuthError):
    status_code = 403
    error_code = "blocked"
    default_message = "Your account has been blocked"


class DeletedAccount(AuthError):
    status_code = 403
    error_code = "deleted_account"
    default_message = "Your account has been deleted"


class AlreadyBlacklisted(AuthError):
    status_code = 400
    error_code = "already_blacklisted"
    default_message = "Token already blacklisted"


class ForgedRequest(AuthError):
    status_code = 403
    error_code = "forged_request"
    default_message = "Reset token does not belong to this user"


class DeliveryError(AuthError):
    status_code = 500
    error_code = "delivery_error"
    default_message = "Failed to send email"


class ConstraintViolation(AuthError):
    status_code = 409
    error_code = "conflict"

    def __init__(self, entity: str, field: str, message: Optional[str] = None) -> None:
        self.entity = entity
        self.field = field
        super().__init__(message or f"Duplicate field value: {field}.")


class Internal(AuthError):
    status_code = 500
    error_code = "internal"
    is_operational = False
