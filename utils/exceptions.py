"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a machine readable code.
auth_api.errors renders them with the uniform error envelope.

Conventions kept on purpose:
- a missing user is a 400 (NotFoundError), never a 404
- a seal with the wrong number of '#' segments is a plain OtpInvalidError
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    error = "INTERNAL_ERROR"
    default_message = "Internal Server Error!"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    error = "VALIDATION_ERROR"
    default_message = "Invalid input"


class ConflictError(AppError):
    status_code = 400
    error = "CONFLICT"
    default_message = "Already registered!"


class OtpExpiredError(AppError):
    """The seal's embedded expiry is in the past. Clients should resend."""
    status_code = 408
    error = "OTP_EXPIRED"
    default_message = "Otp is expired!"


class OtpInvalidError(AppError):
    """Wrong code, tampered seal or malformed seal. Clients should retype."""
    status_code = 400
    error = "OTP_INVALID"
    default_message = "Otp is invalid!"


class CredentialMismatchError(AppError):
    status_code = 400
    error = "CREDENTIAL_MISMATCH"
    default_message = "Email or Password does not match!"


class NotFoundError(AppError):
    status_code = 400
    error = "NOT_FOUND"
    default_message = "User not found!"


class UnauthorizedError(AppError):
    status_code = 401
    error = "UNAUTHORIZED"
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    error = "FORBIDDEN"
    default_message = "Insufficient role"


class ConfigurationError(AppError):
    status_code = 500
    error = "CONFIGURATION_ERROR"
    default_message = "Server is not configured"


class InternalError(AppError):
    status_code = 500
    error = "INTERNAL_ERROR"
