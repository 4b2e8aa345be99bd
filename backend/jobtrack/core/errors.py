"""
Domain errors raised by the account, token and application services.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer should answer with, so routes can let them propagate and the app-level
exception handler renders the standard error shape.
"""
from __future__ import annotations


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, *, details: dict | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class ApplicationNotFound(NotFound):
    default_message = "Application not found"


class TokenNotFound(NotFound):
    default_message = "Invalid token"


class DuplicateEmail(DomainError):
    code = "DUPLICATE_EMAIL"
    status_code = 409
    default_message = "Email already registered"


class InvalidEmailFormat(DomainError):
    code = "INVALID_EMAIL_FORMAT"
    status_code = 400
    default_message = "Email address is not valid"


class WrongCredential(DomainError):
    code = "WRONG_CREDENTIAL"
    status_code = 401
    default_message = "Invalid email or password"


class AccountLocked(DomainError):
    code = "ACCOUNT_LOCKED"
    status_code = 423
    default_message = "Account is locked after too many failed login attempts"


class AccountDeleted(DomainError):
    code = "ACCOUNT_DELETED"
    status_code = 403
    default_message = "Account has been deleted"


class TokenExpired(DomainError):
    code = "TOKEN_EXPIRED"
    status_code = 400
    default_message = "Token has expired"


class TokenAlreadyUsed(DomainError):
    code = "TOKEN_ALREADY_USED"
    status_code = 400
    default_message = "Token has already been used"


class Forbidden(DomainError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not allowed to modify this resource"


class InvalidStatusDetails(DomainError):
    code = "INVALID_STATUS_DETAILS"
    status_code = 400
    default_message = "Status details do not match the status type"
