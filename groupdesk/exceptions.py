"""Domain exception hierarchy rendered as structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class PayloadTooLargeException(AppException):
    code = "PAYLOAD_TOO_LARGE"
    status_code = 413


# ---------------------------------------------------------------------------
# Booking workflow errors
# ---------------------------------------------------------------------------


class InvalidTransitionException(ConflictException):
    """Operation is not legal from the entity's current status."""

    code = "INVALID_TRANSITION"


class UnknownAssigneeException(NotFoundException):
    """Assignee is not an enabled route controller."""

    code = "UNKNOWN_ASSIGNEE"


class NotEligibleException(ConflictException):
    code = "NOT_ELIGIBLE"


class ExpiredException(ConflictException):
    code = "EXPIRED"


class DuplicateActiveQuotationException(ConflictException):
    code = "DUPLICATE_ACTIVE_QUOTATION"


class AlreadyPaidException(ConflictException):
    code = "ALREADY_PAID"


class AlreadyIssuedException(ConflictException):
    code = "ALREADY_ISSUED"


class InvalidFormatException(AppException):
    code = "INVALID_FORMAT"
    status_code = 400


class NotDeletableException(ConflictException):
    code = "NOT_DELETABLE"
