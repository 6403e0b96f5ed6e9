"""Domain exception hierarchy for structured error responses."""

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


class InvalidArgumentException(AppException):
    code = "INVALID_ARGUMENT"
    status_code = 400


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class InvalidStateException(BusinessRuleException):
    """The target exists but its current state does not permit the action."""

    code = "INVALID_STATE"


class InvalidTransitionException(InvalidStateException):
    """The requested transition is not in the entity's transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, attempted: str, allowed: list[str]) -> None:
        super().__init__(
            f"Cannot perform '{attempted}' on {entity} in status '{current}'. "
            f"Allowed transitions: {allowed}",
            details=[
                {"field": "status", "message": current},
                {"field": "transition", "message": attempted},
            ],
        )
        self.current = current
        self.attempted = attempted
