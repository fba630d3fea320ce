"""Validation errors raised by the record pipeline."""
from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Validation error codes."""

    REQUIRED_FIELD_MISSING = "REQUIRED_FIELD_MISSING"
    INVALID_FORMAT = "INVALID_FORMAT"
    UNIQUENESS_VIOLATION = "UNIQUENESS_VIOLATION"
    REFERENTIAL_INTEGRITY_VIOLATION = "REFERENTIAL_INTEGRITY_VIOLATION"


@dataclass(eq=False)
class ValidationError(Exception):
    """Base error for a rejected save, naming the offending field."""

    code: ErrorCode
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.field}: {self.message}"


class RequiredFieldError(ValidationError):
    """Raised when a required field is missing or blank."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            code=ErrorCode.REQUIRED_FIELD_MISSING,
            field=field,
            message=message,
        )


class InvalidFormatError(ValidationError):
    """Raised when an email, date or time cannot be understood."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_FORMAT,
            field=field,
            message=message,
        )


class UniquenessError(ValidationError):
    """Raised when an event slug is already taken."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            code=ErrorCode.UNIQUENESS_VIOLATION,
            field=field,
            message=message,
        )


class ReferentialIntegrityError(ValidationError):
    """Raised when a booking references an event that does not exist."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            code=ErrorCode.REFERENTIAL_INTEGRITY_VIOLATION,
            field=field,
            message=message,
        )
