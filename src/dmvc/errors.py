"""Exception types raised by models, validators and the auth guard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError


@dataclass(frozen=True)
class ErrorDetail:
    """A single error item.

    Attributes:
        message: Human-readable message
        code: Machine-readable error code (e.g., "INVALID_KEY")
        field: Field name this error relates to, or None for record-level errors
    """

    message: str
    code: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "field": self.field}


class DmvcError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, errors: list[ErrorDetail] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or [ErrorDetail(message=message, code=self.code)]

    def to_dict(self) -> dict[str, Any]:
        return {"valid": False, "errors": [e.to_dict() for e in self.errors]}


class RecordValidationError(DmvcError):
    """A record, partial record or key failed its schema."""

    status_code = 422
    code = "VALIDATION_ERROR"

    @classmethod
    def from_pydantic(
        cls, exc: PydanticValidationError, schema_name: str
    ) -> RecordValidationError:
        details = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ()))
            details.append(
                ErrorDetail(
                    message=err.get("msg", "Invalid value"),
                    code=cls.code,
                    field=location or None,
                )
            )
        return cls(f"{schema_name} validation failed", details)


class InvalidKeyError(DmvcError):
    """A bare identifier was supplied where a composite key is required."""

    status_code = 400
    code = "INVALID_KEY"


class InvalidCursorError(DmvcError):
    """A pagination cursor could not be decoded."""

    status_code = 400
    code = "INVALID_CURSOR"


class RecordNotFoundError(DmvcError):
    """An update addressed a record that does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class SchemaDefinitionError(ValueError):
    """A model's key schema does not line up with its entity schema."""


class AuthError(DmvcError):
    status_code = 401
    code = "UNAUTHORIZED"


class Unauthorized(AuthError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(AuthError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)
