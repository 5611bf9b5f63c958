"""Structured error types for bodycheck.

This module defines the records and exceptions used to report problems:

- FieldError: one violation found in a request body
- SchemaDefinitionError: a schema that is not well-formed (a programmer error)
- HTTPError: base class for errors a route handler maps to a status code
- RequestValidationError: the 400 response raised when a body fails its schema

A failed validation is always surfaced with the same envelope::

    {"error": "Validation failed", "details": ["Field 'username' is required", ...]}
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from bodycheck.types import FieldErrorCode

VALIDATION_FAILED_MESSAGE = "Validation failed"


@dataclass(frozen=True)
class FieldError:
    """Per-field violation details.

    Represents a single violation with a specific code, the human-readable
    message shown to API clients, and optional context about what was expected
    vs received.

    Attributes:
        path: Field path, with an index for array items (e.g. "items[0].quantity")
        code: Specific violation code
        message: Human-readable error description
        expected: Optional - what was expected (type, bound, enum values, etc.)
        received: Optional - what was actually received

    Examples:
        >>> err = FieldError(
        ...     path="email",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Field 'email' must be a valid email address",
        ...     expected="email address",
        ...     received="not-an-email"
        ... )
        >>> err.path
        'email'
    """
    path: str
    code: FieldErrorCode
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = self.received
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            expected=data.get("expected"),
            received=data.get("received"),
        )


class SchemaDefinitionError(ValueError):
    """Raised when a schema is not well-formed.

    This is raised once, at construction time, and lists every problem found
    in the schema (unknown keys, constraints that do not apply to the declared
    type, invalid regular expressions, ...).

    Attributes:
        errors: One message per problem, in the order they were found
    """

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors) if self.errors else "invalid schema"
        super().__init__(f"Invalid schema: {summary}")


class HTTPError(Exception):
    """An error that maps to an HTTP status code.

    Attributes:
        status_code: HTTP status to respond with
        message: Message placed in the ``error`` key of the response body
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the response body."""
        return {"error": self.message}


class RequestValidationError(HTTPError):
    """Raised when a request body fails validation.

    Carries the complete, ordered list of violations so the client can fix
    everything in one round trip.

    Attributes:
        fields: The FieldError records, in the order they were found
        details: The violation messages, in the same order

    Examples:
        >>> err = RequestValidationError([
        ...     FieldError(path="username", code=FieldErrorCode.REQUIRED,
        ...                message="Field 'username' is required"),
        ... ])
        >>> err.status_code
        400
        >>> err.to_dict()
        {'error': 'Validation failed', 'details': ["Field 'username' is required"]}
    """

    status_code = 400

    def __init__(self, fields: Sequence[FieldError]):
        self.fields: List[FieldError] = list(fields)
        super().__init__(VALIDATION_FAILED_MESSAGE)

    @property
    def details(self) -> List[str]:
        return [f.message for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the 400 envelope."""
        return {
            "error": self.message,
            "details": self.details,
        }


__all__ = [
    "VALIDATION_FAILED_MESSAGE",
    "FieldError",
    "SchemaDefinitionError",
    "HTTPError",
    "RequestValidationError",
]
