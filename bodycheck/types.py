"""Core type definitions for bodycheck.

This module defines the fundamental types used throughout the package:
- FieldType: The value shapes a rule can declare
- FieldErrorCode: Violation codes for individual fields
- MISSING: Sentinel for "key absent from the payload" and "no default declared"

These types form the contract between route code and the validator, so that
violations can be handled by code (via their codes) as well as shown to
people (via their messages).
"""

from enum import Enum


class FieldType(str, Enum):
    """Value shapes a schema rule can declare.

    ``email`` is a string that must additionally look like an email address.
    """
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    EMAIL = "email"

    @property
    def label(self) -> str:
        """Name with its indefinite article, as used in type-mismatch messages.

        An email field that is not a string is reported as "a string".
        """
        if self is FieldType.EMAIL:
            return "a string"
        article = "an" if self.value[0] in "aeiou" else "a"
        return f"{article} {self.value}"


class FieldErrorCode(str, Enum):
    """Violation codes for individual field failures.

    Used in FieldError objects so callers can branch on the kind of failure
    without parsing messages.
    """
    REQUIRED = "required"
    INVALID_TYPE = "invalid_type"
    INVALID_FORMAT = "invalid_format"
    PATTERN_MISMATCH = "pattern_mismatch"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    BELOW_MINIMUM = "below_minimum"
    ABOVE_MAXIMUM = "above_maximum"
    INVALID_VALUE = "invalid_value"


class _Missing:
    """Marker for an absent value, distinct from ``None``."""

    _instance = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict) -> "_Missing":
        return self


MISSING = _Missing()


__all__ = [
    "FieldType",
    "FieldErrorCode",
    "MISSING",
]
