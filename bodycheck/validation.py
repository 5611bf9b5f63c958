"""Schema validation engine for bodycheck.

This module provides the SchemaValidator that checks an untyped request body
against a compiled schema and produces a ValidationResult: either a new,
normalized payload (defaults applied) or the complete, ordered list of
violations.

Every violation in the body is reported, not just the first, so an API client
can fix everything in one round trip. Within a single field, a missing value or
a wrong type stops the remaining checks for that field, which keeps the list
free of follow-on noise (a string that should be a number is not also "below
the minimum").

The validator never raises for bad input data, and never modifies the payload
it is given.
"""

import copy
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from bodycheck.config import get_settings
from bodycheck.errors import FieldError, SchemaDefinitionError
from bodycheck.rules import (
    ArrayRule,
    EmailRule,
    NumberRule,
    Rule,
    RuleSpec,
    Schema,
    StringRule,
    compile_schema,
)
from bodycheck.types import MISSING, FieldErrorCode, FieldType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a request body against a schema.

    Attributes:
        is_valid: Whether the body passed all validation checks
        errors: List of field-level violations, in the order they were found
        data: The normalized body (a new dict with defaults applied), or None
            if validation failed
        missing_fields: Paths of required fields that were missing
        invalid_fields: Paths of fields that were present but invalid

    Examples:
        >>> engine = SchemaValidator({'name': {'type': 'string', 'required': True}})
        >>> result = engine.validate({'name': 'test'})
        >>> result.is_valid
        True
        >>> result.errors
        []
    """
    is_valid: bool
    errors: List[FieldError]
    data: Optional[Dict[str, Any]] = None
    missing_fields: Optional[List[str]] = None
    invalid_fields: Optional[List[str]] = None

    @property
    def ok(self) -> bool:
        return self.is_valid

    @property
    def messages(self) -> List[str]:
        """The violation messages, in order."""
        return [e.message for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.data is not None:
            result["data"] = self.data
        if self.missing_fields is not None:
            result["missingFields"] = self.missing_fields
        if self.invalid_fields is not None:
            result["invalidFields"] = self.invalid_fields
        return result


def format_value(value: Any) -> str:
    """Render a value the way a JSON client would write it.

    Integral floats lose their fraction, booleans are lowercase and None
    renders as an empty string.

    Examples:
        >>> format_value(1.0), format_value(2.5), format_value(True), format_value("user")
        ('1', '2.5', 'true', 'user')
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def _is_blank(value: Any) -> bool:
    return value is MISSING or value is None or (isinstance(value, str) and value == "")


def _matches_type(value: Any, field_type: FieldType) -> bool:
    if field_type in (FieldType.STRING, FieldType.EMAIL):
        return isinstance(value, str)
    if field_type is FieldType.NUMBER:
        return _is_number(value)
    if field_type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type is FieldType.ARRAY:
        return isinstance(value, (list, tuple))
    if field_type is FieldType.OBJECT:
        return isinstance(value, Mapping)
    return True


def _same_value(a: Any, b: Any) -> bool:
    # booleans never equal numbers, unlike Python's True == 1
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


class SchemaValidator:
    """Validation engine for request bodies.

    Compiles the schema once (see bodycheck.rules.compile_schema) and can then
    validate any number of payloads. Instances hold no per-request state and
    are safe to share between threads.

    Attributes:
        schema: The compiled schema (field name -> Rule, in field order)
        email_pattern: The compiled pattern email fields must match

    Examples:
        >>> engine = SchemaValidator({
        ...     'username': {'type': 'string', 'minLength': 3, 'required': True},
        ...     'role': {'type': 'string', 'enum': ['user', 'admin'], 'default': 'user'},
        ... })
        >>> result = engine.validate({'username': 'alice'})
        >>> result.data
        {'username': 'alice', 'role': 'user'}

        >>> engine.validate({'username': ''}).messages
        ["Field 'username' is required"]
    """

    def __init__(
        self,
        schema: Mapping[str, RuleSpec],
        email_pattern: Optional[Union[str, re.Pattern]] = None,
    ) -> None:
        """Initialize the validator with a schema.

        Args:
            schema: Mapping of field name to rule (loose dicts or Rule objects)
            email_pattern: Pattern for email fields; defaults to the
                configured Settings.email_pattern

        Raises:
            SchemaDefinitionError: If the provided schema is not well-formed,
                or the email pattern is not a valid regular expression
        """
        self.schema: Schema = compile_schema(schema)
        if email_pattern is None:
            email_pattern = get_settings().email_pattern
        if isinstance(email_pattern, str):
            try:
                email_pattern = re.compile(email_pattern)
            except re.error as e:
                raise SchemaDefinitionError([f"email_pattern: invalid regular expression ({e})"]) from e
        self.email_pattern = email_pattern

    def validate(self, payload: Any) -> ValidationResult:
        """Validate a request body against the schema.

        Args:
            payload: The request body, usually a dict decoded from JSON

        Returns:
            ValidationResult with is_valid flag, errors list, and (on success)
            the normalized body
        """
        if not isinstance(payload, Mapping):
            error = FieldError(
                path="",
                code=FieldErrorCode.INVALID_TYPE,
                message="Request body must be an object",
                expected="object",
                received=type(payload).__name__,
            )
            return self._failure([error])

        data = dict(payload)
        errors: List[FieldError] = []

        for field, rule in self.schema.items():
            value = payload.get(field, MISSING)

            if rule.required and _is_blank(value):
                errors.append(self._required_error(field))
                continue

            if value is MISSING:
                if rule.has_default:
                    data[field] = copy.deepcopy(rule.default)
                continue

            if rule.field_type is not None and not _matches_type(value, rule.field_type):
                errors.append(self._type_error(field, rule.field_type, value))
                continue

            errors.extend(self._check_constraints(field, rule, value))

        if errors:
            return self._failure(errors)

        return ValidationResult(
            is_valid=True,
            errors=[],
            data=data,
            missing_fields=[],
            invalid_fields=[],
        )

    def _failure(self, errors: List[FieldError]) -> ValidationResult:
        missing_fields = [e.path for e in errors if e.code == FieldErrorCode.REQUIRED]
        invalid_fields = [e.path for e in errors if e.code != FieldErrorCode.REQUIRED]
        logger.debug(
            "Validation failed with %d error(s): %d missing, %d invalid",
            len(errors), len(missing_fields), len(invalid_fields),
        )
        return ValidationResult(
            is_valid=False,
            errors=errors,
            data=None,
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )

    def _check_constraints(self, field: str, rule: Rule, value: Any) -> List[FieldError]:
        """Run the checks that apply once a value is present and well-typed.

        Order: type-specific bounds/format, then enum, then array bounds and
        array items.
        """
        errors: List[FieldError] = []

        if isinstance(rule, StringRule):
            errors.extend(self._check_length(field, value, rule.min_length, rule.max_length, "characters"))
            if rule.pattern is not None and not rule.pattern.search(value):
                errors.append(FieldError(
                    path=field,
                    code=FieldErrorCode.PATTERN_MISMATCH,
                    message=f"Field '{field}' has invalid format",
                    expected=f"pattern: {rule.pattern.pattern}",
                    received=value,
                ))

        elif isinstance(rule, NumberRule):
            errors.extend(self._check_range(field, value, rule.min, rule.max))

        elif isinstance(rule, EmailRule):
            if not self.email_pattern.search(value):
                errors.append(FieldError(
                    path=field,
                    code=FieldErrorCode.INVALID_FORMAT,
                    message=f"Field '{field}' must be a valid email address",
                    expected="email address",
                    received=value,
                ))

        if rule.enum is not None and not any(_same_value(value, option) for option in rule.enum):
            allowed = ", ".join(format_value(option) for option in rule.enum)
            errors.append(FieldError(
                path=field,
                code=FieldErrorCode.INVALID_VALUE,
                message=f"Field '{field}' must be one of: {allowed}",
                expected=list(rule.enum),
                received=value,
            ))

        if isinstance(rule, ArrayRule):
            errors.extend(self._check_length(field, value, rule.min_length, rule.max_length, "items"))
            if rule.items is not None:
                errors.extend(self._check_items(field, rule.items, value))

        return errors

    def _check_items(self, field: str, item_schema: Schema, items: Any) -> List[FieldError]:
        """Validate every element of an array against the item schema.

        Item fields get the required check, the type check and numeric
        bounds. Elements that are not objects are left alone.
        """
        errors: List[FieldError] = []
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                continue

            for item_field, item_rule in item_schema.items():
                path = f"{field}[{index}].{item_field}"
                item_value = item.get(item_field, MISSING)

                if item_rule.required and _is_blank(item_value):
                    errors.append(self._required_error(path))
                    continue
                if item_value is MISSING:
                    continue

                if item_rule.field_type is not None and not _matches_type(item_value, item_rule.field_type):
                    errors.append(self._type_error(path, item_rule.field_type, item_value))
                    continue

                if isinstance(item_rule, NumberRule):
                    errors.extend(self._check_range(path, item_value, item_rule.min, item_rule.max))
        return errors

    @staticmethod
    def _required_error(path: str) -> FieldError:
        return FieldError(
            path=path,
            code=FieldErrorCode.REQUIRED,
            message=f"Field '{path}' is required",
            expected="required field",
            received=None,
        )

    @staticmethod
    def _type_error(path: str, field_type: FieldType, value: Any) -> FieldError:
        expected = "string" if field_type is FieldType.EMAIL else field_type.value
        return FieldError(
            path=path,
            code=FieldErrorCode.INVALID_TYPE,
            message=f"Field '{path}' must be {field_type.label}",
            expected=expected,
            received=type(value).__name__,
        )

    @staticmethod
    def _check_length(
        path: str,
        value: Any,
        min_length: Optional[int],
        max_length: Optional[int],
        unit: str,
    ) -> List[FieldError]:
        """Check a string's character count or an array's element count."""
        errors: List[FieldError] = []
        # strings read "must be at least 3 characters", arrays "must have at least 3 items"
        verb = "be" if unit == "characters" else "have"
        length = len(value)
        if min_length is not None and length < min_length:
            errors.append(FieldError(
                path=path,
                code=FieldErrorCode.TOO_SHORT,
                message=f"Field '{path}' must {verb} at least {format_value(min_length)} {unit}",
                expected=f"min length {format_value(min_length)}",
                received=f"length {length}",
            ))
        if max_length is not None and length > max_length:
            errors.append(FieldError(
                path=path,
                code=FieldErrorCode.TOO_LONG,
                message=f"Field '{path}' must {verb} at most {format_value(max_length)} {unit}",
                expected=f"max length {format_value(max_length)}",
                received=f"length {length}",
            ))
        return errors

    @staticmethod
    def _check_range(
        path: str,
        value: Any,
        minimum: Optional[float],
        maximum: Optional[float],
    ) -> List[FieldError]:
        errors: List[FieldError] = []
        if minimum is not None and value < minimum:
            errors.append(FieldError(
                path=path,
                code=FieldErrorCode.BELOW_MINIMUM,
                message=f"Field '{path}' must be at least {format_value(minimum)}",
                expected=f"minimum {format_value(minimum)}",
                received=format_value(value),
            ))
        if maximum is not None and value > maximum:
            errors.append(FieldError(
                path=path,
                code=FieldErrorCode.ABOVE_MAXIMUM,
                message=f"Field '{path}' must be at most {format_value(maximum)}",
                expected=f"maximum {format_value(maximum)}",
                received=format_value(value),
            ))
        return errors


def validate(schema: Mapping[str, RuleSpec], payload: Any) -> ValidationResult:
    """Validate a payload against a schema in one call.

    Compiles the schema on every call; build a SchemaValidator once per
    endpoint instead when validating many payloads.

    Examples:
        >>> validate({'price': {'type': 'number', 'min': 0}}, {'price': 'free'}).messages
        ["Field 'price' must be a number"]
    """
    return SchemaValidator(schema).validate(payload)


__all__ = [
    "SchemaValidator",
    "ValidationResult",
    "format_value",
    "validate",
]
