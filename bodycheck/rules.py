"""Schema rules and schema compilation for bodycheck.

A schema maps field names to rules. Rules can be written as plain dicts, the
way they usually sit next to a route::

    {
        "username": {"type": "string", "minLength": 3, "required": True},
        "email": {"type": "email", "required": True},
        "role": {"type": "string", "enum": ["user", "admin"], "default": "user"},
    }

compile_schema() checks such a dict against a JSON Schema meta-schema (with
the jsonschema library) and turns every entry into one of the tagged rule
classes below. Each class only carries the constraints that make sense for its
type, so a ``pattern`` on a number field is rejected when the schema is built,
not silently ignored when a request comes in.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union

from jsonschema import Draft7Validator, FormatChecker, validators
from typing_extensions import TypeAlias

from bodycheck.errors import SchemaDefinitionError
from bodycheck.types import MISSING, FieldType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """Constraints shared by every field, whatever its type.

    A Rule with no subclass is never built by compile_schema(); use AnyRule
    for fields without a declared type.

    Attributes:
        required: Whether a missing, None or empty-string value is a violation
        default: Value substituted when the field is absent (MISSING if none)
        enum: Allowed literal values, in declared order
    """
    field_type: ClassVar[Optional[FieldType]] = None

    required: bool = False
    default: Any = MISSING
    enum: Optional[Tuple[Any, ...]] = None

    def __post_init__(self):
        """Normalize fields."""
        if self.enum is not None and not isinstance(self.enum, tuple):
            object.__setattr__(self, "enum", tuple(self.enum))

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass(frozen=True)
class AnyRule(Rule):
    """Rule for a field with no declared type: only required/default/enum apply."""


@dataclass(frozen=True)
class StringRule(Rule):
    """Rule for a string field.

    Attributes:
        min_length: Minimum number of characters
        max_length: Maximum number of characters
        pattern: Regular expression searched for in the value with re.search.
            Not anchored unless the pattern anchors itself; ``$`` also matches
            before a trailing newline, use ``\\Z`` for a strict end
    """
    field_type: ClassVar[Optional[FieldType]] = FieldType.STRING

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[re.Pattern] = None

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.pattern, str):
            try:
                object.__setattr__(self, "pattern", re.compile(self.pattern))
            except re.error as e:
                raise SchemaDefinitionError([f"pattern: invalid regular expression ({e})"]) from e


@dataclass(frozen=True)
class NumberRule(Rule):
    """Rule for a number field. Both bounds are inclusive."""
    field_type: ClassVar[Optional[FieldType]] = FieldType.NUMBER

    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class BooleanRule(Rule):
    field_type: ClassVar[Optional[FieldType]] = FieldType.BOOLEAN


@dataclass(frozen=True)
class ObjectRule(Rule):
    field_type: ClassVar[Optional[FieldType]] = FieldType.OBJECT


@dataclass(frozen=True)
class EmailRule(Rule):
    """Rule for a string field holding an email address."""
    field_type: ClassVar[Optional[FieldType]] = FieldType.EMAIL


@dataclass(frozen=True)
class ArrayRule(Rule):
    """Rule for an array field.

    Attributes:
        min_length: Minimum number of elements
        max_length: Maximum number of elements
        items: Schema applied to every element that is an object; other
            elements are not checked.
            Only one level of nesting is supported: item rules cannot have
            items of their own.
    """
    field_type: ClassVar[Optional[FieldType]] = FieldType.ARRAY

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    items: Optional[Mapping[str, Rule]] = None

    def __post_init__(self):
        super().__post_init__()
        if self.items is not None:
            object.__setattr__(self, "items", _compile(self.items, nested=True))


Schema: TypeAlias = Dict[str, Rule]
"""Ordered mapping of field name to compiled rule."""

RuleSpec: TypeAlias = Union[Rule, Mapping[str, Any]]
"""A rule as accepted by compile_schema(): compiled, or a loose dict."""


RULE_CLASSES: Dict[FieldType, Type[Rule]] = {
    FieldType.STRING: StringRule,
    FieldType.NUMBER: NumberRule,
    FieldType.BOOLEAN: BooleanRule,
    FieldType.ARRAY: ArrayRule,
    FieldType.OBJECT: ObjectRule,
    FieldType.EMAIL: EmailRule,
}

# Loose dict key -> dataclass attribute, for type-specific constraints
CONSTRAINT_KEYS: Dict[str, str] = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "min": "min",
    "max": "max",
    "items": "items",
}

# Constraint keys that apply to each type; types not listed take none
TYPE_CONSTRAINTS: Dict[FieldType, Tuple[str, ...]] = {
    FieldType.STRING: ("minLength", "maxLength", "pattern"),
    FieldType.NUMBER: ("min", "max"),
    FieldType.ARRAY: ("minLength", "maxLength", "items"),
}

# Matches nothing; marks a key as not allowed in a given context
_NOT_ALLOWED: Dict[str, Any] = {"not": {}}

_RULE_PROPERTIES: Dict[str, Any] = {
    "type": {"enum": [t.value for t in FieldType]},
    "required": {"type": "boolean"},
    "default": {},
    "enum": {"type": "array"},
    "minLength": {"type": "integer", "minimum": 0},
    "maxLength": {"type": "integer", "minimum": 0},
    "pattern": {"type": "regex", "format": "regex"},
    "min": {"type": "number"},
    "max": {"type": "number"},
    "items": {"type": "object"},
}


def _rule_meta_schema(allow_items: bool) -> Dict[str, Any]:
    """Build the meta-schema a single loose rule dict must satisfy."""
    properties = dict(_RULE_PROPERTIES)
    if not allow_items:
        properties["items"] = _NOT_ALLOWED

    def forbidden(allowed: Tuple[str, ...]) -> Dict[str, Any]:
        return {
            key: _NOT_ALLOWED
            for key in CONSTRAINT_KEYS
            if key not in allowed and (allow_items or key != "items")
        }

    conditionals: List[Dict[str, Any]] = [
        {
            "if": {"properties": {"type": {"const": field_type.value}}, "required": ["type"]},
            "then": {"properties": forbidden(TYPE_CONSTRAINTS.get(field_type, ()))},
        }
        for field_type in FieldType
    ]
    conditionals.append({
        "if": {"not": {"required": ["type"]}},
        "then": {"properties": forbidden(())},
    })

    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
        "allOf": conditionals,
    }


def _is_regex(checker, instance) -> bool:
    return isinstance(instance, (str, re.Pattern))


def _is_array(checker, instance) -> bool:
    return isinstance(instance, (list, tuple))


# Draft 7 plus a "regex" type so compiled patterns are accepted alongside
# strings, and tuples accepted as arrays
_type_checker = Draft7Validator.TYPE_CHECKER.redefine_many({
    "regex": _is_regex,
    "array": _is_array,
})
RuleMetaValidator = validators.extend(Draft7Validator, type_checker=_type_checker)

_rule_validator = RuleMetaValidator(_rule_meta_schema(allow_items=True), format_checker=FormatChecker())
_item_rule_validator = RuleMetaValidator(_rule_meta_schema(allow_items=False), format_checker=FormatChecker())

_TYPE_LABELS = {
    "boolean": "a boolean",
    "integer": "an integer",
    "number": "a number",
    "array": "a list",
    "object": "a mapping",
    "regex": "a string or compiled pattern",
}


def _describe_meta_error(error, location: str, raw: Mapping[str, Any], nested: bool) -> str:
    """Translate a meta-schema ValidationError into a readable message."""
    key = str(error.path[-1]) if error.path else None
    where = f"{location}.{key}" if key else location

    # A constraint that does not apply here
    if error.validator == "not" and key is not None:
        if key == "items" and nested:
            return f"{where}: nested items are not supported"
        declared = raw.get("type")
        if declared is None:
            return f"{where}: requires a declared type"
        return f"{where}: does not apply to {declared} fields"

    if error.validator == "type":
        if key is None:
            return f"{location}: rule must be a mapping"
        return f"{where}: must be {_TYPE_LABELS.get(error.validator_value, error.validator_value)}"

    if error.validator == "enum" and key == "type":
        return f"{where}: must be one of: {', '.join(t.value for t in FieldType)}"

    if error.validator == "minimum":
        return f"{where}: must be at least {error.validator_value}"

    if error.validator == "format":
        return f"{where}: invalid regular expression"

    return f"{where}: {error.message}"


def _check_rule(raw: Any, location: str, nested: bool) -> List[str]:
    """Check one loose rule dict against the meta-schema."""
    if not isinstance(raw, Mapping):
        return [f"{location}: rule must be a mapping"]

    problems: List[str] = []
    validator = _item_rule_validator if nested else _rule_validator
    for error in validator.iter_errors(raw):
        if error.validator == "additionalProperties":
            problems.extend(
                f"{location}.{key}: unknown rule key"
                for key in raw
                if key not in _RULE_PROPERTIES
            )
            continue
        problems.append(_describe_meta_error(error, location, raw, nested))

    if not problems and "items" in raw:
        for sub_field, sub_raw in raw["items"].items():
            if isinstance(sub_raw, Rule):
                continue
            problems.extend(_check_rule(sub_raw, f"{location}.items.{sub_field}", nested=True))
    return problems


def _build_rule(raw: Mapping[str, Any]) -> Rule:
    """Build a tagged rule from a loose dict that passed the meta-schema."""
    declared = raw.get("type")
    rule_class = RULE_CLASSES[FieldType(declared)] if declared is not None else AnyRule

    kwargs: Dict[str, Any] = {"required": raw.get("required", False)}
    if "default" in raw:
        kwargs["default"] = raw["default"]
    if "enum" in raw:
        kwargs["enum"] = tuple(raw["enum"])
    for key, attr in CONSTRAINT_KEYS.items():
        if key in raw:
            kwargs[attr] = raw[key]
    return rule_class(**kwargs)


def _compile(schema: Any, nested: bool) -> Schema:
    if isinstance(schema, Mapping) and all(isinstance(rule, Rule) for rule in schema.values()):
        problems = [
            f"{field}.items: nested items are not supported"
            for field, rule in schema.items()
            if nested and isinstance(rule, ArrayRule) and rule.items is not None
        ]
        if problems:
            raise SchemaDefinitionError(problems)
        return dict(schema)

    if not isinstance(schema, Mapping):
        raise SchemaDefinitionError(["schema must be a mapping of field names to rules"])

    problems = []
    for field, raw in schema.items():
        if not isinstance(field, str):
            problems.append(f"{field!r}: field names must be strings")
        elif isinstance(raw, Rule):
            if nested and isinstance(raw, ArrayRule) and raw.items is not None:
                problems.append(f"{field}.items: nested items are not supported")
        else:
            problems.extend(_check_rule(raw, field, nested))
    if problems:
        raise SchemaDefinitionError(problems)

    return {
        field: raw if isinstance(raw, Rule) else _build_rule(raw)
        for field, raw in schema.items()
    }


def compile_schema(schema: Mapping[str, RuleSpec]) -> Schema:
    """Compile a schema into an ordered mapping of tagged rules.

    Args:
        schema: Mapping of field name to rule, where each rule is either a
            compiled Rule or a loose dict using the keys ``type``,
            ``required``, ``default``, ``enum``, ``minLength``, ``maxLength``,
            ``pattern``, ``min``, ``max`` and ``items``

    Returns:
        A new dict of field name to Rule, in the schema's field order

    Raises:
        SchemaDefinitionError: If the schema is not well-formed. Every problem
            found is listed in the exception's ``errors``.

    Examples:
        >>> schema = compile_schema({"price": {"type": "number", "min": 0}})
        >>> schema["price"]
        NumberRule(required=False, default=MISSING, enum=None, min=0, max=None)
        >>> compile_schema({"price": {"type": "number", "pattern": "^\\\\d+$"}})
        Traceback (most recent call last):
        ...
        bodycheck.errors.SchemaDefinitionError: Invalid schema: price.pattern: does not apply to number fields
    """
    compiled = _compile(schema, nested=False)
    logger.debug("Compiled schema with %d field(s): %s", len(compiled), ", ".join(compiled))
    return compiled


__all__ = [
    "Rule",
    "AnyRule",
    "StringRule",
    "NumberRule",
    "BooleanRule",
    "ObjectRule",
    "EmailRule",
    "ArrayRule",
    "Schema",
    "RuleSpec",
    "RULE_CLASSES",
    "compile_schema",
]
