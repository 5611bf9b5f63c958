"""Unit tests for schema compilation and the tagged rule classes.

Tests cover:
- Building the right rule class for each declared type
- Rejecting malformed schemas with readable messages
- Reporting every schema problem at once
- Direct construction of rule objects
"""

import logging
import re

import pytest

from bodycheck.errors import SchemaDefinitionError
from bodycheck.rules import (
    AnyRule,
    ArrayRule,
    BooleanRule,
    EmailRule,
    NumberRule,
    ObjectRule,
    StringRule,
    compile_schema,
)
from bodycheck.types import MISSING, FieldType


class TestCompileSchema:
    """Test building tagged rules from loose dicts."""

    def test_rule_classes_by_type(self):
        """Should build one rule class per declared type."""
        schema = compile_schema({
            "name": {"type": "string"},
            "price": {"type": "number"},
            "active": {"type": "boolean"},
            "tags": {"type": "array"},
            "meta": {"type": "object"},
            "email": {"type": "email"},
            "anything": {},
        })

        assert isinstance(schema["name"], StringRule)
        assert isinstance(schema["price"], NumberRule)
        assert isinstance(schema["active"], BooleanRule)
        assert isinstance(schema["tags"], ArrayRule)
        assert isinstance(schema["meta"], ObjectRule)
        assert isinstance(schema["email"], EmailRule)
        assert isinstance(schema["anything"], AnyRule)
        assert schema["anything"].field_type is None
        assert schema["email"].field_type is FieldType.EMAIL

    def test_field_order_preserved(self):
        """Should keep the schema's field order."""
        schema = compile_schema({
            "zeta": {"type": "string"},
            "alpha": {"type": "number"},
            "mid": {"type": "boolean"},
        })

        assert list(schema) == ["zeta", "alpha", "mid"]

    def test_constraints_mapped_to_attributes(self):
        """Should map camelCase keys onto rule attributes."""
        schema = compile_schema({
            "username": {
                "type": "string",
                "minLength": 3,
                "maxLength": 20,
                "pattern": r"^\w+$",
                "required": True,
            },
            "price": {"type": "number", "min": 0, "max": 99.5, "default": 1},
            "role": {"type": "string", "enum": ["user", "admin"], "default": "user"},
        })

        username = schema["username"]
        assert username.min_length == 3
        assert username.max_length == 20
        assert isinstance(username.pattern, re.Pattern)
        assert username.pattern.pattern == r"^\w+$"
        assert username.required is True
        assert username.has_default is False
        assert username.default is MISSING

        price = schema["price"]
        assert price.min == 0
        assert price.max == 99.5
        assert price.default == 1
        assert price.required is False

        assert schema["role"].enum == ("user", "admin")
        assert schema["role"].default == "user"

    def test_compiled_pattern_accepted(self):
        """Should accept an already compiled regular expression."""
        pattern = re.compile(r"^\d{5}$")
        schema = compile_schema({"zip": {"type": "string", "pattern": pattern}})

        assert schema["zip"].pattern is pattern

    def test_tuple_enum_accepted(self):
        """Should accept tuples where lists are expected."""
        schema = compile_schema({"size": {"type": "string", "enum": ("S", "M", "L")}})

        assert schema["size"].enum == ("S", "M", "L")

    def test_items_compiled(self):
        """Should compile an array's item schema into rules."""
        schema = compile_schema({
            "items": {
                "type": "array",
                "minLength": 1,
                "items": {
                    "productId": {"type": "number", "required": True},
                    "quantity": {"type": "number", "min": 1, "required": True},
                },
            }
        })

        items = schema["items"].items
        assert list(items) == ["productId", "quantity"]
        assert isinstance(items["quantity"], NumberRule)
        assert items["quantity"].min == 1

    def test_rule_objects_pass_through(self):
        """Should keep Rule objects as they are, mixed with dicts."""
        rule = NumberRule(min=0)
        schema = compile_schema({"price": rule, "name": {"type": "string"}})

        assert schema["price"] is rule
        assert isinstance(schema["name"], StringRule)

    def test_empty_schema(self):
        """Should accept a schema with no fields."""
        assert compile_schema({}) == {}

    def test_returns_new_dict(self):
        """Should not return the caller's mapping."""
        source = {"price": NumberRule()}
        schema = compile_schema(source)

        assert schema == source
        assert schema is not source

    def test_logs_compiled_fields(self, caplog):
        """Should log the compiled field names at debug level."""
        with caplog.at_level(logging.DEBUG, logger="bodycheck.rules"):
            compile_schema({"name": {"type": "string"}, "price": {"type": "number"}})

        assert "Compiled schema with 2 field(s): name, price" in caplog.text


class TestMalformedSchemas:
    """Test that malformed schemas are rejected at construction."""

    @pytest.mark.parametrize("schema,message", [
        (
            {"price": {"type": "number", "pattern": r"^\d+$"}},
            "price.pattern: does not apply to number fields",
        ),
        (
            {"name": {"type": "string", "min": 1}},
            "name.min: does not apply to string fields",
        ),
        (
            {"tags": {"type": "string", "items": {}}},
            "tags.items: does not apply to string fields",
        ),
        (
            {"active": {"type": "boolean", "maxLength": 1}},
            "active.maxLength: does not apply to boolean fields",
        ),
        (
            {"email": {"type": "email", "minLength": 3}},
            "email.minLength: does not apply to email fields",
        ),
        (
            {"code": {"pattern": "x"}},
            "code.pattern: requires a declared type",
        ),
        (
            {"name": {"type": "string", "minLen": 3}},
            "name.minLen: unknown rule key",
        ),
        (
            {"name": {"type": "text"}},
            "name.type: must be one of: string, number, boolean, array, object, email",
        ),
        (
            {"name": {"type": "string", "required": "yes"}},
            "name.required: must be a boolean",
        ),
        (
            {"name": {"type": "string", "minLength": -1}},
            "name.minLength: must be at least 0",
        ),
        (
            {"name": {"type": "string", "maxLength": 2.5}},
            "name.maxLength: must be an integer",
        ),
        (
            {"price": {"type": "number", "min": "0"}},
            "price.min: must be a number",
        ),
        (
            {"role": {"type": "string", "enum": "user"}},
            "role.enum: must be a list",
        ),
        (
            {"name": {"type": "string", "pattern": "("}},
            "name.pattern: invalid regular expression",
        ),
        (
            {"name": "string"},
            "name: rule must be a mapping",
        ),
    ])
    def test_single_problem(self, schema, message):
        """Should raise SchemaDefinitionError naming the field and key."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema(schema)

        assert exc_info.value.errors == [message]
        assert message in str(exc_info.value)

    def test_nested_items_rejected(self):
        """Should reject arrays of arrays of objects."""
        schema = {
            "lines": {
                "type": "array",
                "items": {"parts": {"type": "array", "items": {"sku": {"type": "string"}}}},
            }
        }
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema(schema)

        assert exc_info.value.errors == ["lines.items.parts.items: nested items are not supported"]

    def test_nested_rule_problems_reported(self):
        """Should check item rules with their full location."""
        schema = {
            "lines": {
                "type": "array",
                "items": {"quantity": {"type": "number", "maxLength": 3}},
            }
        }
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema(schema)

        assert exc_info.value.errors == ["lines.items.quantity.maxLength: does not apply to number fields"]

    def test_all_problems_reported_together(self):
        """Should list every problem, in field order."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema({
                "name": {"type": "string", "min": 1},
                "ok": {"type": "string"},
                "price": {"type": "money"},
            })

        assert exc_info.value.errors == [
            "name.min: does not apply to string fields",
            "price.type: must be one of: string, number, boolean, array, object, email",
        ]

    def test_schema_not_a_mapping(self):
        """Should reject a schema that is not a mapping."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema(["name"])

        assert exc_info.value.errors == ["schema must be a mapping of field names to rules"]

    def test_field_name_not_a_string(self):
        """Should reject non-string field names."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            compile_schema({1: {"type": "string"}})

        assert exc_info.value.errors == ["1: field names must be strings"]

    def test_schema_definition_error_is_value_error(self):
        """Should be catchable as ValueError."""
        with pytest.raises(ValueError):
            compile_schema({"name": {"type": "text"}})


class TestRuleConstruction:
    """Test building rule objects directly."""

    def test_string_pattern_compiled(self):
        """Should compile a string pattern on construction."""
        rule = StringRule(pattern=r"^\d+$")

        assert isinstance(rule.pattern, re.Pattern)

    def test_invalid_pattern_rejected(self):
        """Should raise SchemaDefinitionError for an invalid pattern."""
        with pytest.raises(SchemaDefinitionError):
            StringRule(pattern="(")

    def test_enum_normalized_to_tuple(self):
        """Should store enum values as a tuple."""
        assert AnyRule(enum=["a", "b"]).enum == ("a", "b")

    def test_array_items_compiled_from_dicts(self):
        """Should compile loose item rules given to ArrayRule."""
        rule = ArrayRule(items={"quantity": {"type": "number", "min": 1}})

        assert isinstance(rule.items["quantity"], NumberRule)

    def test_array_items_cannot_nest(self):
        """Should reject an item rule that has items of its own."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            ArrayRule(items={"parts": ArrayRule(items={"sku": StringRule()})})

        assert exc_info.value.errors == ["parts.items: nested items are not supported"]

    def test_rules_are_frozen(self):
        """Should not allow rules to be modified after construction."""
        rule = NumberRule(min=0)

        with pytest.raises(AttributeError):
            rule.min = 5

    def test_defaults(self):
        """Should default to optional with no default value."""
        rule = BooleanRule()

        assert rule.required is False
        assert rule.has_default is False
        assert rule.enum is None
