"""bodycheck: request-body validation for HTTP APIs.

bodycheck checks an incoming, untyped request body against a declarative
per-endpoint schema and provides:
- Type checks for string, number, boolean, array, object and email fields
- Length, range, pattern and enum constraints
- Defaults for absent optional fields, returned in a new normalized body
- One level of nested validation for arrays of objects
- The complete list of violations in one pass, in schema order

Basic usage:
    >>> from bodycheck import SchemaValidator
    >>> engine = SchemaValidator({
    ...     "username": {"type": "string", "minLength": 3, "required": True},
    ...     "email": {"type": "email", "required": True},
    ... })
    >>> result = engine.validate({"username": "al", "email": "al@example"})
    >>> result.messages
    ["Field 'username' must be at least 3 characters", "Field 'email' must be a valid email address"]
"""

__version__ = "0.1.0"
__author__ = "bodycheck contributors"

# Version info
VERSION = (0, 1, 0)

# Core exports
from bodycheck.errors import FieldError, RequestValidationError, SchemaDefinitionError
from bodycheck.middleware import handle_errors, validate_request
from bodycheck.rules import compile_schema
from bodycheck.validation import SchemaValidator, ValidationResult, validate

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FieldError",
    "RequestValidationError",
    "SchemaDefinitionError",
    "SchemaValidator",
    "ValidationResult",
    "compile_schema",
    "handle_errors",
    "validate",
    "validate_request",
]
