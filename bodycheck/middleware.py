"""Route-handler wrappers for bodycheck.

These decorators sit between a web framework and a route handler:

- validate_request(schema): validates the request body before the handler
  runs, and hands the handler the normalized body (defaults applied)
- handle_errors: turns any exception raised by a handler into a
  ``(status, body)`` response, so handlers don't need their own try/except

Both work on plain functions and on ``async def`` handlers.

Usage:
    >>> @handle_errors
    ... @validate_request({
    ...     'username': {'type': 'string', 'minLength': 3, 'required': True},
    ...     'role': {'type': 'string', 'enum': ['user', 'admin'], 'default': 'user'},
    ... })
    ... def create_user(body):
    ...     return 201, body
    >>> create_user({'username': 'alice'})
    (201, {'username': 'alice', 'role': 'user'})
    >>> create_user({'username': 'al'})
    (400, {'error': 'Validation failed', 'details': ["Field 'username' must be at least 3 characters"]})
"""

import functools
import inspect
import logging
import traceback
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from bodycheck.config import get_settings
from bodycheck.errors import HTTPError, RequestValidationError
from bodycheck.rules import RuleSpec
from bodycheck.validation import SchemaValidator

logger = logging.getLogger(__name__)

Handler = TypeVar("Handler", bound=Callable[..., Any])
Response = Tuple[int, Dict[str, Any]]

DEFAULT_ERROR_MESSAGE = "Internal Server Error"


def validate_request(schema: Mapping[str, RuleSpec]) -> Callable[[Handler], Handler]:
    """Build a decorator that validates a handler's request body.

    The schema is compiled once, when the decorator is built, so a malformed
    schema fails at import time rather than on the first request.

    The wrapped handler must take the request body as its first positional
    argument. On success it is called with the normalized body in its place;
    on failure RequestValidationError is raised and the handler is not called.

    Args:
        schema: Mapping of field name to rule

    Returns:
        A decorator for sync or async handlers

    Raises:
        SchemaDefinitionError: If the schema is not well-formed
    """
    validator = SchemaValidator(schema)

    def check(body: Any) -> Dict[str, Any]:
        result = validator.validate(body)
        if not result.is_valid:
            raise RequestValidationError(result.errors)
        return result.data

    def decorator(handler: Handler) -> Handler:
        if inspect.iscoroutinefunction(handler):
            @functools.wraps(handler)
            async def wrapper(body: Any, *args: Any, **kwargs: Any) -> Any:
                return await handler(check(body), *args, **kwargs)
        else:
            @functools.wraps(handler)
            def wrapper(body: Any, *args: Any, **kwargs: Any) -> Any:
                return handler(check(body), *args, **kwargs)

        wrapper.validator = validator  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator


def error_response(exc: BaseException, debug: Optional[bool] = None) -> Response:
    """Convert an exception into a ``(status, body)`` response.

    Args:
        exc: The exception raised while handling a request
        debug: Whether to include the stack trace in the body; defaults to
            Settings.debug

    Returns:
        Status code from the exception's ``status_code`` (500 if it has none)
        and a body of the form ``{"error": message}``. Validation failures also
        carry ``details``; debug mode adds ``stack``.
    """
    if debug is None:
        debug = get_settings().debug

    status = getattr(exc, "status_code", None) or 500
    if isinstance(exc, HTTPError):
        body = exc.to_dict()
    else:
        body = {"error": str(exc) or DEFAULT_ERROR_MESSAGE}

    if status >= 500:
        logger.error("Unhandled error: %s", exc, exc_info=exc)
    else:
        logger.info("Request failed with %d: %s", status, body["error"])

    if debug:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return status, body


def handle_errors(handler: Handler) -> Handler:
    """Wrap a handler so any exception it raises becomes an error response.

    The handler's own return value passes through unchanged.
    """
    if inspect.iscoroutinefunction(handler):
        @functools.wraps(handler)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await handler(*args, **kwargs)
            except Exception as e:
                return error_response(e)
        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(handler)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return handler(*args, **kwargs)
        except Exception as e:
            return error_response(e)
    return wrapper  # type: ignore[return-value]


__all__ = [
    "DEFAULT_ERROR_MESSAGE",
    "validate_request",
    "error_response",
    "handle_errors",
]
