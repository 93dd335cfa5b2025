"""
Validation Decorators

Applies Pydantic validation to MCP tools and turns failures into
structured INVALID_INPUT responses.
"""

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ErrorCode, make_error_response
from ..observability import get_observability

logger = logging.getLogger(__name__)


def _validation_failure(func: Callable[..., Any], error: ValidationError, kwargs: dict[str, Any]) -> dict[str, Any]:
    validation_errors = [
        {
            "field": " -> ".join(str(loc) for loc in item["loc"]),
            "message": item["msg"],
            "type": item["type"],
        }
        for item in error.errors()
    ]

    logger.warning(
        f"Input validation failed for {func.__name__}",
        extra={
            "function": func.__name__,
            "validation_errors": validation_errors,
            "input_keys": sorted(kwargs),
        },
    )
    get_observability().increment(
        "validation.failed",
        tags={"function": func.__name__, "error_count": str(len(validation_errors))},
    )

    return make_error_response(
        error_code=ErrorCode.INVALID_INPUT,
        message="Input validation failed",
        context={"validation_errors": validation_errors, "function": func.__name__},
    )


def validate_input(schema: type[BaseModel]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to validate tool inputs using Pydantic schema.

    Args:
        schema: Pydantic model class for input validation

    Returns:
        Decorated function receiving validated keyword arguments

    Example:
        >>> @validate_input(GetCostEstimatesInput)
        ... async def get_cost_estimates(content: str, model_ids: list[str]):
        ...     pass

    Error Response:
        {
            "success": False,
            "error_code": "INVALID_INPUT",
            "category": "invalid_input",
            "retryable": False,
            "message": "Input validation failed",
            "details": {
                "validation_errors": [
                    {"field": "content", "message": "...", "type": "string_too_short"}
                ]
            }
        }
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    validated = schema(**kwargs)
                except ValidationError as e:
                    return _validation_failure(func, e, kwargs)
                return await func(*args, **validated.model_dump())

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                validated = schema(**kwargs)
            except ValidationError as e:
                return _validation_failure(func, e, kwargs)
            return func(*args, **validated.model_dump())

        return sync_wrapper

    return decorator
