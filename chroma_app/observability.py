"""Observability helpers for instrumenting service operations."""

from __future__ import annotations

import inspect
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, ParamSpec, TypeVar

from pydantic import BaseModel, ValidationError

from chroma_app.logging_config import ensure_correlation_id, get_logger, log_event, redact_for_log
from storage.errors import StoreError, ValidationFailure

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def _preview_arguments(arguments: dict, max_keys: int = 6) -> dict:
    preview: dict = {}
    for idx, (key, value) in enumerate(arguments.items()):
        if idx >= max_keys:
            preview["truncated"] = True
            break
        preview[key] = value
    return redact_for_log(preview)


def _bind_arguments(func: Callable[..., Any], args: tuple, kwargs: dict) -> inspect.BoundArguments:
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()
    return bound


def instrument_operation(
    operation_name: str,
    input_model: type[BaseModel] | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap an async operation with validation, structured logs and timing.

    When ``input_model`` is given, the named arguments of the call (``self``
    excluded) are validated against it and replaced by the validated values.
    Validation errors surface as :class:`ValidationFailure`.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            correlation_id = ensure_correlation_id()
            start = time.perf_counter()
            bound = _bind_arguments(func, args, kwargs)
            named = {key: value for key, value in bound.arguments.items() if key != "self"}

            if input_model:
                try:
                    validated = input_model.model_validate(named)
                except ValidationError as exc:
                    log_event(
                        LOGGER,
                        logging.WARNING,
                        "operation_validation_failed",
                        operation=operation_name,
                        correlation_id=correlation_id,
                        errors=[error.get("msg") for error in exc.errors()],
                    )
                    raise ValidationFailure(f"Invalid input for {operation_name}: {exc.errors()}") from exc
                for key, value in validated.model_dump().items():
                    if key in bound.arguments:
                        bound.arguments[key] = value

            log_event(
                LOGGER,
                logging.DEBUG,
                "operation_started",
                operation=operation_name,
                correlation_id=correlation_id,
                arguments=_preview_arguments(named),
            )
            try:
                result = await func(*bound.args, **bound.kwargs)
            except StoreError as exc:
                log_event(
                    LOGGER,
                    logging.INFO,
                    "operation_rejected",
                    operation=operation_name,
                    correlation_id=correlation_id,
                    error=type(exc).__name__,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                raise
            except Exception:
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "operation_failed",
                    operation=operation_name,
                    correlation_id=correlation_id,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                    exc_info=True,
                )
                raise
            log_event(
                LOGGER,
                logging.DEBUG,
                "operation_completed",
                operation=operation_name,
                correlation_id=correlation_id,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return result

        return wrapper

    return decorator


__all__ = ["instrument_operation"]
