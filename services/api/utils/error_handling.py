"""Route decorators turning lookup and system failures into HTTP errors"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from fastapi import HTTPException

from services.agent.filter_errors import FilterError
from services.api.enums import ErrorMessages

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_key_error(
    status_code: int = 404,
    detail: str = ErrorMessages.INTERFACE_NOT_FOUND
) -> Callable[[F], F]:
    """
    Map a KeyError from a name lookup (interface, process) to an HTTP error.

    Usage:
        @handle_key_error(404, ErrorMessages.INTERFACE_NOT_FOUND)
        def get_interface(name: str):
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except KeyError as exc:
                logger.info("%s: %s", detail, exc)
                raise HTTPException(status_code=status_code, detail=detail)
        return wrapper  # type: ignore[return-value]

    return decorator


def handle_generic_error(
    status_code: int = 500,
    detail_prefix: str = "Internal server error",
    log_error: bool = True
) -> Callable[[F], F]:
    """
    Map unexpected failures (psutil, OS errors) to an HTTP 500.

    HTTPException and FilterError are re-raised untouched; the registered
    exception handlers turn them into responses.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except (HTTPException, FilterError):
                raise
            except Exception as exc:
                if log_error:
                    logger.error("%s in %s: %s", detail_prefix, func.__name__, exc, exc_info=True)
                raise HTTPException(status_code=status_code, detail=f"{detail_prefix}: {exc}")
        return wrapper  # type: ignore[return-value]

    return decorator
