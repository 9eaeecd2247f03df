from __future__ import annotations

from dataclasses import dataclass
import functools
import logging
from typing import Callable, ParamSpec

from ..core.errors import BookingError

logger = logging.getLogger(__name__)

P = ParamSpec("P")


@dataclass(slots=True)
class OperationResult:
    success: bool
    message: str
    booking_number: str | None = None
    needs_refund: bool = False
    entity_id: str | None = None
    error: BookingError | None = None

    @classmethod
    def ok(cls, message: str, **kwargs) -> "OperationResult":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failed(cls, error: BookingError) -> "OperationResult":
        return cls(success=False, message=str(error), error=error)


def operation(func: Callable[P, OperationResult]) -> Callable[P, OperationResult]:
    """Turn domain errors raised by a mutating operation into a failed result."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> OperationResult:
        try:
            return func(*args, **kwargs)
        except BookingError as exc:
            logger.info(
                "Operation rejected",
                extra={
                    "operation": func.__name__,
                    "error": type(exc).__name__,
                    "reason": str(exc),
                },
            )
            return OperationResult.failed(exc)

    return wrapper
