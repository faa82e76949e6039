"""
Operation context for handling cross-cutting concerns.

Every backend operation is logged as ENTER, then EXIT or FAILED, with its
duration. Operations share one correlation ID per request: the outermost
operation generates it and clears it again when it finishes, nested ones
reuse it, so every log line and error raised while serving a request can be
tied back to it.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger


class OperationContext:
    """Identity, timing and log context of one running operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        inherited = get_correlation_id()
        self.owns_correlation_id = correlation_id is None and inherited is None
        self.correlation_id = correlation_id or inherited or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context: Dict[str, Any] = dict(context)
        self._started = time.monotonic()

    @property
    def duration_ms(self) -> float:
        return round((time.monotonic() - self._started) * 1000, 2)

    def add_context(self, **kwargs) -> None:
        """Attach fields to the EXIT/FAILED log line."""
        self.context.update(kwargs)

    def log_fields(self, **fields) -> Dict[str, Any]:
        return {
            **self.context,
            "operation_id": self.operation_id,
            "correlation_id": self.correlation_id,
            **fields,
        }

    def release(self) -> None:
        if self.owns_correlation_id:
            clear_correlation_id()


class OperationHandler:
    """Wraps a block in ENTER/EXIT/FAILED logging and error enrichment."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context) -> Iterator[OperationContext]:
        op_ctx = OperationContext(name, **context)
        self.logger.info(f"ENTER: {name}", extra=op_ctx.log_fields())

        try:
            yield op_ctx
        except BaseError as e:
            e.add_context(operation_name=name, operation_id=op_ctx.operation_id)
            # The error logged its own details when it was raised
            self.logger.error(
                f"FAILED: {name} -> {e.error_code.value}: {e.message}",
                extra=op_ctx.log_fields(
                    duration_ms=op_ctx.duration_ms,
                    error_id=e.error_id,
                    error_code=e.error_code.value,
                    status="error",
                ),
            )
            raise
        except Exception as e:
            self.logger.exception(
                f"FAILED: {name} -> {type(e).__name__}: {str(e)}",
                extra=op_ctx.log_fields(
                    duration_ms=op_ctx.duration_ms,
                    error_type=type(e).__name__,
                    status="error",
                ),
            )
            raise
        else:
            self.logger.info(
                f"EXIT: {name}",
                extra=op_ctx.log_fields(duration_ms=op_ctx.duration_ms, status="success"),
            )
        finally:
            op_ctx.release()


F = TypeVar("F", bound=Callable[..., Any])


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorator for operations.

    Args:
        name: Optional operation name. Defaults to ``<module>.<Class>.<function>``.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if name is not None:
                op_name = name
            else:
                op_name = func.__name__
                if args and hasattr(args[0], func.__name__):
                    op_name = f"{args[0].__class__.__name__}.{op_name}"
                op_name = f"{func.__module__.split('.')[-1]}.{op_name}"

            with OperationHandler().operation(op_name, source_module=func.__module__):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    # Used without parentheses
    if callable(name):
        func, name = name, None
        return decorator(func)

    return decorator
