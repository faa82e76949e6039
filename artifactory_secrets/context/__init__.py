from .operation_context import OperationContext, OperationHandler, operation
from .rw_lock import ReadWriteLock

__all__ = ["OperationContext", "OperationHandler", "operation", "ReadWriteLock"]
