"""
Domain error hierarchy for the order core

Every use case runs inside operation_context(), which stamps the operation
name onto domain errors and wraps raw database errors so callers always see a
PosError with enough context to tell what was attempted on which ids.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

logger = structlog.get_logger(__name__)


class PosError(Exception):
    """Base class for all order core errors"""

    code = "pos_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context
        self.operation: Optional[str] = None

    def __str__(self) -> str:
        if self.operation:
            return f"Failed to {self.operation}: {self.message}"
        return self.message


class NotFoundError(PosError):
    """Referenced entity does not exist (or belongs to another tenant)"""

    code = "not_found"


class TenantNotFoundError(NotFoundError):
    code = "tenant_not_found"


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"


class TenantInactiveError(PosError):
    code = "tenant_inactive"


class InvalidStateError(PosError):
    """A state machine guard or transition check failed"""

    code = "invalid_state"


class InvalidInputError(PosError):
    code = "invalid_input"


class ConcurrencyConflictError(PosError):
    """The order changed underneath the operation, or a generated number collided"""

    code = "concurrency_conflict"


class PersistenceError(PosError):
    code = "persistence_error"


@contextmanager
def operation_context(operation: str, **context: Any) -> Iterator[None]:
    """Attach operation context to errors raised inside the block"""
    try:
        yield
    except PosError as e:
        if e.operation is None:
            e.operation = operation
        for key, value in context.items():
            e.context.setdefault(key, value)
        raise
    except IntegrityError as e:
        logger.error(f"Integrity error during {operation}", **_loggable(context))
        error = ConcurrencyConflictError("Conflicting concurrent write, please retry", **context)
        error.operation = operation
        raise error from e
    except SQLAlchemyError as e:
        logger.error(f"Database error during {operation}: {e}", **_loggable(context))
        error = PersistenceError(str(e), **context)
        error.operation = operation
        raise error from e


def _loggable(context: Dict[str, Any]) -> Dict[str, str]:
    return {key: str(value) for key, value in context.items()}
