"""
Centralized error handling decorators for database operations.

Store errors are classified and logged with the operation context, then
re-raised as ServiceError so callers see one infrastructure failure type.
Scheduling errors (not found, rule violations) pass through untouched.
"""
import functools
import inspect
import logging
import traceback
from typing import Any, Callable, Optional

from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InvalidRequestError,
    OperationalError,
    PendingRollbackError,
    SQLAlchemyError,
    StatementError,
    TimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import SchedulerError, ServiceError

logger = logging.getLogger(__name__)


class DatabaseErrorHandler:
    """Centralized database error handling utilities."""

    DATABASE_EXCEPTIONS = (
        SQLAlchemyError,
        IntegrityError,
        OperationalError,
        DisconnectionError,
        TimeoutError,
        StatementError,
        InvalidRequestError,
        PendingRollbackError,
        ConnectionError,
    )

    @staticmethod
    def handle_database_error(
        exc: Exception,
        operation: str,
        context: Optional[dict] = None
    ) -> tuple[bool, str]:
        """
        Classify and log a database error.

        Args:
            exc: The exception that occurred
            operation: Description of the database operation
            context: Additional context information

        Returns:
            Tuple of (is_recoverable, error_message)
        """
        context_str = f" | Context: {context}" if context else ""

        if isinstance(exc, IntegrityError):
            error_msg = f"Database integrity error during {operation}: {exc}{context_str}"
            logger.warning(error_msg)
            return False, error_msg

        elif isinstance(exc, (ConnectionError, DisconnectionError)):
            error_msg = f"Database connection error during {operation}: {exc}{context_str}"
            logger.error(error_msg)
            return True, error_msg

        elif isinstance(exc, TimeoutError):
            error_msg = f"Database timeout during {operation}: {exc}{context_str}"
            logger.warning(error_msg)
            return True, error_msg

        elif isinstance(exc, OperationalError):
            error_msg = f"Database operational error during {operation}: {exc}{context_str}"
            logger.error(error_msg)
            return True, error_msg

        elif isinstance(exc, StatementError):
            error_msg = f"Database statement error during {operation}: {exc}{context_str}"
            logger.warning(error_msg)
            return False, error_msg

        else:
            error_msg = f"Unexpected database error during {operation}: {type(exc).__name__}: {exc}{context_str}"
            logger.error(f"{error_msg}\nTraceback: {traceback.format_exc()}")
            return False, error_msg


def _is_async(func: Callable) -> bool:
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__wrapped__", None)
    )


def _find_session(args: tuple, kwargs: dict) -> Optional[AsyncSession]:
    for arg in args:
        if isinstance(arg, AsyncSession):
            return arg
    for value in kwargs.values():
        if isinstance(value, AsyncSession):
            return value
    return None


def handle_database_exceptions(
    operation_name: Optional[str] = None,
    reraise: bool = True,
    default_return: Any = None,
) -> Callable:
    """
    Decorator to wrap async database operations with error handling.

    Args:
        operation_name: Name of the operation for logging (defaults to function name)
        reraise: Raise ServiceError after logging; otherwise return default_return
        default_return: Value to return if a database error occurs and reraise=False

    Returns:
        Decorated coroutine function
    """
    def decorator(func: Callable) -> Callable:
        if not _is_async(func):
            raise TypeError(f"handle_database_exceptions requires a coroutine function: {func.__name__}")

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation = operation_name or getattr(func, "__name__", "unknown")
            context = {
                "function": getattr(func, "__name__", "unknown"),
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()) if kwargs else [],
            }

            try:
                result = await func(*args, **kwargs)
                logger.debug(f"Successfully completed {operation}")
                return result

            except SchedulerError:
                raise

            except DatabaseErrorHandler.DATABASE_EXCEPTIONS as exc:
                _, error_msg = DatabaseErrorHandler.handle_database_error(
                    exc, operation, context
                )
                if reraise:
                    raise ServiceError(f"Storage failure during {operation}") from exc
                logger.info(f"Operation {operation} failed, returning default: {default_return!r}")
                return default_return

        return async_wrapper

    return decorator


def database_transaction(
    operation_name: Optional[str] = None,
    commit_on_success: bool = True,
    rollback_on_error: bool = True
) -> Callable:
    """
    Decorator to handle database transactions with commit/rollback.

    The AsyncSession is located among the call arguments. Operations that
    already committed inside the body leave nothing for the final commit.

    Args:
        operation_name: Name of the operation for logging
        commit_on_success: Whether to commit on successful completion
        rollback_on_error: Whether to rollback on error
    """
    def decorator(func: Callable) -> Callable:
        if not _is_async(func):
            logger.warning(f"database_transaction decorator used on sync function {func.__name__}")
            return func

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation = operation_name or getattr(func, "__name__", "unknown")
            db_session = _find_session(args, kwargs)

            if db_session is None:
                logger.warning(f"No AsyncSession found for transaction operation {operation}")
                return await func(*args, **kwargs)

            try:
                logger.debug(f"Starting database transaction for {operation}")
                result = await func(*args, **kwargs)

                if commit_on_success:
                    await db_session.commit()
                    logger.debug(f"Transaction committed for {operation}")

                return result

            except Exception:
                if rollback_on_error:
                    try:
                        await db_session.rollback()
                        logger.debug(f"Transaction rolled back for {operation} due to error")
                    except DatabaseErrorHandler.DATABASE_EXCEPTIONS as rollback_exc:
                        logger.error(f"Failed to rollback transaction for {operation}: {rollback_exc}")
                raise

        return async_wrapper

    return decorator


def log_database_operation(
    operation: str,
    level: str = "debug"
) -> Callable:
    """
    Decorator to log the start and end of a database operation.

    Args:
        operation: Description of the operation
        level: Logging level ('debug', 'info', 'warning', 'error')
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            logger_method = getattr(logger, level)
            func_name = getattr(func, "__name__", "unknown")
            logger_method(f"Starting {operation} via {func_name}")

            try:
                result = await func(*args, **kwargs)
                logger_method(f"Completed {operation} via {func_name}")
                return result
            except Exception as exc:
                logger_method(f"Failed {operation} via {func_name}: {exc}")
                raise

        return async_wrapper

    return decorator


def safe_database_query(func=None, operation_name: Optional[str] = None, default_return: Any = None) -> Callable:
    """
    Read decorator that logs database errors and returns a default instead.

    Can be used with or without parentheses:
        @safe_database_query
        @safe_database_query("custom name", default_return=[])
    """
    def decorator(f: Callable) -> Callable:
        return handle_database_exceptions(
            operation_name=operation_name,
            reraise=False,
            default_return=default_return,
        )(f)

    if func is None:
        return decorator
    elif callable(func):
        return decorator(func)
    else:
        return safe_database_query(operation_name=func, default_return=default_return)


def critical_database_operation(func=None, operation_name: Optional[str] = None) -> Callable:
    """
    Decorator for operations whose database errors must surface as ServiceError.

    Can be used with or without parentheses:
        @critical_database_operation
        @critical_database_operation("custom name")
    """
    def decorator(f: Callable) -> Callable:
        return handle_database_exceptions(operation_name=operation_name, reraise=True)(f)

    if func is None:
        return decorator
    elif callable(func):
        return decorator(func)
    else:
        return critical_database_operation(operation_name=func)


def transactional_database_operation(func=None, operation_name: Optional[str] = None) -> Callable:
    """
    Combined decorator: transaction handling plus error handling.

    Can be used with or without parentheses:
        @transactional_database_operation
        @transactional_database_operation("operation_name")
    """
    def decorator(f: Callable) -> Callable:
        transaction_decorated = database_transaction(operation_name=operation_name)(f)
        return handle_database_exceptions(operation_name=operation_name, reraise=True)(transaction_decorated)

    if func is None:
        return decorator
    elif callable(func):
        return decorator(func)
    else:
        return transactional_database_operation(operation_name=func)
