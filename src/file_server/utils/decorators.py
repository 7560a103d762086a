"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, TypeVar, cast

from file_server.errors import FileRegistryError, StoreUnavailableError

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(func: F) -> F:
    """Decorator to log function execution time.

    Classified caller errors (unknown file, bad name) are logged at INFO,
    store outages and anything unexpected at ERROR.

    Args:
        func: The function to decorate

    Returns:
        Decorated function that logs execution time
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            duration = time.perf_counter() - start_time
            logger.info(f"{func.__name__} completed in {duration:.2f}s")
            return result
        except FileRegistryError as e:
            duration = time.perf_counter() - start_time
            level = logging.ERROR if isinstance(e, StoreUnavailableError) else logging.INFO
            logger.log(level, f"{func.__name__} failed after {duration:.2f}s: {e.code}: {e.message}")
            raise
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(f"{func.__name__} failed after {duration:.2f}s: {str(e)}")
            raise
    return cast(F, wrapper)
