"""
Reliability Utilities.

Translates connection pool exhaustion into a retryable application error.
"""

import logging
from functools import wraps
from typing import Callable, Any

from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from calctree.app.core.exceptions import TransientResourceError

logger = logging.getLogger("calctree.reliability")


def translate_pool_errors(func: Callable) -> Callable:
    """
    Decorator for async database operations.

    A pool checkout that exceeds `pool_timeout` raises
    sqlalchemy.exc.TimeoutError; callers see TransientResourceError instead,
    which the API renders as 503 with Retry-After.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        try:
            return await func(*args, **kwargs)
        except PoolTimeoutError as e:
            logger.warning("Connection pool exhausted in %s: %s", func.__qualname__, e)
            raise TransientResourceError() from e

    return wrapper
