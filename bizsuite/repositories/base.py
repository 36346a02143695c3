"""
Shared helpers for SQL-backed stores
"""

import asyncio
from typing import Awaitable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from bizsuite.core.config import get_settings
from bizsuite.core.exceptions import RecordConflict, StoreUnavailable

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def guarded(operation: str, call: Awaitable[T]) -> T:
    """
    Run a store call under the store timeout.

    Timeouts and driver errors become StoreUnavailable; unique violations
    become RecordConflict.
    """
    timeout = get_settings().STORE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Store call {operation} timed out after {timeout}s")
        raise StoreUnavailable(f"{operation} timed out") from e
    except IntegrityError as e:
        logger.warning(f"Store call {operation} rejected by constraint: {e.orig}")
        raise RecordConflict() from e
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Store call {operation} failed: {e}")
        raise StoreUnavailable(f"{operation} failed") from e
