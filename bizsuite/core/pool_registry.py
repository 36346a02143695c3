"""
Connection pool registry for tenant stores

Keeps exactly one pooled engine per distinct store address for the lifetime
of the process. Creation is single-flight: the first caller for an unseen
address registers an in-flight future before its first await, and every
concurrent caller for that address awaits the same future instead of
building a second pool.

Failed creations are not cached; the next request retries.

Entries are never evicted. This holds as long as the number of distinct
tenant store addresses stays small; an LRU or last-access eviction would be
the follow-up if that stops being true.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
import structlog

from bizsuite.core.config import get_settings
from bizsuite.core.database import create_store_engine
from bizsuite.core.exceptions import StoreUnavailable
from bizsuite.core.logging import mask_address

logger = structlog.get_logger(__name__)

PoolFactory = Callable[[str], Awaitable[AsyncEngine]]


class ConnectionPoolRegistry:
    """Atomic get-or-create map from store address to pooled engine"""

    def __init__(
        self,
        pool_factory: Optional[PoolFactory] = None,
        pool_size: Optional[int] = None,
        create_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self._pool_size = pool_size or settings.TENANT_POOL_SIZE
        self._create_timeout = create_timeout or settings.POOL_CREATE_TIMEOUT_SECONDS
        self._pool_factory = pool_factory or self._open_pool
        self._pools: Dict[str, AsyncEngine] = {}
        self._in_flight: Dict[str, "asyncio.Future[AsyncEngine]"] = {}

    def __len__(self) -> int:
        return len(self._pools)

    def __contains__(self, address: str) -> bool:
        return address in self._pools

    @property
    def addresses(self) -> List[str]:
        return list(self._pools)

    async def get(self, address: str) -> AsyncEngine:
        """Return the pool for address, creating it at most once"""
        pool = self._pools.get(address)
        if pool is not None:
            return pool

        pending = self._in_flight.get(address)
        if pending is not None:
            # Shield so a cancelled waiter does not cancel the shared creation
            return await asyncio.shield(pending)

        future: "asyncio.Future[AsyncEngine]" = asyncio.get_running_loop().create_future()
        # Mark the exception retrieved so unobserved failures are not reported twice
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._in_flight[address] = future

        try:
            pool = await asyncio.wait_for(self._pool_factory(address), timeout=self._create_timeout)
        except asyncio.TimeoutError as e:
            error = StoreUnavailable(f"Pool creation timed out for {mask_address(address)}")
            future.set_exception(error)
            raise error from e
        except asyncio.CancelledError:
            future.set_exception(StoreUnavailable("Pool creation was cancelled"))
            raise
        except StoreUnavailable as e:
            future.set_exception(e)
            raise
        except Exception as e:
            error = StoreUnavailable(f"Pool creation failed for {mask_address(address)}: {e}")
            future.set_exception(error)
            raise error from e
        else:
            self._pools[address] = pool
            future.set_result(pool)
            logger.info(f"Created pool for {mask_address(address)} ({len(self._pools)} pools open)")
            return pool
        finally:
            self._in_flight.pop(address, None)

    async def _open_pool(self, address: str) -> AsyncEngine:
        """Build a bounded engine and prove the store is reachable"""
        engine = create_store_engine(address, self._pool_size)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error(f"Store unreachable at {mask_address(address)}: {e}")
            raise StoreUnavailable(f"Store unreachable at {mask_address(address)}") from e
        except asyncio.CancelledError:
            # Creation timed out or the caller went away mid-check
            await engine.dispose()
            raise
        return engine

    async def dispose_all(self) -> None:
        """Close every pool (application shutdown)"""
        pools, self._pools = self._pools, {}
        for address, pool in pools.items():
            await pool.dispose()
            logger.info(f"Disposed pool for {mask_address(address)}")
