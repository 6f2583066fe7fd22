"""PostgreSQL connection pool for the store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from lifescore.exceptions import ConnectionError, wrap_external_exception

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one AsyncConnectionPool

    Connections are handed out with dict rows. Pool failures surface as
    lifescore.exceptions.ConnectionError.
    """

    def __init__(self, connection_string: str, min_size: int = 2, max_size: int = 10, open_timeout: float = 30.0):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.open_timeout = open_timeout
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool and wait until min_size connections are ready"""
        if self._pool is not None:
            return
        logger.info(f"Opening PostgreSQL pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False
        )
        try:
            await pool.open(wait=True, timeout=self.open_timeout)
        except (psycopg.Error, TimeoutError) as e:
            await pool.close()
            raise ConnectionError(
                message=f"Could not open PostgreSQL pool: {e}",
                operation="init_pool",
                cause=e,
            )
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing PostgreSQL pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Pooled connection with dict rows"""
        if not self._pool:
            raise ConnectionError(message="PostgreSQL pool not initialized", operation="connection")

        try:
            async with self._pool.connection() as conn:
                conn.row_factory = dict_row
                yield conn
        except psycopg.OperationalError as e:
            raise wrap_external_exception(e, operation="connection")
