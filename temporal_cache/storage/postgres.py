"""
PostgreSQL async client wrapper for the content store.

Provides a high-level interface for PostgreSQL operations
with connection pooling and error handling.
"""

from __future__ import annotations

import inspect
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass
import structlog

import asyncpg


logger = structlog.get_logger()


@dataclass
class PostgresConfig:
    """PostgreSQL configuration."""
    dsn: str
    min_size: int = 2
    max_size: int = 10
    timeout: int = 30


def quote_identifier(name: str) -> str:
    """Quote a table or column name for interpolation into SQL."""
    return '"' + name.replace('"', '""') + '"'


class PostgresClient:
    """
    Async PostgreSQL client with connection pooling.

    Queries log and re-raise on failure; retries are left to the caller.
    """

    def __init__(self, config: Union[PostgresConfig, str]):
        if isinstance(config, str):
            config = PostgresConfig(dsn=config)
        self.config = config
        self.logger = structlog.get_logger("postgres-client")
        self._pool: Optional[asyncpg.Pool] = None
        self.is_connected: bool = False

    async def connect(self) -> None:
        """Connect to PostgreSQL."""
        if self._pool:
            self.is_connected = True
            return

        self._pool = await asyncpg.create_pool(
            self.config.dsn,
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            command_timeout=self.config.timeout
        )

        self.is_connected = True
        self.logger.info("Connected to PostgreSQL")

    async def disconnect(self) -> None:
        """Disconnect from PostgreSQL."""
        if self._pool:
            close_method = getattr(self._pool, "close", None)
            if callable(close_method):
                result = close_method()
                if inspect.isawaitable(result):
                    await result
            self._pool = None

        self.is_connected = False
        self.logger.info("Disconnected from PostgreSQL")

    async def close(self) -> None:
        """Alias for disconnect to mirror other storage clients."""
        await self.disconnect()

    async def execute(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return list of rows."""
        if not self._pool:
            await self.connect()

        conn = await self._pool.acquire()
        try:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]
        except Exception as e:
            self.logger.error("PostgreSQL query error", error=str(e), query=query)
            raise
        finally:
            await self._pool.release(conn)

    async def execute_one(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        """Execute a SELECT query returning a single row."""
        if not self._pool:
            await self.connect()

        conn = await self._pool.acquire()
        try:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None
        except Exception as e:
            self.logger.error("PostgreSQL query error", error=str(e), query=query)
            raise
        finally:
            await self._pool.release(conn)

    async def execute_scalar(self, query: str, *args: Any) -> Any:
        """Execute a SELECT query returning a scalar value."""
        if not self._pool:
            await self.connect()

        conn = await self._pool.acquire()
        try:
            return await conn.fetchval(query, *args)
        except Exception as e:
            self.logger.error("PostgreSQL query error", error=str(e), query=query)
            raise
        finally:
            await self._pool.release(conn)

    async def update(self, table: str, data: Dict[str, Any], where_clause: str, *args: Any) -> None:
        """
        Update records matching the where clause.

        Placeholders in ``where_clause`` are numbered after the SET values,
        e.g. ``update("pages", {"start_time": 1}, "id = $2", 7)``.
        """
        if not self._pool:
            await self.connect()

        conn = await self._pool.acquire()
        try:
            set_clauses = [f"{quote_identifier(col)} = ${i+1}" for i, col in enumerate(data.keys())]
            query = f"UPDATE {quote_identifier(table)} SET {', '.join(set_clauses)} WHERE {where_clause}"

            values = list(data.values()) + list(args)
            await conn.execute(query, *values)

            self.logger.debug("Records updated", table=table)
        except Exception as e:
            self.logger.error("PostgreSQL update error", error=str(e), table=table)
            raise
        finally:
            await self._pool.release(conn)

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        try:
            result = await self.execute_scalar("SELECT 1")
            return result == 1
        except Exception as e:
            self.logger.error("PostgreSQL health check failed", error=str(e))
            return False

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
