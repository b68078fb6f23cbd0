"""
PostgreSQL Client for the Team Backend

Pooled asyncpg connections with the team schema on the search path.
Statement failures are logged with the offending SQL and re-raised.
"""

import logging
from typing import Dict, List, Optional, Any, AsyncGenerator, Tuple
from contextlib import asynccontextmanager

import asyncpg
from asyncpg import Pool, Connection
from asyncpg.exceptions import PostgresError

from team_backend.core.config import get_settings

logger = logging.getLogger(__name__)


def _affected_rows(status: str) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 3" or "INSERT 0 1"
    return int(status.split()[-1]) if status else 0


class PostgreSQLClient:
    """Thin asyncpg pool wrapper used by the team store"""

    def __init__(self, database_url: str, schema_name: str, min_size: int = 5, max_size: int = 20):
        self.database_url = database_url
        self.schema_name = schema_name
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[Pool] = None

    async def initialize(self) -> None:
        """Create the pool; a no-op when already created"""
        if self._pool is not None:
            return

        logger.info(f"Opening PostgreSQL pool ({self.min_size}-{self.max_size} connections), schema: {self.schema_name}")
        try:
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
                server_settings={"application_name": "team_backend"},
            )
        except (PostgresError, OSError) as e:
            logger.error(f"Failed to open PostgreSQL pool: {e}")
            raise

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[Connection, None]:
        """Pooled connection with the team schema first on the search path"""
        if self._pool is None:
            raise RuntimeError("PostgreSQL client not initialized. Call initialize() first.")

        async with self._pool.acquire() as conn:
            await conn.execute(f"SET search_path TO {self.schema_name}, public")
            yield conn

    @asynccontextmanager
    async def _statement(self, sql: str) -> AsyncGenerator[Connection, None]:
        async with self.get_connection() as conn:
            try:
                yield conn
            except PostgresError as e:
                logger.error(f"Statement failed: {e}, SQL: {sql}")
                raise

    async def execute_query(self, query: str, *args) -> List[Dict[str, Any]]:
        """Rows of a SELECT as dicts"""
        async with self._statement(query) as conn:
            return [dict(row) for row in await conn.fetch(query, *args)]

    async def execute_command(self, command: str, *args) -> int:
        """Run INSERT/UPDATE/DELETE, returning the affected row count"""
        async with self._statement(command) as conn:
            return _affected_rows(await conn.execute(command, *args))

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        async with self._statement(query) as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_scalar(self, query: str, *args) -> Any:
        async with self._statement(query) as conn:
            return await conn.fetchval(query, *args)

    async def execute_transaction(self, commands: List[Tuple[str, tuple]]) -> List[int]:
        """Run `(sql, args)` pairs atomically, returning each affected row count"""
        sql = "; ".join(command for command, _ in commands)
        async with self._statement(sql) as conn:
            async with conn.transaction():
                return [_affected_rows(await conn.execute(command, *args)) for command, args in commands]


_pg_client: Optional[PostgreSQLClient] = None


async def get_postgresql_client() -> PostgreSQLClient:
    """Process-wide client, created and initialized on first use"""
    global _pg_client

    if _pg_client is None:
        settings = get_settings()
        _pg_client = PostgreSQLClient(
            database_url=settings.database_url,
            schema_name=settings.postgres_schema,
            min_size=settings.postgres_pool_min_size,
            max_size=settings.postgres_pool_max_size
        )
        await _pg_client.initialize()

    return _pg_client


async def close_postgresql() -> None:
    global _pg_client

    if _pg_client is not None:
        await _pg_client.close()
        _pg_client = None
