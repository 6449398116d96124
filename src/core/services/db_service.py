from contextlib import asynccontextmanager
from typing import Dict, List, Any, Optional, Sequence
import psycopg
from psycopg_pool import AsyncConnectionPool
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from src.config.settings import settings
from src.utils.logging import logger

_db_service: Optional['DatabaseService'] = None

def get_db_service() -> 'DatabaseService':
    """Get or create singleton DatabaseService instance."""
    global _db_service
    if _db_service is None:
        _db_service = DatabaseService()
    return _db_service

_transient_db_error = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True
)

async def _rows_to_dicts(cur) -> List[Dict[str, Any]]:
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in await cur.fetchall()]

class DatabaseService:
    def __init__(self, pool: Optional[AsyncConnectionPool] = None):
        self.pool = pool
        self._opened = pool is not None
        if self.pool is None:
            self.init_pool()

    def init_pool(self):
        """Create the connection pool; it is opened on first use inside the event loop."""
        try:
            conn_params = {
                "dbname": settings.POSTGRES_DB,
                "user": settings.POSTGRES_USER,
                "password": settings.POSTGRES_PASSWORD,
                "host": settings.POSTGRES_HOST,
                "port": settings.POSTGRES_PORT,
            }

            debug_params = conn_params.copy()
            debug_params["password"] = "****"
            logger.info(f"Connection parameters: {debug_params}")

            self.pool = AsyncConnectionPool(
                conninfo=" ".join([f"{k}={v}" for k, v in conn_params.items()]),
                min_size=1,
                max_size=10,
                timeout=30,
                open=False
            )
        except Exception as e:
            logger.error(f"Failed to initialize connection pool: {e}")
            raise

    @asynccontextmanager
    async def connection(self):
        if not self._opened:
            await self.pool.open()
            self._opened = True
        async with self.pool.connection() as conn:
            yield conn

    async def close(self):
        """Close the connection pool."""
        if self.pool and self._opened:
            await self.pool.close()
            self._opened = False

    @_transient_db_error
    async def check_health(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
                    return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @_transient_db_error
    async def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await _rows_to_dicts(cur)
        except Exception as e:
            logger.error(f"Error running query: {e}")
            raise

    async def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None

    @_transient_db_error
    async def execute(self, query: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a write statement in one transaction and return the first RETURNING row, if any."""
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    result = None
                    if cur.description:
                        rows = await _rows_to_dicts(cur)
                        result = rows[0] if rows else None
                await conn.commit()
                return result
        except Exception as e:
            logger.error(f"Error executing statement: {e}")
            raise

    async def init_schema(self, schema_sql: str):
        """Apply the DDL script that creates the chat tables."""
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(schema_sql)
                await conn.commit()
            logger.info("Database schema initialized")
        except Exception as e:
            logger.error(f"Error initializing schema: {e}")
            raise
