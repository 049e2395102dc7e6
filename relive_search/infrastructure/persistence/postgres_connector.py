# relive_search/infrastructure/persistence/postgres_connector.py
import asyncpg
import structlog
from typing import Optional

from relive_search.core.config import settings

log = structlog.get_logger(__name__)

_pool: Optional[asyncpg.Pool] = None

# Key/value table holding the persisted search history. The conversations and
# commitments tables belong to the call-recording service and are only read here.
SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
)


async def get_db_pool() -> asyncpg.Pool:
    """Returns the shared asyncpg pool, creating it on first use or after a close."""
    global _pool
    if _pool is None or _pool._closed:
        connector_log = log.bind(
            service_context="SearchPostgresConnector",
            host=settings.POSTGRES_SERVER,
            port=settings.POSTGRES_PORT,
            user=settings.POSTGRES_USER,
            db=settings.POSTGRES_DB
        )
        connector_log.info("Creating PostgreSQL connection pool...")
        try:
            _pool = await asyncpg.create_pool(
                user=settings.POSTGRES_USER,
                password=settings.POSTGRES_PASSWORD.get_secret_value(),
                database=settings.POSTGRES_DB,
                host=settings.POSTGRES_SERVER,
                port=settings.POSTGRES_PORT,
                min_size=settings.DB_POOL_MIN_SIZE,
                max_size=settings.DB_POOL_MAX_SIZE,
                timeout=settings.DB_CONNECT_TIMEOUT,
                command_timeout=settings.DB_COMMAND_TIMEOUT,
                statement_cache_size=0
            )
            connector_log.info("PostgreSQL connection pool created.")
        except (asyncpg.exceptions.InvalidPasswordError, OSError) as conn_err:
            connector_log.critical("Failed to connect to PostgreSQL.", error_details=str(conn_err), exc_info=False)
            _pool = None
            raise ConnectionError(f"Failed to connect to PostgreSQL for search: {conn_err}") from conn_err
        except Exception as e:
            connector_log.critical("Unexpected error creating PostgreSQL connection pool.", error_details=str(e), exc_info=True)
            _pool = None
            raise RuntimeError(f"Failed to create PostgreSQL pool for search: {e}") from e
    return _pool


async def ensure_schema() -> None:
    """Creates the settings table used for search history when it does not exist yet."""
    schema_log = log.bind(service_context="SearchPostgresConnector", action="ensure_schema")
    pool = await get_db_pool()
    conn = None
    try:
        conn = await pool.acquire()
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
        schema_log.info("Search schema verified.", statements=len(SCHEMA_STATEMENTS))
    except asyncpg.exceptions.PostgresConnectionError as db_conn_err:
        schema_log.error("Database connection error while verifying schema.", error_details=str(db_conn_err))
        raise ConnectionError(f"Database connection error: {db_conn_err}") from db_conn_err
    finally:
        if conn:
            await pool.release(conn)


async def close_db_pool():
    global _pool
    connector_log = log.bind(service_context="SearchPostgresConnector")
    if _pool and not _pool._closed:
        connector_log.info("Closing PostgreSQL connection pool...")
        try:
            await _pool.close()
            connector_log.info("PostgreSQL connection pool closed.")
        except Exception as e:
            connector_log.error("Error while closing PostgreSQL connection pool.", error_details=str(e), exc_info=True)
        finally:
            _pool = None
    else:
        _pool = None
        connector_log.debug("No open PostgreSQL connection pool to close.")


async def check_db_connection() -> bool:
    """SELECT 1 through the pool; False on any failure."""
    pool = None
    conn = None
    connector_log = log.bind(service_context="SearchPostgresConnector", action="check_db_connection")
    try:
        pool = await get_db_pool()
        conn = await pool.acquire()
        result = await conn.fetchval("SELECT 1")
        return result == 1
    except Exception as e:
        connector_log.error("Database connection check failed.", error_details=str(e), exc_info=False)
        return False
    finally:
        if conn and pool:
            await pool.release(conn)
