from __future__ import annotations

import logging
import pathlib
from typing import Any, Dict, List

from surrealdb import AsyncSurreal

from settings.config import settings
from settings.errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)

SCHEMA_PATH = pathlib.Path(__file__).resolve().parent / "surreal" / "schema.surql"


db = None
# --- Lifecycle management ---
async def init_db():
    """Initialize SurrealDB connection on app startup."""
    logger.info(f"=== Connecting to SurrealDB at: {settings.SURREALDB_URL} ===")
    logger.info(f"=== Using namespace: {settings.SURREALDB_NS} / database: {settings.SURREALDB_DB} ===")
    global db
    client = AsyncSurreal(settings.SURREALDB_URL)
    try:
        await client.signin({
            "username": settings.SURREALDB_USER,
            "password": settings.SURREALDB_PASS
            })
        await client.use(settings.SURREALDB_NS, settings.SURREALDB_DB)
    except Exception as e:
        raise DatabaseUnavailableError(f"Error initializing app database connection: {e}") from e

    await apply_schema(client)
    db = client
    return db


async def apply_schema(client: AsyncSurreal) -> None:
    """Load table and index definitions (idempotent DEFINE statements)."""
    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    try:
        await client.query(schema_sql)
    except Exception as e:
        logger.warning("Schema could not be applied: %s", e)


async def close_db():
    """Close SurrealDB connection on app shutdown."""
    global db
    if db is None:
        return
    try:
        await db.close()
    except Exception as e:
        raise Exception("Error closing app database connection") from e
    finally:
        db = None


# --- FastAPI dependencies ---
async def get_db():
    """Return the Surreal client for DI and direct usage in tests."""
    if db is None:
        await init_db()
    return db


# --- Result helpers ---
def record_key(value: Any) -> str:
    """Bare record key: ``category:abc`` and ``RecordID('category', 'abc')`` both give ``abc``."""
    if value is None:
        return ""
    return str(value).split(":", 1)[-1].strip("`⟨⟩")


def rows_of(result: Any) -> List[Dict[str, Any]]:
    """Normalise a ``query()`` result into plain dict rows with string ids."""
    if not result:
        return []
    if isinstance(result, dict):
        result = [result]
    rows: List[Dict[str, Any]] = []
    for row in result:
        if not isinstance(row, dict):
            continue
        if "id" in row:
            row = {**row, "id": record_key(row["id"])}
        rows.append(row)
    return rows


def first_row(result: Any) -> Dict[str, Any] | None:
    rows = rows_of(result)
    return rows[0] if rows else None


def is_unique_violation(exc: Exception) -> bool:
    """SurrealDB reports unique index clashes as ``Database index `x` already contains ...``."""
    return "already contains" in str(exc)
