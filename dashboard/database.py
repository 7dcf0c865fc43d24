"""
Content Dashboard - SQLite Database

Records are stored in a single ``records`` table; each row's ``content``
column holds the record's content map as a JSON object.  Uses aiosqlite for
async operations within FastAPI and plain sqlite3 for the one-off schema
setup at startup.

Every helper takes the database path explicitly so that several apps (or
tests) can run side by side against different files.
"""

import json
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite
from loguru import logger

from dashboard.utils import parse_content_json

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    section_id INTEGER NOT NULL,
    content TEXT NOT NULL DEFAULT '{}',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_records_section ON records(section_id);

CREATE TRIGGER IF NOT EXISTS update_records_timestamp
    AFTER UPDATE OF content ON records
    FOR EACH ROW
BEGIN
    UPDATE records SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;
"""


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------
def init_db(db_path: Path) -> None:
    """Create the database file and tables if they don't exist yet."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with sqlite3.connect(str(db_path)) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        logger.success("✅ Database initialized at {}", db_path)
    except Exception as e:
        logger.critical("❌ Failed to initialize database: {}", e)
        raise


# ---------------------------------------------------------------------------
# Async context manager (for use in FastAPI routes)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection(db_path: Path):
    """Async context manager for an aiosqlite connection with row factory."""
    db = await aiosqlite.connect(str(db_path))
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


def row_to_record(row) -> Dict[str, Any]:
    """Convert a ``records`` row to a plain dict with decoded content."""
    if row is None:
        return {}
    data = dict(row)
    data["content"] = parse_content_json(data.get("content"))
    return data


def _dump(content: Dict[str, Any]) -> str:
    return json.dumps(content, sort_keys=True, default=str)


# ---------------------------------------------------------------------------
# CRUD operations (async)
# ---------------------------------------------------------------------------
async def insert_record(db_path: Path, section_id: int, content: Dict[str, Any]) -> int:
    """Insert a record and return its id."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute(
            "INSERT INTO records (section_id, content) VALUES (?, ?)",
            (section_id, _dump(content)),
        )
        await db.commit()
        record_id = cursor.lastrowid or 0
        logger.success("✅ Record added (id={}) to section {}", record_id, section_id)
        return record_id


async def get_record(db_path: Path, record_id: int) -> Optional[Dict[str, Any]]:
    """Fetch a single record by its id."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute("SELECT * FROM records WHERE id = ?", (record_id,))
        row = await cursor.fetchone()
        return row_to_record(row) if row else None


async def get_records_for_section(db_path: Path, section_id: int) -> List[Dict[str, Any]]:
    """All records of a section, oldest first."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute(
            "SELECT * FROM records WHERE section_id = ? ORDER BY id",
            (section_id,),
        )
        rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]


async def count_records(db_path: Path, section_id: int) -> int:
    """Count the records of one section."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM records WHERE section_id = ?", (section_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0


async def update_record_content(db_path: Path, record_id: int, content: Dict[str, Any]) -> bool:
    """Replace a record's content. Returns True if a row was modified."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute(
            "UPDATE records SET content = ? WHERE id = ?",
            (_dump(content), record_id),
        )
        await db.commit()
        updated = cursor.rowcount > 0
        if updated:
            logger.info("✏️ Record id={} updated: {}", record_id, sorted(content))
        return updated


async def delete_record(db_path: Path, record_id: int) -> bool:
    """Delete a record by id. Returns True if a row was deleted."""
    async with get_async_connection(db_path) as db:
        cursor = await db.execute("DELETE FROM records WHERE id = ?", (record_id,))
        await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("🗑️ Record id={} deleted", record_id)
        return deleted
