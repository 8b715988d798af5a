"""
Additive schema synchronisation.

Each scouting type's table is brought up to a superset of its configured fields on
every start. Columns are only ever added: nothing is dropped, renamed or retyped.

Known limitation: changing a field's `type` in the configuration does not change the
storage type of a column that already exists (e.g. `text` -> `number` keeps TEXT).
SQLite's dynamic typing keeps such rows readable, but sorting stays lexical.
"""
import logging
from typing import Dict, Iterable, List

import aiosqlite

from scoutserver.db import Store, quote
from scoutserver.enums import FieldType, ScoutingConfig, ScoutingType
from scoutserver.errors import SchemaSyncError

logger = logging.getLogger(__name__)

STORAGE_TYPES: Dict[FieldType, str] = {
    FieldType.TEXT: "TEXT",
    FieldType.NUMBER: "REAL",
    FieldType.SELECT: "TEXT",
    FieldType.TEXTAREA: "TEXT",
    FieldType.CHECKBOX: "INTEGER",
    FieldType.FILE: "TEXT",
}


def storage_type(field_type: FieldType) -> str:
    return STORAGE_TYPES[field_type]


async def get_table_columns(conn: aiosqlite.Connection, table: str) -> List[str]:
    rows = await conn.execute_fetchall(f"PRAGMA table_info({quote(table)})")
    return [r["name"] for r in rows]


async def _open(store: Store) -> aiosqlite.Connection:
    try:
        return await store.get_connection()
    except aiosqlite.Error as e:
        logger.error("Cannot open database %s: %s", store.path, e)
        raise SchemaSyncError(f"Cannot open database {store.path}: {e}") from e


async def ensure_system_tables(store: Store, admin_emails: Iterable[str] = ()):
    """
    Create `users` and `sessions`, then seed the bootstrap admin list.
    Seeding never overwrites an existing user's role.
    """
    conn = await _open(store)
    try:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('admin', 'upload')),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                uuid TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                name TEXT,
                expires TEXT NOT NULL
            )
        """)
        emails = sorted({e.strip().lower() for e in admin_emails if e and e.strip()})
        await conn.executemany(
            "INSERT OR IGNORE INTO users (email, role) VALUES (?, 'admin')",
            [(e,) for e in emails],
        )
        await conn.commit()
        if emails:
            logger.info("Bootstrap admins: %s", ", ".join(emails))
    except aiosqlite.Error as e:
        logger.error("Failed to create system tables: %s", e)
        raise SchemaSyncError(f"Failed to create system tables: {e}") from e
    finally:
        await conn.close()


async def sync_type(conn: aiosqlite.Connection, stype: ScoutingType) -> List[str]:
    """Create the table if needed and add missing field columns. Returns the added column ids."""
    table = quote(stype.table_name)

    # Field columns are never baked in here so new and old tables share the ALTER path below.
    await conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    existing = {c.lower() for c in await get_table_columns(conn, stype.table_name)}
    added = []
    for field in stype.fields:
        if field.id.lower() in existing:
            continue
        column_type = storage_type(field.type)
        await conn.execute(f"ALTER TABLE {table} ADD COLUMN {quote(field.id)} {column_type}")
        logger.info("Added column %s %s to %s", field.id, column_type, stype.table_name)
        existing.add(field.id.lower())
        added.append(field.id)
    return added


async def sync_schema(store: Store, config: ScoutingConfig) -> Dict[str, List[str]]:
    """
    Bring every configured type's table up to date, in configuration order.
    Any failure raises SchemaSyncError; callers must refuse to serve after that.
    A second run with the same configuration changes nothing and reports no columns.
    """
    report: Dict[str, List[str]] = {}
    conn = await _open(store)
    try:
        for key, stype in config.scouting_types.items():
            try:
                report[stype.table_name] = await sync_type(conn, stype)
                await conn.commit()
            except aiosqlite.Error as e:
                logger.error("Failed to sync table %s for type %s: %s", stype.table_name, key, e)
                raise SchemaSyncError(
                    f"Failed to sync table {stype.table_name} for type {key}: {e}"
                ) from e
    finally:
        await conn.close()
    return report


async def init_db(store: Store, config: ScoutingConfig, admin_emails: Iterable[str] = ()) -> Dict[str, List[str]]:
    """Everything the server needs before it may accept requests."""
    await ensure_system_tables(store, admin_emails)
    return await sync_schema(store, config)
