"""
To add a new database function to this module, follow these steps:

1. **Determine purpose and scope**
   - Decide whether the function operates on a scouting type's table, `users`, or `sessions`.
     Table *structure* belongs to `schema.py`; this module only reads and writes rows.

2. **Acquire a database connection**
   - Always use:
     ```python
     conn = await self.get_connection()
     ```
     This applies the row factory so rows come back as mappings.

3. **Write database logic inside try/finally**
   - Example pattern:
     ```python
     conn = await self.get_connection()
     try:
         await conn.execute("SQL HERE", (params...))
         await conn.commit()
     except aiosqlite.Error as e:
         logger.error("Your descriptive message: %s", e)
         raise StorageError("Your descriptive message") from e
     finally:
         await conn.close()
     ```

4. **Never interpolate values**
   - Values are always bound with `?`. Only identifiers taken from the validated
     `ScoutingType` (table name, field ids, the whitelisted sort column) may be
     formatted into SQL text, and always through `quote()`.

5. **Maintain consistent patterns**
   - Raise `NotFoundError`, `ConflictError`, `ValidationError` from `errors.py`; the API
     boundary turns them into status codes.
   - Follow naming convention `add_x`, `update_x`, `get_x`, `delete_x`, `list_x`.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional, List

import aiosqlite

from scoutserver import uploads
from scoutserver.enums import FieldDescriptor, FieldType, Role, ScoutingType
from scoutserver.errors import ConflictError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def quote(identifier: str) -> str:
    """Quote an identifier that has already been validated against the configuration."""
    return '"' + identifier.replace('"', '""') + '"'


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def parse_role(role: Any) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise ValidationError('Role must be "admin" or "upload"')


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _to_db_value(field: FieldDescriptor, value: Any) -> Any:
    """Convert a JSON value from the client into something SQLite can bind."""
    if value is None or (isinstance(value, str) and value == ""):
        return None
    if field.type is FieldType.CHECKBOX:
        if isinstance(value, str):
            return 1 if value.strip().lower() in ("1", "true", "on", "yes") else 0
        return 1 if value else 0
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


class Store:
    """Handle to the single SQLite file. Built once at startup and passed to whoever needs it."""

    def __init__(self, path: Path | str, upload_dir: Path | str = "uploads"):
        self.path = str(path)
        self.upload_dir = Path(upload_dir)

    async def get_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        return conn

    # =================== Scouting entries ===================

    async def add_entry(self, stype: ScoutingType, values: Dict[str, Any]) -> int:
        """
        Insert one submission. Every required non-file field must be present and non-empty.
        Keys that are not configured fields are ignored.
        """
        missing = [
            f.label for f in stype.fields
            if f.required and f.type is not FieldType.FILE and _is_missing(values.get(f.id))
        ]
        if missing:
            raise ValidationError("Missing required fields", {"missingFields": missing})

        table = quote(stype.table_name)
        if stype.fields:
            columns = ", ".join(quote(f.id) for f in stype.fields)
            placeholders = ", ".join("?" for _ in stype.fields)
            sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        params = [_to_db_value(f, values.get(f.id)) for f in stype.fields]

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(sql, params)
            await conn.commit()
            return cursor.lastrowid
        except aiosqlite.Error as e:
            logger.error("Failed to insert into %s: %s", stype.table_name, e)
            raise StorageError("Failed to save data") from e
        finally:
            await conn.close()

    async def list_entries(
            self,
            stype: ScoutingType,
            sort_by: Optional[str] = None,
            sort_order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        All rows of a type. Unknown sort columns fall back to `timestamp`,
        anything but `asc` falls back to descending.
        """
        column = sort_by if sort_by in stype.sortable_columns else "timestamp"
        order = "ASC" if (sort_order or "").lower() == "asc" else "DESC"
        sql = (
            f"SELECT * FROM {quote(stype.table_name)} "
            f"ORDER BY {quote(column)} {order}, \"id\" {order}"
        )

        conn = await self.get_connection()
        try:
            rows = await conn.execute_fetchall(sql)
            return [dict(r) for r in rows]
        except aiosqlite.Error as e:
            logger.error("Failed to fetch %s: %s", stype.table_name, e)
            raise StorageError("Failed to fetch data") from e
        finally:
            await conn.close()

    async def get_entry(self, stype: ScoutingType, entry_id: int) -> Dict[str, Any]:
        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT * FROM {quote(stype.table_name)} WHERE id = ?", (entry_id,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("Failed to fetch %s/%s: %s", stype.table_name, entry_id, e)
            raise StorageError("Failed to fetch data") from e
        finally:
            await conn.close()

        if row is None:
            raise NotFoundError("Entry not found")
        return dict(row)

    async def update_entry(self, stype: ScoutingType, entry_id: int, values: Dict[str, Any]) -> None:
        """
        Full overwrite: every configured field column is rewritten.
        A field left out of `values` becomes NULL, it is NOT kept.
        """
        if not stype.fields:
            # Nothing to overwrite; still report whether the row exists.
            await self.get_entry(stype, entry_id)
            return

        set_clause = ", ".join(f"{quote(f.id)} = ?" for f in stype.fields)
        params = [_to_db_value(f, values.get(f.id)) for f in stype.fields]
        params.append(entry_id)

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                f"UPDATE {quote(stype.table_name)} SET {set_clause} WHERE id = ?", params
            )
            await conn.commit()
            changed = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("Failed to update %s/%s: %s", stype.table_name, entry_id, e)
            raise StorageError("Failed to update data") from e
        finally:
            await conn.close()

        if changed == 0:
            raise NotFoundError("Entry not found")

    async def delete_entry(self, stype: ScoutingType, entry_id: int) -> None:
        """
        Delete a row, first removing any uploaded files its file fields reference.
        File cleanup is best-effort and never blocks the row deletion.
        """
        row = await self.get_entry(stype, entry_id)
        for field in stype.file_fields:
            uploads.remove_upload(self.upload_dir, row.get(field.id))

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                f"DELETE FROM {quote(stype.table_name)} WHERE id = ?", (entry_id,)
            )
            await conn.commit()
            deleted = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("Failed to delete %s/%s: %s", stype.table_name, entry_id, e)
            raise StorageError("Failed to delete data") from e
        finally:
            await conn.close()

        if deleted == 0:
            raise NotFoundError("Entry not found")

    # =================== Users ===================

    async def get_user_role(self, email: Optional[str]) -> Optional[Role]:
        """Case-insensitive role lookup. No row means no role."""
        email = normalize_email(email)
        if not email:
            return None

        conn = await self.get_connection()
        try:
            cursor = await conn.execute("SELECT role FROM users WHERE email = ?", (email,))
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("Failed to check permissions for %s: %s", email, e)
            raise StorageError("Failed to check permissions.") from e
        finally:
            await conn.close()

        return Role(row["role"]) if row else None

    async def list_users(self) -> List[Dict[str, Any]]:
        conn = await self.get_connection()
        try:
            rows = await conn.execute_fetchall(
                "SELECT id, email, role, created_at FROM users ORDER BY email"
            )
            return [dict(r) for r in rows]
        except aiosqlite.Error as e:
            logger.error("Failed to fetch users: %s", e)
            raise StorageError("Failed to fetch users") from e
        finally:
            await conn.close()

    async def add_user(self, email: Optional[str], role: Any) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        role = parse_role(role)

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                "INSERT INTO users (email, role) VALUES (?, ?)", (email, role.value)
            )
            await conn.commit()
            return {"id": cursor.lastrowid, "email": email, "role": role.value}
        except aiosqlite.IntegrityError:
            raise ConflictError("A user with this email already exists")
        except aiosqlite.Error as e:
            logger.error("Failed to add user %s: %s", email, e)
            raise StorageError("Failed to add user") from e
        finally:
            await conn.close()

    async def update_user_role(self, email: Optional[str], role: Any) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        role = parse_role(role)

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                "UPDATE users SET role = ? WHERE email = ?", (role.value, email)
            )
            await conn.commit()
            changed = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("Failed to update user %s: %s", email, e)
            raise StorageError("Failed to update user") from e
        finally:
            await conn.close()

        if changed == 0:
            raise NotFoundError("User not found")
        return {"email": email, "role": role.value}

    async def delete_user(self, email: Optional[str]) -> None:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        conn = await self.get_connection()
        try:
            cursor = await conn.execute("DELETE FROM users WHERE email = ?", (email,))
            await conn.commit()
            deleted = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("Failed to remove user %s: %s", email, e)
            raise StorageError("Failed to remove user") from e
        finally:
            await conn.close()

        if deleted == 0:
            raise NotFoundError("User not found")

    # =================== Sessions (same DB) ===================

    async def add_session(self, session_id: str, email: str, name: str, expires_dt: datetime):
        """Insert or replace a session. Only identity is stored; the role is looked up per request."""
        conn = await self.get_connection()
        try:
            await conn.execute("""
                INSERT INTO sessions (uuid, email, name, expires)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (uuid) DO UPDATE
                SET email = excluded.email, name = excluded.name, expires = excluded.expires
            """, (session_id, normalize_email(email), name, expires_dt.isoformat()))
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("Failed to add session: %s", e)
            raise StorageError("Failed to add session") from e
        finally:
            await conn.close()

    async def get_session(self, session_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Session data for a UUID, or None when it is malformed, unknown or expired.
        Expired rows are removed on sight.
        """
        try:
            uuid.UUID(session_id or "")
        except ValueError:
            return None

        conn = await self.get_connection()
        try:
            cursor = await conn.execute(
                "SELECT email, name, expires FROM sessions WHERE uuid = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            if datetime.fromisoformat(row["expires"]) <= datetime.now(timezone.utc):
                await conn.execute("DELETE FROM sessions WHERE uuid = ?", (session_id,))
                await conn.commit()
                return None

            return {"email": row["email"], "name": row["name"], "expires": row["expires"]}
        except aiosqlite.Error as e:
            logger.error("Database error verifying session: %s", e)
            raise StorageError("Database error verifying session") from e
        finally:
            await conn.close()

    async def delete_session(self, session_id: Optional[str]):
        conn = await self.get_connection()
        try:
            await conn.execute("DELETE FROM sessions WHERE uuid = ?", (session_id,))
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("Failed to delete session: %s", e)
            raise StorageError("Failed to delete session") from e
        finally:
            await conn.close()
