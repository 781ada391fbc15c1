"""
Repositories: the only code that writes SQL.

Reads never return soft-deleted rows. Every statement goes through
BaseRepository._execute(), which logs it at DEBUG and turns sqlite3 errors
into RepositoryError (a 500 "Database operation failed" for the client,
full detail in the server log).
"""

from typing import Any, Dict, List, Optional, Sequence
import logging
import sqlite3

from .database import Database, utc_timestamp
from ..errors import ApplicationError


logger = logging.getLogger(__name__)


class RepositoryError(ApplicationError):
    default_message = "Database operation failed"
    default_code = 500


def _row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row is not None else None


class BaseRepository:
    table = ""

    def __init__(self, db: Database):
        self.db = db

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> "_FetchedCursor":
        """
        Run one statement in its own connection.

        The cursor's rows are fetched before the connection closes, so
        callers use `fetchall()` / `rowcount` / `lastrowid` on the result.
        """
        logger.debug(f"SQL {self.__class__.__name__}: {sql.strip()} {tuple(params)}")
        try:
            with self.db.connect() as conn:
                cursor = conn.execute(sql, params)
                rows = cursor.fetchall()
                return _FetchedCursor(rows, cursor.rowcount, cursor.lastrowid)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.exception(f"DB error in {self.__class__.__name__}: {e}")
            raise RepositoryError() from e

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self._execute(sql, params).fetchall()
        return _row_to_dict(rows[0]) if rows else None

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._execute(sql, params).fetchall()]


class _FetchedCursor:
    """Rows and counters captured from a cursor whose connection is closed."""

    def __init__(self, rows: List[sqlite3.Row], rowcount: int, lastrowid: Optional[int]):
        self._rows = rows
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def fetchall(self) -> List[sqlite3.Row]:
        return self._rows


class TodoRepository(BaseRepository):
    table = "todos"

    def all(self) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT id, title, user_id FROM todos WHERE deleted_at IS NULL ORDER BY id DESC"
        )

    def find(self, todo_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "SELECT id, title, user_id FROM todos WHERE id = ? AND deleted_at IS NULL",
            (todo_id,),
        )

    def create(self, title: str, user_id: str) -> int:
        cursor = self._execute(
            "INSERT INTO todos (title, user_id) VALUES (?, ?)",
            (title, user_id),
        )
        return int(cursor.lastrowid)

    def update(self, todo_id: int, title: str, user_id: str) -> bool:
        cursor = self._execute(
            "UPDATE todos SET title = ?, user_id = ? WHERE id = ? AND deleted_at IS NULL",
            (title, user_id, todo_id),
        )
        return cursor.rowcount > 0

    def soft_delete(self, todo_id: int) -> bool:
        cursor = self._execute(
            "UPDATE todos SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
            (utc_timestamp(), todo_id),
        )
        return cursor.rowcount > 0


# Columns safe to return to clients (no password, no token)
PUBLIC_USER_COLUMNS = "user_id, email_address, first_name, last_name, is_admin"

UPDATABLE_USER_COLUMNS = ("first_name", "last_name", "token", "is_admin")


class UserRepository(BaseRepository):
    """
    Users table access.

    `find()` returns the FULL row (including the password hash and token)
    for the service layer; public listings use PUBLIC_USER_COLUMNS only.
    """

    table = "users"

    def all(self) -> List[Dict[str, Any]]:
        return self._fetch_all(
            f"SELECT {PUBLIC_USER_COLUMNS} FROM users WHERE deleted_at IS NULL ORDER BY id DESC"
        )

    def find(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "SELECT * FROM users WHERE user_id = ? AND deleted_at IS NULL",
            (user_id,),
        )

    def find_by_email(self, email_address: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "SELECT * FROM users WHERE email_address = ? AND deleted_at IS NULL",
            (email_address,),
        )

    def create(
        self,
        user_id: str,
        email_address: str,
        user_password: str,
        first_name: str,
        last_name: str,
        is_admin: bool = False,
    ) -> int:
        """
        Insert a user.

        Raises:
            sqlite3.IntegrityError: A live user already has this id or email.
        """
        cursor = self._execute(
            "INSERT INTO users (user_id, email_address, user_password, first_name, last_name, is_admin) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, email_address, user_password, first_name, last_name, int(bool(is_admin))),
        )
        return int(cursor.lastrowid)

    def update(self, user_id: str, data: Dict[str, Any]) -> bool:
        """Update whitelisted columns; unknown keys are ignored."""
        fields = {key: value for key, value in data.items() if key in UPDATABLE_USER_COLUMNS}
        if "is_admin" in fields:
            fields["is_admin"] = int(bool(fields["is_admin"]))
        fields["updated_at"] = utc_timestamp()

        assignments = ", ".join(f"{column} = ?" for column in fields)
        cursor = self._execute(
            f"UPDATE users SET {assignments} WHERE user_id = ? AND deleted_at IS NULL",
            (*fields.values(), user_id),
        )
        return cursor.rowcount > 0

    def set_token(self, user_id: str, token: Optional[str]) -> bool:
        return self.update(user_id, {"token": token})

    def get_token(self, user_id: str) -> Optional[str]:
        """Token stored at the user's last login, None after logout."""
        if not user_id:
            return None
        row = self._fetch_one(
            "SELECT token FROM users WHERE user_id = ? AND deleted_at IS NULL",
            (user_id,),
        )
        return row["token"] if row else None

    def soft_delete(self, user_id: str) -> bool:
        now = utc_timestamp()
        cursor = self._execute(
            "UPDATE users SET deleted_at = ?, token = NULL, updated_at = ? "
            "WHERE user_id = ? AND deleted_at IS NULL",
            (now, now, user_id),
        )
        return cursor.rowcount > 0
