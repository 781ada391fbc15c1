"""
=============================================================================
SQLITE DATABASE
=============================================================================

Short-lived connections: every repository call opens a connection, runs,
commits (or rolls back) and closes it. Nothing is shared between worker
threads, so no connection-level locking is needed.

    with db.connect() as conn:
        conn.execute("SELECT ...")
    # committed + closed here

=============================================================================
SCHEMA
=============================================================================

Both tables use soft delete: `deleted_at` is set instead of removing the
row. Uniqueness of user ids and emails is enforced only among LIVE rows
(partial unique indexes), so an address can be registered again after
its account was deleted.

=============================================================================
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Union
import logging
import sqlite3


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS todos (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT    NOT NULL,
    user_id     TEXT    NOT NULL,
    created_at  TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
    deleted_at  TEXT
);

CREATE TABLE IF NOT EXISTS users (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id        TEXT    NOT NULL,
    email_address  TEXT    NOT NULL,
    user_password  TEXT    NOT NULL,
    first_name     TEXT    NOT NULL,
    last_name      TEXT    NOT NULL,
    is_admin       INTEGER NOT NULL DEFAULT 0,
    token          TEXT,
    created_at     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at     TEXT,
    deleted_at     TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS users_live_user_id
    ON users (user_id) WHERE deleted_at IS NULL;

CREATE UNIQUE INDEX IF NOT EXISTS users_live_email
    ON users (email_address) WHERE deleted_at IS NULL;
"""


def utc_timestamp() -> str:
    """Current UTC time as "YYYY-MM-DD HH:MM:SS"."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class Database:
    """
    Connection factory for one SQLite file.

    Args:
        path: Database file. Parent directories are created on demand.
        timeout: Seconds to wait on a locked database.
    """

    def __init__(self, path: Union[str, Path], timeout: float = 5.0):
        self.path = Path(path)
        self.timeout = timeout

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection; commit on success, roll back on error, always close."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"Database schema ready at {self.path}")

    def ping(self) -> bool:
        """True if a trivial query succeeds."""
        try:
            with self.connect() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Database ping failed: {e}")
            return False
