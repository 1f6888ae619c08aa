"""
SQLite plumbing for the job store.

ensure_schema() applies the Alembic migrations; SQLiteRepository hands
each thread its own WAL-mode connection so status polls can read while
a running job writes.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from alembic import command
from alembic.config import Config as AlembicConfig

from .config import Config

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).parent.parent


def ensure_schema(db_path: str) -> None:
    """Migrate the database at db_path to head, creating its directory if needed."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    alembic_cfg = AlembicConfig(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    # Keep the app's logging config; alembic.ini would replace it
    alembic_cfg.attributes["configure_logger"] = False
    logging.getLogger("alembic").setLevel(logging.WARNING)

    try:
        command.upgrade(alembic_cfg, "head")
    except Exception as e:
        logger.error(f"Migration failed for {db_path}: {e}")
        raise
    logger.debug(f"Schema ready at {db_path}")


class SQLiteRepository:
    """Thread-local WAL connections with a commit/rollback transaction helper."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = str(db_path or Config.database_path())
        self._local = threading.local()

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            self._local.connection = conn
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close this thread's connection; the next call reopens it."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None
