import sqlite3
from pathlib import Path
from contextlib import contextmanager
from faceattend.config.paths import DB_PATH
from faceattend.utils.logging import setup_logger


class PersistenceError(Exception):
    """
    Raised when the blob store cannot be read or written.
    """


class DatabaseManager:
    """
    Manages the SQLite-backed key-value blob store.
    """

    def __init__(self, db_path=None):
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self.logger = setup_logger()

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.
        Ensures proper connection handling and rollback on errors.
        """
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row  # Enable column access by name
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error(f"Database error: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            if conn:
                conn.close()

    def initialize_db(self):
        """
        Initialize database by creating tables from schema.sql
        """
        schema_path = Path(__file__).parent / "schema.sql"

        if not schema_path.exists():
            self.logger.error(f"Schema file not found: {schema_path}")
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with self.get_connection() as conn:
            with open(schema_path, 'r') as f:
                conn.executescript(f.read())
        self.logger.info("Database initialized successfully")

    def table_exists(self, table_name):
        """
        Check if a table exists in the database.
        """
        query = """
            SELECT name FROM sqlite_master
            WHERE type='table' AND name=?
        """
        with self.get_connection() as conn:
            result = conn.execute(query, (table_name,)).fetchall()
        return len(result) > 0

    def is_initialized(self):
        return self.table_exists('blobs')

    def ensure_initialized(self):
        if not self.is_initialized():
            self.initialize_db()

    def read_blob(self, key):
        """
        Return the stored text for ``key``, or None if it was never written.
        """
        with self.get_connection() as conn:
            row = conn.execute("SELECT value FROM blobs WHERE key = ?", (key,)).fetchone()
        return row['value'] if row else None

    def write_blob(self, key, value):
        """
        Replace the stored text for ``key``.
        """
        query = """
            INSERT INTO blobs (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """
        with self.get_connection() as conn:
            conn.execute(query, (key, value))

