import logging
import os
import sqlite3

from .constants import SCHEMA_VERSION
from .errors import NotFound, StorageFault
from .pager import DEFAULT_PAGE_SIZE
from .paths import get_db_path
from .schema import SCHEMA_SQL
from .search import list_page, recent_rows, search_page

logger = logging.getLogger("Kopa")


class KopaStore:
    """Clipboard history on disk.

    Every public method opens its own connection and closes it before
    returning, so the watcher thread and any number of request handlers can
    share one instance without sharing a connection.
    """

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        self._init_db()

    def _connect(self):
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA busy_timeout = 5000")
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to open database {self.db_path}: {exc}") from exc
        return conn

    def _init_db(self):
        conn = self._connect()
        try:
            conn.executescript(SCHEMA_SQL)
            conn.execute(
                "INSERT OR REPLACE INTO meta(key,value) VALUES('schema_version', ?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to initialise schema: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _insert_entry_row(conn, content_type, created_at):
        cur = conn.execute(
            "INSERT INTO clipboard_entries(content_type, created_at) VALUES(?, ?)",
            (content_type, int(created_at)),
        )
        return cur.lastrowid

    @staticmethod
    def _insert_text_body(conn, entry_id, content):
        conn.execute(
            "INSERT INTO text_entries(entry_id, content) VALUES(?, ?)",
            (entry_id, content),
        )

    def append_text(self, content, observed_at):
        conn = self._connect()
        try:
            entry_id = self._insert_entry_row(conn, "text", observed_at)
            self._insert_text_body(conn, entry_id, content)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageFault(f"Failed to save entry: {exc}") from exc
        finally:
            conn.close()
        logger.debug("saved entry id=%d created_at=%d len=%d", entry_id, int(observed_at), len(content))
        return entry_id

    def append_many(self, items):
        """Insert ``(content, created_at)`` pairs in a single transaction."""
        conn = self._connect()
        count = 0
        try:
            for content, created_at in items:
                entry_id = self._insert_entry_row(conn, "text", created_at)
                self._insert_text_body(conn, entry_id, content)
                count += 1
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageFault(f"Failed to save batch: {exc}") from exc
        finally:
            conn.close()
        return count

    def page_by_recency(self, cursor=None, limit=DEFAULT_PAGE_SIZE, cursor_id=None):
        conn = self._connect()
        try:
            return recent_rows(conn, cursor, limit, cursor_id)
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to read entries: {exc}") from exc
        finally:
            conn.close()

    def list_entries(self, cursor=None, limit=DEFAULT_PAGE_SIZE, cursor_id=None):
        conn = self._connect()
        try:
            return list_page(conn, cursor, limit, cursor_id)
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to list entries: {exc}") from exc
        finally:
            conn.close()

    def search_entries(self, query="", cursor=None, limit=DEFAULT_PAGE_SIZE, cursor_id=None):
        logger.debug("search_entries input: q=%r cursor=%r cursor_id=%r limit=%d", query, cursor, cursor_id, int(limit))
        conn = self._connect()
        try:
            return search_page(conn, query, cursor, limit, cursor_id)
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to search entries: {exc}") from exc
        finally:
            conn.close()

    def get_text(self, entry_id):
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT content FROM text_entries WHERE entry_id = ?",
                (int(entry_id),),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to read entry {entry_id}: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            raise NotFound()
        return row["content"]

    def delete_entry(self, entry_id):
        # Body first so the index trigger fires inside this transaction.
        conn = self._connect()
        try:
            conn.execute("DELETE FROM text_entries WHERE entry_id = ?", (int(entry_id),))
            cur = conn.execute("DELETE FROM clipboard_entries WHERE id = ?", (int(entry_id),))
            conn.commit()
            return cur.rowcount > 0
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageFault(f"Failed to delete entry {entry_id}: {exc}") from exc
        finally:
            conn.close()

    def count_entries(self):
        conn = self._connect()
        try:
            row = conn.execute("SELECT COUNT(*) AS total FROM clipboard_entries").fetchone()
            return int(row["total"] if row else 0)
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to count entries: {exc}") from exc
        finally:
            conn.close()

    def stats(self):
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total, MIN(created_at) AS oldest, MAX(created_at) AS newest
                FROM clipboard_entries
                """
            ).fetchone()
            version = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to read stats: {exc}") from exc
        finally:
            conn.close()
        return {
            "db_path": self.db_path,
            "schema_version": version["value"] if version else None,
            "entries": int(row["total"] or 0),
            "oldest": row["oldest"],
            "newest": row["newest"],
        }
