"""
SQLite-based posting storage with run logs.
"""

from __future__ import annotations

import os
import sqlite3
import threading
from typing import Any, Dict, List, Optional, Sequence, Set

from internscout.models import RunLog, ScoredPosting, now_utc_iso
from internscout.storage.base import PostingStore, StoreError


POSTING_COLUMNS = (
    "posting_key",
    "title",
    "company",
    "location",
    "url",
    "url_is_fallback",
    "source",
    "posted_at",
    "deadline",
    "description",
    "skills",
    "visa_flag",
    "relevance_score",
    "relevance_reason",
    "raw_html",
    "raw_json",
)


class SqlitePostingStore(PostingStore):
    """
    SQLite database for discovered postings and per-provider run logs.

    Postings are insert-only: a key that already exists is ignored, so
    status and notes edited by the user are never clobbered by a later run.
    """

    def __init__(self, db_path: str):
        """
        Initialize the database.

        Args:
            db_path: Path to SQLite database file (":memory:" works for tests)
        """
        self.db_path = db_path
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (creating if needed)."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        try:
            with self._lock:
                conn = self._get_conn()
                conn.executescript("""
                    CREATE TABLE IF NOT EXISTS postings (
                        posting_key TEXT PRIMARY KEY,
                        title TEXT NOT NULL,
                        company TEXT NOT NULL,
                        location TEXT,
                        url TEXT,
                        url_is_fallback INTEGER NOT NULL DEFAULT 0,
                        source TEXT NOT NULL,

                        posted_at TEXT,
                        deadline TEXT,
                        description TEXT,
                        skills TEXT,  -- JSON array
                        visa_flag INTEGER NOT NULL DEFAULT 0,

                        relevance_score INTEGER NOT NULL,
                        relevance_reason TEXT NOT NULL,

                        -- Tracker fields owned by the user
                        status TEXT NOT NULL DEFAULT 'DISCOVERED',
                        notes TEXT,

                        raw_html TEXT,
                        raw_json TEXT,

                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );

                    CREATE INDEX IF NOT EXISTS idx_postings_url ON postings(url);
                    CREATE INDEX IF NOT EXISTS idx_postings_source ON postings(source);
                    CREATE INDEX IF NOT EXISTS idx_postings_score ON postings(relevance_score);

                    CREATE TABLE IF NOT EXISTS run_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        source TEXT NOT NULL,
                        found_count INTEGER NOT NULL DEFAULT 0,
                        error_summary TEXT,
                        created_at TEXT NOT NULL
                    );
                """)

                # Additive migration for databases created before url_is_fallback
                cols = {row["name"] for row in conn.execute("PRAGMA table_info(postings)").fetchall()}
                if "url_is_fallback" not in cols:
                    conn.execute("ALTER TABLE postings ADD COLUMN url_is_fallback INTEGER NOT NULL DEFAULT 0")
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not initialize {self.db_path}: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def load_all_posting_keys(self) -> Set[str]:
        return {row[0] for row in self._select("SELECT posting_key FROM postings")}

    def load_all_posting_urls(self) -> Set[str]:
        return {row[0] for row in self._select("SELECT url FROM postings WHERE url != '' AND url_is_fallback = 0")}

    def batch_insert(self, postings: Sequence[ScoredPosting]) -> int:
        """Insert all postings in a single transaction; existing keys are skipped."""
        if not postings:
            return 0

        now = now_utc_iso()
        columns = POSTING_COLUMNS + ("created_at", "updated_at")
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT OR IGNORE INTO postings ({', '.join(columns)}) VALUES ({placeholders})"

        rows = []
        for sp in postings:
            record = sp.to_record()
            rows.append(tuple(record[c] for c in POSTING_COLUMNS) + (now, now))

        with self._lock:
            conn = self._get_conn()
            try:
                before = conn.total_changes
                with conn:
                    conn.executemany(sql, rows)
                return conn.total_changes - before
            except sqlite3.Error as e:
                raise StoreError(f"Batch insert of {len(rows)} postings failed: {e}") from e

    def append_run_log(self, source: str, found_count: int, error_summary: Optional[str] = None) -> None:
        log = RunLog(source=source, found_count=found_count, error_summary=error_summary or None)
        with self._lock:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO run_logs (source, found_count, error_summary, created_at) VALUES (?, ?, ?, ?)",
                        (log.source, log.found_count, log.error_summary, log.created_at),
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Could not append run log for {source}: {e}") from e

    def get_postings(
        self,
        source: Optional[str] = None,
        min_score: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Stored postings, best score first."""
        query = "SELECT * FROM postings WHERE 1=1"
        params: List[Any] = []

        if source:
            query += " AND source = ?"
            params.append(source)
        if min_score is not None:
            query += " AND relevance_score >= ?"
            params.append(min_score)

        query += " ORDER BY relevance_score DESC, created_at DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        return [dict(row) for row in self._select(query, params)]

    def get_run_logs(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM run_logs ORDER BY id DESC"
        params: List[Any] = []
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        return [dict(row) for row in self._select(query, params)]

    def get_posting_count(self) -> int:
        rows = self._select("SELECT COUNT(*) FROM postings")
        return rows[0][0] if rows else 0

    def _select(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            conn = self._get_conn()
            try:
                return conn.execute(query, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e
