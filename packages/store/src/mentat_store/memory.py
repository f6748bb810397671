"""Reusable review pattern stores.

When a reviewer marks a comment as worth remembering during triage, the
comment is saved here as a pattern. SQLite is the default: it ships with
Python, needs no setup, and a single file under the cache root is enough
for a single-operator tool.

Schema:
  patterns: one row per saved pattern, indexed by repo.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from mentat_store.base import BaseMemoryStore
from mentat_store.models import ReviewPattern

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS patterns (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_id       TEXT NOT NULL,
    file          TEXT,
    severity      TEXT,
    message       TEXT NOT NULL,
    rationale     TEXT,
    code_snippet  TEXT,
    note          TEXT,
    created_at    TEXT
);
CREATE INDEX IF NOT EXISTS idx_patterns_repo ON patterns (repo_id);
"""


class SQLiteMemoryStore(BaseMemoryStore):
    """Stores review patterns in a local SQLite database file."""

    def __init__(self, db_path: str | Path = "patterns.db"):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, pattern: ReviewPattern) -> None:
        self._conn.execute(
            """
            INSERT INTO patterns
              (repo_id, file, severity, message, rationale, code_snippet, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                pattern.repo_id,
                pattern.file,
                pattern.severity,
                pattern.message,
                pattern.rationale,
                pattern.code_snippet,
                pattern.note,
                pattern.created_at,
            ),
        )
        self._conn.commit()
        logger.debug("Saved review pattern for %s", pattern.file)

    def list_patterns(self, repo_id: str) -> list[ReviewPattern]:
        rows = self._conn.execute(
            "SELECT * FROM patterns WHERE repo_id=? ORDER BY created_at",
            (repo_id,),
        ).fetchall()
        return [self._row_to_pattern(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_pattern(row: sqlite3.Row) -> ReviewPattern:
        return ReviewPattern(
            repo_id=row["repo_id"],
            file=row["file"] or "",
            severity=row["severity"] or "suggestion",
            message=row["message"],
            rationale=row["rationale"],
            code_snippet=row["code_snippet"],
            note=row["note"],
            created_at=row["created_at"] or "",
        )


class NoOpMemoryStore(BaseMemoryStore):
    """Silently discards patterns. Used when memory_store: none is configured."""

    def save(self, pattern: ReviewPattern) -> None:
        pass  # intentional no-op

    def list_patterns(self, repo_id: str) -> list[ReviewPattern]:
        return []
