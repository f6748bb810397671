"""Tests for review pattern memory stores."""

from __future__ import annotations

from mentat_store.memory import NoOpMemoryStore, SQLiteMemoryStore
from mentat_store.models import ReviewPattern


def _pattern(repo_id="repo123", message="Validate inputs at the boundary"):
    return ReviewPattern(
        repo_id=repo_id,
        file="src/api.py",
        severity="issue",
        message=message,
        rationale="Unvalidated input reached the DB layer",
        note="applies to every handler",
    )


class TestNoOpMemoryStore:
    def test_save_does_not_raise(self):
        NoOpMemoryStore().save(_pattern())

    def test_list_returns_empty(self):
        store = NoOpMemoryStore()
        store.save(_pattern())
        assert store.list_patterns("repo123") == []


class TestSQLiteMemoryStore:
    def test_save_and_list(self, tmp_path):
        store = SQLiteMemoryStore(db_path=tmp_path / "patterns.db")
        store.save(_pattern())

        patterns = store.list_patterns("repo123")
        assert len(patterns) == 1
        assert patterns[0].message == "Validate inputs at the boundary"
        assert patterns[0].note == "applies to every handler"
        store.close()

    def test_repos_are_isolated(self, tmp_path):
        store = SQLiteMemoryStore(db_path=tmp_path / "patterns.db")
        store.save(_pattern(repo_id="a"))
        store.save(_pattern(repo_id="b"))
        assert len(store.list_patterns("a")) == 1
        store.close()

    def test_creates_parent_directory(self, tmp_path):
        store = SQLiteMemoryStore(db_path=tmp_path / "nested" / "patterns.db")
        store.save(_pattern())
        assert (tmp_path / "nested" / "patterns.db").exists()
        store.close()

    def test_persists_across_connections(self, tmp_path):
        db = tmp_path / "patterns.db"
        store = SQLiteMemoryStore(db_path=db)
        store.save(_pattern())
        store.close()

        reopened = SQLiteMemoryStore(db_path=db)
        assert len(reopened.list_patterns("repo123")) == 1
        reopened.close()
