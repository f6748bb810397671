"""Store construction from resolved config.

Lives in the CLI so neither mentat_core nor mentat_store know about the
config file format.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mentat_store.base import BaseMemoryStore
from mentat_store.local import LocalCommentStore, LocalContextCache, default_cache_root, resolve_repo_id

logger = logging.getLogger(__name__)


@dataclass
class LocalStores:
    repo_id: str
    comments: LocalCommentStore
    context: LocalContextCache


def open_local_stores(config: dict, repo_path: str = ".") -> LocalStores:
    root = default_cache_root(config)
    repo_id = resolve_repo_id(repo_path)
    logger.debug("Cache root %s, repo id %s", root, repo_id)
    return LocalStores(
        repo_id=repo_id,
        comments=LocalCommentStore(root, repo_id),
        context=LocalContextCache(root, repo_id, repo_path),
    )


def build_memory_store(config: dict) -> BaseMemoryStore:
    """Pattern memory selected by ``memory_store`` in .mentat.yml.

      memory_store: sqlite → SQLiteMemoryStore at <cache root>/patterns.db (default)
      memory_store: none   → NoOpMemoryStore
    """
    from mentat_store.memory import NoOpMemoryStore, SQLiteMemoryStore

    if config.get("memory_store", "sqlite") == "sqlite":
        return SQLiteMemoryStore(db_path=Path(default_cache_root(config)) / "patterns.db")
    return NoOpMemoryStore()


def pr_key_from_cache(context: LocalContextCache, pr_number: int) -> str | None:
    """Recover ``source|target`` for a PR number from its cached context metadata."""
    for meta in context.list_for_repo():
        if meta.get("pr_number") == pr_number and meta.get("source_branch") and meta.get("target_branch"):
            return f"{meta['source_branch']}|{meta['target_branch']}"
    return None
