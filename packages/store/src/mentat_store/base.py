"""Abstract store interfaces.

The workflow core depends on these interfaces, not on a concrete backend,
so the on-disk layout can change without touching the state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from mentat_store.models import CacheIdentity, ContextMetadata, ReviewComment, ReviewPattern

SnippetReader = Callable[["ReviewComment"], "str | None"]


class BaseCommentStore(ABC):
    """Durable per-PR record of review comments and their resolution status."""

    @abstractmethod
    def get_comments(self, pr_key: str) -> list[ReviewComment]:
        """Return all comments stored for a PR, in stored order.

        Returns an empty list if none exist; never raises.
        """

    @abstractmethod
    def save_comments(
        self,
        pr_key: str,
        comments: list[ReviewComment],
        snippet_reader: SnippetReader | None = None,
    ) -> list[ReviewComment]:
        """Merge a fresh batch into the stored comments and return the merged list.

        A comment whose fingerprint is already stored keeps its id, status and
        memory_created flag. Stored comments absent from the batch are kept.
        """

    @abstractmethod
    def update_comment(self, pr_key: str, comment_id: str, **changes) -> ReviewComment:
        """Apply a partial update to one comment.

        Raises CommentNotFoundError if the id is not stored for the PR.
        """

    @abstractmethod
    def replace_comments(self, pr_key: str, comments: list[ReviewComment]) -> None:
        """Overwrite the stored comments for a PR without merging."""

    def clear_comments(self, pr_key: str) -> None:
        self.replace_comments(pr_key, [])


class BaseContextCache(ABC):
    """One synthesized context entry per PR identity."""

    @abstractmethod
    def has(self, identity: CacheIdentity) -> bool:
        """Return True if an entry exists for this PR (readable or not)."""

    @abstractmethod
    def get(self, identity: CacheIdentity) -> str | None:
        """Return the cached context text, or None."""

    @abstractmethod
    def set(self, identity: CacheIdentity, commit: str, context: str) -> None:
        """Store context gathered at ``commit``, overwriting any previous context."""

    @abstractmethod
    def get_metadata(self, identity: CacheIdentity) -> ContextMetadata | None:
        """Return gather time and source commit, or None if missing/unreadable."""

    @abstractmethod
    def clear(self, identity: CacheIdentity) -> None:
        """Delete the entry for this PR if present."""


class BaseMemoryStore(ABC):
    """Pluggable persistence for reusable review patterns."""

    @abstractmethod
    def save(self, pattern: ReviewPattern) -> None:
        """Persist a pattern."""

    @abstractmethod
    def list_patterns(self, repo_id: str) -> list[ReviewPattern]:
        """Return patterns saved for a repo. Returns [] if none; never raises."""

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
