"""Workflow state detection.

State is never cached between loop iterations: every call re-reads the
comment store and context cache so that whatever the last action persisted
(or failed to persist) is reflected in the next menu.
"""

from __future__ import annotations

from dataclasses import dataclass

from mentat_core.models import PullRequest, pr_key
from mentat_store.base import BaseCommentStore, BaseContextCache
from mentat_store.models import CacheIdentity, ContextMetadata


@dataclass
class WorkflowState:
    has_context: bool = False
    context_up_to_date: bool = False
    context_meta: ContextMetadata | None = None
    has_comments: bool = False
    pending_count: int = 0
    accepted_count: int = 0
    fixed_count: int = 0
    rejected_count: int = 0
    total_comments: int = 0
    # Reserved for syncing comments already on the PR; always empty for now.
    has_remote_comments: bool = False
    remote_comments_count: int = 0
    current_commit: str = ""
    has_new_commits: bool = False


def cache_identity(pr: PullRequest) -> CacheIdentity:
    return CacheIdentity(
        source_branch=pr.source.name,
        target_branch=pr.target.name,
        pr_number=pr.number,
    )


class WorkflowStateDetector:
    def __init__(self, comment_store: BaseCommentStore, context_cache: BaseContextCache):
        self.comment_store = comment_store
        self.context_cache = context_cache

    def detect_state(self, pr: PullRequest) -> WorkflowState:
        identity = cache_identity(pr)
        current_commit = pr.source.commit_hash

        has_context = self.context_cache.has(identity)
        meta = self.context_cache.get_metadata(identity)
        context_up_to_date = meta is not None and meta.gathered_from_commit == current_commit

        counts = {"pending": 0, "accepted": 0, "fixed": 0, "rejected": 0}
        comments = self.comment_store.get_comments(pr_key(pr))
        for comment in comments:
            status = comment.status if comment.status in counts else "pending"
            counts[status] += 1

        return WorkflowState(
            has_context=has_context,
            context_up_to_date=has_context and context_up_to_date,
            context_meta=meta,
            has_comments=len(comments) > 0,
            pending_count=counts["pending"],
            accepted_count=counts["accepted"],
            fixed_count=counts["fixed"],
            rejected_count=counts["rejected"],
            total_comments=len(comments),
            current_commit=current_commit,
            has_new_commits=meta is not None and meta.gathered_from_commit != current_commit,
        )
