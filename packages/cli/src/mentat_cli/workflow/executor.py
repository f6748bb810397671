"""Action executor: performs each workflow action against the collaborators.

Every ``execute_*`` method resolves its own inputs, streams agent events to
the presenter, persists what the terminal data event carries, and returns a
result. Failures are reported and turned into an empty result; only
``CommentNotFoundError`` (a logic error in triage) escapes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from mentat_cli.pr_workflow import PRWorkflow
from mentat_cli.ui import Presenter
from mentat_cli.workflow.state import cache_identity
from mentat_cli.workflow.triage import CommentTriage, HandleCommentsResult
from mentat_core.events import (
    ContextData,
    ContextError,
    ContextSuccess,
    ContextToolCall,
    ContextToolResult,
    ReviewData,
    ReviewError,
    ReviewSuccess,
    ReviewThinking,
    ReviewToolCall,
    ReviewToolResult,
)
from mentat_core.gatherer import ContextGatherer, ContextInput
from mentat_core.models import PullRequest, ReviewFinding, pr_key
from mentat_core.reviewer import CodeReviewer, ReviewInput
from mentat_core.utils.files import read_lines
from mentat_store.base import BaseCommentStore, BaseContextCache
from mentat_store.errors import CommentNotFoundError
from mentat_store.models import CacheIdentity, ReviewComment

logger = logging.getLogger(__name__)

_CONTEXT_TOOL_MESSAGES = {
    "getJiraIssue": "📋 Fetching issue",
    "searchConfluencePages": "📚 Searching Confluence",
}
_REVIEW_TOOL_MESSAGES = {
    "Read": "📖 Reading",
}


@dataclass
class ReviewResult:
    comments_created: int = 0
    has_errors: bool = False


def finding_to_comment(finding: ReviewFinding) -> ReviewComment:
    """Map a reviewer finding to a stored comment. The CLI owns this mapping."""
    return ReviewComment(
        file=finding.file,
        message=finding.message,
        line=finding.line,
        start_line=finding.start_line,
        end_line=finding.end_line,
        severity=finding.severity,
        confidence=finding.confidence,
        verified_by=finding.verified_by,
        rationale=finding.rationale,
    )


def _tool_message(messages: dict, tool_name: str, argument: str | None) -> str:
    prefix = messages.get(tool_name, f"⚡ {tool_name}")
    return f"{prefix}: {argument}" if argument else prefix


class ActionExecutor:
    def __init__(
        self,
        pr_workflow: PRWorkflow,
        gatherer: ContextGatherer,
        reviewer: CodeReviewer,
        comment_store: BaseCommentStore,
        context_cache: BaseContextCache,
        triage: CommentTriage,
        presenter: Presenter,
        repo_path: str | Path = ".",
    ):
        self.pr_workflow = pr_workflow
        self.gatherer = gatherer
        self.reviewer = reviewer
        self.comment_store = comment_store
        self.context_cache = context_cache
        self.triage = triage
        self.presenter = presenter
        self.repo_path = Path(repo_path)

    async def execute_gather_context(self, pr: PullRequest) -> bool:
        """Gather and cache context for ``pr``. Returns True if a context entry was written."""
        saved = False
        try:
            commits = await asyncio.to_thread(self.pr_workflow.fetch_commit_history, pr)
            changes = await asyncio.to_thread(self.pr_workflow.analyze_changes, pr)
            data = ContextInput(pr=pr, commits=commits, edited_files=changes.edited_files)

            self.presenter.section("Deep Context Gathering")
            has_error = False
            with self.presenter.status("Gathering deep context from pull request metadata") as status:
                async for event in self.gatherer.gather(data):
                    if isinstance(event, ContextToolCall):
                        message = _tool_message(_CONTEXT_TOOL_MESSAGES, event.tool_name, event.argument)
                        self.presenter.info(message)
                        status.update(message)
                    elif isinstance(event, ContextToolResult):
                        self.presenter.step(event.summary)
                        status.update("Thinking")
                    elif isinstance(event, ContextSuccess):
                        self.presenter.section_complete("Deep context synthesis complete")
                    elif isinstance(event, ContextError):
                        has_error = True
                        self.presenter.error(f"Context gathering failed: {event.message}")
                    elif isinstance(event, ContextData):
                        payload = event.payload
                        identity = CacheIdentity(
                            source_branch=payload.source_branch,
                            target_branch=payload.target_branch,
                            pr_number=pr.number,
                        )
                        self.context_cache.set(identity, payload.source_commit, payload.context)
                        saved = True
            if saved and not has_error:
                self.presenter.success("Context gathered successfully")
        except Exception as e:
            logger.debug("Context gathering failed", exc_info=True)
            self.presenter.error(f"Context gathering failed: {e}")
        return saved

    async def execute_review(self, pr: PullRequest) -> ReviewResult:
        key = pr_key(pr)
        try:
            commits = await asyncio.to_thread(self.pr_workflow.fetch_commit_history, pr)
            changes = await asyncio.to_thread(self.pr_workflow.analyze_changes, pr)
            context = self.context_cache.get(cache_identity(pr))
            data = ReviewInput(
                pr=pr,
                diff=changes.diff,
                edited_files=changes.edited_files,
                commits=commits,
                context=context,
                repo_path=self.repo_path,
            )

            self.presenter.section("Code Review Analysis")
            if context is None:
                self.presenter.warning("No context available; the review will be limited.")
            has_error = False
            with self.presenter.status("Analyzing pull request changes") as status:
                async for event in self.reviewer.review(data):
                    if isinstance(event, ReviewThinking):
                        self.presenter.step(event.text)
                    elif isinstance(event, ReviewToolCall):
                        message = _tool_message(_REVIEW_TOOL_MESSAGES, event.tool_name, event.argument)
                        self.presenter.info(message)
                        status.update(message)
                    elif isinstance(event, ReviewToolResult):
                        status.update("Analyzing results")
                    elif isinstance(event, ReviewSuccess):
                        self.presenter.section_complete(
                            f"Code review complete: {event.comment_count} comment(s) found"
                        )
                    elif isinstance(event, ReviewError):
                        has_error = True
                        self.presenter.error(f"Review failed: {event.message}")
                    elif isinstance(event, ReviewData):
                        fresh = [finding_to_comment(f) for f in event.payload.comments]
                        self.comment_store.save_comments(key, fresh, snippet_reader=self._read_snippet)

            pending = [c for c in self.comment_store.get_comments(key) if c.status == "pending"]
            if has_error:
                self.presenter.warning("Review completed with errors. See the output above for details.")
            else:
                self.presenter.success(f"Review complete: {len(pending)} pending comment(s)")
            return ReviewResult(comments_created=len(pending), has_errors=has_error)
        except Exception as e:
            logger.debug("Review failed", exc_info=True)
            self.presenter.error(f"Review execution failed: {e}")
            return ReviewResult(comments_created=0, has_errors=True)

    async def execute_handle_pending(self, pr: PullRequest) -> HandleCommentsResult:
        try:
            return await self.triage.run(pr_key(pr))
        except CommentNotFoundError:
            raise
        except Exception as e:
            logger.debug("Comment handling failed", exc_info=True)
            self.presenter.error(f"Comment handling failed: {e}")
            return HandleCommentsResult()

    async def execute_send_accepted(self, pr: PullRequest) -> int:
        try:
            accepted = [c for c in self.comment_store.get_comments(pr_key(pr)) if c.status == "accepted"]
            if not accepted:
                self.presenter.info("No accepted comments to send.")
                return 0
            with self.presenter.status("Posting comments to the pull request"):
                await asyncio.to_thread(self.pr_workflow.post_comments_to_remote, pr, accepted)
            self.presenter.success(f"Posted {len(accepted)} accepted comment(s) to the pull request")
            return len(accepted)
        except Exception as e:
            logger.debug("Posting comments failed", exc_info=True)
            self.presenter.error(f"Failed to post comments to the pull request: {e}")
            return 0

    def _read_snippet(self, comment: ReviewComment) -> str | None:
        if comment.is_range:
            return read_lines(self.repo_path / comment.file, comment.start_line, comment.end_line)
        if comment.line:
            return read_lines(self.repo_path / comment.file, comment.line, comment.line)
        return None
