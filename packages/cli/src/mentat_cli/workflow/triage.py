"""Comment triage: walk the pending comments of a PR one at a time.

Each comment is shown, the operator picks what to do, and the decision is
written to the comment store before the next comment is shown. Stopping
part-way (quit or Ctrl-C) therefore leaves every decided comment recorded
and every undecided one still pending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from mentat_cli.fix_session import FixSession
from mentat_cli.ui import CANCELLED, Choice, Presenter, Prompter
from mentat_store.base import BaseCommentStore, BaseMemoryStore
from mentat_store.errors import CommentNotFoundError
from mentat_store.models import ReviewComment, ReviewPattern

logger = logging.getLogger(__name__)


class TriageChoice(str, Enum):
    FIX = "fix"
    ACCEPT = "accept"
    REJECT = "reject"
    SKIP = "skip"
    CREATE_MEMORY = "create_memory"
    QUIT = "quit"


@dataclass
class HandleCommentsResult:
    processed: int = 0
    fixed: int = 0
    accepted: int = 0
    rejected: int = 0
    skipped: int = 0


def _choices(comment: ReviewComment) -> list[Choice]:
    choices = [
        Choice(TriageChoice.FIX, "🔧 Fix", "Let the model propose and apply a fix"),
        Choice(TriageChoice.ACCEPT, "✓ Accept", "Keep the comment to post on the PR"),
        Choice(TriageChoice.REJECT, "✗ Reject", "Reject this comment permanently"),
        Choice(TriageChoice.SKIP, "⏭ Skip", "Leave it pending for the next session"),
    ]
    if not comment.memory_created:
        choices.append(Choice(TriageChoice.CREATE_MEMORY, "🧠 Remember", "Save as a reusable review pattern"))
    choices.append(Choice(TriageChoice.QUIT, "💤 Quit", "Stop and keep the rest pending"))
    return choices


class CommentTriage:
    def __init__(
        self,
        store: BaseCommentStore,
        fix_session: FixSession,
        prompter: Prompter,
        presenter: Presenter,
        memory_store: BaseMemoryStore,
        repo_id: str,
    ):
        self.store = store
        self.fix_session = fix_session
        self.prompter = prompter
        self.presenter = presenter
        self.memory_store = memory_store
        self.repo_id = repo_id

    async def run(self, pr_key: str) -> HandleCommentsResult:
        self.presenter.section("Comment Resolution")
        comments = self.store.get_comments(pr_key)
        pending = [c for c in comments if c.status == "pending"]
        if not pending:
            self.presenter.success("All comments resolved")
            return HandleCommentsResult()

        self.presenter.info(f"Found {len(pending)} pending comment(s) ({len(comments)} total)")
        summary = {"fixed": 0, "accepted": 0, "rejected": 0, "skipped": 0}
        quit_early = False
        for index, comment in enumerate(pending, 1):
            self.presenter.render_comment(comment, index, len(pending))
            if await self._decide(pr_key, comment, summary) == TriageChoice.QUIT:
                quit_early = True
                break

        self._print_summary(summary)
        self.presenter.section_complete("Comment resolution paused" if quit_early else "Comment resolution complete")
        return HandleCommentsResult(processed=sum(summary.values()), **summary)

    async def _decide(self, pr_key: str, comment: ReviewComment, summary: dict) -> TriageChoice:
        while True:
            choice = self.prompter.select("What should we do?", _choices(comment))
            if choice is CANCELLED or choice == TriageChoice.QUIT:
                self.presenter.info("Exiting comment resolution...")
                return TriageChoice.QUIT

            if choice == TriageChoice.CREATE_MEMORY:
                self._remember(pr_key, comment)
                continue

            if choice == TriageChoice.FIX:
                notes = self.prompter.text("Notes for the fix (optional)")
                if notes is CANCELLED:
                    continue
                await self._fix(pr_key, comment, notes or None, summary)
            elif choice == TriageChoice.ACCEPT:
                self.store.update_comment(pr_key, comment.id, status="accepted")
                summary["accepted"] += 1
                self.presenter.success("Comment accepted")
            elif choice == TriageChoice.REJECT:
                self.store.update_comment(pr_key, comment.id, status="rejected")
                summary["rejected"] += 1
                self.presenter.step("✗ Comment rejected")
            elif choice == TriageChoice.SKIP:
                summary["skipped"] += 1
                self.presenter.step("⏭ Comment skipped")
            return choice

    async def _fix(self, pr_key: str, comment: ReviewComment, notes: str | None, summary: dict) -> None:
        resolved_before = summary["fixed"] + summary["rejected"]
        try:
            await self.fix_session.run(comment, pr_key, notes, summary)
        except CommentNotFoundError:
            raise
        except Exception as e:
            logger.debug("Fix session failed", exc_info=True)
            self.presenter.error(f"Fix session failed: {e}")

        # The fix must end in a terminal status; anything left pending counts as rejected.
        stored = next((c for c in self.store.get_comments(pr_key) if c.id == comment.id), None)
        if stored is None:
            raise CommentNotFoundError(pr_key, comment.id)
        if stored.status == "pending":
            self.store.update_comment(pr_key, comment.id, status="rejected")
        if summary["fixed"] + summary["rejected"] == resolved_before:
            summary["fixed" if stored.status == "fixed" else "rejected"] += 1

    def _remember(self, pr_key: str, comment: ReviewComment) -> None:
        note = self.prompter.text("Note for this pattern (optional)")
        if note is CANCELLED:
            return
        self.memory_store.save(
            ReviewPattern(
                repo_id=self.repo_id,
                file=comment.file,
                severity=comment.severity,
                message=comment.message,
                rationale=comment.rationale,
                code_snippet=comment.code_snippet,
                note=note or None,
            )
        )
        self.store.update_comment(pr_key, comment.id, memory_created=True)
        comment.memory_created = True
        self.presenter.success("Saved as a review pattern")

    def _print_summary(self, summary: dict) -> None:
        self.presenter.info("[bold]📊 Resolution Summary:[/bold]")
        if not any(summary.values()):
            self.presenter.step("No comments were processed")
            return
        labels = (("fixed", "✓ Fixed"), ("accepted", "✓ Accepted"), ("rejected", "✗ Rejected"), ("skipped", "⏭ Skipped"))
        for key, label in labels:
            if summary[key]:
                self.presenter.step(f"{label}: {summary[key]}")
