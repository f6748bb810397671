"""Interactive fix session for a single review comment."""

from __future__ import annotations

import asyncio
import logging

from mentat_cli.ui import CANCELLED, Presenter, Prompter
from mentat_core.fixer import CommentFixer
from mentat_store.base import BaseCommentStore
from mentat_store.models import ReviewComment

logger = logging.getLogger(__name__)


class FixSession:
    """Propose a fix, show it, and record the outcome.

    The comment ends as ``fixed`` when the operator applies the proposal,
    and as ``rejected`` in every other case (declined, cancelled, no usable
    proposal, or the write failed). The shared summary is updated to match.
    """

    def __init__(self, fixer: CommentFixer, store: BaseCommentStore, prompter: Prompter, presenter: Presenter):
        self.fixer = fixer
        self.store = store
        self.prompter = prompter
        self.presenter = presenter

    async def run(self, comment: ReviewComment, pr_key: str, notes: str | None, summary: dict) -> None:
        applied = False
        try:
            with self.presenter.status("Preparing a fix..."):
                proposal = await asyncio.to_thread(self.fixer.propose, comment, notes)
            if proposal is None:
                self.presenter.warning("Could not produce a fix for this comment.")
            else:
                self.presenter.info(f"[bold]Proposed change[/bold] {comment.file}:{proposal.start_line}")
                for line in proposal.original.splitlines():
                    self.presenter.info(f"[red]- {line}[/red]")
                for line in proposal.replacement.splitlines():
                    self.presenter.info(f"[green]+ {line}[/green]")
                if proposal.explanation:
                    self.presenter.step(proposal.explanation)
                answer = self.prompter.confirm("Apply this change?", default=True)
                if answer is not CANCELLED and answer:
                    applied = self.fixer.apply(proposal)
                    if not applied:
                        self.presenter.warning("The file changed since the fix was proposed.")
        except OSError as e:
            self.presenter.error(f"Fix failed: {e}")

        status = "fixed" if applied else "rejected"
        self.store.update_comment(pr_key, comment.id, status=status)
        summary[status] += 1
        if applied:
            self.presenter.success("Fix applied")
        else:
            self.presenter.step("✗ Fix not applied, comment rejected")
