"""Post-action advisor: after an action, propose the next one or fall back to the menu.

The advisor only asks; it never executes. Declining or cancelling a prompt
always means "back to the menu".
"""

from __future__ import annotations

from typing import Union

from mentat_cli.ui import CANCELLED, Choice, Presenter, Prompter
from mentat_cli.workflow.actions import WorkflowAction, pluralize
from mentat_cli.workflow.executor import ReviewResult
from mentat_cli.workflow.state import WorkflowState
from mentat_cli.workflow.triage import HandleCommentsResult

SHOW_MENU = "show_menu"

Advice = Union[WorkflowAction, str]


class PostActionAdvisor:
    def __init__(self, prompter: Prompter, presenter: Presenter):
        self.prompter = prompter
        self.presenter = presenter

    def advise(self, action: WorkflowAction, result, state: WorkflowState) -> Advice:
        """``state`` must be detected after ``action`` ran."""
        if action in (WorkflowAction.GATHER_CONTEXT, WorkflowAction.REFRESH_CONTEXT):
            return self.after_context_gathered(state)
        if action == WorkflowAction.RUN_REVIEW:
            return self.after_review_completed(result, state)
        if action == WorkflowAction.HANDLE_PENDING:
            return self.after_pending_handled(result, state)
        if action == WorkflowAction.SEND_ACCEPTED:
            return self.after_accepted_sent(result)
        return SHOW_MENU

    def after_context_gathered(self, state: WorkflowState) -> Advice:
        if state.pending_count == 0:
            return self._confirm("Run review now with this context?", WorkflowAction.RUN_REVIEW)

        choice = self.prompter.select(
            "Context can help with handling comments. What next?",
            [
                Choice(
                    WorkflowAction.HANDLE_PENDING,
                    f"🔧 Handle {pluralize(state.pending_count, 'Pending Comment')}",
                    "Use the new context to resolve comments",
                ),
                Choice(WorkflowAction.RUN_REVIEW, "📝 Run New Review", "Merge with existing comments"),
                Choice(SHOW_MENU, "↩ Back to Menu"),
            ],
        )
        return SHOW_MENU if choice is CANCELLED else choice

    def after_review_completed(self, result: ReviewResult, state: WorkflowState) -> Advice:
        if result.has_errors or result.comments_created == 0:
            if not result.has_errors:
                self.presenter.success("Review complete - no issues found")
            return SHOW_MENU
        if state.pending_count == 0:
            return SHOW_MENU
        return self._confirm(
            f"Handle {pluralize(state.pending_count, 'pending comment')} now?", WorkflowAction.HANDLE_PENDING
        )

    def after_pending_handled(self, result: HandleCommentsResult, state: WorkflowState) -> Advice:
        if state.accepted_count == 0:
            return SHOW_MENU
        return self._confirm(
            f"Send {pluralize(state.accepted_count, 'accepted comment')} to the pull request now?",
            WorkflowAction.SEND_ACCEPTED,
        )

    def after_accepted_sent(self, sent: int) -> Advice:
        return SHOW_MENU

    def _confirm(self, message: str, action: WorkflowAction) -> Advice:
        answer = self.prompter.confirm(message, default=True)
        if answer is CANCELLED or not answer:
            return SHOW_MENU
        return action
