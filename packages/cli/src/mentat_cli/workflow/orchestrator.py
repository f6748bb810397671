"""Top-level review loop: detect, choose, execute, advise, repeat until exit."""

from __future__ import annotations

import logging

from mentat_cli.ui import CANCELLED, Presenter, Prompter
from mentat_cli.workflow.actions import WorkflowAction, generate_menu_options, get_available_actions
from mentat_cli.workflow.advisor import SHOW_MENU, PostActionAdvisor
from mentat_cli.workflow.executor import ActionExecutor
from mentat_cli.workflow.state import WorkflowStateDetector
from mentat_core.models import PullRequest
from mentat_store.errors import CommentNotFoundError

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
    def __init__(
        self,
        detector: WorkflowStateDetector,
        executor: ActionExecutor,
        advisor: PostActionAdvisor,
        prompter: Prompter,
        presenter: Presenter,
    ):
        self.detector = detector
        self.executor = executor
        self.advisor = advisor
        self.prompter = prompter
        self.presenter = presenter

    async def run(self, pr: PullRequest) -> None:
        """Run until the operator exits. Branch restore is the caller's job."""
        chained: WorkflowAction | None = None
        while True:
            if chained is not None:
                action, chained = chained, None
            else:
                state = self.detector.detect_state(pr)
                self._show_status(state)
                options = generate_menu_options(state, get_available_actions(state))
                choice = self.prompter.select("What would you like to do?", options)
                action = WorkflowAction.EXIT if choice is CANCELLED else WorkflowAction(choice)

            if action == WorkflowAction.EXIT:
                self.presenter.info("[dim]Progress saved. Goodbye.[/dim]")
                return

            try:
                result = await self._execute(action, pr)
            except CommentNotFoundError:
                raise
            except Exception as e:
                logger.debug("Action %s failed", action.value, exc_info=True)
                self.presenter.error(f"{action.value} failed: {e}")
                continue

            advice = self.advisor.advise(action, result, self.detector.detect_state(pr))
            if advice != SHOW_MENU:
                chained = WorkflowAction(advice)

    async def _execute(self, action: WorkflowAction, pr: PullRequest):
        if action in (WorkflowAction.GATHER_CONTEXT, WorkflowAction.REFRESH_CONTEXT):
            return await self.executor.execute_gather_context(pr)
        if action == WorkflowAction.RUN_REVIEW:
            return await self.executor.execute_review(pr)
        if action == WorkflowAction.HANDLE_PENDING:
            return await self.executor.execute_handle_pending(pr)
        if action == WorkflowAction.SEND_ACCEPTED:
            return await self.executor.execute_send_accepted(pr)
        self.presenter.warning(f"{action.value} is not available yet.")
        return None

    def _show_status(self, state) -> None:
        if state.has_context:
            meta = state.context_meta
            when = meta.gathered_at.strftime("%Y-%m-%d %H:%M") if meta else "unknown time"
            freshness = "up to date" if state.context_up_to_date else "outdated"
            self.presenter.step(f"Context: {freshness} (gathered {when})")
        else:
            self.presenter.step("Context: none")
        if state.has_comments:
            self.presenter.step(
                f"Comments: {state.pending_count} pending, {state.accepted_count} accepted, "
                f"{state.fixed_count} fixed, {state.rejected_count} rejected"
            )
