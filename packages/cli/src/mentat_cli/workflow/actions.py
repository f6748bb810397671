"""Action catalog: which actions are legal for a state, and how the menu shows them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mentat_cli.workflow.state import WorkflowState


class WorkflowAction(str, Enum):
    GATHER_CONTEXT = "gather_context"
    REFRESH_CONTEXT = "refresh_context"
    RUN_REVIEW = "run_review"
    HANDLE_PENDING = "handle_pending"
    SEND_ACCEPTED = "send_accepted"
    HANDLE_REMOTE = "handle_remote"
    EXIT = "exit"


@dataclass
class MenuOption:
    value: WorkflowAction
    label: str
    hint: str | None = None
    recommended: bool = False
    warning_hint: str | None = None


def pluralize(count: int, noun: str, plural: str | None = None) -> str:
    """``pluralize(1, "comment") -> "1 comment"``, ``pluralize(2, "comment") -> "2 comments"``."""
    word = noun if count == 1 else (plural or f"{noun}s")
    return f"{count} {word}"


def get_available_actions(state: WorkflowState) -> list[WorkflowAction]:
    """Return the legal actions for ``state`` in menu order."""
    actions = []
    if not state.has_context:
        actions.append(WorkflowAction.GATHER_CONTEXT)
    if state.has_context and not state.context_up_to_date:
        actions.append(WorkflowAction.REFRESH_CONTEXT)
    actions.append(WorkflowAction.RUN_REVIEW)
    if state.pending_count > 0:
        actions.append(WorkflowAction.HANDLE_PENDING)
    if state.accepted_count > 0:
        actions.append(WorkflowAction.SEND_ACCEPTED)
    if state.has_remote_comments:
        actions.append(WorkflowAction.HANDLE_REMOTE)
    actions.append(WorkflowAction.EXIT)
    return actions


def generate_menu_options(state: WorkflowState, actions: list[WorkflowAction]) -> list[MenuOption]:
    options = []
    for action in actions:
        if action == WorkflowAction.GATHER_CONTEXT:
            options.append(
                MenuOption(
                    value=action,
                    label="🔍 Gather Deep Context",
                    hint="Fetch Jira/Confluence context (enables better review)",
                    recommended=True,
                )
            )
        elif action == WorkflowAction.REFRESH_CONTEXT:
            stale = state.context_meta.gathered_from_commit[:8] if state.context_meta else "unknown"
            options.append(
                MenuOption(
                    value=action,
                    label="🔄 Refresh Context",
                    hint=f"Context is outdated (from {stale})",
                )
            )
        elif action == WorkflowAction.RUN_REVIEW:
            if not state.has_context:
                hint = "⚠ No context - review will be limited"
            elif state.context_up_to_date:
                hint = "Analyze PR with up-to-date context"
            else:
                hint = "Analyze PR (context available but may be outdated)"
            options.append(
                MenuOption(
                    value=action,
                    label="📝 Run New Review (merge with existing)" if state.has_comments else "📝 Run Review",
                    hint=hint,
                    recommended=state.has_context and state.context_up_to_date and not state.has_comments,
                    warning_hint=None if state.has_context else "No context available",
                )
            )
        elif action == WorkflowAction.HANDLE_PENDING:
            options.append(
                MenuOption(
                    value=action,
                    label=f"🔧 Handle {pluralize(state.pending_count, 'Pending Comment')}",
                    hint="Review and resolve comments (fix, accept, or reject)",
                    recommended=state.pending_count > 0,
                )
            )
        elif action == WorkflowAction.SEND_ACCEPTED:
            options.append(
                MenuOption(
                    value=action,
                    label=f"📤 Send {pluralize(state.accepted_count, 'Accepted Comment')}",
                    hint="Post accepted comments to the pull request",
                    recommended=state.accepted_count > 0 and state.pending_count == 0,
                )
            )
        elif action == WorkflowAction.HANDLE_REMOTE:
            options.append(
                MenuOption(
                    value=action,
                    label=f"💬 Review {pluralize(state.remote_comments_count, 'Remote Comment')}",
                    hint="Review comments from the pull request",
                )
            )
        elif action == WorkflowAction.EXIT:
            options.append(MenuOption(value=action, label="✓ Exit", hint="Save progress and exit"))
    return options
