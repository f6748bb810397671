"""Tests for the action executor with scripted agents and real local stores."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mentat_cli.pr_workflow import ChangeSet
from mentat_cli.workflow.executor import ActionExecutor, ReviewResult, finding_to_comment
from mentat_cli.workflow.state import cache_identity
from mentat_cli.workflow.triage import HandleCommentsResult
from mentat_core.events import (
    ContextData,
    ContextError,
    ContextPayload,
    ContextStart,
    ContextSuccess,
    ReviewData,
    ReviewError,
    ReviewPayload,
    ReviewStart,
    ReviewSuccess,
)
from mentat_core.models import BranchInfo, PullRequest, ReviewFinding
from mentat_store.errors import CommentNotFoundError
from mentat_store.local import LocalCommentStore, LocalContextCache

KEY = "feature/login|main"


class ScriptedAgent:
    """Stands in for the gatherer and the reviewer: replays a fixed event list."""

    def __init__(self, events):
        self.events = events
        self.inputs = []

    async def _stream(self, data):
        self.inputs.append(data)
        for event in self.events:
            yield event

    gather = _stream
    review = _stream


def _pr():
    return PullRequest(
        number=7,
        title="Login",
        description="",
        source=BranchInfo("feature/login", "c" * 40),
        target=BranchInfo("main", "b" * 40),
    )


def _review_events(findings):
    payload = ReviewPayload("feature/login", "main", "c" * 40, comments=findings)
    return [ReviewStart("start"), ReviewSuccess(len(findings)), ReviewData(payload)]


def _findings():
    return [
        ReviewFinding(file="app.py", line=2, message="Null check removed", severity="issue"),
        ReviewFinding(file="app.py", start_line=1, end_line=3, message="Extract helper"),
    ]


@pytest.fixture
def pr_workflow():
    workflow = MagicMock()
    workflow.fetch_commit_history.return_value = ["PROJ-1 add login"]
    workflow.analyze_changes.return_value = ChangeSet(diff="+x", edited_files=["app.py"])
    return workflow


@pytest.fixture
def stores(tmp_path):
    root = tmp_path / "cache"
    return LocalCommentStore(root, "repo"), LocalContextCache(root, "repo", repo_path=str(tmp_path))


def _executor(tmp_path, pr_workflow, stores, gatherer=None, reviewer=None, triage=None):
    (tmp_path / "app.py").write_text("def login(user):\n    return user.name\n# end\n")
    return ActionExecutor(
        pr_workflow=pr_workflow,
        gatherer=gatherer or ScriptedAgent([]),
        reviewer=reviewer or ScriptedAgent([]),
        comment_store=stores[0],
        context_cache=stores[1],
        triage=triage or MagicMock(),
        presenter=MagicMock(),
        repo_path=tmp_path,
    )


def test_finding_to_comment_starts_pending_without_id():
    comment = finding_to_comment(ReviewFinding(file="a.py", line=3, message="m", rationale="r"))
    assert comment.status == "pending"
    assert comment.id is None
    assert comment.rationale == "r"


class TestGatherContext:
    @pytest.mark.asyncio
    async def test_data_event_writes_cache(self, tmp_path, pr_workflow, stores):
        gatherer = ScriptedAgent(
            [
                ContextStart("start"),
                ContextSuccess(2),
                ContextData(ContextPayload("feature/login", "main", "c" * 40, "## Requirements")),
            ]
        )
        executor = _executor(tmp_path, pr_workflow, stores, gatherer=gatherer)

        saved = await executor.execute_gather_context(_pr())

        assert saved is True
        identity = cache_identity(_pr())
        assert stores[1].get(identity) == "## Requirements"
        assert stores[1].get_metadata(identity).gathered_from_commit == "c" * 40
        assert gatherer.inputs[0].commits == ["PROJ-1 add login"]
        assert gatherer.inputs[0].edited_files == ["app.py"]

    @pytest.mark.asyncio
    async def test_error_stream_leaves_cache_untouched(self, tmp_path, pr_workflow, stores):
        executor = _executor(
            tmp_path, pr_workflow, stores, gatherer=ScriptedAgent([ContextStart("s"), ContextError("no model")])
        )

        assert await executor.execute_gather_context(_pr()) is False
        assert not stores[1].has(cache_identity(_pr()))
        executor.presenter.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_reported(self, tmp_path, pr_workflow, stores):
        pr_workflow.fetch_commit_history.side_effect = RuntimeError("GitHub down")
        executor = _executor(tmp_path, pr_workflow, stores)

        assert await executor.execute_gather_context(_pr()) is False
        assert "GitHub down" in executor.presenter.error.call_args.args[0]


class TestReview:
    @pytest.mark.asyncio
    async def test_saves_comments_with_snippets(self, tmp_path, pr_workflow, stores):
        executor = _executor(tmp_path, pr_workflow, stores, reviewer=ScriptedAgent(_review_events(_findings())))

        result = await executor.execute_review(_pr())

        assert result == ReviewResult(comments_created=2, has_errors=False)
        stored = stores[0].get_comments(KEY)
        assert [c.status for c in stored] == ["pending", "pending"]
        assert all(c.id for c in stored)
        assert stored[0].code_snippet == "    return user.name"
        assert stored[1].code_snippet == "def login(user):\n    return user.name\n# end"

    @pytest.mark.asyncio
    async def test_review_uses_cached_context(self, tmp_path, pr_workflow, stores):
        stores[1].set(cache_identity(_pr()), "c" * 40, "ctx")
        reviewer = ScriptedAgent(_review_events([]))
        executor = _executor(tmp_path, pr_workflow, stores, reviewer=reviewer)

        await executor.execute_review(_pr())

        assert reviewer.inputs[0].context == "ctx"
        assert reviewer.inputs[0].diff == "+x"

    @pytest.mark.asyncio
    async def test_rereview_is_idempotent_and_keeps_triage(self, tmp_path, pr_workflow, stores):
        executor = _executor(tmp_path, pr_workflow, stores, reviewer=ScriptedAgent(_review_events(_findings())))
        await executor.execute_review(_pr())
        first = stores[0].get_comments(KEY)
        stores[0].update_comment(KEY, first[0].id, status="accepted")

        executor.reviewer = ScriptedAgent(_review_events(_findings()))
        result = await executor.execute_review(_pr())

        stored = stores[0].get_comments(KEY)
        assert len(stored) == 2
        assert [c.id for c in stored] == [c.id for c in first]
        assert stored[0].status == "accepted"
        assert result.comments_created == 1

    @pytest.mark.asyncio
    async def test_error_event_is_reported(self, tmp_path, pr_workflow, stores):
        executor = _executor(
            tmp_path, pr_workflow, stores, reviewer=ScriptedAgent([ReviewStart("s"), ReviewError("bad JSON")])
        )

        result = await executor.execute_review(_pr())

        assert result == ReviewResult(comments_created=0, has_errors=True)
        assert stores[0].get_comments(KEY) == []

    @pytest.mark.asyncio
    async def test_exception_returns_empty_result(self, tmp_path, pr_workflow, stores):
        pr_workflow.analyze_changes.side_effect = RuntimeError("git diff failed")
        executor = _executor(tmp_path, pr_workflow, stores)

        assert await executor.execute_review(_pr()) == ReviewResult(comments_created=0, has_errors=True)


class TestHandlePending:
    @pytest.mark.asyncio
    async def test_delegates_to_triage(self, tmp_path, pr_workflow, stores):
        triage = MagicMock()
        triage.run = AsyncMock(return_value=HandleCommentsResult(processed=1, accepted=1))
        executor = _executor(tmp_path, pr_workflow, stores, triage=triage)

        result = await executor.execute_handle_pending(_pr())

        assert result.accepted == 1
        triage.run.assert_awaited_once_with(KEY)

    @pytest.mark.asyncio
    async def test_comment_not_found_propagates(self, tmp_path, pr_workflow, stores):
        triage = MagicMock()
        triage.run = AsyncMock(side_effect=CommentNotFoundError(KEY, "missing"))
        executor = _executor(tmp_path, pr_workflow, stores, triage=triage)

        with pytest.raises(CommentNotFoundError):
            await executor.execute_handle_pending(_pr())

    @pytest.mark.asyncio
    async def test_other_errors_become_empty_result(self, tmp_path, pr_workflow, stores):
        triage = MagicMock()
        triage.run = AsyncMock(side_effect=ValueError("boom"))
        executor = _executor(tmp_path, pr_workflow, stores, triage=triage)

        assert await executor.execute_handle_pending(_pr()) == HandleCommentsResult()


class TestSendAccepted:
    @pytest.mark.asyncio
    async def test_nothing_accepted_skips_remote(self, tmp_path, pr_workflow, stores):
        stores[0].save_comments(KEY, [finding_to_comment(f) for f in _findings()])
        executor = _executor(tmp_path, pr_workflow, stores)

        assert await executor.execute_send_accepted(_pr()) == 0
        pr_workflow.post_comments_to_remote.assert_not_called()

    @pytest.mark.asyncio
    async def test_posts_only_accepted(self, tmp_path, pr_workflow, stores):
        saved = stores[0].save_comments(KEY, [finding_to_comment(f) for f in _findings()])
        stores[0].update_comment(KEY, saved[1].id, status="accepted")
        executor = _executor(tmp_path, pr_workflow, stores)

        assert await executor.execute_send_accepted(_pr()) == 1
        posted = pr_workflow.post_comments_to_remote.call_args.args[1]
        assert [c.message for c in posted] == ["Extract helper"]

    @pytest.mark.asyncio
    async def test_remote_failure_returns_zero(self, tmp_path, pr_workflow, stores):
        saved = stores[0].save_comments(KEY, [finding_to_comment(f) for f in _findings()])
        stores[0].update_comment(KEY, saved[0].id, status="accepted")
        pr_workflow.post_comments_to_remote.side_effect = RuntimeError("403")
        executor = _executor(tmp_path, pr_workflow, stores)

        assert await executor.execute_send_accepted(_pr()) == 0
        assert "403" in executor.presenter.error.call_args.args[0]
