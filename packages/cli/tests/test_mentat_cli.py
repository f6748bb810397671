"""Tests for the CLI entry point and its commands."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from click.testing import CliRunner

from mentat_cli.cli import main
from mentat_core.models import BranchInfo, PullRequest
from mentat_store.errors import CommentNotFoundError
from mentat_store.local import LocalCommentStore, LocalContextCache
from mentat_store.models import CacheIdentity, ReviewComment

KEY = "feature/login|main"


def _make_config(tmp_path, github_token="tok", model="anthropic", anthropic_key="ant", openai_key=None):
    return {
        "github_token": github_token,
        "model": model,
        "anthropic_api_key": anthropic_key,
        "openai_api_key": openai_key,
        "guidelines": None,
        "exclude": [],
        "max_chars_per_file": 20000,
        "max_context_tool_calls": 5,
        "cache_dir": str(tmp_path),
        "memory_store": "none",
    }


def _patch_common(mocker, tmp_path, config=None, token="tok"):
    cfg = config or _make_config(tmp_path)
    mocker.patch("mentat_core.config.load_config", return_value=cfg)
    mocker.patch("mentat_cli.auth.resolve_github_token", return_value=token)
    mocker.patch("mentat_cli.stores.resolve_repo_id", return_value="repo")
    return cfg


def _pr():
    return PullRequest(
        number=7,
        title="Add login",
        description="",
        source=BranchInfo("feature/login", "c" * 40),
        target=BranchInfo("main", "b" * 40),
    )


def _seed(tmp_path, statuses=("pending", "accepted")):
    comments = LocalCommentStore(tmp_path, "repo")
    saved = comments.save_comments(
        KEY, [ReviewComment(file="app.py", line=i + 1, message=f"finding {i}") for i in range(len(statuses))]
    )
    for comment, status in zip(saved, statuses):
        if status != "pending":
            comments.update_comment(KEY, comment.id, status=status)
    context = LocalContextCache(tmp_path, "repo", repo_path=str(tmp_path))
    context.set(CacheIdentity("feature/login", "main", 7), "c" * 40, "ctx")
    return comments, context


class TestReviewValidation:
    def test_missing_github_token(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, github_token=None), token=None)

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])

        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output

    def test_missing_anthropic_key(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, anthropic_key=None))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])

        assert result.exit_code != 0
        assert "ANTHROPIC_API_KEY" in result.output

    def test_missing_openai_key(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, model="openai"))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])

        assert result.exit_code != 0
        assert "OPENAI_API_KEY" in result.output


class TestReviewSession:
    @pytest.fixture
    def session(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        git = MagicMock()
        git.has_uncommitted_changes.return_value = False
        git.current_branch.return_value = "develop"
        mocker.patch("mentat_cli.commands.review.GitOperations", return_value=git)
        mocker.patch("mentat_cli.commands.review.get_repo")
        mocker.patch("mentat_cli.commands.review.get_pull_request", return_value=_pr())
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock()
        mocker.patch("mentat_cli.commands.review.build_orchestrator", return_value=orchestrator)
        return git, orchestrator

    def test_checks_out_source_and_restores_branch(self, session):
        git, orchestrator = session

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7"])

        assert result.exit_code == 0, result.output
        orchestrator.run.assert_awaited_once_with(_pr())
        assert [c.args[0] for c in git.checkout.call_args_list] == ["c" * 40, "develop"]
        assert [c.args for c in git.fetch.call_args_list] == [("origin", "feature/login"), ("origin", "main")]

    def test_uncommitted_changes_block_checkout(self, session):
        git, orchestrator = session
        git.has_uncommitted_changes.return_value = True

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7"])

        assert result.exit_code == 2
        assert "Uncommitted changes" in result.output
        orchestrator.run.assert_not_awaited()
        git.checkout.assert_not_called()

    def test_no_checkout_leaves_working_copy(self, session):
        git, orchestrator = session
        git.has_uncommitted_changes.return_value = True

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7", "--no-checkout"])

        assert result.exit_code == 0, result.output
        orchestrator.run.assert_awaited_once()
        git.checkout.assert_not_called()

    def test_missing_comment_is_reported_and_branch_restored(self, session):
        git, orchestrator = session
        orchestrator.run.side_effect = CommentNotFoundError(KEY, "abc123")

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7"])

        assert result.exit_code == 1
        assert "Comment abc123 not found" in result.output
        assert not isinstance(result.exception, CommentNotFoundError)
        assert git.checkout.call_args_list[-1].args == ("develop",)

    def test_missing_comment_without_checkout(self, session):
        _, orchestrator = session
        orchestrator.run.side_effect = CommentNotFoundError(KEY, "abc123")

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7", "--no-checkout"])

        assert result.exit_code == 1
        assert "Comment abc123 not found" in result.output

    def test_interrupt_restores_branch_and_exits_130(self, session):
        git, orchestrator = session
        orchestrator.run.side_effect = KeyboardInterrupt

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "7"])

        assert result.exit_code == 130
        assert git.checkout.call_args_list[-1].args == ("develop",)
        assert "Interrupted" in result.output


class TestCacheCommands:
    def test_list_empty(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["cache", "list"])

        assert result.exit_code == 0
        assert "No cached context" in result.output

    def test_list_entries(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        _seed(tmp_path)

        result = CliRunner().invoke(main, ["cache", "list"])

        assert result.exit_code == 0
        assert "#7" in result.output
        assert "cccccccc" in result.output

    @pytest.mark.parametrize("args", [[], ["--pr", "7", "--all"]])
    def test_clear_requires_exactly_one_target(self, mocker, tmp_path, args):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["cache", "clear", *args])

        assert result.exit_code == 2
        assert "exactly one" in result.output

    def test_clear_pr(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        comments, context = _seed(tmp_path)

        result = CliRunner().invoke(main, ["cache", "clear", "--pr", "7", "--yes"])

        assert result.exit_code == 0
        assert not context.has(CacheIdentity("feature/login", "main", 7))
        assert comments.get_comments(KEY) == []

    def test_clear_all_asks_first(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        comments, context = _seed(tmp_path)

        result = CliRunner().invoke(main, ["cache", "clear", "--all"], input="n\n")

        assert result.exit_code == 1
        assert len(comments.get_comments(KEY)) == 2

        result = CliRunner().invoke(main, ["cache", "clear", "--all"], input="y\n")

        assert result.exit_code == 0
        assert comments.get_comments(KEY) == []
        assert context.list_for_repo() == []


class TestCommentsCommand:
    def test_no_comments(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["comments"])

        assert result.exit_code == 0
        assert "No review comments found." in result.output

    def test_lists_comments(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        _seed(tmp_path)

        result = CliRunner().invoke(main, ["comments"])

        assert result.exit_code == 0
        assert "finding 0" in result.output
        assert "finding 1" in result.output

    def test_status_filter(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        _seed(tmp_path)

        result = CliRunner().invoke(main, ["comments", "--status", "accepted"])

        assert "finding 1" in result.output
        assert "finding 0" not in result.output

    def test_pr_from_cache(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        _seed(tmp_path)

        result = CliRunner().invoke(main, ["comments", "--pr", "7"])

        assert result.exit_code == 0
        assert "finding 0" in result.output

    def test_uncached_pr_needs_repo(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["comments", "--pr", "99"])

        assert result.exit_code == 2
        assert "--repo" in result.output

    def test_uncached_pr_looked_up_on_github(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        _seed(tmp_path)
        LocalContextCache(tmp_path, "repo", repo_path=str(tmp_path)).clear_repo()
        get_repo = mocker.patch("mentat_cli.commands.comments.get_repo")
        mocker.patch("mentat_cli.commands.comments.get_pull_request", return_value=_pr())

        result = CliRunner().invoke(main, ["comments", "--pr", "7", "--repo", "owner/repo"])

        assert result.exit_code == 0
        get_repo.assert_called_once_with("owner/repo", token="tok")
        assert "finding 0" in result.output
