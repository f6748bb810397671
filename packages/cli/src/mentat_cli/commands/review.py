"""review command: the interactive review session for one pull request."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import click
from rich.console import Console

from mentat_cli.fix_session import FixSession
from mentat_cli.pr_workflow import PRWorkflow
from mentat_cli.stores import build_memory_store, open_local_stores
from mentat_cli.ui import CANCELLED, Choice, Presenter, Prompter
from mentat_cli.workflow.advisor import PostActionAdvisor
from mentat_cli.workflow.executor import ActionExecutor
from mentat_cli.workflow.orchestrator import WorkflowOrchestrator
from mentat_cli.workflow.state import WorkflowStateDetector
from mentat_cli.workflow.triage import CommentTriage
from mentat_core.atlassian import AtlassianClient
from mentat_core.config import load_guidelines
from mentat_core.fixer import CommentFixer
from mentat_core.gatherer import ContextGatherer
from mentat_core.gh.pull_request import (
    GitHubProvider,
    get_pull_request,
    get_repo,
    list_pull_requests,
    repo_name_from_remote,
)
from mentat_core.git.operations import GitError, GitOperations
from mentat_core.models import PullRequest
from mentat_core.providers.base import build_provider
from mentat_core.reviewer import CodeReviewer
from mentat_store.base import BaseMemoryStore
from mentat_store.errors import CommentNotFoundError

logger = logging.getLogger(__name__)

console = Console()


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def resolve_repo_name(repo: str | None, git: GitOperations, remote: str) -> str:
    name = repo or repo_name_from_remote(git.remote_url(remote))
    if not name:
        raise click.UsageError(f"Could not infer the GitHub repository from remote '{remote}'. Pass --repo owner/name.")
    return name


def select_pull_request(gh_repo, pr_number: int | None, prompter: Prompter) -> PullRequest | None:
    if pr_number is not None:
        return get_pull_request(gh_repo, pr_number)

    with console.status("Querying pull requests"):
        prs = list_pull_requests(gh_repo)
    if not prs:
        raise click.UsageError("No open pull requests found.")
    choice = prompter.select(
        "Select a pull request to review",
        [Choice(pr, f"#{pr.number} {pr.title}", f"{pr.source.name} → {pr.target.name}") for pr in prs],
    )
    return None if choice is CANCELLED else choice


def build_orchestrator(
    config: dict, gh_repo, git: GitOperations, memory_store: BaseMemoryStore, repo_path: str = "."
) -> WorkflowOrchestrator:
    prompter = Prompter(console)
    presenter = Presenter(console)
    stores = open_local_stores(config, repo_path)
    provider = build_provider(config)

    fix_session = FixSession(CommentFixer(provider, repo_path), stores.comments, prompter, presenter)
    triage = CommentTriage(stores.comments, fix_session, prompter, presenter, memory_store, stores.repo_id)
    executor = ActionExecutor(
        pr_workflow=PRWorkflow(git, GitHubProvider(gh_repo)),
        gatherer=ContextGatherer(
            provider,
            AtlassianClient.from_config(config),
            max_tool_calls=config.get("max_context_tool_calls", 5),
        ),
        reviewer=CodeReviewer(
            provider,
            load_guidelines(config),
            max_chars_per_file=config.get("max_chars_per_file", 20000),
            exclude=config.get("exclude", []),
        ),
        comment_store=stores.comments,
        context_cache=stores.context,
        triage=triage,
        presenter=presenter,
        repo_path=repo_path,
    )
    return WorkflowOrchestrator(
        detector=WorkflowStateDetector(stores.comments, stores.context),
        executor=executor,
        advisor=PostActionAdvisor(prompter, presenter),
        prompter=prompter,
        presenter=presenter,
    )


def prepare_working_copy(git: GitOperations, pr: PullRequest, remote: str) -> None:
    """Fetch both PR branches and check out the source commit."""
    with console.status(f"Fetching {pr.source.name} and {pr.target.name} from {remote}"):
        git.fetch(remote, pr.source.name)
        git.fetch(remote, pr.target.name)
    git.checkout(pr.source.commit_hash)


def restore_branch(git: GitOperations, branch: str) -> None:
    try:
        git.checkout(branch)
        console.print(f"[green]✓ Restored {branch}[/green]")
    except GitError as e:
        logger.debug("Branch restore failed: %s", e)
        console.print(f"[red]⚠ Failed to restore branch. Please run: git checkout {branch}[/red]")


@click.command("review")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to the remote's.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to pick from open PRs interactively.",
)
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--remote", default="origin", show_default=True, help="Git remote to fetch PR branches from.")
@click.option("--no-checkout", is_flag=True, help="Review the current working copy without switching branches.")
@click.pass_context
def review_cmd(ctx, repo: str | None, pr_number: int | None, model: str | None, remote: str, no_checkout: bool):
    """Review a pull request interactively.

    Gathers Jira/Confluence context, runs an AI review of the diff, walks you
    through the resulting comments and posts the accepted ones to GitHub.
    Progress is saved after every step, so a session can be resumed.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    Optional:
      ATLASSIAN_EMAIL, ATLASSIAN_API_TOKEN, ATLASSIAN_BASE_URL
    """
    config = ctx.obj["config"]
    if model:
        config["model"] = model

    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")

    git = GitOperations()
    gh_repo = get_repo(resolve_repo_name(repo, git, remote), token=token)
    pr = select_pull_request(gh_repo, pr_number, Prompter(console))
    if pr is None:
        console.print("[yellow]No pull request selected.[/yellow]")
        return

    console.print(f"\n[bold]#{pr.number} {pr.title}[/bold]")
    console.print(f"  Source: {pr.source.name} [dim]({pr.source.commit_hash[:8]})[/dim]")
    console.print(f"  Target: {pr.target.name} [dim]({pr.target.commit_hash[:8]})[/dim]\n")

    memory_store = build_memory_store(config)
    ctx.call_on_close(memory_store.close)
    orchestrator = build_orchestrator(config, gh_repo, git, memory_store)

    if no_checkout:
        try:
            asyncio.run(orchestrator.run(pr))
        except CommentNotFoundError as e:
            raise click.ClickException(str(e))
        return

    if git.has_uncommitted_changes():
        raise click.UsageError(
            "Uncommitted changes detected. mentat needs a clean working copy to switch branches.\n"
            "Commit or stash them first (git stash push -m 'WIP')."
        )

    original_branch = git.current_branch()
    previous_sigterm = signal.signal(signal.SIGTERM, _raise_interrupt)
    interrupted = False
    try:
        prepare_working_copy(git, pr, remote)
        asyncio.run(orchestrator.run(pr))
    except KeyboardInterrupt:
        interrupted = True
    except (GitError, CommentNotFoundError) as e:
        raise click.ClickException(str(e))
    finally:
        restore_branch(git, original_branch)
        signal.signal(signal.SIGTERM, previous_sigterm)

    if interrupted:
        console.print("[yellow]⚠ Interrupted. Progress up to the last decision is saved.[/yellow]")
        sys.exit(130)
