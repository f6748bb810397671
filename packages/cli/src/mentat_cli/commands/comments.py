"""comments command: show stored review comments and their statuses."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from mentat_cli.stores import open_local_stores, pr_key_from_cache
from mentat_core.gh.pull_request import get_pull_request, get_repo
from mentat_core.models import pr_key

console = Console()

_STATUS_STYLE = {"pending": "yellow", "accepted": "green", "fixed": "cyan", "rejected": "dim"}
_SEVERITY_STYLE = {"risk": "bold red", "issue": "red", "suggestion": "yellow", "nit": "dim"}


@click.command("comments")
@click.option("--repo", default=None, help="GitHub repository (owner/name), used to look up an uncached PR.")
@click.option("--pr", "pr_number", type=int, default=None, help="Show one PR. Omit to list every PR with comments.")
@click.option(
    "--status",
    type=click.Choice(["pending", "accepted", "rejected", "fixed"]),
    default=None,
    help="Only show comments with this status.",
)
@click.pass_context
def comments_cmd(ctx, repo: str | None, pr_number: int | None, status: str | None):
    """Show stored review comments for this repository."""
    config = ctx.obj["config"]
    stores = open_local_stores(config)

    if pr_number is None:
        keys = stores.comments.pr_keys()
    else:
        key = pr_key_from_cache(stores.context, pr_number)
        if key is None:
            if not repo or not config.get("github_token"):
                raise click.UsageError(
                    f"PR #{pr_number} has no cached context. Pass --repo and set GITHUB_TOKEN to look it up."
                )
            key = pr_key(get_pull_request(get_repo(repo, token=config["github_token"]), pr_number))
        keys = [key]

    shown = 0
    for key in keys:
        comments = [c for c in stores.comments.get_comments(key) if status is None or c.status == status]
        if not comments:
            continue
        source, _, target = key.partition("|")
        table = Table(title=f"{source} → {target}", show_header=True, header_style="bold cyan")
        table.add_column("Status", width=10)
        table.add_column("Severity", width=10)
        table.add_column("Location", max_width=40)
        table.add_column("Message", max_width=70)
        for c in comments:
            status_style = _STATUS_STYLE.get(c.status, "white")
            severity_style = _SEVERITY_STYLE.get(c.severity, "white")
            table.add_row(
                f"[{status_style}]{c.status}[/{status_style}]",
                f"[{severity_style}]{c.severity}[/{severity_style}]",
                c.location(),
                c.message.splitlines()[0][:120] if c.message else "",
            )
        console.print(table)
        shown += len(comments)

    if not shown:
        console.print("[yellow]No review comments found.[/yellow]")
