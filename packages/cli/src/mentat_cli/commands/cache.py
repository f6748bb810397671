"""cache commands: inspect and delete locally cached review data."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from mentat_cli.stores import open_local_stores, pr_key_from_cache
from mentat_store.models import CacheIdentity

console = Console()


@click.group("cache")
def cache_group():
    """Inspect or clear cached context and comments for this repository."""


@cache_group.command("list")
@click.pass_context
def list_cmd(ctx):
    """List cached context entries for the current repository."""
    stores = open_local_stores(ctx.obj["config"])
    metas = stores.context.list_for_repo()
    if not metas:
        console.print("[yellow]No cached context for this repository.[/yellow]")
        console.print(f"[dim]Cache location: {stores.context.location}[/dim]")
        return

    table = Table(title=f"Cached Context ({stores.context.location})", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="bold", width=6)
    table.add_column("Branches", max_width=50)
    table.add_column("Commit", width=8)
    table.add_column("Gathered At", width=20)
    table.add_column("Comments", justify="right", width=10)

    for meta in metas:
        source, target = meta.get("source_branch", "?"), meta.get("target_branch", "?")
        comments = stores.comments.get_comments(f"{source}|{target}")
        table.add_row(
            f"#{meta['pr_number']}" if meta.get("pr_number") else "-",
            f"{source} → {target}",
            (meta.get("gathered_from_commit") or "")[:8],
            (meta.get("gathered_at") or "")[:19].replace("T", " "),
            str(len(comments)),
        )

    console.print(table)


@cache_group.command("clear")
@click.option("--pr", "pr_number", type=int, default=None, help="Clear context and comments for one PR.")
@click.option("--all", "clear_all", is_flag=True, help="Clear every cached entry for this repository.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def clear_cmd(ctx, pr_number: int | None, clear_all: bool, yes: bool):
    """Delete cached context and review comments.

    Comments hold your triage decisions; they are only removed here.
    """
    if (pr_number is None) == (not clear_all):
        raise click.UsageError("Pass exactly one of --pr N or --all.")

    stores = open_local_stores(ctx.obj["config"])

    if clear_all:
        if not yes:
            click.confirm("Delete all cached context and comments for this repository?", abort=True)
        keys = stores.comments.pr_keys()
        for key in keys:
            stores.comments.clear_comments(key)
        removed = stores.context.clear_repo()
        console.print(f"[green]Removed {removed} context entry(ies) and comments for {len(keys)} PR(s).[/green]")
        return

    key = pr_key_from_cache(stores.context, pr_number)
    if not yes:
        click.confirm(f"Delete cached context and comments for PR #{pr_number}?", abort=True)
    stores.context.clear(CacheIdentity(source_branch="", target_branch="", pr_number=pr_number))
    if key is not None:
        stores.comments.clear_comments(key)
        console.print(f"[green]Cleared context and comments for PR #{pr_number}.[/green]")
    else:
        console.print(f"[green]Cleared context for PR #{pr_number}.[/green] [dim](no comments found)[/dim]")
