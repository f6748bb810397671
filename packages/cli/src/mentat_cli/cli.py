"""CLI entry point for mentat.

Commands:
  review    run the interactive review workflow on a pull request
  cache     list or clear cached context and comments for this repository
  comments  show stored review comments and their statuses
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from mentat_cli.commands.cache import cache_group
from mentat_cli.commands.comments import comments_cmd
from mentat_cli.commands.review import review_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("mentat"),
    prog_name="mentat",
)
@click.option(
    "--config",
    "config_path",
    default=".mentat.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="MENTAT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Interactive AI code review for GitHub pull requests."""
    from mentat_cli.auth import resolve_github_token
    from mentat_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve once so every subcommand sees the same token.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(review_cmd)
main.add_command(cache_group)
main.add_command(comments_cmd)
