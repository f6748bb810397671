"""Local working-copy operations via the git CLI."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """A git command exited non-zero."""


class GitOperations:
    def __init__(self, repo_path: str | Path = "."):
        self.repo_path = Path(repo_path)

    def _run(self, *args: str) -> str:
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found on PATH") from e
        if result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout

    def current_branch(self) -> str:
        return self._run("rev-parse", "--abbrev-ref", "HEAD").strip()

    def remote_url(self, remote: str = "origin") -> str | None:
        try:
            return self._run("remote", "get-url", remote).strip() or None
        except GitError:
            return None

    def fetch(self, remote: str, ref: str | None = None) -> None:
        args = ["fetch", remote] + ([ref] if ref else [])
        try:
            self._run(*args)
        except GitError as e:
            target = f" (branch: {ref})" if ref else ""
            raise GitError(f"Failed to fetch from {remote}{target}: {e}") from e

    def checkout(self, ref: str) -> None:
        self._run("checkout", ref)

    def pull(self, remote: str) -> None:
        self._run("pull", remote)

    def diff(self, base: str, head: str) -> str:
        return self._run("diff", f"{base}...{head}")

    def changed_files(self, base: str, head: str) -> list[str]:
        output = self._run("diff", "--name-only", f"{base}...{head}")
        return [line for line in output.splitlines() if line.strip()]

    def has_uncommitted_changes(self) -> bool:
        """True when tracked files are modified or staged. Untracked files are ignored."""
        output = self._run("status", "--porcelain", "--untracked-files=no")
        return bool(output.strip())
