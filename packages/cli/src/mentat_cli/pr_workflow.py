"""Bridges a pull request to the local working copy and to GitHub."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mentat_core.gh.pull_request import GitHubProvider
from mentat_core.git.operations import GitOperations
from mentat_core.models import PullRequest

logger = logging.getLogger(__name__)


@dataclass
class ChangeSet:
    diff: str
    edited_files: list[str] = field(default_factory=list)


class PRWorkflow:
    def __init__(self, git: GitOperations, provider: GitHubProvider):
        self.git = git
        self.provider = provider

    def fetch_commit_history(self, pr: PullRequest) -> list[str]:
        return self.provider.fetch_commit_messages(pr)

    def analyze_changes(self, pr: PullRequest) -> ChangeSet:
        """Three-dot diff of the PR's target and source commits in the local clone."""
        base, head = pr.target.commit_hash, pr.source.commit_hash
        diff = self.git.diff(base, head)
        files = self.git.changed_files(base, head)
        logger.debug("PR #%s touches %d file(s)", pr.number, len(files))
        return ChangeSet(diff=diff, edited_files=files)

    def post_comments_to_remote(self, pr: PullRequest, comments: list) -> int:
        return self.provider.post_comments(pr, comments)
