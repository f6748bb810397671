"""Pull request identity and review findings.

Decoupled from mentat_store: the CLI maps findings to stored comments,
so the core has no knowledge of persistence.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class BranchInfo:
    name: str
    commit_hash: str


@dataclass
class PullRequest:
    number: int
    title: str
    description: str
    source: BranchInfo
    target: BranchInfo
    url: str | None = None


@dataclass
class ReviewFinding:
    """One comment produced by the code reviewer, before triage."""

    file: str
    message: str
    line: int | None = None
    start_line: int | None = None
    end_line: int | None = None
    severity: str = "suggestion"
    confidence: str | None = None
    verified_by: str | None = None
    rationale: str | None = None


def pr_key(pr: PullRequest) -> str:
    """Stable key for the comment store: ``source|target``."""
    return f"{pr.source.name}|{pr.target.name}"
