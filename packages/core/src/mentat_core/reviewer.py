"""Code reviewer: one LLM pass over the PR diff, streamed as review events.

The reviewer reads each changed file from the local working copy (the
source branch is checked out by the CLI), sends the diff, the files, the
gathered context and the team guidelines to the model in a single prompt,
and parses a JSON list of findings out of the response.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

from mentat_core.events import (
    ReviewData,
    ReviewError,
    ReviewEvent,
    ReviewPayload,
    ReviewStart,
    ReviewSuccess,
    ReviewThinking,
    ReviewToolCall,
    ReviewToolResult,
)
from mentat_core.models import PullRequest, ReviewFinding
from mentat_core.providers.base import BaseProvider, parse_json
from mentat_core.utils.files import is_code_file, is_excluded

logger = logging.getLogger(__name__)

SEVERITIES = ("nit", "suggestion", "issue", "risk")
CONFIDENCES = ("high", "medium", "low")

# Models sometimes answer with a GitHub-style scale; map it onto ours.
_SEVERITY_ALIASES = {
    "critical": "risk",
    "blocker": "risk",
    "major": "issue",
    "bug": "issue",
    "minor": "suggestion",
    "nitpick": "nit",
}

_MAX_DIFF_CHARS = 120_000


@dataclass
class ReviewInput:
    pr: PullRequest
    diff: str
    edited_files: list[str] = field(default_factory=list)
    commits: list[str] = field(default_factory=list)
    context: str | None = None
    repo_path: Path = field(default_factory=lambda: Path("."))


def normalize_severity(value) -> str:
    severity = str(value or "").strip().lower()
    severity = _SEVERITY_ALIASES.get(severity, severity)
    return severity if severity in SEVERITIES else "suggestion"


def _as_line(value) -> int | None:
    try:
        line = int(value)
    except (TypeError, ValueError):
        return None
    return line if line > 0 else None


def to_finding(item) -> ReviewFinding | None:
    """Convert one parsed JSON item into a finding; None if it lacks a file or message."""
    if not isinstance(item, dict):
        return None
    file = item.get("file") or item.get("path")
    message = item.get("message") or item.get("comment")
    if not file or not message:
        return None

    start_line = _as_line(item.get("start_line", item.get("startLine")))
    end_line = _as_line(item.get("end_line", item.get("endLine")))
    line = _as_line(item.get("line"))
    if start_line is not None and end_line is not None and end_line >= start_line:
        line = None
    else:
        start_line = end_line = None

    confidence = str(item.get("confidence") or "").lower() or None
    return ReviewFinding(
        file=str(file),
        message=str(message).strip(),
        line=line,
        start_line=start_line,
        end_line=end_line,
        severity=normalize_severity(item.get("severity")),
        confidence=confidence if confidence in CONFIDENCES else None,
        verified_by=item.get("verified_by") or item.get("verifiedBy"),
        rationale=item.get("rationale"),
    )


class CodeReviewer:
    def __init__(
        self,
        provider: BaseProvider,
        guidelines: str,
        max_chars_per_file: int = 20000,
        exclude: list[str] | None = None,
    ):
        self.provider = provider
        self.guidelines = guidelines
        self.max_chars_per_file = max_chars_per_file
        self.exclude = exclude or []

    async def review(self, data: ReviewInput) -> AsyncIterator[ReviewEvent]:
        pr = data.pr
        yield ReviewStart(message=f"Reviewing PR #{pr.number}: {pr.source.name} -> {pr.target.name}")

        try:
            files: dict[str, str] = {}
            for path in data.edited_files:
                if is_excluded(path, self.exclude) or not is_code_file(path):
                    logger.debug("Skipping %s", path)
                    continue
                full_path = data.repo_path / path
                if not full_path.is_file():
                    # Deleted in this PR.
                    continue
                yield ReviewToolCall(tool_name="Read", argument=path)
                content = full_path.read_text(encoding="utf-8", errors="replace")
                line_count = content.count("\n") + 1
                if len(content) > self.max_chars_per_file:
                    content = content[: self.max_chars_per_file] + "\n... [file truncated]"
                files[path] = content
                yield ReviewToolResult(tool_name="Read", summary=f"{path} ({line_count} lines)")

            yield ReviewThinking(text=f"Reviewing {len(files)} file(s) against the guidelines")
            raw = await asyncio.to_thread(
                self.provider.complete, self._build_system_prompt(), self._build_user_prompt(data, files)
            )
            if raw is None:
                yield ReviewError(message="The model did not return a review.")
                return

            parsed = parse_json(raw)
            if not isinstance(parsed, list):
                yield ReviewError(message="Could not parse the review response as a JSON list.")
                return
            findings = [f for f in (to_finding(item) for item in parsed) if f is not None]
        except Exception as e:
            logger.debug("Review failed", exc_info=True)
            yield ReviewError(message=str(e))
            return

        yield ReviewSuccess(comment_count=len(findings))
        yield ReviewData(
            payload=ReviewPayload(
                source_branch=pr.source.name,
                target_branch=pr.target.name,
                source_commit=pr.source.commit_hash,
                comments=findings,
            )
        )

    def _build_system_prompt(self) -> str:
        return f"""You are a strict and precise senior code reviewer.
Review the pull request below according to the guidelines.

{self.guidelines}

Rules:
- Focus on added lines (starting with '+') for direct violations.
- Also consider implications of removed lines, e.g. deleted null checks or
  dropped permission guards.
- Check the change against the requirements in the gathered context.
- Avoid assumptions when context is unclear. Be concise and actionable."""

    def _build_user_prompt(self, data: ReviewInput, files: dict[str, str]) -> str:
        pr = data.pr
        diff = data.diff
        if len(diff) > _MAX_DIFF_CHARS:
            diff = diff[:_MAX_DIFF_CHARS] + "\n... [diff truncated]"
        commits = "\n".join(f"- {c.splitlines()[0]}" for c in data.commits if c.strip()) or "(none)"
        file_sections = "\n\n".join(f"### {path}\n```\n{content}\n```" for path, content in files.items())
        return f"""## Pull Request
Title: {pr.title}
Description:
{pr.description or 'No description provided.'}

## Commits
{commits}

## Gathered Context
{data.context or 'No external context was gathered.'}

## Diff
{diff}

## Changed Files
{file_sections or '(no readable files)'}

### Output Format:
Respond with **only** a valid JSON list:

[
  {{
    "file": "<path relative to the repository root>",
    "line": <line number in the new file, or null when start_line/end_line are used>,
    "start_line": <first line of a multi-line range, optional>,
    "end_line": <last line of a multi-line range, optional>,
    "severity": "<nit|suggestion|issue|risk>",
    "confidence": "<high|medium|low>",
    "verified_by": "<how you verified the finding, e.g. 'read caller in api.py'>",
    "message": "<concise, actionable comment in GitHub-flavored markdown>",
    "rationale": "<why this matters>"
  }},
  ...
]

If there are no issues, return: []
Do not return any text outside the JSON block."""
