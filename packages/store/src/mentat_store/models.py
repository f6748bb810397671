"""Persisted data models.

Decoupled from mentat_core so the store layer can be used independently
and the core has no knowledge of persistence concerns.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

SEVERITIES = ("nit", "suggestion", "issue", "risk")
CONFIDENCES = ("high", "medium", "low")
STATUSES = ("pending", "accepted", "rejected", "fixed")

# Fields a fresh review run may overwrite on an already-known comment.
# id, status and memory_created belong to the human triage history.
CONTENT_FIELDS = (
    "file",
    "line",
    "start_line",
    "end_line",
    "severity",
    "confidence",
    "verified_by",
    "message",
    "rationale",
    "code_snippet",
)


@dataclass
class ReviewComment:
    """A single review comment and its resolution status."""

    file: str
    message: str
    line: int | None = None
    start_line: int | None = None
    end_line: int | None = None
    severity: str = "suggestion"
    confidence: str | None = None
    verified_by: str | None = None
    rationale: str | None = None
    code_snippet: str | None = None
    id: str | None = None
    status: str = "pending"
    memory_created: bool = False

    @property
    def is_range(self) -> bool:
        return self.start_line is not None and self.end_line is not None

    @property
    def anchor_line(self) -> int | None:
        """The line a remote inline comment is anchored to (end of a range)."""
        if self.is_range:
            return self.end_line
        return self.line

    def location(self) -> str:
        if self.is_range:
            return f"{self.file}:{self.start_line}-{self.end_line}"
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> ReviewComment:
        severity = d.get("severity") or "suggestion"
        if severity not in SEVERITIES:
            severity = "suggestion"
        confidence = d.get("confidence")
        if confidence not in CONFIDENCES:
            confidence = None
        status = d.get("status") or "pending"
        if status not in STATUSES:
            status = "pending"
        return cls(
            file=d.get("file", ""),
            message=d.get("message", ""),
            line=_as_int(d.get("line")),
            start_line=_as_int(d.get("start_line", d.get("startLine"))),
            end_line=_as_int(d.get("end_line", d.get("endLine"))),
            severity=severity,
            confidence=confidence,
            verified_by=d.get("verified_by", d.get("verifiedBy")),
            rationale=d.get("rationale"),
            code_snippet=d.get("code_snippet", d.get("codeSnippet")),
            id=d.get("id"),
            status=status,
            memory_created=bool(d.get("memory_created", d.get("memoryCreated", False))),
        )


def fingerprint(comment: ReviewComment) -> str:
    """Content identity used to recognise the same comment across review runs."""
    key = f"{comment.file}:{comment.line or 0}:{comment.message}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def _as_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ContextMetadata:
    """When and from which source commit a context entry was gathered."""

    gathered_at: datetime
    gathered_from_commit: str


@dataclass
class CacheIdentity:
    """Identity of a PR for context caching. Never includes a commit hash."""

    source_branch: str
    target_branch: str
    pr_number: int | None = None


@dataclass
class ReviewPattern:
    """A comment saved as a reusable review pattern from the triage flow."""

    repo_id: str
    file: str
    severity: str
    message: str
    rationale: str | None = None
    code_snippet: str | None = None
    note: str | None = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
