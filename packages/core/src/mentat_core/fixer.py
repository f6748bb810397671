"""Comment fixer: asks the model for a minimal replacement of the commented lines."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mentat_core.providers.base import BaseProvider, parse_json

logger = logging.getLogger(__name__)

_CONTEXT_LINES = 15

_SYSTEM_PROMPT = """You fix code review comments with the smallest possible change.
Only fix the specific issue mentioned. Do not refactor unrelated code, do
not add features, and keep the surrounding style and indentation."""


@dataclass
class FixProposal:
    file: str
    start_line: int
    end_line: int
    original: str
    replacement: str
    explanation: str = ""


def target_range(comment) -> tuple[int, int] | None:
    if comment.start_line is not None and comment.end_line is not None:
        return comment.start_line, comment.end_line
    if comment.line is not None:
        return comment.line, comment.line
    return None


class CommentFixer:
    def __init__(self, provider: BaseProvider, repo_path: str | Path = "."):
        self.provider = provider
        self.repo_path = Path(repo_path)

    def propose(self, comment, notes: str | None = None) -> FixProposal | None:
        """Return a proposed replacement for the comment's line range, or None.

        None means the comment has no line anchor, the file or range is gone,
        or the model gave no usable answer.
        """
        span = target_range(comment)
        if span is None:
            return None
        path = self.repo_path / comment.file
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return None

        start, end = span
        if start < 1 or end > len(lines):
            logger.warning("Lines %d-%d are outside %s", start, end, comment.file)
            return None

        original = "\n".join(lines[start - 1 : end])
        before = "\n".join(lines[max(0, start - 1 - _CONTEXT_LINES) : start - 1])
        after = "\n".join(lines[end : end + _CONTEXT_LINES])
        raw = self.provider.complete(_SYSTEM_PROMPT, self._build_user_prompt(comment, original, before, after, notes))
        if raw is None:
            return None
        parsed = parse_json(raw)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("replacement"), str):
            return None
        return FixProposal(
            file=comment.file,
            start_line=start,
            end_line=end,
            original=original,
            replacement=parsed["replacement"],
            explanation=parsed.get("explanation") or "",
        )

    def apply(self, proposal: FixProposal) -> bool:
        """Write the replacement into the file. False if the target lines changed since the proposal."""
        path = self.repo_path / proposal.file
        # newline="" keeps \r\n intact so untouched lines are written back byte for byte.
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
        lines = text.splitlines()
        current = "\n".join(lines[proposal.start_line - 1 : proposal.end_line])
        if current != proposal.original:
            logger.warning("%s changed since the fix was proposed; not applying.", proposal.file)
            return False
        newline = "\r\n" if "\r\n" in text else "\n"
        lines[proposal.start_line - 1 : proposal.end_line] = proposal.replacement.splitlines()
        trailing = newline if text.endswith(("\n", "\r")) else ""
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(newline.join(lines) + trailing)
        return True

    @staticmethod
    def _build_user_prompt(comment, original: str, before: str, after: str, notes: str | None) -> str:
        notes_section = f"\n## Reviewer Notes\n{notes}\n" if notes else ""
        return f"""## Comment to Fix
File: {comment.file}
Issue: {comment.message}
Why: {comment.rationale or 'n/a'}
{notes_section}
## Code Before the Target
```
{before}
```

## Target Lines (replace these)
```
{original}
```

## Code After the Target
```
{after}
```

Respond with **only** a JSON object:
{{"replacement": "<new text for the target lines, without surrounding code>", "explanation": "<one sentence>"}}"""
