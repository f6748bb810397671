"""Typed events streamed by the context gatherer and the code reviewer.

Each stream is a closed union: consumers match on the concrete class (or
the ``kind`` tag) and every variant carries only the fields its tag needs.
A stream ends with exactly one terminal data event on success; on failure
it yields an error event and no data event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from mentat_core.models import ReviewFinding

# ---------------------------------------------------------------------------
# Context gathering
# ---------------------------------------------------------------------------


@dataclass
class ContextPayload:
    source_branch: str
    target_branch: str
    source_commit: str
    context: str


@dataclass
class ContextStart:
    message: str
    kind: Literal["start"] = "start"


@dataclass
class ContextToolCall:
    tool_name: str
    argument: str | None = None
    kind: Literal["tool_call"] = "tool_call"


@dataclass
class ContextToolResult:
    tool_name: str
    summary: str
    kind: Literal["tool_result"] = "tool_result"


@dataclass
class ContextSuccess:
    tool_call_count: int
    kind: Literal["success"] = "success"


@dataclass
class ContextError:
    message: str
    kind: Literal["error"] = "error"


@dataclass
class ContextData:
    payload: ContextPayload
    kind: Literal["data"] = "data"


ContextEvent = Union[ContextStart, ContextToolCall, ContextToolResult, ContextSuccess, ContextError, ContextData]

# ---------------------------------------------------------------------------
# Code review
# ---------------------------------------------------------------------------


@dataclass
class ReviewPayload:
    source_branch: str
    target_branch: str
    source_commit: str
    comments: list[ReviewFinding] = field(default_factory=list)


@dataclass
class ReviewStart:
    message: str
    kind: Literal["start"] = "start"


@dataclass
class ReviewThinking:
    text: str
    kind: Literal["thinking"] = "thinking"


@dataclass
class ReviewToolCall:
    tool_name: str
    argument: str | None = None
    kind: Literal["tool_call"] = "tool_call"


@dataclass
class ReviewToolResult:
    tool_name: str
    summary: str
    kind: Literal["tool_result"] = "tool_result"


@dataclass
class ReviewSuccess:
    comment_count: int
    kind: Literal["success"] = "success"


@dataclass
class ReviewError:
    message: str
    kind: Literal["error"] = "error"


@dataclass
class ReviewData:
    payload: ReviewPayload
    kind: Literal["data"] = "data"


ReviewEvent = Union[
    ReviewStart, ReviewThinking, ReviewToolCall, ReviewToolResult, ReviewSuccess, ReviewError, ReviewData
]
