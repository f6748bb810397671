"""Context gatherer: collects ticket and design-doc background for a pull request.

The gatherer is an async producer of :mod:`mentat_core.events` context
events. It finds Jira keys in the PR metadata, looks each one up, searches
Confluence once, then asks the model to synthesize the findings into a
short brief the code reviewer can use.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import AsyncIterator

from mentat_core.atlassian import AtlassianClient, AtlassianError
from mentat_core.events import (
    ContextData,
    ContextError,
    ContextEvent,
    ContextPayload,
    ContextStart,
    ContextSuccess,
    ContextToolCall,
    ContextToolResult,
)
from mentat_core.models import PullRequest
from mentat_core.providers.base import BaseProvider

logger = logging.getLogger(__name__)

JIRA_KEY_RE = re.compile(r"\b([A-Z][A-Z0-9]+-\d+)\b")

_SYSTEM_PROMPT = """You prepare background for a code reviewer.
Summarize the requirements, acceptance criteria, constraints and design
decisions that matter when reviewing this pull request. Use only the
material provided. If the material is thin, say so briefly.
Respond in Markdown, at most 400 words."""


@dataclass
class ContextInput:
    pr: PullRequest
    commits: list[str] = field(default_factory=list)
    edited_files: list[str] = field(default_factory=list)


def extract_jira_keys(*texts: str) -> list[str]:
    """Return unique Jira issue keys in order of first appearance."""
    keys: list[str] = []
    for text in texts:
        for key in JIRA_KEY_RE.findall(text or ""):
            if key not in keys:
                keys.append(key)
    return keys


def _summarize_issue(issue: dict) -> str:
    return f"{issue['key']} [{issue.get('status') or 'unknown'}] {issue.get('summary', '')}"


class ContextGatherer:
    def __init__(self, provider: BaseProvider, atlassian: AtlassianClient | None = None, max_tool_calls: int = 5):
        self.provider = provider
        self.atlassian = atlassian
        self.max_tool_calls = max_tool_calls

    async def gather(self, data: ContextInput) -> AsyncIterator[ContextEvent]:
        pr = data.pr
        yield ContextStart(message=f"Gathering context for PR #{pr.number}: {pr.title}")

        try:
            sections, tool_calls = [], 0
            if self.atlassian is not None:
                keys = extract_jira_keys(pr.title, pr.description, pr.source.name, *data.commits)
                for key in keys[: self.max_tool_calls]:
                    yield ContextToolCall(tool_name="getJiraIssue", argument=key)
                    tool_calls += 1
                    try:
                        issue = await asyncio.to_thread(self.atlassian.get_issue, key)
                    except AtlassianError as e:
                        logger.warning("Could not fetch %s: %s", key, e)
                        yield ContextToolResult(tool_name="getJiraIssue", summary=f"{key}: not available")
                        continue
                    sections.append(f"### Jira {issue['key']}: {issue['summary']}\n\n{issue['description']}")
                    yield ContextToolResult(tool_name="getJiraIssue", summary=_summarize_issue(issue))

                if tool_calls < self.max_tool_calls and pr.title:
                    yield ContextToolCall(tool_name="searchConfluencePages", argument=pr.title)
                    tool_calls += 1
                    try:
                        pages = await asyncio.to_thread(self.atlassian.search_pages, pr.title)
                    except AtlassianError as e:
                        logger.warning("Confluence search failed: %s", e)
                        pages = []
                    for page in pages:
                        sections.append(f"### Confluence: {page['title']}\n\n{page['excerpt']}")
                    yield ContextToolResult(tool_name="searchConfluencePages", summary=f"{len(pages)} page(s) found")

            user_prompt = self._build_user_prompt(data, sections)
            context = await asyncio.to_thread(self.provider.complete, _SYSTEM_PROMPT, user_prompt)
            if context is None:
                yield ContextError(message="The model did not return a context summary.")
                return
        except Exception as e:
            logger.debug("Context gathering failed", exc_info=True)
            yield ContextError(message=str(e))
            return

        yield ContextSuccess(tool_call_count=tool_calls)
        yield ContextData(
            payload=ContextPayload(
                source_branch=pr.source.name,
                target_branch=pr.target.name,
                source_commit=pr.source.commit_hash,
                context=context,
            )
        )

    @staticmethod
    def _build_user_prompt(data: ContextInput, sections: list[str]) -> str:
        pr = data.pr
        commits = "\n".join(f"- {c.splitlines()[0]}" for c in data.commits if c.strip()) or "(none)"
        files = ", ".join(data.edited_files) or "(none)"
        material = "\n\n".join(sections) or "(no linked tickets or pages were found)"
        return f"""## Pull Request
Title: {pr.title}
Branch: {pr.source.name} -> {pr.target.name}
Description:
{pr.description or 'No description provided.'}

## Commits
{commits}

## Edited Files
{files}

## Gathered Material
{material}"""
