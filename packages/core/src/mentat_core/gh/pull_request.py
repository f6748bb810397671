"""GitHub access through PyGithub: PR lookup, commit history and comment posting."""

from __future__ import annotations

import logging
import re

from github import Github, GithubException

from mentat_core.models import BranchInfo, PullRequest

logger = logging.getLogger(__name__)

_GITHUB_REMOTE_RE = re.compile(r"github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def repo_name_from_remote(remote_url: str | None) -> str | None:
    """Return ``owner/name`` for a GitHub remote URL (https or ssh), else None."""
    if not remote_url:
        return None
    match = _GITHUB_REMOTE_RE.search(remote_url.strip())
    return f"{match.group(1)}/{match.group(2)}" if match else None


def to_pull_request(pull) -> PullRequest:
    """Map a PyGithub PullRequest to the provider-neutral model."""
    return PullRequest(
        number=pull.number,
        title=pull.title or "",
        description=pull.body or "",
        source=BranchInfo(name=pull.head.ref, commit_hash=pull.head.sha),
        target=BranchInfo(name=pull.base.ref, commit_hash=pull.base.sha),
        url=pull.html_url,
    )


def list_pull_requests(repo, state: str = "open") -> list[PullRequest]:
    return [to_pull_request(p) for p in repo.get_pulls(state=state)]


def get_pull_request(repo, pr_number: int) -> PullRequest:
    return to_pull_request(repo.get_pull(pr_number))


def format_comment_body(comment) -> str:
    body = f"**[{comment.severity.upper()}]** {comment.message}"
    if comment.rationale:
        body += f"\n\n_Why:_ {comment.rationale}"
    return body


def _review_comment_payload(comment) -> dict | None:
    """Build the create_review payload for one comment, or None if it has no line anchor."""
    payload = {"path": comment.file, "body": format_comment_body(comment), "side": "RIGHT"}
    if comment.start_line is not None and comment.end_line is not None:
        if comment.end_line > comment.start_line:
            payload.update(start_line=comment.start_line, start_side="RIGHT", line=comment.end_line)
        else:
            payload["line"] = comment.end_line
        return payload
    if comment.line is not None:
        payload["line"] = comment.line
        return payload
    return None


def _fallback_body(comments: list) -> str:
    lines = ["Review comments from mentat:", ""]
    for c in comments:
        if c.start_line is not None and c.end_line is not None:
            where = f"{c.file}:{c.start_line}-{c.end_line}"
        elif c.line is not None:
            where = f"{c.file}:{c.line}"
        else:
            where = c.file
        lines.append(f"- `{where}` {format_comment_body(c)}")
    return "\n".join(lines)


class GitHubProvider:
    """Capability object used by the review workflow for remote operations.

    ``comments`` passed to :meth:`post_comments` are any objects exposing
    ``file``, ``line``, ``start_line``, ``end_line``, ``severity``,
    ``message`` and ``rationale``.
    """

    def __init__(self, repo):
        self.repo = repo

    def fetch_commit_messages(self, pr: PullRequest) -> list[str]:
        pull = self.repo.get_pull(pr.number)
        return [c.commit.message for c in pull.get_commits()]

    def post_comments(self, pr: PullRequest, comments: list) -> int:
        """Post ``comments`` as one COMMENT review and return how many were posted.

        Comments without a line anchor go into the review body. If GitHub
        rejects the inline anchors (lines outside the diff), everything is
        posted as a single issue comment instead.
        """
        if not comments:
            return 0

        pull = self.repo.get_pull(pr.number)
        inline: list[dict] = []
        unanchored: list = []
        for comment in comments:
            payload = _review_comment_payload(comment)
            if payload is None:
                unanchored.append(comment)
            else:
                inline.append(payload)

        body = _fallback_body(unanchored) if unanchored else "Review comments from mentat."
        try:
            pull.create_review(body=body, event="COMMENT", comments=inline)
        except GithubException as e:
            logger.warning("Inline review rejected by GitHub (%s); posting as an issue comment.", e.status)
            pull.create_issue_comment(_fallback_body(comments))
        return len(comments)
