"""Store exceptions."""

from __future__ import annotations


class CommentNotFoundError(KeyError):
    """Raised when updating a comment id that is not stored for the PR."""

    def __init__(self, pr_key: str, comment_id: str):
        self.pr_key = pr_key
        self.comment_id = comment_id
        super().__init__(f"Comment {comment_id} not found for {pr_key}")

    def __str__(self) -> str:
        return self.args[0]
