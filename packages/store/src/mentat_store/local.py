"""Local JSON-file stores for context and review comments.

Layout under the cache root:

  <root>/<repo_id>/<cache_key>.json   one context entry per PR
  <root>/<repo_id>/comments.json      {pr_key: [comment, ...]} for every PR

The repo id is derived from the git remote (stable across clones and
worktrees) and falls back to a hash of the absolute path. The cache key is
derived from the PR number or branch pair and never from a commit hash:
context rarely depends on code changes, so staleness is reported by the
state detector instead of forcing a new key.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import subprocess
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path

from mentat_store.base import BaseCommentStore, BaseContextCache, SnippetReader
from mentat_store.errors import CommentNotFoundError
from mentat_store.models import (
    CONTENT_FIELDS,
    CacheIdentity,
    ContextMetadata,
    ReviewComment,
    fingerprint,
)

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"
_COMMENTS_FILE = "comments.json"
_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def default_cache_root(config: dict | None = None) -> Path:
    """Resolve the cache root: config, then $MENTAT_CACHE_DIR, then ~/.cache/mentat."""
    configured = (config or {}).get("cache_dir") or os.environ.get("MENTAT_CACHE_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "mentat"


def get_remote_url(repo_path: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, NotADirectoryError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def normalize_remote(remote: str) -> str:
    """git@host:owner/repo.git and https://host/owner/repo map to the same string."""
    normalized = re.sub(r"^git@([^:]+):", r"https://\1/", remote.strip())
    return re.sub(r"\.git$", "", normalized)


def resolve_repo_id(repo_path: str | None = None) -> str:
    repo_path = os.path.abspath(repo_path or os.getcwd())
    remote = get_remote_url(repo_path)
    source = normalize_remote(remote) if remote else repo_path
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]


def cache_key(identity: CacheIdentity) -> str:
    if identity.pr_number:
        key = f"mr-{identity.pr_number}"
    else:
        key = f"{identity.source_branch}-to-{identity.target_branch}"
    return _UNSAFE_KEY_CHARS.sub("-", key)


def _read_json(path: Path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, data) -> None:
    """Write via a temp file + rename so an interrupted write never truncates the store."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class LocalContextCache(BaseContextCache):
    """Stores synthesized PR context as one JSON file per PR identity."""

    def __init__(self, root: Path, repo_id: str, repo_path: str | None = None):
        self._dir = Path(root) / repo_id
        self._repo_path = os.path.abspath(repo_path or os.getcwd())
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def location(self) -> Path:
        return self._dir

    def _path(self, identity: CacheIdentity) -> Path:
        return self._dir / f"{cache_key(identity)}.json"

    def _load(self, identity: CacheIdentity) -> dict | None:
        path = self._path(identity)
        if not path.exists():
            return None
        try:
            data = _read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Context cache read failed for %s: %s", path.name, e)
            return None
        return data if isinstance(data, dict) else None

    def has(self, identity: CacheIdentity) -> bool:
        return self._path(identity).exists()

    def get(self, identity: CacheIdentity) -> str | None:
        data = self._load(identity)
        if data is None:
            return None
        return data.get("context")

    def set(self, identity: CacheIdentity, commit: str, context: str) -> None:
        existing = self._load(identity) or {}
        record = {
            "context": context,
            "meta": {
                "pr_number": identity.pr_number,
                "source_branch": identity.source_branch,
                "target_branch": identity.target_branch,
                "gathered_at": datetime.now(timezone.utc).isoformat(),
                "gathered_from_commit": commit,
                "repo_path": self._repo_path,
                "repo_remote": get_remote_url(self._repo_path),
                "version": CACHE_VERSION,
            },
        }
        # Comments may co-reside in the record; overwriting context must keep them.
        if "pending_comments" in existing:
            record["pending_comments"] = existing["pending_comments"]
        _write_json(self._path(identity), record)

    def get_metadata(self, identity: CacheIdentity) -> ContextMetadata | None:
        data = self._load(identity)
        if data is None:
            return None
        meta = data.get("meta") or {}
        commit = meta.get("gathered_from_commit")
        gathered_at = meta.get("gathered_at")
        if not commit or not gathered_at:
            return None
        try:
            parsed = datetime.fromisoformat(gathered_at)
        except (TypeError, ValueError):
            logger.warning("Invalid gathered_at in context cache: %r", gathered_at)
            return None
        return ContextMetadata(gathered_at=parsed, gathered_from_commit=commit)

    def clear(self, identity: CacheIdentity) -> None:
        path = self._path(identity)
        if path.exists():
            path.unlink()

    def list_for_repo(self) -> list[dict]:
        metas = []
        for path in sorted(self._dir.glob("*.json")):
            if path.name == _COMMENTS_FILE:
                continue
            try:
                data = _read_json(path)
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(data, dict) and isinstance(data.get("meta"), dict):
                metas.append(data["meta"])
        return metas

    def clear_repo(self) -> int:
        removed = 0
        for path in self._dir.glob("*.json"):
            if path.name == _COMMENTS_FILE:
                continue
            path.unlink()
            removed += 1
        return removed


class LocalCommentStore(BaseCommentStore):
    """Stores every PR's comments for a repo in a single comments.json file."""

    def __init__(self, root: Path, repo_id: str):
        self._path = Path(root) / repo_id / _COMMENTS_FILE

    @property
    def location(self) -> Path:
        return self._path

    def _load_all(self) -> dict[str, list[dict]]:
        if not self._path.exists():
            return {}
        try:
            data = _read_json(self._path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Comment store read failed (%s): %s", type(e).__name__, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, pr_key: str, comments: list[ReviewComment]) -> None:
        data = self._load_all()
        data[pr_key] = [c.to_dict() for c in comments]
        _write_json(self._path, data)

    def get_comments(self, pr_key: str) -> list[ReviewComment]:
        comments = [ReviewComment.from_dict(d) for d in self._load_all().get(pr_key, [])]
        missing = [c for c in comments if not c.id]
        if missing:
            # Hand-edited or older records; every comment needs an id before triage can address it.
            for comment in missing:
                comment.id = str(uuid.uuid4())
            self._write(pr_key, comments)
            logger.debug("Assigned ids to %d stored comment(s) for %s", len(missing), pr_key)
        return comments

    def save_comments(
        self,
        pr_key: str,
        comments: list[ReviewComment],
        snippet_reader: SnippetReader | None = None,
    ) -> list[ReviewComment]:
        result = self.get_comments(pr_key)
        by_fingerprint: dict[str, ReviewComment] = {}
        for existing in result:
            by_fingerprint.setdefault(fingerprint(existing), existing)

        for fresh in comments:
            if snippet_reader is not None and not fresh.code_snippet:
                fresh.code_snippet = snippet_reader(fresh)
            key = fingerprint(fresh)
            known = by_fingerprint.get(key)
            if known is not None:
                for name in CONTENT_FIELDS:
                    value = getattr(fresh, name)
                    if value is not None:
                        setattr(known, name, value)
                continue
            fresh.id = fresh.id or str(uuid.uuid4())
            fresh.status = "pending"
            fresh.memory_created = False
            by_fingerprint[key] = fresh
            result.append(fresh)

        self._write(pr_key, result)
        logger.debug("Saved %d comment(s) for %s", len(result), pr_key)
        return result

    def update_comment(self, pr_key: str, comment_id: str, **changes) -> ReviewComment:
        if not comment_id:
            raise CommentNotFoundError(pr_key, comment_id)
        comments = self.get_comments(pr_key)
        for comment in comments:
            if comment.id == comment_id:
                for name, value in changes.items():
                    if not hasattr(comment, name):
                        raise AttributeError(f"ReviewComment has no field {name!r}")
                    setattr(comment, name, value)
                self._write(pr_key, comments)
                return comment
        raise CommentNotFoundError(pr_key, comment_id)

    def pr_keys(self) -> list[str]:
        """Keys of every PR with stored comments."""
        return [key for key, comments in self._load_all().items() if comments]

    def replace_comments(self, pr_key: str, comments: list[ReviewComment]) -> None:
        self._write(pr_key, comments)
