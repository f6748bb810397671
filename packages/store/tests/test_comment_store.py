"""Tests for the local JSON comment store and its fingerprint merge."""

from __future__ import annotations

import json

import pytest

from mentat_store.errors import CommentNotFoundError
from mentat_store.local import LocalCommentStore
from mentat_store.models import ReviewComment, fingerprint

PR_KEY = "feature/login|main"


def _comment(message="Missing null check", file="src/auth.py", line=42, **kwargs):
    return ReviewComment(file=file, message=message, line=line, **kwargs)


@pytest.fixture
def store(tmp_path):
    return LocalCommentStore(tmp_path, "repo123")


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_same_content_same_fingerprint(self):
        assert fingerprint(_comment()) == fingerprint(_comment(severity="risk", rationale="other"))

    def test_missing_line_treated_as_zero(self):
        assert fingerprint(_comment(line=None)) == fingerprint(_comment(line=0))

    def test_different_message_different_fingerprint(self):
        assert fingerprint(_comment("a")) != fingerprint(_comment("b"))

    def test_ignores_id_and_status(self):
        a = _comment(id="1", status="accepted")
        b = _comment(id="2", status="pending")
        assert fingerprint(a) == fingerprint(b)


# ---------------------------------------------------------------------------
# get / save
# ---------------------------------------------------------------------------


class TestGetComments:
    def test_empty_when_nothing_stored(self, store):
        assert store.get_comments(PR_KEY) == []

    def test_empty_when_file_corrupt(self, store):
        store.location.parent.mkdir(parents=True, exist_ok=True)
        store.location.write_text("{not json")
        assert store.get_comments(PR_KEY) == []

    def test_missing_status_reads_as_pending(self, store):
        store.location.parent.mkdir(parents=True, exist_ok=True)
        store.location.write_text(json.dumps({PR_KEY: [{"id": "x", "file": "a.py", "message": "m"}]}))
        assert store.get_comments(PR_KEY)[0].status == "pending"

    def test_prs_are_isolated(self, store):
        store.save_comments(PR_KEY, [_comment()])
        assert store.get_comments("other|main") == []

    def test_records_without_id_get_stable_ids(self, store):
        store.location.parent.mkdir(parents=True, exist_ok=True)
        store.location.write_text(
            json.dumps({PR_KEY: [{"file": "a.py", "message": "first"}, {"file": "a.py", "message": "second"}]})
        )

        first_read = store.get_comments(PR_KEY)

        ids = [c.id for c in first_read]
        assert all(ids)
        assert len(set(ids)) == 2
        assert [c.id for c in store.get_comments(PR_KEY)] == ids


class TestIdLessRecords:
    def test_decision_lands_on_the_chosen_comment(self, store):
        store.location.parent.mkdir(parents=True, exist_ok=True)
        store.location.write_text(
            json.dumps({PR_KEY: [{"file": "a.py", "message": "first"}, {"file": "a.py", "message": "second"}]})
        )
        comments = store.save_comments(PR_KEY, [_comment(message="new")])

        store.update_comment(PR_KEY, comments[1].id, status="accepted")

        stored = store.get_comments(PR_KEY)
        assert all(c.id for c in stored)
        assert [(c.message, c.status) for c in stored] == [
            ("first", "pending"),
            ("second", "accepted"),
            ("new", "pending"),
        ]


class TestSaveComments:
    def test_assigns_ids_and_pending_status(self, store):
        saved = store.save_comments(PR_KEY, [_comment("a"), _comment("b")])
        assert all(c.id for c in saved)
        assert len({c.id for c in saved}) == 2
        assert all(c.status == "pending" for c in saved)

    def test_persists_to_disk(self, store, tmp_path):
        store.save_comments(PR_KEY, [_comment()])
        reopened = LocalCommentStore(tmp_path, "repo123")
        assert len(reopened.get_comments(PR_KEY)) == 1

    def test_merge_preserves_triage_work(self, store):
        first = store.save_comments(PR_KEY, [_comment("F")])
        store.update_comment(PR_KEY, first[0].id, status="accepted")

        merged = store.save_comments(PR_KEY, [_comment("F", severity="risk"), _comment("G")])

        by_message = {c.message: c for c in merged}
        assert by_message["F"].id == first[0].id
        assert by_message["F"].status == "accepted"
        assert by_message["F"].severity == "risk"
        assert by_message["G"].status == "pending"
        assert by_message["G"].id not in (None, first[0].id)

    def test_merge_is_idempotent(self, store):
        batch = [_comment("a"), _comment("b", line=7)]
        first = store.save_comments(PR_KEY, [_comment("a"), _comment("b", line=7)])
        second = store.save_comments(PR_KEY, batch)
        assert [(c.id, c.status) for c in first] == [(c.id, c.status) for c in second]
        assert len(store.get_comments(PR_KEY)) == 2

    def test_old_comments_absent_from_batch_are_kept(self, store):
        store.save_comments(PR_KEY, [_comment("old")])
        merged = store.save_comments(PR_KEY, [_comment("new")])
        assert [c.message for c in merged] == ["old", "new"]

    def test_duplicate_fingerprints_in_one_batch_collapse(self, store):
        merged = store.save_comments(PR_KEY, [_comment("dup"), _comment("dup")])
        assert len(merged) == 1

    def test_memory_created_survives_merge(self, store):
        first = store.save_comments(PR_KEY, [_comment()])
        store.update_comment(PR_KEY, first[0].id, memory_created=True)
        merged = store.save_comments(PR_KEY, [_comment()])
        assert merged[0].memory_created is True

    def test_new_comment_status_forced_to_pending(self, store):
        merged = store.save_comments(PR_KEY, [_comment(status="accepted")])
        assert merged[0].status == "pending"

    def test_snippet_reader_fills_missing_snippets(self, store):
        reader_calls = []

        def reader(comment):
            reader_calls.append(comment.file)
            return "x = None"

        merged = store.save_comments(PR_KEY, [_comment(), _comment("b", code_snippet="given")], snippet_reader=reader)
        assert merged[0].code_snippet == "x = None"
        assert merged[1].code_snippet == "given"
        assert reader_calls == ["src/auth.py"]


# ---------------------------------------------------------------------------
# update / replace / clear
# ---------------------------------------------------------------------------


class TestUpdateComment:
    def test_updates_status(self, store):
        saved = store.save_comments(PR_KEY, [_comment()])
        updated = store.update_comment(PR_KEY, saved[0].id, status="rejected")
        assert updated.status == "rejected"
        assert store.get_comments(PR_KEY)[0].status == "rejected"

    def test_unknown_id_raises_not_found(self, store):
        store.save_comments(PR_KEY, [_comment()])
        with pytest.raises(CommentNotFoundError) as exc_info:
            store.update_comment(PR_KEY, "missing", status="accepted")
        assert exc_info.value.comment_id == "missing"
        assert isinstance(exc_info.value, KeyError)

    @pytest.mark.parametrize("comment_id", [None, ""])
    def test_empty_id_raises_not_found(self, store, comment_id):
        store.save_comments(PR_KEY, [_comment()])
        with pytest.raises(CommentNotFoundError):
            store.update_comment(PR_KEY, comment_id, status="accepted")
        assert store.get_comments(PR_KEY)[0].status == "pending"

    def test_unknown_field_raises(self, store):
        saved = store.save_comments(PR_KEY, [_comment()])
        with pytest.raises(AttributeError):
            store.update_comment(PR_KEY, saved[0].id, colour="red")


class TestReplaceAndClear:
    def test_replace_overwrites_without_merge(self, store):
        store.save_comments(PR_KEY, [_comment("a")])
        store.replace_comments(PR_KEY, [_comment("b", id="fixed-id")])
        assert [c.message for c in store.get_comments(PR_KEY)] == ["b"]

    def test_clear_removes_only_that_pr(self, store):
        store.save_comments(PR_KEY, [_comment()])
        store.save_comments("other|main", [_comment()])
        store.clear_comments(PR_KEY)
        assert store.get_comments(PR_KEY) == []
        assert store.pr_keys() == ["other|main"]

    def test_no_temp_files_left_behind(self, store):
        store.save_comments(PR_KEY, [_comment()])
        leftovers = [p for p in store.location.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []


class TestReviewCommentModel:
    def test_from_dict_accepts_camel_case(self):
        c = ReviewComment.from_dict(
            {"file": "a.py", "message": "m", "startLine": 3, "endLine": 5, "memoryCreated": True, "codeSnippet": "x"}
        )
        assert (c.start_line, c.end_line, c.memory_created, c.code_snippet) == (3, 5, True, "x")
        assert c.location() == "a.py:3-5"

    def test_from_dict_normalizes_unknown_values(self):
        c = ReviewComment.from_dict({"file": "a.py", "message": "m", "severity": "huge", "status": "sent"})
        assert c.severity == "suggestion"
        assert c.status == "pending"
