"""Tests for row normalisation and the realtime homework synchroniser."""

from datetime import datetime, timedelta, timezone
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from planner.errors import NotAuthenticated
from planner.models.homework import HomeworkCompletion
from planner.services import homework_service
from planner.services.homework_sync import HomeworkSync, normalize_row
from planner.services.realtime import feed

from conftest import make_class, make_member

DUE = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestNormalizeRow:
    def test_relations_renamed(self):
        row = normalize_row({
            "id": "h1",
            "title": "Essay",
            "homework_attachments": [{
                "id": "a1", "homework_id": "h1", "storage_path": "h1/x.pdf",
                "filename": "x.pdf", "mime_type": "application/pdf",
            }],
            "homework_completion": [{"id": "c1", "homework_id": "h1", "user_id": "u1", "done": True}],
            "creator": {"display_name": "Ana", "avatar_url": None},
        })
        assert [a.id for a in row.attachments] == ["a1"]
        assert row.completion[0].done is True
        assert row.creator.display_name == "Ana"
        assert "homework_attachments" not in row.model_dump()

    def test_missing_relations_default_to_empty(self):
        row = normalize_row({"id": "h1"})
        assert row.attachments == []
        assert row.completion == []
        assert row.creator is None

    def test_non_mapping_creator_becomes_none(self):
        assert normalize_row({"id": "h1", "creator": ["not", "a", "dict"]}).creator is None

    def test_extra_fields_preserved(self):
        row = normalize_row({"id": "h1", "priority": "high"})
        assert row.model_dump()["priority"] == "high"

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError):
            normalize_row({"title": "no id"})

    def test_is_done_for(self):
        row = normalize_row({
            "id": "h1",
            "homework_completion": [{"id": "c1", "homework_id": "h1", "user_id": "u1", "done": True}],
        })
        assert row.is_done_for("u1")
        assert not row.is_done_for("u2")
        assert not row.is_done_for(None)


@pytest.fixture
def classroom(db):
    cls = make_class(db, "3HT1")
    other = make_class(db, "4HT2")
    member = make_member(db, cls.id)
    return cls, other, member


@pytest.fixture
def sync(session_factory, classroom):
    cls, _, _ = classroom
    s = HomeworkSync(session_factory, feed, cls.id)
    reasons = []
    s.add_listener(lambda reason, state: reasons.append(reason))
    s.reasons = reasons
    s.start()
    yield s
    s.stop()


class TestHomeworkSync:
    def test_initial_load_sorted_by_due_date(self, db, session_factory, classroom):
        cls, _, member = classroom
        homework_service.create_homework(db, cls.id, member.id, "Later", DUE + timedelta(days=2))
        homework_service.create_homework(db, cls.id, member.id, "Sooner", DUE)

        s = HomeworkSync(session_factory, feed, cls.id).start()
        try:
            assert [h.title for h in s.homework] == ["Sooner", "Later"]
            assert s.loading is False
            assert s.error is None
            assert s.homework[0].creator.display_name == "Student"
        finally:
            s.stop()

    def test_insert_merged_without_refetch(self, db, sync, classroom):
        cls, _, member = classroom
        sync.reasons.clear()
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)

        assert [h.id for h in sync.homework] == [hw.id]
        assert "refetch" not in sync.reasons

    def test_duplicate_insert_is_ignored(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)
        feed.emit("homework", "INSERT", new={"id": hw.id, "class_id": cls.id, "title": "Maths"}, class_id=cls.id)
        assert [h.id for h in sync.homework] == [hw.id]

    def test_update_keeps_relations(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)
        homework_service.set_completion(db, hw.id, cls.id, member.id, True)
        assert len(sync.find(hw.id).completion) == 1

        homework_service.update_homework(db, hw.id, cls.id, member.id, title="Maths p. 12")
        item = sync.find(hw.id)
        assert item.title == "Maths p. 12"
        assert len(item.completion) == 1
        assert item.creator.display_name == "Student"

    def test_delete_removes_item(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)
        homework_service.delete_homework(db, hw.id, cls.id, member.id)
        assert sync.homework == []

    def test_other_class_events_do_not_reach_sync(self, db, sync, classroom):
        _, other, _ = classroom
        outsider = make_member(db, other.id, email="other@example.com")
        sync.reasons.clear()

        hw = homework_service.create_homework(db, other.id, outsider.id, "Elsewhere", DUE)
        homework_service.set_completion(db, hw.id, other.id, outsider.id, True)

        assert sync.homework == []
        assert sync.reasons == []

    def test_relation_event_for_known_parent_merges_incrementally(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)
        sync.reasons.clear()

        attachment = {
            "id": "att-1", "homework_id": hw.id, "storage_path": f"{hw.id}/1-x.png",
            "filename": "x.png", "mime_type": "image/png",
        }
        feed.emit("homework_attachments", "INSERT", new=attachment, class_id=cls.id)
        assert [a.id for a in sync.find(hw.id).attachments] == ["att-1"]

        feed.emit("homework_attachments", "INSERT", new=attachment, class_id=cls.id)
        assert len(sync.find(hw.id).attachments) == 1

        feed.emit("homework_attachments", "DELETE", old=attachment, class_id=cls.id)
        assert sync.find(hw.id).attachments == []
        assert sync.reasons == ["attachments", "attachments", "attachments"]

    def test_relation_event_for_unknown_parent_refetches(self, sync, classroom):
        cls, _, _ = classroom
        sync.reasons.clear()
        feed.emit(
            "homework_completion", "INSERT",
            new={"id": "c-1", "homework_id": "missing", "user_id": "u", "done": True},
            class_id=cls.id,
        )
        assert sync.reasons == ["refetch"]

    def test_toggle_completion_upserts_one_row(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)

        sync.toggle_completion(hw.id, member.id, True)
        sync.toggle_completion(hw.id, member.id, False)
        sync.toggle_completion(hw.id, member.id, True)

        rows = db.query(HomeworkCompletion).filter(HomeworkCompletion.homework_id == hw.id).all()
        assert len(rows) == 1
        assert rows[0].done is True
        item = sync.find(hw.id)
        assert len(item.completion) == 1
        assert item.is_done_for(member.id)

    def test_toggle_completion_requires_user(self, db, sync, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Maths", DUE)
        with pytest.raises(NotAuthenticated):
            sync.toggle_completion(hw.id, None, True)
        assert isinstance(sync.error, NotAuthenticated)

    def test_stop_unsubscribes_all_channels(self, session_factory, classroom):
        cls, _, _ = classroom
        before = feed.channel_count
        s = HomeworkSync(session_factory, feed, cls.id).start()
        assert feed.channel_count == before + 3
        s.stop()
        assert feed.channel_count == before
        s.stop()  # second stop is a no-op

    def test_read_errors_are_captured(self, classroom):
        cls, _, _ = classroom

        def broken_factory():
            raise RuntimeError("database unavailable")

        s = HomeworkSync(broken_factory, feed, cls.id).start()
        try:
            assert s.loading is False
            assert str(s.error) == "database unavailable"
            assert s.homework == []
        finally:
            s.stop()

    def test_snapshot_is_json_ready(self, db, sync, classroom):
        cls, _, member = classroom
        homework_service.create_homework(db, cls.id, member.id, "Maths", DUE, subject="Math")
        snapshot = sync.snapshot()
        assert snapshot[0]["title"] == "Maths"
        assert isinstance(snapshot[0]["due_date"], str)

    def test_relation_merge_keeps_update_delivered_during_lookup(self, db, session_factory, classroom):
        cls, _, member = classroom
        hw = homework_service.create_homework(db, cls.id, member.id, "Old", DUE)

        class InterleavedSync(HomeworkSync):
            interleave = False

            def find(self, homework_id):
                parent = super().find(homework_id)
                if self.interleave:
                    self.interleave = False
                    homework_service.update_homework(db, hw.id, cls.id, member.id, title="New")
                return parent

        s = InterleavedSync(session_factory, feed, cls.id).start()
        try:
            s.interleave = True
            feed.emit(
                "homework_attachments", "INSERT",
                new={
                    "id": "att-1", "homework_id": hw.id, "storage_path": f"{hw.id}/1-x.png",
                    "filename": "x.png", "mime_type": "image/png",
                },
                class_id=cls.id,
            )
            item = s.find(hw.id)
            assert item.title == "New"
            assert [a.id for a in item.attachments] == ["att-1"]
        finally:
            s.stop()
