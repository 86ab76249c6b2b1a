"""Service-level tests: homework filtering, attachments, announcements, notifications, reports, accounts."""

from datetime import datetime, timedelta, timezone
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from planner.errors import NotFound, StorageError
from planner.models.audit_log import AuditLog
from planner.models.homework import HomeworkAttachment
from planner.models.user import Profile, User
from planner.schemas.homework import FilterOptions, HomeworkWithRelations
from planner.services import (
    account_service,
    announcement_service,
    attachment_service,
    audit,
    homework_service,
    notification_service,
    report_service,
)
from planner.services.moderation import filter_content, moderate_post
from planner.services.realtime import ChangeFeed, parse_filter
from planner.services.storage import LocalStorage, storage

from conftest import make_class, make_member

DUE = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def member(db):
    cls = make_class(db, "3HT1")
    return make_member(db, cls.id)


def item(id, title, subject=None, description=None, due=DUE, created=DUE, done_for=None):
    completion = [{"id": f"c-{id}", "homework_id": id, "user_id": done_for, "done": True}] if done_for else []
    return HomeworkWithRelations(
        id=id, title=title, subject=subject, description=description,
        due_date=due, created_at=created, completion=completion,
    )


class TestFilterHomework:
    ITEMS = [
        item("1", "Essay draft", subject="English", due=DUE + timedelta(days=2)),
        item("2", "Worksheet", subject="Math", description="Fractions page 4", due=DUE, done_for="u1"),
        item("3", "Lab report", subject="Biology", due=DUE + timedelta(days=1)),
    ]

    def test_search_matches_title_description_and_subject(self):
        f = homework_service.filter_homework
        assert [h.id for h in f(self.ITEMS, FilterOptions(search_query="ESSAY"), "u1")] == ["1"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(search_query="fractions"), "u1")] == ["2"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(search_query="bio"), "u1")] == ["3"]

    def test_subject_and_status(self):
        f = homework_service.filter_homework
        assert [h.id for h in f(self.ITEMS, FilterOptions(subject="Math"), "u1")] == ["2"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(status="completed"), "u1")] == ["2"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(status="pending"), "u1")] == ["3", "1"]
        # Another user's completion does not count
        assert f(self.ITEMS, FilterOptions(status="completed"), "u2") == []

    def test_sorting(self):
        f = homework_service.filter_homework
        assert [h.id for h in f(self.ITEMS, FilterOptions(), None)] == ["2", "3", "1"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(sort_order="desc"), None)] == ["1", "3", "2"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(sort_by="title"), None)] == ["1", "3", "2"]
        assert [h.id for h in f(self.ITEMS, FilterOptions(sort_by="subject"), None)] == ["3", "1", "2"]

    def test_subjects(self):
        assert homework_service.get_subjects(self.ITEMS) == ["Biology", "English", "Math"]


class TestHomeworkService:
    def test_create_notifies_and_audits(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE, subject=" English ")
        assert hw.subject == "English"

        notifications = notification_service.list_notifications(db, member.id, member.class_id)
        assert [n.type for n in notifications] == ["homework_added"]
        assert notifications[0].homework_id == hw.id
        assert db.query(AuditLog).filter(AuditLog.action == "homework_create").count() == 1

    def test_blocked_words_rejected(self, db, member):
        with pytest.raises(ValueError):
            homework_service.create_homework(db, member.class_id, member.id, "badword1 homework", DUE)

    def test_other_class_cannot_touch_homework(self, db, member):
        other = make_class(db, "4HT2")
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        with pytest.raises(NotFound):
            homework_service.update_homework(db, hw.id, other.id, member.id, title="Hijack")
        with pytest.raises(NotFound):
            homework_service.set_completion(db, hw.id, other.id, member.id, True)

    def test_update_with_none_clears_optional_fields(self, db, member):
        hw = homework_service.create_homework(
            db, member.class_id, member.id, "Essay", DUE, description="Two pages", subject="English",
        )
        updated = homework_service.update_homework(
            db, hw.id, member.class_id, member.id, description=None, subject=None,
        )
        assert updated.description is None
        assert updated.subject is None
        assert updated.title == "Essay"
        assert updated.due_date is not None

    def test_update_omitted_fields_are_kept(self, db, member):
        hw = homework_service.create_homework(
            db, member.class_id, member.id, "Essay", DUE, description="Two pages", subject="English",
        )
        updated = homework_service.update_homework(db, hw.id, member.class_id, member.id, title="Essay v2")
        assert updated.description == "Two pages"
        assert updated.subject == "English"

    def test_update_rejects_empty_title(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        with pytest.raises(ValueError):
            homework_service.update_homework(db, hw.id, member.class_id, member.id, title=None)

    def test_fetch_rows_use_table_keys(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        homework_service.set_completion(db, hw.id, member.class_id, member.id, True)
        rows = homework_service.fetch_homework_rows(db, member.class_id)
        assert rows[0]["homework_completion"][0]["done"] is True
        assert rows[0]["homework_attachments"] == []
        assert rows[0]["creator"] == {"display_name": "Student", "avatar_url": None}


class TestAttachments:
    def test_upload_and_signed_url(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        att = attachment_service.upload_attachment(db, hw.id, member.class_id, member.id, "scan.png", "image/png", PNG)

        prefix, name = att.storage_path.split("/")
        assert prefix == hw.id
        assert name.endswith(".png")
        assert storage.download(att.storage_path) == PNG

        url = attachment_service.get_attachment_url(db, att.id, member.class_id)
        token = url.split("token=")[1]
        assert storage.verify_signed_token(att.storage_path, token)
        assert not storage.verify_signed_token("other/path.png", token)

    def test_rejects_type_and_size(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        with pytest.raises(ValueError, match="Invalid file type"):
            attachment_service.upload_attachment(db, hw.id, member.class_id, member.id, "a.exe", "application/x-msdownload", b"MZ")
        big = b"0" * (10 * 1024 * 1024 + 1)
        with pytest.raises(ValueError, match="File size too large"):
            attachment_service.upload_attachment(db, hw.id, member.class_id, member.id, "big.pdf", "application/pdf", big)

    def test_delete_removes_object_and_row(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        att = attachment_service.upload_attachment(db, hw.id, member.class_id, member.id, "doc.pdf", "application/pdf", b"%PDF-1.4")
        path = att.storage_path

        attachment_service.delete_attachment(db, att.id, member.class_id)
        assert not storage.exists(path)
        assert db.query(HomeworkAttachment).count() == 0

    def test_storage_refuses_traversal_and_overwrite(self, tmp_path):
        local = LocalStorage(str(tmp_path), "attachments")
        local.upload("h1/a.pdf", b"1")
        with pytest.raises(StorageError):
            local.upload("h1/a.pdf", b"2")
        with pytest.raises(StorageError):
            local.upload("../escape.pdf", b"x")


class TestAnnouncements:
    def test_pinned_first_then_newest(self, db, member):
        first = announcement_service.create_announcement(db, member.class_id, member.id, "First")
        second = announcement_service.create_announcement(db, member.class_id, member.id, "Second")
        announcement_service.toggle_pin(db, first.id, member.class_id)

        titles = [a.title for a in announcement_service.list_announcements(db, member.class_id)]
        assert titles == ["First", "Second"]

        announcement_service.toggle_pin(db, first.id, member.class_id)
        announcement_service.delete_announcement(db, second.id, member.class_id, member.id)
        assert [a.title for a in announcement_service.list_announcements(db, member.class_id)] == ["First"]

    def test_creates_notification(self, db, member):
        announcement_service.create_announcement(db, member.class_id, member.id, "Trip", "Bring lunch")
        notes = notification_service.list_notifications(db, member.id, member.class_id)
        assert notes[0].type == "announcement"

    def test_invalid_priority(self, db, member):
        with pytest.raises(ValueError):
            announcement_service.create_announcement(db, member.class_id, member.id, "Hi", priority="extreme")


class TestNotifications:
    def test_latest_ten_for_user_and_class(self, db, member):
        other = make_member(db, member.class_id, email="b@example.com")
        for i in range(12):
            notification_service.create_notification(db, member.class_id, "info", f"Class {i}")
        notification_service.create_notification(db, member.class_id, "info", "Private", user_id=other.id)

        mine = notification_service.list_notifications(db, member.id, member.class_id)
        assert len(mine) == 10
        assert all(n.title != "Private" for n in mine)

    def test_mark_read(self, db, member):
        n = notification_service.create_notification(db, member.class_id, "info", "Hello")
        notification_service.create_notification(db, member.class_id, "info", "Again")
        assert notification_service.mark_as_read(db, n.id, member.id, member.class_id).read
        assert notification_service.mark_all_as_read(db, member.id, member.class_id) == 1
        with pytest.raises(NotFound):
            notification_service.mark_as_read(db, "missing", member.id, member.class_id)

    def test_browser_payload(self):
        payload = notification_service.browser_notification({"id": "n1", "title": "T", "message": "M"})
        assert payload == {"title": "T", "body": "M", "tag": "n1", "icon": "/logo.png", "badge": "/badge.png"}


class TestReportsAndModeration:
    def test_reason_required(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        with pytest.raises(ValueError, match="Please select a reason"):
            report_service.submit_report(db, hw.id, member.class_id, member.id, "")
        report = report_service.submit_report(db, hw.id, member.class_id, member.id, "Spam or misleading")
        assert report.status == "pending"

    def test_filter_content_whole_words(self):
        assert filter_content("this is badword1!") == (False, "this is ***!")
        assert filter_content("notbadword1 here") == (True, "notbadword1 here")

    def test_moderate_post_checks_body(self):
        assert moderate_post("Fine title", "BADWORD2 inside")["safe"] is False
        assert moderate_post("Fine title", None)["safe"] is True


class TestAuditAndAccount:
    def test_audit_never_raises(self, db):
        assert audit.log_audit_event(db, "user_login", None) is None

    def test_action_category(self):
        assert audit.action_category("homework_create") == "create"
        assert audit.action_category("profile_update") == "update"
        assert audit.action_category("account_delete") == "delete"
        assert audit.action_category("user_login") == "auth"
        assert audit.action_category("session_revoked") == "auth"
        assert audit.action_category("report_sent") == "other"

    def test_export_and_delete(self, db, member):
        hw = homework_service.create_homework(db, member.class_id, member.id, "Essay", DUE)
        homework_service.set_completion(db, hw.id, member.class_id, member.id, True)
        user = db.query(User).filter(User.id == member.id).one()

        data = account_service.export_data(db, user)
        assert data["profile"]["display_name"] == "Student"
        assert [h["id"] for h in data["homework"]] == [hw.id]
        assert len(data["completions"]) == 1
        assert "exported_at" in data

        account_service.delete_account(db, user)
        db.expire_all()
        assert db.query(Profile).count() == 0
        assert db.query(User).count() == 0
        assert homework_service.fetch_homework_rows(db, member.class_id)[0]["created_by"] is None


class TestChangeFeed:
    def test_filters_and_event_types(self):
        local = ChangeFeed()
        seen = []
        channel = (
            local.channel("t")
            .on("homework", lambda ev: seen.append(("any", ev.event_type)), filter="class_id=eq.A")
            .on("homework", lambda ev: seen.append(("delete", ev.event_type)), event="DELETE")
            .subscribe()
        )
        local.emit("homework", "INSERT", new={"id": "1", "class_id": "A"})
        local.emit("homework", "INSERT", new={"id": "2", "class_id": "B"})
        local.emit("homework", "DELETE", old={"id": "1", "class_id": "A"})
        assert seen == [("any", "INSERT"), ("any", "DELETE"), ("delete", "DELETE")]

        channel.unsubscribe()
        with pytest.raises(ValueError):
            channel.unsubscribe()

    def test_failing_callback_does_not_stop_others(self):
        local = ChangeFeed()
        seen = []

        def boom(ev):
            raise RuntimeError("listener failure")

        local.channel("a").on("homework", boom).subscribe()
        local.channel("b").on("homework", lambda ev: seen.append(ev.row()["id"])).subscribe()
        local.emit("homework", "INSERT", new={"id": "1"})
        assert seen == ["1"]

    def test_parse_filter(self):
        assert parse_filter("class_id=eq.abc") == ("class_id", "abc")
        assert parse_filter(None) is None
        with pytest.raises(ValueError):
            parse_filter("class_id=gt.1")
