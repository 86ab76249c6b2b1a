"""Homework service — queries, mutations and list filtering for a class."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from planner.errors import NotFound
from planner.models.homework import Homework, HomeworkAttachment, HomeworkCompletion
from planner.schemas.homework import FilterOptions, HomeworkWithRelations
from planner.services import audit, notification_service
from planner.services.moderation import moderate_post
from planner.services.realtime import feed
from planner.services.storage import storage
from planner.utils import as_utc, row_to_dict

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}


# ── Reads ─────────────────────────────────────────────────────────────────────

def raw_homework_row(hw: Homework) -> dict:
    """A homework row joined with its relations, using the table names as keys."""
    row = row_to_dict(hw)
    row["homework_attachments"] = [row_to_dict(a) for a in hw.attachments]
    row["homework_completion"] = [row_to_dict(c) for c in hw.completions]
    row["creator"] = (
        {"display_name": hw.creator.display_name, "avatar_url": hw.creator.avatar_url}
        if hw.creator
        else None
    )
    return row


def fetch_homework_rows(db: Session, class_id: str) -> list[dict]:
    """Every homework row of a class with attachments, completions and creator, due date ascending."""
    rows = (
        db.query(Homework)
        .options(
            selectinload(Homework.attachments),
            selectinload(Homework.completions),
            selectinload(Homework.creator),
        )
        .filter(Homework.class_id == class_id)
        .order_by(Homework.due_date.asc())
        .all()
    )
    return [raw_homework_row(hw) for hw in rows]


def get_homework(db: Session, homework_id: str, class_id: str) -> Homework:
    hw = db.query(Homework).filter(Homework.id == homework_id).first()
    if not hw or hw.class_id != class_id:
        raise NotFound("Homework not found")
    return hw


def get_subjects(items: list[HomeworkWithRelations]) -> list[str]:
    return sorted({hw.subject for hw in items if hw.subject})


# ── Mutations ─────────────────────────────────────────────────────────────────

def _check_content(title: str | None, description: str | None) -> None:
    result = moderate_post(title or "", description)
    if not result["safe"]:
        raise ValueError(result["reason"])


def create_homework(
    db: Session,
    class_id: str,
    user_id: str,
    title: str,
    due_date: datetime,
    description: Optional[str] = None,
    subject: Optional[str] = None,
) -> Homework:
    _check_content(title, description)

    hw = Homework(
        class_id=class_id,
        title=title.strip(),
        description=description,
        subject=(subject or "").strip() or None,
        due_date=as_utc(due_date),
        created_by=user_id,
    )
    db.add(hw)
    db.commit()
    db.refresh(hw)

    feed.emit("homework", "INSERT", new=row_to_dict(hw), class_id=class_id)
    notification_service.notify_class(
        db, class_id, "homework_added", f"New homework: {hw.title}",
        message=f"Due {as_utc(hw.due_date).strftime('%Y-%m-%d %H:%M')} UTC", homework_id=hw.id,
    )
    audit.log_audit_event(db, "homework_create", user_id, "homework", hw.id, {"title": hw.title})
    return hw


def update_homework(db: Session, homework_id: str, class_id: str, user_id: str, **fields) -> Homework:
    hw = get_homework(db, homework_id, class_id)
    old = row_to_dict(hw)

    if "title" in fields and not (fields["title"] or "").strip():
        raise ValueError("Title is required")
    title = fields.get("title", hw.title)
    description = fields.get("description", hw.description)
    _check_content(title, description)

    if "title" in fields:
        hw.title = fields["title"].strip()
    # Optional columns: an explicit None clears them.
    if "description" in fields:
        hw.description = fields["description"]
    if "subject" in fields:
        hw.subject = (fields["subject"] or "").strip() or None
    if fields.get("due_date") is not None:
        hw.due_date = as_utc(fields["due_date"])
    hw.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(hw)

    feed.emit("homework", "UPDATE", new=row_to_dict(hw), old=old, class_id=class_id)
    notification_service.notify_class(
        db, class_id, "homework_updated", f"Homework updated: {hw.title}", homework_id=hw.id,
    )
    audit.log_audit_event(db, "homework_update", user_id, "homework", hw.id)
    return hw


def delete_homework(db: Session, homework_id: str, class_id: str, user_id: str) -> None:
    hw = get_homework(db, homework_id, class_id)
    old = row_to_dict(hw)
    paths = [a.storage_path for a in hw.attachments]

    db.delete(hw)
    db.commit()

    if paths:
        try:
            storage.remove(paths)
        except Exception as e:
            logger.error("Failed to remove attachments of homework %s: %s", homework_id, e)

    feed.emit("homework", "DELETE", old=old, class_id=class_id)
    audit.log_audit_event(db, "homework_delete", user_id, "homework", homework_id)


def _upsert_completion(db: Session, homework_id: str, user_id: str, done: bool) -> None:
    now = datetime.now(timezone.utc)
    insert = UPSERT_DIALECTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(HomeworkCompletion).values(
            id=str(uuid.uuid4()), homework_id=homework_id, user_id=user_id, done=done, updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["homework_id", "user_id"],
            set_={"done": stmt.excluded.done, "updated_at": stmt.excluded.updated_at},
        )
        db.execute(stmt)
        return

    # Other dialects: rely on the unique constraint and fall back to an update.
    try:
        with db.begin_nested():
            db.add(HomeworkCompletion(homework_id=homework_id, user_id=user_id, done=done, updated_at=now))
    except IntegrityError:
        db.query(HomeworkCompletion).filter(
            HomeworkCompletion.homework_id == homework_id,
            HomeworkCompletion.user_id == user_id,
        ).update({HomeworkCompletion.done: done, HomeworkCompletion.updated_at: now})


def set_completion(db: Session, homework_id: str, class_id: str, user_id: str, done: bool) -> HomeworkCompletion:
    """Set ``user_id``'s done flag for a homework item; at most one row per pair."""
    get_homework(db, homework_id, class_id)

    existed = (
        db.query(HomeworkCompletion.id)
        .filter(HomeworkCompletion.homework_id == homework_id, HomeworkCompletion.user_id == user_id)
        .first()
        is not None
    )
    _upsert_completion(db, homework_id, user_id, done)
    db.commit()

    completion = (
        db.query(HomeworkCompletion)
        .filter(HomeworkCompletion.homework_id == homework_id, HomeworkCompletion.user_id == user_id)
        .one()
    )
    feed.emit(
        "homework_completion",
        "UPDATE" if existed else "INSERT",
        new=row_to_dict(completion),
        class_id=class_id,
    )
    return completion


# ── Filtering ─────────────────────────────────────────────────────────────────

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _sort_key(sort_by: str):
    if sort_by == "created_at":
        return lambda hw: as_utc(hw.created_at) or _EPOCH
    if sort_by == "subject":
        return lambda hw: (hw.subject or "").casefold()
    if sort_by == "title":
        return lambda hw: (hw.title or "").casefold()
    return lambda hw: as_utc(hw.due_date) or _EPOCH


def filter_homework(
    items: list[HomeworkWithRelations],
    filters: FilterOptions,
    user_id: Optional[str],
) -> list[HomeworkWithRelations]:
    """Search, filter by subject and status, then sort."""
    result = list(items)

    if filters.search_query:
        query = filters.search_query.lower()
        result = [
            hw for hw in result
            if query in (hw.title or "").lower()
            or query in (hw.description or "").lower()
            or query in (hw.subject or "").lower()
        ]

    if filters.subject:
        result = [hw for hw in result if hw.subject == filters.subject]

    if filters.status == "completed":
        result = [hw for hw in result if hw.is_done_for(user_id)]
    elif filters.status == "pending":
        result = [hw for hw in result if not hw.is_done_for(user_id)]

    result.sort(key=_sort_key(filters.sort_by), reverse=filters.sort_order == "desc")
    return result
