"""Attachment service — homework files in object storage plus their rows."""

import logging
import secrets
import string
import time

from sqlalchemy.orm import Session

from planner.config import settings
from planner.errors import NotFound
from planner.models.homework import Homework, HomeworkAttachment
from planner.services.realtime import feed
from planner.services.storage import storage
from planner.utils import row_to_dict

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "application/pdf")
INVALID_TYPE = "Invalid file type. Only images (JPEG, PNG, WebP) and PDFs are allowed."
TOO_LARGE = "File size too large. Maximum size is 10MB."

_ALPHABET = string.ascii_lowercase + string.digits


def build_storage_path(homework_id: str, filename: str) -> str:
    """``{homework_id}/{epoch_ms}-{random}.{ext}``; ext is everything after the last dot."""
    ext = filename.rsplit(".", 1)[-1] if filename else ""
    token = "".join(secrets.choice(_ALPHABET) for _ in range(11))
    return f"{homework_id}/{int(time.time() * 1000)}-{token}.{ext}"


def validate_upload(mime_type: str | None, size: int) -> None:
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValueError(INVALID_TYPE)
    if size > settings.MAX_ATTACHMENT_SIZE:
        raise ValueError(TOO_LARGE)


def _get_attachment(db: Session, attachment_id: str, class_id: str) -> HomeworkAttachment:
    attachment = (
        db.query(HomeworkAttachment)
        .join(Homework, Homework.id == HomeworkAttachment.homework_id)
        .filter(HomeworkAttachment.id == attachment_id, Homework.class_id == class_id)
        .first()
    )
    if not attachment:
        raise NotFound("Attachment not found")
    return attachment


def upload_attachment(
    db: Session,
    homework_id: str,
    class_id: str,
    user_id: str,
    filename: str,
    mime_type: str | None,
    data: bytes,
) -> HomeworkAttachment:
    hw = db.query(Homework).filter(Homework.id == homework_id).first()
    if not hw or hw.class_id != class_id:
        raise NotFound("Homework not found")

    validate_upload(mime_type, len(data))

    path = build_storage_path(homework_id, filename)
    storage.upload(path, data, upsert=False)

    attachment = HomeworkAttachment(
        homework_id=homework_id,
        storage_path=path,
        filename=filename,
        mime_type=mime_type,
        uploaded_by=user_id,
    )
    db.add(attachment)
    try:
        db.commit()
    except Exception:
        db.rollback()
        storage.remove([path])
        raise
    db.refresh(attachment)

    feed.emit("homework_attachments", "INSERT", new=row_to_dict(attachment), class_id=class_id)
    return attachment


def delete_attachment(db: Session, attachment_id: str, class_id: str) -> None:
    """Remove the stored object, then the row."""
    attachment = _get_attachment(db, attachment_id, class_id)
    old = row_to_dict(attachment)

    storage.remove([attachment.storage_path])
    db.delete(attachment)
    db.commit()

    feed.emit("homework_attachments", "DELETE", old=old, class_id=class_id)


def get_attachment_url(db: Session, attachment_id: str, class_id: str) -> str:
    attachment = _get_attachment(db, attachment_id, class_id)
    return storage.create_signed_url(attachment.storage_path, settings.SIGNED_URL_EXPIRE_SECONDS)
