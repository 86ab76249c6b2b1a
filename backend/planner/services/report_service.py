"""Content reports — flag homework items for review."""

from typing import Optional

from sqlalchemy.orm import Session

from planner.errors import NotFound
from planner.models.content_report import ContentReport
from planner.models.homework import Homework
from planner.services import audit

REPORT_REASONS = [
    "Inappropriate content",
    "Spam or misleading",
    "Harassment or bullying",
    "Violence or threats",
    "Hate speech",
    "Other",
]


def submit_report(
    db: Session,
    homework_id: str,
    class_id: str,
    reporter_id: str,
    reason: str,
    description: Optional[str] = None,
) -> ContentReport:
    if not reason or reason not in REPORT_REASONS:
        raise ValueError("Please select a reason")

    hw = db.query(Homework).filter(Homework.id == homework_id).first()
    if not hw or hw.class_id != class_id:
        raise NotFound("Homework not found")

    report = ContentReport(
        homework_id=homework_id,
        reported_by=reporter_id,
        reason=reason,
        description=description or None,
        status="pending",
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    audit.log_audit_event(db, "report_create", reporter_id, "homework", homework_id, {"reason": reason})
    return report
