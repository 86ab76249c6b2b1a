"""Notifications and content-report routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth import require_profile
from planner.models.notification import Notification
from planner.models.user import Profile
from planner.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    ReportCreate,
    ReportResponse,
)
from planner.services import notification_service, report_service
from planner.services.calendar import relative_time
from planner.utils import iso

router = APIRouter(tags=["notifications"])


def _notification_to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        read=n.read,
        user_id=n.user_id,
        class_id=n.class_id,
        homework_id=n.homework_id,
        created_at=iso(n.created_at) or "",
        relative_time=relative_time(n.created_at),
    )


@router.get("/api/notifications", response_model=NotificationListResponse)
def list_notifications(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    """The latest notifications addressed to the caller or their class."""
    items = notification_service.list_notifications(db, profile.id, profile.class_id)
    return NotificationListResponse(
        notifications=[_notification_to_response(n) for n in items],
        unread_count=sum(1 for n in items if not n.read),
    )


@router.post("/api/notifications/read-all")
def mark_all_read(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    count = notification_service.mark_all_as_read(db, profile.id, profile.class_id)
    return {"updated": count}


@router.post("/api/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    n = notification_service.mark_as_read(db, notification_id, profile.id, profile.class_id)
    return _notification_to_response(n)


@router.get("/api/reports/reasons", response_model=list[str])
def report_reasons():
    return report_service.REPORT_REASONS


@router.post("/api/reports", response_model=ReportResponse, status_code=201)
def submit_report(req: ReportCreate, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    """Flag a homework item for review."""
    try:
        report = report_service.submit_report(
            db, req.homework_id, profile.class_id, profile.id, req.reason, req.description,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ReportResponse(
        id=report.id,
        homework_id=report.homework_id,
        reason=report.reason,
        description=report.description,
        status=report.status,
        created_at=iso(report.created_at) or "",
    )
