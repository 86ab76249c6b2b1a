"""Announcements router — class notice board."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth import require_profile
from planner.models.announcement import Announcement
from planner.models.user import Profile
from planner.schemas.announcement import (
    AnnouncementCreate,
    AnnouncementListResponse,
    AnnouncementResponse,
)
from planner.services import announcement_service
from planner.utils import iso

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


def _announcement_to_response(a: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse(
        id=a.id,
        class_id=a.class_id,
        title=a.title,
        content=a.content,
        priority=a.priority,
        pinned=a.pinned,
        created_by=a.created_by,
        creator_name=a.creator.display_name if a.creator else None,
        created_at=iso(a.created_at) or "",
        updated_at=iso(a.updated_at),
    )


@router.get("", response_model=AnnouncementListResponse)
def list_announcements(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    """Pinned announcements first, then newest."""
    items = announcement_service.list_announcements(db, profile.class_id)
    return AnnouncementListResponse(announcements=[_announcement_to_response(a) for a in items])


@router.post("", response_model=AnnouncementResponse, status_code=201)
def create_announcement(
    req: AnnouncementCreate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    try:
        announcement = announcement_service.create_announcement(
            db, profile.class_id, profile.id, req.title, req.content, req.priority, req.pinned,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _announcement_to_response(announcement)


@router.post("/{announcement_id}/pin", response_model=AnnouncementResponse)
def toggle_pin(announcement_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    return _announcement_to_response(announcement_service.toggle_pin(db, announcement_id, profile.class_id))


@router.delete("/{announcement_id}", status_code=204)
def delete_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    announcement_service.delete_announcement(db, announcement_id, profile.class_id, profile.id)
