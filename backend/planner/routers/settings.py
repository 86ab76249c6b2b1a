"""Settings router — profile, data export, account deletion and activity."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth import get_current_user, require_profile
from planner.models.user import Profile, User
from planner.schemas.settings import ActivityItem, ActivityResponse, ProfileResponse, ProfileUpdate
from planner.services import account_service, audit
from planner.services.calendar import relative_time
from planner.utils import iso

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _profile_to_response(user: User, profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        email=user.email,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        class_id=profile.class_id,
        class_code=profile.class_.code if profile.class_ else None,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user), profile: Profile = Depends(require_profile)):
    return _profile_to_response(current_user, profile)


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    req: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    profile: Profile = Depends(require_profile),
):
    try:
        profile = account_service.update_display_name(db, profile, req.display_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _profile_to_response(current_user, profile)


@router.get("/export")
def export_data(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Download everything stored about the caller as JSON."""
    return account_service.export_data(db, current_user)


@router.delete("/account", status_code=204)
def delete_account(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    account_service.delete_account(db, current_user)


@router.get("/activity", response_model=ActivityResponse)
def activity(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    entries = audit.recent_activity(db, current_user.id)
    return ActivityResponse(activity=[
        ActivityItem(
            id=e.id,
            action=e.action,
            category=audit.action_category(e.action),
            resource_type=e.resource_type,
            resource_id=e.resource_id,
            created_at=iso(e.created_at) or "",
            relative_time=relative_time(e.created_at),
        )
        for e in entries
    ])
