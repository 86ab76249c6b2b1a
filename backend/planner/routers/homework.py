"""Homework router — list, CRUD, completion, reminders and calendar views."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.middleware.auth import require_profile
from planner.models.user import Profile
from planner.schemas.homework import (
    CalendarDay,
    CalendarMonthResponse,
    CompletionRequest,
    DigestResponse,
    FilterOptions,
    HomeworkCreate,
    HomeworkListResponse,
    HomeworkUpdate,
    HomeworkWithRelations,
    ReminderItem,
    RemindersResponse,
    TodayResponse,
)
from planner.services import calendar, homework_service, reminders
from planner.services.homework_sync import normalize_row

router = APIRouter(prefix="/api/homework", tags=["homework"])


def _class_homework(db: Session, class_id: str) -> list[HomeworkWithRelations]:
    return [normalize_row(r) for r in homework_service.fetch_homework_rows(db, class_id)]


def _item(db: Session, homework_id: str, class_id: str) -> HomeworkWithRelations:
    hw = homework_service.get_homework(db, homework_id, class_id)
    return normalize_row(homework_service.raw_homework_row(hw))


@router.get("", response_model=HomeworkListResponse)
def list_homework(
    search: str = Query(""),
    subject: str = Query(""),
    status: Literal["all", "pending", "completed"] = Query("all"),
    sort_by: Literal["due_date", "created_at", "subject", "title"] = Query("due_date"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    """Homework of the caller's class with optional search, filters and sorting."""
    filters = FilterOptions(
        search_query=search, subject=subject, status=status, sort_by=sort_by, sort_order=sort_order,
    )
    items = homework_service.filter_homework(_class_homework(db, profile.class_id), filters, profile.id)
    return HomeworkListResponse(homework=items, total=len(items))


@router.post("", response_model=HomeworkWithRelations, status_code=201)
def create_homework(
    req: HomeworkCreate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    try:
        hw = homework_service.create_homework(
            db, profile.class_id, profile.id, req.title, req.due_date, req.description, req.subject,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _item(db, hw.id, profile.class_id)


@router.get("/subjects", response_model=list[str])
def list_subjects(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    return homework_service.get_subjects(_class_homework(db, profile.class_id))


@router.get("/reminders", response_model=RemindersResponse)
def list_reminders(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    """Unfinished homework due before the end of tomorrow."""
    now = datetime.now(timezone.utc)
    due = reminders.due_soon(_class_homework(db, profile.class_id), profile.id, now)
    items = [
        ReminderItem(
            homework=hw,
            time_remaining=reminders.time_remaining(hw.due_date, now),
            urgency=reminders.urgency(hw.due_date, now),
        )
        for hw in due
    ]
    return RemindersResponse(count=len(items), reminders=items)


@router.get("/digest", response_model=DigestResponse)
def daily_digest(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    return DigestResponse(**reminders.daily_digest(_class_homework(db, profile.class_id), profile.id))


@router.get("/today", response_model=TodayResponse)
def today(db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    day = datetime.now(timezone.utc).date()
    due_today, overdue = calendar.today_view(_class_homework(db, profile.class_id), day)
    return TodayResponse(date=day.isoformat(), due_today=due_today, overdue=overdue)


@router.get("/calendar/{year}/{month}", response_model=CalendarMonthResponse)
def month_calendar(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    """Sunday-first month grid with the homework due on each day."""
    try:
        grid = calendar.month_grid(year, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    items = _class_homework(db, profile.class_id)
    today_date = datetime.now(timezone.utc).date()
    weeks = []
    for week in grid:
        row = []
        for day, in_month in week:
            due = calendar.homework_for_date(items, day)
            row.append(CalendarDay(
                date=day.isoformat(),
                in_month=in_month,
                is_today=day == today_date,
                homework_count=len(due),
                homework_ids=[hw.id for hw in due],
            ))
        weeks.append(row)
    return CalendarMonthResponse(title=calendar.month_title(year, month), year=year, month=month, weeks=weeks)


@router.get("/{homework_id}", response_model=HomeworkWithRelations)
def get_homework(homework_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    return _item(db, homework_id, profile.class_id)


@router.patch("/{homework_id}", response_model=HomeworkWithRelations)
def update_homework(
    homework_id: str,
    req: HomeworkUpdate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    try:
        homework_service.update_homework(
            db, homework_id, profile.class_id, profile.id, **req.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _item(db, homework_id, profile.class_id)


@router.delete("/{homework_id}", status_code=204)
def delete_homework(homework_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    homework_service.delete_homework(db, homework_id, profile.class_id, profile.id)


@router.put("/{homework_id}/completion", response_model=HomeworkWithRelations)
def set_completion(
    homework_id: str,
    req: CompletionRequest,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    """Mark homework done or not done for the caller."""
    homework_service.set_completion(db, homework_id, profile.class_id, profile.id, req.done)
    return _item(db, homework_id, profile.class_id)
