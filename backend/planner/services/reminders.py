"""Reminders — due-soon lists, the daily digest and urgency labels.

All calculations use UTC calendar days.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Optional

from planner.schemas.homework import HomeworkWithRelations
from planner.utils import as_utc


def _start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)


def due_soon(
    items: list[HomeworkWithRelations],
    user_id: Optional[str],
    now: Optional[datetime] = None,
) -> list[HomeworkWithRelations]:
    """Homework the user has not finished, due between now and the end of tomorrow."""
    if not user_id:
        return []
    now = as_utc(now) or datetime.now(timezone.utc)
    end_of_tomorrow = _start_of_day(now) + timedelta(days=2) - timedelta(microseconds=1)

    result = []
    for hw in items:
        due = as_utc(hw.due_date)
        if due is None or not (now <= due <= end_of_tomorrow):
            continue
        if not hw.is_done_for(user_id):
            result.append(hw)
    return result


def daily_digest(
    items: list[HomeworkWithRelations],
    user_id: Optional[str],
    now: Optional[datetime] = None,
) -> dict:
    now = as_utc(now) or datetime.now(timezone.utc)
    today = _start_of_day(now)
    tomorrow = today + timedelta(days=1)
    day_after = today + timedelta(days=2)

    stats = {"due_today": 0, "due_tomorrow": 0, "overdue": 0, "completed": 0}
    for hw in items:
        if hw.is_done_for(user_id):
            stats["completed"] += 1
            continue
        due = as_utc(hw.due_date)
        if due is None:
            continue
        if today <= due < tomorrow:
            stats["due_today"] += 1
        elif tomorrow <= due < day_after:
            stats["due_tomorrow"] += 1
        elif due < today:
            stats["overdue"] += 1
    return stats


def time_remaining(due: datetime, now: Optional[datetime] = None) -> str:
    """Human-readable time until ``due``: ``N minutes``, ``N hours`` or ``N day(s)``."""
    now = as_utc(now) or datetime.now(timezone.utc)
    diff_ms = (as_utc(due) - now).total_seconds() * 1000
    hours = int(diff_ms // 3_600_000)
    minutes = int((diff_ms % 3_600_000) // 60_000)

    if hours < 1:
        return f"{minutes} minutes"
    if hours < 24:
        return f"{hours} hours"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''}"


def urgency(due: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now) or datetime.now(timezone.utc)
    hours = (as_utc(due) - now).total_seconds() / 3600
    if hours < 6:
        return "critical"
    if hours < 12:
        return "high"
    return "medium"
