"""Calendar helpers — month grids, per-day lookups and the today view."""

import calendar as _calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from planner.schemas.homework import HomeworkWithRelations
from planner.utils import as_utc

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def month_grid(year: int, month: int) -> list[list[tuple[date, bool]]]:
    """Sunday-first weeks covering ``month``, padded with neighbouring days.

    Each cell is ``(date, in_month)``.
    """
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")

    first = date(year, month, 1)
    days_in_month = _calendar.monthrange(year, month)[1]
    leading = (first.weekday() + 1) % 7  # Monday=0 -> Sunday-first offset
    total = -(-(leading + days_in_month) // 7) * 7

    start = first - timedelta(days=leading)
    cells = []
    for i in range(total):
        day = start + timedelta(days=i)
        cells.append((day, day.month == month and day.year == year))
    return [cells[i:i + 7] for i in range(0, total, 7)]


def month_title(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def homework_for_date(items: list[HomeworkWithRelations], day: date) -> list[HomeworkWithRelations]:
    return [hw for hw in items if hw.due_date is not None and as_utc(hw.due_date).date() == day]


def _first_done(hw: HomeworkWithRelations) -> bool:
    return bool(hw.completion) and hw.completion[0].done


def today_view(
    items: list[HomeworkWithRelations],
    today: Optional[date] = None,
) -> tuple[list[HomeworkWithRelations], list[HomeworkWithRelations]]:
    """Return ``(due_today, overdue)``.

    Overdue items are due before today and their first completion record is
    not done.
    """
    today = today or datetime.now(timezone.utc).date()
    due_today = homework_for_date(items, today)
    overdue = [
        hw for hw in items
        if hw.due_date is not None and as_utc(hw.due_date).date() < today and not _first_done(hw)
    ]
    return due_today, overdue


def relative_time(then: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now) or datetime.now(timezone.utc)
    then = as_utc(then)
    minutes = int((now - then).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return then.date().isoformat()
