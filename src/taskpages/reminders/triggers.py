# src/taskpages/reminders/triggers.py

"""
Notification triggers and the recurrence -> trigger mapping.

Two trigger shapes, matching what a platform notification center accepts:
- CalendarTrigger: fire when the wall clock matches the set date components
- IntervalTrigger: fire N seconds after scheduling

Weekdays use calendar numbering: 1 = Sunday ... 7 = Saturday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from ..pages.models import Recurrence

# Every month has a 28th.
MONTHLY_SAFE_DAY = 28

# Enough to cross a leap day (Feb 29) from any starting point.
_MAX_SEARCH_DAYS = 366 * 4 + 31


def calendar_weekday(d: date) -> int:
    """Python weekday (Mon=0) -> calendar weekday (Sun=1 .. Sat=7)."""
    return (d.weekday() + 1) % 7 + 1


@dataclass(slots=True, frozen=True)
class CalendarTrigger:
    hour: int
    minute: int
    year: int | None = None
    month: int | None = None
    day: int | None = None
    weekday: int | None = None
    repeats: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"bad time of day {self.hour}:{self.minute}")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"bad month {self.month}")
        if self.day is not None and not 1 <= self.day <= 31:
            raise ValueError(f"bad day {self.day}")
        if self.weekday is not None and not 1 <= self.weekday <= 7:
            raise ValueError(f"bad weekday {self.weekday}")

    def _matches_day(self, d: date) -> bool:
        if self.year is not None and d.year != self.year:
            return False
        if self.month is not None and d.month != self.month:
            return False
        if self.day is not None and d.day != self.day:
            return False
        if self.weekday is not None and calendar_weekday(d) != self.weekday:
            return False
        return True

    def next_fire(self, after: datetime) -> datetime | None:
        """First matching minute strictly after `after`, or None if there is none."""
        at = time(hour=self.hour, minute=self.minute)
        d = after.date()
        for _ in range(_MAX_SEARCH_DAYS):
            if self.year is not None and d.year > self.year:
                return None
            if self._matches_day(d):
                candidate = datetime.combine(d, at, tzinfo=after.tzinfo)
                if candidate > after:
                    return candidate
            d += timedelta(days=1)
        return None

    def describe(self) -> str:
        hhmm = f"{self.hour:02d}:{self.minute:02d}"
        if self.year is not None and self.month is not None and self.day is not None:
            return f"once at {self.year:04d}-{self.month:02d}-{self.day:02d} {hhmm}"
        if self.weekday is not None:
            return f"every weekday #{self.weekday} at {hhmm}"
        if self.day is not None:
            return f"every month on day {self.day} at {hhmm}"
        return f"{'every day' if self.repeats else 'next'} at {hhmm}"


@dataclass(slots=True, frozen=True)
class IntervalTrigger:
    seconds: float
    repeats: bool = False

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError("interval must be positive")
        if self.repeats and self.seconds < 60:
            raise ValueError("repeating interval must be at least 60 seconds")

    def next_fire(self, after: datetime) -> datetime | None:
        return after + timedelta(seconds=self.seconds)

    def describe(self) -> str:
        return f"{'every' if self.repeats else 'in'} {int(self.seconds)}s"


Trigger = CalendarTrigger | IntervalTrigger


def trigger_for_recurrence(recurrence: Recurrence, reference: datetime) -> CalendarTrigger:
    """
    Derive the trigger of a task reminder.

    none    -> exact calendar timestamp (one shot)
    daily   -> time of day
    weekly  -> weekday + time of day
    monthly -> day of month + time of day; days 29..31 fall back to 28
    """
    hour, minute = reference.hour, reference.minute

    if recurrence == Recurrence.DAILY:
        return CalendarTrigger(hour=hour, minute=minute, repeats=True)

    if recurrence == Recurrence.WEEKLY:
        return CalendarTrigger(hour=hour, minute=minute, weekday=calendar_weekday(reference.date()), repeats=True)

    if recurrence == Recurrence.MONTHLY:
        day = reference.day if reference.day <= MONTHLY_SAFE_DAY else MONTHLY_SAFE_DAY
        return CalendarTrigger(hour=hour, minute=minute, day=day, repeats=True)

    return CalendarTrigger(
        hour=hour,
        minute=minute,
        year=reference.year,
        month=reference.month,
        day=reference.day,
        repeats=False,
    )
