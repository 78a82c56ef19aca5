"""Relative date periods and the clock they are resolved against.

A relative period such as "this week" only has meaning at evaluation time.
`EvaluationContext` pins "now", the time zone calendar days are cut in and the
first day of the week, so a rule set evaluates the same way for every episode
in one call and reproducibly in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from enum import Enum
from typing import cast


class Weekday(Enum):
    """Day a calendar week starts on."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """Return the day number as used by datetime.weekday() (Monday = 0)."""
        return list(Weekday).index(self)


class RelativeDatePeriod(Enum):
    """Symbolic time windows resolved against the current moment."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_YEAR = "this_year"
    LAST_YEAR = "last_year"
    LAST_24_HOURS = "last_24_hours"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_rolling(self) -> bool:
        """Rolling periods end at "now" instead of a calendar boundary."""
        return self.value.startswith("last_") and self.value[5].isdigit()


@dataclass(frozen=True)
class DateWindow:
    """A span of time.

    Calendar windows are half-open (the end is the next boundary); rolling
    windows end at "now" and include it.
    """

    start: datetime
    end: datetime
    include_end: bool = False

    def __contains__(self, moment: object) -> bool:
        if not isinstance(moment, datetime):
            return False
        if moment < self.start:
            return False
        if self.include_end:
            return moment <= self.end
        return moment < self.end


def as_aware(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are returned unchanged."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def _default_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class EvaluationContext:
    """Clock and calendar settings for one evaluation."""

    now: datetime = field(default_factory=_default_now)
    week_start: Weekday = Weekday.MONDAY

    def __post_init__(self) -> None:
        if self.now.tzinfo is None:
            object.__setattr__(self, "now", self.now.replace(tzinfo=UTC))

    @classmethod
    def current(
        cls,
        tz: tzinfo | None = None,
        week_start: Weekday = Weekday.MONDAY,
    ) -> EvaluationContext:
        """Build a context for the present moment in the given time zone."""
        now = datetime.now(tz) if tz is not None else _default_now()
        return cls(now=now, week_start=week_start)

    @property
    def tzinfo(self) -> tzinfo:
        return cast(tzinfo, self.now.tzinfo)

    def localize(self, moment: datetime) -> datetime:
        """Express a datetime in the context's time zone.

        Naive datetimes are taken to be UTC.
        """
        return as_aware(moment).astimezone(self.tzinfo)

    def start_of_day(self, moment: datetime | None = None) -> datetime:
        local = self.localize(moment) if moment is not None else self.now
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def window(self, period: RelativeDatePeriod) -> DateWindow:
        """Resolve a relative period into a concrete window."""
        return resolve_period(period, self)


def _shift_month(moment: datetime, months: int) -> datetime:
    """Move a first-of-month datetime by a number of months."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    return moment.replace(year=year, month=month + 1)


def resolve_period(period: RelativeDatePeriod, context: EvaluationContext) -> DateWindow:
    """Compute the window a relative period covers at ``context.now``.

    Args:
        period: The symbolic period.
        context: Supplies "now", the time zone and the first day of the week.

    Returns:
        DateWindow with aware start and end datetimes.
    """
    now = context.now
    today = context.start_of_day()

    if period is RelativeDatePeriod.TODAY:
        return DateWindow(today, today + timedelta(days=1))
    if period is RelativeDatePeriod.YESTERDAY:
        return DateWindow(today - timedelta(days=1), today)

    if period in (RelativeDatePeriod.THIS_WEEK, RelativeDatePeriod.LAST_WEEK):
        offset = (today.weekday() - context.week_start.index) % 7
        week_start = today - timedelta(days=offset)
        if period is RelativeDatePeriod.THIS_WEEK:
            return DateWindow(week_start, week_start + timedelta(days=7))
        return DateWindow(week_start - timedelta(days=7), week_start)

    if period in (RelativeDatePeriod.THIS_MONTH, RelativeDatePeriod.LAST_MONTH):
        month_start = today.replace(day=1)
        if period is RelativeDatePeriod.THIS_MONTH:
            return DateWindow(month_start, _shift_month(month_start, 1))
        return DateWindow(_shift_month(month_start, -1), month_start)

    if period in (RelativeDatePeriod.THIS_YEAR, RelativeDatePeriod.LAST_YEAR):
        year_start = today.replace(month=1, day=1)
        if period is RelativeDatePeriod.THIS_YEAR:
            return DateWindow(year_start, year_start.replace(year=year_start.year + 1))
        return DateWindow(year_start.replace(year=year_start.year - 1), year_start)

    rolling = {
        RelativeDatePeriod.LAST_24_HOURS: timedelta(hours=24),
        RelativeDatePeriod.LAST_7_DAYS: timedelta(days=7),
        RelativeDatePeriod.LAST_30_DAYS: timedelta(days=30),
        RelativeDatePeriod.LAST_90_DAYS: timedelta(days=90),
    }
    return DateWindow(now - rolling[period], now, include_end=True)
