"""
Business Calendar
=================

Working-day and business-hour predicates for the SLA domain.

A business day is split into segments: ``[start, lunch_start)`` and
``[lunch_end, end)`` when a lunch break is configured, otherwise a single
``[start, end)`` segment. Both the deadline walk and the elapsed-time
function consume these segments, which keeps them exact inverses.

Naive datetimes are read as calendar-local wall time. Aware datetimes are
converted to the calendar timezone first.
"""

from datetime import date, datetime, timedelta
from typing import List, Tuple, Union
from zoneinfo import ZoneInfo

from src.core.exceptions import ConfigurationException
from src.sla.domain.value_objects import CalendarConfig

Segment = Tuple[datetime, datetime]

# Upper bound on the next-business-day search; a year of holidays is a config error.
MAX_LOOKAHEAD_DAYS = 366


class BusinessCalendar:
    """Answers "is this business time?" for one configured calendar."""

    def __init__(self, config: CalendarConfig):
        if not config.working_days:
            raise ConfigurationException(
                "Business calendar has no working days",
                {"working_days": list(config.working_days)}
            )
        self._config = config
        self._tz = ZoneInfo(config.timezone)
        self._working_days = frozenset(config.working_days)
        self._holidays = frozenset(config.holidays)

    @property
    def config(self) -> CalendarConfig:
        return self._config

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def localize(self, instant: datetime) -> datetime:
        """Return ``instant`` as an aware datetime in the calendar timezone."""
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self._tz)
        return instant.astimezone(self._tz)

    def restore(self, local: datetime, like: datetime) -> datetime:
        """Express a calendar-local result in the same form as ``like``."""
        if like.tzinfo is None:
            return local.replace(tzinfo=None)
        return local.astimezone(like.tzinfo)

    def _as_date(self, day: Union[date, datetime]) -> date:
        if isinstance(day, datetime):
            return self.localize(day).date()
        return day

    def is_holiday(self, day: Union[date, datetime]) -> bool:
        return self._as_date(day) in self._holidays

    def is_working_day(self, day: Union[date, datetime]) -> bool:
        """True for a configured weekday that is not a holiday."""
        day = self._as_date(day)
        return day.weekday() in self._working_days and day not in self._holidays

    def is_within_business_hours(self, instant: datetime) -> bool:
        """
        True inside ``[start, end)`` and outside ``[lunch_start, lunch_end)``.

        Ignores the working-day check; see ``is_business_time``.
        """
        local = self.localize(instant).time()
        if not self._config.start <= local < self._config.end:
            return False
        lunch = self._config.lunch_break
        if lunch.enabled and lunch.start <= local < lunch.end:
            return False
        return True

    def is_business_time(self, instant: datetime) -> bool:
        return self.is_working_day(instant) and self.is_within_business_hours(instant)

    def next_business_day(self, day: Union[date, datetime]) -> date:
        """
        First working day strictly after ``day``.

        Raises:
            ConfigurationException: If none is found within a year
        """
        current = self._as_date(day)
        for _ in range(MAX_LOOKAHEAD_DAYS):
            current += timedelta(days=1)
            if self.is_working_day(current):
                return current
        raise ConfigurationException(
            "No working day found within lookahead window",
            {"from": self._as_date(day).isoformat(), "lookahead_days": MAX_LOOKAHEAD_DAYS}
        )

    def business_day_start(self, day: Union[date, datetime]) -> datetime:
        return datetime.combine(self._as_date(day), self._config.start, tzinfo=self._tz)

    def business_day_end(self, day: Union[date, datetime]) -> datetime:
        return datetime.combine(self._as_date(day), self._config.end, tzinfo=self._tz)

    def business_segments(self, day: Union[date, datetime]) -> List[Segment]:
        """Business-time intervals of ``day``, empty on non-working days."""
        day = self._as_date(day)
        if not self.is_working_day(day):
            return []
        start = self.business_day_start(day)
        end = self.business_day_end(day)
        lunch = self._config.lunch_break
        if not lunch.enabled:
            return [(start, end)]
        return [
            (start, datetime.combine(day, lunch.start, tzinfo=self._tz)),
            (datetime.combine(day, lunch.end, tzinfo=self._tz), end),
        ]

    def business_minutes_remaining(self, instant: datetime) -> float:
        """Business minutes left today from ``instant``, lunch excluded."""
        local = self.localize(instant)
        remaining = timedelta(0)
        for seg_start, seg_end in self.business_segments(local.date()):
            overlap = seg_end - max(seg_start, local)
            if overlap > timedelta(0):
                remaining += overlap
        return remaining.total_seconds() / 60
