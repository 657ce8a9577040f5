"""
Deadline Calculator
===================

Pure functions over a ``BusinessCalendar``:

- ``calculate_deadline``: walk a minute budget forward through business
  (or calendar) time
- ``calculate_elapsed_time``: the inverse, minutes of business (or
  calendar) time between two instants
- ``calculate_remaining_time``: signed distance to a deadline

Calendar-mode arithmetic is done in UTC so that DST transitions in the
caller's timezone never stretch or shrink a budget.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Union

from src.sla.domain.calendar import BusinessCalendar

Number = Union[int, float]


def round_minutes(minutes: Number) -> int:
    """Round half up to whole minutes."""
    return int(math.floor(minutes + 0.5))


class DeadlineCalculator:
    """
    Deadline arithmetic for one business calendar.

    Stateless apart from the calendar, so a single instance can be shared.
    """

    def __init__(self, calendar: BusinessCalendar):
        self._calendar = calendar

    @property
    def calendar(self) -> BusinessCalendar:
        return self._calendar

    def _to_utc(self, instant: datetime) -> datetime:
        return self._calendar.localize(instant).astimezone(timezone.utc)

    def calculate_deadline(
        self,
        start: datetime,
        budget_minutes: Number,
        business_hours_only: bool = True,
        grace_minutes: Number = 0
    ) -> datetime:
        """
        Calculate the instant at which ``budget_minutes`` have been consumed.

        Args:
            start: Clock start
            budget_minutes: Budget; zero or negative returns ``start``
            business_hours_only: Count only business time
            grace_minutes: Added to the budget in business mode only

        Returns:
            The deadline, in the same timezone form as ``start``
        """
        if budget_minutes <= 0:
            return start

        if not business_hours_only:
            deadline = self._to_utc(start) + timedelta(minutes=budget_minutes)
            return self._calendar.restore(deadline.astimezone(self._calendar.timezone), start)

        calendar = self._calendar
        remaining = timedelta(minutes=budget_minutes + max(grace_minutes, 0))
        current = calendar.localize(start)

        while remaining > timedelta(0):
            day = current.date()

            if not calendar.is_working_day(day):
                current = calendar.business_day_start(calendar.next_business_day(day))
                continue

            if current < calendar.business_day_start(day):
                current = calendar.business_day_start(day)
                continue

            if current >= calendar.business_day_end(day):
                current = calendar.business_day_start(calendar.next_business_day(day))
                continue

            for seg_start, seg_end in calendar.business_segments(day):
                if current >= seg_end:
                    continue
                # Inside lunch: resume at the afternoon segment
                if current < seg_start:
                    current = seg_start
                available = seg_end - current
                if remaining <= available:
                    current += remaining
                    remaining = timedelta(0)
                    break
                remaining -= available
                current = seg_end
            else:
                current = calendar.business_day_start(calendar.next_business_day(day))

        return calendar.restore(current, start)

    def calculate_elapsed_time(
        self,
        start: datetime,
        end: datetime,
        business_hours_only: bool = True
    ) -> float:
        """
        Minutes elapsed between ``start`` and ``end``.

        Returns 0 when ``end`` is not after ``start``. In business mode only
        the overlap with business segments counts.
        """
        if end <= start:
            return 0.0

        if not business_hours_only:
            return (self._to_utc(end) - self._to_utc(start)).total_seconds() / 60

        calendar = self._calendar
        local_start = calendar.localize(start)
        local_end = calendar.localize(end)

        total = timedelta(0)
        day = local_start.date()
        if not calendar.is_working_day(day):
            day = calendar.next_business_day(day)

        while day <= local_end.date():
            for seg_start, seg_end in calendar.business_segments(day):
                overlap = min(seg_end, local_end) - max(seg_start, local_start)
                if overlap > timedelta(0):
                    total += overlap
            day = calendar.next_business_day(day)

        return total.total_seconds() / 60

    def calculate_remaining_time(
        self,
        deadline: datetime,
        now: datetime,
        business_hours_only: bool = True
    ) -> float:
        """Signed minutes to ``deadline``: positive before, negative after."""
        if now >= deadline:
            return -self.calculate_elapsed_time(deadline, now, business_hours_only)
        return self.calculate_elapsed_time(now, deadline, business_hours_only)

    def calculate_progress(
        self,
        start: datetime,
        deadline: datetime,
        now: datetime,
        business_hours_only: bool = True
    ) -> int:
        """Percent of the budget consumed at ``now``; may exceed 100."""
        total = self.calculate_elapsed_time(start, deadline, business_hours_only)
        if total == 0:
            return 0
        elapsed = self.calculate_elapsed_time(start, now, business_hours_only)
        return round_minutes(elapsed / total * 100)

    @staticmethod
    def format_remaining_time(minutes: Number) -> str:
        """
        Human-readable duration.

        Examples: ``45m``, ``2h 30m``, ``3d 4h``, ``Overdue by 1h 5m``.
        """
        if minutes < 0:
            return f"Overdue by {DeadlineCalculator.format_remaining_time(abs(minutes))}"

        if minutes < 60:
            return f"{round_minutes(minutes)}m"

        hours = int(minutes // 60)
        mins = round_minutes(minutes % 60)
        if mins == 60:
            hours, mins = hours + 1, 0

        if hours < 24:
            return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"

        days, remaining_hours = divmod(hours, 24)
        if remaining_hours > 0:
            return f"{days}d {remaining_hours}h"
        return f"{days}d"
