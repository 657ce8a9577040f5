"""
Pytest configuration and shared fixtures for the work-order SLA tests.

All instants are aware datetimes in the calendar timezone so that
wall-clock expectations read naturally (2025-03-03 is a Monday).
"""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from src.config import Priority, WorkOrderType
from src.shared.infrastructure.clock import FixedClock
from src.sla.domain import (
    BusinessCalendar, CalendarConfig, DeadlineCalculator, EscalationPolicy, SLAConfig, SLATracker
)
from src.workorders.domain import WorkOrder

VN = ZoneInfo("Asia/Ho_Chi_Minh")


def at(year, month, day, hour=0, minute=0):
    """Calendar-local aware datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=VN)


@pytest.fixture
def sla_config():
    return SLAConfig()


@pytest.fixture
def calendar(sla_config):
    return BusinessCalendar(sla_config.calendar)


@pytest.fixture
def calculator(calendar):
    return DeadlineCalculator(calendar)


@pytest.fixture
def weekday_calculator():
    """Monday-Friday calendar, otherwise default."""
    return DeadlineCalculator(BusinessCalendar(CalendarConfig(working_days=[0, 1, 2, 3, 4])))


@pytest.fixture
def tracker(sla_config, calculator):
    return SLATracker(sla_config, calculator)


@pytest.fixture
def policy(tracker):
    return EscalationPolicy(tracker)


@pytest.fixture
def mock_now():
    return at(2025, 3, 3, 9, 0)


@pytest.fixture
def clock(mock_now):
    return FixedClock(mock_now)


@pytest.fixture
def make_work_order(mock_now):
    """Factory for draft work orders created at ``mock_now``."""
    counter = [0]

    def factory(priority=Priority.HIGH, type=WorkOrderType.BREAKDOWN, **kwargs):
        counter[0] += 1
        defaults = dict(
            id=f"wo-{counter[0]}",
            work_order_number=f"WO-2025-{counter[0]:04d}",
            title="Conveyor motor overheating",
            priority=priority,
            type=type,
            created_at=mock_now,
        )
        defaults.update(kwargs)
        return WorkOrder(**defaults)

    return factory
