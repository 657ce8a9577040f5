"""
Tests for SLATracker: budget lookup, record initialization, pause compensation and status.
"""
from dataclasses import replace

import pytest
from pydantic import ValidationError

from src.config import Priority, SLAKind, SLAState, WorkOrderType
from src.core.exceptions import UnknownEnumValueException
from src.sla import initialize_sla, pause_sla, resume_sla, update_sla_status
from src.sla.domain import PriorityBudgets, SLABudget, SLAConfig, SLATracker, round_minutes
from tests.conftest import at


class TestBudgetResolution:
    """Type override > priority default > fallback priority."""

    def test_priority_default(self, tracker):
        budget = tracker.resolve_budget(Priority.HIGH, WorkOrderType.INSPECTION, SLAKind.RESPONSE)
        assert budget == SLABudget(minutes=60, business_hours_only=True)

    def test_type_override_wins(self, tracker):
        budget = tracker.resolve_budget(Priority.MEDIUM, WorkOrderType.BREAKDOWN, SLAKind.RESPONSE)
        assert budget.minutes == 120

    def test_safety_override_is_calendar_time(self, tracker):
        budget = tracker.resolve_budget(Priority.HIGH, WorkOrderType.SAFETY, SLAKind.COMPLETION)
        assert budget == SLABudget(minutes=480, business_hours_only=False)

    def test_raw_strings_accepted(self, tracker):
        budget = tracker.resolve_budget("Medium", "Preventive", "completion")
        assert budget.minutes == 120 * 60

    def test_unknown_priority(self, tracker):
        with pytest.raises(UnknownEnumValueException) as exc:
            tracker.resolve_budget("Urgent", WorkOrderType.BREAKDOWN, SLAKind.RESPONSE)
        assert exc.value.enum_name == "Priority"

    def test_unknown_type(self, tracker):
        with pytest.raises(UnknownEnumValueException):
            tracker.resolve_budget(Priority.HIGH, "Calibration", SLAKind.RESPONSE)

    def test_missing_priority_uses_fallback(self):
        medium = PriorityBudgets(
            response=SLABudget(minutes=200),
            completion=SLABudget(minutes=2000),
        )
        config = SLAConfig(priorities={Priority.MEDIUM: medium}, type_overrides={})
        assert config.resolve_budget(Priority.LOW, WorkOrderType.PROJECT, SLAKind.RESPONSE).minutes == 200

    def test_fallback_must_have_budgets(self):
        high = PriorityBudgets(response=SLABudget(minutes=60), completion=SLABudget(minutes=600))
        with pytest.raises(ValidationError):
            SLAConfig(priorities={Priority.HIGH: high}, fallback_priority=Priority.LOW)

    def test_hours_are_converted(self):
        assert SLABudget(hours=1.5).minutes == 90

    def test_hours_and_minutes_conflict(self):
        with pytest.raises(ValidationError):
            SLABudget(hours=1, minutes=30)


class TestInitialize:
    """Fresh records from work-order timestamps."""

    def test_high_breakdown_response_only_before_approval(self, tracker, make_work_order, mock_now):
        wo = make_work_order(submitted_at=mock_now)
        record = tracker.initialize_sla(wo)

        assert record.response_by == at(2025, 3, 3, 10)
        assert record.response_started_at == mock_now
        assert record.resolve_by is None
        assert not record.has_resolution_clock
        assert record.response_status == SLAState.ON_TRACK

    def test_completion_clock_from_approval(self, tracker, make_work_order, mock_now):
        """Mon 09:30 + 24 business hours -> Thu 09:30."""
        wo = make_work_order(submitted_at=mock_now, approved_at=at(2025, 3, 3, 9, 30))
        record = tracker.initialize_sla(wo)
        assert record.resolve_by == at(2025, 3, 6, 9, 30)
        assert record.resolution_budget_minutes == 24 * 60

    def test_emergency_saturday_night(self, tracker, make_work_order):
        """Emergency budgets run on calendar time."""
        submitted = at(2025, 3, 8, 22)
        wo = make_work_order(priority=Priority.EMERGENCY, created_at=submitted, submitted_at=submitted)
        record = tracker.initialize_sla(wo)
        assert record.response_by == at(2025, 3, 8, 22, 15)
        assert record.response_business_hours_only is False

    def test_falls_back_to_created_at(self, tracker, make_work_order, mock_now):
        record = tracker.initialize_sla(make_work_order())
        assert record.response_started_at == mock_now

    def test_started_at_overrides_both_clocks(self, tracker, make_work_order, mock_now):
        restart = at(2025, 3, 4, 14)
        wo = make_work_order(submitted_at=mock_now, approved_at=mock_now)
        record = tracker.initialize_sla(wo, started_at=restart)
        assert record.response_by == at(2025, 3, 4, 15)
        assert record.resolution_started_at == restart

    def test_completion_clock_set_once(self, tracker, make_work_order, mock_now):
        record = tracker.initialize_sla(make_work_order(submitted_at=mock_now))
        first = tracker.start_completion_clock(record, at(2025, 3, 3, 10))
        second = tracker.start_completion_clock(first, at(2025, 3, 4, 10))
        assert second.resolve_by == first.resolve_by
        assert second.resolution_started_at == at(2025, 3, 3, 10)

    def test_module_entry_point(self, sla_config, make_work_order, mock_now):
        record = initialize_sla(make_work_order(submitted_at=mock_now), sla_config)
        assert record.response_by == at(2025, 3, 3, 10)


class TestPauseResume:
    """Pauses accumulate wall-clock minutes and never move stored deadlines."""

    @pytest.fixture
    def record(self, tracker, make_work_order, mock_now):
        return tracker.initialize_sla(make_work_order(submitted_at=mock_now, approved_at=mock_now))

    def test_pause_then_resume(self, record):
        paused = pause_sla(record, at(2025, 3, 3, 9, 10))
        assert paused.is_paused
        assert paused.pause_start_at == at(2025, 3, 3, 9, 10)

        resumed = resume_sla(paused, at(2025, 3, 3, 9, 55))
        assert not resumed.is_paused
        assert resumed.pause_start_at is None
        assert resumed.total_pause_minutes == 45
        assert resumed.response_by == record.response_by
        assert resumed.resolve_by == record.resolve_by

    def test_double_pause_is_noop(self, record):
        paused = SLATracker.pause(record, at(2025, 3, 3, 9, 10))
        assert SLATracker.pause(paused, at(2025, 3, 3, 9, 40)) is paused

    def test_resume_without_pause_is_noop(self, record):
        assert SLATracker.resume(record, at(2025, 3, 3, 9, 40)) is record

    def test_pauses_accumulate(self, record):
        r = SLATracker.pause(record, at(2025, 3, 3, 9, 10))
        r = SLATracker.resume(r, at(2025, 3, 3, 9, 20))
        r = SLATracker.pause(r, at(2025, 3, 3, 14))
        r = SLATracker.resume(r, at(2025, 3, 3, 14, 30))
        assert r.total_pause_minutes == 40

    def test_paused_record_never_breaches(self, tracker, record):
        """Ongoing pause time shifts the deadline as the clock runs."""
        paused = tracker.pause(record, at(2025, 3, 3, 9, 30))
        later = tracker.update_status(paused, at(2025, 3, 3, 16))
        assert not later.response_breached
        assert later.response_breach_minutes == 0

    def test_effective_pause_includes_ongoing(self, record):
        paused = SLATracker.pause(record, at(2025, 3, 3, 9, 10))
        assert SLATracker.effective_pause_minutes(paused, at(2025, 3, 3, 9, 40)) == 30

    def test_inconsistent_pause_state_rejected(self, record):
        with pytest.raises(ValueError):
            replace(record, is_paused=True)


class TestUpdateStatus:
    """State and breach minutes recomputed at ``now``."""

    @pytest.fixture
    def record(self, tracker, make_work_order, mock_now):
        return tracker.initialize_sla(make_work_order(submitted_at=mock_now))

    def test_on_track(self, tracker, record):
        updated = tracker.update_status(record, at(2025, 3, 3, 9, 47))
        assert updated.response_status == SLAState.ON_TRACK

    def test_at_risk_at_eighty_percent(self, tracker, record):
        updated = tracker.update_status(record, at(2025, 3, 3, 9, 48))
        assert updated.response_status == SLAState.AT_RISK
        assert updated.most_urgent_state == SLAState.AT_RISK

    def test_breach_minutes(self, tracker, record):
        updated = tracker.update_status(record, at(2025, 3, 3, 10, 30))
        assert updated.response_status == SLAState.BREACHED
        assert updated.response_breached
        assert updated.response_breach_minutes == 30
        assert updated.response_breached_at == at(2025, 3, 3, 10, 30)
        assert updated.breach_minutes == 0

    def test_breach_minutes_skip_lunch(self, tracker, record):
        updated = tracker.update_status(record, at(2025, 3, 3, 13, 15))
        assert updated.response_breach_minutes == 135

    def test_first_breach_instant_is_kept(self, tracker, record):
        first = tracker.update_status(record, at(2025, 3, 3, 10, 30))
        second = tracker.update_status(first, at(2025, 3, 3, 11))
        assert second.response_breached_at == at(2025, 3, 3, 10, 30)
        assert second.response_breach_minutes == 60

    def test_response_stops_at_responded_at(self, tracker, record):
        responded = tracker.mark_responded(record, at(2025, 3, 3, 9, 40))
        updated = tracker.update_status(responded, at(2025, 3, 3, 16))
        assert updated.response_status == SLAState.ON_TRACK
        assert not updated.response_breached

    def test_late_response_keeps_breach_size(self, tracker, record):
        responded = tracker.mark_responded(record, at(2025, 3, 3, 10, 20))
        updated = tracker.update_status(responded, at(2025, 3, 4, 9))
        assert updated.response_breach_minutes == 20

    def test_first_response_wins(self, tracker, record):
        first = tracker.mark_responded(record, at(2025, 3, 3, 9, 20))
        assert tracker.mark_responded(first, at(2025, 3, 3, 9, 50)).responded_at == at(2025, 3, 3, 9, 20)

    def test_calendar_clock_with_pause(self, tracker, make_work_order, mock_now):
        """
        Completion due 13:00, paused 12:30-14:00: the deadline moves to 14:30.
        Not breached at 14:00; ten minutes over at 14:40.
        """
        wo = make_work_order(priority=Priority.EMERGENCY, submitted_at=mock_now, approved_at=mock_now)
        record = tracker.initialize_sla(wo)
        assert record.resolve_by == at(2025, 3, 3, 13)

        record = tracker.mark_responded(record, at(2025, 3, 3, 9, 5))
        record = tracker.pause(record, at(2025, 3, 3, 12, 30))
        record = tracker.resume(record, at(2025, 3, 3, 14))
        assert record.total_pause_minutes == 90

        at_resume = tracker.update_status(record, at(2025, 3, 3, 14))
        assert not at_resume.resolution_breached

        later = update_sla_status(record, at(2025, 3, 3, 14, 40), tracker.config)
        assert later.resolution_breached
        assert later.breach_minutes == 10
        assert later.resolution_status == SLAState.BREACHED


class TestFinalize:
    """Compliance is frozen at close."""

    @pytest.fixture
    def record(self, tracker, make_work_order, mock_now):
        return tracker.initialize_sla(make_work_order(submitted_at=mock_now, approved_at=at(2025, 3, 3, 9, 30)))

    def test_both_met(self, tracker, record):
        r = tracker.mark_responded(record, at(2025, 3, 3, 9, 30))
        r = tracker.mark_resolved(r, at(2025, 3, 3, 15))
        closed = tracker.finalize(r, at(2025, 3, 4, 10))
        assert closed.response_met is True
        assert closed.resolution_met is True
        assert closed.is_finalized

    def test_late_response_not_met(self, tracker, record):
        r = tracker.mark_responded(record, at(2025, 3, 3, 10, 30))
        r = tracker.mark_resolved(r, at(2025, 3, 3, 15))
        closed = tracker.finalize(r, at(2025, 3, 4, 10))
        assert closed.response_met is False
        assert closed.resolution_met is True

    def test_finalized_record_is_frozen(self, tracker, record):
        closed = tracker.finalize(tracker.mark_responded(record, at(2025, 3, 3, 9, 30)), at(2025, 3, 3, 11))
        assert tracker.update_status(closed, at(2025, 3, 20)) is closed
        assert tracker.finalize(closed, at(2025, 3, 21)) is closed

    def test_finalize_resumes_pause(self, tracker, record):
        paused = tracker.pause(record, at(2025, 3, 3, 10))
        closed = tracker.finalize(paused, at(2025, 3, 3, 10, 20))
        assert not closed.is_paused
        assert closed.total_pause_minutes == 20

    def test_no_resolution_clock(self, tracker, make_work_order, mock_now):
        record = tracker.initialize_sla(make_work_order(submitted_at=mock_now))
        closed = tracker.finalize(tracker.mark_responded(record, at(2025, 3, 3, 9, 30)), at(2025, 3, 3, 11))
        assert closed.response_met is True
        assert closed.resolution_met is None

    def test_to_dict(self, tracker, record):
        data = tracker.finalize(record, at(2025, 3, 3, 9, 30)).to_dict()
        assert data["priority"] == "High"
        assert data["response"]["deadline"] == at(2025, 3, 3, 10).isoformat()
        assert data["resolution"]["met"] is True
        assert data["escalation"]["level"] == "None"


@pytest.mark.parametrize("value,expected", [(0.4, 0), (0.5, 1), (1.49, 1), (2.5, 3), (89.99, 90)])
def test_round_minutes(value, expected):
    assert round_minutes(value) == expected
