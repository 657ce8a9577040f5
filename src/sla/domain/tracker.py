"""
SLA Tracker
===========

Owns the lifecycle of an ``SLARecord``:

1. ``initialize_sla`` resolves budgets and computes deadlines
2. ``start_completion_clock`` sets ``resolve_by`` once, at approval
3. ``pause`` / ``resume`` accumulate wall-clock pause minutes
4. ``update_status`` recomputes On Track / At Risk / Breached
5. ``mark_responded`` / ``mark_resolved`` stop the clocks
6. ``finalize`` freezes compliance at close

Pause compensation is applied at evaluation time:

    adjusted = deadline + total_pause_minutes (+ ongoing pause while paused)

Counting the ongoing pause freezes both clocks for as long as the record
stays paused, so a paused work order never drifts into breach.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Tuple

from src.config import Priority, WorkOrderType, SLAKind, SLAState, coerce_enum
from src.shared.infrastructure.logging import get_logger
from src.sla.domain.calendar import BusinessCalendar
from src.sla.domain.deadlines import DeadlineCalculator, round_minutes
from src.sla.domain.entities import SLARecord
from src.sla.domain.value_objects import SLAConfig, SLABudget

logger = get_logger(__name__)


class SLATracker:
    """
    Stateless SLA record operations for one configuration.

    All methods take a record and return a new one; nothing is persisted here.
    """

    def __init__(self, config: SLAConfig, calculator: Optional[DeadlineCalculator] = None):
        self._config = config
        self._calculator = calculator or DeadlineCalculator(BusinessCalendar(config.calendar))

    @property
    def config(self) -> SLAConfig:
        return self._config

    @property
    def calculator(self) -> DeadlineCalculator:
        return self._calculator

    def resolve_budget(self, priority, work_order_type, kind) -> SLABudget:
        """Budget for one clock; see ``SLAConfig.resolve_budget`` for precedence."""
        return self._config.resolve_budget(priority, work_order_type, kind)

    def _deadline(self, start: datetime, budget: SLABudget, kind: SLAKind) -> datetime:
        return self._calculator.calculate_deadline(
            start,
            budget.minutes,
            budget.business_hours_only,
            grace_minutes=self._config.get_grace_minutes(kind),
        )

    # ========== Initialization ==========

    def initialize_sla(self, work_order, started_at: Optional[datetime] = None) -> SLARecord:
        """
        Build a fresh record for ``work_order``.

        The response clock starts at ``started_at``, else ``submitted_at``,
        else ``created_at``. The completion clock starts at ``started_at``,
        else ``approved_at``; without either it stays unset.

        Args:
            work_order: Object with id, priority, type and lifecycle timestamps
            started_at: Override for both clock starts (used on reopen)

        Returns:
            SLARecord with no breach history
        """
        priority = coerce_enum(Priority, work_order.priority)
        work_order_type = coerce_enum(WorkOrderType, work_order.type)

        response_start = started_at or work_order.submitted_at or work_order.created_at
        budget = self.resolve_budget(priority, work_order_type, SLAKind.RESPONSE)

        record = SLARecord(
            work_order_id=work_order.id,
            priority=priority,
            work_order_type=work_order_type,
            response_by=self._deadline(response_start, budget, SLAKind.RESPONSE),
            response_started_at=response_start,
            response_budget_minutes=budget.minutes,
            response_business_hours_only=budget.business_hours_only,
            created_at=response_start,
            updated_at=response_start,
        )

        completion_start = started_at or work_order.approved_at
        if completion_start is not None:
            record = self.start_completion_clock(record, completion_start)

        logger.info(
            "SLA initialized",
            extra={
                "work_order_id": record.work_order_id,
                "priority": priority,
                "work_order_type": work_order_type,
                "response_by": record.response_by.isoformat(),
                "resolve_by": record.resolve_by.isoformat() if record.resolve_by else None,
            }
        )
        return record

    def start_completion_clock(self, record: SLARecord, approved_at: datetime) -> SLARecord:
        """Set ``resolve_by`` from ``approved_at``; a no-op once set."""
        if record.resolve_by is not None:
            return record

        budget = self.resolve_budget(record.priority, record.work_order_type, SLAKind.COMPLETION)
        return replace(
            record,
            resolve_by=self._deadline(approved_at, budget, SLAKind.COMPLETION),
            resolution_started_at=approved_at,
            resolution_budget_minutes=budget.minutes,
            resolution_business_hours_only=budget.business_hours_only,
            updated_at=approved_at,
        )

    # ========== Pause / resume ==========

    @staticmethod
    def pause(record: SLARecord, now: datetime) -> SLARecord:
        """Start a pause. Pausing a paused or finalized record is a no-op."""
        if record.is_paused or record.is_finalized:
            logger.debug(
                "SLA pause ignored",
                extra={"work_order_id": record.work_order_id, "is_paused": record.is_paused}
            )
            return record
        return replace(record, is_paused=True, pause_start_at=now, updated_at=now)

    @staticmethod
    def resume(record: SLARecord, now: datetime) -> SLARecord:
        """End a pause, adding its rounded wall-clock minutes. No-op when not paused."""
        if not record.is_paused:
            logger.debug(
                "SLA resume ignored",
                extra={"work_order_id": record.work_order_id}
            )
            return record

        paused_minutes = max(0, round_minutes((now - record.pause_start_at).total_seconds() / 60))
        return replace(
            record,
            is_paused=False,
            pause_start_at=None,
            total_pause_minutes=record.total_pause_minutes + paused_minutes,
            updated_at=now,
        )

    @staticmethod
    def effective_pause_minutes(record: SLARecord, now: datetime) -> float:
        """Completed pauses plus the ongoing one, if any."""
        total = float(record.total_pause_minutes)
        if record.is_paused and record.pause_start_at is not None:
            total += max(0.0, (now - record.pause_start_at).total_seconds() / 60)
        return total

    # ========== Evaluation ==========

    def _clock(self, record: SLARecord, kind: SLAKind):
        if kind == SLAKind.RESPONSE:
            return (record.response_by, record.response_started_at,
                    record.responded_at, record.response_business_hours_only)
        return (record.resolve_by, record.resolution_started_at,
                record.resolved_at, record.resolution_business_hours_only)

    def adjusted_deadline(self, record: SLARecord, kind: SLAKind, now: datetime) -> Optional[datetime]:
        """Stored deadline shifted by the effective pause."""
        deadline = record.deadline_for(kind)
        if deadline is None:
            return None
        return deadline + timedelta(minutes=self.effective_pause_minutes(record, now))

    def elapsed_fraction(self, record: SLARecord, kind: SLAKind, now: datetime) -> float:
        """
        Share of the compensated budget consumed, measured in the clock's mode.

        Returns 0 for a clock that has not started.
        """
        deadline, started_at, stopped_at, business_hours_only = self._clock(record, kind)
        if deadline is None or started_at is None:
            return 0.0
        adjusted = self.adjusted_deadline(record, kind, now)
        evaluated_at = min(now, stopped_at) if stopped_at else now
        total = self._calculator.calculate_elapsed_time(started_at, adjusted, business_hours_only)
        if total <= 0:
            return 0.0
        elapsed = self._calculator.calculate_elapsed_time(started_at, evaluated_at, business_hours_only)
        return elapsed / total

    def evaluate_clock(self, record: SLARecord, kind: SLAKind, now: datetime) -> Tuple[SLAState, int]:
        """
        State and rounded breach minutes for one clock.

        The clock is evaluated at ``min(now, stop instant)``.
        """
        deadline, started_at, stopped_at, business_hours_only = self._clock(record, kind)
        if deadline is None:
            return SLAState.ON_TRACK, 0

        adjusted = self.adjusted_deadline(record, kind, now)
        evaluated_at = min(now, stopped_at) if stopped_at else now

        if evaluated_at > adjusted:
            overdue = self._calculator.calculate_elapsed_time(adjusted, evaluated_at, business_hours_only)
            return SLAState.BREACHED, round_minutes(overdue)

        if self.elapsed_fraction(record, kind, now) >= self._config.warning_threshold:
            return SLAState.AT_RISK, 0
        return SLAState.ON_TRACK, 0

    def update_status(self, record: SLARecord, now: datetime) -> SLARecord:
        """
        Recompute both clocks at ``now``.

        Finalized records are returned unchanged. The first detection of a
        breach stamps ``*_breached_at``.
        """
        if record.is_finalized:
            return record

        response_state, response_overdue = self.evaluate_clock(record, SLAKind.RESPONSE, now)
        resolution_state, resolution_overdue = self.evaluate_clock(record, SLAKind.COMPLETION, now)

        response_breached = response_state == SLAState.BREACHED
        resolution_breached = resolution_state == SLAState.BREACHED

        updated = replace(
            record,
            response_status=response_state,
            resolution_status=resolution_state,
            response_breached=response_breached,
            resolution_breached=resolution_breached,
            response_breach_minutes=response_overdue,
            breach_minutes=resolution_overdue,
            response_breached_at=record.response_breached_at or (now if response_breached else None),
            resolution_breached_at=record.resolution_breached_at or (now if resolution_breached else None),
            updated_at=now,
        )

        if response_breached and record.response_breached_at is None:
            logger.warning(
                "Response SLA breached",
                extra={"work_order_id": record.work_order_id, "breach_minutes": response_overdue}
            )
        if resolution_breached and record.resolution_breached_at is None:
            logger.warning(
                "Resolution SLA breached",
                extra={"work_order_id": record.work_order_id, "breach_minutes": resolution_overdue}
            )
        return updated

    # ========== Stop events ==========

    @staticmethod
    def mark_responded(record: SLARecord, responded_at: datetime) -> SLARecord:
        """Stop the response clock; the first stop wins."""
        if record.responded_at is not None:
            return record
        return replace(record, responded_at=responded_at, updated_at=responded_at)

    @staticmethod
    def mark_resolved(record: SLARecord, resolved_at: datetime) -> SLARecord:
        """Stop the resolution clock; the first stop wins."""
        if record.resolved_at is not None:
            return record
        return replace(record, resolved_at=resolved_at, updated_at=resolved_at)

    def finalize(self, record: SLARecord, closed_at: datetime) -> SLARecord:
        """
        Freeze compliance at close.

        A still-paused record is resumed first. ``resolution_met`` stays
        None when the resolution clock never started.
        """
        if record.is_finalized:
            return record

        record = self.resume(record, closed_at)
        record = self.update_status(record, closed_at)
        return replace(
            record,
            response_met=not record.response_breached,
            resolution_met=(not record.resolution_breached) if record.has_resolution_clock else None,
            finalized_at=closed_at,
            updated_at=closed_at,
        )
