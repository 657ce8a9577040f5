"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain services and repositories.

Following SOLID principles:
- Single Responsibility: the monitor only sweeps; the lifecycle service
  handles user actions
- Dependency Inversion: depends on repository, dispatcher and clock
  abstractions, not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from src.config import ACTIVE_STATUSES, SLAKind, SLAState
from src.core.exceptions import ApplicationException, ConcurrencyConflictException
from src.shared.infrastructure.clock import Clock, SystemClock
from src.shared.infrastructure.logging import get_logger, get_context_logger, log_latency
from src.sla.application.dto import SLANotification, SweepSummary
from src.sla.domain import (
    EscalationDecision, EscalationPolicy, SLAConfig, SLARecord, SLATracker
)
from src.workorders.application.services import IWorkOrderRepository
from src.workorders.domain import WorkOrder

logger = get_logger(__name__)

WARNING_RECIPIENTS = ["assignee"]


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class INotificationDispatcher(ABC):
    """Interface for notification delivery."""

    @abstractmethod
    async def send(self, notification: SLANotification) -> bool:
        """Deliver one notification. Returns True if accepted."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


# ========== Application Services ==========

class SLAMonitorService:
    """
    Periodic SLA sweep over active work orders.

    For each work order: refresh the SLA record, evaluate escalation, save
    with the version that was read, then dispatch. A version conflict means a
    user action won the race; the work order is skipped and picked up on
    the next sweep.
    """

    def __init__(
        self,
        repository: IWorkOrderRepository,
        tracker: SLATracker,
        dispatcher: INotificationDispatcher,
        clock: Optional[Clock] = None,
        policy: Optional[EscalationPolicy] = None
    ):
        self._repository = repository
        self._tracker = tracker
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._policy = policy or EscalationPolicy(tracker)

    async def sweep(self) -> SweepSummary:
        """
        Evaluate every active work order once.

        Returns:
            SweepSummary with per-outcome counts
        """
        now = self._clock.now()
        summary = SweepSummary(started_at=now)
        work_orders = await self._repository.list_active(ACTIVE_STATUSES)

        with log_latency(logger, "sla_sweep", work_orders=len(work_orders)):
            for work_order in work_orders:
                if work_order.sla is None:
                    continue
                try:
                    await self._evaluate(work_order, now, summary)
                except ConcurrencyConflictException as e:
                    summary.conflicts += 1
                    logger.warning(
                        "SLA sweep skipped work order after version conflict",
                        extra={"work_order_id": work_order.id, **e.details}
                    )
                except ApplicationException as e:
                    summary.errors += 1
                    logger.error(
                        "SLA sweep failed for work order",
                        extra={"work_order_id": work_order.id, "error": e.message, **e.details}
                    )

        logger.info("SLA sweep finished", extra=summary.model_dump(mode="json"))
        return summary

    async def _evaluate(self, work_order: WorkOrder, now: datetime, summary: SweepSummary) -> None:
        log = get_context_logger(__name__, work_order.id)
        expected_version = work_order.version

        record = self._tracker.update_status(work_order.sla, now)
        decision = self._policy.evaluate(record, now, priority=work_order.priority)
        applied = self._policy.apply_decision(record, decision, now)

        escalated = applied.escalation_level != work_order.sla.escalation_level

        work_order.sla = applied
        new_priority = decision.auto_escalate_priority_to
        if new_priority is not None:
            log.warning(
                "Auto-escalating work order priority",
                extra={"from_priority": work_order.priority, "to_priority": new_priority}
            )
            work_order.priority = new_priority

        notifications = self._build_notifications(work_order, applied, decision, now, escalated)

        await self._repository.save(work_order, expected_version=expected_version)

        summary.evaluated += 1
        if applied.is_any_breached:
            summary.breached += 1
        elif applied.most_urgent_state == SLAState.AT_RISK:
            summary.at_risk += 1
        if escalated:
            summary.escalated += 1
        if new_priority is not None:
            summary.priorities_escalated += 1

        for notification in notifications:
            if await self._dispatcher.send(notification):
                summary.notifications_sent += 1

    def _remaining(self, record: SLARecord, kind: SLAKind, now: datetime) -> Optional[str]:
        adjusted = self._tracker.adjusted_deadline(record, kind, now)
        if adjusted is None:
            return None
        business_hours_only = (
            record.response_business_hours_only if kind == SLAKind.RESPONSE
            else record.resolution_business_hours_only
        )
        calculator = self._tracker.calculator
        minutes = calculator.calculate_remaining_time(adjusted, now, business_hours_only)
        return calculator.format_remaining_time(minutes)

    def _notification(
        self,
        work_order: WorkOrder,
        record: SLARecord,
        now: datetime,
        kind: str,
        action: str,
        recipients: List[str],
        sla_kind: Optional[SLAKind] = None
    ) -> SLANotification:
        return SLANotification(
            work_order_id=work_order.id,
            work_order_number=work_order.work_order_number,
            kind=kind,
            action=action,
            sla_kind=sla_kind.value if sla_kind else None,
            priority=work_order.priority.value,
            escalation_level=record.escalation_level.value,
            recipients=recipients,
            deadline=record.deadline_for(sla_kind) if sla_kind else None,
            remaining=self._remaining(record, sla_kind, now) if sla_kind else None,
            triggered_at=now,
        )

    def _build_notifications(
        self,
        work_order: WorkOrder,
        record: SLARecord,
        decision: EscalationDecision,
        now: datetime,
        escalated: bool
    ) -> List[SLANotification]:
        targets = list(decision.escalation_targets)
        notifications: List[SLANotification] = []

        for warning in decision.warnings_to_fire:
            notifications.append(self._notification(
                work_order, record, now, "warning", warning.action,
                list(WARNING_RECIPIENTS), warning.kind
            ))
        for step in decision.breach_actions_to_fire:
            notifications.append(self._notification(
                work_order, record, now, "breach", step.action, list(decision.breach_targets), step.kind
            ))
        if escalated:
            notifications.append(self._notification(
                work_order, record, now, "escalation", "escalation_level_changed", targets
            ))
        if decision.auto_escalate_priority_to is not None:
            notifications.append(self._notification(
                work_order, record, now, "priority_escalation", "escalate_priority", targets
            ))
        return notifications
