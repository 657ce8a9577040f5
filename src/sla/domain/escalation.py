"""
Escalation Policy
=================

Turns a refreshed ``SLARecord`` into the notifications and escalations that
are now due.

The policy only recommends. ``evaluate`` returns an ``EscalationDecision``;
the caller dispatches it, writes any promoted priority and stores the
record returned by ``apply_decision``. The record counters guarantee that a
warning or breach action is recommended at most once.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Tuple

from src.config import (
    Priority, SLAKind, EscalationLevel,
    PRIORITY_ORDER, ESCALATION_ORDER, coerce_enum
)
from src.sla.domain.entities import SLARecord
from src.sla.domain.tracker import SLATracker
from src.sla.domain.value_objects import EscalationConfig


@dataclass(frozen=True)
class EscalationAction:
    """
    One recommended notification.

    ``threshold`` is the warning percent for warnings and the delay in
    minutes for breach actions.
    """
    kind: SLAKind
    action: str
    threshold: int


@dataclass(frozen=True)
class EscalationDecision:
    """Everything newly due for a record at one evaluation instant."""
    work_order_id: str
    warnings_to_fire: Tuple[EscalationAction, ...] = field(default_factory=tuple)
    breach_actions_to_fire: Tuple[EscalationAction, ...] = field(default_factory=tuple)
    suggested_escalation_level: EscalationLevel = EscalationLevel.NONE
    escalation_targets: Tuple[str, ...] = field(default_factory=tuple)
    breach_targets: Tuple[str, ...] = field(default_factory=tuple)
    auto_escalate_priority_to: Optional[Priority] = None

    # Counter values after this decision is applied
    response_warnings_sent: int = 0
    resolution_warnings_sent: int = 0
    response_breach_actions_fired: int = 0
    resolution_breach_actions_fired: int = 0

    @property
    def has_actions(self) -> bool:
        return bool(
            self.warnings_to_fire
            or self.breach_actions_to_fire
            or self.auto_escalate_priority_to is not None
        )


class EscalationPolicy:
    """Warning thresholds, breach ladders, escalation bands and auto-escalation."""

    def __init__(self, tracker: SLATracker, config: Optional[EscalationConfig] = None):
        self._tracker = tracker
        self._config = config or tracker.config.escalation

    @property
    def config(self) -> EscalationConfig:
        return self._config

    def determine_escalation_level(self, breach_minutes: int) -> EscalationLevel:
        """Highest band whose start has passed; None when not breached."""
        if breach_minutes <= 0:
            return EscalationLevel.NONE
        level = EscalationLevel.NONE
        for band in self._config.levels:
            if breach_minutes >= band.after_minutes:
                level = band.level
        return level

    def get_escalation_targets(self, level) -> List[str]:
        """Roles notified at ``level``: every band up to it, in band order, without repeats."""
        rank = ESCALATION_ORDER.index(coerce_enum(EscalationLevel, level))
        targets: List[str] = []
        for band in self._config.levels:
            if ESCALATION_ORDER.index(band.level) > rank:
                break
            for role in band.notify:
                if role not in targets:
                    targets.append(role)
        return targets

    def breach_targets(self, level) -> List[str]:
        """
        Recipients of breach actions.

        At least the Level 1 roles: a clock can breach while its rounded
        business-time breach is still 0 minutes (just past the deadline, or
        after closing time), which leaves the level at None.
        """
        level = max(
            coerce_enum(EscalationLevel, level), EscalationLevel.LEVEL_1, key=ESCALATION_ORDER.index
        )
        return self.get_escalation_targets(level)

    def _clock_notices(
        self,
        record: SLARecord,
        kind: SLAKind,
        now: datetime,
        warnings_sent: int,
        actions_fired: int,
        breached: bool,
        breach_minutes: int
    ):
        thresholds = self._config.warning_thresholds
        ladder = self._config.breach_actions.get(kind, [])
        warnings: List[EscalationAction] = []
        actions: List[EscalationAction] = []

        if breached:
            # Pre-breach warnings are moot once the clock has breached
            warnings_sent = max(warnings_sent, len(thresholds))
            due = sum(1 for step in ladder if breach_minutes >= step.delay_minutes)
            for step in ladder[actions_fired:due]:
                actions.append(EscalationAction(kind, step.action, step.delay_minutes))
            actions_fired = max(actions_fired, due)
        elif record.deadline_for(kind) is not None:
            progress = self._tracker.elapsed_fraction(record, kind, now) * 100
            crossed = sum(1 for t in thresholds if progress >= t.percent)
            for threshold in thresholds[warnings_sent:crossed]:
                warnings.append(EscalationAction(kind, threshold.action, threshold.percent))
            warnings_sent = max(warnings_sent, crossed)

        return warnings, actions, warnings_sent, actions_fired

    def _auto_escalation_target(self, record: SLARecord, priority) -> Optional[Priority]:
        auto = self._config.auto_escalation
        if not auto.enabled or record.auto_escalated:
            return None
        if record.breach_minutes <= auto.after_minutes:
            return None

        current = coerce_enum(Priority, priority) if priority is not None else record.priority
        index = PRIORITY_ORDER.index(current)
        cap = PRIORITY_ORDER.index(auto.max_priority)
        if index >= cap:
            return None
        return PRIORITY_ORDER[index + 1]

    def evaluate(self, record: SLARecord, now: datetime, priority=None) -> EscalationDecision:
        """
        Compute what is newly due.

        Args:
            record: Record already refreshed with ``SLATracker.update_status``
            now: Evaluation instant
            priority: Current work-order priority, if it changed since the
                record was initialized

        Returns:
            EscalationDecision; empty when escalation is disabled
        """
        if not self._config.enabled or record.is_finalized:
            return EscalationDecision(
                work_order_id=record.work_order_id,
                suggested_escalation_level=record.escalation_level,
                escalation_targets=record.escalated_to,
                response_warnings_sent=record.response_warnings_sent,
                resolution_warnings_sent=record.resolution_warnings_sent,
                response_breach_actions_fired=record.response_breach_actions_fired,
                resolution_breach_actions_fired=record.resolution_breach_actions_fired,
            )

        resp_warnings, resp_actions, resp_sent, resp_fired = self._clock_notices(
            record, SLAKind.RESPONSE, now,
            record.response_warnings_sent, record.response_breach_actions_fired,
            record.response_breached, record.response_breach_minutes,
        )
        res_warnings, res_actions, res_sent, res_fired = self._clock_notices(
            record, SLAKind.COMPLETION, now,
            record.resolution_warnings_sent, record.resolution_breach_actions_fired,
            record.resolution_breached, record.breach_minutes,
        )

        computed = self.determine_escalation_level(
            max(record.breach_minutes, record.response_breach_minutes)
        )
        # Escalation never steps down
        level = max(record.escalation_level, computed, key=ESCALATION_ORDER.index)

        return EscalationDecision(
            work_order_id=record.work_order_id,
            warnings_to_fire=tuple(resp_warnings + res_warnings),
            breach_actions_to_fire=tuple(resp_actions + res_actions),
            suggested_escalation_level=level,
            escalation_targets=tuple(self.get_escalation_targets(level)),
            breach_targets=tuple(self.breach_targets(level)) if resp_actions or res_actions else (),
            auto_escalate_priority_to=self._auto_escalation_target(record, priority),
            response_warnings_sent=resp_sent,
            resolution_warnings_sent=res_sent,
            response_breach_actions_fired=resp_fired,
            resolution_breach_actions_fired=res_fired,
        )

    def apply_decision(self, record: SLARecord, decision: EscalationDecision, now: datetime) -> SLARecord:
        """Record that ``decision`` was acted on."""
        changes = {
            "response_warnings_sent": max(record.response_warnings_sent, decision.response_warnings_sent),
            "resolution_warnings_sent": max(record.resolution_warnings_sent, decision.resolution_warnings_sent),
            "response_breach_actions_fired": max(
                record.response_breach_actions_fired, decision.response_breach_actions_fired
            ),
            "resolution_breach_actions_fired": max(
                record.resolution_breach_actions_fired, decision.resolution_breach_actions_fired
            ),
        }

        if ESCALATION_ORDER.index(decision.suggested_escalation_level) > ESCALATION_ORDER.index(record.escalation_level):
            changes["escalation_level"] = decision.suggested_escalation_level
            changes["escalated_at"] = now
            changes["escalated_to"] = decision.escalation_targets

        if decision.auto_escalate_priority_to is not None:
            changes["auto_escalated"] = True

        if decision.has_actions or "escalation_level" in changes:
            changes["updated_at"] = now
        return replace(record, **changes)
