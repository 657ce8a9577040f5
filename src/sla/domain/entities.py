"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

``SLARecord`` is a frozen dataclass: every tracker and policy operation
returns a new record built with ``dataclasses.replace``. Stored deadlines
never move; pause compensation is applied when the record is evaluated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from src.config import (
    Priority, WorkOrderType, SLAKind, SLAState, EscalationLevel
)


@dataclass(frozen=True)
class SLARecord:
    """
    Per-work-order SLA state for the response and resolution clocks.

    The response clock starts at submission; the resolution clock starts at
    approval, so ``resolve_by`` stays unset until then.
    """

    # Identity and the inputs used for the budget lookup
    work_order_id: str
    priority: Priority
    work_order_type: WorkOrderType

    # Response clock
    response_by: datetime
    response_started_at: datetime
    response_budget_minutes: int
    response_business_hours_only: bool = True

    # Resolution clock
    resolve_by: Optional[datetime] = None
    resolution_started_at: Optional[datetime] = None
    resolution_budget_minutes: int = 0
    resolution_business_hours_only: bool = True

    # Status
    response_status: SLAState = SLAState.ON_TRACK
    resolution_status: SLAState = SLAState.ON_TRACK
    response_breached: bool = False
    resolution_breached: bool = False
    breach_minutes: int = 0
    response_breach_minutes: int = 0
    response_breached_at: Optional[datetime] = None
    resolution_breached_at: Optional[datetime] = None

    # Stop events
    responded_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    # Pause
    is_paused: bool = False
    pause_start_at: Optional[datetime] = None
    total_pause_minutes: int = 0

    # Escalation
    escalation_level: EscalationLevel = EscalationLevel.NONE
    escalated_at: Optional[datetime] = None
    escalated_to: Tuple[str, ...] = field(default_factory=tuple)
    response_warnings_sent: int = 0
    resolution_warnings_sent: int = 0
    response_breach_actions_fired: int = 0
    resolution_breach_actions_fired: int = 0
    auto_escalated: bool = False

    # Compliance, frozen at close
    response_met: Optional[bool] = None
    resolution_met: Optional[bool] = None
    finalized_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate pause bookkeeping."""
        if self.is_paused and self.pause_start_at is None:
            raise ValueError("paused record requires pause_start_at")
        if not self.is_paused and self.pause_start_at is not None:
            raise ValueError("pause_start_at must be cleared when not paused")
        if self.total_pause_minutes < 0:
            raise ValueError("total_pause_minutes cannot be negative")
        if self.breach_minutes < 0 or self.response_breach_minutes < 0:
            raise ValueError("breach minutes cannot be negative")

    @property
    def has_resolution_clock(self) -> bool:
        return self.resolve_by is not None

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None

    @property
    def is_any_breached(self) -> bool:
        return self.response_breached or self.resolution_breached

    @property
    def most_urgent_state(self) -> SLAState:
        """Worst of the two clock states."""
        states = (self.response_status, self.resolution_status)
        if SLAState.BREACHED in states:
            return SLAState.BREACHED
        if SLAState.AT_RISK in states:
            return SLAState.AT_RISK
        return SLAState.ON_TRACK

    def deadline_for(self, kind: SLAKind) -> Optional[datetime]:
        return self.response_by if kind == SLAKind.RESPONSE else self.resolve_by

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "work_order_id": self.work_order_id,
            "priority": self.priority.value,
            "work_order_type": self.work_order_type.value,
            "response": {
                "deadline": iso(self.response_by),
                "started_at": iso(self.response_started_at),
                "budget_minutes": self.response_budget_minutes,
                "business_hours_only": self.response_business_hours_only,
                "status": self.response_status.value,
                "breached": self.response_breached,
                "breach_minutes": self.response_breach_minutes,
                "breached_at": iso(self.response_breached_at),
                "responded_at": iso(self.responded_at),
                "warnings_sent": self.response_warnings_sent,
                "met": self.response_met,
            },
            "resolution": {
                "deadline": iso(self.resolve_by),
                "started_at": iso(self.resolution_started_at),
                "budget_minutes": self.resolution_budget_minutes,
                "business_hours_only": self.resolution_business_hours_only,
                "status": self.resolution_status.value,
                "breached": self.resolution_breached,
                "breach_minutes": self.breach_minutes,
                "breached_at": iso(self.resolution_breached_at),
                "resolved_at": iso(self.resolved_at),
                "warnings_sent": self.resolution_warnings_sent,
                "met": self.resolution_met,
            },
            "pause": {
                "is_paused": self.is_paused,
                "pause_start_at": iso(self.pause_start_at),
                "total_pause_minutes": self.total_pause_minutes,
            },
            "escalation": {
                "level": self.escalation_level.value,
                "escalated_at": iso(self.escalated_at),
                "escalated_to": list(self.escalated_to),
                "auto_escalated": self.auto_escalated,
            },
            "finalized_at": iso(self.finalized_at),
        }
