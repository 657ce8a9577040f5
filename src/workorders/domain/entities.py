"""
Work Order Domain Entities
==========================

Pure Python domain entities for the maintenance work-order lifecycle.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from src.config import (
    WorkOrderStatus, WorkOrderAction, Priority, WorkOrderType, coerce_enum
)
from src.sla.domain.entities import SLARecord

# Lifecycle timestamp stamped by each action; set once, never overwritten.
ACTION_TIMESTAMPS = {
    WorkOrderAction.SUBMIT_WO: "submitted_at",
    WorkOrderAction.APPROVE_WO: "approved_at",
    WorkOrderAction.ASSIGN_WO: "assigned_at",
    WorkOrderAction.START_WORK: "actual_start_at",
    WorkOrderAction.COMPLETE_WORK: "completed_at",
    WorkOrderAction.CLOSE_WO: "closed_at",
}


@dataclass(frozen=True)
class StatusChange:
    """One immutable entry of the status history."""
    from_status: WorkOrderStatus
    to_status: WorkOrderStatus
    changed_by: str
    changed_at: datetime
    action: Optional[WorkOrderAction] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "from": self.from_status.value,
            "to": self.to_status.value,
            "changed_by": self.changed_by,
            "changed_at": self.changed_at.isoformat(),
            "action": self.action.value if self.action else None,
            "reason": self.reason,
        }


@dataclass
class WorkOrder:
    """
    Work order entity.

    Only the fields the lifecycle and SLA core read or write. ``version``
    is the optimistic concurrency token owned by the repository.
    """

    # Core attributes
    id: str
    work_order_number: str
    title: str
    priority: Priority
    type: WorkOrderType
    created_at: datetime
    status: WorkOrderStatus = WorkOrderStatus.DRAFT

    # Lifecycle timestamps
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    actual_start_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    assigned_to: Optional[str] = None
    status_history: List[StatusChange] = field(default_factory=list)
    sla: Optional[SLARecord] = None
    reopen_count: int = 0
    reopened_at: Optional[datetime] = None
    version: int = 0

    def __post_init__(self):
        """Normalize enums and validate timestamps."""
        self.priority = coerce_enum(Priority, self.priority)
        self.type = coerce_enum(WorkOrderType, self.type)
        self.status = coerce_enum(WorkOrderStatus, self.status)

        for name in ACTION_TIMESTAMPS.values():
            stamp = getattr(self, name)
            if stamp is not None and stamp < self.created_at:
                raise ValueError(f"{name} cannot be before created_at")

    def stamp(self, action: WorkOrderAction, timestamp: datetime) -> None:
        """Set the lifecycle timestamp for ``action`` unless already set."""
        name = ACTION_TIMESTAMPS.get(action)
        if name is not None and getattr(self, name) is None:
            setattr(self, name, timestamp)

    def record_change(
        self,
        to_status: WorkOrderStatus,
        changed_by: str,
        changed_at: datetime,
        action: Optional[WorkOrderAction] = None,
        reason: Optional[str] = None
    ) -> StatusChange:
        """Append a history entry and move to ``to_status``."""
        change = StatusChange(
            from_status=self.status,
            to_status=to_status,
            changed_by=changed_by,
            changed_at=changed_at,
            action=action,
            reason=reason,
        )
        self.status_history.append(change)
        self.status = to_status
        return change
