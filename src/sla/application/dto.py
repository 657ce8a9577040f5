"""
SLA Application DTOs
=====================

Data Transfer Objects passed from the SLA sweep to its collaborators.

These Pydantic models describe what the notification dispatcher receives
and what a sweep reports. Following YAGNI - only what's needed.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

NotificationKindStr = Literal["warning", "breach", "escalation", "priority_escalation"]
SLAKindStr = Literal["response", "completion"]


class SLANotification(BaseModel):
    """One notification the dispatcher should deliver."""
    work_order_id: str = Field(..., description="Work order the notification is about")
    work_order_number: str = Field(..., description="Human-facing work order number")
    kind: NotificationKindStr = Field(..., description="Notification category")
    action: str = Field(..., description="Configured action name, e.g. notify_manager")
    sla_kind: Optional[SLAKindStr] = Field(None, description="Clock that triggered it")
    priority: str = Field(..., description="Work order priority")
    escalation_level: str = Field(..., description="Escalation level after this sweep")
    recipients: List[str] = Field(default_factory=list, description="Role names")
    deadline: Optional[datetime] = Field(None, description="Stored deadline of the clock")
    remaining: Optional[str] = Field(None, description="Formatted remaining or overdue time")
    triggered_at: datetime = Field(..., description="Sweep instant")


class SweepSummary(BaseModel):
    """Counts reported by one sweep."""
    started_at: datetime
    evaluated: int = 0
    breached: int = 0
    at_risk: int = 0
    notifications_sent: int = 0
    escalated: int = 0
    priorities_escalated: int = 0
    conflicts: int = 0
    errors: int = 0
