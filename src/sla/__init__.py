"""
SLA Tracking Module
===================

Bounded Context for work-order response and completion SLAs.

Responsibilities:
- Compute business-hours-aware deadlines from layered budgets
- Track pause/resume and stop events on a per-work-order SLA record
- Recompute On Track / At Risk / Breached status
- Recommend warnings, breach actions, escalation levels and priority
  promotion
- Run the periodic sweep over active work orders

The functions below are the entry points for callers that hold a
configuration object; they build the domain services on each call.
"""

from datetime import datetime
from typing import Optional

from src.sla.domain import (
    SLAConfig, SLARecord, SLATracker, EscalationPolicy, EscalationDecision
)

__version__ = "1.0.0"


def initialize_sla(work_order, config: SLAConfig, started_at: Optional[datetime] = None) -> SLARecord:
    """Create the SLA record for ``work_order``."""
    return SLATracker(config).initialize_sla(work_order, started_at=started_at)


def update_sla_status(record: SLARecord, now: datetime, config: SLAConfig) -> SLARecord:
    """Recompute clock states and breach minutes at ``now``."""
    return SLATracker(config).update_status(record, now)


def pause_sla(record: SLARecord, now: datetime) -> SLARecord:
    return SLATracker.pause(record, now)


def resume_sla(record: SLARecord, now: datetime) -> SLARecord:
    return SLATracker.resume(record, now)


def evaluate_escalation(
    record: SLARecord,
    now: datetime,
    config: SLAConfig,
    priority=None
) -> EscalationDecision:
    """Recommend what is newly due for an already refreshed record."""
    return EscalationPolicy(SLATracker(config)).evaluate(record, now, priority=priority)


__all__ = [
    "initialize_sla",
    "update_sla_status",
    "pause_sla",
    "resume_sla",
    "evaluate_escalation",
]
