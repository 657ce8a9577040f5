"""
SLA Domain Layer
================

Domain layer for SLA tracking.

Contains:
- Entities: SLARecord (frozen, replaced on every update)
- Value Objects: SLAConfig and its calendar, budget and escalation parts
- Domain Services: BusinessCalendar, DeadlineCalculator, SLATracker,
  EscalationPolicy

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.sla.domain.calendar import BusinessCalendar
from src.sla.domain.deadlines import DeadlineCalculator, round_minutes
from src.sla.domain.entities import SLARecord
from src.sla.domain.escalation import EscalationAction, EscalationDecision, EscalationPolicy
from src.sla.domain.tracker import SLATracker
from src.sla.domain.value_objects import (
    SLAConfig,
    CalendarConfig,
    LunchBreakConfig,
    SLABudget,
    PriorityBudgets,
    BudgetOverride,
    GracePeriods,
    EscalationConfig,
    EscalationBand,
    WarningThreshold,
    BreachAction,
    AutoEscalationConfig,
)

__all__ = [
    # Entities
    "SLARecord",
    # Value Objects
    "SLAConfig",
    "CalendarConfig",
    "LunchBreakConfig",
    "SLABudget",
    "PriorityBudgets",
    "BudgetOverride",
    "GracePeriods",
    "EscalationConfig",
    "EscalationBand",
    "WarningThreshold",
    "BreachAction",
    "AutoEscalationConfig",
    # Domain Services
    "BusinessCalendar",
    "DeadlineCalculator",
    "SLATracker",
    "EscalationPolicy",
    "EscalationDecision",
    "EscalationAction",
    "round_minutes",
]
