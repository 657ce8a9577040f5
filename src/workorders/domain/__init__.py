"""
Work Order Domain Layer
=======================

Contains:
- Entities: WorkOrder, StatusChange
- TransitionTable and the default maintenance state machine
"""

from src.workorders.domain.entities import WorkOrder, StatusChange, ACTION_TIMESTAMPS
from src.workorders.domain.transitions import (
    TransitionRule,
    TransitionTable,
    MAINTENANCE_TRANSITIONS,
    validate_transition,
    next_status,
)

__all__ = [
    "WorkOrder",
    "StatusChange",
    "ACTION_TIMESTAMPS",
    "TransitionRule",
    "TransitionTable",
    "MAINTENANCE_TRANSITIONS",
    "validate_transition",
    "next_status",
]
