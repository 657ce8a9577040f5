"""
Work Order Application Layer
============================

Application services and repository interfaces.
"""

from src.workorders.application.services import (
    IWorkOrderRepository,
    TransitionResult,
    WorkOrderLifecycleService,
    REOPEN_ACTION,
)

__all__ = [
    "IWorkOrderRepository",
    "TransitionResult",
    "WorkOrderLifecycleService",
    "REOPEN_ACTION",
]
