"""
SLA Application Layer
======================

Application layer for SLA tracking.

Contains:
- Services: the periodic SLA sweep
- DTOs: notifications and sweep summaries
- Interfaces: notification dispatcher and config provider

This layer depends on the domain layer and collaborator interfaces,
but not on concrete infrastructure implementations.
"""

from src.sla.application.dto import SLANotification, SweepSummary
from src.sla.application.services import (
    SLAMonitorService,
    INotificationDispatcher,
    ISLAConfigProvider,
)

__all__ = [
    # DTOs
    "SLANotification",
    "SweepSummary",
    # Services
    "SLAMonitorService",
    # Interfaces
    "INotificationDispatcher",
    "ISLAConfigProvider",
]
