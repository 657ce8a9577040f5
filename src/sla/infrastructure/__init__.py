"""
SLA Infrastructure Layer
=========================

Concrete implementations of the SLA collaborator interfaces:
- SLAConfigManager: YAML configuration
- LoggingNotificationDispatcher: notifications to the structured log
- SLAScheduler: APScheduler sweep job
"""

from src.sla.infrastructure.external import (
    SLAConfigManager,
    LoggingNotificationDispatcher,
    SLAScheduler,
)

__all__ = [
    "SLAConfigManager",
    "LoggingNotificationDispatcher",
    "SLAScheduler",
]
