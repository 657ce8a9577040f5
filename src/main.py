"""
Work Order SLA - Main Application
=================================

Maintenance work-order lifecycle and SLA tracking service.

Modules:
- Work Orders: lifecycle state machine and status history
- SLA: business-hours deadlines, pause/resume, breach detection and
  escalation

Clean Architecture Layers:
- Application: lifecycle service, SLA sweep
- Domain: entities, value objects, domain services
- Infrastructure: YAML config, repositories, scheduler, dispatcher

Run with ``python -m src.main``; the process runs the SLA sweep on a fixed
interval until interrupted.
"""

import asyncio
import signal
from dataclasses import dataclass
from typing import Optional

from src.config import Settings, get_settings
from src.shared.infrastructure.clock import Clock, SystemClock
from src.shared.infrastructure.logging import setup_logging, get_logger
from src.sla.application import SLAMonitorService, INotificationDispatcher
from src.sla.domain import SLATracker
from src.sla.infrastructure import SLAConfigManager, LoggingNotificationDispatcher, SLAScheduler
from src.workorders.application import IWorkOrderRepository, WorkOrderLifecycleService
from src.workorders.infrastructure import InMemoryWorkOrderRepository

logger = get_logger(__name__)


@dataclass
class Application:
    """Wired services for one process."""
    settings: Settings
    config_manager: SLAConfigManager
    repository: IWorkOrderRepository
    tracker: SLATracker
    lifecycle: WorkOrderLifecycleService
    monitor: SLAMonitorService
    scheduler: SLAScheduler


def build_application(
    settings: Optional[Settings] = None,
    repository: Optional[IWorkOrderRepository] = None,
    dispatcher: Optional[INotificationDispatcher] = None,
    clock: Optional[Clock] = None
) -> Application:
    """
    Wire the services.

    STARTUP:
    1. Load SLA configuration (fails fast on invalid YAML)
    2. Build tracker, lifecycle service and sweep
    3. Prepare the scheduler (not started)
    """
    settings = settings or get_settings()
    clock = clock or SystemClock()
    repository = repository or InMemoryWorkOrderRepository()

    config_manager = SLAConfigManager()
    config = config_manager.load(settings.sla_config_path)
    tracker = SLATracker(config)

    return Application(
        settings=settings,
        config_manager=config_manager,
        repository=repository,
        tracker=tracker,
        lifecycle=WorkOrderLifecycleService(repository, tracker, clock=clock),
        monitor=SLAMonitorService(
            repository, tracker, dispatcher or LoggingNotificationDispatcher(), clock=clock
        ),
        scheduler=SLAScheduler(
            interval_seconds=settings.sla_sweep_interval_seconds,
            run_on_start=settings.sla_sweep_on_start,
        ),
    )


async def run() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level, environment=settings.environment, service=settings.app_name)

    app = build_application(settings)
    logger.info(
        "Starting service",
        extra={"version": settings.app_version, "environment": settings.environment}
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass

    if settings.sla_sweep_enabled:
        await app.scheduler.start(app.monitor.sweep)
    else:
        logger.info("SLA sweep disabled")

    try:
        await stop.wait()
    finally:
        await app.scheduler.stop()
        logger.info("Service stopped")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
