"""
SLA External Service Integrations
==================================

Adapters around the SLA application layer:
- SLAConfigManager reads ``sla_config.yaml`` with PyYAML
- LoggingNotificationDispatcher writes notifications to the JSON log
- SLAScheduler runs the sweep on an APScheduler interval job
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import ValidationError

from src.core.exceptions import ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.sla.application.dto import SLANotification
from src.sla.application.services import INotificationDispatcher, ISLAConfigProvider
from src.sla.domain.calendar import BusinessCalendar
from src.sla.domain.value_objects import SLAConfig

logger = get_logger(__name__)

SWEEP_JOB_ID = "sla_sweep"


class SLAConfigManager(ISLAConfigProvider):
    """
    SLA configuration loaded once at process start.

    A missing file yields the built-in defaults. An unreadable or invalid
    file is a ``ConfigurationException``; the process should not start on a
    half-valid SLA table.
    """

    def __init__(self):
        self._config: Optional[SLAConfig] = None
        self._source: Optional[Path] = None

    def load(self, path) -> SLAConfig:
        """Read, validate and keep the configuration at ``path``."""
        source = Path(path)
        config = self._parse(source, self._read(source)) if source.exists() else None
        if config is None:
            logger.warning("SLA config file not found, using defaults", extra={"path": str(source)})
            config = SLAConfig()

        # The calendar rejects some configs the schema accepts (an empty week)
        BusinessCalendar(config.calendar)

        self._config, self._source = config, source
        logger.info(
            "SLA configuration loaded",
            extra={
                "path": str(source),
                "timezone": config.calendar.timezone,
                "working_days": config.calendar.working_days,
                "holidays": len(config.calendar.holidays),
            }
        )
        return config

    @staticmethod
    def _read(source: Path) -> Any:
        try:
            return yaml.safe_load(source.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationException(
                "SLA config is not valid YAML",
                {"path": str(source), "error": str(e)}
            ) from e

    @staticmethod
    def _parse(source: Path, data: Any) -> SLAConfig:
        if data is None:
            return SLAConfig()
        if not isinstance(data, dict):
            raise ConfigurationException(
                "SLA config must be a mapping",
                {"path": str(source), "type": type(data).__name__}
            )
        try:
            return SLAConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationException(
                "SLA config failed validation",
                {
                    "path": str(source),
                    "errors": e.errors(include_url=False, include_context=False, include_input=False),
                }
            ) from e

    def get_config(self) -> SLAConfig:
        return self.config

    @property
    def config(self) -> SLAConfig:
        """The loaded configuration; ``load`` must run first."""
        if self._config is None:
            raise RuntimeError("SLA configuration not loaded")
        return self._config

    @property
    def source(self) -> Optional[Path]:
        return self._source


class LoggingNotificationDispatcher(INotificationDispatcher):
    """
    Dispatcher that writes notifications to the structured log.

    Stands in for the email/chat delivery channels, which live outside
    this service.
    """

    async def send(self, notification: SLANotification) -> bool:
        level = "warning" if notification.kind == "warning" else "error"
        getattr(logger, level)(
            "SLA notification",
            extra={
                "work_order_id": notification.work_order_id,
                "notification": notification.model_dump(mode="json", exclude={"work_order_id"}),
            }
        )
        return True


class SLAScheduler:
    """
    Runs the SLA sweep every ``interval_seconds`` on the running event loop.

    One sweep at a time: a run that is still going when the next one is due
    makes the scheduler skip, and missed runs coalesce into one.
    """

    def __init__(self, interval_seconds: int = 900, run_on_start: bool = False):
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def start(self, sweep: Callable[[], Awaitable[Any]]) -> None:
        """Schedule ``sweep``; a second call while running is ignored."""
        if self.is_running:
            logger.warning("SLA scheduler already running", extra={"job_id": SWEEP_JOB_ID})
            return

        # next_run_time=None would add the job paused
        first_run = {"next_run_time": datetime.now(timezone.utc)} if self.run_on_start else {}

        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            sweep,
            IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=SWEEP_JOB_ID,
            name="SLA sweep",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            **first_run,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "SLA scheduler started",
            extra={"interval_seconds": self.interval_seconds, "run_on_start": self.run_on_start}
        )

    async def stop(self) -> None:
        """Stop scheduling and wait for a running sweep to finish."""
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        scheduler.shutdown(wait=True)
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
