"""
Configuration Module
====================

Application settings and domain constants.

Settings are loaded from the environment with Pydantic. The SLA tables
(budgets, calendar, escalation rules) are not settings: they live in
``sla_config.yaml`` and are loaded once by ``SLAConfigManager``.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Type, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.exceptions import UnknownEnumValueException


class Settings(BaseSettings):
    """
    Process settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="workorder-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    sla_sweep_enabled: bool = Field(
        default=True,
        description="Run the periodic SLA sweep"
    )
    sla_sweep_interval_seconds: int = Field(
        default=900,
        description="Seconds between SLA sweeps",
        ge=10
    )
    sla_sweep_on_start: bool = Field(
        default=True,
        description="Run one sweep immediately when the scheduler starts"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class WorkOrderStatus(str, Enum):
    """Work order lifecycle statuses."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    PENDING_PARTS = "Pending Parts"
    COMPLETED = "Completed"
    CLOSED = "Closed"
    CANCELLED = "Cancelled"


class WorkOrderAction(str, Enum):
    """Actions a user can perform on a work order."""
    SUBMIT_WO = "submit_wo"
    APPROVE_WO = "approve_wo"
    REJECT_WO = "reject_wo"
    ASSIGN_WO = "assign_wo"
    REASSIGN_WO = "reassign_wo"
    START_WORK = "start_work"
    PUT_ON_HOLD = "put_on_hold"
    RESUME_WORK = "resume_work"
    REQUEST_PARTS = "request_parts"
    RECEIVE_PARTS = "receive_parts"
    COMPLETE_WORK = "complete_work"
    CLOSE_WO = "close_wo"
    CANCEL_WO = "cancel_wo"
    ADD_COMMENT = "add_comment"
    UPDATE_PROGRESS = "update_progress"
    ATTACH_FILE = "attach_file"


class Priority(str, Enum):
    """Work order priority levels."""
    EMERGENCY = "Emergency"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class WorkOrderType(str, Enum):
    """Work order types."""
    BREAKDOWN = "Breakdown"
    PREVENTIVE = "Preventive"
    INSPECTION = "Inspection"
    PROJECT = "Project"
    SAFETY = "Safety"


class SLAKind(str, Enum):
    """Types of SLA clocks."""
    RESPONSE = "response"
    COMPLETION = "completion"


class SLAState(str, Enum):
    """SLA status states."""
    ON_TRACK = "On Track"
    AT_RISK = "At Risk"
    BREACHED = "Breached"


class EscalationLevel(str, Enum):
    """Escalation tiers, ordered by severity."""
    NONE = "None"
    LEVEL_1 = "Level 1"
    LEVEL_2 = "Level 2"
    LEVEL_3 = "Level 3"


# ========== Orderings ==========

# Lowest to highest urgency; auto-escalation walks this list upward.
PRIORITY_ORDER = [Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.EMERGENCY]
ESCALATION_ORDER = [
    EscalationLevel.NONE, EscalationLevel.LEVEL_1,
    EscalationLevel.LEVEL_2, EscalationLevel.LEVEL_3
]

# Statuses the sweep re-evaluates.
ACTIVE_STATUSES = [
    WorkOrderStatus.SUBMITTED, WorkOrderStatus.APPROVED,
    WorkOrderStatus.ASSIGNED, WorkOrderStatus.IN_PROGRESS,
    WorkOrderStatus.ON_HOLD, WorkOrderStatus.PENDING_PARTS,
]


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value) -> E:
    """
    Convert a raw value into a member of ``enum_cls``.

    Accepts members, values ("In Progress") and member names
    ("IN_PROGRESS"). Anything else is a caller bug.

    Raises:
        UnknownEnumValueException: If the value is not recognized
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    if isinstance(value, str) and value.upper() in enum_cls.__members__:
        return enum_cls[value.upper()]
    raise UnknownEnumValueException(enum_cls.__name__, value)
