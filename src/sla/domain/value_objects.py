"""
SLA Value Objects
==================

Immutable configuration value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are built once at process start (see ``SLAConfigManager``) and passed
explicitly into the calendar, the tracker and the escalation policy.

Budget precedence for a (priority, type, clock) lookup:

    type + priority override  >  priority default  >  fallback priority

Defaults reproduce the production tables: 08:00-17:00 with a 12:00-13:00
lunch, Monday to Saturday, Asia/Ho_Chi_Minh.
"""

from datetime import date, time
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.config import (
    Priority, WorkOrderType, SLAKind, EscalationLevel,
    ESCALATION_ORDER, coerce_enum
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ========== Calendar ==========

class LunchBreakConfig(_Frozen):
    """Daily break excluded from business time."""
    enabled: bool = True
    start: time = time(12, 0)
    end: time = time(13, 0)


class CalendarConfig(_Frozen):
    """
    Working calendar.

    ``working_days`` uses Python weekday numbering (Monday=0 ... Sunday=6).
    An empty list is accepted here and rejected by ``BusinessCalendar``.
    """
    timezone: str = Field(default="Asia/Ho_Chi_Minh", description="IANA timezone name")
    working_days: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4, 5])
    start: time = time(8, 0)
    end: time = time(17, 0)
    lunch_break: LunchBreakConfig = Field(default_factory=LunchBreakConfig)
    holidays: List[date] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, v: List[int]) -> List[int]:
        """Weekdays must be 0-6; duplicates are dropped."""
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError(f"working day out of range 0-6: {day}")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_window(self) -> "CalendarConfig":
        if self.end <= self.start:
            raise ValueError("business hours end must be after start")
        lunch = self.lunch_break
        if lunch.enabled:
            if lunch.end <= lunch.start:
                raise ValueError("lunch break end must be after start")
            if lunch.start < self.start or lunch.end > self.end:
                raise ValueError("lunch break must fall inside business hours")
        return self


# ========== Budgets ==========

class SLABudget(_Frozen):
    """
    A single clock budget.

    YAML may give either ``minutes`` or ``hours``; hours are converted.
    """
    minutes: int
    business_hours_only: bool = True

    @model_validator(mode="before")
    @classmethod
    def convert_hours(cls, data):
        if isinstance(data, dict) and "hours" in data:
            data = dict(data)
            hours = data.pop("hours")
            if "minutes" in data:
                raise ValueError("give either minutes or hours, not both")
            data["minutes"] = int(round(float(hours) * 60))
        return data


class PriorityBudgets(_Frozen):
    """Response and completion budgets for one priority."""
    response: SLABudget
    completion: SLABudget


class BudgetOverride(_Frozen):
    """Type-specific override; either clock may be left to the priority default."""
    response: Optional[SLABudget] = None
    completion: Optional[SLABudget] = None


class GracePeriods(_Frozen):
    """Minutes added to business-hours budgets before the deadline walk."""
    response: int = Field(default=0, ge=0)
    completion: int = Field(default=0, ge=0)

    def for_kind(self, kind: SLAKind) -> int:
        return self.response if kind == SLAKind.RESPONSE else self.completion


def _default_priority_budgets() -> Dict[Priority, PriorityBudgets]:
    return {
        Priority.EMERGENCY: PriorityBudgets(
            response=SLABudget(minutes=15, business_hours_only=False),
            completion=SLABudget(minutes=4 * 60, business_hours_only=False),
        ),
        Priority.HIGH: PriorityBudgets(
            response=SLABudget(minutes=60),
            completion=SLABudget(minutes=24 * 60),
        ),
        Priority.MEDIUM: PriorityBudgets(
            response=SLABudget(minutes=240),
            completion=SLABudget(minutes=72 * 60),
        ),
        Priority.LOW: PriorityBudgets(
            response=SLABudget(minutes=480),
            completion=SLABudget(minutes=168 * 60),
        ),
    }


def _default_type_overrides() -> Dict[WorkOrderType, Dict[Priority, BudgetOverride]]:
    return {
        WorkOrderType.BREAKDOWN: {
            Priority.MEDIUM: BudgetOverride(
                response=SLABudget(minutes=120),
                completion=SLABudget(minutes=48 * 60),
            ),
            Priority.LOW: BudgetOverride(
                response=SLABudget(minutes=240),
                completion=SLABudget(minutes=120 * 60),
            ),
        },
        WorkOrderType.SAFETY: {
            Priority.HIGH: BudgetOverride(
                response=SLABudget(minutes=15, business_hours_only=False),
                completion=SLABudget(minutes=8 * 60, business_hours_only=False),
            ),
            Priority.MEDIUM: BudgetOverride(
                response=SLABudget(minutes=30, business_hours_only=False),
                completion=SLABudget(minutes=12 * 60, business_hours_only=False),
            ),
        },
        WorkOrderType.PREVENTIVE: {
            Priority.MEDIUM: BudgetOverride(
                response=SLABudget(minutes=480),
                completion=SLABudget(minutes=120 * 60),
            ),
        },
    }


# ========== Escalation ==========

class WarningThreshold(_Frozen):
    """Pre-breach notification fired when elapsed percent reaches ``percent``."""
    percent: int = Field(gt=0, le=100)
    action: str


class BreachAction(_Frozen):
    """Post-breach action due ``delay_minutes`` after the deadline."""
    action: str
    delay_minutes: int = Field(ge=0)


class EscalationBand(_Frozen):
    """Escalation tier reached once breach duration passes ``after_minutes``."""
    level: EscalationLevel
    after_minutes: int = Field(ge=0)
    notify: List[str] = Field(default_factory=list, description="Role names")


class AutoEscalationConfig(_Frozen):
    """One-shot priority promotion for long breaches."""
    enabled: bool = True
    after_minutes: int = Field(default=120, ge=0)
    max_priority: Priority = Priority.HIGH


def _default_warning_thresholds() -> List[WarningThreshold]:
    return [
        WarningThreshold(percent=50, action="warning_notification"),
        WarningThreshold(percent=75, action="urgent_notification"),
        WarningThreshold(percent=90, action="critical_notification"),
    ]


def _default_breach_actions() -> Dict[SLAKind, List[BreachAction]]:
    return {
        SLAKind.RESPONSE: [
            BreachAction(action="notify_supervisor", delay_minutes=0),
            BreachAction(action="notify_manager", delay_minutes=30),
            BreachAction(action="create_incident_report", delay_minutes=60),
        ],
        SLAKind.COMPLETION: [
            BreachAction(action="notify_supervisor", delay_minutes=0),
            BreachAction(action="notify_department_head", delay_minutes=60),
            BreachAction(action="escalate_priority", delay_minutes=120),
        ],
    }


def _default_escalation_bands() -> List[EscalationBand]:
    return [
        EscalationBand(level=EscalationLevel.LEVEL_1, after_minutes=0,
                       notify=["supervisor"]),
        EscalationBand(level=EscalationLevel.LEVEL_2, after_minutes=15,
                       notify=["supervisor", "manager"]),
        EscalationBand(level=EscalationLevel.LEVEL_3, after_minutes=30,
                       notify=["supervisor", "manager", "admin"]),
    ]


class EscalationConfig(_Frozen):
    """
    Escalation rules.

    Thresholds, ladders and bands are kept sorted so that the monotonic
    counters on ``SLARecord`` can index into them.
    """
    enabled: bool = True
    warning_thresholds: List[WarningThreshold] = Field(default_factory=_default_warning_thresholds)
    breach_actions: Dict[SLAKind, List[BreachAction]] = Field(default_factory=_default_breach_actions)
    levels: List[EscalationBand] = Field(default_factory=_default_escalation_bands)
    auto_escalation: AutoEscalationConfig = Field(default_factory=AutoEscalationConfig)

    @field_validator("warning_thresholds")
    @classmethod
    def sort_thresholds(cls, v: List[WarningThreshold]) -> List[WarningThreshold]:
        percents = [t.percent for t in v]
        if len(set(percents)) != len(percents):
            raise ValueError("warning threshold percents must be unique")
        return sorted(v, key=lambda t: t.percent)

    @field_validator("breach_actions")
    @classmethod
    def sort_ladders(cls, v: Dict[SLAKind, List[BreachAction]]) -> Dict[SLAKind, List[BreachAction]]:
        ladders = {kind: sorted(actions, key=lambda a: a.delay_minutes) for kind, actions in v.items()}
        for kind in SLAKind:
            ladders.setdefault(kind, [])
        return ladders

    @field_validator("levels")
    @classmethod
    def validate_levels(cls, v: List[EscalationBand]) -> List[EscalationBand]:
        if any(band.level == EscalationLevel.NONE for band in v):
            raise ValueError("escalation bands cannot use level 'None'")
        ordered = sorted(v, key=lambda b: ESCALATION_ORDER.index(b.level))
        if len({b.level for b in ordered}) != len(ordered):
            raise ValueError("escalation levels must be unique")
        minutes = [b.after_minutes for b in ordered]
        if minutes != sorted(minutes):
            raise ValueError("escalation bands must start later for higher levels")
        return ordered


# ========== Root ==========

class SLAConfig(BaseModel):
    """
    SLA configuration loaded from YAML.

    This is a value object - immutable and defined by its attributes.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    priorities: Dict[Priority, PriorityBudgets] = Field(
        default_factory=_default_priority_budgets,
        description="Default budgets by priority"
    )
    type_overrides: Dict[WorkOrderType, Dict[Priority, BudgetOverride]] = Field(
        default_factory=_default_type_overrides,
        description="Budgets for specific type + priority pairs"
    )
    fallback_priority: Priority = Priority.MEDIUM
    grace_periods: GracePeriods = Field(default_factory=GracePeriods)
    warning_threshold: float = Field(
        default=0.8, gt=0, le=1,
        description="Elapsed fraction at which a clock turns At Risk"
    )
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)

    @model_validator(mode="after")
    def validate_fallback(self) -> "SLAConfig":
        """Priorities absent from ``priorities`` use the fallback, so it must exist."""
        if self.fallback_priority not in self.priorities:
            raise ValueError(
                f"fallback priority '{self.fallback_priority.value}' has no budgets"
            )
        return self

    def resolve_budget(self, priority, work_order_type, kind) -> SLABudget:
        """
        Resolve the budget for one clock.

        Args:
            priority: Priority member, value or name
            work_order_type: WorkOrderType member, value or name
            kind: SLAKind member, value or name

        Returns:
            The most specific configured budget

        Raises:
            UnknownEnumValueException: For unrecognized inputs
        """
        priority = coerce_enum(Priority, priority)
        work_order_type = coerce_enum(WorkOrderType, work_order_type)
        kind = coerce_enum(SLAKind, kind)

        override = self.type_overrides.get(work_order_type, {}).get(priority)
        if override is not None:
            budget = getattr(override, kind.value)
            if budget is not None:
                return budget

        budgets = self.priorities.get(priority) or self.priorities[self.fallback_priority]
        return getattr(budgets, kind.value)

    def get_grace_minutes(self, kind) -> int:
        return self.grace_periods.for_kind(coerce_enum(SLAKind, kind))
