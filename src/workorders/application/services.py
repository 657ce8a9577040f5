"""
Work Order Application Services
===============================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: the lifecycle service only applies actions
- Dependency Inversion: depends on the repository and clock abstractions
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional

from src.config import WorkOrderAction, WorkOrderStatus, coerce_enum
from src.core.exceptions import InvalidTransitionException
from src.shared.infrastructure.clock import Clock, SystemClock
from src.shared.infrastructure.logging import get_context_logger
from src.sla.domain import SLARecord, SLATracker
from src.workorders.domain import WorkOrder, StatusChange, TransitionTable, MAINTENANCE_TRANSITIONS

REOPEN_ACTION = "reopen_wo"

_PAUSING_ACTIONS = (WorkOrderAction.PUT_ON_HOLD, WorkOrderAction.REQUEST_PARTS)
_RESUMING_ACTIONS = (WorkOrderAction.RESUME_WORK, WorkOrderAction.RECEIVE_PARTS)
_RESPONDING_ACTIONS = (WorkOrderAction.APPROVE_WO, WorkOrderAction.REJECT_WO)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkOrderRepository(ABC):
    """Interface for work order data access."""

    @abstractmethod
    async def get(self, work_order_id: str) -> WorkOrder:
        """Get work order by ID; raises ResourceNotFoundException."""

    @abstractmethod
    async def add(self, work_order: WorkOrder) -> WorkOrder:
        """Store a new work order."""

    @abstractmethod
    async def save(self, work_order: WorkOrder, expected_version: int) -> WorkOrder:
        """
        Persist ``work_order`` if the stored version still equals
        ``expected_version``; raises ConcurrencyConflictException otherwise.
        """

    @abstractmethod
    async def list_active(self, statuses: Iterable[WorkOrderStatus]) -> List[WorkOrder]:
        """List work orders whose status is in ``statuses``."""


# ========== Results ==========

@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one applied action."""
    work_order: WorkOrder
    action: str
    from_status: WorkOrderStatus
    to_status: WorkOrderStatus
    change: Optional[StatusChange] = None

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


# ========== Application Services ==========

class WorkOrderLifecycleService:
    """
    Applies user actions to work orders.

    Each call is one read-modify-write: load, validate against the
    transition table, stamp timestamps, drive the SLA clocks, refresh the
    SLA status and save with the version that was read.
    """

    def __init__(
        self,
        repository: IWorkOrderRepository,
        tracker: SLATracker,
        clock: Optional[Clock] = None,
        table: TransitionTable = MAINTENANCE_TRANSITIONS
    ):
        self._repository = repository
        self._tracker = tracker
        self._clock = clock or SystemClock()
        self._table = table

    async def perform(
        self,
        work_order_id: str,
        action,
        actor: str,
        reason: Optional[str] = None,
        assignee: Optional[str] = None
    ) -> TransitionResult:
        """
        Apply ``action`` to a work order.

        Args:
            work_order_id: Work order to act on
            action: WorkOrderAction member, value or name
            actor: User performing the action
            reason: Optional note stored in the status history
            assignee: Technician for assign/reassign

        Returns:
            TransitionResult with the saved work order

        Raises:
            ResourceNotFoundException: Unknown work order
            InvalidTransitionException: Action not allowed from current status
            ConcurrencyConflictException: Work order changed since it was read
        """
        action = coerce_enum(WorkOrderAction, action)
        work_order = await self._repository.get(work_order_id)
        log = get_context_logger(__name__, work_order.id)

        from_status = work_order.status
        to_status = self._table.next_status(action, from_status)
        now = self._clock.now()
        expected_version = work_order.version

        work_order.stamp(action, now)
        if assignee is not None and action in (WorkOrderAction.ASSIGN_WO, WorkOrderAction.REASSIGN_WO):
            work_order.assigned_to = assignee

        work_order.sla = self._apply_sla(work_order, action, now)

        change = None
        if self._table.moves(action, from_status):
            change = work_order.record_change(to_status, actor, now, action=action, reason=reason)

        saved = await self._repository.save(work_order, expected_version=expected_version)

        log.info(
            "Work order action applied",
            extra={
                "action": action,
                "from_status": from_status,
                "to_status": to_status,
                "actor": actor,
                "change": change.to_dict() if change else None,
            }
        )
        return TransitionResult(saved, action.value, from_status, to_status, change)

    def _apply_sla(self, work_order: WorkOrder, action: WorkOrderAction, now) -> Optional[SLARecord]:
        tracker = self._tracker
        record = work_order.sla

        if action == WorkOrderAction.SUBMIT_WO and record is None:
            return tracker.initialize_sla(work_order)
        if record is None:
            return None

        if action in _RESPONDING_ACTIONS:
            record = tracker.mark_responded(record, now)
        if action == WorkOrderAction.APPROVE_WO:
            record = tracker.start_completion_clock(record, now)
        elif action in _PAUSING_ACTIONS:
            record = tracker.pause(record, now)
        elif action in _RESUMING_ACTIONS:
            record = tracker.resume(record, now)
        elif action == WorkOrderAction.COMPLETE_WORK:
            record = tracker.mark_resolved(record, now)
        elif action == WorkOrderAction.CLOSE_WO:
            return tracker.finalize(record, now)

        return tracker.update_status(record, now)

    async def reopen(self, work_order_id: str, actor: str, reason: Optional[str] = None) -> TransitionResult:
        """
        Reopen a closed work order.

        Moves it back to In Progress and starts a fresh SLA record from now;
        earlier breaches are not carried over.

        Raises:
            InvalidTransitionException: If the work order is not Closed
        """
        work_order = await self._repository.get(work_order_id)
        from_status = work_order.status
        if from_status != WorkOrderStatus.CLOSED:
            raise InvalidTransitionException(
                REOPEN_ACTION, from_status, self._table.allowed_actions(from_status)
            )

        now = self._clock.now()
        expected_version = work_order.version

        work_order.reopen_count += 1
        work_order.reopened_at = now
        work_order.sla = self._tracker.initialize_sla(work_order, started_at=now)
        change = work_order.record_change(
            WorkOrderStatus.IN_PROGRESS, actor, now, reason=reason or "Reopened"
        )

        saved = await self._repository.save(work_order, expected_version=expected_version)

        get_context_logger(__name__, work_order.id).info(
            "Work order reopened",
            extra={"actor": actor, "reopen_count": saved.reopen_count}
        )
        return TransitionResult(saved, REOPEN_ACTION, from_status, WorkOrderStatus.IN_PROGRESS, change)
