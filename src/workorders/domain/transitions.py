"""
Transition Table
================

The work-order state machine as data.

Each status maps to the actions allowed from it and, for the actions that
move the work order, the status they lead to. Actions that are allowed but
not mapped (comments, attachments, progress updates) leave the status
unchanged.

The table is validated once when it is built:
- every declared status has a rule
- every mapped action is also an allowed action
- every target is a declared status
- every non-terminal status allows at least one action
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Set

from src.config import WorkOrderStatus, WorkOrderAction, coerce_enum
from src.core.exceptions import ConfigurationException, InvalidTransitionException

S = WorkOrderStatus
A = WorkOrderAction


@dataclass(frozen=True)
class TransitionRule:
    """Allowed actions from one status and where the moving ones lead."""
    allowed_actions: FrozenSet[WorkOrderAction]
    next_status: Mapping[WorkOrderAction, WorkOrderStatus] = field(default_factory=dict)


class TransitionTable:
    """Validated status -> rule mapping."""

    def __init__(
        self,
        rules: Mapping[WorkOrderStatus, TransitionRule],
        statuses: Iterable[WorkOrderStatus] = tuple(WorkOrderStatus),
        terminal_statuses: Iterable[WorkOrderStatus] = (S.CLOSED, S.CANCELLED)
    ):
        self._rules: Dict[WorkOrderStatus, TransitionRule] = dict(rules)
        self._statuses: FrozenSet[WorkOrderStatus] = frozenset(statuses)
        self._terminal: FrozenSet[WorkOrderStatus] = frozenset(terminal_statuses)
        self._validate()

    def _validate(self) -> None:
        errors: List[str] = []

        for status in self._statuses:
            if status not in self._rules:
                errors.append(f"status '{status.value}' has no rule")

        for status, rule in self._rules.items():
            if status not in self._statuses:
                errors.append(f"rule for undeclared status '{status.value}'")
            for action, target in rule.next_status.items():
                if action not in rule.allowed_actions:
                    errors.append(
                        f"'{status.value}' maps '{action.value}' but does not allow it"
                    )
                if target not in self._statuses:
                    errors.append(
                        f"'{status.value}' --{action.value}--> undeclared status '{target.value}'"
                    )
            if status in self._terminal:
                if any(target != status for target in rule.next_status.values()):
                    errors.append(f"terminal status '{status.value}' has a status-changing action")
            elif not rule.allowed_actions:
                errors.append(f"non-terminal status '{status.value}' allows no actions")

        if errors:
            raise ConfigurationException(
                "Invalid transition table",
                {"errors": sorted(errors)}
            )

    @property
    def statuses(self) -> FrozenSet[WorkOrderStatus]:
        return self._statuses

    def allowed_actions(self, status) -> List[WorkOrderAction]:
        """Actions allowed from ``status``, in declaration order of the enum."""
        status = coerce_enum(WorkOrderStatus, status)
        allowed = self._rules[status].allowed_actions
        return [action for action in WorkOrderAction if action in allowed]

    def can_perform(self, action, status) -> bool:
        action = coerce_enum(WorkOrderAction, action)
        status = coerce_enum(WorkOrderStatus, status)
        return action in self._rules[status].allowed_actions

    def validate(self, action, status) -> None:
        """
        Raises:
            InvalidTransitionException: If ``action`` is not allowed from ``status``
            UnknownEnumValueException: For unrecognized inputs
        """
        if not self.can_perform(action, status):
            raise InvalidTransitionException(
                action, status, self.allowed_actions(status)
            )

    def next_status(self, action, status) -> WorkOrderStatus:
        """Status after ``action``; unchanged for allowed but unmapped actions."""
        action = coerce_enum(WorkOrderAction, action)
        status = coerce_enum(WorkOrderStatus, status)
        self.validate(action, status)
        return self._rules[status].next_status.get(action, status)

    def moves(self, action, status) -> bool:
        """True when ``action`` is a mapped transition, self-loops included."""
        action = coerce_enum(WorkOrderAction, action)
        status = coerce_enum(WorkOrderStatus, status)
        return action in self._rules[status].next_status

    def is_terminal(self, status) -> bool:
        return coerce_enum(WorkOrderStatus, status) in self._terminal

    def reachable_from(self, status) -> Set[WorkOrderStatus]:
        """All statuses reachable from ``status``, itself included."""
        start = coerce_enum(WorkOrderStatus, status)
        seen = {start}
        frontier = [start]
        while frontier:
            current = frontier.pop()
            for target in self._rules[current].next_status.values():
                if target not in seen:
                    seen.add(target)
                    frontier.append(target)
        return seen


def _rule(allowed: Iterable[WorkOrderAction], moves: Mapping[WorkOrderAction, WorkOrderStatus]) -> TransitionRule:
    return TransitionRule(allowed_actions=frozenset(allowed), next_status=dict(moves))


MAINTENANCE_TRANSITIONS = TransitionTable({
    S.DRAFT: _rule(
        [A.SUBMIT_WO, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.SUBMIT_WO: S.SUBMITTED, A.CANCEL_WO: S.CANCELLED},
    ),
    S.SUBMITTED: _rule(
        [A.APPROVE_WO, A.REJECT_WO, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.APPROVE_WO: S.APPROVED, A.REJECT_WO: S.DRAFT, A.CANCEL_WO: S.CANCELLED},
    ),
    S.APPROVED: _rule(
        [A.ASSIGN_WO, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.ASSIGN_WO: S.ASSIGNED, A.CANCEL_WO: S.CANCELLED},
    ),
    S.ASSIGNED: _rule(
        [A.START_WORK, A.REASSIGN_WO, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.START_WORK: S.IN_PROGRESS, A.REASSIGN_WO: S.ASSIGNED, A.CANCEL_WO: S.CANCELLED},
    ),
    S.IN_PROGRESS: _rule(
        [A.PUT_ON_HOLD, A.REQUEST_PARTS, A.COMPLETE_WORK, A.REASSIGN_WO,
         A.ADD_COMMENT, A.UPDATE_PROGRESS, A.ATTACH_FILE],
        {
            A.PUT_ON_HOLD: S.ON_HOLD,
            A.REQUEST_PARTS: S.PENDING_PARTS,
            A.COMPLETE_WORK: S.COMPLETED,
            A.REASSIGN_WO: S.ASSIGNED,
        },
    ),
    S.ON_HOLD: _rule(
        [A.RESUME_WORK, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.RESUME_WORK: S.IN_PROGRESS, A.CANCEL_WO: S.CANCELLED},
    ),
    S.PENDING_PARTS: _rule(
        [A.RECEIVE_PARTS, A.CANCEL_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.RECEIVE_PARTS: S.IN_PROGRESS, A.CANCEL_WO: S.CANCELLED},
    ),
    S.COMPLETED: _rule(
        [A.CLOSE_WO, A.ADD_COMMENT, A.ATTACH_FILE],
        {A.CLOSE_WO: S.CLOSED},
    ),
    S.CLOSED: _rule([A.ADD_COMMENT, A.ATTACH_FILE], {}),
    S.CANCELLED: _rule([A.ADD_COMMENT, A.ATTACH_FILE], {}),
})


def validate_transition(action, status, table: TransitionTable = MAINTENANCE_TRANSITIONS) -> None:
    """Raise ``InvalidTransitionException`` unless ``action`` is allowed from ``status``."""
    table.validate(action, status)


def next_status(action, status, table: TransitionTable = MAINTENANCE_TRANSITIONS) -> WorkOrderStatus:
    return table.next_status(action, status)
