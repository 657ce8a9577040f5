"""
Tests for WorkOrderLifecycleService: actions, timestamps, SLA side effects, history and reopen.
"""
import logging

import pytest

from src.config import WorkOrderAction as A, WorkOrderStatus as S
from src.core.exceptions import (
    ConcurrencyConflictException, InvalidTransitionException, ResourceNotFoundException
)
from src.workorders.application import WorkOrderLifecycleService
from src.workorders.infrastructure import InMemoryWorkOrderRepository
from tests.conftest import at


@pytest.fixture
def repository():
    return InMemoryWorkOrderRepository()


@pytest.fixture
def service(repository, tracker, clock):
    return WorkOrderLifecycleService(repository, tracker, clock=clock)


async def _walk(service, clock, wo_id, steps):
    """Apply (minutes_later, action, kwargs) steps in order."""
    result = None
    for minutes, action, kwargs in steps:
        clock.advance(minutes=minutes)
        result = await service.perform(wo_id, action, "planner", **kwargs)
    return result


class TestPerform:
    """Single actions."""

    @pytest.mark.asyncio
    async def test_submit_starts_response_clock(self, repository, service, make_work_order):
        await repository.add(make_work_order())
        result = await service.perform("wo-1", A.SUBMIT_WO, "requester")

        wo = result.work_order
        assert result.status_changed
        assert wo.status == S.SUBMITTED
        assert wo.submitted_at == at(2025, 3, 3, 9)
        assert wo.sla.response_by == at(2025, 3, 3, 10)
        assert wo.sla.resolve_by is None
        assert wo.version == 1

    @pytest.mark.asyncio
    async def test_approve_responds_and_starts_completion(self, repository, service, clock, make_work_order):
        await repository.add(make_work_order())
        await service.perform("wo-1", A.SUBMIT_WO, "requester")
        clock.advance(minutes=20)
        wo = (await service.perform("wo-1", "approve_wo", "supervisor")).work_order

        assert wo.approved_at == at(2025, 3, 3, 9, 20)
        assert wo.sla.responded_at == at(2025, 3, 3, 9, 20)
        assert wo.sla.resolution_started_at == at(2025, 3, 3, 9, 20)

    @pytest.mark.asyncio
    async def test_reject_counts_as_response(self, repository, service, clock, make_work_order):
        await repository.add(make_work_order())
        await service.perform("wo-1", A.SUBMIT_WO, "requester")
        clock.advance(minutes=10)
        result = await service.perform("wo-1", A.REJECT_WO, "supervisor", reason="Missing asset tag")

        assert result.to_status == S.DRAFT
        assert result.work_order.sla.responded_at == at(2025, 3, 3, 9, 10)
        assert result.change.reason == "Missing asset tag"

    @pytest.mark.asyncio
    async def test_timestamps_set_once(self, repository, service, clock, make_work_order):
        """Resubmitting after a rejection keeps the first submission time and SLA."""
        await repository.add(make_work_order())
        first = (await service.perform("wo-1", A.SUBMIT_WO, "requester")).work_order
        clock.advance(minutes=10)
        await service.perform("wo-1", A.REJECT_WO, "supervisor")
        clock.advance(minutes=20)
        again = (await service.perform("wo-1", A.SUBMIT_WO, "requester")).work_order

        assert again.submitted_at == at(2025, 3, 3, 9)
        assert again.sla.response_by == first.sla.response_by

    @pytest.mark.asyncio
    async def test_assign_sets_assignee(self, repository, service, make_work_order):
        await repository.add(make_work_order(status=S.APPROVED))
        wo = (await service.perform("wo-1", A.ASSIGN_WO, "supervisor", assignee="tech-7")).work_order
        assert wo.assigned_to == "tech-7"
        assert wo.assigned_at == at(2025, 3, 3, 9)

    @pytest.mark.asyncio
    async def test_reassign_is_recorded(self, repository, service, make_work_order):
        await repository.add(make_work_order(status=S.ASSIGNED, assigned_to="tech-7"))
        result = await service.perform("wo-1", A.REASSIGN_WO, "supervisor", assignee="tech-9")

        assert result.work_order.assigned_to == "tech-9"
        assert not result.status_changed
        assert result.change.from_status == S.ASSIGNED
        assert result.change.to_status == S.ASSIGNED

    @pytest.mark.asyncio
    async def test_applied_action_logs_history_entry(self, repository, service, make_work_order, caplog):
        await repository.add(make_work_order())
        with caplog.at_level(logging.INFO, logger="src.workorders"):
            await service.perform("wo-1", A.SUBMIT_WO, "requester")

        [record] = [r for r in caplog.records if r.getMessage() == "Work order action applied"]
        assert record.work_order_id == "wo-1"
        assert record.change == {
            "from": "Draft",
            "to": "Submitted",
            "changed_by": "requester",
            "changed_at": "2025-03-03T09:00:00+07:00",
            "action": "submit_wo",
            "reason": None,
        }

    @pytest.mark.asyncio
    async def test_comment_leaves_no_history(self, repository, service, make_work_order):
        await repository.add(make_work_order())
        result = await service.perform("wo-1", A.ADD_COMMENT, "technician")

        assert result.change is None
        assert result.work_order.status == S.DRAFT
        assert result.work_order.status_history == []

    @pytest.mark.asyncio
    async def test_invalid_action_is_rejected(self, repository, service, make_work_order):
        await repository.add(make_work_order())
        with pytest.raises(InvalidTransitionException) as exc:
            await service.perform("wo-1", A.CLOSE_WO, "planner")

        assert exc.value.status == "Draft"
        stored = await repository.get("wo-1")
        assert stored.version == 0
        assert stored.status == S.DRAFT

    @pytest.mark.asyncio
    async def test_cancel_keeps_deadlines(self, repository, service, clock, make_work_order):
        await repository.add(make_work_order())
        submitted = (await service.perform("wo-1", A.SUBMIT_WO, "requester")).work_order
        clock.advance(minutes=5)
        cancelled = (await service.perform("wo-1", A.CANCEL_WO, "requester")).work_order

        assert cancelled.status == S.CANCELLED
        assert cancelled.sla.response_by == submitted.sla.response_by
        assert not cancelled.sla.is_finalized

    @pytest.mark.asyncio
    async def test_unknown_work_order(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.perform("wo-404", A.SUBMIT_WO, "requester")


class TestFullLifecycle:
    """Draft to Closed with a hold, then reopen."""

    STEPS = [
        (0, A.SUBMIT_WO, {}),
        (20, A.APPROVE_WO, {}),
        (10, A.ASSIGN_WO, {"assignee": "tech-7"}),
        (30, A.START_WORK, {}),
        (30, A.PUT_ON_HOLD, {"reason": "Waiting for lockout"}),
        (45, A.RESUME_WORK, {}),
        (15, A.REQUEST_PARTS, {}),
        (15, A.RECEIVE_PARTS, {}),
        (60, A.COMPLETE_WORK, {}),
        (60, A.CLOSE_WO, {}),
    ]

    @pytest.mark.asyncio
    async def test_draft_to_closed(self, repository, service, clock, make_work_order):
        await repository.add(make_work_order())
        result = await _walk(service, clock, "wo-1", self.STEPS)
        wo = result.work_order

        assert wo.status == S.CLOSED
        assert wo.version == len(self.STEPS)
        assert [c.to_status for c in wo.status_history] == [
            S.SUBMITTED, S.APPROVED, S.ASSIGNED, S.IN_PROGRESS, S.ON_HOLD,
            S.IN_PROGRESS, S.PENDING_PARTS, S.IN_PROGRESS, S.COMPLETED, S.CLOSED,
        ]
        assert wo.actual_start_at == at(2025, 3, 3, 10)
        assert wo.completed_at == at(2025, 3, 3, 12, 45)
        assert wo.closed_at == at(2025, 3, 3, 13, 45)

        sla = wo.sla
        assert sla.total_pause_minutes == 60
        assert not sla.is_paused
        assert sla.resolved_at == at(2025, 3, 3, 12, 45)
        assert sla.response_met is True
        assert sla.resolution_met is True
        assert sla.finalized_at == at(2025, 3, 3, 13, 45)

    @pytest.mark.asyncio
    async def test_reopen_starts_fresh_sla(self, repository, service, clock, make_work_order):
        await repository.add(make_work_order())
        await _walk(service, clock, "wo-1", self.STEPS)
        clock.set(at(2025, 3, 4, 9))

        result = await service.reopen("wo-1", "supervisor", reason="Motor tripped again")
        wo = result.work_order

        assert result.from_status == S.CLOSED
        assert wo.status == S.IN_PROGRESS
        assert wo.reopen_count == 1
        assert wo.reopened_at == at(2025, 3, 4, 9)
        assert wo.sla.response_by == at(2025, 3, 4, 10)
        assert wo.sla.resolution_started_at == at(2025, 3, 4, 9)
        assert not wo.sla.is_finalized
        assert wo.sla.responded_at is None
        assert wo.status_history[-1].reason == "Motor tripped again"

    @pytest.mark.asyncio
    async def test_reopen_requires_closed(self, repository, service, make_work_order):
        await repository.add(make_work_order(status=S.IN_PROGRESS))
        with pytest.raises(InvalidTransitionException) as exc:
            await service.reopen("wo-1", "supervisor")
        assert exc.value.action == "reopen_wo"


class TestConcurrency:
    """Saves carry the version that was read."""

    @pytest.mark.asyncio
    async def test_stale_save_conflicts(self, repository, service, make_work_order):
        await repository.add(make_work_order())
        stale = await repository.get("wo-1")
        await service.perform("wo-1", A.SUBMIT_WO, "requester")

        with pytest.raises(ConcurrencyConflictException) as exc:
            await repository.save(stale, expected_version=stale.version)
        assert exc.value.expected_version == 0
        assert exc.value.actual_version == 1

    @pytest.mark.asyncio
    async def test_reads_are_snapshots(self, repository, make_work_order):
        await repository.add(make_work_order())
        copy = await repository.get("wo-1")
        copy.title = "changed"
        assert (await repository.get("wo-1")).title == "Conveyor motor overheating"

    @pytest.mark.asyncio
    async def test_list_active(self, repository, make_work_order):
        await repository.add(make_work_order())
        await repository.add(make_work_order(status=S.IN_PROGRESS))
        active = await repository.list_active([S.IN_PROGRESS])
        assert [wo.id for wo in active] == ["wo-2"]
