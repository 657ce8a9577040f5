"""
Work Order Infrastructure Repositories
======================================

In-memory implementation of the work order repository.

Stores deep copies so that callers only see their own snapshot, which is
what makes the version check meaningful. A document store adapter would
apply the same check as a conditional update on ``version``.
"""

import asyncio
import copy
from typing import Dict, Iterable, List

from src.config import WorkOrderStatus
from src.core.exceptions import (
    ConcurrencyConflictException, RepositoryException, ResourceNotFoundException
)
from src.workorders.application.services import IWorkOrderRepository
from src.workorders.domain import WorkOrder


class InMemoryWorkOrderRepository(IWorkOrderRepository):
    """Dictionary-backed repository with optimistic concurrency."""

    def __init__(self):
        self._items: Dict[str, WorkOrder] = {}
        self._lock = asyncio.Lock()

    async def get(self, work_order_id: str) -> WorkOrder:
        stored = self._items.get(work_order_id)
        if stored is None:
            raise ResourceNotFoundException("WorkOrder", work_order_id)
        return copy.deepcopy(stored)

    async def add(self, work_order: WorkOrder) -> WorkOrder:
        async with self._lock:
            if work_order.id in self._items:
                raise RepositoryException(
                    f"WorkOrder '{work_order.id}' already exists",
                    {"work_order_id": work_order.id}
                )
            self._items[work_order.id] = copy.deepcopy(work_order)
        return copy.deepcopy(work_order)

    async def save(self, work_order: WorkOrder, expected_version: int) -> WorkOrder:
        async with self._lock:
            stored = self._items.get(work_order.id)
            if stored is None:
                raise ResourceNotFoundException("WorkOrder", work_order.id)
            if stored.version != expected_version:
                raise ConcurrencyConflictException(work_order.id, expected_version, stored.version)

            saved = copy.deepcopy(work_order)
            saved.version = expected_version + 1
            self._items[work_order.id] = saved
        work_order.version = saved.version
        return copy.deepcopy(saved)

    async def list_active(self, statuses: Iterable[WorkOrderStatus]) -> List[WorkOrder]:
        wanted = set(statuses)
        return [copy.deepcopy(item) for item in self._items.values() if item.status in wanted]
