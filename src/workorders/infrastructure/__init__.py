"""
Work Order Infrastructure Layer
===============================

Concrete repository implementations.
"""

from src.workorders.infrastructure.repositories import InMemoryWorkOrderRepository

__all__ = ["InMemoryWorkOrderRepository"]
