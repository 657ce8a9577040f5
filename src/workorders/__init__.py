"""
Work Orders Module
==================

Bounded Context for the maintenance work-order lifecycle.

Responsibilities:
- Validate actions against the transition table
- Stamp lifecycle timestamps and keep the status history
- Drive the SLA clocks on submit, approve, hold, parts, complete, close
  and reopen
"""

from src.workorders.domain.transitions import validate_transition, next_status

__version__ = "1.0.0"

__all__ = ["validate_transition", "next_status"]
