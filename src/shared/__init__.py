"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Work Orders and SLA).

Architecture Pattern: Modular Monolith
- Each module (workorders, sla) is a bounded context
- Shared kernel contains only generic infrastructure (logging, clock)
- Domain models live within each module

DO NOT add business logic from Work Orders or SLA to shared kernel.
"""

__version__ = "1.0.0"
