#!/usr/bin/env python3
"""
Validate SLA Config
===================

Loads an SLA configuration file and prints the deadlines it produces for
every priority and work order type from a given start instant.

Usage:
    python scripts/validate_sla_config.py [sla_config.yaml] [2025-03-07T16:45]
"""

import sys
from datetime import datetime
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import Priority, WorkOrderType, SLAKind
from src.core.exceptions import ConfigurationException
from src.sla.domain import SLATracker
from src.sla.infrastructure import SLAConfigManager


def preview(config_path: Path, start: datetime) -> None:
    """Print response and completion deadlines for every priority and type."""
    config = SLAConfigManager().load(config_path)
    tracker = SLATracker(config)
    calculator = tracker.calculator

    print(f"Config: {config_path}")
    print(f"Calendar: {config.calendar.timezone}, working days {config.calendar.working_days}, "
          f"{config.calendar.start:%H:%M}-{config.calendar.end:%H:%M}")
    print(f"Start: {start.isoformat()}")
    print("=" * 78)
    print(f"{'Type':<12}{'Priority':<11}{'Response by':<22}{'Complete by':<22}Budgets")
    print("-" * 78)

    for work_order_type in WorkOrderType:
        for priority in Priority:
            response = tracker.resolve_budget(priority, work_order_type, SLAKind.RESPONSE)
            completion = tracker.resolve_budget(priority, work_order_type, SLAKind.COMPLETION)
            response_by = calculator.calculate_deadline(
                start, response.minutes, response.business_hours_only,
                config.get_grace_minutes(SLAKind.RESPONSE)
            )
            resolve_by = calculator.calculate_deadline(
                start, completion.minutes, completion.business_hours_only,
                config.get_grace_minutes(SLAKind.COMPLETION)
            )
            budgets = (
                f"{calculator.format_remaining_time(response.minutes)}"
                f"{'' if response.business_hours_only else ' 24x7'} / "
                f"{calculator.format_remaining_time(completion.minutes)}"
                f"{'' if completion.business_hours_only else ' 24x7'}"
            )
            print(f"{work_order_type.value:<12}{priority.value:<11}"
                  f"{response_by:%a %Y-%m-%d %H:%M}  {resolve_by:%a %Y-%m-%d %H:%M}  {budgets}")


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("sla_config.yaml")
    start = datetime.fromisoformat(sys.argv[2]) if len(sys.argv) > 2 else datetime.now()
    try:
        preview(path, start)
    except ConfigurationException as e:
        print(f"Invalid SLA config: {e.message}")
        for key, value in e.details.items():
            print(f"  {key}: {value}")
        sys.exit(1)
