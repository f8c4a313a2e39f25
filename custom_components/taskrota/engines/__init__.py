"""Engine modules for TaskRota.

Contains the scheduling computation engines:
- cron_engine: Five-field cron parsing and date matching
- schedule_engine: Recurrence rule and schedule evaluation
- rotation_engine: Assignment resolution (round-robin, linked, simultaneous)
- instance_engine: Idempotent instance materialization and rotation deltas
- projection_engine: Read-only projection over a date range
"""

# Use relative imports within package to avoid mypy module resolution issues
from .cron_engine import CronExpression, CronParseError, parse_cron_expression
from .instance_engine import GenerationResult, InstanceEngine
from .projection_engine import ProjectionEngine
from .rotation_engine import RotationEngine
from .schedule_engine import (
    RecurrenceEngine,
    ScheduleMatcher,
    does_schedule_run_on_date,
    rule_matches_date,
)

__all__ = [
    "CronExpression",
    "CronParseError",
    "GenerationResult",
    "InstanceEngine",
    "ProjectionEngine",
    "RecurrenceEngine",
    "RotationEngine",
    "ScheduleMatcher",
    "does_schedule_run_on_date",
    "parse_cron_expression",
    "rule_matches_date",
]
