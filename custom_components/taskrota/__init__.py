# File: __init__.py
"""TaskRota - deterministic task scheduling and rotation for households.

Decides, for any calendar date, which child is responsible for each task,
without touching storage. Callers load their task snapshot once through
`normalize_tasks()`, then:

- `InstanceEngine.generate_for_date()` to materialize a day's instances
- `ProjectionEngine.project_range()` to preview upcoming days
- `RotationEngine.get_assignments()` for a single task and date

Configure the household timezone once with
`utils.dt_utils.set_default_timezone()`.
"""

from __future__ import annotations

from .data_builders import (
    TaskValidationError,
    build_one_off_instance,
    get_template_for_instance,
    index_tasks,
    normalize_task,
    normalize_tasks,
)
from .engines import (
    CronParseError,
    GenerationResult,
    InstanceEngine,
    ProjectionEngine,
    RotationEngine,
    does_schedule_run_on_date,
)
from .helpers.schedule_helpers import describe_schedule, get_next_occurrences

__all__ = [
    "CronParseError",
    "GenerationResult",
    "InstanceEngine",
    "ProjectionEngine",
    "RotationEngine",
    "TaskValidationError",
    "build_one_off_instance",
    "describe_schedule",
    "does_schedule_run_on_date",
    "get_next_occurrences",
    "get_template_for_instance",
    "index_tasks",
    "normalize_task",
    "normalize_tasks",
]
