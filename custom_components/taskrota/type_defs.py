"""Type definitions for TaskRota data structures.

Records travel through the engines as plain dicts. TypedDicts document the
static shape of each record (task templates, schedules, rotations, instances)
so engines and builders agree on keys. Values are read with `.get()` and
defaults because TypedDict does NOT enforce anything at runtime.

Canonical records are produced once by `data_builders.normalize_task()`;
the engines only ever see that shape.

IMPORTANT: This file must NOT import from engines or helpers to avoid
circular dependencies. Only import from typing.
"""

from typing import Any, NamedTuple, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

TaskId = str
ChildId = int | str  # Numeric ids from older snapshots, UUID strings otherwise
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"
TimeOfDay = str  # "HH:MM" or "HH:MM:SS"


# =============================================================================
# Recurrence Rules and Schedules
# =============================================================================


class RecurrenceEndData(TypedDict, total=False):
    """How a recurrence rule ends."""

    type: str  # END_TYPE_* constant
    date: ISODate  # Only for END_TYPE_AFTER_DATE
    occurrences: int  # Only for END_TYPE_AFTER_OCCURRENCES


class RecurrenceRuleData(TypedDict, total=False):
    """A calendar recurrence rule.

    All fields are optional (total=False) so partial rules still evaluate;
    missing fields default to "matches".
    """

    frequency: str  # FREQUENCY_* constant
    interval: int  # >= 1
    by_weekday: list[int]  # 0 = Sunday .. 6 = Saturday
    by_monthday: list[int]  # 1..31
    by_set_position: list[int]  # 1..5, or -1 for "last"
    start_date: ISODate
    end_date: ISODate
    end: RecurrenceEndData
    include_dates: list[ISODate]
    exclude_dates: list[ISODate]
    start_time: TimeOfDay
    time_of_day: TimeOfDay  # Older alias of start_time
    timezone: str


class ScheduleData(TypedDict, total=False):
    """A task schedule: a recurrence rule or a cron expression (cron wins)."""

    rule: RecurrenceRuleData
    cron_expression: str
    due_time: TimeOfDay
    include_dates: list[ISODate]
    exclude_dates: list[ISODate]
    timezone: str
    description: str  # Cached human-readable summary


# =============================================================================
# Rotation
# =============================================================================


class RotationHistoryData(TypedDict, total=False):
    """Last assignment recorded for a rotation (advisory cache only)."""

    last_child_id: ChildId
    last_rotation_index: int
    last_date: ISODate


class RotationData(TypedDict, total=False):
    """Rotation and assignment settings for a task."""

    mode: str  # ROTATION_MODE_* constant
    assigned_child_ids: list[ChildId]  # Eligible pool, order-significant
    rotation_order: list[ChildId]  # Explicit turn order (optional)
    linked_task_id: TaskId
    linked_task_offset: int
    start_date: ISODate  # Anchors rotation counting
    history: RotationHistoryData


# =============================================================================
# Task Templates
# =============================================================================


class RecurringSettingsData(TypedDict, total=False):
    """Legacy cadence settings, folded into a schedule on load."""

    cadence: str  # CADENCE_* constant
    time_of_day: TimeOfDay
    custom_days: list[int]


class OneOffSettingsData(TypedDict, total=False):
    """One-off task settings."""

    due_date: str  # ISO date or datetime


class TaskData(TypedDict):
    """Type definition for a task template in canonical form.

    Produced by data_builders.normalize_task(); legacy fields are removed.
    """

    id: TaskId
    title: str
    type: str  # TASK_TYPE_* constant
    enabled: bool
    created_at: ISODatetime
    stars: float
    money: float
    schedule: NotRequired[ScheduleData]
    rotation: NotRequired[RotationData]
    one_off: NotRequired[OneOffSettingsData]
    disabled_after: NotRequired[ISODate]
    description: NotRequired[str]
    tags: NotRequired[list[str]]


# =============================================================================
# Children and Instances
# =============================================================================


class ChildData(TypedDict, total=False):
    """A child record. Only `id` matters to the engines."""

    id: ChildId
    name: str
    stars: float
    money: float


class TaskInstanceData(TypedDict):
    """A concrete occurrence of a task for one child on one date.

    Composite identity: (template_id, child_id, date). At most one instance
    exists per composite key.
    """

    id: str
    template_id: TaskId
    child_id: ChildId
    date: ISODate
    stars: float
    money: float
    completed: bool
    created_at: ISODatetime
    rotation_index: NotRequired[int]
    due_at: NotRequired[ISODatetime]


class ProjectedAssignment(NamedTuple):
    """One child responsible for a task on a date, with its rotation slot."""

    child_id: ChildId
    rotation_index: int


class HydratedAssignment(NamedTuple):
    """An assignment resolved to the caller's child record."""

    child: ChildData
    rotation_index: int


# =============================================================================
# Rotation State Deltas
# =============================================================================


class TaskAssignmentData(TypedDict):
    """Who holds a task on a given date."""

    child_ids: list[ChildId]
    date: ISODate


class RotationStateDelta(TypedDict):
    """Rotation state the caller should persist for a template."""

    task_id: TaskId
    rotation: RotationData
    assignment: NotRequired[TaskAssignmentData]


# =============================================================================
# Collection Type Aliases
# =============================================================================

TasksById = dict[TaskId, TaskData]
RawRecord = dict[str, Any]  # Un-normalized snapshot record from the caller


__all__ = [
    "ChildData",
    "ChildId",
    "HydratedAssignment",
    "ISODate",
    "ISODatetime",
    "OneOffSettingsData",
    "ProjectedAssignment",
    "RawRecord",
    "RecurrenceEndData",
    "RecurrenceRuleData",
    "RecurringSettingsData",
    "RotationData",
    "RotationHistoryData",
    "RotationStateDelta",
    "ScheduleData",
    "TaskAssignmentData",
    "TaskData",
    "TaskId",
    "TaskInstanceData",
    "TasksById",
    "TimeOfDay",
]
