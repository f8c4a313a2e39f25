"""Task normalization and record builders.

This module is the SINGLE SOURCE OF TRUTH for:
- The canonical task shape the engines consume
- Folding legacy fields into that shape (one pass, at load time)
- Building task instance records

## Normalization

Snapshots arrive from storage in several historical shapes:
- `schedule` (current) or `recurring.cadence` (legacy cadence)
- `rotation` (current) or top-level `assigned_child_ids` (legacy pool)
- one-off tasks flagged by `type` or only by the presence of `one_off`

`normalize_task()` validates the structure with voluptuous schemas and
rewrites every variant into one canonical TaskData, so the schedule and
rotation engines never look at legacy fields. Validation is permissive:
values that cannot be interpreted are dropped (and logged) so the engines
treat them as "not configured". Only a record that is not a dict or has no
id raises TaskValidationError.

## Build Functions

`build_task_instance()`, `build_projected_instance()` and
`build_one_off_instance()` return complete TaskInstanceData dicts ready for
the caller to persist.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, cast
import uuid

import voluptuous as vol

from . import const
from .utils.dt_utils import (
    dt_date_part,
    dt_now_iso,
    dt_parse_date,
    dt_weekday,
)

if TYPE_CHECKING:
    from .type_defs import (
        ChildId,
        RawRecord,
        RecurrenceRuleData,
        RotationData,
        ScheduleData,
        TaskData,
        TaskId,
        TaskInstanceData,
    )


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class TaskValidationError(Exception):
    """Raised when a task snapshot cannot be normalized at all.

    Attributes:
        field: The DATA_* key that failed (or "" for the record itself)
        message: Human-readable reason
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize TaskValidationError."""
        self.field = field
        self.message = message
        super().__init__(f"{field or 'task'}: {message}")


# ==============================================================================
# PERMISSIVE VALIDATORS
# ==============================================================================


def _optional_str(value: Any) -> str | None:
    """Keep non-empty strings, drop anything else."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _iso_date(value: Any) -> str | None:
    """Coerce a date-like value to `YYYY-MM-DD`, or None if unparsable."""
    parsed = dt_parse_date(value)
    if parsed is None and value not in (None, ""):
        const.LOGGER.debug("Dropping unparsable date value: %s", value)
    return parsed.isoformat() if parsed else None


def _iso_date_list(value: Any) -> list[str]:
    """Coerce a list of date-like values, dropping unparsable entries."""
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    return [d for d in (_iso_date(v) for v in value) if d]


def _int_list(minimum: int, maximum: int, allow: Iterable[int] = ()):
    """Build a validator keeping integer items within [minimum, maximum]."""
    allowed_extra = frozenset(allow)

    def validate(value: Any) -> list[int]:
        if not isinstance(value, (list, tuple, set, frozenset)):
            return []
        result: list[int] = []
        for item in value:
            try:
                number = int(item)
            except (TypeError, ValueError):
                continue
            if minimum <= number <= maximum or number in allowed_extra:
                result.append(number)
        return result

    return validate


def _child_id_list(value: Any) -> list[ChildId]:
    """Keep int/str child ids, preserving order and dropping duplicates."""
    if not isinstance(value, (list, tuple)):
        return []
    result: list[ChildId] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, str)):
            continue
        if item not in result:
            result.append(item)
    return result


def _discard(field: str):
    """Build a fallback validator that logs and drops an unusable value."""

    def validate(value: Any) -> None:
        const.LOGGER.warning("Ignoring malformed %s value: %r", field, value)

    return validate


_INTERVAL = vol.Any(
    vol.All(vol.Coerce(int), vol.Range(min=1)),
    vol.SetTo(const.DEFAULT_INTERVAL),
)

# ==============================================================================
# SCHEMAS
# ==============================================================================

RULE_END_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_RULE_END_TYPE): _optional_str,
        vol.Optional(const.DATA_RULE_END_DATE_VALUE): _iso_date,
        vol.Optional(const.DATA_RULE_END_OCCURRENCES): vol.Any(
            vol.Coerce(int), vol.SetTo(None)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

RULE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_RULE_FREQUENCY): _optional_str,
        vol.Optional(const.DATA_RULE_INTERVAL): _INTERVAL,
        vol.Optional(const.DATA_RULE_BY_WEEKDAY): _int_list(0, 6),
        vol.Optional(const.DATA_RULE_BY_MONTHDAY): _int_list(1, 31, allow=range(-31, 0)),
        vol.Optional(const.DATA_RULE_BY_SET_POSITION): _int_list(1, 5, allow=(const.SET_POSITION_LAST,)),
        vol.Optional(const.DATA_RULE_START_DATE): _iso_date,
        vol.Optional(const.DATA_RULE_END_DATE): _iso_date,
        vol.Optional(const.DATA_RULE_END): vol.Any(
            RULE_END_SCHEMA, _discard(const.DATA_RULE_END)
        ),
        vol.Optional(const.DATA_RULE_INCLUDE_DATES): _iso_date_list,
        vol.Optional(const.DATA_RULE_EXCLUDE_DATES): _iso_date_list,
        vol.Optional(const.DATA_RULE_START_TIME): _optional_str,
        vol.Optional(const.DATA_RULE_TIME_OF_DAY): _optional_str,
        vol.Optional(const.DATA_RULE_TIMEZONE): _optional_str,
    },
    extra=vol.REMOVE_EXTRA,
)

SCHEDULE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_SCHEDULE_RULE): vol.Any(
            RULE_SCHEMA, _discard(const.DATA_SCHEDULE_RULE)
        ),
        vol.Optional(const.DATA_SCHEDULE_CRON_EXPRESSION): _optional_str,
        vol.Optional(const.DATA_SCHEDULE_DUE_TIME): _optional_str,
        vol.Optional(const.DATA_SCHEDULE_INCLUDE_DATES): _iso_date_list,
        vol.Optional(const.DATA_SCHEDULE_EXCLUDE_DATES): _iso_date_list,
        vol.Optional(const.DATA_SCHEDULE_TIMEZONE): _optional_str,
        vol.Optional(const.DATA_SCHEDULE_DESCRIPTION): _optional_str,
    },
    extra=vol.REMOVE_EXTRA,
)

ROTATION_HISTORY_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_ROTATION_HISTORY_LAST_CHILD_ID): vol.Any(int, str, None),
        vol.Optional(const.DATA_ROTATION_HISTORY_LAST_INDEX): vol.Any(
            vol.Coerce(int), vol.SetTo(None)
        ),
        vol.Optional(const.DATA_ROTATION_HISTORY_LAST_DATE): _iso_date,
    },
    extra=vol.REMOVE_EXTRA,
)

ROTATION_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_ROTATION_MODE): _optional_str,
        vol.Optional(const.DATA_ROTATION_ASSIGNED_CHILD_IDS): _child_id_list,
        vol.Optional(const.DATA_ROTATION_ORDER): _child_id_list,
        vol.Optional(const.DATA_ROTATION_LINKED_TASK_ID): vol.Any(
            vol.All(vol.Coerce(str), _optional_str), vol.SetTo(None)
        ),
        vol.Optional(const.DATA_ROTATION_LINKED_TASK_OFFSET): vol.Any(
            vol.Coerce(int), vol.SetTo(const.DEFAULT_LINKED_TASK_OFFSET)
        ),
        vol.Optional(const.DATA_ROTATION_START_DATE): _iso_date,
        vol.Optional(const.DATA_ROTATION_HISTORY): vol.Any(
            ROTATION_HISTORY_SCHEMA, _discard(const.DATA_ROTATION_HISTORY)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

RECURRING_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_RECURRING_CADENCE): _optional_str,
        vol.Optional(const.DATA_RECURRING_TIME_OF_DAY): _optional_str,
        vol.Optional(const.DATA_RECURRING_CUSTOM_DAYS): _int_list(0, 6),
    },
    extra=vol.REMOVE_EXTRA,
)

ONE_OFF_SCHEMA = vol.Schema(
    {vol.Optional(const.DATA_ONE_OFF_DUE_DATE): _optional_str},
    extra=vol.REMOVE_EXTRA,
)

TASK_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_TASK_ID): vol.All(
            vol.Any(str, int), vol.Coerce(str), vol.Length(min=1)
        ),
        vol.Optional(const.DATA_TASK_TITLE, default=""): vol.Any(str, vol.SetTo("")),
        vol.Optional(const.DATA_TASK_DESCRIPTION): _optional_str,
        vol.Optional(const.DATA_TASK_TYPE): _optional_str,
        vol.Optional(const.DATA_TASK_ENABLED, default=const.DEFAULT_TASK_ENABLED): vol.Any(
            vol.Boolean(), vol.SetTo(const.DEFAULT_TASK_ENABLED)
        ),
        vol.Optional(const.DATA_TASK_CREATED_AT, default=""): vol.Any(str, vol.SetTo("")),
        vol.Optional(const.DATA_TASK_STARS, default=const.DEFAULT_STARS): vol.Any(
            vol.Coerce(float), vol.SetTo(float(const.DEFAULT_STARS))
        ),
        vol.Optional(const.DATA_TASK_MONEY, default=const.DEFAULT_MONEY): vol.Any(
            vol.Coerce(float), vol.SetTo(const.DEFAULT_MONEY)
        ),
        vol.Optional(const.DATA_TASK_SCHEDULE): vol.Any(
            None, SCHEDULE_SCHEMA, _discard(const.DATA_TASK_SCHEDULE)
        ),
        vol.Optional(const.DATA_TASK_RECURRING): vol.Any(
            None, RECURRING_SCHEMA, _discard(const.DATA_TASK_RECURRING)
        ),
        vol.Optional(const.DATA_TASK_ROTATION): vol.Any(
            None, ROTATION_SCHEMA, _discard(const.DATA_TASK_ROTATION)
        ),
        vol.Optional(const.DATA_TASK_ASSIGNED_CHILD_IDS): _child_id_list,
        vol.Optional(const.DATA_TASK_ONE_OFF): vol.Any(
            None, ONE_OFF_SCHEMA, _discard(const.DATA_TASK_ONE_OFF)
        ),
        vol.Optional(const.DATA_TASK_DISABLED_AFTER): _iso_date,
        vol.Optional(const.DATA_TASK_TAGS): vol.Any([str], vol.SetTo([])),
    },
    extra=vol.ALLOW_EXTRA,
)


# ==============================================================================
# LEGACY FOLDING
# ==============================================================================


def _creation_weekday(created_at: str) -> int:
    """Weekday (0 = Sunday) of a task's creation date; Sunday when unknown."""
    created = dt_parse_date(created_at)
    return dt_weekday(created) if created else const.WEEKDAY_SUNDAY


def schedule_from_cadence(recurring: Mapping[str, Any], created_at: str = "") -> ScheduleData:
    """Convert a legacy cadence into an equivalent schedule.

    - daily → every day
    - weekly → every week on the creation weekday
    - monthly → first occurrence of the creation weekday in each month
    - weekdays / weekends / custom-days → weekly on those weekdays
    - custom or unknown → every day
    """
    cadence = recurring.get(const.DATA_RECURRING_CADENCE) or const.CADENCE_DAILY
    rule: RecurrenceRuleData

    if cadence == const.CADENCE_WEEKLY:
        rule = {
            const.DATA_RULE_FREQUENCY: const.FREQUENCY_WEEKLY,
            const.DATA_RULE_BY_WEEKDAY: [_creation_weekday(created_at)],
        }
    elif cadence == const.CADENCE_MONTHLY:
        rule = {
            const.DATA_RULE_FREQUENCY: const.FREQUENCY_MONTHLY,
            const.DATA_RULE_BY_WEEKDAY: [_creation_weekday(created_at)],
            const.DATA_RULE_BY_SET_POSITION: [1],
        }
    elif cadence == const.CADENCE_WEEKDAYS:
        rule = {
            const.DATA_RULE_FREQUENCY: const.FREQUENCY_WEEKLY,
            const.DATA_RULE_BY_WEEKDAY: list(const.WEEKDAYS_WORKWEEK),
        }
    elif cadence == const.CADENCE_WEEKENDS:
        rule = {
            const.DATA_RULE_FREQUENCY: const.FREQUENCY_WEEKLY,
            const.DATA_RULE_BY_WEEKDAY: list(const.WEEKDAYS_WEEKEND),
        }
    elif cadence == const.CADENCE_CUSTOM_DAYS:
        custom_days = recurring.get(const.DATA_RECURRING_CUSTOM_DAYS) or []
        if custom_days:
            rule = {
                const.DATA_RULE_FREQUENCY: const.FREQUENCY_WEEKLY,
                const.DATA_RULE_BY_WEEKDAY: list(custom_days),
            }
        else:
            # No days selected: never runs
            return {}
    else:
        if cadence not in (const.CADENCE_DAILY, const.CADENCE_CUSTOM):
            const.LOGGER.debug("Unknown legacy cadence %r treated as daily", cadence)
        rule = {const.DATA_RULE_FREQUENCY: const.FREQUENCY_DAILY}

    rule[const.DATA_RULE_INTERVAL] = const.DEFAULT_INTERVAL
    schedule: ScheduleData = {const.DATA_SCHEDULE_RULE: rule}
    time_of_day = recurring.get(const.DATA_RECURRING_TIME_OF_DAY)
    if time_of_day:
        schedule[const.DATA_SCHEDULE_DUE_TIME] = time_of_day
    return schedule


def _build_rotation(
    rotation: Mapping[str, Any] | None,
    legacy_pool: list[ChildId],
) -> RotationData | None:
    """Fold rotation settings and the legacy pool into one RotationData."""
    if not rotation:
        if not legacy_pool:
            return None
        return {
            const.DATA_ROTATION_MODE: const.DEFAULT_ROTATION_MODE,
            const.DATA_ROTATION_ASSIGNED_CHILD_IDS: list(legacy_pool),
        }

    result = cast("RotationData", {k: v for k, v in rotation.items() if v is not None})
    mode = result.get(const.DATA_ROTATION_MODE)
    if mode not in const.ROTATION_MODE_OPTIONS:
        if mode:
            const.LOGGER.debug("Unknown rotation mode %r treated as single-child", mode)
        result[const.DATA_ROTATION_MODE] = const.DEFAULT_ROTATION_MODE
    if not result.get(const.DATA_ROTATION_ASSIGNED_CHILD_IDS):
        result[const.DATA_ROTATION_ASSIGNED_CHILD_IDS] = list(legacy_pool)
    if not result.get(const.DATA_ROTATION_ORDER):
        result.pop(const.DATA_ROTATION_ORDER, None)
    if result.get(const.DATA_ROTATION_LINKED_TASK_ID):
        result.setdefault(
            const.DATA_ROTATION_LINKED_TASK_OFFSET, const.DEFAULT_LINKED_TASK_OFFSET
        )
    return result


# ==============================================================================
# NORMALIZATION
# ==============================================================================


def normalize_task(raw: RawRecord) -> TaskData:
    """Normalize one task snapshot into canonical TaskData.

    Args:
        raw: Task record as stored by the caller (any historical shape)

    Returns:
        Canonical TaskData: `schedule` always wins over legacy `recurring`,
        `rotation` always carries the eligible pool, `type` is resolved.

    Raises:
        TaskValidationError: If `raw` is not a dict or has no usable id
    """
    if not isinstance(raw, Mapping):
        raise TaskValidationError("", f"expected a mapping, got {type(raw).__name__}")

    try:
        data = TASK_SCHEMA(dict(raw))
    except vol.Invalid as err:
        field = str(err.path[0]) if err.path else ""
        raise TaskValidationError(field, err.msg) from err

    created_at: str = data[const.DATA_TASK_CREATED_AT]
    one_off = data.get(const.DATA_TASK_ONE_OFF)
    is_one_off = data.get(const.DATA_TASK_TYPE) == const.TASK_TYPE_ONEOFF or bool(one_off)

    task: dict[str, Any] = {
        const.DATA_TASK_ID: data[const.DATA_TASK_ID],
        const.DATA_TASK_TITLE: data[const.DATA_TASK_TITLE],
        const.DATA_TASK_TYPE: (
            const.TASK_TYPE_ONEOFF
            if is_one_off
            else data.get(const.DATA_TASK_TYPE) or const.TASK_TYPE_RECURRING
        ),
        const.DATA_TASK_ENABLED: data[const.DATA_TASK_ENABLED],
        const.DATA_TASK_CREATED_AT: created_at,
        const.DATA_TASK_STARS: data[const.DATA_TASK_STARS],
        const.DATA_TASK_MONEY: data[const.DATA_TASK_MONEY],
    }

    if is_one_off:
        task[const.DATA_TASK_ONE_OFF] = dict(one_off or {})
    else:
        schedule = data.get(const.DATA_TASK_SCHEDULE)
        recurring = data.get(const.DATA_TASK_RECURRING)
        if schedule:
            task[const.DATA_TASK_SCHEDULE] = schedule
        elif recurring:
            task[const.DATA_TASK_SCHEDULE] = schedule_from_cadence(recurring, created_at)

    rotation = _build_rotation(
        data.get(const.DATA_TASK_ROTATION),
        data.get(const.DATA_TASK_ASSIGNED_CHILD_IDS) or [],
    )
    if rotation is not None:
        task[const.DATA_TASK_ROTATION] = rotation

    for optional_key in (
        const.DATA_TASK_DISABLED_AFTER,
        const.DATA_TASK_DESCRIPTION,
        const.DATA_TASK_TAGS,
    ):
        if data.get(optional_key):
            task[optional_key] = data[optional_key]

    return cast("TaskData", task)


def normalize_tasks(raws: Iterable[RawRecord]) -> list[TaskData]:
    """Normalize a task snapshot list, skipping records that cannot be read."""
    tasks: list[TaskData] = []
    for raw in raws:
        try:
            tasks.append(normalize_task(raw))
        except TaskValidationError as err:
            const.LOGGER.warning("Skipping unreadable task record: %s", err)
    return tasks


def index_tasks(tasks: Iterable[TaskData]) -> Mapping[TaskId, TaskData]:
    """Build the read-only id → task lookup used for linked rotations."""
    return MappingProxyType({task[const.DATA_TASK_ID]: task for task in tasks})


# ==============================================================================
# INSTANCE BUILDERS
# ==============================================================================


def instance_key(template_id: TaskId, child_id: ChildId, date_iso: str) -> tuple[str, str, str]:
    """Composite identity of a task instance.

    Child ids are compared as strings so numeric ids from older snapshots
    match their string form.
    """
    return (str(template_id), str(child_id), dt_date_part(date_iso) or date_iso)


def build_task_instance(
    task: TaskData,
    child_id: ChildId,
    date_iso: str,
    *,
    rotation_index: int | None = None,
    due_at: str | None = None,
    instance_id: str | None = None,
    created_at: str | None = None,
) -> TaskInstanceData:
    """Build a task instance for one child on one date.

    Rewards are copied from the template's base values so later template
    edits do not change existing instances.

    Args:
        task: Canonical task template
        child_id: Child responsible for this instance
        date_iso: Local date `YYYY-MM-DD`
        rotation_index: Rotation slot that produced the assignment
        due_at: ISO datetime deadline, omitted when None
        instance_id: Explicit id; a random one is generated when None
        created_at: Creation timestamp; now (local) when None
    """
    instance: dict[str, Any] = {
        const.DATA_INSTANCE_ID: instance_id
        or f"{const.INSTANCE_ID_PREFIX_INSTANCE}_{uuid.uuid4().hex}",
        const.DATA_INSTANCE_TEMPLATE_ID: task[const.DATA_TASK_ID],
        const.DATA_INSTANCE_CHILD_ID: child_id,
        const.DATA_INSTANCE_DATE: date_iso,
        const.DATA_INSTANCE_STARS: task.get(const.DATA_TASK_STARS, const.DEFAULT_STARS),
        const.DATA_INSTANCE_MONEY: task.get(const.DATA_TASK_MONEY, const.DEFAULT_MONEY),
        const.DATA_INSTANCE_COMPLETED: False,
        const.DATA_INSTANCE_CREATED_AT: created_at or dt_now_iso(),
    }
    if rotation_index is not None:
        instance[const.DATA_INSTANCE_ROTATION_INDEX] = rotation_index
    if due_at:
        instance[const.DATA_INSTANCE_DUE_AT] = due_at
    return cast("TaskInstanceData", instance)


def projected_instance_id(template_id: TaskId, child_id: ChildId, date_iso: str) -> str:
    """Deterministic id for a projected (unpersisted) instance."""
    return f"{const.INSTANCE_ID_PREFIX_PROJECTED}_{template_id}_{child_id}_{date_iso}"


def build_projected_instance(
    task: TaskData,
    child_id: ChildId,
    date_iso: str,
    *,
    rotation_index: int,
    due_at: str | None = None,
    created_at: str | None = None,
) -> TaskInstanceData:
    """Build a projected instance whose id derives from (task, child, date)."""
    return build_task_instance(
        task,
        child_id,
        date_iso,
        rotation_index=rotation_index,
        due_at=due_at,
        instance_id=projected_instance_id(task[const.DATA_TASK_ID], child_id, date_iso),
        created_at=created_at,
    )


def build_one_off_instance(
    task: TaskData,
    child_id: ChildId,
    date_value: str,
    *,
    created_at: str | None = None,
) -> TaskInstanceData:
    """Build a standalone one-off instance for a child on a date.

    Used when a parent drops an ad-hoc task onto a child's day; the instance
    references the task it was created from.
    """
    date_iso = dt_date_part(date_value) or date_value
    return build_task_instance(
        task,
        child_id,
        date_iso,
        instance_id=f"{const.INSTANCE_ID_PREFIX_ONEOFF}_{uuid.uuid4().hex[:12]}",
        created_at=created_at,
    )


def get_template_for_instance(
    instance: TaskInstanceData,
    tasks_by_id: Mapping[TaskId, TaskData],
) -> TaskData | None:
    """Return the template an instance was generated from, if still present."""
    return tasks_by_id.get(instance.get(const.DATA_INSTANCE_TEMPLATE_ID, ""))
