"""Instance Engine - Turns theoretical assignments into concrete instances.

`InstanceEngine.generate_for_date()` is the write-side counterpart of the
projection engine: for one date it resolves every template's assignments,
drops anything already materialized and returns the new instances plus the
rotation-state deltas the caller should persist.

Idempotent: feeding the result back in as `existing_instances` produces no
new instances, and a template whose recorded history already matches the
computed assignment produces no delta.

ARCHITECTURE: Pure logic. Inputs are never mutated; persistence belongs to
the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, cast

from .. import const
from ..data_builders import build_task_instance, index_tasks, instance_key
from ..utils.dt_utils import (
    dt_combine_local,
    dt_date_part,
    dt_has_time_component,
    dt_now_iso,
    dt_parse_date,
    parse_time_of_day,
)
from .rotation_engine import RotationEngine
from .schedule_engine import get_schedule_time_of_day

if TYPE_CHECKING:
    from ..type_defs import (
        ChildData,
        ProjectedAssignment,
        RotationData,
        RotationStateDelta,
        TaskData,
        TaskInstanceData,
    )


# =============================================================================
# RESULT STRUCTURE
# =============================================================================


@dataclass
class GenerationResult:
    """Output of InstanceEngine.generate_for_date().

    Attributes:
        new_instances: Instances to append to storage
        rotation_deltas: Rotation settings to write back onto templates
    """

    new_instances: list[TaskInstanceData] = field(default_factory=list)
    rotation_deltas: list[RotationStateDelta] = field(default_factory=list)


# =============================================================================
# INSTANCE ENGINE
# =============================================================================


class InstanceEngine:
    """Stateless instance materializer."""

    # =========================================================================
    # Template filtering
    # =========================================================================

    @staticmethod
    def is_template_active(task: TaskData, date_iso: str) -> bool:
        """Return True when a template may produce instances on a date.

        Disabled templates never do; `disabled_after` stops a template after
        that date (the date itself still counts).
        """
        if not task.get(const.DATA_TASK_ENABLED, const.DEFAULT_TASK_ENABLED):
            return False
        disabled_after = task.get(const.DATA_TASK_DISABLED_AFTER)
        return not (disabled_after and date_iso > disabled_after)

    @staticmethod
    def compute_due_at(task: TaskData, date_iso: str) -> str | None:
        """Return the ISO datetime an instance on `date_iso` is due.

        - One-off with a timed due date on that day: the due date as stored
        - Otherwise the date combined with the schedule's time of day, in the
          configured local timezone
        - None when no time is known or it cannot be parsed
        """
        if task.get(const.DATA_TASK_TYPE) == const.TASK_TYPE_ONEOFF:
            due_date = (task.get(const.DATA_TASK_ONE_OFF) or {}).get(
                const.DATA_ONE_OFF_DUE_DATE
            )
            if (
                due_date
                and dt_has_time_component(due_date)
                and dt_date_part(due_date) == date_iso
            ):
                return due_date
            return None

        time_of_day = parse_time_of_day(
            get_schedule_time_of_day(task.get(const.DATA_TASK_SCHEDULE))
        )
        target = dt_parse_date(date_iso)
        if time_of_day is None or target is None:
            return None
        return dt_combine_local(target, time_of_day).isoformat()

    # =========================================================================
    # Generation
    # =========================================================================

    @staticmethod
    def generate_for_date(
        templates: Sequence[TaskData],
        children: Iterable[ChildData],
        date_value: str | date,
        existing_instances: Iterable[TaskInstanceData],
        *,
        now: str | None = None,
    ) -> GenerationResult:
        """Materialize the instances due on one date.

        Args:
            templates: Canonical task templates (all of them, so linked
                rotations can see disabled source tasks)
            children: Child records; assignments to unknown ids are dropped
            date_value: Local date to generate for
            existing_instances: Already persisted instances
            now: Creation timestamp for new instances (defaults to now)

        Returns:
            GenerationResult with the new instances and rotation deltas

        Raises:
            CronParseError: If a template's cron expression is malformed
        """
        result = GenerationResult()
        target = dt_parse_date(date_value)
        if target is None:
            const.LOGGER.debug("Skipping generation for unparsable date %r", date_value)
            return result

        date_iso = target.isoformat()
        created_at = now or dt_now_iso()
        tasks_by_id = index_tasks(templates)
        child_ids = {str(child[const.DATA_CHILD_ID]) for child in children}
        seen = {
            instance_key(
                instance[const.DATA_INSTANCE_TEMPLATE_ID],
                instance[const.DATA_INSTANCE_CHILD_ID],
                instance[const.DATA_INSTANCE_DATE],
            )
            for instance in existing_instances
        }

        for task in templates:
            task_id = task[const.DATA_TASK_ID]
            if not InstanceEngine.is_template_active(task, date_iso):
                const.LOGGER.debug("Skipping inactive template %s on %s", task_id, date_iso)
                continue

            assignments = [
                assignment
                for assignment in RotationEngine.get_assignments(task, target, tasks_by_id)
                if str(assignment.child_id) in child_ids
            ]
            if not assignments:
                continue

            due_at = InstanceEngine.compute_due_at(task, date_iso)
            for assignment in assignments:
                key = instance_key(task_id, assignment.child_id, date_iso)
                if key in seen:
                    continue
                seen.add(key)
                result.new_instances.append(
                    build_task_instance(
                        task,
                        assignment.child_id,
                        date_iso,
                        rotation_index=assignment.rotation_index,
                        due_at=due_at,
                        created_at=created_at,
                    )
                )

            delta = InstanceEngine.build_rotation_delta(task, assignments, date_iso)
            if delta is not None:
                result.rotation_deltas.append(delta)

        const.LOGGER.debug(
            "Generated %d instance(s) and %d rotation delta(s) for %s",
            len(result.new_instances),
            len(result.rotation_deltas),
            date_iso,
        )
        return result

    @staticmethod
    def build_rotation_delta(
        task: TaskData,
        assignments: Sequence[ProjectedAssignment],
        date_iso: str,
    ) -> RotationStateDelta | None:
        """Return the rotation update for a template, or None if unchanged.

        Only the primary (first) assignment is compared with the recorded
        history; templates without rotation settings never produce a delta.
        """
        rotation = task.get(const.DATA_TASK_ROTATION)
        if not rotation or not assignments:
            return None

        primary = assignments[0]
        history = rotation.get(const.DATA_ROTATION_HISTORY) or {}
        last_child_id = history.get(const.DATA_ROTATION_HISTORY_LAST_CHILD_ID)
        if (
            last_child_id is not None
            and str(last_child_id) == str(primary.child_id)
            and history.get(const.DATA_ROTATION_HISTORY_LAST_INDEX) == primary.rotation_index
        ):
            return None

        updated = cast("RotationData", dict(rotation))
        updated[const.DATA_ROTATION_HISTORY] = {
            const.DATA_ROTATION_HISTORY_LAST_CHILD_ID: primary.child_id,
            const.DATA_ROTATION_HISTORY_LAST_INDEX: primary.rotation_index,
            const.DATA_ROTATION_HISTORY_LAST_DATE: date_iso,
        }
        return {
            const.DATA_DELTA_TASK_ID: task[const.DATA_TASK_ID],
            const.DATA_DELTA_ROTATION: updated,
            const.DATA_DELTA_ASSIGNMENT: {
                const.DATA_ASSIGNMENT_CHILD_IDS: [a.child_id for a in assignments],
                const.DATA_ASSIGNMENT_DATE: date_iso,
            },
        }

    # =========================================================================
    # Editing helpers
    # =========================================================================

    @staticmethod
    def replace_instances_from(
        instances: Iterable[TaskInstanceData],
        task_id: str,
        start_date: str | date,
        replacements: Iterable[TaskInstanceData],
        preserve_completed: bool = True,
    ) -> list[TaskInstanceData]:
        """Replace a task's instances on and after a date.

        Used when a template edit applies to "this and future" occurrences.
        Completed instances are kept when `preserve_completed` is True, and a
        replacement colliding with a kept instance's composite key is dropped.

        Returns:
            New list; the inputs are not modified.
        """
        start = dt_parse_date(start_date)
        if start is None:
            return list(instances)
        start_iso = start.isoformat()

        kept: list[TaskInstanceData] = []
        for instance in instances:
            is_future = (
                instance.get(const.DATA_INSTANCE_TEMPLATE_ID) == task_id
                and (dt_date_part(instance.get(const.DATA_INSTANCE_DATE)) or "") >= start_iso
            )
            if is_future and not (
                preserve_completed and instance.get(const.DATA_INSTANCE_COMPLETED)
            ):
                continue
            kept.append(instance)

        seen = {
            instance_key(
                instance[const.DATA_INSTANCE_TEMPLATE_ID],
                instance[const.DATA_INSTANCE_CHILD_ID],
                instance[const.DATA_INSTANCE_DATE],
            )
            for instance in kept
        }
        for replacement in replacements:
            key = instance_key(
                replacement[const.DATA_INSTANCE_TEMPLATE_ID],
                replacement[const.DATA_INSTANCE_CHILD_ID],
                replacement[const.DATA_INSTANCE_DATE],
            )
            if key in seen:
                continue
            seen.add(key)
            kept.append(replacement)
        return kept
