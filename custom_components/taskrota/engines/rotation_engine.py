"""Rotation Engine - Pure logic for deciding who is responsible for a task.

Given a canonical task, a calendar date and a read-only map of all tasks,
this engine computes the theoretical assignment(s) for that date:

- One-off tasks: the first pool member, on the due date only
- single-child: the first pool member
- simultaneous: every pool member
- round-robin: one member chosen by counting occurrences since the
  rotation start
- linked round-robin: follows another task's rotation with an index offset

ARCHITECTURE: Pure logic, no I/O, no mutation. Linked tasks are looked up in
the `tasks_by_id` mapping passed in by the caller (see
`data_builders.index_tasks()`); there is no global registry. Cyclic links are
cut at `const.MAX_LINK_DEPTH` with a deterministic fallback.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import TYPE_CHECKING, cast

from .. import const
from ..type_defs import HydratedAssignment, ProjectedAssignment
from ..utils.dt_utils import dt_date_part, dt_days_between, dt_parse_date
from .schedule_engine import ScheduleMatcher

if TYPE_CHECKING:
    from ..type_defs import (
        ChildData,
        ChildId,
        RotationData,
        ScheduleData,
        TaskData,
        TaskId,
    )


class RotationEngine:
    """Stateless assignment resolver.

    All methods are static: they operate on passed-in task dicts and never
    modify them.
    """

    # =========================================================================
    # Public API
    # =========================================================================

    @staticmethod
    def get_assignments(
        task: TaskData,
        date_value: str | date,
        tasks_by_id: Mapping[TaskId, TaskData] | None = None,
        *,
        matchers: dict[TaskId, ScheduleMatcher] | None = None,
    ) -> list[ProjectedAssignment]:
        """Return the theoretical assignments of a task on a date.

        Args:
            task: Canonical task (see data_builders.normalize_task)
            date_value: Local date, `YYYY-MM-DD` or date object
            tasks_by_id: Read-only lookup used for linked rotations
            matchers: Optional per-task matcher cache, reused across calls
                that walk a date range forward

        Returns:
            Ordered list of ProjectedAssignment; empty when the task does not
            run on the date or has nobody eligible.

        Raises:
            CronParseError: If the task's cron expression is malformed
        """
        return RotationEngine.resolve_assignments(
            task,
            date_value,
            tasks_by_id or {},
            depth=0,
            max_depth=const.MAX_LINK_DEPTH,
            matchers=matchers,
        )

    @staticmethod
    def resolve_assignments(
        task: TaskData,
        date_value: str | date,
        tasks_by_id: Mapping[TaskId, TaskData],
        *,
        depth: int,
        max_depth: int,
        matchers: dict[TaskId, ScheduleMatcher] | None = None,
    ) -> list[ProjectedAssignment]:
        """Resolve assignments at a given link depth.

        `depth` counts how many linked tasks have been followed to reach
        `task`. Past `max_depth` the first pool member is returned with index
        0 and a warning is logged, so cyclic links terminate.
        """
        target = dt_parse_date(date_value)
        if target is None:
            const.LOGGER.debug(
                "Unparsable date %r for task %s", date_value, task.get(const.DATA_TASK_ID)
            )
            return []

        rotation: RotationData = task.get(const.DATA_TASK_ROTATION) or {}
        pool = list(rotation.get(const.DATA_ROTATION_ASSIGNED_CHILD_IDS) or [])

        if depth > max_depth:
            const.LOGGER.warning(
                "Max link depth (%s) reached for task %s on %s, using first child",
                max_depth,
                task.get(const.DATA_TASK_ID),
                target.isoformat(),
            )
            return [ProjectedAssignment(pool[0], 0)] if pool else []

        # One-off: only on the due date
        if task.get(const.DATA_TASK_TYPE) == const.TASK_TYPE_ONEOFF:
            due_date = (task.get(const.DATA_TASK_ONE_OFF) or {}).get(
                const.DATA_ONE_OFF_DUE_DATE
            )
            if not due_date or dt_date_part(due_date) != target.isoformat():
                return []
            return [ProjectedAssignment(pool[0], 0)] if pool else []

        schedule = task.get(const.DATA_TASK_SCHEDULE)
        if not schedule:
            return []
        matcher = RotationEngine._schedule_matcher(task, schedule, matchers)
        if not matcher.matches(target):
            return []

        if not pool:
            return []

        mode = rotation.get(const.DATA_ROTATION_MODE) or const.DEFAULT_ROTATION_MODE

        if mode == const.ROTATION_MODE_ROUND_ROBIN:
            linked_task_id = rotation.get(const.DATA_ROTATION_LINKED_TASK_ID)
            linked_task = tasks_by_id.get(linked_task_id) if linked_task_id else None
            if linked_task is not None:
                return RotationEngine._resolve_linked(
                    rotation,
                    pool,
                    linked_task,
                    target,
                    tasks_by_id,
                    depth=depth,
                    max_depth=max_depth,
                    matchers=matchers,
                )
            if linked_task_id:
                const.LOGGER.debug(
                    "Linked task %s not found for task %s, rotating independently",
                    linked_task_id,
                    task.get(const.DATA_TASK_ID),
                )
            return RotationEngine._resolve_round_robin(task, rotation, pool, matcher, target)

        if mode == const.ROTATION_MODE_SIMULTANEOUS:
            return [ProjectedAssignment(child_id, index) for index, child_id in enumerate(pool)]

        return [ProjectedAssignment(pool[0], 0)]

    @staticmethod
    def assign_task_to_children(
        task: TaskData,
        children: Iterable[ChildData],
        date_value: str | date,
        tasks_by_id: Mapping[TaskId, TaskData] | None = None,
    ) -> list[HydratedAssignment]:
        """Resolve assignments and attach the matching child records.

        Assignments whose child id is not in `children` are dropped.
        """
        children_by_id = {
            str(child[const.DATA_CHILD_ID]): child for child in children
        }
        hydrated: list[HydratedAssignment] = []
        for assignment in RotationEngine.get_assignments(task, date_value, tasks_by_id):
            child = children_by_id.get(str(assignment.child_id))
            if child is None:
                const.LOGGER.debug(
                    "Dropping assignment of task %s to unknown child %s",
                    task.get(const.DATA_TASK_ID),
                    assignment.child_id,
                )
                continue
            hydrated.append(HydratedAssignment(child, assignment.rotation_index))
        return hydrated

    @staticmethod
    def rebase_rotation(
        task: TaskData,
        child_id: ChildId,
        date_value: str | date,
    ) -> RotationData:
        """Return rotation settings that put `child_id` on `date_value`.

        Used when a parent moves a rotating task to another child and asks
        for all future turns to follow from there. The turn order is rotated
        so `child_id` comes first and the rotation restarts on the date.
        History is cleared because it no longer describes this rotation.
        The task itself is not modified.
        """
        rotation = cast("RotationData", dict(task.get(const.DATA_TASK_ROTATION) or {}))
        target = dt_parse_date(date_value)
        order = list(
            rotation.get(const.DATA_ROTATION_ORDER)
            or rotation.get(const.DATA_ROTATION_ASSIGNED_CHILD_IDS)
            or []
        )
        if target is None or child_id not in order:
            const.LOGGER.debug(
                "Cannot rebase task %s onto child %s", task.get(const.DATA_TASK_ID), child_id
            )
            return rotation

        position = order.index(child_id)
        rotation[const.DATA_ROTATION_ORDER] = order[position:] + order[:position]
        rotation[const.DATA_ROTATION_START_DATE] = target.isoformat()
        rotation.pop(const.DATA_ROTATION_HISTORY, None)
        return rotation

    # =========================================================================
    # Round-robin
    # =========================================================================

    @staticmethod
    def _schedule_matcher(
        task: TaskData,
        schedule: ScheduleData,
        matchers: dict[TaskId, ScheduleMatcher] | None,
    ) -> ScheduleMatcher:
        """Return the task's matcher, reusing a cached one when available."""
        if matchers is None:
            return ScheduleMatcher(schedule)
        task_id = task.get(const.DATA_TASK_ID)
        matcher = matchers.get(task_id)
        if matcher is None:
            matcher = matchers[task_id] = ScheduleMatcher(schedule)
        return matcher

    @staticmethod
    def occurrence_index(
        task: TaskData,
        rotation: RotationData,
        matcher: ScheduleMatcher,
        target: date,
    ) -> int | None:
        """Count the task's occurrences from the rotation start up to `target`.

        The rotation starts at `rotation.start_date`, else the task's creation
        date, else `target` itself. Plain every-day rules use day arithmetic;
        every other schedule counts the dates it actually fires on.

        Returns:
            Zero-based index of `target` in the rotation, or None when
            `target` precedes the rotation start.
        """
        start = dt_parse_date(rotation.get(const.DATA_ROTATION_START_DATE)) or dt_parse_date(
            task.get(const.DATA_TASK_CREATED_AT)
        )
        if start is None:
            const.LOGGER.debug(
                "Task %s has no rotation start, starting at %s",
                task.get(const.DATA_TASK_ID),
                target.isoformat(),
            )
            return 0
        if target < start:
            return None

        if RotationEngine._fires_every_day_since(matcher, start):
            return dt_days_between(start, target)
        return matcher.count_between(start, target)

    @staticmethod
    def _fires_every_day_since(matcher: ScheduleMatcher, start: date) -> bool:
        """Whether the schedule fires on every day from `start` onward."""
        engine = matcher.rule_engine
        if engine is None or matcher.has_date_overrides:
            return False
        if engine.frequency != const.FREQUENCY_DAILY or engine.interval != 1:
            return False
        first = engine.start_date
        return first is None or first <= start

    @staticmethod
    def _resolve_round_robin(
        task: TaskData,
        rotation: RotationData,
        pool: list[ChildId],
        matcher: ScheduleMatcher,
        target: date,
    ) -> list[ProjectedAssignment]:
        occurrence = RotationEngine.occurrence_index(task, rotation, matcher, target)
        if occurrence is None:
            return []
        order = rotation.get(const.DATA_ROTATION_ORDER) or pool
        index = occurrence % len(order)
        return [ProjectedAssignment(order[index], index)]

    # =========================================================================
    # Linked rotation
    # =========================================================================

    @staticmethod
    def _resolve_linked(
        rotation: RotationData,
        pool: list[ChildId],
        linked_task: TaskData,
        target: date,
        tasks_by_id: Mapping[TaskId, TaskData],
        *,
        depth: int,
        max_depth: int,
        matchers: dict[TaskId, ScheduleMatcher] | None = None,
    ) -> list[ProjectedAssignment]:
        """Follow the linked task's turn, shifted by `linked_task_offset`.

        Offset 0 picks the same child as the linked task, offset 1 the next
        child in the linked task's order, and so on.
        """
        linked_rotation: RotationData = linked_task.get(const.DATA_TASK_ROTATION) or {}
        linked_order = list(
            linked_rotation.get(const.DATA_ROTATION_ORDER)
            or linked_rotation.get(const.DATA_ROTATION_ASSIGNED_CHILD_IDS)
            or []
        )
        if not linked_order:
            return []

        linked_assignments = RotationEngine.resolve_assignments(
            linked_task,
            target,
            tasks_by_id,
            depth=depth + 1,
            max_depth=max_depth,
            matchers=matchers,
        )
        if linked_assignments and linked_assignments[0].child_id in linked_order:
            position = linked_order.index(linked_assignments[0].child_id)
            offset = rotation.get(
                const.DATA_ROTATION_LINKED_TASK_OFFSET, const.DEFAULT_LINKED_TASK_OFFSET
            )
            target_child = linked_order[(position + offset) % len(linked_order)]
            if target_child in pool:
                return [ProjectedAssignment(target_child, pool.index(target_child))]

        own_order = rotation.get(const.DATA_ROTATION_ORDER) or []
        fallback = own_order[0] if own_order and own_order[0] in pool else pool[0]
        return [ProjectedAssignment(fallback, pool.index(fallback))]
