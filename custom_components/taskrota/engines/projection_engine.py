"""Projection Engine - Read-side preview of upcoming task instances.

Projects every enabled template over an inclusive date range without
consulting or producing any persisted state. Projected instances carry
deterministic ids (`projected_<task>_<child>_<date>`) so a view can diff
successive projections.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import TYPE_CHECKING

from .. import const
from ..data_builders import build_projected_instance, index_tasks
from ..utils.dt_utils import dt_iter_days, dt_now_iso, dt_parse_date
from .instance_engine import InstanceEngine
from .rotation_engine import RotationEngine

if TYPE_CHECKING:
    from ..type_defs import ChildData, TaskData, TaskId, TaskInstanceData
    from .schedule_engine import ScheduleMatcher


class ProjectionEngine:
    """Stateless range projector."""

    @staticmethod
    def project_range(
        templates: Sequence[TaskData],
        children: Iterable[ChildData],
        start: str | date,
        end: str | date,
        *,
        now: str | None = None,
    ) -> list[TaskInstanceData]:
        """Project instances for every day in `[start, end]`.

        Returns:
            Instances ordered by date, then template order, then assignment
            order. Empty when either bound is unparsable or start > end.

        Raises:
            CronParseError: If a template's cron expression is malformed
        """
        start_date = dt_parse_date(start)
        end_date = dt_parse_date(end)
        if start_date is None or end_date is None or start_date > end_date:
            return []

        created_at = now or dt_now_iso()
        tasks_by_id = index_tasks(templates)
        child_ids = {str(child[const.DATA_CHILD_ID]) for child in children}
        # Shared across days so round-robin counts resume instead of restarting
        matchers: dict[TaskId, ScheduleMatcher] = {}
        projected: list[TaskInstanceData] = []

        for day in dt_iter_days(start_date, end_date):
            date_iso = day.isoformat()
            for task in templates:
                if not InstanceEngine.is_template_active(task, date_iso):
                    continue
                assignments = RotationEngine.get_assignments(
                    task, day, tasks_by_id, matchers=matchers
                )
                if not assignments:
                    continue
                due_at = InstanceEngine.compute_due_at(task, date_iso)
                projected.extend(
                    build_projected_instance(
                        task,
                        assignment.child_id,
                        date_iso,
                        rotation_index=assignment.rotation_index,
                        due_at=due_at,
                        created_at=created_at,
                    )
                    for assignment in assignments
                    if str(assignment.child_id) in child_ids
                )

        return projected

    @staticmethod
    def group_by_date(
        instances: Iterable[TaskInstanceData],
    ) -> dict[str, list[TaskInstanceData]]:
        """Group instances by date, keeping dates and instances in input order."""
        grouped: dict[str, list[TaskInstanceData]] = {}
        for instance in instances:
            grouped.setdefault(instance[const.DATA_INSTANCE_DATE], []).append(instance)
        return grouped
