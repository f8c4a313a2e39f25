"""Tests for engines/rotation_engine.py assignment resolution.

Covers:
- single-child, simultaneous and round-robin modes
- Round-robin counting over sparse schedules
- One-off tasks
- Linked rotations with offsets, fallbacks and cycles
"""

from collections.abc import Callable
import logging

import pytest

from custom_components.taskrota import const
from custom_components.taskrota.data_builders import index_tasks
from custom_components.taskrota.engines.rotation_engine import RotationEngine
from custom_components.taskrota.type_defs import ProjectedAssignment, TaskData

from tests.conftest import CHILD_AVA, CHILD_BEN, CHILD_CAL, round_robin

MakeTask = Callable[..., TaskData]


def assigned_child(task: TaskData, date_iso: str, tasks: list[TaskData] | None = None):
    """Return the single assigned child id, or None."""
    result = RotationEngine.get_assignments(task, date_iso, index_tasks(tasks or [task]))
    assert len(result) <= 1
    return result[0].child_id if result else None


# =============================================================================
# Basic modes
# =============================================================================


class TestBasicModes:
    """Test single-child and simultaneous modes and early exits."""

    def test_single_child_picks_first(self, make_task: MakeTask) -> None:
        """single-child always returns the first pool member."""
        task = make_task(
            rotation={"mode": "single-child", "assigned_child_ids": [CHILD_BEN, CHILD_AVA]}
        )
        assert RotationEngine.get_assignments(task, "2024-03-10") == [
            ProjectedAssignment(CHILD_BEN, 0)
        ]

    def test_simultaneous_assigns_everyone(self, make_task: MakeTask) -> None:
        """Every pool member is assigned with its pool index."""
        task = make_task(
            rotation={"mode": "simultaneous", "assigned_child_ids": [CHILD_AVA, CHILD_BEN]}
        )
        assert RotationEngine.get_assignments(task, "2024-03-10") == [
            ProjectedAssignment(CHILD_AVA, 0),
            ProjectedAssignment(CHILD_BEN, 1),
        ]

    def test_no_schedule_no_assignment(self, make_task: MakeTask) -> None:
        """Recurring tasks without a schedule never run."""
        task = make_task(schedule=None, assigned_child_ids=[CHILD_AVA])
        assert RotationEngine.get_assignments(task, "2024-03-10") == []

    def test_not_running_today(self, make_task: MakeTask) -> None:
        """A schedule that does not fire yields nothing."""
        task = make_task(
            schedule={"rule": {"frequency": "weekly", "by_weekday": [const.WEEKDAY_MONDAY]}},
            assigned_child_ids=[CHILD_AVA],
        )
        assert RotationEngine.get_assignments(task, "2024-03-10") == []
        assert RotationEngine.get_assignments(task, "2024-03-11") == [
            ProjectedAssignment(CHILD_AVA, 0)
        ]

    def test_empty_pool(self, make_task: MakeTask) -> None:
        """Nobody eligible means nobody assigned."""
        task = make_task(rotation={"mode": "round-robin", "assigned_child_ids": []})
        assert RotationEngine.get_assignments(task, "2024-03-10") == []

    def test_unparsable_date(self, make_task: MakeTask) -> None:
        """Bad dates resolve to no assignment."""
        task = make_task(assigned_child_ids=[CHILD_AVA])
        assert RotationEngine.get_assignments(task, "someday") == []


# =============================================================================
# Round-robin
# =============================================================================


class TestRoundRobin:
    """Test occurrence counting and turn selection."""

    def test_daily_rotation(self, make_task: MakeTask) -> None:
        """Each day advances one turn and wraps around."""
        task = make_task(rotation=round_robin([CHILD_AVA, CHILD_BEN, CHILD_CAL]))
        days = ["2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04"]
        assert [RotationEngine.get_assignments(task, d)[0] for d in days] == [
            ProjectedAssignment(CHILD_AVA, 0),
            ProjectedAssignment(CHILD_BEN, 1),
            ProjectedAssignment(CHILD_CAL, 2),
            ProjectedAssignment(CHILD_AVA, 0),
        ]

    def test_every_child_once_per_cycle(self, make_task: MakeTask) -> None:
        """Any window of pool-size firing dates covers each child exactly once."""
        pool = [CHILD_AVA, CHILD_BEN, CHILD_CAL]
        task = make_task(rotation=round_robin(pool))
        for first_day in range(10, 20):
            window = [f"2024-04-{day:02d}" for day in range(first_day, first_day + 3)]
            assert sorted(assigned_child(task, d) for d in window) == pool

    def test_before_rotation_start(self, make_task: MakeTask) -> None:
        """Dates before the rotation start have no assignment."""
        task = make_task(rotation=round_robin([CHILD_AVA, CHILD_BEN], "2024-03-05"))
        assert RotationEngine.get_assignments(task, "2024-03-04") == []

    def test_created_at_anchors_without_start(self, make_task: MakeTask) -> None:
        """The creation date is used when the rotation has no start."""
        task = make_task(
            rotation={"mode": "round-robin", "assigned_child_ids": [CHILD_AVA, CHILD_BEN]}
        )
        assert assigned_child(task, "2024-03-01") == CHILD_AVA
        assert assigned_child(task, "2024-03-02") == CHILD_BEN

    def test_rotation_order(self, make_task: MakeTask) -> None:
        """An explicit order decides who goes first."""
        task = make_task(
            rotation=round_robin(
                [CHILD_AVA, CHILD_BEN, CHILD_CAL],
                rotation_order=[CHILD_CAL, CHILD_AVA, CHILD_BEN],
            )
        )
        assert RotationEngine.get_assignments(task, "2024-03-01") == [
            ProjectedAssignment(CHILD_CAL, 0)
        ]
        assert assigned_child(task, "2024-03-02") == CHILD_AVA

    def test_counts_firing_dates_not_days(self, make_task: MakeTask) -> None:
        """Monday/Wednesday chores alternate on every firing date."""
        task = make_task(
            schedule={
                "rule": {
                    "frequency": "weekly",
                    "by_weekday": [const.WEEKDAY_MONDAY, const.WEEKDAY_WEDNESDAY],
                }
            },
            rotation=round_robin([CHILD_AVA, CHILD_BEN], "2024-03-04"),
        )
        days = ["2024-03-04", "2024-03-06", "2024-03-11", "2024-03-13"]
        assert [assigned_child(task, d) for d in days] == [
            CHILD_AVA,
            CHILD_BEN,
            CHILD_AVA,
            CHILD_BEN,
        ]

    def test_excluded_dates_do_not_consume_turns(self, make_task: MakeTask) -> None:
        """A skipped day does not advance the rotation."""
        task = make_task(
            schedule={"rule": {"frequency": "daily"}, "exclude_dates": ["2024-03-02"]},
            rotation=round_robin([CHILD_AVA, CHILD_BEN]),
        )
        assert assigned_child(task, "2024-03-01") == CHILD_AVA
        assert assigned_child(task, "2024-03-02") is None
        assert assigned_child(task, "2024-03-03") == CHILD_BEN

    def test_deterministic(self, make_task: MakeTask) -> None:
        """Repeated resolution gives identical results."""
        task = make_task(rotation=round_robin([CHILD_AVA, CHILD_BEN, CHILD_CAL]))
        first = RotationEngine.get_assignments(task, "2025-01-17")
        assert RotationEngine.get_assignments(task, "2025-01-17") == first


# =============================================================================
# One-off
# =============================================================================


class TestOneOff:
    """Test one-off tasks."""

    def test_only_on_due_date(self, make_task: MakeTask) -> None:
        """Exactly one assignment, on the due date, to the first pool member."""
        task = make_task(
            one_off={"due_date": "2024-03-10T17:00:00"},
            assigned_child_ids=[CHILD_BEN, CHILD_AVA],
        )
        assert RotationEngine.get_assignments(task, "2024-03-10") == [
            ProjectedAssignment(CHILD_BEN, 0)
        ]
        assert RotationEngine.get_assignments(task, "2024-03-09") == []
        assert RotationEngine.get_assignments(task, "2024-03-11") == []

    def test_without_due_date_or_pool(self, make_task: MakeTask) -> None:
        """Missing due date or pool means no assignment."""
        undated = make_task(type="oneoff", assigned_child_ids=[CHILD_AVA])
        nobody = make_task(one_off={"due_date": "2024-03-10"})
        assert RotationEngine.get_assignments(undated, "2024-03-10") == []
        assert RotationEngine.get_assignments(nobody, "2024-03-10") == []


# =============================================================================
# Linked rotations
# =============================================================================


class TestLinkedRotation:
    """Test rotations that follow another task."""

    @pytest.fixture
    def source(self, make_task: MakeTask) -> TaskData:
        """Daily round-robin over Ava, Ben, Cal from Mar 1."""
        return make_task("dishes", rotation=round_robin([CHILD_AVA, CHILD_BEN, CHILD_CAL]))

    def test_offset_follows_source(self, make_task: MakeTask, source: TaskData) -> None:
        """Offset 1 picks the child after the source's child."""
        follower = make_task(
            "drying",
            rotation=round_robin(
                [CHILD_AVA, CHILD_BEN, CHILD_CAL],
                linked_task_id="dishes",
                linked_task_offset=1,
            ),
        )
        tasks = [source, follower]
        assert assigned_child(source, "2024-03-02", tasks) == CHILD_BEN
        assert RotationEngine.get_assignments(follower, "2024-03-02", index_tasks(tasks)) == [
            ProjectedAssignment(CHILD_CAL, 2)
        ]
        assert assigned_child(follower, "2024-03-03", tasks) == CHILD_AVA

    def test_offset_zero_matches_source(self, make_task: MakeTask, source: TaskData) -> None:
        """Offset 0 assigns the same child as the source."""
        follower = make_task(
            "drying",
            rotation=round_robin([CHILD_AVA, CHILD_BEN, CHILD_CAL], linked_task_id="dishes"),
        )
        tasks = [source, follower]
        for day in ("2024-03-01", "2024-03-02", "2024-03-03"):
            assert assigned_child(follower, day, tasks) == assigned_child(source, day, tasks)

    def test_ineligible_target_falls_back_to_own_order(
        self, make_task: MakeTask, source: TaskData
    ) -> None:
        """A target outside this task's pool falls back to its own first turn."""
        follower = make_task(
            "drying",
            rotation=round_robin(
                [CHILD_AVA, CHILD_BEN],
                linked_task_id="dishes",
                linked_task_offset=1,
                rotation_order=[CHILD_BEN, CHILD_AVA],
            ),
        )
        # Source has Ben on Mar 2, so the target is Cal, who is not eligible
        assert RotationEngine.get_assignments(
            follower, "2024-03-02", index_tasks([source, follower])
        ) == [ProjectedAssignment(CHILD_BEN, 1)]

    def test_ineligible_target_falls_back_to_pool(
        self, make_task: MakeTask, source: TaskData
    ) -> None:
        """Without an own order the first pool member is used."""
        follower = make_task(
            "drying",
            rotation=round_robin(
                [CHILD_AVA, CHILD_BEN], linked_task_id="dishes", linked_task_offset=1
            ),
        )
        assert assigned_child(follower, "2024-03-02", [source, follower]) == CHILD_AVA

    def test_source_not_running_falls_back(self, make_task: MakeTask) -> None:
        """When the source has nobody that day the follower still gets a child."""
        mondays = make_task(
            "bins",
            schedule={"rule": {"frequency": "weekly", "by_weekday": [const.WEEKDAY_MONDAY]}},
            rotation=round_robin([CHILD_AVA, CHILD_BEN]),
        )
        follower = make_task(
            "recycling",
            rotation=round_robin([CHILD_AVA, CHILD_BEN], linked_task_id="bins"),
        )
        assert assigned_child(follower, "2024-03-05", [mondays, follower]) == CHILD_AVA

    def test_missing_linked_task_rotates_independently(self, make_task: MakeTask) -> None:
        """An unknown linked id is ignored."""
        task = make_task(
            rotation=round_robin([CHILD_AVA, CHILD_BEN], linked_task_id="deleted"),
        )
        assert assigned_child(task, "2024-03-02") == CHILD_BEN

    def test_cycle_terminates_with_fallback(
        self, make_task: MakeTask, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Mutually linked tasks resolve to the first child and log a warning."""
        task_a = make_task("a", rotation=round_robin([CHILD_AVA, CHILD_BEN], linked_task_id="b"))
        task_b = make_task("b", rotation=round_robin([CHILD_AVA, CHILD_BEN], linked_task_id="a"))
        tasks_by_id = index_tasks([task_a, task_b])

        with caplog.at_level(logging.WARNING):
            result_a = RotationEngine.get_assignments(task_a, "2024-03-02", tasks_by_id)
            result_b = RotationEngine.get_assignments(task_b, "2024-03-02", tasks_by_id)

        assert result_a == [ProjectedAssignment(CHILD_AVA, 0)]
        assert result_b == [ProjectedAssignment(CHILD_AVA, 0)]
        assert "Max link depth" in caplog.text

    def test_depth_past_limit_uses_first_child(self, make_task: MakeTask) -> None:
        """Resolution beyond max_depth short-circuits."""
        task = make_task(rotation=round_robin([CHILD_BEN, CHILD_AVA]))
        assert RotationEngine.resolve_assignments(
            task, "2024-03-02", {}, depth=3, max_depth=2
        ) == [ProjectedAssignment(CHILD_BEN, 0)]


# =============================================================================
# Hydration and rebasing
# =============================================================================


class TestHydrationAndRebase:
    """Test child hydration and rotation rebasing."""

    def test_assign_task_to_children_drops_unknown(self, make_task: MakeTask) -> None:
        """Only children present in the list are returned."""
        task = make_task(rotation={"mode": "simultaneous", "assigned_child_ids": [CHILD_AVA, 99]})
        children = [{const.DATA_CHILD_ID: CHILD_AVA, const.DATA_CHILD_NAME: "Ava"}]
        hydrated = RotationEngine.assign_task_to_children(task, children, "2024-03-10")
        assert len(hydrated) == 1
        assert hydrated[0].child[const.DATA_CHILD_NAME] == "Ava"
        assert hydrated[0].rotation_index == 0

    def test_rebase_rotation(self, make_task: MakeTask) -> None:
        """The chosen child takes the date and the order continues from them."""
        task = make_task(
            rotation=round_robin(
                [CHILD_AVA, CHILD_BEN, CHILD_CAL],
                history={"last_child_id": CHILD_AVA, "last_rotation_index": 0},
            )
        )
        rotation = RotationEngine.rebase_rotation(task, CHILD_CAL, "2024-03-05")

        assert rotation[const.DATA_ROTATION_ORDER] == [CHILD_CAL, CHILD_AVA, CHILD_BEN]
        assert rotation[const.DATA_ROTATION_START_DATE] == "2024-03-05"
        assert const.DATA_ROTATION_HISTORY not in rotation
        assert const.DATA_ROTATION_HISTORY in task[const.DATA_TASK_ROTATION]

        rebased = {**task, const.DATA_TASK_ROTATION: rotation}
        assert assigned_child(rebased, "2024-03-05") == CHILD_CAL  # type: ignore[arg-type]
        assert assigned_child(rebased, "2024-03-06") == CHILD_AVA  # type: ignore[arg-type]

    def test_rebase_unknown_child_is_noop(self, make_task: MakeTask) -> None:
        """Rebasing onto a child outside the rotation changes nothing."""
        task = make_task(rotation=round_robin([CHILD_AVA, CHILD_BEN]))
        assert RotationEngine.rebase_rotation(task, 99, "2024-03-05") == task[
            const.DATA_TASK_ROTATION
        ]
