"""Shared fixtures for TaskRota tests."""

from collections.abc import Callable, Generator
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from custom_components.taskrota import const
from custom_components.taskrota.data_builders import normalize_task
from custom_components.taskrota.type_defs import ChildData, TaskData
from custom_components.taskrota.utils import dt_utils

# Child ids used throughout the suite
CHILD_AVA = 1
CHILD_BEN = 2
CHILD_CAL = 3


@pytest.fixture(autouse=True)
def utc_default_timezone() -> Generator[None]:
    """Pin the local timezone to UTC and restore it afterwards."""
    previous = dt_utils.get_default_timezone()
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    yield
    dt_utils.set_default_timezone(previous)


@pytest.fixture
def children() -> list[ChildData]:
    """Return three children with numeric ids."""
    return [
        {const.DATA_CHILD_ID: CHILD_AVA, const.DATA_CHILD_NAME: "Ava"},
        {const.DATA_CHILD_ID: CHILD_BEN, const.DATA_CHILD_NAME: "Ben"},
        {const.DATA_CHILD_ID: CHILD_CAL, const.DATA_CHILD_NAME: "Cal"},
    ]


@pytest.fixture
def make_task() -> Callable[..., TaskData]:
    """Return a factory building normalized tasks.

    Defaults to an enabled, daily recurring task created on 2024-03-01.
    Keyword arguments override top-level keys of the raw record.
    """

    def _make_task(task_id: str = "chore", **overrides: Any) -> TaskData:
        raw: dict[str, Any] = {
            const.DATA_TASK_ID: task_id,
            const.DATA_TASK_TITLE: task_id.title(),
            const.DATA_TASK_TYPE: const.TASK_TYPE_RECURRING,
            const.DATA_TASK_ENABLED: True,
            const.DATA_TASK_CREATED_AT: "2024-03-01T08:00:00+00:00",
            const.DATA_TASK_STARS: 2,
            const.DATA_TASK_MONEY: 0.5,
            const.DATA_TASK_SCHEDULE: {
                const.DATA_SCHEDULE_RULE: {
                    const.DATA_RULE_FREQUENCY: const.FREQUENCY_DAILY,
                    const.DATA_RULE_INTERVAL: 1,
                }
            },
        }
        raw.update(overrides)
        return normalize_task(raw)

    return _make_task


def round_robin(
    pool: list[int],
    start_date: str = "2024-03-01",
    **extra: Any,
) -> dict[str, Any]:
    """Build raw round-robin rotation settings."""
    return {
        const.DATA_ROTATION_MODE: const.ROTATION_MODE_ROUND_ROBIN,
        const.DATA_ROTATION_ASSIGNED_CHILD_IDS: pool,
        const.DATA_ROTATION_START_DATE: start_date,
        **extra,
    }
