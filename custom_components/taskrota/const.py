# File: const.py
"""Constants for the TaskRota scheduling engine.

This file centralizes data keys, defaults, enumerated values and safety limits
used across the engines, builders and helpers so every module refers to the
same names.
"""

import logging

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Safety Limits
# ------------------------------------------------------------------------------------------------

# Linked rotations resolve each other recursively; cycles stop here
MAX_LINK_DEPTH = 10

# Days probed when searching for upcoming occurrences
MAX_OCCURRENCE_PROBE_DAYS = 365

# Default number of upcoming occurrences returned by the schedule helpers
DEFAULT_OCCURRENCE_COUNT = 5

# ------------------------------------------------------------------------------------------------
# Task Types
# ------------------------------------------------------------------------------------------------
TASK_TYPE_RECURRING = "recurring"
TASK_TYPE_ONEOFF = "oneoff"

# ------------------------------------------------------------------------------------------------
# Recurrence Frequencies
# ------------------------------------------------------------------------------------------------
FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"
FREQUENCY_YEARLY = "yearly"

# Recurrence end types
END_TYPE_AFTER_DATE = "after_date"
END_TYPE_AFTER_OCCURRENCES = "after_occurrences"

# Set position meaning "last occurrence of the weekday in the month"
SET_POSITION_LAST = -1

# ------------------------------------------------------------------------------------------------
# Legacy Cadences (pre-schedule tasks and chores)
# ------------------------------------------------------------------------------------------------
CADENCE_DAILY = "daily"
CADENCE_WEEKLY = "weekly"
CADENCE_MONTHLY = "monthly"
CADENCE_CUSTOM = "custom"
CADENCE_WEEKDAYS = "weekdays"
CADENCE_WEEKENDS = "weekends"
CADENCE_CUSTOM_DAYS = "custom-days"

# ------------------------------------------------------------------------------------------------
# Weekdays (0 = Sunday, matching the calendar grid used by task templates)
# ------------------------------------------------------------------------------------------------
WEEKDAY_SUNDAY = 0
WEEKDAY_MONDAY = 1
WEEKDAY_TUESDAY = 2
WEEKDAY_WEDNESDAY = 3
WEEKDAY_THURSDAY = 4
WEEKDAY_FRIDAY = 5
WEEKDAY_SATURDAY = 6

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

WEEKDAYS_WORKWEEK = [
    WEEKDAY_MONDAY,
    WEEKDAY_TUESDAY,
    WEEKDAY_WEDNESDAY,
    WEEKDAY_THURSDAY,
    WEEKDAY_FRIDAY,
]
WEEKDAYS_WEEKEND = [WEEKDAY_SUNDAY, WEEKDAY_SATURDAY]

DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12

# ------------------------------------------------------------------------------------------------
# Rotation Modes
# ------------------------------------------------------------------------------------------------
ROTATION_MODE_SINGLE_CHILD = "single-child"
ROTATION_MODE_SIMULTANEOUS = "simultaneous"
ROTATION_MODE_ROUND_ROBIN = "round-robin"

ROTATION_MODE_OPTIONS = [
    ROTATION_MODE_SINGLE_CHILD,
    ROTATION_MODE_SIMULTANEOUS,
    ROTATION_MODE_ROUND_ROBIN,
]

DEFAULT_ROTATION_MODE = ROTATION_MODE_SINGLE_CHILD

# ------------------------------------------------------------------------------------------------
# Cron
# ------------------------------------------------------------------------------------------------
CRON_FIELD_COUNT = 5
CRON_WILDCARD = "*"
CRON_STEP_PREFIX = "*/"

CRON_FIELD_MINUTE = "minute"
CRON_FIELD_HOUR = "hour"
CRON_FIELD_DAY_OF_MONTH = "day_of_month"
CRON_FIELD_MONTH = "month"
CRON_FIELD_DAY_OF_WEEK = "day_of_week"

# (name, minimum, maximum) in cron field order
CRON_FIELD_BOUNDS = [
    (CRON_FIELD_MINUTE, 0, 59),
    (CRON_FIELD_HOUR, 0, 23),
    (CRON_FIELD_DAY_OF_MONTH, 1, 31),
    (CRON_FIELD_MONTH, 1, 12),
    (CRON_FIELD_DAY_OF_WEEK, 0, 7),
]

# ------------------------------------------------------------------------------------------------
# Instance ID Prefixes
# ------------------------------------------------------------------------------------------------
INSTANCE_ID_PREFIX_PROJECTED = "projected"
INSTANCE_ID_PREFIX_ONEOFF = "oneoff"
INSTANCE_ID_PREFIX_INSTANCE = "instance"

# ------------------------------------------------------------------------------------------------
# Data Keys: Task Templates
# ------------------------------------------------------------------------------------------------
DATA_TASK_ID = "id"
DATA_TASK_TITLE = "title"
DATA_TASK_DESCRIPTION = "description"
DATA_TASK_TYPE = "type"
DATA_TASK_ENABLED = "enabled"
DATA_TASK_CREATED_AT = "created_at"
DATA_TASK_SCHEDULE = "schedule"
DATA_TASK_RECURRING = "recurring"
DATA_TASK_ROTATION = "rotation"
DATA_TASK_ASSIGNED_CHILD_IDS = "assigned_child_ids"
DATA_TASK_ONE_OFF = "one_off"
DATA_TASK_STARS = "stars"
DATA_TASK_MONEY = "money"
DATA_TASK_DISABLED_AFTER = "disabled_after"
DATA_TASK_TAGS = "tags"

# Legacy recurring settings
DATA_RECURRING_CADENCE = "cadence"
DATA_RECURRING_TIME_OF_DAY = "time_of_day"
DATA_RECURRING_CUSTOM_DAYS = "custom_days"

# One-off settings
DATA_ONE_OFF_DUE_DATE = "due_date"

# ------------------------------------------------------------------------------------------------
# Data Keys: Schedules and Recurrence Rules
# ------------------------------------------------------------------------------------------------
DATA_SCHEDULE_RULE = "rule"
DATA_SCHEDULE_CRON_EXPRESSION = "cron_expression"
DATA_SCHEDULE_DUE_TIME = "due_time"
DATA_SCHEDULE_INCLUDE_DATES = "include_dates"
DATA_SCHEDULE_EXCLUDE_DATES = "exclude_dates"
DATA_SCHEDULE_TIMEZONE = "timezone"
DATA_SCHEDULE_DESCRIPTION = "description"

DATA_RULE_FREQUENCY = "frequency"
DATA_RULE_INTERVAL = "interval"
DATA_RULE_BY_WEEKDAY = "by_weekday"
DATA_RULE_BY_MONTHDAY = "by_monthday"
DATA_RULE_BY_SET_POSITION = "by_set_position"
DATA_RULE_START_DATE = "start_date"
DATA_RULE_END_DATE = "end_date"
DATA_RULE_END = "end"
DATA_RULE_INCLUDE_DATES = "include_dates"
DATA_RULE_EXCLUDE_DATES = "exclude_dates"
DATA_RULE_START_TIME = "start_time"
DATA_RULE_TIME_OF_DAY = "time_of_day"
DATA_RULE_TIMEZONE = "timezone"

DATA_RULE_END_TYPE = "type"
DATA_RULE_END_DATE_VALUE = "date"
DATA_RULE_END_OCCURRENCES = "occurrences"

# ------------------------------------------------------------------------------------------------
# Data Keys: Rotation
# ------------------------------------------------------------------------------------------------
DATA_ROTATION_MODE = "mode"
DATA_ROTATION_ASSIGNED_CHILD_IDS = "assigned_child_ids"
DATA_ROTATION_ORDER = "rotation_order"
DATA_ROTATION_LINKED_TASK_ID = "linked_task_id"
DATA_ROTATION_LINKED_TASK_OFFSET = "linked_task_offset"
DATA_ROTATION_START_DATE = "start_date"
DATA_ROTATION_HISTORY = "history"

DATA_ROTATION_HISTORY_LAST_CHILD_ID = "last_child_id"
DATA_ROTATION_HISTORY_LAST_INDEX = "last_rotation_index"
DATA_ROTATION_HISTORY_LAST_DATE = "last_date"

# ------------------------------------------------------------------------------------------------
# Data Keys: Task Instances
# ------------------------------------------------------------------------------------------------
DATA_INSTANCE_ID = "id"
DATA_INSTANCE_TEMPLATE_ID = "template_id"
DATA_INSTANCE_CHILD_ID = "child_id"
DATA_INSTANCE_DATE = "date"
DATA_INSTANCE_STARS = "stars"
DATA_INSTANCE_MONEY = "money"
DATA_INSTANCE_COMPLETED = "completed"
DATA_INSTANCE_CREATED_AT = "created_at"
DATA_INSTANCE_ROTATION_INDEX = "rotation_index"
DATA_INSTANCE_DUE_AT = "due_at"

# ------------------------------------------------------------------------------------------------
# Data Keys: Children
# ------------------------------------------------------------------------------------------------
DATA_CHILD_ID = "id"
DATA_CHILD_NAME = "name"

# ------------------------------------------------------------------------------------------------
# Data Keys: Rotation State Deltas
# ------------------------------------------------------------------------------------------------
DATA_DELTA_TASK_ID = "task_id"
DATA_DELTA_ROTATION = "rotation"
DATA_DELTA_ASSIGNMENT = "assignment"

DATA_ASSIGNMENT_CHILD_IDS = "child_ids"
DATA_ASSIGNMENT_DATE = "date"

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_INTERVAL = 1
DEFAULT_LINKED_TASK_OFFSET = 0
DEFAULT_TASK_ENABLED = True
DEFAULT_STARS = 0
DEFAULT_MONEY = 0.0

# ------------------------------------------------------------------------------------------------
# Display
# ------------------------------------------------------------------------------------------------
DISPLAY_NO_SCHEDULE = "No schedule"
DISPLAY_CRON_PREFIX = "Cron: "
