# File: const.py
"""Constants for the recurring task engine.

This file centralizes storage keys, recurrence types, validation limits,
defaults and human-readable labels for consistency across the package.
"""

import logging

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Recurrence Types
# ------------------------------------------------------------------------------------------------
RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_MONTHLY = "monthly"
RECURRENCE_YEARLY = "yearly"

RECURRENCE_TYPES = (
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_MONTHLY,
    RECURRENCE_YEARLY,
)

# Which anchors apply to which recurrence type
RECURRENCE_ANCHOR_TYPES = {
    "day_of_week": (RECURRENCE_WEEKLY,),
    "day_of_month": (RECURRENCE_MONTHLY, RECURRENCE_YEARLY),
    "month_of_year": (RECURRENCE_YEARLY,),
}

# ------------------------------------------------------------------------------------------------
# Validation Limits
# ------------------------------------------------------------------------------------------------
MIN_INTERVAL = 1
MAX_INTERVAL = 999
MIN_DAY_OF_WEEK = 0  # Sunday
MAX_DAY_OF_WEEK = 6  # Saturday
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31
MIN_MONTH_OF_YEAR = 1
MAX_MONTH_OF_YEAR = 12

# ------------------------------------------------------------------------------------------------
# Generation Defaults / Safety
# ------------------------------------------------------------------------------------------------
# Instances are kept generated roughly six months ahead
DEFAULT_GENERATION_HORIZON_DAYS = 183

# Hard ceiling on cursor advances per generation run
MAX_OCCURRENCE_ITERATIONS = 50_000

# ------------------------------------------------------------------------------------------------
# Options (ScheduleOptions keys)
# ------------------------------------------------------------------------------------------------
CONF_GENERATION_HORIZON_DAYS = "generation_horizon_days"
CONF_MAX_OCCURRENCE_ITERATIONS = "max_occurrence_iterations"
CONF_MAX_INTERVAL = "max_interval"

DEFAULT_OPTIONS = {
    CONF_GENERATION_HORIZON_DAYS: DEFAULT_GENERATION_HORIZON_DAYS,
    CONF_MAX_OCCURRENCE_ITERATIONS: MAX_OCCURRENCE_ITERATIONS,
    CONF_MAX_INTERVAL: MAX_INTERVAL,
}

# ------------------------------------------------------------------------------------------------
# Data Keys: Recurrence Rule
# ------------------------------------------------------------------------------------------------
DATA_RULE_TYPE = "type"
DATA_RULE_INTERVAL = "interval"
DATA_RULE_DAY_OF_WEEK = "day_of_week"
DATA_RULE_DAY_OF_MONTH = "day_of_month"
DATA_RULE_MONTH_OF_YEAR = "month_of_year"

# ------------------------------------------------------------------------------------------------
# Data Keys: Recurring Template
# ------------------------------------------------------------------------------------------------
DATA_TEMPLATE_INTERNAL_ID = "internal_id"
DATA_TEMPLATE_OWNER_ID = "owner_id"
DATA_TEMPLATE_TITLE = "title"
DATA_TEMPLATE_DESCRIPTION = "description"
DATA_TEMPLATE_PRIORITY = "priority"
DATA_TEMPLATE_TAG = "tag"
DATA_TEMPLATE_SUBTASKS = "subtasks"
DATA_TEMPLATE_PROJECT_ID = "project_id"
DATA_TEMPLATE_RULE = "rule"
DATA_TEMPLATE_START_DATE = "start_date"
DATA_TEMPLATE_END_DATE = "end_date"
DATA_TEMPLATE_IS_ACTIVE = "is_active"
DATA_TEMPLATE_NEXT_OCCURRENCE = "next_occurrence"
DATA_TEMPLATE_CREATED_AT = "created_at"
DATA_TEMPLATE_UPDATED_AT = "updated_at"

# Task fields a user may edit on an existing template
TEMPLATE_TASK_FIELDS = (
    DATA_TEMPLATE_TITLE,
    DATA_TEMPLATE_DESCRIPTION,
    DATA_TEMPLATE_PRIORITY,
    DATA_TEMPLATE_TAG,
    DATA_TEMPLATE_SUBTASKS,
    DATA_TEMPLATE_PROJECT_ID,
)

# ------------------------------------------------------------------------------------------------
# Data Keys: Task Instance
# ------------------------------------------------------------------------------------------------
DATA_INSTANCE_INTERNAL_ID = "internal_id"
DATA_INSTANCE_TEMPLATE_ID = "template_id"
DATA_INSTANCE_OWNER_ID = "owner_id"
DATA_INSTANCE_DATE = "date"
DATA_INSTANCE_POSITION = "position"
DATA_INSTANCE_TITLE = "title"
DATA_INSTANCE_DESCRIPTION = "description"
DATA_INSTANCE_PRIORITY = "priority"
DATA_INSTANCE_TAG = "tag"
DATA_INSTANCE_SUBTASKS = "subtasks"
DATA_INSTANCE_PROJECT_ID = "project_id"
DATA_INSTANCE_STATUS = "status"
DATA_INSTANCE_CREATED_AT = "created_at"

# Subtask keys
DATA_SUBTASK_ID = "id"
DATA_SUBTASK_TEXT = "text"
DATA_SUBTASK_DONE = "done"

# ------------------------------------------------------------------------------------------------
# Field Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_PRIORITY = "normal"
DEFAULT_TAG = ""
DEFAULT_DESCRIPTION = ""

INSTANCE_STATUS_OPEN = "open"

# ------------------------------------------------------------------------------------------------
# Validation Error Reasons
# ------------------------------------------------------------------------------------------------
ERROR_INVALID_TYPE = "Recurrence type must be one of: daily, weekly, monthly, yearly"
ERROR_INVALID_INTERVAL = "Interval must be between {min} and {max}"
ERROR_INVALID_DAY_OF_WEEK = "Day of week must be between 0 and 6"
ERROR_INVALID_DAY_OF_MONTH = "Day of month must be between 1 and 31"
ERROR_INVALID_MONTH_OF_YEAR = "Month must be between 1 and 12"
ERROR_ANCHOR_NOT_APPLICABLE = "{field} does not apply to {type} recurrence"
ERROR_INVALID_END_DATE = "End date is not a valid date"
ERROR_END_DATE_NOT_FUTURE = "End date must be in the future"
ERROR_INVALID_START_DATE = "Start date is not a valid date"
ERROR_TITLE_REQUIRED = "Title is required"
ERROR_OWNER_REQUIRED = "Owner is required"
ERROR_RULE_TYPE_IMMUTABLE = "Recurrence type cannot be changed after creation"
ERROR_UNKNOWN_FIELD = "Field cannot be updated"

# User-visible message for failed generation runs
ERROR_GENERATION_FAILED = "Recurring instances could not be generated for this period"

# ------------------------------------------------------------------------------------------------
# Description Labels
# ------------------------------------------------------------------------------------------------
WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Singular adverb / plural unit per recurrence type
LABEL_RECURRENCE_SINGLE = {
    RECURRENCE_DAILY: "Daily",
    RECURRENCE_WEEKLY: "Weekly",
    RECURRENCE_MONTHLY: "Monthly",
    RECURRENCE_YEARLY: "Yearly",
}
LABEL_RECURRENCE_UNIT = {
    RECURRENCE_DAILY: "days",
    RECURRENCE_WEEKLY: "weeks",
    RECURRENCE_MONTHLY: "months",
    RECURRENCE_YEARLY: "years",
}
LABEL_RECURRING_FALLBACK = "Recurring task"
