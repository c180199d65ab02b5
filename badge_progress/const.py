# File: const.py
"""Constants for the badge progress engine.

This file centralizes record keys, enumerated values, defaults and the logger
so every engine reads snapshot data the same way. Records are plain dicts
fetched by the caller; the keys below mirror the stored field names.
"""

import logging
from typing import Final

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# Sentinel used when a record has no id (logging only)
UNKNOWN_ID = "unknown"

# ------------------------------------------------------------------------------------------------
# Badge Definition Keys
# ------------------------------------------------------------------------------------------------
DATA_BADGE_ACTIVE = "active"
DATA_BADGE_CATEGORY = "category"
DATA_BADGE_COMPLETION_RULE = "completion_rule"
DATA_BADGE_COUNTER_KIND = "counter_kind"
DATA_BADGE_FAMILY_ID = "badge_family_id"
DATA_BADGE_ID = "id"
DATA_BADGE_IS_CHIEF_SCOUT_AWARD = "is_chief_scout_award"
DATA_BADGE_NAME = "name"
DATA_BADGE_SECTION = "section"
DATA_BADGE_STAGE_NUMBER = "stage_number"

# ------------------------------------------------------------------------------------------------
# Badge Module Keys
# ------------------------------------------------------------------------------------------------
DATA_MODULE_BADGE_ID = "badge_id"
DATA_MODULE_COMPLETION_RULE = "completion_rule"
DATA_MODULE_ID = "id"
DATA_MODULE_ORDER = "order"
DATA_MODULE_REQUIRED_COUNT = "required_count"

# ------------------------------------------------------------------------------------------------
# Badge Requirement Keys
# ------------------------------------------------------------------------------------------------
DATA_REQUIREMENT_BADGE_ID = "badge_id"
DATA_REQUIREMENT_ID = "id"
DATA_REQUIREMENT_MODULE_ID = "module_id"
DATA_REQUIREMENT_ORDER = "order"
DATA_REQUIREMENT_REQUIRED_COMPLETIONS = "required_completions"

# ------------------------------------------------------------------------------------------------
# Member Requirement Progress Keys (ledger)
# ------------------------------------------------------------------------------------------------
DATA_PROGRESS_BADGE_ID = "badge_id"
DATA_PROGRESS_COMPLETED = "completed"
DATA_PROGRESS_COMPLETED_DATE = "completed_date"
DATA_PROGRESS_COMPLETION_COUNT = "completion_count"
DATA_PROGRESS_MEMBER_ID = "member_id"
DATA_PROGRESS_MODULE_ID = "module_id"
DATA_PROGRESS_REQUIREMENT_ID = "requirement_id"
DATA_PROGRESS_SOURCE = "source"

PROGRESS_SOURCE_MANUAL = "manual"

# ------------------------------------------------------------------------------------------------
# Member Badge Progress Keys (cache)
# ------------------------------------------------------------------------------------------------
DATA_BADGE_PROGRESS_BADGE_ID = "badge_id"
DATA_BADGE_PROGRESS_MEMBER_ID = "member_id"
DATA_BADGE_PROGRESS_STATUS = "status"

BADGE_STATUS_COMPLETED = "completed"
BADGE_STATUS_IN_PROGRESS = "in_progress"

# ------------------------------------------------------------------------------------------------
# Member Badge Award Keys
# ------------------------------------------------------------------------------------------------
DATA_AWARD_BADGE_ID = "badge_id"
DATA_AWARD_MEMBER_ID = "member_id"
DATA_AWARD_STATUS = "award_status"

AWARD_STATUS_AWARDED = "awarded"

# ------------------------------------------------------------------------------------------------
# Activity Log Keys
# ------------------------------------------------------------------------------------------------
DATA_LOG_COUNT = "count"
DATA_LOG_KIND = "kind"
DATA_LOG_MEMBER_ID = "member_id"

# ------------------------------------------------------------------------------------------------
# Member Keys
# ------------------------------------------------------------------------------------------------
DATA_MEMBER_DATE_OF_BIRTH = "date_of_birth"
DATA_MEMBER_ID = "id"
DATA_MEMBER_JOIN_DATE = "join_date"
DATA_MEMBER_SCOUTING_START_DATE = "scouting_start_date"
DATA_MEMBER_SECTION = "section"
DATA_MEMBER_TOTAL_HIKES_AWAY = "total_hikes_away"
DATA_MEMBER_TOTAL_NIGHTS_AWAY = "total_nights_away"

# ------------------------------------------------------------------------------------------------
# Badge Categories
# ------------------------------------------------------------------------------------------------
BADGE_CATEGORY_ACTIVITY = "activity"
BADGE_CATEGORY_CHALLENGE = "challenge"
BADGE_CATEGORY_CORE = "core"
BADGE_CATEGORY_STAGED = "staged"

# Presentation precedence; categories not listed sort after these
CATEGORY_ORDER: Final[tuple[str, ...]] = (
    BADGE_CATEGORY_CHALLENGE,
    BADGE_CATEGORY_ACTIVITY,
    BADGE_CATEGORY_STAGED,
    BADGE_CATEGORY_CORE,
)

# Section value meaning "every section"
SECTION_ALL = "all"

# ------------------------------------------------------------------------------------------------
# Completion Rules
# ------------------------------------------------------------------------------------------------
# Badge level
BADGE_RULE_ALL_MODULES = "all_modules"
BADGE_RULE_ONE_MODULE = "one_module"

BADGE_RULES: Final[frozenset[str]] = frozenset(
    {BADGE_RULE_ALL_MODULES, BADGE_RULE_ONE_MODULE}
)
DEFAULT_BADGE_RULE = BADGE_RULE_ALL_MODULES

# Module level
MODULE_RULE_ALL_REQUIREMENTS = "all_requirements"
MODULE_RULE_X_OF_N = "x_of_n"

MODULE_RULES: Final[frozenset[str]] = frozenset(
    {MODULE_RULE_ALL_REQUIREMENTS, MODULE_RULE_X_OF_N}
)
DEFAULT_MODULE_RULE = MODULE_RULE_ALL_REQUIREMENTS

# Stored aliases from older imports
MODULE_RULE_ALIASES: Final[dict[str, str]] = {
    "x_of_n_required": MODULE_RULE_X_OF_N,
    "all_required": MODULE_RULE_ALL_REQUIREMENTS,
}

DEFAULT_REQUIRED_COMPLETIONS = 1

# ------------------------------------------------------------------------------------------------
# Evaluation Sources
# ------------------------------------------------------------------------------------------------
RESULT_SOURCE_CACHE = "cache"
RESULT_SOURCE_REQUIREMENTS = "requirements"

COUNTER_SOURCE_CACHE = "cache"
COUNTER_SOURCE_NONE = "none"
COUNTER_SOURCE_RECOMPUTED = "recomputed"

# ------------------------------------------------------------------------------------------------
# Cumulative Counters
# ------------------------------------------------------------------------------------------------
COUNTER_KIND_HIKES_AWAY = "hikes_away"
COUNTER_KIND_NIGHTS_AWAY = "nights_away"
COUNTER_KIND_NONE = "none"
COUNTER_KIND_TENURE = "tenure"

COUNTER_KINDS: Final[frozenset[str]] = frozenset(
    {
        COUNTER_KIND_HIKES_AWAY,
        COUNTER_KIND_NIGHTS_AWAY,
        COUNTER_KIND_NONE,
        COUNTER_KIND_TENURE,
    }
)

# Member field holding the cached rollup for each log-driven counter
COUNTER_CACHE_FIELDS: Final[dict[str, str]] = {
    COUNTER_KIND_NIGHTS_AWAY: DATA_MEMBER_TOTAL_NIGHTS_AWAY,
    COUNTER_KIND_HIKES_AWAY: DATA_MEMBER_TOTAL_HIKES_AWAY,
}

# Published stage ladders (stage_number doubles as the threshold)
NIGHTS_AWAY_THRESHOLDS: Final[tuple[int, ...]] = (1, 2, 3, 4, 5, 10, 15, 20, 35, 50)
HIKES_AWAY_THRESHOLDS: Final[tuple[int, ...]] = (1, 2, 5, 10, 15, 20, 35, 50)

# Ladder each log-driven counter is checked against when a catalog is indexed
COUNTER_THRESHOLDS: Final[dict[str, tuple[int, ...]]] = {
    COUNTER_KIND_NIGHTS_AWAY: NIGHTS_AWAY_THRESHOLDS,
    COUNTER_KIND_HIKES_AWAY: HIKES_AWAY_THRESHOLDS,
}

# ------------------------------------------------------------------------------------------------
# Top Award (Chief Scout's Gold Award)
# ------------------------------------------------------------------------------------------------
DEFAULT_TOP_AWARD_SECTION = "scouts"
TOP_AWARD_ACTIVITY_TARGET = 8

# Section age ranges in years (start, end)
SECTION_AGE_RANGES: Final[dict[str, tuple[float, float]]] = {
    "squirrels": (4.0, 6.0),
    "beavers": (6.0, 8.0),
    "cubs": (8.0, 10.5),
    "scouts": (10.5, 14.0),
    "explorers": (14.0, 18.0),
}

# ------------------------------------------------------------------------------------------------
# Result Item Types
# ------------------------------------------------------------------------------------------------
ITEM_TYPE_BADGE = "badge"
ITEM_TYPE_FAMILY = "family"
