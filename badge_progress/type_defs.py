"""Type definitions for badge progress data structures.

ARCHITECTURE DECISION: TypedDict over plain dict records
========================================================

Snapshots arrive from the hosted data store as plain dicts, so every record
type here is a TypedDict describing those dicts rather than a class wrapping
them. Engines read fields through the `const.DATA_*` keys with `.get()`
defaults; TypedDict is STATIC ANALYSIS ONLY and enforces nothing at runtime.

1. **Catalog types** (leader-authored, rarely change):
   BadgeDefinitionData, BadgeModuleData, BadgeRequirementData

2. **Ledger types** (per member, produced by external workflows):
   RequirementProgressData, BadgeProgressData (cache), BadgeAwardData,
   ActivityLogData, MemberData

3. **Result types** (engine outputs, never persisted by the engine):
   ModuleResult, BadgeResult, FamilyResult, CounterResult, ThresholdResult,
   TenureResult, ProgressItem, ClassificationBuckets, CacheDivergence,
   TopAwardProgress, MemberProgressReport

IMPORTANT: This file must NOT import from the engines. Only typing machinery.
"""

from typing import Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

BadgeId = str
FamilyId = str
MemberId = str
ModuleId = str
RequirementId = str
ISODate = str  # ISO 8601 date string "2026-01-18"

# Closed rule sets (values mirror const.BADGE_RULES / const.MODULE_RULES)
BadgeCompletionRule = Literal["all_modules", "one_module"]
ModuleCompletionRule = Literal["all_requirements", "x_of_n"]
BadgeCategory = Literal["challenge", "activity", "staged", "core", "special"]
CounterKind = Literal["nights_away", "hikes_away", "tenure", "none"]
BadgeStatus = Literal["in_progress", "completed"]
AwardStatus = Literal["pending", "awarded"]
ResultSource = Literal["requirements", "cache"]
CounterSource = Literal["cache", "recomputed", "none"]
ItemType = Literal["badge", "family"]


# =============================================================================
# Catalog Types
# =============================================================================


class BadgeDefinitionData(TypedDict):
    """A badge definition.

    Staged badges carry both badge_family_id and stage_number. A family may
    also have one header badge with a null stage_number that only names it.
    """

    id: BadgeId
    name: str
    category: BadgeCategory
    completion_rule: NotRequired[BadgeCompletionRule]
    section: NotRequired[str]  # Section name or "all"
    badge_family_id: NotRequired[FamilyId | None]
    stage_number: NotRequired[int | None]
    is_chief_scout_award: NotRequired[bool]
    active: NotRequired[bool]
    counter_kind: NotRequired[CounterKind]


class BadgeModuleData(TypedDict):
    """A module grouping requirements inside one badge."""

    id: ModuleId
    badge_id: BadgeId
    name: NotRequired[str]
    order: NotRequired[int]
    completion_rule: NotRequired[ModuleCompletionRule]
    required_count: NotRequired[int | None]  # Only meaningful for x_of_n


class BadgeRequirementData(TypedDict):
    """The atomic unit of completion."""

    id: RequirementId
    module_id: ModuleId
    badge_id: NotRequired[BadgeId]
    order: NotRequired[int]
    text: NotRequired[str]
    required_completions: NotRequired[int]  # >= 1, default 1


# =============================================================================
# Ledger Types
# =============================================================================


class RequirementProgressData(TypedDict):
    """Per-member, per-requirement completion record.

    completion_count is the source of truth; completed must equal
    (completion_count == required_completions).
    """

    member_id: MemberId
    requirement_id: RequirementId
    module_id: NotRequired[ModuleId]
    badge_id: NotRequired[BadgeId]
    completed: bool
    completion_count: int
    completed_date: NotRequired[ISODate | None]
    source: NotRequired[str]


class BadgeProgressData(TypedDict):
    """Cached badge status. Rebuildable from RequirementProgressData."""

    member_id: MemberId
    badge_id: BadgeId
    status: BadgeStatus


class BadgeAwardData(TypedDict):
    """Award decision layered over completion. Never computed here."""

    member_id: MemberId
    badge_id: BadgeId
    award_status: AwardStatus


class ActivityLogData(TypedDict):
    """One nights-away or hikes-away event."""

    member_id: MemberId
    start_date: ISODate
    count: int
    kind: NotRequired[CounterKind]
    location: NotRequired[str | None]


class MemberData(TypedDict, total=False):
    """External member record; only the fields the engine reads."""

    id: MemberId
    full_name: str
    section: str
    date_of_birth: ISODate | None
    scouting_start_date: ISODate | None
    join_date: ISODate | None
    total_nights_away: int | None  # Cached rollup, may diverge from logs
    total_hikes_away: int | None


# =============================================================================
# Result Types
# =============================================================================


class ModuleResult(TypedDict):
    """Completion of one module under its own rule."""

    module_id: ModuleId
    completion_rule: ModuleCompletionRule
    completed: int
    total: int
    percentage: int  # 0..100
    is_complete: bool


class BadgeResult(TypedDict):
    """Completion of one badge."""

    badge_id: BadgeId
    badge_name: str
    completed: int
    total: int
    percentage: int  # 0..100, 100 whenever is_complete
    is_complete: bool
    source: ResultSource
    has_completed_requirement: bool
    module_results: list[ModuleResult]


class CounterResult(TypedDict):
    """Reconciled running total for a log-driven counter."""

    total: int | None  # None means cannot assess
    source: CounterSource
    recomputed_total: int | None
    diverged: bool


class ThresholdResult(TypedDict):
    """Stage reached and next goal for a counter total."""

    earned_stage: BadgeDefinitionData | None
    next_stage: BadgeDefinitionData | None


class TenureResult(TypedDict):
    """Whole years since a start date."""

    total: int | None
    months_into_year: int | None
    progress_percent: int | None  # Way to the next whole year
    start_date: ISODate | None


class FamilyAggregate(TypedDict):
    """Family-wide progress bar values."""

    completed: int
    total: int
    percentage: int


class StagedFamily(TypedDict):
    """Stages of one family, ascending by stage_number."""

    family_id: FamilyId
    name: str
    header: BadgeDefinitionData | None
    stages: list[BadgeDefinitionData]


class FamilyResult(TypedDict):
    """Resolution of a staged family to its highest completed stage."""

    family_id: FamilyId
    family_name: str
    highest_completed_stage: BadgeDefinitionData | None
    aggregate: FamilyAggregate
    is_contiguous: bool  # False when a lower stage is incomplete
    stage_results: list[BadgeResult]
    counter: NotRequired[CounterResult | TenureResult]
    next_stage: NotRequired[BadgeDefinitionData | None]


class ProgressItem(TypedDict):
    """One classifiable row: a standalone badge or a staged family."""

    item_id: str
    item_type: ItemType
    name: str
    category: str
    percentage: int
    is_earned: bool
    has_completed_requirement: bool


class ClassificationBuckets(TypedDict):
    """Earned / In Progress / Not Started, each in presentation order."""

    earned: list[ProgressItem]
    in_progress: list[ProgressItem]
    not_started: list[ProgressItem]


class CacheDivergence(TypedDict):
    """Cached badge status disagreeing with a fresh recomputation."""

    member_id: MemberId
    badge_id: BadgeId
    cached_status: str | None
    computed_status: BadgeStatus | None


class TopAwardProgress(TypedDict):
    """Progress toward the section's top award."""

    award_badge_id: BadgeId | None
    challenge_completed: int
    challenge_total: int
    challenge_percentage: int
    activity_completed: int
    activity_target: int
    activity_percentage: int
    already_held: bool
    is_eligible: bool
    missing_challenge_ids: list[BadgeId]


class MemberProgressReport(TypedDict):
    """Everything recompute() derives for one member."""

    member_id: MemberId
    badge_results: dict[BadgeId, BadgeResult]
    family_results: dict[FamilyId, FamilyResult]
    buckets: ClassificationBuckets
    cache_rows: list[BadgeProgressData]
    divergences: list[CacheDivergence]
    top_award: TopAwardProgress | None
