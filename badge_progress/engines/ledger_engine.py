"""Ledger Engine - Pure logic for indexing and validating snapshot records.

This engine provides stateless, pure Python functions for:
- Indexing catalog and ledger collections for O(1) lookups
- Ingestion checks for requirement progress records (integrity faults)
- Catalog checks for staged families (stage numbering)
- The next progress record after a leader ticks or unticks a requirement

ARCHITECTURE: This is a pure logic engine. All functions are static methods
that operate on passed-in data. It never reads or writes storage; callers
persist whatever it returns.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_today_local
from ..utils.math_utils import coerce_int

if TYPE_CHECKING:
    from ..type_defs import (
        BadgeDefinitionData,
        BadgeModuleData,
        BadgeProgressData,
        BadgeRequirementData,
        RequirementProgressData,
    )


class ProgressIntegrityError(Exception):
    """Raised when a requirement progress record breaks the count invariant.

    Attributes:
        member_id: Member the record belongs to
        requirement_id: Requirement the record points at
        completion_count: Stored count
        required_completions: Count the requirement needs
        completed: Stored completed flag
    """

    def __init__(
        self,
        member_id: str,
        requirement_id: str,
        completion_count: int,
        required_completions: int,
        completed: bool,
    ) -> None:
        """Initialize ProgressIntegrityError."""
        self.member_id = member_id
        self.requirement_id = requirement_id
        self.completion_count = completion_count
        self.required_completions = required_completions
        self.completed = completed
        super().__init__(
            f"Invalid progress for member {member_id} on requirement "
            f"{requirement_id}: completion_count={completion_count}, "
            f"required_completions={required_completions}, completed={completed}"
        )


class CatalogIntegrityError(Exception):
    """Raised when staged badge numbering is inconsistent.

    Attributes:
        badge_id: Offending badge
        family_id: Family the badge claims to belong to
        reason: What is wrong
    """

    def __init__(self, badge_id: str, family_id: str, reason: str) -> None:
        """Initialize CatalogIntegrityError."""
        self.badge_id = badge_id
        self.family_id = family_id
        self.reason = reason
        super().__init__(f"Badge {badge_id} in family {family_id}: {reason}")


class LedgerEngine:
    """Pure helpers shared by the evaluation engines.

    All methods are static - no instance state.

    Index helpers never raise on bad data: records missing the key they are
    indexed by are skipped (orphans are ignored, per the error taxonomy).
    Validation helpers are for ingestion and DO raise.
    """

    # =========================================================================
    # FIELD ACCESSORS
    # =========================================================================

    @staticmethod
    def required_completions(requirement: BadgeRequirementData) -> int:
        """Return how many times a requirement must be done (at least 1)."""
        return max(
            1,
            coerce_int(
                requirement.get(const.DATA_REQUIREMENT_REQUIRED_COMPLETIONS),
                const.DEFAULT_REQUIRED_COMPLETIONS,
            ),
        )

    @staticmethod
    def completion_count(record: RequirementProgressData | None) -> int:
        """Return the stored completion count (0 when there is no record)."""
        if not record:
            return 0
        return max(0, coerce_int(record.get(const.DATA_PROGRESS_COMPLETION_COUNT)))

    @staticmethod
    def is_record_completed(record: RequirementProgressData | None) -> bool:
        """Return the stored completed flag."""
        return bool(record and record.get(const.DATA_PROGRESS_COMPLETED))

    # =========================================================================
    # INDEXING
    # =========================================================================

    @staticmethod
    def index_progress(
        records: Iterable[RequirementProgressData],
        member_id: str | None = None,
    ) -> dict[str, RequirementProgressData]:
        """Index requirement progress by requirement_id.

        Args:
            records: Progress records, possibly for several members
            member_id: Keep only this member's records when given

        Returns:
            requirement_id -> record. When a requirement has duplicate records
            the one with the highest completion_count is kept.
        """
        index: dict[str, RequirementProgressData] = {}
        for record in records:
            if (
                member_id is not None
                and record.get(const.DATA_PROGRESS_MEMBER_ID) != member_id
            ):
                continue
            requirement_id = record.get(const.DATA_PROGRESS_REQUIREMENT_ID)
            if not requirement_id:
                continue
            existing = index.get(requirement_id)
            if existing is not None:
                const.LOGGER.debug(
                    "Duplicate progress for requirement %s, keeping highest count",
                    requirement_id,
                )
                if LedgerEngine.completion_count(
                    existing
                ) >= LedgerEngine.completion_count(record):
                    continue
            index[requirement_id] = record
        return index

    @staticmethod
    def requirements_by_module(
        requirements: Iterable[BadgeRequirementData],
    ) -> dict[str, list[BadgeRequirementData]]:
        """Group requirements by module_id, each group sorted by order."""
        grouped: dict[str, list[BadgeRequirementData]] = {}
        for requirement in requirements:
            module_id = requirement.get(const.DATA_REQUIREMENT_MODULE_ID)
            if not module_id:
                continue
            grouped.setdefault(module_id, []).append(requirement)
        for group in grouped.values():
            group.sort(key=lambda r: coerce_int(r.get(const.DATA_REQUIREMENT_ORDER)))
        return grouped

    @staticmethod
    def modules_by_badge(
        modules: Iterable[BadgeModuleData],
    ) -> dict[str, list[BadgeModuleData]]:
        """Group modules by badge_id, each group sorted by order."""
        grouped: dict[str, list[BadgeModuleData]] = {}
        for module in modules:
            badge_id = module.get(const.DATA_MODULE_BADGE_ID)
            if not badge_id:
                continue
            grouped.setdefault(badge_id, []).append(module)
        for group in grouped.values():
            group.sort(key=lambda m: coerce_int(m.get(const.DATA_MODULE_ORDER)))
        return grouped

    @staticmethod
    def cache_by_badge(
        rows: Iterable[BadgeProgressData],
        member_id: str | None = None,
    ) -> dict[str, BadgeProgressData]:
        """Index cached badge status rows by badge_id (last row wins)."""
        index: dict[str, BadgeProgressData] = {}
        for row in rows:
            if (
                member_id is not None
                and row.get(const.DATA_BADGE_PROGRESS_MEMBER_ID) != member_id
            ):
                continue
            badge_id = row.get(const.DATA_BADGE_PROGRESS_BADGE_ID)
            if badge_id:
                index[badge_id] = row
        return index

    @staticmethod
    def has_completed_requirement(
        requirements: Iterable[BadgeRequirementData],
        progress_index: dict[str, RequirementProgressData],
    ) -> bool:
        """Return True if any of the requirements has a completed record."""
        return any(
            LedgerEngine.is_record_completed(
                progress_index.get(requirement.get(const.DATA_REQUIREMENT_ID, ""))
            )
            for requirement in requirements
        )

    # =========================================================================
    # INGESTION CHECKS
    # =========================================================================

    @staticmethod
    def validate_progress_record(
        record: RequirementProgressData,
        requirement: BadgeRequirementData,
    ) -> None:
        """Reject a progress record that breaks the count invariant.

        The count is the source of truth: it must lie in
        0..required_completions and completed must equal
        (count == required_completions).

        Raises:
            ProgressIntegrityError: If the record is inconsistent
        """
        required = LedgerEngine.required_completions(requirement)
        raw_count = coerce_int(record.get(const.DATA_PROGRESS_COMPLETION_COUNT))
        completed = bool(record.get(const.DATA_PROGRESS_COMPLETED))

        if raw_count < 0 or raw_count > required or completed != (
            raw_count == required
        ):
            raise ProgressIntegrityError(
                member_id=str(record.get(const.DATA_PROGRESS_MEMBER_ID, "")),
                requirement_id=str(record.get(const.DATA_PROGRESS_REQUIREMENT_ID, "")),
                completion_count=raw_count,
                required_completions=required,
                completed=completed,
            )

    @staticmethod
    def ingest_progress(
        records: Iterable[RequirementProgressData],
        requirements_by_id: dict[str, BadgeRequirementData],
    ) -> tuple[list[RequirementProgressData], list[ProgressIntegrityError]]:
        """Split a batch of progress records into accepted and rejected.

        Records pointing at unknown requirements are orphans: they are
        dropped without counting as rejections.

        Returns:
            (accepted records, one error per rejected record)
        """
        accepted: list[RequirementProgressData] = []
        rejected: list[ProgressIntegrityError] = []
        for record in records:
            requirement = requirements_by_id.get(
                record.get(const.DATA_PROGRESS_REQUIREMENT_ID, "")
            )
            if requirement is None:
                const.LOGGER.debug(
                    "Ignoring progress for unknown requirement %s",
                    record.get(const.DATA_PROGRESS_REQUIREMENT_ID),
                )
                continue
            try:
                LedgerEngine.validate_progress_record(record, requirement)
            except ProgressIntegrityError as err:
                const.LOGGER.warning("Rejected progress record: %s", err)
                rejected.append(err)
                continue
            accepted.append(record)
        return accepted, rejected

    @staticmethod
    def stage_number_of(badge: BadgeDefinitionData) -> int | None:
        """Return a badge's stage_number as an int (None for a family header).

        Integral strings such as "2" are accepted, since imports store
        numbers as text.

        Raises:
            CatalogIntegrityError: If the stage_number is not an integer
        """
        raw_value = badge.get(const.DATA_BADGE_STAGE_NUMBER)
        if raw_value is None:
            return None
        if isinstance(raw_value, float) and raw_value.is_integer():
            return int(raw_value)
        if not isinstance(raw_value, bool):
            try:
                return int(str(raw_value).strip())
            except ValueError:
                pass
        raise CatalogIntegrityError(
            str(badge.get(const.DATA_BADGE_ID, const.UNKNOWN_ID)),
            str(badge.get(const.DATA_BADGE_FAMILY_ID, "")),
            f"stage_number {raw_value!r} is not an integer",
        )

    @staticmethod
    def validate_catalog(badges: Iterable[BadgeDefinitionData]) -> None:
        """Check that staged badges are numbered uniquely within families.

        A family member with a null stage_number is the family header and is
        allowed once per family. Stage numbers are compared as integers, so
        "2" and 2 collide. A counter-driven stage whose number is not on the
        published ladder for its counter is logged, not rejected.

        Raises:
            CatalogIntegrityError: On a second header, a non-integer
                stage_number or a repeated stage_number
        """
        seen_stages: dict[str, set[int]] = {}
        seen_headers: set[str] = set()
        for badge in badges:
            family_id = badge.get(const.DATA_BADGE_FAMILY_ID)
            if not family_id:
                continue
            badge_id = str(badge.get(const.DATA_BADGE_ID, const.UNKNOWN_ID))
            stage_number = LedgerEngine.stage_number_of(badge)
            if stage_number is None:
                if family_id in seen_headers:
                    raise CatalogIntegrityError(
                        badge_id, family_id, "stage_number is required"
                    )
                seen_headers.add(family_id)
                continue
            stages = seen_stages.setdefault(family_id, set())
            if stage_number in stages:
                raise CatalogIntegrityError(
                    badge_id, family_id, f"duplicate stage_number {stage_number}"
                )
            stages.add(stage_number)

            ladder = const.COUNTER_THRESHOLDS.get(
                badge.get(const.DATA_BADGE_COUNTER_KIND) or ""
            )
            if ladder is not None and stage_number not in ladder:
                const.LOGGER.warning(
                    "Badge %s: stage_number %s is not on the %s ladder",
                    badge_id,
                    stage_number,
                    badge.get(const.DATA_BADGE_COUNTER_KIND),
                )

    # =========================================================================
    # PROGRESS TRANSITIONS
    # =========================================================================

    @staticmethod
    def apply_completion_step(
        record: RequirementProgressData | None,
        requirement: BadgeRequirementData,
        member_id: str,
        *,
        increment: bool,
        today: date | None = None,
    ) -> RequirementProgressData | None:
        """Return the progress record after one tick (or untick).

        The count moves by one within 0..required_completions and the
        completed flag is derived from it. Nothing is written.

        Args:
            record: Current record, or None if the member has none yet
            requirement: The requirement being ticked
            member_id: Member doing the requirement
            increment: True to add a completion, False to remove one
            today: Completion date override for deterministic callers

        Returns:
            The new record, or None when the count falls to 0 (the caller
            deletes any stored row) or there was nothing to remove.
        """
        required = LedgerEngine.required_completions(requirement)
        current = min(LedgerEngine.completion_count(record), required)

        if increment:
            new_count = min(current + 1, required)
        else:
            new_count = max(current - 1, 0)

        if new_count == 0:
            return None

        is_complete = new_count == required
        completed_date: str | None = None
        if is_complete:
            completed_date = (today or dt_today_local()).isoformat()

        new_record: RequirementProgressData = {
            const.DATA_PROGRESS_MEMBER_ID: member_id,
            const.DATA_PROGRESS_REQUIREMENT_ID: requirement[const.DATA_REQUIREMENT_ID],
            const.DATA_PROGRESS_MODULE_ID: requirement.get(
                const.DATA_REQUIREMENT_MODULE_ID, ""
            ),
            const.DATA_PROGRESS_COMPLETED: is_complete,
            const.DATA_PROGRESS_COMPLETION_COUNT: new_count,
            const.DATA_PROGRESS_COMPLETED_DATE: completed_date,
            const.DATA_PROGRESS_SOURCE: const.PROGRESS_SOURCE_MANUAL,
        }
        badge_id = requirement.get(const.DATA_REQUIREMENT_BADGE_ID)
        if badge_id:
            new_record[const.DATA_PROGRESS_BADGE_ID] = badge_id
        return new_record
