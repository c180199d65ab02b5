"""Progress Manager - Single recompute() entry point over a catalog snapshot.

This manager wires the engines together for one catalog snapshot:
- Indexes the catalog once (modules per badge, requirements per module,
  staged families)
- recompute(): evaluates every badge and family for one member, resolves
  counters, classifies the results and rebuilds the badge status cache
- recompute_members(): the same for a roster, with no shared mutable state

ARCHITECTURE:
- ProgressManager = orchestration over an immutable catalog index
- *Engine classes = pure evaluation logic (STATELESS)
- Callers fetch snapshots and persist cache rows / awards themselves

The badge status cache (MemberBadgeProgress) is treated as a rebuildable
index: recompute() returns the rows it should contain (`cache_rows`) and
every row that disagrees with them (`divergences`). Requirement-derived
truth always wins, except for badges with no modules where the cache is
the only record there is.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import TYPE_CHECKING

from .. import const
from ..engines.award_engine import AwardEngine
from ..engines.classification_engine import ClassificationEngine
from ..engines.completion_engine import CompletionEngine
from ..engines.counter_engine import CounterEngine
from ..engines.ledger_engine import LedgerEngine, ProgressIntegrityError
from ..engines.staged_family_engine import StagedFamilyEngine
from ..utils.math_utils import calculate_percentage, coerce_int

if TYPE_CHECKING:
    from ..type_defs import (
        ActivityLogData,
        BadgeAwardData,
        BadgeDefinitionData,
        BadgeModuleData,
        BadgeProgressData,
        BadgeRequirementData,
        BadgeResult,
        CacheDivergence,
        FamilyResult,
        MemberData,
        MemberProgressReport,
        ProgressItem,
        RequirementProgressData,
        StagedFamily,
    )


class ProgressManager:
    """Evaluates members against one catalog snapshot.

    The catalog index is built in __init__ and never modified afterwards,
    so one instance can serve concurrent recompute() calls.

    Example:
        manager = ProgressManager(badges, modules, requirements)
        report = manager.recompute(member, requirement_progress)
        report["buckets"]["in_progress"]
    """

    def __init__(
        self,
        badges: Iterable[BadgeDefinitionData],
        modules: Iterable[BadgeModuleData],
        requirements: Iterable[BadgeRequirementData],
    ) -> None:
        """Index a catalog snapshot.

        Args:
            badges: Badge definitions in catalog order
            modules: All badge modules
            requirements: All badge requirements

        Raises:
            CatalogIntegrityError: If staged badge numbering is inconsistent
        """
        requirement_list = list(requirements)
        self._badges: tuple[BadgeDefinitionData, ...] = tuple(badges)
        LedgerEngine.validate_catalog(self._badges)
        self._modules_by_badge = LedgerEngine.modules_by_badge(modules)
        self._requirements_by_module = LedgerEngine.requirements_by_module(
            requirement_list
        )
        self._requirements_by_id: dict[str, BadgeRequirementData] = {
            requirement[const.DATA_REQUIREMENT_ID]: requirement
            for requirement in requirement_list
            if requirement.get(const.DATA_REQUIREMENT_ID)
        }
        self._families: dict[str, StagedFamily] = StagedFamilyEngine.group_families(
            badge for badge in self._badges if self._is_active(badge)
        )

    # =========================================================================
    # CATALOG ACCESS
    # =========================================================================

    @property
    def badges(self) -> tuple[BadgeDefinitionData, ...]:
        """Badge definitions in catalog order."""
        return self._badges

    @property
    def families(self) -> dict[str, StagedFamily]:
        """Staged families of active badges."""
        return self._families

    @property
    def requirements_by_id(self) -> dict[str, BadgeRequirementData]:
        """Requirement lookup, for ingestion checks."""
        return self._requirements_by_id

    @staticmethod
    def _is_active(badge: BadgeDefinitionData) -> bool:
        return bool(badge.get(const.DATA_BADGE_ACTIVE, True))

    def badges_for_section(self, section: str | None) -> list[BadgeDefinitionData]:
        """Active badges visible to a section ("all" badges always are).

        Args:
            section: Section name, or None for every active badge
        """
        return [
            badge
            for badge in self._badges
            if self._is_active(badge)
            and (
                section is None
                or badge.get(const.DATA_BADGE_SECTION, const.SECTION_ALL)
                in (section, const.SECTION_ALL)
            )
        ]

    def ingest_progress(
        self,
        records: Iterable[RequirementProgressData],
    ) -> tuple[list[RequirementProgressData], list[ProgressIntegrityError]]:
        """Check a batch of progress records against this catalog.

        Returns:
            (accepted records, one error per rejected record); records for
            requirements outside the catalog are dropped
        """
        return LedgerEngine.ingest_progress(records, self._requirements_by_id)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def evaluate_badge(
        self,
        badge: BadgeDefinitionData,
        progress_index: dict[str, RequirementProgressData],
        cache_index: dict[str, BadgeProgressData] | None = None,
    ) -> BadgeResult:
        """Evaluate one badge against an indexed progress slice."""
        badge_id = badge.get(const.DATA_BADGE_ID, "")
        return CompletionEngine.evaluate_badge(
            badge,
            self._modules_by_badge.get(badge_id, []),
            self._requirements_by_module,
            progress_index,
            (cache_index or {}).get(badge_id),
        )

    def recompute(
        self,
        member: MemberData,
        requirement_progress: Iterable[RequirementProgressData],
        badge_progress: Iterable[BadgeProgressData] = (),
        awards: Iterable[BadgeAwardData] = (),
        activity_logs: Iterable[ActivityLogData] = (),
        *,
        section: str | None = None,
        today: date | None = None,
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> MemberProgressReport:
        """Derive everything the portal shows for one member.

        Pure function of its inputs: the same snapshot gives the same report.

        Args:
            member: Member record (id, section, counter rollups, start dates)
            requirement_progress: Requirement progress; rows for other
                members are ignored
            badge_progress: Cached badge status rows
            awards: Award rows, used only for top award eligibility
            activity_logs: Nights/hikes away logs
            section: Restrict to badges of this section (default: all)
            today: Date override for tenure counters
            category_order: Category precedence for ranking

        Returns:
            MemberProgressReport
        """
        member_id = member.get(const.DATA_MEMBER_ID, const.UNKNOWN_ID)
        progress_index = LedgerEngine.index_progress(requirement_progress, member_id)
        cache_index = LedgerEngine.cache_by_badge(badge_progress, member_id)
        logs = list(activity_logs)
        scoped_badges = self.badges_for_section(section)

        badge_results: dict[str, BadgeResult] = {
            badge.get(const.DATA_BADGE_ID, const.UNKNOWN_ID): self.evaluate_badge(
                badge, progress_index, cache_index
            )
            for badge in scoped_badges
            if not self._is_family_header(badge)
        }

        family_results = self._resolve_families(
            member, scoped_badges, badge_results, logs, today
        )
        items = self._build_items(scoped_badges, badge_results, family_results)
        buckets = ClassificationEngine.classify(items, category_order)
        cache_rows, divergences = self.rebuild_cache(
            member_id, badge_results, cache_index
        )

        top_award = None
        award_section = section or member.get(const.DATA_MEMBER_SECTION)
        if award_section and AwardEngine.find_top_award(self._badges, award_section):
            top_award = AwardEngine.evaluate_top_award(
                member_id, self._badges, badge_results, awards, award_section
            )

        const.LOGGER.debug(
            "Recomputed member %s: %d badges, %d families, %d divergences",
            member_id,
            len(badge_results),
            len(family_results),
            len(divergences),
        )

        return {
            "member_id": member_id,
            "badge_results": badge_results,
            "family_results": family_results,
            "buckets": buckets,
            "cache_rows": cache_rows,
            "divergences": divergences,
            "top_award": top_award,
        }

    def recompute_members(
        self,
        members: Iterable[MemberData],
        requirement_progress: Iterable[RequirementProgressData],
        badge_progress: Iterable[BadgeProgressData] = (),
        awards: Iterable[BadgeAwardData] = (),
        activity_logs: Iterable[ActivityLogData] = (),
        *,
        section: str | None = None,
        today: date | None = None,
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> dict[str, MemberProgressReport]:
        """Run recompute() for every member of a roster.

        Returns:
            member_id -> MemberProgressReport, in roster order
        """
        progress_rows = list(requirement_progress)
        cache_rows = list(badge_progress)
        award_rows = list(awards)
        log_rows = list(activity_logs)
        return {
            member.get(const.DATA_MEMBER_ID, const.UNKNOWN_ID): self.recompute(
                member,
                progress_rows,
                cache_rows,
                award_rows,
                log_rows,
                section=section,
                today=today,
                category_order=category_order,
            )
            for member in members
        }

    # =========================================================================
    # CACHE REBUILD
    # =========================================================================

    @staticmethod
    def rebuild_cache(
        member_id: str,
        badge_results: dict[str, BadgeResult],
        cache_index: dict[str, BadgeProgressData],
    ) -> tuple[list[BadgeProgressData], list[CacheDivergence]]:
        """Derive the cache rows a member should have and report drift.

        A badge gets a row when it is complete (completed) or has any
        progress at all (in_progress). Badges evaluated from the cache keep
        their cached row unchanged.

        Returns:
            (cache rows in result order, divergences between stored and
            derived status)
        """
        rows: list[BadgeProgressData] = []
        divergences: list[CacheDivergence] = []

        for badge_id, result in badge_results.items():
            cached_row = cache_index.get(badge_id)
            if result["source"] == const.RESULT_SOURCE_CACHE:
                if cached_row is not None:
                    rows.append(cached_row)
                continue

            computed_status: str | None = None
            if result["is_complete"]:
                computed_status = const.BADGE_STATUS_COMPLETED
            elif result["completed"] > 0 or result["has_completed_requirement"]:
                computed_status = const.BADGE_STATUS_IN_PROGRESS

            if computed_status is not None:
                rows.append(
                    {
                        "member_id": member_id,
                        "badge_id": badge_id,
                        "status": computed_status,  # type: ignore[typeddict-item]
                    }
                )

            cached_status = (
                cached_row.get(const.DATA_BADGE_PROGRESS_STATUS) if cached_row else None
            )
            if cached_status not in (
                const.BADGE_STATUS_COMPLETED,
                const.BADGE_STATUS_IN_PROGRESS,
            ):
                cached_status = None
            if cached_status != computed_status:
                const.LOGGER.warning(
                    "Badge status cache for member %s badge %s is %s, recomputed %s",
                    member_id,
                    badge_id,
                    cached_status,
                    computed_status,
                )
                divergences.append(
                    {
                        "member_id": member_id,
                        "badge_id": badge_id,
                        "cached_status": cached_status,
                        "computed_status": computed_status,  # type: ignore[typeddict-item]
                    }
                )

        return rows, divergences

    # =========================================================================
    # FAMILIES AND COUNTERS
    # =========================================================================

    @staticmethod
    def _is_family_header(badge: BadgeDefinitionData) -> bool:
        return bool(badge.get(const.DATA_BADGE_FAMILY_ID)) and (
            badge.get(const.DATA_BADGE_STAGE_NUMBER) is None
        )

    def _resolve_families(
        self,
        member: MemberData,
        scoped_badges: list[BadgeDefinitionData],
        badge_results: dict[str, BadgeResult],
        logs: list[ActivityLogData],
        today: date | None,
    ) -> dict[str, FamilyResult]:
        """Resolve every family that has at least one stage in scope."""
        scoped_ids = {badge.get(const.DATA_BADGE_ID) for badge in scoped_badges}
        family_results: dict[str, FamilyResult] = {}

        for family_id, family in self._families.items():
            stages = [
                stage
                for stage in family["stages"]
                if stage.get(const.DATA_BADGE_ID) in scoped_ids
            ]
            if not stages:
                continue
            family_result = StagedFamilyEngine.resolve_family(
                family_id, stages, badge_results, family["name"]
            )
            self._apply_counter(family_result, stages, member, logs, today)
            family_results[family_id] = family_result

        return family_results

    @staticmethod
    def _apply_counter(
        family_result: FamilyResult,
        stages: list[BadgeDefinitionData],
        member: MemberData,
        logs: list[ActivityLogData],
        today: date | None,
    ) -> None:
        """Let a counter-driven family take its stage from the counter.

        The counter's earned stage replaces the requirement-derived one when
        it is higher. The aggregate becomes the counter total against the
        top threshold. A counter that cannot be assessed leaves the
        requirement-derived result untouched.
        """
        counter_kind = CounterEngine.counter_kind_for(stages)
        if counter_kind == const.COUNTER_KIND_NONE:
            return

        if counter_kind == const.COUNTER_KIND_TENURE:
            counter = CounterEngine.resolve_tenure(
                CounterEngine.tenure_start_date(member), today
            )
        else:
            counter = CounterEngine.resolve_counter(
                member,
                logs,
                CounterEngine.cached_total_for(member, counter_kind),
                counter_kind,
            )

        total = counter["total"]
        thresholds = CounterEngine.map_thresholds(total, stages)
        family_result["counter"] = counter
        family_result["next_stage"] = thresholds["next_stage"]
        if total is None:
            return

        earned = thresholds["earned_stage"]
        current = family_result["highest_completed_stage"]
        if earned is not None and (
            current is None
            or coerce_int(earned.get(const.DATA_BADGE_STAGE_NUMBER))
            >= coerce_int(current.get(const.DATA_BADGE_STAGE_NUMBER))
        ):
            family_result["highest_completed_stage"] = earned
            family_result["is_contiguous"] = True

        top_threshold = max(
            coerce_int(stage.get(const.DATA_BADGE_STAGE_NUMBER)) for stage in stages
        )
        reached = min(total, top_threshold)
        family_result["aggregate"] = {
            "completed": reached,
            "total": top_threshold,
            "percentage": calculate_percentage(reached, top_threshold),
        }

    # =========================================================================
    # CLASSIFICATION ITEMS
    # =========================================================================

    def _build_items(
        self,
        scoped_badges: list[BadgeDefinitionData],
        badge_results: dict[str, BadgeResult],
        family_results: dict[str, FamilyResult],
    ) -> list[ProgressItem]:
        """One item per standalone badge and per family, in catalog order.

        A family takes the catalog position of its first badge.
        """
        items: list[ProgressItem] = []
        emitted_families: set[str] = set()

        for badge in scoped_badges:
            family_id = badge.get(const.DATA_BADGE_FAMILY_ID)
            if family_id:
                family_result = family_results.get(family_id)
                if family_result is None or family_id in emitted_families:
                    continue
                emitted_families.add(family_id)
                stages = self._families[family_id]["stages"]
                category = (
                    stages[0].get(const.DATA_BADGE_CATEGORY, const.BADGE_CATEGORY_STAGED)
                    if stages
                    else const.BADGE_CATEGORY_STAGED
                )
                items.append(ClassificationEngine.family_item(family_result, category))
                continue

            result = badge_results.get(badge.get(const.DATA_BADGE_ID, ""))
            if result is not None:
                items.append(ClassificationEngine.badge_item(badge, result))

        return items
