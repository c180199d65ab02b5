"""Counter Engine - Pure logic for cumulative counters and their thresholds.

This engine provides stateless, pure Python functions for:
- Reconciling a cached running total against its activity logs
- Mapping a total onto a staged family's numeric thresholds
- Tenure (whole years since joining) from a start date
- Progress through the member's section age range

Counters:
    - nights_away / hikes_away: sum of ActivityLog.count, cached on the
      member as total_nights_away / total_hikes_away
    - tenure: whole years since scouting_start_date (or join_date)

A missing baseline (no cache and no logs, or no start date) is reported as
None ("cannot assess"), never as 0.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import (
    MONTHS_PER_YEAR,
    dt_months_between,
    dt_parse_date,
    dt_today_local,
    dt_years_between,
)
from ..utils.math_utils import calculate_percentage, coerce_int
from .staged_family_engine import StagedFamilyEngine

if TYPE_CHECKING:
    from ..type_defs import (
        ActivityLogData,
        BadgeDefinitionData,
        CounterKind,
        CounterResult,
        MemberData,
        TenureResult,
        ThresholdResult,
    )


class CounterEngine:
    """Pure logic engine for cumulative counters.

    All methods are static - no instance state. Every time-dependent method
    takes an optional `today` so callers (and tests) can pin the date.
    """

    # =========================================================================
    # COUNTER KIND
    # =========================================================================

    @staticmethod
    def counter_kind_for(stages: Iterable[BadgeDefinitionData]) -> CounterKind:
        """Return the explicit counter_kind driving a family.

        The first stage carrying a known kind other than "none" decides.
        Badge names are never inspected.
        """
        for stage in stages:
            kind = stage.get(const.DATA_BADGE_COUNTER_KIND)
            if not kind or kind == const.COUNTER_KIND_NONE:
                continue
            if kind not in const.COUNTER_KINDS:
                const.LOGGER.warning(
                    "Unknown counter kind %s on badge %s",
                    kind,
                    stage.get(const.DATA_BADGE_ID),
                )
                continue
            return kind
        return const.COUNTER_KIND_NONE  # type: ignore[return-value]

    @staticmethod
    def cached_total_for(member: MemberData, counter_kind: str) -> int | None:
        """Return the member's cached rollup for a log-driven counter."""
        field = const.COUNTER_CACHE_FIELDS.get(counter_kind)
        if field is None:
            return None
        raw_value = member.get(field)  # type: ignore[misc]
        if raw_value is None:
            return None
        return coerce_int(raw_value)

    # =========================================================================
    # RUNNING TOTALS
    # =========================================================================

    @staticmethod
    def sum_logs(
        member: MemberData,
        logs: Iterable[ActivityLogData],
        counter_kind: str | None = None,
    ) -> int | None:
        """Sum log counts for the member; None when there are no logs.

        Logs for other members are ignored. When counter_kind is given,
        logs tagged with a different kind are ignored too; untagged logs
        always count.
        """
        member_id = member.get(const.DATA_MEMBER_ID)
        total = 0
        seen = False
        for log in logs:
            log_member = log.get(const.DATA_LOG_MEMBER_ID)
            if member_id is not None and log_member != member_id:
                continue
            log_kind = log.get(const.DATA_LOG_KIND)
            if counter_kind and log_kind and log_kind != counter_kind:
                continue
            seen = True
            total += max(0, coerce_int(log.get(const.DATA_LOG_COUNT)))
        return total if seen else None

    @staticmethod
    def resolve_counter(
        member: MemberData,
        logs: Iterable[ActivityLogData],
        cached_total: int | None,
        counter_kind: str | None = None,
    ) -> CounterResult:
        """Resolve a running total, preferring the cached value.

        Args:
            member: Member the total belongs to
            logs: Activity logs (other members' logs are ignored)
            cached_total: Rollup stored on the member, or None
            counter_kind: Restrict logs to one kind

        Returns:
            CounterResult. With a cache present the cache wins; a differing
            log sum is flagged as diverged and logged. With neither,
            total is None and source is "none".
        """
        recomputed = CounterEngine.sum_logs(member, logs, counter_kind)

        if cached_total is not None:
            diverged = recomputed is not None and recomputed != cached_total
            if diverged:
                const.LOGGER.warning(
                    "Cached %s total for member %s is %s but logs sum to %s",
                    counter_kind or "counter",
                    member.get(const.DATA_MEMBER_ID),
                    cached_total,
                    recomputed,
                )
            return {
                "total": cached_total,
                "source": const.COUNTER_SOURCE_CACHE,  # type: ignore[typeddict-item]
                "recomputed_total": recomputed,
                "diverged": diverged,
            }

        if recomputed is None:
            return {
                "total": None,
                "source": const.COUNTER_SOURCE_NONE,  # type: ignore[typeddict-item]
                "recomputed_total": None,
                "diverged": False,
            }

        return {
            "total": recomputed,
            "source": const.COUNTER_SOURCE_RECOMPUTED,  # type: ignore[typeddict-item]
            "recomputed_total": recomputed,
            "diverged": False,
        }

    # =========================================================================
    # THRESHOLDS
    # =========================================================================

    @staticmethod
    def map_thresholds(
        total: int | None,
        stages: Iterable[BadgeDefinitionData],
    ) -> ThresholdResult:
        """Map a total onto stages whose stage_number is the threshold.

        Returns:
            earned_stage: highest stage with threshold <= total
            next_stage: first stage with threshold > total (the next goal)
            Both None when total is None.
        """
        if total is None:
            return {"earned_stage": None, "next_stage": None}

        earned: BadgeDefinitionData | None = None
        upcoming: BadgeDefinitionData | None = None
        for stage in StagedFamilyEngine.sort_stages(stages):
            if stage.get(const.DATA_BADGE_STAGE_NUMBER) is None:
                continue
            threshold = coerce_int(stage.get(const.DATA_BADGE_STAGE_NUMBER))
            if threshold <= total:
                earned = stage
            elif upcoming is None:
                upcoming = stage
        return {"earned_stage": earned, "next_stage": upcoming}

    # =========================================================================
    # TIME-BASED COUNTERS
    # =========================================================================

    @staticmethod
    def tenure_start_date(member: MemberData) -> date | None:
        """Return scouting_start_date, falling back to join_date."""
        return dt_parse_date(
            member.get(const.DATA_MEMBER_SCOUTING_START_DATE)
        ) or dt_parse_date(member.get(const.DATA_MEMBER_JOIN_DATE))

    @staticmethod
    def resolve_tenure(
        start_date: str | date | None,
        today: date | None = None,
    ) -> TenureResult:
        """Whole years in the programme since start_date.

        Years complete on the month anniversary: someone who started on
        2023-09-15 has 1 year on 2024-09-15, not before.

        Args:
            start_date: ISO date string or date, or None
            today: Date to measure to (defaults to today, local timezone)

        Returns:
            TenureResult; every numeric field is None without a usable
            start date. A start date in the future counts as 0 years.
        """
        parsed = dt_parse_date(start_date)
        if parsed is None:
            return {
                "total": None,
                "months_into_year": None,
                "progress_percent": None,
                "start_date": None,
            }

        total_months = max(0, dt_months_between(parsed, today or dt_today_local()))
        months_into_year = total_months % MONTHS_PER_YEAR
        return {
            "total": total_months // MONTHS_PER_YEAR,
            "months_into_year": months_into_year,
            "progress_percent": calculate_percentage(
                months_into_year, MONTHS_PER_YEAR
            ),
            "start_date": parsed.isoformat(),
        }

    @staticmethod
    def section_age_progress(
        member: MemberData,
        section: str | None = None,
        today: date | None = None,
    ) -> int:
        """Percent of the way through the section's age range (0-100).

        Returns 0 when the birth date or section is unknown.
        """
        section_name = (section or member.get(const.DATA_MEMBER_SECTION) or "").lower()
        age_range = const.SECTION_AGE_RANGES.get(section_name)
        birth_date = dt_parse_date(member.get(const.DATA_MEMBER_DATE_OF_BIRTH))
        if age_range is None or birth_date is None:
            return 0

        start_age, end_age = age_range
        age_years = dt_years_between(birth_date, today or dt_today_local())
        return calculate_percentage(age_years - start_age, end_age - start_age)
