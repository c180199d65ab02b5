"""Staged Family Engine - Pure logic for staged badge families.

This engine provides stateless, pure Python functions for:
- Grouping staged badges into families ordered by stage_number
- Aggregating progress across every stage of a family
- Resolving the highest completed stage

Highest completed stage is the completed stage with the greatest
stage_number. Lower stages are NOT required to be complete: leaders often
record only the top stage a member has actually been signed off for.
`is_contiguous` tells callers when that happened.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .. import const
from ..utils.math_utils import calculate_percentage, coerce_int

if TYPE_CHECKING:
    from ..type_defs import (
        BadgeDefinitionData,
        BadgeResult,
        FamilyResult,
        StagedFamily,
    )


class StagedFamilyEngine:
    """Pure logic engine for staged family resolution.

    All methods are static - no instance state.
    """

    @staticmethod
    def sort_stages(
        stages: Iterable[BadgeDefinitionData],
    ) -> list[BadgeDefinitionData]:
        """Return stages ascending by stage_number (stable for equal numbers)."""
        return sorted(
            stages, key=lambda b: coerce_int(b.get(const.DATA_BADGE_STAGE_NUMBER))
        )

    @staticmethod
    def group_families(
        badges: Iterable[BadgeDefinitionData],
    ) -> dict[str, StagedFamily]:
        """Group badges carrying a badge_family_id into families.

        Badges with a stage_number become stages; a badge with a null
        stage_number is the family header and supplies the family name.
        Families are returned in first-seen catalog order.

        Returns:
            family_id -> StagedFamily with stages sorted ascending
        """
        families: dict[str, StagedFamily] = {}
        for badge in badges:
            family_id = badge.get(const.DATA_BADGE_FAMILY_ID)
            if not family_id:
                continue
            family = families.setdefault(
                family_id,
                {
                    "family_id": family_id,
                    "name": "",
                    "header": None,
                    "stages": [],
                },
            )
            if badge.get(const.DATA_BADGE_STAGE_NUMBER) is None:
                family["header"] = badge
            else:
                family["stages"].append(badge)

        for family in families.values():
            family["stages"] = StagedFamilyEngine.sort_stages(family["stages"])
            name_source = family["header"] or (
                family["stages"][0] if family["stages"] else None
            )
            family["name"] = (
                name_source.get(const.DATA_BADGE_NAME) if name_source else None
            ) or ""
        return families

    @staticmethod
    def resolve_family(
        family_id: str,
        stages: Iterable[BadgeDefinitionData],
        results_by_stage: Mapping[str, BadgeResult],
        family_name: str = "",
    ) -> FamilyResult:
        """Resolve a family to its highest completed stage.

        Args:
            family_id: Family identity
            stages: Stage badges (any order)
            results_by_stage: badge_id -> BadgeResult from CompletionEngine;
                stages without a result count as 0/0 and incomplete
            family_name: Display name for the family

        Returns:
            FamilyResult with highest_completed_stage (None when no stage is
            complete) and the summed aggregate
        """
        ordered = StagedFamilyEngine.sort_stages(stages)

        stage_results: list[BadgeResult] = []
        highest: BadgeDefinitionData | None = None
        highest_index = -1
        completed_flags: list[bool] = []
        completed_sum = 0
        total_sum = 0

        for index, stage in enumerate(ordered):
            stage_id = stage.get(const.DATA_BADGE_ID, const.UNKNOWN_ID)
            result = results_by_stage.get(stage_id)
            if result is None:
                completed_flags.append(False)
                continue
            stage_results.append(result)
            completed_sum += result["completed"]
            total_sum += result["total"]
            completed_flags.append(result["is_complete"])
            if result["is_complete"]:
                highest = stage
                highest_index = index

        is_contiguous = True
        if highest is not None:
            is_contiguous = all(completed_flags[:highest_index])
            if not is_contiguous:
                const.LOGGER.debug(
                    "Family %s: stage %s complete with a lower stage incomplete",
                    family_id,
                    highest.get(const.DATA_BADGE_STAGE_NUMBER),
                )

        return {
            "family_id": family_id,
            "family_name": family_name
            or (ordered[0].get(const.DATA_BADGE_NAME) if ordered else None)
            or "",
            "highest_completed_stage": highest,
            "aggregate": {
                "completed": completed_sum,
                "total": total_sum,
                "percentage": calculate_percentage(completed_sum, total_sum),
            },
            "is_contiguous": is_contiguous,
            "stage_results": stage_results,
        }
