"""Classification Engine - Pure logic for bucketing and ordering progress.

This engine provides stateless, pure Python functions for:
- Building classifiable items from badge and family results
- Partitioning items into Earned / In Progress / Not Started
- Ordering each bucket for presentation

Buckets:
    EARNED:       badge complete, or family has a highest completed stage
    IN PROGRESS:  not earned, and challenge category (always a goal) or at
                  least one underlying requirement completed
    NOT STARTED:  everything else

Ordering (all sorts are stable; ties keep input order):
    EARNED:       input order
    IN PROGRESS:  category precedence, then percentage descending
    NOT STARTED:  category precedence; activity badges by name
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from ..type_defs import (
        BadgeDefinitionData,
        BadgeResult,
        ClassificationBuckets,
        FamilyResult,
        ProgressItem,
    )


class ClassificationEngine:
    """Pure logic engine for classification and ranking.

    All methods are static - no instance state.
    """

    # =========================================================================
    # ITEM BUILDERS
    # =========================================================================

    @staticmethod
    def badge_item(badge: BadgeDefinitionData, result: BadgeResult) -> ProgressItem:
        """Build a classifiable item for a standalone badge."""
        return {
            "item_id": result["badge_id"],
            "item_type": const.ITEM_TYPE_BADGE,  # type: ignore[typeddict-item]
            "name": badge.get(const.DATA_BADGE_NAME) or "",
            "category": badge.get(const.DATA_BADGE_CATEGORY, ""),
            "percentage": result["percentage"],
            "is_earned": result["is_complete"],
            "has_completed_requirement": result["has_completed_requirement"],
        }

    @staticmethod
    def family_item(
        family_result: FamilyResult,
        category: str = const.BADGE_CATEGORY_STAGED,
    ) -> ProgressItem:
        """Build a classifiable item for a staged family."""
        return {
            "item_id": family_result["family_id"],
            "item_type": const.ITEM_TYPE_FAMILY,  # type: ignore[typeddict-item]
            "name": family_result["family_name"],
            "category": category,
            "percentage": family_result["aggregate"]["percentage"],
            "is_earned": family_result["highest_completed_stage"] is not None,
            "has_completed_requirement": any(
                result["has_completed_requirement"]
                for result in family_result["stage_results"]
            ),
        }

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    @staticmethod
    def category_rank(
        category: str,
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> int:
        """Return a category's precedence; unlisted categories sort last."""
        try:
            return category_order.index(category)
        except ValueError:
            return len(category_order)

    @classmethod
    def classify(
        cls,
        items: Iterable[ProgressItem],
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> ClassificationBuckets:
        """Partition items into the three buckets and order each one.

        Args:
            items: Badge and family items in catalog iteration order
            category_order: Category precedence override

        Returns:
            ClassificationBuckets
        """
        earned: list[ProgressItem] = []
        in_progress: list[ProgressItem] = []
        not_started: list[ProgressItem] = []

        for item in items:
            if item["is_earned"]:
                earned.append(item)
            elif (
                item["category"] == const.BADGE_CATEGORY_CHALLENGE
                or item["has_completed_requirement"]
            ):
                in_progress.append(item)
            else:
                not_started.append(item)

        return {
            "earned": earned,
            "in_progress": cls.rank_in_progress(in_progress, category_order),
            "not_started": cls.rank_not_started(not_started, category_order),
        }

    @classmethod
    def rank_in_progress(
        cls,
        items: Iterable[ProgressItem],
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> list[ProgressItem]:
        """Category precedence, then percentage descending."""
        return sorted(
            items,
            key=lambda item: (
                cls.category_rank(item["category"], category_order),
                -item["percentage"],
            ),
        )

    @classmethod
    def rank_not_started(
        cls,
        items: Iterable[ProgressItem],
        category_order: Sequence[str] = const.CATEGORY_ORDER,
    ) -> list[ProgressItem]:
        """Category precedence; activity badges alphabetical by name.

        Only the activity group is sorted by name; other groups keep
        catalog order.
        """
        return sorted(
            items,
            key=lambda item: (
                cls.category_rank(item["category"], category_order),
                (item["name"] or "").casefold()
                if item["category"] == const.BADGE_CATEGORY_ACTIVITY
                else "",
            ),
        )
