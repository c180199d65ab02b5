"""Award Engine - Pure logic for top award (Chief Scout's Gold Award) progress.

The top award of a section is earned by completing every challenge badge of
that section. This engine reports how far a member has got and whether the
award could be issued. It never creates awards: issuing (pending → awarded)
is an idempotent write owned by the caller.

Progress vs eligibility:
    - challenge progress counts challenge badges the engine derives as
      complete (requirement tree or cache fallback)
    - eligibility requires an AWARDED award for every challenge badge,
      because badges are only handed over once leaders have signed them off
    - activity progress is informational: completed activity badges against
      TOP_AWARD_ACTIVITY_TARGET, capped at 100%
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .. import const
from ..utils.math_utils import calculate_percentage

if TYPE_CHECKING:
    from ..type_defs import (
        BadgeAwardData,
        BadgeDefinitionData,
        BadgeResult,
        TopAwardProgress,
    )


class AwardEngine:
    """Pure logic engine for top award progress.

    All methods are static - no instance state.
    """

    @staticmethod
    def find_top_award(
        badges: Iterable[BadgeDefinitionData],
        section: str = const.DEFAULT_TOP_AWARD_SECTION,
    ) -> BadgeDefinitionData | None:
        """Return the active top award badge for a section, if any."""
        for badge in badges:
            if (
                badge.get(const.DATA_BADGE_IS_CHIEF_SCOUT_AWARD)
                and badge.get(const.DATA_BADGE_ACTIVE, True)
                and badge.get(const.DATA_BADGE_SECTION) == section
            ):
                return badge
        return None

    @staticmethod
    def _section_badges(
        badges: Iterable[BadgeDefinitionData],
        category: str,
        section: str,
    ) -> list[BadgeDefinitionData]:
        """Active, non-top-award badges of one category in one section."""
        return [
            badge
            for badge in badges
            if badge.get(const.DATA_BADGE_CATEGORY) == category
            and badge.get(const.DATA_BADGE_SECTION) == section
            and badge.get(const.DATA_BADGE_ACTIVE, True)
            and not badge.get(const.DATA_BADGE_IS_CHIEF_SCOUT_AWARD)
        ]

    @classmethod
    def evaluate_top_award(
        cls,
        member_id: str,
        badges: Iterable[BadgeDefinitionData],
        badge_results: Mapping[str, BadgeResult],
        awards: Iterable[BadgeAwardData],
        section: str = const.DEFAULT_TOP_AWARD_SECTION,
        activity_target: int = const.TOP_AWARD_ACTIVITY_TARGET,
    ) -> TopAwardProgress:
        """Evaluate progress toward the section's top award.

        Args:
            member_id: Member being evaluated
            badges: Full badge catalog
            badge_results: badge_id -> BadgeResult for this member
            awards: Award rows (other members' rows are ignored)
            section: Section whose top award applies
            activity_target: Activity badges expected alongside challenges

        Returns:
            TopAwardProgress. is_eligible is False when the section has no
            challenge badges or the member already holds the award.
        """
        catalog = list(badges)
        top_award = cls.find_top_award(catalog, section)
        challenges = cls._section_badges(
            catalog, const.BADGE_CATEGORY_CHALLENGE, section
        )
        activities = cls._section_badges(
            catalog, const.BADGE_CATEGORY_ACTIVITY, section
        )

        member_awards = [
            award
            for award in awards
            if award.get(const.DATA_AWARD_MEMBER_ID) == member_id
        ]
        awarded_ids = {
            award.get(const.DATA_AWARD_BADGE_ID)
            for award in member_awards
            if award.get(const.DATA_AWARD_STATUS) == const.AWARD_STATUS_AWARDED
        }
        top_award_id = top_award.get(const.DATA_BADGE_ID) if top_award else None
        already_held = top_award_id is not None and any(
            award.get(const.DATA_AWARD_BADGE_ID) == top_award_id
            for award in member_awards
        )

        def _is_complete(badge: BadgeDefinitionData) -> bool:
            result = badge_results.get(badge.get(const.DATA_BADGE_ID, ""))
            return bool(result and result["is_complete"])

        challenge_done = sum(1 for badge in challenges if _is_complete(badge))
        activity_done = sum(1 for badge in activities if _is_complete(badge))
        missing = [
            badge.get(const.DATA_BADGE_ID, const.UNKNOWN_ID)
            for badge in challenges
            if badge.get(const.DATA_BADGE_ID) not in awarded_ids
        ]
        is_eligible = bool(challenges) and not missing and not already_held

        return {
            "award_badge_id": top_award_id,
            "challenge_completed": challenge_done,
            "challenge_total": len(challenges),
            "challenge_percentage": calculate_percentage(
                challenge_done, len(challenges)
            ),
            "activity_completed": activity_done,
            "activity_target": activity_target,
            "activity_percentage": calculate_percentage(activity_done, activity_target),
            "already_held": already_held,
            "is_eligible": is_eligible,
            "missing_challenge_ids": missing,
        }
