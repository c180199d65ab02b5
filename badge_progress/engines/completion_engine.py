"""Completion Engine - Pure logic for module and badge completion.

This engine provides stateless, pure Python functions for:
- Module evaluation under all_requirements and x_of_n rules
- Badge evaluation under all_modules and one_module rules
- Cache fallback for badges that have no requirement tree
- Rule normalization (closed rule sets, legacy aliases)

ARCHITECTURE: This is a pure logic engine. All functions are static methods
that operate on passed-in data.

PURITY CONTRACT:
- All member data comes via parameters (no ambient "current member")
- No side effects, no storage access, no state mutation
- Calling twice on the same snapshot returns equal results

Completion Rules:
    MODULE:
    - all_requirements: total = sum of required_completions,
      completed = sum of min(completion_count, required_completions)
    - x_of_n: total = required_count (or requirement count),
      completed = completed requirements, capped at total

    BADGE:
    - all_modules: complete iff every module is complete; counts are summed
    - one_module: complete iff any module is complete; best module's numbers
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .. import const
from ..utils.math_utils import calculate_percentage, coerce_int
from .ledger_engine import LedgerEngine

if TYPE_CHECKING:
    from ..type_defs import (
        BadgeCompletionRule,
        BadgeDefinitionData,
        BadgeModuleData,
        BadgeProgressData,
        BadgeRequirementData,
        BadgeResult,
        ModuleCompletionRule,
        ModuleResult,
        RequirementProgressData,
    )


class CompletionEngine:
    """Pure logic engine for requirement tree evaluation.

    All methods are static - no instance state.

    Evaluation Flow:
        1. Caller indexes the member's progress (LedgerEngine.index_progress)
        2. evaluate_module() runs once per module under the module's rule
        3. evaluate_badge() combines module results under the badge's rule
        4. Caller decides what to persist (cache rows, awards)
    """

    # =========================================================================
    # RULE NORMALIZATION
    # =========================================================================

    @staticmethod
    def normalize_module_rule(raw_rule: str | None) -> ModuleCompletionRule:
        """Map a stored module rule onto the closed rule set.

        Missing rules use the default; unknown rules are logged and use the
        default too.
        """
        if not raw_rule:
            return const.DEFAULT_MODULE_RULE  # type: ignore[return-value]
        rule = const.MODULE_RULE_ALIASES.get(raw_rule, raw_rule)
        if rule not in const.MODULE_RULES:
            const.LOGGER.warning(
                "Unknown module completion rule: %s, using %s",
                raw_rule,
                const.DEFAULT_MODULE_RULE,
            )
            return const.DEFAULT_MODULE_RULE  # type: ignore[return-value]
        return rule  # type: ignore[return-value]

    @staticmethod
    def normalize_badge_rule(raw_rule: str | None) -> BadgeCompletionRule:
        """Map a stored badge rule onto the closed rule set."""
        if not raw_rule:
            return const.DEFAULT_BADGE_RULE  # type: ignore[return-value]
        if raw_rule not in const.BADGE_RULES:
            const.LOGGER.warning(
                "Unknown badge completion rule: %s, using %s",
                raw_rule,
                const.DEFAULT_BADGE_RULE,
            )
            return const.DEFAULT_BADGE_RULE  # type: ignore[return-value]
        return raw_rule  # type: ignore[return-value]

    # =========================================================================
    # MODULE EVALUATION
    # =========================================================================

    @staticmethod
    def evaluate_module(
        module: BadgeModuleData,
        requirements: Iterable[BadgeRequirementData],
        progress: Mapping[str, RequirementProgressData],
    ) -> ModuleResult:
        """Evaluate one module under its completion rule.

        Args:
            module: Module definition
            requirements: Requirements of this module; any whose module_id
                points elsewhere are ignored
            progress: The member's progress indexed by requirement_id

        Returns:
            ModuleResult. A module with total == 0 is never complete.
        """
        module_id = module.get(const.DATA_MODULE_ID, const.UNKNOWN_ID)
        rule = CompletionEngine.normalize_module_rule(
            module.get(const.DATA_MODULE_COMPLETION_RULE)
        )
        own_requirements = [
            requirement
            for requirement in requirements
            if requirement.get(const.DATA_REQUIREMENT_MODULE_ID) == module_id
        ]

        if rule == const.MODULE_RULE_X_OF_N:
            completed, total = CompletionEngine._count_x_of_n(
                module, own_requirements, progress
            )
        else:
            completed, total = CompletionEngine._count_all_requirements(
                own_requirements, progress
            )

        return {
            "module_id": module_id,
            "completion_rule": rule,
            "completed": completed,
            "total": total,
            "percentage": calculate_percentage(completed, total),
            "is_complete": total > 0 and completed >= total,
        }

    @staticmethod
    def _count_all_requirements(
        requirements: list[BadgeRequirementData],
        progress: Mapping[str, RequirementProgressData],
    ) -> tuple[int, int]:
        """Sum partial credit across repeatable requirements."""
        completed = 0
        total = 0
        for requirement in requirements:
            required = LedgerEngine.required_completions(requirement)
            record = progress.get(requirement.get(const.DATA_REQUIREMENT_ID, ""))
            total += required
            completed += min(LedgerEngine.completion_count(record), required)
        return completed, total

    @staticmethod
    def _count_x_of_n(
        module: BadgeModuleData,
        requirements: list[BadgeRequirementData],
        progress: Mapping[str, RequirementProgressData],
    ) -> tuple[int, int]:
        """Count completed requirements against required_count."""
        required_count = coerce_int(module.get(const.DATA_MODULE_REQUIRED_COUNT))
        total = required_count if required_count > 0 else len(requirements)
        done = sum(
            1
            for requirement in requirements
            if LedgerEngine.is_record_completed(
                progress.get(requirement.get(const.DATA_REQUIREMENT_ID, ""))
            )
        )
        return min(done, total), total

    # =========================================================================
    # BADGE EVALUATION
    # =========================================================================

    @classmethod
    def evaluate_badge(
        cls,
        badge: BadgeDefinitionData,
        modules: Iterable[BadgeModuleData],
        requirements_by_module: Mapping[str, list[BadgeRequirementData]],
        progress: Mapping[str, RequirementProgressData],
        cached_progress: BadgeProgressData | None = None,
    ) -> BadgeResult:
        """Evaluate one badge for one member.

        Pure function - no side effects, no storage access.

        Args:
            badge: Badge definition
            modules: Modules of this badge (others are ignored)
            requirements_by_module: module_id -> requirements
            progress: The member's progress indexed by requirement_id
            cached_progress: The member's cached status row for this badge;
                only consulted when the badge has no modules

        Returns:
            BadgeResult with completed, total, percentage, is_complete
        """
        badge_id = badge.get(const.DATA_BADGE_ID, const.UNKNOWN_ID)
        badge_name = badge.get(const.DATA_BADGE_NAME) or ""
        own_modules = [
            module
            for module in modules
            if module.get(const.DATA_MODULE_BADGE_ID, badge_id) == badge_id
        ]

        if not own_modules:
            return cls._evaluate_from_cache(badge_id, badge_name, cached_progress)

        module_results = [
            cls.evaluate_module(
                module,
                requirements_by_module.get(module.get(const.DATA_MODULE_ID, ""), []),
                progress,
            )
            for module in own_modules
        ]
        has_completed_requirement = any(
            LedgerEngine.has_completed_requirement(
                requirements_by_module.get(module.get(const.DATA_MODULE_ID, ""), []),
                progress,
            )
            for module in own_modules
        )

        rule = cls.normalize_badge_rule(badge.get(const.DATA_BADGE_COMPLETION_RULE))
        if rule == const.BADGE_RULE_ONE_MODULE:
            completed, total, percentage, is_complete = cls._combine_one_module(
                module_results
            )
        else:
            completed, total, percentage, is_complete = cls._combine_all_modules(
                module_results
            )

        const.LOGGER.debug(
            "Badge %s (%s): %s/%s, %s%%, complete=%s",
            badge_name,
            rule,
            completed,
            total,
            percentage,
            is_complete,
        )

        return cls._make_result(
            badge_id=badge_id,
            badge_name=badge_name,
            completed=completed,
            total=total,
            percentage=percentage,
            is_complete=is_complete,
            source=const.RESULT_SOURCE_REQUIREMENTS,
            has_completed_requirement=has_completed_requirement,
            module_results=module_results,
        )

    @staticmethod
    def _combine_all_modules(
        module_results: list[ModuleResult],
    ) -> tuple[int, int, int, bool]:
        """Every module must be complete; partial credit is summed."""
        completed = sum(result["completed"] for result in module_results)
        total = sum(result["total"] for result in module_results)
        is_complete = all(result["is_complete"] for result in module_results)
        percentage = calculate_percentage(completed, total)
        if is_complete:
            percentage = 100
        return completed, total, percentage, is_complete

    @staticmethod
    def _combine_one_module(
        module_results: list[ModuleResult],
    ) -> tuple[int, int, int, bool]:
        """Any complete module completes the badge; best module is reported."""
        complete_modules = [r for r in module_results if r["is_complete"]]
        if complete_modules:
            best = complete_modules[0]
            return best["completed"], best["total"], 100, True

        # max() keeps the first of equal percentages (module order)
        best = max(module_results, key=lambda r: r["percentage"])
        return best["completed"], best["total"], best["percentage"], False

    @classmethod
    def _evaluate_from_cache(
        cls,
        badge_id: str,
        badge_name: str,
        cached_progress: BadgeProgressData | None,
    ) -> BadgeResult:
        """Fall back to the cached status when there is no tree to recompute."""
        cached_status = (
            cached_progress.get(const.DATA_BADGE_PROGRESS_STATUS)
            if cached_progress
            else None
        )
        is_complete = cached_status == const.BADGE_STATUS_COMPLETED
        return cls._make_result(
            badge_id=badge_id,
            badge_name=badge_name,
            completed=0,
            total=0,
            percentage=100 if is_complete else 0,
            is_complete=is_complete,
            source=const.RESULT_SOURCE_CACHE,
            has_completed_requirement=False,
            module_results=[],
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _make_result(
        badge_id: str,
        badge_name: str,
        completed: int,
        total: int,
        percentage: int,
        is_complete: bool,
        source: str,
        has_completed_requirement: bool,
        module_results: list[ModuleResult],
    ) -> BadgeResult:
        """Create a standardized BadgeResult."""
        return {
            "badge_id": badge_id,
            "badge_name": badge_name,
            "completed": completed,
            "total": total,
            "percentage": percentage,
            "is_complete": is_complete,
            "source": source,  # type: ignore[typeddict-item]
            "has_completed_requirement": has_completed_requirement,
            "module_results": module_results,
        }
