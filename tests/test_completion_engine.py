"""Unit tests for CompletionEngine - pure Python logic tests.

These tests verify module and badge completion without any storage. The
CompletionEngine only sees the dicts it is handed.

Test Categories:
- Rule normalization (aliases, unknown rules)
- Module evaluation (all_requirements, x_of_n, repeatable requirements)
- Badge evaluation (all_modules, one_module)
- Cache fallback for badges without modules
- Orphans and determinism
"""

from __future__ import annotations

from typing import Any

import pytest

from badge_progress import const
from badge_progress.engines.completion_engine import CompletionEngine
from badge_progress.engines.ledger_engine import LedgerEngine

# =============================================================================
# Builders
# =============================================================================


def make_badge(
    badge_id: str = "badge-1",
    *,
    name: str = "Test Badge",
    category: str = "activity",
    rule: str = "all_modules",
) -> dict[str, Any]:
    """Create a badge definition."""
    return {
        "id": badge_id,
        "name": name,
        "category": category,
        "completion_rule": rule,
    }


def make_module(
    module_id: str,
    badge_id: str = "badge-1",
    *,
    rule: str = "all_requirements",
    required_count: int | None = None,
    order: int = 0,
) -> dict[str, Any]:
    """Create a badge module."""
    return {
        "id": module_id,
        "badge_id": badge_id,
        "completion_rule": rule,
        "required_count": required_count,
        "order": order,
    }


def make_requirement(
    requirement_id: str,
    module_id: str,
    *,
    required_completions: int = 1,
    order: int = 0,
) -> dict[str, Any]:
    """Create a badge requirement."""
    return {
        "id": requirement_id,
        "module_id": module_id,
        "required_completions": required_completions,
        "order": order,
    }


def make_progress(
    requirement_id: str,
    *,
    count: int = 1,
    required: int = 1,
    member_id: str = "member-1",
) -> dict[str, Any]:
    """Create a consistent progress record (completed derived from count)."""
    return {
        "member_id": member_id,
        "requirement_id": requirement_id,
        "completion_count": count,
        "completed": count == required,
    }


def index(*records: dict[str, Any]) -> dict[str, Any]:
    """Index progress records by requirement_id."""
    return LedgerEngine.index_progress(records)


def evaluate(
    badge: dict[str, Any],
    modules: list[dict[str, Any]],
    requirements: list[dict[str, Any]],
    progress: dict[str, Any],
    cached: dict[str, Any] | None = None,
) -> Any:
    """Evaluate a badge with grouped requirements."""
    return CompletionEngine.evaluate_badge(
        badge,
        modules,
        LedgerEngine.requirements_by_module(requirements),
        progress,
        cached,
    )


# =============================================================================
# Test: Rule normalization
# =============================================================================


class TestRuleNormalization:
    """Tests for closed rule sets and aliases."""

    def test_legacy_module_alias(self) -> None:
        """Test the legacy x_of_n_required name maps onto x_of_n."""
        assert CompletionEngine.normalize_module_rule("x_of_n_required") == "x_of_n"
        assert (
            CompletionEngine.normalize_module_rule("all_required")
            == "all_requirements"
        )

    def test_missing_rules_use_defaults(self) -> None:
        """Test missing rules fall back without a warning."""
        assert CompletionEngine.normalize_module_rule(None) == "all_requirements"
        assert CompletionEngine.normalize_badge_rule("") == "all_modules"

    def test_unknown_module_rule_logs_warning(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unknown module rule is logged and treated as the default."""
        assert CompletionEngine.normalize_module_rule("most_of_them") == (
            const.DEFAULT_MODULE_RULE
        )
        assert "Unknown module completion rule: most_of_them" in caplog.text

    def test_unknown_badge_rule_logs_warning(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unknown badge rule is logged and treated as all_modules."""
        assert CompletionEngine.normalize_badge_rule("any_two") == "all_modules"
        assert "Unknown badge completion rule: any_two" in caplog.text


# =============================================================================
# Test: Module evaluation
# =============================================================================


class TestEvaluateModule:
    """Tests for evaluate_module()."""

    def test_all_requirements_partial(self) -> None:
        """Test 2 of 3 single requirements done gives 2/3 and 67%."""
        module = make_module("mod-1")
        requirements = [make_requirement(f"req-{i}", "mod-1") for i in range(3)]
        progress = index(make_progress("req-0"), make_progress("req-1"))

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completed"] == 2
        assert result["total"] == 3
        assert result["percentage"] == 67
        assert result["is_complete"] is False
        assert result["completion_rule"] == "all_requirements"

    def test_repeatable_requirement_partial_credit(self) -> None:
        """Test a requirement needing 3 completions credits each one."""
        module = make_module("mod-1")
        requirements = [make_requirement("req-1", "mod-1", required_completions=3)]
        progress = index(make_progress("req-1", count=2, required=3))

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completed"] == 2
        assert result["total"] == 3
        assert result["percentage"] == 67
        assert result["is_complete"] is False

    def test_x_of_n_reaches_required_count(self) -> None:
        """Test 3 done in a 2-of-4 module caps at 2/2 and completes."""
        module = make_module("mod-1", rule="x_of_n", required_count=2)
        requirements = [make_requirement(f"req-{i}", "mod-1") for i in range(4)]
        progress = index(*(make_progress(f"req-{i}") for i in range(3)))

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completed"] == 2
        assert result["total"] == 2
        assert result["percentage"] == 100
        assert result["is_complete"] is True

    def test_x_of_n_ignores_partial_counts(self) -> None:
        """Test x_of_n counts completed requirements only."""
        module = make_module("mod-1", rule="x_of_n", required_count=2)
        requirements = [
            make_requirement("req-1", "mod-1", required_completions=3),
            make_requirement("req-2", "mod-1"),
        ]
        progress = index(
            make_progress("req-1", count=2, required=3), make_progress("req-2")
        )

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completed"] == 1
        assert result["total"] == 2
        assert result["percentage"] == 50

    def test_x_of_n_without_required_count_uses_requirement_count(self) -> None:
        """Test a missing required_count means every requirement."""
        module = make_module("mod-1", rule="x_of_n_required")
        requirements = [make_requirement(f"req-{i}", "mod-1") for i in range(4)]
        progress = index(make_progress("req-0"))

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completion_rule"] == "x_of_n"
        assert result["total"] == 4
        assert result["completed"] == 1
        assert result["percentage"] == 25

    def test_empty_module_is_never_complete(self) -> None:
        """Test a module with no requirements is 0/0, 0% and incomplete."""
        result = CompletionEngine.evaluate_module(make_module("mod-1"), [], {})

        assert result["total"] == 0
        assert result["percentage"] == 0
        assert result["is_complete"] is False

    def test_requirements_of_other_modules_are_ignored(self) -> None:
        """Test a requirement pointing at another module does not count."""
        module = make_module("mod-1")
        requirements = [
            make_requirement("req-1", "mod-1"),
            make_requirement("req-2", "mod-other"),
        ]
        progress = index(make_progress("req-2"))

        result = CompletionEngine.evaluate_module(module, requirements, progress)

        assert result["completed"] == 0
        assert result["total"] == 1


# =============================================================================
# Test: Badge evaluation
# =============================================================================


class TestEvaluateBadge:
    """Tests for evaluate_badge() under both badge rules."""

    def test_all_modules_sums_partial_credit(self) -> None:
        """Test a complete and an incomplete module sum to 3/6."""
        modules = [make_module("mod-1", order=1), make_module("mod-2", order=2)]
        requirements = [
            make_requirement("req-1", "mod-1"),
            make_requirement("req-2", "mod-1"),
        ] + [make_requirement(f"req-b{i}", "mod-2") for i in range(4)]
        progress = index(
            make_progress("req-1"), make_progress("req-2"), make_progress("req-b0")
        )

        result = evaluate(make_badge(), modules, requirements, progress)

        assert result["completed"] == 3
        assert result["total"] == 6
        assert result["percentage"] == 50
        assert result["is_complete"] is False
        assert result["source"] == "requirements"
        assert result["has_completed_requirement"] is True
        assert [m["module_id"] for m in result["module_results"]] == [
            "mod-1",
            "mod-2",
        ]

    def test_all_modules_complete_reports_100(self) -> None:
        """Test every module complete completes the badge."""
        modules = [make_module("mod-1"), make_module("mod-2")]
        requirements = [
            make_requirement("req-1", "mod-1"),
            make_requirement("req-2", "mod-2"),
        ]
        progress = index(make_progress("req-1"), make_progress("req-2"))

        result = evaluate(make_badge(), modules, requirements, progress)

        assert result["is_complete"] is True
        assert result["percentage"] == 100

    def test_all_modules_with_empty_module_never_completes(self) -> None:
        """Test an empty module keeps an all_modules badge incomplete."""
        modules = [make_module("mod-1"), make_module("mod-empty")]
        requirements = [make_requirement("req-1", "mod-1")]
        progress = index(make_progress("req-1"))

        result = evaluate(make_badge(), modules, requirements, progress)

        assert result["is_complete"] is False
        assert result["completed"] == 1
        assert result["total"] == 1

    def test_one_module_any_complete_module_wins(self) -> None:
        """Test one complete module completes a one_module badge."""
        badge = make_badge(rule="one_module")
        modules = [make_module("mod-a", order=1), make_module("mod-b", order=2)]
        requirements = [
            make_requirement(f"req-a{i}", "mod-a") for i in range(3)
        ] + [make_requirement(f"req-b{i}", "mod-b") for i in range(2)]
        progress = index(
            make_progress("req-a0"), make_progress("req-b0"), make_progress("req-b1")
        )

        result = evaluate(badge, modules, requirements, progress)

        assert result["is_complete"] is True
        assert result["percentage"] == 100
        assert result["completed"] == 2
        assert result["total"] == 2

    def test_one_module_reports_best_module(self) -> None:
        """Test an incomplete one_module badge shows its best module."""
        badge = make_badge(rule="one_module")
        modules = [make_module("mod-a", order=1), make_module("mod-b", order=2)]
        requirements = [
            make_requirement(f"req-a{i}", "mod-a") for i in range(4)
        ] + [make_requirement(f"req-b{i}", "mod-b") for i in range(2)]
        progress = index(make_progress("req-a0"), make_progress("req-b0"))

        result = evaluate(badge, modules, requirements, progress)

        assert result["is_complete"] is False
        assert result["completed"] == 1
        assert result["total"] == 2
        assert result["percentage"] == 50

    def test_one_module_tie_keeps_first_module(self) -> None:
        """Test equal percentages report the first module in order."""
        badge = make_badge(rule="one_module")
        modules = [make_module("mod-a", order=1), make_module("mod-b", order=2)]
        requirements = [
            make_requirement(f"req-a{i}", "mod-a") for i in range(2)
        ] + [make_requirement(f"req-b{i}", "mod-b") for i in range(4)]
        progress = index(
            make_progress("req-a0"), make_progress("req-b0"), make_progress("req-b1")
        )

        result = evaluate(badge, modules, requirements, progress)

        assert result["percentage"] == 50
        assert result["completed"] == 1
        assert result["total"] == 2

    def test_modules_of_other_badges_are_ignored(self) -> None:
        """Test a module belonging to another badge is skipped."""
        modules = [make_module("mod-1"), make_module("mod-x", badge_id="badge-2")]
        requirements = [
            make_requirement("req-1", "mod-1"),
            make_requirement("req-x", "mod-x"),
        ]
        progress = index(make_progress("req-1"))

        result = evaluate(make_badge(), modules, requirements, progress)

        assert result["is_complete"] is True
        assert len(result["module_results"]) == 1

    def test_orphan_progress_is_ignored(self) -> None:
        """Test progress for unknown requirements changes nothing."""
        modules = [make_module("mod-1")]
        requirements = [make_requirement("req-1", "mod-1")]
        progress = index(make_progress("req-gone"))

        result = evaluate(make_badge(), modules, requirements, progress)

        assert result["completed"] == 0
        assert result["has_completed_requirement"] is False

    def test_evaluation_is_deterministic(self) -> None:
        """Test the same snapshot gives equal results."""
        modules = [make_module("mod-1")]
        requirements = [make_requirement("req-1", "mod-1", required_completions=2)]
        progress = index(make_progress("req-1", count=1, required=2))

        first = evaluate(make_badge(), modules, requirements, progress)
        second = evaluate(make_badge(), modules, requirements, progress)

        assert first == second


# =============================================================================
# Test: Cache fallback
# =============================================================================


class TestCacheFallback:
    """Tests for badges with no modules."""

    def test_cached_completed_status(self) -> None:
        """Test a cached completed row completes a module-less badge."""
        cached = {"member_id": "member-1", "badge_id": "badge-1", "status": "completed"}

        result = evaluate(make_badge(), [], [], {}, cached)

        assert result["is_complete"] is True
        assert result["percentage"] == 100
        assert result["completed"] == 0
        assert result["total"] == 0
        assert result["source"] == "cache"

    def test_cached_in_progress_status(self) -> None:
        """Test an in_progress cache row is not complete."""
        cached = {
            "member_id": "member-1",
            "badge_id": "badge-1",
            "status": "in_progress",
        }

        result = evaluate(make_badge(), [], [], {}, cached)

        assert result["is_complete"] is False
        assert result["percentage"] == 0

    def test_no_cache_row(self) -> None:
        """Test a module-less badge without a cache row is not started."""
        result = evaluate(make_badge(), [], [], {})

        assert result["is_complete"] is False
        assert result["source"] == "cache"
        assert result["module_results"] == []
