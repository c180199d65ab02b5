"""Unit tests for StagedFamilyEngine - pure Python logic tests.

Test Categories:
- Stage ordering
- Family grouping (headers, names)
- Highest completed stage and contiguity
- Family aggregate
"""

from __future__ import annotations

from typing import Any

from badge_progress.engines.staged_family_engine import StagedFamilyEngine
from badge_progress.utils.math_utils import calculate_percentage

# =============================================================================
# Builders
# =============================================================================


def make_stage(
    stage_number: int | None,
    *,
    family_id: str = "fam-1",
    name: str | None = None,
) -> dict[str, Any]:
    """Create a staged badge (stage_number None makes a family header)."""
    suffix = "header" if stage_number is None else str(stage_number)
    badge_id = f"{family_id}-{suffix}"
    return {
        "id": badge_id,
        "name": name or f"Stage {stage_number}",
        "category": "staged",
        "badge_family_id": family_id,
        "stage_number": stage_number,
    }


def make_result(
    badge_id: str,
    completed: int,
    total: int,
) -> dict[str, Any]:
    """Create a BadgeResult as CompletionEngine would."""
    is_complete = total > 0 and completed >= total
    return {
        "badge_id": badge_id,
        "badge_name": badge_id,
        "completed": completed,
        "total": total,
        "percentage": calculate_percentage(completed, total),
        "is_complete": is_complete,
        "source": "requirements",
        "has_completed_requirement": completed > 0,
        "module_results": [],
    }


# =============================================================================
# Test: Ordering and grouping
# =============================================================================


class TestGroupFamilies:
    """Tests for sort_stages() and group_families()."""

    def test_sort_stages_ascending(self) -> None:
        """Test stages sort by stage_number."""
        stages = [make_stage(3), make_stage(1), make_stage(2)]

        ordered = StagedFamilyEngine.sort_stages(stages)

        assert [s["stage_number"] for s in ordered] == [1, 2, 3]

    def test_header_names_family_and_is_not_a_stage(self) -> None:
        """Test the null-stage badge becomes the header."""
        badges = [
            make_stage(None, name="Nights Away"),
            make_stage(5),
            make_stage(1),
        ]

        families = StagedFamilyEngine.group_families(badges)

        family = families["fam-1"]
        assert family["name"] == "Nights Away"
        assert family["header"]["id"] == "fam-1-header"
        assert [s["stage_number"] for s in family["stages"]] == [1, 5]

    def test_family_without_header_uses_first_stage_name(self) -> None:
        """Test the lowest stage names a headerless family."""
        badges = [make_stage(2, name="Stage Two"), make_stage(1, name="Stage One")]

        families = StagedFamilyEngine.group_families(badges)

        assert families["fam-1"]["name"] == "Stage One"
        assert families["fam-1"]["header"] is None

    def test_standalone_badges_are_skipped(self) -> None:
        """Test badges without a family are not grouped."""
        badges = [
            {"id": "b-1", "name": "Solo", "category": "activity"},
            make_stage(1, family_id="fam-a"),
            make_stage(1, family_id="fam-b"),
        ]

        families = StagedFamilyEngine.group_families(badges)

        assert list(families) == ["fam-a", "fam-b"]


# =============================================================================
# Test: Family resolution
# =============================================================================


class TestResolveFamily:
    """Tests for resolve_family()."""

    def test_highest_completed_stage(self) -> None:
        """Test stages 1 and 2 complete, stage 3 partial resolves to stage 2."""
        stages = [make_stage(1), make_stage(2), make_stage(3)]
        results = {
            "fam-1-1": make_result("fam-1-1", 4, 4),
            "fam-1-2": make_result("fam-1-2", 5, 5),
            "fam-1-3": make_result("fam-1-3", 2, 6),
        }

        family = StagedFamilyEngine.resolve_family("fam-1", stages, results, "Fam")

        assert family["highest_completed_stage"]["stage_number"] == 2
        assert family["is_contiguous"] is True
        assert family["family_name"] == "Fam"
        assert family["aggregate"] == {"completed": 11, "total": 15, "percentage": 73}

    def test_non_contiguous_highest_stage(self) -> None:
        """Test a complete top stage wins over an incomplete lower stage."""
        stages = [make_stage(1), make_stage(2), make_stage(3)]
        results = {
            "fam-1-1": make_result("fam-1-1", 4, 4),
            "fam-1-2": make_result("fam-1-2", 1, 5),
            "fam-1-3": make_result("fam-1-3", 6, 6),
        }

        family = StagedFamilyEngine.resolve_family("fam-1", stages, results)

        assert family["highest_completed_stage"]["stage_number"] == 3
        assert family["is_contiguous"] is False

    def test_no_stage_complete(self) -> None:
        """Test a family with nothing complete has no highest stage."""
        stages = [make_stage(1), make_stage(2)]
        results = {
            "fam-1-1": make_result("fam-1-1", 1, 4),
            "fam-1-2": make_result("fam-1-2", 0, 5),
        }

        family = StagedFamilyEngine.resolve_family("fam-1", stages, results)

        assert family["highest_completed_stage"] is None
        assert family["is_contiguous"] is True
        assert family["aggregate"]["percentage"] == 11

    def test_stage_without_result_counts_as_incomplete(self) -> None:
        """Test a missing stage result is excluded from the sums."""
        stages = [make_stage(1), make_stage(2)]
        results = {"fam-1-2": make_result("fam-1-2", 3, 3)}

        family = StagedFamilyEngine.resolve_family("fam-1", stages, results)

        assert family["highest_completed_stage"]["stage_number"] == 2
        assert family["is_contiguous"] is False
        assert len(family["stage_results"]) == 1
        assert family["aggregate"]["total"] == 3

    def test_family_name_defaults_to_first_stage(self) -> None:
        """Test the name falls back to the lowest stage's name."""
        stages = [make_stage(2, name="Second"), make_stage(1, name="First")]

        family = StagedFamilyEngine.resolve_family("fam-1", stages, {})

        assert family["family_name"] == "First"
        assert family["aggregate"] == {"completed": 0, "total": 0, "percentage": 0}

    def test_null_names_fall_back_to_empty(self) -> None:
        """Test families whose badges have null names still resolve."""
        stages = [{**make_stage(1), "name": None}]
        families = StagedFamilyEngine.group_families(
            [{**make_stage(None), "name": None}, *stages]
        )

        family = StagedFamilyEngine.resolve_family("fam-1", stages, {})

        assert families["fam-1"]["name"] == ""
        assert family["family_name"] == ""
