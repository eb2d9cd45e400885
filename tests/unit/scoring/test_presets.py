"""Unit tests for weight presets."""

import pytest
from pydantic import ValidationError

from cinescore.core.exceptions import PresetError
from cinescore.core.settings import ScoringSettings
from cinescore.scoring.aggregator import WeightedScoreAggregator
from cinescore.scoring.presets import (
    CriteriaPreset,
    PresetWeight,
    apply_preset,
    compare_presets,
    find_preset,
    preset_weight_table,
)


def _preset(preset_id: str, **weights: int) -> CriteriaPreset:
    return CriteriaPreset(
        id=preset_id,
        name=preset_id.title(),
        weights=[PresetWeight(criteria_id=cid, weight=w) for cid, w in weights.items()],
    )


class TestCriteriaPreset:
    """Tests for the preset model."""

    def test_weight_map_skips_unbound_rows(self) -> None:
        """Test rows without a criterion are left out of the map."""
        preset = CriteriaPreset(
            id="p",
            name="P",
            weights=[
                PresetWeight(criteria_id="A", weight=3),
                PresetWeight(criteria_id=None, weight=9),
            ],
        )
        assert preset.weight_map() == {"A": 3}

    def test_negative_weight_rejected(self) -> None:
        """Test preset weights must not be negative."""
        with pytest.raises(ValidationError):
            PresetWeight(criteria_id="A", weight=-1)

    def test_empty_name_rejected(self) -> None:
        """Test a preset needs a name."""
        with pytest.raises(ValidationError):
            CriteriaPreset(id="p", name="")


class TestApplyPreset:
    """Tests for apply_preset."""

    def test_overrides_listed_weights(self, story_craft_criteria) -> None:
        """Test listed criteria get the preset weight, others keep theirs."""
        applied = apply_preset(story_craft_criteria, _preset("p", A=1, B1=5))
        weights = {c.id: c.weight for c in applied}
        assert weights == {"A": 1, "B": 1, "A1": 1, "A2": 1, "B1": 5}

    def test_inputs_unchanged(self, story_craft_criteria) -> None:
        """Test the original criteria keep their weights."""
        applied = apply_preset(story_craft_criteria, _preset("p", A=7))
        assert story_craft_criteria[0].weight == 2
        assert applied[0] is not story_craft_criteria[0]

    def test_unknown_criteria_ignored(self, story_craft_criteria) -> None:
        """Test preset rows for unknown criteria have no effect."""
        applied = apply_preset(story_craft_criteria, _preset("p", Z=3))
        assert [c.weight for c in applied] == [c.weight for c in story_craft_criteria]

    def test_empty_preset_rejected(self, story_craft_criteria) -> None:
        """Test a preset without weights raises PresetError."""
        with pytest.raises(PresetError, match="has no weights"):
            apply_preset(story_craft_criteria, CriteriaPreset(id="e", name="E"))

    def test_zero_weight_excludes_category(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test a preset can switch a category off."""
        criteria = apply_preset(story_craft_criteria, _preset("p", B=0))
        aggregator = WeightedScoreAggregator()
        result = aggregator.compute(criteria, two_pass_evaluations, two_pass_scores)
        assert result.weighted["m1"] == 4.5


class TestFindPreset:
    """Tests for find_preset."""

    def test_found(self) -> None:
        """Test lookup by id."""
        presets = [_preset("a", A=1), _preset("b", A=2)]
        assert find_preset(presets, "b").id == "b"

    def test_not_found(self) -> None:
        """Test an unknown id raises PresetError."""
        with pytest.raises(PresetError, match="Preset not found: x"):
            find_preset([_preset("a", A=1)], "x")


class TestComparePresets:
    """Tests for compare_presets."""

    def test_one_result_per_preset(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test every preset is scored over the same rows."""
        results = compare_presets(
            story_craft_criteria,
            two_pass_evaluations,
            two_pass_scores,
            [_preset("even", A=1, B=1), _preset("story", A=3, B=1)],
        )

        assert list(results) == ["even", "story"]
        # Story 4.5, Craft 3.75
        assert results["even"].weighted["m1"] == 4.13
        assert results["story"].weighted["m1"] == 4.31
        assert results["even"].breakdown == {"m1": []}

    def test_with_breakdown_and_filter(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test breakdown and entity filter are passed through."""
        results = compare_presets(
            story_craft_criteria,
            two_pass_evaluations,
            two_pass_scores,
            [_preset("even", A=1, B=1)],
            entity_ids=iter(["m1", "m2"]),
            include_breakdown=True,
        )
        assert [e.name for e in results["even"].breakdown["m1"]] == ["Story", "Craft"]
        assert results["even"].breakdown["m2"] == []

    def test_uses_given_aggregator(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test the aggregator's settings apply to every preset."""
        aggregator = WeightedScoreAggregator(ScoringSettings(overall_precision=0))
        results = compare_presets(
            story_craft_criteria,
            two_pass_evaluations,
            two_pass_scores,
            [_preset("even", A=1, B=1)],
            aggregator=aggregator,
        )
        assert results["even"].weighted["m1"] == 4.0

    def test_empty_list_rejected(self, story_craft_criteria) -> None:
        """Test at least one preset is required."""
        with pytest.raises(PresetError, match="At least one preset"):
            compare_presets(story_craft_criteria, [], [], [])

    def test_duplicate_ids_rejected(self, story_craft_criteria) -> None:
        """Test the same preset id cannot appear twice."""
        with pytest.raises(PresetError, match="Duplicate preset id: a"):
            compare_presets(
                story_craft_criteria, [], [], [_preset("a", A=1), _preset("a", A=2)]
            )


class TestPresetWeightTable:
    """Tests for preset_weight_table."""

    def test_grid(self, story_craft_criteria) -> None:
        """Test one row per referenced criterion, one column per preset."""
        rows = preset_weight_table(
            story_craft_criteria,
            [_preset("even", A=1, B=1), _preset("plot", A1=4)],
        )

        assert [r.criteria_id for r in rows] == ["A", "B", "A1"]
        assert rows[0].criteria_name == "Story"
        assert rows[0].weights == [1, None]
        assert rows[2].parent_id == "A"
        assert rows[2].weights == [None, 4]

    def test_unknown_criterion_kept(self, story_craft_criteria) -> None:
        """Test rows for unknown criteria have no name or parent."""
        rows = preset_weight_table(story_craft_criteria, [_preset("p", Z=2)])
        assert rows[0].criteria_id == "Z"
        assert rows[0].criteria_name is None
        assert rows[0].parent_id is None
