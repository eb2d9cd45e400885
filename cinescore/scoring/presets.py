"""Named weight presets and scoring under alternative weights."""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from cinescore.core.exceptions import PresetError
from cinescore.core.logging import get_logger

from .aggregator import WeightedScoreAggregator
from .models import Criterion, EvaluationPass, RawScore, WeightedScoreResult

logger = get_logger(__name__)


class PresetWeight(BaseModel):
    """Weight override for one criterion."""

    criteria_id: str | None = Field(None, description="Criterion to reweight")
    weight: int = Field(..., ge=0, description="Replacement weight")


class CriteriaPreset(BaseModel):
    """A named, reusable set of criterion weights."""

    id: str = Field(..., description="Preset identifier")
    name: str = Field(..., min_length=1, description="Preset name")
    description: str | None = Field(None, description="What the preset favors")
    is_global: bool = Field(False, description="Shared with every user")
    weights: list[PresetWeight] = Field(default_factory=list)

    def weight_map(self) -> dict[str, int]:
        """Criterion id to weight; rows without a criterion are skipped."""
        return {w.criteria_id: w.weight for w in self.weights if w.criteria_id}


class PresetWeightRow(BaseModel):
    """One criterion's weights across several presets."""

    criteria_id: str
    criteria_name: str | None = None
    parent_id: str | None = None
    weights: list[int | None] = Field(
        default_factory=list, description="Weight per preset, None when unset"
    )


def apply_preset(
    criteria: Iterable[Criterion], preset: CriteriaPreset
) -> list[Criterion]:
    """
    Return copies of the criteria with the preset's weights applied.

    Criteria the preset does not mention keep their weight. Preset rows that
    name unknown criteria are ignored. The input criteria are not modified.

    Raises:
        PresetError: If the preset has no weight rows.
    """
    if not preset.weights:
        raise PresetError(f"Preset '{preset.id}' has no weights")

    overrides = preset.weight_map()
    applied = [
        criterion.model_copy(update={"weight": overrides[criterion.id]})
        if criterion.id in overrides
        else criterion.model_copy()
        for criterion in criteria
    ]
    logger.debug("preset_applied", preset_id=preset.id, overrides=len(overrides))
    return applied


def find_preset(presets: Iterable[CriteriaPreset], preset_id: str) -> CriteriaPreset:
    """Look up a preset by id.

    Raises:
        PresetError: If no preset has that id.
    """
    for preset in presets:
        if preset.id == preset_id:
            return preset
    raise PresetError(f"Preset not found: {preset_id}")


def _check_presets(presets: Sequence[CriteriaPreset]) -> None:
    if not presets:
        raise PresetError("At least one preset is required")
    seen: set[str] = set()
    for preset in presets:
        if preset.id in seen:
            raise PresetError(f"Duplicate preset id: {preset.id}")
        seen.add(preset.id)


def compare_presets(
    criteria: Sequence[Criterion],
    evaluations: Sequence[EvaluationPass],
    scores: Sequence[RawScore],
    presets: Sequence[CriteriaPreset],
    entity_ids: Iterable[str] | None = None,
    include_breakdown: bool = False,
    aggregator: WeightedScoreAggregator | None = None,
) -> dict[str, WeightedScoreResult]:
    """
    Score the same rows under each preset.

    Args:
        criteria: Base criteria; weights not covered by a preset are kept.
        evaluations: Evaluation passes.
        scores: Raw scores.
        presets: Presets to compare, in display order.
        entity_ids: Optional entity filter, as for compute_weighted_scores.
        include_breakdown: Whether to compute breakdowns per preset.
        aggregator: Aggregator to use; defaults to default settings.

    Returns:
        Preset id to result, in preset order.

    Raises:
        PresetError: If presets is empty, has duplicate ids, or a preset
            has no weights.
    """
    _check_presets(presets)
    aggregator = aggregator or WeightedScoreAggregator()
    requested = list(entity_ids) if entity_ids is not None else None

    results: dict[str, WeightedScoreResult] = {}
    for preset in presets:
        results[preset.id] = aggregator.compute(
            apply_preset(criteria, preset),
            evaluations,
            scores,
            entity_ids=requested,
            include_breakdown=include_breakdown,
        )
    return results


def preset_weight_table(
    criteria: Iterable[Criterion], presets: Sequence[CriteriaPreset]
) -> list[PresetWeightRow]:
    """
    Build the criterion-by-preset weight grid.

    One row per criterion referenced by any preset, in order of first
    reference. Criteria missing from the criteria list keep a row with no
    name or parent.
    """
    by_id = {criterion.id: criterion for criterion in criteria}
    rows: dict[str, PresetWeightRow] = {}

    for column, preset in enumerate(presets):
        for preset_weight in preset.weights:
            if not preset_weight.criteria_id:
                continue
            row = rows.get(preset_weight.criteria_id)
            if row is None:
                criterion = by_id.get(preset_weight.criteria_id)
                row = PresetWeightRow(
                    criteria_id=preset_weight.criteria_id,
                    criteria_name=criterion.name if criterion else None,
                    parent_id=criterion.parent_id if criterion else None,
                    weights=[None] * len(presets),
                )
                rows[preset_weight.criteria_id] = row
            row.weights[column] = preset_weight.weight

    return list(rows.values())
