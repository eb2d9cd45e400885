"""Weighted scoring of reviewed entities."""

from .aggregator import WeightedScoreAggregator, compute_weighted_scores, round_half_up
from .cache import WeightedScoreCache
from .models import (
    CachedWeightedScore,
    CategoryDetail,
    CategoryScore,
    Criterion,
    EntityScoreDetail,
    EvaluationPass,
    RawScore,
    SubCriterionDetail,
    WeightedScoreResult,
)
from .presets import (
    CriteriaPreset,
    PresetWeight,
    PresetWeightRow,
    apply_preset,
    compare_presets,
    find_preset,
    preset_weight_table,
)
from .ranking import RankedEntity, rank_entities

__all__ = [
    "WeightedScoreAggregator",
    "compute_weighted_scores",
    "round_half_up",
    "WeightedScoreCache",
    "CachedWeightedScore",
    "CategoryDetail",
    "CategoryScore",
    "Criterion",
    "EntityScoreDetail",
    "EvaluationPass",
    "RawScore",
    "SubCriterionDetail",
    "WeightedScoreResult",
    "CriteriaPreset",
    "PresetWeight",
    "PresetWeightRow",
    "apply_preset",
    "compare_presets",
    "find_preset",
    "preset_weight_table",
    "RankedEntity",
    "rank_entities",
]
