"""Hierarchical weighted-score aggregation.

Criteria form a two-level tree held as a flat list: top-level categories
(no parent) and sub-criteria pointing at a category through ``parent_id``.
Raw scores are given per sub-criterion per evaluation pass.

For each entity:

    effective(sub)  = mean of the sub's scores across the entity's passes
    value(category) = Σ(effective × sub.weight) / Σ(sub.weight)
    overall         = Σ(value × category.weight) / Σ(category.weight)

Each sum runs only over contributors that have data and a positive weight.
A contributor without data is excluded from numerator and denominator alike;
it never counts as a zero. Intermediate values keep full precision, only the
overall score and the breakdown values are rounded.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext

from cinescore.core.logging import get_logger
from cinescore.core.settings import ScoringSettings

from .models import (
    CategoryDetail,
    CategoryScore,
    Criterion,
    EntityScoreDetail,
    EvaluationPass,
    RawScore,
    SubCriterionDetail,
    WeightedScoreResult,
)

logger = get_logger(__name__)


def round_half_up(value: float, places: int) -> float:
    """Round on the decimal representation, halves away from zero.

    ``round_half_up(2.675, 2)`` is 2.68, where ``round()`` gives 2.67.
    Non-finite values are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    exact = Decimal(repr(value))
    quantum = Decimal(1).scaleb(-places)
    # Enough digits for the integer part plus the kept decimals.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def _positive_weight(criterion: Criterion) -> int:
    weight = criterion.weight or 0
    return weight if weight > 0 else 0


@dataclass
class _CriteriaIndex:
    categories: list[Criterion]
    subs_by_parent: dict[str, list[Criterion]] = field(default_factory=dict)

    @classmethod
    def build(cls, criteria: Iterable[Criterion]) -> "_CriteriaIndex":
        categories: list[Criterion] = []
        subs_by_parent: dict[str, list[Criterion]] = {}
        for criterion in criteria:
            if criterion.is_category:
                categories.append(criterion)
            else:
                subs_by_parent.setdefault(criterion.parent_id, []).append(criterion)
        # Subs whose parent is not a category are never looked up.
        return cls(categories=categories, subs_by_parent=subs_by_parent)

    def subs_of(self, category: Criterion) -> list[Criterion]:
        return self.subs_by_parent.get(category.id, [])


def _index_passes(
    evaluations: Iterable[EvaluationPass],
    allowed: set[str] | None,
) -> dict[str, list[str]]:
    """Map entity id to its evaluation pass ids, in input order."""
    passes: dict[str, list[str]] = {}
    for evaluation in evaluations:
        if not evaluation.entity_id:
            continue
        if allowed is not None and evaluation.entity_id not in allowed:
            continue
        passes.setdefault(evaluation.entity_id, []).append(evaluation.id)
    return passes


def _index_scores(scores: Iterable[RawScore]) -> dict[str, dict[str, float]]:
    """Map pass id to {criteria id: score}; the first score per pair wins."""
    by_pass: dict[str, dict[str, float]] = {}
    for score in scores:
        if not score.evaluation_id:
            continue
        by_pass.setdefault(score.evaluation_id, {}).setdefault(
            score.criteria_id or "", float(score.value)
        )
    return by_pass


def _collect(
    sub: Criterion,
    pass_ids: Sequence[str],
    scores_by_pass: dict[str, dict[str, float]],
) -> list[float]:
    collected: list[float] = []
    for pass_id in pass_ids:
        value = scores_by_pass.get(pass_id, {}).get(sub.id)
        if value is not None:
            collected.append(value)
    return collected


class WeightedScoreAggregator:
    """
    Aggregates raw per-criterion ratings into weighted entity scores.

    The aggregator is a calculator, not a validator: dangling parent
    references, missing weights and missing scores resolve to absence in
    the output, and score or weight ranges are not checked. It holds no
    state beyond its settings and may be shared between threads.
    """

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        """
        Initialize the aggregator.

        Args:
            settings: Breakdown size and rounding precision.
                      If None, uses 3 categories, 2 and 1 decimals.
        """
        self.settings = settings or ScoringSettings()

    def _category_value(
        self,
        category: Criterion,
        index: _CriteriaIndex,
        pass_ids: Sequence[str],
        scores_by_pass: dict[str, dict[str, float]],
    ) -> float | None:
        weighted_sum = 0.0
        total_weight = 0
        for sub in index.subs_of(category):
            weight = _positive_weight(sub)
            if not weight:
                continue
            collected = _collect(sub, pass_ids, scores_by_pass)
            if not collected:
                continue
            weighted_sum += (sum(collected) / len(collected)) * weight
            total_weight += weight
        if total_weight == 0:
            return None
        return weighted_sum / total_weight

    def _score_entity(
        self,
        index: _CriteriaIndex,
        pass_ids: Sequence[str],
        scores_by_pass: dict[str, dict[str, float]],
        include_breakdown: bool,
    ) -> tuple[float | None, list[CategoryScore]]:
        weighted_sum = 0.0
        total_weight = 0
        candidates: list[CategoryScore] = []

        for category in index.categories:
            weight = _positive_weight(category)
            if not weight:
                continue
            value = self._category_value(category, index, pass_ids, scores_by_pass)
            if value is None:
                continue
            weighted_sum += value * weight
            total_weight += weight
            if include_breakdown and category.name:
                candidates.append(
                    CategoryScore(
                        name=category.name,
                        value=round_half_up(value, self.settings.breakdown_precision),
                    )
                )

        overall = None
        if total_weight > 0:
            overall = round_half_up(
                weighted_sum / total_weight, self.settings.overall_precision
            )

        # Ties: name, then input order (stable sort).
        candidates.sort(key=lambda entry: (-entry.value, entry.name))
        return overall, candidates[: self.settings.breakdown_limit]

    def compute(
        self,
        criteria: Iterable[Criterion],
        evaluations: Iterable[EvaluationPass],
        scores: Iterable[RawScore],
        entity_ids: Iterable[str] | None = None,
        include_breakdown: bool = True,
    ) -> WeightedScoreResult:
        """
        Compute weighted scores and category breakdowns.

        Args:
            criteria: Flat list of categories and sub-criteria.
            evaluations: Evaluation passes, one per rating round per entity.
            scores: Raw scores per (pass, sub-criterion).
            entity_ids: Restrict computation to these entities. Passes of
                other entities never contribute. Requested entities without
                data still get an (empty) breakdown entry.
            include_breakdown: When False, every breakdown entry is [].

        Returns:
            WeightedScoreResult. ``weighted`` only holds resolved entities.
        """
        requested = list(dict.fromkeys(entity_ids)) if entity_ids is not None else None

        index = _CriteriaIndex.build(criteria)
        passes_by_entity = _index_passes(
            evaluations, set(requested) if requested is not None else None
        )
        scores_by_pass = _index_scores(scores)

        working_set = requested if requested is not None else list(passes_by_entity)

        result = WeightedScoreResult()
        for entity_id in working_set:
            overall, breakdown = self._score_entity(
                index,
                passes_by_entity.get(entity_id, []),
                scores_by_pass,
                include_breakdown,
            )
            if overall is not None:
                result.weighted[entity_id] = overall
            result.breakdown[entity_id] = breakdown

        logger.debug(
            "weighted_scores_computed",
            entities=len(working_set),
            resolved=len(result.weighted),
            include_breakdown=include_breakdown,
        )
        return result

    def explain(
        self,
        entity_id: str,
        criteria: Iterable[Criterion],
        evaluations: Iterable[EvaluationPass],
        scores: Iterable[RawScore],
    ) -> EntityScoreDetail:
        """
        Build the full scoring tree for one entity.

        Every category is listed in input order, resolved or not, with each
        of its sub-criteria, how many scores were collected for it and the
        unrounded effective value. ``overall`` matches ``compute()``.

        Args:
            entity_id: Entity to explain.
            criteria: Flat list of categories and sub-criteria.
            evaluations: Evaluation passes.
            scores: Raw scores.

        Returns:
            EntityScoreDetail for the entity.
        """
        index = _CriteriaIndex.build(criteria)
        pass_ids = _index_passes(evaluations, {entity_id}).get(entity_id, [])
        scores_by_pass = _index_scores(scores)

        categories: list[CategoryDetail] = []
        for category in index.categories:
            subs: list[SubCriterionDetail] = []
            for sub in index.subs_of(category):
                collected = _collect(sub, pass_ids, scores_by_pass)
                subs.append(
                    SubCriterionDetail(
                        criteria_id=sub.id,
                        name=sub.name,
                        weight=sub.weight,
                        sample_count=len(collected),
                        effective_value=(
                            sum(collected) / len(collected) if collected else None
                        ),
                    )
                )
            categories.append(
                CategoryDetail(
                    criteria_id=category.id,
                    name=category.name,
                    weight=category.weight,
                    value=self._category_value(
                        category, index, pass_ids, scores_by_pass
                    ),
                    sub_criteria=subs,
                )
            )

        overall, _ = self._score_entity(
            index, pass_ids, scores_by_pass, include_breakdown=False
        )
        return EntityScoreDetail(
            entity_id=entity_id,
            evaluation_count=len(pass_ids),
            overall=overall,
            categories=categories,
        )


def compute_weighted_scores(
    criteria: Iterable[Criterion],
    evaluations: Iterable[EvaluationPass],
    scores: Iterable[RawScore],
    entity_ids: Iterable[str] | None = None,
    include_breakdown: bool = True,
) -> WeightedScoreResult:
    """Compute weighted scores with default settings.

    See WeightedScoreAggregator.compute.
    """
    return WeightedScoreAggregator().compute(
        criteria,
        evaluations,
        scores,
        entity_ids=entity_ids,
        include_breakdown=include_breakdown,
    )
