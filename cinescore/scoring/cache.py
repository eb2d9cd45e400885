"""In-memory cache of weighted scores, refreshed by explicit recomputation."""

import threading
from collections.abc import Iterable
from datetime import UTC, datetime

from cinescore.core.logging import get_logger
from cinescore.core.settings import ScoringSettings

from .aggregator import WeightedScoreAggregator, round_half_up
from .models import CachedWeightedScore, Criterion, EvaluationPass, RawScore

logger = get_logger(__name__)


class WeightedScoreCache:
    """
    Materialized weighted scores per entity.

    The cache sits on top of the pure aggregator and is never consulted by
    it. Entries change only through recompute(), invalidate() and clear();
    there is no automatic invalidation when ratings change.
    """

    def __init__(
        self,
        aggregator: WeightedScoreAggregator | None = None,
        settings: ScoringSettings | None = None,
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            aggregator: Aggregator used for recomputation.
            settings: Scoring settings; cache_precision sets the decimals
                      of stored scores. Defaults to the aggregator's settings.
        """
        self.aggregator = aggregator or WeightedScoreAggregator(settings)
        self.settings = settings or self.aggregator.settings
        self._entries: dict[str, CachedWeightedScore] = {}
        self._lock = threading.Lock()

    def recompute(
        self,
        criteria: Iterable[Criterion],
        evaluations: Iterable[EvaluationPass],
        scores: Iterable[RawScore],
        entity_ids: Iterable[str],
    ) -> int:
        """
        Recompute and upsert entries for the given entities.

        Entities that do not resolve to a score keep whatever entry they
        had before.

        Returns:
            Number of entities that resolved to a score.
        """
        result = self.aggregator.compute(
            criteria,
            evaluations,
            scores,
            entity_ids=entity_ids,
            include_breakdown=True,
        )
        now = datetime.now(UTC)

        with self._lock:
            for entity_id, score in result.weighted.items():
                self._entries[entity_id] = CachedWeightedScore(
                    entity_id=entity_id,
                    score=round_half_up(score, self.settings.cache_precision),
                    breakdown=result.breakdown.get(entity_id, []),
                    updated_at=now,
                )
            size = len(self._entries)

        logger.info(
            "weighted_cache_recomputed",
            requested=len(result.breakdown),
            updated=len(result.weighted),
            cached=size,
        )
        return len(result.weighted)

    def get(self, entity_id: str) -> CachedWeightedScore | None:
        with self._lock:
            return self._entries.get(entity_id)

    def scores(self) -> dict[str, float]:
        """Entity id to cached score."""
        with self._lock:
            return {
                entity_id: entry.score for entity_id, entry in self._entries.items()
            }

    def invalidate(self, entity_id: str) -> bool:
        """Drop one entry. Returns whether it existed."""
        with self._lock:
            return self._entries.pop(entity_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._entries
