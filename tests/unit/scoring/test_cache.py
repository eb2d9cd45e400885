"""Unit tests for WeightedScoreCache."""

import threading

from cinescore.core.settings import ScoringSettings
from cinescore.scoring.aggregator import WeightedScoreAggregator
from cinescore.scoring.cache import WeightedScoreCache
from cinescore.scoring.models import CategoryScore, EvaluationPass, RawScore


class TestRecompute:
    """Tests for cache recomputation."""

    def test_stores_rounded_score_and_breakdown(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test entries hold the score at cache precision."""
        cache = WeightedScoreCache()
        updated = cache.recompute(
            story_craft_criteria, two_pass_evaluations, two_pass_scores, ["m1"]
        )

        assert updated == 1
        entry = cache.get("m1")
        assert entry is not None
        assert entry.score == 4.3
        assert entry.breakdown == [
            CategoryScore(name="Story", value=4.5),
            CategoryScore(name="Craft", value=3.8),
        ]
        assert entry.updated_at.tzinfo is not None

    def test_unrated_entity_not_stored(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test entities without a score get no entry."""
        cache = WeightedScoreCache()
        updated = cache.recompute(
            story_craft_criteria,
            two_pass_evaluations,
            two_pass_scores,
            ["m1", "m9"],
        )
        assert updated == 1
        assert "m9" not in cache
        assert len(cache) == 1

    def test_unrated_entity_keeps_previous_entry(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test a recompute without data leaves an existing entry in place."""
        cache = WeightedScoreCache()
        cache.recompute(
            story_craft_criteria, two_pass_evaluations, two_pass_scores, ["m1"]
        )
        updated = cache.recompute(story_craft_criteria, [], [], ["m1"])
        assert updated == 0
        assert cache.scores() == {"m1": 4.3}

    def test_recompute_replaces_entry(self, story_craft_criteria) -> None:
        """Test new ratings overwrite the cached score."""
        cache = WeightedScoreCache()
        evaluations = [EvaluationPass(id="e1", entity_id="m1")]
        cache.recompute(
            story_craft_criteria,
            evaluations,
            [RawScore(evaluation_id="e1", criteria_id="A1", value=2.0)],
            ["m1"],
        )
        cache.recompute(
            story_craft_criteria,
            evaluations,
            [RawScore(evaluation_id="e1", criteria_id="A1", value=5.0)],
            ["m1"],
        )
        assert cache.scores() == {"m1": 5.0}

    def test_only_requested_entities_touched(self, story_craft_criteria) -> None:
        """Test entities outside the request are neither added nor changed."""
        evaluations = [
            EvaluationPass(id="e1", entity_id="m1"),
            EvaluationPass(id="e2", entity_id="m2"),
        ]
        scores = [
            RawScore(evaluation_id="e1", criteria_id="A1", value=3.0),
            RawScore(evaluation_id="e2", criteria_id="A1", value=4.0),
        ]
        cache = WeightedScoreCache()
        cache.recompute(story_craft_criteria, evaluations, scores, ["m2"])
        assert cache.scores() == {"m2": 4.0}

    def test_cache_precision_setting(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test the stored precision comes from settings."""
        cache = WeightedScoreCache(settings=ScoringSettings(cache_precision=2))
        cache.recompute(
            story_craft_criteria, two_pass_evaluations, two_pass_scores, ["m1"]
        )
        assert cache.scores() == {"m1": 4.25}

    def test_uses_given_aggregator(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test the aggregator's settings drive the breakdown."""
        aggregator = WeightedScoreAggregator(ScoringSettings(breakdown_limit=1))
        cache = WeightedScoreCache(aggregator)
        cache.recompute(
            story_craft_criteria, two_pass_evaluations, two_pass_scores, ["m1"]
        )
        entry = cache.get("m1")
        assert entry is not None
        assert [e.name for e in entry.breakdown] == ["Story"]


class TestInvalidation:
    """Tests for explicit invalidation."""

    def _filled(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> WeightedScoreCache:
        cache = WeightedScoreCache()
        cache.recompute(
            story_craft_criteria, two_pass_evaluations, two_pass_scores, ["m1"]
        )
        return cache

    def test_invalidate(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test invalidate drops the entry and reports whether it existed."""
        cache = self._filled(
            story_craft_criteria, two_pass_evaluations, two_pass_scores
        )
        assert cache.invalidate("m1") is True
        assert cache.invalidate("m1") is False
        assert cache.get("m1") is None

    def test_clear(
        self, story_craft_criteria, two_pass_evaluations, two_pass_scores
    ) -> None:
        """Test clear empties the cache."""
        cache = self._filled(
            story_craft_criteria, two_pass_evaluations, two_pass_scores
        )
        cache.clear()
        assert len(cache) == 0
        assert cache.scores() == {}


class TestConcurrency:
    """Tests for concurrent use."""

    def test_parallel_recompute(self, story_craft_criteria) -> None:
        """Test concurrent recomputes of different entities all land."""
        evaluations = [
            EvaluationPass(id=f"e{i}", entity_id=f"m{i}") for i in range(20)
        ]
        scores = [
            RawScore(evaluation_id=f"e{i}", criteria_id="A1", value=i % 5)
            for i in range(20)
        ]
        cache = WeightedScoreCache()

        def worker(entity_id: str) -> None:
            cache.recompute(story_craft_criteria, evaluations, scores, [entity_id])

        threads = [
            threading.Thread(target=worker, args=(f"m{i}",)) for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 20
        assert cache.scores()["m7"] == 2.0
