"""Data models for weighted scoring."""

import json
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Criterion(BaseModel):
    """A node of the two-level criteria tree.

    A criterion without ``parent_id`` is a top-level category; one with a
    ``parent_id`` is a sub-criterion of that category. Weights are not
    range-checked here: a missing or zero weight simply excludes the node.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Criterion identifier")
    name: str | None = Field(None, description="Display name")
    weight: int | None = Field(None, description="Relative weight, 0 excludes")
    parent_id: str | None = Field(None, description="Parent category id")
    description: str | None = Field(None, description="Free-form description")
    position: int | None = Field(None, description="Display position")

    @property
    def is_category(self) -> bool:
        """Whether this is a top-level category."""
        return not self.parent_id


class EvaluationPass(BaseModel):
    """One round of ratings submitted for one entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Evaluation pass identifier")
    entity_id: str | None = Field(None, description="Rated entity (movie, show)")
    user_id: str | None = Field(None, description="Author of the evaluation")
    date: datetime | None = Field(None, description="When the pass was recorded")


class RawScore(BaseModel):
    """Rating of one sub-criterion within one evaluation pass."""

    model_config = ConfigDict(from_attributes=True)

    evaluation_id: str | None = Field(None, description="Evaluation pass id")
    criteria_id: str | None = Field(None, description="Rated sub-criterion id")
    value: float = Field(..., description="Rating, nominally 0-5")


class CategoryScore(BaseModel):
    """Breakdown entry: one top-level category and its rounded value."""

    name: str = Field(..., description="Category name")
    value: float = Field(..., description="Category value, rounded for display")


class WeightedScoreResult(BaseModel):
    """Output of a weighted-score computation.

    ``weighted`` omits entities without a resolvable score; callers must
    read a missing key as "unrated", never as zero. ``breakdown`` has a key
    for every entity that was computed.
    """

    weighted: dict[str, float] = Field(default_factory=dict)
    breakdown: dict[str, list[CategoryScore]] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "weighted": dict(self.weighted),
            "breakdown": {
                entity_id: [entry.model_dump() for entry in entries]
                for entity_id, entries in self.breakdown.items()
            },
        }


class SubCriterionDetail(BaseModel):
    """Per-entity effective value of a sub-criterion."""

    criteria_id: str
    name: str | None = None
    weight: int | None = None
    sample_count: int = Field(0, ge=0, description="Scores collected across passes")
    effective_value: float | None = Field(
        None, description="Unrounded mean of collected scores"
    )


class CategoryDetail(BaseModel):
    """Per-entity value of a top-level category with its sub-criteria."""

    criteria_id: str
    name: str | None = None
    weight: int | None = None
    value: float | None = Field(None, description="Unrounded category value")
    sub_criteria: list[SubCriterionDetail] = Field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.value is not None


class EntityScoreDetail(BaseModel):
    """Full scoring tree for one entity."""

    entity_id: str
    evaluation_count: int = Field(0, ge=0)
    overall: float | None = Field(None, description="Rounded overall score")
    categories: list[CategoryDetail] = Field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.overall is not None


class CachedWeightedScore(BaseModel):
    """Materialized weighted score of one entity."""

    entity_id: str
    score: float
    breakdown: list[CategoryScore] = Field(default_factory=list)
    updated_at: datetime

    @property
    def breakdown_json(self) -> str:
        """Breakdown serialized as stored alongside the score."""
        return json.dumps([entry.model_dump() for entry in self.breakdown])
