"""Ordering entities by weighted score."""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field


class RankedEntity(BaseModel):
    """An entity's position in a ranking."""

    entity_id: str
    score: float | None = Field(None, description="Weighted score, None if unrated")
    rank: int = Field(..., ge=1, description="1-based position")


def rank_entities(
    weighted: Mapping[str, float],
    entity_ids: Iterable[str] | None = None,
    min_score: float | None = None,
    descending: bool = True,
) -> list[RankedEntity]:
    """
    Rank entities by weighted score.

    Unrated entities (no key in ``weighted``) always come after rated ones,
    whatever the direction. Ties are ordered by entity id.

    Args:
        weighted: Entity id to weighted score.
        entity_ids: Entities to rank. Defaults to the keys of ``weighted``.
        min_score: Keep only rated entities scoring at least this much.
        descending: Highest score first when True.

    Returns:
        Ranked entities with 1-based ranks.
    """
    candidates = list(dict.fromkeys(entity_ids if entity_ids is not None else weighted))

    rated = [
        (entity_id, weighted[entity_id])
        for entity_id in candidates
        if entity_id in weighted
    ]
    unrated = sorted(entity_id for entity_id in candidates if entity_id not in weighted)

    if min_score is not None:
        rated = [(entity_id, score) for entity_id, score in rated if score >= min_score]
        unrated = []

    sign = -1 if descending else 1
    rated.sort(key=lambda item: (sign * item[1], item[0]))

    ordered: list[tuple[str, float | None]] = [*rated, *((e, None) for e in unrated)]
    return [
        RankedEntity(entity_id=entity_id, score=score, rank=position)
        for position, (entity_id, score) in enumerate(ordered, start=1)
    ]
