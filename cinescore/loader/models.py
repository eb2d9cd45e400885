"""Dataset model: the rows a scoring run operates on."""

from pydantic import BaseModel, Field

from cinescore.scoring.models import Criterion, EvaluationPass, RawScore
from cinescore.scoring.presets import CriteriaPreset


class ScoringDataset(BaseModel):
    """Criteria, evaluation passes, raw scores and presets."""

    entities: list[str] = Field(
        default_factory=list,
        description="Catalog of entity ids, rated or not",
    )
    criteria: list[Criterion] = Field(default_factory=list)
    evaluations: list[EvaluationPass] = Field(default_factory=list)
    scores: list[RawScore] = Field(default_factory=list)
    presets: list[CriteriaPreset] = Field(default_factory=list)

    def entity_ids(self) -> list[str]:
        """Catalog entities followed by any other evaluated entity, deduplicated."""
        evaluated = (e.entity_id for e in self.evaluations if e.entity_id)
        return list(dict.fromkeys([*self.entities, *evaluated]))
