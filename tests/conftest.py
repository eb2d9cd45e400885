"""Shared pytest fixtures for cinescore tests."""

from pathlib import Path

import pytest

from cinescore.scoring.models import Criterion, EvaluationPass, RawScore


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def datasets_dir(fixtures_dir: Path) -> Path:
    """Return path to the dataset fixtures directory."""
    return fixtures_dir / "datasets"


@pytest.fixture
def catalog_path(datasets_dir: Path) -> Path:
    """Return path to the sample catalog dataset."""
    return datasets_dir / "catalog.yaml"


@pytest.fixture
def story_craft_criteria() -> list[Criterion]:
    """Story (weight 2) with Plot and Characters, Craft (weight 1) with
    Cinematography."""
    return [
        Criterion(id="A", name="Story", weight=2),
        Criterion(id="B", name="Craft", weight=1),
        Criterion(id="A1", name="Plot", weight=1, parent_id="A"),
        Criterion(id="A2", name="Characters", weight=1, parent_id="A"),
        Criterion(id="B1", name="Cinematography", weight=1, parent_id="B"),
    ]


@pytest.fixture
def two_pass_evaluations() -> list[EvaluationPass]:
    """Two evaluation passes of movie m1."""
    return [
        EvaluationPass(id="e1", entity_id="m1"),
        EvaluationPass(id="e2", entity_id="m1"),
    ]


@pytest.fixture
def two_pass_scores() -> list[RawScore]:
    """Scores of both m1 passes for every sub-criterion."""
    return [
        RawScore(evaluation_id="e1", criteria_id="A1", value=4.5),
        RawScore(evaluation_id="e1", criteria_id="A2", value=4.0),
        RawScore(evaluation_id="e1", criteria_id="B1", value=3.5),
        RawScore(evaluation_id="e2", criteria_id="A1", value=5.0),
        RawScore(evaluation_id="e2", criteria_id="A2", value=4.5),
        RawScore(evaluation_id="e2", criteria_id="B1", value=4.0),
    ]
