"""Dataset loader for YAML and JSON scoring datasets."""

from cinescore.loader.loader import DatasetLoader
from cinescore.loader.models import ScoringDataset

__all__ = ["DatasetLoader", "ScoringDataset"]
