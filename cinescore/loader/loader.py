"""Dataset loader: parse, normalize and validate scoring datasets."""

import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cinescore.core.exceptions import DatasetError
from cinescore.core.logging import get_logger
from cinescore.loader.models import ScoringDataset
from cinescore.loader.parser import DatasetParser

logger = get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Row keys used by the review application that differ from model fields
# beyond camelCase.
_RENAMES: dict[str, dict[str, str]] = {
    "evaluations": {"movie_id": "entity_id"},
    "scores": {"score": "value"},
}

_SECTIONS = ("entities", "criteria", "evaluations", "scores", "presets")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def _normalize_record(record: Any, renames: dict[str, str]) -> Any:
    if not isinstance(record, dict):
        return record
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        name = _snake(str(key))
        name = renames.get(name, name)
        if isinstance(value, list):
            value = [_normalize_record(item, {}) for item in value]
        normalized[name] = value
    return normalized


class DatasetLoader:
    """Load and validate scoring datasets from YAML or JSON."""

    def __init__(self) -> None:
        self.parser = DatasetParser()

    def load_file(self, file_path: str | Path) -> ScoringDataset:
        """Load a dataset file.

        Args:
            file_path: Path to the dataset

        Returns:
            Validated ScoringDataset

        Raises:
            ParseError: If parsing fails
            DatasetError: If validation fails
        """
        file_path = Path(file_path)
        data = self.parser.parse_file(file_path)
        dataset = self._process_data(data, str(file_path))
        logger.info(
            "dataset_loaded",
            path=str(file_path),
            criteria=len(dataset.criteria),
            evaluations=len(dataset.evaluations),
            scores=len(dataset.scores),
            presets=len(dataset.presets),
        )
        return dataset

    def load_string(self, content: str) -> ScoringDataset:
        """Load a dataset from a YAML or JSON string.

        Raises:
            ParseError: If parsing fails
            DatasetError: If validation fails
        """
        data = self.parser.parse_string(content)
        return self._process_data(data, None)

    def _process_data(
        self, data: dict[str, Any], file_path: str | None
    ) -> ScoringDataset:
        normalized: dict[str, Any] = {}
        for section in _SECTIONS:
            rows = data.get(section)
            if rows is None:
                continue
            if not isinstance(rows, list):
                raise DatasetError(
                    f"'{section}' must be a list", file_path=file_path
                )
            renames = _RENAMES.get(section, {})
            normalized[section] = [_normalize_record(row, renames) for row in rows]

        try:
            dataset = ScoringDataset(**normalized)
        except PydanticValidationError as e:
            errors = []
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"{loc}: {error['msg']}")
            error_msg = "Model validation failed:\n  " + "\n  ".join(errors)
            raise DatasetError(error_msg, file_path=file_path) from e

        self._validate_semantics(dataset, file_path)
        return dataset

    def _validate_semantics(
        self, dataset: ScoringDataset, file_path: str | None
    ) -> None:
        """Reject duplicate identifiers.

        Dangling parent references and scores for unknown criteria are left
        to the aggregator, which ignores them.
        """
        errors: list[str] = []

        for section, ids in (
            ("criteria", [c.id for c in dataset.criteria]),
            ("evaluations", [e.id for e in dataset.evaluations]),
            ("presets", [p.id for p in dataset.presets]),
        ):
            seen: set[str] = set()
            for i, item_id in enumerate(ids):
                if item_id in seen:
                    errors.append(f"Duplicate id '{item_id}' at {section}[{i}]")
                seen.add(item_id)

        if errors:
            error_msg = "Semantic validation failed:\n  " + "\n  ".join(errors)
            raise DatasetError(error_msg, file_path=file_path)
