"""YAML/JSON parser with ruamel.yaml for line number tracking."""

from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import MarkedYAMLError, YAMLError

from cinescore.core.exceptions import ParseError


class DatasetParser:
    """Parse dataset documents. JSON documents are read as YAML."""

    def __init__(self):
        self.yaml = YAML(typ="safe")

    def parse_file(self, file_path: str | Path) -> dict[str, Any]:
        """Parse a dataset file.

        Args:
            file_path: Path to a YAML or JSON file

        Returns:
            Parsed document as dictionary

        Raises:
            ParseError: If the file is missing, unreadable or malformed
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with file_path.open("r", encoding="utf-8") as f:
                data = self.yaml.load(f)
        except MarkedYAMLError as e:
            raise self._located_error(e) from e
        except (YAMLError, OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to parse dataset file {file_path}: {e}") from e

        return self._check_document(data, f"dataset file: {file_path}")

    def parse_string(self, content: str) -> dict[str, Any]:
        """Parse a dataset from a string.

        Raises:
            ParseError: If parsing fails
        """
        try:
            data = self.yaml.load(content)
        except MarkedYAMLError as e:
            raise self._located_error(e) from e
        except YAMLError as e:
            raise ParseError(f"Failed to parse dataset content: {e}") from e

        return self._check_document(data, "dataset content")

    @staticmethod
    def _located_error(e: MarkedYAMLError) -> ParseError:
        line = e.problem_mark.line + 1 if e.problem_mark else None
        column = e.problem_mark.column + 1 if e.problem_mark else None
        return ParseError(
            f"YAML parsing error at line {line}, column {column}: {e.problem}"
        )

    @staticmethod
    def _check_document(data: Any, source: str) -> dict[str, Any]:
        if data is None:
            raise ParseError(f"Empty {source}")
        if not isinstance(data, dict):
            raise ParseError(f"Expected a mapping at the top of {source}")
        return data
