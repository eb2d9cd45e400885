"""cinescore configuration management.

Configuration is loaded from multiple sources with the following priority
(highest to lowest):
1. Explicit overrides (CLI options, keyword arguments)
2. Environment variables (with CINESCORE_ prefix)
3. Configuration files (cinescore.config.yaml, cinescore.config.yml)
4. Default values

Example usage:
    from cinescore.core.settings import get_settings

    settings = get_settings()
    print(settings.scoring.breakdown_limit)

Environment variable support:
    CINESCORE_LOGGING__LEVEL=DEBUG
    CINESCORE_SCORING__BREAKDOWN_LIMIT=5
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ["cinescore.config.yaml", "cinescore.config.yml"]

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Directories searched for a config file, starting with the working directory.
MAX_SEARCH_DEPTH = 10


def _find_config_file(start_dir: Path | None = None) -> Path | None:
    """Return the nearest config file at or above ``start_dir`` (default: cwd)."""
    start = start_dir or Path.cwd()
    for directory in [start, *start.parents][:MAX_SEARCH_DEPTH]:
        for filename in CONFIG_FILE_NAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Read a YAML config file.

    Unreadable, malformed or non-mapping files are logged and read as empty.
    """
    try:
        config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring config file %s: %s", config_path, e)
        return {}
    return config if isinstance(config, dict) else {}


def _validate_level(v: str) -> str:
    upper_v = v.upper()
    if upper_v not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
    return upper_v


class ScoringSettings(BaseSettings):
    """Presentation constants for the weighted-score engine.

    The defaults reproduce the catalog behavior: overall scores with two
    decimals, top-3 category breakdown with one decimal, cached scores with
    one decimal.
    """

    model_config = SettingsConfigDict(env_prefix="CINESCORE_SCORING_", extra="ignore")

    breakdown_limit: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of categories in a breakdown (1-10)",
    )
    overall_precision: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places of the overall weighted score",
    )
    breakdown_precision: int = Field(
        default=1,
        ge=0,
        le=6,
        description="Decimal places of breakdown category values",
    )
    cache_precision: int = Field(
        default=1,
        ge=0,
        le=6,
        description="Decimal places of scores stored in the weighted cache",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CINESCORE_LOGGING_", extra="ignore")

    level: str = Field(
        default="WARNING",
        description="Minimum level of emitted events",
    )
    json_output: bool = Field(
        default=False,
        description="One JSON object per line instead of console output",
    )
    file: str | None = Field(
        default=None,
        description="Also write logs to this file",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return _validate_level(v)


class CineScoreSettings(BaseSettings):
    """Main cinescore configuration settings.

    Example:
        settings = CineScoreSettings(scoring={"breakdown_limit": 5})
        print(settings.scoring.overall_precision)
    """

    model_config = SettingsConfigDict(
        env_prefix="CINESCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def load_from_config_file(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Merge values from a discovered config file under explicit data."""
        if data.get("_skip_file_loading"):
            data.pop("_skip_file_loading", None)
            return data

        config_path = _find_config_file()
        if not config_path:
            return data

        file_config = _load_yaml_config(config_path)
        if not file_config:
            return data

        logger.debug("Loaded configuration from %s", config_path)
        merged = {**file_config, **data}
        for section in ("scoring", "logging"):
            if isinstance(file_config.get(section), dict):
                explicit = data.get(section)
                merged[section] = {
                    **file_config[section],
                    **(explicit if isinstance(explicit, dict) else {}),
                }
        return merged

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return self.model_dump()


def get_settings(
    config_file: Path | None = None,
    **overrides: Any,
) -> CineScoreSettings:
    """Get a settings instance.

    Args:
        config_file: Optional explicit path to a configuration file. When
            given, it replaces config file discovery.
        **overrides: Explicit configuration overrides.

    Returns:
        Configured CineScoreSettings instance.
    """
    if config_file and config_file.exists():
        file_config = _load_yaml_config(config_file)
        merged = {**file_config, **overrides, "_skip_file_loading": True}
        return CineScoreSettings(**merged)

    return CineScoreSettings(**overrides)


@lru_cache
def get_cached_settings() -> CineScoreSettings:
    """Get a cached settings singleton.

    The cache can be cleared with get_cached_settings.cache_clear().
    """
    return get_settings()
