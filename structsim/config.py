"""
Configuration for the structural similarity detector.

Thresholds, bulk limits and per-language filter overrides are read from a
YAML file, with environment variables taking precedence.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .similarity.bands import FLAG_THRESHOLD, ConfidenceBands
from .similarity.engine import DEFAULT_MAX_BULK_PAIRS, DEFAULT_YIELD_EVERY

DEFAULT_CONFIG_FILE = ".structsim.yml"

_OVERRIDE_KEYS = ("extra_drop", "always_keep")


@dataclass
class DetectorConfig:
    """
    Detector settings.

    ``languages`` maps a language name to optional ``extra_drop`` and
    ``always_keep`` lists that extend that language's filter profile.
    """

    # Default language for inputs that do not name one
    language: str = "python"

    # Pairs scoring at or above this are flagged for review
    flag_threshold: float = FLAG_THRESHOLD

    # Confidence band lower bounds
    bands: ConfidenceBands = field(default_factory=ConfidenceBands)

    # Ceiling on pair comparisons for one bulk request
    max_bulk_pairs: int = DEFAULT_MAX_BULK_PAIRS

    # Pair comparisons between cooperative yields in bulk mode
    yield_every: int = DEFAULT_YIELD_EVERY

    # Per-language filter overrides
    languages: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate configuration parameters."""
        if not (0 <= self.flag_threshold <= 1):
            raise ValueError(
                f"flag_threshold must be between 0 and 1, got {self.flag_threshold}"
            )

        if self.max_bulk_pairs < 0:
            raise ValueError(f"max_bulk_pairs must be >= 0, got {self.max_bulk_pairs}")

        if self.yield_every < 1:
            raise ValueError(f"yield_every must be >= 1, got {self.yield_every}")

        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"unknown log_level {self.log_level!r}")

        for name, overrides in self.languages.items():
            if not isinstance(overrides, dict):
                raise ValueError(f"languages.{name} must be a mapping")
            unknown = set(overrides) - set(_OVERRIDE_KEYS)
            if unknown:
                raise ValueError(
                    f"languages.{name} has unknown keys: {', '.join(sorted(unknown))}"
                )
            for key, values in overrides.items():
                if not isinstance(values, (list, tuple)) or not all(
                    isinstance(value, str) for value in values
                ):
                    raise ValueError(f"languages.{name}.{key} must be a list of node types")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "language": self.language,
            "flag_threshold": self.flag_threshold,
            "bands": {
                "high": self.bands.high,
                "medium": self.bands.medium,
                "low": self.bands.low,
            },
            "max_bulk_pairs": self.max_bulk_pairs,
            "yield_every": self.yield_every,
            "languages": {
                name: {key: list(values) for key, values in overrides.items()}
                for name, overrides in self.languages.items()
            },
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectorConfig":
        """Create from dictionary representation."""
        bands_data = data.get("bands") or {}
        if not isinstance(bands_data, dict):
            raise ValueError("bands must be a mapping of high, medium and low")
        try:
            bands = ConfidenceBands(**{key: float(value) for key, value in bands_data.items()})
            flag_threshold = float(data.get("flag_threshold", FLAG_THRESHOLD))
            max_bulk_pairs = int(data.get("max_bulk_pairs", DEFAULT_MAX_BULK_PAIRS))
            yield_every = int(data.get("yield_every", DEFAULT_YIELD_EVERY))
        except TypeError as e:
            raise ValueError(f"Invalid configuration value: {e}") from e

        return cls(
            language=data.get("language", "python"),
            flag_threshold=flag_threshold,
            bands=bands,
            max_bulk_pairs=max_bulk_pairs,
            yield_every=yield_every,
            languages=data.get("languages") or {},
            log_level=data.get("log_level", "WARNING"),
        )

    def save_to_file(self, file_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load_from_file(cls, file_path: Union[str, Path]) -> "DetectorConfig":
        """Load configuration from YAML file."""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Config in the working directory, else in the home directory."""
        current_dir_config = Path(DEFAULT_CONFIG_FILE)
        if current_dir_config.exists():
            return current_dir_config
        return Path.home() / DEFAULT_CONFIG_FILE

    @classmethod
    def load_or_default(
        cls, config_path: Optional[Union[str, Path]] = None
    ) -> "DetectorConfig":
        """
        Load configuration from file or return default if not found.

        Args:
            config_path: Optional path to configuration file

        Returns:
            DetectorConfig instance
        """
        if config_path:
            config_path = Path(config_path)
            if config_path.exists():
                return cls.load_from_file(config_path)
        else:
            default_path = cls.get_default_config_path()
            if default_path.exists():
                return cls.load_from_file(default_path)

        return cls()


class ConfigManager:
    """
    Loads detector configuration with environment variable support.

    Lookup order: ``STRUCTSIM_CONFIG``, the explicit path, then
    ``.structsim.yml`` in the working or home directory, then defaults.
    """

    ENV_MAPPINGS = {
        "STRUCTSIM_FLAG_THRESHOLD": ("flag_threshold", float),
        "STRUCTSIM_MAX_BULK_PAIRS": ("max_bulk_pairs", int),
        "STRUCTSIM_YIELD_EVERY": ("yield_every", int),
        "STRUCTSIM_LOG_LEVEL": ("log_level", str),
        "STRUCTSIM_LANGUAGE": ("language", str),
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[DetectorConfig] = None

    @property
    def config(self) -> DetectorConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.apply_environment_overrides(self.load_config())
        return self._config

    def load_config(self) -> DetectorConfig:
        """Load configuration from file, without environment overrides."""
        env_config_path = os.getenv("STRUCTSIM_CONFIG")
        if env_config_path:
            config_path = Path(env_config_path)
            if config_path.exists():
                return DetectorConfig.load_from_file(config_path)

        if self.config_path and self.config_path.exists():
            return DetectorConfig.load_from_file(self.config_path)

        return DetectorConfig.load_or_default()

    def save_config(
        self, config: DetectorConfig, path: Optional[Union[str, Path]] = None
    ) -> Path:
        """Save configuration to file and make it current."""
        save_path = (
            Path(path)
            if path
            else (self.config_path or Path(DEFAULT_CONFIG_FILE))
        )
        config.save_to_file(save_path)
        self._config = config
        return save_path

    def get_environment_overrides(self) -> Dict[str, Union[float, int, str]]:
        """Get configuration overrides from environment variables."""
        overrides = {}

        for env_var, (config_key, config_type) in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    overrides[config_key] = config_type(env_value)
                except ValueError as e:
                    raise ValueError(
                        f"Invalid environment variable {env_var}={env_value}: {e}"
                    )

        return overrides

    def apply_environment_overrides(self, config: DetectorConfig) -> DetectorConfig:
        """Apply environment variable overrides to configuration."""
        overrides = self.get_environment_overrides()

        if not overrides:
            return config

        config_dict = config.to_dict()
        config_dict.update(overrides)
        return DetectorConfig.from_dict(config_dict)

    def validate_config(self, config: DetectorConfig) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        try:
            config.__post_init__()
            config.bands.__post_init__()
        except ValueError as e:
            issues.append(str(e))

        if config.flag_threshold < config.bands.low:
            issues.append(
                "flag_threshold is below the low confidence band; "
                "pairs with no confidence would be flagged"
            )

        if config.yield_every > config.max_bulk_pairs > 0:
            issues.append("yield_every exceeds max_bulk_pairs; bulk mode would never yield")

        return issues


def get_config(config_path: Optional[Union[str, Path]] = None) -> DetectorConfig:
    """
    Load configuration with environment overrides applied.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Current configuration
    """
    return ConfigManager(config_path).config
