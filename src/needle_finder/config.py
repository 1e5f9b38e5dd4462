"""
Configuration management for needle-finder.

Loads configuration from YAML with ZERO defaults.
Every value must be explicitly specified or loading fails.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigurationError",
    "DetectorConfig",
    "LocalizationConfig",
    "LoggingConfig",
    "MatchingConfig",
    "ORBConfig",
    "PipelineConfig",
    "SIFTConfig",
    "ServiceConfig",
    "Settings",
    "clear_settings_cache",
    "get_config_path",
    "get_settings",
    "load_settings",
    "load_yaml_config",
]

CONFIG_ENV_VAR = "NEEDLE_FINDER_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ServiceConfig(BaseModel):
    """Package identity configuration."""

    model_config = ConfigDict(extra="forbid")

    name: str
    version: str


class ORBConfig(BaseModel):
    """ORB detector configuration. The FAST threshold comes from the caller's sensitivity."""

    model_config = ConfigDict(extra="forbid")

    scale_factor: float = Field(gt=1.0)
    n_levels: int = Field(ge=1)
    edge_threshold: int = Field(ge=0)
    patch_size: int = Field(ge=2)


class SIFTConfig(BaseModel):
    """SIFT detector configuration. The contrast threshold comes from the caller's sensitivity."""

    model_config = ConfigDict(extra="forbid")

    n_octave_layers: int = Field(ge=1)
    edge_threshold: float = Field(gt=0)
    sigma: float = Field(gt=0)


class DetectorConfig(BaseModel):
    """Feature detector selection."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["orb", "sift"]
    max_features: int = Field(ge=1)
    orb: ORBConfig
    sift: SIFTConfig


class MatchingConfig(BaseModel):
    """Candidate matching and ratio test configuration."""

    model_config = ConfigDict(extra="forbid")

    ratio_threshold: float = Field(gt=0)
    block_size: int = Field(ge=1)


class LocalizationConfig(BaseModel):
    """Diagnostic homography configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool
    reproj_threshold: float
    max_iters: int
    confidence: float
    seed: int


class PipelineConfig(BaseModel):
    """Pipeline execution configuration."""

    model_config = ConfigDict(extra="forbid")

    parallel_extraction: bool


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str


class Settings(BaseModel):
    """
    Root configuration container.

    All fields are REQUIRED. No defaults exist.
    Missing fields cause an immediate ConfigurationError.

    Usage:
        from needle_finder.config import get_settings
        settings = get_settings()
    """

    model_config = ConfigDict(extra="forbid")

    service: ServiceConfig
    detector: DetectorConfig
    matching: MatchingConfig
    localization: LocalizationConfig
    pipeline: PipelineConfig
    logging: LoggingConfig


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load and parse YAML configuration file.

    Args:
        config_path: Path to config.yaml

    Returns:
        Parsed configuration dictionary

    Raises:
        ConfigurationError: If file is missing, empty, or invalid
    """
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}\n"
            f"Create the file or set {CONFIG_ENV_VAR} environment variable."
        )

    try:
        with config_path.open() as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if config is None:
        raise ConfigurationError(
            f"Configuration file is empty: {config_path}\n"
            f"All configuration values must be explicitly specified."
        )

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration must be a YAML mapping, got {type(config).__name__}"
        )

    return config


def load_settings(yaml_config: dict[str, Any]) -> Settings:
    """
    Build typed settings from raw YAML config.

    Raises:
        ConfigurationError: If validation fails
    """
    try:
        return Settings(**yaml_config)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}\n"
            f"All configuration values must be explicitly specified.\n"
            f"No default values are allowed."
        ) from e


def get_config_path() -> Path:
    """
    Determine configuration file path.

    Uses NEEDLE_FINDER_CONFIG environment variable if set, otherwise defaults
    to ./config.yaml relative to working directory.
    """
    config_path_str = os.environ.get(CONFIG_ENV_VAR)
    if config_path_str is None:
        config_path_str = "config.yaml"
    return Path(config_path_str)


@lru_cache
def get_settings() -> Settings:
    """Load, validate and cache settings from the configured path."""
    return load_settings(load_yaml_config(get_config_path()))


def clear_settings_cache() -> None:
    """Reset cached settings. Used in testing."""
    get_settings.cache_clear()
