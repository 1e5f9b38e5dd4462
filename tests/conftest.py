"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from needle_finder.config import Settings, clear_settings_cache
from needle_finder.detector import get_detector
from needle_finder.logging import LOGGER_NAME
from tests.factories import make_config

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def settings() -> Settings:
    """Provide validated settings for tests."""
    return Settings(**make_config())


@pytest.fixture
def config_yaml() -> str:
    """Complete configuration as YAML text."""
    return """
service:
  name: needle_finder
  version: 0.1.0
detector:
  kind: orb
  max_features: 2000
  orb:
    scale_factor: 1.2
    n_levels: 8
    edge_threshold: 31
    patch_size: 31
  sift:
    n_octave_layers: 3
    edge_threshold: 10.0
    sigma: 1.6
matching:
  ratio_threshold: 0.6
  block_size: 64
localization:
  enabled: true
  reproj_threshold: 5.0
  max_iters: 2000
  confidence: 0.995
  seed: 0
pipeline:
  parallel_extraction: false
logging:
  level: debug
"""


@pytest.fixture
def _isolated_settings() -> Iterator[None]:
    """Clear cached settings and the cached detector around a test."""
    clear_settings_cache()
    get_detector.cache_clear()
    yield
    clear_settings_cache()
    get_detector.cache_clear()


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo setup_logging() so later tests see records via propagation again."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
