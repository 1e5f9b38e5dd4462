"""
Pydantic result models returned by the detector.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from needle_finder.core.types import AcceptedMatch


class Localization(BaseModel):
    """Where the needle appears in the haystack (diagnostic only)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    homography: list[list[float]]
    """3x3 matrix mapping needle pixels to haystack pixels."""

    corners: list[tuple[float, float]]
    """Needle outline in haystack coordinates: top-left, top-right, bottom-right, bottom-left."""

    inliers: int
    """Number of RANSAC inliers."""

    inlier_ratio: float
    """Inliers divided by accepted matches."""


class DetectionResult(BaseModel):
    """Outcome of one detection call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    found: bool
    """True when accepted_matches >= point_threshold."""

    accepted_matches: int
    """Number of matches that survived the ratio test."""

    matches: tuple[AcceptedMatch, ...]
    """Accepted matches in ascending needle index."""

    needle_features: int
    """Keypoints detected in the needle image."""

    haystack_features: int
    """Keypoints detected in the haystack image."""

    point_threshold: float
    """Threshold the count was compared against."""

    localization: Localization | None = None
    """Projected needle outline, when available."""

    processing_time_ms: float = 0.0
    """Wall time of the detection call."""
