"""
Needle-in-haystack detection pipeline.

Stages run strictly in order: feature extraction, k=2 candidate matching,
ratio-test filtering, and the count-versus-threshold decision. Localization
runs afterwards as a diagnostic and never changes the decision.
"""

from __future__ import annotations

import math
import numbers
import os
import time
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import TYPE_CHECKING

from needle_finder.config import get_settings
from needle_finder.core.exceptions import InvalidInputError
from needle_finder.logging import get_logger, setup_logging
from needle_finder.schemas import DetectionResult
from needle_finder.services.decision import decide
from needle_finder.services.feature_extractor import create_extractor
from needle_finder.services.feature_matcher import knn_match
from needle_finder.services.localizer import HomographyLocalizer
from needle_finder.services.ratio_filter import apply_ratio_test
from needle_finder.utils.image import ensure_grayscale, load_grayscale

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np
    from numpy.typing import NDArray

    from needle_finder.config import DetectorConfig, Settings
    from needle_finder.core.types import ImageFeatures
    from needle_finder.services.feature_extractor import FeatureExtractor

    ExtractorFactory = Callable[[DetectorConfig, float], FeatureExtractor]


def _require_number(name: str, value: object) -> float:
    """Reject bools, non-numbers and NaN before any pipeline work."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(
            error="invalid_argument",
            message=f"{name} must be a number, got {type(value).__name__}",
            details={"argument": name},
        )
    if math.isnan(value):
        raise InvalidInputError(
            error="invalid_argument",
            message=f"{name} must not be NaN",
            details={"argument": name},
        )
    return float(value)


def _truncate(name: str, value: object) -> int:
    """Narrow a numeric argument to an integer, truncating toward zero."""
    number = _require_number(name, value)
    if math.isinf(number):
        raise InvalidInputError(
            error="invalid_argument",
            message=f"{name} must be finite, got {number}",
            details={"argument": name},
        )
    return int(number)


class NeedleDetector:
    """Decide whether a needle image appears inside a haystack image."""

    def __init__(
        self,
        settings: Settings,
        extractor_factory: ExtractorFactory = create_extractor,
    ) -> None:
        """
        Initialize detector.

        Args:
            settings: Validated configuration
            extractor_factory: Builds a FeatureExtractor from the detector
                configuration and the per-call sensitivity
        """
        self.settings = settings
        self.extractor_factory = extractor_factory
        self.logger = get_logger("detector", settings.service.name)

        self.localizer: HomographyLocalizer | None = None
        if settings.localization.enabled:
            self.localizer = HomographyLocalizer(
                reproj_threshold=settings.localization.reproj_threshold,
                max_iters=settings.localization.max_iters,
                confidence=settings.localization.confidence,
                seed=settings.localization.seed,
                service_name=settings.service.name,
            )

    def detect(
        self,
        needle: NDArray[np.uint8],
        haystack: NDArray[np.uint8],
        sensitivity: float,
        min_distance: float,
        point_threshold: float,
    ) -> DetectionResult:
        """
        Run the full pipeline on two decoded images.

        Args:
            needle: Image being searched for
            haystack: Image being searched in
            sensitivity: Detector response threshold, must be positive
            min_distance: Reserved for geometric verification, accepted but unused
            point_threshold: Minimum accepted matches to report the needle as found

        Returns:
            DetectionResult

        Raises:
            InvalidInputError: Before any stage runs, for unusable input
            ExtractionError: If the feature detector cannot run
        """
        logger = self.logger
        start_time = time.perf_counter()

        sensitivity = _require_number("sensitivity", sensitivity)
        min_distance = _require_number("min_distance", min_distance)
        point_threshold = _require_number("point_threshold", point_threshold)
        if sensitivity <= 0:
            raise InvalidInputError(
                error="invalid_argument",
                message=f"sensitivity must be positive, got {sensitivity}",
                details={"argument": "sensitivity"},
            )

        needle_image = ensure_grayscale(needle, role="needle")
        haystack_image = ensure_grayscale(haystack, role="haystack")

        needle_features, haystack_features = self._extract_features(
            needle_image, haystack_image, sensitivity
        )
        logger.debug(
            "Features extracted",
            extra={
                "needle_features": len(needle_features),
                "haystack_features": len(haystack_features),
            },
        )

        candidates = knn_match(
            needle_features.descriptors,
            haystack_features.descriptors,
            norm=needle_features.norm,
            block_size=self.settings.matching.block_size,
        )
        matches = apply_ratio_test(candidates, self.settings.matching.ratio_threshold)
        found = decide(len(matches), point_threshold)
        logger.debug(
            "Matches filtered",
            extra={"candidates": len(candidates), "accepted_matches": len(matches)},
        )

        localization = None
        if self.localizer is not None:
            localization = self.localizer.locate(
                needle_features.keypoints,
                haystack_features.keypoints,
                matches,
                needle_features.image_size,
            )

        processing_time_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "Detection completed",
            extra={
                "found": found,
                "accepted_matches": len(matches),
                "point_threshold": point_threshold,
                "sensitivity": sensitivity,
                "min_distance": min_distance,
                "localized": localization is not None,
                "processing_time_ms": round(processing_time_ms, 2),
            },
        )

        return DetectionResult(
            found=found,
            accepted_matches=len(matches),
            matches=tuple(matches),
            needle_features=len(needle_features),
            haystack_features=len(haystack_features),
            point_threshold=point_threshold,
            localization=localization,
            processing_time_ms=round(processing_time_ms, 2),
        )

    def detect_paths(
        self,
        needle_path: str | os.PathLike[str],
        haystack_path: str | os.PathLike[str],
        sensitivity: float,
        min_distance: float,
        point_threshold: float,
    ) -> DetectionResult:
        """Load both images as grayscale, then run detect()."""
        needle = load_grayscale(needle_path)
        haystack = load_grayscale(haystack_path)
        return self.detect(needle, haystack, sensitivity, min_distance, point_threshold)

    def _extract_features(
        self,
        needle: NDArray[np.uint8],
        haystack: NDArray[np.uint8],
        sensitivity: float,
    ) -> tuple[ImageFeatures, ImageFeatures]:
        # One extractor per image so threads never share a detector object
        needle_extractor = self.extractor_factory(self.settings.detector, sensitivity)
        haystack_extractor = self.extractor_factory(self.settings.detector, sensitivity)

        if not self.settings.pipeline.parallel_extraction:
            return needle_extractor.extract(needle), haystack_extractor.extract(haystack)

        with ThreadPoolExecutor(max_workers=2) as executor:
            needle_future = executor.submit(needle_extractor.extract, needle)
            haystack_future = executor.submit(haystack_extractor.extract, haystack)
            return needle_future.result(), haystack_future.result()


@lru_cache
def get_detector() -> NeedleDetector:
    """Build the process-wide detector from get_settings(), configuring logging once."""
    settings = get_settings()
    setup_logging(settings.logging.level, settings.service.name)
    logger = get_logger("detector", settings.service.name)

    logger.info(
        "Detector configuration",
        extra={
            "service": settings.service.name,
            "version": settings.service.version,
            "detector": settings.detector.kind,
            "max_features": settings.detector.max_features,
            "ratio_threshold": settings.matching.ratio_threshold,
            "localization": settings.localization.enabled,
            "parallel_extraction": settings.pipeline.parallel_extraction,
        },
    )

    return NeedleDetector(settings)


def detect_object(
    needle_path: str | os.PathLike[str],
    haystack_path: str | os.PathLike[str],
    sensitivity: float,
    min_distance: float,
    point_threshold: float,
) -> bool:
    """
    Return whether the needle image file appears in the haystack image file.

    Numeric parameters are truncated to integers before detection, so only
    the ORB detector is accepted here. Use NeedleDetector.detect_paths() to
    keep full precision or to run SIFT.

    Raises:
        InvalidInputError: For wrong argument types, unreadable images or a
            configured detector other than ORB
        ExtractionError: If the feature detector cannot run
    """
    if not isinstance(needle_path, (str, os.PathLike)) or not isinstance(
        haystack_path, (str, os.PathLike)
    ):
        raise InvalidInputError(
            error="invalid_argument",
            message="Arguments are not of the correct type.",
            details={
                "needle_path": type(needle_path).__name__,
                "haystack_path": type(haystack_path).__name__,
            },
        )

    sensitivity = _truncate("sensitivity", sensitivity)
    min_distance = _truncate("min_distance", min_distance)
    point_threshold = _truncate("point_threshold", point_threshold)

    detector = get_detector()
    if detector.settings.detector.kind != "orb":
        # Integer sensitivities only have meaning as a FAST threshold
        raise InvalidInputError(
            error="unsupported_detector",
            message=(
                "detect_object() needs the orb detector, configured kind is "
                f"'{detector.settings.detector.kind}'. Use NeedleDetector.detect_paths() "
                "for a fractional sensitivity."
            ),
            details={"detector": detector.settings.detector.kind},
        )

    result = detector.detect_paths(
        needle_path, haystack_path, sensitivity, min_distance, point_threshold
    )
    return result.found
