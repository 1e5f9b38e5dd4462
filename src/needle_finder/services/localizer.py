"""
RANSAC homography localization of the needle inside the haystack.

Diagnostic only: the result never affects the presence decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np

from needle_finder.logging import LOGGER_NAME, get_logger
from needle_finder.schemas import Localization

if TYPE_CHECKING:
    from collections.abc import Sequence

    from needle_finder.core.types import AcceptedMatch, Keypoint

# Homography estimation needs at least 4 correspondences
MIN_CORRESPONDENCES = 4


def needle_corners(width: int, height: int) -> np.ndarray:
    """Outline of the needle image: top-left, top-right, bottom-right, bottom-left."""
    return np.float32([[0, 0], [width, 0], [width, height], [0, height]]).reshape(-1, 1, 2)


class HomographyLocalizer:
    """Project the needle outline into the haystack using RANSAC homography."""

    def __init__(
        self,
        reproj_threshold: float,
        max_iters: int,
        confidence: float,
        seed: int,
        service_name: str = LOGGER_NAME,
    ) -> None:
        """
        Initialize localizer.

        Args:
            reproj_threshold: Maximum reprojection error (pixels) to count as inlier
            max_iters: Maximum RANSAC iterations
            confidence: Required confidence in result
            seed: OpenCV RNG seed applied before every estimation
            service_name: Logging namespace for estimation warnings
        """
        self.reproj_threshold = reproj_threshold
        self.max_iters = max_iters
        self.confidence = confidence
        self.seed = seed
        self.logger = get_logger("localizer", service_name)

    def locate(
        self,
        needle_keypoints: Sequence[Keypoint],
        haystack_keypoints: Sequence[Keypoint],
        matches: Sequence[AcceptedMatch],
        needle_size: tuple[int, int],
    ) -> Localization | None:
        """
        Estimate where the needle appears in the haystack.

        Args:
            needle_keypoints: Keypoints of the needle image
            haystack_keypoints: Keypoints of the haystack image
            matches: Accepted matches between them
            needle_size: (width, height) of the needle image

        Returns:
            Localization, or None when fewer than 4 matches exist or no
            homography could be estimated.
        """
        total_matches = len(matches)

        if total_matches < MIN_CORRESPONDENCES:
            return None

        src_pts = np.float32(
            [(needle_keypoints[m.needle_index].x, needle_keypoints[m.needle_index].y) for m in matches]
        ).reshape(-1, 1, 2)
        dst_pts = np.float32(
            [
                (haystack_keypoints[m.haystack_index].x, haystack_keypoints[m.haystack_index].y)
                for m in matches
            ]
        ).reshape(-1, 1, 2)

        cv2.setRNGSeed(self.seed)
        try:
            H, mask = cv2.findHomography(
                src_pts,
                dst_pts,
                cv2.RANSAC,
                ransacReprojThreshold=self.reproj_threshold,
                maxIters=self.max_iters,
                confidence=self.confidence,
            )
        except cv2.error as e:
            self.logger.warning(
                "Homography estimation failed",
                extra={"total_matches": total_matches, "error": str(e)},
            )
            return None

        if H is None:
            self.logger.warning(
                "No homography found",
                extra={"total_matches": total_matches},
            )
            return None

        inliers = 0 if mask is None else int(mask.ravel().sum())
        width, height = needle_size
        projected = cv2.perspectiveTransform(needle_corners(width, height), H).reshape(-1, 2)

        return Localization(
            homography=H.tolist(),
            corners=[(float(x), float(y)) for x, y in projected],
            inliers=inliers,
            inlier_ratio=round(inliers / total_matches, 4),
        )
