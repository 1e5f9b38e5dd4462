"""Unit tests for RANSAC homography localization."""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from needle_finder.core.types import AcceptedMatch, Keypoint
from needle_finder.services.localizer import HomographyLocalizer, needle_corners


@pytest.fixture
def localizer() -> HomographyLocalizer:
    """Provide a configured localizer for testing."""
    return HomographyLocalizer(
        reproj_threshold=5.0,
        max_iters=2000,
        confidence=0.995,
        seed=0,
    )


def translated_correspondences(
    count: int, dx: float, dy: float
) -> tuple[list[Keypoint], list[Keypoint], list[AcceptedMatch]]:
    """Needle keypoints on a grid and the same points shifted by (dx, dy)."""
    rng = np.random.default_rng(11)
    points = rng.uniform(5.0, 95.0, (count, 2))
    needle = [Keypoint(x=float(x), y=float(y), size=8.0, angle=0.0) for x, y in points]
    haystack = [Keypoint(x=float(x + dx), y=float(y + dy), size=8.0, angle=0.0) for x, y in points]
    matches = [AcceptedMatch(i, i, 0.0, 100.0) for i in range(count)]
    return needle, haystack, matches


@pytest.mark.unit
class TestNeedleCorners:
    def test_corner_order(self) -> None:
        corners = needle_corners(40, 30).reshape(-1, 2)

        np.testing.assert_array_equal(corners, [[0, 0], [40, 0], [40, 30], [0, 30]])


@pytest.mark.unit
class TestHomographyLocalizer:
    """Tests for HomographyLocalizer."""

    def test_no_matches_returns_none(self, localizer: HomographyLocalizer) -> None:
        assert localizer.locate([], [], [], (100, 100)) is None

    def test_fewer_than_four_matches_returns_none(self, localizer: HomographyLocalizer) -> None:
        needle, haystack, matches = translated_correspondences(3, 10.0, 10.0)

        assert localizer.locate(needle, haystack, matches, (100, 100)) is None

    def test_translation_projects_corners(self, localizer: HomographyLocalizer) -> None:
        """A pure shift moves the needle outline by the same offset."""
        needle, haystack, matches = translated_correspondences(20, 50.0, 30.0)

        result = localizer.locate(needle, haystack, matches, (100, 80))

        assert result is not None
        np.testing.assert_allclose(
            result.corners,
            [(50.0, 30.0), (150.0, 30.0), (150.0, 110.0), (50.0, 110.0)],
            atol=0.5,
        )
        assert result.inliers == 20
        assert result.inlier_ratio == pytest.approx(1.0)
        assert len(result.homography) == 3

    def test_repeated_calls_are_identical(self, localizer: HomographyLocalizer) -> None:
        """Seeding makes RANSAC reproducible even with outliers."""
        needle, haystack, matches = translated_correspondences(30, 20.0, 20.0)
        haystack[:5] = [Keypoint(x=0.0, y=float(i * 40), size=8.0, angle=0.0) for i in range(5)]

        first = localizer.locate(needle, haystack, matches, (100, 100))
        second = localizer.locate(needle, haystack, matches, (100, 100))

        assert first == second

    def test_estimation_error_returns_none(
        self, localizer: HomographyLocalizer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An OpenCV failure is logged and reported as no localization."""

        def failing_find_homography(*args: object, **kwargs: object) -> None:
            raise cv2.error("findHomography failed")

        monkeypatch.setattr(cv2, "findHomography", failing_find_homography)
        needle, haystack, matches = translated_correspondences(10, 5.0, 5.0)

        assert localizer.locate(needle, haystack, matches, (100, 100)) is None

    def test_missing_homography_returns_none(
        self, localizer: HomographyLocalizer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """findHomography returning no matrix yields no localization."""
        monkeypatch.setattr(cv2, "findHomography", lambda *args, **kwargs: (None, None))
        needle, haystack, matches = translated_correspondences(10, 5.0, 5.0)

        assert localizer.locate(needle, haystack, matches, (100, 100)) is None
