"""Unit tests for the ratio test."""

from __future__ import annotations

import math

import numpy as np
import pytest

from needle_finder.core.types import CandidateMatch
from needle_finder.services.feature_matcher import knn_match
from needle_finder.services.ratio_filter import (
    DEFAULT_RATIO_THRESHOLD,
    apply_ratio_test,
    passes_ratio_test,
)


def candidate(distance: float, second_distance: float, needle_index: int = 0) -> CandidateMatch:
    return CandidateMatch(
        needle_index=needle_index,
        haystack_index=0,
        distance=distance,
        second_index=None if math.isinf(second_distance) else 1,
        second_distance=second_distance,
    )


@pytest.mark.unit
class TestPassesRatioTest:
    """Tests for the single-candidate rule."""

    def test_default_ratio(self) -> None:
        assert DEFAULT_RATIO_THRESHOLD == 0.6

    def test_clearly_closer_passes(self) -> None:
        assert passes_ratio_test(candidate(1.0, 10.0), 0.6)

    def test_ambiguous_rejected(self) -> None:
        assert not passes_ratio_test(candidate(9.0, 10.0), 0.6)

    def test_exact_ratio_is_rejected(self) -> None:
        """The comparison is strict: d1 == ratio * d2 does not pass."""
        assert not passes_ratio_test(candidate(1.0, 2.0), 0.5)

    def test_single_neighbour_always_passes(self) -> None:
        """An infinite second distance accepts any finite nearest distance."""
        assert passes_ratio_test(candidate(1e9, math.inf), 0.6)

    def test_equal_zero_distances_rejected(self) -> None:
        """Two exact duplicates in the haystack make the match ambiguous."""
        assert not passes_ratio_test(candidate(0.0, 0.0), 0.6)


@pytest.mark.unit
class TestApplyRatioTest:
    """Tests for apply_ratio_test."""

    @pytest.mark.parametrize(
        ("second_x", "accepted"),
        [
            (1.5, False),  # d1/d2 = 0.667
            (1.6, False),  # d1/d2 = 0.625
            (1.7, True),  # d1/d2 = 0.588
            (4.0, True),  # d1/d2 = 0.25
        ],
    )
    def test_boundary_in_synthetic_descriptor_space(
        self, second_x: float, accepted: bool
    ) -> None:
        """Three points on a line: needle at 0, haystack at 1.0 and second_x."""
        needle = np.array([[0.0]], dtype=np.float32)
        haystack = np.array([[1.0], [second_x]], dtype=np.float32)

        matches = apply_ratio_test(knn_match(needle, haystack, norm="l2"))

        d1, d2 = 1.0, second_x
        assert (d1 < 0.6 * d2) is accepted
        assert (len(matches) == 1) is accepted

    def test_keeps_needle_order(self) -> None:
        """Accepted matches keep ascending needle index."""
        candidates = [
            candidate(1.0, 10.0, needle_index=0),
            candidate(9.0, 10.0, needle_index=1),
            candidate(2.0, 10.0, needle_index=2),
        ]

        matches = apply_ratio_test(candidates)

        assert [m.needle_index for m in matches] == [0, 2]

    def test_copies_distances(self) -> None:
        """Accepted matches carry both distances."""
        (match,) = apply_ratio_test([candidate(1.0, 10.0)])

        assert match.distance == 1.0
        assert match.second_distance == 10.0

    def test_custom_ratio(self) -> None:
        """A looser ratio admits more matches."""
        candidates = [candidate(7.0, 10.0)]

        assert apply_ratio_test(candidates, 0.6) == []
        assert len(apply_ratio_test(candidates, 0.8)) == 1

    def test_empty(self) -> None:
        assert apply_ratio_test([]) == []
