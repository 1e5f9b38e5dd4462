"""
Lowe's ratio test over k=2 candidate matches.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from needle_finder.core.types import AcceptedMatch

if TYPE_CHECKING:
    from collections.abc import Iterable

    from needle_finder.core.types import CandidateMatch

DEFAULT_RATIO_THRESHOLD = 0.6


def passes_ratio_test(candidate: CandidateMatch, ratio_threshold: float) -> bool:
    """
    Check a single candidate.

    The nearest neighbour must be strictly closer than ratio_threshold times
    the second-nearest. A candidate with one neighbour has an infinite second
    distance and always passes. CandidateMatch carries one or two neighbours
    by construction, so no neighbour-count check is needed here.
    """
    return candidate.distance < ratio_threshold * candidate.second_distance


def apply_ratio_test(
    candidates: Iterable[CandidateMatch],
    ratio_threshold: float = DEFAULT_RATIO_THRESHOLD,
) -> list[AcceptedMatch]:
    """
    Keep unambiguous matches.

    Args:
        candidates: Candidate matches in ascending needle index
        ratio_threshold: Lowe's ratio threshold (lower = stricter)

    Returns:
        Accepted matches in the same order as the candidates.
    """
    return [
        AcceptedMatch(
            needle_index=candidate.needle_index,
            haystack_index=candidate.haystack_index,
            distance=candidate.distance,
            second_distance=candidate.second_distance,
        )
        for candidate in candidates
        if passes_ratio_test(candidate, ratio_threshold)
    ]
