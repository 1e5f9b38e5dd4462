"""
Exhaustive k=2 nearest-neighbour matching between descriptor sets.

Distances are computed with numpy in blocks of needle rows. Neighbours are
ordered by distance with ties broken by lowest haystack index.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from needle_finder.core.exceptions import ExtractionError
from needle_finder.core.types import CandidateMatch

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from needle_finder.core.types import DescriptorNorm

DEFAULT_BLOCK_SIZE = 32

# Set bits per byte value
_POPCOUNT = np.array([bin(value).count("1") for value in range(256)], dtype=np.uint8)


def l2_distances(block: NDArray[np.generic], haystack: NDArray[np.generic]) -> NDArray[np.float64]:
    """
    Euclidean distance matrix of shape (len(block), len(haystack)).

    Differences are summed directly rather than through the dot-product
    expansion, so equidistant descriptors produce bit-identical distances.
    Peak memory is len(block) * len(haystack) * d float64 values.
    """
    diff = block.astype(np.float64)[:, None, :] - haystack.astype(np.float64)[None, :, :]
    return np.sqrt(np.square(diff).sum(axis=2))


def hamming_distances(
    block: NDArray[np.generic], haystack: NDArray[np.generic]
) -> NDArray[np.float64]:
    """Bit-count distance matrix for packed binary descriptors."""
    xor = np.bitwise_xor(block[:, None, :], haystack[None, :, :])
    return _POPCOUNT[xor].sum(axis=2, dtype=np.int64).astype(np.float64)


_DISTANCE_FUNCTIONS = {
    "l2": l2_distances,
    "hamming": hamming_distances,
}


def knn_match(
    needle: NDArray[np.generic],
    haystack: NDArray[np.generic],
    norm: DescriptorNorm,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> list[CandidateMatch]:
    """
    Find the two nearest haystack descriptors for every needle descriptor.

    Args:
        needle: Needle descriptors (M, d)
        haystack: Haystack descriptors (N, d)
        norm: "l2" for float descriptors, "hamming" for binary (uint8) ones
        block_size: Needle rows processed per distance-matrix block

    Returns:
        One CandidateMatch per needle descriptor in ascending needle index.
        Empty when either set is empty. With a single haystack descriptor the
        second distance is +inf.

    Raises:
        ExtractionError: If the descriptor spaces are incompatible
    """
    if len(needle) == 0 or len(haystack) == 0:
        return []

    if needle.shape[1] != haystack.shape[1] or needle.dtype != haystack.dtype:
        raise ExtractionError(
            error="descriptor_mismatch",
            message="Needle and haystack descriptors are not in the same space",
            details={
                "needle_shape": list(needle.shape),
                "haystack_shape": list(haystack.shape),
                "needle_dtype": str(needle.dtype),
                "haystack_dtype": str(haystack.dtype),
            },
        )

    distance_fn = _DISTANCE_FUNCTIONS[norm]
    if norm == "hamming" and needle.dtype != np.uint8:
        raise ExtractionError(
            error="descriptor_mismatch",
            message=f"Hamming matching needs uint8 descriptors, got {needle.dtype}",
            details={"norm": norm, "dtype": str(needle.dtype)},
        )

    k = min(2, len(haystack))
    candidates: list[CandidateMatch] = []

    for start in range(0, len(needle), block_size):
        distances = distance_fn(needle[start : start + block_size], haystack)
        # Stable sort keeps the lowest haystack index first among equal distances
        order = np.argsort(distances, axis=1, kind="stable")[:, :k]

        for row, neighbours in enumerate(order):
            first = int(neighbours[0])
            if k == 2:
                second: int | None = int(neighbours[1])
                second_distance = float(distances[row, second])
            else:
                second = None
                second_distance = math.inf

            candidates.append(
                CandidateMatch(
                    needle_index=start + row,
                    haystack_index=first,
                    distance=float(distances[row, first]),
                    second_index=second,
                    second_distance=second_distance,
                )
            )

    return candidates
