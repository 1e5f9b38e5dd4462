"""
Data structures passed between pipeline stages.

All structures live for a single detection call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

DescriptorNorm = Literal["l2", "hamming"]


@dataclass(frozen=True)
class Keypoint:
    """A detected location of interest."""

    x: float
    y: float
    size: float
    angle: float
    response: float = 0.0
    octave: int = 0


@dataclass(frozen=True)
class ImageFeatures:
    """
    Keypoints of one image with their index-aligned descriptors.

    Attributes:
        keypoints: Detected keypoints in detector order
        descriptors: Array of shape (n, d), row i describes keypoints[i]
        norm: Distance metric the descriptors are designed for
        image_size: (width, height) of the source image
    """

    keypoints: tuple[Keypoint, ...]
    descriptors: NDArray[np.generic]
    norm: DescriptorNorm
    image_size: tuple[int, int]

    def __len__(self) -> int:
        return len(self.keypoints)


@dataclass(frozen=True)
class CandidateMatch:
    """Nearest and second-nearest haystack descriptors for one needle descriptor."""

    needle_index: int
    haystack_index: int
    distance: float
    second_index: int | None
    second_distance: float

    @property
    def neighbor_count(self) -> int:
        """Number of haystack neighbours found (1 or 2)."""
        return 1 if self.second_index is None else 2


@dataclass(frozen=True)
class AcceptedMatch:
    """A candidate match that survived the ratio test."""

    needle_index: int
    haystack_index: int
    distance: float
    second_distance: float
