"""
Local feature extraction from grayscale images.

Detectors are pluggable behind the FeatureExtractor protocol. Both shipped
implementations are deterministic for a fixed image and sensitivity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np

from needle_finder.core.exceptions import ExtractionError
from needle_finder.core.types import ImageFeatures, Keypoint

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from needle_finder.config import DetectorConfig
    from needle_finder.core.types import DescriptorNorm

ORB_DESCRIPTOR_SIZE = 32
SIFT_DESCRIPTOR_SIZE = 128


class FeatureExtractor(Protocol):
    """Produces keypoints and aligned descriptors for one image."""

    def extract(self, image: NDArray[np.uint8]) -> ImageFeatures: ...


class _OpenCVFeatureExtractor:
    """Shared detectAndCompute handling for OpenCV Feature2D detectors."""

    norm: DescriptorNorm
    descriptor_size: int
    descriptor_dtype: type[np.generic]
    # Images with a shorter side are reported as featureless without running the detector
    min_image_side = 1

    def __init__(self, detector: cv2.Feature2D) -> None:
        self.detector = detector

    def extract(self, image: NDArray[np.uint8]) -> ImageFeatures:
        """
        Detect keypoints and compute descriptors.

        Args:
            image: Grayscale uint8 image of shape (height, width)

        Returns:
            ImageFeatures, possibly with zero keypoints

        Raises:
            ExtractionError: If the OpenCV detector fails
        """
        height, width = image.shape[:2]
        if min(height, width) < self.min_image_side:
            return self._empty(width, height)

        try:
            cv_keypoints, descriptors = self.detector.detectAndCompute(image, None)
        except cv2.error as e:
            raise ExtractionError(
                error="extraction_failed",
                message=f"Feature detector failed: {e}",
                details={"detector": type(self).__name__, "image_size": [width, height]},
            ) from e

        if descriptors is None or len(cv_keypoints) == 0:
            return self._empty(width, height)

        return ImageFeatures(
            keypoints=keypoints_from_cv(cv_keypoints),
            descriptors=descriptors,
            norm=self.norm,
            image_size=(width, height),
        )

    def _empty(self, width: int, height: int) -> ImageFeatures:
        return ImageFeatures(
            keypoints=(),
            descriptors=np.empty((0, self.descriptor_size), dtype=self.descriptor_dtype),
            norm=self.norm,
            image_size=(width, height),
        )


class ORBFeatureExtractor(_OpenCVFeatureExtractor):
    """Extract ORB features (binary descriptors, Hamming distance)."""

    norm: DescriptorNorm = "hamming"
    descriptor_size = ORB_DESCRIPTOR_SIZE
    descriptor_dtype = np.uint8
    # The ORB pyramid cannot downscale a one-pixel side
    min_image_side = 2

    def __init__(
        self,
        max_features: int,
        scale_factor: float,
        n_levels: int,
        edge_threshold: int,
        patch_size: int,
        fast_threshold: int,
    ) -> None:
        """
        Initialize ORB feature extractor.

        Args:
            max_features: Maximum number of features to retain
            scale_factor: Pyramid decimation ratio (> 1.0)
            n_levels: Number of pyramid levels
            edge_threshold: Border pixels excluded from detection
            patch_size: Size of patch used for descriptor
            fast_threshold: FAST corner detection threshold
        """
        super().__init__(
            cv2.ORB_create(
                nfeatures=max_features,
                scaleFactor=scale_factor,
                nlevels=n_levels,
                edgeThreshold=edge_threshold,
                patchSize=patch_size,
                fastThreshold=fast_threshold,
            )
        )


class SIFTFeatureExtractor(_OpenCVFeatureExtractor):
    """Extract SIFT features (float descriptors, Euclidean distance)."""

    norm: DescriptorNorm = "l2"
    descriptor_size = SIFT_DESCRIPTOR_SIZE
    descriptor_dtype = np.float32

    def __init__(
        self,
        max_features: int,
        n_octave_layers: int,
        contrast_threshold: float,
        edge_threshold: float,
        sigma: float,
    ) -> None:
        """
        Initialize SIFT feature extractor.

        Args:
            max_features: Maximum number of features to retain
            n_octave_layers: Layers per octave in the scale space
            contrast_threshold: Minimum DoG contrast for a keypoint
            edge_threshold: Edge response rejection threshold
            sigma: Gaussian sigma of the first octave
        """
        super().__init__(
            cv2.SIFT_create(
                nfeatures=max_features,
                nOctaveLayers=n_octave_layers,
                contrastThreshold=contrast_threshold,
                edgeThreshold=edge_threshold,
                sigma=sigma,
            )
        )


def create_extractor(config: DetectorConfig, sensitivity: float) -> FeatureExtractor:
    """
    Build the configured extractor for one detection call.

    The sensitivity is the detector's response threshold: the FAST threshold
    for ORB (truncated to an integer) or the contrast threshold for SIFT.
    """
    if config.kind == "orb":
        return ORBFeatureExtractor(
            max_features=config.max_features,
            scale_factor=config.orb.scale_factor,
            n_levels=config.orb.n_levels,
            edge_threshold=config.orb.edge_threshold,
            patch_size=config.orb.patch_size,
            fast_threshold=int(sensitivity),
        )

    return SIFTFeatureExtractor(
        max_features=config.max_features,
        n_octave_layers=config.sift.n_octave_layers,
        contrast_threshold=float(sensitivity),
        edge_threshold=config.sift.edge_threshold,
        sigma=config.sift.sigma,
    )


def keypoints_from_cv(cv_keypoints: Sequence[cv2.KeyPoint]) -> tuple[Keypoint, ...]:
    """Convert OpenCV keypoints to immutable Keypoint records."""
    return tuple(
        Keypoint(
            x=float(kp.pt[0]),
            y=float(kp.pt[1]),
            size=float(kp.size),
            angle=float(kp.angle),
            response=float(kp.response),
            octave=int(kp.octave),
        )
        for kp in cv_keypoints
    )
