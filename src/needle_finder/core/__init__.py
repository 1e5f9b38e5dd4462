"""Core infrastructure components."""

from needle_finder.core.exceptions import ExtractionError, InvalidInputError, NeedleFinderError
from needle_finder.core.types import AcceptedMatch, CandidateMatch, ImageFeatures, Keypoint

__all__ = [
    "AcceptedMatch",
    "CandidateMatch",
    "ExtractionError",
    "ImageFeatures",
    "InvalidInputError",
    "Keypoint",
    "NeedleFinderError",
]
