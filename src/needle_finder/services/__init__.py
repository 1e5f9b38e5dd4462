"""Pipeline stage components."""

from needle_finder.services.decision import decide
from needle_finder.services.feature_extractor import (
    FeatureExtractor,
    ORBFeatureExtractor,
    SIFTFeatureExtractor,
    create_extractor,
)
from needle_finder.services.feature_matcher import knn_match
from needle_finder.services.localizer import HomographyLocalizer
from needle_finder.services.ratio_filter import DEFAULT_RATIO_THRESHOLD, apply_ratio_test

__all__ = [
    "DEFAULT_RATIO_THRESHOLD",
    "FeatureExtractor",
    "HomographyLocalizer",
    "ORBFeatureExtractor",
    "SIFTFeatureExtractor",
    "apply_ratio_test",
    "create_extractor",
    "decide",
    "knn_match",
]
