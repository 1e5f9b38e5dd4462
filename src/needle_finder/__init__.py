"""needle-finder: decide whether one image appears inside another using local features."""

from needle_finder.core.exceptions import ExtractionError, InvalidInputError, NeedleFinderError
from needle_finder.detector import NeedleDetector, detect_object, get_detector
from needle_finder.schemas import DetectionResult, Localization

__version__ = "0.1.0"

__all__ = [
    "DetectionResult",
    "ExtractionError",
    "InvalidInputError",
    "Localization",
    "NeedleDetector",
    "NeedleFinderError",
    "__version__",
    "detect_object",
    "get_detector",
]
