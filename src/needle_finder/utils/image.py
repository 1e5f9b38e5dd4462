"""Image loading and validation utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import cv2
import numpy as np

from needle_finder.core.exceptions import InvalidInputError

if TYPE_CHECKING:
    from numpy.typing import NDArray


def load_grayscale(path: str | os.PathLike[str]) -> NDArray[np.uint8]:
    """
    Read an image file as a single-channel 8-bit array.

    Args:
        path: Path to an image file in any format OpenCV can decode

    Returns:
        Array of shape (height, width)

    Raises:
        InvalidInputError: If the file is missing, unreadable, or not an image
    """
    image_path = Path(path)
    if not image_path.is_file():
        raise InvalidInputError(
            error="image_not_found",
            message=f"Image file not found: {image_path}",
            details={"path": str(image_path)},
        )

    try:
        data = image_path.read_bytes()
    except OSError as e:
        raise InvalidInputError(
            error="image_not_found",
            message=f"Image file could not be read: {image_path}: {e}",
            details={"path": str(image_path)},
        ) from e

    try:
        return decode_grayscale(data)
    except InvalidInputError as e:
        e.details["path"] = str(image_path)
        raise


def decode_grayscale(data: bytes) -> NDArray[np.uint8]:
    """
    Decode encoded image bytes (PNG, JPEG, ...) to grayscale.

    Raises:
        InvalidInputError: If the bytes cannot be decoded
    """
    nparr = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_GRAYSCALE) if nparr.size else None

    if image is None:
        raise InvalidInputError(
            error="invalid_image",
            message="Failed to decode image data",
            details={"num_bytes": len(data)},
        )

    return ensure_grayscale(image)


def ensure_grayscale(image: object, role: str = "image") -> NDArray[np.uint8]:
    """
    Validate a decoded image and return it as a 2-D uint8 array.

    Three- and four-channel arrays are treated as BGR(A) and converted.

    Args:
        image: Candidate image array
        role: Name used in error messages ("needle", "haystack")

    Raises:
        InvalidInputError: If the value is not a non-empty 8-bit image
    """
    if not isinstance(image, np.ndarray):
        raise InvalidInputError(
            error="invalid_argument",
            message=f"The {role} must be a numpy array, got {type(image).__name__}",
            details={"role": role},
        )

    if image.size == 0:
        raise InvalidInputError(
            error="empty_image",
            message=f"The {role} image is empty",
            details={"role": role, "shape": list(image.shape)},
        )

    if image.dtype != np.uint8:
        raise InvalidInputError(
            error="invalid_image",
            message=f"The {role} image must have dtype uint8, got {image.dtype}",
            details={"role": role, "dtype": str(image.dtype)},
        )

    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)

    raise InvalidInputError(
        error="invalid_image",
        message=f"The {role} image has unsupported shape {image.shape}",
        details={"role": role, "shape": list(image.shape)},
    )
