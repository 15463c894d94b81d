"""
Image processing utility functions.
"""
import base64
import binascii
import re
from typing import Optional

import cv2
import numpy as np

from roster_verify.core.config import settings
from roster_verify.core.exceptions import ImageTooLargeError, InvalidImageError

_DATA_URL_PATTERN = re.compile(r"^data:image/(?P<subtype>[a-zA-Z0-9.+-]+);base64,")


def decode_data_url(data_url: str, max_bytes: Optional[int] = None) -> bytes:
    """Decode a base64 ``data:image/...`` URL into raw image bytes.

    Args:
        data_url: Encoded image, e.g. ``data:image/jpeg;base64,/9j/4AAQ...``
        max_bytes: Size limit for the decoded payload (defaults to MAX_IMAGE_BYTES)

    Returns:
        bytes: The decoded image payload

    Raises:
        InvalidImageError: If the value is not a supported base64 image data URL
        ImageTooLargeError: If the payload exceeds the size limit
    """
    if not data_url or not isinstance(data_url, str):
        raise InvalidImageError("Invalid image data provided")

    match = _DATA_URL_PATTERN.match(data_url)
    if match is None or match.group("subtype").lower() not in settings.image_formats:
        raise InvalidImageError(
            "Invalid image format. Only JPEG, PNG, and WebP are supported",
            details={"supported_formats": settings.image_formats},
        )

    limit = max_bytes if max_bytes is not None else settings.MAX_IMAGE_BYTES
    payload = data_url[match.end():]

    # base64 is ~4/3 larger than binary; reject before decoding
    if len(payload) * 3 // 4 > limit:
        raise ImageTooLargeError(
            f"Image too large. Maximum size is {limit / (1024 * 1024):g}MB",
            details={"max_bytes": limit},
        )

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid base64 image payload: {str(e)}")


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        InvalidImageError: If the image cannot be decoded
    """
    np_array = np.frombuffer(image_bytes, np.uint8)
    if np_array.size == 0:
        raise InvalidImageError("Empty image payload")

    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise InvalidImageError("Failed to decode image bytes")

    return img
