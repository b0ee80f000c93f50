"""Pure image transforms used to prepare scans for OCR.

Each function takes a numpy image and returns a new array; inputs are
never modified in place.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def resize_to_height(image: np.ndarray, target_height: int) -> np.ndarray:
    """Scale an image to a fixed height, preserving aspect ratio.

    Images already at or below the target height are returned unchanged,
    so the output is never enlarged beyond the source resolution.

    Args:
        image: Input image (any channel count).
        target_height: Desired height in pixels.

    Returns:
        Resized image.
    """
    h, w = image.shape[:2]
    if h <= target_height:
        return image

    scale = target_height / h
    new_width = max(1, round(w * scale))
    result = cv2.resize(
        image, (new_width, target_height), interpolation=cv2.INTER_LANCZOS4
    )
    logger.debug("Resized %dx%d -> %dx%d", w, h, new_width, target_height)
    return result


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an image to single-channel grayscale.

    Args:
        image: Grayscale, BGR, or BGRA image.

    Returns:
        Grayscale image.
    """
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.shape[2] == 1:
        return image[:, :, 0]
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def normalize_intensity(image: np.ndarray) -> np.ndarray:
    """Stretch pixel intensities to span the full 0-255 range.

    Also converts deeper bit depths (e.g. 16-bit TIFF scans) to 8-bit.

    Args:
        image: Grayscale image.

    Returns:
        8-bit grayscale image with min-max normalized intensities.
    """
    return cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX, dtype=cv2.CV_8U)


def sharpen(image: np.ndarray, sigma: float = 1.0, amount: float = 1.0) -> np.ndarray:
    """Sharpen an image with an unsharp mask.

    Args:
        image: Grayscale image.
        sigma: Standard deviation of the Gaussian blur used for the mask.
        amount: Strength of the sharpening.

    Returns:
        Sharpened image.
    """
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    return cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)


def apply_threshold(image: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Binarize an image with a fixed global threshold.

    Pixels at or above ``threshold`` become white, the rest black.

    Args:
        image: 8-bit grayscale image.
        threshold: Cut-off intensity.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    _, binary = cv2.threshold(image, threshold - 1, 255, cv2.THRESH_BINARY)
    return binary
