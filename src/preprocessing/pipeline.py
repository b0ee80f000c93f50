"""Image normalization pipeline producing OCR-ready buffers.

Runs resize, grayscale, intensity normalization, sharpening, and
binarization in a fixed order and encodes the result losslessly.
"""

from pathlib import Path

import cv2
import numpy as np

from src.errors import PreprocessingFailed
from src.utils.config import NormalizerConfig
from src.utils.logger import get_logger

from .transforms import (
    apply_threshold,
    normalize_intensity,
    resize_to_height,
    sharpen,
    to_grayscale,
)

logger = get_logger(__name__)


class ImageNormalizer:
    """Deterministic image-to-buffer transform for OCR input.

    Args:
        config: Normalizer configuration (target height, sharpen sigma,
            threshold, output format).
    """

    def __init__(self, config: NormalizerConfig | None = None) -> None:
        self.config = config or NormalizerConfig()

    def normalize(self, source: Path | str | bytes) -> bytes:
        """Load an image and return the normalized, encoded buffer.

        Args:
            source: Path to an image file, or raw image bytes.

        Returns:
            Encoded image bytes (PNG by default).

        Raises:
            PreprocessingFailed: If the file is missing or the image cannot
                be decoded, transformed, or encoded.
        """
        image = self._load(source)
        try:
            result = self.transform(image)
            ok, encoded = cv2.imencode(self.config.output_format, result)
        except cv2.error as exc:
            raise PreprocessingFailed(f"Failed to preprocess image for OCR: {exc}") from exc

        if not ok:
            raise PreprocessingFailed("Failed to encode preprocessed image")

        logger.debug("Normalized image to %d bytes", len(encoded))
        return encoded.tobytes()

    def transform(self, image: np.ndarray) -> np.ndarray:
        """Apply the normalization steps to a decoded image.

        Args:
            image: Decoded image array.

        Returns:
            Binary grayscale image.
        """
        result = resize_to_height(image, self.config.target_height)
        result = to_grayscale(result)
        result = normalize_intensity(result)
        result = sharpen(result, sigma=self.config.sharpen_sigma)
        return apply_threshold(result, self.config.threshold)

    def _load(self, source: Path | str | bytes) -> np.ndarray:
        if isinstance(source, bytes):
            data = source
        else:
            path = Path(source)
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise PreprocessingFailed(f"Cannot read image {path}: {exc}") from exc

        if not data:
            raise PreprocessingFailed("Image data is empty")

        try:
            image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error as exc:
            raise PreprocessingFailed(f"Unable to decode image data: {exc}") from exc
        if image is None:
            raise PreprocessingFailed("Unable to decode image data")
        return image
