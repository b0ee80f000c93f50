"""Retry and confidence policy around a single OCR attempt.

An attempt runs normalization, recognition, and cleaning. Attempts repeat
until one reaches the minimum confidence or the retry budget is spent.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from src.errors import ExtractionFailed, PreprocessingFailed
from src.ocr.languages import validate_language
from src.ocr.tesseract_engine import TesseractEngine
from src.ocr.text_cleaner import clean_text
from src.preprocessing.pipeline import ImageNormalizer
from src.utils.config import OCRConfig, RetryConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ExtractionResult:
    """Accepted output of an extraction run."""

    text: str
    confidence: int
    symbol_count: int
    word_count: int
    line_count: int
    paragraph_count: int
    block_count: int
    attempts: int = 1

    @property
    def character_count(self) -> int:
        """Number of characters in the cleaned text."""
        return len(self.text)

    @property
    def text_word_count(self) -> int:
        """Number of whitespace-separated words in the cleaned text."""
        return len(self.text.split())


class ExtractionOrchestrator:
    """Compose normalizer, engine, and cleaner with retries.

    Args:
        normalizer: Image normalizer producing OCR-ready buffers.
        engine: OCR engine.
        retry: Retry policy (max retries, minimum confidence, backoff unit).
        ocr: OCR defaults (language, psm, oem).
        sleep: Function used to wait between failed attempts.
    """

    def __init__(
        self,
        normalizer: ImageNormalizer,
        engine: TesseractEngine,
        retry: RetryConfig | None = None,
        ocr: OCRConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.normalizer = normalizer
        self.engine = engine
        self.retry = retry or RetryConfig()
        self.ocr = ocr or OCRConfig()
        self._sleep = sleep

    def extract(
        self,
        image_path: Path | str,
        language: str | None = None,
        psm: int | None = None,
        oem: int | None = None,
        max_retries: int | None = None,
    ) -> ExtractionResult:
        """Extract text from an image, retrying on errors and low confidence.

        A result is accepted as soon as its confidence reaches the configured
        minimum. On the final attempt any result is accepted, however low its
        confidence. Exceptions before the final attempt trigger a linear
        back-off (``attempt * backoff_seconds``); an exception on the final
        attempt is raised.

        Args:
            image_path: Path to the stored image.
            language: OCR language code. Defaults to the configured language.
            psm: Page segmentation mode override.
            oem: Engine mode override.
            max_retries: Retry budget override; ``0`` means a single attempt.

        Returns:
            The accepted extraction result.

        Raises:
            UnsupportedLanguage: If ``language`` is not supported. Raised
                before any attempt is made.
            ExtractionFailed: If the final attempt raises.
        """
        language = validate_language(language or self.ocr.default_lang)
        retries = self.retry.max_retries if max_retries is None else max_retries
        if retries < 0:
            raise ValueError("max_retries must be >= 0")
        total = retries + 1
        name = Path(image_path).name

        for attempt in range(1, total + 1):
            final = attempt == total
            logger.info("OCR attempt %d/%d for %s", attempt, total, name)
            try:
                result = self._attempt(
                    image_path,
                    language,
                    self.ocr.psm if psm is None else psm,
                    self.ocr.oem if oem is None else oem,
                )
            except (PreprocessingFailed, ExtractionFailed) as exc:
                logger.warning("OCR attempt %d for %s failed: %s", attempt, name, exc)
                if final:
                    if isinstance(exc, ExtractionFailed):
                        raise
                    raise ExtractionFailed(str(exc)) from exc
                self._sleep(attempt * self.retry.backoff_seconds)
                continue

            result.attempts = attempt
            if result.confidence >= self.retry.min_confidence or final:
                logger.info(
                    "Accepted OCR result for %s on attempt %d (confidence %d)",
                    name,
                    attempt,
                    result.confidence,
                )
                return result

            logger.info("Low confidence (%d%%), retrying", result.confidence)

        raise AssertionError("unreachable: final attempt always returns or raises")

    def _attempt(
        self, image_path: Path | str, language: str, psm: int, oem: int
    ) -> ExtractionResult:
        buffer = self.normalizer.normalize(image_path)
        raw = self.engine.extract_text(buffer, lang=language, psm=psm, oem=oem)
        return ExtractionResult(
            text=clean_text(raw.text),
            confidence=raw.confidence,
            symbol_count=raw.symbol_count,
            word_count=raw.word_count,
            line_count=raw.line_count,
            paragraph_count=raw.paragraph_count,
            block_count=raw.block_count,
        )
