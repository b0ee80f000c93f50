"""Tesseract OCR engine wrapper.

Recognizes text in a normalized image buffer and reports confidence
together with structural counts from Tesseract's layout analysis.
"""

import io
import shlex
from dataclasses import dataclass

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.errors import ExtractionFailed
from src.utils.logger import get_logger

from .languages import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES, validate_language

logger = get_logger(__name__)

CHAR_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    ".,!?;:'\"()[]{}/-_@#$%^&*+=|\\<>~`"
)

# Tesseract layout levels reported by image_to_data.
_LEVEL_BLOCK = 2
_LEVEL_PARAGRAPH = 3
_LEVEL_LINE = 4
_LEVEL_WORD = 5


@dataclass
class RawExtraction:
    """Uncleaned output of a single OCR pass."""

    text: str
    confidence: int
    symbol_count: int
    word_count: int
    line_count: int
    paragraph_count: int
    block_count: int


class TesseractEngine:
    """Wrapper around Tesseract OCR for document text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        timeout: Seconds before a single recognition call is aborted.
            ``0`` disables the timeout.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = DEFAULT_LANGUAGE,
        timeout: float = 0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = validate_language(default_lang)
        self.timeout = timeout

    @staticmethod
    def build_config(psm: int, oem: int) -> str:
        """Build the Tesseract command-line configuration string."""
        whitelist = shlex.quote(f"tessedit_char_whitelist={CHAR_WHITELIST}")
        return f"--psm {psm} --oem {oem} -c preserve_interword_spaces=1 -c {whitelist}"

    def extract_text(
        self,
        image: bytes,
        lang: str | None = None,
        psm: int = 6,
        oem: int = 3,
    ) -> RawExtraction:
        """Recognize text in an encoded image.

        Args:
            image: Encoded image bytes, typically from ``ImageNormalizer``.
            lang: OCR language code. Defaults to the engine default.
            psm: Tesseract page segmentation mode.
            oem: Tesseract OCR engine mode.

        Returns:
            Raw text with rounded confidence (0-100) and structural counts.

        Raises:
            UnsupportedLanguage: If ``lang`` is not supported.
            ExtractionFailed: If the backend errors or times out.
        """
        lang = validate_language(lang or self.default_lang)
        config = self.build_config(psm, oem)

        try:
            pil_image = Image.open(io.BytesIO(image))
            text = pytesseract.image_to_string(
                pil_image, lang=lang, config=config, timeout=self.timeout
            )
            data = pytesseract.image_to_data(
                pil_image,
                lang=lang,
                config=config,
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except (UnidentifiedImageError, pytesseract.TesseractError, RuntimeError, OSError) as exc:
            logger.warning("Tesseract call failed: %s", exc)
            raise ExtractionFailed(f"OCR failed: {exc}") from exc

        result = self._summarize(text, data)
        logger.info(
            "OCR extracted %d words in %d lines with confidence %d",
            result.word_count,
            result.line_count,
            result.confidence,
        )
        return result

    @staticmethod
    def _summarize(text: str, data: dict[str, list]) -> RawExtraction:
        levels = [int(level) for level in data.get("level", [])]
        word_confidences: list[float] = []
        symbol_count = 0
        word_count = 0

        for level, word, conf in zip(levels, data.get("text", []), data.get("conf", [])):
            word = str(word).strip()
            if level != _LEVEL_WORD or not word:
                continue
            word_count += 1
            symbol_count += len(word)
            conf = float(conf)
            if conf >= 0:
                word_confidences.append(conf)

        confidence = (
            round(sum(word_confidences) / len(word_confidences))
            if word_confidences
            else 0
        )
        return RawExtraction(
            text=text,
            confidence=max(0, min(100, confidence)),
            symbol_count=symbol_count,
            word_count=word_count,
            line_count=levels.count(_LEVEL_LINE),
            paragraph_count=levels.count(_LEVEL_PARAGRAPH),
            block_count=levels.count(_LEVEL_BLOCK),
        )

    def stats(self) -> dict[str, object]:
        """Describe the engine's language support."""
        return {
            "default_language": self.default_lang,
            "supported_languages": len(SUPPORTED_LANGUAGES),
        }
