"""Post-processing for raw OCR text.

Repairs common Tesseract artifacts: collapsed or runaway whitespace,
run-together words, digits glued to letters, and stray glyphs.
"""

import re

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^\w\s.,!?;:()'\"\[\]{}\-_@#$%^&*+=|\\<>~`]")
_LOWER_UPPER = re.compile(r"([a-z])([A-Z])")
_DIGIT_LETTER = re.compile(r"(\d)([A-Za-z])")
_LETTER_DIGIT = re.compile(r"([A-Za-z])(\d)")
_SENTENCE_END = re.compile(r"([.!?])\s*([A-Z])")
_CLAUSE_PUNCT = re.compile(r"([,;:])\s*")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def clean_text(text: str | None) -> str:
    """Clean raw OCR output.

    Stray characters are stripped before the spacing repairs run, so a
    removed glyph can never glue two letters into a new boundary. This
    makes the function idempotent: ``clean_text(clean_text(t)) ==
    clean_text(t)``.

    Args:
        text: Raw OCR text; ``None`` and empty strings yield ``""``.

    Returns:
        Cleaned single-line text.
    """
    if not text:
        return ""

    result = _collapse(text)
    result = _DISALLOWED.sub("", result)
    result = _LOWER_UPPER.sub(r"\1 \2", result)
    result = _DIGIT_LETTER.sub(r"\1 \2", result)
    result = _LETTER_DIGIT.sub(r"\1 \2", result)
    result = _SENTENCE_END.sub(r"\1 \2", result)
    result = _CLAUSE_PUNCT.sub(r"\1 ", result)
    return _collapse(result)
