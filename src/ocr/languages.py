"""Supported Tesseract language packs."""

from src.errors import UnsupportedLanguage

DEFAULT_LANGUAGE = "eng"

SUPPORTED_LANGUAGES: dict[str, str] = {
    "eng": "English",
    "spa": "Spanish",
    "fra": "French",
    "deu": "German",
    "ita": "Italian",
    "por": "Portuguese",
    "rus": "Russian",
    "chi_sim": "Chinese (Simplified)",
    "chi_tra": "Chinese (Traditional)",
    "jpn": "Japanese",
    "kor": "Korean",
    "ara": "Arabic",
    "hin": "Hindi",
}


def is_language_supported(language: str) -> bool:
    """Return whether a Tesseract language code is supported."""
    return language in SUPPORTED_LANGUAGES


def validate_language(language: str) -> str:
    """Return the language code unchanged, or raise if it is unsupported.

    Args:
        language: Tesseract language code, e.g. ``"eng"``.

    Returns:
        The validated language code.

    Raises:
        UnsupportedLanguage: If the code is not in ``SUPPORTED_LANGUAGES``.
    """
    if not is_language_supported(language):
        raise UnsupportedLanguage(language)
    return language
