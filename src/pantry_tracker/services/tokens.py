"""Query normalization and tokenization helpers."""

import re
import unicodedata

STOPWORDS = frozenset(
    {
        "de",
        "del",
        "la",
        "el",
        "los",
        "las",
        "y",
        "con",
        "para",
        "por",
        "en",
        "un",
        "una",
        "unos",
        "unas",
        "a",
        "an",
        "the",
        "of",
        "and",
        "with",
        "for",
    }
)

_BARCODE_PATTERN = re.compile(r"\d{8,14}")


def normalize(text: str | None) -> str:
    """Lower-case, strip diacritics and trim a piece of text.

    Examples:
        normalize("  Plátano ") -> "platano"
        normalize("LIMÓN") -> "limon"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.strip()


def tokenize(text: str | None) -> list[str]:
    """Split normalized text into singularized tokens without stopwords."""
    tokens: list[str] = []
    for raw in normalize(text).split():
        token = raw[:-1] if len(raw) > 3 and raw.endswith("s") else raw
        if token not in STOPWORDS:
            tokens.append(token)
    return tokens


def looks_like_barcode(text: str | None) -> bool:
    """Return True for EAN/UPC style numeric codes."""
    return bool(text) and _BARCODE_PATTERN.fullmatch(text.strip()) is not None
