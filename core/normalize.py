"""Text normalization and song identity keys.

One normalization is shared by catalogue sorting, substring search and the
artwork identity key, so that search and deduplication agree on what counts
as "the same text".
"""

import re
import unicodedata

# =============================================================================
# Normalization
# =============================================================================

APOSTROPHE_VARIANTS = "’‘ʼ′´`"
"""Typographic apostrophes folded into a plain "'"."""

MOJIBAKE_APOSTROPHE = "â€™"
"""UTF-8 right single quote decoded as cp1252 ("â€™"), common in scraped catalogues."""

_APOSTROPHE_RE = re.compile(f"{re.escape(MOJIBAKE_APOSTROPHE)}|[{re.escape(APOSTROPHE_VARIANTS)}]")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove diacritical marks from text, preserving base characters.

    For example: "Björk" -> "Bjork", "Zoé" -> "Zoe".
    """
    nfkd = unicodedata.normalize("NFKD", text)
    return "".join(c for c in nfkd if not unicodedata.combining(c))


def normalize(text: object) -> str:
    """Canonicalize free text into its comparison form.

    Lower-cases, folds apostrophe variants and diacritics, spells out "&" as
    "and", replaces anything outside ``[a-z0-9\\s]`` with a space, collapses
    whitespace and trims. ``None`` normalizes to the empty string.

    Folding diacritics before the character filter deliberately widens the
    plain ASCII filter: "Björk" normalizes to "bjork" rather than "bj rk", so
    an unaccented query finds accented titles and "Björk" and "Bjork" share
    one identity key.

    Examples:
        >>> normalize("  Don’t Stop Me Now ")
        'don t stop me now'
        >>> normalize("Simon & Garfunkel")
        'simon and garfunkel'
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = _APOSTROPHE_RE.sub("'", text)
    text = text.replace("&", "and")
    text = strip_diacritics(text).lower()
    text = _DISALLOWED_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


# =============================================================================
# Identity Keys
# =============================================================================

KEY_DELIMITER = "|"
"""Separator between the title and artist halves; never produced by normalize()."""


def song_key(title: object, artist: object) -> str:
    """Derive the deduplication key for a song.

    Songs with equal normalized title and artist share a key, and therefore
    share one artwork lookup and one cache entry.
    """
    return f"{normalize(title)}{KEY_DELIMITER}{normalize(artist)}"
