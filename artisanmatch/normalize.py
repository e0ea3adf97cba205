import re
import unicodedata
from typing import Optional, Set

from bs4 import BeautifulSoup


MACRON_MAP = str.maketrans({
    "ā": "a", "ē": "e", "ī": "i", "ō": "o", "ū": "u",
    "Ā": "a", "Ē": "e", "Ī": "i", "Ō": "o", "Ū": "u",
    "â": "a", "ê": "e", "î": "i", "ô": "o", "û": "u",
})

# Long vowels romanized by doubling or with a trailing h ("Gotoh", "Oishi").
_LONG_VOWELS = [("ou", "o"), ("oo", "o"), ("uu", "u"), ("oh", "o")]

_CODE_TOKEN = re.compile(r"[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*")
_LIKE_SPECIALS = re.compile(r"([%_\\])")


def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def strip_macrons(s: str) -> str:
    return s.translate(MACRON_MAP)


def normalize_romaji(s: Optional[str]) -> str:
    """
    Diacritic- and hyphenation-insensitive romaji key.

    "Gotō Ichijō", "goto-ichijo" and "GOTOH ICHIJOU" all map to "goto ichijo".
    """
    if not s:
        return ""
    cleaned = strip_macrons(s.lower())
    cleaned = unicodedata.normalize("NFKD", cleaned)
    cleaned = cleaned.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^a-z0-9]+", " ", cleaned)
    words = []
    for word in cleaned.split():
        for long_form, short_form in _LONG_VOWELS:
            word = word.replace(long_form, short_form)
        words.append(word)
    return " ".join(words)


def strip_listing_html(text: str) -> str:
    """Reduce scraped listing HTML (descriptions, setsumei) to plain text."""
    if "<" not in text or ">" not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text(" ", strip=True)


def code_tokens(text: str) -> Set[str]:
    """
    ASCII word tokens, hyphen and underscore runs kept whole, casefolded.

    Codes vary in shape (MAS590, NOBUKUNI1, NS-Sue-Sa), so every token is
    returned and callers keep only those present in the catalog.
    """
    return {m.group(0).casefold() for m in _CODE_TOKEN.finditer(text)}


def trigrams(s: str) -> Set[str]:
    compact = s.replace(" ", "")
    if len(compact) < 3:
        return {compact} if compact else set()
    return {compact[i:i + 3] for i in range(len(compact) - 2)}


def escape_like(query: str) -> str:
    """Escape LIKE metacharacters so %, _ and \\ always match literally."""
    return _LIKE_SPECIALS.sub(r"\\\1", query)
