"""
Feature Extraction for Artisan Resolution.

Responsibilities:
- Turn raw listing text into matchable signals (code tokens, kanji text,
  normalized romaji n-grams, generation hints).
- Compute individual match features between those signals and one
  ArtisanRecord.

Non-Responsibilities:
- No weighting logic.
- No threshold logic.
- No persistence.

Invariant:
Missing data must never be treated as a mismatch: a record without a kanji
name yields no kanji feature, not a negative one.
"""

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import FrozenSet, Optional, Tuple

from artisanmatch.models import ArtisanRecord
from artisanmatch.normalize import (
    code_tokens,
    normalize_romaji,
    strip_listing_html,
    trigrams,
)

MAX_NAME_WORDS = 4

_ORDINAL = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\s*(?:gen(?:eration)?\.?|generation)\b", re.IGNORECASE)
_JP_GENERATION = re.compile(r"([一二三四五六七八九十]+|初)代")
_ROMAJI_GENERATION = {
    "shodai": 1, "nidai": 2, "sandai": 3, "yondai": 4, "godai": 5,
    "rokudai": 6, "nanadai": 7, "hachidai": 8, "kudai": 9, "judai": 10,
}
_ROMAN = {"i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6, "vii": 7, "viii": 8, "ix": 9, "x": 10}
_KANJI_DIGITS = {"初": 1, "一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6, "七": 7, "八": 8, "九": 9, "十": 10}


@dataclass(frozen=True)
class ListingSignals:
    raw: str
    normalized: str
    words: Tuple[str, ...]
    code_tokens: FrozenSet[str]
    trigrams: FrozenSet[str]
    generation: Optional[int]

    def ngrams(self, size: int) -> FrozenSet[str]:
        if size <= 0 or size > len(self.words):
            return frozenset()
        return frozenset(
            " ".join(self.words[i:i + size]) for i in range(len(self.words) - size + 1)
        )


def _kanji_number(text: str) -> Optional[int]:
    if text == "初":
        return 1
    if text == "十":
        return 10
    if text.startswith("十"):
        return 10 + _KANJI_DIGITS.get(text[1:], 0)
    if text.endswith("十"):
        return _KANJI_DIGITS.get(text[:-1], 0) * 10
    if len(text) == 2 and text[1] in _KANJI_DIGITS and text[0] in _KANJI_DIGITS:
        return _KANJI_DIGITS[text[0]] * 10 + _KANJI_DIGITS[text[1]]
    return _KANJI_DIGITS.get(text)


def parse_generation(value: Optional[str]) -> Optional[int]:
    """Read a generation number out of free text or a catalog generation field."""
    if not value:
        return None
    match = _ORDINAL.search(value)
    if match:
        return int(match.group(1))
    match = _JP_GENERATION.search(value)
    if match:
        return _kanji_number(match.group(1))
    lowered = value.lower()
    for word in re.findall(r"[a-z]+", lowered):
        if word in _ROMAJI_GENERATION:
            return _ROMAJI_GENERATION[word]
    stripped = lowered.strip(" .")
    match = re.match(r"^(\d{1,2})(?:st|nd|rd|th)?$", stripped)
    if match:
        return int(match.group(1))
    if stripped in _ROMAN:
        return _ROMAN[stripped]
    # "Tadayoshi II" style suffix
    tail = re.search(r"\b(i{1,3}|iv|v|vi{0,3}|ix|x)\s*$", lowered)
    if tail and not value.strip().islower():
        return _ROMAN.get(tail.group(1))
    return None


def extract_signals(text: str) -> ListingSignals:
    plain = strip_listing_html(text)
    normalized = normalize_romaji(plain)
    words = tuple(normalized.split())
    return ListingSignals(
        raw=plain,
        normalized=normalized,
        words=words,
        code_tokens=frozenset(code_tokens(plain)),
        trigrams=frozenset(trigrams(normalized)),
        generation=parse_generation(plain),
    )


def _contains_phrase(haystack: str, phrase: str) -> bool:
    if not phrase:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])", haystack) is not None


def code_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    return record.code.casefold() in signals.code_tokens


def kanji_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    """Kanji names are matched as substrings; single characters are too noisy."""
    name = (record.name_kanji or "").strip()
    if len(name) < 2:
        return None
    return name in signals.raw


def romaji_exact_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    """Whole-phrase, case-insensitive match on the romaji name as written."""
    if not record.name_romaji:
        return None
    return _contains_phrase(signals.raw.lower(), record.name_romaji.strip().lower())


def romaji_similarity(signals: ListingSignals, record: ArtisanRecord) -> Optional[float]:
    """
    Best difflib ratio between the normalized romaji name and any run of
    listing words of the same length (one word either side).
    """
    name = record.name_romaji_normalized or normalize_romaji(record.name_romaji)
    if not name:
        return None
    size = len(name.split())
    if size > MAX_NAME_WORDS:
        return None
    if _contains_phrase(signals.normalized, name):
        return 1.0

    best = 0.0
    matcher = SequenceMatcher(None, b=name, autojunk=False)
    for n in {size - 1, size, size + 1}:
        for gram in signals.ngrams(n):
            if abs(len(gram) - len(name)) > max(2, len(name) // 3):
                continue
            matcher.set_seq1(gram)
            if matcher.real_quick_ratio() <= best or matcher.quick_ratio() <= best:
                continue
            best = max(best, matcher.ratio())
    return best


def display_name_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    name = normalize_romaji(record.display_name)
    if not name:
        return None
    return _contains_phrase(signals.normalized, name)


def school_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    school = normalize_romaji(record.school)
    if not school:
        return None
    return _contains_phrase(signals.normalized, school)


def generation_match(signals: ListingSignals, record: ArtisanRecord) -> Optional[bool]:
    if signals.generation is None:
        return None
    generation = parse_generation(record.generation)
    if generation is None:
        return None
    return generation == signals.generation
