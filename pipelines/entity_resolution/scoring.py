"""
Scoring Logic for Artisan Resolution (v1).

Responsibilities:
- Compute a deterministic retrieval score between a listing and one
  candidate artisan.
- Tag the score with the method that produced it, for audit and display.

Non-Responsibilities:
- No database access.
- No candidate selection.
- No threshold decisions.

Invariant:
Given identical inputs, this module must always return
the same score and method. Method precedence is encoded in score bands:
CODE_EXACT > KANJI_EXACT > ROMAJI_EXACT > ROMAJI_FUZZY > DISPLAY_SUBSTRING
> SCHOOL_SUBSTRING, and no bonus moves a score across a band boundary.
"""

from typing import Optional

from artisanmatch.config import (
    FUZZY_MIN_SIMILARITY,
    GENERATION_BONUS,
    SCORE_CODE_EXACT,
    SCORE_DISPLAY_SUBSTRING,
    SCORE_KANJI_EXACT,
    SCORE_ROMAJI_EXACT,
    SCORE_ROMAJI_FUZZY_MAX,
    SCORE_SCHOOL_SUBSTRING,
)
from artisanmatch.models import ArtisanRecord, Candidate

from . import features
from .features import ListingSignals

CODE_EXACT = "CODE_EXACT"
KANJI_EXACT = "KANJI_EXACT"
ROMAJI_EXACT = "ROMAJI_EXACT"
ROMAJI_FUZZY = "ROMAJI_FUZZY"
DISPLAY_SUBSTRING = "DISPLAY_SUBSTRING"
SCHOOL_SUBSTRING = "SCHOOL_SUBSTRING"

NAME_METHODS = {KANJI_EXACT, ROMAJI_EXACT, ROMAJI_FUZZY}
FUZZY_METHODS = {ROMAJI_FUZZY, DISPLAY_SUBSTRING, SCHOOL_SUBSTRING}

# A bonus never lifts a method to the score of the band above it.
_BAND_CEILING = {
    KANJI_EXACT: SCORE_CODE_EXACT - 0.01,
    ROMAJI_EXACT: SCORE_KANJI_EXACT - 0.01,
    ROMAJI_FUZZY: SCORE_ROMAJI_EXACT - 0.01,
}


def _base_score(signals: ListingSignals, record: ArtisanRecord):
    if features.code_match(signals, record):
        return SCORE_CODE_EXACT, CODE_EXACT
    if features.kanji_match(signals, record):
        return SCORE_KANJI_EXACT, KANJI_EXACT
    if features.romaji_exact_match(signals, record):
        return SCORE_ROMAJI_EXACT, ROMAJI_EXACT

    similarity = features.romaji_similarity(signals, record)
    if similarity is not None and similarity >= FUZZY_MIN_SIMILARITY:
        return SCORE_ROMAJI_FUZZY_MAX * similarity, ROMAJI_FUZZY

    if features.display_name_match(signals, record):
        return SCORE_DISPLAY_SUBSTRING, DISPLAY_SUBSTRING
    if features.school_match(signals, record):
        return SCORE_SCHOOL_SUBSTRING, SCHOOL_SUBSTRING
    return None, None


def score_artisan(signals: ListingSignals, record: ArtisanRecord) -> Optional[Candidate]:
    """Return the scored candidate, or None when no method matches."""
    score, method = _base_score(signals, record)
    if score is None:
        return None

    if method in NAME_METHODS and features.generation_match(signals, record):
        score = min(score + GENERATION_BONUS, _BAND_CEILING[method])

    return Candidate(code=record.code, score=round(min(max(score, 0.0), 1.0), 4), method=method)
