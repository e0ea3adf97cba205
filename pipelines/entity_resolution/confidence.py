"""
Confidence Classification.

Responsibilities:
- Map (top score, margin to runner-up, retrieval method) to a tier.

Non-Responsibilities:
- No scoring.
- No persistence; a tier never confirms a match, only humans do.

Invariant:
An empty candidate list is always NONE.
"""

from typing import Any, Optional, Sequence

from artisanmatch.config import (
    HIGH_SCORE_THRESHOLD,
    MEDIUM_SCORE_THRESHOLD,
    MIN_SEPARATION,
)
from artisanmatch.models import Candidate, ConfidenceTier

from .scoring import CODE_EXACT, FUZZY_METHODS

# Methods that pin down a single catalog entry on their own.
IDENTIFIER_METHODS = {CODE_EXACT}


def classify_tier(top_score: float, margin: float, method: Optional[str]) -> ConfidenceTier:
    if top_score <= 0:
        return ConfidenceTier.NONE
    if top_score > HIGH_SCORE_THRESHOLD:
        if method in IDENTIFIER_METHODS:
            return ConfidenceTier.HIGH
        if method not in FUZZY_METHODS and margin > MIN_SEPARATION:
            return ConfidenceTier.HIGH
    if top_score > MEDIUM_SCORE_THRESHOLD:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def classify_confidence(candidates: Sequence[Any]) -> ConfidenceTier:
    """
    Tier for an ordered candidate list (Candidate objects or
    {code, score, method} mappings).
    """
    if not candidates:
        return ConfidenceTier.NONE
    ranked = [Candidate.coerce(c) for c in candidates]
    top = ranked[0]
    runner_up = ranked[1].score if len(ranked) > 1 else 0.0
    return classify_tier(top.score, top.score - runner_up, top.method)
