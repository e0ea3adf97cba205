"""
Artisan Resolution Orchestrator.

Responsibilities:
- Coordinate candidate selection.
- Invoke scoring logic and order the results.
- Apply decision thresholds.
- Return an explainable resolution result.

Non-Responsibilities:
- No direct database access; the catalog arrives as a CatalogStore.
- No feature computation.
- No mutation of persistent state.

Invariant:
This module must be deterministic given the same inputs and catalog
snapshot. Candidates are ordered by score descending, then individual
makers before school codes, then notability descending (nulls last),
then code.
"""

from typing import List, Optional, Tuple

from artisanmatch.config import MAX_CANDIDATES
from artisanmatch.errors import InvalidInputError
from artisanmatch.logger import get_logger
from artisanmatch.models import (
    ArtisanRecord,
    Candidate,
    DomainFilter,
    RetrievalResult,
)
from artisanmatch.schema import validate_query_text
from storage.repositories.catalog import CatalogStore

from .candidate_selector import CandidateIndex, build_index, select_candidates
from .confidence import classify_confidence
from .features import extract_signals
from .scoring import score_artisan

logger = get_logger()


def _order_key(item: Tuple[Candidate, ArtisanRecord]):
    candidate, record = item
    return (
        -candidate.score,
        record.is_school_code,
        record.notability is None,
        -(record.notability or 0.0),
        candidate.code,
    )


class ArtisanResolver:
    """Candidate retriever bound to one catalog; reuses its index per snapshot."""

    def __init__(self, catalog: CatalogStore, limit: int = MAX_CANDIDATES):
        self.catalog = catalog
        self.limit = limit
        self._index: Optional[CandidateIndex] = None
        self._indexed_snapshot = None

    def _current_index(self) -> CandidateIndex:
        snapshot = self.catalog.all_artisans()
        index = self._index
        if index is None or self._indexed_snapshot is not snapshot:
            index = build_index(snapshot)
            self._index = index
            self._indexed_snapshot = snapshot
        return index

    def retrieve(self, text: str, domain_filter=DomainFilter.ANY, limit: Optional[int] = None) -> List[Candidate]:
        errors = validate_query_text(text, field="text")
        if errors:
            raise InvalidInputError("; ".join(errors), errors=errors)
        domain = DomainFilter.parse(domain_filter)
        limit = self.limit if limit is None else limit

        signals = extract_signals(text)
        pool = select_candidates(self._current_index(), signals, domain)

        scored = []
        for record in pool:
            candidate = score_artisan(signals, record)
            if candidate is not None:
                scored.append((candidate, record))
        scored.sort(key=_order_key)

        logger.debug(
            "Candidates retrieved",
            pool=len(pool),
            matched=len(scored),
            domain=domain.value,
            top=scored[0][0].to_dict() if scored else None,
        )
        return [candidate for candidate, _ in scored[:limit]]

    def resolve(self, text: str, domain_filter=DomainFilter.ANY) -> RetrievalResult:
        candidates = self.retrieve(text, domain_filter)
        tier = classify_confidence(candidates)
        explanation = tuple(
            f"{c.code}: {c.method} ({c.score:.2f})" for c in candidates[:3]
        )
        logger.record_resolution(tier.value)
        return RetrievalResult(candidates=tuple(candidates), confidence=tier, explanation=explanation)


def retrieve_candidates(
    catalog: CatalogStore,
    text: str,
    domain_filter=DomainFilter.ANY,
    limit: int = MAX_CANDIDATES,
) -> List[Candidate]:
    """One-shot retrieval; long-lived callers should keep an ArtisanResolver."""
    return ArtisanResolver(catalog, limit=limit).retrieve(text, domain_filter)
