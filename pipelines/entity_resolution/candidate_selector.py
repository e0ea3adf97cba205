"""
Candidate Selection Logic.

Responsibilities:
- Select a bounded set of catalog artisans worth scoring for one listing.
- Apply hard filters (domain) and cheap blocking (code tokens, kanji
  substrings, romaji trigram overlap, school/display phrases).

Non-Responsibilities:
- No scoring.
- No similarity computation beyond trigram blocking.
- No resolution decisions.

Invariant:
Candidate selection must never exclude a valid match.
It may include false positives but never false negatives.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from artisanmatch.config import BLOCKING_MIN_TRIGRAM_OVERLAP
from artisanmatch.models import ArtisanRecord, DomainFilter
from artisanmatch.normalize import normalize_romaji, trigrams

from .features import ListingSignals


@dataclass(frozen=True)
class IndexedArtisan:
    record: ArtisanRecord
    name_trigrams: FrozenSet[str]
    phrases: Tuple[str, ...]  # normalized school / display name


@dataclass(frozen=True)
class CandidateIndex:
    entries: Tuple[IndexedArtisan, ...]
    by_code: Dict[str, ArtisanRecord]

    def __len__(self) -> int:
        return len(self.entries)


def build_index(records: Tuple[ArtisanRecord, ...]) -> CandidateIndex:
    entries = []
    for record in records:
        name = record.name_romaji_normalized or normalize_romaji(record.name_romaji)
        phrases = tuple(
            p for p in (normalize_romaji(record.school), normalize_romaji(record.display_name)) if p
        )
        entries.append(IndexedArtisan(record=record, name_trigrams=frozenset(trigrams(name)), phrases=phrases))
    return CandidateIndex(
        entries=tuple(entries),
        by_code={r.code.casefold(): r for r in records},
    )


def _trigram_overlap(entry: IndexedArtisan, signals: ListingSignals) -> float:
    if not entry.name_trigrams:
        return 0.0
    return len(entry.name_trigrams & signals.trigrams) / len(entry.name_trigrams)


def select_candidates(
    index: CandidateIndex,
    signals: ListingSignals,
    domain_filter: DomainFilter,
) -> List[ArtisanRecord]:
    selected: Dict[str, ArtisanRecord] = {}

    for token in signals.code_tokens:
        record = index.by_code.get(token)
        if record is not None and domain_filter.allows(record.domain):
            selected[record.code] = record

    for entry in index.entries:
        record = entry.record
        if record.code in selected or not domain_filter.allows(record.domain):
            continue
        if record.name_kanji and len(record.name_kanji) >= 2 and record.name_kanji in signals.raw:
            selected[record.code] = record
        elif _trigram_overlap(entry, signals) >= BLOCKING_MIN_TRIGRAM_OVERLAP:
            selected[record.code] = record
        elif any(p in signals.normalized for p in entry.phrases):
            selected[record.code] = record

    return list(selected.values())
