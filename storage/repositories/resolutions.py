"""
Resolutions Repository.

Responsibilities:
- Read and persist the one resolution row per listing.
- Stamp every write with its provenance and bump the row version.
- Append the matching audit event in the same transaction.

Non-Responsibilities:
- No decision about whether an automated write may replace a human one
  (see pipelines.versioning.write_decider).
- No catalog validation.

Invariant:
A write either lands completely (row + event) or not at all.
"""

from datetime import datetime
from typing import Callable, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from artisanmatch.database import ListingArtisanResolution, ResolutionEvent
from artisanmatch.errors import ConflictError
from artisanmatch.models import (
    Candidate,
    ConfidenceTier,
    Provenance,
    Resolution,
    VerificationStatus,
)


def _to_resolution(row: ListingArtisanResolution) -> Resolution:
    return Resolution(
        listing_id=row.listing_id,
        artisan_code=row.artisan_code,
        confidence=ConfidenceTier(row.confidence),
        method=row.method,
        candidates=[Candidate.coerce(c) for c in (row.candidates or [])],
        verified=VerificationStatus(row.verified) if row.verified else None,
        verified_by=row.verified_by,
        verified_at=row.verified_at,
        provenance=Provenance(row.provenance),
        version=row.version,
        resolved_at=row.resolved_at,
        updated_at=row.updated_at,
    )


class ResolutionRepository:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, listing_id: int) -> Optional[Resolution]:
        with self.session_factory() as session:
            row = session.get(ListingArtisanResolution, listing_id)
            return _to_resolution(row) if row is not None else None

    def write(
        self,
        resolution: Resolution,
        provenance: Provenance,
        operation: str,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Resolution:
        """
        Persist ``resolution`` as the listing's current row.

        When ``expected_version`` is given the write only lands if the stored
        version still matches; otherwise the last write wins.
        """
        now = datetime.now()
        with self.session_factory() as session:
            row = session.get(ListingArtisanResolution, resolution.listing_id)
            before = _to_resolution(row).to_dict() if row is not None else None
            current_version = row.version if row is not None else 0

            if expected_version is not None and expected_version != current_version:
                raise ConflictError(
                    f"Resolution for listing {resolution.listing_id} changed "
                    f"(expected version {expected_version}, found {current_version})"
                )

            if row is None:
                row = ListingArtisanResolution(listing_id=resolution.listing_id, resolved_at=now)
                session.add(row)

            row.artisan_code = resolution.artisan_code
            row.confidence = resolution.confidence.value
            row.method = resolution.method
            row.candidates = [c.to_dict() for c in resolution.candidates]
            row.verified = resolution.verified.value if resolution.verified else None
            row.verified_by = resolution.verified_by
            row.verified_at = resolution.verified_at
            row.provenance = provenance.value
            row.version = current_version + 1
            row.updated_at = now
            if provenance is Provenance.AUTOMATED:
                row.resolved_at = now

            saved = _to_resolution(row)
            session.add(ResolutionEvent(
                listing_id=resolution.listing_id,
                operation=operation,
                provenance=provenance.value,
                actor=actor,
                before=before,
                after=saved.to_dict(),
                created_at=now,
            ))
            try:
                session.commit()
            except Exception:
                session.rollback()
                raise
            return saved

    def events(self, listing_id: int) -> List[dict]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(ResolutionEvent)
                .where(ResolutionEvent.listing_id == listing_id)
                .order_by(ResolutionEvent.id)
            ).all()
            return [
                {
                    "operation": r.operation,
                    "provenance": r.provenance,
                    "actor": r.actor,
                    "before": r.before,
                    "after": r.after,
                    "created_at": r.created_at,
                }
                for r in rows
            ]

    def iter_all(self) -> Iterator[Resolution]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(ListingArtisanResolution).order_by(ListingArtisanResolution.listing_id)
            ).all()
            resolutions = [_to_resolution(r) for r in rows]
        yield from resolutions
