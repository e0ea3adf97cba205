"""
Human review operations on artisan resolutions.

Every operation is admin-only, validates before it writes, and lands as a
single commit tagged with human provenance so later automated runs leave it
alone.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from storage.repositories.catalog import CatalogStore
from storage.repositories.listings import ListingRepository
from storage.repositories.resolutions import ResolutionRepository

from .errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
    UnknownArtisanCodeError,
)
from .logger import get_logger
from .models import (
    ADMIN_CORRECTION_METHOD,
    UNKNOWN_ARTISAN,
    ConfidenceTier,
    Provenance,
    Resolution,
    VerificationStatus,
)
from .schema import validate_artisan_code

logger = get_logger()


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as handed over by the identity provider."""

    user_id: str
    is_admin: bool = False


def normalize_correction_code(code: Optional[str]) -> str:
    """Validate a correction target; any casing of "unknown" becomes UNKNOWN."""
    errors = validate_artisan_code(code)
    if errors:
        raise InvalidInputError("; ".join(errors), errors=errors)
    code = code.strip()
    if code.upper() == UNKNOWN_ARTISAN:
        return UNKNOWN_ARTISAN
    return code


class CorrectionService:
    def __init__(
        self,
        catalog: CatalogStore,
        listings: ListingRepository,
        resolutions: ResolutionRepository,
    ):
        self.catalog = catalog
        self.listings = listings
        self.resolutions = resolutions

    @staticmethod
    def _authorize(actor: Optional[Actor]) -> Actor:
        if actor is None:
            raise UnauthorizedError("Authentication required")
        if not actor.is_admin:
            raise ForbiddenError(f"User {actor.user_id} is not allowed to edit resolutions")
        return actor

    def _require_listing(self, listing_id: int) -> None:
        if not self.listings.exists(listing_id):
            raise NotFoundError(f"Listing {listing_id} not found")

    def _require_resolution(self, listing_id: int) -> Resolution:
        self._require_listing(listing_id)
        current = self.resolutions.get(listing_id)
        if current is None:
            raise InvalidInputError(
                f"Listing {listing_id} has no artisan resolution to verify",
                reason="no_resolution",
            )
        return current

    def _write_verification(
        self,
        current: Resolution,
        status: Optional[VerificationStatus],
        actor: Actor,
        operation: str,
        expected_version: Optional[int],
    ) -> Resolution:
        updated = replace(
            current,
            verified=status,
            verified_by=actor.user_id if status is not None else None,
            verified_at=datetime.now() if status is not None else None,
        )
        saved = self.resolutions.write(
            updated,
            Provenance.HUMAN,
            operation=operation,
            actor=actor.user_id,
            expected_version=expected_version,
        )
        logger.record_correction(operation)
        logger.info(
            "Resolution verification changed",
            listing_id=current.listing_id,
            operation=operation,
            verified=status.value if status else None,
            actor=actor.user_id,
        )
        return saved

    def verify(
        self,
        listing_id: int,
        status,
        actor: Optional[Actor],
        expected_version: Optional[int] = None,
    ) -> Resolution:
        """
        Set the verification status, toggling it back to null when the same
        status is submitted twice. "incorrect" only flags the row; it does not
        change the assigned code.
        """
        actor = self._authorize(actor)
        requested = VerificationStatus.parse(status)
        current = self._require_resolution(listing_id)

        new_status = None if requested is not None and current.verified is requested else requested
        return self._write_verification(current, new_status, actor, "verify", expected_version)

    def confirm(self, listing_id: int, actor: Optional[Actor], expected_version: Optional[int] = None) -> Resolution:
        """Mark the current match correct; a no-op when it already is."""
        actor = self._authorize(actor)
        current = self._require_resolution(listing_id)
        if current.verified is VerificationStatus.CORRECT:
            return current
        return self._write_verification(current, VerificationStatus.CORRECT, actor, "confirm", expected_version)

    def reject(self, listing_id: int, actor: Optional[Actor], expected_version: Optional[int] = None) -> Resolution:
        """Flag the current match incorrect; a no-op when it already is."""
        actor = self._authorize(actor)
        current = self._require_resolution(listing_id)
        if current.verified is VerificationStatus.INCORRECT:
            return current
        return self._write_verification(current, VerificationStatus.INCORRECT, actor, "reject", expected_version)

    def fix_artisan(
        self,
        listing_id: int,
        code: str,
        confidence,
        actor: Optional[Actor],
        expected_version: Optional[int] = None,
        operation: str = "fix_artisan",
    ) -> Resolution:
        """
        Assign ``code`` to the listing and mark it verified in one write.

        The code must exist in the catalog unless it is UNKNOWN. When the
        catalog cannot be reached the correction is refused rather than
        stored unvalidated. Prior candidates are kept for audit.
        """
        actor = self._authorize(actor)
        code = normalize_correction_code(code)
        tier = ConfidenceTier.parse(confidence)
        self._require_listing(listing_id)

        if code != UNKNOWN_ARTISAN and self.catalog.get_artisan(code) is None:
            logger.warning("Correction rejected, unknown artisan code", listing_id=listing_id, code=code)
            raise UnknownArtisanCodeError(code)

        current = self.resolutions.get(listing_id)
        corrected = Resolution(
            listing_id=listing_id,
            artisan_code=code,
            confidence=tier,
            method=ADMIN_CORRECTION_METHOD,
            candidates=list(current.candidates) if current else [],
            verified=VerificationStatus.CORRECT,
            verified_by=actor.user_id,
            verified_at=datetime.now(),
        )
        saved = self.resolutions.write(
            corrected,
            Provenance.HUMAN,
            operation=operation,
            actor=actor.user_id,
            expected_version=expected_version,
        )
        logger.record_correction(operation)
        logger.info(
            "Artisan corrected",
            listing_id=listing_id,
            artisan_code=code,
            confidence=tier.value,
            previous=current.artisan_code if current else None,
            actor=actor.user_id,
        )
        return saved

    def reassign(
        self,
        listing_id: int,
        code: str,
        actor: Optional[Actor],
        confidence=ConfidenceTier.HIGH,
        expected_version: Optional[int] = None,
    ) -> Resolution:
        return self.fix_artisan(
            listing_id, code, confidence, actor,
            expected_version=expected_version, operation="reassign",
        )

    def mark_unknown(self, listing_id: int, actor: Optional[Actor], expected_version: Optional[int] = None) -> Resolution:
        """Record that the maker cannot be identified from this listing."""
        return self.fix_artisan(
            listing_id, UNKNOWN_ARTISAN, ConfidenceTier.LOW, actor,
            expected_version=expected_version, operation="mark_unknown",
        )

    def toggle_visibility(self, listing_id: int, actor: Optional[Actor]) -> bool:
        """Flip the listing's hidden flag and return the new value."""
        actor = self._authorize(actor)
        listing = self.listings.get(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        updated = self.listings.set_hidden(listing_id, not listing.is_hidden)
        logger.record_correction("toggle_visibility")
        logger.info("Listing visibility toggled", listing_id=listing_id, hidden=updated.is_hidden, actor=actor.user_id)
        return updated.is_hidden
