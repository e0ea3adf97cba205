"""
Automated resolution at ingestion time.

Runs the candidate retriever and confidence classifier for one listing and
stores the outcome, unless a human has already ruled on that listing.
"""

from dataclasses import dataclass
from typing import Optional

from pipelines.entity_resolution.resolver import ArtisanResolver
from pipelines.versioning.write_decider import WriteDecision, WriteAction, decide_automated_write
from storage.repositories.listings import ListingRepository
from storage.repositories.resolutions import ResolutionRepository

from .errors import NotFoundError
from .logger import get_logger
from .models import DomainFilter, Provenance, Resolution, RetrievalResult

logger = get_logger()

SWORD_ITEM_TYPES = {
    "katana", "wakizashi", "tanto", "tachi", "naginata", "yari", "ken",
    "kodachi", "nagamaki", "sword", "blade",
}
TOSOGU_ITEM_TYPES = {
    "tsuba", "menuki", "kozuka", "kogai", "fuchi", "kashira", "fuchi-kashira",
    "fuchi_kashira", "kojiri", "koshirae", "habaki", "tosogu", "fitting",
}


def domain_for_item_type(item_type: Optional[str]) -> DomainFilter:
    """Pick the catalog domain a listing's item type belongs to."""
    if not item_type:
        return DomainFilter.ANY
    key = item_type.strip().lower()
    if key in SWORD_ITEM_TYPES:
        return DomainFilter.SWORD
    if key in TOSOGU_ITEM_TYPES:
        return DomainFilter.TOSOGU
    return DomainFilter.ANY


@dataclass(frozen=True)
class ResolutionOutcome:
    resolution: Optional[Resolution]
    decision: WriteDecision
    result: Optional[RetrievalResult] = None

    @property
    def written(self) -> bool:
        return self.decision.should_write


class ResolutionService:
    def __init__(
        self,
        resolver: ArtisanResolver,
        resolutions: ResolutionRepository,
        listings: ListingRepository,
    ):
        self.resolver = resolver
        self.resolutions = resolutions
        self.listings = listings

    def resolve_listing(
        self,
        listing_id: int,
        text: Optional[str] = None,
        domain_filter=None,
        re_resolve: bool = False,
    ) -> ResolutionOutcome:
        """
        Resolve one listing and persist the result as an automated write.

        Args:
            listing_id: Listing to resolve
            text: Listing text; defaults to the stored title + description
            domain_filter: sword | tosogu | any; defaults from the item type
            re_resolve: Replace a human-verified resolution and clear its
                verification. Never set this from routine ingestion.
        """
        listing = self.listings.get(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")

        existing = self.resolutions.get(listing_id)
        decision = decide_automated_write(existing, re_resolve=re_resolve)
        if not decision.should_write:
            logger.record_skipped_write()
            logger.info(
                "Automated resolution skipped",
                listing_id=listing_id,
                reason=decision.reason,
                artisan_code=existing.artisan_code if existing else None,
            )
            return ResolutionOutcome(resolution=existing, decision=decision)

        domain = DomainFilter.parse(domain_filter) if domain_filter else domain_for_item_type(listing.item_type)
        result = self.resolver.resolve(text if text is not None else listing.text, domain)

        # Automated writes always start unverified; RE_RESOLVE is the only
        # path that discards an existing human verification.
        resolution = Resolution(
            listing_id=listing_id,
            artisan_code=result.artisan_code,
            confidence=result.confidence,
            method=result.method,
            candidates=list(result.candidates),
        )
        operation = "re_resolve" if decision.action is WriteAction.RE_RESOLVE else "auto_resolve"
        saved = self.resolutions.write(resolution, Provenance.AUTOMATED, operation=operation)

        logger.info(
            "Listing resolved",
            listing_id=listing_id,
            artisan_code=saved.artisan_code,
            confidence=saved.confidence.value,
            method=saved.method,
            candidates=len(saved.candidates),
            action=decision.action.value,
        )
        return ResolutionOutcome(resolution=saved, decision=decision, result=result)
