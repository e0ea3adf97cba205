"""
Full Re-resolution Backfill.

Responsibilities:
- Replay automated resolution over every stored listing.
- Replay listings in the order given; callers pass them by id (iter_listings
  does) so two runs over the same catalog agree.

Non-Responsibilities:
- No scraping or listing ingestion.
- No scoring logic; each listing goes through ResolutionService.

Invariant:
Human-touched resolutions survive a rebuild unless re_resolve is set.
A rebuild over an unchanged catalog is idempotent.
"""

from collections import Counter
from itertools import islice
from typing import Dict, Iterable, Optional

from artisanmatch.errors import InvalidInputError
from artisanmatch.logger import get_logger
from artisanmatch.resolution import ResolutionService
from storage.repositories.listings import ListingText

logger = get_logger()


def rebuild_resolutions(
    listings: Iterable[ListingText],
    service: ResolutionService,
    re_resolve: bool = False,
    limit: Optional[int] = None,
) -> Dict[str, int]:
    """
    Listings are consumed lazily, so a batched iterator is never
    materialized and at most `limit` are read.

    Returns counts keyed by write action (insert, replace, re_resolve,
    skip_human) plus "invalid" for listings whose text is too short to resolve.
    """
    if limit is not None:
        limit = max(limit, 0)
    counts: Counter = Counter()
    processed = 0
    for listing in islice(listings, limit):
        processed += 1
        try:
            outcome = service.resolve_listing(listing.id, re_resolve=re_resolve)
        except InvalidInputError as e:
            counts["invalid"] += 1
            logger.warning("Listing skipped during rebuild", listing_id=listing.id, error=e.message)
            continue
        counts[outcome.decision.action.value] += 1

    summary = dict(counts)
    summary["processed"] = processed
    logger.info("Resolution rebuild complete", re_resolve=re_resolve, **summary)
    return summary
