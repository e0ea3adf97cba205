from dataclasses import dataclass, field
from typing import List, Optional

from storage.repositories.catalog import CatalogStore

from .config import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from .errors import CatalogUnavailableError, InvalidInputError
from .logger import get_logger
from .models import ArtisanRecord, DomainFilter
from .schema import validate_query_text

logger = get_logger()

NOT_CONFIGURED_MESSAGE = "Artisan catalog not configured"


@dataclass
class SearchResult:
    results: List[ArtisanRecord] = field(default_factory=list)
    query: str = ""
    total: int = 0
    configured: bool = True
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "results": [r.summary() for r in self.results],
            "query": self.query,
            "total": self.total,
        }
        if not self.configured:
            data["configured"] = False
        if self.message:
            data["message"] = self.message
        return data


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return SEARCH_DEFAULT_LIMIT
    return max(1, min(int(limit), SEARCH_MAX_LIMIT))


def search_catalog(
    catalog: CatalogStore,
    query: str,
    domain_filter="all",
    limit: Optional[int] = SEARCH_DEFAULT_LIMIT,
) -> SearchResult:
    """
    Case-insensitive substring search over the catalog for the correction UI.

    The query is matched literally: "%" and "_" are not wildcards. An
    unprovisioned or unreachable catalog yields an empty, flagged result
    instead of an error so the review page can still render.
    """
    errors = validate_query_text(query, field="q")
    if errors:
        raise InvalidInputError("Query must be at least 2 characters", errors=errors)
    query = query.strip()
    domain = DomainFilter.parse(domain_filter)
    limit = clamp_limit(limit)

    if not catalog.is_available:
        return SearchResult(query=query, configured=False, message=NOT_CONFIGURED_MESSAGE)

    try:
        results = catalog.search(query, domain, limit)
    except CatalogUnavailableError as e:
        logger.warning("Artisan search degraded, catalog unavailable", query=query, error=e.message)
        return SearchResult(query=query, configured=False, message=e.message)

    logger.debug("Artisan search", query=query, domain=domain.value, limit=limit, hits=len(results))
    if not results:
        return SearchResult(query=query, message=f'No artisans found for "{query}"')
    return SearchResult(results=results, query=query, total=len(results))
