"""
Catalog Repository.

Responsibilities:
- Typed, read-only access to ArtisanRecords keyed by code.
- Literal substring search for the lookup service.
- Lineage queries (students, same-school artisans) for detail views.

Non-Responsibilities:
- No scoring.
- No confidence decisions.
- No writes; the catalog is curated elsewhere.

Invariant:
Callers receive either ArtisanRecords or CatalogUnavailableError,
never a silently empty answer for an unprovisioned catalog.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Tuple

import requests
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from artisanmatch.config import (
    REMOTE_CATALOG_PAGE_SIZE,
    REMOTE_CATALOG_TIMEOUT,
    Settings,
)
from artisanmatch.database import Artisan, make_session_factory
from artisanmatch.display import get_display_name
from artisanmatch.errors import CatalogUnavailableError
from artisanmatch.logger import get_logger
from artisanmatch.models import ArtisanRecord, Domain, DomainFilter
from artisanmatch.normalize import escape_like, normalize_romaji
from artisanmatch.retry import (
    CircuitBreaker,
    RetryError,
    exponential_backoff,
    should_retry_http_status,
)

logger = get_logger()


def rank_key(record: ArtisanRecord):
    """Notability descending with unranked artisans last, then name, then code."""
    return (
        record.notability is None,
        -(record.notability or 0.0),
        (record.name_romaji or "").lower(),
        record.code,
    )


def record_from_row(row) -> ArtisanRecord:
    """Map an ORM row or a PostgREST dict onto an ArtisanRecord."""
    get = row.get if isinstance(row, dict) else (lambda key, default=None: getattr(row, key, default))
    code = get("code")
    name_romaji = get("name_romaji")
    school = get("school")
    notability = get("notability")
    if notability is None:
        notability = get("elite_factor")
    return ArtisanRecord(
        code=code,
        name_romaji=name_romaji,
        name_kanji=get("name_kanji"),
        school=school,
        province=get("province"),
        era=get("era"),
        generation=get("generation"),
        notability=float(notability) if notability is not None else None,
        domain=Domain(get("domain") or "sword"),
        is_school_code=bool(get("is_school_code", False)),
        period=get("period"),
        teacher=get("teacher"),
        name_romaji_normalized=get("name_romaji_normalized") or normalize_romaji(name_romaji) or None,
        display_name=get("display_name") or get_display_name(name_romaji, school, code) or None,
        juyo_count=get("juyo_count") or 0,
        tokuju_count=get("tokuju_count") or 0,
        total_items=get("total_items") or 0,
    )


def _normalized_query(query: str) -> str:
    """Romaji key for the query, empty when it holds %, _ or a backslash that must match literally."""
    if any(ch in query for ch in "%_\\"):
        return ""
    return normalize_romaji(query)


def _matches_literally(record: ArtisanRecord, needle: str, normalized_needle: str) -> bool:
    fields = (
        record.code,
        record.name_romaji,
        record.name_kanji,
        record.school,
        record.display_name,
    )
    if any(f and needle in f.casefold() for f in fields):
        return True
    return bool(
        normalized_needle
        and record.name_romaji_normalized
        and normalized_needle in record.name_romaji_normalized
    )


class CatalogStore(ABC):
    """Read-mostly repository of artisan records."""

    name = "catalog"
    is_available = True

    def __init__(self):
        self._snapshot: Optional[Tuple[ArtisanRecord, ...]] = None

    @abstractmethod
    def get_artisan(self, code: str) -> Optional[ArtisanRecord]:
        ...

    @abstractmethod
    def _load_all(self) -> Tuple[ArtisanRecord, ...]:
        ...

    def exists(self, code: str) -> bool:
        return self.get_artisan(code) is not None

    def all_artisans(self) -> Tuple[ArtisanRecord, ...]:
        """Cached snapshot of the whole catalog, loaded on first use."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self._load_all()
            self._snapshot = snapshot
            logger.debug("Catalog snapshot loaded", store=self.name, artisans=len(snapshot))
        return snapshot

    def refresh(self) -> None:
        self._snapshot = None

    def search(self, query: str, domain_filter: DomainFilter, limit: int) -> List[ArtisanRecord]:
        needle = query.casefold()
        normalized_needle = _normalized_query(query)
        hits = [
            r for r in self.all_artisans()
            if domain_filter.allows(r.domain) and _matches_literally(r, needle, normalized_needle)
        ]
        hits.sort(key=rank_key)
        return hits[:limit]

    def find_students(self, code: str, name_romaji: Optional[str], limit: int) -> List[ArtisanRecord]:
        refs = {code}
        if name_romaji:
            refs.add(name_romaji)
        students = [r for r in self.all_artisans() if r.teacher in refs and r.code != code]
        students.sort(key=rank_key)
        return students[:limit]

    def find_related(self, record: ArtisanRecord, limit: int) -> List[ArtisanRecord]:
        if not record.school:
            return []
        related = [
            r for r in self.all_artisans()
            if r.school == record.school and r.code != record.code and not r.is_school_code
        ]
        related.sort(key=rank_key)
        return related[:limit]


class SqlCatalogStore(CatalogStore):
    """Catalog held in a SQLAlchemy database (the artisans table)."""

    name = "sql"

    def __init__(self, session_factory: Callable[[], Session]):
        super().__init__()
        self.session_factory = session_factory

    def get_artisan(self, code: str) -> Optional[ArtisanRecord]:
        logger.record_catalog_call()
        with self.session_factory() as session:
            row = session.get(Artisan, code)
            return record_from_row(row) if row is not None else None

    def _load_all(self) -> Tuple[ArtisanRecord, ...]:
        logger.record_catalog_call()
        with self.session_factory() as session:
            rows = session.scalars(select(Artisan).order_by(Artisan.code)).all()
            return tuple(record_from_row(r) for r in rows)

    def search(self, query: str, domain_filter: DomainFilter, limit: int) -> List[ArtisanRecord]:
        pattern = f"%{escape_like(query)}%"
        conditions = [
            Artisan.code.ilike(pattern, escape="\\"),
            Artisan.name_romaji.ilike(pattern, escape="\\"),
            Artisan.name_romaji_normalized.ilike(pattern, escape="\\"),
            Artisan.name_kanji.ilike(pattern, escape="\\"),
            Artisan.school.ilike(pattern, escape="\\"),
            Artisan.display_name.ilike(pattern, escape="\\"),
        ]
        normalized = _normalized_query(query)
        if normalized:
            conditions.append(
                Artisan.name_romaji_normalized.ilike(f"%{escape_like(normalized)}%", escape="\\")
            )

        stmt = select(Artisan).where(or_(*conditions))
        if domain_filter is not DomainFilter.ANY:
            stmt = stmt.where(Artisan.domain.in_([domain_filter.value, Domain.BOTH.value]))
        stmt = stmt.order_by(
            Artisan.notability.is_(None),
            Artisan.notability.desc(),
            Artisan.name_romaji,
            Artisan.code,
        ).limit(limit)

        logger.record_catalog_call()
        with self.session_factory() as session:
            return [record_from_row(r) for r in session.scalars(stmt).all()]


class _RetryableStatus(Exception):
    """Catalog answered with a status worth retrying (429, 5xx)."""


def _log_retry(attempt: int, error: Exception, delay: float) -> None:
    logger.warning("Retrying catalog request", attempt=attempt, error=str(error), delay=delay)


class RemoteCatalogStore(CatalogStore):
    """
    Catalog served by a PostgREST endpoint (the hosted reference database).

    Reads are retried with exponential backoff and guarded by a circuit
    breaker; any failure that survives both surfaces as CatalogUnavailableError.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "artisans",
        http: Optional[requests.Session] = None,
        timeout: float = REMOTE_CATALOG_TIMEOUT,
        page_size: int = REMOTE_CATALOG_PAGE_SIZE,
        breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__()
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self.page_size = page_size
        self.breaker = breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self.http = http or requests.Session()
        self.http.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

    @exponential_backoff(
        max_retries=3,
        base_delay=0.5,
        exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError, _RetryableStatus),
        on_retry=_log_retry,
    )
    def _fetch(self, params: dict) -> list:
        resp = self.http.get(self.endpoint, params=params, timeout=self.timeout)
        if should_retry_http_status(resp.status_code):
            raise _RetryableStatus(f"HTTP {resp.status_code}")
        resp.raise_for_status()
        return resp.json()

    def _get(self, params: dict) -> list:
        logger.record_catalog_call()
        try:
            return self.breaker.call(self._fetch, params)
        except RetryError as e:
            logger.record_catalog_failure(type(e).__name__)
            logger.error("Remote catalog unreachable", endpoint=self.endpoint, error=str(e))
            raise CatalogUnavailableError(f"Artisan catalog unreachable: {e}") from e
        except requests.exceptions.RequestException as e:
            status = e.response.status_code if getattr(e, "response", None) is not None else None
            logger.record_catalog_failure(f"HTTPError_{status}" if status else type(e).__name__)
            logger.error("Remote catalog request failed", endpoint=self.endpoint, status=status)
            raise CatalogUnavailableError(f"Artisan catalog request failed ({status})") from e

    def get_artisan(self, code: str) -> Optional[ArtisanRecord]:
        rows = self._get({"select": "*", "code": f"eq.{code}", "limit": 1})
        return record_from_row(rows[0]) if rows else None

    def _load_all(self) -> Tuple[ArtisanRecord, ...]:
        records: List[ArtisanRecord] = []
        offset = 0
        while True:
            page = self._get({
                "select": "*",
                "order": "code.asc",
                "limit": self.page_size,
                "offset": offset,
            })
            records.extend(record_from_row(row) for row in page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        return tuple(records)


class UnavailableCatalogStore(CatalogStore):
    """Stands in for a catalog this deployment has no credentials for."""

    name = "unavailable"
    is_available = False

    def __init__(self, reason: str = "Artisan catalog not configured"):
        super().__init__()
        self.reason = reason

    def _fail(self):
        raise CatalogUnavailableError(self.reason)

    def get_artisan(self, code: str) -> Optional[ArtisanRecord]:
        self._fail()

    def _load_all(self) -> Tuple[ArtisanRecord, ...]:
        self._fail()


class InMemoryCatalogStore(CatalogStore):
    """Catalog held in memory, used by fixtures and one-off scripts."""

    name = "memory"

    def __init__(self, records: Iterable[ArtisanRecord]):
        super().__init__()
        self._records = {r.code: r for r in records}

    def get_artisan(self, code: str) -> Optional[ArtisanRecord]:
        return self._records.get(code)

    def _load_all(self) -> Tuple[ArtisanRecord, ...]:
        return tuple(sorted(self._records.values(), key=lambda r: r.code))


def build_catalog_store(settings: Settings) -> CatalogStore:
    """
    Construct the catalog capability once at startup.

    A local catalog database wins over remote credentials; with neither the
    store is Unavailable and every caller sees that state explicitly.
    """
    if settings.catalog_db_path is not None:
        if not settings.catalog_db_path.exists():
            logger.warning("Catalog database missing", path=str(settings.catalog_db_path))
            return UnavailableCatalogStore(f"Catalog database not found: {settings.catalog_db_path}")
        return SqlCatalogStore(make_session_factory(settings.catalog_db_path))
    if settings.remote_catalog_configured:
        return RemoteCatalogStore(settings.catalog_url, settings.catalog_key)
    logger.warning("Artisan catalog not configured; search and corrections will be unavailable")
    return UnavailableCatalogStore()
