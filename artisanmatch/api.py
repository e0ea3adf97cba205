"""FastAPI application exposing search, artisan lookup and the review endpoints."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storage.repositories.catalog import CatalogStore, build_catalog_store
from storage.repositories.listings import ListingRepository
from storage.repositories.resolutions import ResolutionRepository

from . import __version__
from .config import Settings
from .corrections import Actor, CorrectionService
from .database import init_database, make_session_factory
from .details import get_artisan_details
from .errors import ResolutionError, UnauthorizedError
from .logger import get_logger
from .search import search_catalog

logger = get_logger()


@dataclass
class TokenIdentityProvider:
    """Bearer token -> Actor lookup; session management lives upstream."""

    admin_tokens: Dict[str, str] = field(default_factory=dict)
    reader_tokens: Dict[str, str] = field(default_factory=dict)

    def actor_for(self, token: Optional[str]) -> Optional[Actor]:
        if not token:
            return None
        if token in self.admin_tokens:
            return Actor(user_id=self.admin_tokens[token], is_admin=True)
        if token in self.reader_tokens:
            return Actor(user_id=self.reader_tokens[token], is_admin=False)
        return None


@dataclass
class Services:
    catalog: CatalogStore
    listings: ListingRepository
    resolutions: ResolutionRepository
    identity: TokenIdentityProvider

    @property
    def corrections(self) -> CorrectionService:
        return CorrectionService(self.catalog, self.listings, self.resolutions)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        init_database(settings.db_path)
        session_factory = make_session_factory(settings.db_path)
        return cls(
            catalog=build_catalog_store(settings),
            listings=ListingRepository(session_factory),
            resolutions=ResolutionRepository(session_factory),
            identity=TokenIdentityProvider(settings.admin_tokens, settings.reader_tokens),
        )


# Request / response models

class CandidateModel(BaseModel):
    code: str
    score: float
    method: Optional[str] = None


class ResolutionResponse(BaseModel):
    listing_id: int
    artisan_code: Optional[str]
    confidence: str
    method: Optional[str]
    candidates: List[CandidateModel]
    verified: Optional[str]
    verified_by: Optional[str]
    verified_at: Optional[str]
    provenance: str
    version: int
    state: str


class VerifyRequest(BaseModel):
    """``verified`` is correct, incorrect or null; resubmitting the same value clears it."""

    verified: Optional[str] = None
    expected_version: Optional[int] = None


class FixArtisanRequest(BaseModel):
    artisan_id: str
    confidence: str = "HIGH"
    expected_version: Optional[int] = None


class VisibilityResponse(BaseModel):
    listing_id: int
    is_hidden: bool


# Dependencies

def get_services(request: Request) -> Services:
    return request.app.state.services


def get_actor(
    services: Services = Depends(get_services),
    authorization: Optional[str] = Header(default=None),
) -> Optional[Actor]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return services.identity.actor_for(token.strip())


def require_actor(actor: Optional[Actor] = Depends(get_actor)) -> Actor:
    if actor is None:
        raise UnauthorizedError("Authentication required")
    return actor


def _resolution_response(resolution) -> ResolutionResponse:
    return ResolutionResponse(**resolution.to_dict())


artisan_router = APIRouter()
listing_router = APIRouter()


@artisan_router.get("/search")
def search_artisans(
    services: Services = Depends(get_services),
    actor: Actor = Depends(require_actor),
    q: str = Query(default=""),
    type: str = Query(default="all"),
    limit: Optional[int] = Query(default=None),
):
    """Search the catalog; 503 with an empty list when it is not configured."""
    result = search_catalog(services.catalog, q, domain_filter=type, limit=limit)
    if not result.configured:
        return JSONResponse(status_code=503, content=result.to_dict())
    return result.to_dict()


@artisan_router.get("/{code}")
def get_artisan(
    code: str,
    services: Services = Depends(get_services),
    actor: Actor = Depends(require_actor),
):
    return get_artisan_details(services.catalog, code).to_dict()


@listing_router.post("/{listing_id}/verify-artisan", response_model=ResolutionResponse)
def verify_artisan(
    listing_id: int,
    body: VerifyRequest,
    services: Services = Depends(get_services),
    actor: Optional[Actor] = Depends(get_actor),
) -> ResolutionResponse:
    resolution = services.corrections.verify(
        listing_id, body.verified, actor, expected_version=body.expected_version
    )
    return _resolution_response(resolution)


@listing_router.post("/{listing_id}/fix-artisan", response_model=ResolutionResponse)
def fix_artisan(
    listing_id: int,
    body: FixArtisanRequest,
    services: Services = Depends(get_services),
    actor: Optional[Actor] = Depends(get_actor),
) -> ResolutionResponse:
    resolution = services.corrections.fix_artisan(
        listing_id, body.artisan_id, body.confidence, actor,
        expected_version=body.expected_version,
    )
    return _resolution_response(resolution)


@listing_router.post("/{listing_id}/hide", response_model=VisibilityResponse)
def hide_listing(
    listing_id: int,
    services: Services = Depends(get_services),
    actor: Optional[Actor] = Depends(get_actor),
) -> VisibilityResponse:
    hidden = services.corrections.toggle_visibility(listing_id, actor)
    return VisibilityResponse(listing_id=listing_id, is_hidden=hidden)


def _handle_resolution_error(request: Request, exc: ResolutionError) -> JSONResponse:
    logger.record_error(type(exc).__name__)
    logger.warning(
        "Request failed",
        path=request.url.path,
        status=exc.status_code,
        reason=exc.reason,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; services default to those described by the environment."""
    if services is None:
        services = Services.from_settings(settings or Settings.from_env())

    app = FastAPI(
        title="Artisan Match API",
        description="Artisan identity resolution for sword and tosogu listings",
        version=__version__,
    )
    app.state.services = services
    app.add_exception_handler(ResolutionError, _handle_resolution_error)

    app.include_router(artisan_router, prefix="/api/artisan", tags=["artisans"])
    app.include_router(listing_router, prefix="/api/listing", tags=["listings"])

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "catalog": services.catalog.name}

    return app
