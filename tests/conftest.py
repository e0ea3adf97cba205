"""
Pytest configuration and shared fixtures.
"""

import os

# Modules create the global logger at import time; keep test runs off disk.
os.environ.setdefault("ARTISANMATCH_LOG_TO_FILE", "0")

import pytest
from typing import Any, Dict, List

from artisanmatch.corrections import Actor, CorrectionService
from artisanmatch.database import Artisan, init_database, make_session_factory
from artisanmatch.models import ArtisanRecord
from artisanmatch.resolution import ResolutionService
from pipelines.entity_resolution.resolver import ArtisanResolver
from storage.repositories.catalog import InMemoryCatalogStore, SqlCatalogStore, record_from_row
from storage.repositories.listings import ListingRepository
from storage.repositories.resolutions import ResolutionRepository


SAMPLE_ARTISANS: List[Dict[str, Any]] = [
    {"code": "MAS590", "name_romaji": "Masamune", "name_kanji": "正宗", "school": "Soshu",
     "province": "Sagami", "era": "Kamakura", "notability": 1.9, "domain": "sword"},
    {"code": "MAS612", "name_romaji": "Masamune", "school": "Tegai", "province": "Yamato",
     "era": "Nanbokucho", "notability": 0.35, "domain": "sword"},
    {"code": "MAS700", "name_romaji": "Masamune", "school": "Shitahara", "province": "Musashi",
     "era": "Muromachi", "domain": "sword"},
    {"code": "MAS900", "name_romaji": "Masamune", "school": "Nara", "notability": 2.5,
     "domain": "tosogu"},
    {"code": "NS-Soshu", "name_romaji": "Soshu", "school": "Soshu", "notability": 3.0,
     "domain": "sword", "is_school_code": True},
    {"code": "TOK123", "name_romaji": "Tadayoshi", "name_kanji": "忠吉", "school": "Hizen",
     "province": "Hizen", "generation": "1st", "notability": 1.2, "domain": "sword"},
    {"code": "TOK124", "name_romaji": "Tadayoshi", "name_kanji": "忠吉", "school": "Hizen",
     "province": "Hizen", "generation": "2nd", "notability": 0.6, "domain": "sword"},
    {"code": "RAI001", "name_romaji": "Rai Kunitoshi", "name_kanji": "来国俊", "school": "Rai",
     "province": "Yamashiro", "notability": 1.5, "domain": "sword"},
    {"code": "NOBUKUNI1", "name_romaji": "Nobukuni", "name_kanji": "信国", "school": "Nobukuni",
     "province": "Yamashiro", "notability": 0.8, "domain": "sword", "teacher": "RAI001"},
    {"code": "GOT042", "name_romaji": "Gotō Ichijō", "name_kanji": "後藤一乗", "school": "Goto",
     "notability": 1.4, "domain": "tosogu"},
    {"code": "NS-Goto", "name_romaji": "Goto", "name_kanji": "後藤", "school": "Goto",
     "domain": "tosogu", "is_school_code": True},
    {"code": "UME010", "name_romaji": "Umetada Myoju", "name_kanji": "埋忠明寿", "school": "Umetada",
     "notability": 1.1, "domain": "both"},
]


@pytest.fixture
def artisan_rows() -> List[Dict[str, Any]]:
    """Catalog rows as they arrive from an export."""
    return [dict(row) for row in SAMPLE_ARTISANS]


@pytest.fixture
def sample_artisans(artisan_rows) -> List[ArtisanRecord]:
    return [record_from_row(row) for row in artisan_rows]


@pytest.fixture
def catalog(sample_artisans) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(sample_artisans)


@pytest.fixture
def db_path(tmp_path):
    """Create a temporary database with all tables."""
    path = tmp_path / "test.db"
    init_database(path)
    return path


@pytest.fixture
def session_factory(db_path):
    return make_session_factory(db_path)


@pytest.fixture
def sql_catalog(session_factory, artisan_rows) -> SqlCatalogStore:
    """Catalog held in the artisans table of the test database."""
    with session_factory() as session:
        for row in artisan_rows:
            record = record_from_row(row)
            session.add(Artisan(
                code=record.code,
                name_romaji=record.name_romaji,
                name_romaji_normalized=record.name_romaji_normalized,
                name_kanji=record.name_kanji,
                display_name=record.display_name,
                school=record.school,
                province=record.province,
                era=record.era,
                generation=record.generation,
                teacher=record.teacher,
                notability=record.notability,
                domain=record.domain.value,
                is_school_code=record.is_school_code,
            ))
        session.commit()
    return SqlCatalogStore(session_factory)


@pytest.fixture
def listings(session_factory) -> ListingRepository:
    repo = ListingRepository(session_factory)
    repo.add(42, title="Katana signed Masamune", description="Soshu den, Kamakura period", item_type="katana")
    repo.add(43, title="Tsuba by Goto Ichijo", description="<p>Shakudo nanako, <b>signed</b></p>", item_type="tsuba")
    repo.add(44, title="Antique lacquer box", description="Edo period storage box", item_type="other")
    return repo


@pytest.fixture
def resolutions(session_factory) -> ResolutionRepository:
    return ResolutionRepository(session_factory)


@pytest.fixture
def resolver(catalog) -> ArtisanResolver:
    return ArtisanResolver(catalog)


@pytest.fixture
def resolution_service(resolver, resolutions, listings) -> ResolutionService:
    return ResolutionService(resolver, resolutions, listings)


@pytest.fixture
def corrections(catalog, listings, resolutions) -> CorrectionService:
    return CorrectionService(catalog, listings, resolutions)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="reviewer-1", is_admin=True)


@pytest.fixture
def reader() -> Actor:
    return Actor(user_id="reader-1", is_admin=False)
