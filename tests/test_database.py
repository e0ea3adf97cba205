"""
Tests for database.py - SQLite database operations.
"""

import pytest
from datetime import datetime
from sqlalchemy.exc import IntegrityError

from artisanmatch.database import (
    Artisan,
    Listing,
    ListingArtisanResolution,
    ResolutionEvent,
    init_database,
    get_session,
)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates every table."""
        db_path = tmp_path / "test.db"
        init_database(db_path)

        session = get_session(db_path)
        # Should not raise error if tables exist
        assert session.query(Artisan).count() == 0
        assert session.query(Listing).count() == 0
        assert session.query(ListingArtisanResolution).count() == 0
        assert session.query(ResolutionEvent).count() == 0
        session.close()

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()
        assert db_path.parent.exists()

    def test_init_is_idempotent(self, tmp_path):
        """Running init twice keeps existing rows."""
        db_path = tmp_path / "test.db"
        init_database(db_path)
        session = get_session(db_path)
        session.add(Listing(id=1, title="Katana"))
        session.commit()
        session.close()

        init_database(db_path)

        session = get_session(db_path)
        assert session.query(Listing).count() == 1
        session.close()


class TestArtisanTable:
    """Test CRUD operations on the artisans table."""

    @pytest.fixture
    def db_session(self, tmp_path):
        """Create a temporary database and return a session."""
        db_path = tmp_path / "test.db"
        init_database(db_path)
        session = get_session(db_path)
        yield session
        session.close()

    def test_create_artisan(self, db_session):
        """Test creating a catalog row with defaults."""
        db_session.add(Artisan(code="MAS590", name_romaji="Masamune", name_kanji="正宗"))
        db_session.commit()

        result = db_session.get(Artisan, "MAS590")
        assert result.name_kanji == "正宗"
        assert result.domain == "sword"
        assert result.is_school_code is False
        assert result.notability is None

    def test_duplicate_code_fails(self, db_session):
        """Test that duplicate codes raise an error."""
        db_session.add(Artisan(code="MAS590", name_romaji="Masamune"))
        db_session.commit()

        db_session.add(Artisan(code="MAS590", name_romaji="Other"))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestResolutionTable:
    """Test the resolution row and its relationship to listings."""

    @pytest.fixture
    def db_session(self, tmp_path):
        db_path = tmp_path / "test.db"
        init_database(db_path)
        session = get_session(db_path)
        session.add(Listing(id=42, title="Katana signed Masamune"))
        session.commit()
        yield session
        session.close()

    def test_resolution_defaults(self, db_session):
        """A bare row is unresolved, automated and unverified."""
        db_session.add(ListingArtisanResolution(listing_id=42))
        db_session.commit()

        row = db_session.get(ListingArtisanResolution, 42)
        assert row.artisan_code is None
        assert row.confidence == "NONE"
        assert row.candidates == []
        assert row.verified is None
        assert row.provenance == "automated"
        assert row.version == 0

    def test_candidates_round_trip_as_json(self, db_session):
        """Candidate lists keep their order and values."""
        candidates = [
            {"code": "MAS590", "score": 0.93, "method": "ROMAJI_EXACT"},
            {"code": "MAS612", "score": 0.93, "method": "ROMAJI_EXACT"},
        ]
        db_session.add(ListingArtisanResolution(listing_id=42, artisan_code="MAS590", candidates=candidates))
        db_session.commit()
        db_session.expire_all()

        assert db_session.get(ListingArtisanResolution, 42).candidates == candidates

    def test_resolution_requires_listing(self, db_session):
        """Foreign keys are enforced on SQLite."""
        db_session.add(ListingArtisanResolution(listing_id=999))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_deleting_listing_cascades(self, db_session):
        """Resolutions and events go away with their listing."""
        db_session.add(ListingArtisanResolution(listing_id=42, artisan_code="MAS590"))
        db_session.add(ResolutionEvent(listing_id=42, operation="auto_resolve", provenance="automated"))
        db_session.commit()

        db_session.delete(db_session.get(Listing, 42))
        db_session.commit()
        db_session.expire_all()

        assert db_session.query(ListingArtisanResolution).count() == 0
        assert db_session.query(ResolutionEvent).count() == 0


class TestTimestamps:
    """Test timestamp handling."""

    @pytest.fixture
    def db_session(self, tmp_path):
        db_path = tmp_path / "test.db"
        init_database(db_path)
        session = get_session(db_path)
        yield session
        session.close()

    def test_created_at_set_on_insert(self, db_session):
        """Test that created_at is set when a listing is created."""
        before = datetime.now()

        db_session.add(Listing(id=1, title="Tsuba"))
        db_session.commit()

        after = datetime.now()

        saved = db_session.get(Listing, 1)
        assert saved.created_at is not None
        assert before <= saved.created_at <= after
        assert abs((saved.created_at - saved.updated_at).total_seconds()) < 1
