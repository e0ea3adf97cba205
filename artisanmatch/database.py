"""
Database schema and connection management.

Uses SQLite with SQLAlchemy. The catalog tables may live in the same file as
the listing/resolution tables or in a separate catalog database; artisan
codes on resolutions are therefore validated in code, not by foreign key.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


class Artisan(Base):
    """Canonical swordsmith / tosogu maker, or a school bucket."""

    __tablename__ = "artisans"

    code = Column(String, primary_key=True)  # MAS590, NS-Sue-Sa
    name_romaji = Column(String, nullable=True, index=True)
    name_romaji_normalized = Column(String, nullable=True, index=True)
    name_kanji = Column(String, nullable=True, index=True)
    display_name = Column(String, nullable=True)
    school = Column(String, nullable=True, index=True)
    province = Column(String, nullable=True)
    era = Column(String, nullable=True)
    period = Column(String, nullable=True)
    generation = Column(String, nullable=True)
    teacher = Column(String, nullable=True, index=True)  # teacher code or romaji name
    notability = Column(Float, nullable=True)  # elite factor; null when unranked
    domain = Column(String, nullable=False, default="sword")  # sword, tosogu, both
    is_school_code = Column(Boolean, nullable=False, default=False)
    juyo_count = Column(Integer, nullable=False, default=0)
    tokuju_count = Column(Integer, nullable=False, default=0)
    total_items = Column(Integer, nullable=False, default=0)


class Listing(Base):
    """The slice of a marketplace listing this subsystem needs."""

    __tablename__ = "listings"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=True)
    item_type = Column(String, nullable=True)  # katana, tsuba, ...
    is_hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ListingArtisanResolution(Base):
    """One row per listing: the current artisan association."""

    __tablename__ = "listing_artisan_resolutions"

    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True)
    artisan_code = Column(String, nullable=True, index=True)  # null = not attempted, UNKNOWN = left unidentified
    confidence = Column(String, nullable=False, default="NONE")
    method = Column(String, nullable=True)
    candidates = Column(JSON, nullable=False, default=list)
    verified = Column(String, nullable=True)  # correct, incorrect
    verified_by = Column(String, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    provenance = Column(String, nullable=False, default="automated")
    version = Column(Integer, nullable=False, default=0)
    resolved_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ResolutionEvent(Base):
    """Append-only audit trail of resolution writes."""

    __tablename__ = "resolution_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    operation = Column(String, nullable=False)  # auto_resolve, verify, fix_artisan, ...
    provenance = Column(String, nullable=False)
    actor = Column(String, nullable=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def make_session_factory(db_path: Path) -> Callable[[], Session]:
    """
    Build a session factory bound to one engine.

    Services keep the factory and open a short-lived session per operation.
    """
    return sessionmaker(bind=get_engine(db_path), expire_on_commit=False)


def get_session(db_path: Path) -> Session:
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return make_session_factory(db_path)()
