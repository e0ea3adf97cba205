"""Artisan profile lookup: the record plus display names and lineage."""

from dataclasses import dataclass, field
from typing import List, Optional

from storage.repositories.catalog import CatalogStore

from .config import RELATED_ARTISANS_LIMIT, STUDENTS_LIMIT
from .display import get_artisan_alias, get_display_name, get_display_name_kanji
from .errors import NotFoundError
from .models import UNKNOWN_ARTISAN, ArtisanRecord


@dataclass
class ArtisanDetails:
    artisan: ArtisanRecord
    display_name: str
    display_name_kanji: Optional[str] = None
    students: List[ArtisanRecord] = field(default_factory=list)
    related: List[ArtisanRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "artisan": self.artisan.to_dict(),
            "display_name": self.display_name,
            "display_name_kanji": self.display_name_kanji,
            "students": [s.summary() for s in self.students],
            "related_artisans": [r.summary() for r in self.related],
        }


def get_artisan_details(catalog: CatalogStore, code: str) -> ArtisanDetails:
    """
    Raises NotFoundError for codes absent from the catalog and for the
    UNKNOWN sentinel, which names no artisan.
    """
    code = (code or "").strip()
    if not code or code.upper() == UNKNOWN_ARTISAN:
        raise NotFoundError(f"Artisan not found: {code or '<empty>'}")

    record = catalog.get_artisan(code)
    if record is None:
        raise NotFoundError(f"Artisan not found: {code}")

    display_name = (
        get_artisan_alias(record.code)
        or get_display_name(record.name_romaji, record.school, record.code)
        or record.code
    )
    return ArtisanDetails(
        artisan=record,
        display_name=display_name,
        display_name_kanji=get_display_name_kanji(record.name_kanji, record.code),
        students=catalog.find_students(record.code, record.name_romaji, STUDENTS_LIMIT),
        related=catalog.find_related(record, RELATED_ARTISANS_LIMIT),
    )
