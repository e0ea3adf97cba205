"""
Runtime configuration and named tuning constants.

Thresholds for the confidence classifier and the retrieval score bands live
here so that calibration against a labeled sample only ever touches one file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
import os

from .env import getenv_any, getenv_bool


# Retrieval score bands. Each method's ceiling sits below the floor of the
# method that outranks it, so precedence survives the generation bonus.
SCORE_CODE_EXACT = 1.0
SCORE_KANJI_EXACT = 0.95
SCORE_ROMAJI_EXACT = 0.93
SCORE_ROMAJI_FUZZY_MAX = 0.88
SCORE_DISPLAY_SUBSTRING = 0.60
SCORE_SCHOOL_SUBSTRING = 0.45
GENERATION_BONUS = 0.03

# Minimum difflib similarity for a normalized-romaji fuzzy match.
FUZZY_MIN_SIMILARITY = 0.80
# Fraction of a name's character trigrams that must appear in the listing
# text before the name is compared at all.
BLOCKING_MIN_TRIGRAM_OVERLAP = 0.34

# Confidence classifier thresholds.
HIGH_SCORE_THRESHOLD = 0.85
MEDIUM_SCORE_THRESHOLD = 0.60
MIN_SEPARATION = 0.15

MAX_CANDIDATES = 10
MIN_QUERY_LENGTH = 2

SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 50

RELATED_ARTISANS_LIMIT = 12
STUDENTS_LIMIT = 20

REMOTE_CATALOG_TIMEOUT = 15
REMOTE_CATALOG_PAGE_SIZE = 1000


def _parse_tokens(raw: Optional[str]) -> Dict[str, str]:
    """Parse "token:user,token2:user2" into a token -> user id map."""
    tokens: Dict[str, str] = {}
    if not raw:
        return tokens
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        token, _, user = item.partition(":")
        tokens[token.strip()] = user.strip() or token.strip()
    return tokens


@dataclass
class Settings:
    """Environment-derived settings, read once at startup."""

    db_path: Path = Path("data/artisanmatch.db")
    catalog_db_path: Optional[Path] = None
    catalog_url: Optional[str] = None
    catalog_key: Optional[str] = None
    admin_tokens: Dict[str, str] = field(default_factory=dict)
    reader_tokens: Dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True

    @property
    def remote_catalog_configured(self) -> bool:
        return bool(self.catalog_url and self.catalog_key)

    @classmethod
    def from_env(cls) -> "Settings":
        catalog_db = os.getenv("CATALOG_DB")
        return cls(
            db_path=Path(os.getenv("ARTISANMATCH_DB", "data/artisanmatch.db")),
            catalog_db_path=Path(catalog_db) if catalog_db else None,
            catalog_url=getenv_any("YUHINKAI_SUPABASE_URL", "OSHI_V2_SUPABASE_URL"),
            catalog_key=getenv_any(
                "YUHINKAI_SUPABASE_KEY",
                "OSHI_V2_SUPABASE_KEY",
                "OSHI_V2_SUPABASE_ANON_KEY",
            ),
            admin_tokens=_parse_tokens(os.getenv("ARTISANMATCH_ADMIN_TOKENS")),
            reader_tokens=_parse_tokens(os.getenv("ARTISANMATCH_READER_TOKENS")),
            log_level=os.getenv("ARTISANMATCH_LOG_LEVEL", "INFO"),
            log_dir=Path(os.getenv("ARTISANMATCH_LOG_DIR", "logs")),
            log_to_file=getenv_bool("ARTISANMATCH_LOG_TO_FILE", True),
        )
