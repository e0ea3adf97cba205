"""Value types shared by the catalog, the retriever and the correction workflow."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidInputError


UNKNOWN_ARTISAN = "UNKNOWN"
ADMIN_CORRECTION_METHOD = "ADMIN_CORRECTION"


class Domain(str, Enum):
    SWORD = "sword"
    TOSOGU = "tosogu"
    BOTH = "both"


class DomainFilter(str, Enum):
    """Which catalog domains a retrieval or search may return."""

    SWORD = "sword"
    TOSOGU = "tosogu"
    ANY = "any"

    def allows(self, domain: "Domain") -> bool:
        if self is DomainFilter.ANY or domain is Domain.BOTH:
            return True
        return domain.value == self.value

    @classmethod
    def parse(cls, value: Optional[str]) -> "DomainFilter":
        # The search endpoint speaks smith|tosogu|all, ingestion speaks sword|tosogu|any.
        aliases = {
            None: cls.ANY,
            "": cls.ANY,
            "any": cls.ANY,
            "all": cls.ANY,
            "sword": cls.SWORD,
            "smith": cls.SWORD,
            "tosogu": cls.TOSOGU,
        }
        if isinstance(value, cls):
            return value
        key = value.strip().lower() if isinstance(value, str) else value
        if key not in aliases:
            raise InvalidInputError(
                f"Unknown domain filter: {value!r} (expected smith, tosogu or all)"
            )
        return aliases[key]


class ConfidenceTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"

    @classmethod
    def parse(cls, value: Any) -> "ConfidenceTier":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidInputError(
                f"Unknown confidence tier: {value!r} (expected HIGH, MEDIUM, LOW or NONE)"
            ) from None


class VerificationStatus(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"

    @classmethod
    def parse(cls, value: Any) -> Optional["VerificationStatus"]:
        """Parse a status; None (or "null") means clear."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in {"", "null", "none"}:
            return None
        try:
            return cls(text)
        except ValueError:
            raise InvalidInputError(
                f"Unknown verification status: {value!r} (expected correct, incorrect or null)"
            ) from None


class Provenance(str, Enum):
    """Who produced the last write to a resolution row."""

    AUTOMATED = "automated"
    HUMAN = "human"


class ResolutionState(str, Enum):
    UNRESOLVED = "UNRESOLVED"
    RESOLVED_AUTO = "RESOLVED_AUTO"
    RESOLVED_VERIFIED = "RESOLVED_VERIFIED"
    FLAGGED_INCORRECT = "FLAGGED_INCORRECT"
    RESOLVED_CORRECTED = "RESOLVED_CORRECTED"


@dataclass(frozen=True)
class ArtisanRecord:
    code: str
    name_romaji: Optional[str] = None
    name_kanji: Optional[str] = None
    school: Optional[str] = None
    province: Optional[str] = None
    era: Optional[str] = None
    generation: Optional[str] = None
    notability: Optional[float] = None
    domain: Domain = Domain.SWORD
    is_school_code: bool = False
    period: Optional[str] = None
    teacher: Optional[str] = None
    name_romaji_normalized: Optional[str] = None
    display_name: Optional[str] = None
    juyo_count: int = 0
    tokuju_count: int = 0
    total_items: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["domain"] = self.domain.value
        return data

    def summary(self) -> Dict[str, Any]:
        """Compact form used by the lookup/search service."""
        return {
            "code": self.code,
            "type": "school" if self.is_school_code else ("tosogu" if self.domain is Domain.TOSOGU else "smith"),
            "name_romaji": self.name_romaji,
            "name_kanji": self.name_kanji,
            "display_name": self.display_name,
            "school": self.school,
            "province": self.province,
            "era": self.era,
            "generation": self.generation,
            "notability": self.notability,
            "juyo_count": self.juyo_count,
            "tokuju_count": self.tokuju_count,
            "total_items": self.total_items,
        }


@dataclass(frozen=True)
class Candidate:
    code: str
    score: float
    method: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "score": round(self.score, 4), "method": self.method}

    @classmethod
    def coerce(cls, value: Any) -> "Candidate":
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            code = value.get("code") or value.get("artisan_id")
            if not code:
                raise InvalidInputError("Candidate is missing a code")
            return cls(code=str(code), score=float(value.get("score", 0.0)), method=value.get("method"))
        raise InvalidInputError(f"Cannot interpret candidate: {value!r}")


@dataclass
class Resolution:
    """Snapshot of one listing's artisan resolution row."""

    listing_id: int
    artisan_code: Optional[str] = None
    confidence: ConfidenceTier = ConfidenceTier.NONE
    method: Optional[str] = None
    candidates: List[Candidate] = field(default_factory=list)
    verified: Optional[VerificationStatus] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    provenance: Provenance = Provenance.AUTOMATED
    version: int = 0
    resolved_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_unknown(self) -> bool:
        return self.artisan_code == UNKNOWN_ARTISAN

    @property
    def human_touched(self) -> bool:
        return self.provenance is Provenance.HUMAN or self.verified is not None

    @property
    def state(self) -> ResolutionState:
        if self.artisan_code is None:
            return ResolutionState.UNRESOLVED
        if self.verified is VerificationStatus.INCORRECT:
            return ResolutionState.FLAGGED_INCORRECT
        if self.verified is VerificationStatus.CORRECT:
            if self.method == ADMIN_CORRECTION_METHOD:
                return ResolutionState.RESOLVED_CORRECTED
            return ResolutionState.RESOLVED_VERIFIED
        return ResolutionState.RESOLVED_AUTO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "artisan_code": self.artisan_code,
            "confidence": self.confidence.value,
            "method": self.method,
            "candidates": [c.to_dict() for c in self.candidates],
            "verified": self.verified.value if self.verified else None,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "provenance": self.provenance.value,
            "version": self.version,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class RetrievalResult:
    """Explainable output of one automated resolution run."""

    candidates: Tuple[Candidate, ...]
    confidence: ConfidenceTier
    explanation: Tuple[str, ...] = ()

    @property
    def top(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def artisan_code(self) -> Optional[str]:
        return self.top.code if self.top else None

    @property
    def method(self) -> Optional[str]:
        return self.top.method if self.top else None
