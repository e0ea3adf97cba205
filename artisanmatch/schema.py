import re
from typing import Any, Dict, List

from .config import MIN_QUERY_LENGTH

CODE_MAX_LENGTH = 64
_CODE_SHAPE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")

REQUIRED_ARTISAN_FIELDS = ["code"]
OPTIONAL_ARTISAN_STR_FIELDS = [
    "name_romaji",
    "name_kanji",
    "school",
    "province",
    "era",
    "period",
    "generation",
    "teacher",
    "display_name",
]
DOMAINS = {"sword", "tosogu", "both"}


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def validate_query_text(text: Any, field: str = "query") -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Text shorter than two characters would scan the whole catalog for nothing.
    """
    if not isinstance(text, str):
        return [f"Field '{field}' must be a string"]
    if len(text.strip()) < MIN_QUERY_LENGTH:
        return [f"Field '{field}' must be at least {MIN_QUERY_LENGTH} characters"]
    return []


def validate_artisan_code(code: Any) -> List[str]:
    if not _is_non_empty_str(code):
        return ["Artisan code must be a non-empty string"]
    code = code.strip()
    errors: List[str] = []
    if len(code) > CODE_MAX_LENGTH:
        errors.append(f"Artisan code must be at most {CODE_MAX_LENGTH} characters")
    if not _CODE_SHAPE.match(code):
        errors.append("Artisan code may only contain letters, digits, '-' and '_'")
    return errors


def validate_artisan_row(data: Dict[str, Any]) -> List[str]:
    """Validate one catalog row before it is imported."""
    errors: List[str] = []

    for f in REQUIRED_ARTISAN_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    if _is_non_empty_str(data.get("code")):
        errors.extend(validate_artisan_code(data["code"]))

    for f in OPTIONAL_ARTISAN_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    if not (_is_non_empty_str(data.get("name_romaji")) or _is_non_empty_str(data.get("name_kanji"))):
        errors.append("At least one of 'name_romaji' or 'name_kanji' is required")

    domain = data.get("domain", "sword")
    if domain not in DOMAINS:
        errors.append(f"Field 'domain' must be one of {sorted(DOMAINS)}")

    notability = data.get("notability", data.get("elite_factor"))
    if notability is not None and not isinstance(notability, (int, float)):
        errors.append("Field 'notability' must be a number if provided")

    return errors
