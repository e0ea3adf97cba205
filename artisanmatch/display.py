"""
Artisan display names.

The catalog stores school and personal name separately; joining them
naively yields duplicates such as "Goto Gotō" or "Hizen Tadayoshi Tadahiro".
These helpers merge the two into the name a collector would recognise.
"""

import re
from typing import Optional, Tuple

from .normalize import strip_macrons


GEO_PREFIXES = {
    "aki", "awa", "bingo", "bitchu", "bizen", "bungo", "buzen", "chikugo",
    "chikuzen", "dewa", "echigo", "echizen", "etchu", "harima", "higo",
    "hitachi", "hizen", "hoki", "hyuga", "iga", "inaba", "ise", "iwami",
    "iyo", "izumi", "izumo", "kaga", "kai", "kawachi", "kazusa", "kii",
    "kozuke", "mikawa", "mimasaka", "mino", "musashi", "mutsu", "nagato",
    "noto", "omi", "osumi", "owari", "rikuzen", "sagami", "sanuki",
    "satsuma", "settsu", "shimosa", "shimotsuke", "shinano", "suo", "suou",
    "suruga", "tajima", "tamba", "tanba", "tango", "tosa", "totomi",
    "ugo", "uzen", "wakasa", "yamashiro", "yamato",
    "osaka", "kyoto", "edo", "kamakura", "nara", "sakai",
}

GENERIC_WORDS = {"province", "school", "group", "branch", "style"}

# Names collectors actually use where they differ from the catalog romaji.
ARTISAN_ALIASES = {
    "KAN1670": "Kencho",
    "KUN539": "Shintogo Kunimitsu",
    "KUN636": "Saburo Kunimune",
    "GOT042": "Goto Ichijo",
    "OWA009": "Nobuie",
}

SCHOOL_CODE_PREFIX = "NS-"


def norm(s: str) -> str:
    return strip_macrons(s.lower())


def get_artisan_alias(code: str) -> Optional[str]:
    return ARTISAN_ALIASES.get(code)


def _ends_with_word(text: str, word: str) -> bool:
    return text.endswith(" " + word) or text.endswith("-" + word)


def _starts_with_word(text: str, word: str) -> bool:
    if not text.startswith(word):
        return False
    rest = text[len(word):]
    return rest == "" or rest.startswith(" ")


def get_display_parts(name_romaji: Optional[str], school: Optional[str]) -> Tuple[Optional[str], str]:
    """
    Return (prefix, name) with redundant school text removed.

    Rules, first match wins:
      1. school equals name                       -> name
      2. name starts with school                  -> name
      3. school starts with name                  -> school
      4. school ends with name                    -> school
      5. name is a token of school                -> school
      6. school is a token of name                -> name
      7. lineage root shared with last school word -> school minus last word, name
      8. school starts with a province/city       -> remainder, name
      9. otherwise                                -> school, name
    """
    name = name_romaji or ""
    if not school or not name:
        return (school or None), name

    # "Natsuo / Tokyo Fine Arts" style schools are founder / institution aliases.
    if "/" in school:
        return None, name

    s_norm = norm(school)
    n_norm = norm(name)

    if s_norm == n_norm:
        return None, name
    if _starts_with_word(n_norm, s_norm):
        return None, name
    if _starts_with_word(s_norm, n_norm):
        return None, school
    if _ends_with_word(s_norm, n_norm):
        return None, school

    school_tokens = [norm(t) for t in re.split(r"[\s/]+", school) if t]
    if n_norm in school_tokens:
        return None, school
    name_tokens = [norm(t) for t in re.split(r"[\s-]+", name) if t]
    if s_norm in name_tokens:
        return None, name

    school_words = school.split(" ")
    if len(school_words) >= 2:
        last_school_word = norm(school_words[-1])
        first_name_word = norm(name.split(" ")[0])
        if (
            len(last_school_word) >= 5
            and len(first_name_word) >= 4
            and last_school_word[:4] == first_name_word[:4]
        ):
            return " ".join(school_words[:-1]), name

        if norm(school_words[0]) in GEO_PREFIXES:
            stripped = " ".join(school_words[1:])
            if norm(stripped) in GENERIC_WORDS:
                return None, name
            return stripped, name

    return school, name


def get_display_name(name_romaji: Optional[str], school: Optional[str], code: Optional[str] = None) -> str:
    prefix, name = get_display_parts(name_romaji, school)
    base = f"{prefix} {name}" if prefix else name
    if code and code.startswith(SCHOOL_CODE_PREFIX) and base and "school" not in norm(base):
        return f"{base} School"
    return base


def get_display_name_kanji(name_kanji: Optional[str], code: Optional[str] = None) -> Optional[str]:
    if not name_kanji:
        return None
    if code and code.startswith(SCHOOL_CODE_PREFIX) and not name_kanji.endswith("派"):
        return f"{name_kanji}派"
    return name_kanji
