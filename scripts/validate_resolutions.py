#!/usr/bin/env python3
"""
Check stored resolutions against the artisan catalog.

Every non-null, non-UNKNOWN artisan code must exist in the catalog, candidate
lists must be ordered by score, and verification metadata must be consistent.

Usage:
    python scripts/validate_resolutions.py --db data/artisanmatch.db --catalog-db data/catalog.db
"""

import argparse
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from artisanmatch.database import make_session_factory
from artisanmatch.models import UNKNOWN_ARTISAN
from storage.repositories.catalog import SqlCatalogStore
from storage.repositories.resolutions import ResolutionRepository


def check_resolution(resolution, known_codes: set) -> list:
    problems = []
    code = resolution.artisan_code
    if code is not None and code != UNKNOWN_ARTISAN and code not in known_codes:
        problems.append(f"artisan_code {code} not in catalog")

    scores = [c.score for c in resolution.candidates]
    if any(a < b for a, b in zip(scores, scores[1:])):
        problems.append("candidates not ordered by score")

    if resolution.verified is None and resolution.verified_by:
        problems.append("verified_by set without a verification status")
    if resolution.verified is not None and not resolution.verified_by:
        problems.append("verified without verified_by")
    return problems


def validate(db_path: Path, catalog_db_path: Path):
    """
    Returns True if every resolution passes, False otherwise.
    """
    print(f"Loading catalog from {catalog_db_path}...")
    catalog = SqlCatalogStore(make_session_factory(catalog_db_path))
    known_codes = {r.code for r in catalog.all_artisans()}
    print(f"  Catalog: {len(known_codes)} artisans")

    print(f"\nChecking resolutions in {db_path}...")
    repo = ResolutionRepository(make_session_factory(db_path))

    checked = 0
    failures = {}
    for resolution in repo.iter_all():
        checked += 1
        problems = check_resolution(resolution, known_codes)
        if problems:
            failures[resolution.listing_id] = problems

    print(f"  Checked: {checked} resolutions")
    if failures:
        print(f"\n❌ {len(failures)} resolutions failed:")
        for listing_id, problems in list(failures.items())[:20]:
            print(f"  listing {listing_id}: {'; '.join(problems)}")
        if len(failures) > 20:
            print(f"  ... and {len(failures) - 20} more")
        return False

    print("\n✅ All resolutions valid")
    return True


def main():
    parser = argparse.ArgumentParser(description="Validate stored artisan resolutions")
    parser.add_argument("--db", type=Path, default=Path("data/artisanmatch.db"),
                       help="Path to resolution database")
    parser.add_argument("--catalog-db", type=Path, default=Path("data/catalog.db"),
                       help="Path to SQLite catalog database")

    args = parser.parse_args()

    for path in (args.db, args.catalog_db):
        if not path.exists():
            print(f"❌ Database not found: {path}")
            sys.exit(1)

    sys.exit(0 if validate(args.db, args.catalog_db) else 1)


if __name__ == "__main__":
    main()
