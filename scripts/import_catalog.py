#!/usr/bin/env python3
"""
Import artisan catalog rows from a JSON export into SQLite.

Usage:
    python scripts/import_catalog.py --json data/artisans.json --db data/catalog.db
"""

import argparse
import json
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from artisanmatch.database import Artisan, init_database, get_session
from artisanmatch.display import get_display_name
from artisanmatch.normalize import normalize_romaji
from artisanmatch.schema import validate_artisan_row

ARTISAN_FIELDS = [
    "name_romaji",
    "name_kanji",
    "school",
    "province",
    "era",
    "period",
    "generation",
    "teacher",
]


def load_rows(json_path: Path) -> list:
    """Accept a bare list or a {"artisans": [...]} export."""
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("artisans", [])
    return data


def to_artisan(row: dict) -> Artisan:
    code = row["code"].strip()
    notability = row.get("notability", row.get("elite_factor"))
    artisan = Artisan(
        code=code,
        domain=row.get("domain", "sword"),
        is_school_code=bool(row.get("is_school_code", code.startswith("NS-"))),
        notability=float(notability) if notability is not None else None,
        juyo_count=row.get("juyo_count") or 0,
        tokuju_count=row.get("tokuju_count") or 0,
        total_items=row.get("total_items") or 0,
    )
    for field in ARTISAN_FIELDS:
        setattr(artisan, field, row.get(field))
    artisan.name_romaji_normalized = row.get("name_romaji_normalized") or normalize_romaji(row.get("name_romaji")) or None
    artisan.display_name = row.get("display_name") or get_display_name(row.get("name_romaji"), row.get("school"), code) or None
    return artisan


def import_catalog(json_path: Path, db_path: Path, dry_run: bool = False, replace: bool = False):
    """
    Import catalog rows into the artisans table.

    Args:
        json_path: Path to JSON export
        db_path: Path to SQLite catalog database
        dry_run: If True, validate only
        replace: If True, overwrite rows whose code already exists
    """
    print(f"Loading artisans from {json_path}...")
    rows = load_rows(json_path)
    print(f"Found {len(rows)} rows")

    valid = []
    invalid = 0
    for i, row in enumerate(rows):
        errors = validate_artisan_row(row) if isinstance(row, dict) else ["row is not an object"]
        if errors:
            print(f"⚠️  Row {i} ({row.get('code') if isinstance(row, dict) else '?'}): {'; '.join(errors)}")
            invalid += 1
            continue
        valid.append(row)

    if dry_run:
        print(f"\n[DRY RUN] {len(valid)} valid, {invalid} invalid")
        return True

    print(f"\nInitializing database at {db_path}...")
    init_database(db_path)
    session = get_session(db_path)

    imported = 0
    skipped = 0
    try:
        for row in valid:
            artisan = to_artisan(row)
            existing = session.get(Artisan, artisan.code)
            if existing is not None and not replace:
                skipped += 1
                continue
            session.merge(artisan)
            imported += 1
            if imported % 500 == 0:
                print(f"  Imported {imported} artisans...")
        session.commit()
    except Exception as e:
        session.rollback()
        print(f"❌ Failed to import: {e}")
        return False
    finally:
        session.close()

    print(f"\n✅ Import complete!")
    print(f"   Imported: {imported}")
    print(f"   Skipped:  {skipped}")
    print(f"   Invalid:  {invalid}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Import the artisan catalog from JSON")
    parser.add_argument("--json", type=Path, default=Path("data/artisans.json"),
                       help="Path to JSON export")
    parser.add_argument("--db", type=Path, default=Path("data/catalog.db"),
                       help="Path to SQLite catalog database")
    parser.add_argument("--dry-run", action="store_true",
                       help="Validate rows without writing")
    parser.add_argument("--replace", action="store_true",
                       help="Overwrite artisans that already exist")

    args = parser.parse_args()

    if not args.json.exists():
        print(f"❌ JSON file not found: {args.json}")
        sys.exit(1)

    ok = import_catalog(args.json, args.db, dry_run=args.dry_run, replace=args.replace)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
