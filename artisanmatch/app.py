import argparse
import json
from collections import Counter
from pathlib import Path

from pipelines.backfill.full_rebuild import rebuild_resolutions
from pipelines.entity_resolution.resolver import ArtisanResolver
from storage.repositories.catalog import build_catalog_store
from storage.repositories.listings import ListingRepository
from storage.repositories.resolutions import ResolutionRepository

from . import __version__
from .config import MAX_CANDIDATES, Settings
from .corrections import Actor, CorrectionService
from .database import init_database, make_session_factory
from .details import get_artisan_details
from .env import load_env
from .errors import ResolutionError
from .logger import get_logger
from .models import ConfidenceTier
from .normalize import strip_listing_html
from .resolution import ResolutionService
from .search import search_catalog


class Context:
    """Repositories and services wired from settings for one CLI invocation."""

    def __init__(self, settings: Settings):
        self.settings = settings
        init_database(settings.db_path)
        session_factory = make_session_factory(settings.db_path)
        self.catalog = build_catalog_store(settings)
        self.listings = ListingRepository(session_factory)
        self.resolutions = ResolutionRepository(session_factory)

    @property
    def resolution_service(self) -> ResolutionService:
        return ResolutionService(ArtisanResolver(self.catalog), self.resolutions, self.listings)

    @property
    def corrections(self) -> CorrectionService:
        return CorrectionService(self.catalog, self.listings, self.resolutions)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.db:
        settings.db_path = Path(args.db)
    if args.catalog_db:
        settings.catalog_db_path = Path(args.catalog_db)
    return settings


def _actor(args: argparse.Namespace) -> Actor:
    # Operators running the CLI already hold the database; they act as admins.
    return Actor(user_id=args.user, is_admin=True)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def cmd_init_db(ctx: Context, args: argparse.Namespace) -> None:
    print(f"Database ready: {ctx.settings.db_path}")
    if ctx.catalog.is_available:
        print(f"Catalog: {ctx.catalog.name}")
    else:
        print("Catalog: not configured")


def cmd_ingest(ctx: Context, args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        listing = json.load(f)

    listing_id = int(listing["id"])
    if not ctx.listings.exists(listing_id):
        ctx.listings.add(
            listing_id,
            title=listing.get("title", ""),
            description=strip_listing_html(listing.get("description") or ""),
            item_type=listing.get("item_type"),
        )
    outcome = ctx.resolution_service.resolve_listing(listing_id)
    print(f"Listing: {listing_id}")
    print(f"Status: {outcome.decision.action.value}")
    if outcome.resolution is not None:
        print(f"Artisan: {outcome.resolution.artisan_code} ({outcome.resolution.confidence.value})")


def cmd_resolve(ctx: Context, args: argparse.Namespace) -> None:
    outcome = ctx.resolution_service.resolve_listing(
        args.listing_id, domain_filter=args.domain, re_resolve=args.re_resolve
    )
    print(f"Status: {outcome.decision.action.value} ({outcome.decision.reason})")
    if outcome.resolution is not None:
        _print_json(outcome.resolution.to_dict())


def cmd_candidates(ctx: Context, args: argparse.Namespace) -> None:
    result = ArtisanResolver(ctx.catalog, limit=args.limit).resolve(args.text, args.domain or "any")
    print(f"Confidence: {result.confidence.value}")
    if not result.candidates:
        print("No candidates.")
        return
    for c in result.candidates:
        print(f"  {c.code:<16} {c.score:.3f}  {c.method}")


def cmd_search(ctx: Context, args: argparse.Namespace) -> None:
    result = search_catalog(ctx.catalog, args.q, domain_filter=args.type, limit=args.limit)
    if result.message:
        print(result.message)
    for r in result.results:
        notability = f"{r.notability:.2f}" if r.notability is not None else "-"
        print(f"  {r.code:<16} {r.display_name or r.name_romaji or ''}  [{notability}]")


def cmd_show(ctx: Context, args: argparse.Namespace) -> None:
    _print_json(get_artisan_details(ctx.catalog, args.code).to_dict())


def cmd_verify(ctx: Context, args: argparse.Namespace) -> None:
    status = None if args.status == "null" else args.status
    resolution = ctx.corrections.verify(args.listing_id, status, _actor(args), expected_version=args.expected_version)
    print(f"Verified: {resolution.verified.value if resolution.verified else 'null'} ({resolution.state.value})")


def cmd_fix(ctx: Context, args: argparse.Namespace) -> None:
    resolution = ctx.corrections.fix_artisan(
        args.listing_id, args.code, args.confidence, _actor(args), expected_version=args.expected_version
    )
    print(f"Artisan: {resolution.artisan_code} ({resolution.confidence.value}, {resolution.state.value})")


def cmd_unknown(ctx: Context, args: argparse.Namespace) -> None:
    resolution = ctx.corrections.mark_unknown(args.listing_id, _actor(args))
    print(f"Artisan: {resolution.artisan_code} ({resolution.state.value})")


def cmd_hide(ctx: Context, args: argparse.Namespace) -> None:
    hidden = ctx.corrections.toggle_visibility(args.listing_id, _actor(args))
    print(f"Listing {args.listing_id} hidden: {hidden}")


def cmd_rebuild(ctx: Context, args: argparse.Namespace) -> None:
    counts = rebuild_resolutions(
        ctx.listings.iter_listings(),
        ctx.resolution_service,
        re_resolve=args.re_resolve,
        limit=args.limit,
    )
    print("Done. " + " ".join(f"{k}={v}" for k, v in sorted(counts.items())))


def cmd_metrics(ctx: Context, args: argparse.Namespace) -> None:
    tiers: Counter = Counter()
    states: Counter = Counter()
    total = 0
    for resolution in ctx.resolutions.iter_all():
        total += 1
        tiers[resolution.confidence.value] += 1
        states[resolution.state.value] += 1
    print(f"Resolutions: {total}")
    for tier in ConfidenceTier:
        share = (tiers[tier.value] / total * 100) if total else 0.0
        print(f"  {tier.value:<7} {tiers[tier.value]:>6}  {share:5.1f}%")
    print("States:")
    for state, count in sorted(states.items()):
        print(f"  {state:<20} {count:>6}")


def main():
    # Load .env if present (ARTISANMATCH_DB, catalog credentials, tokens)
    load_env()
    parser = argparse.ArgumentParser(prog="artisanmatch", description="Artisan identity resolution for sword and tosogu listings")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to resolution database (default: $ARTISANMATCH_DB or data/artisanmatch.db)")
    parser.add_argument("--catalog-db", help="Path to a local SQLite artisan catalog (default: $CATALOG_DB)")

    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init-db", help="Create database tables")
    ini.set_defaults(func=cmd_init_db)

    ing = subparsers.add_parser("ingest", help="Store a listing JSON and resolve its artisan")
    ing.add_argument("--input", required=True, help="Path to listing JSON ({id, title, description, item_type})")
    ing.set_defaults(func=cmd_ingest)

    res = subparsers.add_parser("resolve", help="Run automated resolution for a stored listing")
    res.add_argument("--listing-id", type=int, required=True)
    res.add_argument("--domain", choices=["sword", "tosogu", "any"], help="Override the domain derived from item type")
    res.add_argument("--re-resolve", action="store_true", help="Replace human-verified resolutions and clear verification")
    res.set_defaults(func=cmd_resolve)

    cand = subparsers.add_parser("candidates", help="Show ranked candidates for free text")
    cand.add_argument("--text", required=True)
    cand.add_argument("--domain", choices=["sword", "tosogu", "any"])
    cand.add_argument("--limit", type=int, default=MAX_CANDIDATES)
    cand.set_defaults(func=cmd_candidates)

    srch = subparsers.add_parser("search", help="Search the artisan catalog")
    srch.add_argument("--q", required=True, help="Query (at least 2 characters)")
    srch.add_argument("--type", choices=["smith", "tosogu", "all"], default="all")
    srch.add_argument("--limit", type=int, default=20)
    srch.set_defaults(func=cmd_search)

    shw = subparsers.add_parser("show", help="Show an artisan profile")
    shw.add_argument("--code", required=True)
    shw.set_defaults(func=cmd_show)

    ver = subparsers.add_parser("verify", help="Toggle verification of a listing's artisan")
    ver.add_argument("--listing-id", type=int, required=True)
    ver.add_argument("--status", choices=["correct", "incorrect", "null"], required=True)
    ver.add_argument("--user", required=True, help="Reviewer id recorded as verified_by")
    ver.add_argument("--expected-version", type=int)
    ver.set_defaults(func=cmd_verify)

    fix = subparsers.add_parser("fix", help="Assign an artisan to a listing")
    fix.add_argument("--listing-id", type=int, required=True)
    fix.add_argument("--code", required=True, help="Artisan code or UNKNOWN")
    fix.add_argument("--confidence", choices=[t.value for t in ConfidenceTier], default="HIGH")
    fix.add_argument("--user", required=True)
    fix.add_argument("--expected-version", type=int)
    fix.set_defaults(func=cmd_fix)

    unk = subparsers.add_parser("unknown", help="Mark a listing's artisan as UNKNOWN")
    unk.add_argument("--listing-id", type=int, required=True)
    unk.add_argument("--user", required=True)
    unk.set_defaults(func=cmd_unknown)

    hide = subparsers.add_parser("hide", help="Toggle a listing's visibility")
    hide.add_argument("--listing-id", type=int, required=True)
    hide.add_argument("--user", required=True)
    hide.set_defaults(func=cmd_hide)

    reb = subparsers.add_parser("rebuild", help="Re-run automated resolution over all listings")
    reb.add_argument("--re-resolve", action="store_true", help="Also replace human-verified resolutions")
    reb.add_argument("--limit", type=int, help="Optional limit on number of listings")
    reb.set_defaults(func=cmd_rebuild)

    met = subparsers.add_parser("metrics", help="Confidence tier distribution of stored resolutions")
    met.set_defaults(func=cmd_metrics)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    ctx = Context(_settings(args))
    try:
        args.func(ctx, args)
    except ResolutionError as e:
        get_logger().record_error(type(e).__name__)
        raise SystemExit(f"[{e.reason}] {e.message}")


if __name__ == "__main__":
    main()
