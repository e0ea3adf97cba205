"""
Tests for the resolution backfill.
"""

from artisanmatch.models import VerificationStatus
from pipelines.backfill.full_rebuild import rebuild_resolutions


class TestRebuildResolutions:
    """Replays keep human decisions unless asked not to."""

    def test_first_rebuild_inserts(self, listings, resolution_service, resolutions):
        counts = rebuild_resolutions(listings.iter_listings(), resolution_service)
        assert counts == {"insert": 3, "processed": 3}
        assert resolutions.get(42).artisan_code == "MAS590"

    def test_rebuild_is_idempotent(self, listings, resolution_service, resolutions):
        rebuild_resolutions(listings.iter_listings(), resolution_service)
        first = [r.artisan_code for r in resolutions.iter_all()]

        counts = rebuild_resolutions(listings.iter_listings(), resolution_service)

        assert counts == {"replace": 3, "processed": 3}
        assert [r.artisan_code for r in resolutions.iter_all()] == first

    def test_human_rows_survive(self, listings, resolution_service, resolutions, corrections, admin):
        rebuild_resolutions(listings.iter_listings(), resolution_service)
        corrections.fix_artisan(42, "MAS612", "HIGH", admin)

        counts = rebuild_resolutions(listings.iter_listings(), resolution_service)

        assert counts["skip_human"] == 1
        assert resolutions.get(42).artisan_code == "MAS612"

    def test_re_resolve_overrides(self, listings, resolution_service, resolutions, corrections, admin):
        rebuild_resolutions(listings.iter_listings(), resolution_service)
        corrections.verify(42, "correct", admin)

        counts = rebuild_resolutions(listings.iter_listings(), resolution_service, re_resolve=True)

        assert counts["re_resolve"] == 1
        assert resolutions.get(42).verified is None

    def test_limit(self, listings, resolution_service, resolutions):
        counts = rebuild_resolutions(listings.iter_listings(), resolution_service, limit=1)
        assert counts["processed"] == 1
        assert resolutions.get(43) is None

    def test_short_listing_counted_invalid(self, listings, resolution_service):
        listings.add(45, title="?")
        counts = rebuild_resolutions(listings.iter_listings(), resolution_service)
        assert counts["invalid"] == 1
        assert counts["processed"] == 4

    def test_verified_status_untouched_without_flag(self, listings, resolution_service, resolutions, corrections, admin):
        rebuild_resolutions(listings.iter_listings(), resolution_service)
        corrections.verify(43, "incorrect", admin)
        rebuild_resolutions(listings.iter_listings(), resolution_service)
        assert resolutions.get(43).verified == VerificationStatus.INCORRECT

    def test_limit_stops_reading_listings(self, listings, resolution_service):
        def stream():
            yield from listings.iter_listings()
            raise AssertionError("rebuild read past its limit")

        counts = rebuild_resolutions(stream(), resolution_service, limit=3)
        assert counts["processed"] == 3

    def test_listings_not_reordered(self, listings, resolution_service):
        seen = []
        original = resolution_service.resolve_listing

        def recording(listing_id, **kwargs):
            seen.append(listing_id)
            return original(listing_id, **kwargs)

        resolution_service.resolve_listing = recording
        ordered = list(listings.iter_listings())
        rebuild_resolutions(reversed(ordered), resolution_service)
        assert seen == [l.id for l in reversed(ordered)]
