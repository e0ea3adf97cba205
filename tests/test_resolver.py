"""
Tests for candidate retrieval and resolution orchestration.
"""

import pytest

from artisanmatch.errors import InvalidInputError
from artisanmatch.models import ArtisanRecord, ConfidenceTier, DomainFilter
from pipelines.entity_resolution.resolver import ArtisanResolver, retrieve_candidates
from storage.repositories.catalog import InMemoryCatalogStore


class TestRetrieve:
    """Ranking, filtering and truncation of candidates."""

    def test_code_in_text(self, resolver):
        candidates = resolver.retrieve("Tsuba attributed TOK123 papers")
        assert [c.code for c in candidates] == ["TOK123"]
        assert candidates[0].score == 1.0
        assert candidates[0].method == "CODE_EXACT"

    def test_equal_scores_ordered_by_notability(self, resolver):
        candidates = resolver.retrieve("Katana by Masamune", DomainFilter.SWORD, limit=5)
        assert [c.code for c in candidates] == ["MAS590", "MAS612", "MAS700"]
        assert all(c.score == 0.93 for c in candidates)

    def test_domain_filter_any_includes_tosogu(self, resolver):
        candidates = resolver.retrieve("Katana by Masamune", "any")
        assert [c.code for c in candidates] == ["MAS900", "MAS590", "MAS612", "MAS700"]

    def test_tosogu_filter(self, resolver):
        candidates = resolver.retrieve("Katana by Masamune", "tosogu")
        assert [c.code for c in candidates] == ["MAS900"]

    def test_limit(self, resolver):
        candidates = resolver.retrieve("Katana by Masamune", "smith", limit=2)
        assert [c.code for c in candidates] == ["MAS590", "MAS612"]

    def test_generation_hint_reorders(self, resolver):
        candidates = resolver.retrieve("Hizen Tadayoshi 2nd generation")
        assert [c.code for c in candidates[:2]] == ["TOK124", "TOK123"]

    def test_individual_before_school_code(self):
        catalog = InMemoryCatalogStore([
            ArtisanRecord(code="NS-KoBizen", name_romaji="Ko Bizen", is_school_code=True, notability=5.0),
            ArtisanRecord(code="KOB001", name_romaji="Ko Bizen", notability=0.1),
        ])
        candidates = ArtisanResolver(catalog).retrieve("Ko Bizen tachi")
        assert [c.code for c in candidates] == ["KOB001", "NS-KoBizen"]

    def test_ties_broken_by_code(self):
        catalog = InMemoryCatalogStore([
            ArtisanRecord(code="KAN002", name_romaji="Kanesada"),
            ArtisanRecord(code="KAN001", name_romaji="Kanesada"),
        ])
        candidates = ArtisanResolver(catalog).retrieve("Wakizashi Kanesada")
        assert [c.code for c in candidates] == ["KAN001", "KAN002"]

    def test_code_with_long_letter_prefix(self):
        catalog = InMemoryCatalogStore([
            ArtisanRecord(code="NOBUKUNI1", name_romaji="Nobukuni", generation="1st", notability=0.8),
            ArtisanRecord(code="NOB002", name_romaji="Nobukuni", generation="2nd"),
        ])
        resolver = ArtisanResolver(catalog)

        candidates = resolver.retrieve("Papers attribute this blade to NOBUKUNI1")
        assert candidates[0].code == "NOBUKUNI1"
        assert candidates[0].method == "CODE_EXACT"
        assert resolver.resolve("Papers attribute this blade to NOBUKUNI1").confidence == ConfidenceTier.HIGH

    def test_generation_bonus_stays_below_kanji_band(self):
        catalog = InMemoryCatalogStore([
            ArtisanRecord(code="AAA001", name_romaji="Sukesada", generation="2nd"),
            ArtisanRecord(code="BBB001", name_romaji="Norimitsu", name_kanji="則光"),
        ])
        candidates = ArtisanResolver(catalog).retrieve("Sukesada 2nd generation, also 則光")
        assert [(c.code, c.method) for c in candidates] == [
            ("BBB001", "KANJI_EXACT"),
            ("AAA001", "ROMAJI_EXACT"),
        ]
        assert candidates[0].score > candidates[1].score

    def test_html_description(self, resolver):
        candidates = resolver.retrieve("<p>Signed <b>正宗</b></p>")
        assert candidates[0].code == "MAS590"
        assert candidates[0].method == "KANJI_EXACT"

    @pytest.mark.parametrize("text", [
        "Katana by Masamune",
        "Katana by Masamume",
        "Hizen Tadayoshi 2nd generation",
        "Tsuba by Goto Ichijo, Goto school",
        "Soshu tradition, attributed to Masamune or Rai Kunitoshi",
    ])
    def test_scores_non_increasing(self, resolver, text):
        scores = [c.score for c in resolver.retrieve(text)]
        assert scores
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    def test_no_match(self, resolver):
        assert resolver.retrieve("Antique lacquer box, Edo period") == []

    @pytest.mark.parametrize("text", ["", "a", " b "])
    def test_short_text_rejected(self, resolver, text):
        with pytest.raises(InvalidInputError):
            resolver.retrieve(text)

    def test_bad_domain_rejected(self, resolver):
        with pytest.raises(InvalidInputError):
            resolver.retrieve("Masamune", "armor")

    def test_module_function(self, catalog):
        candidates = retrieve_candidates(catalog, "Katana by Masamune", "smith", limit=1)
        assert [c.code for c in candidates] == ["MAS590"]


class TestResolve:
    """Tiering and explanation of a full run."""

    def test_high_for_unique_kanji(self, resolver):
        result = resolver.resolve("<p>Signed <b>正宗</b></p>")
        assert result.confidence == ConfidenceTier.HIGH
        assert result.artisan_code == "MAS590"
        assert result.method == "KANJI_EXACT"

    def test_medium_for_ambiguous_name(self, resolver):
        result = resolver.resolve("Katana by Masamune", "sword")
        assert result.confidence == ConfidenceTier.MEDIUM
        assert result.explanation[0] == "MAS590: ROMAJI_EXACT (0.93)"

    def test_medium_for_fuzzy(self, resolver):
        result = resolver.resolve("Katana by Masamume", "sword")
        assert result.method == "ROMAJI_FUZZY"
        assert result.confidence == ConfidenceTier.MEDIUM

    def test_none_for_no_candidates(self, resolver):
        result = resolver.resolve("Antique lacquer box, Edo period")
        assert result.confidence == ConfidenceTier.NONE
        assert result.top is None
        assert result.artisan_code is None

    def test_records_tier_metric(self, resolver):
        from pipelines.entity_resolution import resolver as resolver_module

        before = resolver_module.logger.metrics["resolutions_by_tier"].get("HIGH", 0)
        resolver.resolve("Papers: TOK123")
        assert resolver_module.logger.metrics["resolutions_by_tier"]["HIGH"] == before + 1

    def test_index_rebuilt_after_refresh(self, resolver, catalog):
        first = resolver._current_index()
        assert resolver._current_index() is first
        catalog.refresh()
        assert resolver._current_index() is not first
