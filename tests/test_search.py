"""
Tests for catalog search used by the correction UI.
"""

import pytest

from artisanmatch.database import Artisan
from artisanmatch.errors import InvalidInputError
from artisanmatch.models import ArtisanRecord
from artisanmatch.search import NOT_CONFIGURED_MESSAGE, clamp_limit, search_catalog
from storage.repositories.catalog import InMemoryCatalogStore, UnavailableCatalogStore


def _codes(result):
    return [r.code for r in result.results]


class TestSearchCatalog:
    """In-memory catalog search."""

    @pytest.mark.parametrize("query", ["", "M", " a ", None])
    def test_short_query_rejected(self, catalog, query):
        with pytest.raises(InvalidInputError):
            search_catalog(catalog, query)

    def test_ranked_by_notability(self, catalog):
        result = search_catalog(catalog, "Masamune", "smith", limit=5)
        assert _codes(result) == ["MAS590", "MAS612", "MAS700"]
        assert result.total == 3
        assert result.message is None

    def test_all_domains(self, catalog):
        result = search_catalog(catalog, "masamune", "all")
        assert _codes(result)[0] == "MAS900"

    def test_kanji(self, catalog):
        assert _codes(search_catalog(catalog, "正宗")) == ["MAS590"]

    def test_macrons_ignored(self, catalog):
        assert _codes(search_catalog(catalog, "Goto Ichijo", "tosogu")) == ["GOT042"]

    def test_hyphenated_query_matches_normalized_name(self, catalog):
        assert _codes(search_catalog(catalog, "goto-ichijo", "tosogu")) == ["GOT042"]

    def test_wildcards_not_normalized_away(self, sample_artisans):
        store = InMemoryCatalogStore(sample_artisans + [
            ArtisanRecord(code="ZZZ002", name_romaji="Lot 50% off_ sale"),
            ArtisanRecord(code="ZZZ003", name_romaji="50 offa", name_romaji_normalized="50 offa"),
        ])
        assert _codes(search_catalog(store, "50% off_")) == ["ZZZ002"]

    def test_code_search(self, catalog):
        assert "TOK123" in _codes(search_catalog(catalog, "tok12"))

    def test_no_matches(self, catalog):
        result = search_catalog(catalog, "Kotetsu")
        assert result.results == []
        assert result.total == 0
        assert result.message == 'No artisans found for "Kotetsu"'
        assert result.to_dict()["message"] == result.message

    def test_limit_clamped(self, catalog):
        assert len(search_catalog(catalog, "Masamune", limit=0).results) == 1
        assert len(search_catalog(catalog, "Masamune", limit=500).results) == 4

    def test_bad_type(self, catalog):
        with pytest.raises(InvalidInputError):
            search_catalog(catalog, "Masamune", "armor")

    def test_to_dict(self, catalog):
        data = search_catalog(catalog, "Tadayoshi").to_dict()
        assert data["query"] == "Tadayoshi"
        assert data["total"] == 2
        assert data["results"][0]["code"] == "TOK123"
        assert data["results"][0]["type"] == "smith"
        assert "configured" not in data


class TestUnavailableCatalog:
    """An unprovisioned catalog is a flagged empty result, not an error."""

    def test_soft_result(self):
        result = search_catalog(UnavailableCatalogStore(), "Masamune")
        assert result.results == []
        assert result.configured is False
        assert result.message == NOT_CONFIGURED_MESSAGE
        assert result.to_dict()["configured"] is False

    def test_still_validates_query(self):
        with pytest.raises(InvalidInputError):
            search_catalog(UnavailableCatalogStore(), "M")


class TestSqlSearch:
    """Search against the artisans table."""

    def test_ranked_by_notability(self, sql_catalog):
        result = search_catalog(sql_catalog, "Masamune", "smith")
        assert _codes(result) == ["MAS590", "MAS612", "MAS700"]

    def test_domain_filter(self, sql_catalog):
        assert _codes(search_catalog(sql_catalog, "masamune", "tosogu")) == ["MAS900"]

    def test_both_domain_included(self, sql_catalog):
        assert _codes(search_catalog(sql_catalog, "Umetada", "tosogu")) == ["UME010"]
        assert _codes(search_catalog(sql_catalog, "Umetada", "smith")) == ["UME010"]

    def test_kanji(self, sql_catalog):
        assert _codes(search_catalog(sql_catalog, "忠吉")) == ["TOK123", "TOK124"]

    def test_wildcards_are_literal(self, sql_catalog, session_factory):
        with session_factory() as session:
            session.add(Artisan(code="ZZZ001", name_romaji="50 cents off!"))
            session.add(Artisan(code="ZZZ002", name_romaji="Lot 50% off_ sale"))
            session.commit()

        assert _codes(search_catalog(sql_catalog, "50% off_")) == ["ZZZ002"]

    def test_wildcards_not_normalized_away(self, sql_catalog, session_factory):
        with session_factory() as session:
            session.add(Artisan(code="ZZZ002", name_romaji="Lot 50% off_ sale"))
            session.add(Artisan(code="ZZZ003", name_romaji="50 offa", name_romaji_normalized="50 offa"))
            session.commit()

        assert _codes(search_catalog(sql_catalog, "50% off_")) == ["ZZZ002"]

    def test_hyphenated_query(self, sql_catalog):
        assert _codes(search_catalog(sql_catalog, "goto-ichijo", "tosogu")) == ["GOT042"]

    def test_limit(self, sql_catalog):
        assert len(search_catalog(sql_catalog, "Masamune", limit=2).results) == 2


class TestClampLimit:
    @pytest.mark.parametrize("limit,expected", [(None, 20), (0, 1), (-3, 1), (7, 7), (50, 50), (500, 50)])
    def test_clamp(self, limit, expected):
        assert clamp_limit(limit) == expected
