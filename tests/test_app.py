"""
Tests for the command line entry point.
"""

import json
import sys

import pytest

from artisanmatch.app import main


@pytest.fixture
def run(tmp_path, db_path, sql_catalog, monkeypatch, capsys):
    """Invoke the CLI against a fresh resolution db and the sample catalog."""
    resolution_db = tmp_path / "resolutions.db"

    def _run(*argv):
        monkeypatch.setattr(sys, "argv", ["artisanmatch", "--db", str(resolution_db), "--catalog-db", str(db_path), *argv])
        main()
        return capsys.readouterr().out

    return _run


@pytest.fixture
def listing_file(tmp_path):
    path = tmp_path / "listing.json"
    path.write_text(json.dumps({
        "id": 7,
        "title": "Katana, mei: 正宗",
        "description": "<p>Sagami, <b>Kamakura</b> period</p>",
        "item_type": "katana",
    }), encoding="utf-8")
    return path


class TestCli:
    """End-to-end runs of the main subcommands."""

    def test_version(self, run):
        assert "0.1.0" in run("--version")

    def test_init_db(self, run):
        out = run("init-db")
        assert "Database ready" in out
        assert "Catalog: sql" in out

    def test_ingest_then_verify(self, run, listing_file):
        out = run("ingest", "--input", str(listing_file))
        assert "Status: insert" in out
        assert "Artisan: MAS590 (HIGH)" in out

        out = run("verify", "--listing-id", "7", "--status", "correct", "--user", "ops")
        assert "Verified: correct (RESOLVED_VERIFIED)" in out

        out = run("resolve", "--listing-id", "7")
        assert "Status: skip_human" in out

    def test_fix_and_unknown(self, run, listing_file):
        run("ingest", "--input", str(listing_file))
        assert "Artisan: MAS612 (MEDIUM, RESOLVED_CORRECTED)" in run(
            "fix", "--listing-id", "7", "--code", "MAS612", "--confidence", "MEDIUM", "--user", "ops"
        )
        assert "Artisan: UNKNOWN" in run("unknown", "--listing-id", "7", "--user", "ops")

    def test_unknown_code_exits_with_reason(self, run, listing_file):
        run("ingest", "--input", str(listing_file))
        with pytest.raises(SystemExit) as exc_info:
            run("fix", "--listing-id", "7", "--code", "ZZZ999", "--user", "ops")
        assert "[unknown_artisan_code]" in str(exc_info.value)

    def test_search(self, run):
        out = run("search", "--q", "Masamune", "--type", "smith")
        assert out.index("MAS590") < out.index("MAS612") < out.index("MAS700")

    def test_candidates(self, run):
        out = run("candidates", "--text", "Hizen Tadayoshi 2nd generation")
        assert "Confidence: MEDIUM" in out
        assert out.index("TOK124") < out.index("TOK123")

    def test_show(self, run):
        out = run("show", "--code", "RAI001")
        data = json.loads(out[out.index("{"):])
        assert data["students"][0]["code"] == "NOBUKUNI1"

    def test_metrics(self, run, listing_file):
        run("ingest", "--input", str(listing_file))
        out = run("metrics")
        assert "Resolutions: 1" in out
        assert "RESOLVED_AUTO" in out
