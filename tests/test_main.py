import json

import pytest
from conftest import FakeFetcher, make_document, make_row

import imgpreview.main as cli
from imgpreview.anilist_client import RatingFetchResult
from imgpreview.blob_store import MemoryBlobStore
from imgpreview.pipeline import build_pipeline


@pytest.fixture(autouse=True)
def _data_paths(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "PREFERENCES_PATH", tmp_path / "preferences.json")
    monkeypatch.setattr(cli, "FAVORITES_PATH", tmp_path / "favorites.json")
    monkeypatch.setattr(cli, "RATING_CACHE_PATH", tmp_path / "rating_cache.json")
    return tmp_path


def test_set_size_validates_and_persists(tmp_path):
    assert cli.main(["set-size", "80"]) == 0
    assert json.loads((tmp_path / "preferences.json").read_text(encoding="utf-8")) == {"imageSize": "80px"}

    assert cli.main(["set-size", "huge"]) == 1
    assert json.loads((tmp_path / "preferences.json").read_text(encoding="utf-8")) == {"imageSize": "80px"}


def test_set_padding(tmp_path):
    assert cli.main(["set-padding", "4px 2px"]) == 0
    assert json.loads((tmp_path / "preferences.json").read_text(encoding="utf-8")) == {"padding": "4px 2px"}
    assert cli.main(["set-padding", "  "]) == 1


def test_favorite_toggle_list_and_clear(tmp_path, capsys, monkeypatch):
    assert cli.main(["favorite", "Show — 03"]) == 0
    assert "favorite" in capsys.readouterr().out

    assert cli.main(["favorites"]) == 0
    assert "Show" in capsys.readouterr().out

    monkeypatch.setattr("builtins.input", lambda _prompt="": "n")
    assert cli.main(["clear-favorites"]) == 0
    assert (tmp_path / "favorites.json").exists()

    assert cli.main(["clear-favorites", "--yes"]) == 0
    assert not (tmp_path / "favorites.json").exists()


def test_cache_listing(tmp_path, capsys):
    (tmp_path / "rating_cache.json").write_text(
        json.dumps({"Show": {"score": 81, "timestamp": 0}, "Other": {"score": None, "timestamp": 0}}),
        encoding="utf-8",
    )
    assert cli.main(["cache"]) == 0
    out = capsys.readouterr().out
    assert "Show: 81%" in out
    assert "Other: N/A" in out


def test_enrich_writes_output(tmp_path, monkeypatch):
    fetcher = FakeFetcher(default=RatingFetchResult(score=90))
    monkeypatch.setattr(
        cli,
        "build_pipeline",
        lambda doc: build_pipeline(
            doc,
            fetcher=fetcher,
            cache_blob=MemoryBlobStore(),
            favorites_blob=MemoryBlobStore(),
            prefs_blob=MemoryBlobStore(),
        ),
    )
    page = tmp_path / "releases.html"
    page.write_text(str(make_document(make_row("Listed - 12"))), encoding="utf-8")

    assert cli.main(["enrich", str(page)]) == 0

    out = (tmp_path / "releases.enriched.html").read_text(encoding="utf-8")
    assert "sp-img-wrapper" in out
    assert "⭐ 90%" in out
    assert fetcher.calls == ["Listed"]


def test_enrich_missing_input(tmp_path):
    assert cli.main(["enrich", str(tmp_path / "nope.html")]) == 1
