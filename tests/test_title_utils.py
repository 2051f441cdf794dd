import pytest

from imgpreview.title_utils import normalize_size, normalize_title


@pytest.mark.parametrize(
    "raw",
    [
        "Show Name — 01",
        "Show Name - 01-12",
        "Show Name (Batch)",
        "Show Name (batch)",
        "Show Name – 07",
        "  Show Name -03  ",
        "Show Name (Batch) - 01",
    ],
)
def test_normalize_title_strips_suffixes(raw):
    assert normalize_title(raw) == "Show Name"


def test_normalize_title_passthrough_and_empty():
    assert normalize_title("Mob Psycho 100") == "Mob Psycho 100"
    assert normalize_title("Re:Zero kara Hajimeru") == "Re:Zero kara Hajimeru"
    assert normalize_title("") == ""
    assert normalize_title(None) == ""
    assert normalize_title(" - 01") == ""
    assert normalize_title("(Batch)") == ""


@pytest.mark.parametrize(
    "raw",
    ["Show - 1 - 2 - 3", "A (Batch) (Batch)", "Title — 05 (Batch)", "Plain", "", "x - 01-02-03"],
)
def test_normalize_title_is_idempotent(raw):
    once = normalize_title(raw)
    assert normalize_title(once) == once


def test_normalize_size():
    assert normalize_size(64) == "64px"
    assert normalize_size("80") == "80px"
    assert normalize_size(" 96px ") == "96px"
    assert normalize_size("big") == "64px"
    assert normalize_size(None) == "64px"
    assert normalize_size(True) == "64px"
    assert normalize_size(-5) == "64px"
