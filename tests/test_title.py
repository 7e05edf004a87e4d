"""Tests for local title derivation and cleanup."""

import pytest

from title import clean_title, fallback_title


def test_fallback_uses_first_line() -> None:
    """Ensure the fallback keeps only the first line."""
    assert fallback_title("请优化此方案\n详情...") == "请优化此方案"


def test_fallback_truncates_long_line() -> None:
    """Ensure long first lines are cut to 30 characters plus an ellipsis."""
    line = "x" * 45
    assert fallback_title(line) == "x" * 30 + "..."


def test_fallback_exactly_thirty_characters() -> None:
    """Ensure a 30 character line is kept whole."""
    line = "y" * 30
    assert fallback_title(line) == line


def test_fallback_skips_leading_empty_lines() -> None:
    """Ensure empty leading lines are skipped and the result trimmed."""
    assert fallback_title("\n\n  Roadmap draft  \nmore") == "Roadmap draft"


@pytest.mark.parametrize("text", ["", "\n\n"])
def test_fallback_blank_text(text: str) -> None:
    """Ensure blank input yields an empty title rather than an error."""
    assert fallback_title(text) == ""


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('"Quarterly Report"', "Quarterly Report"),
        ("'Pitch Deck'", "Pitch Deck"),
        ("  Trim me  ", "Trim me"),
        ("A title that is far too long for the list", "A title that is far"),
    ],
)
def test_clean_title(raw: str, expected: str) -> None:
    """Ensure model titles are unquoted and capped at 20 characters."""
    assert clean_title(raw) == expected
