"""Tests for timestamp helpers."""

from datetime import timezone

import pytest

from kaiban_board.utils.timestamps import parse_iso, utc_now_iso


def test_utc_now_iso_format():
    value = utc_now_iso()
    assert value.endswith("Z")
    assert len(value.split(".")[1]) == 4  # milliseconds plus Z


@pytest.mark.parametrize("value", [
    "2024-01-01T00:00:00.000Z",
    "2024-01-01T00:00:00+00:00",
    "2024-01-01",
])
def test_parse_iso_is_aware(value):
    parsed = parse_iso(value)
    assert parsed.tzinfo is not None
    assert parsed.astimezone(timezone.utc).year == 2024


@pytest.mark.parametrize("value", ["", "yesterday", "v1.2.0"])
def test_parse_iso_invalid(value):
    assert parse_iso(value) is None


def test_round_trip():
    assert parse_iso(utc_now_iso()) is not None
