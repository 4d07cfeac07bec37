"""Tests for naive-UTC helpers."""

from datetime import datetime, timedelta, timezone

from leadmarket.domain.timeutil import utcnow


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_utcnow_tracks_utc_clock():
    aware = datetime.now(timezone.utc).replace(tzinfo=None)
    assert abs(utcnow() - aware) < timedelta(seconds=5)
