"""Tests for settings and datetime helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from church_notify.config import Settings
from church_notify.utils import parse_iso_datetime
from church_notify.utils.datetime import _resolve_timezone


def test_environment_is_normalized() -> None:
    settings = Settings(secret_key="k", environment=" Production ")

    assert settings.environment == "production"
    assert settings.is_production


def test_stream_defaults() -> None:
    settings = Settings(secret_key="k")

    assert settings.heartbeat_interval_seconds == 30.0
    assert settings.stream_max_lifetime_seconds == 290.0
    assert settings.stream_history_limit == 100
    assert settings.initial_notifications_limit == 20


def test_parse_iso_datetime_handles_zulu_and_naive_values() -> None:
    zulu = parse_iso_datetime("2026-03-01T10:00:00Z")
    naive = parse_iso_datetime("2026-03-01T10:00:00")

    assert zulu == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert naive == zulu
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("") is None


def test_resolve_timezone_accepts_offsets() -> None:
    assert _resolve_timezone("UTC-05:00").utcoffset(None) == timedelta(hours=-5)
    assert _resolve_timezone("Not/AZone") is timezone.utc
