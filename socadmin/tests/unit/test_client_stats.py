from __future__ import annotations

from datetime import datetime, timedelta, timezone

from socadmin.services.clients import client_settings, summarize_assets, summarize_events
from socadmin.tests.utils.fakes import make_asset, make_client


def test_summarize_assets_counts_status_and_vulnerable() -> None:
    stats = summarize_assets(
        [
            make_asset(status="online", vulnerabilities=[{"name": "x"}]),
            make_asset(status="offline"),
            make_asset(status="maintenance", vulnerabilities=[{"name": "y"}]),
        ]
    )
    assert (stats.total, stats.online, stats.offline, stats.vulnerable) == (3, 1, 1, 2)


def test_summarize_events_buckets_severity_and_tracks_latest() -> None:
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    events, last_activity = summarize_events(
        [("critical", now - timedelta(days=2)), ("low", now), ("info", now - timedelta(days=1))]
    )
    assert events.total == 3
    assert events.by_severity == {"critical": 1, "high": 0, "medium": 0, "low": 1}
    assert last_activity == now


def test_summarize_events_without_events() -> None:
    events, last_activity = summarize_events([])
    assert events.total == 0
    assert last_activity is None


def test_client_settings_defaults_status() -> None:
    client = make_client()
    client.settings_json = {"edr_endpoint": "https://edr.example"}
    assert client_settings(client) == {"status": "active", "edr_endpoint": "https://edr.example"}
