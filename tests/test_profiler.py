"""Tests for the profiler module."""

from datetime import datetime, timezone

import pytest

from device_beacon.environment import ConnectionHints, EnvironmentSignals
from device_beacon.profiler import (
    collect_profile,
    describe_connection,
    detect_browser,
    detect_os,
    format_iso_timestamp,
    format_local_time,
    is_mobile,
)

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.2210.91"
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
)
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.6099.144 Mobile Safari/537.36"
)
IE11 = "Mozilla/5.0 (Windows NT 10.0; WOW64; Trident/7.0; rv:11.0) like Gecko"

FIXED_NOW = datetime(2026, 10, 19, 14, 30, 5, 123000, tzinfo=timezone.utc)


# ── OS ──────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("agent", "expected"),
    [
        (CHROME_WINDOWS, "Windows"),
        (CHROME_ANDROID, "Android"),
        (SAFARI_MAC, "macOS (Apple)"),
        (FIREFOX_LINUX, "Linux"),
        ("Mozilla/5.0 (X11; CrOS x86_64 14541.0.0)", "Chrome OS"),
        ("SomeApp (iPad; CPU OS 17_2)", "iOS (Apple)"),
        ("curl/8.4.0", "Unknown/Other"),
    ],
)
def test_detect_os(agent: str, expected: str) -> None:
    assert detect_os(agent) == expected


def test_android_wins_over_linux() -> None:
    """Android agents also say Linux; Android is checked first."""
    assert detect_os("Linux; Android 13") == "Android"


def test_windows_checked_before_android() -> None:
    assert detect_os("Windows Phone 10.0; Android 6.0") == "Windows"


def test_iphone_agent_matches_mac_first() -> None:
    """iPhone agents contain 'like Mac OS X', which matches earlier in the order."""
    agent = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X)"
    assert detect_os(agent) == "macOS (Apple)"


# ── browser ─────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("agent", "expected"),
    [
        (CHROME_WINDOWS, "Chrome (v120)"),
        (EDGE_WINDOWS, "Edge (v120)"),
        (FIREFOX_LINUX, "Firefox (v121)"),
        (SAFARI_MAC, "Safari (v17)"),
        (IE11, "Internet Explorer"),
        ("Mozilla/4.0 (compatible; MSIE 8.0)", "Internet Explorer"),
        ("curl/8.4.0", "Unknown"),
    ],
)
def test_detect_browser(agent: str, expected: str) -> None:
    assert detect_browser(agent) == expected


def test_edge_excluded_from_chrome() -> None:
    assert detect_browser("Chrome/119 Edg/119") == "Edge (v119)"


def test_browser_without_version_is_bare_name() -> None:
    assert detect_browser("Some Safari build") == "Safari"


# ── device class ────────────────────────────────────────────────────


def test_is_mobile() -> None:
    assert is_mobile(CHROME_ANDROID)
    assert is_mobile("something IPAD something")
    assert not is_mobile(CHROME_WINDOWS)


# ── connection ──────────────────────────────────────────────────────


def test_connection_rounds_half_up() -> None:
    hints = ConnectionHints(effective_type="4g", downlink=10.25)
    assert describe_connection(hints) == "4G (10.3 Mbps)"


def test_connection_absent() -> None:
    assert describe_connection(None) == "N/A (N/A)"


def test_connection_partial() -> None:
    assert describe_connection(ConnectionHints(effective_type="3g")) == "3G (N/A)"
    assert describe_connection(ConnectionHints(downlink=1.5)) == "N/A (1.5 Mbps)"


def test_connection_zero_downlink_is_not_available() -> None:
    assert describe_connection(ConnectionHints(effective_type="slow-2g", downlink=0.0)) == (
        "SLOW-2G (N/A)"
    )


# ── timestamps ──────────────────────────────────────────────────────


def test_iso_timestamp_has_millis_and_z() -> None:
    assert format_iso_timestamp(FIXED_NOW) == "2026-10-19T14:30:05.123Z"


def test_local_time_us_style() -> None:
    assert format_local_time(FIXED_NOW, "en-US", "UTC") == "Mon, Oct 19, 2026, 02:30 PM"


def test_local_time_german_uses_german_names_and_24_hour_clock() -> None:
    rendered = format_local_time(FIXED_NOW, "de-DE", "Europe/Berlin")
    assert rendered.startswith("Mo")
    assert "Okt" in rendered
    assert rendered.endswith(", 16:30")


def test_local_time_french() -> None:
    rendered = format_local_time(FIXED_NOW, "fr-FR", "UTC")
    assert rendered.startswith("lun.")
    assert "oct." in rendered
    assert rendered.endswith("14:30")


def test_local_time_japanese() -> None:
    rendered = format_local_time(FIXED_NOW, "ja-JP", "UTC")
    assert "2026年10月19日" in rendered
    assert rendered.endswith("14:30")


def test_local_time_unknown_locale_falls_back_to_en_us() -> None:
    assert format_local_time(FIXED_NOW, "xx-YY", "UTC") == "Mon, Oct 19, 2026, 02:30 PM"


def test_local_time_defaults_to_en_us() -> None:
    assert format_local_time(FIXED_NOW, None, "UTC") == "Mon, Oct 19, 2026, 02:30 PM"


def test_local_time_unknown_zone_still_renders() -> None:
    rendered = format_local_time(FIXED_NOW, "en-GB", "Not/AZone")
    assert "Oct 2026, " in rendered


# ── full profile ────────────────────────────────────────────────────


def test_collect_profile_full() -> None:
    signals = EnvironmentSignals(
        user_agent=CHROME_ANDROID,
        screen_width=412,
        screen_height=915,
        language="en-US",
        connection=ConnectionHints(effective_type="4g", downlink=10.25),
        time_zone="UTC",
    )
    profile = collect_profile(signals, "Ada", now=FIXED_NOW)

    assert profile.name == "Ada"
    assert profile.log_timestamp == "2026-10-19T14:30:05.123Z"
    assert profile.os == "Android"
    assert profile.browser == "Chrome (v120)"
    assert profile.resolution == "412x915"
    assert profile.device_type == "Mobile/Tablet"
    assert profile.connection_speed == "4G (10.3 Mbps)"
    assert profile.browser_language == "en-US"
    assert profile.local_time_formatted == "Mon, Oct 19, 2026, 02:30 PM"
    assert profile.user_agent == CHROME_ANDROID


def test_collect_profile_empty_signals_uses_sentinels() -> None:
    profile = collect_profile(EnvironmentSignals(time_zone="UTC"), now=FIXED_NOW)
    payload = profile.to_payload()

    assert payload["name"] == "Anonymous"
    assert payload["os"] == "Unknown/Other"
    assert payload["browser"] == "Unknown"
    assert payload["resolution"] == "N/A"
    assert payload["deviceType"] == "Desktop"
    assert payload["connectionSpeed"] == "N/A (N/A)"
    assert payload["browserLanguage"] == "N/A"
    # Missing locale still renders with the default one.
    assert payload["localTimeFormatted"] == "Mon, Oct 19, 2026, 02:30 PM"
    assert all(value is not None for value in payload.values())
