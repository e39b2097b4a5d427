"""Derive a :class:`ClientProfile` from environment signals.

Derivation pipeline::

    EnvironmentSignals
      │
      ├─ user agent        → os, browser (+ version), device class
      ├─ screen metrics    → "WxH" or N/A
      ├─ connection hints  → "<TIER> (<x.y> Mbps)" or "N/A (N/A)"
      ├─ language          → locale tag or N/A
      └─ capture instant   → ISO-8601 UTC + locale-formatted local time

No step can fail: anything missing degrades to a sentinel.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from babel import Locale, UnknownLocaleError
from babel.dates import format_skeleton, format_time

from device_beacon.environment import ConnectionHints, EnvironmentSignals
from device_beacon.models import DEFAULT_DISPLAY_NAME, NOT_AVAILABLE, ClientProfile

DEFAULT_LOCALE = "en-US"

# (substrings, label), checked in order; first hit wins.
_OS_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("Win",), "Windows"),
    (("Android",), "Android"),
    (("Mac",), "macOS (Apple)"),
    (("Linux",), "Linux"),
    (("CrOS",), "Chrome OS"),
    (("iPhone", "iPad"), "iOS (Apple)"),
)
UNKNOWN_OS = "Unknown/Other"

_CHROME_VERSION = re.compile(r"Chrome/(?P<version>\d+)")
_FIREFOX_VERSION = re.compile(r"Firefox/(?P<version>\d+)")
_SAFARI_VERSION = re.compile(r"Version/(?P<version>\d+)")
_EDGE_VERSION = re.compile(r"Edg/(?P<version>\d+)")

_MOBILE_RE = re.compile(r"Mobi|Android|iPhone|iPad|Windows Phone", re.IGNORECASE)

MOBILE_LABEL = "Mobile/Tablet"
DESKTOP_LABEL = "Desktop"

# Weekday + abbreviated month + day + year, arranged per locale.
_DATE_SKELETON = "yMMMEd"


def detect_os(user_agent: str) -> str:
    """Return the OS family label for *user_agent*."""
    for needles, label in _OS_RULES:
        if any(n in user_agent for n in needles):
            return label
    return UNKNOWN_OS


def detect_browser(user_agent: str) -> str:
    """Return ``"<Name> (v<major>)"``, or the bare name when no version is found."""
    if "Chrome" in user_agent and "Edg" not in user_agent:
        browser, pattern = "Chrome", _CHROME_VERSION
    elif "Firefox" in user_agent:
        browser, pattern = "Firefox", _FIREFOX_VERSION
    elif "Safari" in user_agent and "Chrome" not in user_agent:
        browser, pattern = "Safari", _SAFARI_VERSION
    elif "Edg" in user_agent:
        browser, pattern = "Edge", _EDGE_VERSION
    elif "MSIE" in user_agent or "Trident" in user_agent:
        return "Internet Explorer"
    else:
        return "Unknown"

    match = pattern.search(user_agent)
    if match:
        return f"{browser} (v{match.group('version')})"
    return browser


def is_mobile(user_agent: str) -> bool:
    return bool(_MOBILE_RE.search(user_agent))


def describe_connection(hints: Optional[ConnectionHints]) -> str:
    """Render connection hints as ``"4G (10.3 Mbps)"``.

    The throughput is rounded half-up on its exact binary value, so
    ``10.25`` becomes ``10.3``.  A zero or missing downlink is ``N/A``.
    """
    tier = NOT_AVAILABLE
    speed = NOT_AVAILABLE
    if hints is not None:
        if hints.effective_type:
            tier = hints.effective_type.upper()
        if hints.downlink:
            rounded = Decimal(hints.downlink).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            speed = f"{rounded} Mbps"
    return f"{tier} ({speed})"


def format_resolution(width: Optional[int], height: Optional[int]) -> str:
    if width is None or height is None:
        return NOT_AVAILABLE
    return f"{width}x{height}"


def format_iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_local_time(
    moment: datetime,
    locale_tag: Optional[str] = None,
    time_zone: Optional[str] = None,
) -> str:
    """Human-readable local time for *locale_tag* using CLDR data.

    The date part follows the locale's ``yMMMEd`` layout; the time is
    two-digit hours and minutes on the locale's 12- or 24-hour clock.
    ``en-US`` renders ``"Mon, Oct 19, 2026, 02:30 PM"``.  Unknown or
    missing tags use ``en-US``.
    """
    local = moment.astimezone(_resolve_zone(time_zone))
    locale = _resolve_locale(locale_tag)

    date_part = format_skeleton(_DATE_SKELETON, local, tzinfo=local.tzinfo, locale=locale)
    time_pattern = "hh:mm a" if _uses_12_hour_clock(locale) else "HH:mm"
    time_part = format_time(local, time_pattern, tzinfo=local.tzinfo, locale=locale)
    return f"{date_part}, {time_part}"


def collect_profile(
    signals: EnvironmentSignals,
    display_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ClientProfile:
    """Build the :class:`ClientProfile` for one run.

    Parameters
    ----------
    signals:
        The injected environment signals.
    display_name:
        User-provided name; ``None`` falls back to ``"Anonymous"``.
    now:
        Capture instant (timezone-aware).  Defaults to the current time.
        Both timestamp fields are derived from this single instant.
    """
    moment = now or datetime.now(timezone.utc)
    user_agent = signals.user_agent or ""

    return ClientProfile(
        name=display_name if display_name is not None else DEFAULT_DISPLAY_NAME,
        log_timestamp=format_iso_timestamp(moment),
        os=detect_os(user_agent),
        browser=detect_browser(user_agent),
        resolution=format_resolution(signals.screen_width, signals.screen_height),
        device_type=MOBILE_LABEL if is_mobile(user_agent) else DESKTOP_LABEL,
        connection_speed=describe_connection(signals.connection),
        browser_language=signals.language or NOT_AVAILABLE,
        local_time_formatted=format_local_time(moment, signals.language, signals.time_zone),
        user_agent=user_agent,
    )


# ── helpers ─────────────────────────────────────────────────────────


def _resolve_locale(tag: Optional[str]) -> Locale:
    try:
        return Locale.parse((tag or DEFAULT_LOCALE).replace("_", "-"), sep="-")
    except (UnknownLocaleError, ValueError, TypeError):
        return Locale.parse(DEFAULT_LOCALE, sep="-")


def _uses_12_hour_clock(locale: Locale) -> bool:
    """True when the locale's short time pattern uses an h/K hour field."""
    pattern = re.sub(r"'[^']*'", "", locale.time_formats["short"].pattern)
    return "h" in pattern or "K" in pattern


def _resolve_zone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA zone for *name*; ``None`` means the host's local zone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None
