"""Environment signals consumed by the profiler.

A browser page (or any other host) serializes what it can observe into a
snapshot shaped like the ``navigator``/``screen`` globals::

    {
      "userAgent": "Mozilla/5.0 ...",
      "language": "en-US",
      "screen": {"width": 1920, "height": 1080},
      "connection": {"effectiveType": "4g", "downlink": 10.25},
      "timeZone": "Europe/Berlin"
    }

``mozConnection`` and ``webkitConnection`` are accepted in place of
``connection``.  Every key is optional; wrong-typed values are treated as
absent so the profiler can substitute its sentinels.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import orjson

from device_beacon import __version__

logger = logging.getLogger(__name__)

_CONNECTION_KEYS = ("connection", "mozConnection", "webkitConnection")


@dataclass(frozen=True)
class ConnectionHints:
    """Network Information API values (``effectiveType``, ``downlink``)."""

    effective_type: Optional[str] = None
    downlink: Optional[float] = None


@dataclass(frozen=True)
class EnvironmentSignals:
    """Ambient client signals injected into :func:`collect_profile`."""

    user_agent: str = ""
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None
    connection: Optional[ConnectionHints] = None
    time_zone: Optional[str] = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> EnvironmentSignals:
        """Build signals from a browser-style snapshot dict."""
        screen = obj.get("screen")
        if not isinstance(screen, dict):
            screen = {}

        connection = None
        for key in _CONNECTION_KEYS:
            raw = obj.get(key)
            if isinstance(raw, dict):
                connection = ConnectionHints(
                    effective_type=_as_str(raw.get("effectiveType")),
                    downlink=_as_number(raw.get("downlink")),
                )
                break

        return cls(
            user_agent=_as_str(obj.get("userAgent")) or "",
            screen_width=_as_int(screen.get("width")),
            screen_height=_as_int(screen.get("height")),
            language=_as_str(obj.get("language")),
            connection=connection,
            time_zone=_as_str(obj.get("timeZone")),
        )

    @classmethod
    def from_host(cls) -> EnvironmentSignals:
        """Signals describing the machine this process runs on.

        There is no screen and no Network Information API outside a
        browser, so those fields stay empty.
        """
        system = platform.system()
        # Keep the tokens the OS matcher looks for.
        os_token = {"Windows": "Windows NT", "Darwin": "Macintosh; Mac OS X"}.get(
            system, system
        )
        agent = (
            f"device-beacon/{__version__} ({os_token} {platform.release()}; "
            f"{platform.machine()}) Python/{platform.python_version()}"
        )
        return cls(user_agent=agent, language=_host_language())


def load_signals(path: str | Path) -> EnvironmentSignals:
    """Read a JSON snapshot from *path* (``"-"`` reads stdin).

    Raises
    ------
    ValueError
        If the document is not valid JSON or not a JSON object.
    """
    if str(path) == "-":
        raw = sys.stdin.buffer.read()
    else:
        raw = Path(path).read_bytes()

    try:
        obj = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise ValueError(f"Signals snapshot is not valid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ValueError("Signals snapshot must be a JSON object")

    logger.debug("Loaded signals snapshot with keys: %s", sorted(obj))
    return EnvironmentSignals.from_dict(obj)


# ── helpers ─────────────────────────────────────────────────────────


def _host_language() -> Optional[str]:
    """``LC_ALL``/``LANG`` (``de_DE.UTF-8``) as a BCP 47 tag (``de-DE``)."""
    for var in ("LC_ALL", "LANG"):
        value = os.environ.get(var)
        if not value:
            continue
        tag = value.split(".", 1)[0].split("@", 1)[0]
        if tag in ("C", "POSIX"):
            return None
        return tag.replace("_", "-")
    return None


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
