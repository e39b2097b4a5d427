"""IP geolocation lookup against an ip-api.com compatible service.

One GET, one outcome::

    GET <url>
      │
      ├─ transport exception         → GeoLookupError(prefix + original message)
      ├─ status not 2xx              → GeoLookupError(".. Status: <code>")
      ├─ body not JSON               → GeoLookupError(prefix + decode error)
      ├─ body.status ≠ "success"     → GeoLookupError(body.message or fallback)
      └─ success                     → GeoRecord

No retry and no caching.
"""

from __future__ import annotations

import logging
from typing import Any

from device_beacon.models import NOT_AVAILABLE, GeoRecord
from device_beacon.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_GEO_URL = "http://ip-api.com/json"
DEFAULT_SOURCE_TAG = "ip-api.com"

ERROR_PREFIX = "Failed to retrieve geolocation data: "
FAILURE_FALLBACK_MESSAGE = "Geolocation service returned failure status."


class GeoLookupError(Exception):
    """Raised when the geolocation service cannot produce a record."""


class GeoResolver:
    """Fetch and normalize the caller's public-IP geolocation.

    Parameters
    ----------
    transport:
        Transport used for the single GET request.
    url:
        Geolocation endpoint returning the ip-api.com JSON shape.
    source_tag:
        Value stored in ``GeoRecord.api_source``.
    """

    def __init__(
        self,
        transport: Transport,
        url: str = DEFAULT_GEO_URL,
        source_tag: str = DEFAULT_SOURCE_TAG,
    ) -> None:
        self._transport = transport
        self._url = url
        self._source_tag = source_tag

    async def resolve(self) -> GeoRecord:
        """Perform the lookup.

        Raises
        ------
        GeoLookupError
            On a non-2xx status, a failure body, or any transport/parse error.
        """
        try:
            response = await self._transport.request("GET", self._url)
            if not response.ok:
                raise _LookupFailed(
                    f"HTTP error from geolocation service! Status: {response.status_code}"
                )

            body = response.json()
            if not isinstance(body, dict) or body.get("status") != "success":
                message = body.get("message") if isinstance(body, dict) else None
                raise _LookupFailed(message or FAILURE_FALLBACK_MESSAGE)

            return self._to_record(body)
        except Exception as exc:
            logger.error("Error fetching geolocation data: %s", exc)
            raise GeoLookupError(f"{ERROR_PREFIX}{exc}") from exc

    def _to_record(self, body: dict[str, Any]) -> GeoRecord:
        lat = body.get("lat")
        lon = body.get("lon")
        coords = NOT_AVAILABLE
        if lat is not None and lon is not None:
            coords = f"{_js_number(lat)},{_js_number(lon)}"

        return GeoRecord(
            ip=_text(body.get("query")),
            org=_text(body.get("isp")),
            asn=_text(body.get("as")),
            country_code=_text(body.get("countryCode")),
            region=_text(body.get("regionName")),
            city=_text(body.get("city")),
            zip=_text(body.get("zip")),
            coords=coords,
            timezone=_text(body.get("timezone")),
            api_source=self._source_tag,
        )


class _LookupFailed(Exception):
    """Internal: the service answered but not with a usable record."""


# ── helpers ─────────────────────────────────────────────────────────


def _text(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    return str(value)


def _js_number(value: Any) -> str:
    """Render a number the way a JS template literal does (``1.0`` → ``"1"``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
