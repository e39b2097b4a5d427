"""Dataclass models for the two records merged into a beacon payload.

Both records are built fresh on every run and never persisted.  Fields are
snake_case in Python; :meth:`to_payload` renders the camelCase wire keys
that are POSTed to the collection endpoint via ``orjson.dumps()``.

Every field carries either a real value or :data:`NOT_AVAILABLE`.
"""

from dataclasses import dataclass

# Sentinel for any signal or service field that could not be obtained.
NOT_AVAILABLE = "N/A"

DEFAULT_DISPLAY_NAME = "Anonymous"


@dataclass
class ClientProfile:
    """Browser/device metadata derived from environment signals."""

    name: str = DEFAULT_DISPLAY_NAME
    log_timestamp: str = NOT_AVAILABLE
    os: str = "Unknown/Other"
    browser: str = "Unknown"
    resolution: str = NOT_AVAILABLE
    device_type: str = "Desktop"
    connection_speed: str = f"{NOT_AVAILABLE} ({NOT_AVAILABLE})"
    browser_language: str = NOT_AVAILABLE
    local_time_formatted: str = NOT_AVAILABLE
    user_agent: str = ""

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "logTimestamp": self.log_timestamp,
            "os": self.os,
            "browser": self.browser,
            "resolution": self.resolution,
            "deviceType": self.device_type,
            "connectionSpeed": self.connection_speed,
            "browserLanguage": self.browser_language,
            "localTimeFormatted": self.local_time_formatted,
            "userAgent": self.user_agent,
        }


@dataclass
class GeoRecord:
    """Normalized IP-geolocation lookup result.

    ``org`` and ``asn`` come from the service's ``isp`` and ``as`` fields;
    ``coords`` is the ``"lat,lon"`` combination of two numeric fields.
    """

    ip: str = NOT_AVAILABLE
    org: str = NOT_AVAILABLE
    asn: str = NOT_AVAILABLE
    country_code: str = NOT_AVAILABLE
    region: str = NOT_AVAILABLE
    city: str = NOT_AVAILABLE
    zip: str = NOT_AVAILABLE
    coords: str = NOT_AVAILABLE
    timezone: str = NOT_AVAILABLE
    api_source: str = NOT_AVAILABLE

    def to_payload(self) -> dict:
        return {
            "ip": self.ip,
            "org": self.org,
            "asn": self.asn,
            "countryCode": self.country_code,
            "region": self.region,
            "city": self.city,
            "zip": self.zip,
            "coords": self.coords,
            "timezone": self.timezone,
            "apiSource": self.api_source,
        }


def merge_payload(profile: ClientProfile, geo: GeoRecord) -> dict:
    """Union of both wire dicts; the key sets are disjoint."""
    return {**profile.to_payload(), **geo.to_payload()}
