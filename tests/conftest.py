"""Shared fixtures: an in-memory transport that records requests."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import orjson
import pytest

from device_beacon.transport import TransportResponse


class FakeTransport:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *outcomes: TransportResponse | Exception) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, str, Optional[Any]]] = []
        self.read_body: list[bool] = []
        self.delay = 0.0

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        read_body: bool = True,
    ) -> TransportResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append((method, url, json))
        self.read_body.append(read_body)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def json_response(status_code: int, body: Any) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=orjson.dumps(body))


GEO_SUCCESS = {
    "status": "success",
    "query": "1.2.3.4",
    "isp": "ACME",
    "as": "AS1 ACME",
    "countryCode": "US",
    "regionName": "CA",
    "city": "X",
    "zip": "90000",
    "lat": 1.0,
    "lon": 2.0,
    "timezone": "UTC",
}


@pytest.fixture
def geo_success_body() -> dict:
    return dict(GEO_SUCCESS)
