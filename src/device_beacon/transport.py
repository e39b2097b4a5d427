"""HTTP transport used by the geo resolver and the payload transmitter.

Both network dependencies talk to a :class:`Transport`: anything with one
async ``request`` method.  :class:`HttpxTransport` is the real
implementation; tests substitute fakes.

A new ``httpx.AsyncClient`` is opened and closed for every request; there is
no pooling and no timeout (callers impose deadlines externally).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx
import orjson

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status code and raw body of a completed request."""

    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body with ``orjson``.

        Raises
        ------
        orjson.JSONDecodeError
            If the body is not valid JSON.
        """
        return orjson.loads(self.body)


class Transport(Protocol):
    """Port for issuing a single HTTP request."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        read_body: bool = True,
    ) -> TransportResponse:
        """Send *method* to *url*, with *json* as the body when given.

        With ``read_body=False`` only the status code is consumed.
        """
        ...


class HttpxTransport:
    """:class:`Transport` backed by ``httpx.AsyncClient``.

    Parameters
    ----------
    transport:
        Optional ``httpx`` transport handed to the client (for example
        ``httpx.MockTransport`` in tests).
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        read_body: bool = True,
    ) -> TransportResponse:
        headers = {"Accept": "application/json"}
        content = None
        if json is not None:
            content = orjson.dumps(json)
            headers["Content-Type"] = "application/json"

        async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
            async with client.stream(method, url, content=content, headers=headers) as response:
                body = await response.aread() if read_body else b""

        logger.debug("%s %s → %d (%d bytes)", method, url, response.status_code, len(body))
        return TransportResponse(status_code=response.status_code, body=body)
