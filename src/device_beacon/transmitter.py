"""POST the merged payload to the collection endpoint.

The transmitter never raises: every outcome collapses into a boolean.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from device_beacon.transport import Transport

logger = logging.getLogger(__name__)


class PayloadTransmitter:
    """Send one JSON record to *url* through *transport*."""

    def __init__(self, transport: Transport, url: str) -> None:
        self._transport = transport
        self._url = url

    async def send(self, record: Mapping[str, Any]) -> bool:
        """POST *record* as JSON.

        Returns
        -------
        bool
            ``True`` for a 2xx response, ``False`` for any other status or
            for a transport/serialization error.
        """
        try:
            response = await self._transport.request(
                "POST", self._url, json=dict(record), read_body=False
            )
        except Exception as exc:
            logger.error("Error during payload transmission: %s", exc)
            return False

        if response.ok:
            logger.info("Payload delivered to collection endpoint")
            return True

        logger.error("Failed to deliver payload. Status: %d", response.status_code)
        return False
