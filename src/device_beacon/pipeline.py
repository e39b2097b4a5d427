"""Orchestrate one collection run: profile → resolve → merge → transmit.

::

    consent? ──no──→ None (nothing collected, nothing sent)
      │yes
    collect_profile(signals)
      │
    resolver.resolve() ──GeoLookupError──→ None (nothing sent)
      │
    merge_payload(profile, geo)
      │
    transmitter.send(payload) ──False──→ payload (failure logged)
      │True
    payload

The profiler has no data dependency on the resolver; it runs first only so
the payload can be assembled in one place.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from device_beacon.config import AppConfig
from device_beacon.environment import EnvironmentSignals
from device_beacon.geo import GeoLookupError, GeoResolver
from device_beacon.models import merge_payload
from device_beacon.profiler import collect_profile
from device_beacon.transmitter import PayloadTransmitter
from device_beacon.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class BeaconPipeline:
    """Single linear collection pipeline.

    Parameters
    ----------
    signals:
        Environment signals for the profiler.
    resolver:
        Geolocation resolver.
    transmitter:
        Payload transmitter.
    consent_granted:
        Nothing is collected or sent unless this is ``True``.
    clock:
        Returns the capture instant; defaults to the profiler's own clock.
    """

    def __init__(
        self,
        signals: EnvironmentSignals,
        resolver: GeoResolver,
        transmitter: PayloadTransmitter,
        consent_granted: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._signals = signals
        self._resolver = resolver
        self._transmitter = transmitter
        self._consent_granted = consent_granted
        self._clock = clock
        self.last_delivered: Optional[bool] = None

    async def run(self, display_name: Optional[str] = None) -> Optional[dict]:
        """Execute one run.

        Returns
        -------
        dict
            The merged payload, whether or not delivery succeeded
            (see :attr:`last_delivered`).
        None
            When consent is missing or the geolocation lookup failed.
        """
        self.last_delivered = None
        if not self._consent_granted:
            logger.warning("Consent not granted; skipping collection and transfer")
            return None

        logger.info("Starting data collection and transfer")
        now = self._clock() if self._clock else None
        profile = collect_profile(self._signals, display_name, now=now)

        try:
            geo = await self._resolver.resolve()
        except GeoLookupError as exc:
            logger.error("Data transfer process failed: %s", exc)
            return None

        payload = merge_payload(profile, geo)

        self.last_delivered = await self._transmitter.send(payload)
        if self.last_delivered:
            logger.info("Full payload transferred to collection endpoint")
        else:
            logger.error("Data transfer failed")
        return payload


def build_pipeline(
    cfg: AppConfig,
    signals: EnvironmentSignals,
    transport: Optional[Transport] = None,
) -> BeaconPipeline:
    """Wire a :class:`BeaconPipeline` from configuration.

    One *transport* (default :class:`HttpxTransport`) serves both the
    resolver and the transmitter.
    """
    transport = transport or HttpxTransport()
    return BeaconPipeline(
        signals=signals,
        resolver=GeoResolver(transport, url=cfg.geo.url, source_tag=cfg.geo.source_tag),
        transmitter=PayloadTransmitter(transport, url=cfg.collector.url),
        consent_granted=cfg.consent.granted,
    )
