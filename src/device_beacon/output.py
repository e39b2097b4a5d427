"""Stdout sink for printing the resulting payload (``--print``).

StdoutSink
    Serializes one payload dict with ``orjson`` and writes it as a single
    newline-terminated line to ``sys.stdout.buffer``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Mapping

import orjson

logger = logging.getLogger(__name__)


class StdoutSink:
    """Write payloads as JSON lines to stdout."""

    def write(self, payload: Mapping[str, Any]) -> None:
        """Write *payload* to ``sys.stdout.buffer``.

        Raises
        ------
        BrokenPipeError
            If the stdout consumer has gone away.
        """
        data = orjson.dumps(dict(payload), option=orjson.OPT_APPEND_NEWLINE)
        try:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        except BrokenPipeError:
            logger.warning("stdout broken; consumer likely exited")
            raise
