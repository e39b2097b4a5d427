"""Logging filter that masks personal data in log records.

Payloads carry a public IP address and a ``"lat,lon"`` pair.  When
``logging.redact_personal_data`` is enabled, the filter rewrites every
record's message and arguments (strings and exception messages) so that
IPv4/IPv6 addresses and coordinate pairs appear as ``[REDACTED]``.
Extra literal values (for example an address learned at runtime) can be
registered with :meth:`PersonalDataFilter.add_value`.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import Any, Iterable


REDACTED = "[REDACTED]"

_IPV4_RE = re.compile(r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b")
# Candidates only; each is confirmed with ``ipaddress`` before masking.
_IPV6_CANDIDATE_RE = re.compile(r"(?<![\w:.])(?:[0-9A-Fa-f]{0,4}:){2,7}[0-9A-Fa-f]{0,4}(?![\w:])")
_COORDS_RE = re.compile(r"-?\d{1,3}\.\d+,\s?-?\d{1,3}\.\d+")

_PATTERNS = (_COORDS_RE, _IPV4_RE)


class PersonalDataFilter(logging.Filter):
    """A :class:`logging.Filter` that scrubs addresses and coordinates."""

    def __init__(self, extra_values: Iterable[str] | None = None) -> None:
        super().__init__()
        # Only keep non-empty strings that are long enough to be meaningful
        self._values: list[str] = [
            v for v in (extra_values or []) if v and len(v) > 1
        ]

    def add_value(self, value: str) -> None:
        """Register an additional literal value to mask at runtime."""
        if value and len(value) > 1 and value not in self._values:
            self._values.append(value)

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact personal data in the log record's message and args."""
        record.msg = self._redact(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_arg(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._redact_arg(a) for a in record.args)
        return True  # never suppress the record itself

    def _redact_arg(self, value: Any) -> Any:
        # Exceptions render their message, which may carry a peer address.
        if isinstance(value, BaseException):
            return self._redact(str(value))
        if isinstance(value, str):
            return self._redact(value)
        return value

    def _redact(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        for literal in self._values:
            if literal in value:
                value = value.replace(literal, REDACTED)
        for pattern in _PATTERNS:
            value = pattern.sub(REDACTED, value)
        value = _IPV6_CANDIDATE_RE.sub(_mask_ipv6, value)
        return value


def _mask_ipv6(match: re.Match) -> str:
    candidate = match.group(0)
    # Bare hex words such as "cafe::" parse as addresses; require a digit.
    if not any(ch.isdigit() for ch in candidate):
        return candidate
    try:
        ipaddress.IPv6Address(candidate)
    except ValueError:
        return candidate
    return REDACTED
