"""Click CLI for Device Beacon.

Entry point registered in ``pyproject.toml`` as ``device-beacon``::

    device-beacon --consent --signals snapshot.json --name "Ada"
    device-beacon --consent --collector-url https://collect.example/ --print
    device-beacon --validate-config -c /etc/device-beacon/config.json

Exit codes: 0 delivered, 1 configuration error, 2 no payload or delivery
failed, 3 deadline expired.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
import orjson

from device_beacon import __version__
from device_beacon.config import AppConfig, LogFileConfig, load_config
from device_beacon.environment import EnvironmentSignals, load_signals
from device_beacon.output import StdoutSink
from device_beacon.pipeline import build_pipeline
from device_beacon.redactor import PersonalDataFilter

logger = logging.getLogger("device_beacon")

DEFAULT_CONFIG = "/etc/device-beacon/config.json"

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_NOT_DELIVERED = 2
EXIT_DEADLINE = 3


# ── log formatting ──────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        obj = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            obj["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(obj).decode()


_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup_logging(
    level: str,
    fmt: str = "json",
    log_file_config: Optional[LogFileConfig] = None,
    redact: bool = True,
) -> None:
    """Configure the root logger: stderr + optional rotating file + redaction."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, "_device_beacon", False):
            root.removeHandler(handler)
            handler.close()

    formatter = _JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file_config and log_file_config.enabled:
        from logging.handlers import RotatingFileHandler

        Path(log_file_config.path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=log_file_config.path,
            maxBytes=log_file_config.max_size_bytes,
            backupCount=log_file_config.backup_count,
        ))

    # Handler-level so records propagated from child loggers are covered too.
    redactor = PersonalDataFilter() if redact else None
    for handler in handlers:
        handler.setFormatter(formatter)
        if redactor is not None:
            handler.addFilter(redactor)
        handler._device_beacon = True
        root.addHandler(handler)


def _resolve_config(config_path: Optional[str], overrides: dict[str, str]) -> AppConfig:
    """Load the config file, or built-in defaults when the default path is absent."""
    cfg_path = config_path or os.environ.get("BEACON_CONFIG")
    if cfg_path is None:
        if not Path(DEFAULT_CONFIG).exists():
            return AppConfig()
        cfg_path = DEFAULT_CONFIG
    return load_config(cfg_path, overrides=overrides)


# ── main command ────────────────────────────────────────────────────


@click.command()
@click.option("-n", "--name", "display_name", default=None,
              help="Display name recorded in the payload (default: Anonymous).")
@click.option("-s", "--signals", "signals_path", default=None,
              help="JSON signals snapshot ('-' for stdin). Default: this host.")
@click.option("-c", "--config", "config_path", default=None, help="Config file path.")
@click.option("--collector-url", default=None, help="Override collection endpoint URL.")
@click.option("--geo-url", default=None, help="Override geolocation service URL.")
@click.option("--consent", is_flag=True,
              help="Confirm the user agreed to collection and transfer.")
@click.option("--log-level", default=None,
              type=click.Choice(["debug", "info", "warn", "error"]),
              help="Log verbosity.")
@click.option("--deadline", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Abort the run after this many seconds.")
@click.option("--print", "print_payload", is_flag=True, help="Print the payload to stdout.")
@click.option("--validate-config", "validate_only", is_flag=True,
              help="Validate config and exit.")
@click.version_option(__version__)
def main(
    display_name: Optional[str],
    signals_path: Optional[str],
    config_path: Optional[str],
    collector_url: Optional[str],
    geo_url: Optional[str],
    consent: bool,
    log_level: Optional[str],
    deadline: Optional[float],
    print_payload: bool,
    validate_only: bool,
) -> None:
    """Device Beacon: collect a client profile and geolocation, then POST it."""
    # --- build overrides ---
    overrides: dict[str, str] = {}
    if collector_url:
        overrides["BEACON_COLLECTOR_URL"] = collector_url
    if geo_url:
        overrides["BEACON_GEO_URL"] = geo_url

    # --- load + validate config ---
    try:
        cfg = _resolve_config(config_path, overrides)
    except Exception as exc:
        click.echo(f"Config error: {exc}", err=True)
        raise SystemExit(EXIT_CONFIG) from exc

    if collector_url:
        cfg.collector.url = collector_url
    if geo_url:
        cfg.geo.url = geo_url
    if consent:
        cfg.consent.granted = True

    if not cfg.collector.url:
        click.echo("Config error: collector URL is not configured", err=True)
        raise SystemExit(EXIT_CONFIG)

    effective_level = (
        log_level
        or os.environ.get("BEACON_LOG_LEVEL")
        or cfg.logging.level
    )
    _setup_logging(
        effective_level,
        cfg.logging.format,
        cfg.logging.file,
        cfg.logging.redact_personal_data,
    )

    if validate_only:
        click.echo("Configuration is valid.", err=True)
        raise SystemExit(EXIT_OK)

    try:
        signals = load_signals(signals_path) if signals_path else EnvironmentSignals.from_host()
    except (OSError, ValueError) as exc:
        click.echo(f"Signals error: {exc}", err=True)
        raise SystemExit(EXIT_CONFIG) from exc

    logger.info(
        "Starting device-beacon %s (instance=%s, consent=%s)",
        __version__,
        cfg.instance_id,
        cfg.consent.granted,
    )

    raise SystemExit(asyncio.run(_run(cfg, signals, display_name, deadline, print_payload)))


# ── async run ───────────────────────────────────────────────────────


async def _run(
    cfg: AppConfig,
    signals: EnvironmentSignals,
    display_name: Optional[str],
    deadline: Optional[float],
    print_payload: bool,
) -> int:
    """Run the pipeline once and map the outcome to an exit code."""
    pipeline = build_pipeline(cfg, signals)

    try:
        payload = await asyncio.wait_for(pipeline.run(display_name), timeout=deadline)
    except asyncio.TimeoutError:
        logger.error("Run exceeded deadline of %.1fs", deadline)
        return EXIT_DEADLINE

    if payload is None:
        return EXIT_NOT_DELIVERED

    if print_payload:
        try:
            StdoutSink().write(payload)
        except BrokenPipeError:
            pass

    return EXIT_OK if pipeline.last_delivered else EXIT_NOT_DELIVERED
