"""Runtime settings read from the environment."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

from hostmetrics.sources import SOURCE_NAMES

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_INTERVAL_MS = 1000
DEFAULT_SOURCE = "proc"
DEFAULT_LOG_LEVEL = "INFO"

PORT_RANGE = (1, 65535)
INTERVAL_MS_RANGE = (100, 60_000)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True, frozen=True)
class Settings:
    """Effective configuration for one process."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    interval_ms: int = DEFAULT_INTERVAL_MS
    source: str = DEFAULT_SOURCE
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def interval(self) -> float:
        """Sampling interval in seconds."""
        return self.interval_ms / 1000.0


def parse_bounded_int(name: str, raw: str | None, default: int, bounds: tuple[int, int]) -> int:
    """
    Parse an integer setting, falling back to ``default``.

    Unset values fall back silently; unparsable or out-of-range values are
    logged.
    """
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", name, raw, default)
        return default
    low, high = bounds
    if not low <= value <= high:
        logger.warning("%s=%d outside [%d, %d], using %d", name, value, low, high, default)
        return default
    return value


def parse_choice(name: str, raw: str | None, default: str, choices: tuple[str, ...]) -> str:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip()
    for choice in choices:
        if value.lower() == choice.lower():
            return choice
    logger.warning("%s=%r not one of %s, using %s", name, raw, ", ".join(choices), default)
    return default


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from PORT, HOST, INTERVAL_MS, METRICS_SOURCE and LOG_LEVEL."""
    env = os.environ if environ is None else environ
    host = (env.get("HOST") or "").strip() or DEFAULT_HOST
    return Settings(
        host=host,
        port=parse_bounded_int("PORT", env.get("PORT"), DEFAULT_PORT, PORT_RANGE),
        interval_ms=parse_bounded_int(
            "INTERVAL_MS", env.get("INTERVAL_MS"), DEFAULT_INTERVAL_MS, INTERVAL_MS_RANGE
        ),
        source=parse_choice("METRICS_SOURCE", env.get("METRICS_SOURCE"), DEFAULT_SOURCE, SOURCE_NAMES),
        log_level=parse_choice("LOG_LEVEL", env.get("LOG_LEVEL"), DEFAULT_LOG_LEVEL, LOG_LEVELS),
    )


def override(settings: Settings, **values: str | int | None) -> Settings:
    """
    Apply command-line overrides on top of environment settings.

    ``None`` means "not given". Overrides go through the same validation as
    the environment, with the current setting as the fallback.
    """
    changes = {}
    if values.get("host"):
        changes["host"] = str(values["host"])
    if values.get("port") is not None:
        changes["port"] = parse_bounded_int("--port", str(values["port"]), settings.port, PORT_RANGE)
    if values.get("interval_ms") is not None:
        changes["interval_ms"] = parse_bounded_int(
            "--interval-ms", str(values["interval_ms"]), settings.interval_ms, INTERVAL_MS_RANGE
        )
    if values.get("source") is not None:
        changes["source"] = parse_choice("--source", str(values["source"]), settings.source, SOURCE_NAMES)
    if values.get("log_level") is not None:
        changes["log_level"] = parse_choice(
            "--log-level", str(values["log_level"]), settings.log_level, LOG_LEVELS
        )
    return replace(settings, **changes)
