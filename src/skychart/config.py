"""Runtime settings: read from the environment (and `.env`, loaded at the entry points)."""

import logging
import os
from dataclasses import dataclass

LOG = logging.getLogger(__name__)

_D3_CELESTIAL = "https://raw.githubusercontent.com/ofrohn/d3-celestial/master/data"

DEFAULT_STARS_URL = f"{_D3_CELESTIAL}/stars.6.json"
DEFAULT_LINES_URL = f"{_D3_CELESTIAL}/constellations.lines.json"
DEFAULT_NAMES_URL = f"{_D3_CELESTIAL}/constellations.json"
DEFAULT_HTTP_TIMEOUT = 20.0
DEFAULT_LOG_LEVEL = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        LOG.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Catalog feed locations and process-wide knobs."""

    stars_url: str = DEFAULT_STARS_URL
    lines_url: str = DEFAULT_LINES_URL
    names_url: str = DEFAULT_NAMES_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT  # seconds, per request
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from SKYCHART_* environment variables."""
        return cls(
            stars_url=os.environ.get("SKYCHART_STARS_URL", DEFAULT_STARS_URL),
            lines_url=os.environ.get("SKYCHART_LINES_URL", DEFAULT_LINES_URL),
            names_url=os.environ.get("SKYCHART_NAMES_URL", DEFAULT_NAMES_URL),
            http_timeout=_env_float("SKYCHART_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            log_level=os.environ.get("SKYCHART_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


def configure_logging(settings: Settings) -> None:
    """Install a root handler once. Later calls are no-ops (basicConfig semantics)."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
