"""
Runtime configuration for the fountain pipeline, read from environment
variables with sensible defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

OVERPASS_INTERPRETER = "https://overpass-api.de/api/interpreter"
DEFAULT_CACHE_PATH = Path.home() / ".aquafinder" / "fountains_cache.json"
DEFAULT_CACHE_TTL_HOURS = 24.0
DEFAULT_RADIUS_M = 5000.0
DEFAULT_USER_AGENT = "AquaFinder/1.0"


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


@dataclass
class FinderConfig:
    """Configuration for the query client, cache store and repository."""
    overpass_url: str = OVERPASS_INTERPRETER
    cache_path: Path = DEFAULT_CACHE_PATH
    cache_ttl_hours: float = DEFAULT_CACHE_TTL_HOURS
    default_radius_m: float = DEFAULT_RADIUS_M
    request_timeout: Optional[float] = None  # None: transport default
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        self.cache_path = Path(self.cache_path).expanduser()
        if self.cache_ttl_hours <= 0:
            raise ValueError(f"cache_ttl_hours must be positive, got {self.cache_ttl_hours}")
        if self.default_radius_m <= 0:
            raise ValueError(f"default_radius_m must be positive, got {self.default_radius_m}")

    @classmethod
    def from_env(cls) -> "FinderConfig":
        """
        Build a config from environment variables.

        Recognized:
            OVERPASS_URL                 Overpass interpreter endpoint
            AQUAFINDER_CACHE_PATH        Cache file location
            AQUAFINDER_CACHE_TTL_HOURS   Cache validity window in hours
            AQUAFINDER_RADIUS_M          Default search radius in meters
            AQUAFINDER_REQUEST_TIMEOUT   HTTP timeout in seconds (unset: none)
        """
        return cls(
            overpass_url=os.environ.get("OVERPASS_URL") or OVERPASS_INTERPRETER,
            cache_path=Path(os.environ.get("AQUAFINDER_CACHE_PATH") or DEFAULT_CACHE_PATH),
            cache_ttl_hours=_env_float("AQUAFINDER_CACHE_TTL_HOURS", DEFAULT_CACHE_TTL_HOURS),
            default_radius_m=_env_float("AQUAFINDER_RADIUS_M", DEFAULT_RADIUS_M),
            request_timeout=_env_float("AQUAFINDER_REQUEST_TIMEOUT", None),
        )
