"""
Runtime configuration.

Defaults live in shared.constants; any of them can be overridden from the
environment or a local .env file.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Mapping

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_CATALOG_URL,
    DEFAULT_COUNTRY,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    CURATED_ARTISTS,
)

logger = logging.getLogger(__name__)


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _list_env(env: Mapping[str, str], name: str, default: List[str]) -> List[str]:
    raw = env.get(name)
    if not raw:
        return list(default)
    items = [part.strip() for part in raw.split(",")]
    return [item for item in items if item]


@dataclass
class CatalogConfig:
    """Settings for the catalog client, the poller and the curated feed."""
    base_url: str = DEFAULT_CATALOG_URL
    country: str = DEFAULT_COUNTRY
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    curated_artists: List[str] = field(default_factory=lambda: list(CURATED_ARTISTS))

    @property
    def timeout(self):
        """requests-style (connect, read) timeout tuple."""
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'CatalogConfig':
        """Build config from the environment (after loading .env)."""
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            base_url=(env.get("PREVIEW_CATALOG_URL") or DEFAULT_CATALOG_URL).rstrip("/"),
            country=env.get("PREVIEW_COUNTRY") or DEFAULT_COUNTRY,
            connect_timeout=_float_env(env, "PREVIEW_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            read_timeout=_float_env(env, "PREVIEW_READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
            poll_interval=_float_env(env, "PREVIEW_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            curated_artists=_list_env(env, "PREVIEW_CURATED_ARTISTS", CURATED_ARTISTS),
        )
