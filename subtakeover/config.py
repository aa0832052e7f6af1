# subtakeover/config.py
"""
Runtime configuration.

Every tunable is read from the environment once, at startup, by
Settings.from_env(). Nothing else in the package reads os.environ directly;
components receive the values they need through their constructors.

Environment variables:
    SUBTAKEOVER_FINGERPRINTS_URL         primary fingerprint source (JSON)
    SUBTAKEOVER_CUSTOM_FINGERPRINTS_URL  supplementary fingerprint source (JSON)
    SUBTAKEOVER_CACHE_DIR                on-disk cache for both sources
    SUBTAKEOVER_DNS_TIMEOUT              per-query DNS timeout in seconds
    SUBTAKEOVER_DNS_RETRIES              attempts per DNS hop before giving up
    SUBTAKEOVER_HTTP_TIMEOUT             HTTP probe timeout in seconds
    SUBTAKEOVER_WHOIS_TIMEOUT            WHOIS socket timeout in seconds
    SUBTAKEOVER_PROGRESS_INTERVAL        seconds between progress snapshots
    SUBTAKEOVER_NAMESERVERS              comma-separated resolver IPs (optional)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)

PRIMARY_FINGERPRINTS_URL = (
    "https://raw.githubusercontent.com/EdOverflow/can-i-take-over-xyz/master/fingerprints.json"
)
CUSTOM_FINGERPRINTS_URL = (
    "https://raw.githubusercontent.com/topscoder/Subdominator/master/Subdominator/custom_fingerprints.json"
)

PRIMARY_CACHE_FILE = "fingerprints.json"
CUSTOM_CACHE_FILE = "custom_fingerprints.json"

DEFAULT_THREADS = 50
MIN_ADAPTIVE_THREADS = 5
MAX_ADAPTIVE_THREADS = 200

USER_AGENT = "Mozilla/5.0 (compatible; subtakeover scanner)"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def _default_cache_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".cache", "subtakeover")


@dataclass
class Settings:
    fingerprints_url: str = PRIMARY_FINGERPRINTS_URL
    custom_fingerprints_url: str = CUSTOM_FINGERPRINTS_URL
    cache_dir: str = field(default_factory=_default_cache_dir)

    dns_timeout: float = 5.0
    dns_retries: int = 3
    http_timeout: float = 5.0
    whois_timeout: float = 10.0
    progress_interval: float = 5.0

    nameservers: List[str] = field(default_factory=list)

    @property
    def primary_cache_path(self) -> str:
        return os.path.join(self.cache_dir, PRIMARY_CACHE_FILE)

    @property
    def custom_cache_path(self) -> str:
        return os.path.join(self.cache_dir, CUSTOM_CACHE_FILE)

    @classmethod
    def from_env(cls) -> "Settings":
        nameservers = [
            ns.strip()
            for ns in os.getenv("SUBTAKEOVER_NAMESERVERS", "").split(",")
            if ns.strip()
        ]
        return cls(
            fingerprints_url=os.getenv("SUBTAKEOVER_FINGERPRINTS_URL", PRIMARY_FINGERPRINTS_URL),
            custom_fingerprints_url=os.getenv(
                "SUBTAKEOVER_CUSTOM_FINGERPRINTS_URL", CUSTOM_FINGERPRINTS_URL
            ),
            cache_dir=os.getenv("SUBTAKEOVER_CACHE_DIR") or _default_cache_dir(),
            dns_timeout=_env_float("SUBTAKEOVER_DNS_TIMEOUT", 5.0),
            dns_retries=max(1, _env_int("SUBTAKEOVER_DNS_RETRIES", 3)),
            http_timeout=_env_float("SUBTAKEOVER_HTTP_TIMEOUT", 5.0),
            whois_timeout=_env_float("SUBTAKEOVER_WHOIS_TIMEOUT", 10.0),
            progress_interval=_env_float("SUBTAKEOVER_PROGRESS_INTERVAL", 5.0),
            nameservers=nameservers,
        )
