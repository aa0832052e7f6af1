# subtakeover/scanner/registration.py
"""
Domain Registration Oracle.

Answers "is the registrable root of this name registered?" for names that
came back NXDOMAIN. Many subdomains share one root, so lookups are:
  - keyed by the registrable root (tldextract)
  - coalesced under a per-root lock, created lazily
  - cached for the lifetime of the oracle instance

Every doubt resolves to "registered": invalid input, lookup failure and
ambiguous WHOIS text all return True so a "Domain Available" finding is
only ever reported on a clear negative answer.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Callable, Dict, Optional

import tldextract

from subtakeover.errors import RegistrationLookupError
from subtakeover.tools import whois_lookup

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(r"^(?!-)([a-z0-9_-]{1,63}\.)+[a-z0-9-]{2,63}$", re.IGNORECASE)

# Checked first: any of these means the root is taken
REGISTERED_INDICATORS = [
    "Registrant:",
    "Registrant Contact:",
    "Registry Registrant ID",
    "Admin Contact:",
    "Tech Contact:",
    "Name Server:",
    "Creation Date:",
    "Updated Date:",
    "Registry Domain ID",
    "Domain Status",
    "Registrar:",
    "Expiration Date:",
    "Whois Server",
]

UNREGISTERED_INDICATORS = [
    "No match for",
    "No entries found",
    "NOT FOUND",
    "No data found",
]

Lookup = Callable[[str], str]
RootExtractor = Callable[[str], Optional[str]]

_default_extract: Optional[tldextract.TLDExtract] = None
_default_extract_lock = threading.Lock()


def _tld_extractor() -> tldextract.TLDExtract:
    global _default_extract
    with _default_extract_lock:
        if _default_extract is None:
            _default_extract = tldextract.TLDExtract()
        return _default_extract


def registrable_domain(domain: str) -> Optional[str]:
    """Registrable root of domain, or None when it has no public suffix."""
    ext = _tld_extractor()(domain)
    if not ext.domain or not ext.suffix:
        return None
    return f"{ext.domain}.{ext.suffix}"


def classify_whois(text: str) -> bool:
    """True when the WHOIS text shows (or fails to rule out) a registration."""
    if not text or not text.strip():
        return True

    lowered = text.lower()
    for indicator in REGISTERED_INDICATORS:
        if indicator.lower() in lowered:
            return True
    for indicator in UNREGISTERED_INDICATORS:
        if indicator.lower() in lowered:
            return False
    return True


class RegistrationOracle:
    """
    Per-run registration cache.

    Create one per scan and share it across workers. Tests build a fresh
    instance with a fake lookup and root extractor.
    """

    def __init__(
        self,
        lookup: Optional[Lookup] = None,
        extract_root: Optional[RootExtractor] = None,
        timeout: float = whois_lookup.TIMEOUT,
    ):
        self._lookup = lookup or (lambda root: whois_lookup.lookup(root, timeout=timeout))
        self._extract_root = extract_root or registrable_domain
        self._cache: Dict[str, bool] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def is_registered(self, domain: str) -> bool:
        normalized = (domain or "").strip().lower().strip(".")
        if not DOMAIN_RE.match(normalized):
            logger.debug("Not a valid domain, treating as registered: %r", domain)
            return True

        try:
            root = self._extract_root(normalized)
        except Exception as e:
            logger.debug("Could not extract registrable root of %s: %s", normalized, e)
            return True
        if not root:
            return True

        with self._lock_for(root):
            cached = self._cache.get(root)
            if cached is not None:
                return cached

            try:
                text = self._lookup(root)
            except RegistrationLookupError as e:
                logger.debug("WHOIS lookup failed for %s, assuming registered: %s", root, e)
                registered = True
            except Exception as e:
                logger.debug("Unexpected WHOIS failure for %s, assuming registered: %s", root, e)
                registered = True
            else:
                registered = classify_whois(text)

            self._cache[root] = registered
            if not registered:
                logger.info("Registrable domain %s appears to be unregistered", root)
            return registered

    def _lock_for(self, root: str) -> threading.Lock:
        lock = self._locks.get(root)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(root, threading.Lock())
        return lock
