# subtakeover/fingerprints/store.py
"""
Fingerprint Store.

Loads the two fingerprint documents (primary can-i-take-over-xyz list and
the supplementary custom list), applies the correction table and returns
the active, de-duplicated signature set in load order.

Loading rules:
    1. Each document is read from the on-disk cache unless force_refresh is
       set or the cache file is missing, in which case it is downloaded and
       the cache rewritten. A failed download falls back to the cache.
    2. Primary entries are corrected (see corrections.py), then filtered:
       "Not vulnerable" is always dropped, "Edge case" is dropped when
       exclude_edge_cases is set.
    3. Custom entries are appended only when their normalized service name
       is not already in the active set. A custom entry never replaces an
       active primary entry, but does stand in for one that was filtered.
    4. The result is cached in memory per exclude_edge_cases value and
       returned as an immutable tuple on every later call.

Raises FingerprintLoadError when a document can be neither downloaded nor
read from the cache.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import requests

from subtakeover.config import USER_AGENT, Settings
from subtakeover.errors import FingerprintLoadError
from subtakeover.fingerprints.corrections import PATCHES, FingerprintPatch, correct
from subtakeover.scanner.base import Fingerprint

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 15

Fetcher = Callable[[str], str]


def _download(url: str) -> str:
    r = requests.get(
        url,
        timeout=DOWNLOAD_TIMEOUT,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
    )
    r.raise_for_status()
    return r.text


def _parse_document(text: str, source: str) -> List[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise FingerprintLoadError(f"{source}: invalid JSON ({e})") from e
    if not isinstance(data, list):
        raise FingerprintLoadError(f"{source}: expected a JSON array, got {type(data).__name__}")
    return [entry for entry in data if isinstance(entry, dict)]


class FingerprintStore:
    """
    Process-wide source of Fingerprints.

    Safe to share between threads: load() is serialized, and the returned
    tuples are never mutated.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        patches: Optional[Dict[str, FingerprintPatch]] = None,
    ):
        self.settings = settings or Settings.from_env()
        self._fetch = fetcher or _download
        self._patches = PATCHES if patches is None else patches
        self._lock = threading.Lock()
        self._loaded: Dict[bool, Tuple[Fingerprint, ...]] = {}

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    def load(self, exclude_edge_cases: bool = False, force_refresh: bool = False) -> Tuple[Fingerprint, ...]:
        with self._lock:
            if force_refresh:
                self._loaded.clear()

            cached = self._loaded.get(exclude_edge_cases)
            if cached is not None:
                return cached

            primary_raw = self._read_source(
                self.settings.fingerprints_url, self.settings.primary_cache_path, force_refresh,
            )
            custom_raw = self._read_source(
                self.settings.custom_fingerprints_url, self.settings.custom_cache_path, force_refresh,
            )

            fingerprints = self.merge(primary_raw, custom_raw, exclude_edge_cases)
            self._loaded[exclude_edge_cases] = fingerprints

            logger.info(
                "Loaded %d fingerprints (%d primary entries, %d custom entries, edge cases %s)",
                len(fingerprints), len(primary_raw), len(custom_raw),
                "excluded" if exclude_edge_cases else "included",
            )
            return fingerprints

    def merge(
        self,
        primary_raw: List[Dict[str, Any]],
        custom_raw: List[Dict[str, Any]],
        exclude_edge_cases: bool = False,
    ) -> Tuple[Fingerprint, ...]:
        """Apply corrections, filtering and de-duplication to parsed documents."""
        active: List[Fingerprint] = []
        active_keys: Set[str] = set()
        primary_keys: Set[str] = set()

        for raw in primary_raw:
            fingerprint = Fingerprint.from_dict(raw)
            if not fingerprint.service or fingerprint.key in primary_keys:
                continue
            primary_keys.add(fingerprint.key)

            fingerprint = correct(fingerprint, self._patches)
            if self._is_active(fingerprint, exclude_edge_cases):
                active.append(fingerprint)
                active_keys.add(fingerprint.key)

        for raw in custom_raw:
            fingerprint = Fingerprint.from_dict(raw)
            if not fingerprint.service or fingerprint.key in active_keys:
                continue
            if self._is_active(fingerprint, exclude_edge_cases):
                active.append(fingerprint)
                active_keys.add(fingerprint.key)

        return tuple(active)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _is_active(fingerprint: Fingerprint, exclude_edge_cases: bool) -> bool:
        if fingerprint.is_not_vulnerable:
            return False
        if exclude_edge_cases and fingerprint.is_edge_case:
            return False
        return True

    def _read_source(self, url: str, cache_path: str, force_refresh: bool) -> List[Dict[str, Any]]:
        if not force_refresh and os.path.isfile(cache_path):
            try:
                return self._read_cache(cache_path)
            except (OSError, FingerprintLoadError) as e:
                logger.warning("Fingerprint cache %s unreadable (%s), downloading", cache_path, e)

        try:
            text = self._fetch(url)
            entries = _parse_document(text, url)
        except (requests.RequestException, FingerprintLoadError) as e:
            logger.warning("Fingerprint download failed for %s: %s", url, e)
            if os.path.isfile(cache_path):
                try:
                    return self._read_cache(cache_path)
                except (OSError, FingerprintLoadError) as cache_error:
                    raise FingerprintLoadError(
                        f"Error getting fingerprints! download failed ({e}) "
                        f"and cache unreadable ({cache_error})"
                    ) from cache_error
            raise FingerprintLoadError(
                f"Error getting fingerprints! download failed ({e}) and no cache at {cache_path}"
            ) from e

        self._write_cache(cache_path, text)
        return entries

    @staticmethod
    def _read_cache(cache_path: str) -> List[Dict[str, Any]]:
        with open(cache_path, "r", encoding="utf-8") as f:
            return _parse_document(f.read(), cache_path)

    @staticmethod
    def _write_cache(cache_path: str, text: str) -> None:
        try:
            os.makedirs(os.path.dirname(cache_path) or ".", exist_ok=True)
            with open(cache_path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            # A read-only cache dir only costs a re-download next run
            logger.warning("Could not write fingerprint cache %s: %s", cache_path, e)
