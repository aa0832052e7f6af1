# tests/conftest.py
"""Shared fakes. Nothing in the test suite touches the network."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

import dns.resolver
import pytest

from subtakeover.errors import DnsResolutionError
from subtakeover.scanner.base import CnameResolutionResult, Fingerprint
from subtakeover.scanner.engines.http_engine import ProbeResponse


class FakeDns:
    """
    Query function over an in-memory zone.

    records:   {(name, rdtype): [answers]}
    nxdomain:  names that do not exist
    failures:  {(name, rdtype): n} -> the first n queries raise DnsResolutionError
    """

    def __init__(self, records=None, nxdomain=(), failures=None):
        self.records: Dict[Tuple[str, str], List[str]] = dict(records or {})
        self.nxdomain = set(nxdomain)
        self.failures: Dict[Tuple[str, str], int] = dict(failures or {})
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def __call__(self, name: str, rdtype: str) -> List[str]:
        with self._lock:
            self.calls.append((name, rdtype))
            if name in self.nxdomain:
                raise dns.resolver.NXDOMAIN()
            remaining = self.failures.get((name, rdtype), 0)
            if remaining:
                self.failures[(name, rdtype)] = remaining - 1
                raise DnsResolutionError(f"SERVFAIL {name} {rdtype}")
        return list(self.records.get((name, rdtype), []))


class FakeOracle:

    def __init__(self, registered: bool = True):
        self.registered = registered
        self.calls: List[str] = []

    def is_registered(self, domain: str) -> bool:
        self.calls.append(domain)
        return self.registered


class FakeProbe:
    """Returns one canned response and records every call."""

    def __init__(self, response: Optional[ProbeResponse] = None):
        self.response = response
        self.calls: List[Tuple[str, bool]] = []
        self._lock = threading.Lock()

    def fetch(self, domain: str, follow_redirects: bool = True) -> Optional[ProbeResponse]:
        with self._lock:
            self.calls.append((domain, follow_redirects))
        return self.response


class FakeEngine:
    """DNS engine returning prepared evidence per domain."""

    def __init__(self, evidence: Dict[str, CnameResolutionResult], failing=()):
        self.evidence = evidence
        self.failing = set(failing)

    def resolve(self, domain: str) -> CnameResolutionResult:
        if domain in self.failing:
            raise RuntimeError(f"resolver exploded on {domain}")
        return self.evidence.get(domain, CnameResolutionResult())


def make_fingerprint(service: str = "Heroku", **kwargs) -> Fingerprint:
    return Fingerprint(service=service, **kwargs)


@pytest.fixture
def fake_probe():
    return FakeProbe(ProbeResponse(url="https://example.test", status_code=200, body=""))
