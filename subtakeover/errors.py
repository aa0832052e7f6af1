# subtakeover/errors.py
"""
Exception taxonomy.

Only FingerprintLoadError is allowed to reach the caller of a scan. Every
other error is raised inside one component and converted into a degraded
evidence state at that component's public boundary.
"""

from __future__ import annotations


class TakeoverError(Exception):
    """Base class for all scanner errors."""


class FingerprintLoadError(TakeoverError):
    """Neither the remote sources nor the on-disk cache produced fingerprints."""


class DnsResolutionError(TakeoverError):
    """A single DNS query failed (timeout, SERVFAIL, no nameservers)."""


class HttpProbeError(TakeoverError):
    """The HTTP probe could not obtain a response."""


class RegistrationLookupError(TakeoverError):
    """The registration (WHOIS) lookup failed at the transport level."""


class ValidatorError(TakeoverError):
    """A provider validator could not reach a verdict."""
