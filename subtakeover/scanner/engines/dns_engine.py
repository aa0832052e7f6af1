# subtakeover/scanner/engines/dns_engine.py
"""
DNS Resolution engine.

Walks the CNAME chain of a domain to its terminal state and records the
evidence the matcher needs.

Walk rules (per hop):
    - NXDOMAIN:      is_nxdomain=True, the registration oracle fills
                     is_domain_registered, walk ends.
    - query failure: retried with linear backoff (backoff x attempt); once
                     retries are exhausted that name is abandoned and the
                     evidence gathered so far is returned.
    - CNAME answer:  each target is appended to cnames and walked next. A
                     target already seen ends the walk (CNAME loop).
    - no CNAME:      A and AAAA are queried concurrently and collected. The
                     AAAA lookup runs on a pool shared by every resolve()
                     call, the A lookup on the calling worker.

The walk is an explicit stack bounded by MAX_CNAME_CHAIN hops and a
visited set, so hostile zones cannot make it run forever.

Output (CnameResolutionResult):
    cnames:                canonical names in the order visited
    a_records/aaaa_records terminal addresses (empty on NXDOMAIN)
    is_nxdomain:           the chain ended in NXDOMAIN
    is_domain_registered:  oracle verdict, only set on NXDOMAIN
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Set, Tuple

import dns.exception
import dns.resolver

from subtakeover.errors import DnsResolutionError
from subtakeover.scanner.base import CnameResolutionResult
from subtakeover.scanner.registration import RegistrationOracle

logger = logging.getLogger(__name__)

MAX_CNAME_CHAIN = 32
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF = 0.1
DEFAULT_ADDRESS_WORKERS = 32

# query(name, rdtype) -> answers as text. Raises dns.resolver.NXDOMAIN when
# the name does not exist and DnsResolutionError on any other failure.
Query = Callable[[str, str], List[str]]


def _rdata_text(rdata) -> str:
    target = getattr(rdata, "target", None)
    if target is not None:
        return target.to_text(omit_final_dot=True)
    address = getattr(rdata, "address", None)
    if address is not None:
        return str(address)
    return rdata.to_text()


def build_resolver(timeout: float = 5.0, nameservers: Optional[List[str]] = None) -> dns.resolver.Resolver:
    resolver = dns.resolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout * 2
    if nameservers:
        resolver.nameservers = list(nameservers)
    return resolver


def dnspython_query(resolver: dns.resolver.Resolver) -> Query:
    """Adapt a dnspython Resolver to the Query contract."""

    def query(name: str, rdtype: str) -> List[str]:
        try:
            answers = resolver.resolve(name, rdtype)
            return [_rdata_text(r) for r in answers]
        except dns.resolver.NoAnswer:
            return []
        except dns.resolver.NXDOMAIN:
            raise
        except dns.resolver.NoNameservers as e:
            raise DnsResolutionError(f"{name} {rdtype}: no nameserver answered ({e})") from e
        except dns.exception.Timeout as e:
            raise DnsResolutionError(f"{name} {rdtype}: timed out") from e
        except dns.exception.DNSException as e:
            raise DnsResolutionError(f"{name} {rdtype}: {e}") from e

    return query


class DNSEngine:
    """
    CNAME-chain resolver.

    Safe to share between workers: all per-domain state lives in the
    CnameResolutionResult and visited set built inside resolve().
    Call close() once scanning is done to stop the address lookup pool.
    """

    def __init__(
        self,
        oracle: Optional[RegistrationOracle] = None,
        query: Optional[Query] = None,
        timeout: float = 5.0,
        retries: int = DEFAULT_RETRIES,
        backoff: float = DEFAULT_BACKOFF,
        nameservers: Optional[List[str]] = None,
        sleep: Callable[[float], None] = time.sleep,
        address_workers: int = DEFAULT_ADDRESS_WORKERS,
    ):
        self.oracle = oracle or RegistrationOracle()
        self._query = query or dnspython_query(build_resolver(timeout, nameservers))
        self.retries = max(1, retries)
        self.backoff = backoff
        self._sleep = sleep
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, address_workers), thread_name_prefix="dns-address",
        )

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    def resolve(self, domain: str) -> CnameResolutionResult:
        """Resolve domain. Never raises; failures leave partial evidence."""
        result = CnameResolutionResult()
        try:
            self._walk(domain.strip().rstrip("."), result)
        except Exception as e:
            logger.debug("DNS walk for %s aborted: %s", domain, e)
        return result

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    # -------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------

    def _walk(self, domain: str, result: CnameResolutionResult) -> None:
        visited: Set[str] = {domain.lower()}
        stack: List[Tuple[str, int]] = [(domain, 0)]

        while stack:
            name, depth = stack.pop()

            try:
                targets = self._query_with_retry(name, "CNAME")
            except dns.resolver.NXDOMAIN:
                result.is_nxdomain = True
                result.a_records.clear()
                result.aaaa_records.clear()
                result.is_domain_registered = self.oracle.is_registered(name)
                return
            except DnsResolutionError as e:
                logger.debug("Giving up on %s after %d attempts: %s", name, self.retries, e)
                continue

            if not targets:
                self._collect_addresses(name, result)
                continue

            if depth + 1 > MAX_CNAME_CHAIN:
                logger.debug("CNAME chain for %s exceeds %d hops, stopping", domain, MAX_CNAME_CHAIN)
                return

            pending: List[Tuple[str, int]] = []
            for target in targets:
                key = target.lower().rstrip(".")
                if key in visited:
                    logger.debug("CNAME loop detected at %s -> %s", name, target)
                    return
                visited.add(key)
                result.cnames.append(target)
                pending.append((target, depth + 1))

            stack.extend(reversed(pending))

    def _collect_addresses(self, name: str, result: CnameResolutionResult) -> None:
        aaaa_future = self._pool.submit(self._address_query, name, "AAAA")
        result.a_records.extend(self._address_query(name, "A"))
        result.aaaa_records.extend(aaaa_future.result())

    def _address_query(self, name: str, rdtype: str) -> List[str]:
        try:
            return self._query_with_retry(name, rdtype)
        except dns.resolver.NXDOMAIN:
            return []
        except DnsResolutionError as e:
            logger.debug("%s lookup for %s failed: %s", rdtype, name, e)
            return []

    def _query_with_retry(self, name: str, rdtype: str) -> List[str]:
        for attempt in range(1, self.retries + 1):
            try:
                return self._query(name, rdtype)
            except DnsResolutionError:
                if attempt >= self.retries:
                    raise
                self._sleep(self.backoff * attempt)
        return []
