# subtakeover/scanner/orchestrator.py
"""
Scan Orchestrator.

Runs the per-domain pipeline over a bounded worker pool:

    1. DNSEngine.resolve(domain)
    2. NXDOMAIN on an unregistered root -> "Domain Available", done
    3. fingerprints in load order through FingerprintMatcher, first match wins
    4. with validation on, the provider validator (if any) decides:
         CONFIRMED      -> match reported as verified
         REFUTED        -> match discarded, next fingerprint
         INDETERMINATE  -> match reported unverified
    5. TakeoverResult handed to the on_result callback

Shared state during a scan:
    fingerprints       read-only tuple
    registration cache owned by the RegistrationOracle inside the DNSEngine
    validator sessions owned by the ValidatorRegistry
    counters           one lock per counter

Any exception while processing one domain is logged and counted as a
failure for that domain; the batch always runs to completion.

Usage from cli.py:
    orchestrator = ScanOrchestrator.from_settings(settings, fingerprints)
    summary = orchestrator.scan(domains, threads=50, validate=True, on_result=printer)
    exit_code = summary.exit_code
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from subtakeover.config import DEFAULT_THREADS, Settings
from subtakeover.scanner.base import (
    DOMAIN_AVAILABLE_SERVICE,
    CnameResolutionResult,
    Fingerprint,
    MatchedLocation,
    MatchedRecord,
    TakeoverResult,
)
from subtakeover.scanner.engines.dns_engine import DNSEngine
from subtakeover.scanner.engines.http_engine import HTTPProbe
from subtakeover.scanner.matcher import FingerprintMatcher, ResponseCache
from subtakeover.scanner.registration import RegistrationOracle
from subtakeover.validators import ValidatorRegistry, Verdict

logger = logging.getLogger(__name__)

DOMAIN_AVAILABLE = Fingerprint(service=DOMAIN_AVAILABLE_SERVICE)

ResultCallback = Callable[[TakeoverResult], None]
ResultFilter = Callable[[TakeoverResult], bool]
ProgressCallback = Callable[["ProgressSnapshot"], None]


# ---------------------------------------------------------------------------
# Counters and progress
# ---------------------------------------------------------------------------

class Counter:
    """Thread-safe integer; each counter has its own lock."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class ProgressSnapshot:
    processed: int
    total: int
    vulnerable: int
    elapsed: float

    @property
    def rate(self) -> float:
        return self.processed / self.elapsed if self.elapsed > 0 else 0.0


class ProgressReporter:
    """
    Background timer emitting a ProgressSnapshot every `interval` seconds.

    stop() signals the thread, waits for it, and emits one final snapshot
    so the last numbers are always reported.
    """

    def __init__(
        self,
        snapshot: Callable[[], ProgressSnapshot],
        callback: ProgressCallback,
        interval: float = 5.0,
    ):
        self._snapshot = snapshot
        self._callback = callback
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.interval <= 0:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="scan-progress")
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=10)
            self._thread = None
        self._emit()

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self._emit()

    def _emit(self) -> None:
        try:
            self._callback(self._snapshot())
        except Exception:
            logger.exception("Progress callback failed")


def log_progress(snapshot: ProgressSnapshot) -> None:
    logger.info(
        "Progress: %d/%d domains, %d vulnerable, %.1f domains/s",
        snapshot.processed, snapshot.total, snapshot.vulnerable, snapshot.rate,
    )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@dataclass
class ScanSummary:
    """
    Aggregate outcome of one scan.

    Fields:
        total:       Domains submitted.
        processed:   Domains whose pipeline finished (including failures).
        vulnerable:  Vulnerable results that passed the result filter.
        failed:      Domains whose pipeline raised.
        elapsed:     Wall-clock seconds.
        results:     The vulnerable results counted in `vulnerable`.
    """
    total: int = 0
    processed: int = 0
    vulnerable: int = 0
    failed: int = 0
    elapsed: float = 0.0
    results: List[TakeoverResult] = field(default_factory=list)

    @property
    def rate(self) -> float:
        return self.processed / self.elapsed if self.elapsed > 0 else 0.0

    @property
    def exit_code(self) -> int:
        # CI gate: any vulnerable domain fails the run
        return 1 if self.vulnerable > 0 else 0


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ScanOrchestrator:

    def __init__(
        self,
        fingerprints: Sequence[Fingerprint],
        dns_engine: DNSEngine,
        matcher: FingerprintMatcher,
        validators: Optional[ValidatorRegistry] = None,
        progress_interval: float = 5.0,
    ):
        self.fingerprints = tuple(fingerprints)
        self.dns_engine = dns_engine
        self.matcher = matcher
        self.validators = validators if validators is not None else ValidatorRegistry()
        self.progress_interval = progress_interval

    @classmethod
    def from_settings(cls, settings: Settings, fingerprints: Sequence[Fingerprint]) -> "ScanOrchestrator":
        """Wire a fresh pipeline: new registration cache, probe and validator sessions."""
        oracle = RegistrationOracle(timeout=settings.whois_timeout)
        dns_engine = DNSEngine(
            oracle=oracle,
            timeout=settings.dns_timeout,
            retries=settings.dns_retries,
            nameservers=settings.nameservers,
        )
        probe = HTTPProbe(timeout=settings.http_timeout)
        return cls(
            fingerprints,
            dns_engine,
            FingerprintMatcher(probe),
            ValidatorRegistry(),
            progress_interval=settings.progress_interval,
        )

    def close(self) -> None:
        probe = getattr(self.matcher, "probe", None)
        for resource in (self.dns_engine, probe):
            if resource is not None and hasattr(resource, "close"):
                resource.close()

    # -------------------------------------------------------------------
    # Single domain
    # -------------------------------------------------------------------

    def is_domain_vulnerable(self, domain: str, validate: bool = False) -> TakeoverResult:
        dns = self.dns_engine.resolve(domain)

        if dns.is_nxdomain and dns.is_domain_registered is False:
            return self._result(
                domain, dns,
                is_vulnerable=True,
                fingerprint=DOMAIN_AVAILABLE,
                matched_record=MatchedRecord.CNAME,
                matched_location=MatchedLocation.DOMAIN_AVAILABLE,
            )

        responses: ResponseCache = {}
        for fingerprint in self.fingerprints:
            outcome = self.matcher.matches(fingerprint, dns, domain, responses)
            if not outcome.matched:
                continue

            verified = False
            if validate:
                verdict = self._validate(fingerprint, dns)
                if verdict is Verdict.REFUTED:
                    logger.debug("%s: %s match refuted by validator", domain, fingerprint.service)
                    continue
                verified = verdict is Verdict.CONFIRMED

            return self._result(
                domain, dns,
                is_vulnerable=True,
                is_verified=verified,
                fingerprint=fingerprint,
                matched_record=outcome.record,
                matched_location=outcome.location,
            )

        return self._result(domain, dns)

    def _validate(self, fingerprint: Fingerprint, dns: CnameResolutionResult) -> Verdict:
        try:
            validator = self.validators.get(fingerprint.service)
        except Exception as e:
            logger.debug("Could not create validator for %s: %s", fingerprint.service, e)
            return Verdict.INDETERMINATE
        if validator is None:
            return Verdict.INDETERMINATE
        return validator.run(dns.cnames)

    @staticmethod
    def _result(domain: str, dns: CnameResolutionResult, **kwargs) -> TakeoverResult:
        return TakeoverResult(
            domain=domain,
            cnames=tuple(dns.cnames),
            a_records=tuple(dns.a_records),
            aaaa_records=tuple(dns.aaaa_records),
            **kwargs,
        )

    # -------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------

    def scan(
        self,
        domains: Iterable[str],
        threads: int = DEFAULT_THREADS,
        validate: bool = False,
        on_result: Optional[ResultCallback] = None,
        result_filter: Optional[ResultFilter] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScanSummary:
        domains = list(domains)
        threads = threads if threads > 0 else DEFAULT_THREADS

        processed = Counter()
        vulnerable = Counter()
        failed = Counter()
        results: List[TakeoverResult] = []
        results_lock = threading.Lock()
        start = time.monotonic()

        def snapshot() -> ProgressSnapshot:
            return ProgressSnapshot(
                processed=processed.value,
                total=len(domains),
                vulnerable=vulnerable.value,
                elapsed=time.monotonic() - start,
            )

        def work(domain: str) -> None:
            try:
                result = self.is_domain_vulnerable(domain, validate=validate)
                if result.is_vulnerable and (result_filter is None or result_filter(result)):
                    vulnerable.increment()
                    with results_lock:
                        results.append(result)
                if on_result is not None:
                    on_result(result)
            except Exception:
                failed.increment()
                logger.exception("Scan failed for %s", domain)
            finally:
                processed.increment()

        reporter = ProgressReporter(snapshot, on_progress or log_progress, self.progress_interval)
        logger.info("Scanning %d domains with %d threads", len(domains), threads)
        reporter.start()
        try:
            with ThreadPoolExecutor(max_workers=threads, thread_name_prefix="scan") as pool:
                futures = [pool.submit(work, domain) for domain in domains]
                try:
                    for future in as_completed(futures):
                        future.result()
                except KeyboardInterrupt:
                    for future in futures:
                        future.cancel()
                    raise
        finally:
            reporter.stop()

        summary = ScanSummary(
            total=len(domains),
            processed=processed.value,
            vulnerable=vulnerable.value,
            failed=failed.value,
            elapsed=time.monotonic() - start,
            results=results,
        )
        logger.info(
            "Scan finished: %d processed, %d vulnerable, %d failed in %.1fs (%.1f domains/s)",
            summary.processed, summary.vulnerable, summary.failed, summary.elapsed, summary.rate,
        )
        return summary
