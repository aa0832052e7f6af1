# subtakeover/cli.py
"""
Command-line entry point.

    subtakeover -d blog.example.com
    subtakeover -l domains.txt -t 100 -o findings.txt --validate
    subtakeover -l assets.csv --csv --csv-column hostname --compare last.json

Exit codes:
    0  no vulnerable domain found
    1  at least one vulnerable domain found (after --risk-level/--service)
    2  startup failure (no input, fingerprints unavailable)
"""

from __future__ import annotations

import argparse
import csv
import logging
import re
import sys
from typing import Callable, Iterable, List, Optional

import psutil

from subtakeover import __version__
from subtakeover.config import (
    DEFAULT_THREADS,
    MAX_ADAPTIVE_THREADS,
    MIN_ADAPTIVE_THREADS,
    Settings,
)
from subtakeover.errors import FingerprintLoadError
from subtakeover.fingerprints.store import FingerprintStore
from subtakeover.reporting import ComparisonStore, ScanReporter
from subtakeover.scanner.analyzers.risk import RISK_ORDER, meets_minimum
from subtakeover.scanner.base import TakeoverResult, normalize_service_key
from subtakeover.scanner.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VULNERABLE = 1
EXIT_ERROR = 2

MEMORY_PER_THREAD = 10 * 1024 * 1024

NOISY_LOGGERS = ["urllib3", "httpx", "httpcore", "azure", "botocore", "filelock", "tldextract"]

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

def validate_thread_count(threads: Optional[int]) -> int:
    """Non-positive (or missing) thread counts fall back to the default."""
    if threads is None or threads <= 0:
        return DEFAULT_THREADS
    return threads


def adaptive_thread_count(
    cpu_count: Optional[int] = None,
    available_memory: Optional[int] = None,
) -> int:
    """min(CPUs x 2, available memory / 10 MB), clamped to [5, 200]."""
    if cpu_count is None:
        cpu_count = psutil.cpu_count(logical=True) or 1
    if available_memory is None:
        available_memory = psutil.virtual_memory().available

    by_cpu = cpu_count * 2
    by_memory = available_memory // MEMORY_PER_THREAD
    return max(MIN_ADAPTIVE_THREADS, min(MAX_ADAPTIVE_THREADS, by_cpu, by_memory))


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def normalize_domain(raw: str) -> Optional[str]:
    """Lower-case hostname with scheme, path, port, wildcard and trailing dot removed."""
    value = (raw or "").strip().lower()
    if not value or value.startswith("#"):
        return None
    value = _SCHEME_RE.sub("", value)
    value = value.split("/", 1)[0].split("?", 1)[0]
    if value.count(":") == 1:
        value = value.split(":", 1)[0]
    if value.startswith("*."):
        value = value[2:]
    value = value.strip(".")
    return value or None


def unique_domains(values: Iterable[str]) -> List[str]:
    seen = set()
    domains: List[str] = []
    for raw in values:
        domain = normalize_domain(raw)
        if domain and domain not in seen:
            seen.add(domain)
            domains.append(domain)
    return domains


def read_domain_list(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8-sig") as f:
        return [line.strip() for line in f]


def read_domain_csv(path: str, column: Optional[str] = None) -> List[str]:
    """
    Domains from one column of a CSV file with a header row. `column` is a
    header name (case-insensitive) or a zero-based index; default column 0.
    """
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        rows = list(csv.reader(f))
    if not rows:
        return []

    header, body = rows[0], rows[1:]
    if column is None or column == "":
        index = 0
    elif column.isdigit():
        index = int(column)
    else:
        lowered = [h.strip().lower() for h in header]
        if column.strip().lower() not in lowered:
            raise ValueError(f"CSV column '{column}' not found in header {header}")
        index = lowered.index(column.strip().lower())

    return [row[index] for row in body if len(row) > index]


def collect_domains(args: argparse.Namespace) -> List[str]:
    values: List[str] = []
    if args.domain:
        values.extend(args.domain)
    if args.list:
        if args.csv:
            values.extend(read_domain_csv(args.list, args.csv_column))
        else:
            values.extend(read_domain_list(args.list))
    return unique_domains(values)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def build_result_filter(
    risk_level: Optional[str] = None,
    services: Optional[List[str]] = None,
) -> Callable[[TakeoverResult], bool]:
    wanted = {normalize_service_key(s) for s in services or [] if s.strip()}

    def result_filter(result: TakeoverResult) -> bool:
        if not meets_minimum(result, risk_level):
            return False
        if wanted and normalize_service_key(result.service or "") not in wanted:
            return False
        return True

    return result_filter


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtakeover",
        description="Detect subdomain takeover vulnerabilities from DNS and HTTP evidence.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    target = parser.add_argument_group("input")
    target.add_argument("-d", "--domain", action="append", help="A single domain to check (repeatable)")
    target.add_argument("-l", "--list", help="A line delimited list of domains to check")
    target.add_argument("--csv", action="store_true", help="Treat --list as a CSV file with a header row")
    target.add_argument("--csv-column", help="CSV column holding the domains (header name or index)")

    output = parser.add_argument_group("output")
    output.add_argument("-o", "--output", help="Append vulnerable domains to this file")
    output.add_argument("--compare", metavar="FILE", help="JSON results file from a previous run; new findings are marked")
    output.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    output.add_argument("-q", "--quiet", action="store_true", help="Only print findings and errors")
    output.add_argument("--details", action="store_true", help="Print description and remediation under each finding")

    scan = parser.add_argument_group("scan")
    scan.add_argument("-t", "--threads", type=int, default=DEFAULT_THREADS, help="Concurrent domains (default: 50)")
    scan.add_argument("--adaptive-threads", action="store_true", help="Derive the thread count from CPUs and free memory")
    scan.add_argument("-eu", "--exclude-unlikely", action="store_true", help="Skip 'Edge case' fingerprints")
    scan.add_argument("--validate", action="store_true", help="Confirm matches with provider APIs where supported")
    scan.add_argument("--update", action="store_true", help="Re-download fingerprints before scanning")
    scan.add_argument("--risk-level", choices=RISK_ORDER[1:], help="Only report findings at or above this risk")
    scan.add_argument("--service", action="append", help="Only report findings for this service (repeatable)")
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)
    settings = Settings.from_env()

    with ScanReporter(output_path=args.output, quiet=args.quiet, details=args.details) as reporter:
        try:
            domains = collect_domains(args)
        except (OSError, ValueError) as e:
            reporter.error(f"Could not read domains: {e}")
            return EXIT_ERROR
        if not domains:
            reporter.error("No domains to scan: use -d/--domain or -l/--list")
            return EXIT_ERROR

        try:
            fingerprints = FingerprintStore(settings).load(
                exclude_edge_cases=args.exclude_unlikely,
                force_refresh=args.update,
            )
        except FingerprintLoadError as e:
            reporter.error(str(e))
            return EXIT_ERROR

        threads = adaptive_thread_count() if args.adaptive_threads else validate_thread_count(args.threads)
        reporter.message(
            f"[dim]Loaded [cyan]{len(fingerprints)}[/] fingerprints, scanning "
            f"[cyan]{len(domains)}[/] domains with [cyan]{threads}[/] threads[/]"
        )

        comparison: Optional[ComparisonStore] = None
        if args.compare:
            comparison = ComparisonStore(args.compare)
            comparison.load()

        result_filter = build_result_filter(args.risk_level, args.service)

        def on_result(result: TakeoverResult) -> None:
            if comparison is not None:
                is_new = comparison.is_new(result)
                comparison.record(result)
            else:
                is_new = False
            if result.is_vulnerable and result_filter(result):
                reporter.finding(result, is_new=is_new)

        orchestrator = ScanOrchestrator.from_settings(settings, fingerprints)
        try:
            summary = orchestrator.scan(
                domains,
                threads=threads,
                validate=args.validate,
                on_result=on_result,
                result_filter=result_filter,
                on_progress=reporter.progress,
            )
        finally:
            orchestrator.close()

        reporter.summary(summary)
        if comparison is not None:
            try:
                comparison.save()
            except OSError as e:
                reporter.error(f"Could not write comparison file {args.compare}: {e}")

    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
