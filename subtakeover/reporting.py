# subtakeover/reporting.py
"""
Result reporting.

ScanReporter owns everything workers write to: the rich console and the
optional output file. Both sit behind one lock so every finding is
written as one complete line, whatever the thread interleaving.

ComparisonStore persists results between runs as a JSON map
domain -> TakeoverResult.to_dict() and flags findings that were not
vulnerable (or not present) last time.

Line format (console and output file):
    [<service>] <domain> - CNAMES: <cname>, <cname> [verified] [NEW]

With details on, a vulnerable finding is followed by its risk assessment
(description, then remediation), each indented on its own line.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from subtakeover.scanner.analyzers.risk import assess, classify_risk
from subtakeover.scanner.base import TakeoverResult
from subtakeover.scanner.orchestrator import ProgressSnapshot, ScanSummary

logger = logging.getLogger(__name__)

RISK_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "info": "dim",
}


def format_result_line(result: TakeoverResult, is_new: bool = False) -> str:
    """Plain-text finding line, used for the output file."""
    line = f"[{result.service or 'None'}] {result.domain}"
    if result.cnames:
        line += f" - CNAMES: {', '.join(result.cnames)}"
    if result.is_verified:
        line += " [verified]"
    if is_new:
        line += " [NEW]"
    return line


def format_detail_lines(result: TakeoverResult) -> List[str]:
    """Indented description/remediation lines; empty for non-findings."""
    if not result.is_vulnerable:
        return []
    assessment = assess(result)
    lines = [f"    {assessment.description} (confidence: {assessment.confidence})"]
    if assessment.remediation:
        lines.append(f"    Remediation: {assessment.remediation}")
    return lines


class ScanReporter:

    def __init__(
        self,
        console: Optional[Console] = None,
        output_path: Optional[str] = None,
        quiet: bool = False,
        details: bool = False,
    ):
        self.console = console or Console(highlight=False)
        self.quiet = quiet
        self.details = details
        self.output_path = output_path
        self._lock = threading.Lock()
        self._output: Optional[TextIO] = None

    def __enter__(self) -> "ScanReporter":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def open(self) -> None:
        if self.output_path and self._output is None:
            directory = os.path.dirname(self.output_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._output = open(self.output_path, "a", encoding="utf-8")

    def close(self) -> None:
        with self._lock:
            if self._output is not None:
                self._output.close()
                self._output = None

    # -------------------------------------------------------------------
    # Worker-facing
    # -------------------------------------------------------------------

    def finding(self, result: TakeoverResult, is_new: bool = False) -> None:
        risk = classify_risk(result)
        style = RISK_STYLES.get(risk, "")

        markup = f"[{style}]\\[{escape(result.service or 'None')}][/] {escape(result.domain)}"
        if result.cnames:
            markup += f" [dim]- CNAMES: {escape(', '.join(result.cnames))}[/]"
        markup += f" [{style}]({risk})[/]"
        if result.is_verified:
            markup += " [bold green]\\[verified][/]"
        if is_new:
            markup += " [bold magenta]\\[NEW][/]"

        lines = [format_result_line(result, is_new)]
        if self.details:
            detail_lines = format_detail_lines(result)
            lines.extend(detail_lines)
            markup += "".join(f"\n[dim]{escape(line)}[/]" for line in detail_lines)

        with self._lock:
            self.console.print(markup)
            if self._output is not None:
                self._output.write("\n".join(lines) + "\n")
                self._output.flush()

    def progress(self, snapshot: ProgressSnapshot) -> None:
        if self.quiet:
            return
        with self._lock:
            self.console.print(
                f"[dim]{snapshot.processed}/{snapshot.total} domains, "
                f"{snapshot.vulnerable} vulnerable, {snapshot.rate:.1f} domains/s[/]"
            )

    # -------------------------------------------------------------------
    # Main-thread
    # -------------------------------------------------------------------

    def message(self, text: str) -> None:
        if self.quiet:
            return
        with self._lock:
            self.console.print(text)

    def error(self, text: str) -> None:
        with self._lock:
            self.console.print(f"[bold red]error:[/] {escape(text)}")

    def summary(self, summary: ScanSummary) -> None:
        if self.quiet:
            return
        table = Table(title="Scan summary", show_header=False)
        table.add_column("metric", style="cyan")
        table.add_column("value", justify="right")
        table.add_row("Domains", str(summary.total))
        table.add_row("Processed", str(summary.processed))
        table.add_row("Vulnerable", str(summary.vulnerable))
        table.add_row("Failed", str(summary.failed))
        table.add_row("Elapsed", f"{summary.elapsed:.1f}s")
        table.add_row("Rate", f"{summary.rate:.1f} domains/s")
        with self._lock:
            self.console.print(table)


class ComparisonStore:
    """
    Previous run's results, keyed by domain.

    is_new() is answered from the state loaded at start, so findings of the
    current run never mark each other as known.
    """

    def __init__(self, path: str):
        self.path = path
        self._previous: Dict[str, Dict[str, Any]] = {}
        self._current: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self) -> None:
        if not os.path.isfile(self.path):
            logger.info("No comparison file at %s, every finding is new", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable comparison file %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._previous = {k: v for k, v in data.items() if isinstance(v, dict)}
            self._current = dict(self._previous)

    def is_new(self, result: TakeoverResult) -> bool:
        if not result.is_vulnerable:
            return False
        previous = self._previous.get(result.domain)
        return previous is None or not previous.get("is_vulnerable", False)

    def record(self, result: TakeoverResult) -> None:
        with self._lock:
            self._current[result.domain] = result.to_dict()

    def save(self) -> None:
        with self._lock:
            snapshot = dict(self._current)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
