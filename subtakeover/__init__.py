# subtakeover/__init__.py
"""
subtakeover: subdomain takeover detection.

Usage:
    from subtakeover import FingerprintStore, ScanOrchestrator, Settings

    settings = Settings.from_env()
    fingerprints = FingerprintStore(settings).load()
    orchestrator = ScanOrchestrator.from_settings(settings, fingerprints)
    result = orchestrator.is_domain_vulnerable("blog.example.com")
"""

__version__ = "1.0.0"

from subtakeover.config import Settings
from subtakeover.fingerprints.store import FingerprintStore
from subtakeover.scanner.base import TakeoverResult
from subtakeover.scanner.orchestrator import ScanOrchestrator, ScanSummary

__all__ = [
    "__version__", "Settings", "FingerprintStore",
    "ScanOrchestrator", "ScanSummary", "TakeoverResult",
]
