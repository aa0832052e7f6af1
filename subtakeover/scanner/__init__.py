# subtakeover/scanner/__init__.py
"""
Takeover detection pipeline.

Usage:
    from subtakeover.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator.from_settings(settings, fingerprints)
    summary = orchestrator.scan(domains, threads=50)

Architecture:
    ScanOrchestrator
    ├── Engines (collect evidence)
    │   ├── DNSEngine       : CNAME chain, A/AAAA, NXDOMAIN
    │   │   └── RegistrationOracle: WHOIS on the registrable root
    │   └── HTTPProbe       : one GET, only after a DNS hit
    │
    ├── FingerprintMatcher  : evidence + fingerprint → match location
    ├── Validators          : provider APIs confirm or refute a match
    └── Analyzers
        └── risk            : critical / high / medium classification
"""

from subtakeover.scanner.orchestrator import ScanOrchestrator

__all__ = ["ScanOrchestrator"]
