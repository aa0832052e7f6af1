# subtakeover/scanner/engines/__init__.py
"""
Evidence collection engines.
Engines do NOT decide whether a domain is vulnerable; they only gather facts.
"""
from subtakeover.scanner.engines.dns_engine import DNSEngine
from subtakeover.scanner.engines.http_engine import HTTPProbe

__all__ = ["DNSEngine", "HTTPProbe"]
