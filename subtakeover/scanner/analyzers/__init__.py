# subtakeover/scanner/analyzers/__init__.py
"""
Result analyzers.
Analyzers read finished TakeoverResults; they never collect data.
"""
from subtakeover.scanner.analyzers.risk import RISK_ORDER, assess, classify_risk

__all__ = ["RISK_ORDER", "assess", "classify_risk"]
