# subtakeover/scanner/analyzers/risk.py
"""
Takeover risk classification.

Reads a TakeoverResult and classifies how exploitable the finding is.

Risk levels:
    CRITICAL: Verified by the provider, or the registrable root domain is
               unregistered ("Domain Available"). Anyone can claim it now.
    HIGH:     NXDOMAIN or HTTP evidence on a fingerprint whose status is
               "Vulnerable". Very likely exploitable, not provider-verified.
    MEDIUM:   Matched an "Edge case" fingerprint. Exploitability depends
               on provider conditions; needs manual investigation.
    INFO:     No match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from subtakeover.scanner.base import DOMAIN_AVAILABLE_SERVICE, MatchedLocation, TakeoverResult

logger = logging.getLogger(__name__)

RISK_ORDER: List[str] = ["info", "medium", "high", "critical"]


@dataclass(frozen=True)
class RiskAssessment:
    """
    Fields:
        level:        One of RISK_ORDER.
        confidence:   "high" or "medium", from how the match was made.
        description:  One-paragraph explanation of the finding.
        remediation:  What the domain owner should do.
    """
    level: str
    confidence: str
    description: str
    remediation: str


def classify_risk(result: TakeoverResult) -> str:
    if not result.is_vulnerable:
        return "info"
    if result.is_verified or result.service == DOMAIN_AVAILABLE_SERVICE:
        return "critical"
    if result.fingerprint is not None and result.fingerprint.is_edge_case:
        return "medium"
    return "high"


def meets_minimum(result: TakeoverResult, minimum: Optional[str]) -> bool:
    """True when the result's risk is at or above `minimum` (None: everything)."""
    if not minimum:
        return True
    level = classify_risk(result)
    return RISK_ORDER.index(level) >= RISK_ORDER.index(minimum.lower())


def assess(result: TakeoverResult) -> RiskAssessment:
    level = classify_risk(result)
    domain = result.domain
    service = result.service or "Unknown"
    target = result.cnames[-1] if result.cnames else domain

    if level == "info":
        return RiskAssessment(level, "high", f"No takeover fingerprint matched {domain}.", "")

    if result.service == DOMAIN_AVAILABLE_SERVICE:
        return RiskAssessment(
            level, "high",
            f"{domain} does not exist and its registrable domain appears to be unregistered. "
            f"Anyone can register it and serve content for every name under it.",
            "Register the domain again or remove every DNS record that points into it.",
        )

    confidence = "high" if result.matched_location in (
        MatchedLocation.NXDOMAIN, MatchedLocation.HTTP_BODY,
    ) or result.is_verified else "medium"

    description = (
        f"{domain} points to {target}, which belongs to {service}. "
        f"The resource appears to be unclaimed"
    )
    if result.matched_location is MatchedLocation.NXDOMAIN:
        description += " (the CNAME target does not resolve)."
    elif result.matched_location is MatchedLocation.HTTP_STATUS:
        description += " (the service returned its unclaimed-resource status code)."
    elif result.matched_location is MatchedLocation.HTTP_BODY:
        description += " (the service returned its unclaimed-resource error page)."
    else:
        description += "."
    if result.is_verified:
        description += f" {service} confirmed the resource name is available."
    if level == "medium":
        description += f" {service} takeovers are conditional; verify manually."

    remediation = (
        f"Remove the DNS record {domain} -> {target}, or reclaim the resource on "
        f"{service} before a third party does."
    )
    return RiskAssessment(level, confidence, description, remediation)
