# subtakeover/scanner/matcher.py
"""
Fingerprint matcher.

Decides whether one fingerprint matches one domain's DNS evidence:

    1. DNS screen      any CNAME/A/AAAA contains any of the fingerprint's
                       patterns. The matched record kind is the first hit in
                       CNAME > A > AAAA order.
    2. NXDOMAIN        evidence is NXDOMAIN, the fingerprint expects it and
                       the DNS screen hit: match at NXDOMAIN, no HTTP.
    3. HTTP            only after a DNS hit. One GET, redirects disabled when
                       the expected status is 3xx. Status equality first,
                       then any non-empty body text as a literal substring.
    4. no match        record kind from step 1 is still reported.

Matching is plain substring containment on the raw strings, not suffix or
label aware: the pattern "herokuapp" matches "myapp.herokuapp.com" and also
"herokuapp.net.example.com". Upstream patterns are frequently partial
hostnames, so the looseness is kept deliberately and pinned by tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from subtakeover.scanner.base import (
    CnameResolutionResult,
    Fingerprint,
    MatchedLocation,
    MatchedRecord,
)
from subtakeover.scanner.engines.http_engine import HTTPProbe, ProbeResponse

logger = logging.getLogger(__name__)

# (follow_redirects) -> response, scoped to one domain
ResponseCache = Dict[bool, Optional[ProbeResponse]]


@dataclass(frozen=True)
class MatchOutcome:
    matched: bool
    record: MatchedRecord = MatchedRecord.NONE
    location: MatchedLocation = MatchedLocation.NONE


def contains_any(values: Iterable[str], patterns: Tuple[str, ...]) -> bool:
    """True when any value contains any non-empty pattern."""
    patterns = tuple(p for p in patterns if p)
    if not patterns:
        return False
    return any(pattern in value for value in values for pattern in patterns)


class FingerprintMatcher:

    def __init__(self, probe: HTTPProbe):
        self.probe = probe

    def matches(
        self,
        fingerprint: Fingerprint,
        dns: CnameResolutionResult,
        domain: str,
        responses: Optional[ResponseCache] = None,
    ) -> MatchOutcome:
        cname_hit = contains_any(dns.cnames, fingerprint.cnames)
        a_hit = contains_any(dns.a_records, fingerprint.a_records)
        aaaa_hit = contains_any(dns.aaaa_records, fingerprint.aaaa_records)

        if cname_hit:
            record = MatchedRecord.CNAME
        elif a_hit:
            record = MatchedRecord.A
        elif aaaa_hit:
            record = MatchedRecord.AAAA
        else:
            return MatchOutcome(False)

        if dns.is_nxdomain and fingerprint.nxdomain:
            return MatchOutcome(True, record, MatchedLocation.NXDOMAIN)

        follow_redirects = not fingerprint.expects_redirect
        response = self._fetch(domain, follow_redirects, responses)
        if response is None:
            return MatchOutcome(False, record)

        if fingerprint.http_status is not None and response.status_code == fingerprint.http_status:
            return MatchOutcome(True, record, MatchedLocation.HTTP_STATUS)

        if response.body.strip():
            for text in fingerprint.fingerprint_texts:
                if text.strip() and text in response.body:
                    return MatchOutcome(True, record, MatchedLocation.HTTP_BODY)

        return MatchOutcome(False, record)

    def _fetch(
        self,
        domain: str,
        follow_redirects: bool,
        responses: Optional[ResponseCache],
    ) -> Optional[ProbeResponse]:
        if responses is not None and follow_redirects in responses:
            return responses[follow_redirects]

        response = self.probe.fetch(domain, follow_redirects=follow_redirects)
        logger.debug(
            "Probed %s (follow_redirects=%s): %s",
            domain, follow_redirects, response.status_code if response else "unresolvable",
        )
        if responses is not None:
            responses[follow_redirects] = response
        return response
