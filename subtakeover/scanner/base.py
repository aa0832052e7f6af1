# subtakeover/scanner/base.py
"""
Data structures shared by the takeover detection pipeline.

Architecture:
    domain ─→ DNSEngine ─→ CnameResolutionResult ─→ FingerprintMatcher ─→ TakeoverResult
                              │                          │
                              └─ RegistrationOracle      └─ HTTPProbe (lazy)

Fingerprint:            one provider signature. Built once by the
                        FingerprintStore, frozen, shared by every worker.
CnameResolutionResult:  DNS evidence for one domain. Owned by the worker
                        scanning that domain and discarded afterwards.
TakeoverResult:         the final verdict for one domain, handed to the
                        console/output/comparison collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

DOMAIN_AVAILABLE_SERVICE = "Domain Available"

STATUS_VULNERABLE = "vulnerable"
STATUS_EDGE_CASE = "edge case"
STATUS_NOT_VULNERABLE = "not vulnerable"


def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def normalize_service_key(service: str) -> str:
    """Uniqueness key for a service name: lower-cased, spaces removed."""
    return (service or "").lower().replace(" ", "")


def _as_text_list(value: Any) -> Tuple[str, ...]:
    """The upstream JSON uses either a single string or a list of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v is not None)
    return (str(value),)


class MatchedRecord(Enum):
    NONE = "none"
    CNAME = "cname"
    A = "a"
    AAAA = "aaaa"


class MatchedLocation(Enum):
    NONE = "none"
    NXDOMAIN = "nxdomain"
    HTTP_STATUS = "http_status"
    HTTP_BODY = "http_body"
    DOMAIN_AVAILABLE = "domain_available"


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fingerprint:
    """
    A declarative signature for one third-party service.

    Fields:
        service:            Display name, unique after normalization.
        status:             "Vulnerable", "Edge case" or "Not vulnerable"
                            (the last never reaches the active set).
        cnames:             Substrings expected somewhere in the CNAME chain.
        a_records:          IPv4 prefixes/addresses expected in A answers.
        aaaa_records:       IPv6 prefixes/addresses expected in AAAA answers.
        fingerprint_texts:  Literal substrings searched for in the HTTP body.
        http_status:        Expected HTTP status code, if any.
        nxdomain:           An NXDOMAIN on a matching record is conclusive.
        vulnerable:         Upstream "vulnerable" flag, informational only.
    """
    service: str
    status: str = "Vulnerable"
    cnames: Tuple[str, ...] = ()
    a_records: Tuple[str, ...] = ()
    aaaa_records: Tuple[str, ...] = ()
    fingerprint_texts: Tuple[str, ...] = ()
    http_status: Optional[int] = None
    nxdomain: bool = False
    vulnerable: bool = True

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Fingerprint":
        http_status = raw.get("http_status")
        try:
            http_status = int(http_status) if http_status not in (None, "") else None
        except (TypeError, ValueError):
            http_status = None

        return cls(
            service=str(raw.get("service") or "").strip(),
            status=str(raw.get("status") or "Vulnerable").strip(),
            cnames=_as_text_list(raw.get("cname")),
            a_records=_as_text_list(raw.get("a")),
            aaaa_records=_as_text_list(raw.get("aaaa")),
            fingerprint_texts=_as_text_list(raw.get("fingerprint")),
            http_status=http_status,
            nxdomain=bool(raw.get("nxdomain", False)),
            vulnerable=bool(raw.get("vulnerable", True)),
        )

    @property
    def key(self) -> str:
        return normalize_service_key(self.service)

    @property
    def is_edge_case(self) -> bool:
        return self.status.lower() == STATUS_EDGE_CASE

    @property
    def is_not_vulnerable(self) -> bool:
        return self.status.lower() == STATUS_NOT_VULNERABLE

    @property
    def expects_redirect(self) -> bool:
        return self.http_status is not None and 300 <= self.http_status < 400


# ---------------------------------------------------------------------------
# DNS evidence
# ---------------------------------------------------------------------------

@dataclass
class CnameResolutionResult:
    """
    DNS evidence for one domain, built fresh on every resolution.

    is_domain_registered is only populated when is_nxdomain is True:
    None means "not checked".
    """
    cnames: List[str] = field(default_factory=list)
    a_records: List[str] = field(default_factory=list)
    aaaa_records: List[str] = field(default_factory=list)
    is_nxdomain: bool = False
    is_domain_registered: Optional[bool] = None


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TakeoverResult:
    """
    Final verdict for one domain.

    fingerprint is None when nothing matched. matched_record is still
    reported on a non-match when a DNS-level pattern hit was seen.
    """
    domain: str
    is_vulnerable: bool = False
    is_verified: bool = False
    fingerprint: Optional[Fingerprint] = None
    cnames: Tuple[str, ...] = ()
    a_records: Tuple[str, ...] = ()
    aaaa_records: Tuple[str, ...] = ()
    matched_record: MatchedRecord = MatchedRecord.NONE
    matched_location: MatchedLocation = MatchedLocation.NONE
    detected_at: datetime = field(default_factory=now_utc)

    @property
    def service(self) -> Optional[str]:
        return self.fingerprint.service if self.fingerprint else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "is_vulnerable": self.is_vulnerable,
            "is_verified": self.is_verified,
            "service": self.service,
            "cnames": list(self.cnames),
            "a": list(self.a_records),
            "aaaa": list(self.aaaa_records),
            "matched_record": self.matched_record.value,
            "matched_location": self.matched_location.value,
            "detected_at": self.detected_at.isoformat(),
        }
