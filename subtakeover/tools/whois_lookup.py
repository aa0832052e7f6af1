# subtakeover/tools/whois_lookup.py
"""
WHOIS transport.

Raw port-43 WHOIS for registrable domains:
  - picks the registry server from WHOIS_SERVERS, falling back to IANA
  - follows one registrar referral ("Registrar WHOIS Server:" etc.)
  - returns the raw response text

Interpretation of the text (registered / unregistered) belongs to
scanner/registration.py. Transport failures raise RegistrationLookupError.
"""

from __future__ import annotations

import logging
import re
import socket
import threading
from typing import Dict, Optional

from subtakeover.errors import RegistrationLookupError

logger = logging.getLogger(__name__)

TIMEOUT = 10
MAX_RESPONSE_BYTES = 65536

# ═══════════════════════════════════════════════════════════════
# DOMAIN WHOIS SERVERS
# ═══════════════════════════════════════════════════════════════

WHOIS_SERVERS = {
    "com": "whois.verisign-grs.com",
    "net": "whois.verisign-grs.com",
    "org": "whois.pir.org",
    "info": "whois.afilias.net",
    "io": "whois.nic.io",
    "co": "whois.nic.co",
    "dev": "whois.nic.google",
    "app": "whois.nic.google",
    "ai": "whois.nic.ai",
    "me": "whois.nic.me",
    "xyz": "whois.nic.xyz",
    "tech": "whois.nic.tech",
    "cloud": "whois.nic.cloud",
    "uk": "whois.nic.uk",
    "au": "whois.auda.org.au",
    "de": "whois.denic.de",
    "fr": "whois.nic.fr",
    "nl": "whois.sidn.nl",
    "ca": "whois.cira.ca",
    "us": "whois.nic.us",
    "eu": "whois.eu",
    "in": "whois.registry.in",
    "jp": "whois.jprs.jp",
    "br": "whois.registro.br",
}

IANA_WHOIS = "whois.iana.org"

REFERRAL_PATTERNS = [
    r"Registrar WHOIS Server:\s*(\S+)",
    r"Whois Server:\s*(\S+)",
    r"refer:\s*(\S+)",
]

_iana_cache: Dict[str, Optional[str]] = {}
_iana_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════
# MAIN ENTRY POINT
# ═══════════════════════════════════════════════════════════════

def lookup(domain: str, timeout: float = TIMEOUT) -> str:
    """
    Return the WHOIS text for a registrable domain.

    The registrar's answer replaces the registry's when a referral is
    present and reachable; otherwise the registry answer is returned.
    """
    domain = domain.lower().strip().rstrip(".")
    tld = domain.rsplit(".", 1)[-1]

    whois_server = WHOIS_SERVERS.get(tld) or _lookup_iana_whois(tld, timeout)
    if not whois_server:
        raise RegistrationLookupError(f"No WHOIS server found for TLD '.{tld}'")

    raw_text = query_whois(domain, whois_server, timeout=timeout)

    referral = _extract_referral(raw_text)
    if referral and referral != whois_server:
        try:
            referral_text = query_whois(domain, referral, timeout=timeout)
        except RegistrationLookupError as e:
            logger.debug("WHOIS referral %s for %s failed: %s", referral, domain, e)
        else:
            if referral_text.strip():
                raw_text = referral_text

    return raw_text


# ═══════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════

def _lookup_iana_whois(tld: str, timeout: float) -> Optional[str]:
    with _iana_lock:
        if tld in _iana_cache:
            return _iana_cache[tld]

    server = None
    try:
        raw = query_whois(tld, IANA_WHOIS, timeout=timeout)
    except RegistrationLookupError as e:
        logger.debug("IANA WHOIS lookup for .%s failed: %s", tld, e)
        return None

    match = re.search(r"whois:\s*(\S+)", raw, re.IGNORECASE)
    if match:
        server = match.group(1).strip()

    with _iana_lock:
        _iana_cache[tld] = server
    return server


def query_whois(query: str, server: str, port: int = 43, timeout: float = TIMEOUT) -> str:
    try:
        with socket.create_connection((server, port), timeout=timeout) as sock:
            sock.sendall((query + "\r\n").encode("utf-8"))
            response = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                response += chunk
                if len(response) > MAX_RESPONSE_BYTES:
                    break
            return response.decode("utf-8", errors="replace")
    except OSError as e:
        # socket.timeout and socket.gaierror are both OSError subclasses
        raise RegistrationLookupError(f"WHOIS query failed for {query}@{server}: {e}") from e


def _extract_referral(raw: str) -> Optional[str]:
    for pattern in REFERRAL_PATTERNS:
        match = re.search(pattern, raw, re.IGNORECASE)
        if match:
            server = match.group(1).strip().rstrip(".")
            if server and "." in server:
                return server
    return None
