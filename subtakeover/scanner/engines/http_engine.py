# subtakeover/scanner/engines/http_engine.py
"""
HTTP Evidence probe.

One GET per call, used by the matcher only after a DNS-level hit:
    1. https://{domain}, certificate validation disabled
    2. on a host-resolution failure: None (no HTTP evidence)
    3. on any other failure: http://{domain}
    4. if that fails too: SENTINEL (status 0, empty body)

Redirect following is chosen per call so 3xx fingerprints can observe the
raw redirect status. Bodies are read up to MAX_BODY_READ bytes.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Optional

import httpx

from subtakeover.config import USER_AGENT
from subtakeover.errors import HttpProbeError

logger = logging.getLogger(__name__)

MAX_BODY_READ = 256 * 1024

_UNRESOLVABLE_MARKERS = (
    "name or service not known",
    "nodename nor servname provided",
    "no such host is known",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


@dataclass(frozen=True)
class ProbeResponse:
    url: str
    status_code: int
    body: str = ""


SENTINEL = ProbeResponse(url="", status_code=0, body="")


def is_unresolvable(exc: BaseException) -> bool:
    """True when the exception chain bottoms out in a DNS resolution failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        message = str(current).lower()
        if any(marker in message for marker in _UNRESOLVABLE_MARKERS):
            return True
        current = current.__cause__ or current.__context__
    return False


class HTTPProbe:
    """
    Shared by all workers. One httpx.Client per redirect policy, created
    up front and reused; httpx clients are safe for concurrent requests.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
        max_body: int = MAX_BODY_READ,
    ):
        self.max_body = max_body
        client_args = dict(
            timeout=httpx.Timeout(timeout),
            verify=False,
            headers={"User-Agent": USER_AGENT, "Accept": "text/html,*/*"},
        )
        if transport is not None:
            client_args["transport"] = transport

        self._follow = httpx.Client(follow_redirects=True, **client_args)
        self._no_follow = httpx.Client(follow_redirects=False, **client_args)

    def close(self) -> None:
        self._follow.close()
        self._no_follow.close()

    def __enter__(self) -> "HTTPProbe":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    def fetch(self, domain: str, follow_redirects: bool = True) -> Optional[ProbeResponse]:
        client = self._follow if follow_redirects else self._no_follow

        try:
            return self._get(client, f"https://{domain}")
        except HttpProbeError as e:
            if is_unresolvable(e):
                logger.debug("HTTP probe: %s does not resolve", domain)
                return None
            logger.debug("HTTPS probe failed for %s, trying HTTP: %s", domain, e)

        try:
            return self._get(client, f"http://{domain}")
        except HttpProbeError as e:
            logger.debug("HTTP probe failed for %s: %s", domain, e)
            return SENTINEL

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _get(self, client: httpx.Client, url: str) -> ProbeResponse:
        try:
            with client.stream("GET", url) as response:
                body = self._read_body(response)
                return ProbeResponse(url=url, status_code=response.status_code, body=body)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise HttpProbeError(f"GET {url}: {e}") from e

    def _read_body(self, response: httpx.Response) -> str:
        chunks = []
        size = 0
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size >= self.max_body:
                break
        raw = b"".join(chunks)[: self.max_body]
        try:
            return raw.decode(response.encoding or "utf-8", errors="replace")
        except LookupError:
            # Unknown charset in Content-Type
            return raw.decode("utf-8", errors="replace")
