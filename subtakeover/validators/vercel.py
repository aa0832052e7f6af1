# subtakeover/validators/vercel.py
"""
Vercel validator.

Requests https://{cname} for the first Vercel CNAME in the chain: a 404
means no project claims the name. Transport failures are indeterminate.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from subtakeover.config import USER_AGENT
from subtakeover.errors import ValidatorError
from subtakeover.validators.base import BaseValidator, Verdict

logger = logging.getLogger(__name__)

VERCEL_MARKERS = ("vercel.com", "vercel-dns.com")
TIMEOUT = 10


def build_client(timeout: float = TIMEOUT) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        verify=False,
        headers={"User-Agent": USER_AGENT},
    )


class VercelValidator(BaseValidator):

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client or build_client()

    @property
    def name(self) -> str:
        return "Vercel"

    def execute(self, cnames: List[str]) -> Verdict:
        for cname in cnames:
            if not any(marker in cname.lower() for marker in VERCEL_MARKERS):
                continue
            try:
                response = self.client.get(f"https://{cname}")
            except httpx.HTTPError as e:
                raise ValidatorError(f"Vercel check for {cname} failed: {e}") from e
            return Verdict.CONFIRMED if response.status_code == 404 else Verdict.REFUTED

        return Verdict.INDETERMINATE
