# subtakeover/validators/webflow.py
"""
Webflow validator.

Webflow serves a 404 with one of its own "missing site" pages for
unclaimed custom domains; any other response means the site exists.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from subtakeover.errors import ValidatorError
from subtakeover.validators.base import BaseValidator, Verdict
from subtakeover.validators.vercel import build_client

logger = logging.getLogger(__name__)

WEBFLOW_MARKER = "webflow.com"

MISSING_SITE_TEXTS = [
    "The page you are looking for doesn't exist",
    "website has been archived or deleted",
]


class WebflowValidator(BaseValidator):

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client or build_client()

    @property
    def name(self) -> str:
        return "Webflow"

    def execute(self, cnames: List[str]) -> Verdict:
        for cname in cnames:
            if WEBFLOW_MARKER not in cname.lower():
                continue
            try:
                response = self.client.get(f"https://{cname}")
            except httpx.HTTPError as e:
                raise ValidatorError(f"Webflow check for {cname} failed: {e}") from e

            if response.status_code == 404 and any(t in response.text for t in MISSING_SITE_TEXTS):
                return Verdict.CONFIRMED
            return Verdict.REFUTED

        return Verdict.INDETERMINATE
