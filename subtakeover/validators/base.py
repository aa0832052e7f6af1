# subtakeover/validators/base.py
"""
Base class for provider validators.

A validator asks the provider itself whether the resource a matched CNAME
points at can still be claimed. It answers with a Verdict:

    CONFIRMED      the resource name is available: takeover confirmed
    REFUTED        every checkable CNAME was checked and none is available:
                   the fingerprint match is a false positive
    INDETERMINATE  nothing checkable, missing SDK or credentials, provider
                   error: keep the match, unverified

To add a provider:
    1. Subclass BaseValidator
    2. Set `name` to the service name with spaces and slashes removed
       (e.g. "AWS/Elastic Beanstalk" -> "AWSElasticBeanstalk")
    3. Implement `execute(cnames) -> Verdict`
    4. Add the class to ALL_VALIDATORS in validators/__init__.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def validator_key(service: str) -> str:
    """Registry key for a service name: spaces and slashes removed."""
    return (service or "").replace(" ", "").replace("/", "")


class Verdict(Enum):
    CONFIRMED = "confirmed"
    REFUTED = "refuted"
    INDETERMINATE = "indeterminate"

    @classmethod
    def from_checks(cls, available: bool, checked: bool) -> "Verdict":
        """Fold per-CNAME results: any available wins, then checked-none."""
        if available:
            return cls.CONFIRMED
        return cls.REFUTED if checked else cls.INDETERMINATE


class BaseValidator(ABC):

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key: service name without spaces or slashes."""
        ...

    def run(self, cnames: Iterable[str]) -> Verdict:
        """
        Validate with error containment.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.

        Any exception (missing SDK, missing credentials, API failure)
        becomes Verdict.INDETERMINATE.
        """
        cleaned = self.clean_cnames(cnames)
        try:
            verdict = self.execute(cleaned)
        except Exception as e:
            logger.debug("Validator '%s' failed: %s: %s", self.name, type(e).__name__, e)
            return Verdict.INDETERMINATE

        logger.debug("Validator '%s' verdict for %s: %s", self.name, cleaned, verdict.value)
        return verdict

    @abstractmethod
    def execute(self, cnames: List[str]) -> Verdict:
        """
        Check the CNAME chain against the provider. Override this.

        Args:
            cnames: The domain's CNAME chain, trailing dots removed.
        """
        ...

    @staticmethod
    def clean_cnames(cnames: Optional[Iterable[str]]) -> List[str]:
        return [c.strip().strip(".") for c in (cnames or []) if c and c.strip(".")]
