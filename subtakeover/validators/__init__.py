# subtakeover/validators/__init__.py
"""
Provider validators.

Each validator confirms or refutes a fingerprint match with the provider
itself. Validators are looked up by service name with spaces and slashes
removed ("AWS/Elastic Beanstalk" -> "AWSElasticBeanstalk").
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Type

from subtakeover.validators.aws import AWSElasticBeanstalkValidator
from subtakeover.validators.azure import MicrosoftAzureValidator
from subtakeover.validators.base import BaseValidator, Verdict, validator_key
from subtakeover.validators.vercel import VercelValidator
from subtakeover.validators.webflow import WebflowValidator

# Registry of all available validators, keyed by normalized service name.
# New providers are added here.
ALL_VALIDATORS: Dict[str, Type[BaseValidator]] = {
    "MicrosoftAzure": MicrosoftAzureValidator,
    "AWSElasticBeanstalk": AWSElasticBeanstalkValidator,
    "Vercel": VercelValidator,
    "Webflow": WebflowValidator,
}


class ValidatorRegistry:
    """
    One validator instance per provider for the lifetime of a scan, so
    provider sessions (Azure login, boto3 clients) are reused by every
    worker. Instances are created on first use.
    """

    def __init__(self, validators: Optional[Dict[str, Type[BaseValidator]]] = None):
        self._classes = ALL_VALIDATORS if validators is None else validators
        self._instances: Dict[str, BaseValidator] = {}
        self._lock = threading.Lock()

    def get(self, service: str) -> Optional[BaseValidator]:
        key = validator_key(service)
        cls = self._classes.get(key)
        if cls is None:
            return None
        with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                instance = cls()
                self._instances[key] = instance
            return instance

    def register(self, key: str, validator: BaseValidator) -> None:
        """Install a ready-made instance (tests, custom providers)."""
        with self._lock:
            self._instances[key] = validator
            self._classes = {**self._classes, key: type(validator)}


__all__ = [
    "BaseValidator", "Verdict", "ValidatorRegistry", "ALL_VALIDATORS",
    "MicrosoftAzureValidator", "AWSElasticBeanstalkValidator",
    "VercelValidator", "WebflowValidator",
]
