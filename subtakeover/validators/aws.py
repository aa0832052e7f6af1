# subtakeover/validators/aws.py
"""
AWS Elastic Beanstalk validator.

Beanstalk CNAMEs come in three shapes:
    <app>.<region>.elasticbeanstalk.com
    <app>.<environment-id>.<region>.elasticbeanstalk.com
    <app>.elasticbeanstalk.com            (legacy, no longer registrable)

The first two are checked with CheckDNSAvailability in the CNAME's region.
Anything else in the chain counts as checked and not available. boto3 is
an optional dependency (extra "cloud") and uses the standard AWS
credential chain.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from subtakeover.validators.base import BaseValidator, Verdict

logger = logging.getLogger(__name__)

BEANSTALK_SUFFIX = "elasticbeanstalk.com"

ClientFactory = Callable[[str], Any]


def _boto3_client(region: str):
    import boto3

    return boto3.client("elasticbeanstalk", region_name=region)


class AWSElasticBeanstalkValidator(BaseValidator):

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory or _boto3_client
        self._clients: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "AWSElasticBeanstalk"

    def execute(self, cnames: List[str]) -> Verdict:
        checked = False

        for cname in cnames:
            parts = cname.split(".")
            if not cname.lower().endswith(BEANSTALK_SUFFIX) or len(parts) <= 3:
                checked = True
                continue

            app_name = parts[0]
            region = parts[-3].lower()
            if self.is_available(app_name, region):
                return Verdict.CONFIRMED
            checked = True

        return Verdict.from_checks(available=False, checked=checked)

    def is_available(self, app_name: str, region: str) -> bool:
        response = self._client(region).check_dns_availability(CNAMEPrefix=app_name)
        logger.debug("Beanstalk %s in %s available: %s", app_name, region, response.get("Available"))
        return bool(response.get("Available"))

    def _client(self, region: str):
        with self._lock:
            client = self._clients.get(region)
            if client is None:
                client = self._client_factory(region)
                self._clients[region] = client
            return client
