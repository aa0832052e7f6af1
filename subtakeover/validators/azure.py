# subtakeover/validators/azure.py
"""
Microsoft Azure validator.

Checks name availability through the Azure management API:
    *.azurewebsites.net    App Service site name (first label)
    *.trafficmanager.net   Traffic Manager relative DNS name (first label)

cloudapp.net, cloudapp.azure.com and azureedge.net are recognised but have
no availability API; they leave the verdict untouched.

Authentication uses DefaultAzureCredential, falling back to an interactive
browser login when no ambient credentials are found. The credential,
subscription and management clients are created once and shared by all
workers. The Azure SDK is an optional dependency (extra "cloud") and is
imported on first use.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

from subtakeover.errors import ValidatorError
from subtakeover.validators.base import BaseValidator, Verdict

logger = logging.getLogger(__name__)

WEB_SITES_TYPE = "Microsoft.Web/sites"
TRAFFIC_MANAGER_TYPE = "microsoft.network/trafficmanagerprofiles"

# (cname marker, checker attribute). None: recognised, not checkable.
# Order matters: the first marker contained in the CNAME decides.
AZURE_DOMAINS: List[Tuple[str, Optional[str]]] = [
    ("cloudapp.net", None),
    ("azurewebsites.net", "app_service_available"),
    ("cloudapp.azure.com", None),
    ("trafficmanager.net", "traffic_manager_available"),
    ("azureedge.net", None),
]


class AzureSession:
    """Lazily authenticated, process-wide Azure management clients."""

    def __init__(self, credential_factory: Optional[Callable[[], Any]] = None):
        self._credential_factory = credential_factory
        self._lock = threading.Lock()
        self._credential = None
        self._subscription_id: Optional[str] = None
        self._web_client = None
        self._traffic_manager_client = None

    def _authenticate(self) -> None:
        if self._subscription_id is not None:
            return

        if self._credential_factory is not None:
            credential = self._credential_factory()
            self._subscription_id = self._default_subscription(credential)
            self._credential = credential
            return

        from azure.identity import DefaultAzureCredential, InteractiveBrowserCredential

        credential = DefaultAzureCredential()
        try:
            subscription_id = self._default_subscription(credential)
        except Exception as e:
            logger.info("No ambient Azure credentials (%s), falling back to browser login", e)
            credential = InteractiveBrowserCredential()
            subscription_id = self._default_subscription(credential)

        self._credential = credential
        self._subscription_id = subscription_id
        logger.info("Azure validator using subscription %s", subscription_id)

    @staticmethod
    def _default_subscription(credential) -> str:
        from azure.mgmt.resource import SubscriptionClient

        client = SubscriptionClient(credential)
        for subscription in client.subscriptions.list():
            return subscription.subscription_id
        raise ValidatorError("Azure credentials have no subscription")

    def web_client(self):
        with self._lock:
            if self._web_client is None:
                self._authenticate()
                from azure.mgmt.web import WebSiteManagementClient

                self._web_client = WebSiteManagementClient(self._credential, self._subscription_id)
            return self._web_client

    def traffic_manager_client(self):
        with self._lock:
            if self._traffic_manager_client is None:
                self._authenticate()
                from azure.mgmt.trafficmanager import TrafficManagerManagementClient

                self._traffic_manager_client = TrafficManagerManagementClient(
                    self._credential, self._subscription_id,
                )
            return self._traffic_manager_client


class MicrosoftAzureValidator(BaseValidator):

    def __init__(self, session: Optional[AzureSession] = None):
        self.session = session or AzureSession()

    @property
    def name(self) -> str:
        return "MicrosoftAzure"

    def execute(self, cnames: List[str]) -> Verdict:
        checked = False

        for cname in cnames:
            lower = cname.lower()
            checker = next((attr for marker, attr in AZURE_DOMAINS if marker in lower), None)
            if checker is None:
                continue

            resource_name = lower.split(".")[0]
            if getattr(self, checker)(resource_name):
                return Verdict.CONFIRMED
            checked = True

        return Verdict.from_checks(available=False, checked=checked)

    def app_service_available(self, resource_name: str) -> bool:
        # privatelink/scm hosts hang off the same site, so the first label is enough
        from azure.mgmt.web.models import ResourceNameAvailabilityRequest

        result = self.session.web_client().check_name_availability(
            ResourceNameAvailabilityRequest(name=resource_name, type=WEB_SITES_TYPE)
        )
        return bool(result.name_available)

    def traffic_manager_available(self, resource_name: str) -> bool:
        from azure.mgmt.trafficmanager.models import (
            CheckTrafficManagerRelativeDnsNameAvailabilityParameters,
        )

        profiles = self.session.traffic_manager_client().profiles
        result = profiles.check_traffic_manager_relative_dns_name_availability(
            CheckTrafficManagerRelativeDnsNameAvailabilityParameters(
                name=resource_name, type=TRAFFIC_MANAGER_TYPE,
            )
        )
        return bool(result.name_available)
