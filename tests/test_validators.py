import httpx
import pytest

from subtakeover.validators import ALL_VALIDATORS, ValidatorRegistry
from subtakeover.validators.aws import AWSElasticBeanstalkValidator
from subtakeover.validators.azure import MicrosoftAzureValidator
from subtakeover.validators.base import BaseValidator, Verdict, validator_key
from subtakeover.validators.vercel import VercelValidator
from subtakeover.validators.webflow import WebflowValidator


class ExplodingValidator(BaseValidator):

    def __init__(self):
        self.seen = None

    @property
    def name(self):
        return "Exploding"

    def execute(self, cnames):
        self.seen = cnames
        raise RuntimeError("provider unreachable")


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestBase:

    def test_validator_key(self):
        assert validator_key("AWS/Elastic Beanstalk") == "AWSElasticBeanstalk"
        assert validator_key("Microsoft Azure") == "MicrosoftAzure"

    @pytest.mark.parametrize("available,checked,expected", [
        (True, True, Verdict.CONFIRMED),
        (True, False, Verdict.CONFIRMED),
        (False, True, Verdict.REFUTED),
        (False, False, Verdict.INDETERMINATE),
    ])
    def test_from_checks(self, available, checked, expected):
        assert Verdict.from_checks(available, checked) is expected

    def test_run_contains_errors_and_cleans_cnames(self):
        validator = ExplodingValidator()
        assert validator.run(["a.example.com.", "", "."]) is Verdict.INDETERMINATE
        assert validator.seen == ["a.example.com"]


class FakeBeanstalk:

    def __init__(self, available):
        self.available = available
        self.prefixes = []

    def check_dns_availability(self, CNAMEPrefix):
        self.prefixes.append(CNAMEPrefix)
        return {"Available": self.available, "FullyQualifiedCNAME": f"{CNAMEPrefix}.example"}


class TestAWSElasticBeanstalk:

    def make(self, available=True):
        regions = []
        client = FakeBeanstalk(available)

        def factory(region):
            regions.append(region)
            return client

        return AWSElasticBeanstalkValidator(client_factory=factory), client, regions

    def test_available_prefix_confirms(self):
        validator, client, regions = self.make(available=True)
        verdict = validator.run(["myapp.us-east-1.elasticbeanstalk.com"])

        assert verdict is Verdict.CONFIRMED
        assert client.prefixes == ["myapp"]
        assert regions == ["us-east-1"]

    def test_environment_id_form_uses_region_label(self):
        validator, client, regions = self.make(available=True)
        validator.run(["myapp.e-abc123.EU-WEST-1.elasticbeanstalk.com"])

        assert client.prefixes == ["myapp"]
        assert regions == ["eu-west-1"]

    def test_taken_prefix_refutes(self):
        validator, _, _ = self.make(available=False)
        assert validator.run(["myapp.us-east-1.elasticbeanstalk.com"]) is Verdict.REFUTED

    def test_legacy_form_is_refuted_without_api_call(self):
        validator, client, _ = self.make(available=True)
        assert validator.run(["myapp.elasticbeanstalk.com"]) is Verdict.REFUTED
        assert client.prefixes == []

    def test_client_reused_per_region(self):
        validator, _, regions = self.make(available=False)
        validator.run(["a.us-east-1.elasticbeanstalk.com"])
        validator.run(["b.us-east-1.elasticbeanstalk.com"])
        assert regions == ["us-east-1"]

    def test_provider_error_is_indeterminate(self):
        def factory(region):
            raise RuntimeError("Unable to locate credentials")

        validator = AWSElasticBeanstalkValidator(client_factory=factory)
        assert validator.run(["myapp.us-east-1.elasticbeanstalk.com"]) is Verdict.INDETERMINATE


class StubAzure(MicrosoftAzureValidator):
    """Availability answers come from dicts instead of the management API."""

    def __init__(self, sites=None, profiles=None):
        super().__init__(session=object())
        self.sites = sites or {}
        self.profiles = profiles or {}
        self.checked = []

    def app_service_available(self, resource_name):
        self.checked.append(("site", resource_name))
        return self.sites.get(resource_name, False)

    def traffic_manager_available(self, resource_name):
        self.checked.append(("profile", resource_name))
        return self.profiles.get(resource_name, False)


class TestMicrosoftAzure:

    def test_free_site_name_confirms(self):
        validator = StubAzure(sites={"random123": True})
        assert validator.run(["random123.azurewebsites.net"]) is Verdict.CONFIRMED
        assert validator.checked == [("site", "random123")]

    def test_taken_site_name_refutes(self):
        validator = StubAzure(sites={"live": False})
        assert validator.run(["live.azurewebsites.net"]) is Verdict.REFUTED

    def test_traffic_manager_profile(self):
        validator = StubAzure(profiles={"gone-profile": True})
        assert validator.run(["gone-profile.trafficmanager.net."]) is Verdict.CONFIRMED
        assert validator.checked == [("profile", "gone-profile")]

    def test_uncheckable_azure_hosts_are_indeterminate(self):
        validator = StubAzure()
        verdict = validator.run(["svc.cloudapp.net", "cdn.azureedge.net", "vm.westeurope.cloudapp.azure.com"])

        assert verdict is Verdict.INDETERMINATE
        assert validator.checked == []

    def test_missing_sdk_or_credentials_is_indeterminate(self):
        class NoLogin:
            def web_client(self):
                raise ImportError("No module named 'azure'")

        validator = MicrosoftAzureValidator(session=NoLogin())
        assert validator.run(["random123.azurewebsites.net"]) is Verdict.INDETERMINATE


class TestHttpValidators:

    def test_vercel_404_confirms(self):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(404)

        validator = VercelValidator(client=mock_client(handler))
        assert validator.run(["www.example.com", "cname.vercel-dns.com"]) is Verdict.CONFIRMED
        assert urls == ["https://cname.vercel-dns.com"]

    def test_vercel_live_project_refutes(self):
        validator = VercelValidator(client=mock_client(lambda r: httpx.Response(200)))
        assert validator.run(["cname.vercel-dns.com"]) is Verdict.REFUTED

    def test_vercel_transport_error_is_indeterminate(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        validator = VercelValidator(client=mock_client(handler))
        assert validator.run(["cname.vercel-dns.com"]) is Verdict.INDETERMINATE

    def test_vercel_without_vercel_cname_is_indeterminate(self):
        validator = VercelValidator(client=mock_client(lambda r: httpx.Response(404)))
        assert validator.run(["www.example.com"]) is Verdict.INDETERMINATE

    def test_webflow_missing_site_page_confirms(self):
        page = "<h1>The page you are looking for doesn't exist or has been moved.</h1>"
        validator = WebflowValidator(client=mock_client(lambda r: httpx.Response(404, text=page)))
        assert validator.run(["proxy-ssl.webflow.com"]) is Verdict.CONFIRMED

    def test_webflow_plain_404_refutes(self):
        validator = WebflowValidator(client=mock_client(lambda r: httpx.Response(404, text="Not Found")))
        assert validator.run(["proxy-ssl.webflow.com"]) is Verdict.REFUTED


class TestRegistry:

    def test_lookup_by_service_name(self):
        registry = ValidatorRegistry()
        validator = registry.get("AWS/Elastic Beanstalk")

        assert isinstance(validator, AWSElasticBeanstalkValidator)
        assert registry.get("AWS/Elastic Beanstalk") is validator

    def test_unknown_service_has_no_validator(self):
        assert ValidatorRegistry().get("Heroku") is None

    def test_every_registered_class_has_matching_name(self):
        assert set(ALL_VALIDATORS) == {
            "MicrosoftAzure", "AWSElasticBeanstalk", "Vercel", "Webflow",
        }

    def test_register_installs_instance(self):
        registry = ValidatorRegistry(validators={})
        stub = StubAzure()
        registry.register("MicrosoftAzure", stub)

        assert registry.get("Microsoft Azure") is stub
