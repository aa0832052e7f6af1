import pytest

from subtakeover.errors import RegistrationLookupError
from subtakeover.tools import whois_lookup


class FakeWhois:

    def __init__(self, answers):
        self.answers = answers
        self.queries = []

    def __call__(self, query, server, port=43, timeout=10):
        self.queries.append((query, server))
        answer = self.answers[server]
        if isinstance(answer, Exception):
            raise answer
        return answer


def test_registrar_referral_replaces_registry_answer(monkeypatch):
    fake = FakeWhois({
        "whois.verisign-grs.com": "Domain Name: EXAMPLE.COM\nRegistrar WHOIS Server: whois.registrar.test\n",
        "whois.registrar.test": "Registrant: Example Org\n",
    })
    monkeypatch.setattr(whois_lookup, "query_whois", fake)

    assert whois_lookup.lookup("Example.COM.") == "Registrant: Example Org\n"
    assert fake.queries == [
        ("example.com", "whois.verisign-grs.com"),
        ("example.com", "whois.registrar.test"),
    ]


def test_failed_referral_keeps_registry_answer(monkeypatch):
    registry = "Domain Name: EXAMPLE.ORG\nRegistrar WHOIS Server: whois.down.test\n"
    fake = FakeWhois({
        "whois.pir.org": registry,
        "whois.down.test": RegistrationLookupError("timed out"),
    })
    monkeypatch.setattr(whois_lookup, "query_whois", fake)

    assert whois_lookup.lookup("example.org") == registry


def test_unknown_tld_asks_iana_once(monkeypatch):
    fake = FakeWhois({
        whois_lookup.IANA_WHOIS: "domain: ZZTEST\nwhois: whois.nic.zztest\n",
        "whois.nic.zztest": "No match for example.zztest",
    })
    monkeypatch.setattr(whois_lookup, "query_whois", fake)
    monkeypatch.setattr(whois_lookup, "_iana_cache", {})

    assert whois_lookup.lookup("example.zztest") == "No match for example.zztest"
    whois_lookup.lookup("other.zztest")

    iana_queries = [q for q in fake.queries if q[1] == whois_lookup.IANA_WHOIS]
    assert iana_queries == [("zztest", whois_lookup.IANA_WHOIS)]


def test_tld_without_whois_server(monkeypatch):
    fake = FakeWhois({whois_lookup.IANA_WHOIS: "domain: NOWHOIS\nstatus: ACTIVE\n"})
    monkeypatch.setattr(whois_lookup, "query_whois", fake)
    monkeypatch.setattr(whois_lookup, "_iana_cache", {})

    with pytest.raises(RegistrationLookupError):
        whois_lookup.lookup("example.nowhois")


@pytest.mark.parametrize("raw,expected", [
    ("Registrar WHOIS Server: whois.markmonitor.com\n", "whois.markmonitor.com"),
    ("refer: whois.nic.example.\n", "whois.nic.example"),
    ("Whois Server: \n", None),
    ("Domain Name: EXAMPLE.COM\n", None),
])
def test_extract_referral(raw, expected):
    assert whois_lookup._extract_referral(raw) == expected
