import threading

import dns.exception
import dns.rdata
import dns.resolver
import pytest
from conftest import FakeDns, FakeOracle

from subtakeover.errors import DnsResolutionError
from subtakeover.scanner.engines.dns_engine import (
    MAX_CNAME_CHAIN,
    DNSEngine,
    dnspython_query,
)


def make_engine(fake_dns, oracle=None, retries=3, sleeps=None):
    return DNSEngine(
        oracle=oracle or FakeOracle(),
        query=fake_dns,
        retries=retries,
        sleep=(sleeps.append if sleeps is not None else (lambda seconds: None)),
    )


def test_chain_to_terminal_addresses():
    zone = FakeDns({
        ("blog.example.com", "CNAME"): ["example-blog.herokuapp.com"],
        ("example-blog.herokuapp.com", "CNAME"): ["us-east-1-a.route.herokuapp.com"],
        ("us-east-1-a.route.herokuapp.com", "A"): ["54.243.1.1", "54.243.1.2"],
        ("us-east-1-a.route.herokuapp.com", "AAAA"): ["2600:1f18::1"],
    })
    result = make_engine(zone).resolve("blog.example.com")

    assert result.cnames == ["example-blog.herokuapp.com", "us-east-1-a.route.herokuapp.com"]
    assert result.a_records == ["54.243.1.1", "54.243.1.2"]
    assert result.aaaa_records == ["2600:1f18::1"]
    assert result.is_nxdomain is False
    assert result.is_domain_registered is None


def test_no_cname_queries_a_and_aaaa_on_the_domain_itself():
    zone = FakeDns({("example.com", "A"): ["93.184.216.34"]})
    result = make_engine(zone).resolve("example.com")

    assert result.cnames == []
    assert result.a_records == ["93.184.216.34"]
    assert ("example.com", "A") in zone.calls
    assert ("example.com", "AAAA") in zone.calls


def test_two_node_cycle_terminates():
    zone = FakeDns({
        ("a.example.com", "CNAME"): ["b.example.com"],
        ("b.example.com", "CNAME"): ["a.example.com"],
    })
    result = make_engine(zone).resolve("a.example.com")

    assert len(result.cnames) == len(set(result.cnames))
    assert len(result.cnames) <= 2
    assert "b.example.com" in result.cnames


def test_cycle_deeper_in_the_chain_terminates():
    zone = FakeDns({
        ("start.example.com", "CNAME"): ["x.example.net"],
        ("x.example.net", "CNAME"): ["y.example.net"],
        ("y.example.net", "CNAME"): ["X.EXAMPLE.NET."],
    })
    result = make_engine(zone).resolve("start.example.com")

    assert result.cnames == ["x.example.net", "y.example.net"]
    assert result.a_records == []


def test_chain_length_is_bounded():
    records = {
        (f"hop{i}.example.com", "CNAME"): [f"hop{i + 1}.example.com"]
        for i in range(MAX_CNAME_CHAIN * 2)
    }
    result = make_engine(FakeDns(records)).resolve("hop0.example.com")

    assert len(result.cnames) == MAX_CNAME_CHAIN


def test_nxdomain_target_consults_oracle():
    zone = FakeDns(
        {("shop.example.com", "CNAME"): ["gone-store.myshopify.com"]},
        nxdomain={"gone-store.myshopify.com"},
    )
    oracle = FakeOracle(registered=False)
    result = make_engine(zone, oracle=oracle).resolve("shop.example.com")

    assert result.is_nxdomain is True
    assert result.is_domain_registered is False
    assert result.cnames == ["gone-store.myshopify.com"]
    assert result.a_records == [] and result.aaaa_records == []
    assert oracle.calls == ["gone-store.myshopify.com"]


def test_nxdomain_on_the_domain_itself():
    zone = FakeDns(nxdomain={"old.expired-example.com"})
    oracle = FakeOracle(registered=True)
    result = make_engine(zone, oracle=oracle).resolve("old.expired-example.com")

    assert result.is_nxdomain is True
    assert result.is_domain_registered is True
    assert result.cnames == []
    assert oracle.calls == ["old.expired-example.com"]


def test_transient_failure_is_retried_with_linear_backoff():
    zone = FakeDns(
        {("flaky.example.com", "CNAME"): ["flaky.github.io"]},
        failures={("flaky.example.com", "CNAME"): 2},
    )
    sleeps = []
    result = make_engine(zone, retries=3, sleeps=sleeps).resolve("flaky.example.com")

    assert result.cnames == ["flaky.github.io"]
    assert sleeps == [0.1, 0.2]


def test_exhausted_retries_leave_partial_evidence():
    zone = FakeDns(
        {("a.example.com", "CNAME"): ["b.example.net"]},
        failures={("b.example.net", "CNAME"): 10},
    )
    sleeps = []
    result = make_engine(zone, retries=3, sleeps=sleeps).resolve("a.example.com")

    assert result.cnames == ["b.example.net"]
    assert result.is_nxdomain is False
    assert zone.calls.count(("b.example.net", "CNAME")) == 3
    assert len(sleeps) == 2


def test_resolve_never_raises():
    def exploding_query(name, rdtype):
        raise RuntimeError("socket closed")

    result = make_engine(exploding_query).resolve("example.com")

    assert result.cnames == []
    assert result.is_nxdomain is False


class StubResolver:
    """Stands in for dns.resolver.Resolver: answers or raises per (name, rdtype) or rdtype."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.queries = []

    def resolve(self, name, rdtype):
        self.queries.append((name, rdtype))
        outcome = self.outcomes.get((name, rdtype), self.outcomes.get(rdtype, []))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestDnspythonQuery:

    def test_cname_target_loses_trailing_dot(self):
        answers = [dns.rdata.from_text("IN", "CNAME", "example-blog.herokuapp.com.")]
        query = dnspython_query(StubResolver({"CNAME": answers}))

        assert query("blog.example.com", "CNAME") == ["example-blog.herokuapp.com"]

    def test_addresses_as_text(self):
        query = dnspython_query(StubResolver({
            "A": [dns.rdata.from_text("IN", "A", "192.0.2.10"), dns.rdata.from_text("IN", "A", "192.0.2.11")],
            "AAAA": [dns.rdata.from_text("IN", "AAAA", "2001:db8::1")],
        }))

        assert query("www.example.com", "A") == ["192.0.2.10", "192.0.2.11"]
        assert query("www.example.com", "AAAA") == ["2001:db8::1"]

    def test_no_answer_is_empty(self):
        query = dnspython_query(StubResolver({"CNAME": dns.resolver.NoAnswer()}))
        assert query("example.com", "CNAME") == []

    def test_nxdomain_is_not_wrapped(self):
        query = dnspython_query(StubResolver({"CNAME": dns.resolver.NXDOMAIN()}))
        with pytest.raises(dns.resolver.NXDOMAIN):
            query("gone.example.com", "CNAME")

    @pytest.mark.parametrize("error", [
        dns.resolver.NoNameservers(),
        dns.exception.Timeout(),
        dns.exception.DNSException("malformed response"),
    ])
    def test_transient_failures_become_resolution_errors(self, error):
        query = dnspython_query(StubResolver({"CNAME": error}))
        with pytest.raises(DnsResolutionError) as excinfo:
            query("flaky.example.com", "CNAME")
        assert excinfo.value.__cause__ is error

    def test_engine_over_dnspython_adapter(self):
        resolver = StubResolver({
            ("shop.example.com", "CNAME"): [dns.rdata.from_text("IN", "CNAME", "gone-store.myshopify.com.")],
            ("gone-store.myshopify.com", "CNAME"): dns.resolver.NXDOMAIN(),
        })
        oracle = FakeOracle(registered=True)
        engine = DNSEngine(oracle=oracle, query=dnspython_query(resolver), sleep=lambda s: None)

        result = engine.resolve("shop.example.com")

        assert result.cnames == ["gone-store.myshopify.com"]
        assert result.is_nxdomain is True
        assert oracle.calls == ["gone-store.myshopify.com"]


class TestAddressPool:

    def test_aaaa_lookups_reuse_one_pool_across_domains(self):
        threads = {}
        lock = threading.Lock()

        def query(name, rdtype):
            with lock:
                threads.setdefault(rdtype, set()).add(threading.current_thread().name)
            return {"A": ["192.0.2.1"], "AAAA": ["2001:db8::1"]}.get(rdtype, [])

        engine = DNSEngine(oracle=FakeOracle(), query=query, sleep=lambda s: None, address_workers=1)
        try:
            results = [engine.resolve(f"host{i}.example.com") for i in range(5)]
        finally:
            engine.close()

        assert all(r.a_records == ["192.0.2.1"] for r in results)
        assert all(r.aaaa_records == ["2001:db8::1"] for r in results)
        assert threads["A"] == {threading.current_thread().name}
        assert len(threads["AAAA"]) == 1
        assert next(iter(threads["AAAA"])).startswith("dns-address")

    def test_concurrent_workers_share_the_pool(self):
        zone = FakeDns({
            (f"w{i}.example.com", "AAAA"): [f"2001:db8::{i + 1}"] for i in range(8)
        })
        engine = DNSEngine(oracle=FakeOracle(), query=zone, sleep=lambda s: None, address_workers=2)
        results = {}

        def work(i):
            results[i] = engine.resolve(f"w{i}.example.com")

        workers = [threading.Thread(target=work, args=(i,)) for i in range(8)]
        try:
            for t in workers:
                t.start()
            for t in workers:
                t.join()
        finally:
            engine.close()

        assert [results[i].aaaa_records for i in range(8)] == [[f"2001:db8::{i + 1}"] for i in range(8)]
