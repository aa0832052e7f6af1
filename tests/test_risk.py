import pytest
from conftest import make_fingerprint

from subtakeover.scanner.analyzers.risk import assess, classify_risk, meets_minimum
from subtakeover.scanner.base import MatchedLocation, TakeoverResult
from subtakeover.scanner.orchestrator import DOMAIN_AVAILABLE

HEROKU = make_fingerprint("Heroku", cnames=("herokuapp.com",))
FASTLY = make_fingerprint("Fastly", status="Edge case", cnames=("fastly.net",))


def vulnerable(fingerprint, **kwargs):
    return TakeoverResult(
        domain="app.example.com",
        is_vulnerable=True,
        fingerprint=fingerprint,
        cnames=("app.herokuapp.com",),
        **kwargs,
    )


@pytest.mark.parametrize("result,level", [
    (TakeoverResult(domain="safe.example.com"), "info"),
    (vulnerable(HEROKU, matched_location=MatchedLocation.HTTP_BODY), "high"),
    (vulnerable(HEROKU, is_verified=True), "critical"),
    (vulnerable(DOMAIN_AVAILABLE, matched_location=MatchedLocation.DOMAIN_AVAILABLE), "critical"),
    (vulnerable(FASTLY), "medium"),
    (vulnerable(FASTLY, is_verified=True), "critical"),
])
def test_classify_risk(result, level):
    assert classify_risk(result) == level


def test_meets_minimum():
    edge = vulnerable(FASTLY)
    assert meets_minimum(edge, None)
    assert meets_minimum(edge, "medium")
    assert not meets_minimum(edge, "high")
    assert meets_minimum(vulnerable(HEROKU), "HIGH")
    assert not meets_minimum(vulnerable(HEROKU), "critical")


def test_assess_describes_finding():
    assessment = assess(vulnerable(HEROKU, matched_location=MatchedLocation.NXDOMAIN))

    assert assessment.level == "high"
    assert assessment.confidence == "high"
    assert "app.herokuapp.com" in assessment.description
    assert "does not resolve" in assessment.description
    assert "app.example.com" in assessment.remediation


def test_assess_status_only_match_is_medium_confidence():
    assessment = assess(vulnerable(HEROKU, matched_location=MatchedLocation.HTTP_STATUS))
    assert assessment.confidence == "medium"


def test_assess_domain_available():
    assessment = assess(vulnerable(DOMAIN_AVAILABLE, matched_location=MatchedLocation.DOMAIN_AVAILABLE))
    assert assessment.level == "critical"
    assert "unregistered" in assessment.description
