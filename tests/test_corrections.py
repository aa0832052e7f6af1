from subtakeover.fingerprints.corrections import (
    AWS_REGIONS,
    CORRECTIONS,
    PATCHES,
    FingerprintPatch,
    apply_correction,
    correct,
    expand_regions,
)
from subtakeover.scanner.base import Fingerprint


def test_expand_regions_substitutes_every_region():
    expanded = list(expand_regions([".s3.<region>.amazonaws.com", "plain.example"]))
    assert len(expanded) == len(AWS_REGIONS) + 1
    assert ".s3.us-east-1.amazonaws.com" in expanded
    assert ".s3.eu-north-1.amazonaws.com" in expanded
    assert expanded[-1] == "plain.example"
    assert not any("<region>" in pattern for pattern in expanded)


def test_every_correction_parses_into_a_patch():
    assert set(PATCHES) == set(CORRECTIONS)
    for patch in PATCHES.values():
        assert isinstance(patch, FingerprintPatch)


def test_s3_patch_carries_region_expanded_cnames():
    cnames = PATCHES["AWS/S3"].cnames
    assert ".s3-website-ap-southeast-2.amazonaws.com" in cnames
    assert ".s3-accelerate.amazonaws.com" in cnames


def test_apply_correction_appends_without_duplicates_and_keeps_input():
    original = Fingerprint(
        service="Heroku",
        cnames=("herokuapp.com", "herokuapp"),
        fingerprint_texts=("No such app",),
    )
    corrected = apply_correction(original, PATCHES["Heroku"])

    assert corrected.cnames == ("herokuapp.com", "herokuapp")
    assert corrected.fingerprint_texts == (
        "No such app",
        "herokucdn.com/error-pages/no-such-app.html",
    )
    assert original.fingerprint_texts == ("No such app",)


def test_status_override_demotes_to_edge_case():
    fastly = correct(Fingerprint(service="Fastly", status="Vulnerable", cnames=("fastly.net",)))
    assert fastly.is_edge_case
    assert fastly.a_records == ("151.101.",)


def test_nxdomain_override():
    smugmug = correct(Fingerprint(service="Smugsmug", nxdomain=False))
    assert smugmug.nxdomain is True
    assert "domains.smugmug.com" in smugmug.cnames


def test_corrections_match_exact_service_name_only():
    untouched = Fingerprint(service="heroku")
    assert correct(untouched) is untouched
