# subtakeover/fingerprints/corrections.py
"""
Corrections applied to the upstream fingerprint list.

The upstream can-i-take-over-xyz data is missing CNAME shapes, carries a
few stale body texts and marks some conditional takeovers as plainly
vulnerable. Rather than scattering special cases through the loader, every
correction lives in CORRECTIONS below, keyed by the exact upstream service
name and using the same field names as the upstream JSON:

    status:       replaces the status (only ever used to demote to "Edge case")
    fingerprint:  extra body texts, appended
    cname:        extra CNAME patterns, appended ("<region>" is expanded
                  across AWS_REGIONS)
    a / aaaa:     extra A/AAAA prefixes, appended
    nxdomain:     replaces the nxdomain flag

apply_correction() is a pure function so the table can be tested without
touching the loader.

Sources: https://github.com/EdOverflow/can-i-take-over-xyz/issues
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from subtakeover.scanner.base import Fingerprint

EDGE_CASE = "Edge case"
REGION_PLACEHOLDER = "<region>"

AWS_REGIONS = [
    "us-east-1", "us-east-2", "us-west-1", "us-west-2", "af-south-1", "ap-east-1", "ap-south-1",
    "ap-northeast-3", "ap-northeast-2", "ap-southeast-1", "ap-southeast-2", "ap-northeast-1",
    "ca-central-1", "eu-central-1", "eu-west-1", "eu-west-2", "eu-south-1", "eu-west-3",
    "eu-north-1", "me-south-1", "sa-east-1", "cn-north-1", "cn-northwest-1",
    "gov-west-1", "gov-east-1",
]

CORRECTIONS: Dict[str, Dict[str, Any]] = {
    # ── Conditional takeovers upstream lists as vulnerable ──
    "Acquia": {
        "status": EDGE_CASE,
        "fingerprint": ["The site you are looking for could not be found.", "Web Site Not Found"],
        "cname": ["acquia-test.co"],
    },
    "Fastly": {
        "status": EDGE_CASE,
        "cname": ["fastly.net"],
        "a": ["151.101."],
        "aaaa": ["2a04:4e42:"],
    },
    "Instapage": {
        # https://github.com/EdOverflow/can-i-take-over-xyz/issues/349
        "status": EDGE_CASE,
        "fingerprint": ["You've Discovered A Missing Link. Our Apologies!", "Looks Like You're Lost"],
        "cname": ["pageserve.co", "secure.pageserve.co"],
    },
    "Unbounce": {
        "status": EDGE_CASE,
        "cname": ["unbouncepages.com"],
    },
    "UserVoice": {
        "status": EDGE_CASE,
        "cname": ["uservoice.com"],
    },
    "Zendesk": {
        "status": EDGE_CASE,
    },

    # ── Body texts ──
    "Campaign Monitor": {
        "fingerprint": ['Double check the URL or <a href="mailto:help@createsend.com'],
        "cname": ["createsend.com", "name.createsend.com"],
    },
    "Cargo Collective": {
        "fingerprint": [
            "If you're moving your domain away from Cargo you must make this configuration "
            "through your registrar's DNS control panel."
        ],
        "cname": ["cargocollective.com", "subdomain.cargocollective.com"],
    },
    "Ghost": {
        "fingerprint": ["The thing you were looking for is no longer here, or never was"],
    },
    "Heroku": {
        "fingerprint": ["herokucdn.com/error-pages/no-such-app.html"],
        "cname": ["herokuapp"],
    },
    "Ngrok": {
        "fingerprint": ["ngrok.io not found"],
    },
    "Pantheon": {
        "fingerprint": ["The gods are wise, but do not know of the site which you seek."],
        "cname": ["pantheonsite.io"],
        "a": ["23.185.0."],
        "aaaa": ["2620:12a:"],
    },
    "Readthedocs": {
        "fingerprint": ["is unknown to Read the Docs"],
        "cname": ["readthedocs.io"],
    },
    "Short.io": {
        "fingerprint": ["This domain is not configured on Short.io"],
        "cname": ["cname.short.io"],
    },
    "Wix": {
        "fingerprint": ["Connect it to your Wix website in just a few easy steps", "Error ConnectYourDomain occurred"],
        "cname": ["wixdns.net"],
    },
    "Wordpress": {
        "fingerprint": ["Do you want to register "],
    },

    # ── Missing CNAME shapes ──
    "AWS/S3": {
        "cname": [
            ".s3-accelerate.amazonaws.com",
            ".s3-accelerate.dualstack.amazonaws.com",
            ".s3-website-<region>.amazonaws.com",
            ".s3.<region>.amazonaws.com",
        ],
    },
    "Canny": {"cname": ["cname.canny.io"]},
    "Frontify": {"cname": ["frontify.com"]},
    "GetResponse": {"cname": ["gr8.com"]},
    "Github": {
        "cname": ["github.io"],
        "a": ["185.199.108.153", "185.199.109.153", "185.199.110.153", "185.199.111.153"],
        "aaaa": ["2606:50c0:8000::153", "2606:50c0:8001::153", "2606:50c0:8002::153", "2606:50c0:8003::153"],
    },
    "Intercom": {"cname": ["custom.intercom.help"]},
    "Landingi": {"cname": ["cname.landingi.com"]},
    "Mashery": {"cname": ["mashery.com"]},
    "Microsoft Azure": {"cname": ["trafficmanager.net"]},
    "Netlify": {"cname": ["cname.netlify.app", "cname.netlify.com", "netlify.com", "netlify.app"]},
    "Pingdom": {"cname": ["stats.pingdom.com"]},
    "Shopify": {"cname": ["myshopify.com"]},
    "Smartling": {"cname": ["smartling.com"]},
    "Smugsmug": {
        "cname": ["domains.smugmug.com"],
        "nxdomain": True,
    },
    "Tilda": {"cname": ["tilda.ws"]},
    "Tumblr": {"cname": ["domains.tumblr.com"]},
    "Vercel": {
        "cname": [".vercel.com", "cname.vercel-dns.com"],
        "a": ["76.76.21.21"],
    },
    "Webflow": {"cname": ["proxy.webflow.com", "proxy-ssl.webflow.com"]},
}


@dataclass(frozen=True)
class FingerprintPatch:
    status: Optional[str] = None
    fingerprint_texts: Tuple[str, ...] = ()
    cnames: Tuple[str, ...] = ()
    a_records: Tuple[str, ...] = ()
    aaaa_records: Tuple[str, ...] = ()
    nxdomain: Optional[bool] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FingerprintPatch":
        return cls(
            status=raw.get("status"),
            fingerprint_texts=tuple(raw.get("fingerprint", ())),
            cnames=tuple(expand_regions(raw.get("cname", ()))),
            a_records=tuple(raw.get("a", ())),
            aaaa_records=tuple(raw.get("aaaa", ())),
            nxdomain=raw.get("nxdomain"),
        )


def expand_regions(patterns: Iterable[str]) -> Iterable[str]:
    """Expand every "<region>" placeholder across AWS_REGIONS, in order."""
    for pattern in patterns:
        if REGION_PLACEHOLDER in pattern:
            for region in AWS_REGIONS:
                yield pattern.replace(REGION_PLACEHOLDER, region)
        else:
            yield pattern


def _merge(existing: Tuple[str, ...], extra: Tuple[str, ...]) -> Tuple[str, ...]:
    # Ordered set: upstream values first, duplicates dropped
    return tuple(dict.fromkeys(existing + extra))


def apply_correction(fingerprint: Fingerprint, patch: FingerprintPatch) -> Fingerprint:
    """Return a corrected copy of fingerprint. The input is never mutated."""
    return replace(
        fingerprint,
        status=patch.status if patch.status is not None else fingerprint.status,
        fingerprint_texts=_merge(fingerprint.fingerprint_texts, patch.fingerprint_texts),
        cnames=_merge(fingerprint.cnames, patch.cnames),
        a_records=_merge(fingerprint.a_records, patch.a_records),
        aaaa_records=_merge(fingerprint.aaaa_records, patch.aaaa_records),
        nxdomain=patch.nxdomain if patch.nxdomain is not None else fingerprint.nxdomain,
    )


PATCHES: Dict[str, FingerprintPatch] = {
    service: FingerprintPatch.from_dict(raw) for service, raw in CORRECTIONS.items()
}


def correct(fingerprint: Fingerprint, patches: Dict[str, FingerprintPatch] = PATCHES) -> Fingerprint:
    patch = patches.get(fingerprint.service)
    if patch is None:
        return fingerprint
    return apply_correction(fingerprint, patch)
