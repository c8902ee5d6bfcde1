# backend/companyintel/services/domain.py
"""
Hostname normalisation and the SSRF gate.

`is_valid_domain` is the only check standing between a caller-supplied
domain and an outbound request, so it stays pure and conservative:
anything that looks like a literal address, a private range or an
internal name is refused.
"""
from __future__ import annotations

import re
from urllib.parse import quote

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")
_PRIVATE_PREFIX_RE = re.compile(
    r"^(localhost|127\.|10\.|172\.(1[6-9]|2\d|3[01])\.|192\.168\.|169\.254\.|0\.)"
)
_IPV4_RE = re.compile(r"^\d+\.\d+\.\d+\.\d+$")
_HOSTNAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")
_INTERNAL_SUFFIXES = (".localhost", ".local", ".internal")

LINKEDIN_COMPANY_SEARCH_URL = "https://www.linkedin.com/search/results/companies/?keywords="


def normalize_domain(value: str | None) -> str | None:
    """
    Reduce a URL, email address or bare host to a lower-cased hostname.

    "https://www.Example.com/about?x=1" -> "example.com"
    "jane@example.com"                  -> "example.com"
    """
    if not value:
        return None

    domain = value.strip().lower()
    if "@" in domain and "://" not in domain:
        domain = domain.rsplit("@", 1)[1]

    domain = _SCHEME_RE.sub("", domain)
    if domain.startswith("www."):
        domain = domain[4:]
    for sep in ("/", "?", "#"):
        domain = domain.split(sep, 1)[0]

    return domain or None


def is_valid_domain(value: str | None) -> bool:
    domain = normalize_domain(value)
    if not domain:
        return False

    if _PRIVATE_PREFIX_RE.match(domain):
        return False

    if _IPV4_RE.match(domain):
        return False

    if "." not in domain or len(domain) < 4:
        return False

    if ".." in domain or domain.endswith(_INTERNAL_SUFFIXES):
        return False

    return bool(_HOSTNAME_RE.match(domain))


def linkedin_search_url(company_name: str) -> str:
    """Generated company-search link; never a guessed profile."""
    return LINKEDIN_COMPANY_SEARCH_URL + quote(company_name or "", safe="")
