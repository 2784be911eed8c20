"""Search Console property identifiers.

A property is either a domain property (``sc-domain:example.com``) or a
URL-prefix property (``https://www.example.com/``).
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

SC_DOMAIN_PREFIX = "sc-domain:"


def property_domain(property_id: str) -> str:
    """Human-facing domain for a property: the suffix of a domain property, else the URL host."""
    if property_id.startswith(SC_DOMAIN_PREFIX):
        return property_id[len(SC_DOMAIN_PREFIX):]
    host = urlparse(property_id).hostname
    return host or property_id


def _bare_host(property_id: str) -> str:
    host = property_domain(property_id).lower()
    return host[4:] if host.startswith("www.") else host


def dedupe_properties(property_ids: Iterable[str]) -> list[str]:
    """Drop URL-prefix properties already covered by a domain property for the same host.

    Exact duplicates are dropped too. Order is preserved.
    """
    ids = list(property_ids)
    domains = {_bare_host(p) for p in ids if p.startswith(SC_DOMAIN_PREFIX)}

    unique: list[str] = []
    seen: set[str] = set()
    for prop in ids:
        if prop in seen:
            continue
        seen.add(prop)
        if not prop.startswith(SC_DOMAIN_PREFIX) and _bare_host(prop) in domains:
            continue
        unique.append(prop)
    return unique
