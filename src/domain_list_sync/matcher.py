"""
Domain Matcher.

Decides whether a visited host is covered by the known domain list. A host
matches a known entry when they are equal or when either one is a subdomain
of the other on a dot boundary, so both ``mail.example.com`` against a known
``example.com`` and ``example.com`` against a known ``mail.example.com``
count as listed. Substring matches ("shop" in "myshop.com") never do.
"""

from typing import Iterable

from .host_normalizer import normalize_domain


class DomainMatcher:
    """Immutable matcher over one snapshot of the domain set."""

    def __init__(self, domains: Iterable[str] = ()) -> None:
        self._domains = frozenset(domains)

    @property
    def domains(self) -> frozenset[str]:
        return self._domains

    def __len__(self) -> int:
        return len(self._domains)

    def is_listed(self, host: str) -> bool:
        normalized = normalize_domain(host)
        if not normalized:
            return False

        if normalized in self._domains:
            return True

        host_suffix = "." + normalized
        for known in self._domains:
            if normalized.endswith("." + known) or known.endswith(host_suffix):
                return True
        return False
