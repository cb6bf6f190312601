"""
Domain extraction from unstructured text.

Issue titles, bodies and comments mention domains either as full URLs or as
bare names ("shady.biz"). Both pattern classes are scanned line by line; a
match that starts earlier wins, and on a tie the URL is preferred.
"""

import re

from .host_normalizer import canonicalize_host, host_from_url


URL_PATTERN = re.compile(r"https?://[^\s<>()\[\]\"']+", re.IGNORECASE)

# Bare domains, skipping the domain part of e-mail addresses
BARE_DOMAIN_PATTERN = re.compile(
    r"(?<!@)\b((?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+(?:[a-z]{2,63}))\b"
    r"(?:/[\w\-./?%#=&+]*)?",
    re.IGNORECASE | re.ASCII,
)

TRAILING_PUNCTUATION = re.compile(r"[.,;:!?)}\"'`]+$")


def _strip_trailing(value: str) -> str:
    return TRAILING_PUNCTUATION.sub("", value)


def _host_from_url_match(match: re.Match) -> str:
    return host_from_url(_strip_trailing(match.group(0)))


def _host_from_bare_match(match: re.Match) -> str:
    return canonicalize_host(_strip_trailing(match.group(1)))


def _line_hosts(line: str) -> list[tuple[int, int, str]]:
    """Collect (start, priority, host) for every match on a single line."""
    found = []
    for match in URL_PATTERN.finditer(line):
        found.append((match.start(), 0, _host_from_url_match(match)))
    for match in BARE_DOMAIN_PATTERN.finditer(line):
        found.append((match.start(), 1, _host_from_bare_match(match)))
    found.sort(key=lambda item: (item[0], item[1]))
    return found


def extract_all_hosts(text: str) -> list[str]:
    """
    Extract every host mentioned in text.

    Returns canonical hosts in order of first occurrence, without duplicates.

    Examples:
        >>> extract_all_hosts("Visit https://Shop.Example.com/x and also shady.biz now")
        ['shop.example.com', 'shady.biz']
    """
    if not text:
        return []

    hosts: list[str] = []
    seen: set[str] = set()
    for line in text.splitlines():
        if not line.strip():
            continue
        for _, _, host in _line_hosts(line):
            if host and host not in seen:
                seen.add(host)
                hosts.append(host)
    return hosts


def extract_first_host(text: str) -> str:
    """
    Return the earliest host mentioned in text, or '' when there is none.

    Lines are scanned in order; within a line the match with the lower start
    index wins and a URL beats a bare domain starting at the same index.
    """
    if not text:
        return ""

    for line in text.splitlines():
        if not line.strip():
            continue

        url_match = URL_PATTERN.search(line)
        domain_match = BARE_DOMAIN_PATTERN.search(line)
        if url_match is None and domain_match is None:
            continue

        if url_match is not None and (
            domain_match is None or url_match.start() <= domain_match.start()
        ):
            return _host_from_url_match(url_match)
        return _host_from_bare_match(domain_match)
    return ""
