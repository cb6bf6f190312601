"""
Host normalization for domain list matching.

Provides the pure functions that turn raw user input, URLs and hostnames
into the canonical lowercase form stored in the domain list. None of these
functions raise; invalid input maps to an empty string.
"""

from urllib.parse import urlsplit

import idna


WWW_PREFIX = "www."


def _to_ascii(host: str) -> str:
    """
    Convert an internationalized hostname to its ASCII (punycode) form.

    Hosts that cannot be IDNA-encoded are returned unchanged.
    """
    if all(ord(c) < 128 for c in host):
        return host
    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except (idna.IDNAError, UnicodeError):
        return host


def _strip_www(host: str) -> str:
    if host.startswith(WWW_PREFIX):
        return host[len(WWW_PREFIX):]
    return host


def _parse_hostname(url: str) -> str:
    """
    Hostname of a URL, or '' when the URL has no usable host.

    A hostname containing whitespace is not a host. IPv6 literals keep their
    brackets so the result parses back to itself.
    """
    try:
        hostname = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    if any(c.isspace() for c in hostname):
        return ""
    if ":" in hostname:
        return f"[{hostname}]"
    return hostname


def normalize_domain(value: str) -> str:
    """
    Normalize a domain or URL for comparison.

    Lowercases and trims the input, parses it as a URL (prepending
    ``http://`` when no scheme is present) to extract the hostname, and
    strips one leading ``www.``. When URL parsing yields no hostname the
    trimmed string is returned as-is, without the ``www.`` strip.

    Normalizing a result again returns it unchanged, except for hosts that
    still start with ``www.`` after the single strip
    (``www.www.example.com`` gives ``www.example.com``).

    Examples:
        >>> normalize_domain("https://WWW.Example.com/path")
        'example.com'
        >>> normalize_domain("mail.example.com")
        'mail.example.com'
        >>> normalize_domain("example.com /login")
        'example.com /login'
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return ""

    candidate = normalized if "://" in normalized else f"http://{normalized}"
    hostname = _parse_hostname(candidate)
    if not hostname:
        return normalized

    host = _strip_www(hostname)
    encoded = _to_ascii(host)
    # IDNA mapping can itself produce a www. prefix (fullwidth letters)
    return _strip_www(encoded) if encoded != host else encoded


def canonicalize_host(host: str) -> str:
    """
    Canonicalize a bare hostname.

    Strips userinfo (``user@``) and port (``:8080``), lowercases, removes one
    leading ``www.`` and rejects hosts without a dot.

    Examples:
        >>> canonicalize_host("User@Sub.EXAMPLE.com:8080")
        'sub.example.com'
        >>> canonicalize_host("localhost")
        ''
    """
    if not host:
        return ""
    h = host.strip().lower()
    if "@" in h:
        h = h.rsplit("@", 1)[-1]
    if ":" in h:
        h = h.split(":", 1)[0]
    h = _strip_www(h)
    return h if "." in h else ""


def host_from_url(url: str) -> str:
    """Extract and canonicalize the hostname of a full URL ('' on failure)."""
    hostname = _parse_hostname((url or "").strip())
    if not hostname:
        return ""
    return canonicalize_host(_to_ascii(hostname))


def is_full_url(text: str) -> bool:
    """True when text is an http(s) URL with a parseable hostname."""
    s = (text or "").strip()
    if not s.lower().startswith(("http://", "https://")):
        return False
    return bool(_parse_hostname(s))
