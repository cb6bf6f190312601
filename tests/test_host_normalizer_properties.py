"""
Property-based tests for host normalization.

Uses Hypothesis to check that normalization is stable and that
canonicalization strips everything that is not part of the host.

Only one leading ``www.`` is stripped, so a host that still starts with
``www.`` afterwards (``www.www.example.com``) is the one input family for
which normalizing twice differs from normalizing once; the idempotence
properties exclude it with ``assume``.
"""

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from domain_list_sync.host_normalizer import (
    canonicalize_host,
    host_from_url,
    is_full_url,
    normalize_domain,
)
from domain_list_sync.matcher import DomainMatcher


# Strategies for generating host-like input

label_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=12,
)


@st.composite
def host_strategy(draw) -> str:
    """Generate a canonical host with at least one dot."""
    labels = draw(st.lists(label_strategy, min_size=1, max_size=3))
    tld = draw(st.sampled_from(["com", "net", "org", "de", "biz", "example"]))
    return ".".join(labels + [tld])


@st.composite
def host_input_strategy(draw) -> str:
    """Generate host-like user input: optional scheme, www, case, path, whitespace."""
    host = draw(host_strategy())
    if draw(st.booleans()):
        host = "www." + host
    if draw(st.booleans()):
        host = host.upper()
    scheme = draw(st.sampled_from(["", "http://", "https://"]))
    path = draw(st.sampled_from(["", "/", "/login", "/a/b?c=d"]))
    padding = draw(st.sampled_from(["", " ", "\t"]))
    return f"{padding}{scheme}{host}{path}{padding}"


@st.composite
def noisy_authority_strategy(draw) -> str:
    """Generate URLs whose authority has whitespace and userinfo mixed in."""
    host = draw(host_strategy())
    noise = st.sampled_from(["", " ", "\t", "@", " @", "@ ", "user@", "www.", " www."])
    scheme = draw(st.sampled_from(["", "http://", "https://"]))
    path = draw(st.sampled_from(["", " /login", "/a b", "?q= x"]))
    return f"{scheme}{draw(noise)}{host}{draw(noise)}{path}"


class TestNormalizationIdempotenceProperty:
    """Normalizing twice gives the same result as normalizing once."""

    @given(value=host_input_strategy())
    @settings(max_examples=200)
    def test_normalize_is_idempotent(self, value: str) -> None:
        once = normalize_domain(value)
        assume(not once.startswith("www."))
        assert normalize_domain(once) == once

    @given(value=st.text())
    @settings(max_examples=500)
    def test_normalize_is_idempotent_for_any_text(self, value: str) -> None:
        once = normalize_domain(value)
        assume(not once.startswith("www."))
        assert normalize_domain(once) == once

    @given(value=noisy_authority_strategy())
    @settings(max_examples=300)
    def test_whitespace_in_authority_is_stable(self, value: str) -> None:
        once = normalize_domain(value)
        assume(not once.startswith("www."))
        assert normalize_domain(once) == once
        matcher = DomainMatcher({once}) if once else DomainMatcher()
        assert matcher.is_listed(value) == matcher.is_listed(once)

    def test_hosts_with_whitespace_are_kept_verbatim(self) -> None:
        assert normalize_domain("example.com /login") == "example.com /login"
        assert normalize_domain("user@ www.example.com") == "user@ www.example.com"
        assert normalize_domain("@ 0") == "@ 0"
        assert not DomainMatcher({"example.com"}).is_listed("example.com /login")

    def test_single_www_strip(self) -> None:
        assert normalize_domain("www.www.example.com") == "www.example.com"
        assert normalize_domain("www.example.com") == "example.com"

    def test_ipv6_literals_keep_brackets(self) -> None:
        assert normalize_domain("http://[::1]:8080/") == "[::1]"
        assert normalize_domain("[::1]") == "[::1]"

    @given(host=host_strategy())
    @settings(max_examples=100)
    def test_normalize_recovers_host_from_decorated_input(self, host: str) -> None:
        assert normalize_domain(f"  HTTPS://WWW.{host.upper()}/path?q=1 ") == host

    def test_normalize_examples(self) -> None:
        assert normalize_domain("https://WWW.Example.com/path") == "example.com"
        assert normalize_domain("mail.example.com") == "mail.example.com"
        assert normalize_domain("") == ""
        assert normalize_domain("   ") == ""

    def test_normalize_converts_internationalized_names(self) -> None:
        assert normalize_domain("bücher.de") == "xn--bcher-kva.de"
        assert normalize_domain("https://www.BÜCHER.de/") == "xn--bcher-kva.de"


class TestCanonicalizeHostProperty:
    """canonicalize_host strips port, userinfo and www. and rejects dot-less input."""

    @given(
        host=host_strategy(),
        user=st.sampled_from(["", "user@", "User:Pass@"]),
        port=st.sampled_from(["", ":80", ":8080"]),
        www=st.booleans(),
    )
    @settings(max_examples=200)
    def test_strips_decorations(self, host: str, user: str, port: str, www: bool) -> None:
        assume(not host.startswith("www."))
        raw = f"{user}{'WWW.' if www else ''}{host.upper()}{port}"
        assert canonicalize_host(raw) == host

    @given(label=label_strategy)
    @settings(max_examples=50)
    def test_rejects_dotless_hosts(self, label: str) -> None:
        assert canonicalize_host(label) == ""
        assert canonicalize_host(f"{label}:8080") == ""

    def test_examples(self) -> None:
        assert canonicalize_host("User@Sub.EXAMPLE.com:8080") == "sub.example.com"
        assert canonicalize_host("localhost") == ""
        assert canonicalize_host("") == ""


class TestHostFromUrl:
    """Full URLs reduce to their canonical host."""

    @given(host=host_strategy())
    @settings(max_examples=100)
    def test_host_from_url(self, host: str) -> None:
        assert host_from_url(f"https://user@www.{host}:8443/x?y=z#frag") == host

    def test_invalid_urls_yield_empty_host(self) -> None:
        assert host_from_url("") == ""
        assert host_from_url("not a url") == ""
        assert host_from_url("https://localhost/") == ""

    def test_is_full_url(self) -> None:
        assert is_full_url("https://example.com/a")
        assert is_full_url("  HTTP://example.com ")
        assert not is_full_url("example.com")
        assert not is_full_url("ftp://example.com")
        assert not is_full_url("https://")
