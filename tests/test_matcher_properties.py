"""
Property-based tests for the domain matcher.

A host is listed when it equals a known domain or when one of them is a
subdomain of the other on a dot boundary.
"""

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from domain_list_sync.matcher import DomainMatcher


@st.composite
def label_strategy(draw) -> str:
    label = draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
        min_size=1,
        max_size=10,
    ))
    return "x" + label if label == "www" else label


@st.composite
def domain_strategy(draw) -> str:
    labels = draw(st.lists(label_strategy(), min_size=1, max_size=3))
    tld = draw(st.sampled_from(["com", "net", "org", "de"]))
    return ".".join(labels + [tld])


class TestMatchingSymmetryProperty:
    """Subdomains match in both directions."""

    @given(known=domain_strategy(), prefix=label_strategy())
    @settings(max_examples=200)
    def test_visited_subdomain_of_known(self, known: str, prefix: str) -> None:
        assert DomainMatcher({known}).is_listed(f"{prefix}.{known}")

    @given(visited=domain_strategy(), prefix=label_strategy())
    @settings(max_examples=200)
    def test_known_subdomain_of_visited(self, visited: str, prefix: str) -> None:
        assert DomainMatcher({f"{prefix}.{visited}"}).is_listed(visited)

    @given(domain=domain_strategy())
    @settings(max_examples=100)
    def test_exact_match_after_normalization(self, domain: str) -> None:
        matcher = DomainMatcher({domain})
        assert matcher.is_listed(domain)
        assert matcher.is_listed(f"WWW.{domain.upper()}")
        assert matcher.is_listed(f"https://{domain}/some/page")


class TestNoSubstringMatches:
    """Matches only happen on dot boundaries."""

    @given(known=domain_strategy(), prefix=label_strategy())
    @settings(max_examples=200)
    def test_glued_prefix_does_not_match(self, known: str, prefix: str) -> None:
        assume(not (prefix + known).startswith("www."))
        assert not DomainMatcher({known}).is_listed(prefix + known)

    def test_examples(self) -> None:
        matcher = DomainMatcher({"shop.com", "google.com"})
        assert not matcher.is_listed("myshop.com")
        assert not matcher.is_listed("shop.co")
        assert matcher.is_listed("mail.google.com")
        assert not matcher.is_listed("google.com.evil.net")


class TestEmptyInputs:

    def test_empty_host_is_never_listed(self) -> None:
        assert not DomainMatcher({"example.com"}).is_listed("")
        assert not DomainMatcher({"example.com"}).is_listed("   ")

    @given(host=domain_strategy())
    @settings(max_examples=50)
    def test_empty_list_lists_nothing(self, host: str) -> None:
        matcher = DomainMatcher()
        assert len(matcher) == 0
        assert not matcher.is_listed(host)
