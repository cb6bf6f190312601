"""
Property-based tests for the key-value stores.

Uses Hypothesis to check that the HMAC-protected JSON store round-trips
arbitrary JSON data and rejects any modification of the file.
"""

import json
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_list_sync.exceptions import PersistenceError, TamperingError
from domain_list_sync.state_store import (
    CACHED_DOMAINS,
    FULL_MONITORING,
    UNMATCHED_SITES,
    JsonFileStore,
    MemoryStore,
)


# Strategies for generating store contents

json_scalar = st.one_of(
    st.booleans(),
    st.integers(min_value=-(2 ** 53), max_value=2 ** 53),
    st.text(max_size=20),
    st.none(),
)

json_value = st.one_of(
    json_scalar,
    st.lists(st.text(max_size=20), max_size=5),
)


@st.composite
def store_data_strategy(draw) -> dict:
    """Generate a mapping of string keys to JSON-compatible values."""
    return draw(st.dictionaries(
        st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"), min_size=1, max_size=15),
        json_value,
        min_size=1,
        max_size=8,
    ))


secret_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"),
    min_size=8,
    max_size=32,
)


class TestJsonFileStoreRoundTripProperty:
    """Data written by one store instance is read back by another."""

    @given(data=store_data_strategy(), secret=secret_strategy)
    @settings(max_examples=50, deadline=None)
    def test_round_trip(self, data: dict, secret: str) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state.json"
            JsonFileStore(path, secret).set(data)

            reloaded = JsonFileStore(path, secret)
            assert reloaded.load() == data
            assert reloaded.get(list(data)) == data
            assert not path.with_name("state.json.tmp").exists()

    def test_missing_file_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonFileStore(Path(tmpdir) / "missing" / "state.json", "secret")
            assert store.load() == {}
            assert store.get([CACHED_DOMAINS]) == {}

    def test_parent_directories_are_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "a" / "b" / "state.json"
            JsonFileStore(path, "secret").set({FULL_MONITORING: True})
            assert path.exists()


class TestTamperDetectionProperty:
    """Any change to the stored data or a different secret is detected."""

    @given(data=store_data_strategy(), secret=secret_strategy)
    @settings(max_examples=50, deadline=None)
    def test_modified_data_is_rejected(self, data: dict, secret: str) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state.json"
            JsonFileStore(path, secret).set(data)

            document = json.loads(path.read_text(encoding="utf-8"))
            document["data"]["Injected-Key"] = "injected"
            path.write_text(json.dumps(document), encoding="utf-8")

            with pytest.raises(TamperingError):
                JsonFileStore(path, secret).load()

    @given(data=store_data_strategy(), secret=secret_strategy, other=secret_strategy)
    @settings(max_examples=50, deadline=None)
    def test_wrong_secret_is_rejected(self, data: dict, secret: str, other: str) -> None:
        if secret == other:
            return
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state.json"
            JsonFileStore(path, secret).set(data)
            with pytest.raises(TamperingError):
                JsonFileStore(path, other).load()

    def test_corrupted_json_is_a_persistence_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state.json"
            path.write_text("{not json", encoding="utf-8")
            with pytest.raises(PersistenceError) as excinfo:
                JsonFileStore(path, "secret").load()
            assert not isinstance(excinfo.value, TamperingError)

    def test_reset_discards_state(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "state.json"
            path.write_text('["not", "a", "document"]', encoding="utf-8")
            store = JsonFileStore(path, "secret")
            with pytest.raises(PersistenceError):
                store.get([UNMATCHED_SITES])

            store.reset()
            assert store.get([UNMATCHED_SITES]) == {}
            store.set({UNMATCHED_SITES: ["a.com"]})
            assert JsonFileStore(path, "secret").load() == {UNMATCHED_SITES: ["a.com"]}


class TestChangeNotification:
    """Listeners receive only the keys whose values changed."""

    @given(data=store_data_strategy())
    @settings(max_examples=50)
    def test_only_changed_keys_are_reported(self, data: dict) -> None:
        store = MemoryStore()
        received: list[dict] = []
        store.add_listener(received.append)

        store.set(data)
        assert received[-1] == {key: (None, value) for key, value in data.items()}

        received.clear()
        store.set(dict(data))
        assert received == []

    def test_listener_management(self) -> None:
        store = MemoryStore()
        received: list[dict] = []
        store.add_listener(received.append)
        store.add_listener(received.append)
        assert store.has_listener(received.append)

        store.set({FULL_MONITORING: True})
        assert received == [{FULL_MONITORING: (None, True)}]

        store.remove_listener(received.append)
        store.set({FULL_MONITORING: False})
        assert len(received) == 1

    def test_memory_store_reset(self) -> None:
        store = MemoryStore({UNMATCHED_SITES: ["a.com"]})
        store.reset()
        assert store.snapshot() == {}
