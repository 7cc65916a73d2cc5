"""Tests for the Position Store and its backends.

Tests cover:
- Save/load round trip through memory and JSON file backends
- Anchor and pinned node exclusion
- Per-user key namespacing
- Failure isolation (unreadable storage, corrupt payloads, failed writes)
- Clearing for layout resets
"""

import json

import pytest

from netmap.core.position_store import (
    KEY_PREFIX,
    InMemoryBackend,
    JsonFileBackend,
    PositionBackend,
    PositionStore,
    PositionStoreError,
    create_position_store,
)
from netmap.models.layout_metadata import NetworkNode, NodePosition


def make_nodes():
    return [
        NetworkNode(id="user-center", position=NodePosition(x=0, y=0), pinned=True, kind="self"),
        NetworkNode(id="c1", position=NodePosition(x=120.5, y=-40)),
        NetworkNode(id="c2", position=NodePosition(x=-80, y=200)),
    ]


class BrokenBackend(PositionBackend):
    """Backend whose every operation fails."""

    def read(self, key):
        raise PositionStoreError(key, "disk on fire")

    def write(self, key, payload):
        raise PositionStoreError(key, "disk on fire")

    def remove(self, key):
        raise PositionStoreError(key, "disk on fire")


class TestInMemoryStore:
    """Test save/load through the in-memory backend."""

    def test_round_trip(self, store):
        assert store.save(make_nodes()) is True
        assert store.load() == {
            "c1": NodePosition(x=120.5, y=-40),
            "c2": NodePosition(x=-80, y=200),
        }

    def test_anchor_is_never_stored(self, store, backend):
        store.save(make_nodes())
        stored = json.loads(backend.read(store.key))
        assert "user-center" not in stored

    def test_pinned_nodes_are_skipped(self, store):
        nodes = make_nodes() + [
            NetworkNode(id="fixed", position=NodePosition(x=5, y=5), pinned=True),
        ]
        store.save(nodes)
        assert "fixed" not in store.load()

    def test_anchor_entry_dropped_on_load(self, store, backend):
        backend.write(store.key, json.dumps({
            "user-center": {"x": 99, "y": 99},
            "c1": {"x": 1, "y": 2},
        }))
        assert store.load() == {"c1": NodePosition(x=1, y=2)}

    def test_list_entries_accepted(self, store, backend):
        backend.write(store.key, json.dumps({"c1": [3, 4]}))
        assert store.load() == {"c1": NodePosition(x=3, y=4)}

    def test_nothing_saved(self, store):
        assert store.load() == {}

    def test_save_replaces_previous(self, store):
        store.save(make_nodes())
        store.save([NetworkNode(id="c9", position=NodePosition(x=1, y=1))])
        assert list(store.load()) == ["c9"]


class TestNamespacing:
    """Test per-user key isolation."""

    def test_key_format(self, store):
        assert store.key == f"{KEY_PREFIX}user_1"
        assert store.key == "node-positions-user_1"

    def test_users_do_not_share_positions(self, backend):
        alice = PositionStore(backend, "alice")
        bob = PositionStore(backend, "bob")
        alice.save(make_nodes())

        assert bob.load() == {}
        assert len(backend) == 1
        assert "node-positions-alice" in backend

    def test_missing_identity_is_a_no_op(self, backend):
        anonymous = PositionStore(backend, None)
        assert anonymous.key is None
        assert anonymous.save(make_nodes()) is False
        assert anonymous.load() == {}
        assert anonymous.clear() is False
        assert len(backend) == 0

    def test_empty_identity_treated_as_missing(self, backend):
        assert PositionStore(backend, "").key is None


class TestFailureIsolation:
    """Test that storage problems degrade to "no saved positions"."""

    @pytest.mark.parametrize(
        "payload",
        [
            "not json at all",
            "[1, 2, 3]",
            '"just a string"',
            '{"c1": {"x": "left", "y": 0}}',
            '{"c1": [1, 2, 3]}',
            '{"c1": {"x": 1}}',
            '{"c1": 17}',
            '{"c1": {"x": NaN, "y": 0}}',
            '{"c1": [Infinity, 0]}',
        ],
    )
    def test_corrupt_payload_loads_empty(self, store, backend, payload):
        backend.write(store.key, payload)
        assert store.load() == {}

    def test_unreadable_storage_loads_empty(self):
        store = PositionStore(BrokenBackend(), "user_1")
        assert store.load() == {}

    def test_failed_write_returns_false(self):
        store = PositionStore(BrokenBackend(), "user_1")
        assert store.save(make_nodes()) is False

    def test_failed_clear_returns_false(self):
        store = PositionStore(BrokenBackend(), "user_1")
        assert store.clear() is False


class TestClear:
    """Test removal of saved positions."""

    def test_clear_removes_positions(self, store):
        store.save(make_nodes())
        assert store.clear() is True
        assert store.load() == {}

    def test_clear_when_empty(self, store):
        assert store.clear() is False


class TestJsonFileBackend:
    """Test the on-disk backend."""

    def test_round_trip_on_disk(self, tmp_path):
        store = PositionStore(JsonFileBackend(tmp_path / "positions"), "user_1")
        store.save(make_nodes())

        path = tmp_path / "positions" / "node-positions-user_1.json"
        assert path.exists()
        assert json.loads(path.read_text())["c1"] == {"x": 120.5, "y": -40.0}

        reopened = PositionStore(JsonFileBackend(tmp_path / "positions"), "user_1")
        assert reopened.load()["c2"] == NodePosition(x=-80, y=200)

    def test_unsafe_key_characters(self, tmp_path):
        backend = JsonFileBackend(tmp_path)
        path = backend.path_for("node-positions-a/b c")
        assert path.name == "node-positions-a%2Fb%20c.json"
        assert path.parent == tmp_path

    def test_similar_user_ids_get_separate_files(self, tmp_path):
        """Ids that differ only in punctuation must not share a file."""
        backend = JsonFileBackend(tmp_path)
        alice = PositionStore(backend, "alice@example.com")
        other = PositionStore(backend, "alice_example.com")

        alice.save([NetworkNode(id="c1", position=NodePosition(x=1, y=2))])

        assert other.load() == {}
        assert alice.load() == {"c1": NodePosition(x=1, y=2)}
        assert backend.path_for(alice.key) != backend.path_for(other.key)

    def test_missing_file_reads_none(self, tmp_path):
        assert JsonFileBackend(tmp_path / "nowhere").read("k") is None

    def test_remove(self, tmp_path):
        backend = JsonFileBackend(tmp_path)
        backend.write("k", "{}")
        assert backend.remove("k") is True
        assert backend.remove("k") is False

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        backend = JsonFileBackend(blocker / "positions")

        with pytest.raises(PositionStoreError):
            backend.write("k", "{}")

        store = PositionStore(backend, "user_1")
        assert store.save(make_nodes()) is False

    def test_no_temp_file_left_behind(self, tmp_path):
        backend = JsonFileBackend(tmp_path)
        backend.write("k", "{}")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]


class TestCreatePositionStore:
    """Test the factory."""

    def test_memory_without_directory(self):
        store = create_position_store("u1")
        assert isinstance(store.backend, InMemoryBackend)

    def test_files_with_directory(self, tmp_path):
        store = create_position_store("u1", tmp_path)
        assert isinstance(store.backend, JsonFileBackend)
        assert store.backend.directory == tmp_path
