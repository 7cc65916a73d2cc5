"""Shared fixtures for layout tests."""

import pytest

from netmap.config.settings import FEATURE_FLAGS, LayoutSettings, reset_settings
from netmap.core.position_store import InMemoryBackend, PositionStore
from netmap.layout.orchestrator import LayoutOrchestrator
from netmap.models.network import Contact, Interaction


@pytest.fixture(autouse=True)
def restore_feature_flags():
    """Tests may flip feature flags; put them back afterwards."""
    saved = dict(FEATURE_FLAGS)
    yield
    FEATURE_FLAGS.clear()
    FEATURE_FLAGS.update(saved)
    reset_settings()


@pytest.fixture
def settings(tmp_path):
    """Default tunables with storage pointed at a temporary directory."""
    return LayoutSettings(storage_dir=tmp_path / "positions")


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, settings):
    return PositionStore(backend, "user_1", settings.self_node_id)


@pytest.fixture
def orchestrator(store, settings):
    return LayoutOrchestrator(store, settings, self_name="Dana Reyes")


@pytest.fixture
def contacts():
    """Two direct contacts, one introduced by c1, one introduced by c3."""
    return [
        Contact(id="c1", name="Alice Smith"),
        Contact(id="c2", name="Bob"),
        Contact(id="c3", name="Carol Jones", introducer_id="c1"),
        Contact(id="c4", name="Dev Patel", introducer_id="c3"),
    ]


@pytest.fixture
def interactions():
    return [
        Interaction(person_id="c1", sentiment="good"),
        Interaction(person_id="c1", sentiment="good"),
        Interaction(person_id="c2", sentiment="bad"),
        Interaction(person_id="c3", sentiment="good"),
        Interaction(person_id="c3", sentiment="bad"),
    ]
