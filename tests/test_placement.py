"""Tests for initial placement: ring, introducer arcs and placement priority."""

import logging
import math

import pytest

from netmap.config.settings import LayoutSettings
from netmap.layout.placement import (
    ORIGIN,
    PlacementPlanner,
    PlacementSource,
    choose_position,
    introduced_position,
    introducer_forest,
    ring_position,
    sibling_step,
)
from netmap.models.layout_metadata import NodePosition
from netmap.models.network import Contact


def radius(position, center=ORIGIN):
    return position.distance_to(center)


def never_called():
    raise AssertionError("compute should not be called")


@pytest.fixture
def planner():
    return PlacementPlanner(LayoutSettings())


class TestRingPosition:
    """Test direct contact placement on the ring."""

    @pytest.mark.parametrize("node_id", ["c1", "c2", "alice", "contact-99", "x" * 40])
    def test_radius_within_jitter(self, node_id):
        r = radius(ring_position(node_id))
        assert 180.0 <= r <= 220.0

    def test_deterministic(self):
        assert ring_position("c1") == ring_position("c1")

    def test_relative_to_center(self):
        center = NodePosition(x=100, y=-50)
        moved = ring_position("c1", center)
        base = ring_position("c1")
        assert moved.x == pytest.approx(base.x + 100)
        assert moved.y == pytest.approx(base.y - 50)


class TestSiblingStep:
    """Test angular spacing between siblings."""

    def test_single_child_uses_spread(self):
        assert sibling_step(1, math.pi / 4, math.pi) == math.pi / 4

    def test_few_children_use_spread(self):
        assert sibling_step(3, math.pi / 4, math.pi) == math.pi / 4

    def test_many_children_are_bounded(self):
        step = sibling_step(10, math.pi / 4, math.pi)
        assert step == pytest.approx(math.pi / 9)
        assert step * 9 <= math.pi + 1e-12


class TestIntroducedPosition:
    """Test arc placement around an introducer."""

    def test_distance_from_introducer(self):
        introducer = NodePosition(x=200, y=0)
        s = LayoutSettings()
        for index in range(4):
            pos = introduced_position(f"n{index}", index, 4, introducer, ORIGIN, s)
            assert 105.0 <= pos.distance_to(introducer) <= 135.0

    def test_single_child_faces_away_from_center(self):
        introducer = NodePosition(x=0, y=-200)
        pos = introduced_position("c3", 0, 1, introducer, ORIGIN, LayoutSettings())
        assert radius(pos) > radius(introducer)
        # angle jitter is at most pi/24 around straight up
        assert pos.y < introducer.y - 100

    def test_siblings_are_spread_apart(self):
        introducer = NodePosition(x=200, y=0)
        s = LayoutSettings(introduced_spread_jitter=0.0, introduced_radius_jitter=0.0)
        first = introduced_position("a", 0, 2, introducer, ORIGIN, s)
        second = introduced_position("b", 1, 2, introducer, ORIGIN, s)
        # chord of a pi/4 arc step at radius 120
        assert first.distance_to(second) == pytest.approx(2 * 120 * math.sin(math.pi / 8))


class TestChoosePosition:
    """Test the persisted > existing > computed priority."""

    def test_persisted_wins(self):
        persisted = NodePosition(x=1, y=1)
        existing = NodePosition(x=2, y=2)
        assert choose_position(persisted, existing, never_called) == (
            persisted, PlacementSource.PERSISTED,
        )

    def test_existing_over_computed(self):
        existing = NodePosition(x=2, y=2)
        assert choose_position(None, existing, never_called) == (
            existing, PlacementSource.EXISTING,
        )

    def test_computed_last(self):
        computed = NodePosition(x=3, y=3)
        assert choose_position(None, None, lambda: computed) == (
            computed, PlacementSource.COMPUTED,
        )


class TestIntroducerForest:
    """Test introducer graph construction."""

    def test_edges(self, contacts):
        graph = introducer_forest(contacts, "user-center")
        assert set(graph.successors("user-center")) == {"c1", "c2"}
        assert list(graph.successors("c1")) == ["c3"]
        assert list(graph.successors("c3")) == ["c4"]

    def test_self_and_unknown_introducers_hang_off_root(self):
        contacts = [
            Contact(id="a", introducer_id="a"),
            Contact(id="b", introducer_id="ghost"),
        ]
        graph = introducer_forest(contacts, "user-center")
        assert set(graph.successors("user-center")) == {"a", "b"}
        assert "ghost" not in graph


class TestPlacementPlanner:
    """Test full plans over contact lists."""

    def test_every_contact_placed_once(self, planner, contacts):
        plan = planner.plan(contacts)
        assert set(plan.positions) == {"c1", "c2", "c3", "c4"}
        assert all(src is PlacementSource.COMPUTED for src in plan.sources.values())
        assert plan.orphans == []

    def test_introducers_recorded(self, planner, contacts):
        plan = planner.plan(contacts)
        assert plan.introducers == {"c1": None, "c2": None, "c3": "c1", "c4": "c3"}

    def test_chain_placed_around_each_introducer(self, planner, contacts):
        plan = planner.plan(contacts)
        assert 180.0 <= radius(plan.positions["c1"]) <= 220.0
        assert 105.0 <= plan.positions["c3"].distance_to(plan.positions["c1"]) <= 135.0
        assert 105.0 <= plan.positions["c4"].distance_to(plan.positions["c3"]) <= 135.0

    def test_introducer_listed_after_introduced(self, planner):
        """Breadth-first order places introducers first regardless of list order."""
        contacts = [
            Contact(id="deep", introducer_id="mid"),
            Contact(id="mid", introducer_id="top"),
            Contact(id="top"),
        ]
        plan = planner.plan(contacts)
        assert list(plan.positions) == ["top", "mid", "deep"]
        assert 105.0 <= plan.positions["deep"].distance_to(plan.positions["mid"]) <= 135.0

    def test_persisted_beats_existing_for_all_categories(self, planner, contacts):
        persisted = {
            "c1": NodePosition(x=10, y=10),
            "c3": NodePosition(x=30, y=30),
        }
        existing = {
            "c1": NodePosition(x=-1, y=-1),
            "c2": NodePosition(x=-2, y=-2),
            "c3": NodePosition(x=-3, y=-3),
        }
        plan = planner.plan(contacts, persisted=persisted, existing=existing)

        assert plan.positions["c1"] == persisted["c1"]
        assert plan.positions["c3"] == persisted["c3"]
        assert plan.positions["c2"] == existing["c2"]
        assert plan.sources == {
            "c1": PlacementSource.PERSISTED,
            "c2": PlacementSource.EXISTING,
            "c3": PlacementSource.PERSISTED,
            "c4": PlacementSource.COMPUTED,
        }

    def test_introduced_follows_restored_introducer(self, planner, contacts):
        """A computed arc is built around wherever the introducer ended up."""
        persisted = {"c3": NodePosition(x=-400, y=300)}
        plan = planner.plan(contacts, persisted=persisted)
        assert 105.0 <= plan.positions["c4"].distance_to(persisted["c3"]) <= 135.0

    def test_cycle_members_are_orphans_on_ring(self, planner):
        contacts = [
            Contact(id="x", introducer_id="y"),
            Contact(id="y", introducer_id="x"),
            Contact(id="z"),
        ]
        plan = planner.plan(contacts)

        assert plan.orphans == ["x", "y"]
        assert plan.introducers["x"] == "y"
        assert plan.introducers["y"] == "x"
        for node_id in ("x", "y", "z"):
            assert 180.0 <= radius(plan.positions[node_id]) <= 220.0

    def test_contact_below_a_cycle_is_orphaned_not_called_cyclic(self, planner, caplog):
        """Someone introduced by a cycle member is unreachable but not in the cycle."""
        contacts = [
            Contact(id="x", introducer_id="y"),
            Contact(id="y", introducer_id="x"),
            Contact(id="w", introducer_id="x"),
        ]
        with caplog.at_level(logging.WARNING, logger="netmap.layout.placement"):
            plan = planner.plan(contacts)

        assert plan.orphans == ["x", "y", "w"]
        assert plan.introducers["w"] == "x"
        messages = [r.getMessage() for r in caplog.records]
        assert any("Contact w is unreachable from the anchor" in m for m in messages)
        assert not any("is in an introducer cycle" in m for m in messages)

    def test_unknown_introducer_is_direct(self, planner):
        plan = planner.plan([Contact(id="a", introducer_id="missing")])
        assert plan.introducers == {"a": None}
        assert plan.orphans == []
        assert 180.0 <= radius(plan.positions["a"]) <= 220.0

    def test_empty(self, planner):
        plan = planner.plan([])
        assert plan.positions == {}
        assert plan.orphans == []
