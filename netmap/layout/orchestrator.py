"""Layout orchestration for one user's network diagram.

The orchestrator owns the layout state exclusively. Handlers for data
loads, drag gestures and layout resets take an explicit snapshot of the
current state, run the pure placement/resolution/attachment functions on
it, and commit the result under a single lock. No other component mutates
nodes or edges.

Flows:
    load      -> placement (persisted > existing > computed)
              -> resolve once -> attachments for all edges -> commit
    drag      -> overwrite dragged node -> resolve biased to it
              -> attachments for edges touching moved nodes -> commit
    drag end  -> same as drag -> commit -> persist non-anchor positions
    reset     -> clear persisted positions -> recompute placements

Usage:
    orchestrator = create_orchestrator("user_42", storage_dir="/var/lib/netmap")
    snapshot = orchestrator.load(contacts, interactions)
    orchestrator.start_drag("c1")
    orchestrator.drag("c1", NodePosition(x=40, y=-10))
    orchestrator.end_drag("c1")
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import networkx as nx

from netmap.config.settings import LayoutSettings, get_settings, is_enabled
from netmap.core.position_store import PositionStore, create_position_store
from netmap.core.styling import gradient_from_id, initials, line_color
from netmap.layout.attachment import refresh_attachments, touched_edge_ids
from netmap.layout.collision import CollisionResolver
from netmap.layout.placement import PlacementPlanner
from netmap.models.layout_metadata import (
    LayoutSnapshot,
    NetworkEdge,
    NetworkNode,
    NodePosition,
)
from netmap.models.network import Contact, Interaction

logger = logging.getLogger(__name__)


class LayoutError(Exception):
    """Base class for rejected layout operations."""


class UnknownNodeError(LayoutError):
    """Raised when an operation names a node that is not in the layout."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found in layout")


class PinnedNodeError(LayoutError):
    """Raised when a drag targets a pinned node (the self-anchor)."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} is pinned and cannot be dragged")


@dataclass
class LayoutState:
    """Everything the orchestrator owns for one user.

    Attributes:
        nodes: Node id -> node, self-anchor first
        edges: Edge id -> edge
        topology: Directed graph of node ids; edges carry ``edge_id``
        contacts: Contact records from the last load (for resets)
        interactions: Interaction records from the last load
        active_id: Node currently being dragged, if any
        version: Commit counter
        loaded: True once network data has been loaded
    """

    nodes: Dict[str, NetworkNode] = field(default_factory=dict)
    edges: Dict[str, NetworkEdge] = field(default_factory=dict)
    topology: nx.DiGraph = field(default_factory=nx.DiGraph)
    contacts: List[Contact] = field(default_factory=list)
    interactions: List[Interaction] = field(default_factory=list)
    active_id: Optional[str] = None
    version: int = 0
    loaded: bool = False


class LayoutOrchestrator:
    """Single writer of one user's layout state."""

    def __init__(
        self,
        store: PositionStore,
        settings: Optional[LayoutSettings] = None,
        self_name: str = "",
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.self_name = self_name
        self.planner = PlacementPlanner(self.settings)
        self.resolver = CollisionResolver(self.settings)
        self._lock = threading.RLock()
        self._state = LayoutState()
        anchor = self._anchor_node(None)
        self._state.nodes[anchor.id] = anchor
        self._state.topology.add_node(anchor.id)

    @property
    def user_id(self) -> Optional[str]:
        return self.store.user_id

    @property
    def loaded(self) -> bool:
        with self._lock:
            return self._state.loaded

    @property
    def active_id(self) -> Optional[str]:
        with self._lock:
            return self._state.active_id

    # =========================================================================
    # Data load
    # =========================================================================

    def load(
        self,
        contacts: Sequence[Contact],
        interactions: Sequence[Interaction] = (),
    ) -> LayoutSnapshot:
        """Rebuild nodes and edges from upstream records.

        Args:
            contacts: Contacts in upstream order
            interactions: Interaction records used for edge colors

        Returns:
            Committed LayoutSnapshot
        """
        with self._lock:
            s = self.settings
            contacts = self._usable_contacts(contacts)
            interactions = list(interactions)

            anchor = self._anchor_node(self._state.nodes.get(s.self_node_id))
            existing = {
                node_id: node.position
                for node_id, node in self._state.nodes.items()
                if node_id != s.self_node_id
            }
            persisted = self.store.load()

            plan = self.planner.plan(contacts, persisted, existing, center=anchor.position)
            by_id = {c.id: c for c in contacts}

            nodes: List[NetworkNode] = [anchor]
            for contact_id, position in plan.positions.items():
                contact = by_id[contact_id]
                introducer = plan.introducers.get(contact_id)
                gradient_from, gradient_to = gradient_from_id(contact_id)
                nodes.append(NetworkNode(
                    id=contact_id,
                    position=position,
                    pinned=False,
                    introducer_id=introducer,
                    kind="introduced" if introducer else "direct",
                    label=initials(contact.name),
                    gradient_from=gradient_from,
                    gradient_to=gradient_to,
                ))

            if is_enabled('resolve_on_load'):
                report = self.resolver.run(nodes)
                nodes = report.nodes
                logger.debug(
                    f"Settled initial layout in {report.iterations} pass(es), "
                    f"{report.corrections} correction(s), converged={report.converged}"
                )

            node_map = {node.id: node for node in nodes}
            edges, topology = self._build_edges(nodes, interactions)
            edges = refresh_attachments(edges, node_map, s.attachment_points)

            self._state = LayoutState(
                nodes=node_map,
                edges=edges,
                topology=topology,
                contacts=contacts,
                interactions=interactions,
                active_id=None,
                version=self._state.version + 1,
                loaded=True,
            )

            logger.info(
                f"Loaded layout for user {self.user_id}: {len(node_map)} nodes, "
                f"{len(edges)} edges"
            )
            return self._snapshot()

    # =========================================================================
    # Drag gestures
    # =========================================================================

    def start_drag(self, node_id: str) -> LayoutSnapshot:
        """Mark node_id as the active node."""
        with self._lock:
            self._require_draggable(node_id)
            self._state.active_id = node_id
            logger.debug(f"Drag started on {node_id}")
            return self._snapshot()

    def drag(self, node_id: str, position: NodePosition) -> LayoutSnapshot:
        """Move node_id to the pointer position and resolve around it.

        Positions are not persisted until the drag ends.
        """
        with self._lock:
            self._require_draggable(node_id)
            self._state.active_id = node_id
            self._move_and_resolve(node_id, position)
            return self._snapshot()

    def end_drag(self, node_id: str, position: Optional[NodePosition] = None) -> LayoutSnapshot:
        """Finish a drag: resolve once more, commit, then persist.

        Args:
            node_id: Node that was dragged
            position: Final pointer position, if reported with the end event

        Returns:
            Committed LayoutSnapshot
        """
        with self._lock:
            self._require_draggable(node_id)
            self._move_and_resolve(node_id, position)
            self._state.active_id = None
            snapshot = self._snapshot()

            # Persist from the committed state, not the pre-resolution input
            if is_enabled('persist_positions'):
                self.store.save(self._state.nodes.values())

            return snapshot

    # =========================================================================
    # Reset and snapshots
    # =========================================================================

    def reset_layout(self) -> LayoutSnapshot:
        """Forget persisted and in-memory positions and recompute placements."""
        with self._lock:
            self.store.clear()
            anchor = self._state.nodes[self.settings.self_node_id]
            contacts = self._state.contacts
            interactions = self._state.interactions
            was_loaded = self._state.loaded

            self._state = LayoutState(
                nodes={anchor.id: anchor},
                version=self._state.version,
            )
            self._state.topology.add_node(anchor.id)

            logger.info(f"Reset layout for user {self.user_id}")
            if was_loaded:
                return self.load(contacts, interactions)

            self._state.version += 1
            return self._snapshot()

    def snapshot(self) -> LayoutSnapshot:
        """Current committed layout."""
        with self._lock:
            return self._snapshot()

    # =========================================================================
    # Internals
    # =========================================================================

    def _snapshot(self) -> LayoutSnapshot:
        return LayoutSnapshot(
            user_id=self.user_id,
            version=self._state.version,
            nodes=list(self._state.nodes.values()),
            edges=list(self._state.edges.values()),
        )

    def _anchor_node(self, existing: Optional[NetworkNode]) -> NetworkNode:
        s = self.settings
        position = existing.position if existing is not None else NodePosition(x=0.0, y=0.0)
        return NetworkNode(
            id=s.self_node_id,
            position=position,
            pinned=True,
            kind="self",
            label=initials(self.self_name) if self.self_name else "ME",
        )

    def _usable_contacts(self, contacts: Sequence[Contact]) -> List[Contact]:
        """Drop contacts that reuse the anchor id or repeat an earlier id."""
        seen = set()
        usable = []
        for contact in contacts:
            if contact.id == self.settings.self_node_id:
                logger.warning(f"Ignoring contact with reserved id {contact.id}")
                continue
            if contact.id in seen:
                logger.warning(f"Ignoring duplicate contact {contact.id}")
                continue
            seen.add(contact.id)
            usable.append(contact)
        return usable

    def _build_edges(self, nodes: Sequence[NetworkNode], interactions: Sequence[Interaction]):
        """Edges self -> direct contact and introducer -> introduced contact."""
        self_id = self.settings.self_node_id
        by_person: Dict[str, List[Interaction]] = defaultdict(list)
        for interaction in interactions:
            by_person[interaction.person_id].append(interaction)

        node_ids = {node.id for node in nodes}
        topology = nx.DiGraph()
        topology.add_nodes_from(node_ids)
        edges: Dict[str, NetworkEdge] = {}

        for node in nodes:
            if node.pinned:
                continue
            if node.introducer_id and node.introducer_id in node_ids:
                source_id = node.introducer_id
                edge_id = f"edge-{source_id}-{node.id}"
            else:
                source_id = self_id
                edge_id = f"edge-user-{node.id}"

            edges[edge_id] = NetworkEdge(
                id=edge_id,
                source_id=source_id,
                target_id=node.id,
                color=line_color(by_person.get(node.id, [])),
            )
            topology.add_edge(source_id, node.id, edge_id=edge_id)

        return edges, topology

    def _require_draggable(self, node_id: str) -> NetworkNode:
        node = self._state.nodes.get(node_id)
        if node is None:
            logger.warning(f"Rejected drag on unknown node {node_id}")
            raise UnknownNodeError(node_id)
        if node.pinned:
            logger.warning(f"Rejected drag on pinned node {node_id}")
            raise PinnedNodeError(node_id)
        return node

    def _move_and_resolve(self, node_id: str, position: Optional[NodePosition]) -> None:
        before = list(self._state.nodes.values())
        moved = [
            node.moved_to(position.x, position.y)
            if position is not None and node.id == node_id else node
            for node in before
        ]

        report = self.resolver.run(moved, active_id=node_id)
        changed = set(report.moved_ids(before))

        nodes = {node.id: node for node in report.nodes}
        edge_ids = touched_edge_ids(self._state.topology, changed)
        self._state.nodes = nodes
        self._state.edges = refresh_attachments(
            self._state.edges, nodes, self.settings.attachment_points, edge_ids
        )
        self._state.version += 1


def create_orchestrator(
    user_id: Optional[str],
    settings: Optional[LayoutSettings] = None,
    storage_dir=None,
    self_name: str = "",
) -> LayoutOrchestrator:
    """Create an orchestrator with a Position Store for user_id."""
    settings = settings or get_settings()
    store = create_position_store(user_id, storage_dir, settings.self_node_id)
    return LayoutOrchestrator(store, settings, self_name)


__all__ = [
    "LayoutError",
    "UnknownNodeError",
    "PinnedNodeError",
    "LayoutState",
    "LayoutOrchestrator",
    "create_orchestrator",
]
