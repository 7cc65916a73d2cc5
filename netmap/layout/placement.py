"""Initial placement of network nodes.

Contacts without an introducer go on a jittered ring around the center;
introduced contacts go on a jittered arc around their introducer, facing
away from the center. Every node's position is chosen with one priority
order, applied identically to all node categories:

    1. persisted position (Position Store)
    2. existing in-memory position (previous render)
    3. freshly computed placement

The introducer relation is walked breadth-first from the self-anchor with
networkx, so an introducer is always positioned before the people it
introduced, at any depth.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx

from netmap.config.settings import LayoutSettings, get_settings
from netmap.layout.seeder import seed_angle, seed_radius
from netmap.models.layout_metadata import NodePosition
from netmap.models.network import Contact

logger = logging.getLogger(__name__)

ORIGIN = NodePosition(x=0.0, y=0.0)


class PlacementSource(str, Enum):
    """Where a node's starting position came from."""

    PERSISTED = "persisted"
    EXISTING = "existing"
    COMPUTED = "computed"


def ring_position(
    node_id: str,
    center: NodePosition = ORIGIN,
    base_radius: float = 200.0,
    radius_jitter: float = 40.0,
) -> NodePosition:
    """Place a node at a seeded angle on a jittered ring around center.

    Angles are drawn over the full circle rather than divided evenly by
    index, so the ring looks organic instead of symmetric.
    """
    angle = seed_angle(node_id) * 2 * math.pi
    radius = base_radius + (seed_radius(node_id) - 0.5) * radius_jitter
    return NodePosition(
        x=center.x + math.cos(angle) * radius,
        y=center.y + math.sin(angle) * radius,
    )


def sibling_step(count: int, spread: float, max_spread: float) -> float:
    """Angular step between adjacent siblings, bounded so the arc stays within max_spread."""
    if count <= 1:
        return spread
    return min(spread, max_spread / (count - 1))


def introduced_position(
    node_id: str,
    index: int,
    count: int,
    introducer: NodePosition,
    center: NodePosition = ORIGIN,
    settings: Optional[LayoutSettings] = None,
) -> NodePosition:
    """Place sibling ``index`` of ``count`` on an arc around its introducer.

    The arc is centered on the direction from the center to the introducer;
    the radius is measured from the introducer, not the center.
    """
    s = settings or get_settings()
    anchor_angle = math.atan2(introducer.y - center.y, introducer.x - center.x)

    step = sibling_step(count, s.introduced_spread, s.introduced_max_spread)
    total_spread = step * max(count - 1, 0)
    start_angle = anchor_angle - total_spread / 2

    angle_jitter = (seed_angle(node_id) - 0.5) * s.introduced_spread_jitter
    angle = start_angle + index * step + angle_jitter
    radius = s.introduced_radius + (seed_radius(node_id) - 0.5) * s.introduced_radius_jitter

    return NodePosition(
        x=introducer.x + math.cos(angle) * radius,
        y=introducer.y + math.sin(angle) * radius,
    )


def choose_position(
    persisted: Optional[NodePosition],
    existing: Optional[NodePosition],
    compute: Callable[[], NodePosition],
) -> Tuple[NodePosition, PlacementSource]:
    """Apply the placement priority: persisted > existing > computed.

    ``compute`` is only called when neither stored position is available.
    """
    if persisted is not None:
        return persisted, PlacementSource.PERSISTED
    if existing is not None:
        return existing, PlacementSource.EXISTING
    return compute(), PlacementSource.COMPUTED


@dataclass
class PlacementPlan:
    """Positions chosen for every contact.

    Attributes:
        positions: Contact id -> starting position, in placement order
        sources: Contact id -> where the position came from
        introducers: Contact id -> effective introducer id (None for direct)
        orphans: Contacts placed on the ring because no introducer chain
            reaches them from the anchor (a cycle at or above them)
    """

    positions: Dict[str, NodePosition] = field(default_factory=dict)
    sources: Dict[str, PlacementSource] = field(default_factory=dict)
    introducers: Dict[str, Optional[str]] = field(default_factory=dict)
    orphans: List[str] = field(default_factory=list)


def introducer_forest(contacts: Sequence[Contact], root_id: str) -> nx.DiGraph:
    """Build the introducer graph: root -> direct contacts, introducer -> introduced.

    Self references and references to unknown contacts are attached to the
    root. Cycles are kept as-is; their members are unreachable from root.
    """
    known = {c.id for c in contacts}
    graph = nx.DiGraph()
    graph.add_node(root_id)

    for contact in contacts:
        graph.add_node(contact.id)

    for contact in contacts:
        introducer = contact.introducer_id
        if not introducer or introducer == contact.id or introducer not in known:
            if introducer and introducer == contact.id:
                logger.warning(f"Contact {contact.id} lists itself as introducer")
            elif introducer:
                logger.warning(
                    f"Contact {contact.id} has unknown introducer {introducer}"
                )
            graph.add_edge(root_id, contact.id)
        else:
            graph.add_edge(introducer, contact.id)

    return graph


class PlacementPlanner:
    """Computes starting positions for all contacts of one network."""

    def __init__(self, settings: Optional[LayoutSettings] = None):
        self.settings = settings or get_settings()

    def plan(
        self,
        contacts: Sequence[Contact],
        persisted: Optional[Mapping[str, NodePosition]] = None,
        existing: Optional[Mapping[str, NodePosition]] = None,
        center: NodePosition = ORIGIN,
    ) -> PlacementPlan:
        """Choose a starting position for every contact.

        Args:
            contacts: Contacts in upstream order (sibling order follows it)
            persisted: Positions restored from the Position Store
            existing: Positions from the previous in-memory layout
            center: Position of the self-anchor

        Returns:
            PlacementPlan covering every contact exactly once
        """
        s = self.settings
        persisted = persisted or {}
        existing = existing or {}
        root = s.self_node_id

        forest = introducer_forest(contacts, root)
        order = {c.id: index for index, c in enumerate(contacts)}
        plan = PlacementPlan()

        def place(node_id: str, compute: Callable[[], NodePosition]) -> None:
            position, source = choose_position(
                persisted.get(node_id), existing.get(node_id), compute
            )
            plan.positions[node_id] = position
            plan.sources[node_id] = source

        for parent, children in nx.bfs_successors(forest, root):
            children = sorted(children, key=order.__getitem__)
            if parent == root:
                for child in children:
                    plan.introducers[child] = None
                    place(child, lambda child=child: ring_position(
                        child, center, s.ring_radius, s.ring_radius_jitter
                    ))
                continue

            introducer_pos = plan.positions[parent]
            for index, child in enumerate(children):
                plan.introducers[child] = parent
                place(child, lambda child=child, index=index: introduced_position(
                    child, index, len(children), introducer_pos, center, s
                ))

        unreached: Set[str] = set(order) - set(plan.positions)
        for contact in contacts:
            if contact.id not in unreached:
                continue
            logger.warning(
                f"Contact {contact.id} is unreachable from the anchor "
                f"(introducer cycle upstream); placing it on the ring"
            )
            plan.orphans.append(contact.id)
            plan.introducers[contact.id] = contact.introducer_id
            place(contact.id, lambda cid=contact.id: ring_position(
                cid, center, s.ring_radius, s.ring_radius_jitter
            ))

        computed = sum(1 for src in plan.sources.values() if src is PlacementSource.COMPUTED)
        logger.debug(
            f"Planned {len(plan.positions)} placements ({computed} computed, "
            f"{len(plan.positions) - computed} restored)"
        )
        return plan


__all__ = [
    "ORIGIN",
    "PlacementSource",
    "ring_position",
    "sibling_step",
    "introduced_position",
    "choose_position",
    "PlacementPlan",
    "introducer_forest",
    "PlacementPlanner",
]
