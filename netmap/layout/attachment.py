"""Edge attachment selection on circular nodes.

Each node exposes N evenly spaced attachment points on its perimeter,
index 0 at the top and increasing clockwise (screen coordinates, y grows
downward). An edge attaches at the point whose angle is closest to the
straight line between the two centers, so lines appear to leave each
circle from the side facing the other node.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from netmap.models.layout_metadata import EdgeAttachment, NetworkEdge, NetworkNode, NodePosition

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 64

TWO_PI = 2 * math.pi


def attachment_index(dx: float, dy: float, points: int = DEFAULT_POINTS) -> int:
    """Quantize a direction vector to the nearest perimeter attachment index.

    Args:
        dx: Horizontal component of the direction
        dy: Vertical component of the direction
        points: Number of attachment points around the perimeter

    Returns:
        Index in [0, points)
    """
    # atan2 measures from the +x axis; shift so 0 is the top of the circle
    angle = (math.atan2(dy, dx) + math.pi / 2) % TWO_PI
    return math.floor(angle / TWO_PI * points + 0.5) % points


def select_attachment(
    source: NodePosition,
    target: NodePosition,
    points: int = DEFAULT_POINTS,
) -> EdgeAttachment:
    """Pick attachment indices for both ends of a line from source to target."""
    dx = target.x - source.x
    dy = target.y - source.y
    return EdgeAttachment(
        source_index=attachment_index(dx, dy, points),
        target_index=attachment_index(-dx, -dy, points),
    )


def attachment_point(
    center: NodePosition,
    index: int,
    radius: float,
    points: int = DEFAULT_POINTS,
) -> NodePosition:
    """Perimeter coordinates of an attachment index, for renderers."""
    angle = (index % points) / points * TWO_PI - math.pi / 2
    return NodePosition(
        x=center.x + math.cos(angle) * radius,
        y=center.y + math.sin(angle) * radius,
    )


def touched_edge_ids(topology: nx.DiGraph, changed_ids: Iterable[str]) -> Set[str]:
    """Collect ids of edges with at least one endpoint in changed_ids.

    The topology graph carries the edge id on each edge as the ``edge_id``
    attribute.
    """
    touched: Set[str] = set()
    for node_id in changed_ids:
        if node_id not in topology:
            continue
        for _, _, edge_id in topology.in_edges(node_id, data="edge_id"):
            touched.add(edge_id)
        for _, _, edge_id in topology.out_edges(node_id, data="edge_id"):
            touched.add(edge_id)
    return touched


def refresh_attachments(
    edges: Dict[str, NetworkEdge],
    nodes: Dict[str, NetworkNode],
    points: int = DEFAULT_POINTS,
    edge_ids: Optional[Iterable[str]] = None,
) -> Dict[str, NetworkEdge]:
    """Recompute attachments, optionally only for the given edge ids.

    Edges whose endpoints are missing from ``nodes`` are left untouched.

    Returns:
        New edge mapping in the same order; untouched edges are the same objects
    """
    selected = set(edges) if edge_ids is None else set(edge_ids)
    refreshed: Dict[str, NetworkEdge] = {}
    skipped: List[str] = []

    for edge_id, edge in edges.items():
        if edge_id not in selected:
            refreshed[edge_id] = edge
            continue

        source = nodes.get(edge.source_id)
        target = nodes.get(edge.target_id)
        if source is None or target is None:
            skipped.append(edge_id)
            refreshed[edge_id] = edge
            continue

        attachment = select_attachment(source.position, target.position, points)
        if attachment == edge.attachment:
            refreshed[edge_id] = edge
        else:
            refreshed[edge_id] = edge.model_copy(update={"attachment": attachment})

    if skipped:
        logger.warning(f"Skipped attachments for {len(skipped)} dangling edge(s): {skipped}")

    return refreshed


__all__ = [
    "DEFAULT_POINTS",
    "attachment_index",
    "select_attachment",
    "attachment_point",
    "touched_edge_ids",
    "refresh_attachments",
]
