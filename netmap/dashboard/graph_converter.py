"""Convert committed layout snapshots to Cytoscape.js format."""

import logging
from typing import Any, Dict, List, Optional

from netmap.models.layout_metadata import LayoutSnapshot, NetworkEdge, NetworkNode

logger = logging.getLogger(__name__)


class CytoscapeConverter:
    """Convert layout snapshots to Cytoscape.js elements."""

    def snapshot_to_cytoscape(self, snapshot: LayoutSnapshot) -> Dict[str, Any]:
        """Convert a snapshot to Cytoscape.js format.

        Args:
            snapshot: Committed layout

        Returns:
            Dict with 'nodes' and 'edges' element lists plus 'bounds',
            'etag' and 'version'
        """
        elements: Dict[str, Any] = {
            "nodes": [],
            "edges": [],
            "bounds": None,
            "etag": snapshot.etag,
            "version": snapshot.version,
        }

        node_ids = set()
        for node in snapshot.nodes:
            elements["nodes"].append(self._node_element(node))
            node_ids.add(node.id)

        for edge in snapshot.edges:
            if edge.source_id not in node_ids or edge.target_id not in node_ids:
                logger.warning(
                    f"Skipping edge {edge.id}: endpoint missing "
                    f"({edge.source_id} -> {edge.target_id})"
                )
                continue
            elements["edges"].append(self._edge_element(edge))

        if snapshot.bounding_box is not None:
            box = snapshot.bounding_box
            elements["bounds"] = {
                "min_x": box.min_x,
                "max_x": box.max_x,
                "min_y": box.min_y,
                "max_y": box.max_y,
            }

        return elements

    def _node_element(self, node: NetworkNode) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": node.id,
            "label": node.label,
            "kind": node.kind,
            "pinned": node.pinned,
        }
        if node.introducer_id:
            data["introducer"] = node.introducer_id
        if node.gradient_from and node.gradient_to:
            data["gradientFrom"] = node.gradient_from
            data["gradientTo"] = node.gradient_to

        return {
            "data": data,
            "position": {"x": node.position.x, "y": node.position.y},
            "grabbable": not node.pinned,
            "classes": self._get_node_classes(node),
        }

    def _edge_element(self, edge: NetworkEdge) -> Dict[str, Any]:
        return {
            "data": {
                "id": edge.id,
                "source": edge.source_id,
                "target": edge.target_id,
                "sourceHandle": edge.attachment.source_handle,
                "targetHandle": edge.attachment.target_handle,
                "color": edge.color,
            },
            "classes": self._get_edge_classes(edge),
        }

    def _get_node_classes(self, node: NetworkNode) -> str:
        """Space-separated CSS classes for a node."""
        classes: List[str] = [node.kind]
        if node.pinned:
            classes.append("pinned")
        return " ".join(classes)

    def _get_edge_classes(self, edge: NetworkEdge) -> str:
        """Space-separated CSS classes for an edge."""
        return "self-link" if edge.id.startswith("edge-user-") else "introduction"

    def create_style(self, node_radius: Optional[float] = None) -> List[Dict[str, Any]]:
        """Cytoscape stylesheet matching the element classes.

        Args:
            node_radius: Circle radius in diagram units (default 25)
        """
        size = 2 * (node_radius or 25.0)
        return [
            {
                "selector": "node",
                "style": {
                    "width": size,
                    "height": size,
                    "shape": "ellipse",
                    "label": "data(label)",
                    "text-valign": "center",
                    "text-halign": "center",
                    "font-weight": 600,
                    "color": "#ffffff",
                },
            },
            {
                "selector": "node[gradientFrom]",
                "style": {
                    "background-fill": "linear-gradient",
                    "background-gradient-stop-colors": "data(gradientFrom) data(gradientTo)",
                    "background-gradient-direction": "to-bottom-right",
                },
            },
            {
                "selector": "node.self",
                "style": {
                    "background-fill": "linear-gradient",
                    "background-gradient-stop-colors": "#6366f1 #a855f7",
                },
            },
            {
                "selector": "edge",
                "style": {
                    "width": 2,
                    "line-color": "data(color)",
                    "curve-style": "straight",
                },
            },
        ]
