"""Layout metadata for network nodes, edges and committed layout snapshots.

This module provides schemas for:
- Node positions (x, y in an unbounded plane, self-anchor at the origin)
- Network nodes (self-anchor or contact, with display fields)
- Edge attachments (quantized perimeter indices at each end of a line)
- Layout snapshots (the committed state handed to renderers)

Snapshots carry a content etag so clients can cheaply tell whether a layout
changed between two responses.
"""

import hashlib
import json
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

NodeKind = Literal["self", "direct", "introduced"]


class NodePosition(BaseModel):
    """Position of a single node in 2D layout space.

    Attributes:
        x: Horizontal coordinate
        y: Vertical coordinate (screen convention, grows downward)
    """

    x: float = Field(..., allow_inf_nan=False, description="Horizontal coordinate")
    y: float = Field(..., allow_inf_nan=False, description="Vertical coordinate")

    @classmethod
    def from_list(cls, pos: List[float]) -> "NodePosition":
        """Create NodePosition from [x, y] list.

        Raises:
            ValueError: If pos doesn't have exactly 2 elements
        """
        if len(pos) != 2:
            raise ValueError(f"Position must be [x, y], got {len(pos)} elements")
        return cls(x=pos[0], y=pos[1])

    def to_list(self) -> List[float]:
        """Convert to list format [x, y]."""
        return [self.x, self.y]

    def distance_to(self, other: "NodePosition") -> float:
        """Euclidean distance between two positions."""
        return math.hypot(other.x - self.x, other.y - self.y)


class BoundingBox(BaseModel):
    """Bounding box around a set of node centers."""

    min_x: float = Field(..., description="Minimum x coordinate")
    max_x: float = Field(..., description="Maximum x coordinate")
    min_y: float = Field(..., description="Minimum y coordinate")
    max_y: float = Field(..., description="Maximum y coordinate")

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Tuple[float, float]:
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2
        )

    @classmethod
    def from_positions(cls, positions: Dict[str, NodePosition]) -> "BoundingBox":
        """Compute bounding box from node positions.

        Raises:
            ValueError: If positions is empty
        """
        if not positions:
            raise ValueError("Cannot compute bounding box from empty positions")

        x_coords = [pos.x for pos in positions.values()]
        y_coords = [pos.y for pos in positions.values()]

        return cls(
            min_x=min(x_coords),
            max_x=max(x_coords),
            min_y=min(y_coords),
            max_y=max(y_coords)
        )


class NetworkNode(BaseModel):
    """A node of the network diagram: the self-anchor or a contact.

    Attributes:
        id: Stable identity (contact id, or the reserved self-anchor id)
        position: Current center position
        pinned: True only for the self-anchor; pinned nodes never move
        introducer_id: Layout affinity to another node, not ownership
        kind: "self", "direct" (no introducer) or "introduced"
        label: Two-letter initials shown inside the circle
        gradient_from: Fill gradient start color
        gradient_to: Fill gradient end color
    """

    id: str = Field(..., min_length=1)
    position: NodePosition
    pinned: bool = Field(default=False)
    introducer_id: Optional[str] = Field(default=None)
    kind: NodeKind = Field(default="direct")
    label: str = Field(default="?")
    gradient_from: Optional[str] = Field(default=None)
    gradient_to: Optional[str] = Field(default=None)

    def moved_to(self, x: float, y: float) -> "NetworkNode":
        """Return a copy of this node at a new position."""
        return self.model_copy(update={"position": NodePosition(x=x, y=y)})


class EdgeAttachment(BaseModel):
    """Quantized perimeter attachment indices for both ends of an edge."""

    source_index: int = Field(..., ge=0)
    target_index: int = Field(..., ge=0)

    @property
    def source_handle(self) -> str:
        return f"source-{self.source_index}"

    @property
    def target_handle(self) -> str:
        return f"target-{self.target_index}"


class NetworkEdge(BaseModel):
    """A directed visual connection: self -> contact or introducer -> introduced.

    Attributes:
        id: Edge identifier
        source_id: Source node id
        target_id: Target node id
        attachment: Perimeter attachment indices, recomputed when either end moves
        color: Stroke color derived from interaction sentiment
    """

    id: str = Field(..., min_length=1)
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    attachment: EdgeAttachment = Field(
        default_factory=lambda: EdgeAttachment(source_index=0, target_index=0)
    )
    color: str = Field(default="#000000")


class LayoutSnapshot(BaseModel):
    """Committed layout state for one user, as handed to renderers.

    Attributes:
        user_id: Owner of the layout
        version: Incremented on every commit
        nodes: Nodes in stable order (self-anchor first)
        edges: Edges in stable order
        etag: SHA-256 over positions and attachments (excludes timestamps)
        updated_at: ISO 8601 timestamp of the commit
        bounding_box: Bounds of all node centers (auto-computed)
    """

    user_id: Optional[str] = Field(default=None)
    version: int = Field(default=0, ge=0)
    nodes: List[NetworkNode] = Field(default_factory=list)
    edges: List[NetworkEdge] = Field(default_factory=list)
    etag: Optional[str] = Field(default=None)
    updated_at: Optional[str] = Field(default=None)
    bounding_box: Optional[BoundingBox] = Field(default=None)

    def model_post_init(self, __context) -> None:
        """Compute bounding box, timestamp and etag if not provided."""
        if self.bounding_box is None and self.nodes:
            object.__setattr__(
                self,
                "bounding_box",
                BoundingBox.from_positions({n.id: n.position for n in self.nodes}),
            )

        if self.updated_at is None:
            object.__setattr__(self, "updated_at", datetime.now(timezone.utc).isoformat())

        if self.etag is None:
            object.__setattr__(self, "etag", self.compute_etag())

    def compute_etag(self) -> str:
        """Compute SHA-256 etag from positions and attachments.

        Returns:
            64-character hex string
        """
        canonical = {
            "edges": {
                e.id: [e.source_id, e.target_id, e.attachment.source_index,
                       e.attachment.target_index, e.color]
                for e in self.edges
            },
            "nodes": {n.id: n.position.to_list() for n in self.nodes},
        }
        canonical_json = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical_json.encode()).hexdigest()

    def node(self, node_id: str) -> Optional[NetworkNode]:
        """Look up a node by id."""
        for candidate in self.nodes:
            if candidate.id == node_id:
                return candidate
        return None

    def positions(self) -> Dict[str, NodePosition]:
        """Map of node id to position."""
        return {n.id: n.position for n in self.nodes}


__all__ = [
    "NodeKind",
    "NodePosition",
    "BoundingBox",
    "NetworkNode",
    "EdgeAttachment",
    "NetworkEdge",
    "LayoutSnapshot",
]
