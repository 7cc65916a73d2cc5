"""Record models for the network layout service.

- network: upstream contact and interaction records
- layout_metadata: nodes, edges, attachments and committed layout snapshots
"""

from .network import (
    Sentiment,
    Contact,
    Interaction,
    NetworkPayload,
)
from .layout_metadata import (
    NodeKind,
    NodePosition,
    BoundingBox,
    NetworkNode,
    EdgeAttachment,
    NetworkEdge,
    LayoutSnapshot,
)

__all__ = [
    # Upstream records
    "Sentiment",
    "Contact",
    "Interaction",
    "NetworkPayload",

    # Layout records
    "NodeKind",
    "NodePosition",
    "BoundingBox",
    "NetworkNode",
    "EdgeAttachment",
    "NetworkEdge",
    "LayoutSnapshot",
]
