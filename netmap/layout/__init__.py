"""Layout engine for network diagrams.

This module provides:
- Deterministic seeding of placement jitter from node ids
- Initial placement (ring for direct contacts, arcs around introducers)
- Collision resolution (pairwise separation with anchor and drag bias)
- Edge attachment selection on circular node perimeters

The orchestrator that wires these to data loads and drag gestures lives in
``netmap.layout.orchestrator``.
"""

from .seeder import seed, seed_angle, seed_radius
from .placement import (
    PlacementPlanner,
    PlacementPlan,
    PlacementSource,
    choose_position,
    introduced_position,
    ring_position,
)
from .collision import CollisionResolver, ResolutionReport, resolve_collisions
from .attachment import (
    attachment_index,
    attachment_point,
    refresh_attachments,
    select_attachment,
)

__all__ = [
    "seed",
    "seed_angle",
    "seed_radius",
    "PlacementPlanner",
    "PlacementPlan",
    "PlacementSource",
    "choose_position",
    "introduced_position",
    "ring_position",
    "CollisionResolver",
    "ResolutionReport",
    "resolve_collisions",
    "attachment_index",
    "attachment_point",
    "refresh_attachments",
    "select_attachment",
]
