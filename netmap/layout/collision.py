"""Collision resolution for circular network nodes.

A discrete positional constraint solver: every pass visits each unordered
pair of nodes, and any pair closer than the minimum separation is pushed
apart along the line between their centers. Passes repeat until one
completes without a correction or the iteration cap is reached. There is
no velocity or momentum; each invocation is a finite synchronous
computation run on drag and on data load.

Push distribution per colliding pair:
    - pinned node (self-anchor): 0, partner takes the full push
    - active (dragged) node: active_share, partner passive_share
    - otherwise: symmetric_share each

Coincident pairs (centers closer than coincidence_epsilon) have no push
direction. They are left alone while other corrections in the same pass
may move them apart; a pass that finds nothing else to correct pushes them
apart along a direction seeded from the pair's ids.

Usage:
    from netmap.layout.collision import resolve_collisions

    nodes = resolve_collisions(nodes, active_id="contact-7")
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from netmap.config.settings import LayoutSettings, get_settings
from netmap.layout.seeder import seed
from netmap.models.layout_metadata import NetworkNode

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Outcome of one resolver invocation.

    Attributes:
        nodes: Nodes with resolved positions, in input order
        iterations: Number of passes run
        corrections: Total number of pair corrections applied
        converged: True if the last pass found no colliding or coincident pair
    """

    nodes: List[NetworkNode]
    iterations: int
    corrections: int
    converged: bool

    def moved_ids(self, before: Sequence[NetworkNode]) -> List[str]:
        """Ids of nodes whose position differs from ``before``."""
        previous = {n.id: n.position for n in before}
        return [
            n.id for n in self.nodes
            if n.id in previous and previous[n.id] != n.position
        ]


def tie_break_direction(id_a: str, id_b: str) -> Tuple[float, float]:
    """Unit vector from A to B used to split a coincident pair."""
    angle = seed(f"{id_a}|{id_b}-tie") * 2 * math.pi
    return math.cos(angle), math.sin(angle)


class CollisionResolver:
    """Pairwise overlap resolver with anchor and drag bias."""

    def __init__(self, settings: Optional[LayoutSettings] = None):
        self.settings = settings or get_settings()

    def push_shares(
        self,
        node_a: NetworkNode,
        node_b: NetworkNode,
        active_id: Optional[str],
    ) -> Tuple[float, float]:
        """Fractions of the push distance applied to A and B."""
        s = self.settings
        if node_a.pinned and node_b.pinned:
            return 0.0, 0.0
        if node_a.pinned:
            return 0.0, 1.0
        if node_b.pinned:
            return 1.0, 0.0
        if active_id is not None:
            if node_a.id == active_id:
                return s.active_share, s.passive_share
            if node_b.id == active_id:
                return s.passive_share, s.active_share
        return s.symmetric_share, s.symmetric_share

    def run(
        self,
        nodes: Sequence[NetworkNode],
        active_id: Optional[str] = None,
    ) -> ResolutionReport:
        """Separate overlapping nodes.

        Args:
            nodes: Current nodes (not mutated)
            active_id: Id of the node being dragged, if any

        Returns:
            ResolutionReport with the resolved nodes
        """
        s = self.settings
        xs = [n.position.x for n in nodes]
        ys = [n.position.y for n in nodes]
        count = len(nodes)

        iterations = 0
        corrections = 0
        converged = False

        def push_apart(i: int, j: int, unit_x: float, unit_y: float,
                       push: float, share_a: float, share_b: float) -> None:
            xs[i] -= unit_x * push * share_a
            ys[i] -= unit_y * push * share_a
            xs[j] += unit_x * push * share_b
            ys[j] += unit_y * push * share_b

        while iterations < s.max_iterations:
            iterations += 1
            collided = False
            coincident: List[Tuple[int, int]] = []

            for i in range(count):
                for j in range(i + 1, count):
                    dx = xs[j] - xs[i]
                    dy = ys[j] - ys[i]
                    distance = math.hypot(dx, dy)

                    # NaN fails this comparison too
                    if not distance < s.min_separation:
                        continue

                    share_a, share_b = self.push_shares(nodes[i], nodes[j], active_id)
                    if share_a == 0.0 and share_b == 0.0:
                        continue

                    if distance < s.coincidence_epsilon:
                        coincident.append((i, j))
                        continue

                    collided = True
                    corrections += 1
                    push = (s.min_separation - distance) + s.push_step
                    push_apart(i, j, dx / distance, dy / distance, push, share_a, share_b)

                    if iterations == 1:
                        logger.debug(
                            f"Collision: {nodes[i].id} and {nodes[j].id}, "
                            f"distance {distance:.1f}"
                        )

            if coincident and not collided:
                for i, j in coincident:
                    unit_x, unit_y = tie_break_direction(nodes[i].id, nodes[j].id)
                    share_a, share_b = self.push_shares(nodes[i], nodes[j], active_id)
                    push_apart(i, j, unit_x, unit_y, s.min_separation + s.push_step,
                               share_a, share_b)
                    corrections += 1
                logger.debug(
                    f"Split {len(coincident)} coincident pair(s) on pass {iterations}"
                )
                collided = True

            if not collided:
                converged = True
                break

        if not converged:
            logger.debug(
                f"Resolver hit the {s.max_iterations}-pass cap with overlaps remaining "
                f"({count} nodes, active={active_id})"
            )

        resolved = [
            node if (node.position.x == x and node.position.y == y) else node.moved_to(x, y)
            for node, x, y in zip(nodes, xs, ys)
        ]
        return ResolutionReport(
            nodes=resolved,
            iterations=iterations,
            corrections=corrections,
            converged=converged,
        )


def resolve_collisions(
    nodes: Sequence[NetworkNode],
    active_id: Optional[str] = None,
    settings: Optional[LayoutSettings] = None,
) -> List[NetworkNode]:
    """Resolve overlaps and return the updated nodes in input order."""
    return CollisionResolver(settings).run(nodes, active_id).nodes


__all__ = [
    "ResolutionReport",
    "CollisionResolver",
    "tie_break_direction",
    "resolve_collisions",
]
