"""Deterministic pseudo-random values derived from node identities.

Placement jitter is derived from the node id instead of a random generator,
so recomputing a layout without persisted positions reproduces the same
organic-looking arrangement every time.
"""

_MULTIPLIER = 31
_WORD = 2 ** 32
_RANGE = 10000


def seed(key: str) -> float:
    """Map a string to a stable value in [0, 1).

    Folds the key's code points into a 32-bit accumulator
    (h = h * 31 + code point), then normalizes h mod 10000.

    Args:
        key: Any string, typically "<node id>-<purpose>"

    Returns:
        Float in [0, 1), identical for identical keys
    """
    h = 0
    for ch in key:
        h = (h * _MULTIPLIER + ord(ch)) % _WORD
    return (h % _RANGE) / _RANGE


def seed_angle(node_id: str) -> float:
    """Seed used for a node's angular jitter."""
    return seed(f"{node_id}-angle")


def seed_radius(node_id: str) -> float:
    """Seed used for a node's radial jitter."""
    return seed(f"{node_id}-radius")


__all__ = ["seed", "seed_angle", "seed_radius"]
