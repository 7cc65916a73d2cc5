"""Display styling for network nodes and edges.

Labels are two-letter initials, node fills are gradient pairs derived from
the node id, and edge strokes reflect the sentiment of logged interactions.
"""

import re
from typing import Iterable, Tuple

from netmap.layout.seeder import seed
from netmap.models.network import Interaction

DEFAULT_LINE_COLOR = "#000000"

SENTIMENT_COLORS = {
    "good": "#22c55e",
    "bad": "#ef4444",
    "neutral": "#6b7280",
}

SENTIMENT_RGB = {
    "good": (34, 197, 94),
    "bad": (239, 68, 68),
    "neutral": (107, 114, 128),
}


def initials(name: str) -> str:
    """Two-letter uppercase initials, "?" for an empty name.

    Multi-word names use the first letter of the first two words; single
    words use their first two letters.
    """
    parts = [p for p in re.split(r"\s+", (name or "").strip()) if p]
    if not parts:
        return "?"
    if len(parts) >= 2:
        letters = parts[0][:1] + parts[1][:1]
    else:
        letters = parts[0][:2]
    return letters.upper() or "?"


def gradient_from_id(node_id: str) -> Tuple[str, str]:
    """Gradient color pair (HSL strings) derived from a node id.

    Either monochromatic (same hue, different saturation/lightness) or
    analogous (hue shifted 20-60 degrees), chosen per id.
    """
    seed1 = seed(f"{node_id}-gradient1")
    seed2 = seed(f"{node_id}-gradient2")
    seed3 = seed(f"{node_id}-gradient3")

    base_hue = int(seed1 * 360)
    hue_variation = 0 if seed2 < 0.5 else 20 + int(seed2 * 40)
    hue_direction = 1 if seed3 < 0.5 else -1
    hue2 = (base_hue + hue_direction * hue_variation + 360) % 360

    sat1 = 70 + int(seed2 * 25)
    sat2 = 70 + int(seed3 * 25)
    light1 = 45 + int(seed1 * 20)
    light2 = 50 + int(seed2 * 20)

    return (
        f"hsl({base_hue}, {sat1}%, {light1}%)",
        f"hsl({hue2}, {sat2}%, {light2}%)",
    )


def line_color(interactions: Iterable[Interaction]) -> str:
    """Edge stroke color for a contact's interaction history.

    No interactions give black; a single unanimous sentiment gives its pure
    color; a mix gives the count-weighted RGB average.
    """
    counts = {"good": 0, "bad": 0, "neutral": 0}
    for interaction in interactions:
        counts[interaction.sentiment] += 1

    total = sum(counts.values())
    if total == 0:
        return DEFAULT_LINE_COLOR

    for sentiment, count in counts.items():
        if count == total:
            return SENTIMENT_COLORS[sentiment]

    r = g = b = 0.0
    for sentiment, count in counts.items():
        weight = count / total
        sr, sg, sb = SENTIMENT_RGB[sentiment]
        r += sr * weight
        g += sg * weight
        b += sb * weight

    return f"rgb({_round_half_up(r)}, {_round_half_up(g)}, {_round_half_up(b)})"


def _round_half_up(value: float) -> int:
    # round() rounds halves to even
    return int(value + 0.5)


__all__ = [
    "DEFAULT_LINE_COLOR",
    "SENTIMENT_COLORS",
    "initials",
    "gradient_from_id",
    "line_color",
]
