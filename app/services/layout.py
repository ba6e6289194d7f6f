"""
Radial layout for mind map nodes.

Maps ``(tier, sibling index, sibling count)`` to a canvas position.  The root
sits at the origin; every deeper tier lives on a wider ring, pushed down by a
per-tier vertical offset, and fans its siblings across a per-tier angular
spread.  A small index-driven wobble keeps siblings off exact rays.

The function is pure: identical inputs always give identical coordinates.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict

from app.models.schemas import Position

BASE_RADIUS = 200.0
SPACING_MULTIPLIER = 1.2

RADIUS_WOBBLE = 0.05   # fraction of the tier radius
ANGLE_WOBBLE = 0.1     # radians


@dataclass(frozen=True)
class TierLayout:
    """Ring geometry for one tier."""

    radius: float
    y_offset: float
    spread_angle: float


TIER_LAYOUTS: Dict[int, TierLayout] = {
    0: TierLayout(radius=0.0, y_offset=0.0, spread_angle=2 * math.pi),
    1: TierLayout(radius=BASE_RADIUS, y_offset=0.0, spread_angle=2 * math.pi),
    2: TierLayout(
        radius=BASE_RADIUS * SPACING_MULTIPLIER * 1.4,
        y_offset=BASE_RADIUS * 0.4,
        spread_angle=math.pi / 2,
    ),
    3: TierLayout(
        radius=BASE_RADIUS * SPACING_MULTIPLIER * 1.8,
        y_offset=BASE_RADIUS * 0.8,
        spread_angle=math.pi / 3,
    ),
    4: TierLayout(
        radius=BASE_RADIUS * SPACING_MULTIPLIER * 2.2,
        y_offset=BASE_RADIUS * 1.2,
        spread_angle=math.pi / 4,
    ),
}

DEEPEST_TIER = 4


def tier_layout(tier: int) -> TierLayout:
    """Geometry for *tier*; anything unknown uses the deepest tier's ring."""
    return TIER_LAYOUTS.get(tier, TIER_LAYOUTS[DEEPEST_TIER])


def node_position(tier: int, index: int, sibling_count: int) -> Position:
    """
    Place the *index*-th of *sibling_count* siblings on *tier*'s ring.

    Args:
        tier:          0 = root, 1 = topic, 2 = subtopic, 3 = point, 4 = subpoint.
        index:         Zero-based position among its siblings.
        sibling_count: Number of siblings including this node.

    Returns:
        Position with ``x = r·cos(θ)`` and ``y = r·sin(θ) + yOffset``.
    """
    if tier == 0:
        return Position(x=0.0, y=0.0)

    config = tier_layout(tier)

    # max(1, n - 1) keeps a lone child from dividing by zero
    angle_step = config.spread_angle / max(1, sibling_count - 1)
    base_angle = -config.spread_angle / 2 + angle_step * index

    radius = config.radius + math.sin(index * 2.5) * (config.radius * RADIUS_WOBBLE)
    angle = base_angle + math.cos(index * 1.5) * ANGLE_WOBBLE

    return Position(
        x=radius * math.cos(angle),
        y=radius * math.sin(angle) + config.y_offset,
    )
