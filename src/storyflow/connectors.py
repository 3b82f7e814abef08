from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .types import Anchor, Edge, NodeRect, Point, SelfLoopArc
from .styles import BIDIRECTIONAL_CURVATURE, SELF_LOOP

# ============================================================================
# Connector selection
#
# Every rectangle offers four anchors (side midpoints). A regular edge uses
# the closest source/target anchor pair; self-loops always hang off the
# right side; bidirectional pairs bow in opposite directions.
# ============================================================================

# Evaluation order decides ties
SOURCE_ANCHOR_ORDER: tuple[Anchor, ...] = ("right", "left", "bottom", "top")
TARGET_ANCHOR_ORDER: tuple[Anchor, ...] = ("left", "right", "top", "bottom")


def anchor_point(rect: NodeRect, anchor: Anchor) -> Point:
    if anchor == "right":
        return Point(x=rect.right, y=rect.cy)
    if anchor == "left":
        return Point(x=rect.left, y=rect.cy)
    if anchor == "bottom":
        return Point(x=rect.cx, y=rect.bottom)
    return Point(x=rect.cx, y=rect.top)


def select_handles(source: NodeRect, target: NodeRect) -> tuple[Anchor, Anchor]:
    """Anchor pair with the shortest straight distance between the two rects."""
    best_dist = math.inf
    best: tuple[Anchor, Anchor] = ("right", "left")
    for s_anchor in SOURCE_ANCHOR_ORDER:
        s_pos = anchor_point(source, s_anchor)
        for t_anchor in TARGET_ANCHOR_ORDER:
            t_pos = anchor_point(target, t_anchor)
            dist = math.hypot(t_pos.x - s_pos.x, t_pos.y - s_pos.y)
            if dist < best_dist:
                best_dist = dist
                best = (s_anchor, t_anchor)
    return best


def self_loop_arc(rect: NodeRect, stacking_index: int = 0) -> SelfLoopArc:
    """Cubic arc out of and back into the right side of *rect*.

    Each further self-loop on the same node gets a wider loop.
    """
    width = rect.hw * 2
    height = rect.hh * 2
    right_x = rect.right
    start_y = rect.cy - height * SELF_LOOP["spread"]
    end_y = rect.cy + height * SELF_LOOP["spread"]
    loop_w = max(SELF_LOOP["min_width"], width * SELF_LOOP["width_ratio"]) + stacking_index * SELF_LOOP["stagger"]
    cp_offset = height * SELF_LOOP["control_ratio"]

    return SelfLoopArc(
        start=Point(x=right_x, y=start_y),
        control1=Point(x=right_x + loop_w, y=start_y - cp_offset),
        control2=Point(x=right_x + loop_w, y=end_y + cp_offset),
        end=Point(x=right_x, y=end_y),
        label_position=Point(x=right_x + loop_w + SELF_LOOP["label_gap"], y=rect.cy),
    )


# ============================================================================
# Edge classification — computed over the full declared edge list so the
# indices never change between steps
# ============================================================================


@dataclass(slots=True)
class EdgeClass:
    is_self_loop: bool = False
    self_loop_index: int | None = None
    is_bidirectional: bool = False
    bidirectional_index: int = 0
    curvature: float | None = None


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


def classify_edges(edges: Sequence[Edge]) -> dict[str, EdgeClass]:
    """Self-loop stacking and bidirectional curvature per edge id.

    A pair is bidirectional when both A->B and B->A are declared, or when a
    sync call carries a response (its synthetic reverse edge completes the
    pair). Within a pair the direction declared first bows positive and the
    reverse negative; the per-pair index counts up in declaration order.
    """
    directed = {(e.source, e.target) for e in edges if e.source != e.target}
    with_response = {
        (e.source, e.target)
        for e in edges
        if e.source != e.target and e.kind == "sync" and e.metadata.get("response")
    }

    classes: dict[str, EdgeClass] = {}
    loop_counts: dict[str, int] = {}
    pair_counts: dict[tuple[str, str], int] = {}
    first_direction: dict[tuple[str, str], tuple[str, str]] = {}

    for edge in edges:
        if edge.source == edge.target:
            idx = loop_counts.get(edge.source, 0)
            loop_counts[edge.source] = idx + 1
            classes[edge.id] = EdgeClass(is_self_loop=True, self_loop_index=idx)
            continue

        direction = (edge.source, edge.target)
        reverse = (edge.target, edge.source)
        if reverse not in directed and direction not in with_response:
            classes[edge.id] = EdgeClass()
            continue

        key = _pair_key(edge.source, edge.target)
        idx = pair_counts.get(key, 0)
        pair_counts[key] = idx + 1
        first = first_direction.setdefault(key, direction)
        sign = 1 if direction == first else -1
        classes[edge.id] = EdgeClass(
            is_bidirectional=True,
            bidirectional_index=idx,
            curvature=sign * BIDIRECTIONAL_CURVATURE,
        )

    return classes
