from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from .types import Edge, Participant, PositionedChild, Size
from .styles import (
    CHAR_WIDTHS,
    CHILD_GAP,
    CHILD_INSET,
    CHILD_SIZE,
    DEFAULT_DIMENSIONS,
    DETAIL_SEPARATOR,
    FIXED_SIZE_TYPES,
    MAX_VISIBLE_TAGS,
    MIN_RANK_SPACING,
    NODE_DIMENSIONS,
    RANK_LABEL_MARGIN,
    SHAPE_HEIGHT_RATIO,
    SHAPE_TYPES,
    TAG_PILLS,
    TEXT_ALLOWANCE,
    WIDTH_RANGES,
    estimate_text_width,
    round_half_up,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Dimension resolver
#
# Participant sizes are derived from the semantic type, the label text and
# the tag pills. They are computed once per layout pass into a
# DimensionTable that every later stage reads from.
# ============================================================================


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _detail_text(*parts: str | None) -> str:
    return DETAIL_SEPARATOR.join(p for p in parts if p)


def measure_service_width(name: str, type: str | None = None, technology: str | None = None) -> int:
    name_w = estimate_text_width(name, CHAR_WIDTHS["name"]) + TEXT_ALLOWANCE["service_name"]
    detail_w = (
        estimate_text_width(_detail_text(type, technology), CHAR_WIDTHS["detail"])
        + TEXT_ALLOWANCE["detail"]
    )
    return round_half_up(_clamp(max(name_w, detail_w), WIDTH_RANGES["service"]))


def measure_shape_width(name: str, technology: str | None = None) -> int:
    name_w = estimate_text_width(name, CHAR_WIDTHS["shape"]) + TEXT_ALLOWANCE["shape"]
    tech_w = (
        estimate_text_width(technology, CHAR_WIDTHS["detail"]) + TEXT_ALLOWANCE["shape"]
        if technology
        else 0
    )
    return round_half_up(_clamp(max(name_w, tech_w), WIDTH_RANGES["shape"]))


def measure_queue_width(name: str, type: str | None = None, broker: str | None = None) -> int:
    name_w = estimate_text_width(name, CHAR_WIDTHS["name"]) + TEXT_ALLOWANCE["queue_name"]
    detail_w = (
        estimate_text_width(_detail_text(type, broker), CHAR_WIDTHS["detail"])
        + TEXT_ALLOWANCE["detail"]
    )
    return round_half_up(_clamp(max(name_w, detail_w), WIDTH_RANGES["queue"]))


def tags_height(tags: dict[str, str] | None, compact: bool = False) -> float:
    """Extra height taken by rows of tag pills below the label."""
    if not tags:
        return 0
    metrics = TAG_PILLS["compact" if compact else "regular"]
    pills_per_row = max(1, metrics["container_width"] // metrics["pill_width"])
    rows = math.ceil(min(len(tags), MAX_VISIBLE_TAGS) / pills_per_row)
    return rows * metrics["row_height"] + metrics["margin"]


def participant_dimensions(participant: Participant) -> Size:
    """Rendered width/height of a collapsed participant."""
    if participant.kind == "queue":
        _, base_h = NODE_DIMENSIONS["queue"]
        width = measure_queue_width(participant.name, participant.type, participant.broker)
        return Size(width=width, height=base_h + tags_height(participant.tags, compact=True))

    if participant.type in FIXED_SIZE_TYPES:
        base_w, base_h = NODE_DIMENSIONS[participant.type]
        return Size(width=base_w, height=base_h + tags_height(participant.tags))

    if participant.type in SHAPE_TYPES:
        base_w, base_h = NODE_DIMENSIONS[participant.type]
        width = measure_shape_width(participant.name, participant.technology)
        # Shapes scale proportionally: height follows the width ratio
        height = round_half_up(base_h * max(1, width / base_w * SHAPE_HEIGHT_RATIO))
        return Size(width=width, height=height + tags_height(participant.tags))

    _, base_h = NODE_DIMENSIONS["service"]
    width = measure_service_width(participant.name, participant.type, participant.technology)
    return Size(width=width, height=base_h + tags_height(participant.tags))


def layout_children(parent: Size, children: list[Participant]) -> tuple[Size, list[PositionedChild]]:
    """Grow *parent* to hold one row of child boxes along its bottom edge.

    Returns the grown size and each child's center offset from the parent's
    center.
    """
    if not children:
        return parent, []

    child_w, child_h = CHILD_SIZE
    count = len(children)
    row_w = count * child_w + (count - 1) * CHILD_GAP
    width = max(parent.width, row_w + 2 * CHILD_INSET)
    height = parent.height + child_h + CHILD_INSET
    grown = Size(width=width, height=height)

    dy = height / 2 - CHILD_INSET - child_h / 2
    start = -row_w / 2 + child_w / 2
    offsets = [
        PositionedChild(
            id=child.id,
            dx=start + i * (child_w + CHILD_GAP),
            dy=dy,
            width=child_w,
            height=child_h,
        )
        for i, child in enumerate(children)
    ]
    return grown, offsets


class DimensionTable:
    """Per-pass lookup of participant sizes keyed by participant id."""

    def __init__(self) -> None:
        self._sizes: dict[str, Size] = {}
        self._children: dict[str, list[PositionedChild]] = {}

    @classmethod
    def build(
        cls,
        participants: Iterable[Participant],
        expanded: set[str] | None = None,
    ) -> DimensionTable:
        table = cls()
        expanded = expanded or set()
        for p in participants:
            size = participant_dimensions(p)
            if p.id in expanded and p.children:
                size, offsets = layout_children(size, p.children)
                table._children[p.id] = offsets
            table._sizes[p.id] = size
        return table

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self._sizes

    def __len__(self) -> int:
        return len(self._sizes)

    def get(self, participant_id: str) -> Size:
        size = self._sizes.get(participant_id)
        if size is None:
            logger.debug("No dimensions for %r, using default rectangle", participant_id)
            return Size(width=DEFAULT_DIMENSIONS[0], height=DEFAULT_DIMENSIONS[1])
        return size

    def children(self, participant_id: str) -> list[PositionedChild]:
        return list(self._children.get(participant_id, []))


# ============================================================================
# Edge labels — drive the default gap between ranks
# ============================================================================


def edge_label_chars(edge: Edge) -> int:
    """Approximate rendered label length of an edge, in characters."""
    meta = edge.metadata
    message_type = meta.get("messageType") or ""
    if edge.kind == "sync":
        return len(meta.get("method") or "") + len(meta.get("path") or "") + 6
    if edge.kind == "publish":
        return 4 + len(message_type)
    if edge.kind == "subscribe":
        return 4 + len(meta.get("action") or message_type)
    if edge.kind == "transition":
        parts = [meta.get(k) for k in ("trigger", "guard", "action")]
        parts = [str(p) for p in parts if p]
        if not parts:
            return 0
        return sum(len(p) for p in parts) + 4 * (len(parts) - 1)
    return len(message_type)


def default_rank_spacing(edges: Iterable[Edge]) -> int:
    """Rank gap wide enough for the longest edge label."""
    max_chars = max((edge_label_chars(e) for e in edges), default=0)
    label_px = max_chars * CHAR_WIDTHS["edge_label"] + TEXT_ALLOWANCE["edge_label"]
    return max(MIN_RANK_SPACING, round_half_up(label_px + RANK_LABEL_MARGIN))
