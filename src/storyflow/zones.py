from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from .dimensions import DimensionTable
from .types import NodeRect, Point, PositionedZone, Zone
from .styles import MIN_ZONE_MEMBER_GAP, ZONE_LABEL_HEIGHT, ZONE_PADDING

logger = logging.getLogger(__name__)

# ============================================================================
# Zone resolver
#
# Zones are decoration only, but their members should not sit flush against
# each other. One pairwise relaxation pass pushes apart members whose
# rectangles share extent on one axis and are too close on the other.
# ============================================================================


def _member_rect(positions: Mapping[str, Point], dims: DimensionTable, member_id: str) -> NodeRect:
    pos = positions[member_id]
    size = dims.get(member_id)
    return NodeRect(cx=pos.x, cy=pos.y, hw=size.width / 2, hh=size.height / 2)


def resolve_zone_overlaps(
    positions: dict[str, Point],
    zones: Sequence[Zone],
    dims: DimensionTable,
    min_gap: float = MIN_ZONE_MEMBER_GAP,
) -> None:
    """Nudge zone members apart in place until each pair clears *min_gap*.

    Pairs are visited in member declaration order, so the pass is
    deterministic. Both axis checks of a pair use the rectangles as they
    were before that pair was touched. A member can be moved by several
    pairs in one pass.
    """
    for zone in zones:
        members = [m for m in dict.fromkeys(zone.members) if m in positions]
        if len(members) < 2:
            continue

        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                a_id, b_id = members[i], members[j]
                a, b = positions[a_id], positions[b_id]
                ra = _member_rect(positions, dims, a_id)
                rb = _member_rect(positions, dims, b_id)

                # Shared horizontal extent: separate along y
                if ra.left < rb.right and rb.left < ra.right:
                    # Signed: negative while the rectangles overlap
                    gap_y = rb.top - ra.bottom if a.y < b.y else ra.top - rb.bottom
                    if gap_y < min_gap:
                        nudge = (min_gap - gap_y) / 2
                        if a.y < b.y:
                            a.y -= nudge
                            b.y += nudge
                        else:
                            b.y -= nudge
                            a.y += nudge
                        logger.debug("Zone %r: moved %r/%r apart by %.1f on y", zone.id, a_id, b_id, nudge)

                # Shared vertical extent (before the y nudge): separate along x
                if ra.top < rb.bottom and rb.top < ra.bottom:
                    gap_x = rb.left - ra.right if a.x < b.x else ra.left - rb.right
                    if gap_x < min_gap:
                        nudge = (min_gap - gap_x) / 2
                        if a.x < b.x:
                            a.x -= nudge
                            b.x += nudge
                        else:
                            b.x -= nudge
                            a.x += nudge
                        logger.debug("Zone %r: moved %r/%r apart by %.1f on x", zone.id, a_id, b_id, nudge)


def zone_bounds(
    zone: Zone,
    positions: Mapping[str, Point],
    dims: DimensionTable,
    padding: float = ZONE_PADDING,
    label_height: float = ZONE_LABEL_HEIGHT,
) -> PositionedZone | None:
    """Bounding box of the zone's positioned members, padded for the label.

    Returns None when none of the members is positioned.
    """
    members = [m for m in dict.fromkeys(zone.members) if m in positions]
    if not members:
        logger.debug("Zone %r has no positioned members, skipping", zone.id)
        return None

    rects = [_member_rect(positions, dims, m) for m in members]
    min_x = min(r.left for r in rects) - padding
    min_y = min(r.top for r in rects) - padding - label_height
    max_x = max(r.right for r in rects) + padding
    max_y = max(r.bottom for r in rects) + padding

    return PositionedZone(
        id=zone.id,
        label=zone.label,
        x=min_x,
        y=min_y,
        width=max_x - min_x,
        height=max_y - min_y,
        members=members,
        color=zone.color,
    )
