from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .types import (
    Edge,
    LayoutEdge,
    LayoutNode,
    LayoutOptions,
    NodeRect,
    Point,
    PositionedParticipant,
    PositionedZone,
    RoutedEdge,
    Spacing,
    StepProjection,
    Story,
    StoryLayout,
    Zone,
)
from .connectors import classify_edges, select_handles, self_loop_arc
from .dimensions import DimensionTable, default_rank_spacing
from .engine import GrandalfLayoutEngine, LayoutEngine
from .scenes import DEFAULT_SCENE_DIRECTION, ScenePartition, partition_scenes, scene_membership
from .steps import focus_nodes, project_steps
from .styles import MIN_ZONE_MEMBER_GAP, ZONE_LABEL_HEIGHT, ZONE_PADDING
from .zones import resolve_zone_overlaps, zone_bounds

logger = logging.getLogger(__name__)

# Layout defaults
LAYOUT_DEFAULTS = {
    "padding": 40,
    "node_spacing": 60,
    # None: derived from the longest edge label
    "rank_spacing": None,
    "macro_node_spacing": 80,
    "macro_rank_spacing": 80,
    "zone_member_gap": MIN_ZONE_MEMBER_GAP,
    "zone_padding": ZONE_PADDING,
    "zone_label_height": ZONE_LABEL_HEIGHT,
}

# Scenes always stack top to bottom in the macro pass
MACRO_DIRECTION = "TB"


# ============================================================================
# Per-scene layout
# ============================================================================


@dataclass(slots=True)
class SceneBBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point(x=self.min_x + self.width / 2, y=self.min_y + self.height / 2)


def layout_scene(
    partition: ScenePartition,
    dims: DimensionTable,
    edges: Sequence[Edge],
    zones: Sequence[Zone],
    engine: LayoutEngine,
    spacing: Spacing,
) -> dict[str, Point]:
    """Local center coordinates for every declared member of one scene.

    Only edges with both endpoints inside the scene are submitted, and never
    self-loops. Zones touching the scene are passed as groups to bias
    member placement.
    """
    member_set = set(partition.member_ids)

    nodes: list[LayoutNode] = []
    for pid in partition.member_ids:
        size = dims.get(pid)
        nodes.append(LayoutNode(id=pid, width=size.width, height=size.height))
    layout_edges = [
        LayoutEdge(source=e.source, target=e.target)
        for e in edges
        if e.source != e.target and e.source in member_set and e.target in member_set
    ]

    groups: dict[str, list[str]] = {}
    for zone in zones:
        scene_members = [m for m in zone.members if m in member_set]
        if scene_members:
            groups[f"zone-{zone.id}"] = scene_members

    positions = engine.layout(nodes, layout_edges, partition.direction, spacing, groups or None)
    return {pid: positions[pid] for pid in partition.member_ids if pid in positions}


def scene_bbox(positions: Mapping[str, Point], dims: DimensionTable) -> SceneBBox | None:
    """Bounding box of member rectangles (centers +/- half size)."""
    if not positions:
        return None
    rects = []
    for pid, pos in positions.items():
        size = dims.get(pid)
        rects.append((
            pos.x - size.width / 2,
            pos.y - size.height / 2,
            pos.x + size.width / 2,
            pos.y + size.height / 2,
        ))
    return SceneBBox(
        min_x=min(r[0] for r in rects),
        min_y=min(r[1] for r in rects),
        max_x=max(r[2] for r in rects),
        max_y=max(r[3] for r in rects),
    )


# ============================================================================
# Macro composition
# ============================================================================


def macro_edges(partitions: Sequence[ScenePartition], edges: Sequence[Edge]) -> list[LayoutEdge]:
    """Distinct scene -> scene pairs induced by cross-scene edges."""
    node_to_scene = scene_membership(partitions)
    seen: set[tuple[str, str]] = set()
    result: list[LayoutEdge] = []
    for edge in edges:
        if edge.source == edge.target:
            continue
        from_scene = node_to_scene.get(edge.source)
        to_scene = node_to_scene.get(edge.target)
        if from_scene is None or to_scene is None or from_scene == to_scene:
            continue
        key = (from_scene, to_scene)
        if key in seen:
            continue
        seen.add(key)
        result.append(LayoutEdge(source=from_scene, target=to_scene))
    return result


def compose_scenes(
    partitions: Sequence[ScenePartition],
    scene_positions: Mapping[str, Mapping[str, Point]],
    dims: DimensionTable,
    edges: Sequence[Edge],
    engine: LayoutEngine,
    spacing: Spacing,
) -> dict[str, Point]:
    """Place every scene in one global space and offset its members.

    Each scene is a meta-node sized to its bounding box; the meta-graph is
    laid out top to bottom and every member is shifted by
    ``meta position - scene bbox center``.
    """
    bboxes: dict[str, SceneBBox] = {}
    meta_nodes: list[LayoutNode] = []
    for partition in partitions:
        bbox = scene_bbox(scene_positions.get(partition.scene_id, {}), dims)
        if bbox is None:
            continue
        bboxes[partition.scene_id] = bbox
        meta_nodes.append(LayoutNode(id=partition.scene_id, width=bbox.width, height=bbox.height))

    meta_edges = macro_edges(partitions, edges)
    logger.debug("Macro graph: %d scenes, %d edges", len(meta_nodes), len(meta_edges))
    meta_positions = engine.layout(meta_nodes, meta_edges, MACRO_DIRECTION, spacing)

    global_positions: dict[str, Point] = {}
    for partition in partitions:
        bbox = bboxes.get(partition.scene_id)
        meta = meta_positions.get(partition.scene_id)
        if bbox is None or meta is None:
            continue
        center = bbox.center
        dx = meta.x - center.x
        dy = meta.y - center.y
        for pid, pos in scene_positions[partition.scene_id].items():
            global_positions[pid] = Point(x=pos.x + dx, y=pos.y + dy)
    return global_positions


# ============================================================================
# Main layout function
# ============================================================================


def layout_story(
    story: Story,
    step_index: int,
    options: LayoutOptions | None = None,
    engine: LayoutEngine | None = None,
) -> StoryLayout:
    """Lay out *story* as of step *step_index*.

    The full declared graph is always laid out and filtered to the revealed
    participants only at the end, so a participant keeps its coordinate in
    every step where it is visible.
    """
    opts = _merge_options(options)
    engine = engine or GrandalfLayoutEngine()

    projection = project_steps(story.steps, step_index, story.edges)
    dims = DimensionTable.build(story.participants, expanded=opts["expanded"])

    # Phase 1: partition the full participant set into scenes
    partitions = partition_scenes(
        story.scenes,
        [p.id for p in story.participants],
        default_direction=story.direction or DEFAULT_SCENE_DIRECTION,
    )

    # Phase 2: lay out every scene over its full membership
    base_node_spacing = _first_set(story.node_spacing, opts["node_spacing"])
    base_rank_spacing = _first_set(story.rank_spacing, opts["rank_spacing"])
    if base_rank_spacing is None:
        base_rank_spacing = default_rank_spacing(story.edges)

    scene_positions: dict[str, dict[str, Point]] = {}
    for partition in partitions:
        spacing = Spacing(
            node=_first_set(partition.node_spacing, base_node_spacing),
            rank=_first_set(partition.rank_spacing, base_rank_spacing),
        )
        scene_positions[partition.scene_id] = layout_scene(
            partition, dims, story.edges, story.zones, engine, spacing
        )

    # Phase 3: compose scenes into global coordinates
    macro_spacing = Spacing(node=opts["macro_node_spacing"], rank=opts["macro_rank_spacing"])
    positions = compose_scenes(
        partitions, scene_positions, dims, story.edges, engine, macro_spacing
    )

    # Phase 4: zone separation and normalization over the full graph
    resolve_zone_overlaps(positions, story.zones, dims, opts["zone_member_gap"])
    width, height = _normalize(positions, dims, story.zones, opts)

    # Phase 5: filter to what is revealed now
    visible = {pid: pos for pid, pos in positions.items() if pid in projection.revealed_nodes}
    node_to_scene = scene_membership(partitions)

    participants: list[PositionedParticipant] = []
    for p in story.participants:
        pos = visible.get(p.id)
        if pos is None:
            continue
        size = dims.get(p.id)
        participants.append(PositionedParticipant(
            id=p.id,
            scene=node_to_scene[p.id],
            cx=pos.x,
            cy=pos.y,
            width=size.width,
            height=size.height,
            is_active=p.id in projection.active_nodes,
            is_completed=p.id in projection.completed_nodes,
            is_new=p.id in projection.new_nodes,
            children=dims.children(p.id),
        ))

    zones: list[PositionedZone] = []
    for zone in story.zones:
        box = zone_bounds(zone, visible, dims, opts["zone_padding"], opts["zone_label_height"])
        if box is not None:
            zones.append(box)

    edges = route_edges(story.edges, projection, visible, dims)

    return StoryLayout(
        step_index=step_index,
        width=width,
        height=height,
        participants=participants,
        edges=edges,
        zones=zones,
        projection=projection,
        focus_node_ids=focus_nodes(story.steps[step_index], story.edges),
    )


# ============================================================================
# Edge routing
# ============================================================================


def route_edges(
    edges: Sequence[Edge],
    projection: StepProjection,
    positions: Mapping[str, Point],
    dims: DimensionTable,
) -> list[RoutedEdge]:
    """Anchor and classify every revealed edge, plus sync responses."""
    classes = classify_edges(edges)
    revealed = [e for e in edges if e.id in projection.revealed_edges]

    source_counts: dict[str, int] = {}
    for edge in revealed:
        source_counts[edge.source] = source_counts.get(edge.source, 0) + 1
    source_index: dict[str, int] = {}

    routed: list[RoutedEdge] = []
    for edge in revealed:
        cls = classes[edge.id]
        src_idx = source_index.get(edge.source, 0)
        source_index[edge.source] = src_idx + 1

        src_rect = _rect(edge.source, positions, dims)
        tgt_rect = _rect(edge.target, positions, dims)

        arc = None
        if cls.is_self_loop:
            anchors = ("right", "right")
            if src_rect is not None:
                arc = self_loop_arc(src_rect, cls.self_loop_index or 0)
        elif src_rect is not None and tgt_rect is not None:
            anchors = select_handles(src_rect, tgt_rect)
        else:
            anchors = ("right", "left")

        routed.append(RoutedEdge(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            kind=edge.kind,
            source_anchor=anchors[0],
            target_anchor=anchors[1],
            is_active=edge.id in projection.active_edges,
            is_completed=edge.id in projection.completed_edges,
            is_new=edge.id in projection.new_edges,
            is_self_loop=cls.is_self_loop,
            is_bidirectional=cls.is_bidirectional,
            bidirectional_index=cls.bidirectional_index,
            curvature=cls.curvature,
            self_loop_index=cls.self_loop_index,
            self_loop=arc,
            source_edge_index=src_idx,
            source_edge_count=source_counts[edge.source],
        ))

    for edge in revealed:
        response = edge.metadata.get("response")
        if edge.kind != "sync" or not response or edge.source == edge.target:
            continue
        src_rect = _rect(edge.target, positions, dims)
        tgt_rect = _rect(edge.source, positions, dims)
        anchors = (
            select_handles(src_rect, tgt_rect)
            if src_rect is not None and tgt_rect is not None
            else ("left", "right")
        )
        routed.append(RoutedEdge(
            id=f"{edge.id}-response",
            source=edge.target,
            target=edge.source,
            kind="sync",
            source_anchor=anchors[0],
            target_anchor=anchors[1],
            is_active=edge.id in projection.active_edges,
            is_completed=edge.id in projection.completed_edges,
            is_new=edge.id in projection.new_edges,
            is_bidirectional=True,
            bidirectional_index=1,
            # The forward call is always classified bidirectional
            curvature=-(classes[edge.id].curvature or 0.0),
            is_response=True,
            label=_response_label(response),
        ))

    return routed


# ============================================================================
# Helpers
# ============================================================================


def _merge_options(options: LayoutOptions | None) -> dict:
    opts = dict(LAYOUT_DEFAULTS)
    opts["expanded"] = set()
    if options:
        for key in LAYOUT_DEFAULTS:
            value = getattr(options, key)
            if value is not None:
                opts[key] = value
        if options.expanded is not None:
            opts["expanded"] = set(options.expanded)
    return opts


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _rect(
    participant_id: str, positions: Mapping[str, Point], dims: DimensionTable
) -> NodeRect | None:
    pos = positions.get(participant_id)
    if pos is None:
        return None
    size = dims.get(participant_id)
    return NodeRect(cx=pos.x, cy=pos.y, hw=size.width / 2, hh=size.height / 2)


def _response_label(response) -> str | None:
    if isinstance(response, Mapping):
        label = response.get("label")
        if label:
            return str(label)
        status = response.get("status")
        return None if status is None else str(status)
    return str(response)


def _normalize(
    positions: dict[str, Point],
    dims: DimensionTable,
    zones: Sequence[Zone],
    opts: dict,
) -> tuple[float, float]:
    """Shift the full graph so its top-left lies at the padding.

    Uses every participant and every full zone box, so the shift is the
    same in each step. Returns the overall width and height.
    """
    if not positions:
        return 0, 0

    boxes: list[tuple[float, float, float, float]] = []
    for pid, pos in positions.items():
        size = dims.get(pid)
        boxes.append((
            pos.x - size.width / 2,
            pos.y - size.height / 2,
            pos.x + size.width / 2,
            pos.y + size.height / 2,
        ))
    for zone in zones:
        box = zone_bounds(zone, positions, dims, opts["zone_padding"], opts["zone_label_height"])
        if box is not None:
            boxes.append((box.x, box.y, box.x + box.width, box.y + box.height))

    padding = opts["padding"]
    dx = padding - min(b[0] for b in boxes)
    dy = padding - min(b[1] for b in boxes)
    for pos in positions.values():
        pos.x += dx
        pos.y += dy

    width = max(b[2] for b in boxes) + dx + padding
    height = max(b[3] for b in boxes) + dy + padding
    return width, height
