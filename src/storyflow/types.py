from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ============================================================================
# Story document — participants, edges, steps, scenes and zones
# ============================================================================

Direction = Literal["TB", "TD", "BT", "LR", "RL"]

# 'service' is the primary kind; 'queue' is the secondary, queue-like kind
ParticipantKind = Literal["service", "queue"]

# Side midpoints of a rectangle, used as connector endpoints
Anchor = Literal["top", "right", "bottom", "left"]


@dataclass(slots=True)
class Participant:
    """A node of the diagram. Dimensions are derived, never stored."""

    id: str
    name: str
    # Semantic type tag: 'api', 'database', 'gateway', 'state', ...
    type: str = "service"
    kind: ParticipantKind = "service"
    technology: str | None = None
    # Queue-kind participants show a broker instead of a technology
    broker: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    children: list[Participant] = field(default_factory=list)


@dataclass(slots=True)
class Edge:
    """A directed call or state transition. source == target is a self-loop."""

    id: str
    source: str
    target: str
    # sync / async / publish / subscribe / transition
    kind: str = "sync"
    # Subtype-specific fields: method, path, messageType, trigger, response...
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Step:
    active_edges: list[str] = field(default_factory=list)
    reveal_nodes: list[str] = field(default_factory=list)
    reveal_edges: list[str] = field(default_factory=list)
    focus_nodes: list[str] = field(default_factory=list)
    title: str | None = None


@dataclass(slots=True)
class Scene:
    """A named layout partition, laid out on its own before composition."""

    id: str
    members: list[str]
    direction: Direction | None = None
    node_spacing: float | None = None
    rank_spacing: float | None = None


@dataclass(slots=True)
class Zone:
    """Decorative grouping. Never a layout unit itself."""

    id: str
    label: str
    members: list[str]
    color: str | None = None


@dataclass(slots=True)
class Story:
    participants: list[Participant]
    edges: list[Edge]
    steps: list[Step]
    scenes: list[Scene] = field(default_factory=list)
    zones: list[Zone] = field(default_factory=list)
    direction: Direction | None = None
    node_spacing: float | None = None
    rank_spacing: float | None = None
    id: str | None = None


# ============================================================================
# Geometry
# ============================================================================

@dataclass(slots=True)
class Point:
    x: float
    y: float


@dataclass(slots=True)
class Size:
    width: float
    height: float


@dataclass(slots=True)
class NodeRect:
    """Axis-aligned rectangle in center-based coordinates."""

    cx: float
    cy: float
    hw: float
    hh: float

    @property
    def left(self) -> float:
        return self.cx - self.hw

    @property
    def right(self) -> float:
        return self.cx + self.hw

    @property
    def top(self) -> float:
        return self.cy - self.hh

    @property
    def bottom(self) -> float:
        return self.cy + self.hh


# ============================================================================
# Layout collaborator request types
# ============================================================================

@dataclass(slots=True)
class LayoutNode:
    id: str
    width: float
    height: float


@dataclass(slots=True)
class LayoutEdge:
    source: str
    target: str


@dataclass(slots=True)
class Spacing:
    # Gap between neighbours in the same rank
    node: float = 60
    # Gap between consecutive ranks
    rank: float = 200


# ============================================================================
# Layout result — recomputed per (story, step index)
# ============================================================================

@dataclass(slots=True)
class StepProjection:
    revealed_nodes: set[str] = field(default_factory=set)
    active_nodes: set[str] = field(default_factory=set)
    completed_nodes: set[str] = field(default_factory=set)
    new_nodes: set[str] = field(default_factory=set)
    revealed_edges: set[str] = field(default_factory=set)
    active_edges: set[str] = field(default_factory=set)
    completed_edges: set[str] = field(default_factory=set)
    new_edges: set[str] = field(default_factory=set)


@dataclass(slots=True)
class PositionedChild:
    id: str
    # Offset of the child's center from its parent's center
    dx: float
    dy: float
    width: float
    height: float


@dataclass(slots=True)
class PositionedParticipant:
    id: str
    scene: str
    # Global center coordinates
    cx: float
    cy: float
    width: float
    height: float
    is_active: bool = False
    is_completed: bool = False
    is_new: bool = False
    children: list[PositionedChild] = field(default_factory=list)

    @property
    def rect(self) -> NodeRect:
        return NodeRect(cx=self.cx, cy=self.cy, hw=self.width / 2, hh=self.height / 2)


@dataclass(slots=True)
class SelfLoopArc:
    """Cubic arc leaving and re-entering the right side of a node."""

    start: Point
    control1: Point
    control2: Point
    end: Point
    label_position: Point


@dataclass(slots=True)
class RoutedEdge:
    id: str
    source: str
    target: str
    kind: str
    source_anchor: Anchor
    target_anchor: Anchor
    is_active: bool = False
    is_completed: bool = False
    is_new: bool = False
    is_self_loop: bool = False
    is_bidirectional: bool = False
    bidirectional_index: int = 0
    curvature: float | None = None
    self_loop_index: int | None = None
    self_loop: SelfLoopArc | None = None
    source_edge_index: int = 0
    source_edge_count: int = 1
    is_response: bool = False
    label: str | None = None


@dataclass(slots=True)
class PositionedZone:
    id: str
    label: str
    # Top-left corner
    x: float
    y: float
    width: float
    height: float
    members: list[str] = field(default_factory=list)
    color: str | None = None


@dataclass(slots=True)
class StoryLayout:
    step_index: int
    width: float
    height: float
    participants: list[PositionedParticipant]
    edges: list[RoutedEdge]
    zones: list[PositionedZone]
    projection: StepProjection
    focus_node_ids: list[str] = field(default_factory=list)

    def positions(self) -> dict[str, Point]:
        return {p.id: Point(x=p.cx, y=p.cy) for p in self.participants}


# ============================================================================
# Layout options — user-facing configuration
# ============================================================================

@dataclass(slots=True)
class LayoutOptions:
    padding: float | None = None
    node_spacing: float | None = None
    rank_spacing: float | None = None
    macro_node_spacing: float | None = None
    macro_rank_spacing: float | None = None
    zone_member_gap: float | None = None
    zone_padding: float | None = None
    zone_label_height: float | None = None
    # Participants whose nested children are shown
    expanded: set[str] | None = None
