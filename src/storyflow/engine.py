from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from grandalf.graphs import Vertex, Edge, graph_core
from grandalf.layouts import SugiyamaLayout

from .types import Direction, LayoutEdge, LayoutNode, Point, Spacing

logger = logging.getLogger(__name__)

# ============================================================================
# Layered graph layout collaborator
#
# The composition pipeline only ever talks to a LayoutEngine: nodes with
# sizes and directed edges in, center coordinates out. GrandalfLayoutEngine
# is the production implementation (Sugiyama layering via grandalf); tests
# plug in fixture engines.
# ============================================================================


class LayoutError(RuntimeError):
    """The layered layout collaborator could not lay out a graph."""


class LayoutEngine(Protocol):
    def layout(
        self,
        nodes: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        direction: Direction,
        spacing: Spacing,
        groups: Mapping[str, Sequence[str]] | None = None,
    ) -> dict[str, Point]:
        """Return the center coordinate of every node in *nodes*."""
        ...


# ============================================================================
# Vertex view for grandalf — provides width/height for layout
# ============================================================================


class _VertexView:
    """Minimal view object required by grandalf's SugiyamaLayout."""

    def __init__(self, w: float = 60, h: float = 36) -> None:
        self.w = w
        self.h = h
        # xy is set by the layout engine (center coordinates)
        self.xy = (0.0, 0.0)


class GrandalfLayoutEngine:
    """LayoutEngine backed by grandalf's Sugiyama layout.

    grandalf always layers top to bottom; other directions are obtained by
    swapping and mirroring axes. Each connected component is laid out on
    its own and the components are packed side by side across the ranks.

    Components, roots and inverted edges all follow input order, never
    grandalf's id()-hashed sets: equal input gives equal coordinates.
    """

    def layout(
        self,
        nodes: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        direction: Direction = "TB",
        spacing: Spacing | None = None,
        groups: Mapping[str, Sequence[str]] | None = None,
    ) -> dict[str, Point]:
        if not nodes:
            return {}
        spacing = spacing or Spacing()
        is_horizontal = direction in ("LR", "RL")
        is_reversed = direction in ("BT", "RL")

        # Build vertices; for LR/RL grandalf's layer axis is our x-axis,
        # so a node's width becomes its layer thickness.
        vertices: dict[str, Vertex] = {}
        for node in _order_by_groups(nodes, groups):
            v = Vertex(node.id)
            if is_horizontal:
                v.view = _VertexView(node.height, node.width)
            else:
                v.view = _VertexView(node.width, node.height)
            vertices[node.id] = v

        pairs: list[tuple[str, str]] = []
        seen: set[tuple[str, str]] = set()
        for edge in edges:
            if edge.source == edge.target:
                continue
            key = (edge.source, edge.target)
            if key in seen:
                continue
            if edge.source not in vertices or edge.target not in vertices:
                raise LayoutError(
                    f"Layout edge {edge.source!r} -> {edge.target!r} references an unknown node"
                )
            seen.add(key)
            pairs.append(key)

        components = _connected_components(list(vertices), pairs)
        try:
            cursor = 0.0
            for member_ids, component_pairs in components:
                cursor = self._layout_component(
                    vertices, member_ids, component_pairs, spacing, cursor
                )
        except Exception as err:
            raise LayoutError(f"Grandalf layout failed: {err}") from err

        logger.debug(
            "Laid out %d nodes, %d edges in %d components (%s)",
            len(vertices), len(pairs), len(components), direction,
        )

        positions: dict[str, Point] = {}
        for node in nodes:
            vx, vy = vertices[node.id].view.xy
            cx, cy = (vy, vx) if is_horizontal else (vx, vy)
            if is_reversed:
                if is_horizontal:
                    cx = -cx
                else:
                    cy = -cy
            positions[node.id] = Point(x=cx, y=cy)
        return positions

    def _layout_component(
        self,
        vertices: Mapping[str, Vertex],
        member_ids: list[str],
        pairs: list[tuple[str, str]],
        spacing: Spacing,
        cursor: float,
    ) -> float:
        """Lay out one connected component starting at x=*cursor*.

        Returns the x where the next component may start.
        """
        component_vertices = [vertices[i] for i in member_ids]
        if len(component_vertices) == 1:
            v = component_vertices[0]
            v.view.xy = (0.0, v.view.h / 2)
        else:
            component_edges = [Edge(vertices[s], vertices[t]) for s, t in pairs]
            gc = graph_core(component_vertices, component_edges)

            feedback = _feedback_pairs(member_ids, pairs)
            inverted = [e for e, pair in zip(component_edges, pairs) if pair in feedback]
            has_incoming = {t for s, t in pairs if (s, t) not in feedback}
            has_incoming |= {s for s, t in pairs if (s, t) in feedback}
            roots = [vertices[i] for i in member_ids if i not in has_incoming]

            sug = SugiyamaLayout(gc)
            sug.xspace = spacing.node
            sug.yspace = spacing.rank
            sug.init_all(roots=roots, inverted_edges=inverted)
            sug.draw()

        min_left = min(v.view.xy[0] - v.view.w / 2 for v in component_vertices)
        shift = cursor - min_left
        for v in component_vertices:
            x, y = v.view.xy
            v.view.xy = (x + shift, y)
        max_right = max(v.view.xy[0] + v.view.w / 2 for v in component_vertices)
        return max_right + spacing.node


# ============================================================================
# Deterministic graph helpers
# ============================================================================


def _connected_components(
    node_ids: list[str],
    pairs: list[tuple[str, str]],
) -> list[tuple[list[str], list[tuple[str, str]]]]:
    """Split into (member ids, edges) per component, all in input order.

    Components are ordered by their first member.
    """
    parent = {node_id: node_id for node_id in node_ids}

    def find(node_id: str) -> str:
        while parent[node_id] != node_id:
            parent[node_id] = parent[parent[node_id]]
            node_id = parent[node_id]
        return node_id

    for source, target in pairs:
        root_s, root_t = find(source), find(target)
        if root_s != root_t:
            parent[root_t] = root_s

    components: dict[str, tuple[list[str], list[tuple[str, str]]]] = {}
    for node_id in node_ids:
        components.setdefault(find(node_id), ([], []))[0].append(node_id)
    for pair in pairs:
        components[find(pair[0])][1].append(pair)
    return list(components.values())


def _feedback_pairs(node_ids: list[str], pairs: list[tuple[str, str]]) -> set[tuple[str, str]]:
    """Edges to invert so the graph becomes acyclic.

    Depth-first search from the nodes without incoming edges, then from any
    node still unvisited, both in input order; every back edge is feedback.
    """
    successors: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
    targets: set[str] = set()
    for source, target in pairs:
        successors[source].append(target)
        targets.add(target)

    starts = [n for n in node_ids if n not in targets] + node_ids
    on_stack, done = set(), set()
    feedback: set[tuple[str, str]] = set()
    for start in starts:
        if start in on_stack or start in done:
            continue
        on_stack.add(start)
        stack = [(start, iter(successors[start]))]
        while stack:
            node_id, children = stack[-1]
            for child in children:
                if child in on_stack:
                    feedback.add((node_id, child))
                elif child not in done:
                    on_stack.add(child)
                    stack.append((child, iter(successors[child])))
                    break
            else:
                stack.pop()
                on_stack.discard(node_id)
                done.add(node_id)
    return feedback


def _order_by_groups(
    nodes: Sequence[LayoutNode],
    groups: Mapping[str, Sequence[str]] | None,
) -> list[LayoutNode]:
    """Keep members of the same group adjacent so they start out together."""
    if not groups:
        return list(nodes)

    by_id = {n.id: n for n in nodes}
    group_of: dict[str, str] = {}
    for group_id, member_ids in groups.items():
        for member_id in member_ids:
            group_of.setdefault(member_id, group_id)

    ordered: list[LayoutNode] = []
    emitted: set[str] = set()
    for node in nodes:
        if node.id in emitted:
            continue
        group_id = group_of.get(node.id)
        if group_id is None:
            ordered.append(node)
            emitted.add(node.id)
            continue
        for member_id in groups[group_id]:
            if member_id in by_id and member_id not in emitted and group_of[member_id] == group_id:
                ordered.append(by_id[member_id])
                emitted.add(member_id)
        if node.id not in emitted:
            ordered.append(node)
            emitted.add(node.id)
    return ordered
