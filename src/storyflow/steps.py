from __future__ import annotations

from collections.abc import Sequence

from .types import Edge, Step, StepProjection

# ============================================================================
# Step projector
#
# Folds steps 0..index into revealed / active / completed / new sets for
# nodes and edges. For each step j:
#   j <= index  -> revealed
#   j <  index  -> completed
#   j == index  -> active (active edges and reveal nodes only; reveal edges
#                  are shown without being animated)
# "new" is whatever is revealed now but was not revealed as of index - 1.
# Node sets also absorb the endpoints of the edges in the matching edge set.
# ============================================================================


def project_steps(
    steps: Sequence[Step],
    index: int,
    edges: Sequence[Edge] = (),
) -> StepProjection:
    """Project the step list onto visibility sets as of step *index*.

    Raises IndexError when *index* is outside ``[0, len(steps))``.
    """
    if not 0 <= index < len(steps):
        raise IndexError(f"step index {index} out of range for {len(steps)} steps")

    proj = StepProjection()
    for j, step in enumerate(steps[: index + 1]):
        edge_ids = [*step.active_edges, *step.reveal_edges]
        node_ids = step.reveal_nodes

        proj.revealed_edges.update(edge_ids)
        proj.revealed_nodes.update(node_ids)
        if j < index:
            proj.completed_edges.update(edge_ids)
            proj.completed_nodes.update(node_ids)
        else:
            proj.active_edges.update(step.active_edges)
            proj.active_nodes.update(node_ids)

    endpoints = {e.id: (e.source, e.target) for e in edges}
    _absorb_endpoints(proj.revealed_nodes, proj.revealed_edges, endpoints)
    _absorb_endpoints(proj.active_nodes, proj.active_edges, endpoints)
    _absorb_endpoints(proj.completed_nodes, proj.completed_edges, endpoints)

    # Everything revealed before this step is exactly the completed set
    proj.new_edges = proj.revealed_edges - proj.completed_edges
    proj.new_nodes = proj.revealed_nodes - proj.completed_nodes
    return proj


def _absorb_endpoints(
    node_ids: set[str],
    edge_ids: set[str],
    endpoints: dict[str, tuple[str, str]],
) -> None:
    for edge_id in edge_ids:
        pair = endpoints.get(edge_id)
        if pair:
            node_ids.update(pair)


def focus_nodes(step: Step, edges: Sequence[Edge]) -> list[str]:
    """Nodes the camera should frame: explicit focus, else active endpoints."""
    if step.focus_nodes:
        return list(step.focus_nodes)
    active = set(step.active_edges)
    ids: list[str] = []
    for edge in edges:
        if edge.id in active:
            for node_id in (edge.source, edge.target):
                if node_id not in ids:
                    ids.append(node_id)
    return ids
