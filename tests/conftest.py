"""Shared fixtures: deterministic layout engines and small stories."""
from __future__ import annotations

import random

import pytest

from storyflow.types import Edge, Participant, Point, Spacing, Step, Story


class StackEngine:
    """Places nodes in declaration order along the rank axis, ignoring edges.

    Horizontal directions stack left to right, vertical ones top to bottom,
    with ``spacing.rank`` between neighbours. Every call is recorded.
    """

    def __init__(self) -> None:
        self.calls: list[dict] = []

    def layout(self, nodes, edges, direction, spacing, groups=None):
        spacing = spacing or Spacing()
        self.calls.append({
            "nodes": [n.id for n in nodes],
            "edges": [(e.source, e.target) for e in edges],
            "direction": direction,
            "spacing": spacing,
            "groups": dict(groups) if groups else None,
        })
        positions = {}
        cursor = 0.0
        for node in nodes:
            if direction in ("LR", "RL"):
                positions[node.id] = Point(x=cursor + node.width / 2, y=0.0)
                cursor += node.width + spacing.rank
            else:
                positions[node.id] = Point(x=0.0, y=cursor + node.height / 2)
                cursor += node.height + spacing.rank
        return positions


@pytest.fixture
def stack_engine() -> StackEngine:
    return StackEngine()


def service(id: str, **kwargs) -> Participant:
    return Participant(id=id, name=kwargs.pop("name", id), **kwargs)


def call(id: str, source: str, target: str, kind: str = "sync", **metadata) -> Edge:
    return Edge(id=id, source=source, target=target, kind=kind, metadata=metadata)


@pytest.fixture
def chain_story() -> Story:
    """A -> B -> C, one call per step."""
    return Story(
        participants=[service("A"), service("B"), service("C")],
        edges=[call("ab", "A", "B"), call("bc", "B", "C")],
        steps=[Step(active_edges=["ab"]), Step(active_edges=["bc"])],
    )


def random_pairs(seed: int, node_count: int = 25, edge_count: int = 40) -> list[tuple[str, str]]:
    """Reproducible random directed edges between n0..n<node_count-1>, cycles included."""
    rng = random.Random(seed)
    pairs = [rng.sample(range(node_count), 2) for _ in range(edge_count)]
    return [(f"n{a}", f"n{b}") for a, b in pairs]
