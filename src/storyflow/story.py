from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .types import Edge, Participant, Scene, Step, Story, Zone

# ============================================================================
# Story builder
#
# Turns an already-validated story mapping (as produced by the upstream
# loader) into the typed model. No validation happens here.
# ============================================================================

# Keys that become Edge fields rather than metadata
_EDGE_FIELDS = {"id", "type", "kind", "from", "to", "source", "target"}

_STATE_PSEUDO_TYPES = {"initial", "terminal", "choice"}


def _participant(data: Mapping[str, Any], kind: str) -> Participant:
    return Participant(
        id=data["id"],
        name=data.get("name") or data.get("label") or data["id"],
        type=data.get("type", "service" if kind == "service" else "queue"),
        kind=data.get("kind", kind),
        technology=data.get("technology"),
        broker=data.get("broker"),
        tags=dict(data.get("tags") or {}),
        children=[_participant(c, kind) for c in data.get("children") or []],
    )


def _edge(data: Mapping[str, Any], kind: str | None = None) -> Edge:
    return Edge(
        id=data["id"],
        source=data.get("from", data.get("source")),
        target=data.get("to", data.get("target")),
        kind=kind or data.get("type") or data.get("kind") or "sync",
        metadata={k: v for k, v in data.items() if k not in _EDGE_FIELDS},
    )


def _step(data: Mapping[str, Any]) -> Step:
    return Step(
        active_edges=list(data.get("activeCalls") or data.get("activeTransitions") or []),
        reveal_nodes=list(data.get("revealNodes") or []),
        reveal_edges=list(data.get("revealCalls") or data.get("revealTransitions") or []),
        focus_nodes=list(data.get("focusNodes") or []),
        title=data.get("title"),
    )


def _state_type(type: str | None) -> str:
    return type if type in _STATE_PSEUDO_TYPES else "state"


def story_from_dict(data: Mapping[str, Any]) -> Story:
    """Build a Story from a service-flow or state-diagram style mapping."""
    participants = [_participant(p, "service") for p in data.get("participants") or []]
    participants += [_participant(s, "service") for s in data.get("services") or []]
    participants += [_participant(q, "queue") for q in data.get("queues") or []]
    participants += [
        _participant({**s, "type": _state_type(s.get("type"))}, "service")
        for s in data.get("states") or []
    ]

    edges = [_edge(e) for e in data.get("edges") or []]
    edges += [_edge(c) for c in data.get("calls") or []]
    edges += [_edge(t, kind="transition") for t in data.get("transitions") or []]

    scenes = [
        Scene(
            id=s["id"],
            members=list(s.get("members") or []),
            direction=s.get("direction"),
            node_spacing=s.get("nodesep"),
            rank_spacing=s.get("ranksep"),
        )
        for s in data.get("scenes") or []
    ]
    zones = [
        Zone(
            id=z["id"],
            label=z.get("label", z["id"]),
            members=list(z.get("members") or []),
            color=z.get("color"),
        )
        for z in data.get("zones") or []
    ]

    return Story(
        id=data.get("id"),
        participants=participants,
        edges=edges,
        steps=[_step(s) for s in data.get("steps") or []],
        scenes=scenes,
        zones=zones,
        direction=data.get("direction"),
        node_spacing=data.get("nodesep"),
        rank_spacing=data.get("ranksep"),
    )
