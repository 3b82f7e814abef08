"""Tests for building a Story from service-flow and state-diagram mappings."""
from __future__ import annotations

from storyflow.story import story_from_dict


SERVICE_FLOW = {
    "id": "checkout",
    "direction": "TB",
    "nodesep": 40,
    "ranksep": 250,
    "services": [
        {"id": "web", "name": "Web", "type": "frontend", "technology": "React",
         "tags": {"team": "web"}},
        {"id": "orders", "name": "Orders", "children": [{"id": "db", "name": "DB"}]},
    ],
    "queues": [{"id": "events", "name": "order-events", "type": "topic", "broker": "kafka"}],
    "calls": [
        {"id": "c1", "type": "sync", "from": "web", "to": "orders", "method": "POST",
         "path": "/orders", "response": {"status": 201}},
        {"id": "c2", "type": "publish", "from": "orders", "to": "events", "messageType": "OrderPlaced"},
    ],
    "steps": [
        {"title": "Place order", "activeCalls": ["c1"], "revealNodes": ["web"]},
        {"activeCalls": ["c2"], "revealCalls": ["c1"], "focusNodes": ["events"]},
    ],
    "scenes": [{"id": "front", "members": ["web"], "direction": "LR", "nodesep": 10, "ranksep": 20}],
    "zones": [{"id": "core", "label": "Core", "members": ["orders", "events"], "color": "#eee"}],
}

STATE_DIAGRAM = {
    "states": [
        {"id": "start", "name": "Start", "type": "initial"},
        {"id": "draft", "name": "Draft"},
        {"id": "check", "name": "Check", "type": "choice"},
    ],
    "transitions": [
        {"id": "t1", "from": "start", "to": "draft"},
        {"id": "t2", "from": "draft", "to": "check", "trigger": "submit"},
    ],
    "steps": [{"activeTransitions": ["t1"]}, {"revealTransitions": ["t2"]}],
}


class TestServiceFlow:
    def test_participants(self):
        story = story_from_dict(SERVICE_FLOW)
        assert [p.id for p in story.participants] == ["web", "orders", "events"]
        web, orders, events = story.participants
        assert (web.type, web.kind, web.technology) == ("frontend", "service", "React")
        assert web.tags == {"team": "web"}
        assert orders.type == "service"
        assert [c.id for c in orders.children] == ["db"]
        assert (events.kind, events.type, events.broker) == ("queue", "topic", "kafka")

    def test_edges_keep_subtype_fields_as_metadata(self):
        c1, c2 = story_from_dict(SERVICE_FLOW).edges
        assert (c1.source, c1.target, c1.kind) == ("web", "orders", "sync")
        assert c1.metadata == {"method": "POST", "path": "/orders", "response": {"status": 201}}
        assert c2.kind == "publish"
        assert c2.metadata == {"messageType": "OrderPlaced"}

    def test_steps(self):
        first, second = story_from_dict(SERVICE_FLOW).steps
        assert first.title == "Place order"
        assert first.active_edges == ["c1"]
        assert first.reveal_nodes == ["web"]
        assert second.reveal_edges == ["c1"]
        assert second.focus_nodes == ["events"]

    def test_scenes_and_zones(self):
        story = story_from_dict(SERVICE_FLOW)
        (scene,) = story.scenes
        assert (scene.direction, scene.node_spacing, scene.rank_spacing) == ("LR", 10, 20)
        (zone,) = story.zones
        assert (zone.label, zone.members, zone.color) == ("Core", ["orders", "events"], "#eee")

    def test_story_settings(self):
        story = story_from_dict(SERVICE_FLOW)
        assert (story.id, story.direction, story.node_spacing, story.rank_spacing) == (
            "checkout", "TB", 40, 250,
        )

    def test_name_defaults_to_id(self):
        story = story_from_dict({"participants": [{"id": "x"}], "edges": [], "steps": []})
        assert story.participants[0].name == "x"


class TestStateDiagram:
    def test_state_types(self):
        story = story_from_dict(STATE_DIAGRAM)
        assert [p.type for p in story.participants] == ["initial", "state", "choice"]

    def test_transitions(self):
        story = story_from_dict(STATE_DIAGRAM)
        assert [e.kind for e in story.edges] == ["transition", "transition"]
        assert story.edges[1].metadata == {"trigger": "submit"}

    def test_transition_steps(self):
        first, second = story_from_dict(STATE_DIAGRAM).steps
        assert first.active_edges == ["t1"]
        assert second.reveal_edges == ["t2"]

    def test_zone_label_defaults_to_id(self):
        story = story_from_dict({**STATE_DIAGRAM, "zones": [{"id": "z", "members": ["draft"]}]})
        assert story.zones[0].label == "z"
