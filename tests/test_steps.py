"""Tests for the step projector -- revealed / active / completed / new sets
for nodes and edges, plus focus node selection.
"""
from __future__ import annotations

import pytest

from storyflow.steps import focus_nodes, project_steps
from storyflow.types import Step

from conftest import call


EDGES = [call("ab", "A", "B"), call("bc", "B", "C")]
STEPS = [Step(active_edges=["ab"]), Step(active_edges=["bc"])]


# ============================================================================
# Edge sets
# ============================================================================


class TestEdgeSets:
    def test_first_step_reveals_and_activates_its_edges(self):
        proj = project_steps(STEPS, 0, EDGES)
        assert proj.revealed_edges == {"ab"}
        assert proj.active_edges == {"ab"}
        assert proj.completed_edges == set()
        assert proj.new_edges == {"ab"}

    def test_earlier_edges_become_completed(self):
        proj = project_steps(STEPS, 1, EDGES)
        assert proj.revealed_edges == {"ab", "bc"}
        assert proj.active_edges == {"bc"}
        assert proj.completed_edges == {"ab"}
        assert proj.new_edges == {"bc"}

    def test_reveal_edges_are_completed_once_passed(self):
        steps = [Step(reveal_edges=["ab"]), Step(active_edges=["bc"])]
        proj = project_steps(steps, 1, EDGES)
        assert proj.completed_edges == {"ab"}
        assert proj.active_edges == {"bc"}

    def test_reveal_edges_are_shown_but_not_active(self):
        proj = project_steps([Step(reveal_edges=["ab"])], 0, EDGES)
        assert proj.revealed_edges == {"ab"}
        assert proj.new_edges == {"ab"}
        assert proj.active_edges == set()
        assert proj.active_nodes == set()
        assert proj.revealed_nodes == {"A", "B"}

    def test_reveal_nodes_stay_active_next_to_reveal_edges(self):
        proj = project_steps([Step(reveal_edges=["ab"], reveal_nodes=["C"])], 0, EDGES)
        assert proj.active_nodes == {"C"}
        assert proj.active_edges == set()

    def test_reactivated_edge_is_both_active_and_completed_but_not_new(self):
        steps = [Step(active_edges=["ab"]), Step(active_edges=["ab"])]
        proj = project_steps(steps, 1, EDGES)
        assert "ab" in proj.active_edges
        assert "ab" in proj.completed_edges
        assert proj.new_edges == set()


# ============================================================================
# Node sets
# ============================================================================


class TestNodeSets:
    def test_edge_endpoints_are_absorbed(self):
        proj = project_steps(STEPS, 1, EDGES)
        assert proj.revealed_nodes == {"A", "B", "C"}
        assert proj.active_nodes == {"B", "C"}
        assert proj.completed_nodes == {"A", "B"}

    def test_only_the_newly_reached_node_is_new(self):
        proj = project_steps(STEPS, 1, EDGES)
        assert proj.new_nodes == {"C"}

    def test_first_step_everything_is_new(self):
        proj = project_steps(STEPS, 0, EDGES)
        assert proj.new_nodes == {"A", "B"}

    def test_nodes_revealed_up_front_are_not_new_later(self):
        steps = [Step(reveal_nodes=["A", "C"]), Step(active_edges=["bc"])]
        proj = project_steps(steps, 1, EDGES)
        assert proj.new_nodes == {"B"}
        assert proj.new_edges == {"bc"}

    def test_nothing_new_when_step_only_connects_known_nodes(self):
        steps = [
            Step(reveal_nodes=["A", "C"]),
            Step(reveal_nodes=["B"], active_edges=["ab"]),
            Step(active_edges=["bc"]),
        ]
        proj = project_steps(steps, 2, EDGES)
        assert "ab" in proj.completed_edges
        assert proj.active_edges == {"bc"}
        assert proj.new_nodes == set()
        assert proj.new_edges == {"bc"}

    def test_reveal_nodes_without_edges(self):
        steps = [Step(reveal_nodes=["A"])]
        proj = project_steps(steps, 0, EDGES)
        assert proj.revealed_nodes == {"A"}
        assert proj.active_nodes == {"A"}
        assert proj.revealed_edges == set()

    def test_unknown_edge_ids_contribute_no_nodes(self):
        steps = [Step(active_edges=["missing"])]
        proj = project_steps(steps, 0, EDGES)
        assert proj.revealed_edges == {"missing"}
        assert proj.revealed_nodes == set()

    def test_without_edge_list_only_declared_nodes_are_revealed(self):
        proj = project_steps(STEPS, 1)
        assert proj.revealed_nodes == set()


# ============================================================================
# Index bounds
# ============================================================================


class TestIndexBounds:
    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_out_of_range_index_raises(self, index):
        with pytest.raises(IndexError):
            project_steps(STEPS, index, EDGES)

    def test_no_steps_raises(self):
        with pytest.raises(IndexError):
            project_steps([], 0, EDGES)


# ============================================================================
# Focus nodes
# ============================================================================


class TestFocusNodes:
    def test_explicit_focus_wins(self):
        step = Step(active_edges=["ab"], focus_nodes=["C"])
        assert focus_nodes(step, EDGES) == ["C"]

    def test_falls_back_to_active_endpoints_in_edge_order(self):
        step = Step(active_edges=["bc", "ab"])
        assert focus_nodes(step, EDGES) == ["A", "B", "C"]

    def test_empty_when_nothing_is_active(self):
        assert focus_nodes(Step(reveal_nodes=["A"]), EDGES) == []
