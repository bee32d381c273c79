"""Tests for the resource allocation graph."""

from deadlock_lab.graph import (
    EdgeType,
    GraphEdge,
    NodeType,
    build_graph,
    format_graph,
    has_cycle,
)
from deadlock_lab.scenarios import SCENARIOS
from deadlock_lab.state import SystemState

_SAFE_ASSIGNMENTS = 8
_SAFE_REQUESTS = 12


def _acyclic_state() -> SystemState:
    """P0 holds R0 and wants R1; P1 is idle."""
    return SystemState(
        num_processes=2,
        num_resources=2,
        available=[0, 1],
        allocation=[[1, 0], [0, 0]],
        max_need=[[1, 1], [0, 0]],
    )


class TestBuildGraph:
    """Verify node and edge derivation."""

    def test_node_ids_and_labels(self) -> None:
        """Processes come first, then resources offset by P."""
        graph = build_graph(SCENARIOS["safe"].state)
        assert [n.id for n in graph.nodes] == list(range(8))
        assert [n.label for n in graph.nodes] == [
            "P0", "P1", "P2", "P3", "P4", "R0", "R1", "R2",
        ]
        assert graph.nodes[4].type is NodeType.PROCESS
        assert graph.nodes[5].type is NodeType.RESOURCE

    def test_edge_counts(self) -> None:
        """One assignment per held cell, one request per outstanding need."""
        graph = build_graph(SCENARIOS["safe"].state)
        types = [e.type for e in graph.edges]
        assert types.count(EdgeType.ASSIGNMENT) == _SAFE_ASSIGNMENTS
        assert types.count(EdgeType.REQUEST) == _SAFE_REQUESTS

    def test_edge_order(self) -> None:
        """Per cell, the assignment edge precedes the request edge."""
        graph = build_graph(SCENARIOS["safe"].state)
        assert graph.edges[0] == GraphEdge(0, 5, EdgeType.REQUEST)
        assert graph.edges[1] == GraphEdge(6, 0, EdgeType.ASSIGNMENT)
        assert graph.edges[2] == GraphEdge(0, 6, EdgeType.REQUEST)

    def test_empty_state_has_no_edges(self) -> None:
        """Nothing held and nothing needed means no edges."""
        graph = build_graph(SystemState.empty(2, 2))
        assert graph.edges == ()
        assert len(graph.nodes) == 4

    def test_to_dict_uses_from_and_to(self) -> None:
        """Edges serialise with from/to keys and string types."""
        data = build_graph(_acyclic_state()).to_dict()
        assert data["nodes"][2] == {"id": 2, "label": "R0", "type": "resource"}
        assert data["edges"] == [
            {"from": 2, "to": 0, "type": "assignment"},
            {"from": 0, "to": 3, "type": "request"},
        ]


class TestHasCycle:
    """Verify cycle detection."""

    def test_circular_wait_has_cycle(self) -> None:
        """The deadlock scenario is a textbook cycle."""
        assert has_cycle(build_graph(SCENARIOS["deadlock"].state))

    def test_chain_has_no_cycle(self) -> None:
        """R0 -> P0 -> R1 is a path, not a cycle."""
        assert not has_cycle(build_graph(_acyclic_state()))

    def test_cycle_without_deadlock(self) -> None:
        """With multi-instance resources a cycle is only a warning sign."""
        assert has_cycle(build_graph(SCENARIOS["safe"].state))

    def test_empty_graph(self) -> None:
        """No edges, no cycle."""
        assert not has_cycle(build_graph(SystemState.empty(1, 1)))


class TestFormatGraph:
    """Verify the plain-text rendering."""

    def test_acyclic_rendering(self) -> None:
        """Every section appears in order."""
        assert format_graph(build_graph(_acyclic_state())) == "\n".join(
            [
                "Processes:  [P0] [P1]",
                "Resources:  (R0) (R1)",
                "",
                "Edges:",
                "  (R0) - - > [P0]   assignment",
                "  [P0] ----> (R1)   request",
                "",
                "Request edges: 1  Assignment edges: 1",
                "Cycle: no",
            ]
        )

    def test_no_edges(self) -> None:
        """An empty edge list says so."""
        text = format_graph(build_graph(SystemState.empty(1, 1)))
        assert "  (none)" in text

    def test_cycle_reported(self) -> None:
        """The deadlock scenario renders with Cycle: yes."""
        text = format_graph(build_graph(SCENARIOS["deadlock"].state))
        assert text.endswith("Cycle: yes")
