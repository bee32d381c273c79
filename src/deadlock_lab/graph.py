"""Resource Allocation Graph (RAG).

The RAG is the picture textbooks draw next to the Banker's matrices.
It is a directed bipartite graph:

    - **Process nodes** ``P0 .. P{P-1}`` — ids ``0 .. P-1``.
    - **Resource nodes** ``R0 .. R{R-1}`` — ids ``P .. P+R-1``.
    - **Assignment edge** ``Rj -> Pi`` — Pi holds instances of Rj
      (``allocation[i][j] > 0``).
    - **Request edge** ``Pi -> Rj`` — Pi may still ask for Rj
      (``need[i][j] > 0``).

With single-instance resources a cycle in the RAG *is* a deadlock.
With multiple instances a cycle is only a warning sign — the Banker's
safety check remains the authority.  ``has_cycle`` reports the cycle
either way, for the graph view to highlight.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from deadlock_lab.state import SystemState


class NodeType(StrEnum):
    """Kind of graph node."""

    PROCESS = "process"
    RESOURCE = "resource"


class EdgeType(StrEnum):
    """Kind of graph edge."""

    REQUEST = "request"
    ASSIGNMENT = "assignment"


@dataclass(frozen=True)
class GraphNode:
    """One vertex of the graph."""

    id: int
    label: str
    type: NodeType

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {"id": self.id, "label": self.label, "type": str(self.type)}


@dataclass(frozen=True)
class GraphEdge:
    """One directed edge; ``source`` and ``target`` are node ids."""

    source: int
    target: int
    type: EdgeType

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format (``from`` / ``to`` keys)."""
        return {"from": self.source, "to": self.target, "type": str(self.type)}


@dataclass(frozen=True)
class ResourceGraph:
    """Nodes and edges derived from one snapshot."""

    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def build_graph(state: SystemState) -> ResourceGraph:
    """Derive the resource allocation graph from a snapshot."""
    p = state.num_processes
    need = state.need
    nodes = [GraphNode(i, state.process_label(i), NodeType.PROCESS) for i in range(p)]
    nodes.extend(
        GraphNode(p + j, state.resource_label(j), NodeType.RESOURCE)
        for j in range(state.num_resources)
    )

    edges: list[GraphEdge] = []
    for i in range(p):
        for j in range(state.num_resources):
            if state.allocation[i][j] > 0:
                edges.append(GraphEdge(p + j, i, EdgeType.ASSIGNMENT))
            if need[i][j] > 0:
                edges.append(GraphEdge(i, p + j, EdgeType.REQUEST))
    return ResourceGraph(nodes=tuple(nodes), edges=tuple(edges))


def has_cycle(graph: ResourceGraph) -> bool:
    """Return True if the graph contains a directed cycle.

    Depth-first search with a recursion stack: reaching a node that is
    still on the stack means we followed a back edge.
    """
    adjacency: dict[int, list[int]] = {node.id: [] for node in graph.nodes}
    for edge in graph.edges:
        adjacency[edge.source].append(edge.target)

    visited: set[int] = set()
    on_stack: set[int] = set()

    def visit(node: int) -> bool:
        visited.add(node)
        on_stack.add(node)
        for nxt in adjacency[node]:
            if nxt in on_stack:
                return True
            if nxt not in visited and visit(nxt):
                return True
        on_stack.discard(node)
        return False

    return any(node.id not in visited and visit(node.id) for node in graph.nodes)


def format_graph(graph: ResourceGraph) -> str:
    """Render the graph as a plain-text edge list."""
    labels = {node.id: node.label for node in graph.nodes}
    processes = " ".join(f"[{n.label}]" for n in graph.nodes if n.type is NodeType.PROCESS)
    resources = " ".join(f"({n.label})" for n in graph.nodes if n.type is NodeType.RESOURCE)
    lines = [
        f"Processes:  {processes}",
        f"Resources:  {resources}",
        "",
        "Edges:",
    ]
    requests = assignments = 0
    for edge in graph.edges:
        if edge.type is EdgeType.REQUEST:
            requests += 1
            lines.append(f"  [{labels[edge.source]}] ----> ({labels[edge.target]})   request")
        else:
            assignments += 1
            lines.append(f"  ({labels[edge.source]}) - - > [{labels[edge.target]}]   assignment")
    if not graph.edges:
        lines.append("  (none)")
    lines.append("")
    lines.append(f"Request edges: {requests}  Assignment edges: {assignments}")
    lines.append(f"Cycle: {'yes' if has_cycle(graph) else 'no'}")
    return "\n".join(lines)
