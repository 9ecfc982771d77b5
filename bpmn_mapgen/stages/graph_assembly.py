"""
Per-build node/edge arena.

All nodes and edges of one graph are allocated here with a local counter,
so building a graph never touches shared state.
"""

from typing import List, Optional

from bpmn_mapgen.core.identifiers import IDAllocator
from bpmn_mapgen.models.graph import GraphEdge, GraphNode, NodeKind, ProcessGraph


class GraphAssembler:
    """Collects nodes and edges for a single graph build."""

    def __init__(self, ids: IDAllocator, name: str = ""):
        self.ids = ids
        self.name = name
        self._nodes: List[GraphNode] = []
        self._edges: List[GraphEdge] = []
        self._counter = 0

    def add_node(
        self,
        kind: NodeKind,
        label: str,
        id_prefix: str,
        role: Optional[str] = None,
        documentation: str = "",
        actor: str = "",
    ) -> str:
        """Add a node and return its internal id."""
        self._counter += 1
        node = GraphNode(
            id=f"node_{self._counter}",
            element_id=self.ids.allocate(id_prefix),
            kind=kind,
            label=label or "",
            documentation=documentation or "",
            actor=actor or "",
            role=role,
        )
        self._nodes.append(node)
        return node.id

    def connect(self, source_id: str, target_id: str, condition: Optional[str] = None) -> None:
        self._edges.append(
            GraphEdge(source_id=source_id, target_id=target_id, condition=condition or None)
        )

    def chain(self, *node_ids: str) -> None:
        """Connect consecutive nodes without conditions."""
        for source_id, target_id in zip(node_ids, node_ids[1:]):
            self.connect(source_id, target_id)

    def to_graph(self, archetype: Optional[str] = None) -> ProcessGraph:
        return ProcessGraph(
            name=self.name,
            nodes=list(self._nodes),
            edges=list(self._edges),
            archetype=archetype,
        )


__all__ = ["GraphAssembler"]
