"""
Process Graph Intermediate Representation

The directed graph built from a process description before layout and
XML generation. Nodes carry a graph-local internal id and the BPMN element
id that ends up in the document; edges reference nodes by internal id.
"""

from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class NodeKind(str, Enum):
    """BPMN flow node kinds the compiler can emit."""

    START_EVENT = "startEvent"
    END_EVENT = "endEvent"
    TASK = "task"
    USER_TASK = "userTask"
    SERVICE_TASK = "serviceTask"
    MANUAL_TASK = "manualTask"
    EXCLUSIVE_GATEWAY = "exclusiveGateway"
    PARALLEL_GATEWAY = "parallelGateway"
    INCLUSIVE_GATEWAY = "inclusiveGateway"

    @property
    def is_event(self) -> bool:
        return self in (NodeKind.START_EVENT, NodeKind.END_EVENT)

    @property
    def is_gateway(self) -> bool:
        return self in (
            NodeKind.EXCLUSIVE_GATEWAY,
            NodeKind.PARALLEL_GATEWAY,
            NodeKind.INCLUSIVE_GATEWAY,
        )

    @property
    def is_task(self) -> bool:
        return not (self.is_event or self.is_gateway)


class GraphNode(BaseModel):
    """Node in the process graph."""

    id: str = Field(..., description="Graph-local internal identifier")
    element_id: str = Field(..., description="BPMN element identifier")
    kind: NodeKind = Field(..., description="BPMN flow node kind")
    label: str = Field(default="", description="Node label/name")

    documentation: str = Field(default="", description="Free-text documentation")
    actor: str = Field(default="", description="Role performing the node, if known")
    role: Optional[str] = Field(
        default=None, description="Structural role used to look up archetype layout"
    )

    model_config = ConfigDict(frozen=True)


class GraphEdge(BaseModel):
    """Sequence flow between two nodes."""

    source_id: str = Field(..., description="Source node internal ID")
    target_id: str = Field(..., description="Target node internal ID")
    condition: Optional[str] = Field(
        default=None, description="Branch label, only on edges leaving a gateway"
    )

    model_config = ConfigDict(frozen=True)


class ProcessGraph(BaseModel):
    """Complete process graph with adjacency indexes."""

    name: str = Field(default="", description="Process name")
    nodes: List[GraphNode] = Field(default_factory=list, description="All nodes")
    edges: List[GraphEdge] = Field(default_factory=list, description="All edges")
    archetype: Optional[str] = Field(default=None, description="Matched archetype, if any")

    _node_index: Dict[str, GraphNode] = PrivateAttr(default_factory=dict)
    _outgoing: Dict[str, List[GraphEdge]] = PrivateAttr(default_factory=dict)
    _incoming: Dict[str, List[GraphEdge]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._build_indexes()

    def _build_indexes(self) -> None:
        """Build internal indexes for O(1) lookups."""
        self._node_index = {node.id: node for node in self.nodes}
        self._outgoing = {}
        self._incoming = {}
        for edge in self.edges:
            self._outgoing.setdefault(edge.source_id, []).append(edge)
            self._incoming.setdefault(edge.target_id, []).append(edge)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._node_index.get(node_id)

    def get_outgoing_edges(self, node_id: str) -> List[GraphEdge]:
        return self._outgoing.get(node_id, [])

    def get_incoming_edges(self, node_id: str) -> List[GraphEdge]:
        return self._incoming.get(node_id, [])

    def get_nodes_by_kind(self, kind: NodeKind) -> List[GraphNode]:
        return [n for n in self.nodes if n.kind == kind]

    def get_start_nodes(self) -> List[GraphNode]:
        return self.get_nodes_by_kind(NodeKind.START_EVENT)

    def get_end_nodes(self) -> List[GraphNode]:
        return self.get_nodes_by_kind(NodeKind.END_EVENT)

    def get_gateway_nodes(self) -> List[GraphNode]:
        return [n for n in self.nodes if n.kind.is_gateway]

    def has_gateways(self) -> bool:
        return any(n.kind.is_gateway for n in self.nodes)

    def find_all_paths(self) -> List[List[GraphNode]]:
        """
        Enumerate every execution path from the start node.

        Each path is followed until a node without outgoing edges; edges
        that would revisit a node on the current path are not followed.
        """
        paths: List[List[GraphNode]] = []
        for start in self.get_start_nodes():
            paths.extend(self._find_paths_from(start.id, set()))
        return paths

    def _find_paths_from(self, node_id: str, visited: Set[str]) -> List[List[GraphNode]]:
        node = self.get_node(node_id)
        if node is None or node_id in visited:
            return []

        outgoing = self.get_outgoing_edges(node_id)
        if not outgoing:
            return [[node]]

        new_visited = visited | {node_id}
        paths: List[List[GraphNode]] = []
        for edge in outgoing:
            for tail in self._find_paths_from(edge.target_id, new_visited):
                paths.append([node] + tail)
        return paths

    def reachable_from(self, node_id: str) -> Set[str]:
        """Internal ids reachable from ``node_id`` (inclusive)."""
        seen: Set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(e.target_id for e in self.get_outgoing_edges(current))
        return seen

    def validate_structure(self) -> Tuple[bool, List[str]]:
        """
        Validate graph structure.

        Returns (is_valid, error_messages).
        """
        errors: List[str] = []
        node_ids = set(self._node_index)

        if len(node_ids) != len(self.nodes):
            errors.append("Duplicate internal node ids")

        element_ids = [n.element_id for n in self.nodes]
        if len(set(element_ids)) != len(element_ids):
            errors.append("Duplicate BPMN element ids")

        for index, edge in enumerate(self.edges):
            if edge.source_id not in node_ids:
                errors.append(f"Edge {index} references non-existent source: {edge.source_id}")
            if edge.target_id not in node_ids:
                errors.append(f"Edge {index} references non-existent target: {edge.target_id}")

        starts = self.get_start_nodes()
        if len(starts) != 1:
            errors.append(f"Expected exactly one start node, found {len(starts)}")

        for node in self.nodes:
            if node.kind != NodeKind.START_EVENT and not self.get_incoming_edges(node.id):
                errors.append(f"Node '{node.label}' ({node.id}) has no incoming flow")
            if node.kind == NodeKind.START_EVENT and self.get_incoming_edges(node.id):
                errors.append(f"Start node '{node.label}' has incoming flow")
            if node.kind != NodeKind.END_EVENT and not self.get_outgoing_edges(node.id):
                errors.append(f"Node '{node.label}' ({node.id}) has no outgoing flow")

        if len(starts) == 1:
            unreachable = node_ids - self.reachable_from(starts[0].id)
            if unreachable:
                errors.append(f"Nodes unreachable from start: {sorted(unreachable)}")

        for gateway in self.get_nodes_by_kind(NodeKind.EXCLUSIVE_GATEWAY):
            labels = [e.condition for e in self.get_outgoing_edges(gateway.id) if e.condition]
            if len(set(labels)) != len(labels):
                errors.append(f"Gateway '{gateway.label}' has duplicate condition labels")

        return len(errors) == 0, errors


__all__ = [
    "GraphEdge",
    "GraphNode",
    "NodeKind",
    "ProcessGraph",
]
