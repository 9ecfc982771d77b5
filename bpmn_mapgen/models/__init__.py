"""
Data models for the BPMN compiler: input description, process graph and layout.
"""

from bpmn_mapgen.models.description import (
    EventEntry,
    Gateway,
    GatewayType,
    ProcessDescription,
    Step,
    StepType,
)
from bpmn_mapgen.models.graph import GraphEdge, GraphNode, NodeKind, ProcessGraph
from bpmn_mapgen.models.layout import DiagramLayout, LayoutPosition, LayoutStrategy, Waypoint

__all__ = [
    # Input
    "EventEntry",
    "Gateway",
    "GatewayType",
    "ProcessDescription",
    "Step",
    "StepType",
    # Graph
    "GraphEdge",
    "GraphNode",
    "NodeKind",
    "ProcessGraph",
    # Layout
    "DiagramLayout",
    "LayoutPosition",
    "LayoutStrategy",
    "Waypoint",
]
