"""
BPMN Compiler Stages

Implements the 3-stage compilation pipeline:
1. Graph Construction: archetype dispatch or generic linear graph
2. Layout: node boxes and edge routes
3. BPMN XML Generation: semantic model plus diagram interchange
"""

from bpmn_mapgen.stages.archetypes import (
    DEFAULT_ARCHETYPES,
    Archetype,
    archetype_names,
    match_archetype,
)
from bpmn_mapgen.stages.graph_assembly import GraphAssembler
from bpmn_mapgen.stages.graph_builder import ProcessGraphBuilder
from bpmn_mapgen.stages.layout_engine import LayoutEngine, calculate_waypoints
from bpmn_mapgen.stages.xml_generation import BPMNXMLGenerator

__all__ = [
    # Graph construction
    "Archetype",
    "DEFAULT_ARCHETYPES",
    "GraphAssembler",
    "ProcessGraphBuilder",
    "archetype_names",
    "match_archetype",
    # Layout
    "LayoutEngine",
    "calculate_waypoints",
    # XML
    "BPMNXMLGenerator",
]
