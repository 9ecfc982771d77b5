"""
Stage 3: BPMN 2.0 XML Generation

Renders a laid-out ProcessGraph as a BPMN 2.0 document with two
coordinated parts:
- the semantic process model (flow nodes + sequence flows)
- the diagram interchange (shapes, edges, labels)

Text is escaped exactly once, by lxml at serialization time.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from lxml import etree

from bpmn_mapgen.core.errors import GraphIntegrityError, LayoutIntegrityError
from bpmn_mapgen.core.observability import Timer, span
from bpmn_mapgen.models.description import ProcessDescription
from bpmn_mapgen.models.graph import GraphEdge, GraphNode, NodeKind, ProcessGraph
from bpmn_mapgen.models.layout import DiagramLayout, LayoutPosition, Waypoint

logger = logging.getLogger(__name__)

# BPMN 2.0 Namespaces
BPMN_NAMESPACE = "http://www.omg.org/spec/BPMN/20100524/MODEL"
BPMNDI_NAMESPACE = "http://www.omg.org/spec/BPMN/20100524/DI"
DC_NAMESPACE = "http://www.omg.org/spec/DD/20100524/DC"
DI_NAMESPACE = "http://www.omg.org/spec/DD/20100524/DI"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

NSMAP = {
    "bpmn": BPMN_NAMESPACE,
    "bpmndi": BPMNDI_NAMESPACE,
    "dc": DC_NAMESPACE,
    "di": DI_NAMESPACE,
    "xsi": XSI_NAMESPACE,
}

DEFAULT_TARGET_NAMESPACE = "http://bpmn.io/schema/bpmn"
DEFAULT_EXPORTER = "bpmn-mapgen"

# Label boxes
EVENT_LABEL = (-15, 6, 66, 27)  # dx, gap below shape, width, height
GATEWAY_LABEL = (-25, 8, 100, 27)
FLOW_LABEL_SIZE = (100, 27)

# Characters XML 1.0 cannot carry
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _bpmn(tag: str) -> str:
    return "{%s}%s" % (BPMN_NAMESPACE, tag)


def _bpmndi(tag: str) -> str:
    return "{%s}%s" % (BPMNDI_NAMESPACE, tag)


def _dc(tag: str) -> str:
    return "{%s}%s" % (DC_NAMESPACE, tag)


def _di(tag: str) -> str:
    return "{%s}%s" % (DI_NAMESPACE, tag)


def _text(value: Optional[object]) -> str:
    """Coerce a value to XML-safe text; missing values become ``""``."""
    if value is None:
        return ""
    return _INVALID_XML_CHARS.sub("", str(value))


def _fmt(value: float) -> str:
    """Format a coordinate without trailing zeros."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


class BPMNXMLGenerator:
    """Generates BPMN 2.0 XML from a laid-out ProcessGraph.

    Args:
        target_namespace: ``targetNamespace`` of the definitions element
        exporter: Exporter name written to the document
        exporter_version: Exporter version written to the document
        include_documentation: Emit ``documentation`` children for nodes and
            the process when text is available
    """

    def __init__(
        self,
        target_namespace: str = DEFAULT_TARGET_NAMESPACE,
        exporter: str = DEFAULT_EXPORTER,
        exporter_version: str = "1.0",
        include_documentation: bool = True,
    ):
        self.target_namespace = target_namespace
        self.exporter = exporter
        self.exporter_version = exporter_version
        self.include_documentation = include_documentation

    def serialize(
        self,
        process_id: str,
        description: ProcessDescription,
        graph: ProcessGraph,
        layout: DiagramLayout,
        token: str,
    ) -> str:
        """Generate the BPMN 2.0 XML document.

        Args:
            process_id: Sanitized id for the process element
            description: The source description (process name and summary)
            graph: Process graph to render
            layout: Geometry for every node and edge of ``graph``
            token: Per-compilation unique suffix

        Returns:
            UTF-8 XML string with declaration

        Raises:
            GraphIntegrityError: If an edge references an unknown node
            LayoutIntegrityError: If a node or edge has no geometry
        """
        with span("bpmn.serialize", {"process.id": process_id}), Timer("xml_generation"):
            flow_ids = self._assign_flow_ids(graph, token)

            root = etree.Element(
                _bpmn("definitions"),
                nsmap=NSMAP,
                id=f"Definitions_{token}",
                targetNamespace=self.target_namespace,
                exporter=self.exporter,
                exporterVersion=self.exporter_version,
            )
            root.append(self._build_process_element(process_id, description, graph, flow_ids))
            root.append(self._build_diagram_element(process_id, graph, layout, flow_ids, token))

            xml = etree.tostring(
                root, pretty_print=True, xml_declaration=True, encoding="UTF-8"
            ).decode("utf-8")
            logger.debug(f"Serialized process '{process_id}' ({len(xml)} bytes)")
            return xml

    @staticmethod
    def _assign_flow_ids(graph: ProcessGraph, token: str) -> List[str]:
        """One flow id per edge; fails fast on dangling edge endpoints."""
        flow_ids: List[str] = []
        for index, edge in enumerate(graph.edges):
            for endpoint in (edge.source_id, edge.target_id):
                if graph.get_node(endpoint) is None:
                    raise GraphIntegrityError(
                        f"Sequence flow {index + 1} references unknown node '{endpoint}'"
                    )
            flow_ids.append(f"Flow_{token}_{index + 1}")
        return flow_ids

    # ===========================
    # Semantic model
    # ===========================

    def _build_process_element(
        self,
        process_id: str,
        description: ProcessDescription,
        graph: ProcessGraph,
        flow_ids: List[str],
    ) -> etree._Element:
        process_elem = etree.Element(_bpmn("process"))
        process_elem.set("id", process_id)
        process_elem.set("name", _text(description.name))
        process_elem.set("isExecutable", "false")

        if self.include_documentation and description.description:
            doc_elem = etree.SubElement(process_elem, _bpmn("documentation"))
            doc_elem.text = _text(description.description)

        incoming: Dict[str, List[str]] = {}
        outgoing: Dict[str, List[str]] = {}
        for edge, flow_id in zip(graph.edges, flow_ids):
            outgoing.setdefault(edge.source_id, []).append(flow_id)
            incoming.setdefault(edge.target_id, []).append(flow_id)

        for node in graph.nodes:
            process_elem.append(
                self._build_flow_node_element(
                    node, incoming.get(node.id, []), outgoing.get(node.id, [])
                )
            )

        for edge, flow_id in zip(graph.edges, flow_ids):
            process_elem.append(self._build_sequence_flow_element(edge, flow_id, graph))

        return process_elem

    def _build_flow_node_element(
        self, node: GraphNode, incoming: List[str], outgoing: List[str]
    ) -> etree._Element:
        elem = etree.Element(_bpmn(node.kind.value))
        elem.set("id", node.element_id)
        elem.set("name", _text(node.label))

        if self.include_documentation and node.documentation:
            doc_elem = etree.SubElement(elem, _bpmn("documentation"))
            doc_elem.text = _text(node.documentation)

        for flow_id in incoming:
            etree.SubElement(elem, _bpmn("incoming")).text = flow_id
        for flow_id in outgoing:
            etree.SubElement(elem, _bpmn("outgoing")).text = flow_id

        return elem

    @staticmethod
    def _build_sequence_flow_element(
        edge: GraphEdge, flow_id: str, graph: ProcessGraph
    ) -> etree._Element:
        elem = etree.Element(_bpmn("sequenceFlow"))
        elem.set("id", flow_id)
        elem.set("sourceRef", graph.get_node(edge.source_id).element_id)
        elem.set("targetRef", graph.get_node(edge.target_id).element_id)
        if edge.condition:
            elem.set("name", _text(edge.condition))
        return elem

    # ===========================
    # Diagram interchange
    # ===========================

    def _build_diagram_element(
        self,
        process_id: str,
        graph: ProcessGraph,
        layout: DiagramLayout,
        flow_ids: List[str],
        token: str,
    ) -> etree._Element:
        diagram = etree.Element(_bpmndi("BPMNDiagram"))
        diagram.set("id", f"BPMNDiagram_{token}")

        plane = etree.SubElement(diagram, _bpmndi("BPMNPlane"))
        plane.set("id", f"BPMNPlane_{token}")
        plane.set("bpmnElement", process_id)

        for node in graph.nodes:
            position = layout.positions.get(node.id)
            if position is None:
                raise LayoutIntegrityError(
                    f"Node '{node.label}' ({node.element_id}) has no layout position"
                )
            plane.append(self._build_shape(node, position))

        for index, (edge, flow_id) in enumerate(zip(graph.edges, flow_ids)):
            waypoints = layout.edge_waypoints.get(index)
            if not waypoints or len(waypoints) < 2:
                raise LayoutIntegrityError(f"Sequence flow '{flow_id}' has no route")
            plane.append(self._build_edge(flow_id, waypoints, edge.condition))

        return diagram

    @staticmethod
    def _build_shape(node: GraphNode, position: LayoutPosition) -> etree._Element:
        shape = etree.Element(_bpmndi("BPMNShape"))
        shape.set("id", f"{node.element_id}_di")
        shape.set("bpmnElement", node.element_id)
        if node.kind == NodeKind.EXCLUSIVE_GATEWAY:
            shape.set("isMarkerVisible", "true")

        _add_bounds(shape, position.x, position.y, position.width, position.height)

        label = etree.SubElement(shape, _bpmndi("BPMNLabel"))
        _add_bounds(label, *_shape_label_bounds(node.kind, position))
        return shape

    @staticmethod
    def _build_edge(
        flow_id: str, waypoints: List[Waypoint], condition: Optional[str]
    ) -> etree._Element:
        edge_elem = etree.Element(_bpmndi("BPMNEdge"))
        edge_elem.set("id", f"{flow_id}_di")
        edge_elem.set("bpmnElement", flow_id)

        for point in waypoints:
            wp = etree.SubElement(edge_elem, _di("waypoint"))
            wp.set("x", _fmt(point.x))
            wp.set("y", _fmt(point.y))

        if condition:
            label = etree.SubElement(edge_elem, _bpmndi("BPMNLabel"))
            _add_bounds(label, *_flow_label_bounds(waypoints))
        return edge_elem


def _add_bounds(parent: etree._Element, x: float, y: float, width: float, height: float) -> None:
    bounds = etree.SubElement(parent, _dc("Bounds"))
    bounds.set("x", _fmt(x))
    bounds.set("y", _fmt(y))
    bounds.set("width", _fmt(width))
    bounds.set("height", _fmt(height))


def _shape_label_bounds(kind: NodeKind, pos: LayoutPosition) -> Tuple[float, float, float, float]:
    """Label box below the shape."""
    if kind.is_event:
        dx, gap, width, height = EVENT_LABEL
        return pos.x + dx, pos.y + pos.height + gap, width, height
    if kind.is_gateway:
        dx, gap, width, height = GATEWAY_LABEL
        return pos.x + dx, pos.y + pos.height + gap, width, height
    return pos.x + 5, pos.y + pos.height + 8, pos.width - 10, 40


def _flow_label_bounds(waypoints: List[Waypoint]) -> Tuple[float, float, float, float]:
    """Label box next to the last bend before the target (or the midpoint of a straight flow)."""
    width, height = FLOW_LABEL_SIZE
    if len(waypoints) > 2:
        anchor = waypoints[-2]
    else:
        first, last = waypoints[0], waypoints[-1]
        anchor = Waypoint(x=(first.x + last.x) / 2, y=(first.y + last.y) / 2)
    return anchor.x + 5, anchor.y - height - 3, width, height


__all__ = [
    "BPMNDI_NAMESPACE",
    "BPMNXMLGenerator",
    "BPMN_NAMESPACE",
    "DC_NAMESPACE",
    "DEFAULT_TARGET_NAMESPACE",
    "DI_NAMESPACE",
    "NSMAP",
    "XSI_NAMESPACE",
]
