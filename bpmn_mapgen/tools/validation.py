"""
Validation Tools for generated BPMN

Checks a BPMN 2.0 document for the properties a diagram viewer relies on:
- well-formed XML with a single process and a single diagram
- unique ids and resolvable references
- one shape per flow node and one edge per sequence flow
- connected flow (single start, no dead ends)
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from lxml import etree

from bpmn_mapgen.stages.xml_generation import (
    BPMN_NAMESPACE,
    BPMNDI_NAMESPACE,
    DC_NAMESPACE,
    DI_NAMESPACE,
)

logger = logging.getLogger(__name__)

FLOW_NODE_TAGS = (
    "startEvent",
    "endEvent",
    "task",
    "userTask",
    "serviceTask",
    "manualTask",
    "exclusiveGateway",
    "parallelGateway",
    "inclusiveGateway",
)

NS = {"bpmn": BPMN_NAMESPACE, "bpmndi": BPMNDI_NAMESPACE, "dc": DC_NAMESPACE, "di": DI_NAMESPACE}


class ValidationLevel(str, Enum):
    """Validation severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ValidationCategory(str, Enum):
    """Categories of validation issues."""

    XML_STRUCTURE = "xml_structure"
    REFERENCES = "references"
    DIAGRAM = "diagram"
    CONNECTIVITY = "connectivity"


@dataclass
class ValidationIssue:
    """A validation issue found during validation."""

    level: ValidationLevel
    category: ValidationCategory
    message: str
    element_id: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "element_id": self.element_id,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    """Complete validation result."""

    is_valid: bool = True
    issues: List[ValidationIssue] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.level == ValidationLevel.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.level == ValidationLevel.WARNING]

    @property
    def issues_by_level(self) -> Dict[ValidationLevel, int]:
        return dict(Counter(i.level for i in self.issues))

    @property
    def overall_score(self) -> float:
        """Quality score (0-100)."""
        counts = self.issues_by_level
        score = 100.0
        score -= counts.get(ValidationLevel.ERROR, 0) * 15
        score -= counts.get(ValidationLevel.WARNING, 0) * 5
        return max(0.0, score)

    def add(
        self,
        level: ValidationLevel,
        category: ValidationCategory,
        message: str,
        element_id: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.issues.append(ValidationIssue(level, category, message, element_id, suggestion))
        if level == ValidationLevel.ERROR:
            self.is_valid = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "overall_score": self.overall_score,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": dict(self.metrics),
        }


class BPMNXMLValidator:
    """Structural validation of a generated BPMN 2.0 document."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def validate(self, xml_content: str) -> ValidationResult:
        """Validate a BPMN document.

        Args:
            xml_content: XML string (with or without declaration)

        Returns:
            ValidationResult; ``is_valid`` is False when any error was found
        """
        result = ValidationResult()

        try:
            root = etree.fromstring(xml_content.encode("utf-8"))
        except etree.XMLSyntaxError as e:
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.XML_STRUCTURE,
                f"XML well-formedness error: {e}",
                suggestion="Fix XML syntax to ensure well-formedness",
            )
            return result

        if root.tag != f"{{{BPMN_NAMESPACE}}}definitions":
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.XML_STRUCTURE,
                f"Root element must be bpmn:definitions, found '{root.tag}'",
            )
            return result

        processes = root.findall("bpmn:process", NS)
        diagrams = root.findall("bpmndi:BPMNDiagram", NS)
        if len(processes) != 1:
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.XML_STRUCTURE,
                f"Expected exactly one process, found {len(processes)}",
            )
        if len(diagrams) != 1:
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.XML_STRUCTURE,
                f"Expected exactly one BPMNDiagram, found {len(diagrams)}",
            )
        if not result.is_valid:
            return result

        self._validate_unique_ids(root, result)
        flow_nodes = self._flow_nodes(processes[0])
        flows = processes[0].findall("bpmn:sequenceFlow", NS)
        self._validate_flows(flow_nodes, flows, result)
        self._validate_connectivity(flow_nodes, flows, result)
        self._validate_diagram(processes[0], diagrams[0], flow_nodes, flows, result)

        result.metrics = {
            "flow_nodes": len(flow_nodes),
            "sequence_flows": len(flows),
            "gateways": sum(1 for n in flow_nodes.values() if _local(n).endswith("Gateway")),
        }
        self.logger.debug(
            f"Validated BPMN document: valid={result.is_valid}, issues={len(result.issues)}"
        )
        return result

    @staticmethod
    def _flow_nodes(process: etree._Element) -> Dict[str, etree._Element]:
        nodes: Dict[str, etree._Element] = {}
        for tag in FLOW_NODE_TAGS:
            for elem in process.findall(f"bpmn:{tag}", NS):
                nodes[elem.get("id", "")] = elem
        return nodes

    @staticmethod
    def _validate_unique_ids(root: etree._Element, result: ValidationResult) -> None:
        counts = Counter(elem.get("id") for elem in root.iter() if elem.get("id") is not None)
        for element_id, count in counts.items():
            if count > 1:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.REFERENCES,
                    f"Duplicate id '{element_id}' ({count} occurrences)",
                    element_id=element_id,
                )

    @staticmethod
    def _validate_flows(
        flow_nodes: Dict[str, etree._Element],
        flows: List[etree._Element],
        result: ValidationResult,
    ) -> None:
        for flow in flows:
            flow_id = flow.get("id")
            for attr in ("sourceRef", "targetRef"):
                ref = flow.get(attr)
                if ref not in flow_nodes:
                    result.add(
                        ValidationLevel.ERROR,
                        ValidationCategory.REFERENCES,
                        f"Sequence flow {attr} '{ref}' does not resolve to a flow node",
                        element_id=flow_id,
                    )

        # incoming/outgoing refs must agree with the flows
        flow_ids = {flow.get("id") for flow in flows}
        for node_id, node in flow_nodes.items():
            for tag in ("incoming", "outgoing"):
                for ref in node.findall(f"bpmn:{tag}", NS):
                    if ref.text not in flow_ids:
                        result.add(
                            ValidationLevel.ERROR,
                            ValidationCategory.REFERENCES,
                            f"{tag} reference '{ref.text}' does not resolve to a sequence flow",
                            element_id=node_id,
                        )

    @staticmethod
    def _validate_connectivity(
        flow_nodes: Dict[str, etree._Element],
        flows: List[etree._Element],
        result: ValidationResult,
    ) -> None:
        starts = [nid for nid, n in flow_nodes.items() if _local(n) == "startEvent"]
        ends = [nid for nid, n in flow_nodes.items() if _local(n) == "endEvent"]
        if len(starts) != 1:
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.CONNECTIVITY,
                f"Expected exactly one start event, found {len(starts)}",
            )
        if not ends:
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.CONNECTIVITY,
                "No end events found",
                suggestion="Add at least one end event for process termination",
            )

        sources = {flow.get("sourceRef") for flow in flows}
        targets = {flow.get("targetRef") for flow in flows}
        for node_id, node in flow_nodes.items():
            kind = _local(node)
            if kind != "startEvent" and node_id not in targets:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.CONNECTIVITY,
                    f"{kind} has no incoming sequence flow",
                    element_id=node_id,
                )
            if kind != "endEvent" and node_id not in sources:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.CONNECTIVITY,
                    f"{kind} has no outgoing sequence flow",
                    element_id=node_id,
                )

        if len(starts) == 1:
            reachable = _reachable(starts[0], flows)
            for node_id in flow_nodes:
                if node_id not in reachable:
                    result.add(
                        ValidationLevel.WARNING,
                        ValidationCategory.CONNECTIVITY,
                        "Flow node is not reachable from the start event",
                        element_id=node_id,
                    )

    @staticmethod
    def _validate_diagram(
        process: etree._Element,
        diagram: etree._Element,
        flow_nodes: Dict[str, etree._Element],
        flows: List[etree._Element],
        result: ValidationResult,
    ) -> None:
        plane = diagram.find("bpmndi:BPMNPlane", NS)
        if plane is None:
            result.add(ValidationLevel.ERROR, ValidationCategory.DIAGRAM, "BPMNDiagram has no BPMNPlane")
            return
        if plane.get("bpmnElement") != process.get("id"):
            result.add(
                ValidationLevel.ERROR,
                ValidationCategory.DIAGRAM,
                "BPMNPlane does not reference the process",
                element_id=plane.get("id"),
            )

        shape_refs = Counter()
        for shape in plane.findall("bpmndi:BPMNShape", NS):
            ref = shape.get("bpmnElement")
            shape_refs[ref] += 1
            if ref not in flow_nodes:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.REFERENCES,
                    f"Shape references unknown element '{ref}'",
                    element_id=shape.get("id"),
                )
            if shape.find("dc:Bounds", NS) is None:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.DIAGRAM,
                    "Shape has no bounds",
                    element_id=shape.get("id"),
                )

        for node_id in flow_nodes:
            if shape_refs[node_id] != 1:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.DIAGRAM,
                    f"Flow node has {shape_refs[node_id]} shapes, expected 1",
                    element_id=node_id,
                )

        flow_ids: Set[str] = {flow.get("id") for flow in flows}
        edge_refs = Counter()
        for edge in plane.findall("bpmndi:BPMNEdge", NS):
            ref = edge.get("bpmnElement")
            edge_refs[ref] += 1
            if ref not in flow_ids:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.REFERENCES,
                    f"Edge references unknown sequence flow '{ref}'",
                    element_id=edge.get("id"),
                )
            if len(edge.findall("di:waypoint", NS)) < 2:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.DIAGRAM,
                    "Edge has fewer than two waypoints",
                    element_id=edge.get("id"),
                )

        for flow_id in flow_ids:
            if edge_refs[flow_id] != 1:
                result.add(
                    ValidationLevel.ERROR,
                    ValidationCategory.DIAGRAM,
                    f"Sequence flow has {edge_refs[flow_id]} edges, expected 1",
                    element_id=flow_id,
                )


def _local(elem: etree._Element) -> str:
    return etree.QName(elem).localname


def _reachable(start_id: str, flows: List[etree._Element]) -> Set[str]:
    adjacency: Dict[str, List[str]] = {}
    for flow in flows:
        adjacency.setdefault(flow.get("sourceRef"), []).append(flow.get("targetRef"))

    visited: Set[str] = set()
    stack = [start_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(adjacency.get(current, []))
    return visited


def validate_bpmn_xml(xml_content: str) -> ValidationResult:
    """Convenience wrapper around ``BPMNXMLValidator().validate``."""
    return BPMNXMLValidator().validate(xml_content)


__all__ = [
    "BPMNXMLValidator",
    "ValidationCategory",
    "ValidationIssue",
    "ValidationLevel",
    "ValidationResult",
    "validate_bpmn_xml",
]
