"""
Stage 1: Process Graph Construction

Converts a ProcessDescription into a ProcessGraph.

Handles:
- Archetype dispatch: known process shapes get their fixed topology
- Generic fallback: start -> one node per step -> end
- Optional gateway honouring for the generic path
- Per-build id allocation (no state survives a call)
"""

import logging
from typing import Dict, List, Optional, Sequence

from bpmn_mapgen.core.errors import GraphIntegrityError
from bpmn_mapgen.core.identifiers import IDAllocator
from bpmn_mapgen.core.observability import Timer, span
from bpmn_mapgen.models.description import Gateway, GatewayType, ProcessDescription, Step, StepType
from bpmn_mapgen.models.graph import NodeKind, ProcessGraph
from bpmn_mapgen.stages.archetypes import DEFAULT_ARCHETYPES, Archetype, match_archetype
from bpmn_mapgen.stages.graph_assembly import GraphAssembler

logger = logging.getLogger(__name__)


STEP_KIND: Dict[StepType, NodeKind] = {
    StepType.TASK: NodeKind.TASK,
    StepType.USER_TASK: NodeKind.USER_TASK,
    StepType.SERVICE_TASK: NodeKind.SERVICE_TASK,
    StepType.MANUAL_TASK: NodeKind.MANUAL_TASK,
    StepType.GATEWAY: NodeKind.TASK,
}

GATEWAY_KIND: Dict[GatewayType, NodeKind] = {
    GatewayType.EXCLUSIVE: NodeKind.EXCLUSIVE_GATEWAY,
    GatewayType.PARALLEL: NodeKind.PARALLEL_GATEWAY,
    GatewayType.INCLUSIVE: NodeKind.INCLUSIVE_GATEWAY,
}


class ProcessGraphBuilder:
    """Builds the process graph for one description.

    Args:
        archetypes: Ordered archetype dispatch table (first match wins)
        honor_gateways: Turn gateway-typed steps that match a gateway entry
            into real branch points on the generic path
    """

    def __init__(
        self,
        archetypes: Sequence[Archetype] = DEFAULT_ARCHETYPES,
        honor_gateways: bool = False,
    ):
        self.archetypes = tuple(archetypes)
        self.honor_gateways = honor_gateways

    def match_archetype(self, description: ProcessDescription) -> Optional[Archetype]:
        return match_archetype(description, self.archetypes)

    def build(self, description: ProcessDescription, token: str) -> ProcessGraph:
        """
        Build the process graph.

        Args:
            description: Normalized process description
            token: Per-compilation unique suffix for element ids

        Returns:
            ProcessGraph with one start node and every path ending at an end node

        Raises:
            GraphIntegrityError: If the built graph violates structural invariants
        """
        with span("bpmn.build_graph", {"process.name": description.name}), Timer("graph_building"):
            asm = GraphAssembler(IDAllocator(token), name=description.name)
            archetype = self.match_archetype(description)

            if archetype is not None:
                archetype.build(description, asm)
                graph = asm.to_graph(archetype=archetype.name)
            else:
                self._build_generic(description, asm)
                graph = asm.to_graph()

            is_valid, errors = graph.validate_structure()
            if not is_valid:
                raise GraphIntegrityError(
                    f"Built graph for '{description.name}' is inconsistent: {'; '.join(errors)}",
                    errors,
                )

            logger.debug(
                f"Graph built: archetype={graph.archetype or 'generic'}, "
                f"nodes={len(graph.nodes)}, edges={len(graph.edges)}"
            )
            return graph

    def _build_generic(self, description: ProcessDescription, asm: GraphAssembler) -> None:
        """Start -> one node per step in input order -> end."""
        gateways = self._index_gateways(description.gateways) if self.honor_gateways else {}
        if description.gateways and not self.honor_gateways:
            logger.debug(
                f"Ignoring {len(description.gateways)} gateway entries on the generic path"
            )

        previous = asm.add_node(
            NodeKind.START_EVENT, description.start_label, "StartEvent", role="start"
        )
        pending_condition: Optional[str] = None

        for index, step in enumerate(description.steps, start=1):
            gateway = self._gateway_for_step(step, gateways)
            kind = GATEWAY_KIND[gateway.type] if gateway else STEP_KIND[step.type]

            node = asm.add_node(
                kind,
                step.name,
                step.id or f"step_{index}",
                documentation=step.description,
                actor=step.actor,
            )
            asm.connect(previous, node, pending_condition)
            pending_condition = None

            if gateway is not None:
                pending_condition = self._branch_out(asm, node, gateway)
            previous = node

        end = asm.add_node(NodeKind.END_EVENT, description.end_label, "EndEvent", role="end")
        asm.connect(previous, end, pending_condition)

    @staticmethod
    def _index_gateways(gateways: List[Gateway]) -> Dict[str, Gateway]:
        index: Dict[str, Gateway] = {}
        for gateway in gateways:
            if len(_unique(gateway.outcomes)) < 2:
                continue
            for key in (gateway.id, gateway.name):
                if key:
                    index.setdefault(key.strip().lower(), gateway)
        return index

    @staticmethod
    def _gateway_for_step(step: Step, gateways: Dict[str, Gateway]) -> Optional[Gateway]:
        if step.type != StepType.GATEWAY or not gateways:
            return None
        for key in (step.id, step.name):
            if key and key.strip().lower() in gateways:
                return gateways[key.strip().lower()]
        return None

    @staticmethod
    def _branch_out(asm: GraphAssembler, node_id: str, gateway: Gateway) -> Optional[str]:
        """
        Route every outcome except the first to its own end node.

        Returns the condition label for the edge that continues the main
        chain (``None`` for parallel gateways, whose flows are unconditional).
        """
        outcomes = _unique(gateway.outcomes)
        labelled = gateway.type != GatewayType.PARALLEL

        for outcome in outcomes[1:]:
            end = asm.add_node(NodeKind.END_EVENT, f"End - {outcome}", f"EndEvent_{outcome}")
            asm.connect(node_id, end, outcome if labelled else None)

        return outcomes[0] if labelled else None


def _unique(labels: List[str]) -> List[str]:
    seen = set()
    result = []
    for label in labels:
        label = label.strip()
        if label and label not in seen:
            seen.add(label)
            result.append(label)
    return result


__all__ = ["GATEWAY_KIND", "STEP_KIND", "ProcessGraphBuilder"]
