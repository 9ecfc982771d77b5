"""
BPMN Compiler Facade

Coordinates the three compiler stages into a single call:
1. Process graph construction
2. Diagram layout
3. BPMN XML generation

One unique token is drawn per compilation and threaded through every stage,
so all ids of one document share it. The facade is the single error
boundary: any failure inside a stage is logged and re-raised as
``BPMNGenerationError`` naming the stage. No partial XML is returned.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from bpmn_mapgen.compiler.config import CompilerConfig
from bpmn_mapgen.core.errors import BPMNGenerationError, BPMNValidationError
from bpmn_mapgen.core.identifiers import new_unique_token, sanitize_id
from bpmn_mapgen.core.observability import record_metric, span
from bpmn_mapgen.models.description import ProcessDescription
from bpmn_mapgen.models.graph import ProcessGraph
from bpmn_mapgen.models.layout import DiagramLayout
from bpmn_mapgen.stages.archetypes import DEFAULT_ARCHETYPES, Archetype, layout_tables
from bpmn_mapgen.stages.graph_builder import ProcessGraphBuilder
from bpmn_mapgen.stages.layout_engine import LayoutEngine
from bpmn_mapgen.stages.xml_generation import BPMNXMLGenerator
from bpmn_mapgen.tools.validation import BPMNXMLValidator, ValidationResult

logger = logging.getLogger(__name__)

DescriptionInput = Union[ProcessDescription, Mapping[str, Any]]


@dataclass
class CompilationResult:
    """XML output plus the intermediate artifacts it was produced from."""

    xml: str
    process_id: str
    token: str
    graph: ProcessGraph
    layout: DiagramLayout
    validation: Optional[ValidationResult] = None

    @property
    def archetype(self) -> Optional[str]:
        return self.graph.archetype


class BPMNCompiler:
    """
    Compiles a process description into a BPMN 2.0 document.

    Stateless between calls; one instance can serve any number of
    concurrent compilations.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        archetypes: Sequence[Archetype] = DEFAULT_ARCHETYPES,
    ):
        self.config = config or CompilerConfig()
        self.graph_builder = ProcessGraphBuilder(
            archetypes=archetypes, honor_gateways=self.config.honor_gateways
        )
        self.layout_engine = LayoutEngine(
            strategy=self.config.layout_strategy, tables=layout_tables(archetypes)
        )
        self.xml_generator = BPMNXMLGenerator(
            target_namespace=self.config.target_namespace,
            exporter=self.config.exporter,
            exporter_version=self.config.exporter_version,
            include_documentation=self.config.include_documentation,
        )
        self.validator = BPMNXMLValidator() if self.config.validate_output else None

    def compile(self, description: Optional[DescriptionInput]) -> str:
        """Compile ``description`` and return the BPMN XML string.

        Raises:
            BPMNGenerationError: If any stage fails
        """
        return self.compile_with_artifacts(description).xml

    def compile_with_artifacts(self, description: Optional[DescriptionInput]) -> CompilationResult:
        """Compile ``description`` and return the XML with graph and layout.

        Raises:
            BPMNGenerationError: If any stage fails
        """
        stage = "input"
        try:
            desc = self._coerce_description(description)
            token = new_unique_token()

            with span("bpmn.compile", {"process.name": desc.name, "compilation.token": token}):
                stage = "graph_building"
                graph = self.graph_builder.build(desc, token)

                stage = "layout"
                layout = self.layout_engine.layout(graph)

                stage = "xml_generation"
                process_id = self._process_id(desc, graph, token)
                xml = self.xml_generator.serialize(process_id, desc, graph, layout, token)

                validation = None
                if self.validator is not None:
                    stage = "validation"
                    validation = self.validator.validate(xml)
                    if not validation.is_valid:
                        messages = [issue.message for issue in validation.errors]
                        raise BPMNValidationError(
                            f"Generated document is invalid: {'; '.join(messages)}", messages
                        )

        except Exception as e:
            logger.error(f"BPMN generation failed during {stage}: {e}", exc_info=True)
            record_metric("compilations_total", 1, {"status": "failed", "stage": stage})
            raise BPMNGenerationError(f"Failed to generate BPMN: {e}", stage=stage) from e

        record_metric("compilations_total", 1, {"status": "ok"})
        logger.info(
            f"Compiled process '{desc.name}': archetype={graph.archetype or 'generic'}, "
            f"strategy={layout.strategy.value}, nodes={len(graph.nodes)}, edges={len(graph.edges)}"
        )
        return CompilationResult(
            xml=xml,
            process_id=process_id,
            token=token,
            graph=graph,
            layout=layout,
            validation=validation,
        )

    @staticmethod
    def _coerce_description(description: Optional[DescriptionInput]) -> ProcessDescription:
        """Normalize the input; defects degrade to an empty description."""
        if description is not None and not isinstance(description, (ProcessDescription, Mapping)):
            logger.warning(
                f"Unsupported process description type {type(description).__name__}, "
                "compiling an empty process"
            )
        try:
            return ProcessDescription.coerce(description)
        except ValidationError as e:
            logger.warning(f"Invalid process description, compiling an empty process: {e}")
            return ProcessDescription()

    @staticmethod
    def _process_id(description: ProcessDescription, graph: ProcessGraph, token: str) -> str:
        """Sanitized process name, or ``Process_<token>`` when it is empty or taken."""
        element_ids = {node.element_id for node in graph.nodes}
        process_id = sanitize_id(description.name) if description.name.strip() else ""
        if not process_id or process_id in element_ids:
            process_id = f"Process_{token}"
        return process_id


def compile_process(
    description: DescriptionInput, config: Optional[CompilerConfig] = None
) -> str:
    """Compile a process description with a one-off compiler."""
    return BPMNCompiler(config).compile(description)


__all__ = ["BPMNCompiler", "CompilationResult", "DescriptionInput", "compile_process"]
