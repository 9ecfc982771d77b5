"""
BPMN Mapgen: Compile Structured Process Descriptions into BPMN 2.0 Diagrams

Turns a structured business-process description (steps, decision points,
approval thresholds) into a BPMN 2.0 document with a semantic process model
and an automatically laid-out diagram that standard viewers render directly.
"""

# Compiler facade
from bpmn_mapgen.compiler import (
    BPMNCompiler,
    CompilationResult,
    CompilerConfig,
    compile_process,
)

# Core components
from bpmn_mapgen.core import (
    BPMNCompilerError,
    BPMNGenerationError,
    BPMNValidationError,
    GraphIntegrityError,
    LayoutIntegrityError,
    ObservabilityConfig,
    ObservabilityManager,
)

# Models
from bpmn_mapgen.models import (
    DiagramLayout,
    Gateway,
    GatewayType,
    LayoutStrategy,
    ProcessDescription,
    ProcessGraph,
    Step,
    StepType,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Compiler
    "BPMNCompiler",
    "CompilationResult",
    "CompilerConfig",
    "compile_process",
    # Core
    "BPMNCompilerError",
    "BPMNGenerationError",
    "BPMNValidationError",
    "GraphIntegrityError",
    "LayoutIntegrityError",
    "ObservabilityConfig",
    "ObservabilityManager",
    # Models
    "DiagramLayout",
    "Gateway",
    "GatewayType",
    "LayoutStrategy",
    "ProcessDescription",
    "ProcessGraph",
    "Step",
    "StepType",
]
