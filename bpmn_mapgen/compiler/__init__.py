"""
BPMN compiler facade and configuration.
"""

from bpmn_mapgen.compiler.compiler import BPMNCompiler, CompilationResult, compile_process
from bpmn_mapgen.compiler.config import CompilerConfig

__all__ = ["BPMNCompiler", "CompilationResult", "CompilerConfig", "compile_process"]
