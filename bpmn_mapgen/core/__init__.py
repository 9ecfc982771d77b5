"""
Core infrastructure for the BPMN compiler.

Provides identifier handling, the exception hierarchy and observability
(logging, tracing, metrics).
"""

from .errors import (
    BPMNCompilerError,
    BPMNGenerationError,
    BPMNValidationError,
    GraphIntegrityError,
    LayoutIntegrityError,
)
from .identifiers import (
    MAX_ID_LENGTH,
    IDAllocator,
    escape_xml,
    new_unique_token,
    sanitize_id,
)
from .observability import (
    LogLevel,
    ObservabilityConfig,
    ObservabilityManager,
    Timer,
    record_metric,
    span,
)

__all__ = [
    # Errors
    "BPMNCompilerError",
    "BPMNGenerationError",
    "BPMNValidationError",
    "GraphIntegrityError",
    "LayoutIntegrityError",
    # Identifiers
    "MAX_ID_LENGTH",
    "IDAllocator",
    "escape_xml",
    "new_unique_token",
    "sanitize_id",
    # Observability
    "LogLevel",
    "ObservabilityConfig",
    "ObservabilityManager",
    "Timer",
    "record_metric",
    "span",
]
