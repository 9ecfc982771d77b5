"""
Compiler Exceptions

Builder and layout inconsistencies are programming defects and surface
immediately. The compiler facade is the single error boundary: whatever
goes wrong inside is re-raised as ``BPMNGenerationError`` with the failing
stage attached.
"""

from typing import List, Optional


class BPMNCompilerError(Exception):
    """Base class for all compiler errors."""


class GraphIntegrityError(BPMNCompilerError, ValueError):
    """The process graph is internally inconsistent (e.g. a dangling edge)."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class LayoutIntegrityError(BPMNCompilerError, ValueError):
    """A node or edge has no computed geometry."""


class BPMNValidationError(BPMNCompilerError):
    """The generated document failed output validation."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class BPMNGenerationError(BPMNCompilerError):
    """Raised by the compiler facade; wraps the underlying failure."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


__all__ = [
    "BPMNCompilerError",
    "BPMNGenerationError",
    "BPMNValidationError",
    "GraphIntegrityError",
    "LayoutIntegrityError",
]
