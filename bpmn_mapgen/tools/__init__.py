"""
BPMN Mapgen Tools

Output validation and the command-line interface.
"""

from bpmn_mapgen.tools.validation import BPMNXMLValidator, ValidationResult, validate_bpmn_xml

__all__ = ["BPMNXMLValidator", "ValidationResult", "validate_bpmn_xml"]
