"""Pytest configuration for bpmn-mapgen tests."""

import pytest
from lxml import etree

from bpmn_mapgen.compiler import BPMNCompiler, CompilerConfig
from bpmn_mapgen.core.observability import ObservabilityManager
from bpmn_mapgen.models.description import ProcessDescription

BPMN_NS = {
    "bpmn": "http://www.omg.org/spec/BPMN/20100524/MODEL",
    "bpmndi": "http://www.omg.org/spec/BPMN/20100524/DI",
    "dc": "http://www.omg.org/spec/DD/20100524/DC",
    "di": "http://www.omg.org/spec/DD/20100524/DI",
}


def parse_xml(xml_str: str) -> etree._Element:
    """Parse generated BPMN XML into an lxml element tree."""
    return etree.fromstring(xml_str.encode("utf-8"))


@pytest.fixture(autouse=True)
def reset_observability():
    """Make sure no test leaks a configured observability singleton."""
    yield
    ObservabilityManager.reset()


# ===========================
# Sample process descriptions
# ===========================


@pytest.fixture
def invoice_data():
    """AP invoice process as produced by the extraction step."""
    return {
        "name": "AP-001: Invoice Processing",
        "description": "Accounts payable invoice handling from receipt to payment",
        "steps": [
            {
                "id": "S1",
                "name": "Invoice Intake",
                "description": "Capture invoice from email or portal",
                "type": "task",
                "actor": "AP Clerk",
            },
            {"id": "S2", "name": "Initial Validation", "type": "task", "actor": "AP Clerk"},
            {"id": "S3", "name": "Three-Way Match", "type": "serviceTask", "actor": "ERP"},
            {"id": "S4", "name": "Approval", "type": "userTask", "actor": "Manager"},
            {"id": "S5", "name": "Payment Processing", "type": "task", "actor": "Treasury"},
        ],
        "gateways": [
            {
                "id": "G1",
                "name": "Discrepancy?",
                "type": "exclusive",
                "outcomes": ["Yes", "No"],
            }
        ],
        "start_events": [{"name": "Invoice Received"}],
        "end_events": [{"name": "Invoice Paid"}],
        "risks": ["Duplicate payment"],
    }


@pytest.fixture
def expense_data():
    return {
        "name": "Employee Expense Reimbursement",
        "description": "Claims for out-of-pocket business expenses",
        "steps": [
            {"name": "Employee Submits Expense Claim", "actor": "Employee"},
            {"name": "Supervisor Approval", "actor": "Supervisor", "type": "userTask"},
        ],
    }


@pytest.fixture
def onboarding_data():
    """Generic three-step process that matches no archetype."""
    return {
        "name": "Generic Onboarding",
        "description": "Bring a new customer on board",
        "steps": [
            {"name": "Collect ID", "type": "userTask", "actor": "Customer"},
            {"name": "Verify", "type": "serviceTask", "actor": "KYC Service"},
            {"name": "Activate", "type": "task", "actor": "Operations"},
        ],
        "gateways": [],
        "start_events": [{"name": "Application Received"}],
        "end_events": [{"name": "Customer Active"}],
    }


@pytest.fixture
def empty_data():
    return {"name": "Empty Process", "steps": []}


@pytest.fixture
def invoice_description(invoice_data):
    return ProcessDescription.model_validate(invoice_data)


@pytest.fixture
def expense_description(expense_data):
    return ProcessDescription.model_validate(expense_data)


@pytest.fixture
def onboarding_description(onboarding_data):
    return ProcessDescription.model_validate(onboarding_data)


@pytest.fixture
def empty_description(empty_data):
    return ProcessDescription.model_validate(empty_data)


def make_linear_description(count: int, name: str = "Linear Process") -> ProcessDescription:
    """Generic description with ``count`` plain task steps."""
    return ProcessDescription.model_validate(
        {"name": name, "steps": [{"name": f"Step {i}"} for i in range(1, count + 1)]}
    )


# ===========================
# Compiler fixtures
# ===========================


@pytest.fixture
def compiler():
    """Compiler with default configuration (output validation on)."""
    return BPMNCompiler(CompilerConfig())
