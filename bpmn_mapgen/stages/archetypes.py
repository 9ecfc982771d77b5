"""
Process Archetypes

Hand-authored process topologies selected by matching the input
description against known business-process patterns. Each archetype is an
entry in an ordered dispatch table: a predicate, a topology builder and a
layout table keyed by structural role. The first matching entry wins.

Adding an archetype means appending an ``Archetype`` to the table; nothing
else in the compiler needs to change.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from bpmn_mapgen.models.description import ProcessDescription
from bpmn_mapgen.models.graph import NodeKind
from bpmn_mapgen.stages.graph_assembly import GraphAssembler

logger = logging.getLogger(__name__)

# Role -> (x, y) of the node's top-left corner
LayoutTable = Dict[str, Tuple[float, float]]


@dataclass(frozen=True)
class Archetype:
    """A known process shape."""

    name: str
    matches: Callable[[ProcessDescription], bool]
    build: Callable[[ProcessDescription, GraphAssembler], None]
    layout_table: LayoutTable = field(default_factory=dict)
    description: str = ""


def _step_details(description: ProcessDescription, label: str) -> Tuple[str, str]:
    """Documentation and actor of an input step whose name matches ``label``."""
    wanted = label.strip().lower()
    for step in description.steps:
        if step.name.strip().lower() == wanted:
            return step.description, step.actor
    return "", ""


def _task(
    asm: GraphAssembler,
    description: ProcessDescription,
    label: str,
    id_prefix: str,
    role: str,
) -> str:
    documentation, actor = _step_details(description, label)
    return asm.add_node(
        NodeKind.TASK, label, id_prefix, role=role, documentation=documentation, actor=actor
    )


# ===========================
# Invoice processing
# ===========================


def is_invoice_processing(description: ProcessDescription) -> bool:
    name = description.name.lower()
    if "invoice" not in name:
        return False
    if "processing" in name:
        return True
    return any("processing" in step.name.lower() for step in description.steps)


def build_invoice_processing(description: ProcessDescription, asm: GraphAssembler) -> None:
    start = asm.add_node(
        NodeKind.START_EVENT, "Start Invoice Processing", "StartEvent", role="start"
    )
    intake = _task(asm, description, "Invoice Intake", "invoice_intake", "intake")
    validation = _task(asm, description, "Initial Validation", "initial_validation", "validation")
    match = _task(asm, description, "Three-Way Match", "three_way_match", "match")

    discrepancy = asm.add_node(
        NodeKind.EXCLUSIVE_GATEWAY,
        "Discrepancy Found?",
        "gateway_discrepancy",
        role="discrepancy_gateway",
    )
    review = _task(
        asm, description, "Manual Review by AP Supervisor", "manual_review", "manual_review"
    )
    discrepancy_end = asm.add_node(
        NodeKind.END_EVENT, "End - Discrepancy", "EndEvent_discrepancy", role="discrepancy_end"
    )

    approval = asm.add_node(
        NodeKind.EXCLUSIVE_GATEWAY,
        "Threshold-Based Approval Routing",
        "gateway_approval",
        role="approval_gateway",
    )
    dept_manager = _task(
        asm, description, "Department Manager Approval", "dept_manager", "approval_low"
    )
    senior_manager = _task(
        asm, description, "Senior Manager Approval", "senior_manager", "approval_medium"
    )
    director = _task(
        asm, description, "Director of Finance Approval", "director", "approval_high"
    )

    duplicate_check = _task(
        asm, description, "Systemic Duplicate Payment Check", "duplicate_check", "duplicate_check"
    )
    payment = _task(asm, description, "Payment Processing", "payment_processing", "payment")
    end = asm.add_node(NodeKind.END_EVENT, "End Invoice Processing", "EndEvent", role="end")

    asm.chain(start, intake, validation, match, discrepancy)

    asm.connect(discrepancy, review, "Discrepancy Found")
    asm.chain(review, discrepancy_end)

    asm.connect(discrepancy, approval, "No Discrepancy")
    asm.connect(approval, dept_manager, "Invoice < $5,000")
    asm.connect(approval, senior_manager, "$5,000 ≤ Invoice ≤ $25,000")
    asm.connect(approval, director, "Invoice > $25,000")

    for approver in (dept_manager, senior_manager, director):
        asm.connect(approver, duplicate_check)

    asm.chain(duplicate_check, payment, end)


INVOICE_LAYOUT: LayoutTable = {
    "start": (100, 202),
    "intake": (220, 180),
    "validation": (380, 180),
    "match": (540, 180),
    "discrepancy_gateway": (700, 195),
    # Discrepancy branch above the main flow
    "manual_review": (800, 60),
    "discrepancy_end": (990, 82),
    "approval_gateway": (880, 195),
    "approval_low": (1100, 60),
    "approval_medium": (1100, 180),
    "approval_high": (1100, 300),
    "duplicate_check": (1340, 180),
    "payment": (1520, 180),
    "end": (1720, 202),
}


# ===========================
# Expense reimbursement
# ===========================

EXPENSE_KEYWORDS: Tuple[str, ...] = (
    "expense",
    "reimbursement",
    "travel",
    "petty cash",
    "employee expense",
    "travel expense",
    "business expense",
    "expense claim",
    "expense report",
    "out-of-pocket",
    "mileage",
    "per diem",
    "accommodation",
    "meal expense",
)


def is_expense_reimbursement(description: ProcessDescription) -> bool:
    name = description.name.lower()
    return any(keyword in name for keyword in EXPENSE_KEYWORDS)


def build_expense_reimbursement(description: ProcessDescription, asm: GraphAssembler) -> None:
    start = asm.add_node(
        NodeKind.START_EVENT, "Start Expense Reimbursement", "StartEvent", role="start"
    )
    submission = _task(
        asm, description, "Employee Submits Expense Claim", "expense_submission", "submission"
    )
    receipts = _task(
        asm,
        description,
        "Receipt and Documentation Validation",
        "receipt_validation",
        "receipt_validation",
    )

    documentation = asm.add_node(
        NodeKind.EXCLUSIVE_GATEWAY,
        "Documentation Complete?",
        "gateway_documentation",
        role="documentation_gateway",
    )
    additional_docs = _task(
        asm, description, "Request Additional Documentation", "additional_docs", "additional_docs"
    )
    incomplete_end = asm.add_node(
        NodeKind.END_EVENT,
        "End - Incomplete Documentation",
        "EndEvent_incomplete",
        role="incomplete_end",
    )

    approval = asm.add_node(
        NodeKind.EXCLUSIVE_GATEWAY,
        "Expense Amount-Based Approval",
        "gateway_expense_approval",
        role="approval_gateway",
    )
    supervisor = _task(asm, description, "Supervisor Approval", "supervisor_approval", "approval_low")
    manager = _task(
        asm, description, "Department Manager Approval", "manager_approval", "approval_medium"
    )
    director = _task(
        asm, description, "Finance Director Approval", "director_approval", "approval_high"
    )

    compliance_check = _task(
        asm,
        description,
        "Policy Compliance and Duplicate Check",
        "compliance_check",
        "compliance_check",
    )
    compliance = asm.add_node(
        NodeKind.EXCLUSIVE_GATEWAY,
        "Policy Compliant?",
        "gateway_compliance",
        role="compliance_gateway",
    )
    reject = _task(asm, description, "Reject Non-Compliant Expense", "reject_expense", "reject")
    rejection_end = asm.add_node(
        NodeKind.END_EVENT, "End - Expense Rejected", "EndEvent_rejection", role="rejection_end"
    )

    reimbursement = _task(
        asm, description, "Process Reimbursement Payment", "reimbursement", "reimbursement"
    )
    notification = _task(
        asm, description, "Notify Employee of Payment", "employee_notification", "notification"
    )
    end = asm.add_node(NodeKind.END_EVENT, "End Expense Reimbursement", "EndEvent", role="end")

    asm.chain(start, submission, receipts, documentation)

    asm.connect(documentation, additional_docs, "Incomplete Documentation")
    asm.chain(additional_docs, incomplete_end)

    asm.connect(documentation, approval, "Complete Documentation")
    asm.connect(approval, supervisor, "Expense < $500")
    asm.connect(approval, manager, "$500 ≤ Expense ≤ $2,000")
    asm.connect(approval, director, "Expense > $2,000")

    for approver in (supervisor, manager, director):
        asm.connect(approver, compliance_check)

    asm.chain(compliance_check, compliance)

    asm.connect(compliance, reject, "Non-Compliant")
    asm.chain(reject, rejection_end)

    asm.connect(compliance, reimbursement, "Compliant")
    asm.chain(reimbursement, notification, end)


EXPENSE_LAYOUT: LayoutTable = {
    "start": (100, 252),
    "submission": (220, 230),
    "receipt_validation": (400, 230),
    "documentation_gateway": (580, 245),
    # Incomplete documentation branch above the main flow
    "additional_docs": (640, 110),
    "incomplete_end": (840, 132),
    "approval_gateway": (760, 245),
    "approval_low": (960, 110),
    "approval_medium": (960, 230),
    "approval_high": (960, 350),
    "compliance_check": (1200, 230),
    "compliance_gateway": (1380, 245),
    # Rejection branch below the main flow
    "reject": (1540, 370),
    "rejection_end": (1740, 392),
    "reimbursement": (1580, 230),
    "notification": (1780, 230),
    "end": (1980, 252),
}


INVOICE_PROCESSING = Archetype(
    name="invoice_processing",
    matches=is_invoice_processing,
    build=build_invoice_processing,
    layout_table=INVOICE_LAYOUT,
    description="Accounts payable invoice approval with three-way match and threshold routing",
)

EXPENSE_REIMBURSEMENT = Archetype(
    name="expense_reimbursement",
    matches=is_expense_reimbursement,
    build=build_expense_reimbursement,
    layout_table=EXPENSE_LAYOUT,
    description="Employee expense claim with documentation, approval and policy checks",
)

# Match order is significant: first match wins.
DEFAULT_ARCHETYPES: Tuple[Archetype, ...] = (INVOICE_PROCESSING, EXPENSE_REIMBURSEMENT)


def match_archetype(
    description: ProcessDescription, archetypes: Sequence[Archetype] = DEFAULT_ARCHETYPES
) -> Optional[Archetype]:
    """Return the first archetype whose predicate accepts ``description``."""
    for archetype in archetypes:
        if archetype.matches(description):
            logger.debug(f"Process '{description.name}' matched archetype '{archetype.name}'")
            return archetype
    return None


def layout_tables(archetypes: Sequence[Archetype] = DEFAULT_ARCHETYPES) -> Dict[str, LayoutTable]:
    return {a.name: a.layout_table for a in archetypes if a.layout_table}


def archetype_names(archetypes: Sequence[Archetype] = DEFAULT_ARCHETYPES) -> List[str]:
    return [a.name for a in archetypes]


__all__ = [
    "Archetype",
    "DEFAULT_ARCHETYPES",
    "EXPENSE_KEYWORDS",
    "EXPENSE_REIMBURSEMENT",
    "INVOICE_PROCESSING",
    "LayoutTable",
    "archetype_names",
    "build_expense_reimbursement",
    "build_invoice_processing",
    "is_expense_reimbursement",
    "is_invoice_processing",
    "layout_tables",
    "match_archetype",
]
