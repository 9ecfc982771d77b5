"""
Tests for the data models.

Tests:
- Permissive parsing of process descriptions
- Process graph lookups and structural validation
- Layout geometry helpers
"""

import pytest
from pydantic import ValidationError

from bpmn_mapgen.models.description import (
    GatewayType,
    ProcessDescription,
    Step,
    StepType,
)
from bpmn_mapgen.models.graph import GraphEdge, GraphNode, NodeKind, ProcessGraph
from bpmn_mapgen.models.layout import DiagramLayout, LayoutPosition, LayoutStrategy, Waypoint


# ===========================
# Process description
# ===========================


def test_description_defaults_for_missing_fields():
    desc = ProcessDescription.model_validate({"name": "Bare"})
    assert desc.description == ""
    assert desc.steps == []
    assert desc.gateways == []
    assert desc.start_events == []
    assert desc.end_events == []


def test_description_none_values_become_empty():
    desc = ProcessDescription.model_validate(
        {"name": None, "description": None, "steps": None, "gateways": None}
    )
    assert desc.name == ""
    assert desc.description == ""
    assert desc.steps == []
    assert desc.gateways == []


def test_description_ignores_extra_keys(invoice_data):
    desc = ProcessDescription.model_validate(invoice_data)
    assert not hasattr(desc, "risks")
    assert len(desc.steps) == 5


def test_description_is_frozen(onboarding_description):
    with pytest.raises(ValidationError):
        onboarding_description.name = "Changed"


def test_step_type_parsing():
    assert Step.model_validate({"name": "a", "type": "userTask"}).type == StepType.USER_TASK
    assert Step.model_validate({"name": "a", "type": "user_task"}).type == StepType.USER_TASK
    assert Step.model_validate({"name": "a", "type": "ServiceTask"}).type == StepType.SERVICE_TASK
    assert Step.model_validate({"name": "a", "type": "gateway"}).type == StepType.GATEWAY


def test_step_unknown_type_falls_back_to_task():
    assert Step.model_validate({"name": "a", "type": "subProcess"}).type == StepType.TASK
    assert Step.model_validate({"name": "a", "type": None}).type == StepType.TASK


def test_step_empty_id_becomes_none():
    assert Step.model_validate({"name": "a", "id": ""}).id is None
    assert Step.model_validate({"name": "a", "id": 7}).id == "7"


def test_step_list_fields_are_coerced():
    step = Step.model_validate({"name": "a", "inputs": "Invoice", "outputs": [None, "PO"]})
    assert step.inputs == ["Invoice"]
    assert step.outputs == ["PO"]


def test_gateway_unknown_type_falls_back_to_exclusive():
    desc = ProcessDescription.model_validate(
        {"name": "p", "gateways": [{"name": "g", "type": "complex", "outcomes": ["a", "b"]}]}
    )
    assert desc.gateways[0].type == GatewayType.EXCLUSIVE
    assert desc.gateways[0].outcomes == ["a", "b"]


def test_events_accept_bare_strings():
    desc = ProcessDescription.model_validate(
        {"name": "p", "start_events": ["Order received"], "end_events": "Order shipped"}
    )
    assert desc.start_label == "Order received"
    assert desc.end_label == "Order shipped"


def test_event_labels_default():
    desc = ProcessDescription.model_validate({"name": "p", "start_events": [{"name": ""}]})
    assert desc.start_label == "Start"
    assert desc.end_label == "End"


def test_none_steps_are_dropped():
    desc = ProcessDescription.model_validate({"name": "p", "steps": [None, {"name": "a"}]})
    assert [s.name for s in desc.steps] == ["a"]


def test_bare_string_steps_become_named_steps():
    desc = ProcessDescription.model_validate({"name": "p", "steps": ["Collect ID", "Verify"]})
    assert [s.name for s in desc.steps] == ["Collect ID", "Verify"]
    assert all(s.type == StepType.TASK for s in desc.steps)


def test_malformed_collections_are_dropped():
    desc = ProcessDescription.model_validate(
        {
            "name": "p",
            "steps": "not a list",
            "gateways": [3, {"name": "g", "outcomes": 5}],
            "start_events": 12,
        }
    )
    assert desc.steps == []
    assert [g.name for g in desc.gateways] == ["g"]
    assert desc.gateways[0].outcomes == []
    assert desc.start_events == []


@pytest.mark.parametrize("data", [None, "text", ["a"], 7])
def test_coerce_falls_back_to_empty_description(data):
    assert ProcessDescription.coerce(data) == ProcessDescription()


def test_coerce_passes_models_through(onboarding_description):
    assert ProcessDescription.coerce(onboarding_description) is onboarding_description


# ===========================
# Process graph
# ===========================


def _node(node_id: str, kind: NodeKind, label: str = "") -> GraphNode:
    return GraphNode(id=node_id, element_id=f"{node_id}_tok", kind=kind, label=label or node_id)


@pytest.fixture
def branching_graph():
    """start -> gw -> (a | b) -> end_a / end_b."""
    return ProcessGraph(
        name="Branching",
        nodes=[
            _node("start", NodeKind.START_EVENT),
            _node("gw", NodeKind.EXCLUSIVE_GATEWAY),
            _node("a", NodeKind.TASK),
            _node("b", NodeKind.TASK),
            _node("end_a", NodeKind.END_EVENT),
            _node("end_b", NodeKind.END_EVENT),
        ],
        edges=[
            GraphEdge(source_id="start", target_id="gw"),
            GraphEdge(source_id="gw", target_id="a", condition="Yes"),
            GraphEdge(source_id="gw", target_id="b", condition="No"),
            GraphEdge(source_id="a", target_id="end_a"),
            GraphEdge(source_id="b", target_id="end_b"),
        ],
    )


def test_graph_lookups(branching_graph):
    assert branching_graph.get_node("gw").kind == NodeKind.EXCLUSIVE_GATEWAY
    assert branching_graph.get_node("missing") is None
    assert len(branching_graph.get_outgoing_edges("gw")) == 2
    assert len(branching_graph.get_incoming_edges("gw")) == 1
    assert [n.id for n in branching_graph.get_start_nodes()] == ["start"]
    assert {n.id for n in branching_graph.get_end_nodes()} == {"end_a", "end_b"}
    assert branching_graph.has_gateways()


def test_graph_find_all_paths(branching_graph):
    paths = branching_graph.find_all_paths()
    assert [[n.id for n in p] for p in paths] == [
        ["start", "gw", "a", "end_a"],
        ["start", "gw", "b", "end_b"],
    ]


def test_valid_graph_passes_validation(branching_graph):
    is_valid, errors = branching_graph.validate_structure()
    assert is_valid, errors


def test_validation_detects_dangling_edge():
    graph = ProcessGraph(
        nodes=[_node("start", NodeKind.START_EVENT), _node("end", NodeKind.END_EVENT)],
        edges=[GraphEdge(source_id="start", target_id="end"), GraphEdge(source_id="start", target_id="ghost")],
    )
    is_valid, errors = graph.validate_structure()
    assert not is_valid
    assert any("ghost" in e for e in errors)


def test_validation_detects_missing_start():
    graph = ProcessGraph(
        nodes=[_node("t", NodeKind.TASK), _node("end", NodeKind.END_EVENT)],
        edges=[GraphEdge(source_id="t", target_id="end")],
    )
    is_valid, errors = graph.validate_structure()
    assert not is_valid
    assert any("start" in e for e in errors)


def test_validation_detects_dead_end_and_unreachable():
    graph = ProcessGraph(
        nodes=[
            _node("start", NodeKind.START_EVENT),
            _node("t", NodeKind.TASK),
            _node("orphan", NodeKind.TASK),
            _node("end", NodeKind.END_EVENT),
        ],
        edges=[GraphEdge(source_id="start", target_id="t"), GraphEdge(source_id="orphan", target_id="end")],
    )
    is_valid, errors = graph.validate_structure()
    assert not is_valid
    assert any("no outgoing" in e for e in errors)
    assert any("unreachable" in e for e in errors)


def test_validation_detects_duplicate_conditions():
    graph = ProcessGraph(
        nodes=[
            _node("start", NodeKind.START_EVENT),
            _node("gw", NodeKind.EXCLUSIVE_GATEWAY),
            _node("e1", NodeKind.END_EVENT),
            _node("e2", NodeKind.END_EVENT),
        ],
        edges=[
            GraphEdge(source_id="start", target_id="gw"),
            GraphEdge(source_id="gw", target_id="e1", condition="Yes"),
            GraphEdge(source_id="gw", target_id="e2", condition="Yes"),
        ],
    )
    is_valid, errors = graph.validate_structure()
    assert not is_valid
    assert any("duplicate condition" in e for e in errors)


def test_node_kind_categories():
    assert NodeKind.START_EVENT.is_event
    assert NodeKind.PARALLEL_GATEWAY.is_gateway
    assert NodeKind.MANUAL_TASK.is_task
    assert not NodeKind.INCLUSIVE_GATEWAY.is_task


# ===========================
# Layout geometry
# ===========================


def test_position_anchors():
    pos = LayoutPosition(x=100, y=200, width=120, height=80)
    assert pos.center == Waypoint(x=160, y=240)
    assert pos.right_center == Waypoint(x=220, y=240)
    assert pos.left_center == Waypoint(x=100, y=240)


def test_position_overlap():
    a = LayoutPosition(x=0, y=0, width=100, height=100)
    assert a.overlaps(LayoutPosition(x=50, y=50, width=100, height=100))
    # Touching edges do not overlap
    assert not a.overlaps(LayoutPosition(x=100, y=0, width=50, height=50))
    assert not a.overlaps(LayoutPosition(x=300, y=300, width=10, height=10))


def test_position_boundary_check():
    pos = LayoutPosition(x=0, y=0, width=100, height=50)
    assert pos.contains_on_boundary(Waypoint(x=100, y=25))
    assert pos.contains_on_boundary(Waypoint(x=0, y=25))
    assert not pos.contains_on_boundary(Waypoint(x=50, y=25))
    assert not pos.contains_on_boundary(Waypoint(x=150, y=25))


def test_position_rejects_zero_size():
    with pytest.raises(ValidationError):
        LayoutPosition(x=0, y=0, width=0, height=10)


def test_diagram_layout_bounds_and_overlaps():
    layout = DiagramLayout(
        strategy=LayoutStrategy.LINEAR,
        positions={
            "a": LayoutPosition(x=10, y=20, width=100, height=80),
            "b": LayoutPosition(x=50, y=40, width=100, height=80),
            "c": LayoutPosition(x=400, y=20, width=36, height=36),
        },
    )
    assert layout.bounds() == (10, 20, 436, 120)
    assert layout.overlapping_pairs() == [("a", "b")]


def test_empty_layout_bounds():
    assert DiagramLayout(strategy=LayoutStrategy.LINEAR).bounds() == (0.0, 0.0, 0.0, 0.0)
