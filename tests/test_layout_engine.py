"""
Tests for Stage 2 (Layout).

Tests:
- Strategy selection
- Linear, lane, layered and archetype layouts
- Non-overlap of node boxes
- Waypoint routing rules
"""

import pytest

from bpmn_mapgen.core.errors import LayoutIntegrityError
from bpmn_mapgen.models.description import ProcessDescription
from bpmn_mapgen.models.graph import GraphEdge, GraphNode, NodeKind, ProcessGraph
from bpmn_mapgen.models.layout import LayoutPosition, LayoutStrategy, Waypoint
from bpmn_mapgen.stages.archetypes import INVOICE_LAYOUT
from bpmn_mapgen.stages.graph_builder import ProcessGraphBuilder
from bpmn_mapgen.stages.layout_engine import (
    EVENT_SIZE,
    GATEWAY_SIZE,
    TASK_HEIGHT,
    TASK_WIDTH,
    LayoutEngine,
    calculate_waypoints,
    element_size,
)

from conftest import make_linear_description

TOKEN = "tok12345"


def _build(description: ProcessDescription, honor_gateways: bool = False) -> ProcessGraph:
    return ProcessGraphBuilder(honor_gateways=honor_gateways).build(description, TOKEN)


def _assert_routes_touch_boundaries(graph, layout):
    for index, edge in enumerate(graph.edges):
        points = layout.edge_waypoints[index]
        assert len(points) >= 2
        assert layout.positions[edge.source_id].contains_on_boundary(points[0])
        assert layout.positions[edge.target_id].contains_on_boundary(points[-1])


@pytest.fixture
def engine():
    return LayoutEngine()


@pytest.fixture
def branching_description():
    return ProcessDescription.model_validate(
        {
            "name": "Ticket Triage",
            "steps": [
                {"name": "Receive Ticket"},
                {"id": "G1", "name": "Severity?", "type": "gateway"},
                {"name": "Resolve"},
                {"id": "G2", "name": "Customer Happy?", "type": "gateway"},
                {"name": "Close"},
            ],
            "gateways": [
                {"id": "G1", "outcomes": ["Low", "High", "Critical"]},
                {"id": "G2", "outcomes": ["Yes", "No"]},
            ],
        }
    )


@pytest.fixture
def multi_actor_description():
    return ProcessDescription.model_validate(
        {
            "name": "Purchase Request",
            "steps": [
                {"name": "Request", "actor": "Employee"},
                {"name": "Approve", "actor": "Manager"},
                {"name": "Order", "actor": "Procurement"},
                {"name": "Confirm", "actor": "Employee"},
                {"name": "File"},
            ],
        }
    )


# ===========================
# Sizes and routing
# ===========================


def test_element_sizes():
    assert element_size(NodeKind.START_EVENT) == (EVENT_SIZE, EVENT_SIZE)
    assert element_size(NodeKind.EXCLUSIVE_GATEWAY) == (GATEWAY_SIZE, GATEWAY_SIZE)
    assert element_size(NodeKind.USER_TASK) == (TASK_WIDTH, TASK_HEIGHT)
    assert element_size(NodeKind.TASK, 100) == (100, TASK_HEIGHT)


def test_waypoints_aligned_nodes():
    source = LayoutPosition(x=100, y=200, width=100, height=80)  # right-center (200, 240)
    target = LayoutPosition(x=300, y=205, width=100, height=80)  # left-center (300, 245)
    points = calculate_waypoints(source, target)
    assert points == [Waypoint(x=200, y=240), Waypoint(x=300, y=240)]


def test_waypoints_orthogonal_branch():
    source = LayoutPosition(x=100, y=200, width=100, height=80)  # (200, 240)
    target = LayoutPosition(x=400, y=60, width=100, height=80)  # (400, 100)
    points = calculate_waypoints(source, target)
    assert points == [
        Waypoint(x=200, y=240),
        Waypoint(x=320, y=240),
        Waypoint(x=320, y=100),
        Waypoint(x=400, y=100),
    ]


def test_waypoints_direct_segment():
    source = LayoutPosition(x=100, y=200, width=100, height=80)  # (200, 240)
    target = LayoutPosition(x=260, y=160, width=100, height=80)  # (260, 200)
    points = calculate_waypoints(source, target)
    assert points == [Waypoint(x=200, y=240), Waypoint(x=260, y=200)]


def test_waypoints_close_but_aligned_is_direct():
    # |dx| <= 50: straight but not forced to the source's y
    source = LayoutPosition(x=0, y=0, width=100, height=80)  # (100, 40)
    target = LayoutPosition(x=130, y=5, width=100, height=80)  # (130, 45)
    points = calculate_waypoints(source, target)
    assert points == [Waypoint(x=100, y=40), Waypoint(x=130, y=45)]


# ===========================
# Strategy selection
# ===========================


def test_auto_selects_linear_without_gateways(engine, onboarding_description):
    layout = engine.layout(_build(onboarding_description))
    assert layout.strategy == LayoutStrategy.LINEAR


def test_auto_selects_archetype_for_invoice(engine, invoice_description):
    layout = engine.layout(_build(invoice_description))
    assert layout.strategy == LayoutStrategy.ARCHETYPE


def test_auto_selects_layered_for_generic_gateways(engine, branching_description):
    layout = engine.layout(_build(branching_description, honor_gateways=True))
    assert layout.strategy == LayoutStrategy.LAYERED


def test_lanes_fall_back_to_linear_with_single_actor():
    desc = ProcessDescription.model_validate(
        {"name": "Solo", "steps": [{"name": "a", "actor": "Me"}, {"name": "b", "actor": "Me"}]}
    )
    layout = LayoutEngine(LayoutStrategy.LANES).layout(_build(desc))
    assert layout.strategy == LayoutStrategy.LINEAR


def test_archetype_request_without_table_uses_layered(branching_description):
    layout = LayoutEngine(LayoutStrategy.ARCHETYPE).layout(
        _build(branching_description, honor_gateways=True)
    )
    assert layout.strategy == LayoutStrategy.LAYERED


# ===========================
# Linear layout
# ===========================


def test_linear_positions(engine, onboarding_description):
    graph = _build(onboarding_description)
    layout = engine.layout(graph)

    start, first_task = graph.nodes[0], graph.nodes[1]
    assert layout.positions[start.id] == LayoutPosition(x=150, y=200, width=36, height=36)
    assert layout.positions[first_task.id] == LayoutPosition(x=350, y=180, width=120, height=80)
    xs = [layout.positions[n.id].x for n in graph.nodes]
    assert xs == [150, 350, 550, 750, 950]


@pytest.mark.parametrize("count", [0, 1, 10, 100, 120])
def test_linear_layout_never_overlaps(engine, count):
    graph = _build(make_linear_description(count))
    layout = engine.layout(graph)
    assert len(layout.positions) == count + 2
    assert layout.overlapping_pairs() == []


def test_linear_routes_touch_boundaries(engine, onboarding_description):
    graph = _build(onboarding_description)
    _assert_routes_touch_boundaries(graph, engine.layout(graph))


# ===========================
# Lane layout
# ===========================


def test_lane_layout_rows_per_actor(multi_actor_description):
    graph = _build(multi_actor_description)
    layout = LayoutEngine(LayoutStrategy.LANES).layout(graph)
    assert layout.strategy == LayoutStrategy.LANES

    by_label = {n.label: layout.positions[n.id] for n in graph.nodes}
    assert by_label["Request"].center.y == by_label["Confirm"].center.y
    assert by_label["Request"].center.y < by_label["Approve"].center.y < by_label["Order"].center.y
    # Actorless step stays in the previous step's lane
    assert by_label["File"].center.y == by_label["Confirm"].center.y
    assert by_label["Request"].width == 100
    assert layout.overlapping_pairs() == []
    _assert_routes_touch_boundaries(graph, layout)


# ===========================
# Layered layout
# ===========================


def test_layered_layout_branches_on_separate_rows(engine, branching_description):
    graph = _build(branching_description, honor_gateways=True)
    layout = engine.layout(graph)

    gateway = graph.get_gateway_nodes()[0]
    targets = [layout.positions[e.target_id] for e in graph.get_outgoing_edges(gateway.id)]
    rows = {round(t.center.y) for t in targets}
    assert len(rows) == len(targets)
    # Branch targets share the next column
    assert len({round(t.center.x) for t in targets}) == 1


def test_layered_layout_has_no_overlaps(engine, branching_description):
    graph = _build(branching_description, honor_gateways=True)
    layout = engine.layout(graph)
    assert layout.overlapping_pairs() == []
    _assert_routes_touch_boundaries(graph, layout)


def test_layered_layout_columns_follow_longest_path(engine, branching_description):
    graph = _build(branching_description, honor_gateways=True)
    layout = engine.layout(graph)
    for edge in graph.edges:
        assert layout.positions[edge.source_id].center.x < layout.positions[edge.target_id].center.x


# ===========================
# Archetype layout
# ===========================


def test_invoice_layout_uses_role_table(engine, invoice_description):
    graph = _build(invoice_description)
    layout = engine.layout(graph)
    for node in graph.nodes:
        expected = INVOICE_LAYOUT[node.role]
        assert (layout.positions[node.id].x, layout.positions[node.id].y) == expected


def test_archetype_layouts_have_no_overlaps(engine, invoice_description, expense_description):
    for description in (invoice_description, expense_description):
        graph = _build(description)
        layout = engine.layout(graph)
        assert layout.overlapping_pairs() == []
        _assert_routes_touch_boundaries(graph, layout)


def test_invoice_approval_routes_are_orthogonal(engine, invoice_description):
    graph = _build(invoice_description)
    layout = engine.layout(graph)
    approval = next(n for n in graph.nodes if n.role == "approval_gateway")
    for index, edge in enumerate(graph.edges):
        if edge.source_id != approval.id:
            continue
        points = layout.edge_waypoints[index]
        target = graph.get_node(edge.target_id)
        if target.role == "approval_medium":
            assert len(points) == 2
        else:
            assert len(points) == 4


def test_archetype_unmatched_roles_are_parked_below():
    graph = ProcessGraph(
        name="Partial",
        archetype="partial",
        nodes=[
            GraphNode(id="n1", element_id="s", kind=NodeKind.START_EVENT, role="start"),
            GraphNode(id="n2", element_id="g", kind=NodeKind.EXCLUSIVE_GATEWAY, role="gw"),
            GraphNode(id="n3", element_id="x", kind=NodeKind.TASK, role="unknown"),
            GraphNode(id="n4", element_id="e", kind=NodeKind.END_EVENT),
        ],
        edges=[
            GraphEdge(source_id="n1", target_id="n2"),
            GraphEdge(source_id="n2", target_id="n3", condition="a"),
            GraphEdge(source_id="n2", target_id="n4", condition="b"),
            GraphEdge(source_id="n3", target_id="n4"),
        ],
    )
    table = {"start": (100, 100), "gw": (200, 93)}
    layout = LayoutEngine(tables={"partial": table}).layout(graph)

    assert layout.strategy == LayoutStrategy.ARCHETYPE
    assert layout.positions["n3"].y == 243
    assert layout.positions["n4"].y == 243
    assert layout.overlapping_pairs() == []


def test_missing_position_raises():
    graph = ProcessGraph(
        nodes=[GraphNode(id="a", element_id="a", kind=NodeKind.START_EVENT)],
        edges=[GraphEdge(source_id="a", target_id="ghost")],
    )
    with pytest.raises(LayoutIntegrityError):
        LayoutEngine(LayoutStrategy.LINEAR).layout(graph)


def test_layout_is_deterministic(engine, invoice_description):
    graph = _build(invoice_description)
    assert engine.layout(graph) == engine.layout(graph)
