"""
Stage 2: Diagram Layout

Assigns a bounding box to every node and a waypoint route to every edge.

Strategies:
- linear: one baseline, left to right, fixed spacing
- lanes: one horizontal lane per actor, one column per node
- layered: columns by longest-path rank, one row per gateway branch
- archetype: role-keyed coordinate tables shipped with each archetype,
  unmatched nodes parked on a row below the diagram

Non-overlap is guaranteed by construction: column spacing always exceeds
the widest node plus a margin, and rows are taller than any node.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from bpmn_mapgen.core.errors import LayoutIntegrityError
from bpmn_mapgen.core.observability import Timer, span
from bpmn_mapgen.models.graph import GraphNode, NodeKind, ProcessGraph
from bpmn_mapgen.models.layout import DiagramLayout, LayoutPosition, LayoutStrategy, Waypoint
from bpmn_mapgen.stages.archetypes import LayoutTable, layout_tables

logger = logging.getLogger(__name__)

# Element sizes
EVENT_SIZE = 36
GATEWAY_SIZE = 50
TASK_WIDTH = 120
TASK_HEIGHT = 80
LANE_TASK_WIDTH = 100

# Linear layout
LINEAR_START_X = 150
LINEAR_BASE_Y = 200
LINEAR_SPACING = 200
TASK_Y_OFFSET = -20
GATEWAY_Y_OFFSET = -10

# Layered / lane layout
COLUMN_SPACING = 200
ROW_SPACING = 150
LAYERED_CENTER_Y = 220
LANE_TOP = 100
LANE_HEIGHT = 150
FALLBACK_MARGIN = 100

# Waypoint routing thresholds
ALIGN_MAX_DY = 10
ALIGN_MIN_DX = 50
BRANCH_MIN_DY = 80
BRANCH_MIN_DX = 100
BRANCH_BEND_RATIO = 0.6


def element_size(kind: NodeKind, task_width: float = TASK_WIDTH) -> Tuple[float, float]:
    """Width and height of a node of the given kind."""
    if kind.is_event:
        return EVENT_SIZE, EVENT_SIZE
    if kind.is_gateway:
        return GATEWAY_SIZE, GATEWAY_SIZE
    return task_width, TASK_HEIGHT


def calculate_waypoints(source: LayoutPosition, target: LayoutPosition) -> List[Waypoint]:
    """
    Route an edge from the right-center of ``source`` to the left-center of ``target``.

    Three cases, in priority order:
    - nearly level and far apart: straight segment at the source's y
    - far apart in both directions: orthogonal route bending at 60% of dx
    - otherwise: direct segment
    """
    start = source.right_center
    end = target.left_center
    dy = abs(end.y - start.y)
    dx = abs(end.x - start.x)

    if dy <= ALIGN_MAX_DY and dx > ALIGN_MIN_DX:
        return [Waypoint(x=start.x, y=start.y), Waypoint(x=end.x, y=start.y)]

    if dy > BRANCH_MIN_DY and dx > BRANCH_MIN_DX:
        mid_x = start.x + (end.x - start.x) * BRANCH_BEND_RATIO
        return [
            start,
            Waypoint(x=mid_x, y=start.y),
            Waypoint(x=mid_x, y=end.y),
            end,
        ]

    return [start, end]


class LayoutEngine:
    """Computes diagram geometry for a process graph.

    Args:
        strategy: Requested strategy; ``auto`` picks one from graph shape
        tables: Archetype name -> role-keyed layout table
    """

    def __init__(
        self,
        strategy: LayoutStrategy = LayoutStrategy.AUTO,
        tables: Optional[Mapping[str, LayoutTable]] = None,
    ):
        self.strategy = LayoutStrategy(strategy)
        self.tables = dict(tables) if tables is not None else layout_tables()

    def layout(self, graph: ProcessGraph) -> DiagramLayout:
        """Lay out every node and route every edge of ``graph``."""
        strategy = self.select_strategy(graph)

        with span("bpmn.layout", {"layout.strategy": strategy.value}), Timer("layout"):
            if strategy == LayoutStrategy.ARCHETYPE:
                positions = self._archetype_positions(graph, self.tables[graph.archetype])
            elif strategy == LayoutStrategy.LAYERED:
                positions = self._layered_positions(graph)
            elif strategy == LayoutStrategy.LANES:
                positions = self._lane_positions(graph)
            else:
                positions = self._linear_positions(graph)

            edge_waypoints: Dict[int, List[Waypoint]] = {}
            for index, edge in enumerate(graph.edges):
                source = positions.get(edge.source_id)
                target = positions.get(edge.target_id)
                if source is None or target is None:
                    raise LayoutIntegrityError(
                        f"Edge {index} ({edge.source_id} -> {edge.target_id}) "
                        f"connects a node without a position"
                    )
                edge_waypoints[index] = calculate_waypoints(source, target)

            logger.debug(f"Layout computed with strategy={strategy.value}, nodes={len(positions)}")
            return DiagramLayout(strategy=strategy, positions=positions, edge_waypoints=edge_waypoints)

    def select_strategy(self, graph: ProcessGraph) -> LayoutStrategy:
        """Resolve the requested strategy against the graph's shape."""
        if self.strategy == LayoutStrategy.AUTO:
            if graph.has_gateways():
                if graph.archetype in self.tables:
                    return LayoutStrategy.ARCHETYPE
                return LayoutStrategy.LAYERED
            return LayoutStrategy.LINEAR

        if self.strategy == LayoutStrategy.LANES:
            if graph.has_gateways() or len(_actors(graph)) < 2:
                logger.debug("Lane layout needs a gateway-free graph with two or more actors")
                return LayoutStrategy.LINEAR
            return LayoutStrategy.LANES

        if self.strategy == LayoutStrategy.ARCHETYPE and graph.archetype not in self.tables:
            return LayoutStrategy.LAYERED

        return self.strategy

    # ===========================
    # Strategies
    # ===========================

    @staticmethod
    def _linear_positions(graph: ProcessGraph) -> Dict[str, LayoutPosition]:
        positions: Dict[str, LayoutPosition] = {}
        x = LINEAR_START_X
        for node in graph.nodes:
            width, height = element_size(node.kind)
            y = LINEAR_BASE_Y
            if node.kind.is_task:
                y += TASK_Y_OFFSET
            elif node.kind.is_gateway:
                y += GATEWAY_Y_OFFSET
            positions[node.id] = LayoutPosition(x=x, y=y, width=width, height=height)
            x += LINEAR_SPACING
        return positions

    @staticmethod
    def _lane_positions(graph: ProcessGraph) -> Dict[str, LayoutPosition]:
        lanes = {actor: index for index, actor in enumerate(_actors(graph))}
        positions: Dict[str, LayoutPosition] = {}
        lane = 0
        for column, node in enumerate(graph.nodes):
            # Nodes without an actor stay in the lane of their predecessor
            if node.actor:
                lane = lanes[node.actor]
            width, height = element_size(node.kind, LANE_TASK_WIDTH)
            center_x = LINEAR_START_X + column * COLUMN_SPACING + LANE_TASK_WIDTH / 2
            center_y = LANE_TOP + lane * LANE_HEIGHT + LANE_HEIGHT / 2
            positions[node.id] = _centered(center_x, center_y, width, height)
        return positions

    @staticmethod
    def _layered_positions(graph: ProcessGraph) -> Dict[str, LayoutPosition]:
        ranks = _longest_path_ranks(graph)
        rows = _branch_rows(graph)
        positions: Dict[str, LayoutPosition] = {}
        for node in graph.nodes:
            width, height = element_size(node.kind)
            center_x = LINEAR_START_X + ranks[node.id] * COLUMN_SPACING + TASK_WIDTH / 2
            center_y = LAYERED_CENTER_Y + rows[node.id] * ROW_SPACING
            positions[node.id] = _centered(center_x, center_y, width, height)
        return positions

    def _archetype_positions(
        self, graph: ProcessGraph, table: LayoutTable
    ) -> Dict[str, LayoutPosition]:
        positions: Dict[str, LayoutPosition] = {}
        unmatched: List[GraphNode] = []
        for node in graph.nodes:
            coords = table.get(node.role) if node.role else None
            if coords is None:
                unmatched.append(node)
                continue
            width, height = element_size(node.kind)
            positions[node.id] = LayoutPosition(x=coords[0], y=coords[1], width=width, height=height)

        if unmatched:
            logger.warning(
                f"{len(unmatched)} node(s) have no entry in the '{graph.archetype}' layout table"
            )
            _, _, _, max_y = _bounds(positions.values())
            x = LINEAR_START_X
            for node in unmatched:
                width, height = element_size(node.kind)
                positions[node.id] = LayoutPosition(
                    x=x, y=max_y + FALLBACK_MARGIN, width=width, height=height
                )
                x += LINEAR_SPACING
        return positions


# ===========================
# Helpers
# ===========================


def _centered(center_x: float, center_y: float, width: float, height: float) -> LayoutPosition:
    return LayoutPosition(x=center_x - width / 2, y=center_y - height / 2, width=width, height=height)


def _bounds(boxes) -> Tuple[float, float, float, float]:
    boxes = list(boxes)
    if not boxes:
        return (0.0, 0.0, 0.0, float(LINEAR_BASE_Y))
    return (
        min(b.x for b in boxes),
        min(b.y for b in boxes),
        max(b.x + b.width for b in boxes),
        max(b.y + b.height for b in boxes),
    )


def _actors(graph: ProcessGraph) -> List[str]:
    actors: List[str] = []
    for node in graph.nodes:
        if node.actor and node.actor not in actors:
            actors.append(node.actor)
    return actors


def _longest_path_ranks(graph: ProcessGraph) -> Dict[str, int]:
    """Column index per node: length of the longest path from a source node."""
    indegree = {node.id: len(graph.get_incoming_edges(node.id)) for node in graph.nodes}
    ranks = {node.id: 0 for node in graph.nodes}
    queue = [node.id for node in graph.nodes if indegree[node.id] == 0]

    processed = 0
    while queue:
        current = queue.pop(0)
        processed += 1
        for edge in graph.get_outgoing_edges(current):
            ranks[edge.target_id] = max(ranks[edge.target_id], ranks[current] + 1)
            indegree[edge.target_id] -= 1
            if indegree[edge.target_id] == 0:
                queue.append(edge.target_id)

    if processed != len(graph.nodes):
        # Cycles: fall back to input order for the nodes left over
        for order, node in enumerate(graph.nodes):
            if indegree[node.id] > 0:
                ranks[node.id] = max(ranks[node.id], order)
    return ranks


def _branch_rows(graph: ProcessGraph) -> Dict[str, int]:
    """
    Row index per node.

    The first outgoing branch of a node continues in its row; every further
    branch opens a fresh row below all rows used so far. Nodes reached a
    second time (merge points) keep their first row.
    """
    rows: Dict[str, int] = {}
    next_row = 1
    starts = graph.get_start_nodes() or graph.nodes[:1]
    stack: List[Tuple[str, int]] = [(node.id, 0) for node in reversed(starts)]

    while stack:
        node_id, row = stack.pop()
        if node_id in rows:
            continue
        rows[node_id] = row
        outgoing = graph.get_outgoing_edges(node_id)
        branch_rows = [row]
        for _ in outgoing[1:]:
            branch_rows.append(next_row)
            next_row += 1
        # Push in reverse so the first branch is visited first
        for edge, branch_row in reversed(list(zip(outgoing, branch_rows))):
            stack.append((edge.target_id, branch_row))

    for node in graph.nodes:
        if node.id not in rows:
            rows[node.id] = next_row
            next_row += 1
    return rows


__all__ = [
    "EVENT_SIZE",
    "GATEWAY_SIZE",
    "LayoutEngine",
    "TASK_HEIGHT",
    "TASK_WIDTH",
    "calculate_waypoints",
    "element_size",
]
