"""
Diagram Layout Model

Geometry produced by the layout engine: one bounding box per node and one
waypoint list per edge, in BPMN model-space units.
"""

from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, Field


class LayoutStrategy(str, Enum):
    """Layout strategies understood by the layout engine."""

    AUTO = "auto"
    LINEAR = "linear"
    LANES = "lanes"
    LAYERED = "layered"
    ARCHETYPE = "archetype"


class Waypoint(BaseModel):
    """A point along a connection path."""

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")


class LayoutPosition(BaseModel):
    """Bounding box of a laid-out node."""

    x: float = Field(..., description="X coordinate of the top-left corner")
    y: float = Field(..., description="Y coordinate of the top-left corner")
    width: float = Field(..., gt=0, description="Element width")
    height: float = Field(..., gt=0, description="Element height")

    @property
    def center(self) -> Waypoint:
        return Waypoint(x=self.x + self.width / 2, y=self.y + self.height / 2)

    @property
    def right_center(self) -> Waypoint:
        return Waypoint(x=self.x + self.width, y=self.y + self.height / 2)

    @property
    def left_center(self) -> Waypoint:
        return Waypoint(x=self.x, y=self.y + self.height / 2)

    def overlaps(self, other: "LayoutPosition") -> bool:
        """Whether two boxes share interior area (touching edges do not count)."""
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )

    def contains_on_boundary(self, point: Waypoint, tolerance: float = 0.5) -> bool:
        """Whether ``point`` lies on the outline of this box."""
        inside_x = self.x - tolerance <= point.x <= self.x + self.width + tolerance
        inside_y = self.y - tolerance <= point.y <= self.y + self.height + tolerance
        on_vertical = abs(point.x - self.x) <= tolerance or abs(point.x - self.x - self.width) <= tolerance
        on_horizontal = abs(point.y - self.y) <= tolerance or abs(point.y - self.y - self.height) <= tolerance
        return inside_x and inside_y and (on_vertical or on_horizontal)


class DiagramLayout(BaseModel):
    """Positions for all nodes and routes for all edges of one graph."""

    strategy: LayoutStrategy = Field(..., description="Strategy that produced the layout")
    positions: Dict[str, LayoutPosition] = Field(
        default_factory=dict, description="Node internal id -> bounding box"
    )
    edge_waypoints: Dict[int, List[Waypoint]] = Field(
        default_factory=dict, description="Edge index -> ordered waypoints"
    )

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (min_x, min_y, max_x, max_y) over all node boxes."""
        if not self.positions:
            return (0.0, 0.0, 0.0, 0.0)
        boxes = list(self.positions.values())
        return (
            min(b.x for b in boxes),
            min(b.y for b in boxes),
            max(b.x + b.width for b in boxes),
            max(b.y + b.height for b in boxes),
        )

    def overlapping_pairs(self) -> List[Tuple[str, str]]:
        """Pairs of node ids whose boxes overlap."""
        items = list(self.positions.items())
        pairs: List[Tuple[str, str]] = []
        for i, (id_a, box_a) in enumerate(items):
            for id_b, box_b in items[i + 1:]:
                if box_a.overlaps(box_b):
                    pairs.append((id_a, id_b))
        return pairs


__all__ = [
    "DiagramLayout",
    "LayoutPosition",
    "LayoutStrategy",
    "Waypoint",
]
