"""
Renderer - Turn a model and collapse state into draw commands.

The drawing surface is external: anything that can draw a rounded box with a
label and an orthogonal connector can consume a Drawing. Connectors are
listed before boxes so boxes paint on top.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Optional

from .layout import DEFAULT_CONFIG, layout
from .models import LayoutConfig, Point, TreeModel


COLLAPSED_MARK = " [+]"
EXPANDED_MARK = " [–]"

VIEW_PADDING = 30
MIN_VIEW_WIDTH = 200
MIN_VIEW_HEIGHT = 150


@dataclass
class NodeCommand:
    """Draw one node box."""
    id: str
    title: str
    x: float
    y: float
    width: float
    height: float
    collapsed: bool = False
    has_children: bool = False

    @property
    def label(self) -> str:
        """Title plus the expand/collapse indicator."""
        if self.collapsed:
            return self.title + COLLAPSED_MARK
        if self.has_children:
            return self.title + EXPANDED_MARK
        return self.title

    def to_dict(self) -> dict:
        return {
            "kind": "node",
            "id": self.id,
            "title": self.title,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "collapsed": self.collapsed,
            "has_children": self.has_children,
        }


@dataclass
class EdgeCommand:
    """Draw one parent -> child connector as a polyline."""
    source: str
    target: str
    points: list[tuple[float, float]]

    def to_dict(self) -> dict:
        return {
            "kind": "edge",
            "source": self.source,
            "target": self.target,
            "points": [list(p) for p in self.points],
        }


@dataclass
class Drawing:
    """Everything a surface needs to draw the current diagram."""
    edges: list[EdgeCommand] = field(default_factory=list)
    nodes: list[NodeCommand] = field(default_factory=list)
    view_box: Optional[tuple[float, float, float, float]] = None  # x, y, width, height

    @property
    def commands(self) -> list:
        return [*self.edges, *self.nodes]

    def to_dict(self) -> dict:
        return {
            "view_box": list(self.view_box) if self.view_box else None,
            "commands": [c.to_dict() for c in self.commands],
        }


def connector_points(
    parent: Point,
    child: Point,
    config: LayoutConfig = DEFAULT_CONFIG
) -> list[tuple[float, float]]:
    """
    Orthogonal connector: down from the parent's bottom centre to the
    midpoint between the rows, across, then down to the child's top centre.
    """
    parent_x = parent.x + config.node_width / 2
    parent_bottom = parent.y + config.node_height
    child_x = child.x + config.node_width / 2
    child_top = child.y
    mid_y = (parent_bottom + child_top) / 2
    return [
        (parent_x, parent_bottom),
        (parent_x, mid_y),
        (child_x, mid_y),
        (child_x, child_top),
    ]


def fit_view_box(
    nodes: list[NodeCommand],
    padding: float = VIEW_PADDING
) -> Optional[tuple[float, float, float, float]]:
    """Bounding box of all node boxes plus padding, never smaller than 200x150."""
    if not nodes:
        return None

    left = min(n.x for n in nodes)
    top = min(n.y for n in nodes)
    right = max(n.x + n.width for n in nodes)
    bottom = max(n.y + n.height for n in nodes)

    width = max(MIN_VIEW_WIDTH, right - left + 2 * padding)
    height = max(MIN_VIEW_HEIGHT, bottom - top + 2 * padding)
    return (left - padding, top - padding, width, height)


def render(
    model: TreeModel,
    collapsed: AbstractSet[str] = frozenset(),
    config: Optional[LayoutConfig] = None
) -> Drawing:
    """
    Lay out the model and produce draw commands for the visible nodes.

    Args:
        model: Parsed tree model
        collapsed: Ids whose descendants are hidden
        config: Box size and gaps

    Returns:
        A Drawing with connectors first, then node boxes
    """
    config = config or DEFAULT_CONFIG
    result = layout(model, collapsed, config)
    coords = result.coordinates
    drawing = Drawing()

    for node_id, point in coords.items():
        for child_id in model.nodes[node_id].children:
            if child_id not in coords:
                continue
            drawing.edges.append(EdgeCommand(
                source=node_id,
                target=child_id,
                points=connector_points(point, coords[child_id], config),
            ))

    for node_id, point in coords.items():
        node = model.nodes[node_id]
        drawing.nodes.append(NodeCommand(
            id=node_id,
            title=node.title,
            x=point.x,
            y=point.y,
            width=config.node_width,
            height=config.node_height,
            collapsed=node_id in collapsed,
            has_children=node.has_children,
        ))

    drawing.view_box = fit_view_box(drawing.nodes)
    return drawing
