"""
Core data models for tree diagrams.

These models define the canonical schema shared by the parser, the layout
engine and the renderer:
- Nodes with an id, an effective title and ordered child ids
- Edges between nodes (using source/target naming convention)
- The parsed tree model with its chosen root
- Layout geometry and layout results

Field Naming Convention:
- Edges use `source` and `target`
- For backward compatibility, `from`/`to` are accepted on input and converted
"""

from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator


class TreeNode(BaseModel):
    """A node in the tree."""
    id: str
    title: str = ""
    children: list[str] = Field(default_factory=list)  # Edge declaration order

    @model_validator(mode='after')
    def default_title(self) -> "TreeNode":
        """An empty title falls back to the node id."""
        if not self.title:
            self.title = self.id
        return self

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


class Edge(BaseModel):
    """
    A directed edge from a parent node to a child node.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input for backward compatibility.
    """
    source: str
    target: str
    line: int = 0  # 1-based source line the edge was declared on

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data


class TreeModel(BaseModel):
    """
    The complete parse result.

    `nodes` preserves declaration order. Every id referenced by an edge is
    a key of `nodes`; the parser never builds a model otherwise.
    """
    nodes: dict[str, TreeNode]
    edges: list[Edge] = Field(default_factory=list)
    root: str

    def get_node(self, node_id: str) -> Optional[TreeNode]:
        """Get a node by ID."""
        return self.nodes.get(node_id)

    def node_ids(self) -> list[str]:
        """Node ids in declaration order."""
        return list(self.nodes)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "root": self.root,
            "nodes": [n.model_dump() for n in self.nodes.values()],
            "edges": [e.model_dump() for e in self.edges],
        }


class Point(BaseModel):
    """Top-left corner of a laid-out node box."""
    x: float
    y: float


class LayoutConfig(BaseModel):
    """Box dimensions and gaps used to turn slots and depths into coordinates."""
    node_width: float = 130
    node_height: float = 46
    x_gap: float = 36
    y_gap: float = 80

    @property
    def column_width(self) -> float:
        return self.node_width + self.x_gap

    @property
    def row_height(self) -> float:
        return self.node_height + self.y_gap


class LayoutResult(BaseModel):
    """
    Output of one layout pass.

    Only visible nodes have entries. `coordinates` iterates in the order
    nodes were first visited (depth-first, parents before children).
    """
    coordinates: dict[str, Point] = Field(default_factory=dict)
    slots: dict[str, float] = Field(default_factory=dict)
    depths: dict[str, int] = Field(default_factory=dict)
    parents: dict[str, str] = Field(default_factory=dict)  # Parent each node was laid out under; root absent

    @property
    def visible(self) -> frozenset[str]:
        return frozenset(self.coordinates)

    def to_json_dict(self) -> dict:
        return {
            node_id: {"x": point.x, "y": point.y}
            for node_id, point in self.coordinates.items()
        }
