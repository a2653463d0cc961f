"""
Tree layout algorithm.

Positions the visible part of a tree model:
- Leaves take consecutive integer slots in the order they are discovered
- A parent is centred between its outermost children (midpoint of min/max slot)
- Depth grows by one per level below the root

Slots and depths are scaled by the box size plus gaps to give the top-left
corner of each node. Layout is a pure function of the model, the collapsed
ids and the geometry; it never mutates its inputs.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Optional

from .models import LayoutConfig, LayoutResult, Point, TreeModel


DEFAULT_CONFIG = LayoutConfig()


@dataclass
class NodeRecord:
    """Arena entry: a node id and the arena indexes of its visible children."""
    id: str
    children: list[int] = field(default_factory=list)


@dataclass
class _Frame:
    index: int
    depth: int
    next_child: int = 0
    placed: list[int] = field(default_factory=list)  # Children laid out under this node


def build_arena(
    model: TreeModel,
    collapsed: AbstractSet[str] = frozenset()
) -> tuple[list[NodeRecord], dict[str, int]]:
    """
    Flatten the model into an arena of records with index-based children.

    Collapsed nodes get an empty child list, which hides everything below them.

    Returns:
        (records in declaration order, id -> arena index)
    """
    index = {node_id: i for i, node_id in enumerate(model.nodes)}
    records = []
    for node_id, node in model.nodes.items():
        kids = [] if node_id in collapsed else [index[c] for c in node.children]
        records.append(NodeRecord(id=node_id, children=kids))
    return records, index


def visible_ids(model: TreeModel, collapsed: AbstractSet[str] = frozenset()) -> list[str]:
    """Ids reachable from the root without entering a collapsed node's children, in DFS order."""
    records, index = build_arena(model, collapsed)
    root = index[model.root]
    seen = {root}
    order = []
    stack = [root]
    while stack:
        current = stack.pop()
        order.append(records[current].id)
        # Reverse so the first child is visited first
        for child in reversed(records[current].children):
            if child not in seen:
                seen.add(child)
                stack.append(child)
    return order


def layout(
    model: TreeModel,
    collapsed: AbstractSet[str] = frozenset(),
    config: Optional[LayoutConfig] = None
) -> LayoutResult:
    """
    Compute coordinates for every visible node.

    Children are positioned before their parents. Each node is laid out at
    most once: a child already placed elsewhere (multi-parent or cyclic
    input) is not descended into again, so the first visit wins.

    Args:
        model: Parsed tree model
        collapsed: Ids whose descendants are hidden
        config: Box size and gaps (defaults to 130x46 boxes, 36/80 gaps)

    Returns:
        LayoutResult holding coordinates, slots and depths of visible nodes
    """
    config = config or DEFAULT_CONFIG
    records, index = build_arena(model, collapsed)

    root = index[model.root]
    slots: dict[int, float] = {}
    depths: dict[int, int] = {root: 0}
    parents: dict[int, int] = {}
    visit_order = [root]
    next_slot = 0

    stack = [_Frame(index=root, depth=0)]
    while stack:
        frame = stack[-1]
        kids = records[frame.index].children

        if frame.next_child < len(kids):
            child = kids[frame.next_child]
            frame.next_child += 1
            if child in depths:
                continue
            depths[child] = frame.depth + 1
            parents[child] = frame.index
            visit_order.append(child)
            frame.placed.append(child)
            stack.append(_Frame(index=child, depth=frame.depth + 1))
            continue

        stack.pop()
        if frame.placed:
            child_slots = [slots[c] for c in frame.placed]
            slots[frame.index] = (min(child_slots) + max(child_slots)) / 2
        else:
            slots[frame.index] = next_slot
            next_slot += 1

    result = LayoutResult()
    for i in visit_order:
        node_id = records[i].id
        result.slots[node_id] = slots[i]
        result.depths[node_id] = depths[i]
        if i in parents:
            result.parents[node_id] = records[parents[i]].id
        result.coordinates[node_id] = Point(
            x=slots[i] * config.column_width,
            y=depths[i] * config.row_height,
        )
    return result
