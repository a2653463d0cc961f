"""
Collapse state helpers.

The collapse set is owned by the caller and outlives individual parses. It is
only changed between layout passes: pruned after each successful parse and
flipped on explicit toggle events.
"""

from typing import Optional

from .models import TreeModel


def prune_collapsed(collapsed: set[str], model: TreeModel) -> set[str]:
    """
    Drop ids that no longer name a node in the model.

    Args:
        collapsed: The caller's collapse set (modified in-place)
        model: The freshly parsed model

    Returns:
        The ids that were removed
    """
    stale = {node_id for node_id in collapsed if node_id not in model.nodes}
    collapsed -= stale
    return stale


def toggle_collapsed(collapsed: set[str], model: TreeModel, node_id: str) -> Optional[bool]:
    """
    Flip a node between collapsed and expanded.

    Nodes without children cannot be collapsed; toggling one is a no-op.

    Returns:
        True if the node is now collapsed, False if expanded, None if nothing changed

    Raises:
        KeyError: If the node does not exist in the model
    """
    node = model.get_node(node_id)
    if node is None:
        raise KeyError(node_id)

    if not node.has_children:
        return None

    if node_id in collapsed:
        collapsed.discard(node_id)
        return False
    collapsed.add(node_id)
    return True
