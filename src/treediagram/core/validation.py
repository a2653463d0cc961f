"""
Tree validation - Check parsed models for shapes the layout only tolerates.

The parser accepts any graph whose edges reference declared nodes. Layout
assumes a tree and falls back to "first visit wins" otherwise; these checks
tell the user where that fallback kicks in.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .layout import layout, visible_ids

if TYPE_CHECKING:
    from .models import TreeModel


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a model."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    line: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.line:
            result["line"] = self.line
        return result


def _find_cycle_nodes(model: "TreeModel") -> set[str]:
    """Ids that lie on at least one directed cycle (iterative colouring DFS)."""
    white, grey, black = 0, 1, 2
    colour = {node_id: white for node_id in model.nodes}
    on_cycle: set[str] = set()

    for start in model.nodes:
        if colour[start] != white:
            continue
        path = [start]
        iters = [iter(model.nodes[start].children)]
        colour[start] = grey
        while iters:
            child = next(iters[-1], None)
            if child is None:
                colour[path.pop()] = black
                iters.pop()
                continue
            if colour[child] == grey:
                on_cycle.update(path[path.index(child):])
            elif colour[child] == white:
                colour[child] = grey
                path.append(child)
                iters.append(iter(model.nodes[child].children))

    return on_cycle


def validate_tree(model: "TreeModel") -> list[ValidationIssue]:
    """
    Validate a parsed model and return a list of issues.

    Checks for:
    - Nodes with more than one parent - WARNING
    - Nodes on a cycle - WARNING
    - Self-referencing edges - WARNING
    - Duplicate edges (same source->target) - WARNING
    - Nodes not reachable from the root - WARNING
    - Single-node diagram - INFO

    Args:
        model: The model to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if len(model.nodes) == 1:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Diagram has a single node",
            node_id=model.root
        ))

    # Check for multiple parents
    parents: dict[str, list[str]] = {}
    for edge in model.edges:
        parents.setdefault(edge.target, [])
        if edge.source not in parents[edge.target]:
            parents[edge.target].append(edge.source)
    placed_under = layout(model).parents
    for node_id, sources in parents.items():
        if len(sources) > 1:
            message = f"Node has multiple parents ({', '.join(sources)})"
            if node_id in placed_under:
                message += f"; laid out under {placed_under[node_id]} only"
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=message,
                node_id=node_id
            ))

    # Check for cycles
    on_cycle = _find_cycle_nodes(model)
    for node_id in model.nodes:
        if node_id in on_cycle:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node is part of a cycle",
                node_id=node_id
            ))

    # Check for self-referencing and duplicate edges
    seen_pairs: set[tuple[str, str]] = set()
    for edge in model.edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing edge (node points to itself)",
                node_id=edge.source,
                line=edge.line
            ))
        pair = (edge.source, edge.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate edge from {edge.source} to {edge.target}",
                node_id=edge.source,
                line=edge.line
            ))
        else:
            seen_pairs.add(pair)

    # Check for nodes the layout will never show
    reachable = set(visible_ids(model))
    unreachable = [node_id for node_id in model.nodes if node_id not in reachable]
    if unreachable:
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Nodes not reachable from root {model.root}: {', '.join(unreachable)}"
        ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
