"""
Tree Diagram Core - Parser, layout, collapse state and rendering.

This module provides the pure functionality used by the backend API, the
CLI and the MCP tools, ensuring a single source of truth for diagram logic.
"""

from .models import (
    TreeNode,
    Edge,
    TreeModel,
    Point,
    LayoutConfig,
    LayoutResult,
)

from .parser import parse, parse_or_error, ParseError, ParseErrorKind
from .layout import layout, visible_ids
from .collapse import prune_collapsed, toggle_collapsed
from .render import render, Drawing, NodeCommand, EdgeCommand
from .svg import to_svg
from .validation import validate_tree, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Models
    "TreeNode",
    "Edge",
    "TreeModel",
    "Point",
    "LayoutConfig",
    "LayoutResult",
    # Parser
    "parse",
    "parse_or_error",
    "ParseError",
    "ParseErrorKind",
    # Layout
    "layout",
    "visible_ids",
    # Collapse state
    "prune_collapsed",
    "toggle_collapsed",
    # Rendering
    "render",
    "Drawing",
    "NodeCommand",
    "EdgeCommand",
    "to_svg",
    # Validation
    "validate_tree",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
