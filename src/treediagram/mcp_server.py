"""
Tree Diagram MCP Server

Provides MCP tools for AI agents to edit the live tree diagram.
Source changes and toggles go through the backend, so open editors update
immediately via WebSocket.
"""

import json
from typing import Optional
from urllib.parse import quote

from mcp.server.fastmcp import FastMCP

from .client import api_request
from .core import ParseError, layout, parse, validate_tree, validation_summary


mcp = FastMCP("tree-diagram")


@mcp.tool()
def tree_get_current() -> str:
    """
    Get the full current session state.

    Returns the source text, parse status, model, collapsed node ids and
    draw commands. Use this to see the diagram before changing it.
    """
    result = api_request("GET", "/diagram")
    return json.dumps(result, indent=2)


@mcp.tool()
def tree_set_source(text: str) -> str:
    """
    Replace the diagram source text.

    Args:
        text: Lines of `node <id> "<title>"` and `edge <from> -> <to>`

    Returns the new state, including the parse error if the text is invalid.
    """
    result = api_request("PUT", "/source", json={"text": text})
    return json.dumps(result, indent=2)


@mcp.tool()
def tree_toggle_collapse(node_id: str) -> str:
    """
    Collapse or expand a node in the live diagram.

    Args:
        node_id: Id of a node with at least one child

    Nodes without children are left unchanged.
    """
    result = api_request("POST", f"/nodes/{quote(node_id, safe='')}/toggle")
    return json.dumps(result, indent=2)


@mcp.tool()
def tree_validate() -> str:
    """
    Check the live diagram for multi-parent nodes, cycles and unreachable nodes.
    """
    result = api_request("GET", "/diagram/validate")
    return json.dumps(result, indent=2)


@mcp.tool()
def tree_preview(text: str, collapsed: Optional[list[str]] = None) -> str:
    """
    Parse and lay out source text locally without touching the live diagram.

    Args:
        text: Diagram source text
        collapsed: Node ids whose descendants should be hidden

    Returns node coordinates and validation issues, or the parse error.
    """
    try:
        model = parse(text)
    except ParseError as e:
        return json.dumps({"success": False, "error": e.to_dict()}, indent=2)

    issues = validate_tree(model)
    result = layout(model, set(collapsed or []) & set(model.nodes))
    return json.dumps({
        "success": True,
        "root": model.root,
        "coordinates": result.to_json_dict(),
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
    }, indent=2)


def main():
    mcp.run()


if __name__ == "__main__":
    main()
