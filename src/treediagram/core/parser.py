"""
Text parser - Turn `node` / `edge` directives into a tree model.

Input format (one directive per line, surrounding whitespace ignored):

    node <id> "<title>"      closing quote optional
    edge <from> -> <to>

Nodes may be referenced by edges before they are declared: every line is
scanned first, then edges are resolved in declaration order.
"""

import re
from enum import Enum
from typing import Optional

from .models import Edge, TreeModel, TreeNode


NODE_PATTERN = re.compile(r'node\s+(\S+)\s+"([^"]*)"?')
EDGE_PATTERN = re.compile(r'edge\s+(\S+)\s*->\s*(\S+)')
LINE_SPLIT = re.compile(r'\r?\n')


class ParseErrorKind(str, Enum):
    """Categories of user-input errors reported by the parser."""
    BAD_NODE_SYNTAX = "bad_node_syntax"
    BAD_EDGE_SYNTAX = "bad_edge_syntax"
    UNKNOWN_DIRECTIVE = "unknown_directive"
    DUPLICATE_NODE_ID = "duplicate_node_id"
    UNKNOWN_NODE = "unknown_node"
    NO_NODES = "no_nodes"


class ParseError(ValueError):
    """A parse failure, with the 1-based line it was found on where applicable."""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        line: Optional[int] = None,
        node_id: Optional[str] = None,
    ):
        self.kind = kind
        self.line = line
        self.node_id = node_id
        super().__init__(f"Line {line}: {message}" if line is not None else message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.kind.value,
            "message": self.message,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.node_id is not None:
            result["node_id"] = self.node_id
        return result


def parse(text: str) -> TreeModel:
    """
    Parse diagram source text into a tree model.

    Line-level errors are reported for the first offending line. Edge
    references are checked only after every line scanned cleanly, in edge
    declaration order, source before target.

    Args:
        text: The raw diagram source

    Returns:
        The parsed TreeModel

    Raises:
        ParseError: On the first syntax or reference error
    """
    titles: dict[str, str] = {}
    edges: list[Edge] = []

    for line_num, raw in enumerate(LINE_SPLIT.split(text), start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith('node '):
            match = NODE_PATTERN.fullmatch(line)
            if not match:
                raise ParseError(ParseErrorKind.BAD_NODE_SYNTAX, "Bad Node Syntax", line_num)

            node_id, title = match.groups()
            if node_id in titles:
                raise ParseError(
                    ParseErrorKind.DUPLICATE_NODE_ID,
                    f'Duplicate Node id "{node_id}"',
                    line_num,
                    node_id,
                )
            titles[node_id] = title

        elif line.startswith('edge '):
            match = EDGE_PATTERN.fullmatch(line)
            if not match:
                raise ParseError(ParseErrorKind.BAD_EDGE_SYNTAX, "Bad Edge Syntax", line_num)

            edges.append(Edge(source=match.group(1), target=match.group(2), line=line_num))

        else:
            raise ParseError(ParseErrorKind.UNKNOWN_DIRECTIVE, "Unknown Directive", line_num)

    children: dict[str, list[str]] = {node_id: [] for node_id in titles}
    for edge in edges:
        if edge.source not in titles:
            raise ParseError(
                ParseErrorKind.UNKNOWN_NODE, f'Unknown Node "{edge.source}"', edge.line, edge.source
            )
        if edge.target not in titles:
            raise ParseError(
                ParseErrorKind.UNKNOWN_NODE, f'Unknown Node "{edge.target}"', edge.line, edge.target
            )
        children[edge.source].append(edge.target)

    root = select_root(list(titles), edges)
    if root is None:
        raise ParseError(ParseErrorKind.NO_NODES, "No Nodes Defined")

    nodes = {
        node_id: TreeNode(id=node_id, title=title, children=children[node_id])
        for node_id, title in titles.items()
    }
    return TreeModel(nodes=nodes, edges=edges, root=root)


def parse_or_error(text: str) -> TreeModel | ParseError:
    """Like parse(), but return the ParseError instead of raising it."""
    try:
        return parse(text)
    except ParseError as e:
        return e


def select_root(node_ids: list[str], edges: list[Edge]) -> Optional[str]:
    """
    Pick the root: the first declared node that is never an edge target,
    falling back to the first declared node. None when there are no nodes.
    """
    targets = {edge.target for edge in edges}
    for node_id in node_ids:
        if node_id not in targets:
            return node_id
    return node_ids[0] if node_ids else None
