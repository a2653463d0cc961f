"""
SVG output for drawings.

A minimal drawing surface: rounded boxes with centred labels and plain
connector paths, matching the browser editor's look.
"""

import xml.etree.ElementTree as ET

from .render import Drawing, EdgeCommand, NodeCommand


SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _num(value: float) -> str:
    """Format a coordinate without a trailing '.0'."""
    return f"{value:g}"


def _edge_element(edge: EdgeCommand) -> ET.Element:
    (x0, y0), *rest = edge.points
    d = " ".join([f"M {_num(x0)} {_num(y0)}"] + [f"L {_num(x)} {_num(y)}" for x, y in rest])
    return ET.Element(_q("path"), {
        "d": d,
        "stroke": "#666",
        "stroke-width": "1.2",
        "fill": "none",
        "data-source": edge.source,
        "data-target": edge.target,
    })


def _node_element(node: NodeCommand) -> ET.Element:
    group = ET.Element(_q("g"), {
        "transform": f"translate({_num(node.x)},{_num(node.y)})",
        "data-id": node.id,
    })
    ET.SubElement(group, _q("rect"), {
        "width": _num(node.width),
        "height": _num(node.height),
        "rx": "8",
        "ry": "8",
        "fill": "#fff",
        "stroke": "#333",
    })
    label = ET.SubElement(group, _q("text"), {
        "x": _num(node.width / 2),
        "y": _num(node.height / 2),
        "text-anchor": "middle",
        "dominant-baseline": "middle",
        "font-size": "12",
    })
    label.text = node.label
    return group


def to_svg(drawing: Drawing) -> str:
    """Serialize a drawing to an SVG document string."""
    attrs = {"role": "img"}
    if drawing.view_box:
        attrs["viewBox"] = " ".join(_num(v) for v in drawing.view_box)

    root = ET.Element(_q("svg"), attrs)
    for edge in drawing.edges:
        root.append(_edge_element(edge))
    for node in drawing.nodes:
        root.append(_node_element(node))

    return ET.tostring(root, encoding="unicode")
