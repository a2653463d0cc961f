"""Tree diagram CLI - parse, lay out and render diagram source files."""

import argparse
import json
import logging
import sys
from pathlib import Path
from urllib.parse import quote

from .client import ApiError, api_request
from .core import (
    LayoutConfig,
    ParseError,
    layout,
    parse,
    render,
    to_svg,
    validate_tree,
    validation_summary,
)


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _read_source(path):
    """Read source text from a file, or stdin for '-'."""
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text()
    except OSError as e:
        _json_out({"status": "error", "error": f"Cannot read {path}: {e}"}, 1)


def _parse_or_exit(path):
    try:
        return parse(_read_source(path))
    except ParseError as e:
        _json_out({"status": "error", "error": e.to_dict()}, 1)


def _config(args):
    return LayoutConfig(
        node_width=args.node_width,
        node_height=args.node_height,
        x_gap=args.x_gap,
        y_gap=args.y_gap,
    )


def _remote(method, endpoint, **kwargs):
    try:
        return api_request(method, endpoint, **kwargs)
    except ApiError as e:
        _json_out({"status": "error", "error": str(e)}, 1)


# ── Local ────────────────────────────────────────────────────────────────────

def cmd_parse(args):
    model = _parse_or_exit(args.file)
    _json_out({"status": "ok", "model": model.to_json_dict()})


def cmd_layout(args):
    model = _parse_or_exit(args.file)
    collapsed = set(args.collapse or []) & set(model.nodes)
    result = layout(model, collapsed, _config(args))
    _json_out({"status": "ok", "root": model.root, "coordinates": result.to_json_dict()})


def cmd_render(args):
    model = _parse_or_exit(args.file)
    collapsed = set(args.collapse or []) & set(model.nodes)
    drawing = render(model, collapsed, _config(args))

    if args.output:
        Path(args.output).write_text(to_svg(drawing))
        _json_out({"status": "ok", "output": args.output, "nodes": len(drawing.nodes)})
    _json_out({"status": "ok", "drawing": drawing.to_dict()})


def cmd_validate(args):
    model = _parse_or_exit(args.file)
    issues = validate_tree(model)
    _json_out({
        "status": "ok",
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
    })


# ── Backend ──────────────────────────────────────────────────────────────────

def cmd_push(args):
    _json_out(_remote("PUT", "/source", json={"text": _read_source(args.file)}))


def cmd_toggle(args):
    _json_out(_remote("POST", f"/nodes/{quote(args.node_id, safe='')}/toggle"))


def cmd_get_current(args):
    _json_out(_remote("GET", "/diagram"))


def cmd_serve(args):
    from .backend.main import run

    logging.basicConfig(level=logging.INFO)
    run(host=args.host, port=args.port)


def _add_geometry_args(p):
    p.add_argument("--node-width", type=float, default=130)
    p.add_argument("--node-height", type=float, default=46)
    p.add_argument("--x-gap", type=float, default=36)
    p.add_argument("--y-gap", type=float, default=80)


def build_parser():
    parser = argparse.ArgumentParser(prog="treediagram", description="Text to tree diagram tool")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse")
    p.add_argument("file")

    p = sub.add_parser("layout")
    p.add_argument("file")
    p.add_argument("--collapse", action="append", metavar="NODE_ID")
    _add_geometry_args(p)

    p = sub.add_parser("render")
    p.add_argument("file")
    p.add_argument("--collapse", action="append", metavar="NODE_ID")
    p.add_argument("--output", "-o", default=None, help="Write SVG here instead of printing draw commands")
    _add_geometry_args(p)

    p = sub.add_parser("validate")
    p.add_argument("file")

    p = sub.add_parser("push")
    p.add_argument("file")

    p = sub.add_parser("toggle")
    p.add_argument("node_id")

    sub.add_parser("get-current")

    p = sub.add_parser("serve")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8765)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    cmd_map = {
        "parse": cmd_parse,
        "layout": cmd_layout,
        "render": cmd_render,
        "validate": cmd_validate,
        "push": cmd_push,
        "toggle": cmd_toggle,
        "get-current": cmd_get_current,
        "serve": cmd_serve,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
