"""
Tree Diagram - Turn `node` / `edge` text into a laid-out, collapsible tree.

The pure parser, layout and renderer live in `treediagram.core`; the live
editing backend lives in `treediagram.backend`.
"""

__version__ = "0.1.0"
