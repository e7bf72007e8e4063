from __future__ import annotations

from ..manifest import DiagramSource, is_sitemap_diagram
from .formatter import format_generic_outline, format_sitemap_outline
from .parser import DiagramGraph, parse_diagram_graph
from .tree import Forest, OutlineNode, build_forest

__all__ = [
    "DiagramGraph",
    "Forest",
    "OutlineNode",
    "build_forest",
    "derive_outline",
    "format_generic_outline",
    "format_outline",
    "format_sitemap_outline",
    "parse_diagram_graph",
]


def format_outline(forest: Forest, diagram: DiagramSource) -> str:
    if not forest:
        return ""
    if is_sitemap_diagram(diagram):
        return format_sitemap_outline(forest)
    return format_generic_outline(forest)


def derive_outline(diagram: DiagramSource, text: str) -> str:
    """
    Parse raw diagram text and format its outline. Returns "" when the
    diagram has no recognizable nodes or no zero-indegree roots.
    """
    return format_outline(build_forest(parse_diagram_graph(text)), diagram)
