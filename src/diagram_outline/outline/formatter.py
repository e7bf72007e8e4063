from __future__ import annotations

from typing import List, Sequence, Tuple

from .tree import OutlineNode

INDENT = "  "


def format_generic_outline(forest: Sequence[OutlineNode]) -> str:
    """
    Render every root as a `Page:` heading followed by its descendants as an
    indented bullet list. Roots are separated by one blank line.
    """
    lines: List[str] = []
    for index, root in enumerate(forest):
        lines.append(f"Page: {root.label}")
        for depth, node in root.walk():
            lines.append(f"{INDENT * depth}- {node.label}")
        if index < len(forest) - 1:
            lines.append("")
    return "\n".join(lines)


def expand_sitemap_text(text: str) -> str:
    return text.replace("\\n", "\n")


def split_sitemap_label(label: str) -> Tuple[str, List[str]]:
    """
    Split a sitemap child label into its heading line and its stat lines.

    Sitemap labels encode multi-line stat blocks with literal `\\n` escapes,
    e.g. `Home\\n5 PDFs\\n2 Maps`.
    """
    expanded = expand_sitemap_text(label)
    primary, *rest = expanded.split("\n")
    stats = [segment.strip() for segment in rest if segment.strip()]
    return primary.strip(), stats


def format_sitemap_outline(forest: Sequence[OutlineNode]) -> str:
    """
    Render the first root and only its direct children; grandchildren are not
    shown. Each child becomes a bullet followed by its stat lines.
    """
    if not forest:
        return ""
    root = forest[0]
    lines = [f"Page: {expand_sitemap_text(root.label)}"]
    for index, child in enumerate(root.children):
        primary, stats = split_sitemap_label(child.label)
        lines.append(f"- {primary}")
        lines.extend(stats)
        if index < len(root.children) - 1:
            lines.append("")
    return "\n".join(lines)
