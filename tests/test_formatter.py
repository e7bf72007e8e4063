from __future__ import annotations

from diagram_outline.manifest import DiagramSource
from diagram_outline.outline import derive_outline
from diagram_outline.outline.formatter import (
    format_generic_outline,
    format_sitemap_outline,
    split_sitemap_label,
)
from diagram_outline.outline.parser import parse_diagram_graph
from diagram_outline.outline.tree import build_forest

PAGE = DiagramSource(id="pages-times-x-mmd", name="Times", source_path="pages/times_x.mmd")
SITEMAP = DiagramSource(id="sitemap-mmd", name="Sitemap", source_path="sitemap.mmd")


def test_generic_outline_single_child() -> None:
    assert derive_outline(PAGE, 'A["Home"]\nB["About"]\nA-->B') == "Page: Home\n- About"


def test_generic_outline_empty_when_no_roots() -> None:
    assert derive_outline(PAGE, 'A["X"]-->B["Y"]\nB-->A') == ""


def test_generic_outline_empty_for_non_graph_text() -> None:
    assert derive_outline(PAGE, "sequenceDiagram\n  Alice->>Bob: hi\n") == ""


def test_generic_outline_indents_by_depth() -> None:
    text = 'R["Root"]\nR-->A["A"]\nA-->A1["A.1"]\nA1-->A2["A.1.a"]\nR-->B["B"]\n'
    forest = build_forest(parse_diagram_graph(text))

    assert format_generic_outline(forest) == "\n".join(
        [
            "Page: Root",
            "- A",
            "  - A.1",
            "    - A.1.a",
            "- B",
        ]
    )


def test_generic_outline_separates_roots_with_one_blank_line() -> None:
    text = 'A["One"]\nB["Two"]\nC["Three"]\nA-->C\n'
    forest = build_forest(parse_diagram_graph(text))

    assert format_generic_outline(forest) == "Page: One\n- Three\n\nPage: Two"


def test_generic_outline_keeps_sitemap_escapes_literal() -> None:
    outline = derive_outline(PAGE, 'S["Site"]\nP["Home\\n5 PDFs"]\nS-->P')

    assert outline == "Page: Site\n- Home\\n5 PDFs"


def test_sitemap_outline_expands_stat_blocks() -> None:
    text = 'S["Site"]\nP["Home\\n5 PDFs\\n2 Maps"]\nS-->P'

    assert derive_outline(SITEMAP, text) == "Page: Site\n- Home\n5 PDFs\n2 Maps"


def test_sitemap_outline_only_renders_direct_children() -> None:
    text = "\n".join(
        [
            'S["Site"]',
            'H["Home\\n1 PDF"]',
            'M["Maps\\n\\n  3 Maps  \\n"]',
            'G["Grandchild"]',
            "S-->H",
            "S-->M",
            "H-->G",
        ]
    )
    forest = build_forest(parse_diagram_graph(text))

    assert format_sitemap_outline(forest) == "Page: Site\n- Home\n1 PDF\n\n- Maps\n3 Maps"


def test_sitemap_outline_uses_first_root_only() -> None:
    forest = build_forest(parse_diagram_graph('S["Site"]\nX["Other"]\nS-->A\n'))

    assert format_sitemap_outline(forest) == "Page: Site\n- A"


def test_sitemap_root_label_expanded() -> None:
    forest = build_forest(parse_diagram_graph('S["Site\\nIndex"]\n'))

    assert format_sitemap_outline(forest) == "Page: Site\nIndex"


def test_sitemap_detected_by_case_insensitive_path_suffix() -> None:
    diagram = DiagramSource(id="overview", name="Overview", source_path="docs/SiteMap.MMD")
    text = 'S["Site"]\nP["Home\\n5 PDFs"]\nS-->P'

    assert derive_outline(diagram, text) == "Page: Site\n- Home\n5 PDFs"


def test_split_sitemap_label() -> None:
    assert split_sitemap_label("  Home  \\n 5 PDFs \\n\\n") == ("Home", ["5 PDFs"])
    assert split_sitemap_label("Plain") == ("Plain", [])


def test_both_formats_empty_for_empty_forest() -> None:
    assert format_generic_outline([]) == ""
    assert format_sitemap_outline([]) == ""


def test_subgraph_header_does_not_become_a_root() -> None:
    text = 'flowchart TD\nsubgraph G["Group"]\nS["Site"]\nP["Home"]\nS-->P\nend\n'

    assert derive_outline(PAGE, text) == "Page: Site\n- Home"
    assert derive_outline(SITEMAP, text) == "Page: Site\n- Home"
