from __future__ import annotations

from typing import List, Tuple

from diagram_outline.outline.parser import parse_diagram_graph
from diagram_outline.outline.tree import OutlineNode, build_forest, find_roots


def _flatten(root: OutlineNode) -> List[Tuple[int, str]]:
    return [(0, root.node_id)] + [(depth + 1, node.node_id) for depth, node in root.walk()]


def test_single_root_with_child() -> None:
    forest = build_forest(parse_diagram_graph('A["Home"]\nB["About"]\nA-->B'))

    assert len(forest) == 1
    assert forest[0].label == "Home"
    assert [child.label for child in forest[0].children] == ["About"]


def test_pure_cycle_has_no_roots() -> None:
    graph = parse_diagram_graph('A["X"]-->B["Y"]\nB-->A')

    assert find_roots(graph) == []
    assert build_forest(graph) == []


def test_cycle_closing_edge_is_dropped() -> None:
    graph = parse_diagram_graph("R-->A\nA-->B\nB-->A\nB-->C\n")
    forest = build_forest(graph)

    assert len(forest) == 1
    assert _flatten(forest[0]) == [(0, "R"), (1, "A"), (2, "B"), (3, "C")]


def test_self_loop_under_root_is_dropped() -> None:
    forest = build_forest(parse_diagram_graph("R-->A\nA-->A\n"))

    assert _flatten(forest[0]) == [(0, "R"), (1, "A")]


def test_shared_descendant_appears_under_each_parent() -> None:
    graph = parse_diagram_graph("R-->A\nR-->B\nA-->S\nB-->S\nS-->T\n")
    forest = build_forest(graph)

    assert _flatten(forest[0]) == [
        (0, "R"),
        (1, "A"),
        (2, "S"),
        (3, "T"),
        (1, "B"),
        (2, "S"),
        (3, "T"),
    ]


def test_repeated_edge_repeats_child() -> None:
    forest = build_forest(parse_diagram_graph("R-->A\nR-->A\n"))

    assert [child.node_id for child in forest[0].children] == ["A", "A"]


def test_nodes_only_reachable_through_a_cycle_are_not_emitted() -> None:
    # R is the only root; X<->Y form a cycle with no zero-indegree entry point
    graph = parse_diagram_graph("R-->A\nX-->Y\nY-->X\nY-->Z\n")
    forest = build_forest(graph)

    emitted = {node_id for root in forest for _, node_id in _flatten(root)}
    assert emitted == {"R", "A"}


def test_multiple_roots_in_discovery_order() -> None:
    graph = parse_diagram_graph('B["Bee"]\nA["Ay"]\nQ-->P\n')
    forest = build_forest(graph)

    assert [root.node_id for root in forest] == ["B", "A", "Q"]


def test_deep_chain_does_not_hit_recursion_limit() -> None:
    depth = 5000
    text = "\n".join(f"n{i}-->n{i + 1}" for i in range(depth))
    forest = build_forest(parse_diagram_graph(text))

    assert len(forest) == 1
    assert sum(1 for _ in forest[0].walk()) == depth


def test_build_terminates_on_dense_cycles() -> None:
    ids = [f"n{i}" for i in range(6)]
    lines = ["root-->n0"] + [f"{a}-->{b}" for a in ids for b in ids if a != b]
    forest = build_forest(parse_diagram_graph("\n".join(lines)))

    # Every root-to-leaf path visits each id at most once
    def _paths(node: OutlineNode, path: Tuple[str, ...]) -> None:
        assert node.node_id not in path
        for child in node.children:
            _paths(child, path + (node.node_id,))

    _paths(forest[0], ())
