from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Set, Tuple

from .parser import DiagramGraph

Forest = List["OutlineNode"]


@dataclass
class OutlineNode:
    node_id: str
    label: str
    children: List["OutlineNode"] = field(default_factory=list)

    def walk(self, depth: int = 0) -> Iterator[Tuple[int, "OutlineNode"]]:
        """Yield (depth, node) for every descendant, depth-first, children in order."""
        stack = [(depth, child) for child in reversed(self.children)]
        while stack:
            level, node = stack.pop()
            yield level, node
            stack.extend((level + 1, child) for child in reversed(node.children))


def find_roots(graph: DiagramGraph) -> List[str]:
    """Ids with zero indegree, in first-discovery order."""
    return [node_id for node_id in graph.labels if graph.indegree.get(node_id, 0) == 0]


def _build_tree(root_id: str, graph: DiagramGraph) -> OutlineNode:
    root = OutlineNode(node_id=root_id, label=graph.labels.get(root_id, root_id))
    active_path: Set[str] = {root_id}
    # Each frame: (node, iterator over its remaining child ids)
    stack = [(root, iter(graph.children.get(root_id, ())))]
    while stack:
        node, pending = stack[-1]
        child_id = next(pending, None)
        if child_id is None:
            stack.pop()
            active_path.discard(node.node_id)
            continue
        if child_id in active_path:
            continue
        child = OutlineNode(node_id=child_id, label=graph.labels.get(child_id, child_id))
        node.children.append(child)
        active_path.add(child_id)
        stack.append((child, iter(graph.children.get(child_id, ()))))
    return root


def build_forest(graph: DiagramGraph) -> Forest:
    """
    Expand every zero-indegree node into an outline tree.

    A child already being expanded on the current path closes a cycle and is
    dropped. Shared descendants are repeated under each parent. Nodes only
    reachable through a cycle (no zero-indegree ancestor) do not appear.
    """
    return [_build_tree(root_id, graph) for root_id in find_roots(graph)]
