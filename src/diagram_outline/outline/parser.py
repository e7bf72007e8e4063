from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

# Recognized grammar (everything else in the source is ignored):
#
#   IDENT      := [A-Za-z0-9_]+
#   LABEL      := '["' [^"\n]+ '"]'
#   NODE_DECL  := (^ | ARROW) \s* IDENT \s* LABEL               line start or right after an arrow
#   ARROW      := [-.=]{1,4} '>'
#   EDGE_DECL  := ^ \s* IDENT \s* LABEL? \s* ARROW \s* IDENT   first arrow on a line
#
# Arrow style (-->, -.->, ==>, ...) is not distinguished. Subgraphs, class
# definitions, styles, other node shapes and chained edges beyond the first
# arrow on a line are not recognized.
_NODE_RE = re.compile(
    r'(?:^|[-.=]{1,4}>)[ \t]*([A-Za-z0-9_]+)[ \t]*\["([^"\n]+)"\]',
    re.MULTILINE,
)
_EDGE_RE = re.compile(
    r'^[ \t]*([A-Za-z0-9_]+)[ \t]*(?:\["[^"\n]+"\])?[ \t]*[-.=]{1,4}>[ \t]*([A-Za-z0-9_]+)',
    re.MULTILINE,
)


@dataclass
class DiagramGraph:
    """
    Label map, ordered child adjacency and indegree counts of one diagram.

    Dict insertion order is meaningful: `labels` and `indegree` keep the
    order in which ids were first discovered, `children` keeps edge order
    (repeated edges are kept).
    """

    labels: Dict[str, str] = field(default_factory=dict)
    children: Dict[str, List[str]] = field(default_factory=dict)
    indegree: Dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.labels

    def edge_count(self) -> int:
        return sum(len(kids) for kids in self.children.values())


def _scan_nodes(text: str, graph: DiagramGraph) -> None:
    for match in _NODE_RE.finditer(text):
        node_id, label = match.group(1), match.group(2)
        graph.labels[node_id] = label.strip()
        graph.indegree.setdefault(node_id, 0)


def _scan_edges(text: str, graph: DiagramGraph) -> None:
    for match in _EDGE_RE.finditer(text):
        parent_id, child_id = match.group(1), match.group(2)
        graph.labels.setdefault(parent_id, parent_id)
        graph.labels.setdefault(child_id, child_id)
        graph.children.setdefault(parent_id, []).append(child_id)
        graph.indegree[child_id] = graph.indegree.get(child_id, 0) + 1
        graph.indegree.setdefault(parent_id, 0)


def parse_diagram_graph(text: str) -> DiagramGraph:
    """
    Extract node labels and directed edges from raw diagram source.

    Node declarations are scanned first, then edges, so ids declared with a
    label keep their position ahead of ids only ever seen in edges.
    """
    graph = DiagramGraph()
    if not text:
        return graph
    _scan_nodes(text, graph)
    _scan_edges(text, graph)
    return graph
