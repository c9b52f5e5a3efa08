from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import networkx as nx

from core.errors import GraphConfigError
from core.models import ConversationNode
from graph.graph_builder import GraphBuilder
from graph.nodes import NODE_REGISTRY
from graph.schema import NodeDef


@dataclass
class GraphInfo:
    graph: nx.DiGraph
    nodes_info: Dict[ConversationNode, NodeDef]
    start_nodes: List[str]
    end_nodes: List[str]
    order: List[str] = field(default_factory=list)

    def is_successor(self, source: ConversationNode, target: ConversationNode) -> bool:
        if source == target:
            return True  # re-ask
        return self.graph.has_edge(ConversationNode(source).value, ConversationNode(target).value)


def load_and_validate() -> GraphInfo:
    """Build the interview graph from the registry, validate it and return a graph info bundle."""
    gb = GraphBuilder()
    if not gb.build_graph():
        raise GraphConfigError("; ".join(gb.report.errors if gb.report else ["graph build failed"]))

    report = gb.report
    return GraphInfo(
        graph=gb.graph,
        nodes_info=dict(NODE_REGISTRY),
        start_nodes=report.start_nodes,
        end_nodes=report.end_nodes,
        order=gb.detect_cycles()["order"],
    )
