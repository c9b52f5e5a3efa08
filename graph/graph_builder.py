from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import networkx as nx

from .builder import build_nx_graph
from .definition import build_interview_graphdef
from .schema import GraphDef, ValidationReport
from .validator import question_order, validate_graph
from .visualize import draw_with_legend

logger = logging.getLogger(__name__)


class GraphBuilder:
    def __init__(self, graph_def: Optional[GraphDef] = None) -> None:
        self.graph_def: GraphDef = graph_def or build_interview_graphdef()
        self.graph: nx.DiGraph = nx.DiGraph()
        self.report: Optional[ValidationReport] = None

    def build_graph(self) -> bool:
        self.graph = build_nx_graph(self.graph_def)
        logger.debug(f"Interview graph built: {self.graph.number_of_nodes()} nodes, "
                     f"{self.graph.number_of_edges()} edges")

        self.report = validate_graph(self.graph)
        for w in self.report.warnings:
            logger.warning(w)
        for e in self.report.errors:
            logger.error(e)
        return self.report.ok

    def detect_cycles(self) -> Dict[str, Any]:
        result = question_order(self.graph)
        if result.success:
            logger.debug("Question order: " + " -> ".join(result.order))
        else:
            logger.error(f"Cycle detected among: {result.cyclic_nodes}")
        return {
            "success": result.success,
            "order": result.order,
            "cyclic_nodes": result.cyclic_nodes,
        }

    def export_graph_info(self) -> Dict[str, Any]:
        nodes_payload = []
        for node in self.graph.nodes():
            attrs = dict(self.graph.nodes[node])
            nodes_payload.append({"name": node, **attrs})

        edges_payload = []
        for u, v, attrs in self.graph.edges(data=True):
            edges_payload.append({"from": u, "to": v, **attrs})

        cycle_result = question_order(self.graph)
        graph_stats = {
            "nodes": self.graph.number_of_nodes(),
            "edges": self.graph.number_of_edges(),
            "is_dag": cycle_result.success,
        }

        contract_groups: Dict[str, List[str]] = {}
        for node, node_def in self.graph_def.nodes.items():
            contract_groups.setdefault(node_def.contract.value, []).append(node.value)

        return {
            "nodes": nodes_payload,
            "edges": edges_payload,
            "graph_stats": graph_stats,
            "order": cycle_result.order,
            "contract_groups": contract_groups,
        }

    def visualize_graph(self, save_path: str) -> None:
        draw_with_legend(self.graph, save_path, question_order(self.graph).order)
