from __future__ import annotations

import heapq
from typing import Dict, List, Set

import networkx as nx

from core.models import ROOT_NODE, ConversationNode

from .nodes import NODE_REGISTRY
from .schema import ContractType, CycleDetectionResult, ValidationReport
from .transitions import TRANSITIONS

_RANK: Dict[str, int] = {node.value: idx for idx, node in enumerate(ConversationNode)}


def question_order(g: nx.DiGraph) -> CycleDetectionResult:
    """Kahn ordering with ties broken by declaration order of the nodes"""
    local: Dict[str, int] = dict(g.in_degree())
    starts = [n for n, d in local.items() if d == 0 and g.out_degree(n) > 0]
    ends = [n for n in g.nodes() if g.out_degree(n) == 0 and g.in_degree(n) > 0]

    heap = [(_RANK.get(n, len(_RANK)), n) for n, d in local.items() if d == 0]
    heapq.heapify(heap)
    order: List[str] = []
    while heap:
        _, cur = heapq.heappop(heap)
        order.append(cur)
        for nb in g.successors(cur):
            local[nb] -= 1
            if local[nb] == 0:
                heapq.heappush(heap, (_RANK.get(nb, len(_RANK)), nb))

    success = len(order) == g.number_of_nodes()
    cyclic = [] if success else sorted(n for n, d in local.items() if d > 0)
    return CycleDetectionResult(success=success, order=order, cyclic_nodes=cyclic,
                                start_nodes=starts, end_nodes=ends)


def validate_graph(g: nx.DiGraph) -> ValidationReport:
    warnings: List[str] = []
    errors: List[str] = []

    topo = question_order(g)
    start_nodes = topo.start_nodes
    end_nodes = topo.end_nodes

    if not start_nodes:
        errors.append("No start node (in_degree=0) found.")
    elif start_nodes != [ROOT_NODE.value]:
        errors.append(f"Expected '{ROOT_NODE.value}' as the only start node, got {start_nodes}")

    if not end_nodes:
        errors.append("No terminal node (out_degree=0) found.")

    if not topo.success:
        errors.append(f"Cycle detected among: {topo.cyclic_nodes}")

    isolated = [n for n in g.nodes() if g.in_degree(n) == 0 and g.out_degree(n) == 0]
    if isolated:
        warnings.append(f"Isolated nodes: {sorted(isolated)}")

    unreachable: List[str] = []
    if ROOT_NODE.value in g:
        reachable: Set[str] = nx.descendants(g, ROOT_NODE.value) | {ROOT_NODE.value}
        unreachable = sorted(n for n in g.nodes() if n not in reachable)
        if unreachable:
            errors.append(f"Unreachable from '{ROOT_NODE.value}': {unreachable}")

    for node in ConversationNode:
        if node.value not in g:
            errors.append(f"Node '{node.value}' missing from graph")
        if node not in TRANSITIONS:
            errors.append(f"Node '{node.value}' has no transition rule")
        node_def = NODE_REGISTRY.get(node)
        if node_def is None:
            errors.append(f"Node '{node.value}' has no registry entry")
        elif not node.is_terminal and (node_def.contract == ContractType.NONE or not node_def.question):
            errors.append(f"Node '{node.value}' needs a question and a contract")

    return ValidationReport(
        ok=not errors,
        warnings=warnings,
        errors=errors,
        start_nodes=start_nodes,
        end_nodes=end_nodes,
        isolated_nodes=isolated,
        unreachable_nodes=unreachable,
    )
