from __future__ import annotations

from typing import Dict, List, Optional

from core.models import ConversationNode

from .nodes import NODE_REGISTRY
from .schema import EdgeDef, GraphDef, NodeDef
from .transitions import INTERVIEW_EDGES


def build_interview_graphdef(nodes: Optional[Dict[ConversationNode, NodeDef]] = None,
                             edges: Optional[List[EdgeDef]] = None) -> GraphDef:
    nodes = NODE_REGISTRY if nodes is None else nodes
    edges = INTERVIEW_EDGES if edges is None else edges

    kept: List[EdgeDef] = []
    for edge in edges:
        if edge.source == edge.target:
            continue  # re-ask loops are implicit
        kept.append(edge)

    return GraphDef(nodes=dict(nodes), edges=kept)
