"""
Interview graph: node registry, transition table and networkx validation
"""

from .graph_builder import GraphBuilder
from .schema import ContractType, NodeDef, EdgeDef, GraphDef, CycleDetectionResult, ValidationReport
from .nodes import NODE_REGISTRY, get_node_def, get_question
from .transitions import INTERVIEW_EDGES, determine_next_node, derive_flag_updates
from .validator import validate_graph, question_order
from .definition import build_interview_graphdef
from .builder import build_nx_graph

__all__ = [
    'GraphBuilder',
    'ContractType', 'NodeDef', 'EdgeDef', 'GraphDef', 'CycleDetectionResult', 'ValidationReport',
    'NODE_REGISTRY', 'get_node_def', 'get_question',
    'INTERVIEW_EDGES', 'determine_next_node', 'derive_flag_updates',
    'validate_graph', 'question_order',
    'build_interview_graphdef',
    'build_nx_graph',
]
