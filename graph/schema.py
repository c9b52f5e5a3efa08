from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from core.models import ConversationNode


class ContractType(str, Enum):
    """Shape an extracted answer must satisfy"""
    BOOLEAN = "boolean"
    SCALE_1_10 = "scale_1_10"
    CURRENCY_RANGE = "currency_range"
    ROOM_COUNT = "room_count"
    OCCUPANCY = "occupancy"
    LEASE_TYPE = "lease_type"
    DATE_OR_TIMEFRAME = "date_or_timeframe"
    EMAIL_OR_DECLINED = "email_or_declined"
    FREE_TEXT = "free_text"
    NONE = "none"


@dataclass(frozen=True)
class NodeDef:
    name: ConversationNode
    question: str
    contract: ContractType
    instruction: str = ""
    response_schema: str = ""
    clarification: str = ""
    stage: str = "collect"


@dataclass
class EdgeDef:
    source: ConversationNode
    target: ConversationNode
    context: Optional[str] = None


@dataclass
class GraphDef:
    nodes: Dict[ConversationNode, NodeDef]
    edges: List[EdgeDef]


@dataclass
class CycleDetectionResult:
    success: bool
    order: List[str]
    cyclic_nodes: List[str]
    start_nodes: List[str] = field(default_factory=list)
    end_nodes: List[str] = field(default_factory=list)


@dataclass
class ValidationReport:
    ok: bool
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    start_nodes: List[str] = field(default_factory=list)
    end_nodes: List[str] = field(default_factory=list)
    isolated_nodes: List[str] = field(default_factory=list)
    unreachable_nodes: List[str] = field(default_factory=list)
