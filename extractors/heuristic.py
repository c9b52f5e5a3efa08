from __future__ import annotations

from typing import Callable, Dict

from core.models import ExtractionResult
from graph.schema import ContractType, NodeDef

from . import heuristics
from .base import BaseExtractor

Parser = Callable[[str], ExtractionResult]


class HeuristicExtractor(BaseExtractor):
    """Keyword and regex extraction, no network access"""

    name = "heuristic"

    def __init__(self) -> None:
        super().__init__()
        self.parsers: Dict[ContractType, Parser] = {
            ContractType.BOOLEAN: heuristics.parse_boolean,
            ContractType.SCALE_1_10: heuristics.parse_scale,
            ContractType.CURRENCY_RANGE: heuristics.parse_currency_range,
            ContractType.ROOM_COUNT: heuristics.parse_room_count,
            ContractType.OCCUPANCY: heuristics.parse_occupancy,
            ContractType.LEASE_TYPE: heuristics.parse_lease_type,
            ContractType.DATE_OR_TIMEFRAME: heuristics.parse_timeframe,
            ContractType.EMAIL_OR_DECLINED: heuristics.parse_email,
            ContractType.FREE_TEXT: heuristics.parse_free_text,
        }

    def extract(self, node_def: NodeDef, utterance: str) -> ExtractionResult:
        parser = self.parsers.get(node_def.contract)
        if parser is None:
            # Contract NONE: anything is accepted verbatim
            return ExtractionResult.valid((utterance or "").strip(), source=self.name)

        result = parser(utterance or "")
        if not result.is_valid and not result.clarification_prompt:
            result.clarification_prompt = self.clarification_for(node_def)
        self.logger.debug(
            f"[{node_def.name.value}] heuristic valid={result.is_valid} value={result.value!r}"
        )
        return result
