from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from core.models import EMAIL_DECLINED, CurrencyRange, ExtractionResult, RoomCount
from graph.nodes import BACKEND_FAILURE_CLARIFICATION
from graph.schema import ContractType, NodeDef

from .base import BaseExtractor
from .heuristic import HeuristicExtractor

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

OCCUPANCY_VALUES = ("tenant", "owner", "vacant")
LEASE_VALUES = ("annual", "monthly")

_REJECT = object()


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _present(value: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in value.items() if v is not None}


def _compact(value: Optional[float]) -> Any:
    if value is None:
        return None
    return int(value) if float(value).is_integer() else value


def conform_value(contract: ContractType, value: Any) -> Any:
    """Normalise a model-supplied value to the contract's shape.

    Returns the module-level `_REJECT` sentinel when the value does not fit.
    """
    if contract == ContractType.BOOLEAN:
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, str) and value.strip().lower() in ("yes", "no"):
            return value.strip().lower()
        return _REJECT

    if contract == ContractType.SCALE_1_10:
        n = _number(value)
        if n is None or not 1 <= n <= 10:
            return _REJECT
        return int(round(n))

    if contract == ContractType.CURRENCY_RANGE:
        if not isinstance(value, dict):
            return _REJECT
        try:
            rng = CurrencyRange.model_validate(_present(value))
        except ValidationError:
            return _REJECT
        if rng.status not in ("specified", "not_sure"):
            return _REJECT
        if rng.status == "specified" and rng.min is None and rng.max is None:
            return _REJECT
        return {
            'min': _compact(rng.min),
            'max': _compact(rng.max),
            'currency': rng.currency or "USD",
            'raw': rng.raw,
            'status': rng.status,
        }

    if contract == ContractType.ROOM_COUNT:
        if not isinstance(value, dict):
            return _REJECT
        try:
            rooms = RoomCount.model_validate(_present(value))
        except ValidationError:
            return _REJECT
        if rooms.bedrooms is None and rooms.bathrooms is None:
            return _REJECT
        return {
            'bedrooms': _compact(rooms.bedrooms),
            'bathrooms': _compact(rooms.bathrooms),
            'raw': rooms.raw,
        }

    if contract == ContractType.OCCUPANCY:
        if isinstance(value, str) and value.strip().lower() in OCCUPANCY_VALUES:
            return value.strip().lower()
        return _REJECT

    if contract == ContractType.LEASE_TYPE:
        if isinstance(value, str) and value.strip().lower() in LEASE_VALUES:
            return value.strip().lower()
        return _REJECT

    if contract == ContractType.EMAIL_OR_DECLINED:
        if not isinstance(value, str):
            return _REJECT
        v = value.strip().lower()
        if v == EMAIL_DECLINED or EMAIL_RE.match(v):
            return v
        return _REJECT

    if contract in (ContractType.DATE_OR_TIMEFRAME, ContractType.FREE_TEXT):
        if isinstance(value, str) and value.strip():
            return value.strip()
        return _REJECT

    return value


class LLMExtractor(BaseExtractor):
    """Model-backed extraction with the heuristic strategy as fallback"""

    name = "llm"

    def __init__(self, client: Any, fallback: Optional[BaseExtractor] = None) -> None:
        super().__init__()
        self.client = client
        self.fallback = fallback or HeuristicExtractor()

    def _ask_model(self, node_def: NodeDef, utterance: str) -> Optional[Dict[str, Any]]:
        try:
            return self.client.extract_answer(node_def, utterance)
        except Exception as e:
            self.logger.warning(f"[{node_def.name.value}] LLM extraction failed, using heuristics: {e}")
            return None

    def _from_fallback(self, node_def: NodeDef, utterance: str) -> ExtractionResult:
        result = self.fallback.extract(node_def, utterance)
        if result.is_valid:
            return result
        return ExtractionResult.unclear(BACKEND_FAILURE_CLARIFICATION, source=result.source)

    def extract(self, node_def: NodeDef, utterance: str) -> ExtractionResult:
        if node_def.contract == ContractType.NONE:
            return self.fallback.extract(node_def, utterance)

        data = self._ask_model(node_def, utterance)
        if data is None:
            return self._from_fallback(node_def, utterance)

        clarification = data.get("clarificationNeeded")
        if not isinstance(clarification, str) or not clarification.strip():
            clarification = None

        if data.get("isValid") is True:
            value = conform_value(node_def.contract, data.get("extractedValue"))
            if value is not _REJECT:
                self.logger.debug(f"[{node_def.name.value}] LLM extracted {value!r}")
                return ExtractionResult.valid(value, source=self.name)
            self.logger.warning(
                f"[{node_def.name.value}] LLM value does not fit {node_def.contract.value}: "
                f"{data.get('extractedValue')!r}"
            )
            return self._from_fallback(node_def, utterance)

        # Model says unclear: heuristics get a second look
        result = self.fallback.extract(node_def, utterance)
        if result.is_valid:
            self.logger.debug(f"[{node_def.name.value}] heuristic overrode unclear LLM verdict")
            return result
        return ExtractionResult.unclear(clarification or node_def.clarification or BACKEND_FAILURE_CLARIFICATION,
                                        source=self.name)
