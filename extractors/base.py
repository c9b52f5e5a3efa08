from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from core.models import ExtractionResult
from graph.nodes import GENERIC_CLARIFICATION
from graph.schema import NodeDef

logger = logging.getLogger(__name__)


class BaseExtractor(ABC):
    """Base class for answer extractors"""

    name = "base"

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def extract(self, node_def: NodeDef, utterance: str) -> ExtractionResult:
        """Classify `utterance` against the contract of `node_def`. Never raises."""
        pass

    def clarification_for(self, node_def: NodeDef) -> str:
        return node_def.clarification or GENERIC_CLARIFICATION
