from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from core.config import Settings

from .base import BaseExtractor
from .heuristic import HeuristicExtractor
from .llm import LLMExtractor

logger = logging.getLogger(__name__)


class ExtractorFactory:
    """Creates extraction strategies by name"""

    def __init__(self) -> None:
        self.extractors: Dict[str, Type[BaseExtractor]] = {
            'heuristic': HeuristicExtractor,
            'llm': LLMExtractor,
        }

    def get(self, mode: str, client: Any = None) -> BaseExtractor:
        if mode == 'llm':
            if client is None:
                logger.warning("LLM extraction requested without a client; using heuristics")
                return self.extractors['heuristic']()
            return self.extractors['llm'](client, fallback=HeuristicExtractor())
        extractor_cls = self.extractors.get(mode)
        if extractor_cls is None:
            logger.warning(f"Unknown extraction mode '{mode}'; using heuristics")
            extractor_cls = HeuristicExtractor
        return extractor_cls()

    def register(self, mode: str, extractor_class: Type[BaseExtractor]):
        self.extractors[mode] = extractor_class


extractor_factory = ExtractorFactory()


def create_extractor(settings: Settings, client: Optional[Any] = None) -> BaseExtractor:
    """Pick the strategy named by settings.extraction_mode ('auto' uses the LLM when one is available)"""
    mode = settings.extraction_mode
    if mode == 'auto':
        mode = 'llm' if client is not None else 'heuristic'
    extractor = extractor_factory.get(mode, client)
    logger.info(f"Answer extraction: {extractor.name}")
    return extractor
