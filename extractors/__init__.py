from .base import BaseExtractor
from .heuristic import HeuristicExtractor
from .llm import LLMExtractor
from .factory import ExtractorFactory, create_extractor, extractor_factory

__all__ = [
    'BaseExtractor',
    'HeuristicExtractor',
    'LLMExtractor',
    'ExtractorFactory',
    'create_extractor',
    'extractor_factory',
]
