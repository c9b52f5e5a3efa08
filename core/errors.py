from __future__ import annotations


class ColdCallError(Exception):
    """Base class for interview errors"""


class UnknownNodeError(ColdCallError):
    """Raised when a node has no registry entry"""

    def __init__(self, node: str):
        super().__init__(f"No node definition registered for '{node}'")
        self.node = node


class GraphConfigError(ColdCallError):
    """Raised when the interview graph fails validation"""


class ConversationClosedError(ColdCallError):
    """Raised when a completed conversation is mutated"""


class ExtractionError(ColdCallError):
    """Raised by extraction backends; always recovered by the adapter"""
