from __future__ import annotations

from .models import ChatRequest, ResetRequest, AnswerItem, NodeState, SessionInfo, TurnResult, StateSummary
from .builders import build_answers, build_turn_result, build_state_summary

__all__ = [
    'ChatRequest', 'ResetRequest', 'AnswerItem', 'NodeState', 'SessionInfo', 'TurnResult', 'StateSummary',
    'build_answers', 'build_turn_result', 'build_state_summary',
]
