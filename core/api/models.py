from __future__ import annotations

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    username: str = Field(min_length=1)
    message: str = Field(min_length=1)


class ResetRequest(BaseModel):
    username: str = Field(min_length=1)


class AnswerItem(BaseModel):
    node: str
    raw: Optional[str] = None
    value: Any = None


class NodeState(BaseModel):
    current: str
    question: Optional[str] = None
    stage: Optional[str] = None
    successors: List[str] = Field(default_factory=list)


class SessionInfo(BaseModel):
    id: str
    is_complete: bool
    message_count: int
    clarification_count: int = 0
    started_at: datetime
    last_updated: datetime


class TurnResult(BaseModel):
    """Full result of one processed turn"""
    response: str
    session: SessionInfo
    node: NodeState
    answers: List[AnswerItem] = Field(default_factory=list)
    flags: Dict[str, Any] = Field(default_factory=dict)


class StateSummary(BaseModel):
    """Public view of a stored conversation"""
    active: bool
    message: Optional[str] = None
    currentNode: Optional[str] = None
    isComplete: Optional[bool] = None
    answers: Optional[Dict[str, str]] = None
    messageCount: Optional[int] = None
