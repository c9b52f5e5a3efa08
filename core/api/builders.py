from __future__ import annotations

from dataclasses import asdict
from typing import List, Optional

from .models import AnswerItem, NodeState, SessionInfo, StateSummary, TurnResult
from ..models import ConversationState


def build_answers(state: ConversationState) -> List[AnswerItem]:
    nodes = list(state.raw_answers)
    nodes += [n for n in state.extracted_answers if n not in state.raw_answers]
    return [
        AnswerItem(node=n.value, raw=state.raw_answers.get(n), value=state.extracted_answers.get(n))
        for n in nodes
    ]


def build_turn_result(
    state: ConversationState,
    response_text: str,
    node_stage: Optional[str] = None,
    successors: Optional[List[str]] = None,
) -> TurnResult:
    session_info = SessionInfo(
        id=state.identity,
        is_complete=state.is_complete,
        message_count=len(state.messages),
        clarification_count=state.clarification_count,
        started_at=state.started_at,
        last_updated=state.last_updated,
    )

    node_state = NodeState(
        current=state.current_node.value,
        question=state.last_question or None,
        stage=node_stage,
        successors=successors or [],
    )

    return TurnResult(
        response=response_text or "",
        session=session_info,
        node=node_state,
        answers=build_answers(state),
        flags=asdict(state.flags()),
    )


def build_state_summary(state: Optional[ConversationState]) -> StateSummary:
    if state is None:
        return StateSummary(active=False, message="No active conversation")
    return StateSummary(
        active=True,
        currentNode=state.current_node.value,
        isComplete=state.is_complete,
        answers={n.value: raw for n, raw in state.raw_answers.items()},
        messageCount=len(state.messages),
    )
