from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from extractors import BaseExtractor, create_extractor
from graph.nodes import GENERIC_CLARIFICATION, get_node_def
from graph.transitions import derive_flag_updates, determine_next_node
from storage.audit_log import AuditLog
from storage.context_store import ContextStore, sanitize_identity

from .api import build_state_summary, build_turn_result
from .config import Settings, load_settings
from .errors import UnknownNodeError
from .models import (
    CLOSING_MESSAGE, ENDED_MESSAGE, AuditLogEntry, ConversationNode, ConversationState,
    Speaker, create_conversation_state,
)
from .openai_client import OpenAIClient
from .prompts import Prompts
from .runtime.graph_info import GraphInfo, load_and_validate

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Sorry, I missed that on my end."
HISTORY_WINDOW = 4


class ConversationEngine:
    """Runs the interview one turn at a time.

    State is loaded from the context store at the start of every turn and
    written back only once the turn has fully resolved, so a failed turn
    leaves the stored conversation untouched.
    """

    def __init__(self, graph_info: GraphInfo, context_store: ContextStore, extractor: BaseExtractor,
                 audit_log: AuditLog, settings: Optional[Settings] = None, openai_client: Any = None):
        self.runtime = graph_info
        self.nodes_info = graph_info.nodes_info
        self.context_store = context_store
        self.extractor = extractor
        self.audit_log = audit_log
        self.settings = settings or Settings()
        self.openai_client = openai_client
        self.root_node = ConversationNode(graph_info.start_nodes[0]) if graph_info.start_nodes else ConversationNode.INITIAL_INTEREST
        logger.info(
            f"Conversation engine ready. Root node: {self.root_node.value}, "
            f"extractor: {extractor.name}, paraphrase: {self._paraphrase_enabled}"
        )

    @property
    def _paraphrase_enabled(self) -> bool:
        return bool(self.settings.paraphrase_questions and self.openai_client is not None)

    # ========================================
    # External operations
    # ========================================

    def chat(self, identity: str, message: str) -> str:
        """Process one turn and return the outbound text"""
        return self.process_turn(identity, message)['response']

    def reset(self, identity: str) -> None:
        """Discard stored state; the next chat starts at the root node"""
        identity = sanitize_identity(identity)
        self.context_store.delete_state(identity)
        self.audit_log.start_new_log(identity)
        logger.info(f"Conversation reset: {identity}")

    def get_state(self, identity: str) -> Optional[ConversationState]:
        return self.context_store.load_state(sanitize_identity(identity))

    def get_state_summary(self, identity: str) -> Dict[str, Any]:
        return build_state_summary(self.get_state(identity)).model_dump(exclude_none=True)

    def process_turn(self, identity: str, message: str) -> Dict[str, Any]:
        identity = sanitize_identity(identity)
        message = (message or "").strip()
        logger.debug(f"User input: '{message}' ({identity})")

        state = self.context_store.load_state(identity)
        if state is None:
            state, response = self._start_conversation(identity)
        elif state.is_complete:
            response = ENDED_MESSAGE
        else:
            fallback_question = state.last_question or self._question_for(state.current_node)
            try:
                response = self._answer(identity, state, message)
            except Exception:
                logger.exception(f"Turn failed for {identity} at {state.current_node.value}; nothing persisted")
                response = f"{RETRY_MESSAGE} {fallback_question}".strip()
                state = self.context_store.load_state(identity) or state

        return self._turn_result(state, response)

    # ========================================
    # Turn handling
    # ========================================

    def _start_conversation(self, identity: str):
        state = create_conversation_state(identity)
        state.current_node = self.root_node
        question = self._question_for(self.root_node)
        state.last_question = question
        state.add_message(Speaker.SYSTEM, question)
        self.audit_log.start_new_log(identity)
        self._save(identity, state)
        logger.info(f"Conversation started: {identity}")
        return state, question

    def _answer(self, identity: str, state: ConversationState, message: str) -> str:
        node = state.current_node
        question = state.last_question or self._question_for(node)
        node_def = get_node_def(node)

        state.add_message(Speaker.USER, message)
        result = self.extractor.extract(node_def, message)

        if result.is_valid:
            return self._advance(identity, state, node, question, message, result.value)

        clarification = result.clarification_prompt or node_def.clarification or GENERIC_CLARIFICATION
        limit = self.settings.max_clarifications
        policy = self.settings.clarification_policy
        if limit is not None and state.clarification_count >= limit and policy != "repeat":
            logger.info(f"[{node.value}] clarification limit {limit} reached for {identity}; policy={policy}")
            if policy == "skip":
                return self._advance(identity, state, node, question, message, None, note="skipped after clarification limit")
            return self._close(identity, state, node, question, message, None, ConversationNode.CLOSING,
                               note="closed after clarification limit")

        state.note_clarification()
        text = self._rephrase(state, Prompts.clarification_system_prompt, Prompts.clarification_user_prompt, clarification)
        state.add_message(Speaker.SYSTEM, text)
        self._save(identity, state)
        self.audit_log.append(identity, AuditLogEntry(
            identity=identity,
            node=node,
            question=question,
            user_response=message,
            unclear=True,
            clarification=clarification,
            next_node=node,
            ai_response=text,
        ))
        return text

    def _advance(self, identity: str, state: ConversationState, node: ConversationNode, question: str,
                 message: str, value: Any, note: Optional[str] = None) -> str:
        state.apply_flags(derive_flag_updates(node, value))
        state.record_answer(node, message, value)
        next_node = determine_next_node(node, state.flags())
        if value is None and next_node == node:
            # A skipped answer cannot re-ask itself forever
            return self._close(identity, state, node, question, message, value, ConversationNode.CLOSING, note=note)

        if next_node != node and not self._is_known_transition(node, next_node):
            logger.error(f"[config] No usable transition {node.value} -> {next_node.value}; closing conversation")
            return self._close(identity, state, node, question, message, value, next_node,
                               note=f"[config] invalid transition to {next_node.value}", move=False)

        if next_node.is_terminal:
            return self._close(identity, state, node, question, message, value, next_node, note=note)

        next_question = self._question_for(next_node)
        if not next_question:
            logger.error(f"[config] Node {next_node.value} has no question text; closing conversation")
            return self._close(identity, state, node, question, message, value, next_node,
                               note=f"[config] missing question for {next_node.value}", move=False)

        text = self._rephrase(state, Prompts.next_question_system_prompt, Prompts.next_question_user_prompt, next_question)
        state.advance_to(next_node, question=text)
        state.add_message(Speaker.SYSTEM, text)
        self._save(identity, state)
        self.audit_log.append(identity, AuditLogEntry(
            identity=identity,
            node=node,
            question=question,
            user_response=message,
            extracted_value=value,
            next_node=next_node,
            ai_response=text,
            note=note,
        ))
        logger.debug(f"Node transition: '{node.value}' -> '{next_node.value}'")
        return text

    def _close(self, identity: str, state: ConversationState, node: ConversationNode, question: str,
               message: str, value: Any, next_node: ConversationNode, note: Optional[str] = None,
               move: bool = True) -> str:
        if move:
            state.advance_to(next_node)
        state.add_message(Speaker.SYSTEM, CLOSING_MESSAGE)
        state.set_complete()
        self._save(identity, state)
        self.audit_log.append(identity, AuditLogEntry(
            identity=identity,
            node=node,
            question=question,
            user_response=message,
            extracted_value=value,
            next_node=next_node,
            ai_response=CLOSING_MESSAGE,
            note=note,
        ))
        self.audit_log.append_summary(identity, state)
        logger.info(f"Conversation complete: {identity}")
        return CLOSING_MESSAGE

    # ========================================
    # Helpers
    # ========================================

    def _question_for(self, node: ConversationNode) -> str:
        node_def = self.nodes_info.get(ConversationNode(node))
        if node_def is None:
            raise UnknownNodeError(str(node))
        return node_def.question

    def _is_known_transition(self, source: ConversationNode, target: ConversationNode) -> bool:
        return target in self.nodes_info and self.runtime.is_successor(source, target)

    def _rephrase(self, state: ConversationState, system_prompt: str, user_template: str, text: str) -> str:
        if not self._paraphrase_enabled or not text:
            return text
        try:
            rephrased = self.openai_client.rephrase(
                system_prompt, user_template.format(text=text), state.recent_messages(HISTORY_WINDOW)
            )
        except Exception as e:
            logger.warning(f"Paraphrase failed, using literal text: {e}")
            return text
        return rephrased or text

    def _save(self, identity: str, state: ConversationState):
        if not self.context_store.save_state(identity, state):
            logger.warning(f"State for {identity} was not persisted")

    def _turn_result(self, state: ConversationState, response: str) -> Dict[str, Any]:
        try:
            successors = list(self.runtime.graph.successors(state.current_node.value))
        except Exception:
            successors = []
        node_def = self.nodes_info.get(state.current_node)
        api_resp = build_turn_result(
            state=state,
            response_text=response,
            node_stage=node_def.stage if node_def else None,
            successors=successors,
        )
        return {
            'response': response,
            'identity': state.identity,
            'current_node': state.current_node.value,
            'is_complete': state.is_complete,
            'answers': {n.value: v for n, v in state.extracted_answers.items()},
            'data': api_resp.model_dump(mode='json'),
        }


def create_engine(settings: Optional[Settings] = None, openai_client: Any = None) -> ConversationEngine:
    """Wire an engine from settings: graph, store, audit log, LLM client and extractor"""
    settings = settings or load_settings()
    graph_info = load_and_validate()

    if openai_client is None and settings.extraction_mode != "heuristic" and settings.llm_configured:
        try:
            openai_client = OpenAIClient(settings)
        except ValueError as e:
            logger.warning(f"LLM client unavailable: {e}")
    elif settings.extraction_mode == "llm" and not settings.llm_configured:
        logger.warning("EXTRACTION_MODE=llm but no LLM credentials configured; using heuristics")

    context_store = ContextStore(
        backend=settings.storage_backend,
        base_dir=settings.log_dir,
        redis_host=settings.redis_host,
        redis_port=settings.redis_port,
        redis_db=settings.redis_db,
        session_ttl=settings.session_ttl,
        cache_size=settings.state_cache_size,
    )
    return ConversationEngine(
        graph_info=graph_info,
        context_store=context_store,
        extractor=create_extractor(settings, openai_client),
        audit_log=AuditLog(settings.logs_dir),
        settings=settings,
        openai_client=openai_client,
    )
