"""
Turn-by-turn behaviour of the conversation engine (heuristic extraction)
"""

import logging
import os

from core.config import Settings
from core.conversation_engine import RETRY_MESSAGE, create_engine
from core.models import CLOSING_MESSAGE, ENDED_MESSAGE, ConversationNode as N, Speaker
from core.runtime.graph_info import GraphInfo
from extractors import BaseExtractor
from graph.nodes import CLARIFICATIONS, get_question
from graph.schema import ContractType
from storage.context_store import ContextStore


def _to_price_range(engine, identity):
    engine.chat(identity, "hello")
    engine.chat(identity, "yes")


def _to_bedrooms(engine, identity):
    _to_price_range(engine, identity)
    engine.chat(identity, "around 250k to 300k")


# ========================
# Scenarios
# ========================

def test_alice_scenario(engine):
    assert engine.chat("alice", "hello") == get_question(N.INITIAL_INTEREST)
    state = engine.get_state("alice")
    assert state.current_node == N.INITIAL_INTEREST
    assert state.raw_answers == {}

    assert engine.chat("alice", "yes I've thought about it") == get_question(N.PRICE_RANGE)
    state = engine.get_state("alice")
    assert state.interested_in_selling is True
    assert state.current_node == N.PRICE_RANGE
    assert state.raw_answers[N.INITIAL_INTEREST] == "yes I've thought about it"
    assert state.extracted_answers[N.INITIAL_INTEREST] == "yes"

    assert engine.chat("alice", "around 250k to 300k") == get_question(N.BEDROOMS_BATHROOMS)
    state = engine.get_state("alice")
    assert state.current_node == N.BEDROOMS_BATHROOMS
    assert state.extracted_answers[N.PRICE_RANGE]['min'] == 250000
    assert state.extracted_answers[N.PRICE_RANGE]['max'] == 300000

    response = engine.chat("alice", "mmmblah")
    assert response == CLARIFICATIONS[ContractType.ROOM_COUNT]
    state = engine.get_state("alice")
    assert state.current_node == N.BEDROOMS_BATHROOMS
    assert state.clarification_count == 1
    assert N.BEDROOMS_BATHROOMS not in state.raw_answers


def test_bob_scenario(engine):
    engine.chat("bob", "hello")
    assert engine.chat("bob", "no") == get_question(N.OTHER_PROPERTY)
    assert engine.get_state("bob").interested_in_selling is False

    assert engine.chat("bob", "nope, just this one") == CLOSING_MESSAGE
    state = engine.get_state("bob")
    assert state.is_complete
    assert state.has_other_property is False

    snapshot = state.to_dict()
    assert engine.chat("bob", "sure") == ENDED_MESSAGE
    assert engine.chat("bob", "hi") == ENDED_MESSAGE
    assert engine.chat("bob", "hi") == ENDED_MESSAGE
    assert engine.get_state("bob").to_dict() == snapshot


def test_full_tenant_interview(engine, audit_log):
    engine.chat("carol", "hello")
    engine.chat("carol", "yes")
    engine.chat("carol", "around 250k to 300k")
    assert engine.chat("carol", "3 bed 2 bath") == get_question(N.KITCHEN_UPDATES)
    assert engine.chat("carol", "yes we redid it") == get_question(N.PROPERTY_CONDITION)
    assert engine.chat("carol", "8") == get_question(N.OCCUPANCY)
    assert engine.chat("carol", "it's rented to tenants") == get_question(N.LEASE_TYPE)
    assert engine.chat("carol", "annual lease") == get_question(N.LEASE_EXPIRY)
    assert engine.chat("carol", "next March") == get_question(N.SELLING_REASON)
    assert engine.chat("carol", "relocating for work") == get_question(N.COLLECT_EMAIL)
    assert engine.chat("carol", "carol@example.com") == CLOSING_MESSAGE

    state = engine.get_state("carol")
    assert state.is_complete
    assert state.current_node == N.CLOSING
    assert state.is_tenant_occupied is True
    assert state.is_annual_lease is True
    assert state.email == "carol@example.com"
    assert state.extracted_answers[N.BEDROOMS_BATHROOMS]['bedrooms'] == 3
    assert state.extracted_answers[N.PROPERTY_CONDITION] == 8
    assert state.messages[-1].text == CLOSING_MESSAGE

    files = audit_log.list_log_files()
    assert len(files) == 1
    text = audit_log.read_log_file(files[0]['name'])
    assert text.count("] Node: ") == 10
    assert "CONVERSATION SUMMARY" in text


def test_owner_skips_lease_questions(engine):
    _to_bedrooms(engine, "dan")
    engine.chat("dan", "4 bedrooms 3 baths")
    engine.chat("dan", "no")
    engine.chat("dan", "good")
    assert engine.chat("dan", "I live there myself") == get_question(N.SELLING_REASON)
    assert engine.get_state("dan").is_tenant_occupied is False


def test_monthly_lease_skips_expiry(engine):
    _to_bedrooms(engine, "erin")
    for message in ("3/2", "no", "7", "tenants"):
        engine.chat("erin", message)
    assert engine.chat("erin", "month to month") == get_question(N.SELLING_REASON)


def test_email_declined(engine):
    _to_bedrooms(engine, "fay")
    for message in ("3/2", "no", "7", "I live there", "downsizing"):
        engine.chat("fay", message)
    assert engine.chat("fay", "I'd rather skip that") == CLOSING_MESSAGE
    assert engine.get_state("fay").extracted_answers[N.COLLECT_EMAIL] == "declined"


# ========================
# Turn rules
# ========================

def test_first_turn_does_no_extraction(engine):
    assert engine.chat("gus", "yes absolutely") == get_question(N.INITIAL_INTEREST)
    state = engine.get_state("gus")
    assert state.interested_in_selling is None
    assert [m.speaker for m in state.messages] == [Speaker.SYSTEM]


def test_transcript_records_both_sides(engine):
    _to_price_range(engine, "hal")
    texts = [m.text for m in engine.get_state("hal").messages]
    assert texts == [get_question(N.INITIAL_INTEREST), "yes", get_question(N.PRICE_RANGE)]


def test_reset_starts_over(engine, audit_log):
    _to_bedrooms(engine, "ivy")
    engine.reset("ivy")
    assert engine.get_state("ivy") is None
    assert engine.chat("ivy", "anything") == get_question(N.INITIAL_INTEREST)
    assert engine.get_state("ivy").raw_answers == {}

    engine.chat("ivy", "yes")
    assert len(audit_log.list_log_files()) == 2


def test_reset_unknown_identity_is_harmless(engine):
    engine.reset("nobody")
    assert engine.get_state("nobody") is None


def test_identity_is_sanitized(engine):
    engine.chat("john doe", "hello")
    assert engine.get_state("john_doe") is not None
    assert engine.get_state("john doe").identity == "john_doe"


def test_process_turn_result(engine):
    engine.chat("jo", "hello")
    result = engine.process_turn("jo", "yes")
    assert result['response'] == get_question(N.PRICE_RANGE)
    assert result['identity'] == "jo"
    assert result['current_node'] == "price_range"
    assert result['is_complete'] is False
    assert result['answers'] == {'initial_interest': "yes"}
    assert result['data']['node']['successors'] == ["bedrooms_bathrooms"]
    assert result['data']['flags']['interested_in_selling'] is True


def test_state_summary(engine):
    assert engine.get_state_summary("kim") == {'active': False, 'message': "No active conversation"}
    _to_price_range(engine, "kim")
    summary = engine.get_state_summary("kim")
    assert summary['active'] is True
    assert summary['currentNode'] == "price_range"
    assert summary['isComplete'] is False
    assert summary['answers'] == {'initial_interest': "yes"}
    assert summary['messageCount'] == 3


# ========================
# Clarification policy
# ========================

def test_unlimited_clarifications_by_default(engine):
    _to_bedrooms(engine, "lee")
    for _ in range(5):
        assert engine.chat("lee", "mmmblah") == CLARIFICATIONS[ContractType.ROOM_COUNT]
    assert engine.get_state("lee").clarification_count == 5


def test_skip_policy_advances_with_empty_answer(make_engine):
    engine = make_engine(max_clarifications=1, clarification_policy="skip")
    _to_bedrooms(engine, "max")
    assert engine.chat("max", "mmmblah") == CLARIFICATIONS[ContractType.ROOM_COUNT]
    assert engine.chat("max", "mmmblah") == get_question(N.KITCHEN_UPDATES)

    state = engine.get_state("max")
    assert state.current_node == N.KITCHEN_UPDATES
    assert state.extracted_answers[N.BEDROOMS_BATHROOMS] is None
    assert state.clarification_count == 0


def test_skip_policy_on_self_loop_closes(make_engine):
    engine = make_engine(max_clarifications=0, clarification_policy="skip")
    engine.chat("ned", "hello")
    assert engine.chat("ned", "what is this about?") == CLOSING_MESSAGE
    assert engine.get_state("ned").is_complete


def test_close_policy(make_engine):
    engine = make_engine(max_clarifications=1, clarification_policy="close")
    _to_bedrooms(engine, "oli")
    engine.chat("oli", "mmmblah")
    assert engine.chat("oli", "mmmblah") == CLOSING_MESSAGE
    state = engine.get_state("oli")
    assert state.is_complete
    assert state.current_node == N.CLOSING


def test_repeat_policy_ignores_limit(make_engine):
    engine = make_engine(max_clarifications=1, clarification_policy="repeat")
    _to_bedrooms(engine, "pat")
    for _ in range(3):
        assert engine.chat("pat", "mmmblah") == CLARIFICATIONS[ContractType.ROOM_COUNT]


# ========================
# Failure handling
# ========================

def test_audit_failure_does_not_fail_the_turn(engine, monkeypatch, caplog):
    engine.chat("dave", "hello")

    def unwritable(identity):
        raise PermissionError("log directory is read-only")

    monkeypatch.setattr(engine.audit_log, "log_path", unwritable)
    with caplog.at_level(logging.ERROR):
        assert engine.chat("dave", "yes") == get_question(N.PRICE_RANGE)
    assert "Failed to write audit log" in caplog.text
    assert engine.get_state("dave").current_node == N.PRICE_RANGE

    assert engine.chat("dave", "about 300k") == get_question(N.BEDROOMS_BATHROOMS)
    assert engine.get_state("dave").extracted_answers[N.PRICE_RANGE]['min'] == 300000


def test_undecodable_state_file_starts_over(make_engine, tmp_path):
    store = ContextStore(backend="file", base_dir=str(tmp_path), cache_size=0)
    engine = make_engine(store=store)
    os.makedirs(tmp_path / "graph-state", exist_ok=True)
    (tmp_path / "graph-state" / "carol.json").write_bytes(b"\xff\xfe\x00garbage")

    assert engine.chat("carol", "hello") == get_question(N.INITIAL_INTEREST)
    assert engine.get_state("carol").current_node == N.INITIAL_INTEREST

class ExplodingExtractor(BaseExtractor):
    name = "exploding"

    def extract(self, node_def, utterance):
        raise RuntimeError("boom")


def test_unexpected_error_persists_nothing(make_engine):
    engine = make_engine(extractor=ExplodingExtractor())
    engine.chat("quinn", "hello")
    before = engine.get_state("quinn").to_dict()

    response = engine.chat("quinn", "yes")
    assert response.startswith(RETRY_MESSAGE)
    assert get_question(N.INITIAL_INTEREST) in response
    assert "boom" not in response
    assert engine.get_state("quinn").to_dict() == before


def test_missing_transition_closes_with_config_error(make_engine, graph_info, caplog):
    graph = graph_info.graph.copy()
    graph.remove_edge("price_range", "bedrooms_bathrooms")
    broken = GraphInfo(
        graph=graph,
        nodes_info=graph_info.nodes_info,
        start_nodes=graph_info.start_nodes,
        end_nodes=graph_info.end_nodes,
        order=graph_info.order,
    )
    engine = make_engine(graph=broken)
    _to_price_range(engine, "rae")

    with caplog.at_level(logging.ERROR):
        assert engine.chat("rae", "about 300k") == CLOSING_MESSAGE
    assert "[config]" in caplog.text

    state = engine.get_state("rae")
    assert state.is_complete
    assert state.current_node == N.PRICE_RANGE
    assert state.extracted_answers[N.PRICE_RANGE]['min'] == 300000


def test_missing_node_definition_closes(make_engine, graph_info):
    nodes_info = dict(graph_info.nodes_info)
    del nodes_info[N.OTHER_PROPERTY]
    broken = GraphInfo(
        graph=graph_info.graph,
        nodes_info=nodes_info,
        start_nodes=graph_info.start_nodes,
        end_nodes=graph_info.end_nodes,
    )
    engine = make_engine(graph=broken)
    engine.chat("sam", "hello")
    assert engine.chat("sam", "no") == CLOSING_MESSAGE


# ========================
# Paraphrasing
# ========================

class FakeParaphraser:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def rephrase(self, instruction, text, history=None):
        self.calls.append((instruction, text, list(history or [])))
        if self.fail:
            raise TimeoutError("slow model")
        return "So, any price range in mind?"


def test_paraphrased_question(make_engine):
    client = FakeParaphraser()
    engine = make_engine(openai_client=client, paraphrase_questions=True)
    engine.chat("tom", "hello")
    assert engine.chat("tom", "yes") == "So, any price range in mind?"

    instruction, text, history = client.calls[0]
    assert get_question(N.PRICE_RANGE) in text
    assert history[-1].text == "yes"
    assert engine.get_state("tom").last_question == "So, any price range in mind?"


def test_paraphrase_failure_falls_back_to_literal(make_engine):
    engine = make_engine(openai_client=FakeParaphraser(fail=True), paraphrase_questions=True)
    engine.chat("uma", "hello")
    assert engine.chat("uma", "yes") == get_question(N.PRICE_RANGE)
    assert engine.chat("uma", "hmm") == CLARIFICATIONS[ContractType.CURRENCY_RANGE]


def test_first_question_is_never_paraphrased(make_engine):
    client = FakeParaphraser()
    engine = make_engine(openai_client=client, paraphrase_questions=True)
    assert engine.chat("val", "hello") == get_question(N.INITIAL_INTEREST)
    assert client.calls == []


def test_create_engine_keeps_state_and_logs_under_log_dir(tmp_path):
    settings = Settings(
        storage_backend="file",
        extraction_mode="heuristic",
        paraphrase_questions=False,
        log_dir=str(tmp_path),
    )
    engine = create_engine(settings)
    engine.chat("wes", "hello")
    engine.chat("wes", "yes")

    assert os.path.isfile(tmp_path / "graph-state" / "wes.json")
    assert [f['name'] for f in engine.audit_log.list_log_files()][0].startswith("graph.wes.")
    assert engine.audit_log.logs_dir == os.path.join(str(tmp_path), "logs")
