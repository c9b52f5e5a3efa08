"""
HTTP surface over the conversation engine
"""

import pytest
from fastapi.testclient import TestClient

from cli.api import create_app
from core.models import CLOSING_MESSAGE, ConversationNode as N
from graph.nodes import get_question


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


def _chat(client, username, message):
    return client.post("/graph/chat", json={'username': username, 'message': message})


def test_chat_returns_plain_text(client):
    resp = _chat(client, "alice", "hello")
    assert resp.status_code == 200
    assert resp.headers['content-type'].startswith("text/plain")
    assert resp.text == get_question(N.INITIAL_INTEREST)

    assert _chat(client, "alice", "yes").text == get_question(N.PRICE_RANGE)


def test_chat_validates_body(client):
    assert _chat(client, "", "hello").status_code == 422
    assert client.post("/graph/chat", json={'username': "alice"}).status_code == 422


def test_state_endpoint(client):
    assert client.get("/graph/state/bob").json() == {'active': False, 'message': "No active conversation"}

    _chat(client, "bob", "hello")
    _chat(client, "bob", "no")
    _chat(client, "bob", "no")
    state = client.get("/graph/state/bob").json()
    assert state['active'] is True
    assert state['isComplete'] is True
    assert state['answers'] == {'initial_interest': "no", 'other_property': "no"}


def test_reset_endpoint(client):
    _chat(client, "carol", "hello")
    _chat(client, "carol", "yes")

    resp = client.post("/graph/reset", json={'username': "carol"})
    assert resp.json() == {'ok': True}
    assert client.get("/graph/state/carol").json()['active'] is False
    assert _chat(client, "carol", "hi").text == get_question(N.INITIAL_INTEREST)


def test_logs_list_and_read(client):
    _chat(client, "dan", "hello")
    _chat(client, "dan", "no")
    assert _chat(client, "dan", "no").text == CLOSING_MESSAGE

    files = client.get("/logs").json()['files']
    assert len(files) == 1
    assert files[0]['name'].startswith("graph.dan.")
    assert files[0]['url'].endswith(f"/logs/{files[0]['name']}")

    resp = client.get(f"/logs/{files[0]['name']}")
    assert resp.status_code == 200
    assert "CONVERSATION SUMMARY" in resp.text


def test_unknown_log_is_404(client):
    assert client.get("/logs/missing.log").status_code == 404


def test_health(client):
    body = client.get("/health").json()
    assert body['ok'] is True
    assert body['uptime'] >= 0
    assert "timestamp" in body
