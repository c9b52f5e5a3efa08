"""
Human-readable turn log
"""

import os
import time

import pytest

from core.models import AuditLogEntry, ConversationNode, create_conversation_state
from storage.audit_log import AuditLog


def _entry(**kwargs):
    values = dict(
        identity="alice",
        node=ConversationNode.PRICE_RANGE,
        question="Do you have a price range in mind?",
        user_response="around 250k to 300k",
        extracted_value={'min': 250000, 'max': 300000},
        next_node=ConversationNode.BEDROOMS_BATHROOMS,
        ai_response="How many bedrooms and bathrooms?",
    )
    values.update(kwargs)
    return AuditLogEntry(**values)


def test_append_writes_block(tmp_path):
    log = AuditLog(str(tmp_path))
    assert log.append("alice", _entry())

    files = log.list_log_files()
    assert len(files) == 1
    assert files[0]['name'].startswith("graph.alice.")

    text = log.read_log_file(files[0]['name'])
    assert "Node: price_range" in text
    assert "User Response: around 250k to 300k" in text
    assert '"min": 250000' in text
    assert "Next Node: bedrooms_bathrooms" in text
    assert "AI Response: How many bedrooms and bathrooms?" in text
    assert "-" * 40 in text


def test_unclear_entry_shows_original_response(tmp_path):
    log = AuditLog(str(tmp_path))
    log.append("alice", _entry(
        node=ConversationNode.BEDROOMS_BATHROOMS,
        user_response="mmmblah",
        extracted_value=None,
        unclear=True,
        clarification="How many bedrooms?",
        next_node=ConversationNode.BEDROOMS_BATHROOMS,
    ))
    text = log.read_log_file(log.list_log_files()[0]['name'])
    assert '"unclear": true' in text
    assert '"originalResponse": "mmmblah"' in text


def test_start_new_log_rotates_file(tmp_path):
    log = AuditLog(str(tmp_path))
    log.append("alice", _entry())
    time.sleep(0.01)
    log.start_new_log("alice")
    log.append("alice", _entry())
    assert len(log.list_log_files()) == 2


def test_resumes_latest_file_after_restart(tmp_path):
    AuditLog(str(tmp_path)).append("alice", _entry())
    AuditLog(str(tmp_path)).append("alice", _entry())
    assert len(os.listdir(tmp_path)) == 1


def test_summary(tmp_path):
    log = AuditLog(str(tmp_path))
    state = create_conversation_state("alice")
    state.apply_flags({'interested_in_selling': True, 'email': "a@b.co"})
    state.record_answer(ConversationNode.INITIAL_INTEREST, "yes", "yes")
    state.set_complete()
    assert log.append_summary("alice", state)

    text = log.read_log_file(log.list_log_files()[0]['name'])
    assert "CONVERSATION SUMMARY" in text
    assert "Completed: True" in text
    assert 'initial_interest: "yes"' in text
    assert "interested_in_selling: True" in text
    assert "email: a@b.co" in text


def test_read_rejects_unlisted_names(tmp_path):
    log = AuditLog(str(tmp_path / "logs"))
    log.append("alice", _entry())
    (tmp_path / "secret.log").write_text("secret", encoding="utf-8")

    with pytest.raises(FileNotFoundError):
        log.read_log_file("../secret.log")
    with pytest.raises(FileNotFoundError):
        log.read_log_file("graph.nobody.log")


def test_write_failure_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    log = AuditLog(str(blocker))
    assert log.append("alice", _entry()) is False


def test_list_empty_when_directory_missing(tmp_path):
    assert AuditLog(str(tmp_path / "missing")).list_log_files() == []


def test_unlistable_directory_is_reported_not_raised(tmp_path, monkeypatch):
    log = AuditLog(str(tmp_path))

    def denied(path):
        raise PermissionError(f"denied: {path}")

    monkeypatch.setattr(os, "listdir", denied)
    assert log.append("alice", _entry()) is False
    assert log.append_summary("alice", create_conversation_state("alice")) is False
