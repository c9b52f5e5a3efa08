import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings
from core.conversation_engine import ConversationEngine
from core.runtime.graph_info import load_and_validate
from extractors import HeuristicExtractor
from storage.audit_log import AuditLog
from storage.context_store import ContextStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage_backend="memory",
        extraction_mode="heuristic",
        paraphrase_questions=False,
        log_dir=str(tmp_path),
    )


@pytest.fixture
def graph_info():
    return load_and_validate()


@pytest.fixture
def audit_log(tmp_path):
    return AuditLog(str(tmp_path / "logs"))


@pytest.fixture
def make_engine(tmp_path, graph_info, audit_log):
    """Build an engine on the heuristic extractor; keyword arguments override settings"""

    def _make(extractor=None, openai_client=None, store=None, graph=None, **overrides):
        values = {
            'storage_backend': "memory",
            'extraction_mode': "heuristic",
            'paraphrase_questions': False,
            'log_dir': str(tmp_path),
        }
        values.update(overrides)
        return ConversationEngine(
            graph_info=graph or graph_info,
            context_store=store or ContextStore(backend="memory"),
            extractor=extractor or HeuristicExtractor(),
            audit_log=audit_log,
            settings=Settings(**values),
            openai_client=openai_client,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
