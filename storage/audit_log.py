from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List

from core.models import AuditLogEntry, ConversationState

from .context_store import sanitize_identity

logger = logging.getLogger(__name__)

LOG_SUFFIXES = ('.log', '.txt', '.jsonl')


def _value_str(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def render_summary(identity: str, state: ConversationState) -> str:
    """Plain-text conversation summary appended when an interview completes"""
    rule = "=" * 40
    lines = [
        "",
        rule,
        f"[{datetime.now().isoformat()}] CONVERSATION SUMMARY",
        rule,
        f"Username: {identity}",
        f"Completed: {state.is_complete}",
        "",
        "--- RAW ANSWERS ---",
    ]
    for node, answer in state.raw_answers.items():
        lines.append(f'{node.value}: "{answer}"')
    lines += ["", "--- EXTRACTED VALUES ---"]
    for node, value in state.extracted_answers.items():
        lines.append(f"{node.value}: {_value_str(value)}")
    lines += ["", "--- STATE FLAGS ---"]
    for name, value in asdict(state.flags()).items():
        lines.append(f"{name}: {value}")
    lines += [rule, "", ""]
    return "\n".join(lines)


class AuditLog:
    """Per-conversation human-readable turn log.

    Each identity writes to one file per conversation lifecycle,
    `graph.<identity>.<timestamp>.log`; `start_new_log` rotates it. Write
    failures are logged and reported as False, never raised.
    """

    def __init__(self, logs_dir: str = './data/logs/logs'):
        self.logs_dir = logs_dir
        self._paths: Dict[str, str] = {}

    def _new_path(self, identity: str) -> str:
        ts = datetime.now().isoformat().replace(":", "-")
        return os.path.join(self.logs_dir, f"graph.{identity}.{ts}.log")

    def _latest_existing(self, identity: str) -> str:
        pattern = re.compile(rf"^graph\.{re.escape(identity)}\.\d{{4}}-\d{{2}}-\d{{2}}T[\d.-]+\.log$")
        if not os.path.isdir(self.logs_dir):
            return ""
        names = sorted(n for n in os.listdir(self.logs_dir) if pattern.match(n))
        return os.path.join(self.logs_dir, names[-1]) if names else ""

    def log_path(self, identity: str) -> str:
        """Current log file for `identity`, resuming the newest one after a restart"""
        identity = sanitize_identity(identity)
        path = self._paths.get(identity)
        if not path:
            path = self._latest_existing(identity) or self._new_path(identity)
            self._paths[identity] = path
        return path

    def start_new_log(self, identity: str) -> str:
        identity = sanitize_identity(identity)
        path = self._new_path(identity)
        self._paths[identity] = path
        logger.debug(f"New audit log for {identity}: {path}")
        return path

    def _write(self, identity: str, render: Callable[[], str]) -> bool:
        path = ""
        try:
            path = self.log_path(identity)
            text = render()
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with open(path, 'a', encoding='utf-8') as f:
                f.write(text)
            return True
        except Exception as e:
            logger.error(f"Failed to write audit log {path or identity}: {e}")
            return False

    def append(self, identity: str, entry: AuditLogEntry) -> bool:
        logger.info(
            f"[turn] {identity} node={entry.node.value} next={entry.next_node.value} "
            f"unclear={entry.unclear}"
        )
        return self._write(identity, entry.render)

    def append_summary(self, identity: str, state: ConversationState) -> bool:
        ok = self._write(identity, lambda: render_summary(sanitize_identity(identity), state))
        if ok:
            logger.info(f"Summary saved for {identity}")
        return ok

    def list_log_files(self) -> List[Dict[str, Any]]:
        """Log files, newest first"""
        if not os.path.isdir(self.logs_dir):
            return []
        files = []
        for name in os.listdir(self.logs_dir):
            full_path = os.path.join(self.logs_dir, name)
            if not name.endswith(LOG_SUFFIXES) or not os.path.isfile(full_path):
                continue
            st = os.stat(full_path)
            files.append({
                'name': name,
                'updated_at': datetime.fromtimestamp(st.st_mtime).isoformat(),
                'size': st.st_size,
            })
        files.sort(key=lambda f: f['updated_at'], reverse=True)
        return files

    def read_log_file(self, filename: str) -> str:
        """Read a listed log file; anything else raises FileNotFoundError"""
        allowed = {f['name'] for f in self.list_log_files()}
        if filename not in allowed:
            raise FileNotFoundError("Log file not found.")
        with open(os.path.join(self.logs_dir, filename), 'r', encoding='utf-8') as f:
            return f.read()
