from typing import Dict, Any, Optional, List
from collections import OrderedDict
import logging
import os
import re
import tempfile
from datetime import datetime, timedelta

import redis
from pydantic import ValidationError

from core.models import ConversationState

logger = logging.getLogger(__name__)

IDENTITY_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]")
MAX_IDENTITY_LENGTH = 64


def sanitize_identity(raw: Optional[str]) -> str:
    """Make a caller identity safe for file names and store keys"""
    v = (raw or "").strip()
    if not v:
        return "anonymous"
    return IDENTITY_UNSAFE_RE.sub("_", v)[:MAX_IDENTITY_LENGTH]


class ContextStore:
    """Conversation state store keyed by sanitized identity"""

    def __init__(self, backend: str = 'memory', base_dir: str = './data/logs',
                 redis_host: str = 'localhost', redis_port: int = 6379, redis_db: int = 0,
                 session_ttl: Optional[int] = None, cache_size: int = 256):
        self.backend = backend
        self.session_ttl = session_ttl
        self.state_dir = os.path.join(base_dir, "graph-state")
        self.redis_client = None
        self.memory_store: Dict[str, Dict[str, Any]] = {}

        if backend == 'redis':
            try:
                self.redis_client = redis.Redis(
                    host=redis_host,
                    port=redis_port,
                    db=redis_db,
                    decode_responses=True
                )
                self.redis_client.ping()
                logger.info("Connected to Redis for conversation state")
            except redis.exceptions.RedisError as e:
                logger.warning(f"Redis connection failed: {e}, falling back to in-memory storage")
                self.redis_client = None
                self.backend = 'memory'
        elif backend not in ('memory', 'file'):
            raise ValueError(f"Unknown storage backend: {backend}")

        # Cached copies go stale once entries can expire underneath them
        self.cache_size = cache_size if (session_ttl is None and self.backend != 'memory') else 0
        self._cache: "OrderedDict[str, ConversationState]" = OrderedDict()

        logger.info(f"Using {self.backend} storage for conversation state")

    # ========================================
    # Cache
    # ========================================

    def _cache_get(self, identity: str) -> Optional[ConversationState]:
        state = self._cache.get(identity)
        if state is None:
            return None
        self._cache.move_to_end(identity)
        return state.model_copy(deep=True)

    def _cache_put(self, identity: str, state: ConversationState):
        if self.cache_size <= 0:
            return
        self._cache[identity] = state.model_copy(deep=True)
        self._cache.move_to_end(identity)
        while len(self._cache) > self.cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted cached state: {evicted}")

    # ========================================
    # Backends
    # ========================================

    def _state_path(self, identity: str) -> str:
        return os.path.join(self.state_dir, f"{identity}.json")

    def _write_file(self, identity: str, payload: str):
        os.makedirs(self.state_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.state_dir, prefix=f".{identity}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, self._state_path(identity))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read_raw(self, identity: str) -> Optional[str]:
        if self.redis_client is not None:
            return self.redis_client.get(f"session:{identity}")
        if self.backend == 'file':
            path = self._state_path(identity)
            if not os.path.exists(path):
                return None
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        session_data = self.memory_store.get(identity)
        if not session_data:
            return None
        expires_at = session_data['expires_at']
        if expires_at is not None and datetime.now() >= expires_at:
            del self.memory_store[identity]
            logger.debug(f"Session {identity} expired and removed")
            return None
        return session_data['data']

    # ========================================
    # Public API
    # ========================================

    def save_state(self, identity: str, state: ConversationState) -> bool:
        """Save conversation state; last write wins"""
        identity = sanitize_identity(identity)
        try:
            payload = state.to_json()

            if self.redis_client is not None:
                key = f"session:{identity}"
                if self.session_ttl:
                    self.redis_client.setex(key, self.session_ttl, payload)
                else:
                    self.redis_client.set(key, payload)
            elif self.backend == 'file':
                self._write_file(identity, payload)
            else:
                expires_at = datetime.now() + timedelta(seconds=self.session_ttl) if self.session_ttl else None
                self.memory_store[identity] = {'data': payload, 'expires_at': expires_at}

            self._cache_put(identity, state)
            logger.debug(f"Saved state for {identity} at node {state.current_node.value}")
            return True

        except (OSError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to save state for {identity}: {e}")
            return False

    def load_state(self, identity: str) -> Optional[ConversationState]:
        """Load conversation state; missing or unreadable payloads give None"""
        identity = sanitize_identity(identity)
        cached = self._cache_get(identity)
        if cached is not None:
            return cached

        try:
            raw = self._read_raw(identity)
        except (OSError, UnicodeDecodeError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to load state for {identity}: {e}")
            return None
        if not raw:
            return None

        try:
            state = ConversationState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable state for {identity}: {e.error_count()} error(s)")
            return None

        self._cache_put(identity, state)
        return state

    def delete_state(self, identity: str) -> bool:
        """Delete conversation state; deleting a missing identity is not an error"""
        identity = sanitize_identity(identity)
        self._cache.pop(identity, None)
        try:
            if self.redis_client is not None:
                self.redis_client.delete(f"session:{identity}")
            elif self.backend == 'file':
                path = self._state_path(identity)
                if os.path.exists(path):
                    os.remove(path)
            else:
                self.memory_store.pop(identity, None)

            logger.debug(f"Deleted state for {identity}")
            return True

        except (OSError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to delete state for {identity}: {e}")
            return False

    def list_sessions(self) -> List[str]:
        """List identities with stored state"""
        try:
            if self.redis_client is not None:
                keys = self.redis_client.keys("session:*")
                return sorted(key.replace("session:", "", 1) for key in keys)
            if self.backend == 'file':
                if not os.path.isdir(self.state_dir):
                    return []
                return sorted(
                    name[:-len(".json")] for name in os.listdir(self.state_dir)
                    if name.endswith(".json") and not name.startswith(".")
                )
            self.cleanup_expired()
            return sorted(self.memory_store)

        except (OSError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to list sessions: {e}")
            return []

    def cleanup_expired(self) -> int:
        """Drop expired in-memory sessions; Redis expires keys on its own"""
        if self.backend != 'memory':
            return 0

        now = datetime.now()
        expired = [
            identity for identity, session_data in self.memory_store.items()
            if session_data['expires_at'] is not None and now >= session_data['expires_at']
        ]
        for identity in expired:
            del self.memory_store[identity]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def get_session_info(self, identity: str) -> Optional[Dict[str, Any]]:
        """Get storage metadata without loading full state"""
        identity = sanitize_identity(identity)
        try:
            if self.redis_client is not None:
                key = f"session:{identity}"
                if not self.redis_client.exists(key):
                    return None
                ttl = self.redis_client.ttl(key)
                info: Dict[str, Any] = {'identity': identity, 'backend': 'redis'}
                if ttl > 0:
                    info['ttl_seconds'] = ttl
                    info['expires_at'] = datetime.now() + timedelta(seconds=ttl)
                return info

            if self.backend == 'file':
                path = self._state_path(identity)
                if not os.path.exists(path):
                    return None
                st = os.stat(path)
                return {
                    'identity': identity,
                    'backend': 'file',
                    'path': path,
                    'size': st.st_size,
                    'updated_at': datetime.fromtimestamp(st.st_mtime),
                }

            session_data = self.memory_store.get(identity)
            if not session_data:
                return None
            expires_at = session_data['expires_at']
            if expires_at is not None and datetime.now() >= expires_at:
                return None
            info = {'identity': identity, 'backend': 'memory'}
            if expires_at is not None:
                info['expires_at'] = expires_at
                info['ttl_seconds'] = int((expires_at - datetime.now()).total_seconds())
            return info

        except (OSError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to get session info for {identity}: {e}")
            return None

