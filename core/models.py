from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, List, Optional
from enum import Enum

from pydantic import BaseModel, Field, ConfigDict

from .errors import ConversationClosedError


# ============================================================================
# Base Configuration
# ============================================================================

class BaseConfig(BaseModel):
    """Base configuration with common settings"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        arbitrary_types_allowed=True
    )


# ============================================================================
# Interview Nodes
# ============================================================================

class ConversationNode(str, Enum):
    """Questions of the cold-call interview"""
    INITIAL_INTEREST = "initial_interest"
    OTHER_PROPERTY = "other_property"
    PRICE_RANGE = "price_range"
    BEDROOMS_BATHROOMS = "bedrooms_bathrooms"
    KITCHEN_UPDATES = "kitchen_updates"
    PROPERTY_CONDITION = "property_condition"
    OCCUPANCY = "occupancy"
    LEASE_TYPE = "lease_type"
    LEASE_EXPIRY = "lease_expiry"
    SELLING_REASON = "selling_reason"
    COLLECT_EMAIL = "collect_email"
    CLOSING = "closing"
    END = "end"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_NODES


ROOT_NODE = ConversationNode.INITIAL_INTEREST
TERMINAL_NODES = frozenset({ConversationNode.CLOSING, ConversationNode.END})

CLOSING_MESSAGE = "Thank you for your time. Our team will be in touch soon. Have a great day!"
ENDED_MESSAGE = "The conversation has ended. Please start a new conversation."
EMAIL_DECLINED = "declined"


class Speaker(str, Enum):
    SYSTEM = "system"
    USER = "user"


class Message(BaseConfig):
    """One transcript line"""
    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=datetime.now)


# ============================================================================
# Derived Flags
# ============================================================================

@dataclass(frozen=True)
class DerivedFlags:
    """Tri-state facts used to pick the next node (None = unknown)"""
    interested_in_selling: Optional[bool] = None
    has_other_property: Optional[bool] = None
    is_tenant_occupied: Optional[bool] = None
    is_annual_lease: Optional[bool] = None
    email: Optional[str] = None


FLAG_FIELDS = (
    'interested_in_selling',
    'has_other_property',
    'is_tenant_occupied',
    'is_annual_lease',
    'email',
)


# ============================================================================
# Conversation State
# ============================================================================

class ConversationState(BaseConfig):
    """Resumable per-identity interview state"""
    identity: str
    current_node: ConversationNode = ROOT_NODE

    # Transcript and answers
    messages: List[Message] = Field(default_factory=list)
    raw_answers: Dict[ConversationNode, str] = Field(default_factory=dict)
    extracted_answers: Dict[ConversationNode, Any] = Field(default_factory=dict)

    # Derived flags
    interested_in_selling: Optional[bool] = None
    has_other_property: Optional[bool] = None
    is_tenant_occupied: Optional[bool] = None
    is_annual_lease: Optional[bool] = None
    email: Optional[str] = None

    # Status
    is_complete: bool = False
    clarification_count: int = Field(default=0, ge=0)
    last_question: str = ""

    # Timestamps
    started_at: datetime = Field(default_factory=datetime.now)
    last_updated: datetime = Field(default_factory=datetime.now)

    # ========================================
    # Transcript
    # ========================================

    def add_message(self, speaker: Speaker, text: str):
        """Append a transcript line"""
        self._ensure_open()
        self.messages.append(Message(speaker=speaker, text=text))
        self.touch()

    def recent_messages(self, last_n: int) -> List[Message]:
        return self.messages[-last_n:] if last_n > 0 else []

    # ========================================
    # Answers and flags
    # ========================================

    def record_answer(self, node: ConversationNode, raw: str, value: Any):
        """Store raw and extracted answer for the node just answered"""
        self._ensure_open()
        self.raw_answers[node] = raw
        self.extracted_answers[node] = value
        self.touch()

    def apply_flags(self, updates: Dict[str, Any]):
        self._ensure_open()
        for name, value in updates.items():
            if name not in FLAG_FIELDS:
                raise ValueError(f"Unknown derived flag: {name}")
            setattr(self, name, value)
        self.touch()

    def flags(self) -> DerivedFlags:
        return DerivedFlags(**{name: getattr(self, name) for name in FLAG_FIELDS})

    @property
    def collected_email(self) -> Optional[str]:
        """Email address if one was given, None when unknown or declined"""
        if self.email and self.email != EMAIL_DECLINED:
            return self.email
        return None

    # ========================================
    # Node Management
    # ========================================

    def advance_to(self, node: ConversationNode, question: str = ""):
        self._ensure_open()
        self.current_node = node
        self.clarification_count = 0
        if question:
            self.last_question = question
        self.touch()

    def note_clarification(self):
        self._ensure_open()
        self.clarification_count += 1
        self.touch()

    def set_complete(self):
        """Mark the conversation finished; no further mutation is allowed"""
        self._ensure_open()
        self.is_complete = True
        self.touch()

    def touch(self):
        self.last_updated = datetime.now()

    def _ensure_open(self):
        if self.is_complete:
            raise ConversationClosedError(f"Conversation for '{self.identity}' is complete")

    # ========================================
    # Serialization
    # ========================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-compatible dictionary"""
        return self.model_dump(mode='json')

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    @classmethod
    def from_json(cls, payload: str) -> 'ConversationState':
        return cls.model_validate_json(payload)


# ============================================================================
# Extraction
# ============================================================================

class ExtractionResult(BaseConfig):
    """Outcome of classifying one utterance against a node contract"""
    is_valid: bool
    value: Any = None
    clarification_prompt: Optional[str] = None
    source: str = "none"

    @classmethod
    def valid(cls, value: Any, source: str = "heuristic") -> 'ExtractionResult':
        return cls(is_valid=True, value=value, source=source)

    @classmethod
    def unclear(cls, clarification: Optional[str], source: str = "heuristic") -> 'ExtractionResult':
        return cls(is_valid=False, value=None, clarification_prompt=clarification, source=source)


class CurrencyRange(BaseConfig):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: str = "USD"
    raw: str = ""
    status: str = "specified"


class RoomCount(BaseConfig):
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    raw: str = ""


# ============================================================================
# Audit Log
# ============================================================================

class AuditLogEntry(BaseConfig):
    """One human-readable record per processed turn"""
    timestamp: datetime = Field(default_factory=datetime.now)
    identity: str
    node: ConversationNode
    question: str = ""
    user_response: str = ""
    extracted_value: Any = None
    unclear: bool = False
    clarification: Optional[str] = None
    next_node: ConversationNode
    ai_response: str = ""
    note: Optional[str] = None

    def render(self) -> str:
        if self.unclear:
            shown: Any = {
                'unclear': True,
                'originalResponse': self.user_response,
                'clarification': self.clarification,
            }
        else:
            shown = self.extracted_value
        value_str = json.dumps(shown, indent=2, ensure_ascii=False) if isinstance(shown, (dict, list)) else str(shown)

        lines = [
            f"[{self.timestamp.isoformat()}] Node: {self.node.value}",
            f"  Question: {self.question}",
            f"  User Response: {self.user_response}",
            f"  Extracted Value: {value_str}",
            f"  Next Node: {self.next_node.value}",
        ]
        if self.ai_response:
            lines.append(f"  AI Response: {self.ai_response}")
        if self.note:
            lines.append(f"  Note: {self.note}")
        lines.append("-" * 40)
        return "\n".join(lines) + "\n"


def create_conversation_state(identity: str) -> ConversationState:
    """Create a fresh state positioned at the root node"""
    return ConversationState(identity=identity, current_node=ROOT_NODE)
