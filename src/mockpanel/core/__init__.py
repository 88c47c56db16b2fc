"""Core data model, configuration and turn control.

The controller and session manager are imported from their own modules
(``mockpanel.core.turn_controller``, ``mockpanel.core.session_manager``).
"""

from .config import PanelConfig
from .conversation_log import ConversationLog, Utterance
from .enums import DecisionSource, Gender, TurnState
from .errors import (
    MockPanelError,
    ProviderError,
    RosterGenerationError,
    SessionExistsError,
    SessionNotFoundError,
    SessionValidationError,
    UnknownAgentError,
)
from .events import EventSink, EventType, SessionEvent
from .participants import END_SPEAKER, USER_SPEAKER, Agent, Roster, make_agent_id
from .session import Session

__all__ = [
    "PanelConfig",
    "ConversationLog",
    "Utterance",
    "DecisionSource",
    "Gender",
    "TurnState",
    "MockPanelError",
    "ProviderError",
    "RosterGenerationError",
    "SessionExistsError",
    "SessionNotFoundError",
    "SessionValidationError",
    "UnknownAgentError",
    "EventSink",
    "EventType",
    "SessionEvent",
    "END_SPEAKER",
    "USER_SPEAKER",
    "Agent",
    "Roster",
    "make_agent_id",
    "Session",
]
