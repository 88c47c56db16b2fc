"""Events sent from a session to the transport boundary.

Every event except ``ai_audio_chunk`` is serialised as a JSON text frame.
Audio chunks travel as binary frames.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional


class EventType(str, Enum):
    """Outbound event types."""

    # Turn flow
    USER_TURN = "user_turn"
    AI_THINKING = "ai_thinking"
    AI_RESPONSE_START = "ai_response_start"
    AI_RESPONSE_CHUNK = "ai_response_chunk"
    AI_RESPONSE_END = "ai_response_end"
    CONVERSATION_ENDED = "conversation_ended"

    # Audio
    TTS_FIRST_AUDIO = "tts_first_audio"
    AI_AUDIO_CHUNK = "ai_audio_chunk"
    AI_AUDIO_END = "ai_audio_end"

    # Transport / session
    CONNECTED = "connected"
    SESSION_CREATED = "session_created"
    SESSION_INFO = "session_info"
    PONG = "pong"
    ERROR = "error"


@dataclass
class SessionEvent:
    """A typed event for one session.

    Attributes:
        type: Event type
        agent_id: Agent the event refers to, if any
        payload: Extra JSON fields (camelCase, as sent on the wire)
        audio: Raw bytes for ai_audio_chunk events
    """

    type: EventType
    agent_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    audio: bytes = b""

    @property
    def is_binary(self) -> bool:
        return self.type == EventType.AI_AUDIO_CHUNK

    def to_message(self) -> Dict[str, Any]:
        """JSON form of the event (audio bytes are not included)."""
        message: Dict[str, Any] = {"type": self.type.value}
        if self.agent_id is not None:
            message["agentId"] = self.agent_id
        message.update(self.payload)
        return message

    # -------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------

    @classmethod
    def user_turn(cls) -> "SessionEvent":
        return cls(EventType.USER_TURN, payload={"message": "It's your turn to speak"})

    @classmethod
    def ai_thinking(cls, message: str = "AI is thinking...") -> "SessionEvent":
        return cls(EventType.AI_THINKING, payload={"message": message})

    @classmethod
    def response_start(cls, agent_id: str, display_name: str, voice_tag: str) -> "SessionEvent":
        return cls(
            EventType.AI_RESPONSE_START,
            agent_id=agent_id,
            payload={"displayName": display_name, "voiceTag": voice_tag},
        )

    @classmethod
    def response_chunk(cls, agent_id: str, text_chunk: str) -> "SessionEvent":
        return cls(EventType.AI_RESPONSE_CHUNK, agent_id=agent_id, payload={"textChunk": text_chunk})

    @classmethod
    def response_end(cls, agent_id: str, full_text: str, display_name: str) -> "SessionEvent":
        return cls(
            EventType.AI_RESPONSE_END,
            agent_id=agent_id,
            payload={"fullText": full_text, "displayName": display_name},
        )

    @classmethod
    def first_audio(cls, agent_id: str) -> "SessionEvent":
        return cls(EventType.TTS_FIRST_AUDIO, agent_id=agent_id)

    @classmethod
    def audio_chunk(cls, agent_id: str, data: bytes) -> "SessionEvent":
        return cls(EventType.AI_AUDIO_CHUNK, agent_id=agent_id, audio=data)

    @classmethod
    def audio_end(cls, agent_id: str) -> "SessionEvent":
        return cls(EventType.AI_AUDIO_END, agent_id=agent_id)

    @classmethod
    def conversation_ended(cls) -> "SessionEvent":
        return cls(EventType.CONVERSATION_ENDED, payload={"message": "Conversation ended gracefully"})

    @classmethod
    def error(cls, message: str, agent_id: Optional[str] = None) -> "SessionEvent":
        return cls(EventType.ERROR, agent_id=agent_id, payload={"message": message})


# Async callable the transport hands to a session
EventSink = Callable[[SessionEvent], Awaitable[None]]
