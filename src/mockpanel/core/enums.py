"""Enumerations for turn control and participants."""

from enum import Enum


class TurnState(Enum):
    """Turn controller states for a single session."""

    IDLE = "idle"
    DECIDING = "deciding"
    EMITTING_TEXT = "emitting_text"
    AWAITING_AUDIO_ACK = "awaiting_audio_ack"
    ENDED = "ended"

    @property
    def is_busy(self) -> bool:
        """True while a turn is in flight."""
        return self in (
            TurnState.DECIDING,
            TurnState.EMITTING_TEXT,
            TurnState.AWAITING_AUDIO_ACK,
        )


class Gender(str, Enum):
    """Voice gender tags used for voice selection."""

    FEMALE = "female"
    MALE = "male"


class DecisionSource(str, Enum):
    """Where a turn decision came from."""

    MODEL = "model"        # Parsed from provider output
    FALLBACK = "fallback"  # Round-robin after unparseable/failed output
    POLICY = "policy"      # Provider choice overridden by a turn rule
