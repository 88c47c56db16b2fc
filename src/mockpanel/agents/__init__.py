"""Turn decisions, utterance generation and roster generation."""

from .decision_parser import (
    AgentTurn,
    EndTurn,
    ParsedDecision,
    Unrecognized,
    UserTurn,
    parse_decision,
)
from .llm_client import (
    ClaudeCompletionClient,
    CompletionProvider,
    GeminiCompletionClient,
    create_completion_client,
)
from .roster_generator import RosterGenerator, parse_roster
from .turn_engine import TurnDecision, TurnDecisionEngine, fallback_decision
from .turn_policy import TurnPolicy
from .utterance_generator import (
    GenerationComplete,
    TextFragment,
    UtteranceContext,
    UtteranceGenerator,
)

__all__ = [
    "AgentTurn",
    "EndTurn",
    "ParsedDecision",
    "Unrecognized",
    "UserTurn",
    "parse_decision",
    "ClaudeCompletionClient",
    "CompletionProvider",
    "GeminiCompletionClient",
    "create_completion_client",
    "RosterGenerator",
    "parse_roster",
    "TurnDecision",
    "TurnDecisionEngine",
    "fallback_decision",
    "TurnPolicy",
    "GenerationComplete",
    "TextFragment",
    "UtteranceContext",
    "UtteranceGenerator",
]
