"""Parser for the orchestrator's turn-decision text.

The orchestrator answers in a small line protocol:

    AGENT:<agent_id>
    <what the agent says>

    USER:

    END:

Models drift from the format, so parsing is tolerant. Anything that cannot be
mapped onto the roster comes back as ``Unrecognized`` and the caller falls
back to round-robin.
"""

import logging
import re
from dataclasses import dataclass
from typing import Union

from ..core.participants import Roster

logger = logging.getLogger(__name__)

_USER_SIGNAL = re.compile(r"^USER:?\s*$", re.IGNORECASE)
_AGENT_LINE = re.compile(r"^AGENT:\s*\[?([\w]+)\]?[\s\n]*(.*)$", re.DOTALL)
_LABEL = re.compile(r"\[[^\]]+\]:\s*")
_USER_MARKER = re.compile(r"\bUSER:\s*", re.IGNORECASE)
_END_MARKER = "END:"


@dataclass(frozen=True)
class AgentTurn:
    """An agent speaks, with its utterance already written."""

    agent_id: str
    text: str
    should_end: bool = False


@dataclass(frozen=True)
class UserTurn:
    """The user has the floor."""


@dataclass(frozen=True)
class EndTurn:
    """The conversation is over."""


@dataclass(frozen=True)
class Unrecognized:
    """Output that could not be mapped to a decision."""

    reason: str


ParsedDecision = Union[AgentTurn, UserTurn, EndTurn, Unrecognized]


def clean_utterance(text: str) -> str:
    """Strip transcript labels and user-turn markers from spoken text."""
    text = _LABEL.sub("", text)
    text = _USER_MARKER.sub("", text)
    return text.strip()


def parse_decision(raw: str, roster: Roster) -> ParsedDecision:
    """Map raw orchestrator output onto a decision.

    Args:
        raw: Provider output, unmodified
        roster: Session roster used to validate agent ids

    Returns:
        AgentTurn, UserTurn, EndTurn or Unrecognized
    """
    text = (raw or "").strip()
    if not text:
        return Unrecognized("empty output")

    if text.startswith(_END_MARKER) or text == "END":
        return EndTurn()

    if _USER_SIGNAL.match(text):
        return UserTurn()

    match = _AGENT_LINE.match(text)
    if match:
        agent_id = match.group(1)
        if agent_id not in roster:
            logger.warning(f"Decision named unknown agent: {agent_id}")
            return Unrecognized(f"unknown agent {agent_id}")

        body = clean_utterance(match.group(2))
        should_end = False
        end_at = body.find(_END_MARKER)
        if end_at >= 0:
            should_end = True
            body = body[:end_at].strip()

        if not body:
            return Unrecognized(f"empty utterance for {agent_id}")

        return AgentTurn(agent_id=agent_id, text=body, should_end=should_end)

    # Last resort: any roster member mentioned anywhere in the output
    agent = roster.find_mentioned(text)
    if agent:
        body = clean_utterance(text)
        if body:
            logger.info(f"Loose decision format, attributing to {agent.id}")
            return AgentTurn(agent_id=agent.id, text=body)

    return Unrecognized("no recognisable speaker")
