"""Turn-taking rules applied to every decision, whatever the model said.

The orchestrator prompt asks for the same behaviour, but models drift. These
rules are the enforcement point:

- An agent opens the conversation and answers every user message.
- No agent speaks twice in a row.
- At most ``max_consecutive`` agent messages before the user gets the floor.
- A question put to the user hands them the floor.
- Once the log is long enough, agent-to-agent exchanges past a single
  follow-up are nudged toward the user so they keep most of the airtime.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..core.conversation_log import ConversationLog
from ..core.enums import DecisionSource
from ..core.participants import END_SPEAKER, USER_SPEAKER, Roster

logger = logging.getLogger(__name__)

_QUESTION = re.compile(r"[^.!?\n]*\?")


@dataclass
class TurnDecision:
    """Who speaks next, and optionally what they say.

    Attributes:
        speaker: Agent id, "user" or "end"
        utterance_text: Pre-written text for an agent turn (None = generate it)
        should_end: End the conversation once this agent turn is delivered
        source: Where the decision came from
    """

    speaker: str
    utterance_text: Optional[str] = None
    should_end: bool = False
    source: DecisionSource = DecisionSource.MODEL

    @property
    def is_user(self) -> bool:
        return self.speaker == USER_SPEAKER

    @property
    def is_end(self) -> bool:
        return self.speaker == END_SPEAKER

    @property
    def is_agent(self) -> bool:
        return not (self.is_user or self.is_end)

    @classmethod
    def user(cls, source: DecisionSource = DecisionSource.MODEL) -> "TurnDecision":
        return cls(speaker=USER_SPEAKER, source=source)

    @classmethod
    def end(cls, source: DecisionSource = DecisionSource.MODEL) -> "TurnDecision":
        return cls(speaker=END_SPEAKER, source=source)


def fallback_decision(
    log: ConversationLog,
    roster: Roster,
    max_consecutive: int = 3,
    source: DecisionSource = DecisionSource.FALLBACK,
) -> TurnDecision:
    """Deterministic round-robin decision.

    Picks the roster agent after the most recent agent speaker (wrapping), or
    the first agent if none has spoken. Hands the turn to the user when the
    roster is empty, the agent streak is at its limit, or the only candidate
    just spoke.
    """
    if len(roster) == 0:
        return TurnDecision.user(source)

    if log.consecutive_agent_turns() >= max_consecutive:
        return TurnDecision.user(source)

    candidate = roster.next_after(log.last_agent_id())
    last = log.last()
    if last is not None and last.is_agent and candidate.id == last.speaker:
        return TurnDecision.user(source)

    return TurnDecision(speaker=candidate.id, source=source)


class TurnPolicy:
    """Post-parse enforcement of the turn-taking rules."""

    def __init__(
        self,
        max_consecutive: int = 3,
        target_user_share: float = 0.6,
        ratio_min_entries: int = 6,
        ratio_min_streak: int = 2,
    ):
        self.max_consecutive = max_consecutive
        self.target_user_share = target_user_share
        self.ratio_min_entries = ratio_min_entries
        self.ratio_min_streak = ratio_min_streak

    def apply(
        self,
        decision: TurnDecision,
        log: ConversationLog,
        roster: Roster,
        user_name: str,
    ) -> TurnDecision:
        """Return the decision, corrected to satisfy every turn rule."""
        if decision.is_agent and decision.speaker not in roster:
            logger.warning(f"Decision for unknown agent {decision.speaker}, using fallback")
            return fallback_decision(log, roster, self.max_consecutive)

        last = log.last()

        # An agent opens, and exactly one agent answers the user
        if last is None or last.is_user:
            if not decision.is_agent:
                logger.info("Agent must respond here, overriding decision")
                return fallback_decision(
                    log, roster, self.max_consecutive, source=DecisionSource.POLICY
                )
            return decision

        if decision.is_end:
            return decision

        if log.consecutive_agent_turns() >= self.max_consecutive:
            if decision.is_agent:
                logger.info(f"{self.max_consecutive} agent turns in a row, handing turn to user")
            return TurnDecision.user(DecisionSource.POLICY if decision.is_agent else decision.source)

        if decision.is_user:
            return decision

        if self.asks_user(last.text, last.speaker, roster, user_name):
            logger.info(f"{last.speaker} asked the user a question, handing turn to user")
            return TurnDecision.user(DecisionSource.POLICY)

        if decision.speaker == last.speaker:
            successor = roster.next_after(last.speaker)
            if successor is None or successor.id == last.speaker:
                return TurnDecision.user(DecisionSource.POLICY)
            logger.info(f"{last.speaker} cannot speak twice in a row, switching to {successor.id}")
            return TurnDecision(speaker=successor.id, source=DecisionSource.POLICY)

        # Soft bias: one agent follow-up is always allowed, a longer exchange
        # is cut short only while agents hold more than their share
        if (
            len(log) >= self.ratio_min_entries
            and log.consecutive_agent_turns() >= self.ratio_min_streak
            and log.agent_share() > 1 - self.target_user_share
        ):
            logger.info(f"Agent share {log.agent_share():.2f} too high, handing turn to user")
            return TurnDecision.user(DecisionSource.POLICY)

        return decision

    @staticmethod
    def asks_user(text: str, speaker_id: str, roster: Roster, user_name: str) -> bool:
        """True if the utterance's last question is put to the user.

        The question is for the user when it names them, or names no other
        panel member.
        """
        questions = _QUESTION.findall(text)
        if not questions:
            return False

        question = questions[-1].lower()
        user_names = {user_name.lower(), user_name.split()[0].lower()} if user_name.strip() else set()
        if any(_mentions(question, name) for name in user_names):
            return True

        for agent in roster:
            if agent.id == speaker_id:
                continue
            names = {agent.id.lower(), agent.name.lower(), agent.name.split()[0].lower()}
            if any(_mentions(question, name) for name in names):
                return False

        return True


def _mentions(text: str, name: str) -> bool:
    return bool(name) and re.search(rf"\b{re.escape(name)}\b", text) is not None
