"""Turn Decision Engine: picks the next speaker from the conversation so far.

One completion call per decision. The model either names an agent (usually
with the agent's text already written), hands the floor to the user, or ends
the conversation. Provider failures and unparseable output fail open to the
round-robin fallback, and every decision passes through ``TurnPolicy``.
"""

import logging
from typing import Optional

from ..core.conversation_log import ConversationLog
from ..core.enums import DecisionSource
from ..core.participants import Roster
from .decision_parser import AgentTurn, EndTurn, Unrecognized, UserTurn, parse_decision
from .llm_client import CompletionProvider
from .prompts import PanelPrompts
from .turn_policy import TurnDecision, TurnPolicy, fallback_decision

logger = logging.getLogger(__name__)

__all__ = ["TurnDecision", "TurnDecisionEngine", "fallback_decision"]


class TurnDecisionEngine:
    """Decides who speaks next in a session."""

    def __init__(self, provider: CompletionProvider, policy: Optional[TurnPolicy] = None):
        self.provider = provider
        self.policy = policy or TurnPolicy()

    async def decide(
        self,
        log: ConversationLog,
        roster: Roster,
        scenario: str,
        user_name: str,
        user_role: str,
    ) -> TurnDecision:
        """Decide the next turn.

        Args:
            log: Full conversation log
            roster: Session roster
            scenario: Practice scenario description
            user_name: Human participant's name
            user_role: Human participant's role

        Returns:
            TurnDecision that satisfies the turn rules
        """
        decision = await self._ask_model(log, roster, scenario, user_name, user_role)
        final = self.policy.apply(decision, log, roster, user_name)

        if final.speaker != decision.speaker:
            logger.info(f"Decision {decision.speaker} overridden to {final.speaker}")
        logger.info(f"Next speaker: {final.speaker} ({final.source.value})")
        return final

    async def _ask_model(
        self,
        log: ConversationLog,
        roster: Roster,
        scenario: str,
        user_name: str,
        user_role: str,
    ) -> TurnDecision:
        max_consecutive = self.policy.max_consecutive
        system = PanelPrompts.orchestrator_system_prompt(
            roster, scenario, user_name, user_role, max_consecutive
        )
        transcript = log.render_transcript(roster, user_name)
        messages = [{"role": "user", "content": PanelPrompts.decision_request(transcript, user_name)}]

        try:
            raw = await self.provider.complete(system, messages)
        except Exception as e:
            logger.error(f"Turn decision call failed, using fallback: {e}")
            return fallback_decision(log, roster, max_consecutive)

        parsed = parse_decision(raw, roster)

        if isinstance(parsed, AgentTurn):
            return TurnDecision(
                speaker=parsed.agent_id,
                utterance_text=parsed.text,
                should_end=parsed.should_end,
            )
        if isinstance(parsed, UserTurn):
            return TurnDecision.user()
        if isinstance(parsed, EndTurn):
            return TurnDecision.end()

        assert isinstance(parsed, Unrecognized)
        logger.warning(f"Could not parse decision ({parsed.reason}), using fallback")
        return fallback_decision(log, roster, max_consecutive)
