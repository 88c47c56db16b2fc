"""Utterance Generator: streams an agent's line from the completion provider.

Used when the turn decision named an agent without writing its text. Yields
``TextFragment`` items as they arrive and a single ``GenerationComplete`` at
the end. A provider failure ends the stream without a completion item, so a
partial utterance can never be mistaken for a finished one.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional, Union

from ..core.conversation_log import ConversationLog
from ..core.participants import Agent, Roster
from .llm_client import CompletionProvider
from .prompts import PanelPrompts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextFragment:
    text: str


@dataclass(frozen=True)
class GenerationComplete:
    full_text: str


GenerationItem = Union[TextFragment, GenerationComplete]


@dataclass
class UtteranceContext:
    """Everything the agent's system prompt is built from."""

    agent: Agent
    roster: Roster
    scenario: str
    user_name: str
    user_role: str

    def system_prompt(self) -> str:
        return PanelPrompts.agent_system_prompt(
            self.agent, self.scenario, self.user_name, self.user_role
        )

    def messages(self, log: ConversationLog) -> List[Dict[str, str]]:
        transcript = log.render_transcript(self.roster, self.user_name)
        return [{"role": "user", "content": PanelPrompts.agent_turn_request(transcript, self.agent)}]


class UtteranceGenerator:
    """Streams agent utterances from a completion provider."""

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    async def generate(
        self,
        system_context: UtteranceContext,
        log: ConversationLog,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> AsyncIterator[GenerationItem]:
        """Stream one agent utterance.

        Args:
            system_context: Agent and session context for the prompt
            log: Conversation log the agent responds to
            on_error: Called with the provider exception if the stream fails

        Yields:
            TextFragment per provider chunk, then GenerationComplete
        """
        parts: List[str] = []
        try:
            async for chunk in self.provider.stream_complete(
                system_context.system_prompt(), system_context.messages(log)
            ):
                if not chunk:
                    continue
                parts.append(chunk)
                yield TextFragment(chunk)
        except Exception as e:
            logger.error(f"Generation failed for {system_context.agent.id}: {e}")
            if on_error is not None:
                on_error(e)
            return

        yield GenerationComplete("".join(parts))
