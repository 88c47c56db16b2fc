"""Tests for the Turn Decision Engine."""

import pytest

from conftest import ScriptedCompletionProvider
from mockpanel.agents.turn_engine import TurnDecisionEngine
from mockpanel.core.conversation_log import ConversationLog
from mockpanel.core.enums import DecisionSource
from mockpanel.core.errors import ProviderError


async def decide(engine, log, roster):
    return await engine.decide(log, roster, "Sprint standup", "Priya", "Backend developer")


class TestTurnDecisionEngine:
    """Tests for TurnDecisionEngine.decide."""

    @pytest.mark.asyncio
    async def test_empty_log_gives_agent(self, roster):
        """An empty log with two agents always produces an agent decision."""
        engine = TurnDecisionEngine(ScriptedCompletionProvider(["USER:"]))

        decision = await decide(engine, ConversationLog(), roster)

        assert decision.is_agent
        assert decision.speaker in roster

    @pytest.mark.asyncio
    async def test_model_decision_with_text(self, roster):
        provider = ScriptedCompletionProvider(["AGENT:Bob_Manager\nMorning. Where are we?"])
        engine = TurnDecisionEngine(provider)

        decision = await decide(engine, ConversationLog(), roster)

        assert decision.speaker == "Bob_Manager"
        assert decision.utterance_text == "Morning. Where are we?"
        assert decision.source == DecisionSource.MODEL

    @pytest.mark.asyncio
    async def test_garbage_falls_back_to_first_agent(self, roster):
        engine = TurnDecisionEngine(ScriptedCompletionProvider(["garbage"]))

        decision = await decide(engine, ConversationLog(), roster)

        assert decision.speaker == "Alice_Coach"
        assert decision.utterance_text is None
        assert decision.source == DecisionSource.FALLBACK

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, roster):
        provider = ScriptedCompletionProvider([ProviderError("anthropic", "overloaded")])
        engine = TurnDecisionEngine(provider)

        decision = await decide(engine, ConversationLog(), roster)

        assert decision.speaker == "Alice_Coach"
        assert decision.source == DecisionSource.FALLBACK

    @pytest.mark.asyncio
    async def test_after_user_an_agent_follows(self, roster):
        log = ConversationLog()
        log.append_agent("Alice_Coach", "What did you ship?")
        log.append_user("The login page.")
        engine = TurnDecisionEngine(ScriptedCompletionProvider(["END:"]))

        decision = await decide(engine, log, roster)

        assert decision.is_agent

    @pytest.mark.asyncio
    async def test_transcript_is_labelled_in_prompt(self, roster):
        log = ConversationLog()
        log.append_agent("Alice_Coach", "What did you ship?")
        log.append_user("The login page.")
        provider = ScriptedCompletionProvider(["AGENT:Bob_Manager\nNice."])
        engine = TurnDecisionEngine(provider)

        await decide(engine, log, roster)

        call = provider.decision_calls[0]
        content = call["messages"][0]["content"]
        assert "[Alice - Alice_Coach]: What did you ship?" in content
        assert "[Priya - user]: The login page." in content
        assert "Bob_Manager" in call["system"]
        # Stored entries stay unlabelled
        assert log.entries[0].text == "What did you ship?"

    @pytest.mark.asyncio
    async def test_end_with_tail(self, roster):
        log = ConversationLog()
        log.append_user("That's all from me.")
        provider = ScriptedCompletionProvider(["AGENT:Alice_Coach\nThanks everyone.\nEND:"])

        decision = await decide(TurnDecisionEngine(provider), log, roster)

        assert decision.speaker == "Alice_Coach"
        assert decision.should_end is True
        assert decision.utterance_text == "Thanks everyone."
