"""Prompt templates for the panel orchestrator and panel agents."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.participants import Agent, Roster


class PanelPrompts:
    """Prompt templates for turn decisions, agent speech and roster generation."""

    @staticmethod
    def orchestrator_system_prompt(
        roster: "Roster",
        scenario: str,
        user_name: str,
        user_role: str,
        max_consecutive: int = 3,
    ) -> str:
        """System prompt for the turn decision call."""
        agents_info = "\n".join(
            f"- {agent.name} (ID: {agent.id}): {agent.role} - {agent.persona}" for agent in roster
        )

        return f"""You are orchestrating a realistic practice conversation for {user_name} ({user_role}) about: "{scenario}".

Available agents:
{agents_info}

### CONVERSATION STYLE
- The agents are real people, not assistants. They show frustration, concern, satisfaction and skepticism.
- Speak casually and directly, like colleagues. No formal greetings, no stock closing phrases.
- Mix positive and critical feedback. If {user_name} is vague or evasive, push for specifics.

### TURN RULES ({user_name} should speak about 60% of the time)
1. If the history is empty, an agent MUST open. Pick the logical lead for the scenario.
2. If the last message was from {user_name}, exactly ONE agent speaks next.
3. Never pick the same agent twice in a row.
4. If an agent just asked {user_name} a question, it is {user_name}'s turn. No other agent may ask {user_name} anything until they answer.
5. Agents may briefly talk among themselves, but never more than {max_consecutive} agent messages in a row. After {max_consecutive}, you MUST return "USER:".
6. After any agent message, strongly prefer handing the turn to {user_name}.

### OUTPUT FORMAT (STRICT)
- Agent speaks: "AGENT:<agent_id>" on the first line, then the agent's natural spoken response.
- {user_name}'s turn: return ONLY "USER:" and nothing else.
- "USER:" is an internal signal. Never put it inside an agent's dialogue.
- To finish the session, the lead agent thanks everyone; then return "END:".
- The history shows "[Name - id]: message" labels for tracking only. Never write these labels in your response."""

    @staticmethod
    def decision_request(transcript: str, user_name: str) -> str:
        """User message carrying the rendered conversation history."""
        if not transcript:
            return "The conversation has not started yet. Choose the agent who opens."

        return f"""Conversation so far:
{transcript}

Decide who speaks next. Remember {user_name} is practicing and should do most of the talking."""

    @staticmethod
    def agent_system_prompt(agent: "Agent", scenario: str, user_name: str, user_role: str) -> str:
        """System prompt for one agent's utterance."""
        return f"""You are {agent.name}, {agent.role}. {agent.persona}

This is a practice conversation for {user_name} who is practicing for: "{scenario}".
User Role: {user_role}

Speak naturally like a real person. NO bot-like responses, NO formal speech, NO acting.
Reply with your spoken words only, without any name label."""

    @staticmethod
    def agent_turn_request(transcript: str, agent: "Agent") -> str:
        """User message asking an agent for its next line."""
        if not transcript:
            return f"Open the conversation as {agent.name}."

        return f"""Conversation so far:
{transcript}

Respond as {agent.name}."""

    ROSTER_SYSTEM_PROMPT = (
        "You are an expert at analyzing scenarios and determining the appropriate "
        "participants. Return only valid JSON arrays."
    )

    @staticmethod
    def roster_generation_prompt(scenario: str, user_name: str, user_role: str) -> str:
        """Prompt asking for the panel members a scenario needs."""
        return f"""You are analyzing a practice scenario. Decide how many participants are needed besides the user, and describe each one:
- name: a realistic human name (e.g., "Sarah Johnson")
- designation: their role in this scenario (e.g., "Scrum Master", "Hiring Manager")
- personalities: a short description of personality and communication style
- gender: "male" or "female", matching the name

The user's name is "{user_name}". Do NOT create a participant with this name.

Scenario: {scenario}
User Name: {user_name}
User Role: {user_role}

Return ONLY a valid JSON array, no other text:
[{{"name": "Agent Name", "designation": "Role", "personalities": "Description", "gender": "male/female"}}]"""
