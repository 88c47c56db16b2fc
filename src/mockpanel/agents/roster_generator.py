"""Generates the panel for a practice scenario.

The completion provider is asked for a JSON array of participants. Each one
becomes an ``Agent`` with an id derived from name and role. Participants that
share the user's name are dropped, and duplicate ids get numeric suffixes.
"""

import json
import logging
import re
from typing import Any, List, Set

from ..core.errors import RosterGenerationError
from ..core.participants import Agent, Roster, make_agent_id, normalize_gender
from .llm_client import CompletionProvider
from .prompts import PanelPrompts

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
DEFAULT_PERSONA = "Natural conversational style"


class RosterGenerator:
    """Builds a session roster from the scenario description."""

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    async def generate(self, scenario: str, user_name: str, user_role: str) -> Roster:
        """Generate the roster for a scenario.

        Args:
            scenario: Practice scenario description
            user_name: Human participant's name (never used for an agent)
            user_role: Human participant's role

        Returns:
            Roster with at least one agent

        Raises:
            RosterGenerationError: If the output holds no usable participants
            ProviderError: If the completion call fails
        """
        prompt = PanelPrompts.roster_generation_prompt(scenario, user_name, user_role)
        raw = await self.provider.complete(
            PanelPrompts.ROSTER_SYSTEM_PROMPT,
            [{"role": "user", "content": prompt}],
        )

        roster = parse_roster(raw, user_name)
        logger.info(f"Generated {len(roster)} agents for scenario: {', '.join(roster.ids)}")
        return roster


def _unique_id(base: str, taken: Set[str]) -> str:
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


def parse_roster(raw: str, user_name: str) -> Roster:
    """Turn the provider's JSON answer into a Roster."""
    match = _JSON_ARRAY.search(raw or "")
    try:
        data: Any = json.loads(match.group(0) if match else raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse roster response: {raw!r}")
        raise RosterGenerationError("Failed to parse agent generation response") from e

    if not isinstance(data, list):
        raise RosterGenerationError("Agent generation did not return an array")

    user_key = user_name.strip().lower()
    agents: List[Agent] = []
    taken: Set[str] = set()

    for index, item in enumerate(data):
        if not isinstance(item, dict) or not item.get("name") or not item.get("designation"):
            raise RosterGenerationError(
                f"Agent at index {index} is missing required fields (name, designation)"
            )

        name = str(item["name"]).strip()
        if name.lower() == user_key:
            logger.warning(f"Filtered out agent with same name as user: {name}")
            continue

        role = str(item["designation"]).strip()
        agent_id = _unique_id(make_agent_id(name, role), taken)
        taken.add(agent_id)

        agents.append(
            Agent(
                id=agent_id,
                name=name,
                role=role,
                persona=str(item.get("personalities") or item.get("personality") or DEFAULT_PERSONA),
                gender=normalize_gender(item.get("gender")),
            )
        )

    if not agents:
        raise RosterGenerationError("No valid agents generated")

    return Roster(agents)
