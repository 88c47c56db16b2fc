"""Participant directory: agent identities and the per-session roster."""

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .enums import Gender

USER_SPEAKER = "user"
END_SPEAKER = "end"

_WHITESPACE = re.compile(r"\s+")
_NON_ID_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def clean_id_part(text: str) -> str:
    """Collapse whitespace to underscores and drop anything outside [A-Za-z0-9_]."""
    return _NON_ID_CHARS.sub("", _WHITESPACE.sub("_", text.strip()))


def make_agent_id(name: str, role: str) -> str:
    """Derive a stable agent id from name and role.

    Example: ("Emily Carter", "Product Manager") -> "Emily_Carter_Product_Manager"
    """
    return f"{clean_id_part(name)}_{clean_id_part(role)}"


def normalize_gender(value: Optional[str]) -> Gender:
    """Map a free-form gender label to a voice gender (female by default)."""
    if value and value.strip().lower() in ("male", "m", "man"):
        return Gender.MALE
    return Gender.FEMALE


@dataclass(frozen=True)
class Agent:
    """An AI-controlled participant."""

    id: str  # e.g., "Emily_Carter_ProductManager"
    name: str  # e.g., "Emily Carter"
    role: str  # e.g., "Product Manager"
    persona: str  # Personality and communication style
    gender: Gender = Gender.FEMALE

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.role})"

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "gender": self.gender.value,
        }


class Roster:
    """Immutable, ordered set of agents for one session.

    Roster order is significant: it drives voice slots and the round-robin
    fallback.
    """

    def __init__(self, agents: Sequence[Agent]):
        ids = [a.id for a in agents]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate agent ids in roster: {ids}")
        self._agents: Tuple[Agent, ...] = tuple(agents)
        self._by_id: Dict[str, Agent] = {a.id: a for a in self._agents}

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __getitem__(self, index: int) -> Agent:
        return self._agents[index]

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._by_id

    @property
    def ids(self) -> List[str]:
        return [a.id for a in self._agents]

    def get(self, agent_id: str) -> Optional[Agent]:
        return self._by_id.get(agent_id)

    def index_of(self, agent_id: str) -> int:
        """Ordinal position of an agent, or -1 if absent."""
        for i, agent in enumerate(self._agents):
            if agent.id == agent_id:
                return i
        return -1

    def next_after(self, agent_id: Optional[str]) -> Optional[Agent]:
        """Round-robin successor (wrapping). First agent if agent_id is unknown."""
        if not self._agents:
            return None
        index = self.index_of(agent_id) if agent_id else -1
        return self._agents[(index + 1) % len(self._agents)]

    def find_mentioned(self, text: str) -> Optional[Agent]:
        """First agent (roster order) whose id or name occurs in text, case-insensitive."""
        lowered = text.lower()
        for agent in self._agents:
            if agent.id.lower() in lowered or agent.name.lower() in lowered:
                return agent
        return None

    def to_list(self) -> List[Dict[str, str]]:
        return [a.to_dict() for a in self._agents]
