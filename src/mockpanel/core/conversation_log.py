"""Append-only conversation log for a session."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from .participants import USER_SPEAKER, Roster


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Utterance:
    """One entry in the log. Speaker is "user" or an agent id."""

    speaker: str
    text: str
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_user(self) -> bool:
        return self.speaker == USER_SPEAKER

    @property
    def is_agent(self) -> bool:
        return not self.is_user


class ConversationLog:
    """Ordered record of everything said in a session.

    Entries are only ever appended. Insertion order is the timeline used for
    every turn decision.
    """

    def __init__(self):
        self._entries: List[Utterance] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Utterance]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> Tuple[Utterance, ...]:
        return tuple(self._entries)

    def append_user(self, text: str) -> Utterance:
        """Record a user message."""
        utterance = Utterance(speaker=USER_SPEAKER, text=text)
        self._entries.append(utterance)
        return utterance

    def append_agent(self, agent_id: str, text: str) -> Utterance:
        """Record a completed agent utterance."""
        if agent_id == USER_SPEAKER:
            raise ValueError("Agent utterances cannot be attributed to the user")
        utterance = Utterance(speaker=agent_id, text=text)
        self._entries.append(utterance)
        return utterance

    def last(self) -> Optional[Utterance]:
        return self._entries[-1] if self._entries else None

    def last_agent_id(self) -> Optional[str]:
        """Most recent agent speaker, or None if no agent has spoken."""
        for utterance in reversed(self._entries):
            if utterance.is_agent:
                return utterance.speaker
        return None

    def consecutive_agent_turns(self) -> int:
        """Number of agent entries at the tail of the log."""
        count = 0
        for utterance in reversed(self._entries):
            if utterance.is_user:
                break
            count += 1
        return count

    def agent_share(self) -> float:
        """Fraction of entries spoken by agents (0.0 for an empty log)."""
        if not self._entries:
            return 0.0
        agents = sum(1 for u in self._entries if u.is_agent)
        return agents / len(self._entries)

    def render_transcript(self, roster: Roster, user_name: str) -> str:
        """Render the log with speaker labels for prompting.

        Agent lines carry "[Name - id]: " and user lines "[UserName - user]: ".
        The labels only exist in the prompt; stored entries stay raw.
        """
        lines = []
        for utterance in self._entries:
            if utterance.is_user:
                label = f"[{user_name} - {USER_SPEAKER}]"
            else:
                agent = roster.get(utterance.speaker)
                name = agent.name if agent else utterance.speaker
                label = f"[{name} - {utterance.speaker}]"
            lines.append(f"{label}: {utterance.text}")
        return "\n".join(lines)
