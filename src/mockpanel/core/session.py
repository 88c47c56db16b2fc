"""Session data: roster, log and practice context."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from .conversation_log import ConversationLog
from .participants import Roster


@dataclass
class Session:
    """One practice session. Exclusively owns its roster and log."""

    session_id: str
    scenario: str
    user_name: str
    user_role: str
    roster: Roster
    log: ConversationLog = field(default_factory=ConversationLog)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_info(self) -> Dict[str, Any]:
        """Public session summary (REST and get_session replies)."""
        return {
            "sessionId": self.session_id,
            "scenario": self.scenario,
            "userName": self.user_name,
            "userRole": self.user_role,
            "createdAt": self.created_at.isoformat(),
            "agents": self.roster.to_list(),
            "messageCount": len(self.log),
        }
