"""Session registry: creates, looks up and tears down practice sessions.

Each live session id maps to exactly one ``SessionTurnController``. Sessions
live in memory only and disappear on deletion or process shutdown.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from .config import PanelConfig
from .errors import (
    SessionExistsError,
    SessionNotFoundError,
    SessionValidationError,
    UnknownAgentError,
)
from .events import EventSink
from .session import Session
from .turn_controller import SessionTurnController
from ..agents.llm_client import CompletionProvider
from ..agents.roster_generator import RosterGenerator
from ..agents.turn_engine import TurnDecisionEngine
from ..agents.turn_policy import TurnPolicy
from ..agents.utterance_generator import UtteranceGenerator
from ..voice.speech_renderer import SpeechClient, SpeechRenderer

logger = logging.getLogger(__name__)


def _require(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise SessionValidationError(f"Missing required field: {field_name}")
    return str(value).strip()


class SessionManager:
    """Owns every live session and the shared provider-facing components."""

    def __init__(
        self,
        config: PanelConfig,
        provider: CompletionProvider,
        speech_client: SpeechClient,
    ):
        self.config = config
        self.provider = provider
        self.speech_client = speech_client

        policy = TurnPolicy(
            max_consecutive=config.max_consecutive_agent_turns,
            target_user_share=config.target_user_share,
            ratio_min_entries=config.ratio_min_entries,
        ratio_min_streak=config.ratio_min_streak,
        )
        self.engine = TurnDecisionEngine(provider, policy)
        self.generator = UtteranceGenerator(provider)
        self.renderer = SpeechRenderer(
            speech_client,
            flush_timeout_s=config.tts_flush_timeout_s,
            sample_rate=config.tts_sample_rate,
        )
        self.roster_generator = RosterGenerator(provider)

        self._controllers: Dict[str, SessionTurnController] = {}

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._controllers

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create_session(
        self,
        scenario: Optional[str],
        user_name: Optional[str],
        user_role: Optional[str],
        sink: EventSink,
        session_id: Optional[str] = None,
    ) -> Session:
        """Create a session, generate its panel and schedule the opening turn.

        Args:
            scenario: Practice scenario description
            user_name: Human participant's name
            user_role: Human participant's role
            sink: Async callable receiving the session's events
            session_id: Client-chosen id (a UUID4 is generated if omitted)

        Returns:
            The new Session

        Raises:
            SessionValidationError: If a required field is missing
            SessionExistsError: If session_id is already live
            RosterGenerationError: If no panel could be generated
        """
        scenario = _require(scenario, "scenario")
        user_name = _require(user_name, "userName")
        user_role = _require(user_role, "userRole")

        session_id = session_id or str(uuid.uuid4())
        if session_id in self._controllers:
            raise SessionExistsError(session_id)

        roster = await self.roster_generator.generate(scenario, user_name, user_role)

        # Roster generation awaited the provider; the id may have been taken meanwhile
        if session_id in self._controllers:
            raise SessionExistsError(session_id)

        session = Session(
            session_id=session_id,
            scenario=scenario,
            user_name=user_name,
            user_role=user_role,
            roster=roster,
        )
        controller = SessionTurnController(
            session=session,
            engine=self.engine,
            generator=self.generator,
            renderer=self.renderer,
            sink=sink,
            config=self.config,
        )
        self._controllers[session_id] = controller
        controller.start()

        logger.info(f"Session {session_id} created with {len(roster)} agents")
        return session

    async def delete_session(self, session_id: str):
        """Close and forget a session. Raises SessionNotFoundError."""
        controller = self._controllers.pop(session_id, None)
        if controller is None:
            raise SessionNotFoundError(session_id)
        await controller.close()
        logger.info(f"Session {session_id} deleted")

    async def close_all(self):
        """Close every session (application shutdown)."""
        for session_id in list(self._controllers):
            await self.delete_session(session_id)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get_controller(self, session_id: str) -> SessionTurnController:
        controller = self._controllers.get(session_id)
        if controller is None:
            raise SessionNotFoundError(session_id)
        return controller

    def get(self, session_id: str) -> Session:
        return self.get_controller(session_id).session

    def session_info(self, session_id: str) -> Dict[str, Any]:
        return self.get_controller(session_id).info()

    def list_sessions(self) -> List[Dict[str, Any]]:
        return [controller.info() for controller in self._controllers.values()]

    # =========================================================================
    # INPUTS
    # =========================================================================

    async def handle_user_message(self, session_id: str, text: Optional[str]):
        """Route a user message to its session."""
        controller = self.get_controller(session_id)
        content = _require(text, "content")
        await controller.on_user_message(content)

    def handle_playback_complete(self, session_id: str, agent_id: Optional[str]) -> bool:
        """Route a playback acknowledgement. Returns whether it was accepted."""
        controller = self.get_controller(session_id)
        if not agent_id or agent_id not in controller.session.roster:
            raise UnknownAgentError(agent_id)
        return controller.on_playback_complete(agent_id)
