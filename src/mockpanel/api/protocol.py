"""Client command protocol for the practice WebSocket.

Inbound text frames are JSON objects with a ``type`` field:

    start_session            {scenario, userName, userRole, sessionId?}
    message                  {content | text, sessionId?}
    audio_playback_complete  {agentId | aiId, sessionId?}
    get_session              {sessionId?}
    ping                     {}

Commands without a ``sessionId`` act on the session this connection started.
Every failure is answered with an ``error`` message on the same connection.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import MockPanelError, SessionValidationError
from ..core.events import EventType, SessionEvent
from ..core.session_manager import SessionManager

logger = logging.getLogger(__name__)

SendJson = Callable[[Dict[str, Any]], Awaitable[None]]
SendBytes = Callable[[bytes], Awaitable[None]]


# =============================================================================
# COMMAND MODELS
# =============================================================================


class Command(BaseModel):
    """Base for inbound commands."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class StartSessionCommand(Command):
    scenario: Optional[str] = None
    user_name: Optional[str] = Field(default=None, alias="userName")
    user_role: Optional[str] = Field(default=None, alias="userRole")


class MessageCommand(Command):
    content: Optional[str] = None
    text: Optional[str] = None

    @property
    def body(self) -> Optional[str]:
        return self.content if self.content is not None else self.text


class PlaybackCompleteCommand(Command):
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    ai_id: Optional[str] = Field(default=None, alias="aiId")

    @property
    def speaker(self) -> Optional[str]:
        return self.agent_id or self.ai_id


class GetSessionCommand(Command):
    pass


class PingCommand(Command):
    pass


COMMAND_TYPES: Dict[str, Type[Command]] = {
    "start_session": StartSessionCommand,
    "message": MessageCommand,
    "audio_playback_complete": PlaybackCompleteCommand,
    "get_session": GetSessionCommand,
    "ping": PingCommand,
}


class ProtocolError(MockPanelError):
    """Raised for frames that are not valid commands."""


def parse_command(raw: str) -> Command:
    """Parse a text frame into a typed command.

    Raises:
        ProtocolError: For malformed JSON, unknown types or invalid fields
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError("Invalid message format") from e

    if not isinstance(data, dict):
        raise ProtocolError("Invalid message format")

    message_type = data.get("type")
    model = COMMAND_TYPES.get(message_type)
    if model is None:
        raise ProtocolError(f"Unknown message type: {message_type}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"Invalid {message_type} message: {e.errors()[0]['msg']}") from e


# =============================================================================
# HANDLER
# =============================================================================


class CommandHandler:
    """Per-connection command dispatcher.

    Owns the connection's event sink: audio chunks go out as binary frames,
    everything else as JSON.
    """

    def __init__(self, manager: SessionManager, send_json: SendJson, send_bytes: SendBytes):
        self.manager = manager
        self._send_json = send_json
        self._send_bytes = send_bytes
        self.session_id: Optional[str] = None
        self.connected = True

    async def sink(self, event: SessionEvent):
        """Event sink handed to sessions started on this connection."""
        if not self.connected:
            return
        if event.is_binary:
            await self._send_bytes(event.audio)
        else:
            await self._send_json(event.to_message())

    async def send_error(self, message: str):
        await self.sink(SessionEvent.error(message))

    async def handle_text(self, raw: str):
        """Handle one inbound text frame."""
        try:
            command = parse_command(raw)
        except ProtocolError as e:
            logger.warning(f"Rejected client frame: {e}")
            await self.send_error(str(e))
            return

        try:
            await self.dispatch(command)
        except MockPanelError as e:
            logger.warning(f"{command.type} failed: {e}")
            await self.send_error(str(e))

    async def dispatch(self, command: Command):
        if isinstance(command, PingCommand):
            await self._send_json({"type": EventType.PONG.value})

        elif isinstance(command, StartSessionCommand):
            await self._start_session(command)

        elif isinstance(command, MessageCommand):
            await self.manager.handle_user_message(self._active_session(command), command.body)

        elif isinstance(command, PlaybackCompleteCommand):
            self.manager.handle_playback_complete(self._active_session(command), command.speaker)

        elif isinstance(command, GetSessionCommand):
            info = self.manager.session_info(self._active_session(command))
            await self._send_json({"type": EventType.SESSION_INFO.value, "session": info})

    def _active_session(self, command: Command) -> str:
        session_id = command.session_id or self.session_id
        if not session_id:
            raise SessionValidationError("No active session. Please start a session first.")
        return session_id

    async def _start_session(self, command: StartSessionCommand):
        session = await self.manager.create_session(
            scenario=command.scenario,
            user_name=command.user_name,
            user_role=command.user_role,
            sink=self.sink,
            session_id=command.session_id,
        )
        self.session_id = session.session_id
        info = self.manager.session_info(session.session_id)
        await self._send_json({"type": EventType.SESSION_CREATED.value, "session": info})
        logger.info(f"Session started: {session.session_id}")
