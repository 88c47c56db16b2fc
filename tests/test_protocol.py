"""Tests for the client command protocol."""

import json

import pytest

from conftest import FakeSpeechClient, ScriptedCompletionProvider, fast_config
from mockpanel.api.protocol import (
    CommandHandler,
    MessageCommand,
    PlaybackCompleteCommand,
    ProtocolError,
    StartSessionCommand,
    parse_command,
)
from mockpanel.core.enums import TurnState
from mockpanel.core.events import SessionEvent
from mockpanel.core.session_manager import SessionManager


class FakeConnection:
    """Collects what a handler sends."""

    def __init__(self):
        self.json = []
        self.binary = []

    async def send_json(self, data):
        self.json.append(data)

    async def send_bytes(self, data):
        self.binary.append(data)

    def types(self):
        return [m["type"] for m in self.json]


def make_handler(provider=None, **config_overrides):
    manager = SessionManager(
        config=fast_config(**config_overrides),
        provider=provider or ScriptedCompletionProvider(),
        speech_client=FakeSpeechClient(),
    )
    connection = FakeConnection()
    return CommandHandler(manager, connection.send_json, connection.send_bytes), connection


START = json.dumps({
    "type": "start_session",
    "scenario": "Sprint standup",
    "userName": "Priya",
    "userRole": "Developer",
})


class TestParseCommand:
    """Tests for parse_command."""

    def test_start_session_aliases(self):
        command = parse_command(START)
        assert isinstance(command, StartSessionCommand)
        assert command.user_name == "Priya"
        assert command.user_role == "Developer"

    def test_message_body(self):
        assert parse_command('{"type": "message", "content": "hi"}').body == "hi"
        assert parse_command('{"type": "message", "text": "hello"}').body == "hello"
        assert isinstance(parse_command('{"type": "message"}'), MessageCommand)

    def test_playback_aliases(self):
        legacy = parse_command('{"type": "audio_playback_complete", "aiId": "Alice_Coach"}')
        current = parse_command('{"type": "audio_playback_complete", "agentId": "Bob_Manager"}')

        assert isinstance(legacy, PlaybackCompleteCommand)
        assert legacy.speaker == "Alice_Coach"
        assert current.speaker == "Bob_Manager"

    def test_extra_fields_ignored(self):
        command = parse_command('{"type": "ping", "nonce": 7, "sessionId": "abc"}')
        assert command.session_id == "abc"

    def test_malformed(self):
        with pytest.raises(ProtocolError, match="Invalid message format"):
            parse_command("{not json")
        with pytest.raises(ProtocolError, match="Invalid message format"):
            parse_command("[1, 2]")

    def test_unknown_type(self):
        with pytest.raises(ProtocolError, match="Unknown message type: dance"):
            parse_command('{"type": "dance"}')

    def test_invalid_field_type(self):
        with pytest.raises(ProtocolError, match="Invalid message"):
            parse_command('{"type": "message", "content": {"nested": true}}')


class TestCommandHandler:
    """Tests for CommandHandler dispatch."""

    @pytest.mark.asyncio
    async def test_ping(self):
        handler, connection = make_handler()
        await handler.handle_text('{"type": "ping"}')
        assert connection.json == [{"type": "pong"}]

    @pytest.mark.asyncio
    async def test_start_session(self):
        handler, connection = make_handler(session_start_delay_s=30)
        await handler.handle_text(START)

        assert connection.types() == ["session_created"]
        info = connection.json[0]["session"]
        assert info["userName"] == "Priya"
        assert info["state"] == "idle"
        assert handler.session_id == info["sessionId"]
        await handler.manager.close_all()

    @pytest.mark.asyncio
    async def test_start_session_missing_field(self):
        handler, connection = make_handler()
        await handler.handle_text('{"type": "start_session", "scenario": "Standup"}')

        assert connection.json == [{"type": "error", "message": "Missing required field: userName"}]
        assert handler.session_id is None

    @pytest.mark.asyncio
    async def test_commands_need_a_session(self):
        handler, connection = make_handler()
        await handler.handle_text('{"type": "message", "content": "hello"}')
        await handler.handle_text('{"type": "get_session"}')

        assert connection.types() == ["error", "error"]
        assert connection.json[0]["message"] == "No active session. Please start a session first."

    @pytest.mark.asyncio
    async def test_unknown_type_reported(self):
        handler, connection = make_handler()
        await handler.handle_text('{"type": "dance"}')
        assert connection.json == [{"type": "error", "message": "Unknown message type: dance"}]

    @pytest.mark.asyncio
    async def test_session_events_reach_connection(self):
        provider = ScriptedCompletionProvider(["AGENT:Alice_Coach\nWelcome, Priya."])
        handler, connection = make_handler(provider)
        await handler.handle_text(START)
        controller = handler.manager.get_controller(handler.session_id)
        await controller.join()

        types = connection.types()
        assert types[0] == "session_created"
        assert "ai_response_end" in types
        assert types[-1] == "ai_audio_end"
        # Audio travels as binary frames only
        assert "ai_audio_chunk" not in types
        assert connection.binary[0][:4] == b"RIFF"
        await handler.manager.close_all()

    @pytest.mark.asyncio
    async def test_playback_ack_with_legacy_alias(self):
        provider = ScriptedCompletionProvider(["AGENT:Alice_Coach\nPriya, your update?", "USER:"])
        handler, connection = make_handler(provider)
        await handler.handle_text(START)
        controller = handler.manager.get_controller(handler.session_id)
        await controller.join()

        await handler.handle_text('{"type": "audio_playback_complete", "aiId": "Alice_Coach"}')
        await controller.join()

        assert connection.types()[-1] == "user_turn"
        assert controller.state == TurnState.IDLE
        await handler.manager.close_all()

    @pytest.mark.asyncio
    async def test_playback_ack_for_unknown_agent(self):
        handler, connection = make_handler(session_start_delay_s=30)
        await handler.handle_text(START)
        await handler.handle_text('{"type": "audio_playback_complete", "agentId": "Ghost"}')

        assert connection.json[-1] == {"type": "error", "message": "Unknown agent: Ghost"}
        await handler.manager.close_all()

    @pytest.mark.asyncio
    async def test_get_session(self):
        handler, connection = make_handler(session_start_delay_s=30)
        await handler.handle_text(START)
        await handler.handle_text('{"type": "get_session"}')

        assert connection.json[-1]["type"] == "session_info"
        assert connection.json[-1]["session"]["sessionId"] == handler.session_id
        await handler.manager.close_all()

    @pytest.mark.asyncio
    async def test_sink_silent_after_disconnect(self):
        handler, connection = make_handler()
        handler.connected = False
        await handler.sink(SessionEvent.user_turn())
        assert connection.json == []
