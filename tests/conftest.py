"""Pytest configuration and fixtures."""

import asyncio
import itertools
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import pytest

from mockpanel.agents.prompts import PanelPrompts
from mockpanel.agents.turn_engine import TurnDecisionEngine
from mockpanel.agents.turn_policy import TurnPolicy
from mockpanel.agents.utterance_generator import UtteranceGenerator
from mockpanel.core.config import PanelConfig
from mockpanel.core.enums import Gender, TurnState
from mockpanel.core.events import EventType, SessionEvent
from mockpanel.core.participants import Agent, Roster
from mockpanel.core.session import Session
from mockpanel.core.turn_controller import SessionTurnController
from mockpanel.voice.deepgram_speak import SpeakEvent, SpeakEventType
from mockpanel.voice.speech_renderer import SpeechRenderer


ROSTER_JSON = json.dumps([
    {"name": "Alice", "designation": "Coach", "personalities": "Direct and warm", "gender": "female"},
    {"name": "Bob", "designation": "Manager", "personalities": "Skeptical", "gender": "male"},
])


# =============================================================================
# FAKE PROVIDERS
# =============================================================================


class ScriptedCompletionProvider:
    """Completion provider that replays scripted outputs.

    ``decisions`` feeds ``complete`` (turn decisions), ``streams`` feeds
    ``stream_complete`` (one list of chunks per call). Script entries may be:
    - str: returned / yielded
    - Exception: raised
    - asyncio.Event: awaited before moving on to the next entry
    Exhausted decision scripts answer "USER:".
    """

    def __init__(
        self,
        decisions: Optional[List[Any]] = None,
        streams: Optional[List[Any]] = None,
        roster_response: str = ROSTER_JSON,
        cycle: bool = False,
    ):
        self._decisions = itertools.cycle(decisions) if cycle and decisions else iter(decisions or [])
        self._streams = itertools.cycle(streams) if cycle and streams else iter(streams or [])
        self.roster_response = roster_response
        self.decision_calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []
        self.closed = False

    async def complete(self, system: str, messages: List[Dict[str, str]]) -> str:
        if system == PanelPrompts.ROSTER_SYSTEM_PROMPT:
            if isinstance(self.roster_response, Exception):
                raise self.roster_response
            return self.roster_response

        self.decision_calls.append({"system": system, "messages": messages})
        item = next(self._decisions, "USER:")
        while isinstance(item, asyncio.Event):
            await item.wait()
            item = next(self._decisions, "USER:")
        if isinstance(item, Exception):
            raise item
        return item

    async def stream_complete(self, system: str, messages: List[Dict[str, str]]):
        self.stream_calls.append({"system": system, "messages": messages})
        script = next(self._streams, [])
        if isinstance(script, Exception):
            raise script
        for item in script:
            if isinstance(item, asyncio.Event):
                await item.wait()
            elif isinstance(item, Exception):
                raise item
            else:
                yield item

    async def close(self):
        self.closed = True


class FakeSpeechClient:
    """Speech client emitting canned speak events."""

    def __init__(
        self,
        chunks: Optional[List[bytes]] = None,
        error: Optional[str] = None,
        hang: bool = False,
        raise_error: Optional[Exception] = None,
    ):
        self.chunks = chunks if chunks is not None else [b"\x01\x00" * 8, b"\x02\x00" * 8]
        self.error = error
        self.hang = hang
        self.raise_error = raise_error
        self.requests: List[Dict[str, str]] = []
        self.streams_closed = 0
        self.closed = False

    async def synthesize(self, text: str, voice_id: str):
        self.requests.append({"text": text, "voice_id": voice_id})
        try:
            yield SpeakEvent(SpeakEventType.OPEN)
            if self.raise_error is not None:
                raise self.raise_error
            if self.error:
                yield SpeakEvent(SpeakEventType.ERROR, message=self.error)
                yield SpeakEvent(SpeakEventType.CLOSE)
                return
            for chunk in self.chunks:
                yield SpeakEvent(SpeakEventType.AUDIO, audio=chunk)
            if self.hang:
                await asyncio.sleep(3600)
            yield SpeakEvent(SpeakEventType.FLUSHED)
            yield SpeakEvent(SpeakEventType.CLOSE)
        finally:
            self.streams_closed += 1

    async def close(self):
        self.closed = True


class RecordingSink:
    """Event sink that records everything a session emits.

    If ``snapshot`` is given, its result is stored next to each event (used to
    snapshot the log length at emission time). ``hooks`` maps an event type to
    a coroutine function awaited once, the first time that event is sent; it
    runs while the sender is still suspended in the send.
    """

    def __init__(self, snapshot: Optional[Callable[[], Any]] = None):
        self.events: List[SessionEvent] = []
        self.snapshots: List[Any] = []
        self.snapshot = snapshot
        self.hooks: Dict[EventType, Callable[[], Awaitable[None]]] = {}

    async def __call__(self, event: SessionEvent):
        self.events.append(event)
        self.snapshots.append(self.snapshot() if self.snapshot else None)
        hook = self.hooks.pop(event.type, None)
        if hook is not None:
            await hook()

    def types(self) -> List[EventType]:
        return [e.type for e in self.events]

    def of_type(self, event_type: EventType) -> List[SessionEvent]:
        return [e for e in self.events if e.type == event_type]

    def index_of(self, event_type: EventType) -> int:
        return self.types().index(event_type)

    def clear(self):
        self.events.clear()
        self.snapshots.clear()


# =============================================================================
# HELPERS
# =============================================================================


async def wait_for_state(controller: SessionTurnController, state: TurnState, attempts: int = 200):
    """Yield to the loop until the controller reaches a state."""
    for _ in range(attempts):
        if controller.state == state:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"Controller never reached {state}, stuck in {controller.state}")


def make_controller(
    session: Session,
    provider: ScriptedCompletionProvider,
    speech: Optional[FakeSpeechClient] = None,
    sink: Optional[RecordingSink] = None,
    config: Optional[PanelConfig] = None,
) -> SessionTurnController:
    config = config or fast_config()
    policy = TurnPolicy(
        max_consecutive=config.max_consecutive_agent_turns,
        target_user_share=config.target_user_share,
        ratio_min_entries=config.ratio_min_entries,
        ratio_min_streak=config.ratio_min_streak,
    )
    return SessionTurnController(
        session=session,
        engine=TurnDecisionEngine(provider, policy),
        generator=UtteranceGenerator(provider),
        renderer=SpeechRenderer(speech or FakeSpeechClient(), flush_timeout_s=config.tts_flush_timeout_s),
        sink=sink or RecordingSink(lambda: len(session.log)),
        config=config,
    )


def fast_config(**overrides) -> PanelConfig:
    """Config with no scheduling delays."""
    values = dict(
        session_start_delay_s=0.0,
        retrigger_delay_s=0.0,
        tts_flush_timeout_s=1.0,
        tts_dry_run=True,
    )
    values.update(overrides)
    return PanelConfig(**values)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def test_config():
    """Create a test configuration with zero delays."""
    return fast_config()


@pytest.fixture
def alice():
    return Agent(id="Alice_Coach", name="Alice", role="Coach", persona="Direct and warm")


@pytest.fixture
def bob():
    return Agent(id="Bob_Manager", name="Bob", role="Manager", persona="Skeptical", gender=Gender.MALE)


@pytest.fixture
def carol():
    return Agent(id="Carol_Lead", name="Carol", role="Lead", persona="Calm")


@pytest.fixture
def roster(alice, bob):
    """Two-agent roster."""
    return Roster([alice, bob])


@pytest.fixture
def roster3(alice, bob, carol):
    """Three-agent roster."""
    return Roster([alice, bob, carol])


@pytest.fixture
def session(roster):
    """Fresh session with an empty log."""
    return Session(
        session_id="test-session",
        scenario="Sprint standup",
        user_name="Priya",
        user_role="Backend developer",
        roster=roster,
    )
