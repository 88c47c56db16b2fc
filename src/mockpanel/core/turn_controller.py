"""Session Turn Controller: the per-session turn state machine.

    IDLE -> DECIDING -> EMITTING_TEXT -> AWAITING_AUDIO_ACK -> IDLE
               |              |
               |              +-> IDLE (text failure, user_turn)
               +-> IDLE (user's turn)
               +-> ENDED

A turn is only started from IDLE, and only one turn runs at a time. Triggers
that arrive while a turn is in flight are dropped, never queued. The one
exception is a trigger that lands after a turn has returned to IDLE but
before it released the lock: it is remembered and replayed on release. The next
agent turn is triggered by the client's playback acknowledgement, so agents
never talk over each other.

All background work (pending triggers, the running turn, audio delivery) is
tracked and cancelled by ``close()``. After close, every emission is a no-op.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from .config import PanelConfig
from .enums import TurnState
from .events import EventSink, SessionEvent
from .participants import Agent
from .session import Session
from ..agents.turn_engine import TurnDecisionEngine
from ..agents.utterance_generator import (
    GenerationComplete,
    TextFragment,
    UtteranceContext,
    UtteranceGenerator,
)
from ..voice.speech_renderer import AudioEventType, SpeechRenderer

logger = logging.getLogger(__name__)


class SessionTurnController:
    """Runs the turn-taking flow for one session."""

    def __init__(
        self,
        session: Session,
        engine: TurnDecisionEngine,
        generator: UtteranceGenerator,
        renderer: SpeechRenderer,
        sink: EventSink,
        config: Optional[PanelConfig] = None,
    ):
        self.session = session
        self.engine = engine
        self.generator = generator
        self.renderer = renderer
        self.sink = sink
        self.config = config or PanelConfig()

        self.state = TurnState.IDLE
        self.current_speaker_id: Optional[str] = None

        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._retrigger_pending = False
        self._closed = False

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def closed(self) -> bool:
        return self._closed

    def info(self) -> Dict[str, Any]:
        info = self.session.to_info()
        info["state"] = self.state.value
        return info

    # =========================================================================
    # PLUMBING
    # =========================================================================

    def _set_state(self, state: TurnState, speaker_id: Optional[str] = None):
        logger.debug(f"[{self.session_id}] {self.state.value} -> {state.value}")
        self.state = state
        self.current_speaker_id = speaker_id if state == TurnState.AWAITING_AUDIO_ACK else None

    async def _emit(self, event: SessionEvent):
        if self._closed:
            return
        try:
            await self.sink(event)
        except Exception as e:
            logger.error(f"[{self.session_id}] Failed to deliver {event.type.value}: {e}")

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # =========================================================================
    # INPUTS
    # =========================================================================

    def start(self) -> Optional[asyncio.Task]:
        """Schedule the opening turn."""
        return self.request_turn(self.config.session_start_delay_s)

    def request_turn(self, delay: float = 0.0) -> Optional[asyncio.Task]:
        """Schedule a turn trigger after ``delay`` seconds."""
        if self._closed:
            return None
        return self._spawn(self._delayed_turn(delay))

    async def _delayed_turn(self, delay: float):
        if delay > 0:
            await asyncio.sleep(delay)
        await self.run_turn()

    async def on_user_message(self, text: str):
        """Record a user message and get a response going if possible."""
        if self._closed:
            return

        self.session.log.append_user(text)

        if self.state == TurnState.ENDED:
            logger.info(f"[{self.session_id}] Message after conversation ended, recorded only")
            return

        await self._emit(SessionEvent.ai_thinking())

        if self.state == TurnState.IDLE:
            self.request_turn()
        else:
            # Picked up when the current turn finishes
            self._retrigger_pending = True

    def on_playback_complete(self, agent_id: str) -> bool:
        """Handle the client's playback acknowledgement.

        Returns:
            True if the ack released the current speaker, False if ignored
        """
        if self._closed:
            return False

        if self.state != TurnState.AWAITING_AUDIO_ACK or agent_id != self.current_speaker_id:
            logger.warning(
                f"[{self.session_id}] Ignoring playback ack for {agent_id} "
                f"(state={self.state.value}, speaker={self.current_speaker_id})"
            )
            return False

        logger.info(f"[{self.session_id}] Playback complete for {agent_id}")
        self._set_state(TurnState.IDLE)
        self.request_turn(self.config.retrigger_delay_s)
        return True

    # =========================================================================
    # TURN FLOW
    # =========================================================================

    async def run_turn(self) -> bool:
        """Run one turn if the session is idle.

        Returns:
            True if a turn ran, False if the trigger was dropped
        """
        if self._closed:
            return False

        if self.state != TurnState.IDLE:
            logger.warning(
                f"[{self.session_id}] Turn trigger dropped (state={self.state.value})"
            )
            return False

        if self._lock.locked():
            # The finishing turn still holds the lock; it re-checks on release
            logger.debug(f"[{self.session_id}] Turn trigger deferred until the current turn unwinds")
            self._retrigger_pending = True
            return False

        async with self._lock:
            self._set_state(TurnState.DECIDING)
            self._retrigger_pending = False
            try:
                await self._take_turn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[{self.session_id}] Turn failed: {e}", exc_info=True)
                if self.state in (TurnState.DECIDING, TurnState.EMITTING_TEXT):
                    self._set_state(TurnState.IDLE)
                await self._emit(SessionEvent.error(f"Turn failed: {e}"))

        self._retrigger_if_pending()
        return True

    async def _take_turn(self):
        session = self.session
        decision = await self.engine.decide(
            session.log,
            session.roster,
            session.scenario,
            session.user_name,
            session.user_role,
        )
        if self._closed:
            return

        if decision.is_user:
            await self._hand_to_user()
            return

        if decision.is_end:
            await self._end_conversation()
            return

        agent = session.roster.get(decision.speaker)
        if agent is None:
            raise RuntimeError(f"Decision named agent outside roster: {decision.speaker}")

        self._set_state(TurnState.EMITTING_TEXT)
        await self._emit(SessionEvent.ai_thinking(f"{agent.name} is thinking..."))
        await self._emit(
            SessionEvent.response_start(agent.id, agent.display_name, agent.gender.value)
        )

        if decision.utterance_text:
            text = decision.utterance_text
            await self._emit(SessionEvent.response_chunk(agent.id, text))
        else:
            failure: List[Exception] = []
            text = await self._stream_generated(agent, failure.append)
            if self._closed:
                return
            if not text:
                message = "Failed to generate response"
                if failure:
                    message = f"{message}: {failure[0]}"
                await self._emit(SessionEvent.error(message, agent.id))
                await self._hand_to_user()
                return

        session.log.append_agent(agent.id, text)
        self._set_state(TurnState.AWAITING_AUDIO_ACK, agent.id)
        self._spawn(self._deliver_audio(agent, text))
        await self._emit(SessionEvent.response_end(agent.id, text, agent.display_name))
        logger.info(f"[{self.session_id}] {agent.display_name}: {text}")

        if decision.should_end:
            await self._end_conversation()

    async def _stream_generated(
        self, agent: Agent, on_error: Callable[[Exception], None]
    ) -> Optional[str]:
        """Stream a generated utterance to the client. None on failure."""
        context = UtteranceContext(
            agent=agent,
            roster=self.session.roster,
            scenario=self.session.scenario,
            user_name=self.session.user_name,
            user_role=self.session.user_role,
        )

        async for item in self.generator.generate(context, self.session.log, on_error):
            if self._closed:
                return None
            if isinstance(item, TextFragment):
                await self._emit(SessionEvent.response_chunk(agent.id, item.text))
            elif isinstance(item, GenerationComplete):
                return item.full_text.strip() or None
        return None

    async def _hand_to_user(self):
        self._set_state(TurnState.IDLE)
        await self._emit(SessionEvent.user_turn())

    async def _end_conversation(self):
        logger.info(f"[{self.session_id}] Conversation ended")
        self._set_state(TurnState.ENDED)
        await self._emit(SessionEvent.conversation_ended())

    def _retrigger_if_pending(self):
        """Start a turn for input that arrived while the last one held the lock."""
        if self._retrigger_pending and self.state == TurnState.IDLE and not self._closed:
            self._retrigger_pending = False
            self.request_turn()

    async def _deliver_audio(self, agent: Agent, text: str):
        slot = self.session.roster.index_of(agent.id)
        try:
            async for event in self.renderer.render(text, agent.gender.value, slot):
                if event.type == AudioEventType.FIRST_AUDIO:
                    await self._emit(SessionEvent.first_audio(agent.id))
                elif event.type == AudioEventType.CHUNK:
                    await self._emit(SessionEvent.audio_chunk(agent.id, event.data))
                elif event.type == AudioEventType.ERROR:
                    await self._emit(SessionEvent.error(f"TTS error: {event.message}", agent.id))
                elif event.type == AudioEventType.COMPLETE and event.timed_out:
                    logger.warning(f"[{self.session_id}] Audio for {agent.id} timed out")
        except Exception as e:
            logger.error(f"[{self.session_id}] Audio delivery failed for {agent.id}: {e}")
            await self._emit(SessionEvent.error(f"TTS error: {e}", agent.id))

        await self._emit(SessionEvent.audio_end(agent.id))

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def join(self):
        """Wait until no background work is left (turn chains included)."""
        current = asyncio.current_task()
        while True:
            pending = [t for t in self._tasks if t is not current and not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self):
        """Cancel all background work. Later emissions become no-ops."""
        self._closed = True
        current = asyncio.current_task()
        tasks = [t for t in self._tasks if t is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"[{self.session_id}] Session closed")
