"""Deepgram Aura streaming TTS client.

Wraps the Deepgram ``/v1/speak`` WebSocket. One connection per utterance:
the text is sent with ``Speak``, followed by ``Flush``; once the server
answers ``Flushed`` the client sends ``Close`` and drains the socket.

Supports:
- Streaming linear16 PCM as it is synthesized
- Dry-run mode for development without API calls (silent PCM)

Usage:
    from mockpanel.voice import DeepgramSpeakClient

    client = DeepgramSpeakClient(api_key="your-key")
    async for event in client.synthesize("Hello there", "aura-2-thalia-en"):
        if event.type == SpeakEventType.AUDIO:
            play(event.audio)

    # Dry-run mode (no API calls, returns silence)
    client = DeepgramSpeakClient(dry_run=True)
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional

import aiohttp
import numpy as np

logger = logging.getLogger(__name__)


class SpeakEventType(str, Enum):
    """Events surfaced from a speak connection."""
    OPEN = "open"
    AUDIO = "audio"
    FLUSHED = "flushed"
    ERROR = "error"
    CLOSE = "close"


@dataclass
class SpeakEvent:
    """One event from a speak connection."""
    type: SpeakEventType
    audio: bytes = b""             # PCM bytes for AUDIO events
    message: str = ""              # Error description for ERROR events
    is_dry_run: bool = False


class DeepgramSpeakClient:
    """Async client for Deepgram's streaming text-to-speech."""

    WEBSOCKET_URL = "wss://api.deepgram.com/v1/speak"

    # Dry-run pacing: roughly 15 characters of speech per second
    MOCK_CHARS_PER_SECOND = 15.0
    MOCK_CHUNK_MS = 100

    def __init__(
        self,
        api_key: Optional[str] = None,
        encoding: str = "linear16",
        sample_rate: int = 48000,
        connect_timeout_s: float = 5.0,
        dry_run: bool = False,
    ):
        """Initialize the speak client.

        Args:
            api_key: Deepgram API key. If None, will check DEEPGRAM_API_KEY env var.
            encoding: Output audio encoding
            sample_rate: Output sample rate in Hz
            connect_timeout_s: Seconds to wait for the socket to open
            dry_run: If True, simulate API calls without making them.
        """
        self.api_key = api_key or os.environ.get("DEEPGRAM_API_KEY")
        self.encoding = encoding
        self.sample_rate = sample_rate
        self.connect_timeout_s = connect_timeout_s
        self.dry_run = dry_run

        self._session: Optional[aiohttp.ClientSession] = None

        if not self.api_key and not self.dry_run:
            logger.warning(
                "No Deepgram API key provided. Set DEEPGRAM_API_KEY or "
                "pass api_key parameter. Using dry_run mode."
            )
            self.dry_run = True

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Token {self.api_key}"}
            )
        return self._session

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _speak_url(self, voice_id: str) -> str:
        return (
            f"{self.WEBSOCKET_URL}?model={voice_id}"
            f"&encoding={self.encoding}&sample_rate={self.sample_rate}"
        )

    # =========================================================================
    # STREAMING SYNTHESIS (WebSocket)
    # =========================================================================

    async def synthesize(self, text: str, voice_id: str) -> AsyncIterator[SpeakEvent]:
        """Synthesize text and stream the audio.

        Args:
            text: Text to speak
            voice_id: Aura model name (e.g., "aura-2-thalia-en")

        Yields:
            OPEN, then AUDIO chunks, FLUSHED, and always a final CLOSE.
            Failures are reported as ERROR before CLOSE.
        """
        logger.info(f"TTS request: {len(text)} chars, voice={voice_id}")

        if self.dry_run:
            async for event in self._mock_synthesize(text):
                yield event
            return

        session = await self._get_session()
        try:
            ws = await asyncio.wait_for(
                session.ws_connect(self._speak_url(voice_id)),
                timeout=self.connect_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(f"TTS connection timed out after {self.connect_timeout_s}s")
            yield SpeakEvent(SpeakEventType.ERROR, message="TTS connection timeout")
            yield SpeakEvent(SpeakEventType.CLOSE)
            return
        except aiohttp.ClientError as e:
            logger.error(f"TTS connection failed: {e}")
            yield SpeakEvent(SpeakEventType.ERROR, message=f"TTS connection failed: {e}")
            yield SpeakEvent(SpeakEventType.CLOSE)
            return

        error: Optional[str] = None
        try:
            yield SpeakEvent(SpeakEventType.OPEN)

            await ws.send_json({"type": "Speak", "text": text})
            await ws.send_json({"type": "Flush"})

            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.BINARY:
                    yield SpeakEvent(SpeakEventType.AUDIO, audio=msg.data)

                elif msg.type == aiohttp.WSMsgType.TEXT:
                    data = json.loads(msg.data)
                    message_type = data.get("type")

                    if message_type == "Flushed":
                        logger.debug("TTS flushed")
                        yield SpeakEvent(SpeakEventType.FLUSHED)
                        await ws.send_json({"type": "Close"})
                    elif message_type == "Warning":
                        logger.warning(f"TTS warning: {data.get('warn_msg') or data}")
                    elif message_type == "Error":
                        error = data.get("err_msg") or data.get("description") or str(data)
                        break
                    else:
                        logger.debug(f"TTS message: {message_type}")

                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = f"WebSocket error: {ws.exception()}"
                    break

        except (aiohttp.ClientError, ConnectionError) as e:
            error = str(e)
        finally:
            if not ws.closed:
                await ws.close()

        if error:
            logger.error(f"TTS error: {error}")
            yield SpeakEvent(SpeakEventType.ERROR, message=error)

        logger.info("TTS connection closed")
        yield SpeakEvent(SpeakEventType.CLOSE)

    # =========================================================================
    # DRY-RUN MODE HELPERS
    # =========================================================================

    async def _mock_synthesize(self, text: str) -> AsyncIterator[SpeakEvent]:
        """Stream silent PCM sized to the text."""
        yield SpeakEvent(SpeakEventType.OPEN, is_dry_run=True)

        audio = self._generate_mock_audio(len(text) / self.MOCK_CHARS_PER_SECOND)
        chunk_size = int(self.sample_rate * self.MOCK_CHUNK_MS / 1000) * 2
        for start in range(0, len(audio), chunk_size):
            # Yield control so delivery interleaves like a real stream
            await asyncio.sleep(0)
            yield SpeakEvent(
                SpeakEventType.AUDIO, audio=audio[start:start + chunk_size], is_dry_run=True
            )

        yield SpeakEvent(SpeakEventType.FLUSHED, is_dry_run=True)
        yield SpeakEvent(SpeakEventType.CLOSE, is_dry_run=True)

    def _generate_mock_audio(self, duration_s: float) -> bytes:
        """Silent 16-bit mono PCM of the given duration (at least 0.5s)."""
        samples = int(self.sample_rate * max(duration_s, 0.5))
        return np.zeros(samples, dtype=np.int16).tobytes()
