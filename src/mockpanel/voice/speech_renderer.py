"""Speech Renderer: turns a finished utterance into a stream of audio events.

The first audio chunk carries a WAV header so the client can start playback
straight away. Every render ends with exactly one ``COMPLETE`` event, whether
synthesis succeeded, failed or timed out.
"""

import asyncio
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Protocol

from .deepgram_speak import SpeakEvent, SpeakEventType
from .voice_library import select_voice

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44


def create_wav_header(sample_rate: int = 48000, channels: int = 1, bits_per_sample: int = 16) -> bytes:
    """RIFF/WAVE header for streamed PCM.

    The RIFF and data length fields are left at zero since the total length
    is unknown while streaming.
    """
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 0, b"WAVE",
        b"fmt ", 16, 1, channels, sample_rate, byte_rate, block_align, bits_per_sample,
        b"data", 0,
    )


class AudioEventType(str, Enum):
    FIRST_AUDIO = "first_audio"
    CHUNK = "chunk"
    ERROR = "error"
    COMPLETE = "complete"


@dataclass
class AudioEvent:
    type: AudioEventType
    data: bytes = b""
    message: str = ""
    timed_out: bool = False


class SpeechClient(Protocol):
    """Anything that can stream speak events for a text and voice."""

    def synthesize(self, text: str, voice_id: str) -> AsyncIterator[SpeakEvent]:
        ...


class SpeechRenderer:
    """Frames synthesized speech for delivery to the client."""

    def __init__(
        self,
        client: SpeechClient,
        flush_timeout_s: float = 30.0,
        sample_rate: int = 48000,
    ):
        self.client = client
        self.flush_timeout_s = flush_timeout_s
        self.sample_rate = sample_rate

    async def render(
        self, text: str, voice_tag: Optional[str], voice_slot: int
    ) -> AsyncIterator[AudioEvent]:
        """Render text to audio events.

        Args:
            text: Full utterance text
            voice_tag: Voice gender ("male" / "female")
            voice_slot: Agent's roster index, picks one of the gender's voices

        Yields:
            FIRST_AUDIO once before the first CHUNK, CHUNK per audio block,
            ERROR on synthesis failure, and COMPLETE last
        """
        if not text or not text.strip():
            yield AudioEvent(AudioEventType.COMPLETE)
            return

        voice_id = select_voice(voice_tag, voice_slot)
        stream = self.client.synthesize(text, voice_id)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.flush_timeout_s
        first_chunk = True
        timed_out = False

        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                try:
                    event = await asyncio.wait_for(stream.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    break

                if event.type == SpeakEventType.OPEN:
                    # Flush is requested as soon as the socket opens
                    deadline = loop.time() + self.flush_timeout_s

                elif event.type == SpeakEventType.AUDIO:
                    if not event.audio:
                        continue
                    if first_chunk:
                        first_chunk = False
                        yield AudioEvent(AudioEventType.FIRST_AUDIO)
                        yield AudioEvent(
                            AudioEventType.CHUNK,
                            data=create_wav_header(self.sample_rate) + event.audio,
                        )
                    else:
                        yield AudioEvent(AudioEventType.CHUNK, data=event.audio)

                elif event.type == SpeakEventType.ERROR:
                    yield AudioEvent(AudioEventType.ERROR, message=event.message or "TTS error")
                    break

                elif event.type == SpeakEventType.CLOSE:
                    break

        except asyncio.TimeoutError:
            logger.warning(f"TTS did not finish within {self.flush_timeout_s}s, closing stream")
            timed_out = True
        except Exception as e:
            logger.error(f"TTS stream failed: {e}")
            yield AudioEvent(AudioEventType.ERROR, message=str(e) or "TTS error")
        finally:
            await stream.aclose()

        yield AudioEvent(AudioEventType.COMPLETE, timed_out=timed_out)
