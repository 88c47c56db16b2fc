"""MockPanel voice module.

Streams agent speech through Deepgram Aura:
- voice_library: gender and roster slot to Aura model
- deepgram_speak: WebSocket speak client (with dry-run mode)
- speech_renderer: WAV framing, first-audio signal and timeout handling

Usage:
    from mockpanel.voice import DeepgramSpeakClient, SpeechRenderer

    renderer = SpeechRenderer(DeepgramSpeakClient(dry_run=True))
    async for event in renderer.render("Tell me about yourself.", "female", 0):
        ...
"""

from .deepgram_speak import DeepgramSpeakClient, SpeakEvent, SpeakEventType
from .speech_renderer import (
    WAV_HEADER_SIZE,
    AudioEvent,
    AudioEventType,
    SpeechRenderer,
    create_wav_header,
)
from .voice_library import AURA_VOICES, DEFAULT_VOICE, list_available_voices, select_voice

__all__ = [
    "AURA_VOICES",
    "DEFAULT_VOICE",
    "select_voice",
    "list_available_voices",
    "DeepgramSpeakClient",
    "SpeakEvent",
    "SpeakEventType",
    "SpeechRenderer",
    "AudioEvent",
    "AudioEventType",
    "create_wav_header",
    "WAV_HEADER_SIZE",
]
