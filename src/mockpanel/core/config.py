"""Runtime configuration dataclass.

Defaults mirror the behaviour of the practice platform: a 0.5s pause before
each agent turn, a 30s ceiling on speech rendering, and at most three agent
turns in a row before the user is handed the floor.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PanelConfig:
    """Configuration for providers, turn rules and the server."""

    # ===========================================
    # TEXT COMPLETION
    # ===========================================
    # "anthropic" = Claude via the Messages API (default)
    # "gemini" = Gemini via google-genai
    llm_provider: str = "anthropic"
    claude_model: str = "claude-sonnet-4-5-20250929"
    gemini_model: str = "gemini-3-flash-preview"
    temperature: float = 0.7
    max_tokens: int = 1024

    # ===========================================
    # SPEECH SYNTHESIS (Deepgram Aura streaming)
    # ===========================================
    tts_dry_run: bool = False  # Silent PCM instead of API calls
    tts_sample_rate: int = 48000
    tts_encoding: str = "linear16"
    tts_connect_timeout_s: float = 5.0
    tts_flush_timeout_s: float = 30.0

    # ===========================================
    # TURN CONTROL
    # ===========================================
    session_start_delay_s: float = 0.5  # Before the opening agent turn
    retrigger_delay_s: float = 0.5  # After a playback ack, lets client audio stop
    max_consecutive_agent_turns: int = 3
    # Long-run share of turns the user should get. Once the log has
    # ratio_min_entries entries, agent exchanges of ratio_min_streak or more
    # are handed back to the user while agents are over their share.
    target_user_share: float = 0.6
    ratio_min_entries: int = 6
    ratio_min_streak: int = 2

    # ===========================================
    # SERVER
    # ===========================================
    host: str = "0.0.0.0"
    port: int = 3000

    # ===========================================
    # LOGGING
    # ===========================================
    verbose: bool = False
    save_logs: bool = False
    log_dir: str = "data/logs"

    # ===========================================
    # API SETTINGS
    # ===========================================
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    deepgram_api_key: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "PanelConfig":
        """Build a config from environment variables (and a .env file).

        Args:
            **overrides: Field values that take precedence over the environment

        Returns:
            PanelConfig instance
        """
        load_dotenv()

        values = dict(
            llm_provider=os.getenv("MOCKPANEL_LLM_PROVIDER", cls.llm_provider),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            deepgram_api_key=os.getenv("DEEPGRAM_API_KEY"),
            tts_dry_run=_env_flag("MOCKPANEL_TTS_DRY_RUN"),
            verbose=_env_flag("MOCKPANEL_VERBOSE"),
            save_logs=_env_flag("MOCKPANEL_SAVE_LOGS"),
            log_dir=os.getenv("MOCKPANEL_LOG_DIR", cls.log_dir),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
        )
        values.update(overrides)
        return cls(**values)
