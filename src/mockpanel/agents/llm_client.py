"""Text-completion provider clients.

Two providers sit behind the same narrow protocol:
- Claude (Anthropic Messages API) - default
- Gemini (google-genai)

Messages use the neutral shape ``{"role": "user" | "assistant", "content": str}``.
The system prompt is passed separately.

Usage:
    client = create_completion_client(config)
    text = await client.complete(system_prompt, messages)

    async for fragment in client.stream_complete(system_prompt, messages):
        ...
"""

import logging
from typing import AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

import anthropic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..core.config import PanelConfig
from ..core.errors import ProviderError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for text-completion providers."""

    async def complete(self, system: str, messages: List[Message]) -> str:
        """Return the full completion text."""
        ...

    def stream_complete(self, system: str, messages: List[Message]) -> AsyncIterator[str]:
        """Yield completion text fragments as they arrive."""
        ...

    async def close(self) -> None:
        ...


# ============================================================================
# Claude
# ============================================================================


class ClaudeCompletionClient:
    """Completion client backed by Anthropic's async Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-5-20250929",
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        if not api_key:
            logger.warning("No Anthropic API key provided. Completions will fail until one is set.")
            self.client = None
        else:
            self.client = anthropic.AsyncAnthropic(api_key=api_key)
            logger.info(f"Claude client initialized (model={model})")

    def _require_client(self) -> "anthropic.AsyncAnthropic":
        if self.client is None:
            raise ProviderError("anthropic", "API key not configured")
        return self.client

    async def complete(self, system: str, messages: List[Message]) -> str:
        client = self._require_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.error(f"Claude completion failed: {e}")
            raise ProviderError("anthropic", str(e)) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    async def stream_complete(self, system: str, messages: List[Message]) -> AsyncIterator[str]:
        client = self._require_client()
        try:
            async with client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=messages,
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIError as e:
            logger.error(f"Claude stream failed: {e}")
            raise ProviderError("anthropic", str(e)) from e

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


# ============================================================================
# Gemini
# ============================================================================


class GeminiCompletionClient:
    """Completion client backed by google-genai's async models API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-3-flash-preview",
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        if not api_key:
            logger.warning("No Gemini API key provided. Completions will fail until one is set.")
            self.client = None
        else:
            self.client = genai.Client(api_key=api_key)
            logger.info(f"Gemini client initialized (model={model})")

    def _require_client(self) -> "genai.Client":
        if self.client is None:
            raise ProviderError("gemini", "API key not configured")
        return self.client

    def _config(self, system: str) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            system_instruction=system,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )

    @staticmethod
    def _to_contents(messages: List[Message]) -> List[genai_types.Content]:
        """Gemini calls the assistant role "model"."""
        return [
            genai_types.Content(
                role="model" if m["role"] == "assistant" else "user",
                parts=[genai_types.Part(text=m["content"])],
            )
            for m in messages
        ]

    async def complete(self, system: str, messages: List[Message]) -> str:
        client = self._require_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=self._to_contents(messages),
                config=self._config(system),
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini completion failed: {e}")
            raise ProviderError("gemini", str(e)) from e

        return response.text or ""

    async def stream_complete(self, system: str, messages: List[Message]) -> AsyncIterator[str]:
        client = self._require_client()
        try:
            stream = await client.aio.models.generate_content_stream(
                model=self.model,
                contents=self._to_contents(messages),
                config=self._config(system),
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except genai_errors.APIError as e:
            logger.error(f"Gemini stream failed: {e}")
            raise ProviderError("gemini", str(e)) from e

    async def close(self) -> None:
        # genai.Client holds no session that needs explicit teardown
        return None


# =============================================================================
# FACTORY
# =============================================================================


def create_completion_client(config: PanelConfig) -> CompletionProvider:
    """Create the completion client selected by ``config.llm_provider``."""
    provider = config.llm_provider.lower()

    if provider in ("anthropic", "claude"):
        return ClaudeCompletionClient(
            api_key=config.anthropic_api_key,
            model=config.claude_model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    if provider in ("gemini", "google"):
        return GeminiCompletionClient(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    raise ValueError(f"Unknown LLM provider: {config.llm_provider}")
