"""
LLM Gateway

Provider-agnostic access to the models behind the inference adapter.
Supports Claude (Anthropic) and GPT (OpenAI) with retry and fallback.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from capflow.utils.logging import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    """Message roles in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A single message sent to a model."""
    role: Role
    content: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to provider-compatible dict."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM provider. ``error`` is set instead of raising."""
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0
    finish_reason: str = "stop"
    error: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    name: str

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion. ``json_mode`` asks for a single JSON object."""
        ...


class LLMGateway:
    """
    Gateway for LLM calls.

    Provides:
    - Provider abstraction
    - Automatic fallback on errors
    - Retry with exponential backoff
    """

    def __init__(
        self,
        primary_provider: LLMProvider,
        fallback_provider: LLMProvider | None = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """
        Initialize the gateway.

        Args:
            primary_provider: Main LLM provider
            fallback_provider: Backup provider if primary fails
            max_retries: Retries per provider after the first attempt
            retry_delay: Initial delay between retries (doubles each time)
            timeout: Request timeout in seconds
        """
        self.primary = primary_provider
        self.fallback = fallback_provider
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    @property
    def providers(self) -> list[str]:
        names = [self.primary.name]
        if self.fallback:
            names.append(self.fallback.name)
        return names

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Generate a completion.

        Tries the primary provider first and falls back on failure. Never
        raises; a response with ``error`` set means every provider failed.
        """
        logger.debug(
            "llm_request",
            message_count=len(messages),
            has_system=system_prompt is not None,
            json_mode=json_mode,
        )

        request = dict(
            messages=messages,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=json_mode,
        )
        response = await self._try_provider(self.primary, **request)

        if response.error and self.fallback:
            logger.warning("llm_primary_failed", provider=self.primary.name, error=response.error)
            response = await self._try_provider(self.fallback, **request)

        if response.error:
            logger.error("llm_all_providers_failed", providers=self.providers, error=response.error)
        else:
            logger.info(
                "llm_response",
                provider=response.provider,
                model=response.model,
                tokens=response.total_tokens,
                latency_ms=round(response.latency_ms, 1),
            )
        return response

    async def _try_provider(self, provider: LLMProvider, **request) -> LLMResponse:
        """Call one provider with retries."""
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await asyncio.wait_for(provider.generate(**request), timeout=self.timeout)
            except asyncio.TimeoutError:
                last_error = f"Request timed out after {self.timeout}s"
                logger.warning("llm_timeout", provider=provider.name, attempt=attempt + 1)
            except Exception as e:
                last_error = str(e)
                logger.warning("llm_error", provider=provider.name, attempt=attempt + 1, error=last_error)
            else:
                if not response.error:
                    return response
                last_error = response.error
                logger.warning("llm_error", provider=provider.name, attempt=attempt + 1, error=last_error)

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        return LLMResponse(content="", model="", provider=provider.name, error=last_error)
