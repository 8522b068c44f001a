"""
Base LLM Provider

Shared request/response handling for the SDK-backed providers.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from capflow.llm.gateway import LLMResponse, Message, Role
from capflow.utils.logging import get_logger

logger = get_logger(__name__)

JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    name: str = "base"

    def __init__(self, api_key: str, model: str):
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Model identifier
        """
        self.api_key = api_key
        self.model = model
        self._client = None

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK's async client."""

    @abstractmethod
    async def _complete(
        self,
        client: Any,
        messages: list[Message],
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> LLMResponse:
        """Run one completion; latency is filled in by ``generate``."""

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion; SDK errors come back as ``LLMResponse.error``."""
        start_time = time.perf_counter()
        try:
            response = await self._complete(
                self._get_client(), messages, system_prompt, max_tokens, temperature, json_mode
            )
        except Exception as e:
            logger.error("llm_provider_error", provider=self.name, error=str(e))
            response = LLMResponse(content="", model=self.model, provider=self.name, error=str(e))

        response.latency_ms = (time.perf_counter() - start_time) * 1000
        return response

    @staticmethod
    def split_system(messages: list[Message], system_prompt: str | None) -> tuple[str | None, list[dict]]:
        """Pull SYSTEM messages out into the system prompt (the first one wins)."""
        chat = []
        for msg in messages:
            if msg.role == Role.SYSTEM:
                if system_prompt is None:
                    system_prompt = msg.content
                continue
            chat.append(msg.to_dict())
        return system_prompt, chat
