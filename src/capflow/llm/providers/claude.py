"""
Claude (Anthropic) LLM Provider
"""

from __future__ import annotations

from typing import Any

import anthropic

from capflow.llm.gateway import LLMResponse, Message
from capflow.llm.providers.base import JSON_INSTRUCTION, BaseLLMProvider


class ClaudeProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    name = "claude"

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514"):
        super().__init__(api_key=api_key, model=model)

    def _create_client(self) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(api_key=self.api_key)

    async def _complete(
        self,
        client: Any,
        messages: list[Message],
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> LLMResponse:
        system_prompt, chat = self.split_system(messages, system_prompt)

        # No native JSON mode; ask for it in the system prompt
        if json_mode:
            system_prompt = f"{system_prompt}\n\n{JSON_INSTRUCTION}" if system_prompt else JSON_INSTRUCTION

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = await client.messages.create(**kwargs)

        content = ""
        if response.content:
            content = response.content[0].text

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            finish_reason=response.stop_reason or "stop",
        )
