"""
Tests for the LLM gateway and inference service.
"""

import json

import pytest

from capflow.capture.artifacts import ComplexityLevel, SuggestedPriority
from capflow.config import LLMConfig
from capflow.errors import CollaboratorUnavailableError, MalformedSuggestionError
from capflow.llm.gateway import LLMGateway, LLMResponse, Message, Role
from capflow.llm.inference import EMOTION_PROMPT, INTENT_PROMPT, LLMInferenceService
from capflow.llm.providers import ClaudeProvider, OpenAIProvider, build_gateway, get_provider


class ScriptedProvider:
    """Provider that answers by system prompt, or fails a set number of times."""

    def __init__(self, name="scripted", answers=None, failures=0, error_response=False):
        self.name = name
        self.answers = answers or {}
        self.failures = failures
        self.error_response = error_response
        self.requests = []

    async def generate(self, messages, system_prompt=None, max_tokens=500, temperature=0.3, json_mode=False):
        self.requests.append(
            {"system_prompt": system_prompt, "temperature": temperature, "json_mode": json_mode}
        )
        if self.failures:
            self.failures -= 1
            raise ConnectionError("boom")
        if self.error_response:
            return LLMResponse(content="", model="m", provider=self.name, error="rate limited")
        return LLMResponse(content=self.answers.get(system_prompt, "{}"), model="m", provider=self.name)


INTENT_ANSWER = json.dumps(
    {
        "intent": "create_task",
        "confidence": 0.88,
        "extracted_data": {"title": "Pay the electricity bill", "priority": "important"},
        "context_analysis": {"urgency_level": "medium", "complexity": "simple", "requires_focus": False},
    }
)

EMOTION_ANSWER = json.dumps(
    {
        "emotional_state": {"primary_emotion": "overwhelmed", "intensity": 0.9},
        "recommendations": {"suggest_break": True},
    }
)


def gateway_for(provider, **kwargs):
    return LLMGateway(primary_provider=provider, retry_delay=0, **kwargs)


class TestLLMGateway:
    """Tests for retry and fallback."""

    @pytest.mark.asyncio
    async def test_success(self):
        provider = ScriptedProvider(answers={"sys": "hi"})
        response = await gateway_for(provider).generate([Message(Role.USER, "x")], system_prompt="sys")
        assert response.content == "hi"
        assert response.error is None

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        provider = ScriptedProvider(answers={None: "ok"}, failures=2)
        response = await gateway_for(provider, max_retries=2).generate([Message(Role.USER, "x")])
        assert response.content == "ok"
        assert len(provider.requests) == 3

    @pytest.mark.asyncio
    async def test_falls_back(self):
        primary = ScriptedProvider(name="primary", failures=10)
        fallback = ScriptedProvider(name="fallback", answers={None: "from fallback"})
        gateway = gateway_for(primary, fallback_provider=fallback, max_retries=1)

        response = await gateway.generate([Message(Role.USER, "x")])

        assert response.provider == "fallback"
        assert len(primary.requests) == 2
        assert gateway.providers == ["primary", "fallback"]

    @pytest.mark.asyncio
    async def test_error_response_is_retried(self):
        provider = ScriptedProvider(error_response=True)
        response = await gateway_for(provider, max_retries=1).generate([Message(Role.USER, "x")])
        assert response.error == "rate limited"
        assert len(provider.requests) == 2

    @pytest.mark.asyncio
    async def test_all_fail(self):
        provider = ScriptedProvider(failures=10)
        response = await gateway_for(provider, max_retries=0).generate([Message(Role.USER, "x")])
        assert response.error == "boom"
        assert response.content == ""


class TestLLMInferenceService:
    """Tests for the inference port adapter."""

    @pytest.mark.asyncio
    async def test_suggest(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: INTENT_ANSWER, EMOTION_PROMPT: EMOTION_ANSWER})
        service = LLMInferenceService(gateway_for(provider))

        bundle = await service.suggest("pay electricity by friday")

        assert bundle.title == "Pay the electricity bill"
        assert bundle.priority == SuggestedPriority.IMPORTANT
        assert bundle.complexity == ComplexityLevel.SIMPLE
        assert bundle.confidence == 0.88
        assert bundle.emotional_context.is_overwhelmed
        assert bundle.emotional_context.recommendations.suggest_break

    @pytest.mark.asyncio
    async def test_prompts_use_json_mode_and_temperatures(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: INTENT_ANSWER, EMOTION_PROMPT: EMOTION_ANSWER})
        service = LLMInferenceService(gateway_for(provider), settings=LLMConfig())

        await service.suggest("text")

        by_prompt = {r["system_prompt"]: r for r in provider.requests}
        assert by_prompt[INTENT_PROMPT]["temperature"] == 0.3
        assert by_prompt[EMOTION_PROMPT]["temperature"] == 0.2
        assert all(r["json_mode"] for r in provider.requests)

    @pytest.mark.asyncio
    async def test_emotion_garbage_is_neutral(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: INTENT_ANSWER, EMOTION_PROMPT: "not json"})
        bundle = await LLMInferenceService(gateway_for(provider)).suggest("text")
        assert not bundle.emotional_context.is_overwhelmed
        assert bundle.title == "Pay the electricity bill"

    @pytest.mark.asyncio
    async def test_intent_garbage_raises(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: "Sure! Here's the JSON:"})
        with pytest.raises(MalformedSuggestionError):
            await LLMInferenceService(gateway_for(provider)).suggest("text")

    @pytest.mark.asyncio
    async def test_intent_not_an_object(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: "[1, 2]"})
        with pytest.raises(MalformedSuggestionError):
            await LLMInferenceService(gateway_for(provider)).suggest("text")

    @pytest.mark.asyncio
    async def test_provider_down(self):
        provider = ScriptedProvider(failures=100)
        service = LLMInferenceService(gateway_for(provider, max_retries=0))
        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await service.suggest("text")
        assert exc_info.value.collaborator == "inference"

    @pytest.mark.asyncio
    async def test_strict_mode(self):
        provider = ScriptedProvider(answers={INTENT_PROMPT: json.dumps({"intent": "create_task"})})
        with pytest.raises(MalformedSuggestionError):
            await LLMInferenceService(gateway_for(provider), strict=True).suggest("text")


class TestProviders:
    """Tests for provider lookup and gateway construction."""

    def test_get_provider(self):
        assert isinstance(get_provider("Anthropic", api_key="k"), ClaudeProvider)
        provider = get_provider("gpt", api_key="k", model="gpt-4o")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_provider("llama", api_key="k")

    def test_build_gateway(self):
        config = LLMConfig(
            primary_provider="openai",
            fallback_provider="claude",
            openai_api_key="sk-1",
            anthropic_api_key="sk-2",
            max_retries=4,
        )
        gateway = build_gateway(config)
        assert gateway.providers == ["openai", "claude"]
        assert gateway.primary.model == config.openai_model
        assert gateway.fallback.model == config.claude_model
        assert gateway.max_retries == 4

    def test_build_gateway_needs_key(self):
        with pytest.raises(ValueError):
            build_gateway(LLMConfig(primary_provider="claude"))

    def test_split_system(self):
        system, chat = ClaudeProvider.split_system(
            [Message(Role.SYSTEM, "be brief"), Message(Role.USER, "hi")], None
        )
        assert system == "be brief"
        assert chat == [{"role": "user", "content": "hi"}]
