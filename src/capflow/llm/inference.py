"""
LLM Inference Service

Implements the capture pipeline's inference port on top of the LLM
gateway. Two prompts run side by side: one for intent and task fields,
one for the emotional analysis. Their JSON answers are merged and handed
to the suggestion parser, which owns all validation.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from capflow.capture.suggestions import SuggestionBundle, parse_suggestion
from capflow.config import LLMConfig, PipelineConfig
from capflow.errors import CollaboratorUnavailableError, MalformedSuggestionError
from capflow.llm.gateway import LLMGateway, Message, Role
from capflow.utils.logging import get_logger

logger = get_logger(__name__)

INTENT_PROMPT = """\
You analyze text captured by a task manager for people with ADHD and
extract structured task data. The text may be English or Hebrew.

Return JSON with this structure:
{
  "intent": "create_task|edit_task|brain_dump|schedule_event|search_tasks|general_query",
  "confidence": 0.95,
  "extracted_data": {
    "title": "short task title",
    "description": "additional details if any",
    "due_date": "ISO 8601 (YYYY-MM-DDTHH:mm:ss) if mentioned",
    "priority": "important|simple|later",
    "tags": ["tag1", "tag2"]
  },
  "context_analysis": {
    "urgency_level": "high|medium|low",
    "complexity": "simple|moderate|complex",
    "requires_focus": true
  }
}

If the intent is unclear use "general_query" with a low confidence.
"""

EMOTION_PROMPT = """\
You analyze the emotional state behind text captured by a task manager
for people with ADHD.

Return JSON with this structure:
{
  "emotional_state": {
    "primary_emotion": "overwhelmed|excited|frustrated|calm|anxious|motivated|tired",
    "intensity": 0.8,
    "secondary_emotions": ["stressed"]
  },
  "cognitive_load": {"level": "high|medium|low", "indicators": ["many topics"]},
  "adhd_indicators": {
    "hyperfocus_state": false,
    "executive_dysfunction": false,
    "emotional_dysregulation": false,
    "overwhelm_level": 0.7
  },
  "recommendations": {
    "break_down_tasks": false,
    "suggest_break": false,
    "prioritize_simple_tasks": false,
    "provide_encouragement": false
  }
}

Overwhelm shows as scattered language, many topics or an urgent tone.
Hyperfocus shows as detailed language about a single topic.
"""


class LLMInferenceService:
    """
    Inference port backed by an ``LLMGateway``.

    A failed intent call raises ``CollaboratorUnavailableError``. A failed
    emotion call only costs the emotional context, which falls back to
    neutral.
    """

    name = "inference"

    def __init__(
        self,
        gateway: LLMGateway,
        settings: LLMConfig | None = None,
        strict: bool = False,
    ):
        self.gateway = gateway
        self.settings = settings or LLMConfig()
        self.strict = strict

    @classmethod
    def from_config(cls, llm: LLMConfig, pipeline: PipelineConfig) -> "LLMInferenceService":
        from capflow.llm.providers import build_gateway

        return cls(build_gateway(llm), settings=llm, strict=pipeline.strict_suggestions)

    async def suggest(self, text: str) -> SuggestionBundle:
        intent, emotion = await asyncio.gather(
            self._ask(INTENT_PROMPT, text, self.settings.intent_temperature),
            self._ask(EMOTION_PROMPT, text, self.settings.emotion_temperature),
        )

        if intent.error:
            raise CollaboratorUnavailableError(self.name, intent.error)
        payload = _decode(intent.content)

        if emotion.error:
            logger.warning("emotion_analysis_unavailable", error=emotion.error)
        else:
            try:
                payload["emotional_analysis"] = _decode(emotion.content)
            except MalformedSuggestionError as e:
                logger.warning("emotion_analysis_malformed", error=str(e))

        return parse_suggestion(payload, strict=self.strict)

    async def _ask(self, system_prompt: str, text: str, temperature: float):
        return await self.gateway.generate(
            [Message(role=Role.USER, content=text)],
            system_prompt=system_prompt,
            max_tokens=self.settings.max_tokens,
            temperature=temperature,
            json_mode=True,
        )


def _decode(content: str) -> dict[str, Any]:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedSuggestionError(f"Model did not return JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedSuggestionError(f"Model returned {type(payload).__name__}, expected an object")
    return payload
