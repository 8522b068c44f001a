"""
LLM Module

Provider-agnostic gateway and the inference service built on it.
"""

from capflow.llm.gateway import LLMGateway, LLMResponse, Message, Role
from capflow.llm.inference import LLMInferenceService

__all__ = [
    "LLMGateway",
    "LLMInferenceService",
    "LLMResponse",
    "Message",
    "Role",
]
