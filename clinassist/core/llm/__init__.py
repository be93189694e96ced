"""
Reasoning Backends

Generative backends tried in declared order by the fallback orchestrator.
Backends explain and assess; the deterministic engine remains the
guaranteed fallback.
"""
from .base import (
    AttemptOutcome,
    BackendResult,
    ProviderAttempt,
    PromptContext,
    ReasoningBackend,
    classify_failure,
)
from .grok_client import GrokClient, GrokConfig
from .gemini_client import GeminiClient, GeminiConfig, GeminiModel

__all__ = [
    "AttemptOutcome",
    "BackendResult",
    "ProviderAttempt",
    "PromptContext",
    "ReasoningBackend",
    "classify_failure",
    "GrokClient",
    "GrokConfig",
    "GeminiClient",
    "GeminiConfig",
    "GeminiModel",
]
