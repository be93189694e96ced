"""
Gemini API Client

Secondary reasoning backend. Wraps LangChain's ChatGoogleGenerativeAI, one
chat model per candidate, and splits the patient-friendly section out of
the response.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from clinassist.core.clinical.base import PatientCase
from clinassist.utils import get_logger
from clinassist.utils.exceptions import (
    BackendError,
    BackendOverloadedError,
    BackendQuotaError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
    ModelNotFoundError,
)

from .base import AttemptOutcome, BackendResult, PromptContext, ReasoningBackend, classify_failure
from .prompts import SYSTEM_PROMPT, build_comprehensive_prompt, split_patient_friendly

logger = get_logger(__name__)


class GeminiModel(str, Enum):
    """Flash-class candidates, newest stable first."""
    FLASH_2_5 = "gemini-2.5-flash"
    FLASH_2_5_LITE = "gemini-2.5-flash-lite"
    FLASH_2_0 = "gemini-2.0-flash"
    FLASH_1_5_LEGACY = "gemini-1.5-flash"


_OUTCOME_ERRORS = {
    AttemptOutcome.TIMEOUT: BackendTimeoutError,
    AttemptOutcome.QUOTA: BackendQuotaError,
    AttemptOutcome.OVERLOADED: BackendOverloadedError,
    AttemptOutcome.NOT_FOUND: ModelNotFoundError,
    AttemptOutcome.MALFORMED: MalformedResponseError,
}


@dataclass
class GeminiConfig:
    """Configuration for the Gemini client."""
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"))
    models: List[str] = field(default_factory=lambda: [m.value for m in GeminiModel])
    temperature: float = 0.3
    max_output_tokens: int = 2048
    top_p: float = 0.8
    top_k: int = 40
    request_timeout_seconds: int = 30


class GeminiClient(ReasoningBackend):
    """
    Client for Google Gemini via LangChain.

    `llm_factory` builds the chat model for a candidate name; tests inject a
    fake so no network call is made.
    """

    backend_id = "gemini"

    def __init__(
        self,
        config: Optional[GeminiConfig] = None,
        llm_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.config = config or GeminiConfig()
        self._llm_factory = llm_factory or self._build_llm
        self._llms: Dict[str, Any] = {}
        if not self.is_available:
            logger.warning("No Gemini API key provided - Gemini backend disabled")

    @property
    def candidates(self) -> List[str]:
        return list(self.config.models)

    @property
    def is_available(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    def _build_llm(self, model: str) -> ChatGoogleGenerativeAI:
        return ChatGoogleGenerativeAI(
            model=model,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            top_p=self.config.top_p,
            top_k=self.config.top_k,
            timeout=self.config.request_timeout_seconds,
            max_retries=0,
            google_api_key=self.config.api_key,
        )

    def _llm(self, model: str) -> Any:
        if model not in self._llms:
            self._llms[model] = self._llm_factory(model)
            logger.info(f"LangChain Gemini model initialized: {model}")
        return self._llms[model]

    async def generate(
        self,
        case: PatientCase,
        model: str,
        context: PromptContext,
    ) -> BackendResult:
        if not self.is_available:
            raise BackendUnavailableError("Gemini API key not configured", backend=self.backend_id, model=model)

        messages = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=build_comprehensive_prompt(case, context)),
        ]

        try:
            response = await self._llm(model).ainvoke(messages)
        except BackendError:
            raise
        except Exception as e:
            raise self._translate(e, model) from e

        text = response.content if hasattr(response, "content") else response
        if not isinstance(text, str):
            raise MalformedResponseError(
                "Invalid response format from Gemini", backend=self.backend_id, model=model
            )
        if not text.strip():
            raise MalformedResponseError(
                "Empty response received from Gemini", backend=self.backend_id, model=model
            )

        analysis, friendly = split_patient_friendly(text)
        logger.info(f"Gemini [{model}]: analysis received ({len(analysis)} chars)")
        return BackendResult(success=True, analysis=analysis, patient_friendly_message=friendly)

    def _translate(self, exc: Exception, model: str) -> BackendError:
        """Wrap a SDK exception in the matching BackendError subclass."""
        error_cls = _OUTCOME_ERRORS.get(classify_failure(exc), BackendError)
        return error_cls(f"Gemini call failed: {exc}", backend=self.backend_id, model=model)
