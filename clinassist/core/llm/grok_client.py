"""
Grok API Client

Primary reasoning backend. Talks to the OpenAI-compatible
`/chat/completions` endpoint on api.x.ai over httpx and maps HTTP failures
onto the backend exception hierarchy.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

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

from .base import BackendResult, PromptContext, ReasoningBackend
from .prompts import (
    QUICK_CHECK_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    build_clinical_prompt,
    build_patient_friendly_message,
    build_quick_check_prompt,
)

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.x.ai/v1"
QUICK_CHECK_MAX_TOKENS = 500

_STATUS_ERRORS = {
    404: ModelNotFoundError,
    429: BackendQuotaError,
    503: BackendOverloadedError,
}


@dataclass
class GrokConfig:
    """Configuration for the Grok client."""
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("GROK_API_KEY") or os.getenv("XAI_API_KEY"))
    base_url: str = DEFAULT_BASE_URL
    models: List[str] = field(default_factory=lambda: ["grok-beta"])
    temperature: float = 0.3
    max_tokens: int = 1000
    request_timeout_seconds: float = 30.0


class GrokClient(ReasoningBackend):
    """
    Client for the Grok chat-completions API.

    An httpx.AsyncClient may be injected (tests pass one built on
    httpx.MockTransport); otherwise a short-lived client is opened per call.
    """

    backend_id = "grok"

    def __init__(
        self,
        config: Optional[GrokConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or GrokConfig()
        self._http_client = http_client
        if not self.is_available:
            logger.warning("No Grok API key provided - Grok backend disabled")

    @property
    def candidates(self) -> List[str]:
        return list(self.config.models)

    @property
    def is_available(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    def _payload(self, case: PatientCase, model: str, context: PromptContext) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_clinical_prompt(case, context)},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            f"{self.config.base_url.rstrip('/')}/chat/completions",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout_seconds,
        )

    async def generate(
        self,
        case: PatientCase,
        model: str,
        context: PromptContext,
    ) -> BackendResult:
        if not self.is_available:
            raise BackendUnavailableError("Grok API key not configured", backend=self.backend_id, model=model)

        analysis = await self._complete(self._payload(case, model, context), model)
        logger.info(f"Grok [{model}]: analysis received ({len(analysis)} chars)")
        return BackendResult(
            success=True,
            analysis=analysis,
            patient_friendly_message=build_patient_friendly_message(case, analysis),
        )

    async def quick_health_check(self, symptoms: str) -> BackendResult:
        """
        Short general advice for a symptom description, outside the case
        cascade. Uses the first candidate model only.
        """
        model = self.config.models[0]
        if not self.is_available:
            raise BackendUnavailableError("Grok API key not configured", backend=self.backend_id, model=model)

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": QUICK_CHECK_SYSTEM_PROMPT},
                {"role": "user", "content": build_quick_check_prompt(symptoms)},
            ],
            "max_tokens": QUICK_CHECK_MAX_TOKENS,
            "temperature": self.config.temperature,
        }
        advice = await self._complete(payload, model)
        logger.info(f"Grok [{model}]: quick check answered ({len(advice)} chars)")
        return BackendResult(success=True, analysis=advice, patient_friendly_message=advice)

    async def _complete(self, payload: Dict[str, Any], model: str) -> str:
        """POST a chat-completions payload and return the message text."""
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, payload)
        except httpx.TimeoutException as e:
            raise BackendTimeoutError(f"Grok request timed out: {e}", backend=self.backend_id, model=model) from e
        except httpx.HTTPError as e:
            raise BackendError(f"Grok transport error: {e}", backend=self.backend_id, model=model) from e

        if response.status_code != 200:
            error_cls = _STATUS_ERRORS.get(response.status_code, BackendError)
            raise error_cls(
                f"Grok API error: {response.status_code} {response.reason_phrase}",
                backend=self.backend_id,
                model=model,
                details={"status_code": response.status_code},
            )

        return self._extract_content(response, model)

    def _extract_content(self, response: httpx.Response, model: str) -> str:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                f"Invalid response format from Grok: {e}", backend=self.backend_id, model=model
            ) from e

        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError(
                "Empty response received from Grok", backend=self.backend_id, model=model
            )
        return content
