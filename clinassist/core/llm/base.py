"""
Reasoning Backend Contract

Every generative backend exposes the same shape so the orchestrator can
treat them interchangeably:

    backend_id    - stable identifier ("grok", "gemini")
    candidates    - model variants to try, in declared order
    is_available  - False when the backend is not configured
    generate()    - one attempt against one model candidate

Also holds the per-attempt bookkeeping (ProviderAttempt) and the failure
classifier shared by the orchestrator and the clients.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import httpx

from clinassist.core.clinical.base import PatientCase
from clinassist.services.collaborators import DrugDetail, DrugInteraction
from clinassist.utils.exceptions import (
    BackendOverloadedError,
    BackendQuotaError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
    ModelNotFoundError,
)


class AttemptOutcome(str, Enum):
    """Classification of one candidate attempt."""
    SUCCESS     = "success"
    TIMEOUT     = "timeout"
    QUOTA       = "quota"
    OVERLOADED  = "overloaded"
    NOT_FOUND   = "not_found"
    MALFORMED   = "malformed"
    UNAVAILABLE = "unavailable"
    OTHER_ERROR = "other_error"

    @property
    def retryable(self) -> bool:
        return self in (
            AttemptOutcome.TIMEOUT,
            AttemptOutcome.QUOTA,
            AttemptOutcome.OVERLOADED,
            AttemptOutcome.NOT_FOUND,
            AttemptOutcome.MALFORMED,
        )


@dataclass
class BackendResult:
    """What a backend returns for one successful call."""
    success: bool
    analysis: Optional[str] = None
    patient_friendly_message: Optional[str] = None
    error: Optional[str] = None
    confidence: Optional[int] = None

    @property
    def well_formed(self) -> bool:
        return (
            self.success
            and isinstance(self.analysis, str)
            and bool(self.analysis.strip())
        )


@dataclass
class ProviderAttempt:
    """Bookkeeping for one backend/model attempt. Used for logging and the API trace."""
    backend_id: str
    model: Optional[str]
    outcome: AttemptOutcome
    latency_ms: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend_id": self.backend_id,
            "model": self.model,
            "outcome": self.outcome.value,
            "latency_ms": round(self.latency_ms, 2),
            "error": self.error,
        }


@dataclass
class PromptContext:
    """Request-scoped context injected into prompts; built once per request."""
    interactions: List[DrugInteraction] = field(default_factory=list)
    drug_details: List[DrugDetail] = field(default_factory=list)


class ReasoningBackend(ABC):
    """Abstract generative backend."""

    backend_id: str = "unknown"

    @property
    @abstractmethod
    def candidates(self) -> List[str]:
        """Model variants in declared priority order."""

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def generate(
        self,
        case: PatientCase,
        model: str,
        context: PromptContext,
    ) -> BackendResult:
        """
        Produce a clinical analysis with one model candidate.

        Raises a BackendError subclass (or any other exception) on failure.
        """


# ── Failure classification ────────────────────────────────────────────────────

_TYPED_OUTCOMES = (
    (BackendTimeoutError, AttemptOutcome.TIMEOUT),
    (BackendQuotaError, AttemptOutcome.QUOTA),
    (BackendOverloadedError, AttemptOutcome.OVERLOADED),
    (ModelNotFoundError, AttemptOutcome.NOT_FOUND),
    (MalformedResponseError, AttemptOutcome.MALFORMED),
    (BackendUnavailableError, AttemptOutcome.UNAVAILABLE),
    (asyncio.TimeoutError, AttemptOutcome.TIMEOUT),
    (TimeoutError, AttemptOutcome.TIMEOUT),
    (httpx.TimeoutException, AttemptOutcome.TIMEOUT),
)


def classify_message(message: Optional[str]) -> AttemptOutcome:
    """Classify a foreign error by its message text."""
    msg = (message or "").lower()
    if "429" in msg or "quota" in msg or "rate limit" in msg or "resource exhausted" in msg:
        return AttemptOutcome.QUOTA
    if "404" in msg or "not found" in msg or "not supported for generatecontent" in msg:
        return AttemptOutcome.NOT_FOUND
    if "503" in msg or "overloaded" in msg:
        return AttemptOutcome.OVERLOADED
    if "timeout" in msg or "timed out" in msg:
        return AttemptOutcome.TIMEOUT
    if "empty response" in msg or "invalid response" in msg:
        return AttemptOutcome.MALFORMED
    return AttemptOutcome.OTHER_ERROR


def classify_failure(failure: Union[BaseException, BackendResult, str, None]) -> AttemptOutcome:
    """
    Map an exception, an unsuccessful result or an error string to an
    AttemptOutcome.
    """
    if isinstance(failure, BaseException):
        for exc_type, outcome in _TYPED_OUTCOMES:
            if isinstance(failure, exc_type):
                return outcome
        return classify_message(str(failure))

    if isinstance(failure, BackendResult):
        if failure.success:
            # success flag set but the payload is empty or not text
            return AttemptOutcome.MALFORMED
        if not failure.error:
            return AttemptOutcome.MALFORMED
        return classify_message(failure.error)

    if failure is None:
        return AttemptOutcome.MALFORMED

    return classify_message(str(failure))
