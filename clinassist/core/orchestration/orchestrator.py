"""
Fallback Orchestrator

Cascades a patient case through the reasoning backends in declared order,
one model candidate at a time, and falls back to the deterministic
analyzer when every candidate fails.

States (recorded per request in a CascadeTrace):

    NOT_STARTED
      → TRYING_PRIMARY_BACKEND
      → TRYING_SECONDARY_BACKEND        (each later backend)
      → TRYING_MODEL_CANDIDATE          (once per candidate)
      → DETERMINISTIC_FALLBACK
      → DONE

Each candidate call races a timeout via asyncio.wait. On timeout the call
is abandoned, not cancelled; a late result is discarded. Every failure is
classified and the cursor advances. Nothing survives a request: the next
one starts again from the first backend.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from clinassist.core.clinical.analyzer import DeterministicAnalyzer
from clinassist.core.clinical.base import PatientCase
from clinassist.core.llm.base import (
    AttemptOutcome,
    BackendResult,
    PromptContext,
    ProviderAttempt,
    ReasoningBackend,
    classify_failure,
)
from clinassist.services.collaborators import NullReferenceDataService, ReferenceDataService
from clinassist.utils import get_logger

from .report import AnalysisReport, ReportAssembler

logger = get_logger(__name__)

DEFAULT_CANDIDATE_TIMEOUT = 15.0


class CascadeState(str, Enum):
    NOT_STARTED              = "not_started"
    TRYING_PRIMARY_BACKEND   = "trying_primary_backend"
    TRYING_SECONDARY_BACKEND = "trying_secondary_backend"
    TRYING_MODEL_CANDIDATE   = "trying_model_candidate"
    DETERMINISTIC_FALLBACK   = "deterministic_fallback"
    DONE                     = "done"


@dataclass
class TraceStep:
    state: CascadeState
    backend_id: Optional[str] = None
    model: Optional[str] = None

    def label(self) -> str:
        parts = [self.state.value]
        if self.backend_id:
            parts.append(self.backend_id)
        if self.model:
            parts.append(self.model)
        return ":".join(parts)


@dataclass
class CascadeTrace:
    """State transitions and attempts of a single request."""
    steps: List[TraceStep] = field(default_factory=lambda: [TraceStep(CascadeState.NOT_STARTED)])
    attempts: List[ProviderAttempt] = field(default_factory=list)

    @property
    def state(self) -> CascadeState:
        return self.steps[-1].state

    @property
    def failed_attempts(self) -> List[ProviderAttempt]:
        return [a for a in self.attempts if a.outcome is not AttemptOutcome.SUCCESS]

    def transition(
        self,
        state: CascadeState,
        backend_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        self.steps.append(TraceStep(state, backend_id, model))
        logger.debug(f"Cascade → {self.steps[-1].label()}")

    def record(self, attempt: ProviderAttempt) -> None:
        self.attempts.append(attempt)
        if attempt.outcome is AttemptOutcome.SUCCESS:
            logger.info(
                f"Backend {attempt.backend_id} [{attempt.model}] succeeded in {attempt.latency_ms:.0f}ms"
            )
        else:
            level = logging.WARNING if attempt.outcome.retryable else logging.ERROR
            logger.log(
                level,
                f"Backend {attempt.backend_id} [{attempt.model}] failed "
                f"({attempt.outcome.value}): {attempt.error}",
            )

    def labels(self) -> List[str]:
        return [s.label() for s in self.steps]


def _discard_late_result(task: asyncio.Future) -> None:
    """Done-callback for abandoned calls: consume the outcome and drop it."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned backend call finished late with error: {exc}")
    else:
        logger.debug("Abandoned backend call finished late; result discarded")


class FallbackOrchestrator:
    """
    Tries reasoning backends in fixed order, then the deterministic analyzer.

    Holds no per-request state; safe to share across concurrent requests.
    """

    def __init__(
        self,
        backends: Sequence[ReasoningBackend],
        analyzer: Optional[DeterministicAnalyzer] = None,
        assembler: Optional[ReportAssembler] = None,
        reference_data: Optional[ReferenceDataService] = None,
        candidate_timeout: float = DEFAULT_CANDIDATE_TIMEOUT,
    ):
        self.backends = list(backends)
        self.analyzer = analyzer or DeterministicAnalyzer()
        self.assembler = assembler or ReportAssembler()
        self.reference_data = reference_data or NullReferenceDataService()
        self.candidate_timeout = candidate_timeout

    async def analyze(self, case: PatientCase) -> AnalysisReport:
        """Run the full cascade for one case. Never raises for ordinary failures."""
        trace = CascadeTrace()
        try:
            return await self._run(case, trace)
        except Exception as e:
            logger.error(f"Clinical analysis error, rescuing with deterministic engine: {e}", exc_info=True)
            return self._rescue(case, e, trace)

    async def _run(self, case: PatientCase, trace: CascadeTrace) -> AnalysisReport:
        context = self.build_context(case)

        for index, backend in enumerate(self.backends):
            state = (
                CascadeState.TRYING_PRIMARY_BACKEND
                if index == 0
                else CascadeState.TRYING_SECONDARY_BACKEND
            )
            trace.transition(state, backend.backend_id)

            if not backend.is_available:
                trace.record(ProviderAttempt(
                    backend_id=backend.backend_id,
                    model=None,
                    outcome=AttemptOutcome.UNAVAILABLE,
                    error="backend not configured",
                ))
                continue

            for model in backend.candidates:
                trace.transition(CascadeState.TRYING_MODEL_CANDIDATE, backend.backend_id, model)
                result, attempt = await self._attempt(backend, model, case, context)
                trace.record(attempt)
                if result is not None:
                    trace.transition(CascadeState.DONE)
                    return self.assembler.from_backend(
                        result, backend.backend_id, model, trace.attempts, trace.labels()
                    )

        logger.warning(
            f"All reasoning backends exhausted after {len(trace.attempts)} attempt(s); "
            "using deterministic analysis"
        )
        trace.transition(CascadeState.DETERMINISTIC_FALLBACK)
        deterministic = self.analyzer.analyze(case)
        trace.transition(CascadeState.DONE)
        return self.assembler.from_deterministic(deterministic, trace.attempts, trace.labels())

    def build_context(self, case: PatientCase) -> PromptContext:
        """Reference-data lookup, once per request and outside the candidate loop."""
        names = case.medication_names
        interactions = self.reference_data.check_all_interactions(names)
        details = [self.reference_data.get_drug_details(name) for name in names]
        return PromptContext(
            interactions=list(interactions),
            drug_details=[d for d in details if d.found],
        )

    async def _attempt(
        self,
        backend: ReasoningBackend,
        model: str,
        case: PatientCase,
        context: PromptContext,
    ) -> Tuple[Optional[BackendResult], ProviderAttempt]:
        """One candidate call raced against the timeout."""
        start = time.perf_counter()
        task = asyncio.ensure_future(backend.generate(case, model, context))
        done, _ = await asyncio.wait({task}, timeout=self.candidate_timeout)
        latency_ms = (time.perf_counter() - start) * 1000

        def attempt(outcome: AttemptOutcome, error: Optional[str] = None) -> ProviderAttempt:
            return ProviderAttempt(backend.backend_id, model, outcome, latency_ms, error)

        if not done:
            task.add_done_callback(_discard_late_result)
            return None, attempt(
                AttemptOutcome.TIMEOUT,
                f"Request timeout after {self.candidate_timeout:g} seconds",
            )

        if task.cancelled():
            return None, attempt(AttemptOutcome.OTHER_ERROR, "backend call cancelled")

        exc = task.exception()
        if exc is not None:
            return None, attempt(classify_failure(exc), str(exc) or type(exc).__name__)

        result = task.result()
        if not isinstance(result, BackendResult):
            return None, attempt(AttemptOutcome.MALFORMED, "backend returned no result")
        if not result.well_formed:
            return None, attempt(
                classify_failure(result),
                result.error or "empty or non-text analysis",
            )

        return result, attempt(AttemptOutcome.SUCCESS)

    def _rescue(self, case: PatientCase, error: Exception, trace: CascadeTrace) -> AnalysisReport:
        trace.transition(CascadeState.DETERMINISTIC_FALLBACK)
        try:
            deterministic = self.analyzer.analyze(case)
        except Exception as fallback_error:
            logger.error(f"Deterministic rescue failed: {fallback_error}", exc_info=True)
            trace.transition(CascadeState.DONE)
            return self.assembler.failure(fallback_error, trace.attempts, trace.labels())

        trace.transition(CascadeState.DONE)
        return self.assembler.from_rescue(deterministic, error, trace.attempts, trace.labels())
