"""
Report Assembler

Every AnalysisReport is built here, whichever path produced it, so callers
never branch on source. Confidence bands are fixed by path:

    backend success         source="ai",    backend-supplied or 85
    deterministic fallback  source="logic", scoring engine confidence
    post-exception rescue   source="logic", 50, error set
    hard failure            success=False,  0
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from clinassist.core.clinical.analyzer import DeterministicAnalysis
from clinassist.core.clinical.base import ScoringResult, TreatmentPlan
from clinassist.core.llm.base import BackendResult, ProviderAttempt

SOURCE_AI = "ai"
SOURCE_LOGIC = "logic"

DEFAULT_AI_CONFIDENCE = 85
DEFAULT_RESCUE_CONFIDENCE = 50


def _clamp_percent(value: int) -> int:
    return max(0, min(100, int(value)))


@dataclass
class AnalysisReport:
    """Externally visible result of one analysis request."""
    success: bool
    analysis: str
    confidence: int
    source: str
    patient_friendly_message: Optional[str] = None
    error: Optional[str] = None
    backend: Optional[str] = None
    model_used: Optional[str] = None
    scoring: Optional[ScoringResult] = None
    plan: Optional[TreatmentPlan] = None
    attempts: List[ProviderAttempt] = field(default_factory=list)
    states: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "analysis": self.analysis,
            "patient_friendly_message": self.patient_friendly_message,
            "confidence": self.confidence,
            "source": self.source,
            "error": self.error,
            "backend": self.backend,
            "model_used": self.model_used,
            "scoring": self.scoring.to_dict() if self.scoring else None,
            "plan": self.plan.to_dict() if self.plan else None,
            "attempts": [a.to_dict() for a in self.attempts],
            "states": list(self.states),
        }


class ReportAssembler:
    """Builds AnalysisReports with source-specific confidence bands."""

    def __init__(
        self,
        ai_default_confidence: int = DEFAULT_AI_CONFIDENCE,
        rescue_confidence: int = DEFAULT_RESCUE_CONFIDENCE,
    ):
        self.ai_default_confidence = ai_default_confidence
        self.rescue_confidence = rescue_confidence

    def from_backend(
        self,
        result: BackendResult,
        backend_id: str,
        model: str,
        attempts: Optional[List[ProviderAttempt]] = None,
        states: Optional[List[str]] = None,
    ) -> AnalysisReport:
        confidence = (
            result.confidence
            if result.confidence is not None
            else self.ai_default_confidence
        )
        return AnalysisReport(
            success=True,
            analysis=result.analysis or "",
            patient_friendly_message=result.patient_friendly_message,
            confidence=_clamp_percent(confidence),
            source=SOURCE_AI,
            backend=backend_id,
            model_used=model,
            attempts=list(attempts or []),
            states=list(states or []),
        )

    def from_deterministic(
        self,
        deterministic: DeterministicAnalysis,
        attempts: Optional[List[ProviderAttempt]] = None,
        states: Optional[List[str]] = None,
    ) -> AnalysisReport:
        return AnalysisReport(
            success=True,
            analysis=deterministic.analysis,
            patient_friendly_message=deterministic.patient_friendly_message,
            confidence=_clamp_percent(deterministic.scoring.confidence),
            source=SOURCE_LOGIC,
            scoring=deterministic.scoring,
            plan=deterministic.plan,
            attempts=list(attempts or []),
            states=list(states or []),
        )

    def from_rescue(
        self,
        deterministic: DeterministicAnalysis,
        error: BaseException,
        attempts: Optional[List[ProviderAttempt]] = None,
        states: Optional[List[str]] = None,
    ) -> AnalysisReport:
        report = self.from_deterministic(deterministic, attempts, states)
        report.confidence = _clamp_percent(self.rescue_confidence)
        report.error = str(error) or type(error).__name__
        return report

    def failure(
        self,
        error: BaseException,
        attempts: Optional[List[ProviderAttempt]] = None,
        states: Optional[List[str]] = None,
    ) -> AnalysisReport:
        return AnalysisReport(
            success=False,
            analysis="",
            confidence=0,
            source=SOURCE_LOGIC,
            error=f"Complete analysis failure: {error}",
            attempts=list(attempts or []),
            states=list(states or []),
        )
