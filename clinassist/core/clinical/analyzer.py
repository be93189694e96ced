"""
Deterministic Analyzer

The guaranteed-success path: Signal Extractor → Scoring Engine →
Recommendation Synthesizer → Narrative. No I/O.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from clinassist.utils import get_logger

from .base import PatientCase, ScoringResult, TreatmentPlan
from .engine import ScoringEngine
from .narrative import NarrativeBuilder
from .protocols import RecommendationSynthesizer
from .signals import SignalExtractor, has_complete_vitals

logger = get_logger(__name__)


@dataclass
class DeterministicAnalysis:
    """Scoring, plan and rendered narrative for one case."""
    scoring: ScoringResult
    plan: TreatmentPlan
    analysis: str
    patient_friendly_message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scoring": self.scoring.to_dict(),
            "plan": self.plan.to_dict(),
            "analysis": self.analysis,
            "patient_friendly_message": self.patient_friendly_message,
        }


class DeterministicAnalyzer:
    """Runs the rule-based chain end to end."""

    def __init__(
        self,
        extractor: Optional[SignalExtractor] = None,
        engine: Optional[ScoringEngine] = None,
        synthesizer: Optional[RecommendationSynthesizer] = None,
        narrative: Optional[NarrativeBuilder] = None,
    ):
        self.extractor = extractor or SignalExtractor()
        self.engine = engine or ScoringEngine(self.extractor)
        self.synthesizer = synthesizer or RecommendationSynthesizer()
        self.narrative = narrative or NarrativeBuilder()

    def score(self, case: PatientCase) -> ScoringResult:
        signals = self.extractor.extract(case)
        return self.engine.score(signals, complete_vitals=has_complete_vitals(case.vitals))

    def analyze(self, case: PatientCase) -> DeterministicAnalysis:
        scoring = self.score(case)
        plan = self.synthesizer.synthesize(scoring.conditions, scoring.severity, case)
        analysis, message = self.narrative.build(case, scoring, plan)

        logger.info(
            f"DeterministicAnalyzer: {scoring.severity.value}/{scoring.urgency.value} "
            f"confidence={scoring.confidence} conditions={scoring.conditions}"
        )
        return DeterministicAnalysis(
            scoring=scoring,
            plan=plan,
            analysis=analysis,
            patient_friendly_message=message,
        )
