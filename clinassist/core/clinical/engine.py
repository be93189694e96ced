"""
Deterministic Scoring Engine

Folds a list of Signals into a ScoringResult (conditions, severity, urgency,
confidence, reasoning trail).

Usage:
    from clinassist.core.clinical import ScoringEngine

    engine = ScoringEngine()
    result = engine.evaluate(case)
    print(result.severity, result.urgency, result.confidence)

Confidence is a heuristic accumulator, not a probability:
    raw  = Σ signal weights
         + 10 if ≥ 2 organ systems carry an emergency/urgent/symptom signal
         + 10 if a cardiac symptom co-occurs with hypertension or tachycardia
         + 10 if bp, hr and spo2 were all recorded
    confidence = clamp(round_half_up(raw × 1.2), 0, 98)
"""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

from clinassist.utils import get_logger

from .base import (
    PatientCase,
    ScoringResult,
    Severity,
    Signal,
    SignalTier,
    Urgency,
    max_severity,
    max_urgency,
)
from .signals import SignalExtractor, has_complete_vitals
from .taxonomy import CARDIAC, SYSTEMIC

logger = get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────────

CONFIDENCE_MULTIPLIER = 1.2
CONFIDENCE_CAP        = 98
MULTI_SYSTEM_BONUS    = 10
CROSS_VALIDATION_BONUS = 10
COMPLETENESS_BONUS    = 10
MULTI_SYSTEM_MIN      = 2

# Band conditions that corroborate a cardiac complaint
_CARDIAC_CORROBORATING = frozenset({
    "hypertensive_crisis",
    "stage2_hypertension",
    "stage1_hypertension",
    "tachycardia",
    "severe_tachycardia",
})


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def final_confidence(raw_score: float) -> int:
    """Apply the fixed multiplier, round half up and clamp to [0, 98]."""
    return max(0, min(CONFIDENCE_CAP, round_half_up(raw_score * CONFIDENCE_MULTIPLIER)))


class ScoringEngine:
    """
    Pure scoring over a signal list.

    Stateless: the same signals always yield the same ScoringResult.
    """

    def __init__(self, extractor: Optional[SignalExtractor] = None):
        self._extractor = extractor or SignalExtractor()

    def evaluate(self, case: PatientCase) -> ScoringResult:
        """Extract signals from a case and score them."""
        signals = self._extractor.extract(case)
        return self.score(signals, complete_vitals=has_complete_vitals(case.vitals))

    def score(
        self,
        signals: Iterable[Signal],
        *,
        complete_vitals: bool = False,
    ) -> ScoringResult:
        """
        Fold signals in encounter order.

        Severity and urgency only move up. Observation signals add a
        reasoning line and their weight but no condition.
        """
        signals = list(signals)
        severity = Severity.NORMAL
        urgency = Urgency.ROUTINE
        conditions: List[str] = []
        reasoning: List[str] = []
        contributions: List[Tuple[str, int]] = []

        for signal in signals:
            severity = max_severity(severity, signal.severity)
            urgency = max_urgency(urgency, signal.urgency)
            if signal.condition and signal.condition not in conditions:
                conditions.append(signal.condition)
            if signal.reasoning:
                reasoning.append(signal.reasoning)
            if signal.weight:
                contributions.append((signal.label, signal.weight))

        significant = self.significant_systems(signals)
        if len(significant) >= MULTI_SYSTEM_MIN:
            contributions.append(("multi-system", MULTI_SYSTEM_BONUS))
            reasoning.append(f"Multiple system involvement: {', '.join(significant)}")

        if self.cardiac_cross_validated(signals):
            contributions.append(("cardiac cross-validation", CROSS_VALIDATION_BONUS))
            reasoning.append("Cardiac symptoms supported by vital sign abnormalities")

        if complete_vitals:
            contributions.append(("data completeness", COMPLETENESS_BONUS))

        raw_score = sum(weight for _, weight in contributions)
        confidence = final_confidence(raw_score)

        if signals:
            logger.debug(
                f"ScoringEngine: {len(signals)} signal(s) → {severity.value}/{urgency.value}, "
                f"raw={raw_score}, confidence={confidence}"
            )

        return ScoringResult(
            conditions=conditions,
            severity=severity,
            urgency=urgency,
            confidence=confidence,
            reasoning=reasoning,
            contributions=contributions,
            raw_score=raw_score,
        )

    @staticmethod
    def significant_systems(signals: Iterable[Signal]) -> List[str]:
        """Organ systems (in first-seen order) with at least one significant signal."""
        systems: List[str] = []
        for signal in signals:
            if signal.system == SYSTEMIC or not signal.is_significant:
                continue
            if signal.system not in systems:
                systems.append(signal.system)
        return systems

    @staticmethod
    def cardiac_cross_validated(signals: Iterable[Signal]) -> bool:
        signals = list(signals)
        has_symptom = any(
            s.system == CARDIAC and s.tier is SignalTier.SYMPTOM for s in signals
        )
        has_band = any(s.condition in _CARDIAC_CORROBORATING for s in signals)
        return has_symptom and has_band
