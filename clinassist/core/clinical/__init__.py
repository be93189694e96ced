"""
Clinical Decision Layer

Deterministic signal extraction, scoring and treatment synthesis.
"""
from .base import (
    Severity,
    Urgency,
    SignalTier,
    Vitals,
    LabResults,
    Medication,
    SocialHistory,
    PatientCase,
    Signal,
    ScoringResult,
    TreatmentRecommendation,
    TreatmentPlan,
    present,
)
from .signals import SignalExtractor
from .engine import ScoringEngine
from .protocols import RecommendationSynthesizer
from .narrative import NarrativeBuilder
from .analyzer import DeterministicAnalyzer, DeterministicAnalysis

__all__ = [
    "Severity",
    "Urgency",
    "SignalTier",
    "Vitals",
    "LabResults",
    "Medication",
    "SocialHistory",
    "PatientCase",
    "Signal",
    "ScoringResult",
    "TreatmentRecommendation",
    "TreatmentPlan",
    "present",
    "SignalExtractor",
    "ScoringEngine",
    "RecommendationSynthesizer",
    "NarrativeBuilder",
    "DeterministicAnalyzer",
    "DeterministicAnalysis",
]
