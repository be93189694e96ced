"""
API Models Package
"""
from .analysis import (
    VitalsInput,
    LabsInput,
    MedicationInput,
    SocialHistoryInput,
    PatientCaseRequest,
    AttemptResponse,
    AnalysisResponse,
    ScoringResponse,
    BackendStatus,
    BackendsResponse,
    HealthResponse,
)

__all__ = [
    "VitalsInput",
    "LabsInput",
    "MedicationInput",
    "SocialHistoryInput",
    "PatientCaseRequest",
    "AttemptResponse",
    "AnalysisResponse",
    "ScoringResponse",
    "BackendStatus",
    "BackendsResponse",
    "HealthResponse",
]
