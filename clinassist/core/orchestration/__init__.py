"""
Orchestration Layer

Backend cascade with deterministic fallback, and the uniform report shape.
"""
from .report import AnalysisReport, ReportAssembler, SOURCE_AI, SOURCE_LOGIC
from .orchestrator import (
    CascadeState,
    CascadeTrace,
    FallbackOrchestrator,
    TraceStep,
)

__all__ = [
    "AnalysisReport",
    "ReportAssembler",
    "SOURCE_AI",
    "SOURCE_LOGIC",
    "CascadeState",
    "CascadeTrace",
    "FallbackOrchestrator",
    "TraceStep",
]
