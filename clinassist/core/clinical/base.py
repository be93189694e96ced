"""
Clinical Decision Layer - Base Types

Defines the patient case snapshot consumed by the deterministic pipeline and
the contracts it produces: signals, scoring results and treatment plans.
These are backend-agnostic and shared by the orchestrator and the report
assembler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from clinassist.utils.exceptions import RecommendationContractError

FieldValue = Optional[Union[str, int, float]]


class Severity(str, Enum):
    """Overall clinical severity, ordered from least to most severe."""
    NORMAL   = "normal"
    MILD     = "mild"
    MODERATE = "moderate"
    SEVERE   = "severe"
    CRITICAL = "critical"


class Urgency(str, Enum):
    """
    How quickly the case needs attention.

    ROUTINE   – outpatient follow-up
    URGENT    – same-day or next-day evaluation
    EMERGENCY – immediate intervention
    """
    ROUTINE   = "routine"
    URGENT    = "urgent"
    EMERGENCY = "emergency"


class SignalTier(str, Enum):
    """Tier of a matched keyword or band. OBSERVATION marks a normal reading."""
    EMERGENCY   = "emergency"
    URGENT      = "urgent"
    ROUTINE     = "routine"
    SYMPTOM     = "symptom"
    OBSERVATION = "observation"


_SEVERITY_RANK = {s: i for i, s in enumerate(Severity)}
_URGENCY_RANK = {u: i for i, u in enumerate(Urgency)}


def max_severity(a: Severity, b: Severity) -> Severity:
    return a if _SEVERITY_RANK[a] >= _SEVERITY_RANK[b] else b


def max_urgency(a: Urgency, b: Urgency) -> Urgency:
    return a if _URGENCY_RANK[a] >= _URGENCY_RANK[b] else b


def severity_rank(severity: Severity) -> int:
    return _SEVERITY_RANK[severity]


def present(value: Any) -> bool:
    """
    Explicit presence test for optional case fields.

    None and blank strings are absent. Zero and False are present values,
    not missing ones.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


# ── Patient case ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Vitals:
    """Vital signs as entered. Values may carry units ("120 bpm", "39.5 C")."""
    bp: FieldValue = None       # "S/D" mmHg
    hr: FieldValue = None       # bpm
    temp: FieldValue = None     # °C or °F
    spo2: FieldValue = None     # %

    def to_dict(self) -> Dict[str, Any]:
        return {"bp": self.bp, "hr": self.hr, "temp": self.temp, "spo2": self.spo2}


@dataclass(frozen=True)
class LabResults:
    """Baseline labs. WBC and platelets in K/μL, Hgb in g/dL, creatinine in mg/dL."""
    wbc: FieldValue = None
    hemoglobin: FieldValue = None
    platelets: FieldValue = None
    creatinine: FieldValue = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wbc": self.wbc,
            "hemoglobin": self.hemoglobin,
            "platelets": self.platelets,
            "creatinine": self.creatinine,
        }


@dataclass(frozen=True)
class Medication:
    """An active medication."""
    name: str
    dose: str = ""
    route: str = ""
    frequency: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dose": self.dose,
            "route": self.route,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class SocialHistory:
    smoking: bool = False
    alcohol: bool = False
    tobacco: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"smoking": self.smoking, "alcohol": self.alcohol, "tobacco": self.tobacco}


@dataclass(frozen=True)
class PatientCase:
    """
    Immutable snapshot of one patient encounter.

    Constructed once per analysis request and read-only through the
    pipeline. Every field is optional; missing data degrades to "no signal".
    """
    # ── Demographics ──────────────────────────────────────────────────────
    patient_id: str = ""
    full_name: str = ""
    age: Optional[int] = None
    sex: Optional[str] = None
    height: FieldValue = None
    weight: FieldValue = None          # kg

    # ── Free text ─────────────────────────────────────────────────────────
    complaints: str = ""
    medical_history: str = ""
    family_history: str = ""
    other_findings: str = ""
    treatment_context: str = ""

    # ── Structured data ───────────────────────────────────────────────────
    vitals: Vitals = field(default_factory=Vitals)
    labs: LabResults = field(default_factory=LabResults)
    medications: Tuple[Medication, ...] = ()
    social_history: SocialHistory = field(default_factory=SocialHistory)

    @property
    def medication_names(self) -> List[str]:
        return [m.name for m in self.medications if present(m.name)]

    @property
    def first_name(self) -> str:
        parts = (self.full_name or "").split()
        return parts[0] if parts else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "full_name": self.full_name,
            "age": self.age,
            "sex": self.sex,
            "height": self.height,
            "weight": self.weight,
            "complaints": self.complaints,
            "medical_history": self.medical_history,
            "family_history": self.family_history,
            "other_findings": self.other_findings,
            "treatment_context": self.treatment_context,
            "vitals": self.vitals.to_dict(),
            "labs": self.labs.to_dict(),
            "medications": [m.to_dict() for m in self.medications],
            "social_history": self.social_history.to_dict(),
        }


# ── Signals and scoring ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Signal:
    """
    One tagged observation extracted from a patient case.

    `severity` and `urgency` are the floors this signal imposes on the fold;
    `condition` is the tag it contributes (None for observations).
    """
    system: str                              # e.g. "cardiac", "systemic"
    tier: SignalTier
    label: str                               # matched keyword or band name
    weight: int
    condition: Optional[str] = None
    severity: Severity = Severity.NORMAL
    urgency: Urgency = Urgency.ROUTINE
    reasoning: str = ""

    @property
    def is_significant(self) -> bool:
        """Emergency, urgent and symptom-tier signals corroborate a system."""
        return self.tier in (SignalTier.EMERGENCY, SignalTier.URGENT, SignalTier.SYMPTOM)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system": self.system,
            "tier": self.tier.value,
            "label": self.label,
            "weight": self.weight,
            "condition": self.condition,
            "severity": self.severity.value,
            "urgency": self.urgency.value,
            "reasoning": self.reasoning,
        }


@dataclass
class ScoringResult:
    """Output of the deterministic scoring engine."""
    conditions: List[str] = field(default_factory=list)
    severity: Severity = Severity.NORMAL
    urgency: Urgency = Urgency.ROUTINE
    confidence: int = 0
    reasoning: List[str] = field(default_factory=list)
    # Itemised (label, weight) pairs that make up raw_score
    contributions: List[Tuple[str, int]] = field(default_factory=list)
    raw_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conditions": list(self.conditions),
            "severity": self.severity.value,
            "urgency": self.urgency.value,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "contributions": [
                {"label": label, "weight": weight}
                for label, weight in self.contributions
            ],
            "raw_score": self.raw_score,
        }


# ── Treatment ─────────────────────────────────────────────────────────────────

@dataclass
class TreatmentRecommendation:
    """
    A single medication suggestion.

    Every entry carries a rationale and at least one documented alternative;
    construction fails otherwise.
    """
    drug_name: str
    category: str
    dose: str
    route: str
    frequency: str
    rationale: str
    precautions: str
    alternatives: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not present(self.rationale):
            raise RecommendationContractError(
                f"Recommendation for {self.drug_name} has no rationale",
                drug_name=self.drug_name,
            )
        if not any(present(a) for a in self.alternatives):
            raise RecommendationContractError(
                f"Recommendation for {self.drug_name} lists no alternatives",
                drug_name=self.drug_name,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug_name": self.drug_name,
            "category": self.category,
            "dose": self.dose,
            "route": self.route,
            "frequency": self.frequency,
            "rationale": self.rationale,
            "precautions": self.precautions,
            "alternatives": list(self.alternatives),
        }


@dataclass
class TreatmentPlan:
    """Synthesised plan: free-text advice, medications, monitoring and follow-up."""
    recommendations: List[str] = field(default_factory=list)
    medications: List[TreatmentRecommendation] = field(default_factory=list)
    monitoring: List[str] = field(default_factory=list)
    follow_up: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommendations": list(self.recommendations),
            "medications": [m.to_dict() for m in self.medications],
            "monitoring": list(self.monitoring),
            "follow_up": self.follow_up,
        }
