"""
Clinical Analysis API Models
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union

from clinassist.core.clinical.base import (
    LabResults,
    Medication,
    PatientCase,
    SocialHistory,
    Vitals,
)

Reading = Optional[Union[str, float]]


class VitalsInput(BaseModel):
    """Vital signs; strings may carry units ("39.5 C", "120 bpm")."""
    bp: Reading = Field(default=None, description="Blood pressure as 'systolic/diastolic'")
    hr: Reading = None
    temp: Reading = Field(default=None, description="Temperature in °C or °F")
    spo2: Reading = None


class LabsInput(BaseModel):
    """Baseline laboratory values."""
    wbc: Reading = None
    hemoglobin: Reading = None
    platelets: Reading = None
    creatinine: Reading = None


class MedicationInput(BaseModel):
    name: str
    dose: str = ""
    route: str = ""
    frequency: str = ""


class SocialHistoryInput(BaseModel):
    smoking: bool = False
    alcohol: bool = False
    tobacco: bool = False


class PatientCaseRequest(BaseModel):
    """Request body for analysis and scoring."""
    patient_id: str = Field(default="ANONYMOUS")
    full_name: str = ""
    age: Optional[int] = Field(default=None, ge=0, le=150)
    sex: Optional[str] = None
    height: Reading = None
    weight: Reading = Field(default=None, description="Weight in kg")
    complaints: str = ""
    medical_history: str = ""
    family_history: str = ""
    other_findings: str = ""
    treatment_context: str = ""
    vitals: VitalsInput = Field(default_factory=VitalsInput)
    labs: LabsInput = Field(default_factory=LabsInput)
    medications: List[MedicationInput] = Field(default_factory=list)
    social_history: SocialHistoryInput = Field(default_factory=SocialHistoryInput)

    def to_case(self, extra_medication_names: Optional[List[str]] = None) -> PatientCase:
        """Build the immutable case, appending any names not already listed."""
        medications = [Medication(**m.model_dump()) for m in self.medications]
        known = {m.name.lower() for m in medications}
        for name in extra_medication_names or []:
            if name and name.lower() not in known:
                medications.append(Medication(name=name))
                known.add(name.lower())

        return PatientCase(
            patient_id=self.patient_id,
            full_name=self.full_name,
            age=self.age,
            sex=self.sex,
            height=self.height,
            weight=self.weight,
            complaints=self.complaints,
            medical_history=self.medical_history,
            family_history=self.family_history,
            other_findings=self.other_findings,
            treatment_context=self.treatment_context,
            vitals=Vitals(**self.vitals.model_dump()),
            labs=LabResults(**self.labs.model_dump()),
            medications=tuple(medications),
            social_history=SocialHistory(**self.social_history.model_dump()),
        )


class AttemptResponse(BaseModel):
    backend_id: str
    model: Optional[str] = None
    outcome: str
    latency_ms: float
    error: Optional[str] = None


class AnalysisResponse(BaseModel):
    """Uniform analysis result, regardless of which path produced it."""
    success: bool
    analysis: str
    patient_friendly_message: Optional[str] = None
    confidence: int = Field(..., ge=0, le=100)
    source: str = Field(..., description="'ai' or 'logic'")
    error: Optional[str] = None
    backend: Optional[str] = None
    model_used: Optional[str] = None
    scoring: Optional[Dict[str, Any]] = None
    plan: Optional[Dict[str, Any]] = None
    attempts: List[AttemptResponse] = []
    states: List[str] = []


class ScoringResponse(BaseModel):
    """Deterministic scoring and treatment plan only."""
    patient_id: str
    conditions: List[str]
    severity: str
    urgency: str
    confidence: int
    reasoning: List[str]
    contributions: List[Dict[str, Any]]
    plan: Dict[str, Any]


class BackendStatus(BaseModel):
    backend_id: str
    available: bool
    candidates: List[str]


class BackendsResponse(BaseModel):
    """Declared cascade order."""
    backends: List[BackendStatus]
    candidate_timeout_seconds: float


class QuickCheckRequest(BaseModel):
    """Free-text symptom description for a quick health check."""
    symptoms: str = Field(..., min_length=1, description="Symptoms in the patient's own words")


class QuickCheckResponse(BaseModel):
    success: bool
    advice: Optional[str] = None
    patient_friendly_message: str
    model_used: Optional[str] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health status response."""
    status: str
    version: str
    timestamp: str
