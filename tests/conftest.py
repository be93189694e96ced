"""
Pytest Configuration and Fixtures

Shared fixtures for clinical decision assistant tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinassist.core.clinical import (
    LabResults,
    Medication,
    PatientCase,
    SocialHistory,
    Vitals,
)
from fakes import ScriptedBackend


@pytest.fixture
def scripted_backend():
    """Factory for ScriptedBackend instances."""
    return ScriptedBackend


@pytest.fixture
def empty_case() -> PatientCase:
    """A case with no text, vitals or labs."""
    return PatientCase()


@pytest.fixture
def crisis_case() -> PatientCase:
    """Hypertensive crisis with chest pain."""
    return PatientCase(
        patient_id="TEST-CRISIS",
        full_name="Jane Doe",
        age=58,
        sex="female",
        complaints="Crushing chest pain for 2 hours",
        vitals=Vitals(bp="185/125", hr="110", temp="37.0 C", spo2="95"),
    )


@pytest.fixture
def routine_case() -> PatientCase:
    """Healthy adult with complete, normal vitals."""
    return PatientCase(
        patient_id="TEST-ROUTINE",
        full_name="Sam Lee",
        age=30,
        sex="male",
        complaints="Annual check-up",
        vitals=Vitals(bp="118/76", hr="72 bpm", temp="98.6 F", spo2="98%"),
        labs=LabResults(wbc="7.2", hemoglobin="14.1", platelets="250", creatinine="0.9"),
    )


@pytest.fixture
def complex_case() -> PatientCase:
    """Stage 2 hypertension, anemia, fatigue and anxiety in a smoker on an SSRI."""
    return PatientCase(
        patient_id="TEST-COMPLEX",
        full_name="Maria Garcia",
        age=34,
        sex="Female",
        weight="92 kg",
        complaints="Feeling tired and anxious, itchy rash on arms, mild back pain",
        medical_history="Type 2 diabetes",
        vitals=Vitals(bp="150/95", hr="88", temp="38.6", spo2="92"),
        labs=LabResults(wbc="12.5", hemoglobin="10.2", platelets="180", creatinine="1.0"),
        medications=(Medication(name="Escitalopram", dose="10mg", route="PO", frequency="daily"),),
        social_history=SocialHistory(smoking=True, alcohol=True),
    )
