"""
Clinical Keyword Taxonomy

Curated keyword tiers per organ system used by the signal extractor.

Tiers:
    emergency  - weight 30, severity floor critical, urgency floor emergency
    urgent     - weight 20, severity floor severe,   urgency floor urgent
    routine    - weight 10, severity floor mild
    symptom    - weight 5,  no floor

The symptom tier is an allow-list of system-specific complaints only.
Non-specific complaints (dizziness, fatigue, tiredness, fever on its own)
are deliberately absent from every system so they never attribute a case
to a single organ system.
"""
from __future__ import annotations

from typing import Dict, Tuple

from .base import Severity, SignalTier, Urgency

# ── Systems ───────────────────────────────────────────────────────────────────

CARDIAC          = "cardiac"
RESPIRATORY      = "respiratory"
NEUROLOGICAL     = "neurological"
GASTROINTESTINAL = "gastrointestinal"
ENDOCRINE        = "endocrine"
RENAL            = "renal"
HEMATOLOGIC      = "hematologic"

# Not an organ system: temperature bands land here and never count
# towards multi-system involvement.
SYSTEMIC         = "systemic"

# ── Tier weights and floors ───────────────────────────────────────────────────

TIER_WEIGHTS: Dict[SignalTier, int] = {
    SignalTier.EMERGENCY: 30,
    SignalTier.URGENT:    20,
    SignalTier.ROUTINE:   10,
    SignalTier.SYMPTOM:   5,
}

TIER_FLOORS: Dict[SignalTier, Tuple[Severity, Urgency]] = {
    SignalTier.EMERGENCY: (Severity.CRITICAL, Urgency.EMERGENCY),
    SignalTier.URGENT:    (Severity.SEVERE,   Urgency.URGENT),
    SignalTier.ROUTINE:   (Severity.MILD,     Urgency.ROUTINE),
    SignalTier.SYMPTOM:   (Severity.NORMAL,   Urgency.ROUTINE),
}

# Order in which tiers are matched within a system
KEYWORD_TIERS = (
    SignalTier.EMERGENCY,
    SignalTier.URGENT,
    SignalTier.ROUTINE,
    SignalTier.SYMPTOM,
)

# ── Keyword tables ────────────────────────────────────────────────────────────

MEDICAL_KEYWORDS: Dict[str, Dict[SignalTier, Tuple[str, ...]]] = {
    CARDIAC: {
        SignalTier.EMERGENCY: (
            "chest pain", "heart attack", "myocardial infarction",
            "cardiac arrest", "acute coronary syndrome", "unstable angina",
        ),
        SignalTier.URGENT: (
            "chest pressure", "chest tightness", "heart palpitations",
            "arrhythmia", "atrial fibrillation", "heart failure",
        ),
        SignalTier.ROUTINE: (
            "chest discomfort", "heart murmur", "valve problem",
            "cardiomyopathy", "pericarditis",
        ),
        SignalTier.SYMPTOM: (
            "chest pain", "chest pressure", "chest tightness",
        ),
    },
    RESPIRATORY: {
        SignalTier.EMERGENCY: (
            "severe shortness of breath", "respiratory distress",
            "anaphylaxis", "pulmonary embolism",
        ),
        SignalTier.URGENT: (
            "difficulty breathing", "wheezing", "asthma attack",
            "copd exacerbation", "pneumonia",
        ),
        SignalTier.ROUTINE: (
            "cough", "bronchitis", "allergies", "sinusitis", "asthma", "copd",
        ),
        SignalTier.SYMPTOM: (
            "shortness of breath", "difficulty breathing", "wheezing", "hemoptysis",
        ),
    },
    NEUROLOGICAL: {
        SignalTier.EMERGENCY: (
            "stroke", "seizure", "head trauma", "meningitis", "encephalitis",
            "subarachnoid hemorrhage",
        ),
        SignalTier.URGENT: (
            "severe headache", "confusion", "weakness", "numbness",
            "vision changes", "speech difficulty",
        ),
        SignalTier.ROUTINE: (
            "headache", "memory loss", "tremor", "neuropathy", "migraine",
        ),
        SignalTier.SYMPTOM: (
            "severe headache", "vision changes", "speech difficulty",
            "weakness", "numbness", "confusion",
        ),
    },
    GASTROINTESTINAL: {
        SignalTier.EMERGENCY: (
            "severe abdominal pain", "gastrointestinal bleeding", "perforation",
            "obstruction", "pancreatitis",
        ),
        SignalTier.URGENT: (
            "abdominal pain", "vomiting", "diarrhea", "gastroenteritis",
            "gallstones", "appendicitis",
        ),
        SignalTier.ROUTINE: (
            "abdominal discomfort", "indigestion", "reflux", "ibs", "ulcer",
            "gastritis",
        ),
    },
    ENDOCRINE: {
        SignalTier.EMERGENCY: (
            "diabetic ketoacidosis", "hyperosmolar hyperglycemic state",
            "thyroid storm", "adrenal crisis",
        ),
        SignalTier.URGENT: (
            "hypoglycemia", "hyperglycemia", "thyroid dysfunction",
            "electrolyte imbalance",
        ),
        SignalTier.ROUTINE: (
            "diabetes", "thyroid disease", "obesity", "osteoporosis",
            "adrenal insufficiency",
        ),
    },
    RENAL: {
        SignalTier.EMERGENCY: (
            "acute kidney injury", "renal failure", "nephrotic syndrome",
            "severe electrolyte imbalance",
        ),
        SignalTier.URGENT: (
            "kidney stones", "uti", "pyelonephritis", "glomerulonephritis",
        ),
        SignalTier.ROUTINE: (
            "ckd", "proteinuria", "hematuria", "electrolyte imbalance",
            "hypertension",
        ),
    },
}

# Systems in match order
KEYWORD_SYSTEMS = tuple(MEDICAL_KEYWORDS.keys())
