"""
Signal Extractor

Turns a PatientCase into an ordered list of Signals:

    1. Keyword matches against the organ-system taxonomy
       (systems in table order, tiers emergency → urgent → routine → symptom)
    2. Vital-sign bands   (bp, hr, spo2, temp)
    3. Lab-value bands    (wbc, hemoglobin, platelets, creatinine)

The extractor never raises: a missing, blank or unparsable field yields no
signal for that field.

Blood pressure bands follow ACC/AHA 2017:
    crisis    S ≥ 180 or D ≥ 120
    stage 2   S ≥ 140 or D ≥ 90
    stage 1   130 ≤ S < 140 or 80 ≤ D < 90
    elevated  120 ≤ S < 130 and D < 80
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Optional, Tuple

from clinassist.utils import get_logger

from .base import (
    FieldValue,
    LabResults,
    PatientCase,
    Severity,
    Signal,
    SignalTier,
    Urgency,
    Vitals,
    present,
)
from .taxonomy import (
    CARDIAC,
    HEMATOLOGIC,
    KEYWORD_SYSTEMS,
    KEYWORD_TIERS,
    MEDICAL_KEYWORDS,
    RENAL,
    RESPIRATORY,
    SYSTEMIC,
    TIER_FLOORS,
    TIER_WEIGHTS,
)

logger = get_logger(__name__)

# ── Thresholds ────────────────────────────────────────────────────────────────

# Blood pressure (mmHg)
SBP_CRISIS        = 180
DBP_CRISIS        = 120
SBP_STAGE2        = 140
DBP_STAGE2        = 90
SBP_STAGE1        = 130
DBP_STAGE1        = 80
SBP_ELEVATED      = 120

# Heart rate (bpm)
HR_SEVERE_BRADY   = 40
HR_BRADY          = 60
HR_SEVERE_TACHY   = 150
HR_TACHY          = 100

# Oxygen saturation (%)
SPO2_SEVERE       = 90
SPO2_MILD         = 94

# Temperature (°F after normalisation)
TEMP_HIGH_FEVER   = 102.2
TEMP_FEVER        = 100.4
TEMP_HYPOTHERMIA  = 95.0
# Unmarked readings at or below this are taken as Celsius
CELSIUS_CEILING   = 45.0

# Labs
WBC_SEVERE        = 20.0   # K/μL
WBC_HIGH          = 11.0
WBC_LOW           = 4.0
HGB_SEVERE        = 8.0    # g/dL
HGB_LOW           = 12.0
PLT_SEVERE        = 50.0   # K/μL
PLT_LOW           = 150.0
CREAT_SEVERE      = 3.0    # mg/dL
CREAT_HIGH        = 1.3

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_BP_RE = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")
_CELSIUS_RE = re.compile(r"celsius|°\s*c|(?<![a-z])c(?![a-z])", re.IGNORECASE)
_FAHRENHEIT_RE = re.compile(r"fahrenheit|°\s*f|(?<![a-z])f(?![a-z])", re.IGNORECASE)


# ── Parsing helpers ───────────────────────────────────────────────────────────

def parse_number(value: FieldValue) -> Optional[float]:
    """First numeric token of a field ("120 bpm" → 120.0), or None."""
    if not present(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.search(str(value))
    return float(match.group()) if match else None


def parse_blood_pressure(value: FieldValue) -> Optional[Tuple[float, float]]:
    """Parse "S/D" into (systolic, diastolic)."""
    if not present(value) or not isinstance(value, str):
        return None
    match = _BP_RE.search(value)
    if not match:
        return None
    return float(match.group(1)), float(match.group(2))


def parse_temperature_f(value: FieldValue) -> Optional[float]:
    """
    Normalise a temperature reading to °F.

    The unit comes from an embedded marker ("C", "°C", "celsius", "F", "°F",
    "fahrenheit"). Without a marker, readings ≤ 45 are taken as Celsius.
    """
    reading = parse_number(value)
    if reading is None:
        return None

    text = value if isinstance(value, str) else ""
    if _FAHRENHEIT_RE.search(text):
        celsius = False
    elif _CELSIUS_RE.search(text):
        celsius = True
    else:
        celsius = reading <= CELSIUS_CEILING

    return reading * 9 / 5 + 32 if celsius else reading


def has_complete_vitals(vitals: Vitals) -> bool:
    """Blood pressure, heart rate and oxygen saturation all readable."""
    return (
        parse_blood_pressure(vitals.bp) is not None
        and parse_number(vitals.hr) is not None
        and parse_number(vitals.spo2) is not None
    )


def _fmt(value: float) -> str:
    return f"{value:g}"


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern:
    # Whole word or phrase, tolerating a plural suffix ("chest pains")
    return re.compile(r"\b" + re.escape(keyword) + r"(?:e?s)?\b")


def _band(
    system: str,
    tier: SignalTier,
    condition: Optional[str],
    weight: int,
    severity: Severity,
    urgency: Urgency,
    reasoning: str,
    label: Optional[str] = None,
) -> Signal:
    return Signal(
        system=system,
        tier=tier,
        label=label or condition or "normal",
        weight=weight,
        condition=condition,
        severity=severity,
        urgency=urgency,
        reasoning=reasoning,
    )


# ── Extractor ─────────────────────────────────────────────────────────────────

class SignalExtractor:
    """
    Extracts keyword, vital-band and lab-band signals from a PatientCase.

    Stateless; one instance can serve any number of requests.
    """

    def extract(self, case: PatientCase) -> List[Signal]:
        signals: List[Signal] = []
        signals.extend(self.keyword_signals(case))
        signals.extend(self.vital_signals(case.vitals))
        signals.extend(self.lab_signals(case.labs))
        logger.debug(f"SignalExtractor: {len(signals)} signal(s) for case {case.patient_id or '<anonymous>'}")
        return signals

    # ── Keywords ──────────────────────────────────────────────────────────

    @staticmethod
    def corpus(case: PatientCase) -> str:
        """
        Lower-cased text searched for keywords.

        Family history is left out: a relative's diagnosis is not the
        patient's presentation.
        """
        parts = [case.complaints, case.medical_history, case.other_findings]
        parts.extend(case.medication_names)
        return " ".join(p for p in parts if present(p)).lower()

    def keyword_signals(self, case: PatientCase) -> List[Signal]:
        text = self.corpus(case)
        if not text:
            return []

        signals: List[Signal] = []
        for system in KEYWORD_SYSTEMS:
            tiers = MEDICAL_KEYWORDS[system]
            for tier in KEYWORD_TIERS:
                for keyword in tiers.get(tier, ()):
                    if _keyword_pattern(keyword).search(text):
                        signals.append(self._keyword_signal(system, tier, keyword))
        return signals

    @staticmethod
    def _keyword_signal(system: str, tier: SignalTier, keyword: str) -> Signal:
        severity, urgency = TIER_FLOORS[tier]
        if tier is SignalTier.EMERGENCY:
            reasoning = f"Emergency {system} condition detected: {keyword}"
        elif tier is SignalTier.URGENT:
            reasoning = f"Urgent {system} condition detected: {keyword}"
        elif tier is SignalTier.ROUTINE:
            reasoning = f"{system.capitalize()} condition detected: {keyword}"
        else:
            reasoning = f"{system.capitalize()} symptom: {keyword}"
        return Signal(
            system=system,
            tier=tier,
            label=keyword,
            weight=TIER_WEIGHTS[tier],
            condition=f"{system}_{tier.value}",
            severity=severity,
            urgency=urgency,
            reasoning=reasoning,
        )

    # ── Vitals ────────────────────────────────────────────────────────────

    def vital_signals(self, vitals: Vitals) -> List[Signal]:
        signals: List[Signal] = []
        for band in (
            self._blood_pressure(vitals.bp),
            self._heart_rate(vitals.hr),
            self._oxygen_saturation(vitals.spo2),
            self._temperature(vitals.temp),
        ):
            if band is not None:
                signals.append(band)
        return signals

    @staticmethod
    def _blood_pressure(value: FieldValue) -> Optional[Signal]:
        bp = parse_blood_pressure(value)
        if bp is None:
            return None
        sbp, dbp = bp
        reading = f"{_fmt(sbp)}/{_fmt(dbp)}"

        if sbp >= SBP_CRISIS or dbp >= DBP_CRISIS:
            return _band(
                CARDIAC, SignalTier.EMERGENCY, "hypertensive_crisis", 30,
                Severity.CRITICAL, Urgency.EMERGENCY,
                f"Hypertensive crisis: BP {reading} requires immediate emergency intervention",
            )
        if sbp >= SBP_STAGE2 or dbp >= DBP_STAGE2:
            return _band(
                CARDIAC, SignalTier.URGENT, "stage2_hypertension", 20,
                Severity.MODERATE, Urgency.URGENT,
                f"Stage 2 hypertension: BP {reading}, target is usually <130/80",
            )
        if SBP_STAGE1 <= sbp < SBP_STAGE2 or DBP_STAGE1 <= dbp < DBP_STAGE2:
            return _band(
                CARDIAC, SignalTier.ROUTINE, "stage1_hypertension", 15,
                Severity.MILD, Urgency.ROUTINE,
                f"Stage 1 hypertension: BP {reading}, monitoring and lifestyle changes recommended",
            )
        if SBP_ELEVATED <= sbp < SBP_STAGE1 and dbp < DBP_STAGE1:
            return _band(
                CARDIAC, SignalTier.ROUTINE, "elevated_bp", 10,
                Severity.MILD, Urgency.ROUTINE,
                f"Elevated blood pressure: {reading}, risk of progressing to hypertension",
            )
        return _band(
            CARDIAC, SignalTier.OBSERVATION, None, 5,
            Severity.NORMAL, Urgency.ROUTINE,
            f"Normal blood pressure: {reading}",
            label="normal_bp",
        )

    @staticmethod
    def _heart_rate(value: FieldValue) -> Optional[Signal]:
        hr = parse_number(value)
        if hr is None:
            return None
        reading = f"HR {_fmt(hr)} bpm"

        if hr < HR_SEVERE_BRADY:
            return _band(
                CARDIAC, SignalTier.EMERGENCY, "severe_bradycardia", 25,
                Severity.CRITICAL, Urgency.EMERGENCY,
                f"Critical bradycardia: {reading} is dangerously low",
            )
        if hr < HR_BRADY:
            return _band(
                CARDIAC, SignalTier.ROUTINE, "bradycardia", 10,
                Severity.MILD, Urgency.ROUTINE, f"Bradycardia: {reading}",
            )
        if hr > HR_SEVERE_TACHY:
            return _band(
                CARDIAC, SignalTier.EMERGENCY, "severe_tachycardia", 25,
                Severity.CRITICAL, Urgency.EMERGENCY,
                f"Critical tachycardia: {reading} is dangerously high",
            )
        if hr > HR_TACHY:
            return _band(
                CARDIAC, SignalTier.ROUTINE, "tachycardia", 10,
                Severity.MILD, Urgency.ROUTINE, f"Tachycardia: {reading}",
            )
        return _band(
            CARDIAC, SignalTier.OBSERVATION, None, 0,
            Severity.NORMAL, Urgency.ROUTINE,
            f"Normal heart rate: {reading}",
            label="normal_hr",
        )

    @staticmethod
    def _oxygen_saturation(value: FieldValue) -> Optional[Signal]:
        spo2 = parse_number(value)
        if spo2 is None:
            return None

        if spo2 < SPO2_SEVERE:
            return _band(
                RESPIRATORY, SignalTier.EMERGENCY, "severe_hypoxemia", 30,
                Severity.CRITICAL, Urgency.EMERGENCY,
                f"Severe hypoxemia: SpO2 {_fmt(spo2)}%",
            )
        if spo2 < SPO2_MILD:
            return _band(
                RESPIRATORY, SignalTier.URGENT, "mild_hypoxemia", 15,
                Severity.MODERATE, Urgency.URGENT,
                f"Mild hypoxemia: SpO2 {_fmt(spo2)}%",
            )
        return None

    @staticmethod
    def _temperature(value: FieldValue) -> Optional[Signal]:
        temp_f = parse_temperature_f(value)
        if temp_f is None:
            return None
        temp_c = (temp_f - 32) * 5 / 9
        reading = f"{temp_f:.1f}°F ({temp_c:.1f}°C)"

        if temp_f > TEMP_HIGH_FEVER:
            return _band(
                SYSTEMIC, SignalTier.URGENT, "high_fever", 20,
                Severity.MODERATE, Urgency.URGENT,
                f"High fever: {reading}, cooling and clinical assessment required",
            )
        if temp_f > TEMP_FEVER:
            return _band(
                SYSTEMIC, SignalTier.ROUTINE, "fever", 15,
                Severity.MILD, Urgency.ROUTINE,
                f"Fever: {reading}, monitor for source of infection",
            )
        if temp_f < TEMP_HYPOTHERMIA:
            return _band(
                SYSTEMIC, SignalTier.EMERGENCY, "hypothermia", 25,
                Severity.CRITICAL, Urgency.EMERGENCY,
                f"Hypothermia: {reading}, active rewarming required",
            )
        return _band(
            SYSTEMIC, SignalTier.OBSERVATION, None, 0,
            Severity.NORMAL, Urgency.ROUTINE,
            f"Normal temperature: {temp_f:.1f}°F",
            label="normal_temp",
        )

    # ── Labs ──────────────────────────────────────────────────────────────

    def lab_signals(self, labs: LabResults) -> List[Signal]:
        signals: List[Signal] = []
        for band in (
            self._wbc(labs.wbc),
            self._hemoglobin(labs.hemoglobin),
            self._platelets(labs.platelets),
            self._creatinine(labs.creatinine),
        ):
            if band is not None:
                signals.append(band)
        return signals

    @staticmethod
    def _wbc(value: FieldValue) -> Optional[Signal]:
        wbc = parse_number(value)
        if wbc is None:
            return None
        reading = f"WBC {_fmt(wbc)} K/μL"

        if wbc > WBC_SEVERE:
            return _band(
                HEMATOLOGIC, SignalTier.URGENT, "severe_leukocytosis", 20,
                Severity.SEVERE, Urgency.URGENT, f"Severe leukocytosis: {reading}",
            )
        if wbc > WBC_HIGH:
            return _band(
                HEMATOLOGIC, SignalTier.ROUTINE, "leukocytosis", 10,
                Severity.MILD, Urgency.ROUTINE, f"Leukocytosis: {reading}",
            )
        if wbc < WBC_LOW:
            return _band(
                HEMATOLOGIC, SignalTier.ROUTINE, "leukopenia", 10,
                Severity.MILD, Urgency.ROUTINE, f"Leukopenia: {reading}",
            )
        return None

    @staticmethod
    def _hemoglobin(value: FieldValue) -> Optional[Signal]:
        hgb = parse_number(value)
        if hgb is None:
            return None
        reading = f"Hgb {_fmt(hgb)} g/dL"

        if hgb < HGB_SEVERE:
            return _band(
                HEMATOLOGIC, SignalTier.URGENT, "severe_anemia", 20,
                Severity.SEVERE, Urgency.URGENT, f"Severe anemia: {reading}",
            )
        if hgb < HGB_LOW:
            return _band(
                HEMATOLOGIC, SignalTier.ROUTINE, "anemia", 10,
                Severity.MILD, Urgency.ROUTINE, f"Anemia: {reading}",
            )
        return None

    @staticmethod
    def _platelets(value: FieldValue) -> Optional[Signal]:
        plt = parse_number(value)
        if plt is None:
            return None
        reading = f"Platelets {_fmt(plt)} K/μL"

        if plt < PLT_SEVERE:
            return _band(
                HEMATOLOGIC, SignalTier.URGENT, "severe_thrombocytopenia", 20,
                Severity.SEVERE, Urgency.URGENT, f"Severe thrombocytopenia: {reading}",
            )
        if plt < PLT_LOW:
            return _band(
                HEMATOLOGIC, SignalTier.ROUTINE, "thrombocytopenia", 10,
                Severity.MILD, Urgency.ROUTINE, f"Thrombocytopenia: {reading}",
            )
        return None

    @staticmethod
    def _creatinine(value: FieldValue) -> Optional[Signal]:
        creat = parse_number(value)
        if creat is None:
            return None
        reading = f"Creatinine {_fmt(creat)} mg/dL"

        if creat > CREAT_SEVERE:
            return _band(
                RENAL, SignalTier.URGENT, "severe_renal_impairment", 20,
                Severity.SEVERE, Urgency.URGENT, f"Severe renal impairment: {reading}",
            )
        if creat > CREAT_HIGH:
            return _band(
                RENAL, SignalTier.ROUTINE, "renal_impairment", 10,
                Severity.MILD, Urgency.ROUTINE, f"Renal impairment: {reading}",
            )
        return None
