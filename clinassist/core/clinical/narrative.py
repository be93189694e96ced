"""
Deterministic Narrative

Renders a ScoringResult and TreatmentPlan into the same two strings a
reasoning backend returns: a clinician-facing analysis and a
patient-friendly message. Keeps downstream consumers backend-agnostic.
"""
from __future__ import annotations

from typing import List, Tuple

from .base import PatientCase, ScoringResult, Severity, TreatmentPlan, present

MAX_REASONING_LINES = 5
MAX_CONDITION_LINES = 4

_IMPRESSIONS = {
    Severity.CRITICAL: "Findings need immediate attention.",
    Severity.SEVERE:   "Findings need urgent attention.",
    Severity.MODERATE: "Findings should be addressed soon to keep things on track.",
    Severity.MILD:     "Findings are mild; routine care with monitoring is appropriate.",
    Severity.NORMAL:   "No acute concerns identified; focus on routine care.",
}

PATIENT_ASSURANCE = (
    "We are with you. Don't worry, your health is our priority and we will "
    "monitor your progress closely."
)

DISCLAIMER = (
    "This analysis is generated from available data for decision support only "
    "and should be reviewed by the treating clinician."
)


def confidence_label(confidence: int) -> str:
    if confidence >= 80:
        return "High"
    if confidence >= 60:
        return "Moderate"
    return "Limited"


def _or_dash(value) -> str:
    return str(value).strip() if present(value) else "--"


def _humanise(condition: str) -> str:
    return condition.replace("_", " ")


class NarrativeBuilder:
    """Formats deterministic output as analysis text plus a patient message."""

    def build(
        self,
        case: PatientCase,
        scoring: ScoringResult,
        plan: TreatmentPlan,
    ) -> Tuple[str, str]:
        return self.analysis(case, scoring, plan), self.patient_message(case, scoring, plan)

    def analysis(self, case: PatientCase, scoring: ScoringResult, plan: TreatmentPlan) -> str:
        v = case.vitals
        lines: List[str] = [
            "CLINICAL SUMMARY",
            f"• Presenting complaints: {case.complaints.strip() if present(case.complaints) else 'None reported'}",
            (
                f"• Vitals: BP {_or_dash(v.bp)}, HR {_or_dash(v.hr)}, "
                f"Temp {_or_dash(v.temp)}, SpO2 {_or_dash(v.spo2)}"
            ),
            "",
            "FINDINGS",
        ]
        if scoring.reasoning:
            lines.extend(f"• {r}" for r in scoring.reasoning[:MAX_REASONING_LINES])
        else:
            lines.append("• No abnormal findings detected in the available data")

        lines.extend(["", "ASSESSMENT"])
        if scoring.conditions:
            considered = ", ".join(_humanise(c) for c in scoring.conditions[:MAX_CONDITION_LINES])
            lines.append(f"• Considering: {considered}")
        lines.extend([
            f"• Severity: {scoring.severity.value}",
            f"• Urgency: {scoring.urgency.value}",
            f"• Confidence: {confidence_label(scoring.confidence)} ({scoring.confidence}%)",
            f"• Impression: {_IMPRESSIONS[scoring.severity]}",
            "",
            "PLAN",
        ])
        lines.extend(f"• {r}" for r in plan.recommendations)

        if plan.medications:
            lines.extend(["", "SUGGESTED MEDICATIONS"])
            for med in plan.medications:
                lines.append(f"• {med.drug_name} ({med.category}) - {med.dose} {med.route} {med.frequency}")
                lines.append(f"  Rationale: {med.rationale}")
                lines.append(f"  Precautions: {med.precautions}")
                lines.append(f"  Alternatives: {'; '.join(med.alternatives)}")

        lines.extend(["", "MONITORING"])
        lines.extend(f"• {m}" for m in plan.monitoring)
        lines.extend(["", f"FOLLOW-UP: {plan.follow_up}", "", DISCLAIMER])
        return "\n".join(lines)

    def patient_message(self, case: PatientCase, scoring: ScoringResult, plan: TreatmentPlan) -> str:
        greeting = f"Hello {case.first_name}," if case.first_name else "Hello,"
        if scoring.severity is Severity.NORMAL:
            status = "Your readings look steady, which is reassuring."
        elif scoring.severity in (Severity.SEVERE, Severity.CRITICAL):
            status = "Some of your results need prompt attention from your care team."
        else:
            status = "We noticed a few things worth keeping an eye on."

        return "\n\n".join([
            greeting,
            f"We have reviewed your symptoms, vital signs and test results. {status}",
            "Your care team has a plan that may include lifestyle changes and medication. "
            f"Next step: {plan.follow_up}",
            "If you notice new or worsening symptoms, contact your healthcare provider.",
            PATIENT_ASSURANCE,
        ])
