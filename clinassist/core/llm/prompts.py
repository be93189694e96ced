"""
Prompt Templates for the Reasoning Backends

Builds the system instruction and the case prompt from a PatientCase plus
the request-scoped PromptContext. Drug interactions come only from the
reference-data lookup; the model is told not to invent new ones.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from clinassist.core.clinical.base import PatientCase, present
from clinassist.core.clinical.narrative import PATIENT_ASSURANCE
from clinassist.services.collaborators import DrugDetail, DrugInteraction

from .base import PromptContext

PATIENT_FRIENDLY_SEPARATOR = "--- Patient-Friendly ---"

NO_INTERACTIONS = "No interaction found in the validated database."

SYSTEM_PROMPT = """You are a compassionate, experienced physician providing clinical analysis for a colleague.

TONE:
- Warm, professional and reassuring
- Clear medical reasoning without unnecessary jargon
- Confident but humble; say when more information is needed

AVOID:
- Robotic or overly formal language
- Alarmist or anxiety-inducing wording
- Drug interactions that are not listed in the case data

You support clinical decisions. You do not replace the treating clinician."""

QUICK_CHECK_SYSTEM_PROMPT = (
    "You are a helpful health assistant. Provide simple, reassuring advice for common "
    "symptoms. Always recommend professional medical consultation for persistent or "
    "severe symptoms."
)

QUICK_CHECK_FALLBACK = "Please consult with a healthcare provider for personalized advice."


def format_interactions(interactions: List[DrugInteraction]) -> str:
    if not interactions:
        return NO_INTERACTIONS
    return "\n".join(
        f"- {i.drug1} + {i.drug2} ({i.severity.upper()}): {i.description}"
        for i in interactions
    )


def format_drug_details(details: List[DrugDetail]) -> str:
    if not details:
        return "No catalogue entries for the listed medications."
    lines = []
    for d in details:
        line = f"- {d.name}"
        if d.category:
            line += f" ({d.category})"
        if d.description:
            line += f": {d.description}"
        if d.common_doses:
            line += f"; common doses: {', '.join(d.common_doses)}"
        if d.contraindications:
            line += f"; contraindications: {', '.join(d.contraindications)}"
        lines.append(line)
    return "\n".join(lines)


def _val(value, default: str = "Not recorded") -> str:
    return str(value).strip() if present(value) else default


def _medication_lines(case: PatientCase) -> str:
    lines = [
        " ".join(p for p in (m.name, m.dose, m.route, m.frequency) if present(p))
        for m in case.medications
        if present(m.name)
    ]
    return "\n".join(f"- {line}" for line in lines) if lines else "None recorded"


def examination_findings(case: PatientCase) -> str:
    """Text after an 'EXAMINATION FINDINGS:' marker in the treatment context."""
    marker = "EXAMINATION FINDINGS:"
    context = case.treatment_context or ""
    if marker in context:
        findings = context.split(marker, 1)[1].strip()
        if findings:
            return findings
    return "No specific examination findings recorded"


def build_clinical_prompt(case: PatientCase, context: PromptContext) -> str:
    """Concise case prompt used by the primary backend."""
    v = case.vitals
    return f"""Patient Information:
- Name: {_val(case.full_name, 'Unknown')}
- Age: {_val(case.age, 'Unknown')}
- Sex: {_val(case.sex, 'Unknown')}
- Chief Complaints: {_val(case.complaints, 'None reported')}

Vital Signs:
- Blood Pressure: {_val(v.bp)}
- Heart Rate: {_val(v.hr)}
- Temperature: {_val(v.temp)}
- SpO2: {_val(v.spo2)}

Current Medications:
{_medication_lines(case)}

DETECTED DRUG INTERACTIONS (STRICT FACTUAL DATA):
{format_interactions(context.interactions)}

REFERENCE DRUG INFORMATION:
{format_drug_details(context.drug_details)}

Medical History: {_val(case.medical_history, 'None')}
Other Findings: {_val(case.other_findings, 'None')}

Please provide:
1. Clinical Reasoning - conservative interpretation of findings
2. Vital Signs Analysis - interpretation in clinical context
3. Assessment - what is likely, unlikely, and cannot be determined
4. Drug Interaction Analysis - explain the interactions listed above (if any). Do not suggest new ones.
5. Confidence Level - Low/Moderate/Requires Further Evaluation with justification
6. Patient-Friendly Message - simple, reassuring explanation

Keep responses concise and evidence-based. Avoid alarmist language."""


def build_comprehensive_prompt(case: PatientCase, context: PromptContext) -> str:
    """Sectioned prompt used by the secondary backend; asks for a patient-friendly part."""
    v = case.vitals
    labs = case.labs
    social = case.social_history
    return f"""Analyze this patient case thoroughly.

PATIENT INFORMATION:
- Name: {_val(case.full_name, 'Unknown')}
- Age: {_val(case.age, 'Unknown')}
- Sex: {_val(case.sex, 'Unknown')}
- Height: {_val(case.height)}
- Weight: {_val(case.weight)}

CHIEF COMPLAINTS:
{_val(case.complaints, 'None reported')}

CLINICAL EXAMINATION FINDINGS:
{examination_findings(case)}

VITAL SIGNS:
- Blood Pressure: {_val(v.bp)}
- Heart Rate: {_val(v.hr)}
- Temperature: {_val(v.temp)}
- Oxygen Saturation: {_val(v.spo2)}

LABORATORY RESULTS:
- WBC: {_val(labs.wbc)}
- Hemoglobin: {_val(labs.hemoglobin)}
- Platelets: {_val(labs.platelets)}
- Creatinine: {_val(labs.creatinine)}

MEDICAL HISTORY:
{_val(case.medical_history, 'None')}

FAMILY HISTORY:
{_val(case.family_history, 'None')}

CURRENT MEDICATIONS:
{_medication_lines(case)}

SOCIAL HISTORY:
- Smoking: {'Yes' if social.smoking else 'No'}
- Alcohol: {'Yes' if social.alcohol else 'No'}
- Tobacco: {'Yes' if social.tobacco else 'No'}

DETECTED DRUG INTERACTIONS (STRICT FACTUAL DATA):
{format_interactions(context.interactions)}

REFERENCE DRUG INFORMATION:
{format_drug_details(context.drug_details)}

Provide these sections:
1. CLINICAL ASSESSMENT - primary impression, severity (Mild/Moderate/Severe/Critical), urgency (Routine/Urgent/Emergency)
2. DIFFERENTIAL DIAGNOSIS - top 3 likely diagnoses with rationale
3. RECOMMENDED INVESTIGATIONS - immediate tests, follow-up investigations, monitoring
4. TREATMENT PLAN - immediate interventions, medications, non-pharmacological measures
5. DRUG RECOMMENDATIONS & SAFETY - dosages, alternatives, and an explanation of the detected interactions only
6. MONITORING & FOLLOW-UP - vital signs, warning signs, timeline
7. PATIENT EDUCATION - key information and lifestyle changes
8. PATIENT-FRIENDLY SUMMARY - start this section with the line "{PATIENT_FRIENDLY_SEPARATOR}", explain the condition simply, list safety measures and when to seek help, and end with: "{PATIENT_ASSURANCE}"
"""


def split_patient_friendly(text: str) -> Tuple[str, Optional[str]]:
    """Split a response at the patient-friendly separator."""
    if PATIENT_FRIENDLY_SEPARATOR not in text:
        return text.strip(), None
    analysis, friendly = text.split(PATIENT_FRIENDLY_SEPARATOR, 1)
    friendly = friendly.strip()
    return analysis.strip(), friendly or None


def build_patient_friendly_message(case: PatientCase, analysis: str) -> str:
    """Plain-language message derived from what the analysis talks about."""
    name = case.first_name or "there"
    lowered = analysis.lower()

    points = []
    if "blood pressure" in lowered:
        points.append("• Your blood pressure reading has been noted and will be monitored appropriately.")
    if "heart rate" in lowered:
        points.append("• Your heart rate has been reviewed as part of this assessment.")
    if "temperature" in lowered:
        points.append("• Your temperature has been reviewed; we will watch for any signs of infection.")
    points.append("• Your symptoms are being taken seriously and appropriate follow-up is recommended.")
    points.append("• Continue to monitor how you feel and report any changes to your healthcare provider.")

    return "\n\n".join([
        f"Hello {name},",
        "Based on your symptoms and examination, here is what we can tell you in simple terms:",
        "\n".join(points),
        "This is general guidance. Your healthcare provider knows your full history and can give "
        "you the most personalised advice.",
        "If you notice any new or worsening symptoms, please contact your healthcare provider.",
    ])


def build_quick_check_prompt(symptoms: str) -> str:
    return f"I'm experiencing: {symptoms.strip()}. What should I know?"
