"""
Recommendation Synthesizer - Treatment Protocol Blocks

Each protocol block is a plain function that inspects the condition tags,
the overall severity and the patient, and returns a ProtocolBlock or None.
Blocks are evaluated independently and their outputs concatenated, so a
case can match several at once (e.g. stage 2 hypertension + anemia).

Block ordering (highest acuity first):
    1.  Cardiac emergency
    2.  Respiratory emergency      - respiratory emergency keyword or SpO2 < 90
    3.  Hypertensive crisis
    4.  Stage 2 hypertension
    5.  Stage 1 hypertension       - medication only with risk factors
    6.  Respiratory support        - mild hypoxemia
    7.  Infection / fever
    8.  Pain
    9.  Neurological
    10. Anemia
    11. Fatigue / weakness
    12. Allergic
    13. Anxiety                    - SSRI-aware

Follow-up comes from the first matched block that sets one. When no block
contributes a medication, a generic supportive-care block is added so the
plan always carries at least one medication suggestion.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from clinassist.utils import get_logger

from .base import (
    PatientCase,
    Severity,
    TreatmentPlan,
    TreatmentRecommendation,
    present,
    severity_rank,
)
from .signals import parse_blood_pressure, parse_number

logger = get_logger(__name__)

# ── Thresholds ────────────────────────────────────────────────────────────────

WEIGHT_LOSS_KG            = 85     # weight-loss advice above this
STAGE1_RISK_AGE           = 40     # stage 1 medication considered above this age
LOW_SYSTOLIC_FLUIDS       = 110    # fluid / salt advice below this systolic
ANEMIA_COUNSEL_MAX_AGE    = 50     # female menstrual-loss counselling below this
PRENATAL_MIN_AGE          = 18
PRENATAL_MAX_AGE          = 45

SSRI_NAMES = ("escitalopram", "citalopram", "sertraline", "fluoxetine", "paroxetine", "ssri")

DEFAULT_FOLLOW_UP  = "Routine follow-up in 3-6 months or sooner if symptoms worsen"
SEVERE_FOLLOW_UP   = "Clinical reassessment within 24 hours"


# ── Context ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProtocolContext:
    """Everything a protocol block may inspect."""
    conditions: Tuple[str, ...]
    severity: Severity
    patient: PatientCase

    @property
    def complaints(self) -> str:
        return (self.patient.complaints or "").lower()

    def has(self, *conditions: str) -> bool:
        return any(c in self.conditions for c in conditions)

    def has_prefix(self, prefix: str) -> bool:
        return any(c.startswith(prefix) for c in self.conditions)

    def complains_of(self, *terms: str) -> bool:
        text = self.complaints
        return any(t in text for t in terms)

    @property
    def is_female(self) -> bool:
        return present(self.patient.sex) and self.patient.sex.strip().lower() in ("female", "f")

    @property
    def age(self) -> Optional[int]:
        return self.patient.age

    @property
    def heavy(self) -> bool:
        weight = parse_number(self.patient.weight)
        return weight is not None and weight > WEIGHT_LOSS_KG

    @property
    def smoker(self) -> bool:
        return self.patient.social_history.smoking

    @property
    def drinks_alcohol(self) -> bool:
        return self.patient.social_history.alcohol

    @property
    def history(self) -> str:
        return (self.patient.medical_history or "").lower()


@dataclass
class ProtocolBlock:
    """Output of one matched protocol."""
    name: str
    recommendations: List[str] = field(default_factory=list)
    medications: List[TreatmentRecommendation] = field(default_factory=list)
    monitoring: List[str] = field(default_factory=list)
    follow_up: Optional[str] = None


def _lifestyle_gates(ctx: ProtocolContext, alcohol_advice: str) -> List[str]:
    advice = []
    if ctx.heavy:
        advice.append("Weight loss if BMI >25")
    if ctx.drinks_alcohol:
        advice.append(alcohol_advice)
    if ctx.smoker:
        advice.append("Smoking cessation strongly advised")
    return advice


# ── Block 1: Cardiac emergency ────────────────────────────────────────────────

def block_cardiac_emergency(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    """Suspected acute coronary syndrome."""
    if not ctx.has("cardiac_emergency"):
        return None

    return ProtocolBlock(
        name="cardiac_emergency",
        recommendations=[
            "IMMEDIATE CARDIAC EVALUATION REQUIRED",
            "Activate cardiac catheterization lab if STEMI suspected",
            "Administer aspirin 325mg chewable if no contraindications",
            "Obtain 12-lead ECG immediately",
            "Draw cardiac enzymes (troponin, CK-MB)",
            "Establish IV access and cardiac monitoring",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Aspirin",
                category="Antiplatelet",
                dose="325mg",
                route="PO",
                frequency="Once",
                rationale="Immediate antiplatelet therapy for suspected ACS",
                precautions="Contraindicated in active bleeding, aspirin allergy, or recent GI bleed",
                alternatives=["Clopidogrel 75mg", "Ticagrelor 180mg loading dose"],
            ),
            TreatmentRecommendation(
                drug_name="Nitroglycerin",
                category="Vasodilator",
                dose="0.4mg",
                route="SL",
                frequency="Every 5 minutes x3 doses",
                rationale="Relieves ischemic chest pain through coronary vasodilation",
                precautions="Avoid in hypotension (SBP <90), right ventricular infarct, or recent PDE5 inhibitor use",
                alternatives=["Morphine sulfate 2-4mg IV", "Beta-blocker if no contraindications"],
            ),
        ],
        monitoring=[
            "Continuous cardiac monitoring",
            "Serial ECGs every 15-30 minutes",
            "Cardiac enzymes every 3-6 hours",
            "Blood pressure every 5 minutes initially",
            "Pain assessment every 15 minutes",
        ],
        follow_up=(
            "Urgent cardiology consultation within 30 minutes. "
            "Consider ICU admission for hemodynamic monitoring."
        ),
    )


# ── Block 2: Respiratory emergency ────────────────────────────────────────────

def block_respiratory_emergency(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.has("respiratory_emergency", "severe_hypoxemia"):
        return None

    return ProtocolBlock(
        name="respiratory_emergency",
        recommendations=[
            "IMMEDIATE RESPIRATORY SUPPORT REQUIRED",
            "Assess airway, breathing, circulation (ABCs)",
            "Provide supplemental oxygen to maintain SpO2 ≥94%",
            "Consider mechanical ventilation if respiratory failure",
            "Obtain chest X-ray and arterial blood gas",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Albuterol",
                category="Bronchodilator",
                dose="2.5mg",
                route="Nebulized",
                frequency="Every 20 minutes x3 doses",
                rationale="Rapid bronchodilation for acute bronchospasm",
                precautions="Monitor for tachycardia and tremor. Use with caution in cardiac disease",
                alternatives=["Levalbuterol 1.25mg nebulized", "Ipratropium bromide 0.5mg nebulized"],
            ),
        ],
        monitoring=[
            "Continuous pulse oximetry",
            "Respiratory rate and effort every 15 minutes",
            "Peak flow measurements if able",
            "Blood pressure and heart rate monitoring",
        ],
        follow_up=(
            "Urgent pulmonology consultation if no improvement. "
            "Consider ICU admission for severe respiratory distress."
        ),
    )


# ── Block 3: Hypertensive crisis ──────────────────────────────────────────────

def block_hypertensive_crisis(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.has("hypertensive_crisis"):
        return None

    return ProtocolBlock(
        name="hypertensive_crisis",
        recommendations=[
            "HYPERTENSIVE CRISIS - EMERGENCY TREATMENT",
            "Admit to ICU for continuous BP monitoring",
            "IV antihypertensive therapy (nicardipine, labetalol, or clevidipine)",
            "Target BP reduction: 25% in first hour, then 160/100-110 over next 2-6 hours",
            "Assess for end-organ damage (cardiac, renal, neurological)",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Nicardipine",
                category="Calcium Channel Blocker",
                dose="5mg/hr",
                route="IV infusion",
                frequency="Continuous titration",
                rationale="Rapid, controllable BP reduction with minimal reflex tachycardia",
                precautions="Monitor for reflex tachycardia, headache, and hypotension. Avoid in severe aortic stenosis",
                alternatives=[
                    "Labetalol 20mg IV bolus then 2-8mg/min infusion",
                    "Clevidipine 1-2mg/hr infusion",
                ],
            ),
        ],
        monitoring=[
            "Arterial line for continuous BP monitoring",
            "Cardiac monitoring for arrhythmias",
            "Neurological checks every hour",
            "Renal function and urine output monitoring",
        ],
        follow_up="ICU admission for 24-48 hours. Transition to oral antihypertensives when stable.",
    )


# ── Block 4: Stage 2 hypertension ─────────────────────────────────────────────

def block_stage2_hypertension(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    """Combination therapy plus lifestyle gating."""
    if not ctx.has("stage2_hypertension"):
        return None

    recommendations = [
        "Stage 2 Hypertension - Initiate combination therapy",
        "Lifestyle modifications: DASH diet, sodium restriction <2g/day",
        "Exercise 150 minutes/week moderate intensity",
    ]
    recommendations.extend(_lifestyle_gates(
        ctx, "Limit alcohol to ≤1 drink/day (women) or ≤2 drinks/day (men)"
    ))

    return ProtocolBlock(
        name="stage2_hypertension",
        recommendations=recommendations,
        medications=[
            TreatmentRecommendation(
                drug_name="Lisinopril",
                category="ACE Inhibitor",
                dose="10mg",
                route="PO",
                frequency="Once daily",
                rationale="First-line antihypertensive with renal and cardiac protective effects (primary choice)",
                precautions="Monitor for cough, hyperkalemia, and renal function. Avoid in pregnancy",
                alternatives=["Losartan 50mg daily", "Telmisartan 40mg daily"],
            ),
            TreatmentRecommendation(
                drug_name="Amlodipine",
                category="Calcium Channel Blocker",
                dose="5mg",
                route="PO",
                frequency="Once daily",
                rationale="Effective BP lowering via vasodilation (secondary choice for combination therapy)",
                precautions="Monitor for peripheral edema. Use with caution in heart failure",
                alternatives=["Nifedipine XL 30mg daily", "Felodipine 5mg daily"],
            ),
            TreatmentRecommendation(
                drug_name="Chlorthalidone",
                category="Thiazide Diuretic",
                dose="12.5mg",
                route="PO",
                frequency="Daily",
                rationale="Potent diuretic for long-term BP control (adjunctive choice)",
                precautions="Monitor for hypokalemia and hyperuricemia",
                alternatives=["Hydrochlorothiazide 25mg daily"],
            ),
        ],
        monitoring=[
            "Blood pressure monitoring weekly until at target",
            "Renal function and electrolytes in 2-4 weeks",
            "Check for medication side effects at each visit",
        ],
        follow_up="Follow-up in 2 weeks to assess BP response and medication tolerance.",
    )


# ── Block 5: Stage 1 hypertension ─────────────────────────────────────────────

def _stage1_risk_factors(ctx: ProtocolContext) -> bool:
    return (
        (ctx.age is not None and ctx.age > STAGE1_RISK_AGE)
        or ctx.smoker
        or "diabetes" in ctx.history
        or "heart" in ctx.history
    )


def block_stage1_hypertension(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    """Lifestyle first; ACE inhibitor only with cardiovascular risk factors."""
    if not ctx.has("stage1_hypertension"):
        return None

    recommendations = [
        "Lifestyle modifications for blood pressure control",
        "DASH diet with sodium restriction <2g/day",
        "Regular aerobic exercise 150 minutes/week",
    ]
    recommendations.extend(_lifestyle_gates(ctx, "Limit alcohol consumption"))
    recommendations.append("Stress reduction techniques")

    medications = []
    if _stage1_risk_factors(ctx):
        medications.append(TreatmentRecommendation(
            drug_name="Lisinopril",
            category="ACE Inhibitor",
            dose="5-10mg",
            route="PO",
            frequency="Once daily",
            rationale=(
                "First-line antihypertensive for Stage 1 hypertension with cardiovascular "
                "risk factors. Provides renal and cardiac protection"
            ),
            precautions=(
                "Monitor for dry cough, hyperkalemia, and renal function. Contraindicated in "
                "pregnancy and bilateral renal artery stenosis. Check K+ and creatinine in 2-4 weeks"
            ),
            alternatives=[
                "Losartan 25-50mg daily (ARB, no cough)",
                "Amlodipine 2.5-5mg daily (CCB)",
                "Hydrochlorothiazide 12.5mg daily (thiazide diuretic)",
            ],
        ))

    return ProtocolBlock(
        name="stage1_hypertension",
        recommendations=recommendations,
        medications=medications,
        monitoring=[
            "Home blood pressure monitoring twice daily",
            "Renal function and electrolytes in 2-4 weeks if medication started",
            "Lipid panel and fasting glucose",
        ],
        follow_up="Follow-up in 4 weeks to reassess BP and medication tolerance",
    )


# ── Block 6: Respiratory support ──────────────────────────────────────────────

def block_respiratory_support(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.has("mild_hypoxemia"):
        return None

    return ProtocolBlock(
        name="respiratory_support",
        recommendations=[
            "Respiratory evaluation for chronic hypoxemia",
            "Supplemental oxygen if SpO2 <94%",
            "Pulmonary function testing",
            "Chest X-ray to rule out structural abnormalities",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Albuterol Inhaler",
                category="Bronchodilator",
                dose="90mcg (2 puffs)",
                route="Inhaled",
                frequency="Every 4-6 hours as needed",
                rationale="Provides bronchodilation for breathing difficulties and improves oxygen delivery",
                precautions="Monitor for tachycardia, tremor, and palpitations. Use with caution in cardiac disease",
                alternatives=["Levalbuterol inhaler", "Ipratropium bromide inhaler"],
            ),
        ],
        monitoring=[
            "Pulse oximetry monitoring",
            "Respiratory rate and effort assessment",
            "Peak flow measurements if asthma suspected",
        ],
        follow_up="Pulmonology consultation for persistent hypoxemia",
    )


# ── Block 7: Infection / fever ────────────────────────────────────────────────

def _febrile(ctx: ProtocolContext) -> bool:
    return ctx.has("fever", "high_fever")


def block_infection(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not (
        _febrile(ctx)
        or ctx.has("leukocytosis", "severe_leukocytosis")
        or ctx.complains_of("infection")
    ):
        return None

    return ProtocolBlock(
        name="infection",
        recommendations=["Suspected infection profile - Initiate antimicrobial/antipyretic protocol"],
        medications=[
            TreatmentRecommendation(
                drug_name="Amoxicillin-Clavulanate",
                category="Antibiotic (Penicillin)",
                dose="875/125mg",
                route="PO",
                frequency="Twice daily",
                rationale="Broad-spectrum coverage for suspected bacterial infection (primary choice)",
                precautions="Check for penicillin allergy. Take with food to reduce GI upset.",
                alternatives=["Azithromycin 500mg daily", "Cefdinir 300mg BID"],
            ),
            TreatmentRecommendation(
                drug_name="Doxycycline",
                category="Antibiotic (Tetracycline)",
                dose="100mg",
                route="PO",
                frequency="Twice daily",
                rationale="Effective coverage for respiratory and atypical pathogens (secondary choice)",
                precautions="Avoid in pregnancy/children. Photosensitivity risk. Separate from antacids.",
                alternatives=["Levofloxacin 500mg daily"],
            ),
        ],
        monitoring=[
            "Temperature tracking twice daily",
            "Monitor for worsening symptoms or allergic reaction",
            "Complete full course even if feeling better",
        ],
        follow_up="Follow-up in 48-72 hours if no improvement in symptoms.",
    )


# ── Block 8: Pain ─────────────────────────────────────────────────────────────

def block_pain(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not (ctx.complains_of("pain", "ache", "hurt") or _febrile(ctx)):
        return None

    return ProtocolBlock(
        name="pain",
        medications=[
            TreatmentRecommendation(
                drug_name="Acetaminophen",
                category="Analgesic",
                dose="500mg",
                route="PO",
                frequency="Every 6 hours as needed",
                rationale="First-line for mild to moderate pain and fever. Less GI side effects than NSAIDs.",
                precautions="Do not exceed 4000mg/day. Use with caution in liver impairment.",
                alternatives=["Ibuprofen 200-400mg every 6 hours as needed"],
            ),
            TreatmentRecommendation(
                drug_name="Ibuprofen",
                category="NSAID",
                dose="400mg",
                route="PO",
                frequency="Every 6 hours as needed",
                rationale="Effective for mild to moderate pain and inflammation. Inhibits prostaglandin synthesis.",
                precautions=(
                    "Take with food to reduce GI upset. Use with caution in renal impairment, "
                    "heart failure, or history of GI bleed."
                ),
                alternatives=["Naproxen 220-440mg every 12 hours as needed"],
            ),
        ],
    )


# ── Block 9: Neurological ─────────────────────────────────────────────────────

def block_neurological(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.has_prefix("neurological_"):
        return None

    recommendations = [
        "Neurological evaluation recommended",
        "Assess for orthostatic hypotension",
        "Check vitamin B12, folate, and thyroid function",
    ]
    bp = parse_blood_pressure(ctx.patient.vitals.bp)
    if bp is not None and bp[0] < LOW_SYSTOLIC_FLUIDS:
        recommendations.append("Increase fluid and salt intake")
        recommendations.append("Avoid sudden position changes")

    return ProtocolBlock(
        name="neurological",
        recommendations=recommendations,
        monitoring=[
            "Blood pressure monitoring in different positions",
            "Neurological assessment for focal deficits",
        ],
        follow_up="Neurology consultation if symptoms persist or worsen",
    )


# ── Block 10: Anemia ──────────────────────────────────────────────────────────

def block_anemia(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.has("anemia", "severe_anemia"):
        return None

    menstrual = ctx.is_female and ctx.age is not None and ctx.age < ANEMIA_COUNSEL_MAX_AGE
    recommendations = [
        "Evaluate cause of anemia (iron studies, B12, folate)",
        "Assess for occult GI bleeding if iron deficiency",
    ]
    if menstrual:
        recommendations.append(
            "Counseling on iron-rich diet (spinach, red meat, lentils) for menstrual-related losses"
        )
    else:
        recommendations.append("Dietary counseling for iron-rich foods")

    rationale = "Treats iron deficiency anemia. " + (
        "Recommended for reproductive age females with iron stores depletion."
        if menstrual else
        "Replenishes iron stores for hemoglobin synthesis."
    )

    return ProtocolBlock(
        name="anemia",
        recommendations=recommendations,
        medications=[
            TreatmentRecommendation(
                drug_name="Ferrous Sulfate",
                category="Iron Supplement",
                dose="325mg (65mg elemental iron)",
                route="PO",
                frequency="Once daily",
                rationale=rationale,
                precautions=(
                    "Take on empty stomach for best absorption (with vitamin C if tolerated). "
                    "Common side effects: constipation, dark stools, nausea. Separate from calcium, "
                    "antacids, and PPIs by 2 hours. May take 3-6 months to replenish stores"
                ),
                alternatives=[
                    "Ferrous gluconate 325mg daily (better tolerated)",
                    "Polysaccharide iron complex 150mg daily (less GI upset)",
                    "IV iron if severe or intolerant to oral",
                ],
            ),
        ],
        monitoring=[
            "CBC with reticulocyte count in 4 weeks",
            "Iron studies (ferritin, TIBC, transferrin saturation)",
            "Assess for GI side effects",
        ],
        follow_up="Hematology consultation if anemia persists despite treatment",
    )


# ── Block 11: Fatigue / weakness ──────────────────────────────────────────────

def block_fatigue(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.complains_of("weak", "fatigue", "tired"):
        return None

    childbearing = (
        ctx.is_female
        and ctx.age is not None
        and PRENATAL_MIN_AGE <= ctx.age <= PRENATAL_MAX_AGE
    )
    recommendations = [
        "Comprehensive metabolic workup for weakness/fatigue",
        "Check thyroid function (TSH, Free T4)",
        "Vitamin D, B12, and folate levels",
    ]
    if childbearing:
        recommendations.append("Consider prenatal vitamin if pregnancy is possible")

    return ProtocolBlock(
        name="fatigue",
        recommendations=recommendations,
        medications=[
            TreatmentRecommendation(
                drug_name="Prenatal Multivitamin" if childbearing else "Vitamin D3 (Cholecalciferol)",
                category="Vitamin Supplement",
                dose="1 tablet" if childbearing else "2000 IU",
                route="PO",
                frequency="Once daily",
                rationale="Addresses nutritional deficiencies that commonly manifest as weakness and fatigue.",
                precautions=(
                    "Generally well tolerated. Check serum levels before high-dose supplementation. "
                    "Take with food for better absorption"
                ),
                alternatives=["Vitamin B Complex", "Multivitamin with Minerals"],
            ),
            TreatmentRecommendation(
                drug_name="Vitamin B Complex",
                category="Vitamin Supplement",
                dose="1 tablet",
                route="PO",
                frequency="Once daily",
                rationale=(
                    "B vitamins (especially B12, B6, folate) are essential for energy production and "
                    "neurological function. Deficiency causes fatigue and weakness"
                ),
                precautions="Generally safe. May cause bright yellow urine (riboflavin). Take with food to reduce nausea",
                alternatives=["Vitamin B12 1000mcg sublingual daily", "Methylcobalamin 1000mcg daily"],
            ),
        ],
        monitoring=[
            "Thyroid function tests",
            "Vitamin D and B12 levels",
            "Energy level and symptom diary",
        ],
        follow_up="Follow-up in 6-8 weeks to reassess symptoms and lab results",
    )


# ── Block 12: Allergic ────────────────────────────────────────────────────────

def block_allergic(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    if not ctx.complains_of("itch", "rash", "allerg"):
        return None

    return ProtocolBlock(
        name="allergic",
        recommendations=[
            "Identify and avoid potential allergens",
            "Use fragrance-free, hypoallergenic products",
            "Keep skin moisturized",
            "Avoid hot showers and harsh soaps",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Cetirizine (Zyrtec)",
                category="Antihistamine (2nd generation)",
                dose="10mg",
                route="PO",
                frequency="Once daily",
                rationale=(
                    "Non-sedating antihistamine for allergic symptoms and itching. Blocks histamine "
                    "H1 receptors to reduce allergic response"
                ),
                precautions=(
                    "May cause mild drowsiness in some patients. Avoid alcohol. Reduce dose in renal "
                    "impairment (CrCl <30: 5mg daily)"
                ),
                alternatives=[
                    "Loratadine 10mg daily (less sedating)",
                    "Fexofenadine 180mg daily (no sedation)",
                    "Levocetirizine 5mg daily (more potent)",
                ],
            ),
            TreatmentRecommendation(
                drug_name="Hydrocortisone Cream 1%",
                category="Topical Corticosteroid",
                dose="Thin layer",
                route="Topical",
                frequency="Twice daily to affected areas",
                rationale="Reduces inflammation and itching from allergic skin reactions, eczema, or dermatitis",
                precautions=(
                    "Do not use on face or broken skin without medical advice. Limit use to 2 weeks "
                    "unless directed. Do not cover with occlusive dressing"
                ),
                alternatives=[
                    "Triamcinolone 0.1% cream (stronger)",
                    "Calamine lotion (non-steroid option)",
                    "Colloidal oatmeal baths",
                ],
            ),
        ],
        monitoring=[
            "Skin condition assessment",
            "Identify triggers and patterns",
            "Response to antihistamine therapy",
        ],
        follow_up="Dermatology or Allergy consultation if symptoms persist despite treatment",
    )


# ── Block 13: Anxiety ─────────────────────────────────────────────────────────

def _current_ssri(ctx: ProtocolContext) -> Optional[str]:
    for name in ctx.patient.medication_names:
        lowered = name.lower()
        if any(ssri in lowered for ssri in SSRI_NAMES):
            return name
    return None


def block_anxiety(ctx: ProtocolContext) -> Optional[ProtocolBlock]:
    """Non-drug measures; medication review only when already on an SSRI."""
    if not ctx.complains_of("stress", "anxious", "panic"):
        return None

    block = ProtocolBlock(
        name="anxiety",
        recommendations=[
            "Stress management and relaxation techniques",
            "Cognitive behavioral therapy (CBT)",
            "Regular exercise and adequate sleep",
            "Mindfulness and meditation practices",
            "Avoid caffeine and stimulants",
        ],
    )

    ssri = _current_ssri(ctx)
    if ssri is not None:
        block.recommendations.extend([
            f"Continue current SSRI therapy ({ssri})",
            "Assess medication effectiveness and side effects",
            "Consider dose adjustment if symptoms not controlled",
        ])
        block.monitoring.extend([
            "Monitor for SSRI side effects (nausea, insomnia, sexual dysfunction)",
            "Assess mood and anxiety levels",
            "Screen for suicidal ideation",
        ])
        block.follow_up = "Psychiatry follow-up for medication management and therapy"

    return block


# ── Fallback: generic supportive care ─────────────────────────────────────────

def supportive_care_block() -> ProtocolBlock:
    return ProtocolBlock(
        name="supportive_care",
        recommendations=[
            "Supportive care and symptom management",
            "Adequate hydration (8-10 glasses water daily)",
            "Balanced nutrition with fruits and vegetables",
            "Regular sleep schedule (7-9 hours nightly)",
            "Moderate exercise as tolerated",
        ],
        medications=[
            TreatmentRecommendation(
                drug_name="Multivitamin",
                category="Nutritional Supplement",
                dose="1 tablet",
                route="PO",
                frequency="Once daily with food",
                rationale=(
                    "Provides comprehensive nutritional support and fills potential dietary gaps. "
                    "Supports overall health and energy levels"
                ),
                precautions=(
                    "Generally safe. Take with food to improve absorption and reduce nausea. "
                    "Avoid taking with dairy products (may reduce iron absorption)"
                ),
                alternatives=[
                    "Individual vitamin supplements based on deficiencies",
                    "Prenatal vitamin if female of childbearing age",
                ],
            ),
        ],
        monitoring=["General health and symptom monitoring", "Nutritional assessment"],
    )


# ── Registry ──────────────────────────────────────────────────────────────────

ProtocolFn = Callable[[ProtocolContext], Optional[ProtocolBlock]]

PROTOCOL_BLOCKS: List[ProtocolFn] = [
    block_cardiac_emergency,
    block_respiratory_emergency,
    block_hypertensive_crisis,
    block_stage2_hypertension,
    block_stage1_hypertension,
    block_respiratory_support,
    block_infection,
    block_pain,
    block_neurological,
    block_anemia,
    block_fatigue,
    block_allergic,
    block_anxiety,
]


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class RecommendationSynthesizer:
    """
    Builds a TreatmentPlan from condition tags, severity and patient attributes.

    Stateless. Depends only on the shape of the scoring output.
    """

    def __init__(self, blocks: Optional[List[ProtocolFn]] = None):
        self._blocks = list(blocks) if blocks is not None else list(PROTOCOL_BLOCKS)

    def matched_blocks(
        self,
        conditions: Iterable[str],
        severity: Severity,
        patient: PatientCase,
    ) -> List[ProtocolBlock]:
        ctx = ProtocolContext(
            conditions=tuple(conditions),
            severity=severity,
            patient=patient,
        )
        matched = []
        for block_fn in self._blocks:
            block = block_fn(ctx)
            if block is not None:
                matched.append(block)
        return matched

    def synthesize(
        self,
        conditions: Iterable[str],
        severity: Severity,
        patient: Optional[PatientCase] = None,
    ) -> TreatmentPlan:
        """
        Concatenate every matched block into one plan.

        Free-text recommendations and monitoring are deduplicated;
        medications are kept as-is across blocks.
        """
        patient = patient or PatientCase()
        blocks = self.matched_blocks(conditions, severity, patient)

        if not any(b.medications for b in blocks):
            blocks.append(supportive_care_block())

        recommendations: List[str] = []
        medications: List[TreatmentRecommendation] = []
        monitoring: List[str] = []
        follow_up: Optional[str] = None

        for block in blocks:
            recommendations.extend(block.recommendations)
            medications.extend(block.medications)
            monitoring.extend(block.monitoring)
            # Blocks run most urgent first, so the first follow-up wins
            if follow_up is None and block.follow_up:
                follow_up = block.follow_up

        if follow_up is None:
            follow_up = (
                SEVERE_FOLLOW_UP
                if severity_rank(severity) >= severity_rank(Severity.SEVERE)
                else DEFAULT_FOLLOW_UP
            )

        logger.debug(
            "RecommendationSynthesizer: blocks="
            + ", ".join(b.name for b in blocks)
            + f", {len(medications)} medication(s)"
        )

        return TreatmentPlan(
            recommendations=_dedupe(recommendations),
            medications=medications,
            monitoring=_dedupe(monitoring),
            follow_up=follow_up,
        )
