"""
Unit Tests for Report Assembly and the Deterministic Analyzer

Tests confidence bands per source, report serialisation and the
deterministic narrative.
"""
import pytest

from clinassist.core.clinical import DeterministicAnalyzer, PatientCase
from clinassist.core.clinical.narrative import DISCLAIMER, PATIENT_ASSURANCE, confidence_label
from clinassist.core.llm import AttemptOutcome, BackendResult, ProviderAttempt
from clinassist.core.orchestration import ReportAssembler, SOURCE_AI, SOURCE_LOGIC


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def assembler() -> ReportAssembler:
    return ReportAssembler()


@pytest.fixture
def analyzer() -> DeterministicAnalyzer:
    return DeterministicAnalyzer()


# =============================================================================
# Assembler
# =============================================================================

class TestReportAssembler:
    """Tests for source-specific confidence bands."""

    def test_backend_default_confidence(self, assembler):
        """Backend reports default to 85."""
        result = BackendResult(success=True, analysis="ok", patient_friendly_message="hi")
        report = assembler.from_backend(result, "grok", "grok-beta")

        assert report.success is True
        assert report.source == SOURCE_AI
        assert report.confidence == 85
        assert report.backend == "grok"
        assert report.model_used == "grok-beta"
        assert report.scoring is None

    def test_backend_confidence_clamped(self, assembler):
        """Backend-supplied confidence is clamped to 0-100."""
        result = BackendResult(success=True, analysis="ok", confidence=150)
        assert assembler.from_backend(result, "grok", "m").confidence == 100

    def test_configurable_defaults(self):
        """Both fixed bands come from the constructor."""
        assembler = ReportAssembler(ai_default_confidence=75, rescue_confidence=40)
        result = BackendResult(success=True, analysis="ok")
        assert assembler.from_backend(result, "grok", "m").confidence == 75

    def test_deterministic_uses_engine_confidence(self, assembler, analyzer, crisis_case):
        """Fallback reports carry the scoring engine confidence."""
        det = analyzer.analyze(crisis_case)
        report = assembler.from_deterministic(det)

        assert report.source == SOURCE_LOGIC
        assert report.confidence == det.scoring.confidence
        assert report.error is None
        assert report.plan is det.plan

    def test_rescue_band(self, assembler, analyzer, crisis_case):
        """Rescued reports are logic at 50 with the error attached."""
        det = analyzer.analyze(crisis_case)
        report = assembler.from_rescue(det, RuntimeError("lookup failed"))

        assert report.success is True
        assert report.source == SOURCE_LOGIC
        assert report.confidence == 50
        assert report.error == "lookup failed"

    def test_failure(self, assembler):
        """Hard failures are unsuccessful with zero confidence."""
        report = assembler.failure(ValueError("bad"))

        assert report.success is False
        assert report.confidence == 0
        assert report.analysis == ""
        assert report.error == "Complete analysis failure: bad"

    def test_to_dict_shape(self, assembler):
        """Serialised reports carry attempts and states."""
        attempt = ProviderAttempt("grok", "grok-beta", AttemptOutcome.QUOTA, 12.3456, "429")
        result = BackendResult(success=True, analysis="ok")
        data = assembler.from_backend(result, "gemini", "m", [attempt], ["not_started", "done"]).to_dict()

        assert data["source"] == "ai"
        assert data["attempts"] == [{
            "backend_id": "grok",
            "model": "grok-beta",
            "outcome": "quota",
            "latency_ms": 12.35,
            "error": "429",
        }]
        assert data["states"] == ["not_started", "done"]
        assert data["scoring"] is None


# =============================================================================
# Deterministic analyzer and narrative
# =============================================================================

class TestDeterministicAnalyzer:
    """Tests for the rule-based chain end to end."""

    def test_crisis_analysis(self, analyzer, crisis_case):
        """A hypertensive crisis renders an emergency narrative."""
        det = analyzer.analyze(crisis_case)

        assert det.scoring.severity.value == "critical"
        assert det.scoring.urgency.value == "emergency"
        assert "CLINICAL SUMMARY" in det.analysis
        assert "• Severity: critical" in det.analysis
        assert "Nicardipine" in det.analysis
        assert det.analysis.endswith(DISCLAIMER)
        assert det.patient_friendly_message.startswith("Hello Jane,")
        assert det.patient_friendly_message.endswith(PATIENT_ASSURANCE)

    def test_empty_case(self, analyzer, empty_case):
        """An empty case still produces a complete narrative and plan."""
        det = analyzer.analyze(empty_case)

        assert det.scoring.conditions == []
        assert "No abnormal findings detected in the available data" in det.analysis
        assert det.plan.medications
        assert det.patient_friendly_message.startswith("Hello,")

    def test_complex_case(self, analyzer, complex_case):
        """Several blocks contribute to a multi-problem case."""
        det = analyzer.analyze(complex_case)
        names = [m.drug_name for m in det.plan.medications]

        assert "stage2_hypertension" in det.scoring.conditions
        assert "anemia" in det.scoring.conditions
        assert "Lisinopril" in names
        assert "Ferrous Sulfate" in names
        assert "Prenatal Multivitamin" in names
        assert "Continue current SSRI therapy (Escitalopram)" in det.plan.recommendations

    def test_to_dict(self, analyzer, routine_case):
        """Serialisation includes scoring and plan."""
        data = analyzer.analyze(routine_case).to_dict()
        assert set(data) == {"scoring", "plan", "analysis", "patient_friendly_message"}
        assert data["scoring"]["severity"] == "normal"

    @pytest.mark.parametrize("confidence,label", [(98, "High"), (80, "High"), (79, "Moderate"), (59, "Limited")])
    def test_confidence_label(self, confidence, label):
        """Confidence percentages map to wording."""
        assert confidence_label(confidence) == label
