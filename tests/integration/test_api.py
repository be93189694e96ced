"""
Integration Tests for the API

Tests the FastAPI endpoints end to end with scripted reasoning backends.
"""
import httpx
import pytest

from clinassist.core.llm import GrokClient, GrokConfig
from clinassist.core.llm.prompts import QUICK_CHECK_FALLBACK
from clinassist.core.orchestration import FallbackOrchestrator
from clinassist.main import app, get_name_extractor, get_orchestrator
from clinassist.utils import BackendQuotaError

from fakes import ok


# =============================================================================
# Fixtures
# =============================================================================

CRISIS_PAYLOAD = {
    "patient_id": "API-1",
    "full_name": "Jane Doe",
    "age": 58,
    "sex": "female",
    "complaints": "Chest pain since this morning",
    "vitals": {"bp": "185/125", "hr": 110, "temp": "37.0 C", "spo2": "95"},
    "medications": [{"name": "Aspirin", "dose": "81mg"}],
}


class KnownDrugExtractor:
    """Recognises a fixed set of drug names in free text."""

    names = ("escitalopram", "metformin")

    def extract_drugs_safely(self, text):
        lowered = (text or "").lower()
        return [n.capitalize() for n in self.names if n in lowered]


@pytest.fixture
def override_orchestrator():
    """Install an orchestrator for the duration of a test."""
    def install(orchestrator: FallbackOrchestrator) -> FallbackOrchestrator:
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return orchestrator

    yield install
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    """Create async test client."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


# =============================================================================
# Health
# =============================================================================

@pytest.mark.asyncio
class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_root(self, async_client):
        """Test root endpoint."""
        response = await async_client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"

    async def test_health(self, async_client):
        """Test health endpoint."""
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# =============================================================================
# Analysis
# =============================================================================

@pytest.mark.asyncio
class TestAnalysisEndpoint:
    """Tests for the full analysis endpoint."""

    async def test_backend_success(self, async_client, override_orchestrator, scripted_backend):
        """A successful backend answer is returned as source ai."""
        primary = scripted_backend("grok", [BackendQuotaError("429")], candidates=["grok-beta"])
        secondary = scripted_backend("gemini", [ok("Backend analysis")], candidates=["gemini-2.5-flash"])
        override_orchestrator(FallbackOrchestrator([primary, secondary]))

        response = await async_client.post("/api/v1/analysis", json=CRISIS_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["source"] == "ai"
        assert data["analysis"] == "Backend analysis"
        assert data["confidence"] == 85
        assert data["backend"] == "gemini"
        assert data["model_used"] == "gemini-2.5-flash"
        assert [a["outcome"] for a in data["attempts"]] == ["quota", "success"]

    async def test_deterministic_fallback(self, async_client, override_orchestrator):
        """With no backends the deterministic engine answers in the same shape."""
        override_orchestrator(FallbackOrchestrator([]))

        response = await async_client.post("/api/v1/analysis", json=CRISIS_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["source"] == "logic"
        assert data["scoring"]["severity"] == "critical"
        assert data["scoring"]["urgency"] == "emergency"
        assert "hypertensive_crisis" in data["scoring"]["conditions"]
        assert data["confidence"] == data["scoring"]["confidence"]
        assert data["patient_friendly_message"].startswith("Hello Jane,")
        assert data["states"][-2:] == ["deterministic_fallback", "done"]

    async def test_invalid_age(self, async_client):
        """Out-of-range ages are rejected by validation."""
        response = await async_client.post("/api/v1/analysis", json={"age": -1})
        assert response.status_code == 422


# =============================================================================
# Scoring
# =============================================================================

@pytest.mark.asyncio
class TestScoringEndpoint:
    """Tests for the deterministic scoring endpoint."""

    async def test_crisis_scoring(self, async_client, override_orchestrator):
        """BP 185/125 scores as a critical emergency with IV therapy."""
        override_orchestrator(FallbackOrchestrator([]))

        response = await async_client.post("/api/v1/scoring", json=CRISIS_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["patient_id"] == "API-1"
        assert data["severity"] == "critical"
        assert data["urgency"] == "emergency"
        assert 0 <= data["confidence"] <= 98
        drugs = [m["drug_name"] for m in data["plan"]["medications"]]
        assert "Nicardipine" in drugs
        assert "Aspirin" in drugs

    async def test_empty_case(self, async_client, override_orchestrator):
        """An empty request still gets a supportive-care plan."""
        override_orchestrator(FallbackOrchestrator([]))

        response = await async_client.post("/api/v1/scoring", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["conditions"] == []
        assert data["severity"] == "normal"
        assert data["confidence"] == 0
        assert [m["drug_name"] for m in data["plan"]["medications"]] == ["Multivitamin"]

    async def test_medications_from_free_text(self, async_client, override_orchestrator):
        """Drug names found in complaints join the medication list."""
        override_orchestrator(FallbackOrchestrator([]))
        app.dependency_overrides[get_name_extractor] = KnownDrugExtractor

        response = await async_client.post(
            "/api/v1/scoring",
            json={"complaints": "Feeling anxious even on escitalopram"},
        )

        assert response.status_code == 200
        recommendations = response.json()["plan"]["recommendations"]
        assert "Continue current SSRI therapy (Escitalopram)" in recommendations


# =============================================================================
# Backends
# =============================================================================

@pytest.mark.asyncio
class TestBackendsEndpoint:
    """Tests for the cascade status endpoint."""

    async def test_lists_backends_in_order(self, async_client, override_orchestrator, scripted_backend):
        """Backends are listed in cascade order with availability."""
        override_orchestrator(FallbackOrchestrator(
            [
                scripted_backend("grok", [], candidates=["grok-beta"], available=False),
                scripted_backend("gemini", [], candidates=["gemini-2.5-flash", "gemini-2.0-flash"]),
            ],
            candidate_timeout=15.0,
        ))

        response = await async_client.get("/api/v1/backends")

        assert response.status_code == 200
        data = response.json()
        assert [b["backend_id"] for b in data["backends"]] == ["grok", "gemini"]
        assert data["backends"][0]["available"] is False
        assert data["backends"][1]["candidates"] == ["gemini-2.5-flash", "gemini-2.0-flash"]
        assert data["candidate_timeout_seconds"] == 15.0


# =============================================================================
# Quick check
# =============================================================================

def quick_check_orchestrator(handler) -> FallbackOrchestrator:
    client = GrokClient(
        GrokConfig(api_key="test-key", base_url="https://grok.test/v1", models=["grok-beta"]),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return FallbackOrchestrator([client])


@pytest.mark.asyncio
class TestQuickCheckEndpoint:
    """Tests for the quick symptom check endpoint."""

    async def test_advice_returned(self, async_client, override_orchestrator):
        """A Grok answer is returned as the advice."""
        override_orchestrator(quick_check_orchestrator(
            lambda request: httpx.Response(
                200, json={"choices": [{"message": {"content": "Rest and hydrate."}}]}
            )
        ))

        response = await async_client.post("/api/v1/quick-check", json={"symptoms": "mild cough"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["advice"] == "Rest and hydrate."
        assert data["patient_friendly_message"] == "Rest and hydrate."
        assert data["model_used"] == "grok-beta"

    async def test_backend_failure(self, async_client, override_orchestrator):
        """A failed call reports the error with the standard advice."""
        override_orchestrator(quick_check_orchestrator(
            lambda request: httpx.Response(429, json={"error": "rate limited"})
        ))

        response = await async_client.post("/api/v1/quick-check", json={"symptoms": "mild cough"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["advice"] is None
        assert data["patient_friendly_message"] == QUICK_CHECK_FALLBACK
        assert "429" in data["error"]

    async def test_no_grok_backend(self, async_client, override_orchestrator, scripted_backend):
        """Without a Grok client the endpoint is unavailable."""
        override_orchestrator(FallbackOrchestrator([scripted_backend("gemini", [])]))

        response = await async_client.post("/api/v1/quick-check", json={"symptoms": "mild cough"})
        assert response.status_code == 503

    async def test_empty_symptoms(self, async_client):
        """Empty symptom text is rejected by validation."""
        response = await async_client.post("/api/v1/quick-check", json={"symptoms": ""})
        assert response.status_code == 422
