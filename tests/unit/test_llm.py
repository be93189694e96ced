"""
Unit Tests for Reasoning Backends

Tests failure classification, prompt building and the Grok and Gemini
clients against mocked transports.
"""
import asyncio
import json
from typing import Any, List

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from clinassist.core.clinical import Medication, PatientCase, Vitals
from clinassist.core.llm import (
    AttemptOutcome,
    BackendResult,
    GeminiClient,
    GeminiConfig,
    GeminiModel,
    GrokClient,
    GrokConfig,
    PromptContext,
    classify_failure,
)
from clinassist.core.llm.prompts import (
    NO_INTERACTIONS,
    QUICK_CHECK_SYSTEM_PROMPT,
    PATIENT_FRIENDLY_SEPARATOR,
    build_clinical_prompt,
    build_comprehensive_prompt,
    build_patient_friendly_message,
    examination_findings,
    format_interactions,
    split_patient_friendly,
)
from clinassist.services import DrugDetail, DrugInteraction
from clinassist.utils import (
    BackendError,
    BackendOverloadedError,
    BackendQuotaError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
    ModelNotFoundError,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def case() -> PatientCase:
    return PatientCase(
        patient_id="P-1",
        full_name="Jane Doe",
        age=52,
        sex="female",
        complaints="Headache and blurred vision",
        vitals=Vitals(bp="165/100", hr="88", temp="37.1 C", spo2="97"),
        medications=(Medication(name="Warfarin", dose="5mg"), Medication(name="Aspirin")),
    )


@pytest.fixture
def context() -> PromptContext:
    return PromptContext(interactions=[
        DrugInteraction("Warfarin", "Aspirin", "major", "Increased bleeding risk"),
    ])


def grok_client(handler, api_key: str = "test-key") -> GrokClient:
    transport = httpx.MockTransport(handler)
    return GrokClient(
        GrokConfig(api_key=api_key, base_url="https://grok.test/v1", models=["grok-beta"]),
        http_client=httpx.AsyncClient(transport=transport),
    )


def completion(content: Any) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeChatModel:
    """Stands in for ChatGoogleGenerativeAI."""

    def __init__(self, reply: Any = None, error: Exception = None):
        self.reply = reply
        self.error = error
        self.received: List[Any] = []

    async def ainvoke(self, messages):
        self.received.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


def gemini_client(model: FakeChatModel, api_key: str = "test-key") -> GeminiClient:
    built = []

    def factory(name):
        built.append(name)
        return model

    client = GeminiClient(GeminiConfig(api_key=api_key), llm_factory=factory)
    client.built = built
    return client


# =============================================================================
# Classification
# =============================================================================

class TestClassifyFailure:
    """Tests for mapping failures to attempt outcomes."""

    @pytest.mark.parametrize("failure,expected", [
        (BackendTimeoutError("x"), AttemptOutcome.TIMEOUT),
        (BackendQuotaError("x"), AttemptOutcome.QUOTA),
        (BackendOverloadedError("x"), AttemptOutcome.OVERLOADED),
        (ModelNotFoundError("x"), AttemptOutcome.NOT_FOUND),
        (MalformedResponseError("x"), AttemptOutcome.MALFORMED),
        (BackendUnavailableError("x"), AttemptOutcome.UNAVAILABLE),
        (asyncio.TimeoutError(), AttemptOutcome.TIMEOUT),
        (httpx.ConnectTimeout("slow"), AttemptOutcome.TIMEOUT),
        (RuntimeError("[429] Resource exhausted"), AttemptOutcome.QUOTA),
        (RuntimeError("models/gemini-x is not found"), AttemptOutcome.NOT_FOUND),
        (RuntimeError("503 The model is overloaded"), AttemptOutcome.OVERLOADED),
        (RuntimeError("Request timed out"), AttemptOutcome.TIMEOUT),
        (ValueError("boom"), AttemptOutcome.OTHER_ERROR),
        (BackendResult(success=True, analysis=""), AttemptOutcome.MALFORMED),
        (BackendResult(success=False, error="Rate limit reached"), AttemptOutcome.QUOTA),
        ("Empty response received", AttemptOutcome.MALFORMED),
        (None, AttemptOutcome.MALFORMED),
    ])
    def test_classification(self, failure, expected):
        """Typed errors map directly; others by message."""
        assert classify_failure(failure) is expected

    def test_retryable(self):
        """Only unavailable and unknown errors are not retryable."""
        assert AttemptOutcome.QUOTA.retryable
        assert AttemptOutcome.MALFORMED.retryable
        assert not AttemptOutcome.UNAVAILABLE.retryable
        assert not AttemptOutcome.OTHER_ERROR.retryable


# =============================================================================
# Prompts
# =============================================================================

class TestPrompts:
    """Tests for prompt construction."""

    def test_interactions_listed(self, case, context):
        """Interactions come from the context verbatim."""
        prompt = build_clinical_prompt(case, context)

        assert "- Warfarin + Aspirin (MAJOR): Increased bleeding risk" in prompt
        assert "- Blood Pressure: 165/100" in prompt
        assert "- Warfarin 5mg" in prompt

    def test_no_interactions(self, case):
        """An empty context says so explicitly."""
        assert format_interactions([]) == NO_INTERACTIONS
        assert NO_INTERACTIONS in build_clinical_prompt(case, PromptContext())

    def test_comprehensive_prompt_asks_for_separator(self, case, context):
        """The secondary prompt requests the patient-friendly separator."""
        prompt = build_comprehensive_prompt(case, context)
        assert PATIENT_FRIENDLY_SEPARATOR in prompt
        assert "LABORATORY RESULTS" in prompt

    def test_reference_drug_details_listed(self, case):
        """Catalogue entries from the context appear in the prompt."""
        context = PromptContext(drug_details=[
            DrugDetail(
                name="Warfarin",
                category="Anticoagulant",
                common_doses=["2mg", "5mg"],
                contraindications=["active bleeding"],
            ),
        ])
        prompt = build_comprehensive_prompt(case, context)

        assert (
            "- Warfarin (Anticoagulant); common doses: 2mg, 5mg; "
            "contraindications: active bleeding"
        ) in prompt
        assert "No catalogue entries" in build_clinical_prompt(case, PromptContext())

    def test_examination_findings(self):
        """Findings are read after the marker in the treatment context."""
        case = PatientCase(treatment_context="Plan: rest\nEXAMINATION FINDINGS: Pale conjunctiva")
        assert examination_findings(case) == "Pale conjunctiva"
        assert examination_findings(PatientCase()) == "No specific examination findings recorded"

    def test_split_patient_friendly(self):
        """Text after the separator becomes the patient message."""
        text = f"Assessment here\n{PATIENT_FRIENDLY_SEPARATOR}\nYou will be fine."
        assert split_patient_friendly(text) == ("Assessment here", "You will be fine.")
        assert split_patient_friendly("  Only analysis ") == ("Only analysis", None)

    def test_patient_friendly_message(self, case):
        """The fallback message greets by first name and follows the analysis topics."""
        message = build_patient_friendly_message(case, "Blood pressure is elevated.")

        assert message.startswith("Hello Jane,")
        assert "blood pressure reading has been noted" in message
        assert "heart rate has been reviewed" not in message

    def test_patient_friendly_message_without_name(self):
        """Anonymous patients are greeted generically."""
        assert build_patient_friendly_message(PatientCase(), "").startswith("Hello there,")


# =============================================================================
# Grok
# =============================================================================

@pytest.mark.asyncio
class TestGrokClient:
    """Tests for the Grok chat-completions client."""

    async def test_success(self, case, context):
        """A 200 response becomes a successful result."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion("Blood pressure is in stage 2 range."))

        result = await grok_client(handler).generate(case, "grok-beta", context)

        assert result.success is True
        assert result.analysis == "Blood pressure is in stage 2 range."
        assert result.patient_friendly_message.startswith("Hello Jane,")
        assert seen["url"] == "https://grok.test/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == "grok-beta"
        assert seen["body"]["max_tokens"] == 1000
        assert seen["body"]["temperature"] == 0.3
        assert seen["body"]["messages"][0]["role"] == "system"
        assert "Warfarin + Aspirin" in seen["body"]["messages"][1]["content"]

    @pytest.mark.parametrize("status,error_cls", [
        (404, ModelNotFoundError),
        (429, BackendQuotaError),
        (503, BackendOverloadedError),
    ])
    async def test_status_mapping(self, case, context, status, error_cls):
        """Known HTTP failures map to typed errors."""
        client = grok_client(lambda request: httpx.Response(status, json={"error": "x"}))

        with pytest.raises(error_cls) as exc_info:
            await client.generate(case, "grok-beta", context)
        assert exc_info.value.details["status_code"] == status
        assert exc_info.value.backend == "grok"

    async def test_other_status(self, case, context):
        """Unmapped statuses raise the generic backend error."""
        client = grok_client(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(BackendError) as exc_info:
            await client.generate(case, "grok-beta", context)
        assert type(exc_info.value) is BackendError
        assert classify_failure(exc_info.value) is AttemptOutcome.OTHER_ERROR

    @pytest.mark.parametrize("body", [
        completion(""),
        completion(None),
        {"choices": []},
        {"unexpected": True},
    ])
    async def test_malformed_payload(self, case, context, body):
        """Empty or unexpected payloads are malformed."""
        client = grok_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(MalformedResponseError):
            await client.generate(case, "grok-beta", context)

    async def test_non_json_body(self, case, context):
        """A non-JSON body is malformed."""
        client = grok_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(MalformedResponseError):
            await client.generate(case, "grok-beta", context)

    async def test_transport_timeout(self, case, context):
        """httpx timeouts become backend timeouts."""
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(BackendTimeoutError):
            await grok_client(handler).generate(case, "grok-beta", context)

    async def test_transport_error(self, case, context):
        """Connection failures become generic backend errors."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError):
            await grok_client(handler).generate(case, "grok-beta", context)

    async def test_unavailable_without_key(self, case, context):
        """Without an API key the client is unavailable and refuses calls."""
        client = grok_client(lambda request: httpx.Response(200, json=completion("x")), api_key="")

        assert client.is_available is False
        with pytest.raises(BackendUnavailableError):
            await client.generate(case, "grok-beta", context)

    async def test_quick_health_check(self):
        """The quick check sends a short symptom prompt to the first candidate."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion("Rest and drink fluids."))

        result = await grok_client(handler).quick_health_check("  sore throat ")

        assert result.success is True
        assert result.analysis == "Rest and drink fluids."
        assert result.patient_friendly_message == "Rest and drink fluids."
        assert seen["body"]["model"] == "grok-beta"
        assert seen["body"]["max_tokens"] == 500
        assert seen["body"]["messages"][0]["content"] == QUICK_CHECK_SYSTEM_PROMPT
        assert seen["body"]["messages"][1]["content"] == "I'm experiencing: sore throat. What should I know?"

    async def test_quick_health_check_errors(self):
        """The quick check maps HTTP failures like a case analysis does."""
        client = grok_client(lambda request: httpx.Response(429, json={"error": "x"}))
        with pytest.raises(BackendQuotaError):
            await client.quick_health_check("headache")

        with pytest.raises(BackendUnavailableError):
            await grok_client(lambda request: httpx.Response(200), api_key="").quick_health_check("headache")


# =============================================================================
# Gemini
# =============================================================================

@pytest.mark.asyncio
class TestGeminiClient:
    """Tests for the LangChain Gemini client."""

    async def test_success_with_patient_section(self, case, context):
        """The patient-friendly section is split from the analysis."""
        reply = AIMessage(content=f"CLINICAL ASSESSMENT\nStage 2\n{PATIENT_FRIENDLY_SEPARATOR}\nHello Jane")
        model = FakeChatModel(reply=reply)
        client = gemini_client(model)

        result = await client.generate(case, "gemini-2.5-flash", context)

        assert result.success is True
        assert result.analysis == "CLINICAL ASSESSMENT\nStage 2"
        assert result.patient_friendly_message == "Hello Jane"

        (messages,) = model.received
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert "Warfarin + Aspirin" in messages[1].content

    async def test_model_built_once_per_candidate(self, case, context):
        """The chat model for a candidate is cached."""
        client = gemini_client(FakeChatModel(reply=AIMessage(content="ok")))

        await client.generate(case, "gemini-2.0-flash", context)
        await client.generate(case, "gemini-2.0-flash", context)

        assert client.built == ["gemini-2.0-flash"]

    async def test_non_text_content(self, case, context):
        """Non-string content is malformed."""
        client = gemini_client(FakeChatModel(reply=AIMessage(content=[{"type": "image"}])))
        with pytest.raises(MalformedResponseError):
            await client.generate(case, "gemini-2.5-flash", context)

    async def test_empty_content(self, case, context):
        """Blank content is malformed."""
        client = gemini_client(FakeChatModel(reply=AIMessage(content="   ")))
        with pytest.raises(MalformedResponseError):
            await client.generate(case, "gemini-2.5-flash", context)

    @pytest.mark.parametrize("message,error_cls", [
        ("429 Resource has been exhausted (e.g. check quota).", BackendQuotaError),
        ("404 models/gemini-1.5-flash is not found", ModelNotFoundError),
        ("503 The model is overloaded. Please try again later.", BackendOverloadedError),
        ("Deadline exceeded: request timed out", BackendTimeoutError),
    ])
    async def test_sdk_errors_translated(self, case, context, message, error_cls):
        """SDK exceptions are wrapped in the matching backend error."""
        client = gemini_client(FakeChatModel(error=RuntimeError(message)))

        with pytest.raises(error_cls) as exc_info:
            await client.generate(case, "gemini-2.5-flash", context)
        assert exc_info.value.backend == "gemini"
        assert exc_info.value.model == "gemini-2.5-flash"

    async def test_unknown_sdk_error(self, case, context):
        """Unrecognised errors become generic backend errors."""
        client = gemini_client(FakeChatModel(error=RuntimeError("safety filter")))
        with pytest.raises(BackendError) as exc_info:
            await client.generate(case, "gemini-2.5-flash", context)
        assert type(exc_info.value) is BackendError

    async def test_unavailable_without_key(self, case, context):
        """Without an API key the client refuses calls."""
        client = gemini_client(FakeChatModel(reply=AIMessage(content="ok")), api_key="  ")

        assert client.is_available is False
        with pytest.raises(BackendUnavailableError):
            await client.generate(case, "gemini-2.5-flash", context)


class TestCandidates:
    """Tests for model candidate configuration."""

    def test_grok_candidates(self):
        """Candidates come from configuration."""
        client = GrokClient(GrokConfig(api_key="k", models=["grok-2", "grok-beta"]))
        assert client.candidates == ["grok-2", "grok-beta"]

    def test_gemini_default_candidates(self):
        """Default candidates are the flash family, newest first."""
        client = GeminiClient(GeminiConfig(api_key="k"))
        assert client.candidates == [m.value for m in GeminiModel]
        assert client.candidates[0] == "gemini-2.5-flash"
