"""
Clinical Decision Assistant - FastAPI Application

API endpoints for:
- Full analysis (reasoning backends with deterministic fallback)
- Deterministic scoring and treatment synthesis
- Backend cascade status
- Quick symptom check on the Grok backend
"""
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables before settings are read
load_dotenv()

from clinassist.config import Settings, settings
from clinassist.core.llm import GeminiClient, GeminiConfig, GrokClient, GrokConfig, ReasoningBackend
from clinassist.core.llm.prompts import QUICK_CHECK_FALLBACK
from clinassist.core.orchestration import FallbackOrchestrator, ReportAssembler
from clinassist.models.analysis import (
    AnalysisResponse,
    BackendsResponse,
    BackendStatus,
    HealthResponse,
    PatientCaseRequest,
    QuickCheckRequest,
    QuickCheckResponse,
    ScoringResponse,
)
from clinassist.services import (
    NameExtractionService,
    NullNameExtractionService,
    NullReferenceDataService,
)
from clinassist.utils import BackendError, ClinicalAssistError, get_logger, setup_logging

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)


# ---- Wiring ----

def build_backends(config: Settings) -> List[ReasoningBackend]:
    """Backends in the configured cascade order."""
    factories = {
        "grok": lambda: GrokClient(GrokConfig(
            api_key=config.grok_api_key,
            base_url=config.grok_base_url,
            models=list(config.grok_models),
            temperature=config.grok_temperature,
            max_tokens=config.grok_max_tokens,
        )),
        "gemini": lambda: GeminiClient(GeminiConfig(
            api_key=config.gemini_api_key,
            models=list(config.gemini_models),
            temperature=config.gemini_temperature,
            max_output_tokens=config.gemini_max_output_tokens,
        )),
    }
    backends = []
    for backend_id in config.backend_order:
        factory = factories.get(backend_id.lower())
        if factory is None:
            logger.warning(f"Unknown backend '{backend_id}' in backend_order, skipping")
            continue
        backends.append(factory())
    return backends


def build_orchestrator(config: Settings) -> FallbackOrchestrator:
    return FallbackOrchestrator(
        backends=build_backends(config),
        assembler=ReportAssembler(
            ai_default_confidence=config.ai_default_confidence,
            rescue_confidence=config.rescue_confidence,
        ),
        reference_data=NullReferenceDataService(),
        candidate_timeout=config.candidate_timeout_seconds,
    )


_orchestrator = build_orchestrator(settings)
_name_extractor = NullNameExtractionService()


def get_orchestrator() -> FallbackOrchestrator:
    return _orchestrator


def get_name_extractor() -> NameExtractionService:
    return _name_extractor


def get_quick_check_client(
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
) -> Optional[GrokClient]:
    return next((b for b in orchestrator.backends if isinstance(b, GrokClient)), None)


# ---- FastAPI Application ----

app = FastAPI(
    title="Clinical Decision Assistant API",
    description="Clinical decision support with generative backends and a deterministic fallback engine",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClinicalAssistError)
async def clinical_assist_error_handler(request: Request, exc: ClinicalAssistError):
    logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content=exc.to_dict())


# ---- Health Endpoints ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# ---- Analysis Endpoints ----

@app.post("/api/v1/analysis", response_model=AnalysisResponse, tags=["Analysis"])
async def analyze_case(
    request: PatientCaseRequest,
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
    name_extractor: NameExtractionService = Depends(get_name_extractor),
):
    """
    Full clinical analysis.

    Tries each reasoning backend in order and falls back to the deterministic
    engine. The response shape is identical for every source.
    """
    case = request.to_case(name_extractor.extract_drugs_safely(request.complaints))
    logger.info(f"Analysis requested for patient {case.patient_id}")

    report = await orchestrator.analyze(case)
    if not report.success:
        logger.error(f"Analysis failed for patient {case.patient_id}: {report.error}")
    return AnalysisResponse(**report.to_dict())


@app.post("/api/v1/scoring", response_model=ScoringResponse, tags=["Analysis"])
async def score_case(
    request: PatientCaseRequest,
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
    name_extractor: NameExtractionService = Depends(get_name_extractor),
):
    """Deterministic scoring and treatment plan, no reasoning backend involved."""
    case = request.to_case(name_extractor.extract_drugs_safely(request.complaints))
    try:
        result = orchestrator.analyzer.analyze(case)
    except ClinicalAssistError:
        raise
    except Exception as e:
        logger.error(f"Scoring failed for patient {case.patient_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    scoring = result.scoring.to_dict()
    return ScoringResponse(
        patient_id=case.patient_id,
        conditions=scoring["conditions"],
        severity=scoring["severity"],
        urgency=scoring["urgency"],
        confidence=scoring["confidence"],
        reasoning=scoring["reasoning"],
        contributions=scoring["contributions"],
        plan=result.plan.to_dict(),
    )


@app.get("/api/v1/backends", response_model=BackendsResponse, tags=["Analysis"])
async def list_backends(orchestrator: FallbackOrchestrator = Depends(get_orchestrator)):
    """Declared cascade order and whether each backend is configured."""
    return BackendsResponse(
        backends=[
            BackendStatus(
                backend_id=b.backend_id,
                available=b.is_available,
                candidates=b.candidates,
            )
            for b in orchestrator.backends
        ],
        candidate_timeout_seconds=orchestrator.candidate_timeout,
    )


@app.post("/api/v1/quick-check", response_model=QuickCheckResponse, tags=["Analysis"])
async def quick_check(
    request: QuickCheckRequest,
    client: Optional[GrokClient] = Depends(get_quick_check_client),
):
    """General advice for a symptom description. No case data, no fallback."""
    if client is None or not client.is_available:
        raise HTTPException(status_code=503, detail="Quick check backend not configured")

    try:
        result = await client.quick_health_check(request.symptoms)
    except BackendError as e:
        logger.warning(f"Quick check failed: {e.message}")
        return QuickCheckResponse(
            success=False,
            patient_friendly_message=QUICK_CHECK_FALLBACK,
            model_used=e.model,
            error=e.message,
        )

    return QuickCheckResponse(
        success=True,
        advice=result.analysis,
        patient_friendly_message=result.patient_friendly_message or QUICK_CHECK_FALLBACK,
        model_used=client.config.models[0],
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
