"""
Custom Exception Hierarchy

Specific exception types for backend, recommendation and analysis failures,
each carrying a machine-readable code and structured details.
"""
from typing import Optional, Dict, Any


class ClinicalAssistError(Exception):
    """Base exception for all clinical decision assistance errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class BackendError(ClinicalAssistError):
    """A reasoning backend call failed."""

    default_code = "BACKEND_ERROR"

    def __init__(
        self,
        message: str,
        backend: str = "unknown",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=self.default_code,
            details={"backend": backend, "model": model, **(details or {})}
        )
        self.backend = backend
        self.model = model


class BackendTimeoutError(BackendError):
    """The backend did not answer within the per-candidate ceiling."""
    default_code = "BACKEND_TIMEOUT"


class BackendQuotaError(BackendError):
    """Rate limit or quota exhausted (HTTP 429)."""
    default_code = "BACKEND_QUOTA"


class BackendOverloadedError(BackendError):
    """Service temporarily overloaded (HTTP 503)."""
    default_code = "BACKEND_OVERLOADED"


class ModelNotFoundError(BackendError):
    """Model candidate unknown or unsupported (HTTP 404)."""
    default_code = "MODEL_NOT_FOUND"


class MalformedResponseError(BackendError):
    """Empty or non-string payload."""
    default_code = "MALFORMED_RESPONSE"


class BackendUnavailableError(BackendError):
    """Backend not configured (e.g. missing API key)."""
    default_code = "BACKEND_UNAVAILABLE"


class RecommendationContractError(ClinicalAssistError):
    """A medication entry is missing its rationale or alternatives."""

    def __init__(
        self,
        message: str,
        drug_name: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RECOMMENDATION_CONTRACT",
            details={"drug_name": drug_name, **(details or {})}
        )
        self.drug_name = drug_name


class AnalysisError(ClinicalAssistError):
    """Unrecoverable failure of the whole analysis request."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="ANALYSIS_ERROR",
            details=details
        )
