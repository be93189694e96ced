"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    ClinicalAssistError,
    BackendError,
    BackendTimeoutError,
    BackendQuotaError,
    BackendOverloadedError,
    ModelNotFoundError,
    MalformedResponseError,
    BackendUnavailableError,
    RecommendationContractError,
    AnalysisError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ClinicalAssistError",
    "BackendError",
    "BackendTimeoutError",
    "BackendQuotaError",
    "BackendOverloadedError",
    "ModelNotFoundError",
    "MalformedResponseError",
    "BackendUnavailableError",
    "RecommendationContractError",
    "AnalysisError",
]
