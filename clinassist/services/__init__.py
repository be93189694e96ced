"""
Services Package - External collaborators consumed by the core
"""
from .collaborators import (
    DrugInteraction,
    DrugDetail,
    ReferenceDataService,
    NameExtractionService,
    NullReferenceDataService,
    InMemoryReferenceDataService,
    NullNameExtractionService,
)

__all__ = [
    "DrugInteraction",
    "DrugDetail",
    "ReferenceDataService",
    "NameExtractionService",
    "NullReferenceDataService",
    "InMemoryReferenceDataService",
    "NullNameExtractionService",
]
