"""
External Collaborators

Read-only services the core consumes but does not own:

    ReferenceDataService     - drug details and pairwise interaction lookup
    NameExtractionService    - recognises drug names in free text

No reference tables ship with this package. The Null implementations are
the defaults; InMemoryReferenceDataService wraps records supplied by the
caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from clinassist.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrugInteraction:
    """One pairwise interaction record."""
    drug1: str
    drug2: str
    severity: str                # e.g. "major", "moderate", "minor"
    description: str
    confidence: float = 1.0

    def involves(self, a: str, b: str) -> bool:
        pair = {self.drug1.lower(), self.drug2.lower()}
        return pair == {a.lower(), b.lower()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug1": self.drug1,
            "drug2": self.drug2,
            "severity": self.severity,
            "description": self.description,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class DrugDetail:
    """Catalogue entry for a single drug."""
    name: str
    category: str = ""
    description: str = ""
    common_doses: List[str] = field(default_factory=list)
    contraindications: List[str] = field(default_factory=list)
    found: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "common_doses": list(self.common_doses),
            "contraindications": list(self.contraindications),
            "found": self.found,
        }


@runtime_checkable
class ReferenceDataService(Protocol):
    def check_all_interactions(self, drug_names: List[str]) -> List[DrugInteraction]:
        ...

    def get_drug_details(self, name: str) -> DrugDetail:
        ...


@runtime_checkable
class NameExtractionService(Protocol):
    def extract_drugs_safely(self, text: str) -> List[str]:
        """Recognised drug names in `text`. Must never raise."""
        ...


class NullReferenceDataService:
    """No catalogue: no interactions, every drug unknown."""

    def check_all_interactions(self, drug_names: List[str]) -> List[DrugInteraction]:
        return []

    def get_drug_details(self, name: str) -> DrugDetail:
        return DrugDetail(name=name, found=False)


class InMemoryReferenceDataService:
    """Reference lookups over caller-supplied records."""

    def __init__(
        self,
        interactions: Optional[Iterable[DrugInteraction]] = None,
        details: Optional[Iterable[DrugDetail]] = None,
    ):
        self._interactions = list(interactions or [])
        self._details = {d.name.lower(): d for d in (details or [])}

    def check_all_interactions(self, drug_names: List[str]) -> List[DrugInteraction]:
        names = [n for n in drug_names if n and n.strip()]
        found: List[DrugInteraction] = []
        for i, a in enumerate(names):
            for b in names[i + 1:]:
                for record in self._interactions:
                    if record.involves(a, b) and record not in found:
                        found.append(record)
        if found:
            logger.info(f"Reference data: {len(found)} interaction(s) among {len(names)} drug(s)")
        return found

    def get_drug_details(self, name: str) -> DrugDetail:
        return self._details.get(name.lower(), DrugDetail(name=name, found=False))


class NullNameExtractionService:
    """Recognises nothing."""

    def extract_drugs_safely(self, text: str) -> List[str]:
        return []
