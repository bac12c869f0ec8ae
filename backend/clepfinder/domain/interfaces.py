"""
Collaborator Interfaces for CLEP Finder

Protocols for everything outside the core: the backing store, the
geocoder and the language model. Each has exactly one production
implementation under clepfinder.infrastructure; tests substitute fakes.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from clepfinder.domain.models import Institution, OverrideRecord


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@runtime_checkable
class InstitutionStore(Protocol):
    """
    Backing store contract.

    Raises DatabaseError on store failures; callers decide whether to
    absorb it.
    """

    async def list_institutions(self) -> List[Institution]:
        """All institutions, normalized, in stable id order."""
        ...

    async def list_policy_overrides(self, institution_key: int) -> List[OverrideRecord]:
        ...

    async def list_all_policy_overrides(self) -> List[OverrideRecord]:
        """Every institution's overrides, ordered by institution key."""
        ...

    async def upsert_policy_override(self, record: OverrideRecord) -> bool:
        """Insert or replace the override for (institution_key, exam_name)."""
        ...

    async def delete_overrides(self, institution_key: int) -> int:
        """Delete all overrides for an institution. Returns the number removed."""
        ...


@runtime_checkable
class Geocoder(Protocol):

    async def geocode(
        self,
        postal_code: str,
        city: str = "",
        state: str = "",
    ) -> Optional[Coordinates]:
        ...


@runtime_checkable
class LanguageModel(Protocol):

    async def extract_update_intent(self, text: str) -> List[Dict[str, Any]]:
        """
        Extract raw update tuples from an institution's message.

        Returns:
            List of {"exam", "field", "value"} dicts, unvalidated
        """
        ...

    async def answer_question(self, text: str, context_summary: str) -> str:
        ...
