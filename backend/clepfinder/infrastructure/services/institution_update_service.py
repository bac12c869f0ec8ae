"""
Institution Update Service for CLEP Finder

Write side of the override set. Institutions edit individual exam
fields; each edit is merged over the stored override (if any) and
stamped with today's date.

Failure semantics:
- ValidationError (unknown exam/field, missing institution key, a
  non-positive minScore or credits) is raised before the store is touched
- store failures never raise out of upsert_override: it returns False
- batches keep going after a failure and report counts per outcome
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from clepfinder.domain.catalog import resolve_exam_name
from clepfinder.domain.interfaces import InstitutionStore
from clepfinder.domain.models import OverrideRecord
from clepfinder.domain.normalization import normalize_positive
from clepfinder.domain.overrides import (
    NUMERIC_FIELDS,
    OVERRIDE_FIELDS,
    ExamRow,
    UpdateAction,
    diff_rows,
    format_value,
    resolve_field,
)
from clepfinder.infrastructure.exceptions import DatabaseError, ValidationError


logger = logging.getLogger(__name__)

# Attributes callers may set directly; the assistant is limited to OVERRIDE_FIELDS
EDITABLE_ATTRIBUTES = frozenset(OVERRIDE_FIELDS.values()) | {"category"}
NUMERIC_ATTRIBUTES = frozenset(OVERRIDE_FIELDS[name] for name in NUMERIC_FIELDS)


# =============================================================================
# Batch results
# =============================================================================

@dataclass(frozen=True)
class BatchItemError:
    exam: str
    field: str
    kind: str  # "validation" or "store"
    message: str

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass
class BatchUpdateResult:
    """Outcome of applying several update actions."""
    updated: int = 0
    failed: int = 0
    rejected: int = 0
    errors: List[BatchItemError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.updated + self.failed + self.rejected

    @property
    def status(self) -> str:
        """success, partial, failed (store errors only) or rejected (validation only)."""
        if self.updated == self.total:
            return "success"
        if self.updated > 0:
            return "partial"
        if self.failed == 0:
            return "rejected"
        if self.rejected == 0:
            return "failed"
        return "partial"

    @property
    def summary(self) -> str:
        text = f"Updated {self.updated}, failed {self.failed}"
        if self.rejected:
            text += f", rejected {self.rejected}"
        return text

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "summary": self.summary,
            "updated": self.updated,
            "failed": self.failed,
            "rejected": self.rejected,
            "errors": [e.to_dict() for e in self.errors],
        }


def _attribute_for(name: str) -> Optional[str]:
    """Map minScore/min_score/category style names onto OverrideRecord attributes."""
    if name in EDITABLE_ATTRIBUTES:
        return name
    update_field = resolve_field(name)
    return OVERRIDE_FIELDS[update_field] if update_field else None


class InstitutionUpdateService:
    """
    Override maintenance on top of an InstitutionStore.

    Args:
        store: Backing store
        today: Clock for last_updated stamps
    """

    def __init__(
        self,
        store: InstitutionStore,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._today = today

    async def get_overrides(self, institution_key: int) -> List[OverrideRecord]:
        """Overrides for an institution; an empty list if the store fails."""
        try:
            return await self._store.list_policy_overrides(institution_key)
        except DatabaseError as e:
            logger.error(f"Error loading overrides for {institution_key}: {e.message}")
            return []

    async def get_override(
        self,
        institution_key: int,
        exam_name: str,
    ) -> Optional[OverrideRecord]:
        canonical = resolve_exam_name(exam_name) or exam_name
        for record in await self.get_overrides(institution_key):
            if record.exam_name.casefold() == canonical.casefold():
                return record
        return None

    def _validate(
        self,
        institution_key: Optional[int],
        exam_name: str,
        fields: Mapping[str, Any],
    ) -> tuple:
        if not institution_key or institution_key <= 0:
            raise ValidationError("Institution key is required", field="institution_key")

        canonical = resolve_exam_name(exam_name)
        if canonical is None:
            raise ValidationError(f"Unknown exam: {exam_name}", exam=exam_name)

        changes: Dict[str, str] = {}
        for name, value in fields.items():
            attribute = _attribute_for(name)
            if attribute is None:
                raise ValidationError(f"Unknown field: {name}", field=name, exam=canonical)
            text = format_value(value).strip()
            if attribute in NUMERIC_ATTRIBUTES and text and normalize_positive(text) is None:
                raise ValidationError(
                    f"{name} must be a positive number",
                    field=name,
                    exam=canonical,
                )
            changes[attribute] = text

        return canonical, changes

    async def upsert_override(
        self,
        institution_key: int,
        exam_name: str,
        fields: Mapping[str, Any],
    ) -> bool:
        """
        Merge the provided fields into the institution's override for an exam.

        Only fields present in `fields` change; last_updated is always stamped.
        A missing override is created with unspecified fields left empty.

        Returns:
            True on success, False if the store failed

        Raises:
            ValidationError: Unknown exam or field, a non-positive number for
                minScore or credits, or a missing institution key
        """
        canonical, changes = self._validate(institution_key, exam_name, fields)
        stamp = self._today().isoformat()

        try:
            existing = None
            for record in await self._store.list_policy_overrides(institution_key):
                if record.exam_name.casefold() == canonical.casefold():
                    existing = record
                    break

            if existing is not None:
                record = dataclasses.replace(existing, last_updated=stamp, **changes)
            else:
                record = OverrideRecord(
                    institution_key=institution_key,
                    exam_name=canonical,
                    last_updated=stamp,
                    **changes,
                )

            saved = await self._store.upsert_policy_override(record)
        except DatabaseError as e:
            logger.error(f"Error updating {canonical} for {institution_key}: {e.message}")
            return False

        if saved:
            logger.info(f"Updated {canonical} for {institution_key}: {sorted(changes)}")
        return bool(saved)

    async def initialize_defaults(self, institution_key: int) -> None:
        """
        One-time guard, safe to call on every page load.

        Existing overrides are never touched; an institution with none keeps
        none, since overrides are only created by explicit edits.
        """
        existing = await self.get_overrides(institution_key)
        if existing:
            return
        logger.debug(f"No overrides yet for {institution_key}")

    async def apply_actions(
        self,
        institution_key: int,
        actions: Iterable[UpdateAction],
    ) -> BatchUpdateResult:
        """
        Apply each action independently; one failure never stops the batch.
        """
        result = BatchUpdateResult()

        for action in actions:
            update_field = resolve_field(action.field)
            try:
                if update_field is None:
                    raise ValidationError(f"Unknown field: {action.field}", field=action.field)
                saved = await self.upsert_override(
                    institution_key, action.exam, {update_field: action.value}
                )
            except ValidationError as e:
                result.rejected += 1
                result.errors.append(BatchItemError(action.exam, action.field, "validation", e.message))
                continue

            if saved:
                result.updated += 1
            else:
                result.failed += 1
                result.errors.append(
                    BatchItemError(action.exam, action.field, "store", "Failed to save")
                )

        logger.info(f"Batch for {institution_key}: {result.summary}")
        return result

    async def save_changes(
        self,
        institution_key: int,
        original_rows: Sequence[ExamRow],
        current_rows: Sequence[ExamRow],
    ) -> BatchUpdateResult:
        """Persist only the fields that differ between the two row sets."""
        actions = diff_rows(original_rows, current_rows)
        if not actions:
            return BatchUpdateResult()
        return await self.apply_actions(institution_key, actions)

    async def clear_overrides(self, institution_key: int) -> int:
        """Delete all overrides for an institution (admin)."""
        return await self._store.delete_overrides(institution_key)
