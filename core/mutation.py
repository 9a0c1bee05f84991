"""
core/mutation.py -- Validated mutation flow shared by every record type.

One MutationFlow instance per record type (car, customer, user) ties together:

  normalizers  -- per-field coercions applied to the raw payload BEFORE
                  validation (textual date -> date, plaintext password ->
                  bcrypt hash). Validation checks the normalized form.
  schema       -- pydantic model enforcing structure, ranges, enumerations and
                  cross-field rules. pydantic collects every violation, not
                  just the first; each one becomes a FieldViolation.
  repository   -- TableRepository doing the actual insert/update/delete.

Outcomes are signalled with the core.errors taxonomy; route handlers turn a
normal return into 201/204/200 and let the exception handlers in api/main.py
turn errors into 404/409/422. Infrastructure failures are not caught here --
they propagate to the generic 500 handler, which logs them.

Invariant: nothing reaches the repository unless the full record validated.
A PATCH merges the stored record with the (normalized) partial payload and
validates the merged whole before writing.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from core.errors import ConflictError, FieldViolation, NotFoundError, ValidationError
from core.repository import TableRepository

logger = logging.getLogger("carstore.mutation")

T = TypeVar("T")

Normalizer = Callable[[Any], Any]

# Keys clients commonly echo back from a GET; identity comes from the URL.
_IGNORED_KEYS = frozenset({"id"})


def coerce_date(value: Any) -> Any:
    """Turn a textual date into a date value; blank becomes None.

    Accepts plain ISO dates ("2024-05-01") and ISO date-times as produced by
    browser date pickers ("2024-05-01T03:00:00.000Z"), keeping the date part.
    Anything unparseable is returned untouched so validation reports it.
    """
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return value


def violations_from_pydantic(exc: PydanticValidationError) -> list[FieldViolation]:
    """Flatten pydantic's error list into FieldViolations.

    pydantic prefixes messages raised from validators with "Value error, ";
    the prefix is noise for API clients and form labels.
    """
    return [
        FieldViolation(
            path=tuple(err["loc"]),
            message=err["msg"].removeprefix("Value error, "),
        )
        for err in exc.errors()
    ]


class MutationFlow(Generic[T]):
    """normalize -> validate -> persist for one record type."""

    def __init__(
        self,
        kind: str,
        schema: type[BaseModel],
        repository: TableRepository[T],
        normalizers: Mapping[str, Normalizer] | None = None,
    ) -> None:
        self.kind = kind
        self.schema = schema
        self.repository = repository
        self.normalizers: Mapping[str, Normalizer] = dict(normalizers or {})

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def normalize(self, payload: Any) -> dict:
        if not isinstance(payload, Mapping):
            raise ValidationError([FieldViolation(path=(), message="Expected a JSON object.")])
        normalized = {k: v for k, v in payload.items() if k not in _IGNORED_KEYS}
        for field, coerce in self.normalizers.items():
            if field in normalized:
                normalized[field] = coerce(normalized[field])
        return normalized

    def validate(self, normalized: dict) -> dict:
        """Run full schema validation and return the column values to store."""
        try:
            model = self.schema.model_validate(normalized)
        except PydanticValidationError as exc:
            violations = violations_from_pydantic(exc)
            logger.info("%s payload rejected: %d violation(s)", self.kind, len(violations))
            raise ValidationError(violations) from None
        return model.model_dump()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, payload: Any) -> int:
        values = self.validate(self.normalize(payload))
        try:
            record_id = self.repository.create(values)
        except IntegrityError as exc:
            logger.warning("%s insert violated a unique constraint: %s", self.kind, exc.orig)
            raise ConflictError() from exc
        logger.info("Created %s %d", self.kind, record_id)
        return record_id

    def replace(self, record_id: int, payload: Any) -> None:
        """Full update: the payload must describe the whole record."""
        values = self.validate(self.normalize(payload))
        self._write(record_id, values)

    def patch(self, record_id: int, payload: Any) -> None:
        """Partial update: merge onto the stored record, validate the result."""
        partial = self.normalize(payload)
        current = self.repository.get(record_id)
        if current is None:
            raise NotFoundError(self.kind, record_id)
        merged = {**_stored_fields(current), **partial}
        values = self.validate(merged)
        self._write(record_id, values)

    def delete(self, record_id: int) -> None:
        if not self.repository.delete(record_id):
            raise NotFoundError(self.kind, record_id)
        logger.info("Deleted %s %d", self.kind, record_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> T:
        record = self.repository.get(record_id)
        if record is None:
            raise NotFoundError(self.kind, record_id)
        return record

    def list(self) -> list[T]:
        return self.repository.list()

    # ------------------------------------------------------------------

    def _write(self, record_id: int, values: dict) -> None:
        try:
            updated = self.repository.update(record_id, values)
        except IntegrityError as exc:
            logger.warning("%s %d update violated a unique constraint: %s", self.kind, record_id, exc.orig)
            raise ConflictError() from exc
        if not updated:
            raise NotFoundError(self.kind, record_id)
        logger.info("Updated %s %d", self.kind, record_id)


def _stored_fields(record: Any) -> dict:
    values = dataclasses.asdict(record)
    values.pop("id", None)
    return values
