"""
Shape validation for records returned by the CRM API.

Only field presence and types are checked here; cross-record consistency is
owned by the API. Each record module builds its dataclass from a raw dict via
a `Reader`, which collects every failing field before raising `SchemaError`.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MISSING = object()


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


class SchemaError(ValueError):
    def __init__(self, record: str, errors: list[ValidationError]) -> None:
        self.record = record
        self.errors = errors
        detail = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Invalid {record}: {detail}")


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match((value or "").strip()))


class Reader:
    def __init__(self, record: str, raw: Any) -> None:
        self.record = record
        self.errors: list[ValidationError] = []
        if not isinstance(raw, dict):
            self.errors.append(ValidationError("(root)", "Expected an object."))
            raw = {}
        self.raw: dict[str, Any] = raw

    def _fail(self, field: str, message: str) -> None:
        self.errors.append(ValidationError(field, message))

    def _value(self, field: str, *, optional: bool, nullable: bool) -> Any:
        v = self.raw.get(field, _MISSING)
        if v is _MISSING:
            if not optional:
                self._fail(field, "Field is required.")
            return _MISSING
        if v is None:
            if not (nullable or optional):
                self._fail(field, "Must not be null.")
            return None
        return v

    def string(self, field: str, *, optional: bool = False, nullable: bool = False) -> str | None:
        v = self._value(field, optional=optional, nullable=nullable)
        if v is _MISSING or v is None:
            return None
        if not isinstance(v, str):
            self._fail(field, "Expected a string.")
            return None
        return v

    def identifier(self, field: str) -> str | None:
        # Ids arrive as strings or integers depending on the endpoint.
        v = self.raw.get(field)
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return self.string(field)

    def email(self, field: str) -> str | None:
        v = self.string(field)
        if v is not None and not is_valid_email(v):
            self._fail(field, "Invalid email address.")
        return v

    def boolean(self, field: str, *, optional: bool = False, default: bool = False) -> bool:
        v = self._value(field, optional=optional, nullable=False)
        if v is _MISSING or v is None:
            return default
        if not isinstance(v, bool):
            self._fail(field, "Expected a boolean.")
            return default
        return v

    def number(self, field: str) -> float | int | None:
        v = self._value(field, optional=False, nullable=False)
        if v is _MISSING or v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            self._fail(field, "Expected a number.")
            return None
        return v

    def integer(self, field: str, *, optional: bool = True) -> int | None:
        v = self._value(field, optional=optional, nullable=True)
        if v is _MISSING or v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, int):
            self._fail(field, "Expected an integer.")
            return None
        return v

    def picklist(self, field: str, options: tuple[str, ...], *, optional: bool = False) -> str | None:
        v = self.string(field, optional=optional)
        if v is not None and v not in options:
            self._fail(field, f"Expected one of {', '.join(options)}.")
            return None
        return v

    def check(self) -> None:
        if self.errors:
            raise SchemaError(self.record, self.errors)


def unwrap_list(payload: Any) -> list[Any]:
    """List endpoints answer either `{"data": [...]}` or a bare list."""
    if isinstance(payload, dict):
        payload = payload.get("data")
    return payload if isinstance(payload, list) else []


def parse_many(parser: Callable[[Any], T], rows: list[Any], *, record: str) -> list[T]:
    """
    Parse every row, dropping (and logging) rows that fail validation so a
    single malformed record does not blank the whole table.
    """
    out: list[T] = []
    dropped = 0
    for raw in rows:
        try:
            out.append(parser(raw))
        except SchemaError as e:
            dropped += 1
            logger.warning("Dropping invalid %s row: %s", record, e)
    if dropped:
        logger.warning("Dropped %s of %s %s rows", dropped, len(rows), record)
    return out
