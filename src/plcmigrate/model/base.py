"""Shared base record and source locations for the analysis model.

Every extracted entity is an immutable pydantic model.  Attributes are
snake_case in Python and camelCase on the wire, so
``record.model_dump(by_alias=True, mode="json")`` yields the field names
that downstream stores and report generators consume.
"""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def make_id(kind: str, *parts: object) -> str:
    """Deterministic identifier for an extracted entity.

    Identical input produces identical ids across runs, so records can be
    keyed by ``(file, line[, name])`` without a store re-deriving anything.
    """
    payload = "\x1f".join([kind, *(str(p) for p in parts)])
    return f"{kind}_{hashlib.sha1(payload.encode('utf-8')).hexdigest()[:12]}"


class Record(BaseModel):
    """Frozen base for all analysis records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> dict:
        """JSON-ready dict using the camelCase wire names."""
        return self.model_dump(by_alias=True, mode="json")


class SourceLocation(Record):
    """A 1-based position in a source file."""

    file: str
    line: int
    column: int = 1
    end_line: int | None = None
    end_column: int | None = None

    @model_validator(mode="after")
    def _check_lines(self):
        if self.line < 1:
            raise ValueError(f"line must be >= 1, got {self.line}")
        if self.end_line is not None and self.end_line < self.line:
            raise ValueError(
                f"end_line {self.end_line} precedes line {self.line}"
            )
        return self
