from __future__ import annotations

from typing import Any, Optional


class PipelineError(ValueError):
    """Base class for structural problems in the input data."""


class SchemaMismatch(PipelineError):
    """An expected column is absent after name normalisation."""

    def __init__(self, column: str, source: str, candidates: Optional[list[str]] = None):
        self.column = column
        self.source = source
        self.candidates = list(candidates or [])
        msg = f"[{source}] Missing required column: {column}"
        if self.candidates:
            msg += f" (any of {self.candidates})"
        super().__init__(msg)


class ParseError(PipelineError):
    """A date or numeric field could not be parsed."""

    def __init__(self, row: str, value: Any, reason: str):
        self.row = row
        self.value = value
        self.reason = reason
        super().__init__(f"{row}: cannot parse {value!r} ({reason})")
