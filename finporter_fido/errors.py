"""Exceptions raised by the importers.

Only decode-fatal conditions are exceptions. Row-level problems are collected
in the caller's ``rejected_rows`` list instead, and malformed delimited data
surfaces as the tokenizer's own :class:`csv.Error`.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import AllocSchema


class FINporterError(Exception):
    """Base class for decode-fatal importer errors."""


class DecodingError(FINporterError):
    """The input bytes could not be decoded as text."""


class NeedExplicitOutputSchemaError(FINporterError):
    """The importer produces several record kinds and none was requested."""

    def __init__(self, output_schemas: Sequence[AllocSchema]) -> None:
        self.output_schemas = tuple(output_schemas)
        names = ", ".join(s.value for s in self.output_schemas)
        super().__init__(f"an explicit output schema is required; choose one of: {names}")


__all__ = ["DecodingError", "FINporterError", "NeedExplicitOutputSchemaError"]
