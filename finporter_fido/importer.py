"""The contract every dialect importer satisfies.

Importers are independent classes with no shared base and no mutable state;
the only process-wide data they hold are compiled header patterns and the
action prefix table, which are read-only.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .models import AllocFormat, AllocSchema, DecodedRow, DecodeOptions, DetectResult, RawRow


@runtime_checkable
class Importer(Protocol):
    id: str
    name: str
    description: str
    source_formats: Sequence[AllocFormat]
    output_schemas: Sequence[AllocSchema]

    def detect(self, data_prefix: bytes) -> DetectResult:
        """Return the record kinds this importer can decode from the document."""
        ...

    def decode(
        self,
        data: bytes,
        rejected_rows: list[RawRow],
        options: DecodeOptions | None = None,
    ) -> list[DecodedRow]:
        """Decode a whole document, appending malformed rows to ``rejected_rows``."""
        ...


__all__ = ["Importer"]
