"""Static list of the Fidelity importers and a prospecting helper.

``prospect`` asks every importer whether it recognizes a document prefix and
keeps the ones that do. A document normally matches exactly one dialect.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .importer import Importer
from .ingest.adapters.fido_history_csv import FidoHistory
from .ingest.adapters.fido_positions_csv import FidoPositions
from .ingest.adapters.fido_sales_csv import FidoSales
from .models import AllocFormat, DetectResult

IMPORTERS: tuple[Importer, ...] = (FidoHistory(), FidoPositions(), FidoSales())


def get_importer(importer_id: str, importers: Iterable[Importer] = IMPORTERS) -> Importer:
    for imp in importers:
        if imp.id == importer_id:
            return imp
    raise KeyError(f"unknown importer: {importer_id!r}")


def prospect(
    data_prefix: bytes,
    importers: Iterable[Importer] = IMPORTERS,
    source_formats: Sequence[AllocFormat] = (AllocFormat.CSV,),
) -> dict[Importer, DetectResult]:
    """Return ``{importer: detect result}`` for each importer that matches."""

    wanted = set(source_formats)
    found: dict[Importer, DetectResult] = {}
    for imp in importers:
        if wanted.isdisjoint(imp.source_formats):
            continue
        result = imp.detect(data_prefix)
        if result:
            found[imp] = result
    return found


__all__ = ["IMPORTERS", "get_importer", "prospect"]
