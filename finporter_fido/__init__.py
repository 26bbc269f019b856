"""Public interface for the ``finporter_fido`` package.

This module exposes the importers, canonical models and errors as the stable
import surface. There is no runtime logic here, only symbol re-exports.
"""

from .dates import parse_fido_exported_at, parse_fido_mmddyyyy
from .errors import DecodingError, FINporterError, NeedExplicitOutputSchemaError
from .importer import Importer
from .ingest.adapters.fido_history_csv import FidoHistory
from .ingest.adapters.fido_positions_csv import FidoPositions
from .ingest.adapters.fido_sales_csv import FidoSales
from .models import (
    AccountField,
    Action,
    AllocFormat,
    AllocSchema,
    DecodedRow,
    DecodeOptions,
    DetectResult,
    HoldingField,
    RawRow,
    SecurityField,
    SourceMetaField,
    TransactionField,
)
from .registry import IMPORTERS, get_importer, prospect

__all__ = [
    # Importers
    "FidoHistory",
    "FidoPositions",
    "FidoSales",
    "IMPORTERS",
    "Importer",
    "get_importer",
    "prospect",
    # Dates
    "parse_fido_mmddyyyy",
    "parse_fido_exported_at",
    # Models / types
    "AccountField",
    "Action",
    "AllocFormat",
    "AllocSchema",
    "DecodeOptions",
    "DecodedRow",
    "DetectResult",
    "HoldingField",
    "RawRow",
    "SecurityField",
    "SourceMetaField",
    "TransactionField",
    # Errors
    "DecodingError",
    "FINporterError",
    "NeedExplicitOutputSchemaError",
]
