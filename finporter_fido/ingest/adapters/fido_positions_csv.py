"""Importer for Fidelity position snapshots (``Portfolio_Positions_Mmm-DD-YYYY.csv``).

One export feeds four record kinds, so callers must name the one they want
via ``DecodeOptions.output_schema``:

- ``openalloc/holding``: one per position row with a non-zero quantity.
- ``openalloc/security``: the ticker and its last price.
- ``openalloc/account``: account number and display name.
- ``openalloc/meta/source``: a single record per document, carrying the
  export time found in the ``"Date downloaded ..."`` banner below the table.

Tickers are trimmed of the ``*`` decoration Fidelity puts on core money-market
positions, and the ``Pending Activity`` placeholder row is rejected.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from functools import partial

from ...dates import parse_fido_exported_at
from ...errors import DecodingError, NeedExplicitOutputSchemaError
from ...logging_setup import get_logger
from ...models import (
    AccountField,
    AllocFormat,
    AllocSchema,
    DecodedRow,
    DecodeOptions,
    DetectResult,
    HoldingField,
    RawRow,
    SecurityField,
    SourceMetaField,
)
from ...validation import RowRejected, decode_rows, parse_double, parse_string, require
from ..utils import (
    csv_block_pattern,
    detect_signature,
    extract_csv_block,
    normalize_decode,
    read_raw_rows,
    signature_pattern,
)

logger = get_logger("finporter_fido.ingest.adapters.fido_positions_csv")

EXACT_HEADER = (
    "Account Number,Account Name,Symbol,Description,Quantity,Last Price,"
    "Last Price Change,Current Value,Today's Gain/Loss Dollar,"
    "Today's Gain/Loss Percent,Total Gain/Loss Dollar,Total Gain/Loss Percent,"
    "Percent Of Account,Cost Basis Total,Average Cost Basis,Type"
)

HEADER_RE = signature_pattern(EXACT_HEADER)

CSV_RE = csv_block_pattern("Account Number,Account Name,Symbol,Description,Quantity,")

# e.g. "Date downloaded 07/30/2021 2:26 PM ET" (quotes included in the export)
DATE_DOWNLOADED_RE = re.compile(r'(?<="Date downloaded ).+(?=")')

TRIM_FROM_TICKER = "*"
PENDING_ACTIVITY = "Pending Activity"
NOT_APPLICABLE = "n/a"


def _security_id(row: RawRow) -> str:
    security_id = require(parse_string(row.get("Symbol"), TRIM_FROM_TICKER), "Symbol")
    if security_id == PENDING_ACTIVITY:
        raise RowRejected("pending activity placeholder")
    return security_id


def _reject_unsupported(output_schema: AllocSchema, row: RawRow) -> DecodedRow:
    raise RowRejected(f"record kind {output_schema.value} is not decoded per row")


class FidoPositions:
    id = "fido_positions"
    name = "Fido Positions"
    description = "Detect and decode position export files from Fidelity."
    source_formats = (AllocFormat.CSV,)
    output_schemas = (
        AllocSchema.allocMetaSource,
        AllocSchema.allocAccount,
        AllocSchema.allocHolding,
        AllocSchema.allocSecurity,
    )

    def detect(self, data_prefix: bytes) -> DetectResult:
        return detect_signature(data_prefix, HEADER_RE, self.output_schemas)

    def decode(
        self,
        data: bytes,
        rejected_rows: list[RawRow],
        options: DecodeOptions | None = None,
    ) -> list[DecodedRow]:
        opts = options or DecodeOptions()
        text = normalize_decode(data)
        if text is None:
            raise DecodingError("unable to parse data")

        if opts.output_schema is None:
            raise NeedExplicitOutputSchemaError(self.output_schemas)

        if opts.output_schema == AllocSchema.allocMetaSource:
            return [self.source_meta(text, url=opts.url)]

        csv_text = extract_csv_block(text, CSV_RE)
        if csv_text is None:
            logger.debug("%s: no positions table found", self.id)
            return []

        return self.decode_delimited_rows(
            read_raw_rows(csv_text),
            opts.output_schema,
            rejected_rows,
            timestamp=opts.timestamp,
        )

    def decode_delimited_rows(
        self,
        rows: list[RawRow],
        output_schema: AllocSchema,
        rejected_rows: list[RawRow],
        *,
        timestamp: datetime | None = None,
    ) -> list[DecodedRow]:
        match output_schema:
            case AllocSchema.allocAccount:
                decode_row = self.account
            case AllocSchema.allocHolding:
                decode_row = self.holding
            case AllocSchema.allocSecurity:
                decode_row = partial(self.security, timestamp=timestamp)
            case _:
                decode_row = partial(_reject_unsupported, output_schema)

        return decode_rows(rows, decode_row, rejected_rows, importer_id=self.id)

    def holding(self, row: RawRow) -> DecodedRow:
        account_id = require(parse_string(row.get("Account Number")), "Account Number")
        security_id = _security_id(row)
        share_count = require(parse_double(row.get("Quantity")), "Quantity")
        if share_count == 0:
            raise RowRejected("zero quantity")

        decoded: DecodedRow = {
            HoldingField.account_id: account_id,
            HoldingField.security_id: security_id,
            HoldingField.share_count: share_count,
        }

        raw_basis = row.get("Average Cost Basis")
        share_basis = parse_double(raw_basis)
        if (share_basis is None or share_basis == 0) and parse_string(raw_basis) == NOT_APPLICABLE:
            last_price = parse_double(row.get("Last Price"))
            cost_basis = parse_double(row.get("Cost Basis Total"))
            if last_price == 1.0:
                # Cash (core money market), where the basis is par.
                share_basis = 1.0
            elif cost_basis is not None and cost_basis > 0:
                share_basis = cost_basis / share_count

        if share_basis is not None:
            decoded[HoldingField.share_basis] = share_basis
        return decoded

    def security(self, row: RawRow, *, timestamp: datetime | None = None) -> DecodedRow:
        decoded: DecodedRow = {
            SecurityField.security_id: _security_id(row),
            SecurityField.share_price: require(parse_double(row.get("Last Price")), "Last Price"),
        }
        if timestamp is not None:
            decoded[SecurityField.updated_at] = timestamp
        return decoded

    def account(self, row: RawRow) -> DecodedRow:
        return {
            AccountField.account_id: require(
                parse_string(row.get("Account Number")), "Account Number"
            ),
            AccountField.title: require(parse_string(row.get("Account Name")), "Account Name"),
        }

    def source_meta(self, text: str, *, url: str | None = None) -> DecodedRow:
        """Build the single source-metadata record for a positions document."""

        exported_at = None
        m = DATE_DOWNLOADED_RE.search(text)
        if m is not None:
            exported_at = parse_fido_exported_at(m.group(0))
            if exported_at is None:
                logger.debug("%s: unparsable download banner %r", self.id, m.group(0))

        decoded: DecodedRow = {
            SourceMetaField.source_meta_id: str(uuid.uuid4()),
            SourceMetaField.importer_id: self.id,
        }
        if url is not None:
            decoded[SourceMetaField.url] = url
        if exported_at is not None:
            decoded[SourceMetaField.exported_at] = exported_at
        return decoded


__all__ = ["FidoPositions", "PENDING_ACTIVITY"]
