"""Importer for Fidelity realized gain/loss exports.

Input is ``Realized_Gain_Loss_Account_XXXXXXXX.csv`` from the "Closed
Positions" page of a taxable account. Every row is a realized sale, so each
becomes an ``openalloc/transaction`` with action ``buysell`` and a negated
share count (the export reports positive magnitudes).

The account number is not a column; it is recovered from the document URL
(``...Account_X12345678.csv``) passed as ``DecodeOptions.url``. Without it the
account id is the empty string rather than a rejection.
"""

from __future__ import annotations

import re
from datetime import tzinfo
from urllib.parse import unquote, urlsplit

from ...dates import host_time_zone, parse_fido_mmddyyyy
from ...errors import DecodingError
from ...logging_setup import get_logger
from ...models import (
    Action,
    AllocFormat,
    AllocSchema,
    DecodedRow,
    DecodeOptions,
    DetectResult,
    RawRow,
    TransactionField,
)
from ...validation import decode_rows, parse_double, parse_string, require
from ..utils import (
    csv_block_pattern,
    detect_signature,
    extract_csv_block,
    normalize_decode,
    read_raw_rows,
    signature_pattern,
)

logger = get_logger("finporter_fido.ingest.adapters.fido_sales_csv")

EXACT_HEADER = (
    "Symbol(CUSIP),Security Description,Quantity,Date Acquired,Date Sold,"
    "Proceeds,Cost Basis,Short Term Gain/Loss,Long Term Gain/Loss"
)

HEADER_RE = signature_pattern(EXACT_HEADER)

CSV_RE = csv_block_pattern("Symbol(CUSIP),Security Description,Quantity,")

ACCOUNT_ID_RE = re.compile(r"[A-Za-z0-9]+(?=\.)")


def account_id_from_url(url: str | None) -> str | None:
    """Extract ``X12345678`` from ``.../Realized_Gain_Loss_Account_X12345678.csv``.

    Only the last path segment is searched, so host and directory names never
    yield an account id.
    """

    if not url:
        return None
    file_name = unquote(urlsplit(url).path).rsplit("/", 1)[-1]
    matches = ACCOUNT_ID_RE.findall(file_name)
    return matches[-1] if matches else None


class FidoSales:
    id = "fido_sales"
    name = "Fido Sales"
    description = "Detect and decode realized sale export files from Fidelity."
    source_formats = (AllocFormat.CSV,)
    output_schemas = (AllocSchema.allocTransaction,)

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

        account_id = account_id_from_url(opts.url)
        if account_id is None:
            logger.debug("%s: no account id in url %r", self.id, opts.url)

        csv_text = extract_csv_block(text, CSV_RE)
        if csv_text is None:
            logger.debug("%s: no realized gain/loss table found", self.id)
            return []

        return self.decode_delimited_rows(
            read_raw_rows(csv_text),
            rejected_rows,
            account_id=account_id,
            def_time_of_day=opts.def_time_of_day,
            time_zone=opts.time_zone or host_time_zone(),
        )

    def decode_delimited_rows(
        self,
        rows: list[RawRow],
        rejected_rows: list[RawRow],
        *,
        account_id: str | None,
        def_time_of_day: str | None = None,
        time_zone: tzinfo | None = None,
    ) -> list[DecodedRow]:
        tz = time_zone or host_time_zone()

        def decode_row(row: RawRow) -> DecodedRow:
            symbol_cusip = require(parse_string(row.get("Symbol(CUSIP)")), "Symbol(CUSIP)")
            symbol = require(parse_string(symbol_cusip.split("(", 1)[0]), "Symbol(CUSIP)")
            quantity = require(parse_double(row.get("Quantity")), "Quantity")
            proceeds = require(parse_double(row.get("Proceeds")), "Proceeds")
            transacted_at = require(
                parse_fido_mmddyyyy(row.get("Date Sold"), def_time_of_day, time_zone=tz),
                "Date Sold",
            )

            decoded: DecodedRow = {
                TransactionField.action: Action.buysell,
                TransactionField.transacted_at: transacted_at,
                TransactionField.account_id: account_id or "",
                TransactionField.security_id: symbol,
                TransactionField.lot_id: "",
                # Negative because a sale reduces the position.
                TransactionField.share_count: -1 * quantity,
            }
            if quantity != 0:
                decoded[TransactionField.share_price] = proceeds / quantity

            realized_short = parse_double(row.get("Short Term Gain/Loss"))
            if realized_short is not None:
                decoded[TransactionField.realized_gain_short] = realized_short
            realized_long = parse_double(row.get("Long Term Gain/Loss"))
            if realized_long is not None:
                decoded[TransactionField.realized_gain_long] = realized_long
            return decoded

        return decode_rows(rows, decode_row, rejected_rows, importer_id=self.id)


__all__ = ["FidoSales", "account_id_from_url"]
