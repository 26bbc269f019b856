"""Importer for Fidelity account history exports (``Accounts_History.csv``).

The export opens with a ``Brokerage`` banner and a blank line, then the table:

``Run Date, Account, Action, Symbol, Security Description, Security Type,``
``Quantity, Price ($), Commission ($), Fees ($), Accrued Interest ($),``
``Amount ($), Settlement Date``

followed by a blank line and a legal disclaimer. Each row becomes one
``openalloc/transaction`` record. The transaction kind is read off the
free-text ``Action`` column; sales arrive with negative quantities already.

There is no realized gain/loss information in this export; see
:mod:`.fido_sales_csv` for that.
"""

from __future__ import annotations

from datetime import datetime, tzinfo

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
from ...validation import RowRejected, decode_rows, parse_double, parse_string, require
from ..utils import (
    csv_block_pattern,
    detect_signature,
    extract_csv_block,
    normalize_decode,
    read_raw_rows,
    signature_pattern,
)

logger = get_logger("finporter_fido.ingest.adapters.fido_history_csv")

EXACT_HEADER = (
    "Run Date,Account,Action,Symbol,Security Description,Security Type,Quantity,"
    "Price ($),Commission ($),Fees ($),Accrued Interest ($),Amount ($),Settlement Date"
)

HEADER_RE = signature_pattern("Brokerage", "", EXACT_HEADER)

CSV_RE = csv_block_pattern(
    "Run Date,Account,Action,Symbol,Security Description,Security Type,Quantity,"
)

# Evaluated in order, first match wins.
ACTION_PREFIXES: tuple[tuple[str, Action], ...] = (
    ("YOU BOUGHT ", Action.buysell),
    ("PURCHASE INTO ", Action.buysell),
    ("YOU SOLD ", Action.buysell),
    ("REDEMPTION FROM ", Action.buysell),
    ("REINVESTMENT ", Action.buysell),
    ("TRANSFER OF ASSETS ", Action.transfer),
    ("DIVIDEND RECEIVED ", Action.income),
    ("LONG-TERM CAP GAIN ", Action.income),
    ("SHORT-TERM CAP GAIN ", Action.income),
    ("INTEREST EARNED ", Action.income),
)


def classify_action(raw_action: str) -> Action:
    """Map a free-text action description onto the four-way taxonomy."""

    for prefix, action in ACTION_PREFIXES:
        if raw_action.startswith(prefix):
            return action
    return Action.miscflow


def account_id_from_descriptor(descriptor: str | None) -> str | None:
    """Return the trailing identifier of ``"BROKERAGE 200000000"``-style text."""

    name_number = parse_string(descriptor)
    if name_number is None:
        return None
    tokens = name_number.split()
    return tokens[-1] if tokens else None


class FidoHistory:
    id = "fido_history"
    name = "Fido History"
    description = (
        "Detect and decode account history export files from Fidelity, "
        "for sale and purchase info."
    )
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

        csv_text = extract_csv_block(text, CSV_RE)
        if csv_text is None:
            logger.debug("%s: no history table found", self.id)
            return []

        return self.decode_delimited_rows(
            read_raw_rows(csv_text),
            rejected_rows,
            def_time_of_day=opts.def_time_of_day,
            time_zone=opts.time_zone or host_time_zone(),
        )

    def decode_delimited_rows(
        self,
        rows: list[RawRow],
        rejected_rows: list[RawRow],
        *,
        def_time_of_day: str | None = None,
        time_zone: tzinfo | None = None,
    ) -> list[DecodedRow]:
        """Decode already-tokenized history rows."""

        tz = time_zone or host_time_zone()

        def decode_row(row: RawRow) -> DecodedRow:
            raw_action = require(parse_string(row.get("Action")), "Action")
            transacted_at = require(
                parse_fido_mmddyyyy(row.get("Run Date"), def_time_of_day, time_zone=tz),
                "Run Date",
            )
            account_id = require(account_id_from_descriptor(row.get("Account")), "Account")
            return self.decode_row(row, transacted_at, raw_action, account_id)

        return decode_rows(rows, decode_row, rejected_rows, importer_id=self.id)

    def decode_row(
        self,
        row: RawRow,
        transacted_at: datetime,
        raw_action: str,
        account_id: str,
    ) -> DecodedRow:
        action = classify_action(raw_action)

        decoded: DecodedRow = {
            TransactionField.action: action,
            TransactionField.transacted_at: transacted_at,
            TransactionField.account_id: account_id,
        }

        amount = parse_double(row.get("Amount ($)"))
        symbol = parse_string(row.get("Symbol"))
        share_count = parse_double(row.get("Quantity"))
        share_price = parse_double(row.get("Price ($)"))

        match action:
            case Action.buysell:
                decoded[TransactionField.security_id] = require(symbol, "Symbol")
                decoded[TransactionField.share_count] = require(share_count, "Quantity")
                decoded[TransactionField.share_price] = require(share_price, "Price ($)")

            case Action.transfer if symbol is not None:
                quantity = require(share_count, "Quantity")
                if quantity == 0:
                    raise RowRejected("security transfer with zero quantity")
                decoded[TransactionField.share_count] = quantity
                decoded[TransactionField.security_id] = symbol
                # Security transfers may arrive without a share price.
                if share_price is not None:
                    decoded[TransactionField.share_price] = share_price

            case Action.transfer:
                # No symbol: a cash movement, where the amount is required.
                decoded[TransactionField.share_count] = require(amount, "Amount ($)")
                decoded[TransactionField.share_price] = 1.0

            case Action.income | Action.miscflow:
                decoded[TransactionField.share_count] = require(amount, "Amount ($)")
                decoded[TransactionField.share_price] = 1.0
                if symbol is not None:
                    decoded[TransactionField.security_id] = symbol

        return decoded


__all__ = ["ACTION_PREFIXES", "FidoHistory", "account_id_from_descriptor", "classify_action"]
