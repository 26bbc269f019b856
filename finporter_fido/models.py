"""Canonical record kinds, field names, and decode options.

The field-name strings and enum values below are the contract with the
downstream allocation pipeline and must match it exactly. Decoded rows are
plain dictionaries keyed by these names; values are ``str``, ``float``,
timezone-aware ``datetime`` (UTC) or :class:`Action`.
"""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Formats, record kinds, and the transaction action taxonomy
# ---------------------------------------------------------------------------


class AllocFormat(StrEnum):
    CSV = "csv"


class AllocSchema(StrEnum):
    """Canonical record kinds an importer can produce."""

    allocTransaction = "openalloc/transaction"
    allocHolding = "openalloc/holding"
    allocSecurity = "openalloc/security"
    allocAccount = "openalloc/account"
    allocMetaSource = "openalloc/meta/source"


class Action(StrEnum):
    """Closed classification of a transaction row."""

    buysell = "buysell"
    transfer = "transfer"
    income = "income"
    miscflow = "miscflow"


# ---------------------------------------------------------------------------
# Field names per record kind
# ---------------------------------------------------------------------------


class TransactionField:
    action = "txnAction"
    transacted_at = "txnTransactedAt"
    account_id = "txnAccountID"
    security_id = "txnSecurityID"
    lot_id = "txnLotID"
    share_count = "txnShareCount"
    share_price = "txnSharePrice"
    realized_gain_short = "realizedGainShort"
    realized_gain_long = "realizedGainLong"


class HoldingField:
    account_id = "holdingAccountID"
    security_id = "holdingSecurityID"
    share_count = "shareCount"
    share_basis = "shareBasis"


class SecurityField:
    security_id = "securityID"
    share_price = "sharePrice"
    updated_at = "updatedAt"


class AccountField:
    account_id = "accountID"
    title = "title"


class SourceMetaField:
    source_meta_id = "sourceMetaID"
    url = "url"
    importer_id = "importerID"
    exported_at = "exportedAt"


# ---------------------------------------------------------------------------
# Row containers
# ---------------------------------------------------------------------------

type RawRow = dict[str, str]
"""One tabular line keyed by header column name.

Columns absent from a short source line are omitted rather than set to an
empty value.
"""

type DecodedRow = dict[str, Any]
"""One canonical record keyed by the field names above."""

type DetectResult = dict[AllocSchema, list[AllocFormat]]
"""Record kinds an importer believes it can produce, each with its formats."""


# ---------------------------------------------------------------------------
# Decode options
# ---------------------------------------------------------------------------


class DecodeOptions(BaseModel):
    """Per-call decode configuration.

    ``time_zone`` accepts a ``tzinfo`` or an IANA zone name. When it is
    ``None`` the importers fall back to the host's local zone; the date
    resolver itself never does. ``timestamp`` must be timezone-aware and is
    stored in UTC.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    time_zone: tzinfo | None = None
    def_time_of_day: str | None = None
    output_schema: AllocSchema | None = None
    url: str | None = None
    timestamp: datetime | None = None

    @field_validator("time_zone", mode="before")
    @classmethod
    def _zone_from_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            name = v.strip()
            if not name:
                return None
            try:
                return ZoneInfo(name)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"unknown time zone: {v!r}") from exc
        return v

    @field_validator("timestamp")
    @classmethod
    def _timestamp_to_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("timestamp must carry a UTC offset")
        return v.astimezone(UTC)


__all__ = [
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
]
