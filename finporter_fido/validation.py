"""Row validation helpers and the rejected-row sink.

Per-row decoders read cells through :func:`parse_string` and
:func:`parse_double`, and signal a missing or underivable required field by
raising :class:`RowRejected`. :func:`decode_rows` turns that signal into an
entry in the caller's ``rejected_rows`` list, so a bad row never aborts the
document and is never silently dropped.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import TypeVar

from .logging_setup import get_logger
from .models import DecodedRow, RawRow

logger = get_logger("finporter_fido.validation")

T = TypeVar("T")

# Digits with an optional fraction; exponents, underscores and nan/inf spellings
# are not vendor formats.
_PLAIN_DECIMAL_RE = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+")


class RowRejected(Exception):  # noqa: N818 - a signal, not an error
    """Raised by a per-row decoder when the row cannot become a record."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def parse_string(value: str | None, trim_characters: str = "") -> str | None:
    """Return ``value`` stripped of whitespace and ``trim_characters``.

    Empty results collapse to ``None`` so that blank cells read as absent.
    """

    if value is None:
        return None
    s = value.strip()
    if trim_characters:
        s = s.strip(trim_characters + " \t\r\n")
    return s or None


def parse_double(value: str | None) -> float | None:
    """Parse a currency/quantity cell such as ``"+$1,234.50"`` or ``"(7.00)"``.

    Returns ``None`` for blank cells and non-numeric markers like ``n/a``.
    """

    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    negative = False
    # Strip leading sign, currency symbol and accounting parentheses in any
    # order until stable.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = not negative
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.removesuffix("%").replace(",", "").strip()
    if _PLAIN_DECIMAL_RE.fullmatch(s) is None:
        return None
    d = float(s)
    return -d if negative else d


def require(value: T | None, field: str) -> T:
    """Return ``value`` or reject the row naming the missing ``field``."""

    if value is None:
        raise RowRejected(f"missing required field {field!r}")
    return value


def decode_rows(
    rows: Iterable[RawRow],
    decode_row: Callable[[RawRow], DecodedRow],
    rejected_rows: list[RawRow],
    *,
    importer_id: str,
) -> list[DecodedRow]:
    """Decode ``rows`` in order, appending rejected rows to ``rejected_rows``."""

    decoded: list[DecodedRow] = []
    rejected = 0
    for row in rows:
        try:
            decoded.append(decode_row(row))
        except RowRejected as rr:
            rejected_rows.append(row)
            rejected += 1
            logger.debug("%s: rejected row (%s): %r", importer_id, rr.reason, row)

    logger.debug("%s: decoded %d row(s), rejected %d", importer_id, len(decoded), rejected)
    return decoded


__all__ = ["RowRejected", "decode_rows", "parse_double", "parse_string", "require"]
