"""Shared decode steps: text decoding, detection, block extraction, tokenizing.

Fidelity exports wrap the actual table in a free-text preamble (a document
banner, blank lines) and often a trailing disclaimer. The table itself never
contains a blank line, so the block runs from the header through the last
contiguous non-blank line.
"""

from __future__ import annotations

import csv
import re
from collections.abc import Sequence
from io import StringIO

from ..models import AllocFormat, AllocSchema, DetectResult, RawRow

_ENCODINGS = ("utf-8-sig", "cp1252")

# One or more non-blank lines, each ending in a line break or end of text.
_LINES_TO_BLANK = r"(?:[^\r\n]+(?:\r?\n|\Z))+"


def normalize_decode(data: bytes) -> str | None:
    """Decode export bytes, preferring UTF-8 and falling back to Windows-1252."""

    for encoding in _ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return None


def signature_pattern(*lines: str) -> re.Pattern[str]:
    """Compile literal header ``lines`` into a detection pattern.

    Lines must appear consecutively; either line ending is accepted between
    them. Blank entries stand for blank lines in the preamble.
    """

    return re.compile(r"\r?\n".join(re.escape(line) for line in lines))


def detect_signature(
    data_prefix: bytes,
    pattern: re.Pattern[str],
    output_schemas: Sequence[AllocSchema],
) -> DetectResult:
    """Advertise ``output_schemas`` as CSV when ``pattern`` occurs in the prefix."""

    text = normalize_decode(data_prefix)
    if text is None or pattern.search(text) is None:
        return {}

    result: DetectResult = {}
    for schema in output_schemas:
        result.setdefault(schema, []).append(AllocFormat.CSV)
    return result


def csv_block_pattern(header_prefix: str) -> re.Pattern[str]:
    """Pattern matching ``header_prefix`` through the first blank line."""

    return re.compile(re.escape(header_prefix) + _LINES_TO_BLANK)


def extract_csv_block(text: str, pattern: re.Pattern[str]) -> str | None:
    """Return the embedded CSV table inside ``text``, or ``None`` if absent."""

    m = pattern.search(text)
    return m.group(0) if m else None


def read_raw_rows(csv_text: str) -> list[RawRow]:
    """Tokenize a CSV block into raw rows keyed by header name.

    Cells missing from short lines are omitted; overflow cells that have no
    header (e.g. a trailing comma) are dropped. Structurally broken CSV raises
    ``csv.Error``.
    """

    with StringIO(csv_text, newline="") as f:
        reader = csv.DictReader(f, strict=True)
        rows: list[RawRow] = []
        for row in reader:
            rows.append({k: v for k, v in row.items() if k is not None and v is not None})
        return rows


__all__ = [
    "csv_block_pattern",
    "detect_signature",
    "extract_csv_block",
    "normalize_decode",
    "read_raw_rows",
    "signature_pattern",
]
