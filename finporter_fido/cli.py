"""CLI for the ``finporter_fido`` package.

Two commands wrap the importers:

- ``detect PATH``: report which importers recognize a file and the record
  kinds each can produce.
- ``decode PATH``: decode a file and print canonical records as JSON lines on
  stdout; rejected rows are counted (and optionally listed) on stderr.

Defaults for the time zone and time of day come from
``FINPORTER_FIDO_TIME_ZONE`` / ``FINPORTER_FIDO_TIME_OF_DAY``, which may be set
in a local ``.env`` loaded with ``python-dotenv``.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .dates import host_time_zone
from .errors import FINporterError
from .logging_setup import configure_logging, get_logger
from .models import AllocSchema, DecodedRow, DecodeOptions, RawRow
from .registry import get_importer, prospect

logger = get_logger("finporter_fido.cli")

# Enough to hold the preamble and header line of every supported export.
DETECT_PREFIX_BYTES = 8192


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def _dump(row: DecodedRow | RawRow) -> str:
    return json.dumps(row, default=_json_default, sort_keys=True)


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        typer.echo(f"Error: File not found: {path}", err=True)
        raise typer.Exit(1) from None
    except PermissionError:
        typer.echo(f"Error: Permission denied: {path}", err=True)
        raise typer.Exit(1) from None


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Detect and decode Fidelity brokerage exports into canonical records.",
)


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level; DEBUG explains rejects. Default: FINPORTER_FIDO_LOG_LEVEL or INFO.",
        ),
    ] = None,
) -> None:
    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from None


@app.command("detect")
def detect_cmd(
    path: Annotated[Path, typer.Argument(help="Export file to inspect", dir_okay=False)],
) -> None:
    """List the importers that recognize PATH."""

    data = _read_bytes(path)
    found = prospect(data[:DETECT_PREFIX_BYTES])
    if not found:
        typer.echo(f"Error: no importer recognizes {path}", err=True)
        raise typer.Exit(1)

    for imp, result in found.items():
        kinds = " ".join(
            f"{schema.value}={','.join(f.value for f in formats)}"
            for schema, formats in result.items()
        )
        typer.echo(f"{imp.id}\t{kinds}")


@app.command("decode")
def decode_cmd(
    path: Annotated[Path, typer.Argument(help="Export file to decode", dir_okay=False)],
    importer_id: Annotated[
        str | None,
        typer.Option("--importer", help="Importer id; detected from the file when omitted."),
    ] = None,
    schema: Annotated[
        str | None,
        typer.Option("--schema", help="Record kind, e.g. openalloc/holding."),
    ] = None,
    time_zone: Annotated[
        str | None,
        typer.Option(envvar="FINPORTER_FIDO_TIME_ZONE", help="IANA zone; host zone when unset."),
    ] = None,
    time_of_day: Annotated[
        str | None,
        typer.Option(envvar="FINPORTER_FIDO_TIME_OF_DAY", help="HH:MM applied to bare dates."),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option(help="Source URL; defaults to the file's own file:// URL."),
    ] = None,
    timestamp: Annotated[
        str | None,
        typer.Option(help="ISO 8601 as-of time stamped onto security records."),
    ] = None,
    show_rejects: Annotated[
        bool, typer.Option("--show-rejects", help="Print rejected rows to stderr.")
    ] = False,
) -> None:
    """Decode PATH and print one JSON record per line."""

    data = _read_bytes(path)

    if importer_id is None:
        found = prospect(data[:DETECT_PREFIX_BYTES])
        if len(found) != 1:
            typer.echo(
                f"Error: {len(found)} importers recognize {path}; pass --importer",
                err=True,
            )
            raise typer.Exit(1)
        imp = next(iter(found))
    else:
        try:
            imp = get_importer(importer_id)
        except KeyError as e:
            typer.echo(f"Error: {e.args[0]}", err=True)
            raise typer.Exit(1) from None

    try:
        zone = DecodeOptions(time_zone=time_zone).time_zone
        as_of = datetime.fromisoformat(timestamp) if timestamp else None
        if as_of is not None and as_of.tzinfo is None:
            # A bare wall time is read in the decode zone.
            as_of = as_of.replace(tzinfo=zone or host_time_zone())
        options = DecodeOptions(
            time_zone=zone,
            def_time_of_day=time_of_day,
            output_schema=AllocSchema(schema) if schema else None,
            url=url or path.resolve().as_uri(),
            timestamp=as_of,
        )
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: invalid option: {e}", err=True)
        raise typer.Exit(1) from None

    rejected: list[RawRow] = []
    try:
        rows = imp.decode(data, rejected, options)
    except csv.Error as e:
        typer.echo(f"Error: Failed to parse CSV: {e}", err=True)
        raise typer.Exit(1) from None
    except FINporterError as e:
        typer.echo(f"Error: {imp.id}: {e}", err=True)
        raise typer.Exit(1) from None

    for row in rows:
        typer.echo(_dump(row))

    logger.info("%s: %d record(s), %d rejected row(s) from %s", imp.id, len(rows), len(rejected), path)
    typer.echo(f"rejected: {len(rejected)}", err=True)
    if show_rejects:
        for raw in rejected:
            typer.echo(_dump(raw), err=True)


if __name__ == "__main__":  # pragma: no cover
    app()
