# ruff: noqa: E501
import json

import pytest
from typer.testing import CliRunner

from finporter_fido import (
    IMPORTERS,
    AllocFormat,
    AllocSchema,
    FidoHistory,
    FidoPositions,
    FidoSales,
    get_importer,
    prospect,
)
from finporter_fido.cli import app

HISTORY_HEADER = "Run Date,Account,Action,Symbol,Security Description,Security Type,Quantity,Price ($),Commission ($),Fees ($),Accrued Interest ($),Amount ($),Settlement Date"
POSITIONS_HEADER = "Account Number,Account Name,Symbol,Description,Quantity,Last Price,Last Price Change,Current Value,Today's Gain/Loss Dollar,Today's Gain/Loss Percent,Total Gain/Loss Dollar,Total Gain/Loss Percent,Percent Of Account,Cost Basis Total,Average Cost Basis,Type"
SALES_HEADER = "Symbol(CUSIP),Security Description,Quantity,Date Acquired,Date Sold,Proceeds,Cost Basis,Short Term Gain/Loss,Long Term Gain/Loss"

HISTORY_DOC = (
    f"\n\nBrokerage\n\n{HISTORY_HEADER}\n"
    "07/30/2021,BROKERAGE 200000000, YOU BOUGHT VANGUARD FTSE DEV (VEA) (Cash), VEA, VANGUARD FTSE DEV,Cash,0.446,51.38,,,,-22.92,08/02/2021\n"
    "07/30/2021,,,,,,,,,,,,\n"
    "\nDisclaimer\n"
)
POSITIONS_DOC = (
    f"{POSITIONS_HEADER}\n"
    'Z00000000,AAAA,VWO,VANGUARD FTSE EMR MKT ETF,900,$50.922,+$0.160,"$45,900.35",+$150.25,+0.32%,"+$11,945.20",+31.10%,15.05%,"$38,362.05",$28.96,Cash,\n'
    "\n"
    '"Date downloaded 07/30/2021 2:26 PM ET"\n'
)
SALES_DOC = (
    f"{SALES_HEADER}\n"
    "VEA(100000000),VANGUARD FTSE DEV,3.0,08/31/2020,01/29/2021,$12.00,$10.00,$1.50,$0.50\n"
)

runner = CliRunner()


def _records(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_ids_are_unique():
    assert [imp.id for imp in IMPORTERS] == ["fido_history", "fido_positions", "fido_sales"]


def test_get_importer():
    assert isinstance(get_importer("fido_sales"), FidoSales)
    with pytest.raises(KeyError):
        get_importer("fido_nope")


@pytest.mark.parametrize(
    ("doc", "cls"),
    [(HISTORY_DOC, FidoHistory), (POSITIONS_DOC, FidoPositions), (SALES_DOC, FidoSales)],
)
def test_prospect_finds_exactly_one_dialect(doc, cls):
    found = prospect(doc.encode())
    assert len(found) == 1
    (imp,) = found
    assert isinstance(imp, cls)
    assert all(formats == [AllocFormat.CSV] for formats in found[imp].values())


def test_prospect_without_csv_format_finds_nothing():
    assert prospect(SALES_DOC.encode(), source_formats=()) == {}


def test_prospect_unknown_document():
    assert prospect(b"Date,Description,Amount\n01/01/2021,Coffee,-3.00\n") == {}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def test_cli_detect(tmp_path):
    p = tmp_path / "Portfolio_Positions_Jul-30-2021.csv"
    p.write_text(POSITIONS_DOC, encoding="utf-8")

    result = runner.invoke(app, ["detect", str(p)])

    assert result.exit_code == 0, result.output
    assert "fido_positions" in result.output
    assert AllocSchema.allocHolding.value in result.output


def test_cli_detect_unknown_file(tmp_path):
    p = tmp_path / "other.csv"
    p.write_text("a,b\n1,2\n", encoding="utf-8")
    result = runner.invoke(app, ["detect", str(p)])
    assert result.exit_code == 1


def test_cli_decode_history(tmp_path):
    p = tmp_path / "Accounts_History.csv"
    p.write_text(HISTORY_DOC, encoding="utf-8")

    result = runner.invoke(
        app, ["decode", str(p), "--time-zone", "America/New_York", "--show-rejects"]
    )

    assert result.exit_code == 0, result.output
    records = _records(result.stdout)
    assert records[0] == {
        "txnAction": "buysell",
        "txnTransactedAt": "2021-07-30T16:00:00Z",
        "txnAccountID": "200000000",
        "txnSecurityID": "VEA",
        "txnShareCount": 0.446,
        "txnSharePrice": 51.38,
    }
    assert "rejected: 1" in result.output


def test_cli_decode_sales_account_from_file_name(tmp_path):
    p = tmp_path / "Realized_Gain_Loss_Account_X12345678.csv"
    p.write_text(SALES_DOC, encoding="utf-8")

    result = runner.invoke(app, ["decode", str(p), "--importer", "fido_sales", "--time-zone", "UTC"])

    assert result.exit_code == 0, result.output
    (record,) = _records(result.stdout)
    assert record["txnAccountID"] == "X12345678"
    assert record["txnTransactedAt"] == "2021-01-29T12:00:00Z"


def test_cli_decode_time_zone_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("FINPORTER_FIDO_TIME_ZONE", "America/Denver")
    monkeypatch.setenv("FINPORTER_FIDO_TIME_OF_DAY", "13:00")
    p = tmp_path / "Accounts_History.csv"
    p.write_text(HISTORY_DOC, encoding="utf-8")

    result = runner.invoke(app, ["decode", str(p)])

    assert result.exit_code == 0, result.output
    assert _records(result.stdout)[0]["txnTransactedAt"] == "2021-07-30T19:00:00Z"


def test_cli_decode_positions_meta(tmp_path):
    p = tmp_path / "Portfolio_Positions_Jul-30-2021.csv"
    p.write_text(POSITIONS_DOC, encoding="utf-8")

    result = runner.invoke(
        app, ["decode", str(p), "--schema", "openalloc/meta/source", "--url", "http://blah.com"]
    )

    assert result.exit_code == 0, result.output
    (meta,) = _records(result.stdout)
    assert meta["exportedAt"] == "2021-07-30T18:26:00Z"
    assert meta["url"] == "http://blah.com"


def test_cli_decode_positions_requires_schema(tmp_path):
    p = tmp_path / "Portfolio_Positions_Jul-30-2021.csv"
    p.write_text(POSITIONS_DOC, encoding="utf-8")

    result = runner.invoke(app, ["decode", str(p)])

    assert result.exit_code == 1
    assert _records(result.stdout) == []


@pytest.mark.parametrize(
    "args",
    [
        ["--importer", "fido_nope"],
        ["--time-zone", "Mars/Olympus_Mons"],
        ["--schema", "openalloc/nope"],
        ["--timestamp", "yesterday"],
    ],
)
def test_cli_decode_bad_options(tmp_path, args):
    p = tmp_path / "Accounts_History.csv"
    p.write_text(HISTORY_DOC, encoding="utf-8")
    result = runner.invoke(app, ["decode", str(p), *args])
    assert result.exit_code == 1


def test_cli_decode_missing_file(tmp_path):
    result = runner.invoke(app, ["decode", str(tmp_path / "missing.csv")])
    assert result.exit_code == 1


def test_cli_debug_log_level_explains_rejects(tmp_path):
    p = tmp_path / "Accounts_History.csv"
    p.write_text(HISTORY_DOC, encoding="utf-8")

    result = runner.invoke(
        app, ["--log-level", "DEBUG", "decode", str(p), "--time-zone", "America/New_York"]
    )

    assert result.exit_code == 0, result.output
    assert "rejected row (missing required field 'Action')" in result.output
    assert len(_records(result.stdout)) == 1


def test_cli_unknown_log_level(tmp_path):
    p = tmp_path / "Accounts_History.csv"
    p.write_text(HISTORY_DOC, encoding="utf-8")
    result = runner.invoke(app, ["--log-level", "LOUD", "decode", str(p)])
    assert result.exit_code != 0
    assert _records(result.stdout) == []


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [
        ("2021-07-30T14:00", "2021-07-30T18:00:00Z"),
        ("2021-07-30T14:00-05:00", "2021-07-30T19:00:00Z"),
    ],
)
def test_cli_timestamp_is_stamped_in_utc(tmp_path, timestamp, expected):
    p = tmp_path / "Portfolio_Positions_Jul-30-2021.csv"
    p.write_text(POSITIONS_DOC, encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "decode",
            str(p),
            "--schema",
            "openalloc/security",
            "--time-zone",
            "America/New_York",
            "--timestamp",
            timestamp,
        ],
    )

    assert result.exit_code == 0, result.output
    (security,) = _records(result.stdout)
    assert security == {"securityID": "VWO", "sharePrice": 50.922, "updatedAt": expected}
