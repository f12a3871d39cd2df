"""Tests for the plrecon CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from profitloss.cli import app

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def batch_file(tmp_path: Path, sample_sales, sample_returns, sample_products, sample_purchases,
               sample_combos, sample_sheet_rows) -> Path:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps({
        "sales": sample_sales,
        "returns": sample_returns,
        "uploadedSheets": [{"_id": "sheet-1", "fileName": "march.csv", "uploadedData": sample_sheet_rows}],
        "products": sample_products,
        "purchases": sample_purchases,
        "combos": sample_combos,
    }))
    return path


@pytest.fixture
def imported_db(batch_file: Path, db_path: Path) -> Path:
    result = runner.invoke(app, ["import", str(batch_file), "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    return db_path


class TestHelp:
    def test_no_command_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "reconcile" in result.output


class TestImport:
    def test_import_json(self, batch_file, db_path):
        result = runner.invoke(app, ["import", str(batch_file), "--db", str(db_path)])
        assert result.exit_code == 0
        assert "Imported batch.json" in result.output
        assert db_path.exists()

    def test_import_csv(self, tmp_path, db_path):
        path = tmp_path / "sheet.csv"
        path.write_text("Order Date,Order id,SKU,Status,Payment,Purchase Price,Profit\n"
                        "2024-03-01,OD-1,MUG,Delivered,100,60,40\n")
        result = runner.invoke(app, ["import", str(path), "--db", str(db_path)])
        assert result.exit_code == 0
        assert "Sheets" in result.output

    def test_unsupported_extension(self, tmp_path, db_path):
        path = tmp_path / "data.xml"
        path.write_text("<x/>")
        result = runner.invoke(app, ["import", str(path), "--db", str(db_path)])
        assert result.exit_code == 1

    def test_missing_file(self, tmp_path, db_path):
        result = runner.invoke(app, ["import", str(tmp_path / "nope.json"), "--db", str(db_path)])
        assert result.exit_code == 1

    def test_db_from_environment(self, batch_file, db_path):
        result = runner.invoke(app, ["import", str(batch_file)], env={"PLRECON_DB": str(db_path)})
        assert result.exit_code == 0
        assert db_path.exists()


class TestReconcile:
    def test_json_output(self, imported_db):
        result = runner.invoke(app, ["reconcile", "--json", "--db", str(imported_db)])
        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert body["summary"]["totalProfit"] == "454.00"
        assert body["summary"]["totalRecords"] == 7
        assert [m["month"] for m in body["monthlyChartData"]] == ["2024-03", "2024-04"]
        assert body["profitData"][0]["sourceId"] == "upload:sheet-1:1"

    def test_date_range(self, imported_db):
        result = runner.invoke(app, [
            "reconcile", "--start", "2024-04-01", "--end", "2024-04-30", "--json", "--all-time",
            "--db", str(imported_db),
        ])
        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert body["summary"]["totalProfit"] == "145.00"
        assert body["allTimeSummary"]["totalProfit"] == "454.00"

    def test_table_output(self, imported_db):
        result = runner.invoke(app, ["reconcile", "--db", str(imported_db)])
        assert result.exit_code == 0
        assert "Profit Summary" in result.output
        assert "March 2024" in result.output

    def test_start_after_end(self, imported_db):
        result = runner.invoke(app, [
            "reconcile", "--start", "2024-05-01", "--end", "2024-04-01", "--db", str(imported_db),
        ])
        assert result.exit_code == 1

    def test_bad_date(self, imported_db):
        result = runner.invoke(app, ["reconcile", "--start", "March", "--db", str(imported_db)])
        assert result.exit_code == 1

    def test_no_database(self, db_path):
        result = runner.invoke(app, ["reconcile", "--db", str(db_path)])
        assert result.exit_code == 1


class TestReport:
    def test_writes_statement(self, imported_db, tmp_path):
        out = tmp_path / "reports"
        result = runner.invoke(app, [
            "report", "--start", "2024-03-01", "--end", "2024-03-31",
            "--output", str(out), "--db", str(imported_db),
        ])
        assert result.exit_code == 0, result.output
        text = (out / "profit_loss_2024-03-01_2024-03-31.txt").read_text()
        assert "Total profit:      309.00" in text


class TestSheets:
    def test_lists_sheets(self, imported_db):
        result = runner.invoke(app, ["sheets", "--db", str(imported_db)])
        assert result.exit_code == 0
        assert "march.csv" in result.output
        assert "sheet-1" in result.output

    def test_totals_footer(self, imported_db, tmp_path):
        extra = tmp_path / "april.json"
        extra.write_text(json.dumps({"uploadedSheets": [{
            "_id": "sheet-2",
            "fileName": "april.csv",
            "uploadedData": [{"Order id": "OD-2001", "Status": "Delivered", "Profit": "50"}],
        }]}))
        assert runner.invoke(app, ["import", str(extra), "--db", str(imported_db)]).exit_code == 0
        result = runner.invoke(app, ["sheets", "--db", str(imported_db)])
        assert result.exit_code == 0
        assert "Total" in result.output
        assert "2 upload(s)" in result.output
        assert "349.00" in result.output

    def test_summary_only(self, imported_db):
        result = runner.invoke(app, ["sheets", "--summary", "--db", str(imported_db)])
        assert result.exit_code == 0
        assert "Net profit" in result.output
        assert "299.00" in result.output
        assert "march.csv" not in result.output

    def test_no_sheets(self, db_path, tmp_path):
        empty = tmp_path / "empty.json"
        empty.write_text(json.dumps({"sales": [{"_id": "s", "saleDate": "2024-03-01", "items": []}]}))
        assert runner.invoke(app, ["import", str(empty), "--db", str(db_path)]).exit_code == 0
        result = runner.invoke(app, ["sheets", "--db", str(db_path)])
        assert "No uploaded sheets found." in result.output


class TestItemRoundTrips:
    def test_update_item(self, imported_db):
        result = runner.invoke(app, [
            "update-item", "sale:s-2:si-3", "--set", "unitPrice=170", "--db", str(imported_db),
        ])
        assert result.exit_code == 0, result.output
        body = json.loads(runner.invoke(app, ["reconcile", "--json", "--db", str(imported_db)]).output)
        assert body["summary"]["totalProfit"] == "474.00"

    def test_update_item_bad_assignment(self, imported_db):
        result = runner.invoke(app, [
            "update-item", "sale:s-2:si-3", "--set", "unitPrice", "--db", str(imported_db),
        ])
        assert result.exit_code == 1

    def test_delete_item(self, imported_db):
        result = runner.invoke(app, ["delete-item", "return:r-1:0", "--db", str(imported_db)])
        assert result.exit_code == 0
        body = json.loads(runner.invoke(app, ["reconcile", "--json", "--db", str(imported_db)]).output)
        assert body["summary"]["totalProfit"] == "474.00"
        assert body["summary"]["rtoProfit"] == "0.00"

    def test_delete_unknown_item(self, imported_db):
        result = runner.invoke(app, ["delete-item", "sale:nope:0", "--db", str(imported_db)])
        assert result.exit_code == 1

    def test_delete_malformed_id(self, imported_db):
        result = runner.invoke(app, ["delete-item", "nope", "--db", str(imported_db)])
        assert result.exit_code == 1
