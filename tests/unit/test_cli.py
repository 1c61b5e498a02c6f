"""Test CLI functionality."""

import json
import os

import click
import pytest
from click.testing import CliRunner

from thesis_assets.assets.payloads import PNG_SIGNATURE
from thesis_assets.cli import cli, main


@pytest.fixture
def runner() -> CliRunner:
    """Return a CLI runner."""
    return CliRunner()


@pytest.fixture
def populated(registrar, sample_table):
    """Register a table and a figure."""
    table = registrar.save_table(
        sample_table, "policy_analysis", "policy_impact", tags=["thesis"]
    )
    figure = registrar.save_figure(PNG_SIGNATURE + b"x", "forecasting", "lstm_forecast")
    return registrar, table, figure


class TestCLI:
    """Test CLI commands and functionality."""

    def test_main_function_exists(self) -> None:
        """Test that main function exists and is callable."""
        assert callable(main)

    def test_cli_group_exists(self) -> None:
        """Test that CLI group exists."""
        assert isinstance(cli, click.Group)

    def test_cli_help(self, runner) -> None:
        """Test CLI help command."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ["init", "list", "show", "verify", "stats", "cite", "status"]:
            assert command in result.output

    def test_cli_version(self, runner) -> None:
        """Test CLI version option."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_init_creates_tree(self, runner, tmp_path) -> None:
        """Test init creates the directory tree."""
        root = tmp_path / "thesis_outputs"

        result = runner.invoke(cli, ["init", "--root", str(root)])

        assert result.exit_code == 0
        assert (root / "figures").is_dir()
        assert (root / "manifests").is_dir()

    def test_list_json(self, runner, populated, asset_root) -> None:
        """Test listing as JSON."""
        _, table, figure = populated

        result = runner.invoke(cli, ["list", "--root", str(asset_root), "-f", "json"])

        assert result.exit_code == 0
        records = json.loads(result.output)
        assert [r["id"] for r in records] == [table.id, figure.id]

    def test_list_filters(self, runner, populated, asset_root) -> None:
        """Test category and tag filters."""
        _, table, _ = populated

        by_category = runner.invoke(
            cli,
            ["list", "--root", str(asset_root), "-c", "table", "-f", "json"],
        )
        by_tag = runner.invoke(
            cli, ["list", "--root", str(asset_root), "-t", "thesis", "-f", "json"]
        )
        by_section = runner.invoke(
            cli,
            ["list", "--root", str(asset_root), "-s", "forecasting", "-f", "json"],
        )

        assert [r["id"] for r in json.loads(by_category.output)] == [table.id]
        assert [r["id"] for r in json.loads(by_tag.output)] == [table.id]
        assert [r["name"] for r in json.loads(by_section.output)] == ["lstm_forecast"]

    def test_list_table_empty(self, runner, asset_root) -> None:
        """Test the table view of an empty manifest."""
        result = runner.invoke(cli, ["list", "--root", str(asset_root)])

        assert result.exit_code == 0
        assert "No assets found" in result.output

    def test_list_table(self, runner, populated, asset_root) -> None:
        """Test the table view lists registered assets."""
        result = runner.invoke(cli, ["list", "--root", str(asset_root)])

        assert result.exit_code == 0
        assert "Registered Assets" in result.output

    def test_show(self, runner, populated, asset_root) -> None:
        """Test showing one record."""
        _, table, _ = populated

        result = runner.invoke(cli, ["show", table.id, "--root", str(asset_root)])

        assert result.exit_code == 0
        assert json.loads(result.output)["filename"] == table.filename

    def test_show_unknown(self, runner, asset_root) -> None:
        """Test showing an unknown ID fails."""
        result = runner.invoke(cli, ["show", "nope", "--root", str(asset_root)])

        assert result.exit_code == 1
        assert "No asset with id nope" in result.output

    def test_verify(self, runner, populated, asset_root) -> None:
        """Test verify passes, then fails once a file is removed."""
        _, _, figure = populated

        ok = runner.invoke(cli, ["verify", "--root", str(asset_root)])
        os.remove(figure.path)
        missing = runner.invoke(cli, ["verify", "--root", str(asset_root)])

        assert ok.exit_code == 0
        assert "All registered assets are present" in ok.output
        assert missing.exit_code == 1
        assert "Missing" in missing.output

    def test_stats(self, runner, populated, asset_root) -> None:
        """Test statistics output."""
        result = runner.invoke(cli, ["stats", "--root", str(asset_root)])

        assert result.exit_code == 0
        assert "Total assets: 2" in result.output

    def test_cite_figure(self, runner, populated, asset_root) -> None:
        """Test a LaTeX figure snippet is printed."""
        _, _, figure = populated

        result = runner.invoke(
            cli,
            ["cite", figure.id, "--root", str(asset_root), "--caption", "Forecast"],
        )

        assert result.exit_code == 0
        assert "figures/forecasting__lstm_forecast__v1.0.png" in result.output
        assert "\\caption{Forecast}" in result.output

    def test_corrupt_manifest(self, runner, populated, asset_root) -> None:
        """Test a corrupt manifest is reported as an error."""
        (asset_root / "manifests" / "asset_manifest.json").write_text("oops")

        result = runner.invoke(cli, ["list", "--root", str(asset_root)])

        assert result.exit_code == 1
        assert "unreadable" in result.output

    def test_status(self, runner) -> None:
        """Test status prints the configuration."""
        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Duplicate policy" in result.output
        assert "overwrite" in result.output
