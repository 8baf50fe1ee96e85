# tests/cli/test_cli.py
"""Tests for the chainlook CLI."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

runner = CliRunner()

TABLE_WIDGET: dict[str, Any] = {
    "type": "table",
    "table": {"columns": [{"dataKey": "symbol"}, {"dataKey": "tvlK"}]},
    "data": {
        "source": {"provider": "ipfs", "cid": "QmPools"},
        "dynamicFields": {"tvlK": "tvl / 1000"},
    },
}


@pytest.fixture
def widget_file(tmp_path: Path) -> Path:
    path = tmp_path / "pools.json"
    path.write_text(json.dumps(TABLE_WIDGET))
    return path


class TestCLIBasics:
    """Top-level options."""

    def test_version(self) -> None:
        from chainlook import __version__
        from chainlook.cli import app

        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"chainlook version {__version__}" in result.stdout

    def test_no_args_shows_help(self) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, [])
        assert "resolve" in result.output
        assert "validate" in result.output


class TestFieldsCommand:
    def test_prints_sorted_required_fields(self, widget_file: Path) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["fields", str(widget_file)])
        assert result.exit_code == 0
        assert result.stdout.split() == ["symbol", "tvl"]

    def test_yaml_widget(self, tmp_path: Path) -> None:
        from chainlook.cli import app

        path = tmp_path / "pools.yaml"
        path.write_text(yaml.safe_dump(TABLE_WIDGET))

        result = runner.invoke(app, ["fields", str(path)])
        assert result.exit_code == 0
        assert result.stdout.split() == ["symbol", "tvl"]

    def test_missing_file(self, tmp_path: Path) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["fields", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "Widget file not found" in result.output

    def test_unparseable_file(self, tmp_path: Path) -> None:
        from chainlook.cli import app

        path = tmp_path / "broken.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["fields", str(path)])
        assert result.exit_code == 1
        assert "Cannot parse broken.json" in result.output


class TestValidateCommand:
    def test_valid_widget(self, widget_file: Path) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["validate", str(widget_file)])
        assert result.exit_code == 0
        assert "Widget valid: pools.json" in result.stdout
        assert "Type: table" in result.stdout
        assert "Sources: 1" in result.stdout

    def test_invalid_widget(self, tmp_path: Path) -> None:
        from chainlook.cli import app

        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"type": "heatmap"}))

        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_settings_file(self, widget_file: Path, tmp_path: Path) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["validate", str(widget_file), "-s", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Settings file not found" in result.output


class TestResolveCommand:
    def test_widget_without_data_prints_empty_list(self, tmp_path: Path) -> None:
        from chainlook.cli import app

        path = tmp_path / "metric.json"
        path.write_text(json.dumps({"type": "metric", "metric": {"dataKey": "total"}}))

        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_invalid_variable(self, widget_file: Path) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["resolve", str(widget_file), "--var", "novalue"])
        assert result.exit_code == 1
        assert "expected name=value" in result.output

    def test_parse_variables_decodes_json(self) -> None:
        from chainlook.cli import _parse_variables

        assert _parse_variables(["limit=10", "owner=0xabc", "flags=[1, 2]"]) == {
            "limit": 10,
            "owner": "0xabc",
            "flags": [1, 2],
        }


class TestDashboardCommand:
    def test_rejects_unsupported_id(self) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["dashboard", "http:example"])
        assert result.exit_code == 1
        assert "must be 'ipfs:<cid>' or 'ipns:<name>'" in result.output


class TestPluginsListCommand:
    """Tests for plugins list command."""

    def test_lists_providers_and_transforms(self) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["plugins", "list"])
        assert result.exit_code == 0
        assert "PROVIDERS:" in result.stdout
        assert "graph" in result.stdout
        assert "ipns" in result.stdout
        assert "TRANSFORMS:" in result.stdout
        assert "weiToEther" in result.stdout

    def test_filter_by_type(self) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["plugins", "list", "--type", "transform"])
        assert result.exit_code == 0
        assert "TRANSFORMS:" in result.stdout
        assert "PROVIDERS:" not in result.stdout

    def test_invalid_type(self) -> None:
        from chainlook.cli import app

        result = runner.invoke(app, ["plugins", "list", "--type", "sink"])
        assert result.exit_code == 1
        assert "Invalid type 'sink'" in result.output
