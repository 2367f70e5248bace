"""Tests for the ``nexos-compat`` command line."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from nexos_compat import __version__
from nexos_compat.cli import app
from nexos_compat.client import create_nexos_client
from nexos_compat.config import Settings

from test_checks import gateway


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide Typer CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def keep_test_logging() -> Iterator[None]:
    """The app callback must not reconfigure logging onto the runner's streams."""
    with patch("nexos_compat.cli.main.setup_logging"):
        yield


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEXOS_API_KEY", "sk-cli")


def _mock_client(handler: Any) -> Any:
    def factory(settings: Settings) -> httpx.AsyncClient:
        return create_nexos_client(settings, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def mocked_gateway() -> Iterator[None]:
    with patch("nexos_compat.cli.main.create_nexos_client", side_effect=_mock_client(gateway)):
        yield


@pytest.mark.unit
def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


@pytest.mark.unit
def test_missing_api_key_exits(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["models"])

    assert result.exit_code == 1
    assert "NEXOS_API_KEY" in result.stdout


@pytest.mark.integration
@pytest.mark.usefixtures("api_key", "mocked_gateway")
class TestCommands:
    def test_models_lists_every_model(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["models"])

        assert result.exit_code == 0
        assert "Available models" in result.stdout
        for model_id in ("alpha (No PII)", "beta", "zeta"):
            assert model_id in result.stdout

    def test_check_writes_report(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        report = tmp_path / "results.md"

        result = cli_runner.invoke(app, ["check", "--output", str(report)])

        assert result.exit_code == 0
        assert "Found 2 models to check" in result.stdout
        text = report.read_text(encoding="utf-8")
        assert "| beta | ✅ | ✅ |  |" in text
        assert "| zeta | ✅ | ✅ |  |" in text
        assert "alpha" not in text

    def test_check_selected_model(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["check", "-m", "beta"])

        assert result.exit_code == 0
        assert "Found" not in result.stdout
        assert "beta" in result.stdout


@pytest.mark.integration
@pytest.mark.usefixtures("api_key")
def test_models_error_exits(cli_runner: CliRunner) -> None:
    handler = lambda request: httpx.Response(403, text="forbidden")

    with patch("nexos_compat.cli.main.create_nexos_client", side_effect=_mock_client(handler)):
        result = cli_runner.invoke(app, ["models"])

    assert result.exit_code == 1
    assert "Error: 403 Forbidden" in result.stdout
