from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.export_calls: List[tuple[str, str]] = []
        self.dashboard_payload: Dict[str, Any] = {
            "week_label": "12/10/2026 - 18/10/2026",
            "month_label": "outubro de 2026",
            "energy_week": "150",
            "waste_week": "75",
            "energy_week_delta": "↑ 50%",
            "waste_week_delta": "↓ 25%",
            "efficiency_current": "90%",
            "efficiency_bar_width": "90%",
            "month_energy": "250 kWh",
            "month_waste": "175 kg",
            "month_tax": "R$ 15,00",
            "week_energy": "150 kWh",
            "week_efficiency": "80%",
        }
        self.report_payload: Dict[str, Any] = {
            "title": "Relatório do Biodigestor",
            "generated_at": "18/10/2026",
            "period_label": "01/10/2026 — 31/10/2026",
            "stats": {"waste": "175 kg", "energy": "250 kWh", "efficiency": "80%", "tax": "R$ 15,00"},
            "activities": [
                {
                    "date": "17/10/2026",
                    "activity": "Energia: 50 kWh • Resíduos: 25 kg",
                    "status": "Registrado",
                    "value": "R$ 5,00",
                }
            ],
        }
        self.closed = False

    def get_dashboard(self) -> Dict[str, Any]:
        return self.dashboard_payload

    def get_report(self) -> Dict[str, Any]:
        return self.report_payload

    def export_report(self, export_format: str, filename: str) -> tuple[str, bytes]:
        self.export_calls.append((export_format, filename))
        return f"{filename}.{export_format}", b"payload"

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch) -> List[StubClient]:
    created: List[StubClient] = []

    def factory(config):
        stub = StubClient(config)
        created.append(stub)
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return created


def test_dashboard_command(monkeypatch, runner: CliRunner) -> None:
    created = _install_stub(monkeypatch)

    result = runner.invoke(app, ["--owner-id", "u1", "dashboard"])

    assert result.exit_code == 0
    assert "Semana 12/10/2026 - 18/10/2026" in result.stdout
    assert "↑ 50%" in result.stdout
    assert "economia fiscal: R$ 15,00" in result.stdout
    assert created[0].config.owner_id == "u1"
    assert created[0].closed is True


def test_report_command(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch)

    result = runner.invoke(app, ["report"])

    assert result.exit_code == 0
    assert "Relatório do Biodigestor" in result.stdout
    assert "Eficiência Média: 80%" in result.stdout
    assert "17/10/2026 Energia: 50 kWh" in result.stdout


def test_export_command_writes_file(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    created = _install_stub(monkeypatch)

    result = runner.invoke(
        app, ["export", "XLSX", "--filename", "outubro", "--output-dir", str(tmp_path / "out")]
    )

    assert result.exit_code == 0
    assert created[0].export_calls == [("xlsx", "outubro")]
    assert (tmp_path / "out" / "outubro.xlsx").read_bytes() == b"payload"
    assert "Saved" in result.stdout


def test_export_rejects_unknown_format(monkeypatch, runner: CliRunner) -> None:
    created = _install_stub(monkeypatch)

    result = runner.invoke(app, ["export", "docx"])

    assert result.exit_code != 0
    assert created[0].export_calls == []


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://dash.internal:9000/")
    monkeypatch.setenv("BIODASH_OWNER_ID", "owner-7")
    monkeypatch.setenv("CLI_TIMEOUT", "nope")

    config = load_config()

    assert config.base_url == "http://dash.internal:9000"
    assert config.owner_id == "owner-7"
    assert config.timeout == 30.0


def test_load_config_defaults(monkeypatch) -> None:
    for name in ("API_BASE_URL", "BIODASH_OWNER_ID", "CLI_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    assert load_config() == CLIConfig(base_url="http://localhost:3003", owner_id=None, timeout=30.0)


def test_client_reports_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-owner-id"] == "u1"
        return httpx.Response(502, json={"detail": "Indicator store query failed: offline"})

    client = ApiClient(CLIConfig(base_url="http://dash.test", owner_id="u1"))
    client._client = httpx.Client(
        base_url="http://dash.test",
        headers={"X-Owner-Id": "u1"},
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(typer.Exit):
        client.get_report()


def test_client_uses_content_disposition_filename() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["filename"] == "outubro"
        return httpx.Response(
            200,
            content=b"a,b",
            headers={"Content-Disposition": 'attachment; filename="outubro.csv"'},
        )

    client = ApiClient(CLIConfig(base_url="http://dash.test"))
    client._client = httpx.Client(base_url="http://dash.test", transport=httpx.MockTransport(handler))

    assert client.export_report("csv", "outubro") == ("outubro.csv", b"a,b")
