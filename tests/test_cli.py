from __future__ import annotations

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
        self.calls: List[tuple] = []
        self.closed = False

    def get_snapshot(self) -> Dict[str, Any]:
        self.calls.append(("snapshot",))
        return {
            "source": "real",
            "record_index": 3,
            "generated_at": "2024-01-01T00:00:00Z",
            "plant_overview": {
                "overall_efficiency": 88.4,
                "production_rate_current": 1850.0,
                "energy_consumption_current": 95.2,
                "quality_score_avg": 85.0,
                "equipment_running_count": 7,
                "equipment_total_count": 8,
                "active_alerts_count": 2,
            },
            "recent_sensors": [
                {"sensor_id": "KILN_TEMP_01", "value": 1450.5, "unit": "°C"},
            ],
        }

    def get_status(self) -> Dict[str, Any]:
        self.calls.append(("status",))
        return {
            "data_source": "Real plant data",
            "real_data_enabled": True,
            "record_count": 10,
            "current_index": 4,
        }

    def load_real(self, data_type: str, path: str | None = None) -> Dict[str, Any]:
        self.calls.append(("load_real", data_type, path))
        return {"message": "Loaded 10 real data records"}

    def toggle(self) -> Dict[str, Any]:
        self.calls.append(("toggle",))
        return {"message": "Real data mode enabled", "current_data_source": "Real plant data"}

    def ask(self, message: str, include_context: bool = True) -> Dict[str, Any]:
        self.calls.append(("ask", message, include_context))
        return {
            "response": "Reduce fuel rate slightly.",
            "confidence": 0.85,
            "recommendations": ["Reduce fuel rate slightly."],
            "context_used": ["plant_data"],
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_snapshot_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 0
    assert "Plant Overview" in result.stdout
    assert "overall_efficiency: 88.4" in result.stdout
    assert "equipment_running: 7/8" in result.stdout
    assert "KILN_TEMP_01: 1450.5 °C" in result.stdout
    assert stub.closed is True


def test_status_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "current_index: 4" in result.stdout


def test_load_real_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["load-real", "csv", "--path", "plant.csv"])

    assert result.exit_code == 0
    assert "Loaded 10 real data records" in result.stdout
    assert stub.calls == [("load_real", "csv", "plant.csv")]


def test_toggle_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["toggle"])

    assert result.exit_code == 0
    assert "current_data_source: Real plant data" in result.stdout


def test_ask_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://plant:9000/", "ask", "How is the kiln?", "--no-context"])

    assert result.exit_code == 0
    assert "Reduce fuel rate slightly." in result.stdout
    assert stub.calls == [("ask", "How is the kiln?", False)]
    assert stub.config.base_url == "http://plant:9000"


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://dashboard:3001/")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")

    config = load_config()

    assert config == CLIConfig(base_url="http://dashboard:3001", timeout=30.0)


def test_api_client_unwraps_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/real-data/status"
        return httpx.Response(200, json={"success": True, "data": {"record_count": 10}})

    client = ApiClient(CLIConfig(base_url="http://plant"), transport=httpx.MockTransport(handler))

    assert client.get_status() == {"record_count": 10}
    client.close()


def test_api_client_reports_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "error": "Unsupported data type"})

    client = ApiClient(CLIConfig(base_url="http://plant"), transport=httpx.MockTransport(handler))

    with pytest.raises(typer.Exit):
        client.load_real("database")
    client.close()
