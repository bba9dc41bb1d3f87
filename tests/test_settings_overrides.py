from __future__ import annotations

import socket
from typing import Iterable

import pytest

from app.server import PortUnavailableError, find_open_port
from datastore.document_store import build_default_store
from services.advisor import build_default_advisor
from services.runtime import build_default_runtime
from settings import DEFAULT_AI_URL, get_settings
from simulation.generator import build_default_generator

_CACHES = (
    get_settings,
    build_default_generator,
    build_default_advisor,
    build_default_store,
    build_default_runtime,
)


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def fresh_caches():
    _clear_caches(_CACHES)
    yield
    _clear_caches(_CACHES)


def test_defaults(monkeypatch) -> None:
    for name in ("PLANT_CAPACITY", "SIMULATION_INTERVAL", "GEMINI_API_KEY", "PORT", "DOCUMENT_STORE_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.plant_capacity == 2000.0
    assert settings.broadcast_interval_ms == 5000
    assert settings.ai_api_key is None
    assert settings.ai_api_url == DEFAULT_AI_URL
    assert settings.port == 3001
    assert settings.store_path == "./tmp/plant_store.json"


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "store.json"

    monkeypatch.setenv("PLANT_CAPACITY", "2500")
    monkeypatch.setenv("SIMULATION_INTERVAL", "250")
    monkeypatch.setenv("NOISE_LEVEL", "0.2")
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("DOCUMENT_STORE_PATH", str(store_path))
    monkeypatch.setenv("PERSIST_SNAPSHOTS", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()
    runtime = build_default_runtime()

    assert settings.log_level == "DEBUG"
    assert runtime.generator.config.plant_capacity == 2500.0
    assert runtime.generator.config.noise_level == 0.2
    assert runtime.scheduler.interval == 0.25
    assert runtime.scheduler.persist_snapshots is False
    assert runtime.advisor.client.enabled is True
    assert runtime.persistence.store is not None
    assert runtime.persistence.store.persistence_path == store_path


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("PLANT_CAPACITY", "-5")
    monkeypatch.setenv("SENSOR_COUNT", "many")
    monkeypatch.setenv("ANOMALY_PROBABILITY", "1.5")
    monkeypatch.setenv("PERSIST_SNAPSHOTS", "sometimes")

    settings = get_settings()

    assert settings.plant_capacity == 2000.0
    assert settings.sensor_count == 50
    assert settings.anomaly_probability == 0.05
    assert settings.persist_snapshots is True


def test_empty_store_path_disables_persistence(monkeypatch) -> None:
    monkeypatch.setenv("DOCUMENT_STORE_PATH", "")

    runtime = build_default_runtime()

    assert runtime.persistence.enabled is False


def test_find_open_port_skips_busy_port() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]

        with pytest.raises(PortUnavailableError):
            find_open_port("127.0.0.1", port, 0)

        chosen = find_open_port("127.0.0.1", port, 5)

    assert port < chosen <= port + 5
