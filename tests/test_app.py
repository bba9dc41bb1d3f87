from fastapi.testclient import TestClient

from app.main import create_app
from services.runtime import PlantRuntime


def test_healthcheck(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"

    detail = api_client.get("/api/health").json()
    assert detail["success"] is True
    assert detail["data_mode"] == "simulated"
    assert detail["sensor_count"] == 50
    assert detail["store_enabled"] is True
    assert detail["ai_enabled"] is False


def test_analysis_requires_plant_data(api_client: TestClient) -> None:
    response = api_client.get("/api/ai/recommendations")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "No plant data available for analysis"
    assert "timestamp" in body


def test_dashboard_data_is_cached(api_client: TestClient) -> None:
    first = api_client.get("/api/dashboard/data").json()
    second = api_client.get("/api/dashboard/data").json()

    assert first["success"] is True
    assert first["data"]["source"] == "simulated"
    assert first["data"]["generated_at"] == second["data"]["generated_at"]
    assert len(first["data"]["recent_sensors"]) == 8


def test_section_endpoints(api_client: TestClient) -> None:
    snapshot = api_client.get("/api/dashboard/data").json()["data"]

    sensors = api_client.get("/api/sensors/realtime").json()["data"]
    overview = api_client.get("/api/plant/status").json()["data"]
    parameters = api_client.get("/api/process/parameters").json()["data"]
    quality = api_client.get("/api/quality/current").json()["data"]
    equipment = api_client.get("/api/equipment/status").json()["data"]
    environmental = api_client.get("/api/environmental/current").json()["data"]

    assert sensors == snapshot["recent_sensors"]
    assert overview == snapshot["plant_overview"]
    assert parameters == snapshot["current_parameters"]
    assert quality == snapshot["recent_quality"][0]
    assert equipment == snapshot["equipment_status"]
    assert environmental == snapshot["environmental_data"]


def test_real_data_flow(api_client: TestClient, runtime: PlantRuntime) -> None:
    loaded = api_client.post("/api/real-data/load", json={"dataType": "sample"}).json()
    assert loaded["data"]["record_count"] == 10

    toggled = api_client.post("/api/real-data/toggle").json()["data"]
    assert toggled["real_data_enabled"] is True
    assert toggled["current_data_source"] == "Real plant data"

    runtime.scheduler.tick()
    snapshot = api_client.get("/api/dashboard/data").json()["data"]
    assert snapshot["source"] == "real"
    assert snapshot["record_index"] == 0

    status = api_client.get("/api/real-data/status").json()["data"]
    assert status["current_index"] == 1
    assert status["next_record"]["timestamp"] == "2024-01-01T00:05:00Z"

    api_client.post("/api/real-data/reset")
    assert api_client.get("/api/real-data/status").json()["data"]["current_index"] == 0


def test_real_data_load_rejects_unknown_type(api_client: TestClient) -> None:
    response = api_client.post("/api/real-data/load", json={"data_type": "database"})

    assert response.status_code == 400
    assert "Unsupported data type" in response.json()["error"]


def test_simulation_controls(api_client: TestClient, runtime: PlantRuntime) -> None:
    stopped = api_client.post("/api/simulation/stop").json()["data"]
    assert stopped["running"] is False

    started = api_client.post("/api/simulation/start").json()["data"]
    assert started["running"] is True

    injected = api_client.post("/api/simulation/anomaly", json={"type": "power"})
    assert injected.status_code == 200
    assert runtime.generator.pending_anomalies() == ["power"]

    rejected = api_client.post("/api/simulation/anomaly", json={"type": "meteor"})
    assert rejected.status_code == 400


def test_chat_falls_back_without_service(api_client: TestClient) -> None:
    response = api_client.post("/api/ai/chat", json={"message": "How is the kiln?"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["confidence"] == 0
    assert data["context_used"] == ["error"]


def test_chat_validation(api_client: TestClient) -> None:
    empty = api_client.post("/api/ai/chat", json={"message": "  "})
    assert empty.status_code == 400
    assert empty.json()["error"] == "Message is required"

    missing = api_client.post("/api/ai/chat", json={})
    assert missing.status_code == 422
    assert missing.json()["success"] is False


def test_optimization_objective_validation(api_client: TestClient) -> None:
    api_client.get("/api/dashboard/data")

    invalid = api_client.post("/api/ai/real-time-optimization", json={"objective": "profit"})
    assert invalid.status_code == 400
    assert invalid.json()["error"].startswith("Invalid objective")

    missing = api_client.post("/api/ai/real-time-optimization", json={})
    assert missing.status_code == 400

    valid = api_client.post("/api/ai/real-time-optimization", json={"objective": "energy"})
    assert valid.status_code == 200


def test_analysis_endpoints_after_data(api_client: TestClient) -> None:
    api_client.get("/api/dashboard/data")

    assert api_client.get("/api/ai/recommendations").status_code == 200
    assert api_client.get("/api/ai/energy-insights").status_code == 200
    assert api_client.post("/api/ai/quality-trends", json={"qualityHistory": [90, 91]}).status_code == 200
    assert api_client.post("/api/ai/input-fluctuations", json={"thresholds": {"kiln_temperature": 20}}).status_code == 200
    explained = api_client.post(
        "/api/ai/explain-anomaly",
        json={"anomalyType": "temperature", "currentValue": 1600, "normalRange": "1400-1500"},
    )
    assert explained.status_code == 200


def test_system_prompt_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/api/ai/system-prompt").json()["data"]["is_custom"] is False

    short = api_client.post("/api/ai/system-prompt", json={"systemPrompt": "short"})
    assert short.status_code == 400

    saved = api_client.post(
        "/api/ai/system-prompt", json={"systemPrompt": "You are a careful kiln engineer."}
    )
    assert saved.status_code == 200
    current = api_client.get("/api/ai/system-prompt").json()["data"]
    assert current == {"system_prompt": "You are a careful kiln engineer.", "is_custom": True}

    api_client.delete("/api/ai/system-prompt")
    assert api_client.get("/api/ai/system-prompt").json()["data"]["is_custom"] is False


def test_analyses_are_stored(runtime: PlantRuntime, store) -> None:
    with TestClient(create_app(runtime=runtime)) as client:
        client.get("/api/dashboard/data")
        response = client.post(
            "/api/ai/proactive-quality-corrections",
            json={"fluctuations": [{"parameter": "kiln_temperature", "current_value": 1510, "severity": "high"}]},
        )
        assert response.status_code == 200

    keys = store.keys("quality-analysis/proactive_corrections/")
    assert len(keys) == 1
    document = store.get_document(keys[0])
    assert document["fluctuations"][0]["parameter"] == "kiln_temperature"


def test_store_test_endpoint(api_client: TestClient, store) -> None:
    body = api_client.get("/api/store/test").json()

    assert body["success"] is True
    test_id = body["data"]["test_data"]["test_id"]
    assert store.get_document(f"integration-test/{test_id}") is not None


def test_unknown_route_uses_envelope(api_client: TestClient) -> None:
    response = api_client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_websocket_updates_and_requests(api_client: TestClient) -> None:
    snapshot = api_client.get("/api/dashboard/data").json()["data"]

    with api_client.websocket_connect("/ws") as websocket:
        update = websocket.receive_json()
        assert update["event"] == "dashboard_update"
        assert update["data"]["generated_at"] == snapshot["generated_at"]

        websocket.send_text("ping")
        assert websocket.receive_json()["event"] == "pong"

        websocket.send_json({"event": "status"})
        status = websocket.receive_json()
        assert status["event"] == "status"
        assert status["data"]["data_mode"] == "simulated"
        assert status["data"]["connected_clients"] == 1

        websocket.send_json({"event": "request_sensor_data"})
        sensors = websocket.receive_json()
        assert sensors["event"] == "sensor_data"
        assert sensors["data"] == snapshot["recent_sensors"]

        websocket.send_json({"event": "launch"})
        assert websocket.receive_json()["event"] == "error"


def test_ui_page_renders(api_client: TestClient) -> None:
    response = api_client.get("/ui")

    assert response.status_code == 200
    assert "Cement Plant Dashboard" in response.text
    assert "Rotary Kiln #1" in response.text
