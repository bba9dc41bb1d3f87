"""HTTP route definitions for plant data and data-source control."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.schemas import AnomalyRequest, ApiEnvelope, RealDataLoadRequest, failure, ok
from models.records import DashboardSnapshot, DataMode
from services.runtime import PlantRuntime

router = APIRouter()


def get_runtime(request: Request) -> PlantRuntime:
    return request.app.state.runtime


def _source_label(mode: DataMode) -> str:
    return "Real plant data" if mode is DataMode.real else "Simulated data"


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


@router.get("/api/health", summary="Detailed service status.")
async def api_health(runtime: PlantRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return {
        "success": True,
        "message": "Cement plant dashboard API is running",
        "simulation_running": runtime.scheduler.running,
        "connected_clients": runtime.hub.subscriber_count,
        "data_mode": runtime.switch.mode.value,
        "sensor_count": runtime.generator.config.sensor_count,
        "store_enabled": runtime.persistence.enabled,
        "ai_enabled": runtime.advisor.client.enabled,
        "timestamp": datetime.now(timezone.utc),
    }


@router.get(
    "/api/dashboard/data",
    response_model=ApiEnvelope,
    summary="Latest dashboard snapshot, produced once if nothing is cached yet.",
)
async def dashboard_data(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    return ok(runtime.switch.current_snapshot())


def _section_route(path: str, summary: str, pick: Callable[[DashboardSnapshot], Any]) -> None:
    async def endpoint(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
        return ok(pick(runtime.switch.current_snapshot()))

    endpoint.__name__ = "section_" + path.strip("/").replace("/", "_")
    router.add_api_route(path, endpoint, methods=["GET"], response_model=ApiEnvelope, summary=summary)


_section_route("/api/sensors/realtime", "Sensor readings of the latest snapshot.", lambda s: s.recent_sensors)
_section_route("/api/plant/status", "Plant overview of the latest snapshot.", lambda s: s.plant_overview)
_section_route("/api/process/parameters", "Process parameters of the latest snapshot.", lambda s: s.current_parameters)
_section_route("/api/quality/current", "Quality sample of the latest snapshot.", lambda s: s.recent_quality[0])
_section_route("/api/equipment/status", "Equipment status of the latest snapshot.", lambda s: s.equipment_status)
_section_route("/api/environmental/current", "Environmental data of the latest snapshot.", lambda s: s.environmental_data)


@router.post("/api/simulation/start", response_model=ApiEnvelope, summary="Resume broadcasting.")
async def simulation_start(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    runtime.scheduler.resume()
    return ok({"message": "Simulation started", "running": runtime.scheduler.running})


@router.post("/api/simulation/stop", response_model=ApiEnvelope, summary="Pause broadcasting.")
async def simulation_stop(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    runtime.scheduler.pause()
    return ok({"message": "Simulation stopped", "running": runtime.scheduler.running})


@router.post(
    "/api/simulation/anomaly",
    response_model=ApiEnvelope,
    summary="Arm a one-shot anomaly in the next simulated snapshot.",
)
async def simulation_anomaly(
    payload: AnomalyRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        runtime.generator.inject_anomaly(payload.anomaly_type)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ok({"message": f"{payload.anomaly_type} anomaly injected"})


@router.post("/api/real-data/load", response_model=ApiEnvelope, summary="Load a recorded data sequence.")
async def real_data_load(
    payload: RealDataLoadRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        count = runtime.switch.load_real(payload.data_type, payload.path)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ok(
        {
            "message": f"Loaded {count} real data records",
            "data_type": payload.data_type,
            "record_count": count,
        }
    )


@router.post("/api/real-data/toggle", response_model=ApiEnvelope, summary="Flip simulated/real mode.")
async def real_data_toggle(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    mode = runtime.switch.toggle()
    enabled = mode is DataMode.real
    return ok(
        {
            "message": "Real data mode enabled" if enabled else "Simulation mode enabled",
            "real_data_enabled": enabled,
            "current_data_source": _source_label(mode),
        }
    )


@router.post("/api/real-data/reset", response_model=ApiEnvelope, summary="Rewind the replay position.")
async def real_data_reset(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    runtime.switch.reset()
    return ok({"message": "Replay position reset", "current_index": 0})


@router.get("/api/real-data/status", response_model=ApiEnvelope, summary="Current mode and replay position.")
async def real_data_status(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    replay = runtime.switch.status()
    return ok(
        {
            "real_data_enabled": replay.mode is DataMode.real,
            "record_count": replay.record_count,
            "current_index": replay.position,
            "data_source": _source_label(replay.mode),
            "next_record": replay.next_record,
        }
    )


@router.get("/api/store/test", response_model=ApiEnvelope, summary="Write a test document to the store.")
async def store_test(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    test_document = {
        "message": "Document store integration test",
        "timestamp": datetime.now(timezone.utc),
        "test_id": uuid4().hex[:9],
    }
    try:
        await runtime.persistence.write_now(f"integration-test/{test_document['test_id']}", test_document)
    except Exception as exc:  # noqa: BLE001 - reported to caller, service keeps running
        return failure(f"Document store test failed: {exc}")
    return ok({"message": "Document store test successful", "test_data": test_document})
