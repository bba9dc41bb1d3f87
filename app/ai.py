"""HTTP routes wrapping the plant advisor."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from app.api import get_runtime
from app.schemas import (
    ApiEnvelope,
    ChatRequest,
    ExplainAnomalyRequest,
    InputFluctuationsRequest,
    OptimizationRequest,
    ProactiveCorrectionsRequest,
    QualityFluctuationRequest,
    QualityTrendsRequest,
    SystemPromptRequest,
    ok,
)
from models.records import DashboardSnapshot
from services.advisor import NoPlantDataError, parameters_as_mapping, validate_objective
from services.runtime import PlantRuntime

router = APIRouter(prefix="/api/ai")


def _require_snapshot(runtime: PlantRuntime) -> DashboardSnapshot:
    snapshot = runtime.state.latest()
    if snapshot is None:
        raise NoPlantDataError("No plant data available for analysis")
    return snapshot


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _store_analysis(runtime: PlantRuntime, kind: str, document: Dict[str, Any]) -> None:
    runtime.persistence.submit(f"quality-analysis/{kind}/{uuid4().hex}", document)


@router.post("/chat", response_model=ApiEnvelope, summary="Ask the plant assistant a question.")
async def chat(payload: ChatRequest, runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    snapshot = runtime.state.latest() if payload.include_context else None
    try:
        answer = await runtime.advisor.ask(payload.message, snapshot)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return ok(answer)


@router.get("/recommendations", response_model=ApiEnvelope, summary="Optimization recommendations.")
async def recommendations(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    return ok(await runtime.advisor.optimization_recommendations(snapshot))


@router.post("/explain-anomaly", response_model=ApiEnvelope, summary="Explain an anomaly.")
async def explain_anomaly(
    payload: ExplainAnomalyRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    answer = await runtime.advisor.explain_anomaly(
        payload.anomaly_type,
        payload.current_value,
        payload.normal_range,
        runtime.state.latest(),
    )
    return ok(answer)


@router.post("/quality-fluctuations", response_model=ApiEnvelope, summary="Detect quality fluctuations.")
async def quality_fluctuations(
    payload: QualityFluctuationRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    analysis = await runtime.advisor.detect_quality_fluctuations(snapshot, payload.historical_data)
    _store_analysis(
        runtime,
        "quality_fluctuations",
        {"type": "quality_fluctuations", "analysis": analysis, "plant_data": snapshot.plant_overview},
    )
    return ok(analysis)


@router.post("/quality-trends", response_model=ApiEnvelope, summary="Analyze quality trends.")
async def quality_trends(
    payload: QualityTrendsRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    return ok(await runtime.advisor.analyze_quality_trends(snapshot, payload.quality_history))


@router.post(
    "/proactive-quality-corrections",
    response_model=ApiEnvelope,
    summary="Corrective actions for detected fluctuations.",
)
async def proactive_quality_corrections(
    payload: ProactiveCorrectionsRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    fluctuations = [item.model_dump() for item in payload.fluctuations]
    analysis = await runtime.advisor.proactive_corrections(
        snapshot, fluctuations, payload.historical_trends
    )
    _store_analysis(
        runtime,
        "proactive_corrections",
        {
            "type": "proactive_corrections",
            "analysis": analysis,
            "plant_data": snapshot.plant_overview,
            "fluctuations": fluctuations,
            "timestamp": datetime.now(timezone.utc),
        },
    )
    return ok(analysis)


@router.post("/input-fluctuations", response_model=ApiEnvelope, summary="Input stability analysis.")
async def input_fluctuations(
    payload: InputFluctuationsRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    parameters = payload.parameters or parameters_as_mapping(snapshot.current_parameters)
    return ok(
        await runtime.advisor.input_fluctuations(
            parameters, payload.thresholds, payload.historical_data
        )
    )


@router.post(
    "/real-time-optimization",
    response_model=ApiEnvelope,
    summary="Objective-specific optimization steps.",
)
async def real_time_optimization(
    payload: OptimizationRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
        objective = validate_objective(payload.objective)
    except (NoPlantDataError, ValueError) as exc:
        raise _bad_request(exc) from exc
    return ok(await runtime.advisor.real_time_optimization(snapshot, objective))


@router.get("/energy-insights", response_model=ApiEnvelope, summary="Energy efficiency insights.")
async def energy_insights(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    try:
        snapshot = _require_snapshot(runtime)
    except NoPlantDataError as exc:
        raise _bad_request(exc) from exc
    return ok(await runtime.advisor.energy_insights(snapshot.current_parameters))


@router.get("/system-prompt", response_model=ApiEnvelope, summary="Current system prompt override.")
async def get_system_prompt(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    prompt = runtime.advisor.get_system_prompt()
    return ok({"system_prompt": prompt, "is_custom": prompt is not None})


@router.post("/system-prompt", response_model=ApiEnvelope, summary="Override the system prompt.")
async def set_system_prompt(
    payload: SystemPromptRequest,
    runtime: PlantRuntime = Depends(get_runtime),
) -> ApiEnvelope:
    try:
        prompt = runtime.advisor.set_system_prompt(payload.system_prompt)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return ok({"message": "Custom system prompt set successfully", "system_prompt": prompt})


@router.delete("/system-prompt", response_model=ApiEnvelope, summary="Revert to the default prompt.")
async def clear_system_prompt(runtime: PlantRuntime = Depends(get_runtime)) -> ApiEnvelope:
    runtime.advisor.clear_system_prompt()
    return ok({"message": "Custom system prompt cleared, reverted to default"})
