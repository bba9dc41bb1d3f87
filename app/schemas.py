"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import AliasChoices, BaseModel, Field


class ApiEnvelope(BaseModel):
    """Uniform wrapper around every API payload."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    timestamp: datetime


def ok(data: Any) -> ApiEnvelope:
    return ApiEnvelope(success=True, data=jsonable_encoder(data), timestamp=datetime.now(timezone.utc))


def failure(message: str) -> ApiEnvelope:
    return ApiEnvelope(success=False, error=message, timestamp=datetime.now(timezone.utc))


class RealDataLoadRequest(BaseModel):
    data_type: str = Field(
        default="sample",
        validation_alias=AliasChoices("data_type", "dataType"),
        description='"sample" for the built-in recording or "csv" with a path.',
    )
    path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("path", "source"),
        description="CSV file path for the csv data type.",
    )


class AnomalyRequest(BaseModel):
    anomaly_type: str = Field(..., validation_alias=AliasChoices("anomaly_type", "type"))


class ChatRequest(BaseModel):
    message: str = Field(..., description="Free-text question for the assistant.")
    include_context: bool = Field(
        default=True, description="Attach the latest plant snapshot when one exists."
    )


class ExplainAnomalyRequest(BaseModel):
    anomaly_type: str = Field(..., validation_alias=AliasChoices("anomaly_type", "anomalyType"))
    current_value: float = Field(..., validation_alias=AliasChoices("current_value", "currentValue"))
    normal_range: str = Field(..., validation_alias=AliasChoices("normal_range", "normalRange"))


class Fluctuation(BaseModel):
    """A parameter excursion detected by the client."""

    parameter: str
    current_value: float
    deviation_percent: Optional[float] = None
    severity: str = "low"


class QualityFluctuationRequest(BaseModel):
    historical_data: List[Dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("historical_data", "historicalData")
    )


class QualityTrendsRequest(BaseModel):
    quality_history: List[float] = Field(
        default_factory=list, validation_alias=AliasChoices("quality_history", "qualityHistory")
    )


class ProactiveCorrectionsRequest(BaseModel):
    fluctuations: List[Fluctuation] = Field(default_factory=list)
    historical_trends: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("historical_trends", "historicalTrends"),
    )


class InputFluctuationsRequest(BaseModel):
    parameters: Optional[Dict[str, float]] = None
    thresholds: Dict[str, float] = Field(default_factory=dict)
    historical_data: List[Dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("historical_data", "historicalData")
    )


class OptimizationRequest(BaseModel):
    objective: Optional[str] = None


class SystemPromptRequest(BaseModel):
    system_prompt: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("system_prompt", "systemPrompt")
    )
