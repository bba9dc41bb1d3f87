"""Prompt building around an external generative-text service."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from statistics import mean
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from models.records import DashboardSnapshot, ProcessParameters
from settings import get_settings

logger = logging.getLogger(__name__)

OBJECTIVE_FRAMING: Dict[str, str] = {
    "quality": "Focus on maintaining and improving cement quality consistency",
    "energy": "Optimize for minimum energy consumption while maintaining quality",
    "production": "Maximize production throughput while ensuring quality standards",
    "environment": "Minimize environmental impact and emissions",
}

MIN_SYSTEM_PROMPT_LENGTH = 10
SUCCESS_CONFIDENCE = 0.85
MAX_RECOMMENDATIONS = 5
OPTIMAL_KILN_TEMPERATURE = 1450.0

FALLBACK_TEXT = (
    "I apologize, but I am currently unable to access the AI system. Please try again later."
)

DEFAULT_SYSTEM_PROMPT = """You are the plant assistant, an expert AI system for cement plant operations. You have deep knowledge of:

1. Cement Manufacturing Process:
   - Raw material preparation and grinding
   - Pyroprocessing in rotary kilns
   - Clinker cooling and cement grinding
   - Quality control and testing

2. Equipment and Systems:
   - Rotary kilns, preheaters, and coolers
   - Raw mills and cement mills
   - Fans, separators, and conveyors

3. Process Optimization:
   - Energy efficiency improvements
   - Alternative fuel utilization
   - Emissions reduction strategies

Always provide clear, actionable recommendations with specific technical
explanations and safety considerations. Keep responses concise but
comprehensive, suitable for plant operators and engineers."""

_ACTION_WORDS = ("Reduce", "Increase", "Optimize", "Adjust", "Monitor", "Check")
_LIST_MARKER = re.compile(r"^(?:\d+[.)]|\W)+")


class AdvisorUnavailableError(RuntimeError):
    """The text service could not produce a usable answer."""


class NoPlantDataError(LookupError):
    """An analysis was requested before any snapshot existed."""


@dataclass
class AdvisorResponse:
    response: str
    confidence: float
    recommendations: List[str] = field(default_factory=list)
    context_used: List[str] = field(default_factory=list)


def fallback_response() -> AdvisorResponse:
    return AdvisorResponse(
        response=FALLBACK_TEXT,
        confidence=0.0,
        recommendations=[],
        context_used=["error"],
    )


def extract_recommendations(text: str) -> List[str]:
    """Pick action lines out of free text, at most five."""
    recommendations: List[str] = []
    for line in text.splitlines():
        if not any(word in line for word in _ACTION_WORDS):
            continue
        cleaned = _LIST_MARKER.sub("", line).strip()
        if len(cleaned) > 10:
            recommendations.append(cleaned)
    return recommendations[:MAX_RECOMMENDATIONS]


def validate_objective(objective: Optional[str]) -> str:
    if not objective or objective not in OBJECTIVE_FRAMING:
        raise ValueError(
            f"Invalid objective. Must be one of: {', '.join(OBJECTIVE_FRAMING)}"
        )
    return objective


class GenerativeTextClient:
    """Thin async client for a ``generateContent``-style endpoint."""

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise AdvisorUnavailableError("Text service API key is not configured.")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 2048,
            },
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.api_url, params={"key": self.api_key}, json=body)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise AdvisorUnavailableError(f"Text service request failed: {exc}") from exc

        try:
            payload = response.json()
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AdvisorUnavailableError("Malformed response from text service.") from exc
        if not isinstance(text, str) or not text.strip():
            raise AdvisorUnavailableError("Text service returned an empty answer.")
        return text


class AdvisorService:
    """Turns questions and plant snapshots into prompts and parsed answers.

    Every call is independent; the only shared state is the optional system
    prompt override.
    """

    def __init__(self, client: GenerativeTextClient) -> None:
        self.client = client
        self._custom_system_prompt: Optional[str] = None

    def get_system_prompt(self) -> Optional[str]:
        return self._custom_system_prompt

    def set_system_prompt(self, prompt: Any) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("System prompt is required and must be a string")
        cleaned = prompt.strip()
        if len(cleaned) < MIN_SYSTEM_PROMPT_LENGTH:
            raise ValueError(
                f"System prompt must be at least {MIN_SYSTEM_PROMPT_LENGTH} characters long"
            )
        self._custom_system_prompt = cleaned
        return cleaned

    def clear_system_prompt(self) -> None:
        self._custom_system_prompt = None

    async def ask(
        self, question: str, snapshot: Optional[DashboardSnapshot] = None
    ) -> AdvisorResponse:
        if not question or not question.strip():
            raise ValueError("Message is required")

        prompt = "\n\n".join(
            [self._custom_system_prompt or DEFAULT_SYSTEM_PROMPT, _contextual_prompt(question, snapshot)]
        )
        started = time.perf_counter()
        try:
            text = await self.client.generate(prompt)
        except AdvisorUnavailableError as exc:
            logger.warning("Text service unavailable, returning fallback", extra={"reason": str(exc)})
            return fallback_response()

        logger.info(
            "Advisor answered",
            extra={"elapsed_ms": int((time.perf_counter() - started) * 1000)},
        )
        context_used = (
            ["plant_data", "process_parameters", "environmental_metrics"] if snapshot else ["question"]
        )
        return AdvisorResponse(
            response=text,
            confidence=SUCCESS_CONFIDENCE,
            recommendations=extract_recommendations(text),
            context_used=context_used,
        )

    async def optimization_recommendations(self, snapshot: DashboardSnapshot) -> AdvisorResponse:
        prompt = f"""Based on the current cement plant operational data, provide specific optimization recommendations:

{_status_block(snapshot)}

Please provide:
1. Top 3 optimization opportunities
2. Specific parameter adjustments
3. Expected benefits
4. Implementation priority

Focus on energy efficiency, environmental impact, and production optimization."""
        return await self.ask(prompt, snapshot)

    async def explain_anomaly(
        self,
        anomaly_type: str,
        current_value: float,
        normal_range: str,
        snapshot: Optional[DashboardSnapshot] = None,
    ) -> AdvisorResponse:
        prompt = f"""Explain the following cement plant anomaly:

Anomaly Type: {anomaly_type}
Current Value: {current_value}
Normal Range: {normal_range}

Please explain:
1. What this anomaly indicates
2. Potential root causes
3. Immediate actions to take
4. Long-term prevention strategies
5. Impact on production and quality"""
        return await self.ask(prompt, snapshot)

    async def detect_quality_fluctuations(
        self,
        snapshot: DashboardSnapshot,
        historical_data: Sequence[Mapping[str, Any]] = (),
    ) -> AdvisorResponse:
        params = snapshot.current_parameters
        overview = snapshot.plant_overview
        kiln_deviation = _deviation(params.kiln_temperature, OPTIMAL_KILN_TEMPERATURE)
        production_deviation = _deviation(
            overview.production_rate_current, overview.production_rate_target
        )
        energy_deviation = _deviation(
            overview.energy_consumption_current, overview.energy_consumption_target
        )
        prompt = f"""PERFORM REAL-TIME QUALITY FLUCTUATION ANALYSIS:

DEVIATIONS FROM TARGET:
- Kiln Temperature: {kiln_deviation:.1f}% from optimal {OPTIMAL_KILN_TEMPERATURE:.0f}°C
- Production Rate: {production_deviation:.1f}% from target
- Energy Consumption: {energy_deviation:.1f}% from target

{_status_block(snapshot)}
- Raw Meal Flow: {params.raw_meal_flow:.1f} TPH
- Exhaust Fan Speed: {params.exhaust_fan_speed:.0f} RPM
- NOx Emissions: {snapshot.environmental_data.nox_emissions:.1f} mg/Nm³
- Dust Emissions: {snapshot.environmental_data.dust_emissions:.1f} mg/Nm³

HISTORICAL SAMPLES PROVIDED: {len(historical_data)}

ANALYZE AND PROVIDE:
1. Fluctuation detection with severity (LOW/MEDIUM/HIGH)
2. Root cause analysis
3. Proactive corrections
4. Predictive insights
5. Implementation priority (next 15 minutes, next hour, next shift)"""
        return await self.ask(prompt, snapshot)

    async def analyze_quality_trends(
        self,
        snapshot: DashboardSnapshot,
        quality_history: Sequence[float] = (),
    ) -> AdvisorResponse:
        if quality_history:
            history_line = (
                f"{len(quality_history)} samples, min {min(quality_history):.1f}, "
                f"max {max(quality_history):.1f}, mean {mean(quality_history):.1f}"
            )
        else:
            history_line = "no history provided"
        overview = snapshot.plant_overview
        prompt = f"""QUALITY TREND ANALYSIS & PREDICTIVE INSIGHTS:

CURRENT QUALITY STATUS:
- Overall Quality Score: {overview.quality_score_avg:.1f}/100
- Active Alerts: {overview.active_alerts_count}
- Production Efficiency: {overview.overall_efficiency:.1f}%
- Quality History: {history_line}

Provide:
1. Trend identification
2. Next 4-hour quality forecast and risk assessment
3. Preventive recommendations
4. Continuous improvement strategies"""
        return await self.ask(prompt, snapshot)

    async def real_time_optimization(
        self, snapshot: DashboardSnapshot, objective: str
    ) -> AdvisorResponse:
        framing = OBJECTIVE_FRAMING[validate_objective(objective)]
        prompt = f"""REAL-TIME PROCESS OPTIMIZATION REQUEST:

OBJECTIVE: {framing}

{_status_block(snapshot)}
- Raw Meal Flow: {snapshot.current_parameters.raw_meal_flow:.1f} TPH
- Exhaust Fan Speed: {snapshot.current_parameters.exhaust_fan_speed:.0f} RPM

PROVIDE:
1. Immediate adjustments (next 15 minutes)
2. Short-term optimization (next 1-2 hours)
3. Medium-term strategy (next 4-8 hours)
4. Risk assessment and rollback procedures
5. Success metrics"""
        logger.info("Optimization requested", extra={"objective": objective})
        return await self.ask(prompt, snapshot)

    async def proactive_corrections(
        self,
        snapshot: DashboardSnapshot,
        fluctuations: Sequence[Mapping[str, Any]] = (),
        historical_trends: Sequence[Mapping[str, Any]] = (),
    ) -> AdvisorResponse:
        if fluctuations:
            lines = [_fluctuation_line(item) for item in fluctuations]
        else:
            lines = ["- No significant fluctuations detected"]
        prompt = f"""PROACTIVE QUALITY CORRECTIONS ANALYSIS:

OBJECTIVE: Generate specific corrective actions to prevent quality issues based on detected input fluctuations.

{_status_block(snapshot)}

DETECTED FLUCTUATIONS:
{chr(10).join(lines)}

HISTORICAL TREND POINTS: {len(historical_trends)}

PROVIDE:
1. Immediate corrective actions (0-15 minutes)
2. Preventive measures (15 minutes - 1 hour)
3. Root cause elimination (1-4 hours)
4. Success validation and risk mitigation"""
        return await self.ask(prompt, snapshot)

    async def input_fluctuations(
        self,
        parameters: Mapping[str, Any],
        thresholds: Mapping[str, Any],
        historical_data: Sequence[Mapping[str, Any]] = (),
    ) -> AdvisorResponse:
        parameter_lines = [
            f"- {name}: {value}" for name, value in parameters.items() if name != "timestamp"
        ]
        threshold_lines = [f"- {name}: {value}" for name, value in thresholds.items()] or [
            "- none provided"
        ]
        prompt = f"""INPUT FLUCTUATION STABILITY ANALYSIS:

CURRENT PARAMETERS:
{chr(10).join(parameter_lines)}

THRESHOLDS:
{chr(10).join(threshold_lines)}

HISTORICAL SAMPLES PROVIDED: {len(historical_data)}

Provide fluctuation assessment, impact prediction, stabilization recommendations,
monitoring priorities and preventive measures."""
        return await self.ask(prompt)

    async def energy_insights(self, parameters: ProcessParameters) -> AdvisorResponse:
        prompt = f"""Analyze current energy consumption patterns and provide efficiency insights:

Current Energy Consumption: {parameters.energy_consumption:.1f} kWh/ton
Raw Mill Power: {parameters.raw_mill_power:.0f} kW
Cement Mill Power: {parameters.cement_mill_power:.0f} kW
Kiln Temperature: {parameters.kiln_temperature:.0f}°C
Alternative Fuel Rate: {parameters.alternative_fuel_rate:.1f}%

Provide benchmark comparison, optimization opportunities, expected savings
and an implementation roadmap."""
        return await self.ask(prompt)


def parameters_as_mapping(parameters: ProcessParameters) -> Dict[str, Any]:
    return asdict(parameters)


def _deviation(value: float, target: float) -> float:
    if not target:
        return 0.0
    return abs(value - target) / target * 100


def _fluctuation_line(item: Mapping[str, Any]) -> str:
    deviation = item.get("deviation_percent")
    deviation_text = f"{deviation:.1f}% deviation" if isinstance(deviation, (int, float)) else "deviation n/a"
    return (
        f"- {item.get('parameter', 'unknown')}: {item.get('current_value')} "
        f"({deviation_text}, {item.get('severity', 'unknown')} severity)"
    )


def _status_block(snapshot: DashboardSnapshot) -> str:
    overview = snapshot.plant_overview
    params = snapshot.current_parameters
    env = snapshot.environmental_data
    return f"""Current Plant Status:
- Overall Efficiency: {overview.overall_efficiency:.1f}%
- Production Rate: {overview.production_rate_current:.0f} TPH (Target: {overview.production_rate_target:.0f} TPH)
- Energy Consumption: {overview.energy_consumption_current:.1f} kWh/ton (Target: {overview.energy_consumption_target:.0f} kWh/ton)
- Quality Score: {overview.quality_score_avg:.1f}/100
- Active Alerts: {overview.active_alerts_count}

Key Process Parameters:
- Kiln Temperature: {params.kiln_temperature:.0f}°C
- Raw Mill Power: {params.raw_mill_power:.0f} kW
- Cement Mill Power: {params.cement_mill_power:.0f} kW
- Alternative Fuel Rate: {params.alternative_fuel_rate:.1f}%

Environmental Metrics:
- CO2 Emissions: {env.co2_emissions:.0f} kg/ton
- Alternative Fuel Substitution: {env.alternative_fuel_substitution:.1f}%"""


def _contextual_prompt(question: str, snapshot: Optional[DashboardSnapshot]) -> str:
    prompt = f"Question: {question}"
    if snapshot is not None:
        prompt += "\n\n" + _status_block(snapshot)
    return prompt


@lru_cache
def build_default_advisor() -> AdvisorService:
    settings = get_settings()
    client = GenerativeTextClient(
        api_url=settings.ai_api_url,
        api_key=settings.ai_api_key,
        timeout=settings.ai_timeout_seconds,
    )
    if not client.enabled:
        logger.warning("Text service API key not set, advisor runs in fallback mode")
    return AdvisorService(client)
