"""Synthetic cement plant telemetry."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Dict, List, Optional, Sequence, Set, Tuple
from uuid import uuid4

from models.records import (
    Alert,
    AlertSeverity,
    ChemicalComposition,
    DashboardSnapshot,
    DataMode,
    EnvironmentalData,
    EquipmentState,
    EquipmentStatus,
    PlantOverview,
    ProcessParameters,
    QualityMetrics,
    SensorReading,
    SensorType,
)
from settings import get_settings
from simulation.synthesizer import CyclicalChannel, SignalSynthesizer

logger = logging.getLogger(__name__)

RAW_MEAL_RATIO = 1.55
CLINKER_TEMPERATURE_OFFSET = 300.0
ENERGY_TARGET = 90.0
ANOMALY_KINDS = ("temperature", "power", "quality", "vibration")

EQUIPMENT_UNITS: Tuple[Tuple[str, str, str], ...] = (
    ("KILN_01", "Rotary Kiln #1", "Plant Section 2"),
    ("RAW_MILL_01", "Raw Mill #1", "Plant Section 1"),
    ("CEMENT_MILL_01", "Cement Mill #1", "Plant Section 3"),
    ("PREHEATER_01", "Preheater Tower", "Plant Section 2"),
    ("COOLER_01", "Grate Cooler", "Plant Section 2"),
    ("CRUSHER_01", "Limestone Crusher", "Plant Section 1"),
    ("SEPARATOR_01", "Cement Separator", "Plant Section 3"),
    ("FAN_01", "Exhaust Fan", "Plant Section 2"),
)

_RUNNING_PROBABILITY = 0.95
_ALERT_PROBABILITY = 0.3
_COMPLIANCE_PROBABILITY = 0.9
_ALERT_TYPES = ("temperature", "vibration", "power", "efficiency")
_ANOMALY_SPIKE = 1.2

# Sensors affected by an injected anomaly of the given kind, with the factor
# applied to their next reading.
_ANOMALY_SENSOR_FACTORS: Dict[str, Dict[str, float]] = {
    "temperature": {"KILN_TEMP_01": 1.15, "EXHAUST_TEMP_01": 1.2},
    "power": {"RAW_MILL_POWER_01": 1.25, "CEMENT_MILL_POWER_01": 1.25},
    "quality": {"FINENESS_01": 0.85},
    "vibration": {},
}

_KILN_TEMPERATURE = CyclicalChannel(base=1450.0, amplitude=40.0, period_hours=4.0)
_RAW_MILL_POWER = CyclicalChannel(base=2800.0, amplitude=200.0, period_hours=6.0)
_CEMENT_MILL_POWER = CyclicalChannel(base=3200.0, amplitude=250.0, period_hours=8.0)
_DAILY_CYCLE = CyclicalChannel(base=0.0, amplitude=1.0, period_hours=24.0)
# 0.8 +/- 0.15 daily swing +/- 0.05 jitter
_EFFICIENCY_RANGE = (0.6, 1.0)


@dataclass(frozen=True)
class SimulationConfig:
    plant_capacity: float = 2000.0
    sensor_count: int = 50
    noise_level: float = 0.1
    anomaly_probability: float = 0.05
    quality_variation: float = 0.1

    def __post_init__(self) -> None:
        if self.plant_capacity <= 0:
            raise ValueError("plant_capacity must be positive.")
        if self.sensor_count <= 0:
            raise ValueError("sensor_count must be positive.")
        for name in ("noise_level", "anomaly_probability", "quality_variation"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value!r}.")


@dataclass(frozen=True)
class _SensorSpec:
    sensor_id: str
    unit: str
    location: str
    sensor_type: SensorType
    channel: Optional[CyclicalChannel] = None
    value_range: Optional[Tuple[float, float]] = None


def process_bounds(config: SimulationConfig) -> Dict[str, Tuple[float, float]]:
    """Physical envelope of every generated process parameter."""
    capacity = config.plant_capacity
    low_eff, high_eff = _EFFICIENCY_RANGE
    return {
        "kiln_temperature": (_KILN_TEMPERATURE.low, _KILN_TEMPERATURE.high),
        "kiln_pressure": (-15.0, -5.0),
        "raw_mill_power": (_RAW_MILL_POWER.low * low_eff, _RAW_MILL_POWER.high * high_eff),
        "cement_mill_power": (
            _CEMENT_MILL_POWER.low * low_eff,
            _CEMENT_MILL_POWER.high * high_eff,
        ),
        "production_rate": (capacity * low_eff, capacity * high_eff),
        "energy_consumption": (85.0 / high_eff, 105.0 / low_eff),
        "alternative_fuel_rate": (15.0, 35.0),
        "raw_meal_flow": (
            capacity * low_eff * RAW_MEAL_RATIO,
            capacity * high_eff * RAW_MEAL_RATIO,
        ),
        "cement_fineness": (340.0, 380.0),
        "clinker_temperature": (
            _KILN_TEMPERATURE.low - CLINKER_TEMPERATURE_OFFSET,
            _KILN_TEMPERATURE.high - CLINKER_TEMPERATURE_OFFSET,
        ),
        "exhaust_fan_speed": (480.0, 520.0),
        "preheater_temperature": (320.0, 380.0),
    }


class SnapshotGenerator:
    """Produces internally consistent plant records from a synthesizer."""

    def __init__(
        self,
        config: SimulationConfig,
        synthesizer: Optional[SignalSynthesizer] = None,
    ) -> None:
        self.config = config
        self.synth = synthesizer or SignalSynthesizer()
        self.last_parameters: Optional[ProcessParameters] = None
        self._pending_anomalies: Set[str] = set()
        self._anomaly_lock = Lock()
        capacity = config.plant_capacity
        self._sensors: Tuple[_SensorSpec, ...] = (
            _SensorSpec(
                "KILN_TEMP_01", "°C", "Kiln Burning Zone", SensorType.temperature,
                channel=CyclicalChannel(1450.0, 50.0, 4.0, 0.0),
            ),
            _SensorSpec(
                "KILN_PRESSURE_01", "kPa", "Kiln Inlet", SensorType.pressure,
                value_range=(-15.0, -5.0),
            ),
            _SensorSpec(
                "RAW_MILL_POWER_01", "kW", "Raw Mill", SensorType.power,
                channel=CyclicalChannel(2800.0, 200.0, 6.0, math.pi / 4),
            ),
            _SensorSpec(
                "CEMENT_MILL_POWER_01", "kW", "Cement Mill", SensorType.power,
                channel=CyclicalChannel(3200.0, 300.0, 8.0, math.pi / 2),
            ),
            _SensorSpec(
                "PRODUCTION_FLOW_01", "TPH", "Cement Silo", SensorType.flow,
                channel=CyclicalChannel(capacity * 0.85, capacity * 0.1, 12.0),
            ),
            _SensorSpec(
                "EXHAUST_TEMP_01", "°C", "Preheater Exit", SensorType.temperature,
                value_range=(320.0, 380.0),
            ),
            _SensorSpec(
                "DUST_LEVEL_01", "mg/Nm³", "Stack", SensorType.flow,
                value_range=(15.0, 25.0),
            ),
            _SensorSpec(
                "FINENESS_01", "m²/kg", "Cement Mill Exit", SensorType.flow,
                value_range=(340.0, 380.0),
            ),
        )

    @property
    def sensor_ids(self) -> List[str]:
        return [spec.sensor_id for spec in self._sensors]

    def inject_anomaly(self, kind: str) -> None:
        """Arm a one-shot anomaly that shows up in the next generated records."""
        if kind not in ANOMALY_KINDS:
            raise ValueError(
                f"Unsupported anomaly type {kind!r}. Must be one of: {', '.join(ANOMALY_KINDS)}"
            )
        with self._anomaly_lock:
            self._pending_anomalies.add(kind)
        logger.info("Anomaly armed for next snapshot", extra={"reason": kind})

    def pending_anomalies(self) -> List[str]:
        with self._anomaly_lock:
            return sorted(self._pending_anomalies)

    def generate_sensor_readings(self) -> List[SensorReading]:
        timestamp = self._now()
        factors: Dict[str, float] = {}
        for kind in self._consume_anomalies("temperature", "power", "quality"):
            factors.update(_ANOMALY_SENSOR_FACTORS[kind])

        readings: List[SensorReading] = []
        for spec in self._sensors:
            if spec.channel is not None:
                value = self.synth.channel(spec.channel)
            else:
                assert spec.value_range is not None
                low, high = spec.value_range
                value = self.synth.bounded_random(low, high, self.config.noise_level)

            if spec.sensor_id in factors:
                value *= factors[spec.sensor_id]
            elif self.synth.chance(self.config.anomaly_probability):
                value *= _ANOMALY_SPIKE

            readings.append(
                SensorReading(
                    timestamp=timestamp,
                    sensor_id=spec.sensor_id,
                    value=value,
                    unit=spec.unit,
                    location=spec.location,
                    sensor_type=spec.sensor_type,
                )
            )
        return readings

    def generate_process_parameters(self) -> ProcessParameters:
        noise = self.config.noise_level
        capacity = self.config.plant_capacity
        production_cycle = self.synth.channel(_DAILY_CYCLE)
        low_eff, high_eff = _EFFICIENCY_RANGE
        efficiency = 0.8 + 0.15 * production_cycle + self.synth.bounded_random(-0.05, 0.05, 0.5)
        efficiency = max(low_eff, min(high_eff, efficiency))
        kiln_temperature = self.synth.channel(_KILN_TEMPERATURE)
        production_rate = capacity * efficiency

        parameters = ProcessParameters(
            timestamp=self._now(),
            kiln_temperature=kiln_temperature,
            kiln_pressure=self.synth.bounded_random(-15.0, -5.0, noise),
            raw_mill_power=self.synth.channel(_RAW_MILL_POWER) * efficiency,
            cement_mill_power=self.synth.channel(_CEMENT_MILL_POWER) * efficiency,
            production_rate=production_rate,
            energy_consumption=self.synth.bounded_random(85.0, 105.0, noise) / efficiency,
            alternative_fuel_rate=self.synth.bounded_random(15.0, 35.0, noise),
            raw_meal_flow=production_rate * RAW_MEAL_RATIO,
            cement_fineness=self.synth.bounded_random(340.0, 380.0, noise),
            clinker_temperature=kiln_temperature - CLINKER_TEMPERATURE_OFFSET,
            exhaust_fan_speed=self.synth.bounded_random(480.0, 520.0, noise),
            preheater_temperature=self.synth.bounded_random(320.0, 380.0, noise),
        )
        self.last_parameters = parameters
        return parameters

    def generate_quality_metrics(self) -> QualityMetrics:
        variation = self.config.quality_variation
        draw = self.synth.bounded_random
        timestamp = self._now()

        strength_28d = draw(42.0, 52.0, variation)
        defect_count = int(draw(0.0, 5.0, variation))
        if self._consume_anomalies("quality"):
            strength_28d = max(42.0, strength_28d - 6.0)
            defect_count += 5
        strength_ratio = (strength_28d - 42.0) / 10.0
        quality_score = max(0.0, min(100.0, 75.0 + 20.0 * strength_ratio - 1.5 * defect_count))

        return QualityMetrics(
            timestamp=timestamp,
            sample_id=f"QS_{int(timestamp.timestamp() * 1000)}_{self.synth.rng.randrange(1000)}",
            blaine_fineness=draw(340.0, 380.0, variation),
            compressive_strength_3d=draw(18.0, 25.0, variation),
            compressive_strength_28d=strength_28d,
            setting_time_initial=draw(45.0, 90.0, variation),
            setting_time_final=draw(180.0, 300.0, variation),
            quality_score=quality_score,
            defect_count=defect_count,
            consistency=draw(95.0, 99.5, variation),
            chemical_composition=ChemicalComposition(
                c3s=draw(50.0, 65.0, variation),
                c2s=draw(15.0, 25.0, variation),
                c3a=draw(8.0, 12.0, variation),
                c4af=draw(8.0, 12.0, variation),
                so3=draw(2.5, 3.5, variation),
                free_lime=draw(0.5, 1.5, variation),
            ),
        )

    def generate_alerts(self, equipment_id: str) -> List[Alert]:
        rng = self.synth.rng
        if not self.synth.chance(_ALERT_PROBABILITY):
            return []
        if rng.random() > 0.7:
            severity = AlertSeverity.high
        elif rng.random() > 0.4:
            severity = AlertSeverity.medium
        else:
            severity = AlertSeverity.low
        return [
            Alert(
                id=str(uuid4()),
                timestamp=self._now() - timedelta(hours=rng.random() * 24),
                severity=severity,
                alert_type=rng.choice(_ALERT_TYPES),
                message=f"{equipment_id}: Parameter deviation detected",
                acknowledged=rng.random() > 0.3,
                resolved=rng.random() > 0.6,
                equipment_id=equipment_id,
            )
        ]

    def generate_equipment_status(self) -> List[EquipmentStatus]:
        rng = self.synth.rng
        draw = self.synth.bounded_random
        noise = self.config.noise_level
        now = self._now()
        vibration_anomaly = bool(self._consume_anomalies("vibration"))

        units: List[EquipmentStatus] = []
        for equipment_id, name, location in EQUIPMENT_UNITS:
            if self.synth.chance(_RUNNING_PROBABILITY):
                status = EquipmentState.running
            elif rng.random() > 0.5:
                status = EquipmentState.maintenance
            else:
                status = EquipmentState.fault

            vibration = draw(0.5, 8.0, noise)
            alerts = [alert.message for alert in self.generate_alerts(equipment_id)]
            if vibration_anomaly and equipment_id == "KILN_01":
                vibration *= 2.5
                alerts.append(f"{equipment_id}: Vibration above alarm limit")

            last_maintenance = now - timedelta(days=rng.random() * 30)
            units.append(
                EquipmentStatus(
                    equipment_id=equipment_id,
                    equipment_name=name,
                    status=status,
                    efficiency=draw(85.0, 98.0, noise),
                    temperature=draw(45.0, 85.0, noise),
                    vibration_level=vibration,
                    power_consumption=draw(800.0, 3500.0, noise),
                    runtime_hours=draw(1000.0, 8760.0, noise),
                    last_maintenance=last_maintenance,
                    next_maintenance=last_maintenance + timedelta(days=90),
                    location=location,
                    alerts=tuple(alerts),
                )
            )
        return units

    def generate_environmental_data(self) -> EnvironmentalData:
        noise = self.config.noise_level
        draw = self.synth.bounded_random
        production_rate = self._current_production_rate(0.8)
        return EnvironmentalData(
            timestamp=self._now(),
            co2_emissions=draw(820.0, 950.0, noise),
            nox_emissions=draw(400.0, 800.0, noise),
            so2_emissions=draw(50.0, 200.0, noise),
            dust_emissions=draw(15.0, 30.0, noise),
            energy_consumption_specific=draw(85.0, 105.0, noise),
            alternative_fuel_substitution=draw(15.0, 35.0, noise),
            waste_heat_recovery=production_rate * draw(20.0, 35.0, noise),
            water_consumption=draw(200.0, 350.0, noise),
        )

    def generate_plant_overview(
        self,
        equipment: Optional[Sequence[EquipmentStatus]] = None,
        quality: Optional[QualityMetrics] = None,
    ) -> PlantOverview:
        """Aggregate plant figures.

        Without ``equipment`` a fresh equipment sample is drawn, so two
        standalone calls can report different running and alert counts.
        """
        noise = self.config.noise_level
        draw = self.synth.bounded_random
        units = list(equipment) if equipment is not None else self.generate_equipment_status()
        running = sum(1 for unit in units if unit.status is EquipmentState.running)
        alert_count = sum(len(unit.alerts) for unit in units)

        if self.last_parameters is not None:
            energy_current = self.last_parameters.energy_consumption
        else:
            energy_current = draw(85.0, 105.0, noise)
        quality_avg = quality.quality_score if quality is not None else draw(88.0, 96.0, noise)

        return PlantOverview(
            timestamp=self._now(),
            overall_efficiency=draw(82.0, 94.0, noise),
            production_rate_current=self._current_production_rate(0.85),
            production_rate_target=self.config.plant_capacity,
            energy_consumption_current=energy_current,
            energy_consumption_target=ENERGY_TARGET,
            quality_score_avg=quality_avg,
            active_alerts_count=alert_count,
            equipment_running_count=running,
            equipment_total_count=len(units),
            environmental_compliance=self.synth.chance(_COMPLIANCE_PROBABILITY),
        )

    def generate_snapshot(self) -> DashboardSnapshot:
        # Parameters first so environmental and overview figures share them.
        parameters = self.generate_process_parameters()
        sensors = self.generate_sensor_readings()
        quality = self.generate_quality_metrics()
        equipment = self.generate_equipment_status()
        environmental = self.generate_environmental_data()
        overview = self.generate_plant_overview(equipment=equipment, quality=quality)
        return DashboardSnapshot(
            generated_at=self._now(),
            source=DataMode.simulated,
            plant_overview=overview,
            recent_sensors=tuple(sensors),
            current_parameters=parameters,
            recent_quality=(quality,),
            equipment_status=tuple(equipment),
            environmental_data=environmental,
        )

    def _current_production_rate(self, default_share: float) -> float:
        if self.last_parameters is not None:
            return self.last_parameters.production_rate
        return self.config.plant_capacity * default_share

    def _consume_anomalies(self, *kinds: str) -> List[str]:
        with self._anomaly_lock:
            hit = [kind for kind in kinds if kind in self._pending_anomalies]
            self._pending_anomalies.difference_update(hit)
        return hit

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.synth.clock(), tz=timezone.utc)


@lru_cache
def build_default_generator() -> SnapshotGenerator:
    """Factory that wires the generator from environment settings."""
    settings = get_settings()
    config = SimulationConfig(
        plant_capacity=settings.plant_capacity,
        sensor_count=settings.sensor_count,
        noise_level=settings.noise_level,
        anomaly_probability=settings.anomaly_probability,
        quality_variation=settings.quality_variation,
    )
    return SnapshotGenerator(config)
