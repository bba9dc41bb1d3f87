"""Domain models shared across services.

Every record is frozen: a snapshot is built once per tick and then shared by
reference with every subscriber and pull consumer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class SensorType(str, Enum):
    temperature = "temperature"
    pressure = "pressure"
    flow = "flow"
    power = "power"
    vibration = "vibration"
    ph = "ph"
    humidity = "humidity"


class EquipmentState(str, Enum):
    running = "running"
    maintenance = "maintenance"
    fault = "fault"


class AlertSeverity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class DataMode(str, Enum):
    """Which source feeds the broadcast."""

    simulated = "simulated"
    real = "real"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single instrument reading at the time of the tick."""

    timestamp: datetime
    sensor_id: str
    value: float
    unit: str
    location: str
    sensor_type: SensorType


@dataclass(frozen=True, slots=True)
class ProcessParameters:
    timestamp: datetime
    kiln_temperature: float  # °C
    kiln_pressure: float  # kPa
    raw_mill_power: float  # kW
    cement_mill_power: float  # kW
    production_rate: float  # TPH
    energy_consumption: float  # kWh/ton
    alternative_fuel_rate: float  # %
    raw_meal_flow: float  # TPH
    cement_fineness: float  # Blaine, m²/kg
    clinker_temperature: float  # °C
    exhaust_fan_speed: float  # RPM
    preheater_temperature: float  # °C


@dataclass(frozen=True, slots=True)
class ChemicalComposition:
    """Clinker phase percentages. They are not normalised to 100."""

    c3s: float
    c2s: float
    c3a: float
    c4af: float
    so3: float
    free_lime: float


@dataclass(frozen=True, slots=True)
class QualityMetrics:
    timestamp: datetime
    sample_id: str
    blaine_fineness: float
    compressive_strength_3d: float  # MPa
    compressive_strength_28d: float  # MPa
    setting_time_initial: float  # minutes
    setting_time_final: float  # minutes
    quality_score: float  # 0-100
    defect_count: int
    consistency: float  # %
    chemical_composition: ChemicalComposition


@dataclass(frozen=True, slots=True)
class Alert:
    id: str
    timestamp: datetime
    severity: AlertSeverity
    alert_type: str
    message: str
    acknowledged: bool
    resolved: bool
    equipment_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EquipmentStatus:
    equipment_id: str
    equipment_name: str
    status: EquipmentState
    efficiency: float  # %
    temperature: float  # °C
    vibration_level: float  # mm/s
    power_consumption: float  # kW
    runtime_hours: float
    last_maintenance: datetime
    next_maintenance: datetime
    location: str
    alerts: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class EnvironmentalData:
    timestamp: datetime
    co2_emissions: float  # kg/ton cement
    nox_emissions: float  # mg/Nm³
    so2_emissions: float  # mg/Nm³
    dust_emissions: float  # mg/Nm³
    energy_consumption_specific: float  # kWh/ton
    alternative_fuel_substitution: float  # %
    waste_heat_recovery: float  # kWh
    water_consumption: float  # L/ton


@dataclass(frozen=True, slots=True)
class PlantOverview:
    timestamp: datetime
    overall_efficiency: float
    production_rate_current: float
    production_rate_target: float
    energy_consumption_current: float
    energy_consumption_target: float
    quality_score_avg: float
    active_alerts_count: int
    equipment_running_count: int
    equipment_total_count: int
    environmental_compliance: bool


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """Everything transmitted for one broadcast tick."""

    generated_at: datetime
    source: DataMode
    plant_overview: PlantOverview
    recent_sensors: Tuple[SensorReading, ...]
    current_parameters: ProcessParameters
    recent_quality: Tuple[QualityMetrics, ...]
    equipment_status: Tuple[EquipmentStatus, ...]
    environmental_data: EnvironmentalData
    record_index: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RealPlantRecord:
    """One row of recorded plant data replayed in real-data mode."""

    timestamp: str
    kiln_temperature: float
    kiln_pressure: float
    raw_mill_power: float
    cement_mill_power: float
    production_rate: float
    compressive_strength: float
    fineness: float
    co2_emissions: float
    energy_consumption: float
